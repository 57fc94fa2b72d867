"""
Response envelope formatting for search results.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence

from pydantic import BaseModel

from ..schema.search import SearchResultEnvelope


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. ``2024-01-01T00:00:00.000Z``."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_search_results(results: Sequence[Any], query: str) -> Dict[str, Any]:
    """
    Wrap raw search results into a response envelope.

    Args:
        results: Ranked results, plain dicts or pydantic models
        query: The original query

    Returns:
        Dict with ``query``, ``count``, ``results`` and ``timestamp``
    """
    items = [item.model_dump() if isinstance(item, BaseModel) else item for item in results]
    envelope = SearchResultEnvelope(query=query, count=len(items), results=items, timestamp=utc_timestamp())
    return envelope.model_dump()
