"""
Search service tying validation, scanning and formatting together.
"""

from typing import Any, Dict, Optional

import structlog

from ..config.settings import FantomSettings, get_cached_settings
from ..exceptions import InvalidSearchParams
from ..schema.search import SearchRequest
from ..utils.logging import setup_logger_from_settings
from .formatter import format_search_results
from .params import parse_scoped_tags, validate_search_params
from .scanner import RankedScanner, Scorer, StoreFactory

logger = structlog.get_logger(__name__)


class SearchService:
    """
    Request-level entry point: validate, scan, format.
    """

    def __init__(self, scanner: RankedScanner):
        self.scanner = scanner

    async def search(self, request: SearchRequest) -> Dict[str, Any]:
        """
        Run a search request.

        Scoped tags are parsed and logged with the request; they do not
        narrow the scan and are not part of the response.

        Args:
            request: The search request

        Returns:
            Response envelope with ``query``, ``count``, ``results`` and ``timestamp``

        Raises:
            InvalidSearchParams: If the query is empty; the store is not touched
            ConfigLoadError: If the configuration document cannot be loaded
            StoreConnectionError: If the store fails
        """
        parameters = {"type": request.algorithm, "tags": request.tags}
        if not validate_search_params(request.query, parameters):
            raise InvalidSearchParams("Search query must be a non-empty string")

        scoped_tags = parse_scoped_tags(request.tags)
        logger.info(
            "search_requested",
            query=request.query,
            user_id=request.user_id,
            key_pattern=request.key_pattern,
            scoped_tags=scoped_tags,
        )

        result = await self.scanner.scan(request.query, request.user_id, request.algorithm, request.key_pattern)
        return format_search_results(result.results, request.query)


def create_search_service(
    scorer: Scorer,
    settings: Optional[FantomSettings] = None,
    store_factory: Optional[StoreFactory] = None,
) -> SearchService:
    """
    Build a SearchService and configure logging from settings.

    Args:
        scorer: Relevance function used for every record
        settings: Runtime settings; cached settings when omitted
        store_factory: Optional store factory, a RedisStore per scan by default

    Returns:
        Ready-to-use SearchService
    """
    settings = settings or get_cached_settings()
    setup_logger_from_settings("fantom", settings)
    return SearchService(RankedScanner(scorer, store_factory=store_factory, settings=settings))
