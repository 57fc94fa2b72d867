"""
Request shaping helpers: query validation and scoped tag parsing.
"""

from typing import Any, Dict, Iterable, List, Optional


def validate_search_params(query: Any, parameters: Optional[Dict[str, Any]] = None) -> bool:
    """
    Check whether a search query is acceptable.

    Only the query itself is checked. ``parameters`` (``type`` and ``tags``)
    is accepted for interface compatibility and is not inspected, so unknown
    algorithm names and missing tags are allowed through.

    Args:
        query: The search query
        parameters: Optional search parameters

    Returns:
        False if the query is empty, not a string, or whitespace only
    """
    if not query or not isinstance(query, str) or query.strip() == "":
        return False

    return True


def parse_scoped_tags(tags: Iterable[str]) -> Dict[str, List[str]]:
    """
    Group ``scope:value`` tags by scope.

    Tags that do not split into exactly two parts on ``:`` are dropped.

    >>> parse_scoped_tags(["a:1", "a:2", "b:3", "noColon", "x:y:z"])
    {'a': ['1', '2'], 'b': ['3']}
    """
    scoped_tags: Dict[str, List[str]] = {}

    for tag in tags:
        parts = tag.split(":")
        if len(parts) == 2:
            scope, value = parts
            scoped_tags.setdefault(scope, []).append(value)

    return scoped_tags
