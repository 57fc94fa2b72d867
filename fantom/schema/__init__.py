from .search import ScanResult, ScoredCandidate, SearchRequest, SearchResultEnvelope, SkippedRecord

__all__ = [
    # search
    "SearchRequest",
    "ScoredCandidate",
    "SkippedRecord",
    "ScanResult",
    "SearchResultEnvelope",
]
