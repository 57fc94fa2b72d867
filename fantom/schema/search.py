from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class SearchRequest(BaseModel):
    query: str
    user_id: str
    algorithm: Optional[str] = None
    key_pattern: str = "*"
    tags: List[str] = Field(default_factory=list)


class ScoredCandidate(BaseModel):
    key: str
    value: Any
    score: float


class SkippedRecord(BaseModel):
    key: str
    stage: Literal["missing", "decode", "score"]
    reason: str


class ScanResult(BaseModel):
    results: List[ScoredCandidate] = Field(default_factory=list)
    skipped: List[SkippedRecord] = Field(default_factory=list)
    scanned_keys: int = 0
    algorithm: Optional[str] = None

    def as_dicts(self) -> List[Dict[str, Any]]:
        return [candidate.model_dump() for candidate in self.results]


class SearchResultEnvelope(BaseModel):
    query: str
    count: int
    results: List[Any]
    timestamp: str
