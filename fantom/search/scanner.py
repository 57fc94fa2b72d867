"""
Ranked scanner: scan a Redis keyspace, score every record, keep the best.

The pipeline for one call is:
1. Resolve the ranking algorithm (explicit > user default > fallback)
2. Open a dedicated store connection
3. Collect every key matching the pattern with cursor-based SCAN
4. Fetch and JSON-decode each value, skipping records that fail
5. Score each decoded record with the injected scorer
6. Sort by score, cut to the result limit, then drop falsy scores
7. Close the connection, whatever happened above
"""

import json
import math
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple, Union

import structlog
from pydantic import ValidationError

from ..config.loader import Configuration, load_fantom_config
from ..config.settings import FantomSettings, get_cached_settings
from ..exceptions import RecordDecodeError, StoreConnectionError, get_error_message
from ..schema.search import ScanResult, ScoredCandidate, SkippedRecord
from ..store.redis_client import RedisStore

logger = structlog.get_logger(__name__)

# SCAN starts from and terminates on this cursor value
INITIAL_CURSOR = 0


class Scorer(Protocol):
    def __call__(self, query: str, record: Any, algorithm: str) -> float: ...


class KeyValueStore(Protocol):
    async def connect(self) -> None: ...

    async def scan(self, cursor: int, match: str = "*", count: Optional[int] = None) -> Tuple[int, List[str]]: ...

    async def get(self, key: str) -> Optional[Union[str, bytes]]: ...

    async def close(self) -> None: ...


StoreFactory = Callable[[], KeyValueStore]
ConfigLoader = Callable[[], Configuration]


def resolve_algorithm(
    algorithm: Optional[str], user_id: Optional[str], config: Configuration, fallback: str = "bm25"
) -> str:
    """
    Pick the ranking algorithm for a scan.

    An explicit non-empty ``algorithm`` wins, then the user's configured
    default, then ``fallback``.
    """
    if algorithm:
        return algorithm
    return config.algorithm_for(user_id) or fallback


def _is_truthy_score(score: float) -> bool:
    return bool(score) and not math.isnan(score)


def _sort_score(candidate: ScoredCandidate) -> float:
    # NaN does not order; rank it below everything else
    return -math.inf if math.isnan(candidate.score) else candidate.score


def rank_candidates(candidates: Sequence[ScoredCandidate], limit: int = 10) -> List[ScoredCandidate]:
    """
    Order candidates by descending score and keep the top ``limit``.

    Equal scores keep their discovery order. Falsy scores (0, NaN) are
    removed after the cut, so fewer than ``limit`` results can come back even
    when more than ``limit`` candidates had a positive score.
    """
    ranked = sorted(candidates, key=_sort_score, reverse=True)
    return [candidate for candidate in ranked[:limit] if _is_truthy_score(candidate.score)]


def decode_record(key: str, raw_value: Union[str, bytes]) -> Any:
    """
    Decode a stored value as UTF-8 JSON.

    Raises:
        RecordDecodeError: If the value is not UTF-8, not JSON, or nested
            too deeply to parse
    """
    try:
        if isinstance(raw_value, (bytes, bytearray)):
            raw_value = raw_value.decode("utf-8")
        return json.loads(raw_value)
    except (TypeError, ValueError, RecursionError) as e:
        raise RecordDecodeError(key, get_error_message(e)) from e


class RankedScanner:
    """
    Scan-score-rank pipeline over a Redis keyspace.

    A new store is created from ``store_factory`` for every ``scan`` call and
    is closed exactly once before the call returns or raises. Scanners hold no
    per-scan state, so one instance can serve concurrent calls.
    """

    def __init__(
        self,
        scorer: Scorer,
        store_factory: Optional[StoreFactory] = None,
        config_loader: Optional[ConfigLoader] = None,
        settings: Optional[FantomSettings] = None,
    ):
        self.scorer = scorer
        self.settings = settings or get_cached_settings()
        self.store_factory: StoreFactory = store_factory or (lambda: RedisStore(self.settings))
        self.config_loader: ConfigLoader = config_loader or (lambda: load_fantom_config(self.settings.config_path))
        self.limit = self.settings.result_limit

    async def scan(
        self, query: str, user_id: Optional[str], algorithm: Optional[str] = None, key_pattern: str = "*"
    ) -> ScanResult:
        """
        Search the store and return the ranked top results.

        Args:
            query: Free-text query handed to the scorer
            user_id: User whose configured default algorithm applies
            algorithm: Explicit algorithm overriding the user default
            key_pattern: Glob pattern selecting candidate keys

        Returns:
            ScanResult with ranked results and the records that were skipped

        Raises:
            ConfigLoadError: If the configuration document cannot be loaded
            StoreConnectionError: If the store fails to connect or respond
        """
        config = self.config_loader()
        effective_algorithm = resolve_algorithm(algorithm, user_id, config, self.settings.fallback_algorithm)
        log = logger.bind(user_id=user_id, algorithm=effective_algorithm, key_pattern=key_pattern)

        store = self.store_factory()
        failed = True
        try:
            await store.connect()
            keys = await self._collect_keys(store, key_pattern)
            log.debug("scan_keys_collected", key_count=len(keys))

            candidates: List[ScoredCandidate] = []
            skipped: List[SkippedRecord] = []
            for key in keys:
                candidate, skip = await self._score_key(store, key, query, effective_algorithm)
                if skip is not None:
                    log.warning("record_skipped", key=key, stage=skip.stage, reason=skip.reason)
                    skipped.append(skip)
                elif candidate is not None:
                    candidates.append(candidate)
            failed = False
        finally:
            await self._release(store, log, reraise=not failed)

        results = rank_candidates(candidates, self.limit)
        log.info(
            "scan_completed",
            scanned_keys=len(keys),
            scored=len(candidates),
            skipped=len(skipped),
            returned=len(results),
        )
        return ScanResult(results=results, skipped=skipped, scanned_keys=len(keys), algorithm=effective_algorithm)

    async def _release(self, store: KeyValueStore, log: Any, reraise: bool) -> None:
        """Close the store; a close failure never replaces an error already in flight."""
        try:
            await store.close()
        except StoreConnectionError as e:
            log.error("store_close_failed", error=get_error_message(e))
            if reraise:
                raise

    async def _collect_keys(self, store: KeyValueStore, key_pattern: str) -> List[str]:
        """Walk the SCAN cursor until it wraps back to the start."""
        seen: Dict[str, None] = {}
        cursor = INITIAL_CURSOR
        while True:
            cursor, batch = await store.scan(cursor, match=key_pattern, count=self.settings.scan_batch_size)
            # SCAN may repeat a key across batches
            for key in batch:
                seen.setdefault(key, None)
            if cursor == INITIAL_CURSOR:
                break
        return list(seen)

    async def _score_key(
        self, store: KeyValueStore, key: str, query: str, algorithm: str
    ) -> Tuple[Optional[ScoredCandidate], Optional[SkippedRecord]]:
        raw_value = await store.get(key)
        if raw_value is None:
            return None, SkippedRecord(key=key, stage="missing", reason="key no longer exists")

        try:
            value = decode_record(key, raw_value)
        except RecordDecodeError as e:
            return None, SkippedRecord(key=key, stage="decode", reason=str(e))

        try:
            score = self.scorer(query, value, algorithm)
            return ScoredCandidate(key=key, value=value, score=score), None
        except ValidationError as e:
            return None, SkippedRecord(key=key, stage="score", reason=f"non-numeric score: {e.errors()[0]['msg']}")
        except Exception as e:
            return None, SkippedRecord(key=key, stage="score", reason=get_error_message(e))


async def search_and_sort_from_redis(
    query: str,
    user_id: Optional[str],
    algorithm: Optional[str],
    scorer: Scorer,
    key_pattern: str = "*",
    **scanner_kwargs: Any,
) -> List[Dict[str, Any]]:
    """
    One-shot helper returning the ranked results as ``{key, value, score}`` dicts.

    Extra keyword arguments are passed to ``RankedScanner``.
    """
    scanner = RankedScanner(scorer, **scanner_kwargs)
    result = await scanner.scan(query, user_id, algorithm, key_pattern)
    return result.as_dicts()
