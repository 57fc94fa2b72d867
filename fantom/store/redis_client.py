"""
Redis store adapter used by the ranked scanner.

Each instance owns a single connection for the lifetime of one scan. The
adapter exposes only what the scanner needs: cursor-based key scanning and
get-by-key. Redis failures are mapped to ``StoreConnectionError`` and are
never retried here.

Values are returned as raw bytes; decoding them is the caller's concern so a
single undecodable value cannot fail the whole command stream.
"""

from typing import Any, List, Optional, Tuple, Union

import redis.asyncio as aioredis
import structlog
from redis.exceptions import AuthenticationError, ConnectionError, RedisError, TimeoutError

from ..config.settings import FantomSettings, get_cached_settings
from ..exceptions import StoreConnectionError

logger = structlog.get_logger(__name__)

# Keys round-trip through str without loss, even when they are not UTF-8
KEY_ENCODING = "utf-8"
KEY_ERRORS = "surrogateescape"


def map_redis_error(error: Exception, operation: str) -> StoreConnectionError:
    """
    Translate a redis-py exception into a StoreConnectionError with context.

    Args:
        error: The exception that occurred
        operation: Description of the operation that failed

    Returns:
        StoreConnectionError to raise from the original error
    """
    if isinstance(error, AuthenticationError):
        kind = "authentication error"
    elif isinstance(error, ConnectionError):
        kind = "connection error"
    elif isinstance(error, TimeoutError):
        kind = "timeout"
    else:
        kind = "error"
    return StoreConnectionError(f"Redis {kind} during {operation}: {error}", operation=operation)


def decode_key(key: Union[str, bytes]) -> str:
    if isinstance(key, bytes):
        return key.decode(KEY_ENCODING, KEY_ERRORS)
    return key


def encode_key(key: str) -> bytes:
    return key.encode(KEY_ENCODING, KEY_ERRORS)


class RedisStore:
    """
    Scoped Redis connection for a single scan.

    Usage::

        store = RedisStore(settings)
        await store.connect()
        try:
            cursor, keys = await store.scan(0, match="*")
        finally:
            await store.close()
    """

    def __init__(self, settings: Optional[FantomSettings] = None, client: Optional[aioredis.Redis] = None):
        self.settings = settings or get_cached_settings()
        self._client: Optional[aioredis.Redis] = client

    @property
    def connected(self) -> bool:
        return self._client is not None

    def _build_client(self) -> aioredis.Redis:
        # A db number in the URL path takes precedence over redis_db
        try:
            return aioredis.Redis.from_url(
                self.settings.redis_url,
                db=self.settings.redis_db,
                socket_timeout=self.settings.socket_timeout_seconds,
                socket_connect_timeout=self.settings.socket_connect_timeout_seconds,
                decode_responses=False,
            )
        except ValueError as e:
            logger.error("redis_url_invalid", redis_url=self.settings.redis_url, error=str(e))
            raise StoreConnectionError(f"Invalid Redis URL during connect: {e}", operation="connect") from e

    async def connect(self) -> None:
        """Open the connection and verify it with PING."""
        if self._client is None:
            self._client = self._build_client()

        try:
            await self._client.ping()  # type: ignore
        except RedisError as e:
            logger.error("redis_connect_failed", redis_url=self.settings.redis_url, error=str(e))
            raise map_redis_error(e, "connect") from e

        logger.debug("redis_connected", redis_url=self.settings.redis_url, db=self.settings.redis_db)

    async def scan(self, cursor: int, match: str = "*", count: Optional[int] = None) -> Tuple[int, List[str]]:
        """
        Fetch one batch of keys.

        Args:
            cursor: Cursor returned by the previous call, 0 to start
            match: Glob pattern keys must match
            count: Optional batch size hint

        Returns:
            Tuple of next cursor (0 when iteration is complete) and keys
        """
        client = self._require_client("scan")
        try:
            next_cursor, keys = await client.scan(cursor=cursor, match=match, count=count)
        except RedisError as e:
            raise map_redis_error(e, "scan") from e
        return int(next_cursor), [decode_key(key) for key in keys]

    async def get(self, key: str) -> Optional[bytes]:
        """Get the raw bytes stored at ``key`` or None if absent."""
        client = self._require_client("get")
        try:
            return await client.get(encode_key(key))
        except RedisError as e:
            raise map_redis_error(e, "get") from e

    async def close(self) -> None:
        """Close the connection. Safe to call on a store that never connected."""
        if self._client is None:
            return
        client, self._client = self._client, None
        try:
            await client.aclose()
        except RedisError as e:
            raise map_redis_error(e, "close") from e
        logger.debug("redis_closed", redis_url=self.settings.redis_url)

    async def __aenter__(self) -> "RedisStore":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def _require_client(self, operation: str) -> aioredis.Redis:
        if self._client is None:
            raise StoreConnectionError(f"Redis client not connected during {operation}", operation=operation)
        return self._client
