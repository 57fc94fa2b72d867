"""Shared fixtures: an in-memory store and a temporary configuration document."""

import json
from typing import Dict, List, Optional, Sequence, Tuple, Union

import pytest

from fantom.config.settings import FantomSettings
from fantom.exceptions import StoreConnectionError

CONFIG_TEXT = """
{
  // per-user defaults
  "users": [
    { "user_id": "alice", "algorithm": "fuzzy" }, /* inline */
    { "user_id": "bob", "algorithm": "colbert" }
  ]
}
"""


class FakeStore:
    """In-memory stand-in for RedisStore that serves keys in fixed SCAN batches."""

    def __init__(
        self,
        batches: Sequence[Sequence[str]],
        values: Dict[str, Optional[Union[str, bytes]]],
        fail_on: Optional[str] = None,
        fail_on_close: bool = False,
    ):
        self.batches = [list(batch) for batch in batches] or [[]]
        self.values = values
        self.fail_on = fail_on
        self.fail_on_close = fail_on_close
        self.connect_calls = 0
        self.close_calls = 0
        self.scan_calls: List[int] = []
        self.scan_patterns: List[str] = []

    async def connect(self) -> None:
        self.connect_calls += 1
        if self.fail_on == "connect":
            raise StoreConnectionError("Redis connection error during connect: refused", operation="connect")

    async def scan(self, cursor: int, match: str = "*", count: Optional[int] = None) -> Tuple[int, List[str]]:
        self.scan_calls.append(cursor)
        self.scan_patterns.append(match)
        if self.fail_on == "scan" and len(self.scan_calls) > 1:
            raise StoreConnectionError("Redis connection error during scan: lost", operation="scan")
        next_cursor = cursor + 1 if cursor + 1 < len(self.batches) else 0
        return next_cursor, list(self.batches[cursor])

    async def get(self, key: str) -> Optional[Union[str, bytes]]:
        if self.fail_on == "get":
            raise StoreConnectionError("Redis timeout during get: timed out", operation="get")
        return self.values.get(key)

    async def close(self) -> None:
        self.close_calls += 1
        if self.fail_on_close:
            raise StoreConnectionError("Redis connection error during close: reset", operation="close")


def make_store(records: Dict[str, object], batch_size: int = 2) -> FakeStore:
    """Build a FakeStore holding ``records`` as JSON, split into batches."""
    keys = list(records)
    batches = [keys[i : i + batch_size] for i in range(0, len(keys), batch_size)]
    return FakeStore(batches, {key: json.dumps(value) for key, value in records.items()})


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "fantom.config.jsonc"
    path.write_text(CONFIG_TEXT, encoding="utf-8")
    return path


@pytest.fixture
def settings(config_file):
    return FantomSettings(config_path=config_file, redis_url="redis://localhost:6379")
