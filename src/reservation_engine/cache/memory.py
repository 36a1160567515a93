"""In-process cache stores."""

from __future__ import annotations

import copy
from datetime import datetime, timedelta
from typing import Any

from reservation_engine.cache.base import CacheStore
from reservation_engine.core.clock import Clock, SystemClock
from reservation_engine.core.exceptions import CacheError


class InMemoryCacheStore(CacheStore):
    """Dict-backed store with expiry checked on read.

    Values are deep-copied in and out so callers never share state with
    the cache.
    """

    def __init__(self, clock: Clock | None = None):
        self._clock = clock or SystemClock()
        self._entries: dict[str, tuple[datetime, Any]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None

        expires_at, value = entry
        if self._clock.now() >= expires_at:
            del self._entries[key]
            return None
        return copy.deepcopy(value)

    async def set_with_ttl(self, key: str, value: Any, seconds: int) -> None:
        if seconds <= 0:
            raise CacheError(f"TTL must be positive, got {seconds}", details={"key": key})
        try:
            stored = copy.deepcopy(value)
        except (copy.Error, TypeError) as e:
            raise CacheError(f"Value for {key} cannot be cached", details={"key": key}) from e

        expires_at = self._clock.now() + timedelta(seconds=seconds)
        self._entries[key] = (expires_at, stored)

    async def invalidate_prefix(self, prefix: str) -> int:
        keys = [key for key in self._entries if key.startswith(prefix)]
        for key in keys:
            del self._entries[key]
        return len(keys)

    async def close(self) -> None:
        self._entries.clear()


class NullCacheStore(CacheStore):
    """Store that never holds anything. Used when caching is disabled."""

    async def get(self, key: str) -> Any | None:
        return None

    async def set_with_ttl(self, key: str, value: Any, seconds: int) -> None:
        return None

    async def invalidate_prefix(self, prefix: str) -> int:
        return 0
