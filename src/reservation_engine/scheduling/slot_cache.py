"""Memoization in front of the availability slot generator."""

from __future__ import annotations

from datetime import date
from typing import Awaitable, Callable
from uuid import UUID

from reservation_engine.cache.base import CacheStore
from reservation_engine.core.log import get_logger

log = get_logger(__name__)


class SlotCache:
    """Caches slot lists per (restaurant, date, party size, duration).

    The cache is never on the correctness path: any store failure is logged
    and the slots are computed directly.
    """

    def __init__(
        self,
        store: CacheStore,
        *,
        ttl_seconds: int = 300,
        key_prefix: str = "availability",
    ):
        self._store = store
        self._ttl_seconds = ttl_seconds
        self._key_prefix = key_prefix

    def key(
        self,
        restaurant_id: UUID | str,
        on_date: date,
        party_size: int,
        duration_minutes: int,
    ) -> str:
        return f"{self.prefix(restaurant_id, on_date)}{party_size}:{duration_minutes}"

    def prefix(self, restaurant_id: UUID | str, on_date: date) -> str:
        return f"{self._key_prefix}:{restaurant_id}:{on_date.isoformat()}:"

    async def get_or_compute(
        self,
        restaurant_id: UUID | str,
        on_date: date,
        party_size: int,
        duration_minutes: int,
        compute: Callable[[], Awaitable[list[str]]],
    ) -> list[str]:
        """Return cached slots, computing and storing them on a miss."""
        key = self.key(restaurant_id, on_date, party_size, duration_minutes)

        try:
            cached = await self._store.get(key)
        except Exception as e:
            log.warning("Slot cache read failed", key=key, error=str(e))
            cached = None

        if cached is not None:
            log.debug("Slot cache hit", key=key)
            return list(cached)

        slots = await compute()

        try:
            await self._store.set_with_ttl(key, list(slots), self._ttl_seconds)
        except Exception as e:
            log.warning("Slot cache write failed", key=key, error=str(e))

        return slots

    async def invalidate(self, restaurant_id: UUID | str, on_date: date) -> int:
        """Drop every cached entry for a restaurant and date."""
        return await self._invalidate_prefix(self.prefix(restaurant_id, on_date))

    async def invalidate_restaurant(self, restaurant_id: UUID | str) -> int:
        """Drop every cached entry for a restaurant, all dates."""
        return await self._invalidate_prefix(f"{self._key_prefix}:{restaurant_id}:")

    async def _invalidate_prefix(self, prefix: str) -> int:
        try:
            removed = await self._store.invalidate_prefix(prefix)
        except Exception as e:
            log.warning("Slot cache invalidation failed", prefix=prefix, error=str(e))
            return 0

        if removed:
            log.debug("Slot cache invalidated", prefix=prefix, keys=removed)
        return removed
