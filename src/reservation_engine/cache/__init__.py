"""Cache stores for computed availability.

Provides:
- CacheStore: abstract store interface
- InMemoryCacheStore: per-process store with TTL
- NullCacheStore: disabled cache
- create_cache_store: factory from settings
"""

from __future__ import annotations

from reservation_engine.cache.base import CacheStore
from reservation_engine.cache.memory import InMemoryCacheStore, NullCacheStore
from reservation_engine.config import CacheSettings
from reservation_engine.core.clock import Clock


def create_cache_store(settings: CacheSettings, clock: Clock | None = None) -> CacheStore:
    """Build the configured cache store.

    Raises:
        ValueError: Unknown backend name
    """
    if not settings.enabled or settings.backend == "none":
        return NullCacheStore()
    if settings.backend == "memory":
        return InMemoryCacheStore(clock)
    raise ValueError(f"Unknown cache backend: {settings.backend}")


__all__ = [
    "CacheStore",
    "InMemoryCacheStore",
    "NullCacheStore",
    "create_cache_store",
]
