"""Cache store interface.

Abstract base class for key/value stores with per-entry expiry.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class CacheStore(ABC):
    """Abstract key/value store with TTL and prefix invalidation.

    Implementations may raise on backend failure; callers on the booking
    path treat the cache as best-effort.
    """

    async def connect(self) -> None:
        """Open backend connections."""

    async def close(self) -> None:
        """Release backend connections."""

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the stored value or None when absent or expired."""
        pass

    @abstractmethod
    async def set_with_ttl(self, key: str, value: Any, seconds: int) -> None:
        """Store a value that expires after `seconds`."""
        pass

    @abstractmethod
    async def invalidate_prefix(self, prefix: str) -> int:
        """Drop every key starting with `prefix`.

        Returns:
            Number of keys removed
        """
        pass
