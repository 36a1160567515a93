"""Injectable time source.

Everything that compares against "now" (slot look-ahead, retirement sweep,
FIFO timestamps) takes a Clock so tests can pin the current instant.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    """Source of the current instant."""

    def now(self) -> datetime:
        """Return the current time as a timezone-aware datetime."""
        ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock pinned to a given instant, advanced manually.

    Usage:
        clock = FixedClock(datetime(2026, 6, 1, 9, 0, tzinfo=timezone.utc))
        clock.advance(minutes=30)
    """

    def __init__(self, instant: datetime):
        if instant.tzinfo is None:
            raise ValueError("FixedClock requires a timezone-aware datetime")
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def set(self, instant: datetime) -> None:
        """Move the clock to an absolute instant."""
        if instant.tzinfo is None:
            raise ValueError("FixedClock requires a timezone-aware datetime")
        self._instant = instant

    def advance(self, **delta: float) -> datetime:
        """Move the clock forward by a timedelta expressed as keyword args."""
        self._instant = self._instant + timedelta(**delta)
        return self._instant
