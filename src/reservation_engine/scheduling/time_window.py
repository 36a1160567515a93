"""Half-open time interval used by every scheduling rule."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone


@dataclass(frozen=True)
class TimeWindow:
    """Interval [start, end) between two aware datetimes."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise ValueError("TimeWindow requires timezone-aware datetimes")
        if self.end <= self.start:
            raise ValueError(
                f"TimeWindow end {self.end.isoformat()} must be after start "
                f"{self.start.isoformat()}"
            )

    @classmethod
    def from_duration(cls, start: datetime, minutes: int) -> TimeWindow:
        """Window of `minutes` elapsed time beginning at `start`, in UTC."""
        start = start.astimezone(timezone.utc)
        return cls(start, start + timedelta(minutes=minutes))

    @property
    def duration(self) -> timedelta:
        # Same-tzinfo subtraction ignores offset changes
        return self.end.astimezone(timezone.utc) - self.start.astimezone(timezone.utc)

    @property
    def duration_minutes(self) -> int:
        return int(self.duration.total_seconds() // 60)

    def overlaps(self, other: TimeWindow) -> bool:
        """Whether the two windows share any instant.

        Touching windows (one ends exactly when the other starts) do not
        overlap.
        """
        return self.start < other.end and other.start < self.end

    def contains(self, other: TimeWindow) -> bool:
        """Whether `other` lies entirely inside this window."""
        return self.start <= other.start and other.end <= self.end

    def __str__(self) -> str:
        return f"[{self.start.isoformat()}, {self.end.isoformat()})"
