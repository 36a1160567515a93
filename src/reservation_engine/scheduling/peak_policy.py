"""Booking policy values and the peak-hour duration rule."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo

from reservation_engine.config import BookingSettings
from reservation_engine.core.exceptions import DurationOutOfPolicyError
from reservation_engine.scheduling.time_window import TimeWindow


@dataclass(frozen=True)
class BookingPolicy:
    """Numeric booking rules, decoupled from the settings object."""

    slot_interval_minutes: int = 30
    lookahead_buffer_minutes: int = 15
    min_duration_minutes: int = 15
    default_duration_minutes: int = 60
    # [start_hour, end_hour) ranges in restaurant-local time
    peak_windows: tuple[tuple[int, int], ...] = ((12, 14), (18, 21))
    peak_max_duration_minutes: int = 90
    off_peak_max_duration_minutes: int = 120

    @classmethod
    def from_settings(cls, settings: BookingSettings) -> BookingPolicy:
        return cls(
            slot_interval_minutes=settings.slot_interval_minutes,
            lookahead_buffer_minutes=settings.lookahead_buffer_minutes,
            min_duration_minutes=settings.min_duration_minutes,
            default_duration_minutes=settings.default_duration_minutes,
            peak_windows=tuple((w.start_hour, w.end_hour) for w in settings.peak_windows),
            peak_max_duration_minutes=settings.peak_max_duration_minutes,
            off_peak_max_duration_minutes=settings.off_peak_max_duration_minutes,
        )


class PeakPolicy:
    """Allowed reservation length for a given local start time.

    Peak hours (lunch and dinner by default) get a shorter cap so tables
    turn over faster.
    """

    def __init__(self, policy: BookingPolicy | None = None):
        self._policy = policy or BookingPolicy()

    @property
    def min_duration(self) -> int:
        return self._policy.min_duration_minutes

    def is_peak(self, start: datetime) -> bool:
        """Whether the start falls in a peak window. `start` must be local."""
        return any(lo <= start.hour < hi for lo, hi in self._policy.peak_windows)

    def max_duration(self, start: datetime) -> int:
        """Longest allowed reservation in minutes starting at local `start`."""
        if self.is_peak(start):
            return self._policy.peak_max_duration_minutes
        return self._policy.off_peak_max_duration_minutes

    def allows(self, start: datetime, duration_minutes: int) -> bool:
        return self.min_duration <= duration_minutes <= self.max_duration(start)

    def check(self, window: TimeWindow, zone: tzinfo) -> None:
        """Validate a window's length against the policy at its local start.

        Raises:
            DurationOutOfPolicyError: If too short or above the cap
        """
        local_start = window.start.astimezone(zone)
        minutes = window.duration.total_seconds() / 60

        if minutes < self.min_duration:
            raise DurationOutOfPolicyError(
                f"Reservations must last at least {self.min_duration} minutes",
                details={"duration_minutes": minutes, "min_duration": self.min_duration},
            )

        cap = self.max_duration(local_start)
        if minutes > cap:
            period = "peak" if self.is_peak(local_start) else "off-peak"
            raise DurationOutOfPolicyError(
                f"Maximum duration at {local_start.strftime('%H:%M')} ({period}) "
                f"is {cap} minutes",
                details={"duration_minutes": minutes, "max_duration": cap},
            )
