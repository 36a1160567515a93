"""Operating hours resolution.

A restaurant stores a single daily window as two local time-of-day strings.
The resolver anchors that window to a calendar date in the restaurant's
timezone. A closing time at or before the opening time means the window
runs past midnight into the next day.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time as dt_time, timedelta, tzinfo
from typing import Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from reservation_engine.core.exceptions import InvalidTimeFormatError, ValidationError
from reservation_engine.scheduling.time_window import TimeWindow

_TIME_OF_DAY = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


class HasOperatingHours(Protocol):
    opening_time: str
    closing_time: str
    timezone: str


def parse_time_of_day(value: str) -> dt_time:
    """Parse "HH:MM" or "HH:MM:SS".

    Raises:
        InvalidTimeFormatError: If the value is not a valid time of day
    """
    match = _TIME_OF_DAY.match(value.strip()) if isinstance(value, str) else None
    if match is None:
        raise InvalidTimeFormatError(
            f"Invalid time of day {value!r}, expected HH:MM or HH:MM:SS",
            details={"value": value},
        )

    hour, minute = int(match.group(1)), int(match.group(2))
    second = int(match.group(3) or 0)
    if hour > 23 or minute > 59 or second > 59:
        raise InvalidTimeFormatError(
            f"Time of day {value!r} is out of range",
            details={"value": value},
        )
    return dt_time(hour, minute, second)


def get_zone(name: str) -> ZoneInfo:
    """Look up an IANA timezone.

    Raises:
        ValidationError: If the zone is unknown
    """
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValidationError(
            f"Unknown timezone {name!r}",
            details={"timezone": name},
        ) from e


class OperatingHoursResolver:
    """Anchors daily open/close times to concrete instants."""

    def resolve(
        self,
        opening_time: str,
        closing_time: str,
        on_date: date,
        zone: tzinfo,
    ) -> TimeWindow:
        """Operating window for the given date.

        Args:
            opening_time: Local opening time-of-day
            closing_time: Local closing time-of-day
            on_date: Calendar date the window opens on
            zone: Restaurant timezone

        Returns:
            Window from opening to closing, closing moved to the next day
            when it is not after opening
        """
        open_at = parse_time_of_day(opening_time)
        close_at = parse_time_of_day(closing_time)

        start = datetime.combine(on_date, open_at, tzinfo=zone)
        close_date = on_date if close_at > open_at else on_date + timedelta(days=1)
        end = datetime.combine(close_date, close_at, tzinfo=zone)
        return TimeWindow(start, end)

    def for_restaurant(self, restaurant: HasOperatingHours, on_date: date) -> TimeWindow:
        """Operating window of a restaurant opening on `on_date`."""
        return self.resolve(
            restaurant.opening_time,
            restaurant.closing_time,
            on_date,
            get_zone(restaurant.timezone),
        )

    def containing_window(
        self,
        restaurant: HasOperatingHours,
        window: TimeWindow,
    ) -> TimeWindow | None:
        """Operating window that fully contains `window`, if any.

        Both the window opening on the request's local date and the one
        opening the day before are considered, so that an early-morning
        request can fall inside the previous evening's overnight window.
        """
        zone = get_zone(restaurant.timezone)
        local_date = window.start.astimezone(zone).date()

        for on_date in (local_date, local_date - timedelta(days=1)):
            operating = self.resolve(
                restaurant.opening_time,
                restaurant.closing_time,
                on_date,
                zone,
            )
            if operating.contains(window):
                return operating
        return None

    def contains(self, restaurant: HasOperatingHours, window: TimeWindow) -> bool:
        return self.containing_window(restaurant, window) is not None
