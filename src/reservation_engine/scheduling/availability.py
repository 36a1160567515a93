"""Availability slot generation.

Walks the operating day in fixed steps and reports every start time at
which at least one capable table is free for the whole requested duration.
"""

from __future__ import annotations

from datetime import date, timedelta, timezone

from reservation_engine.core.clock import Clock
from reservation_engine.core.exceptions import ValidationError
from reservation_engine.db.models.restaurant import RestaurantModel
from reservation_engine.db.repositories.reservations import ReservationRepository
from reservation_engine.db.repositories.restaurants import TableRepository
from reservation_engine.scheduling.conflicts import ConflictChecker
from reservation_engine.scheduling.operating_hours import OperatingHoursResolver, get_zone
from reservation_engine.scheduling.peak_policy import BookingPolicy, PeakPolicy
from reservation_engine.scheduling.time_window import TimeWindow


class AvailabilitySlotGenerator:
    """Enumerates bookable start times for one restaurant and day."""

    def __init__(
        self,
        tables: TableRepository,
        reservations: ReservationRepository,
        hours: OperatingHoursResolver,
        peak: PeakPolicy,
        clock: Clock,
        policy: BookingPolicy | None = None,
    ):
        self._tables = tables
        self._reservations = reservations
        self._hours = hours
        self._peak = peak
        self._clock = clock
        self._policy = policy or BookingPolicy()

    async def slots(
        self,
        restaurant: RestaurantModel,
        party_size: int,
        duration_minutes: int,
        on_date: date,
    ) -> list[str]:
        """Bookable start times as local "HH:MM" strings, earliest first.

        A candidate is skipped when its duration breaks the peak policy,
        when it starts before now plus the look-ahead buffer, or when every
        capable table has an overlapping active reservation.
        """
        if party_size < 1:
            raise ValidationError(
                "Party size must be at least 1",
                details={"party_size": party_size},
            )
        if duration_minutes < 1:
            raise ValidationError(
                "Duration must be positive",
                details={"duration_minutes": duration_minutes},
            )

        zone = get_zone(restaurant.timezone)
        operating = self._hours.for_restaurant(restaurant, on_date)

        tables = await self._tables.get_fitting(restaurant.id, party_size)
        if not tables:
            return []

        # One query for the whole day
        booked = await self._reservations.get_active_in_window(restaurant.id, operating)

        duration = timedelta(minutes=duration_minutes)
        step = timedelta(minutes=self._policy.slot_interval_minutes)
        earliest = self._clock.now() + timedelta(minutes=self._policy.lookahead_buffer_minutes)
        closes_at = operating.end.astimezone(timezone.utc)
        table_ids = {table.id for table in tables}

        available: list[str] = []
        current = operating.start.astimezone(timezone.utc)

        while current + duration <= closes_at:
            local = current.astimezone(zone)

            if current >= earliest and self._peak.allows(local, duration_minutes):
                candidate = TimeWindow(current, current + duration)
                busy = ConflictChecker.busy_table_ids(booked, candidate)
                if table_ids - busy:
                    available.append(local.strftime("%H:%M"))

            current += step

        return available
