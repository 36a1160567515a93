"""Reservation Service.

Boundary operations for availability, booking, editing and cancellation,
plus restaurant administration. Every operation runs in its own database
transaction; cache invalidation and customer notifications happen only
after the transaction commits.
"""

from __future__ import annotations

import asyncio
import weakref
from dataclasses import dataclass, field
from datetime import date, datetime, timezone as dt_timezone
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from reservation_engine.cache.base import CacheStore
from reservation_engine.cache.memory import NullCacheStore
from reservation_engine.core.clock import Clock, SystemClock
from reservation_engine.core.exceptions import (
    DuplicateTableError,
    InvalidStatusTransitionError,
    ReservationConflictError,
    ValidationError,
)
from reservation_engine.core.log import get_logger
from reservation_engine.db.models.reservation import (
    ACTIVE_STATUSES,
    ReservationModel,
    ReservationStatus,
)
from reservation_engine.db.models.restaurant import RestaurantModel, TableModel
from reservation_engine.db.repositories.base import as_uuid
from reservation_engine.db.repositories.reservations import ReservationRepository
from reservation_engine.db.repositories.restaurants import RestaurantRepository, TableRepository
from reservation_engine.db.session import Database
from reservation_engine.scheduling.allocator import TableAllocator
from reservation_engine.scheduling.availability import AvailabilitySlotGenerator
from reservation_engine.scheduling.conflicts import ConflictChecker
from reservation_engine.scheduling.operating_hours import (
    OperatingHoursResolver,
    get_zone,
    parse_time_of_day,
)
from reservation_engine.scheduling.peak_policy import BookingPolicy, PeakPolicy
from reservation_engine.scheduling.slot_cache import SlotCache
from reservation_engine.scheduling.time_window import TimeWindow
from reservation_engine.scheduling.waitlist import WaitlistPromoter
from reservation_engine.services.notifications import (
    LoggingNotificationSender,
    NotificationDispatcher,
)

log = get_logger(__name__)


# Statuses a reservation can be moved to through an edit
EDITABLE_STATUSES = frozenset(ACTIVE_STATUSES)


def _parse_status(value: ReservationStatus | str) -> ReservationStatus:
    try:
        return ReservationStatus(value)
    except ValueError as e:
        raise ValidationError(
            f"Unknown reservation status {value!r}",
            details={"status": str(value)},
        ) from e


@dataclass
class AvailabilityResult:
    """Open start times for one restaurant, day and party."""

    restaurant_id: UUID
    date: date
    party_size: int
    duration_minutes: int
    slots: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "restaurant_id": str(self.restaurant_id),
            "date": self.date.isoformat(),
            "party_size": self.party_size,
            "duration_minutes": self.duration_minutes,
            "slots": list(self.slots),
        }


class ReservationService:
    """Reservation scheduling and availability engine entry point.

    Bookings for the same restaurant are serialized in-process by an
    asyncio.Lock and across processes by row locks on the candidate tables.

    Usage:
        service = ReservationService(database, cache_store=store, notifier=dispatcher)
        result = await service.check_availability(restaurant_id, party_size=2)
    """

    def __init__(
        self,
        database: Database,
        *,
        cache_store: CacheStore | None = None,
        notifier: NotificationDispatcher | None = None,
        clock: Clock | None = None,
        policy: BookingPolicy | None = None,
        default_timezone: str = "UTC",
        default_status: ReservationStatus = ReservationStatus.CONFIRMED,
        cache_ttl_seconds: int = 300,
        cache_key_prefix: str = "availability",
    ):
        self._database = database
        self._clock = clock or SystemClock()
        self._policy = policy or BookingPolicy()
        self._notifier = notifier or NotificationDispatcher(LoggingNotificationSender())
        self._default_timezone = default_timezone
        self._default_status = ReservationStatus(default_status)
        if self._default_status not in ACTIVE_STATUSES:
            raise ValueError(f"Default status must be active, got {self._default_status.value}")

        self._hours = OperatingHoursResolver()
        self._peak = PeakPolicy(self._policy)
        self._slot_cache = SlotCache(
            cache_store or NullCacheStore(),
            ttl_seconds=cache_ttl_seconds,
            key_prefix=cache_key_prefix,
        )
        # Entries vanish once no caller holds or awaits the lock
        self._locks: weakref.WeakValueDictionary[UUID, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @property
    def policy(self) -> BookingPolicy:
        return self._policy

    @property
    def slot_cache(self) -> SlotCache:
        return self._slot_cache

    # ========================================================================
    # Wiring
    # ========================================================================

    def _restaurant_lock(self, restaurant_id: UUID) -> asyncio.Lock:
        lock = self._locks.get(restaurant_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[restaurant_id] = lock
        return lock

    def _allocator(self, session: AsyncSession) -> TableAllocator:
        return TableAllocator(
            TableRepository(session),
            ConflictChecker(ReservationRepository(session)),
            self._hours,
            self._peak,
        )

    def _slot_generator(self, session: AsyncSession) -> AvailabilitySlotGenerator:
        return AvailabilitySlotGenerator(
            TableRepository(session),
            ReservationRepository(session),
            self._hours,
            self._peak,
            self._clock,
            self._policy,
        )

    def _promoter(self, session: AsyncSession) -> WaitlistPromoter:
        reservations = ReservationRepository(session)
        return WaitlistPromoter(reservations, ConflictChecker(reservations), self._clock)

    # ========================================================================
    # Helpers
    # ========================================================================

    def _localize(self, restaurant: RestaurantModel, start_time: datetime) -> datetime:
        """Resolve a start time to UTC, reading naive values as restaurant-local."""
        if start_time.tzinfo is None:
            start_time = start_time.replace(tzinfo=get_zone(restaurant.timezone))
        return start_time.astimezone(dt_timezone.utc)

    def _window(self, start_time: datetime, duration_minutes: int) -> TimeWindow:
        if duration_minutes < 1:
            raise ValidationError(
                "Duration must be positive",
                details={"duration_minutes": duration_minutes},
            )
        return TimeWindow.from_duration(start_time, duration_minutes)

    def _affected_dates(self, restaurant: RestaurantModel, window: TimeWindow) -> set[date]:
        """Availability dates whose cached slots a window can change."""
        zone = get_zone(restaurant.timezone)
        dates = {window.start.astimezone(zone).date()}
        operating = self._hours.containing_window(restaurant, window)
        if operating is not None:
            dates.add(operating.start.astimezone(zone).date())
        return dates

    async def _invalidate(self, restaurant: RestaurantModel, *windows: TimeWindow) -> None:
        dates: set[date] = set()
        for window in windows:
            dates |= self._affected_dates(restaurant, window)
        for on_date in sorted(dates):
            await self._slot_cache.invalidate(restaurant.id, on_date)

    def _notify_outcome(self, restaurant: RestaurantModel, reservation: ReservationModel) -> None:
        self._notifier.booking_outcome(
            reservation.customer_name,
            reservation.customer_phone,
            restaurant.name,
            reservation.start_time.astimezone(get_zone(restaurant.timezone)),
            reservation.status,
        )

    @staticmethod
    def _require_text(field_name: str, value: str | None) -> str:
        if value is None or not value.strip():
            raise ValidationError(
                f"{field_name} is required",
                details={"field": field_name},
            )
        return value.strip()

    # ========================================================================
    # Availability
    # ========================================================================

    async def check_availability(
        self,
        restaurant_id: UUID | str,
        party_size: int,
        duration_minutes: int | None = None,
        on_date: date | None = None,
    ) -> AvailabilityResult:
        """Bookable start times for a party on a day.

        Args:
            restaurant_id: Restaurant to query
            party_size: Number of guests
            duration_minutes: Reservation length (policy default when None)
            on_date: Operating day (today in the restaurant's timezone when None)

        Returns:
            AvailabilityResult with local "HH:MM" slots
        """
        duration = (
            self._policy.default_duration_minutes if duration_minutes is None else duration_minutes
        )

        async with self._database.session() as session:
            restaurant = await RestaurantRepository(session).get_or_raise(restaurant_id)
            if on_date is None:
                on_date = self._clock.now().astimezone(get_zone(restaurant.timezone)).date()

            generator = self._slot_generator(session)
            slots = await self._slot_cache.get_or_compute(
                restaurant.id,
                on_date,
                party_size,
                duration,
                lambda: generator.slots(restaurant, party_size, duration, on_date),
            )

        return AvailabilityResult(
            restaurant_id=restaurant.id,
            date=on_date,
            party_size=party_size,
            duration_minutes=duration,
            slots=slots,
        )

    # ========================================================================
    # Booking
    # ========================================================================

    async def create_reservation(
        self,
        restaurant_id: UUID | str,
        party_size: int,
        start_time: datetime,
        duration_minutes: int | None = None,
        *,
        customer_name: str,
        customer_phone: str,
        allow_waitlist: bool = False,
    ) -> ReservationModel:
        """Book a table, or join the waitlist when every fitting table is taken.

        Args:
            restaurant_id: Restaurant to book at
            party_size: Number of guests
            start_time: Requested start (naive values are restaurant-local)
            duration_minutes: Reservation length (policy default when None)
            customer_name: Guest name
            customer_phone: Guest phone number
            allow_waitlist: Join the waitlist instead of failing on conflict

        Returns:
            The new reservation, confirmed or waitlisted

        Raises:
            OutsideOperatingHoursError, DurationOutOfPolicyError,
            NoCapacityError, ReservationConflictError
        """
        customer_name = self._require_text("customer_name", customer_name)
        customer_phone = self._require_text("customer_phone", customer_phone)
        duration = (
            self._policy.default_duration_minutes if duration_minutes is None else duration_minutes
        )
        rid = as_uuid(restaurant_id)

        async with self._restaurant_lock(rid):
            async with self._database.session() as session:
                restaurant = await RestaurantRepository(session).get_or_raise(rid)
                window = self._window(self._localize(restaurant, start_time), duration)
                allocator = self._allocator(session)

                table = await allocator.assign(restaurant, party_size, window)
                if table is not None:
                    status = self._default_status
                elif allow_waitlist:
                    # Placeholder: smallest table that could ever seat the party
                    table = (await allocator.fitting_tables(restaurant, party_size))[0]
                    status = ReservationStatus.WAITLIST
                else:
                    raise ReservationConflictError(
                        "The slot is not available at the requested time",
                        details={
                            "start_time": window.start.isoformat(),
                            "party_size": party_size,
                        },
                    )

                now = self._clock.now()
                reservation = await ReservationRepository(session).create(ReservationModel(
                    restaurant_id=restaurant.id,
                    table_id=table.id,
                    customer_name=customer_name,
                    customer_phone=customer_phone,
                    party_size=party_size,
                    start_time=window.start,
                    end_time=window.end,
                    status=status,
                    created_at=now,
                    last_modified=now,
                ))

        log.info(
            "Reservation created",
            reservation_id=str(reservation.id),
            restaurant_id=str(restaurant.id),
            table_number=table.table_number,
            status=reservation.status.value,
            party_size=party_size,
        )

        if reservation.status != ReservationStatus.WAITLIST:
            await self._invalidate(restaurant, window)
        self._notify_outcome(restaurant, reservation)
        return reservation

    async def update_reservation(
        self,
        reservation_id: UUID | str,
        *,
        start_time: datetime | None = None,
        duration_minutes: int | None = None,
        party_size: int | None = None,
        customer_name: str | None = None,
        customer_phone: str | None = None,
        status: ReservationStatus | str | None = None,
    ) -> ReservationModel:
        """Edit a reservation, re-validating it as if it were new.

        The reservation's own booking is ignored during conflict checks.
        Changing the status to cancelled is a cancellation.

        Raises:
            InvalidStatusTransitionError: Reservation is completed or
                cancelled, or the target status cannot be set by an edit
            ReservationConflictError: No fitting table is free
        """
        target = _parse_status(status) if status is not None else None
        if target == ReservationStatus.CANCELLED:
            return await self.cancel_reservation(reservation_id)
        if target is not None and target not in EDITABLE_STATUSES:
            raise InvalidStatusTransitionError(
                f"Status cannot be changed to {target.value} by an update",
                details={"status": target.value},
            )

        async with self._database.session() as session:
            current = await ReservationRepository(session).get_or_raise(reservation_id)
            rid = current.restaurant_id

        async with self._restaurant_lock(rid):
            async with self._database.session() as session:
                reservations = ReservationRepository(session)
                reservation = await reservations.get_or_raise(reservation_id)
                if reservation.is_terminal:
                    raise InvalidStatusTransitionError(
                        f"Reservation is already {reservation.status.value}",
                        details={"status": reservation.status.value},
                    )

                restaurant = await RestaurantRepository(session).get_or_raise(rid)
                old_window = reservation.window
                was_waitlisted = reservation.status == ReservationStatus.WAITLIST

                new_start = (
                    self._localize(restaurant, start_time) if start_time else old_window.start
                )
                new_window = self._window(
                    new_start,
                    reservation.duration_minutes if duration_minutes is None else duration_minutes,
                )
                new_party = party_size if party_size is not None else reservation.party_size
                new_status = target or reservation.status

                allocator = self._allocator(session)
                allocator.validate_window(restaurant, new_window)
                fitting = await allocator.fitting_tables(restaurant, new_party)

                changes: dict[str, Any] = {
                    "start_time": new_window.start,
                    "end_time": new_window.end,
                    "party_size": new_party,
                    "status": new_status,
                    "last_modified": self._clock.now(),
                }
                if customer_name is not None:
                    changes["customer_name"] = self._require_text("customer_name", customer_name)
                if customer_phone is not None:
                    changes["customer_phone"] = self._require_text("customer_phone", customer_phone)

                if new_status == ReservationStatus.WAITLIST:
                    if not any(t.id == reservation.table_id for t in fitting):
                        changes["table_id"] = fitting[0].id
                else:
                    rebook = (
                        was_waitlisted
                        or new_window != old_window
                        or new_party != reservation.party_size
                    )
                    if rebook:
                        table = await allocator.assign(
                            restaurant, new_party, new_window,
                            exclude_reservation_id=reservation.id,
                        )
                        if table is None:
                            raise ReservationConflictError(
                                "The slot is not available at the requested time",
                                details={
                                    "start_time": new_window.start.isoformat(),
                                    "party_size": new_party,
                                },
                            )
                        changes["table_id"] = table.id

                reservation = await reservations.update(reservation, changes)

        log.info(
            "Reservation updated",
            reservation_id=str(reservation.id),
            status=reservation.status.value,
            moved=new_window != old_window,
        )

        await self._invalidate(restaurant, old_window, new_window)
        if new_window != old_window or (was_waitlisted and reservation.is_active):
            self._notify_outcome(restaurant, reservation)
        return reservation

    async def cancel_reservation(self, reservation_id: UUID | str) -> ReservationModel:
        """Cancel a reservation and offer its table to the waitlist.

        Raises:
            InvalidStatusTransitionError: Reservation is completed or cancelled
        """
        async with self._database.session() as session:
            current = await ReservationRepository(session).get_or_raise(reservation_id)
            rid = current.restaurant_id

        promoted: ReservationModel | None = None

        async with self._restaurant_lock(rid):
            async with self._database.session() as session:
                reservations = ReservationRepository(session)
                reservation = await reservations.get_or_raise(reservation_id)
                if reservation.is_terminal:
                    raise InvalidStatusTransitionError(
                        f"Reservation is already {reservation.status.value}",
                        details={"status": reservation.status.value},
                    )

                restaurant = await RestaurantRepository(session).get_or_raise(rid)
                held_table = reservation.is_active

                table = None
                if held_table:
                    # Bookings lock the same row until commit
                    table = await TableRepository(session).get_or_raise(
                        reservation.table_id, lock=True
                    )

                reservation = await reservations.update(reservation, {
                    "status": ReservationStatus.CANCELLED,
                    "last_modified": self._clock.now(),
                })

                if table is not None:
                    promoted = await self._promoter(session).promote(
                        restaurant, reservation.window, table
                    )

        log.info(
            "Reservation cancelled",
            reservation_id=str(reservation.id),
            promoted_id=str(promoted.id) if promoted else None,
        )

        if held_table:
            await self._invalidate(restaurant, reservation.window)
        self._notify_outcome(restaurant, reservation)
        if promoted is not None:
            self._notifier.promotion_alert(
                promoted.customer_name,
                promoted.customer_phone,
                restaurant.name,
            )
        return reservation

    # ========================================================================
    # Lookups
    # ========================================================================

    async def get_reservation(self, reservation_id: UUID | str) -> ReservationModel:
        async with self._database.session() as session:
            return await ReservationRepository(session).get_or_raise(reservation_id)

    async def get_customer_reservations(self, customer_phone: str) -> Sequence[ReservationModel]:
        customer_phone = self._require_text("customer_phone", customer_phone)
        async with self._database.session() as session:
            return await ReservationRepository(session).get_by_phone(customer_phone)

    # ========================================================================
    # Restaurant Administration
    # ========================================================================

    async def create_restaurant(
        self,
        name: str,
        opening_time: str,
        closing_time: str,
        timezone: str | None = None,
    ) -> RestaurantModel:
        """Register a restaurant.

        Raises:
            ValidationError: Blank name or unknown timezone
            InvalidTimeFormatError: Unparseable opening or closing time
        """
        name = self._require_text("name", name)
        open_at = parse_time_of_day(opening_time)
        close_at = parse_time_of_day(closing_time)
        if open_at == close_at:
            raise ValidationError(
                "Opening and closing time must differ",
                details={"opening_time": opening_time, "closing_time": closing_time},
            )
        timezone = timezone or self._default_timezone
        get_zone(timezone)

        async with self._database.session() as session:
            restaurant = await RestaurantRepository(session).create(RestaurantModel(
                name=name,
                opening_time=opening_time.strip(),
                closing_time=closing_time.strip(),
                timezone=timezone,
            ))

        log.info("Restaurant created", restaurant_id=str(restaurant.id), restaurant_name=name)
        return restaurant

    async def get_restaurant(self, restaurant_id: UUID | str) -> RestaurantModel:
        async with self._database.session() as session:
            return await RestaurantRepository(session).get_or_raise(restaurant_id)

    async def add_table(
        self,
        restaurant_id: UUID | str,
        table_number: int,
        capacity: int,
    ) -> TableModel:
        """Add a table to a restaurant.

        Raises:
            ValidationError: Capacity or number below one
            DuplicateTableError: Number already used in this restaurant
        """
        tables = await self.add_tables(restaurant_id, [(table_number, capacity)])
        return tables[0]

    async def add_tables(
        self,
        restaurant_id: UUID | str,
        tables: Sequence[tuple[int, int]],
    ) -> list[TableModel]:
        """Add several tables in one transaction.

        Args:
            restaurant_id: Owning restaurant
            tables: (table_number, capacity) pairs

        Raises:
            ValidationError: Empty list, or capacity or number below one
            DuplicateTableError: Number repeated or already used in this restaurant
        """
        if not tables:
            raise ValidationError("At least one table is required")
        for table_number, capacity in tables:
            if capacity < 1:
                raise ValidationError("Capacity must be at least 1", details={"capacity": capacity})
            if table_number < 1:
                raise ValidationError(
                    "Table number must be at least 1",
                    details={"table_number": table_number},
                )

        async with self._database.session() as session:
            restaurant = await RestaurantRepository(session).get_or_raise(restaurant_id)
            repo = TableRepository(session)

            seen: set[int] = set()
            for table_number, _ in tables:
                taken = await repo.count(restaurant_id=restaurant.id, table_number=table_number)
                if taken or table_number in seen:
                    raise DuplicateTableError(
                        f"Table {table_number} already exists in {restaurant.name}",
                        details={"table_number": table_number},
                    )
                seen.add(table_number)

            try:
                created = await repo.create_multi([
                    TableModel(
                        restaurant_id=restaurant.id,
                        table_number=table_number,
                        capacity=capacity,
                    )
                    for table_number, capacity in tables
                ])
            except IntegrityError as e:
                raise DuplicateTableError(
                    f"Table number already exists in {restaurant.name}",
                    details={"table_numbers": sorted(seen)},
                ) from e

        for table in created:
            log.info(
                "Table added",
                restaurant_id=str(restaurant.id),
                table_number=table.table_number,
                capacity=table.capacity,
            )
        # New capacity can open slots on any date
        await self._slot_cache.invalidate_restaurant(restaurant.id)
        return created

    async def list_tables(self, restaurant_id: UUID | str) -> Sequence[TableModel]:
        async with self._database.session() as session:
            restaurant = await RestaurantRepository(session).get_or_raise(restaurant_id)
            return await TableRepository(session).list_for_restaurant(restaurant.id)
