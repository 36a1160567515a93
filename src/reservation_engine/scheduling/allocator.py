"""Best-fit table allocation."""

from __future__ import annotations

from uuid import UUID

from reservation_engine.core.exceptions import (
    NoCapacityError,
    OutsideOperatingHoursError,
    ValidationError,
)
from reservation_engine.core.log import get_logger
from reservation_engine.db.models.restaurant import RestaurantModel, TableModel
from reservation_engine.db.repositories.restaurants import TableRepository
from reservation_engine.scheduling.conflicts import ConflictChecker
from reservation_engine.scheduling.operating_hours import OperatingHoursResolver, get_zone
from reservation_engine.scheduling.peak_policy import PeakPolicy
from reservation_engine.scheduling.time_window import TimeWindow

log = get_logger(__name__)


class TableAllocator:
    """Selects the smallest free table that seats a party.

    Validation order: operating hours, then duration, then capacity. The
    allocator never writes; the caller persists the reservation in the same
    transaction.
    """

    def __init__(
        self,
        tables: TableRepository,
        conflicts: ConflictChecker,
        hours: OperatingHoursResolver,
        peak: PeakPolicy,
        *,
        lock_tables: bool = True,
    ):
        self._tables = tables
        self._conflicts = conflicts
        self._hours = hours
        self._peak = peak
        self._lock_tables = lock_tables

    def validate_window(self, restaurant: RestaurantModel, window: TimeWindow) -> None:
        """Check operating hours and duration policy for a window.

        Raises:
            OutsideOperatingHoursError: Window not inside an operating window
            DurationOutOfPolicyError: Window too short or too long
        """
        if not self._hours.contains(restaurant, window):
            raise OutsideOperatingHoursError(
                f"Restaurant is open {restaurant.opening_time} to "
                f"{restaurant.closing_time} ({restaurant.timezone})",
                details={
                    "start_time": window.start.isoformat(),
                    "end_time": window.end.isoformat(),
                },
            )
        self._peak.check(window, get_zone(restaurant.timezone))

    async def fitting_tables(
        self,
        restaurant: RestaurantModel,
        party_size: int,
    ) -> list[TableModel]:
        """Tables large enough for the party, best fit first.

        Raises:
            ValidationError: Party size below one
            NoCapacityError: No table is large enough
        """
        if party_size < 1:
            raise ValidationError(
                "Party size must be at least 1",
                details={"party_size": party_size},
            )

        tables = list(
            await self._tables.get_fitting(restaurant.id, party_size, lock=self._lock_tables)
        )
        if not tables:
            raise NoCapacityError(
                f"No table at {restaurant.name} seats {party_size} guests",
                details={"party_size": party_size},
            )
        return tables

    async def assign(
        self,
        restaurant: RestaurantModel,
        party_size: int,
        window: TimeWindow,
        exclude_reservation_id: UUID | None = None,
    ) -> TableModel | None:
        """Pick a table for the party.

        Args:
            restaurant: Restaurant to book at
            party_size: Number of guests
            window: Requested reservation window
            exclude_reservation_id: Reservation being edited, ignored for
                conflicts

        Returns:
            The first free table in best-fit order, or None when every
            capable table is busy
        """
        self.validate_window(restaurant, window)
        tables = await self.fitting_tables(restaurant, party_size)

        for table in tables:
            if not await self._conflicts.is_busy(table.id, window, exclude_reservation_id):
                log.debug(
                    "Table assigned",
                    restaurant_id=str(restaurant.id),
                    table_number=table.table_number,
                    capacity=table.capacity,
                    party_size=party_size,
                )
                return table

        log.info(
            "All fitting tables busy",
            restaurant_id=str(restaurant.id),
            party_size=party_size,
            window=str(window),
            candidates=len(tables),
        )
        return None
