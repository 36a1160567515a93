"""Waitlist promotion after a cancellation."""

from __future__ import annotations

from reservation_engine.core.clock import Clock
from reservation_engine.core.log import get_logger
from reservation_engine.db.models.reservation import ReservationModel, ReservationStatus
from reservation_engine.db.models.restaurant import RestaurantModel, TableModel
from reservation_engine.db.repositories.reservations import ReservationRepository
from reservation_engine.scheduling.conflicts import ConflictChecker
from reservation_engine.scheduling.time_window import TimeWindow

log = get_logger(__name__)


class WaitlistPromoter:
    """Moves the earliest fitting waitlist entry onto a vacated table.

    Entries are scanned in arrival order. At most one entry is promoted per
    call.
    """

    def __init__(
        self,
        reservations: ReservationRepository,
        conflicts: ConflictChecker,
        clock: Clock,
    ):
        self._reservations = reservations
        self._conflicts = conflicts
        self._clock = clock

    async def promote(
        self,
        restaurant: RestaurantModel,
        vacated_window: TimeWindow,
        vacated_table: TableModel,
    ) -> ReservationModel | None:
        """Promote the first waitlist entry that now fits the vacated table.

        Args:
            restaurant: Restaurant of the cancelled reservation
            vacated_window: Window the cancelled reservation held
            vacated_table: Table the cancelled reservation held

        Returns:
            The promoted reservation, or None if no entry fits
        """
        entries = await self._reservations.get_waitlisted_overlapping(
            restaurant.id, vacated_window
        )

        for position, entry in enumerate(entries):
            if vacated_table.capacity < entry.party_size:
                continue
            if await self._conflicts.is_busy(vacated_table.id, entry.window):
                continue

            await self._reservations.update(entry, {
                "status": ReservationStatus.CONFIRMED,
                "table_id": vacated_table.id,
                "last_modified": self._clock.now(),
            })
            log.info(
                "Waitlist entry promoted",
                reservation_id=str(entry.id),
                table_number=vacated_table.table_number,
                queue_position=position,
            )
            return entry

        if entries:
            log.debug(
                "No waitlist entry fits vacated table",
                table_number=vacated_table.table_number,
                candidates=len(entries),
            )
        return None
