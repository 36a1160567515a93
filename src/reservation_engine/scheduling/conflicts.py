"""Table conflict detection."""

from __future__ import annotations

from typing import Iterable
from uuid import UUID

from reservation_engine.db.models.reservation import ACTIVE_STATUSES, ReservationModel
from reservation_engine.db.repositories.reservations import ReservationRepository
from reservation_engine.scheduling.time_window import TimeWindow


class ConflictChecker:
    """Answers whether a table is already taken for a window.

    Only pending, confirmed and seated reservations block a table.
    """

    def __init__(self, reservations: ReservationRepository):
        self._reservations = reservations

    async def is_busy(
        self,
        table_id: UUID,
        window: TimeWindow,
        exclude_reservation_id: UUID | None = None,
    ) -> bool:
        return await self._reservations.has_overlap(
            table_id,
            window,
            exclude_id=exclude_reservation_id,
        )

    @staticmethod
    def busy_table_ids(
        reservations: Iterable[ReservationModel],
        window: TimeWindow,
    ) -> set[UUID]:
        """Tables blocked for `window` by an already-loaded reservation list."""
        return {
            r.table_id
            for r in reservations
            if r.status in ACTIVE_STATUSES and r.window.overlaps(window)
        }
