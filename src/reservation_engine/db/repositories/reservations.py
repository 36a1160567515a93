"""Reservation Repository.

Overlap, waitlist and retirement queries. All windows are half-open:
two reservations overlap when s1 < e2 and s2 < e1.
"""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, Sequence
from uuid import UUID

from sqlalchemy import exists, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from reservation_engine.db.models.reservation import (
    ACTIVE_STATUSES,
    ReservationModel,
    ReservationStatus,
)
from reservation_engine.db.repositories.base import BaseRepository, as_uuid
from reservation_engine.scheduling.time_window import TimeWindow


class ReservationRepository(BaseRepository[ReservationModel]):
    """Repository for reservation database operations."""

    entity_name = "Reservation"

    def __init__(self, session: AsyncSession):
        super().__init__(ReservationModel, session)

    def _overlapping(self, window: TimeWindow):
        return (
            self._model.start_time < window.end,
            self._model.end_time > window.start,
        )

    # ========================================================================
    # Conflict Queries
    # ========================================================================

    async def has_overlap(
        self,
        table_id: UUID | str,
        window: TimeWindow,
        exclude_id: UUID | str | None = None,
    ) -> bool:
        """Whether an active reservation on the table overlaps the window.

        Args:
            table_id: Table to check
            window: Requested window
            exclude_id: Reservation to ignore (the one being edited)

        Returns:
            True if the table is busy
        """
        conditions = [
            self._model.table_id == as_uuid(table_id),
            self._model.status.in_(list(ACTIVE_STATUSES)),
            *self._overlapping(window),
        ]
        if exclude_id is not None:
            conditions.append(self._model.id != as_uuid(exclude_id))

        stmt = select(exists().where(*conditions))
        result = await self._session.execute(stmt)
        return bool(result.scalar())

    async def get_active_in_window(
        self,
        restaurant_id: UUID | str,
        window: TimeWindow,
    ) -> Sequence[ReservationModel]:
        """Active reservations of a restaurant overlapping the window."""
        stmt = (
            select(self._model)
            .where(
                self._model.restaurant_id == as_uuid(restaurant_id),
                self._model.status.in_(list(ACTIVE_STATUSES)),
                *self._overlapping(window),
            )
            .order_by(self._model.start_time)
        )
        result = await self._session.execute(stmt)
        return result.scalars().all()

    # ========================================================================
    # Waitlist
    # ========================================================================

    async def get_waitlisted_overlapping(
        self,
        restaurant_id: UUID | str,
        window: TimeWindow,
    ) -> Sequence[ReservationModel]:
        """Waitlist entries overlapping the window in arrival order."""
        stmt = (
            select(self._model)
            .where(
                self._model.restaurant_id == as_uuid(restaurant_id),
                self._model.status == ReservationStatus.WAITLIST,
                *self._overlapping(window),
            )
            .order_by(self._model.created_at, self._model.id)
        )
        result = await self._session.execute(stmt)
        return result.scalars().all()

    # ========================================================================
    # Lookups
    # ========================================================================

    async def get_by_phone(self, customer_phone: str) -> Sequence[ReservationModel]:
        """All reservations of a customer, soonest first."""
        stmt = (
            select(self._model)
            .where(self._model.customer_phone == customer_phone)
            .order_by(self._model.start_time)
        )
        result = await self._session.execute(stmt)
        return result.scalars().all()

    # ========================================================================
    # Retirement
    # ========================================================================

    async def complete_elapsed(
        self,
        now: datetime,
        statuses: Iterable[ReservationStatus],
    ) -> int:
        """Mark every elapsed reservation in `statuses` as completed.

        Single UPDATE statement.

        Returns:
            Number of reservations transitioned
        """
        statuses = list(statuses)
        if not statuses:
            return 0

        stmt = (
            update(self._model)
            .where(
                self._model.end_time < now,
                self._model.status.in_(statuses),
            )
            .values(status=ReservationStatus.COMPLETED, last_modified=now)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount or 0
