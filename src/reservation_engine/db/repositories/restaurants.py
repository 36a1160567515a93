"""Restaurant and Table Repositories.

Specialized repositories for restaurant administration and for the
capacity queries used by table allocation.
"""
from __future__ import annotations

from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from reservation_engine.db.models.restaurant import RestaurantModel, TableModel
from reservation_engine.db.repositories.base import BaseRepository, as_uuid


class RestaurantRepository(BaseRepository[RestaurantModel]):
    """Repository for restaurant records."""

    entity_name = "Restaurant"

    def __init__(self, session: AsyncSession):
        super().__init__(RestaurantModel, session)


class TableRepository(BaseRepository[TableModel]):
    """Repository for restaurant tables.

    Capacity queries return best-fit order: smallest capacity first, ties
    broken by table number.
    """

    entity_name = "Table"

    def __init__(self, session: AsyncSession):
        super().__init__(TableModel, session)

    async def get_fitting(
        self,
        restaurant_id: UUID | str,
        min_capacity: int,
        *,
        lock: bool = False,
    ) -> Sequence[TableModel]:
        """Get tables that can seat at least `min_capacity` guests.

        Args:
            restaurant_id: Owning restaurant
            min_capacity: Party size to seat
            lock: Take row locks (SELECT ... FOR UPDATE) on the returned rows

        Returns:
            Tables in ascending capacity order
        """
        stmt = (
            select(self._model)
            .where(
                self._model.restaurant_id == as_uuid(restaurant_id),
                self._model.capacity >= min_capacity,
            )
            .order_by(self._model.capacity, self._model.table_number)
        )
        if lock:
            stmt = stmt.with_for_update()

        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def list_for_restaurant(self, restaurant_id: UUID | str) -> Sequence[TableModel]:
        """All tables of a restaurant ordered by table number."""
        return await self.find_many(
            restaurant_id=as_uuid(restaurant_id),
            order_by=(self._model.table_number,),
            limit=None,
        )
