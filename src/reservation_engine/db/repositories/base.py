"""Base Repository Pattern for the Reservation Engine.

Provides generic CRUD operations with async SQLAlchemy support.
All specialized repositories inherit from BaseRepository.
"""
from __future__ import annotations

from typing import Any, Generic, Sequence, TypeVar
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from reservation_engine.core.exceptions import RecordNotFoundError
from reservation_engine.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)


def as_uuid(id: UUID | str) -> UUID:
    """Coerce a string id to UUID, treating malformed ids as unknown."""
    if isinstance(id, UUID):
        return id
    try:
        return UUID(id)
    except (TypeError, ValueError) as e:
        raise RecordNotFoundError(
            f"Invalid identifier: {id!r}",
            details={"id": str(id)},
        ) from e


class BaseRepository(Generic[ModelT]):
    """Generic base repository with async CRUD operations.

    Repositories never commit; the caller owns the transaction.

    Usage:
        class TableRepository(BaseRepository[TableModel]):
            def __init__(self, session: AsyncSession):
                super().__init__(TableModel, session)
    """

    # Label used in not-found messages
    entity_name: str = "Record"

    def __init__(self, model: type[ModelT], session: AsyncSession):
        """Initialize repository with model class and session.

        Args:
            model: SQLAlchemy model class
            session: Async database session
        """
        self._model = model
        self._session = session

    @property
    def session(self) -> AsyncSession:
        """Get the current database session."""
        return self._session

    # ========================================================================
    # Basic CRUD Operations
    # ========================================================================

    async def get(self, id: UUID | str, *, lock: bool = False) -> ModelT | None:
        """Get a single record by ID.

        Args:
            id: UUID or string primary key
            lock: Take a row lock (SELECT ... FOR UPDATE) until the transaction ends

        Returns:
            Model instance or None if not found
        """
        stmt = select(self._model).where(self._model.id == as_uuid(id))
        if lock:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_raise(self, id: UUID | str, *, lock: bool = False) -> ModelT:
        """Get a single record by ID, raising if not found.

        Raises:
            RecordNotFoundError: If record not found
        """
        obj = await self.get(id, lock=lock)
        if obj is None:
            raise RecordNotFoundError(
                f"{self.entity_name} {id} not found",
                details={"id": str(id)},
            )
        return obj

    async def create(self, obj_in: ModelT) -> ModelT:
        """Create a new record.

        Args:
            obj_in: Model instance to create

        Returns:
            Created model instance with generated ID
        """
        self._session.add(obj_in)
        await self._session.flush()
        await self._session.refresh(obj_in)
        return obj_in

    async def create_multi(self, objs_in: list[ModelT]) -> list[ModelT]:
        """Insert several records with one flush."""
        self._session.add_all(objs_in)
        await self._session.flush()
        for obj in objs_in:
            await self._session.refresh(obj)
        return objs_in

    async def update(self, db_obj: ModelT, obj_in: dict[str, Any]) -> ModelT:
        """Apply field changes to a loaded record.

        Args:
            db_obj: Persistent model instance
            obj_in: Dictionary of fields to update

        Returns:
            Updated model instance
        """
        for field, value in obj_in.items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)

        await self._session.flush()
        await self._session.refresh(db_obj)
        return db_obj

    # ========================================================================
    # Query Helpers
    # ========================================================================

    async def count(self, **filters: Any) -> int:
        """Count records matching column filters."""
        stmt = select(func.count()).select_from(self._model)
        for field, value in filters.items():
            if hasattr(self._model, field):
                stmt = stmt.where(getattr(self._model, field) == value)
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    async def find_many(
        self,
        *,
        skip: int = 0,
        limit: int | None = 100,
        order_by: Sequence[Any] = (),
        **filters: Any,
    ) -> Sequence[ModelT]:
        """Find multiple records by arbitrary filters.

        Args:
            skip: Number of records to skip
            limit: Maximum records to return (None for all)
            order_by: Column expressions to sort by
            **filters: Column name to value mappings

        Returns:
            List of matching model instances
        """
        stmt = select(self._model)
        for field, value in filters.items():
            if hasattr(self._model, field):
                stmt = stmt.where(getattr(self._model, field) == value)

        stmt = stmt.order_by(*order_by).offset(skip)
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self._session.execute(stmt)
        return result.scalars().all()
