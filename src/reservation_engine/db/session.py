"""Database Session Management for the Reservation Engine.

Provides:
- Database: owner of the async engine and session factory
- Transaction context manager (commit on success, rollback on error)
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from reservation_engine.config import DatabaseSettings
from reservation_engine.core.exceptions import DatabaseError, wrap_exception
from reservation_engine.core.log import get_logger
from reservation_engine.db.base import Base

log = get_logger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores ON DELETE CASCADE unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Async engine plus session factory with an explicit lifecycle.

    Usage:
        database = Database(settings.database)
        await database.connect()
        async with database.session() as session:
            ...
        await database.close()
    """

    def __init__(self, settings: DatabaseSettings):
        self._settings = settings
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def url(self) -> str:
        return self._settings.url

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise DatabaseError("Database is not connected")
        return self._engine

    async def connect(self) -> None:
        """Create the engine and session factory.

        Connection pooling:
            - SQLite: single in-process connection pool
            - PostgreSQL: pool_size=5, max_overflow=10, pool_timeout=30
        """
        if self._engine is not None:
            return

        db_url = self._settings.url
        kwargs: dict = {"echo": self._settings.echo}
        if self._settings.isolation_level:
            kwargs["isolation_level"] = self._settings.isolation_level

        if "sqlite" in db_url:
            if "///" in db_url:
                db_path = db_url.split("///")[1]
                if db_path and db_path != ":memory:":
                    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
            kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in db_url:
                # Every session must see the same in-memory database
                from sqlalchemy.pool import StaticPool

                kwargs["poolclass"] = StaticPool
        elif "postgresql" in db_url or "postgres" in db_url:
            kwargs.update(
                pool_size=5,
                max_overflow=10,
                pool_timeout=30,
                pool_recycle=1800,
                pool_pre_ping=True,
            )

        self._engine = create_async_engine(db_url, **kwargs)
        if self._engine.dialect.name == "sqlite":
            event.listen(self._engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        log.info("Database connected", dialect=self._engine.dialect.name)

    async def close(self) -> None:
        """Dispose the engine. Safe to call more than once."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            log.info("Database closed")

    async def create_all(self) -> None:
        """Create all tables. Safe to call multiple times."""
        import reservation_engine.db.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        """Drop all tables. Only for tests."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """One transaction: commit on success, rollback on error.

        SQLAlchemy failures are re-raised as DatabaseError.

        Usage:
            async with database.session() as session:
                result = await session.execute(select(Model))
        """
        if self._session_factory is None:
            raise DatabaseError("Database is not connected")

        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                log.error("Transaction rolled back", error=str(e))
                raise wrap_exception(e, DatabaseError, "Database operation failed") from e
            except BaseException:
                await session.rollback()
                raise
