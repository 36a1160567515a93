"""Pytest configuration and fixtures for Reservation Engine tests."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio

from reservation_engine.core.exceptions import NotificationError
from reservation_engine.services.notifications import NotificationSender


# Monday 08:00 UTC; bookings in tests are made for the following day
NOW = datetime(2026, 6, 1, 8, 0, tzinfo=timezone.utc)


class RecordingNotificationSender(NotificationSender):
    """Notification sender that keeps delivered messages in memory."""

    def __init__(self, fail: bool = False):
        self.messages: list[tuple[str, str]] = []
        self.fail = fail
        self.closed = False

    async def deliver(self, customer_phone: str, body: str) -> None:
        if self.fail:
            raise NotificationError("Channel down")
        self.messages.append((customer_phone, body))

    async def close(self) -> None:
        self.closed = True

    def bodies_for(self, customer_phone: str) -> list[str]:
        return [body for phone, body in self.messages if phone == customer_phone]


@pytest.fixture
def clock():
    """Clock pinned to NOW."""
    from reservation_engine.core.clock import FixedClock

    return FixedClock(NOW)


# ============================================================================
# Async Database Fixtures
# ============================================================================

@pytest_asyncio.fixture(scope="function")
async def database() -> AsyncGenerator:
    """Fresh in-memory SQLite database per test function."""
    from reservation_engine.config import DatabaseSettings
    from reservation_engine.db.session import Database

    db = Database(DatabaseSettings(url="sqlite+aiosqlite:///:memory:"))
    await db.connect()
    await db.create_all()

    yield db

    await db.close()


@pytest_asyncio.fixture(scope="function")
async def db_session(database) -> AsyncGenerator:
    """Session on the test database, committed at the end of the test."""
    async with database.session() as session:
        yield session


@pytest.fixture
def cache_store(clock):
    from reservation_engine.cache.memory import InMemoryCacheStore

    return InMemoryCacheStore(clock)


@pytest.fixture
def sender():
    return RecordingNotificationSender()


@pytest.fixture
def notifier(sender):
    from reservation_engine.services.notifications import NotificationDispatcher

    return NotificationDispatcher(sender)


@pytest.fixture
def service(database, cache_store, notifier, clock):
    """Fully wired ReservationService with default booking policy."""
    from reservation_engine.scheduling.peak_policy import BookingPolicy
    from reservation_engine.services.reservation_service import ReservationService

    return ReservationService(
        database,
        cache_store=cache_store,
        notifier=notifier,
        clock=clock,
        policy=BookingPolicy(),
    )


@pytest_asyncio.fixture
async def restaurant(service):
    """Restaurant open 10:00-22:00 UTC with tables for 2, 4 and 6 guests."""
    created = await service.create_restaurant(
        name="Trattoria Roma",
        opening_time="10:00",
        closing_time="22:00",
        timezone="UTC",
    )
    await service.add_table(created.id, table_number=1, capacity=2)
    await service.add_table(created.id, table_number=2, capacity=4)
    await service.add_table(created.id, table_number=3, capacity=6)
    return created


@pytest_asyncio.fixture
async def tables(service, restaurant):
    """Tables of the restaurant fixture keyed by table number."""
    return {t.table_number: t for t in await service.list_tables(restaurant.id)}


@pytest_asyncio.fixture
async def night_restaurant(service):
    """Bar open 18:00-02:00 UTC with a single table for 4."""
    created = await service.create_restaurant(
        name="Nachtbar",
        opening_time="18:00",
        closing_time="02:00",
        timezone="UTC",
    )
    await service.add_table(created.id, table_number=1, capacity=4)
    return created


@pytest_asyncio.fixture
async def book(service, restaurant):
    """Factory booking at the default restaurant."""

    async def _book(
        start: datetime,
        party_size: int = 2,
        duration_minutes: int | None = 60,
        phone: str = "+4917100000",
        name: str = "Guest",
        allow_waitlist: bool = False,
    ):
        return await service.create_reservation(
            restaurant.id,
            party_size=party_size,
            start_time=start,
            duration_minutes=duration_minutes,
            customer_name=name,
            customer_phone=phone,
            allow_waitlist=allow_waitlist,
        )

    return _book


# ============================================================================
# API Fixtures
# ============================================================================

@pytest.fixture
def app_settings():
    """Settings for API tests: in-memory database, no background jobs."""
    from reservation_engine.config import (
        APISettings,
        DatabaseSettings,
        RateLimitSettings,
        RetirementSettings,
        Settings,
    )

    return Settings(
        environment="test",
        debug=True,
        database=DatabaseSettings(url="sqlite+aiosqlite:///:memory:"),
        retirement=RetirementSettings(enabled=False),
        api=APISettings(rate_limits=RateLimitSettings(enabled=False)),
    )


@pytest_asyncio.fixture
async def app(app_settings, clock, sender):
    """Application with components started, without running uvicorn."""
    from reservation_engine.main import create_app, start_components, stop_components

    application = create_app(app_settings, clock=clock, notification_sender=sender)
    await start_components(application)

    yield application

    await stop_components(application)


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator:
    """HTTP client bound to the application."""
    from httpx import ASGITransport, AsyncClient

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
