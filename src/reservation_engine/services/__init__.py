"""Application services.

Provides:
- ReservationService: booking, availability and administration operations
- RetirementScheduler: periodic completion of elapsed reservations
- NotificationDispatcher: fire-and-forget customer notifications
"""

from __future__ import annotations

from reservation_engine.cache.base import CacheStore
from reservation_engine.config import Settings
from reservation_engine.core.clock import Clock
from reservation_engine.db.session import Database
from reservation_engine.scheduling.peak_policy import BookingPolicy
from reservation_engine.services.notifications import (
    LoggingNotificationSender,
    NotificationDispatcher,
    NotificationSender,
    SMSNotificationSender,
    create_notification_sender,
)
from reservation_engine.services.reservation_service import (
    AvailabilityResult,
    ReservationService,
)
from reservation_engine.services.retirement import (
    RetirementMetrics,
    RetirementScheduler,
    SchedulerState,
)


def build_reservation_service(
    settings: Settings,
    database: Database,
    *,
    cache_store: CacheStore | None = None,
    notifier: NotificationDispatcher | None = None,
    clock: Clock | None = None,
) -> ReservationService:
    """Wire a ReservationService from application settings."""
    return ReservationService(
        database,
        cache_store=cache_store,
        notifier=notifier,
        clock=clock,
        policy=BookingPolicy.from_settings(settings.booking),
        default_timezone=settings.booking.default_timezone,
        default_status=settings.booking.default_status,
        cache_ttl_seconds=settings.cache.ttl_seconds,
        cache_key_prefix=settings.cache.key_prefix,
    )


def build_retirement_scheduler(
    settings: Settings,
    database: Database,
    *,
    clock: Clock | None = None,
) -> RetirementScheduler:
    """Wire a RetirementScheduler from application settings."""
    return RetirementScheduler(
        database,
        clock,
        interval_minutes=settings.retirement.interval_minutes,
        eligible_statuses=settings.retirement.eligible_statuses,
        batch_timeout_seconds=settings.retirement.batch_timeout_seconds,
    )


__all__ = [
    "AvailabilityResult",
    "LoggingNotificationSender",
    "NotificationDispatcher",
    "NotificationSender",
    "ReservationService",
    "RetirementMetrics",
    "RetirementScheduler",
    "SMSNotificationSender",
    "SchedulerState",
    "build_reservation_service",
    "build_retirement_scheduler",
    "create_notification_sender",
]
