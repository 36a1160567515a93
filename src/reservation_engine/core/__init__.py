"""Core building blocks: errors, logging and time."""

from reservation_engine.core.clock import Clock, FixedClock, SystemClock
from reservation_engine.core.exceptions import (
    ReservationEngineError,
    InternalError,
    DatabaseError,
    CacheError,
    NotificationError,
    RecordNotFoundError,
    ValidationError,
    InvalidTimeFormatError,
    OutsideOperatingHoursError,
    DurationOutOfPolicyError,
    NoCapacityError,
    ReservationConflictError,
    InvalidStatusTransitionError,
    DuplicateTableError,
    wrap_exception,
)
from reservation_engine.core.log import configure_logging, get_logger, setup_logging

__all__ = [
    # Time
    "Clock",
    "FixedClock",
    "SystemClock",
    # Logging
    "get_logger",
    "configure_logging",
    "setup_logging",
    # Exceptions
    "ReservationEngineError",
    "InternalError",
    "DatabaseError",
    "CacheError",
    "NotificationError",
    "RecordNotFoundError",
    "ValidationError",
    "InvalidTimeFormatError",
    "OutsideOperatingHoursError",
    "DurationOutOfPolicyError",
    "NoCapacityError",
    "ReservationConflictError",
    "InvalidStatusTransitionError",
    "DuplicateTableError",
    "wrap_exception",
]
