"""Reservation Engine Exception Hierarchy.

Every domain outcome that is not a successful booking is expressed as an
exception carrying an HTTP status code and a stable error code, so the API
layer can map it without knowing the rule that produced it.
"""

from __future__ import annotations

from typing import Any


class ReservationEngineError(Exception):
    """Base exception for all reservation engine errors."""

    status_code: int = 500
    error_code: str = "RESERVATION_ENGINE_ERROR"

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message
            details: Additional context for debugging
            cause: Original exception if wrapping
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    @property
    def is_internal(self) -> bool:
        """Whether the error detail should be hidden from callers."""
        return self.status_code >= 500

    def to_dict(self) -> dict[str, Any]:
        """Convert to API-friendly dictionary."""
        result: dict[str, Any] = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        if self.cause:
            result["cause"] = str(self.cause)
        return result

    def __str__(self) -> str:
        """String representation for logging."""
        parts = [f"{self.error_code}: {self.message}"]
        if self.details:
            parts.append(f"details={self.details}")
        if self.cause:
            parts.append(f"cause={self.cause}")
        return " | ".join(parts)


# =============================================================================
# Infrastructure Errors
# =============================================================================


class InternalError(ReservationEngineError):
    """Failure unrelated to booking rules."""

    error_code = "INTERNAL_ERROR"


class DatabaseError(InternalError):
    """Persistence layer failure."""

    status_code = 503
    error_code = "DATABASE_ERROR"


class CacheError(InternalError):
    """Cache backend failure. Never surfaced to API callers."""

    status_code = 503
    error_code = "CACHE_ERROR"


class NotificationError(InternalError):
    """Notification delivery failed."""

    status_code = 502
    error_code = "NOTIFICATION_ERROR"


class RecordNotFoundError(ReservationEngineError):
    """Unknown restaurant, table or reservation id."""

    status_code = 404
    error_code = "NOT_FOUND"


# =============================================================================
# Booking Rule Errors
# =============================================================================


class ValidationError(ReservationEngineError):
    """Malformed input or missing required field."""

    status_code = 400
    error_code = "VALIDATION_ERROR"


class InvalidTimeFormatError(ValidationError):
    """A stored or requested time-of-day could not be parsed."""

    error_code = "INVALID_TIME_FORMAT"


class OutsideOperatingHoursError(ReservationEngineError):
    """Requested window is not inside the restaurant's operating hours."""

    status_code = 400
    error_code = "OUTSIDE_OPERATING_HOURS"


class DurationOutOfPolicyError(ReservationEngineError):
    """Requested duration is below the minimum or above the peak cap."""

    status_code = 400
    error_code = "DURATION_OUT_OF_POLICY"


class NoCapacityError(ReservationEngineError):
    """No table in the restaurant is large enough for the party."""

    status_code = 400
    error_code = "NO_CAPACITY"


class ReservationConflictError(ReservationEngineError):
    """Every capable table is busy for the requested window."""

    status_code = 409
    error_code = "RESERVATION_CONFLICT"


class InvalidStatusTransitionError(ReservationConflictError):
    """Reservation is in a state that does not allow the operation."""

    error_code = "INVALID_STATUS_TRANSITION"


class DuplicateTableError(ReservationConflictError):
    """Table number already used in this restaurant."""

    error_code = "DUPLICATE_TABLE"


# =============================================================================
# Utility Functions
# =============================================================================


def wrap_exception(
    exc: Exception,
    wrapper_class: type[ReservationEngineError] = InternalError,
    message: str | None = None,
    **details: Any,
) -> ReservationEngineError:
    """Wrap a generic exception in a ReservationEngineError.

    Args:
        exc: Original exception to wrap
        wrapper_class: ReservationEngineError subclass to use
        message: Override message (defaults to str(exc))
        **details: Additional context details

    Returns:
        Wrapped ReservationEngineError instance
    """
    return wrapper_class(
        message=message or str(exc),
        details=details or None,
        cause=exc,
    )
