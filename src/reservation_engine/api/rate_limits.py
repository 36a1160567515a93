"""Rate limiting configuration for API endpoints.

Provides rate limiting using slowapi to prevent abuse and ensure fair usage.
"""

from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

from reservation_engine.config import RateLimitSettings


# Rate limiter instance - shared across the application
limiter = Limiter(key_func=get_remote_address)

_configured = RateLimitSettings()


def configure_rate_limits(settings: RateLimitSettings) -> None:
    """Apply configured limits; called once by the app factory."""
    global _configured
    _configured = settings
    limiter.enabled = settings.enabled


def _read_limit() -> str:
    return _configured.read


def _write_limit() -> str:
    return _configured.write


class RateLimits:
    """Rate limits for different endpoint types."""

    # Availability checks and lookups
    READ = _read_limit

    # Bookings, edits, cancellations, administration
    WRITE = _write_limit

    # Health checks (allow frequent polling)
    HEALTH = "300/minute"
