"""Application configuration."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseModel):
    """Database configuration."""

    url: str = "sqlite+aiosqlite:///data/reservations.db"
    echo: bool = False
    # e.g. "SERIALIZABLE" on PostgreSQL; None keeps the driver default
    isolation_level: str | None = None


class CacheSettings(BaseModel):
    """Availability cache configuration."""

    enabled: bool = True
    backend: str = "memory"  # memory, none
    ttl_seconds: int = Field(default=300, ge=1)
    key_prefix: str = "availability"


class PeakWindow(BaseModel):
    """Hour range [start_hour, end_hour) with a shortened duration cap."""

    start_hour: int
    end_hour: int


class BookingSettings(BaseModel):
    """Booking policy configuration."""

    default_timezone: str = "UTC"
    slot_interval_minutes: int = 30
    lookahead_buffer_minutes: int = 15
    min_duration_minutes: int = 15
    default_duration_minutes: int = 60
    peak_windows: list[PeakWindow] = Field(
        default_factory=lambda: [
            PeakWindow(start_hour=12, end_hour=14),  # lunch
            PeakWindow(start_hour=18, end_hour=21),  # dinner
        ]
    )
    peak_max_duration_minutes: int = 90
    off_peak_max_duration_minutes: int = 120
    default_status: str = "confirmed"


class RetirementSettings(BaseModel):
    """Elapsed-reservation sweep configuration."""

    enabled: bool = True
    interval_minutes: int = 15
    eligible_statuses: list[str] = Field(
        default_factory=lambda: ["pending", "confirmed", "seated"]
    )
    batch_timeout_seconds: float = 30.0


class TwilioSettings(BaseModel):
    """Twilio SMS configuration."""

    account_sid: str = ""
    auth_token: str = ""
    from_number: str = ""
    messaging_service_sid: str = ""


class NotificationSettings(BaseModel):
    """Customer notification configuration."""

    enabled: bool = True
    provider: str = "log"  # log, mock, twilio
    sender_name: str = "Reservations"
    twilio: TwilioSettings = Field(default_factory=TwilioSettings)


class RateLimitSettings(BaseModel):
    """Request rate limits (slowapi notation)."""

    enabled: bool = True
    read: str = "120/minute"
    write: str = "30/minute"


class APISettings(BaseModel):
    """HTTP server configuration."""

    host: str = "0.0.0.0"
    port: int = 8080
    cors_origins: list[str] = Field(default_factory=list)
    rate_limits: RateLimitSettings = Field(default_factory=RateLimitSettings)


class Settings(BaseSettings):
    """Application settings.

    Loaded from:
    1. Environment variables (RESV_*)
    2. configs/{environment}.yaml
    3. configs/default.yaml
    """

    model_config = SettingsConfigDict(
        env_prefix="RESV_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Environment
    environment: str = "development"
    debug: bool = True

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Subsystems
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    booking: BookingSettings = Field(default_factory=BookingSettings)
    retirement: RetirementSettings = Field(default_factory=RetirementSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    api: APISettings = Field(default_factory=APISettings)

    @property
    def is_production(self) -> bool:
        """Whether the process runs with production strictness."""
        return self.environment in ("production", "staging", "prod")


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings object loaded from config files and environment.
    """
    from dynaconf import Dynaconf

    config_dir = Path(os.getenv("RESV_CONFIG_DIR", "configs"))
    env = os.getenv("RESV_ENV", "development")

    settings_files = []
    if (config_dir / "default.yaml").exists():
        settings_files.append(str(config_dir / "default.yaml"))
    if (config_dir / f"{env}.yaml").exists():
        settings_files.append(str(config_dir / f"{env}.yaml"))

    dynaconf = Dynaconf(
        envvar_prefix="RESV",
        settings_files=settings_files,
        load_dotenv=True,
    )

    config_dict: dict[str, Any] = {}
    for key in dynaconf.keys():
        if not key.startswith("_"):
            config_dict[key.lower()] = dynaconf[key]

    config_dict["environment"] = env

    return Settings(**config_dict)


def validate_production_settings(settings: Settings) -> list[str]:
    """Validate settings for production readiness.

    Args:
        settings: Application settings to validate.

    Returns:
        List of validation error messages (empty if all valid).
    """
    errors: list[str] = []

    terminal = {"completed", "cancelled"}
    bad_statuses = terminal.intersection(settings.retirement.eligible_statuses)
    if bad_statuses:
        errors.append(
            "RESV_RETIREMENT__ELIGIBLE_STATUSES must not contain terminal "
            f"statuses: {sorted(bad_statuses)}"
        )

    if settings.notifications.enabled and settings.notifications.provider == "twilio":
        twilio = settings.notifications.twilio
        if not twilio.account_sid or not twilio.auth_token:
            errors.append(
                "RESV_NOTIFICATIONS__TWILIO__ACCOUNT_SID and AUTH_TOKEN must be set "
                "when the twilio provider is enabled"
            )

    # Only enforce the remaining checks in production
    if not settings.is_production:
        return errors

    if settings.debug:
        errors.append("RESV_DEBUG must be false in production")

    if "sqlite" in settings.database.url:
        errors.append(
            "RESV_DATABASE__URL must point at PostgreSQL in production "
            "(SQLite cannot lock candidate tables across workers)"
        )

    return errors


def require_valid_settings() -> Settings:
    """Get settings and raise if validation fails.

    Raises:
        ValueError: If settings are invalid.

    Returns:
        Validated settings.
    """
    settings = get_settings()
    errors = validate_production_settings(settings)

    if errors:
        error_list = "\n  - ".join(errors)
        raise ValueError(
            f"Configuration errors:\n  - {error_list}"
        )

    return settings
