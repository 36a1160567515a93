"""Pydantic request and response schemas."""

from __future__ import annotations

from datetime import date as date_type, datetime
from uuid import UUID

from pydantic import BaseModel, Field

from reservation_engine.db.models.reservation import ReservationStatus


# ============================================================================
# Restaurants
# ============================================================================


class RestaurantCreate(BaseModel):
    """Create restaurant request."""

    name: str
    opening_time: str = Field(examples=["10:00"])
    closing_time: str = Field(examples=["22:00"])
    timezone: str | None = Field(default=None, examples=["Europe/Berlin"])


class Restaurant(BaseModel):
    """Restaurant schema for API responses."""

    id: UUID
    name: str
    opening_time: str
    closing_time: str
    timezone: str
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class TableCreate(BaseModel):
    """Add table request."""

    table_number: int
    capacity: int


class Table(BaseModel):
    """Table schema for API responses."""

    id: UUID
    restaurant_id: UUID
    table_number: int
    capacity: int

    model_config = {"from_attributes": True}


# ============================================================================
# Availability
# ============================================================================


class AvailabilityResponse(BaseModel):
    """Open start times for a day."""

    restaurant_id: UUID
    date: date_type
    party_size: int
    duration_minutes: int
    slots: list[str]


# ============================================================================
# Reservations
# ============================================================================


class ReservationCreate(BaseModel):
    """Create reservation request.

    A start_time without offset is read in the restaurant's timezone.
    """

    restaurant_id: UUID
    party_size: int
    start_time: datetime
    duration_minutes: int | None = None
    customer_name: str
    customer_phone: str
    allow_waitlist: bool = False


class ReservationUpdate(BaseModel):
    """Update reservation request. Omitted fields stay unchanged."""

    start_time: datetime | None = None
    duration_minutes: int | None = None
    party_size: int | None = None
    customer_name: str | None = None
    customer_phone: str | None = None
    status: ReservationStatus | None = None


class Reservation(BaseModel):
    """Reservation schema for API responses."""

    id: UUID
    restaurant_id: UUID
    table_id: UUID
    customer_name: str
    customer_phone: str
    party_size: int
    start_time: datetime
    end_time: datetime
    status: ReservationStatus
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class ReservationListResponse(BaseModel):
    """Reservations of one customer."""

    reservations: list[Reservation]
    total: int
