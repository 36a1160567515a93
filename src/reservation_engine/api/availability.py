"""Availability endpoints."""

from datetime import date as date_type
from uuid import UUID

from fastapi import APIRouter, Query, Request

from reservation_engine.api.dependencies import ServiceDep
from reservation_engine.api.rate_limits import RateLimits, limiter
from reservation_engine.api.schemas import AvailabilityResponse

router = APIRouter()


@router.get("/availability/check", response_model=AvailabilityResponse)
@limiter.limit(RateLimits.READ)
async def check_availability(
    request: Request,
    service: ServiceDep,
    restaurant_id: UUID,
    party_size: int,
    duration: int | None = Query(None, description="Minutes, defaults to 60"),
    date: date_type | None = Query(None, description="Defaults to today at the restaurant"),
) -> AvailabilityResponse:
    """List start times at which the party can be seated.

    Args:
        restaurant_id: Restaurant to query
        party_size: Number of guests
        duration: Reservation length in minutes
        date: Operating day (YYYY-MM-DD)

    Returns:
        Local "HH:MM" start times, earliest first
    """
    result = await service.check_availability(
        restaurant_id,
        party_size=party_size,
        duration_minutes=duration,
        on_date=date,
    )
    return AvailabilityResponse(
        restaurant_id=result.restaurant_id,
        date=result.date,
        party_size=result.party_size,
        duration_minutes=result.duration_minutes,
        slots=result.slots,
    )
