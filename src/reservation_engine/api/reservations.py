"""Reservation endpoints."""

from uuid import UUID

from fastapi import APIRouter, Request, status

from reservation_engine.api.dependencies import ServiceDep
from reservation_engine.api.rate_limits import RateLimits, limiter
from reservation_engine.api.schemas import (
    Reservation,
    ReservationCreate,
    ReservationListResponse,
    ReservationUpdate,
)

router = APIRouter()


@router.post("/reservations", response_model=Reservation, status_code=status.HTTP_201_CREATED)
@limiter.limit(RateLimits.WRITE)
async def create_reservation(
    request: Request,
    body: ReservationCreate,
    service: ServiceDep,
) -> Reservation:
    """Book a table.

    With allow_waitlist the request joins the waitlist instead of failing
    with 409 when every fitting table is taken.
    """
    reservation = await service.create_reservation(
        body.restaurant_id,
        party_size=body.party_size,
        start_time=body.start_time,
        duration_minutes=body.duration_minutes,
        customer_name=body.customer_name,
        customer_phone=body.customer_phone,
        allow_waitlist=body.allow_waitlist,
    )
    return Reservation.model_validate(reservation)


@router.get("/reservations/by-phone/{customer_phone}", response_model=ReservationListResponse)
@limiter.limit(RateLimits.READ)
async def get_customer_reservations(
    request: Request,
    customer_phone: str,
    service: ServiceDep,
) -> ReservationListResponse:
    """All reservations booked under a phone number."""
    reservations = await service.get_customer_reservations(customer_phone)
    return ReservationListResponse(
        reservations=[Reservation.model_validate(r) for r in reservations],
        total=len(reservations),
    )


@router.get("/reservations/{reservation_id}", response_model=Reservation)
@limiter.limit(RateLimits.READ)
async def get_reservation(
    request: Request,
    reservation_id: UUID,
    service: ServiceDep,
) -> Reservation:
    """Get a reservation by ID."""
    return Reservation.model_validate(await service.get_reservation(reservation_id))


@router.patch("/reservations/{reservation_id}", response_model=Reservation)
@limiter.limit(RateLimits.WRITE)
async def update_reservation(
    request: Request,
    reservation_id: UUID,
    body: ReservationUpdate,
    service: ServiceDep,
) -> Reservation:
    """Change time, duration, party size, customer details or status.

    The edited reservation is re-validated like a new booking, ignoring its
    own current slot.
    """
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    reservation = await service.update_reservation(reservation_id, **changes)
    return Reservation.model_validate(reservation)


@router.delete("/reservations/{reservation_id}", response_model=Reservation)
@limiter.limit(RateLimits.WRITE)
async def cancel_reservation(
    request: Request,
    reservation_id: UUID,
    service: ServiceDep,
) -> Reservation:
    """Cancel a reservation. A freed table is offered to the waitlist."""
    return Reservation.model_validate(await service.cancel_reservation(reservation_id))
