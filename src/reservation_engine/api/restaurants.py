"""Restaurant administration endpoints."""

from uuid import UUID

from fastapi import APIRouter, Request, status

from reservation_engine.api.dependencies import ServiceDep
from reservation_engine.api.rate_limits import RateLimits, limiter
from reservation_engine.api.schemas import Restaurant, RestaurantCreate, Table, TableCreate

router = APIRouter()


@router.post("/restaurants", response_model=Restaurant, status_code=status.HTTP_201_CREATED)
@limiter.limit(RateLimits.WRITE)
async def create_restaurant(
    request: Request,
    body: RestaurantCreate,
    service: ServiceDep,
) -> Restaurant:
    """Register a restaurant with its daily operating hours.

    A closing time at or before the opening time means the restaurant
    closes after midnight.
    """
    restaurant = await service.create_restaurant(
        name=body.name,
        opening_time=body.opening_time,
        closing_time=body.closing_time,
        timezone=body.timezone,
    )
    return Restaurant.model_validate(restaurant)


@router.get("/restaurants/{restaurant_id}", response_model=Restaurant)
@limiter.limit(RateLimits.READ)
async def get_restaurant(
    request: Request,
    restaurant_id: UUID,
    service: ServiceDep,
) -> Restaurant:
    """Get a restaurant by ID."""
    return Restaurant.model_validate(await service.get_restaurant(restaurant_id))


@router.get("/restaurants/{restaurant_id}/tables", response_model=list[Table])
@limiter.limit(RateLimits.READ)
async def list_tables(
    request: Request,
    restaurant_id: UUID,
    service: ServiceDep,
) -> list[Table]:
    """List a restaurant's tables ordered by table number."""
    tables = await service.list_tables(restaurant_id)
    return [Table.model_validate(t) for t in tables]


@router.post(
    "/restaurants/{restaurant_id}/tables",
    response_model=Table,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(RateLimits.WRITE)
async def add_table(
    request: Request,
    restaurant_id: UUID,
    body: TableCreate,
    service: ServiceDep,
) -> Table:
    """Add a table. Table numbers are unique within a restaurant."""
    table = await service.add_table(
        restaurant_id,
        table_number=body.table_number,
        capacity=body.capacity,
    )
    return Table.model_validate(table)
