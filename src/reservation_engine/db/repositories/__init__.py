"""Repository layer for the Reservation Engine.

Repositories wrap one AsyncSession and never commit; callers own the
transaction through Database.session().
"""
from reservation_engine.db.repositories.base import BaseRepository
from reservation_engine.db.repositories.reservations import ReservationRepository
from reservation_engine.db.repositories.restaurants import (
    RestaurantRepository,
    TableRepository,
)

__all__ = [
    "BaseRepository",
    "RestaurantRepository",
    "TableRepository",
    "ReservationRepository",
]
