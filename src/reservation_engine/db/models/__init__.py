"""Database Models for the Reservation Engine.

- RestaurantModel: restaurant with its daily operating window
- TableModel: bookable table, number unique per restaurant
- ReservationModel: booking of one table for one party
"""
from reservation_engine.db.models.restaurant import RestaurantModel, TableModel
from reservation_engine.db.models.reservation import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    ReservationModel,
    ReservationStatus,
)

__all__ = [
    "RestaurantModel",
    "TableModel",
    "ReservationModel",
    "ReservationStatus",
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
]
