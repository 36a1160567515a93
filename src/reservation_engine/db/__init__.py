"""Database module for the Reservation Engine.

Provides:
- SQLAlchemy ORM models for restaurants, tables and reservations
- Database lifecycle object with a transactional session context
- Repository pattern for data access
"""
from reservation_engine.db.base import Base, TimestampMixin, UTCDateTime, UUIDMixin, UUIDType
from reservation_engine.db.session import Database

__all__ = [
    "Base",
    "UUIDMixin",
    "TimestampMixin",
    "UUIDType",
    "UTCDateTime",
    "Database",
]
