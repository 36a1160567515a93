"""Restaurant and table ORM models."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from reservation_engine.db.base import Base, TimestampMixin, UUIDMixin, UUIDType

if TYPE_CHECKING:
    from reservation_engine.db.models.reservation import ReservationModel


class RestaurantModel(Base, UUIDMixin, TimestampMixin):
    """A restaurant with a single daily operating window.

    opening_time/closing_time are local time-of-day strings (HH:MM or
    HH:MM:SS) in the restaurant's timezone. closing_time <= opening_time
    means the window runs past midnight.
    """

    __tablename__ = "restaurants"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    opening_time: Mapped[str] = mapped_column(String(8), nullable=False)
    closing_time: Mapped[str] = mapped_column(String(8), nullable=False)
    timezone: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        default="UTC",
        comment="IANA timezone name",
    )

    tables: Mapped[list["TableModel"]] = relationship(
        back_populates="restaurant",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert model to dictionary for API responses."""
        return {
            "id": str(self.id),
            "name": self.name,
            "opening_time": self.opening_time,
            "closing_time": self.closing_time,
            "timezone": self.timezone,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class TableModel(Base, UUIDMixin, TimestampMixin):
    """A bookable table. Numbers are unique per restaurant."""

    __tablename__ = "tables"

    restaurant_id: Mapped[UUID] = mapped_column(
        UUIDType(),
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    table_number: Mapped[int] = mapped_column(Integer, nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)

    restaurant: Mapped[RestaurantModel] = relationship(back_populates="tables")
    reservations: Mapped[list["ReservationModel"]] = relationship(
        back_populates="table",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("restaurant_id", "table_number", name="uq_table_restaurant_number"),
        CheckConstraint("capacity >= 1", name="ck_table_capacity_positive"),
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert model to dictionary for API responses."""
        return {
            "id": str(self.id),
            "restaurant_id": str(self.restaurant_id),
            "table_number": self.table_number,
            "capacity": self.capacity,
        }
