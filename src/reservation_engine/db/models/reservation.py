"""Reservation ORM model and lifecycle states."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import CheckConstraint, Enum as SAEnum, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from reservation_engine.db.base import Base, TimestampMixin, UUIDMixin, UUIDType, UTCDateTime
from reservation_engine.scheduling.time_window import TimeWindow

if TYPE_CHECKING:
    from reservation_engine.db.models.restaurant import TableModel


class ReservationStatus(str, Enum):
    """Status of a reservation."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    SEATED = "seated"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    WAITLIST = "waitlist"


# Statuses that hold a table and block overlapping bookings
ACTIVE_STATUSES: frozenset[ReservationStatus] = frozenset({
    ReservationStatus.PENDING,
    ReservationStatus.CONFIRMED,
    ReservationStatus.SEATED,
})

TERMINAL_STATUSES: frozenset[ReservationStatus] = frozenset({
    ReservationStatus.COMPLETED,
    ReservationStatus.CANCELLED,
})


class ReservationModel(Base, UUIDMixin, TimestampMixin):
    """A booking of one table for one party over [start_time, end_time).

    Waitlist entries point at a capacity-compatible placeholder table and do
    not block it until promoted.
    """

    __tablename__ = "reservations"

    restaurant_id: Mapped[UUID] = mapped_column(
        UUIDType(),
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    table_id: Mapped[UUID] = mapped_column(
        UUIDType(),
        ForeignKey("tables.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Customer
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    party_size: Mapped[int] = mapped_column(Integer, nullable=False)

    # Window
    start_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    end_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    status: Mapped[ReservationStatus] = mapped_column(
        SAEnum(
            ReservationStatus,
            native_enum=False,
            length=20,
            values_callable=lambda statuses: [s.value for s in statuses],
            validate_strings=True,
        ),
        nullable=False,
        default=ReservationStatus.CONFIRMED,
        index=True,
    )

    table: Mapped["TableModel"] = relationship(back_populates="reservations")

    __table_args__ = (
        CheckConstraint("party_size >= 1", name="ck_reservation_party_positive"),
        CheckConstraint("start_time < end_time", name="ck_reservation_window_order"),
        Index("ix_reservations_table_window", "table_id", "start_time", "end_time"),
        Index("ix_reservations_restaurant_status", "restaurant_id", "status"),
    )

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.start_time, self.end_time)

    @property
    def duration_minutes(self) -> int:
        return self.window.duration_minutes

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self) -> dict[str, Any]:
        """Convert model to dictionary for API responses."""
        return {
            "id": str(self.id),
            "restaurant_id": str(self.restaurant_id),
            "table_id": str(self.table_id),
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "party_size": self.party_size,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "status": self.status.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
