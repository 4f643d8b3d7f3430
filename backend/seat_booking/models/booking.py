"""
Booking model: one employee holding one seat for one calendar day.

Key design decisions:
- Partial unique indexes enforce "one active booking per seat per day" and
  "one active booking per employee per day"; cancelled/expired rows free the key
- Status is a terminal-state machine; rows are never deleted, only transitioned
- check_in_time is present exactly when the booking is checked in (CHECK constraint)
- idempotency_key lets a client retry a booking request without double-booking
"""

import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    inspect,
    text,
)
from sqlalchemy.orm import relationship

from seat_booking.db.base import Base, TimestampMixin


class BookingStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


ACTIVE_STATUSES = (BookingStatus.CONFIRMED.value, BookingStatus.CHECKED_IN.value)

_ACTIVE_PREDICATE = text("status IN ('confirmed', 'checked_in')")


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    seat_id = Column(Integer, ForeignKey("seats.id"), nullable=False, index=True)
    booking_date = Column(Date, nullable=False, index=True)
    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value)
    check_in_time = Column(DateTime(timezone=True), nullable=True)
    idempotency_key = Column(String(64), nullable=True)

    employee = relationship("Employee", back_populates="bookings", lazy="raise")
    seat = relationship("Seat", back_populates="bookings", lazy="raise")

    __table_args__ = (
        Index(
            "uq_bookings_active_seat_date",
            "seat_id",
            "booking_date",
            unique=True,
            postgresql_where=_ACTIVE_PREDICATE,
            sqlite_where=_ACTIVE_PREDICATE,
        ),
        Index(
            "uq_bookings_active_employee_date",
            "employee_id",
            "booking_date",
            unique=True,
            postgresql_where=_ACTIVE_PREDICATE,
            sqlite_where=_ACTIVE_PREDICATE,
        ),
        # Sweeper scans confirmed rows by date
        Index("ix_bookings_status_date", "status", "booking_date"),
        UniqueConstraint("employee_id", "idempotency_key", name="uq_bookings_employee_idempotency_key"),
        CheckConstraint(
            "status IN ('confirmed', 'checked_in', 'cancelled', 'expired')",
            name="check_booking_status",
        ),
        CheckConstraint(
            "(status = 'checked_in' AND check_in_time IS NOT NULL)"
            " OR (status <> 'checked_in' AND check_in_time IS NULL)",
            name="check_booking_check_in_time",
        ),
    )

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def seat_number(self):
        # Only read paths that eager-load the seat can report its number
        if "seat" in inspect(self).unloaded:
            return None
        return self.seat.seat_number if self.seat is not None else None

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, employee={self.employee_id}, seat={self.seat_id}, "
            f"date={self.booking_date}, status={self.status})>"
        )
