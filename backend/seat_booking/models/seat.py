"""
Seat model: one bookable physical seat.

Key design decisions:
- seat_number is stored normalised (trimmed, upper-cased) by the inventory service
- Uniqueness only applies to live seats, so a deleted seat's number can be reused
- Soft delete via deleted_at keeps historic bookings pointing at a real row
"""

from sqlalchemy import Column, DateTime, Index, Integer, String, text
from sqlalchemy.orm import relationship

from seat_booking.db.base import Base, TimestampMixin

SEAT_NUMBER_MAX_LENGTH = 20


class Seat(Base, TimestampMixin):
    __tablename__ = "seats"

    id = Column(Integer, primary_key=True, index=True)
    seat_number = Column(String(SEAT_NUMBER_MAX_LENGTH), nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    bookings = relationship("Booking", back_populates="seat", lazy="raise")

    __table_args__ = (
        Index(
            "uq_seats_live_seat_number",
            "seat_number",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def __repr__(self) -> str:
        return f"<Seat(id={self.id}, seat_number={self.seat_number}, deleted={self.is_deleted})>"
