"""
Availability reconciliation: seat inventory + one day's bookings -> seat grid.

This is a pure function of its inputs. The booking grid the client renders is
exactly `reconcile(list_seats(), list_for_date(d), viewer)`, so the same two
snapshots always produce the same grid regardless of call order.
"""

import enum
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from seat_booking.models.booking import BookingStatus


class SeatViewStatus(str, enum.Enum):
    AVAILABLE = "available"
    BOOKED = "booked"
    MINE = "mine"
    CHECKED_IN = "checked_in"


@dataclass(frozen=True)
class SeatView:
    seat_id: int
    seat_number: str
    status: SeatViewStatus
    # Only filled in for the viewer's own booking; other bookings stay opaque.
    booking_id: Optional[int] = None


def _status(value) -> str:
    return value.value if isinstance(value, BookingStatus) else value


def _active_by_seat(bookings: Iterable) -> dict:
    active = {}
    for booking in bookings:
        status = _status(booking.status)
        if status == BookingStatus.CHECKED_IN.value:
            # checked_in wins over any inconsistent confirmed row for the same seat
            active[booking.seat_id] = booking
        elif status == BookingStatus.CONFIRMED.value:
            current = active.get(booking.seat_id)
            if current is None:
                active[booking.seat_id] = booking
            elif _status(current.status) == BookingStatus.CONFIRMED.value and booking.id < current.id:
                active[booking.seat_id] = booking
    return active


def reconcile(seats: Sequence, bookings: Iterable, viewing_employee_id: int) -> list[SeatView]:
    """
    Build the per-seat view for one date.

    `seats` is the ordered inventory (objects with `id` and `seat_number`),
    `bookings` the bookings of a single date in any status.
    """
    active = _active_by_seat(bookings)
    views = []
    for seat in seats:
        booking = active.get(seat.id)
        if booking is None:
            views.append(SeatView(seat.id, seat.seat_number, SeatViewStatus.AVAILABLE))
        elif booking.employee_id != viewing_employee_id:
            views.append(SeatView(seat.id, seat.seat_number, SeatViewStatus.BOOKED))
        elif _status(booking.status) == BookingStatus.CHECKED_IN.value:
            views.append(SeatView(seat.id, seat.seat_number, SeatViewStatus.CHECKED_IN, booking.id))
        else:
            views.append(SeatView(seat.id, seat.seat_number, SeatViewStatus.MINE, booking.id))
    return views
