"""
Booking lifecycle rules.

    confirmed ──check-in (own date)──────────────▶ checked_in
        │
        ├──cancel (future date, or today before cutoff)──▶ cancelled
        │
        └──date fully elapsed, never checked in──▶ expired

checked_in, cancelled and expired are terminal.

All predicates are pure and take `now` from the caller. `now` is expected to
be in the office's local timezone; "today" is simply `now.date()` and the
cutoff instant is built in the same tzinfo as `now`.
"""

from datetime import date, datetime, time, tzinfo
from typing import Optional

from seat_booking.core.config import get_settings
from seat_booking.models.booking import ACTIVE_STATUSES, BookingStatus

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    BookingStatus.CONFIRMED.value: frozenset({
        BookingStatus.CHECKED_IN.value,
        BookingStatus.CANCELLED.value,
        BookingStatus.EXPIRED.value,
    }),
}

TERMINAL_STATUSES = frozenset({
    BookingStatus.CHECKED_IN.value,
    BookingStatus.CANCELLED.value,
    BookingStatus.EXPIRED.value,
})


def _status(value) -> str:
    return value.value if isinstance(value, BookingStatus) else value


def is_active(status) -> bool:
    return _status(status) in ACTIVE_STATUSES


def is_terminal(status) -> bool:
    return _status(status) in TERMINAL_STATUSES


def can_transition(from_status, to_status) -> bool:
    return _status(to_status) in ALLOWED_TRANSITIONS.get(_status(from_status), frozenset())


def today(now: datetime) -> date:
    return now.date()


def cancellation_cutoff(booking_date: date, cutoff: time, tz: Optional[tzinfo] = None) -> datetime:
    """The instant from which a same-day booking can no longer be cancelled."""
    return datetime.combine(booking_date, cutoff, tzinfo=tz)


def can_cancel(booking, now: datetime, cutoff: Optional[time] = None) -> bool:
    if _status(booking.status) != BookingStatus.CONFIRMED.value:
        return False
    current_day = today(now)
    if booking.booking_date > current_day:
        return True
    if booking.booking_date == current_day:
        cutoff = cutoff or get_settings().CANCEL_CUTOFF
        return now < cancellation_cutoff(booking.booking_date, cutoff, now.tzinfo)
    return False


def can_check_in(booking, now: datetime) -> bool:
    return (
        _status(booking.status) == BookingStatus.CONFIRMED.value
        and booking.booking_date == today(now)
    )


def is_expired(booking, now: datetime) -> bool:
    return (
        _status(booking.status) == BookingStatus.CONFIRMED.value
        and booking.booking_date < today(now)
    )


def cancel_denial_reason(booking, now: datetime, cutoff: Optional[time] = None) -> Optional[str]:
    """User-facing reason why `can_cancel` is false, or None when it is true."""
    if can_cancel(booking, now, cutoff):
        return None
    status = _status(booking.status)
    if status != BookingStatus.CONFIRMED.value:
        return f"Only confirmed bookings can be cancelled (booking is {status})"
    if booking.booking_date < today(now):
        return "Bookings for past dates cannot be cancelled"
    cutoff = cutoff or get_settings().CANCEL_CUTOFF
    return f"Cancellations for today are only allowed before {cutoff.strftime('%H:%M')}"


def check_in_denial_reason(booking, now: datetime) -> Optional[str]:
    if can_check_in(booking, now):
        return None
    status = _status(booking.status)
    if status != BookingStatus.CONFIRMED.value:
        return f"Only confirmed bookings can be checked in (booking is {status})"
    return "Check-in is only possible on the day of the booking"
