"""
Reservation service: book, cancel and check in.

Each operation is one logical transaction on the session it is given. It
either raises a typed DomainError (and the caller rolls back) or returns the
booking as committed state will look; the route commits and then invalidates
the cached views the mutation touched.

Identity is always an explicit argument: the service never looks at request
state, it trusts the employee_id handed to it by the identity layer.
"""

import calendar
import time
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from seat_booking.core.config import get_settings
from seat_booking.core.exceptions import (
    DomainError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from seat_booking.core.logging import get_logger
from seat_booking.core.metrics import booking_latency, record_booking_operation
from seat_booking.models.booking import Booking, BookingStatus
from seat_booking.services import booking_ledger
from seat_booking.services.availability import SeatView, reconcile
from seat_booking.services.employee_service import get_employee
from seat_booking.services.lifecycle_policy import (
    cancel_denial_reason,
    check_in_denial_reason,
)
from seat_booking.services.seat_service import get_seat, list_seats

logger = get_logger(__name__)
settings = get_settings()


def booking_horizon_end(current_day: date, horizon_days: Optional[int] = None) -> date:
    """Last bookable date: end of the current month unless a day count is configured."""
    if horizon_days is None:
        horizon_days = settings.BOOKING_HORIZON_DAYS
    if horizon_days is not None:
        return current_day + timedelta(days=horizon_days)
    last_day = calendar.monthrange(current_day.year, current_day.month)[1]
    return current_day.replace(day=last_day)


def validate_booking_date(booking_date: date, now: datetime) -> None:
    current_day = now.date()
    if booking_date < current_day:
        raise ValidationError("Cannot book a seat for a past date")
    horizon_end = booking_horizon_end(current_day)
    if booking_date > horizon_end:
        raise ValidationError(
            f"Bookings are only open until {horizon_end.isoformat()}"
        )


class _Instrumented:
    """Times an operation and records its outcome label."""

    def __init__(self, operation: str):
        self.operation = operation

    def __enter__(self):
        self.started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb):
        booking_latency.labels(operation=self.operation).observe(time.perf_counter() - self.started)
        if exc is None:
            record_booking_operation(self.operation, "success")
        elif isinstance(exc, DomainError):
            record_booking_operation(self.operation, exc.code)
        else:
            record_booking_operation(self.operation, "error")
        return False


async def _load_owned_booking(db: AsyncSession, booking_id: int, employee_id: int) -> Booking:
    booking = await booking_ledger.get(db, booking_id)
    # Someone else's booking is reported as missing, not forbidden
    if booking is None or booking.employee_id != employee_id:
        raise NotFoundError("Booking not found")
    return booking


async def book(
    db: AsyncSession,
    employee_id: int,
    seat_id: int,
    booking_date: date,
    now: datetime,
    idempotency_key: Optional[str] = None,
) -> Booking:
    """
    Reserve `seat_id` for `employee_id` on `booking_date`.

    Raises SeatAlreadyBookedError if the seat is taken that day and
    EmployeeAlreadyBookedError if the employee already holds a seat that day.
    """
    with _Instrumented("book"):
        employee = await get_employee(db, employee_id)
        if not employee.is_active:
            raise ForbiddenError("Your account is inactive")
        validate_booking_date(booking_date, now)
        await get_seat(db, seat_id)

        try:
            booking = await booking_ledger.insert(
                db, employee_id, seat_id, booking_date, idempotency_key=idempotency_key
            )
        except DomainError as e:
            logger.warning(
                "booking_conflict",
                code=e.code,
                employee_id=employee_id,
                seat_id=seat_id,
                booking_date=str(booking_date),
            )
            raise

        logger.info(
            "booking_created",
            booking_id=booking.id,
            employee_id=employee_id,
            seat_id=seat_id,
            booking_date=str(booking_date),
        )
        return booking


async def cancel(db: AsyncSession, booking_id: int, employee_id: int, now: datetime) -> Booking:
    """Cancel a confirmed booking of the caller inside the cancellation window."""
    with _Instrumented("cancel"):
        booking = await _load_owned_booking(db, booking_id, employee_id)

        reason = cancel_denial_reason(booking, now)
        if reason:
            logger.info("booking_cancel_denied", booking_id=booking_id, reason=reason)
            raise ForbiddenError(reason)

        booking = await booking_ledger.transition(
            db, booking_id, BookingStatus.CONFIRMED, BookingStatus.CANCELLED
        )
        logger.info(
            "booking_cancelled",
            booking_id=booking.id,
            employee_id=employee_id,
            booking_date=str(booking.booking_date),
        )
        return booking


async def check_in(db: AsyncSession, booking_id: int, employee_id: int, now: datetime) -> Booking:
    """Check the caller in to today's confirmed booking."""
    with _Instrumented("check_in"):
        booking = await _load_owned_booking(db, booking_id, employee_id)

        reason = check_in_denial_reason(booking, now)
        if reason:
            logger.info("booking_check_in_denied", booking_id=booking_id, reason=reason)
            raise ForbiddenError(reason)

        booking = await booking_ledger.transition(
            db,
            booking_id,
            BookingStatus.CONFIRMED,
            BookingStatus.CHECKED_IN,
            check_in_time=now,
        )
        logger.info(
            "booking_checked_in",
            booking_id=booking.id,
            employee_id=employee_id,
            check_in_time=now.isoformat(),
        )
        return booking


async def get_availability(db: AsyncSession, employee_id: int, booking_date: date) -> list[SeatView]:
    seats = await list_seats(db)
    bookings = await booking_ledger.list_for_date(db, booking_date)
    return reconcile(seats, bookings, employee_id)


async def get_my_bookings(
    db: AsyncSession,
    employee_id: int,
    status: Optional[str] = None,
    booking_date: Optional[date] = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Booking], int]:
    return await booking_ledger.list_for_employee(
        db, employee_id, status=status, booking_date=booking_date, page=page, page_size=page_size
    )
