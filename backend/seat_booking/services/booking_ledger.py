"""
Booking ledger: the only code that writes Booking rows.

CONCURRENCY STRATEGY
====================

Inserts: unique partial indexes
  Two employees try to grab the same seat for the same day at the same time.
  Both read "no active booking", both INSERT. The partial unique index
  uq_bookings_active_seat_date (and uq_bookings_active_employee_date for the
  "one seat per employee per day" rule) makes the database reject the second
  INSERT with an IntegrityError. We roll back, look at what is now committed
  and raise the matching ConflictError so the caller gets the right message.

  The read-before-insert is only there to produce a friendly error without a
  round-trip through a failed INSERT in the common case; the index is what
  actually guarantees the invariant.

Transitions: compare-and-set
  UPDATE bookings SET status = :to WHERE id = :id AND status = :expected

  If rows_affected == 0 someone else moved the booking first (a cancel racing
  the expiry sweep, a double-clicked check-in). The loser gets StaleStateError
  and decides for itself whether that is a no-op or a user-visible conflict.
  No SELECT FOR UPDATE is needed: the row-level write lock taken by the UPDATE
  serialises concurrent transitions on the same booking.
"""

from datetime import date
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from seat_booking.core.exceptions import (
    ConflictError,
    EmployeeAlreadyBookedError,
    IdempotencyKeyReusedError,
    NotFoundError,
    SeatAlreadyBookedError,
    StaleStateError,
)
from seat_booking.core.logging import get_logger
from seat_booking.models.booking import ACTIVE_STATUSES, Booking, BookingStatus
from seat_booking.services.lifecycle_policy import can_transition

logger = get_logger(__name__)


def _status(value) -> str:
    return value.value if isinstance(value, BookingStatus) else value


async def get(db: AsyncSession, booking_id: int) -> Optional[Booking]:
    result = await db.execute(
        select(Booking)
        .options(selectinload(Booking.seat))
        .where(Booking.id == booking_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def find_active(db: AsyncSession, seat_id: int, booking_date: date) -> Optional[Booking]:
    result = await db.execute(
        select(Booking).where(
            Booking.seat_id == seat_id,
            Booking.booking_date == booking_date,
            Booking.status.in_(ACTIVE_STATUSES),
        )
    )
    return result.scalars().first()


async def find_active_for_employee(
    db: AsyncSession, employee_id: int, booking_date: date
) -> Optional[Booking]:
    result = await db.execute(
        select(Booking).where(
            Booking.employee_id == employee_id,
            Booking.booking_date == booking_date,
            Booking.status.in_(ACTIVE_STATUSES),
        )
    )
    return result.scalars().first()


async def find_by_idempotency_key(
    db: AsyncSession, employee_id: int, idempotency_key: str
) -> Optional[Booking]:
    result = await db.execute(
        select(Booking)
        .options(selectinload(Booking.seat))
        .where(
            Booking.employee_id == employee_id,
            Booking.idempotency_key == idempotency_key,
        )
    )
    return result.scalar_one_or_none()


def _replay(existing: Booking, seat_id: int, booking_date: date) -> Booking:
    if existing.seat_id != seat_id or existing.booking_date != booking_date:
        logger.warning(
            "booking_idempotency_key_reused",
            booking_id=existing.id,
            seat_id=seat_id,
            booking_date=str(booking_date),
        )
        raise IdempotencyKeyReusedError()
    logger.info("booking_idempotent_replay", booking_id=existing.id, employee_id=existing.employee_id)
    return existing


async def _raise_for_conflict(db: AsyncSession, employee_id: int, seat_id: int, booking_date: date):
    if await find_active(db, seat_id, booking_date):
        raise SeatAlreadyBookedError()
    if await find_active_for_employee(db, employee_id, booking_date):
        raise EmployeeAlreadyBookedError()


async def insert(
    db: AsyncSession,
    employee_id: int,
    seat_id: int,
    booking_date: date,
    idempotency_key: Optional[str] = None,
) -> Booking:
    """
    Create a confirmed booking.

    Raises SeatAlreadyBookedError / EmployeeAlreadyBookedError when either
    active-booking invariant would be violated. A repeated idempotency key
    returns the booking created by the first request, or raises
    IdempotencyKeyReusedError if it now names a different seat or date.
    """
    if idempotency_key:
        existing = await find_by_idempotency_key(db, employee_id, idempotency_key)
        if existing:
            return _replay(existing, seat_id, booking_date)

    await _raise_for_conflict(db, employee_id, seat_id, booking_date)

    booking = Booking(
        employee_id=employee_id,
        seat_id=seat_id,
        booking_date=booking_date,
        status=BookingStatus.CONFIRMED.value,
        idempotency_key=idempotency_key,
    )
    db.add(booking)
    try:
        await db.flush()
    except IntegrityError:
        # Lost the race to a concurrent insert; classify against committed state
        await db.rollback()
        logger.info(
            "booking_insert_race_lost",
            employee_id=employee_id,
            seat_id=seat_id,
            booking_date=str(booking_date),
        )
        if idempotency_key:
            existing = await find_by_idempotency_key(db, employee_id, idempotency_key)
            if existing:
                return _replay(existing, seat_id, booking_date)
        await _raise_for_conflict(db, employee_id, seat_id, booking_date)
        raise ConflictError("Booking conflicted with a concurrent request. Please try again.")

    logger.info(
        "booking_inserted",
        booking_id=booking.id,
        employee_id=employee_id,
        seat_id=seat_id,
        booking_date=str(booking_date),
    )
    return await get(db, booking.id)


async def transition(
    db: AsyncSession,
    booking_id: int,
    expected_status,
    to_status,
    **values,
) -> Booking:
    """
    Move a booking from `expected_status` to `to_status` atomically.

    Raises StaleStateError if the booking is no longer in `expected_status`,
    NotFoundError if it does not exist, ValueError for an edge that is not in
    the lifecycle table.
    """
    expected_status = _status(expected_status)
    to_status = _status(to_status)
    if not can_transition(expected_status, to_status):
        raise ValueError(f"Illegal booking transition {expected_status} -> {to_status}")
    if (to_status == BookingStatus.CHECKED_IN.value) != ("check_in_time" in values):
        raise ValueError("check_in_time must be set exactly when checking in")

    result = await db.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.status == expected_status)
        .values(status=to_status, **values)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        current = await get(db, booking_id)
        if current is None:
            raise NotFoundError("Booking not found")
        logger.info(
            "booking_transition_stale",
            booking_id=booking_id,
            expected=expected_status,
            actual=current.status,
            target=to_status,
        )
        raise StaleStateError(booking_id, expected_status, current.status)

    logger.info(
        "booking_transitioned",
        booking_id=booking_id,
        from_status=expected_status,
        to_status=to_status,
    )
    return await get(db, booking_id)


async def list_for_employee(
    db: AsyncSession,
    employee_id: int,
    status: Optional[str] = None,
    booking_date: Optional[date] = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Booking], int]:
    query = select(Booking).where(Booking.employee_id == employee_id)
    if status:
        query = query.where(Booking.status == _status(status))
    if booking_date:
        query = query.where(Booking.booking_date == booking_date)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    result = await db.execute(
        query
        .options(selectinload(Booking.seat))
        .order_by(Booking.booking_date.desc(), Booking.created_at.desc(), Booking.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all()), total


async def list_for_date(db: AsyncSession, booking_date: date) -> list[Booking]:
    result = await db.execute(
        select(Booking)
        .where(Booking.booking_date == booking_date)
        .order_by(Booking.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def list_expirable(db: AsyncSession, current_day: date) -> list[tuple[int, date, int]]:
    """(id, booking_date, employee_id) of confirmed bookings whose day has passed."""
    result = await db.execute(
        select(Booking.id, Booking.booking_date, Booking.employee_id)
        .where(
            Booking.status == BookingStatus.CONFIRMED.value,
            Booking.booking_date < current_day,
        )
        .order_by(Booking.booking_date, Booking.id)
    )
    return [tuple(row) for row in result.all()]
