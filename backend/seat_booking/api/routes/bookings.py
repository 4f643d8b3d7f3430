"""
Booking endpoints: reserve, cancel, check in, and the caller's history.

Every mutation commits first and only then invalidates the cached views it
touched, so a client refreshing right after a 2xx never reads the old grid.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from seat_booking.core.clock import Clock, get_clock
from seat_booking.core.logging import get_logger
from seat_booking.core.metrics import record_transition
from seat_booking.core.security import get_current_employee_id
from seat_booking.db.session import get_db
from seat_booking.models.booking import BookingStatus
from seat_booking.schemas.booking import (
    BookingActionResponse,
    BookingCreate,
    BookingListResponse,
    BookingResponse,
)
from seat_booking.services import booking_service
from seat_booking.services.cache_service import (
    employee_bookings_cache_key,
    get_cached_view,
    invalidate_after_mutation,
    set_cached_view,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/bookings", tags=["Bookings"])


def _action_response(message: str, booking) -> BookingActionResponse:
    return BookingActionResponse(
        message=message,
        booking_id=booking.id,
        seat_id=booking.seat_id,
        booking_date=booking.booking_date,
        status=booking.status,
        check_in_time=booking.check_in_time,
    )


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key", max_length=64),
    employee_id: int = Depends(get_current_employee_id),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    """
    Reserve a seat for a date.

    409 with code `seat_already_booked` if someone else holds the seat,
    `employee_already_booked` if the caller already has a seat that day.
    Retrying with the same Idempotency-Key returns the original booking.
    """
    booking = await booking_service.book(
        db,
        employee_id,
        booking_data.seat_id,
        booking_data.booking_date,
        clock.now(),
        idempotency_key=idempotency_key,
    )
    await db.commit()
    await invalidate_after_mutation(booking.booking_date, booking.employee_id)
    return booking


@router.get("/me", response_model=BookingListResponse)
async def list_my_bookings(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    booking_status: Optional[BookingStatus] = Query(None, alias="status"),
    booking_date: Optional[date] = Query(None, alias="date"),
    employee_id: int = Depends(get_current_employee_id),
    db: AsyncSession = Depends(get_db),
):
    """The caller's bookings, newest date first."""
    status_value = booking_status.value if booking_status else None
    key = await employee_bookings_cache_key(
        employee_id, page, page_size, status_value, booking_date
    )
    cached = await get_cached_view(key)
    if cached is not None:
        return BookingListResponse(**cached)

    items, total = await booking_service.get_my_bookings(
        db,
        employee_id,
        status=status_value,
        booking_date=booking_date,
        page=page,
        page_size=page_size,
    )
    response = BookingListResponse(
        items=[BookingResponse.model_validate(item) for item in items],
        total=total,
        page=page,
        page_size=page_size,
    )
    await set_cached_view(key, response.model_dump(mode="json"))
    return response


@router.post("/{booking_id}/cancel", response_model=BookingActionResponse)
async def cancel_booking_endpoint(
    booking_id: int,
    employee_id: int = Depends(get_current_employee_id),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a confirmed booking (future dates, or today before the cutoff)."""
    booking = await booking_service.cancel(db, booking_id, employee_id, clock.now())
    await db.commit()
    record_transition(BookingStatus.CONFIRMED.value, BookingStatus.CANCELLED.value)
    await invalidate_after_mutation(booking.booking_date, booking.employee_id)
    return _action_response("Booking cancelled successfully", booking)


@router.post("/{booking_id}/check-in", response_model=BookingActionResponse)
async def check_in_endpoint(
    booking_id: int,
    employee_id: int = Depends(get_current_employee_id),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    """Check in to today's booking."""
    booking = await booking_service.check_in(db, booking_id, employee_id, clock.now())
    await db.commit()
    record_transition(BookingStatus.CONFIRMED.value, BookingStatus.CHECKED_IN.value)
    await invalidate_after_mutation(booking.booking_date, booking.employee_id)
    return _action_response("Checked in successfully", booking)
