"""
Employee-facing seat endpoints: inventory and per-date availability.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from seat_booking.core.logging import get_logger
from seat_booking.core.security import get_current_employee_id
from seat_booking.db.session import get_db
from seat_booking.schemas.seat import SeatAvailabilityResponse, SeatResponse
from seat_booking.services.booking_service import get_availability
from seat_booking.services.cache_service import (
    availability_cache_key,
    get_cached_view,
    set_cached_view,
)
from seat_booking.services.seat_service import list_seats

logger = get_logger(__name__)
router = APIRouter(prefix="/seats", tags=["Seats"])


@router.get("", response_model=list[SeatResponse])
async def list_seats_endpoint(
    employee_id: int = Depends(get_current_employee_id),
    db: AsyncSession = Depends(get_db),
):
    """All bookable seats in display order."""
    return await list_seats(db)


@router.get("/availability", response_model=list[SeatAvailabilityResponse])
async def seat_availability_endpoint(
    booking_date: date = Query(..., alias="date", description="Booking date (YYYY-MM-DD)"),
    employee_id: int = Depends(get_current_employee_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Seat grid for a date as seen by the caller.
    Cached per viewer; invalidated by any booking change on that date.
    """
    key = await availability_cache_key(booking_date, employee_id)
    cached = await get_cached_view(key)
    if cached is not None:
        return [SeatAvailabilityResponse(**item) for item in cached]

    views = await get_availability(db, employee_id, booking_date)
    response = [
        SeatAvailabilityResponse(
            seat_id=view.seat_id,
            seat_number=view.seat_number,
            status=view.status.value,
            booking_id=view.booking_id,
        )
        for view in views
    ]
    await set_cached_view(key, [item.model_dump() for item in response])
    return response
