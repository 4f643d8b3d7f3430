"""
Admin seat inventory endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from seat_booking.api.uploads import read_seat_numbers
from seat_booking.core.security import Identity, require_admin
from seat_booking.db.session import get_db, get_session_factory
from seat_booking.schemas.seat import (
    BulkUploadResponse,
    SeatCreate,
    SeatDeleteResponse,
    SeatListResponse,
    SeatResponse,
    SeatUpdate,
)
from seat_booking.services import seat_service
from seat_booking.services.cache_service import invalidate_inventory

router = APIRouter(prefix="/admin/seats", tags=["Admin: Seats"])


@router.get("", response_model=SeatListResponse)
async def list_seats_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None, max_length=100),
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    items, total = await seat_service.list_seats_page(db, page, page_size, search)
    return SeatListResponse(
        items=[SeatResponse.model_validate(item) for item in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("", response_model=SeatResponse, status_code=status.HTTP_201_CREATED)
async def create_seat_endpoint(
    seat_data: SeatCreate,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    seat = await seat_service.create_seat(db, seat_data.seat_number)
    await db.commit()
    await invalidate_inventory()
    return seat


@router.patch("/{seat_id}", response_model=SeatResponse)
async def update_seat_endpoint(
    seat_id: int,
    seat_data: SeatUpdate,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    seat = await seat_service.update_seat(db, seat_id, seat_data.seat_number)
    await db.commit()
    await invalidate_inventory()
    return seat


@router.delete("/{seat_id}", response_model=SeatDeleteResponse)
async def delete_seat_endpoint(
    seat_id: int,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Soft delete: existing bookings stay, the seat leaves future availability."""
    seat = await seat_service.delete_seat(db, seat_id)
    await db.commit()
    await invalidate_inventory()
    return SeatDeleteResponse(message="Seat deleted successfully", seat_id=seat.id)


@router.post("/bulk-upload", response_model=BulkUploadResponse)
async def bulk_upload_seats_endpoint(
    file: UploadFile = File(...),
    admin: Identity = Depends(require_admin),
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    """Create seats from a CSV with a `seat_number` column, row by row."""
    seat_numbers = await read_seat_numbers(file)
    outcome = await seat_service.bulk_import_seats(session_factory, seat_numbers)
    if outcome.created:
        await invalidate_inventory()
    return BulkUploadResponse.model_validate(outcome)
