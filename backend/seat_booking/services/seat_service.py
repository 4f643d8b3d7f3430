"""
Seat inventory: the fixed pool of bookable seats.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from seat_booking.core.exceptions import (
    DuplicateSeatNumberError,
    NotFoundError,
    ValidationError,
)
from seat_booking.core.logging import get_logger
from seat_booking.core.metrics import bulk_import_rows
from seat_booking.models.seat import SEAT_NUMBER_MAX_LENGTH, Seat

logger = get_logger(__name__)


@dataclass
class BulkImportResult:
    total_rows: int = 0
    created: int = 0
    skipped_duplicate: int = 0
    failed: int = 0


def normalize_seat_number(raw: Optional[str]) -> str:
    """Trim and upper-case; raise ValidationError if nothing usable remains."""
    seat_number = (raw or "").strip().upper()
    if not seat_number:
        raise ValidationError("Seat number cannot be empty")
    if len(seat_number) > SEAT_NUMBER_MAX_LENGTH:
        raise ValidationError(
            f"Seat number must be at most {SEAT_NUMBER_MAX_LENGTH} characters"
        )
    return seat_number


async def _find_live_by_number(db: AsyncSession, seat_number: str) -> Optional[Seat]:
    result = await db.execute(
        select(Seat).where(Seat.seat_number == seat_number, Seat.deleted_at.is_(None))
    )
    return result.scalar_one_or_none()


async def list_seats(db: AsyncSession) -> list[Seat]:
    """Live seats in display order."""
    result = await db.execute(
        select(Seat)
        .where(Seat.deleted_at.is_(None))
        .order_by(Seat.seat_number.asc(), Seat.id.asc())
    )
    return list(result.scalars().all())


async def list_seats_page(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    search: Optional[str] = None,
) -> tuple[list[Seat], int]:
    query = select(Seat).where(Seat.deleted_at.is_(None))
    if search:
        query = query.where(Seat.seat_number.contains(search.strip().upper()))

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar()
    result = await db.execute(
        query
        .order_by(Seat.seat_number.asc(), Seat.id.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(result.scalars().all()), total


async def get_seat(db: AsyncSession, seat_id: int) -> Seat:
    result = await db.execute(
        select(Seat).where(Seat.id == seat_id, Seat.deleted_at.is_(None))
    )
    seat = result.scalar_one_or_none()
    if not seat:
        raise NotFoundError(f"Seat {seat_id} not found")
    return seat


async def create_seat(db: AsyncSession, seat_number: str) -> Seat:
    seat_number = normalize_seat_number(seat_number)
    if await _find_live_by_number(db, seat_number):
        raise DuplicateSeatNumberError(f"Seat {seat_number} already exists")

    seat = Seat(seat_number=seat_number)
    db.add(seat)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise DuplicateSeatNumberError(f"Seat {seat_number} already exists")
    await db.refresh(seat)

    logger.info("seat_created", seat_id=seat.id, seat_number=seat.seat_number)
    return seat


async def update_seat(db: AsyncSession, seat_id: int, seat_number: str) -> Seat:
    seat = await get_seat(db, seat_id)
    seat_number = normalize_seat_number(seat_number)

    existing = await _find_live_by_number(db, seat_number)
    if existing and existing.id != seat.id:
        raise DuplicateSeatNumberError(f"Seat {seat_number} already exists")

    seat.seat_number = seat_number
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise DuplicateSeatNumberError(f"Seat {seat_number} already exists")
    await db.refresh(seat)

    logger.info("seat_updated", seat_id=seat.id, seat_number=seat.seat_number)
    return seat


async def delete_seat(db: AsyncSession, seat_id: int) -> Seat:
    """Soft delete: bookings keep their seat, availability stops showing it."""
    seat = await get_seat(db, seat_id)
    seat.deleted_at = datetime.now(timezone.utc)
    await db.flush()
    await db.refresh(seat)

    logger.info("seat_deleted", seat_id=seat.id, seat_number=seat.seat_number)
    return seat


async def bulk_import_seats(
    session_factory: async_sessionmaker,
    raw_seat_numbers: Iterable[str],
) -> BulkImportResult:
    """
    Create one seat per row, each in its own transaction.

    Rows already present (in the database or earlier in this batch) are
    skipped; blank or oversized rows fail. A failing row never affects the
    others.
    """
    outcome = BulkImportResult()
    seen: set[str] = set()

    for row_number, raw in enumerate(raw_seat_numbers, start=1):
        outcome.total_rows += 1
        try:
            seat_number = normalize_seat_number(raw)
        except ValidationError as e:
            outcome.failed += 1
            logger.info("seat_import_row_failed", row=row_number, reason=e.message)
            continue

        if seat_number in seen:
            outcome.skipped_duplicate += 1
            continue
        seen.add(seat_number)

        try:
            async with session_factory() as db:
                await create_seat(db, seat_number)
                await db.commit()
            outcome.created += 1
        except DuplicateSeatNumberError:
            outcome.skipped_duplicate += 1
        except Exception as e:
            outcome.failed += 1
            logger.error("seat_import_row_error", row=row_number, error=str(e))

    bulk_import_rows.labels(entity="seat", result="created").inc(outcome.created)
    bulk_import_rows.labels(entity="seat", result="skipped_duplicate").inc(outcome.skipped_duplicate)
    bulk_import_rows.labels(entity="seat", result="failed").inc(outcome.failed)
    logger.info("seat_import_completed", **outcome.__dict__)
    return outcome
