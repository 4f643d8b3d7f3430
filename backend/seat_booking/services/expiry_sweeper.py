"""
Expiry sweeper: confirmed bookings whose day has passed become `expired`.

Expiry is decided here, on the server's clock, and nowhere else. Each row is
transitioned in its own transaction through the ledger's compare-and-set, so:

- a row that was cancelled or checked in a moment earlier loses the CAS and
  is counted as skipped, not as an error;
- a row that fails for any other reason is logged and counted, and the sweep
  carries on;
- running the sweep twice changes nothing the second time.
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import date

from sqlalchemy.ext.asyncio import async_sessionmaker

from seat_booking.core.clock import Clock
from seat_booking.core.exceptions import StaleStateError
from seat_booking.core.logging import get_logger
from seat_booking.core.metrics import record_transition, sweeper_last_run, sweeper_rows
from seat_booking.models.booking import BookingStatus
from seat_booking.services import booking_ledger
from seat_booking.services.cache_service import invalidate_after_mutation

logger = get_logger(__name__)


@dataclass
class SweepResult:
    scanned: int = 0
    expired: int = 0
    skipped: int = 0
    failed: int = 0


async def sweep_expired_bookings(session_factory: async_sessionmaker, current_day: date) -> SweepResult:
    outcome = SweepResult()

    async with session_factory() as db:
        candidates = await booking_ledger.list_expirable(db, current_day)
    outcome.scanned = len(candidates)

    touched: set[tuple[date, int]] = set()
    for booking_id, booking_date, employee_id in candidates:
        try:
            async with session_factory() as db:
                await booking_ledger.transition(
                    db, booking_id, BookingStatus.CONFIRMED, BookingStatus.EXPIRED
                )
                await db.commit()
        except StaleStateError:
            outcome.skipped += 1
            continue
        except Exception:
            outcome.failed += 1
            logger.exception("expiry_sweep_row_failed", booking_id=booking_id)
            continue
        record_transition(BookingStatus.CONFIRMED.value, BookingStatus.EXPIRED.value)
        outcome.expired += 1
        touched.add((booking_date, employee_id))

    for booking_date, employee_id in sorted(touched):
        await invalidate_after_mutation(booking_date, employee_id)

    sweeper_rows.labels(result="expired").inc(outcome.expired)
    sweeper_rows.labels(result="skipped").inc(outcome.skipped)
    sweeper_rows.labels(result="failed").inc(outcome.failed)
    sweeper_last_run.set(time.time())
    logger.info("expiry_sweep_completed", current_day=str(current_day), **outcome.__dict__)
    return outcome


async def run_sweeper(session_factory: async_sessionmaker, clock: Clock, interval_seconds: float) -> None:
    """Sweep now and then every `interval_seconds` until cancelled."""
    while True:
        try:
            await sweep_expired_bookings(session_factory, clock.today())
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("expiry_sweep_failed")
        await asyncio.sleep(interval_seconds)
