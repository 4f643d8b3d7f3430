"""
Admin operations on the booking ledger as a whole.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from seat_booking.core.clock import Clock, get_clock
from seat_booking.core.security import Identity, require_admin
from seat_booking.db.session import get_db, get_session_factory
from seat_booking.schemas.booking import DashboardMetricsResponse, ExpirySweepResponse
from seat_booking.services.dashboard_service import get_dashboard_metrics
from seat_booking.services.expiry_sweeper import sweep_expired_bookings

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/dashboard/metrics", response_model=DashboardMetricsResponse)
async def dashboard_metrics_endpoint(
    admin: Identity = Depends(require_admin),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    return await get_dashboard_metrics(db, clock.today())


@router.post("/bookings/expire", response_model=ExpirySweepResponse)
async def expire_bookings_endpoint(
    admin: Identity = Depends(require_admin),
    clock: Clock = Depends(get_clock),
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    """Run the expiry sweep now instead of waiting for the background loop."""
    outcome = await sweep_expired_bookings(session_factory, clock.today())
    return ExpirySweepResponse(**outcome.__dict__)
