"""
Identity endpoint: who the bearer token belongs to.

Login and token issuance live in the identity provider.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from seat_booking.core.security import get_current_employee_id
from seat_booking.db.session import get_db
from seat_booking.schemas.employee import EmployeeResponse
from seat_booking.services.employee_service import get_employee

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.get("/me", response_model=EmployeeResponse)
async def read_current_employee(
    employee_id: int = Depends(get_current_employee_id),
    db: AsyncSession = Depends(get_db),
):
    """Profile of the authenticated employee."""
    return await get_employee(db, employee_id)
