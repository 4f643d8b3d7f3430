"""
Admin employee directory endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from seat_booking.api.uploads import read_csv_rows
from seat_booking.core.security import Identity, require_admin
from seat_booking.db.session import get_db, get_session_factory
from seat_booking.models.employee import EmployeeRole, EmployeeStatus
from seat_booking.schemas.employee import (
    EmployeeCreate,
    EmployeeDeleteResponse,
    EmployeeListResponse,
    EmployeeResponse,
    EmployeeUpdate,
)
from seat_booking.schemas.seat import BulkUploadResponse
from seat_booking.services import employee_service

router = APIRouter(prefix="/admin/employees", tags=["Admin: Employees"])


@router.get("", response_model=EmployeeListResponse)
async def list_employees_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None, max_length=100),
    role: Optional[EmployeeRole] = Query(None),
    employee_status: Optional[EmployeeStatus] = Query(None, alias="status"),
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    items, total = await employee_service.list_employees(
        db,
        page,
        page_size,
        search=search,
        role=role.value if role else None,
        status=employee_status.value if employee_status else None,
    )
    return EmployeeListResponse(
        items=[EmployeeResponse.model_validate(item) for item in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("", response_model=EmployeeResponse, status_code=status.HTTP_201_CREATED)
async def create_employee_endpoint(
    employee_data: EmployeeCreate,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    employee = await employee_service.create_employee(db, employee_data)
    await db.commit()
    return employee


@router.patch("/{employee_id}", response_model=EmployeeResponse)
async def update_employee_endpoint(
    employee_id: int,
    employee_data: EmployeeUpdate,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    employee = await employee_service.update_employee(db, employee_id, employee_data)
    await db.commit()
    return employee


@router.delete("/{employee_id}", response_model=EmployeeDeleteResponse)
async def delete_employee_endpoint(
    employee_id: int,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Deactivate an employee; their history is kept."""
    employee = await employee_service.deactivate_employee(db, employee_id)
    await db.commit()
    return EmployeeDeleteResponse(
        message="Employee deactivated successfully",
        employee_id=employee.id,
        status=employee.status,
    )


@router.post("/bulk-upload", response_model=BulkUploadResponse)
async def bulk_upload_employees_endpoint(
    file: UploadFile = File(...),
    admin: Identity = Depends(require_admin),
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    """Create employees from a CSV with employee_code, name, email[, role] columns."""
    rows = await read_csv_rows(file)
    outcome = await employee_service.bulk_import_employees(session_factory, rows)
    return BulkUploadResponse.model_validate(outcome)
