"""
Employee directory maintained by administrators.
"""

from typing import Iterable, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from seat_booking.core.exceptions import DuplicateEmployeeError, NotFoundError
from seat_booking.core.logging import get_logger
from seat_booking.core.metrics import bulk_import_rows
from seat_booking.models.employee import Employee, EmployeeRole, EmployeeStatus
from seat_booking.schemas.employee import EmployeeCreate, EmployeeUpdate
from seat_booking.services.seat_service import BulkImportResult

logger = get_logger(__name__)


async def get_employee(db: AsyncSession, employee_id: int) -> Employee:
    result = await db.execute(select(Employee).where(Employee.id == employee_id))
    employee = result.scalar_one_or_none()
    if not employee:
        raise NotFoundError(f"Employee {employee_id} not found")
    return employee


async def _ensure_unique(
    db: AsyncSession,
    employee_code: Optional[str],
    email: Optional[str],
    exclude_id: Optional[int] = None,
) -> None:
    if employee_code:
        query = select(Employee).where(Employee.employee_code == employee_code)
        if exclude_id is not None:
            query = query.where(Employee.id != exclude_id)
        if (await db.execute(query)).scalar_one_or_none():
            raise DuplicateEmployeeError(f"Employee ID {employee_code} already exists")
    if email:
        query = select(Employee).where(func.lower(Employee.email) == email.lower())
        if exclude_id is not None:
            query = query.where(Employee.id != exclude_id)
        if (await db.execute(query)).scalar_one_or_none():
            raise DuplicateEmployeeError(f"Email {email} is already registered")


async def list_employees(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    search: Optional[str] = None,
    role: Optional[str] = None,
    status: Optional[str] = None,
) -> tuple[list[Employee], int]:
    query = select(Employee)
    if search:
        term = f"%{search.strip().lower()}%"
        query = query.where(
            or_(
                func.lower(Employee.name).like(term),
                func.lower(Employee.email).like(term),
                func.lower(Employee.employee_code).like(term),
            )
        )
    if role:
        query = query.where(Employee.role == role)
    if status:
        query = query.where(Employee.status == status)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar()
    result = await db.execute(
        query
        .order_by(Employee.created_at.desc(), Employee.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(result.scalars().all()), total


async def create_employee(db: AsyncSession, data: EmployeeCreate) -> Employee:
    employee_code = data.employee_code.strip().upper()
    email = str(data.email).lower()
    await _ensure_unique(db, employee_code, email)

    employee = Employee(
        employee_code=employee_code,
        name=data.name.strip(),
        email=email,
        role=data.role.value,
        status=EmployeeStatus.ACTIVE.value,
    )
    db.add(employee)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise DuplicateEmployeeError(f"Employee ID {employee_code} already exists")
    await db.refresh(employee)

    logger.info("employee_created", employee_id=employee.id, employee_code=employee.employee_code)
    return employee


async def update_employee(db: AsyncSession, employee_id: int, data: EmployeeUpdate) -> Employee:
    employee = await get_employee(db, employee_id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)

    if "email" in changes:
        changes["email"] = str(changes["email"]).lower()
        await _ensure_unique(db, None, changes["email"], exclude_id=employee.id)
    if "name" in changes:
        changes["name"] = changes["name"].strip()
    for field in ("role", "status"):
        if field in changes:
            changes[field] = getattr(changes[field], "value", changes[field])

    for field, value in changes.items():
        setattr(employee, field, value)
    await db.flush()
    await db.refresh(employee)

    logger.info("employee_updated", employee_id=employee.id, fields=sorted(changes))
    return employee


async def deactivate_employee(db: AsyncSession, employee_id: int) -> Employee:
    employee = await get_employee(db, employee_id)
    employee.status = EmployeeStatus.INACTIVE.value
    await db.flush()
    await db.refresh(employee)

    logger.info("employee_deactivated", employee_id=employee.id)
    return employee


async def bulk_import_employees(
    session_factory: async_sessionmaker,
    rows: Iterable[dict],
) -> BulkImportResult:
    """
    Create one employee per row ({employee_code, name, email, role?}), each in
    its own transaction. Existing codes/emails are skipped, invalid rows fail.
    """
    outcome = BulkImportResult()

    for row_number, row in enumerate(rows, start=1):
        outcome.total_rows += 1
        try:
            data = EmployeeCreate(
                employee_code=row.get("employee_code") or "",
                name=row.get("name") or "",
                email=row.get("email") or "",
                role=row.get("role") or EmployeeRole.EMPLOYEE.value,
            )
        except ValueError as e:
            # pydantic's ValidationError subclasses ValueError
            outcome.failed += 1
            logger.info("employee_import_row_failed", row=row_number, reason=str(e))
            continue

        try:
            async with session_factory() as db:
                await create_employee(db, data)
                await db.commit()
            outcome.created += 1
        except DuplicateEmployeeError:
            outcome.skipped_duplicate += 1
        except Exception as e:
            outcome.failed += 1
            logger.error("employee_import_row_error", row=row_number, error=str(e))

    bulk_import_rows.labels(entity="employee", result="created").inc(outcome.created)
    bulk_import_rows.labels(entity="employee", result="skipped_duplicate").inc(outcome.skipped_duplicate)
    bulk_import_rows.labels(entity="employee", result="failed").inc(outcome.failed)
    logger.info("employee_import_completed", **outcome.__dict__)
    return outcome
