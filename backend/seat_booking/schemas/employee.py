"""
Pydantic schemas for employee-related request/response validation.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from seat_booking.models.employee import EmployeeRole, EmployeeStatus


class EmployeeCreate(BaseModel):
    employee_code: str = Field(..., min_length=1, max_length=50, pattern=r"^\s*[A-Za-z0-9_-]+\s*$")
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    role: EmployeeRole = EmployeeRole.EMPLOYEE


class EmployeeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    role: Optional[EmployeeRole] = None
    status: Optional[EmployeeStatus] = None


class EmployeeResponse(BaseModel):
    id: int
    employee_code: str
    name: str
    email: str
    role: str
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class EmployeeListResponse(BaseModel):
    items: list[EmployeeResponse]
    total: int
    page: int
    page_size: int


class EmployeeDeleteResponse(BaseModel):
    message: str
    employee_id: int
    status: str
