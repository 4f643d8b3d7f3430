"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel


class BookingCreate(BaseModel):
    seat_id: int
    booking_date: date


class BookingResponse(BaseModel):
    id: int
    employee_id: int
    seat_id: int
    seat_number: Optional[str] = None
    booking_date: date
    status: str
    check_in_time: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingListResponse(BaseModel):
    items: list[BookingResponse]
    total: int
    page: int
    page_size: int


class BookingActionResponse(BaseModel):
    message: str
    booking_id: int
    seat_id: int
    booking_date: date
    status: str
    check_in_time: Optional[datetime] = None


class ExpirySweepResponse(BaseModel):
    scanned: int
    expired: int
    skipped: int
    failed: int


class DashboardMetricsResponse(BaseModel):
    total_employees: int
    active_employees: int
    inactive_employees: int
    total_seats: int
    today_bookings: int
    today_checked_in: int
    today_confirmed: int
