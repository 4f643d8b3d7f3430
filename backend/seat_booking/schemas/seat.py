"""
Pydantic schemas for seat inventory and availability.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class SeatCreate(BaseModel):
    seat_number: str = Field(..., max_length=100)


class SeatUpdate(BaseModel):
    seat_number: str = Field(..., max_length=100)


class SeatResponse(BaseModel):
    id: int
    seat_number: str
    created_at: datetime

    model_config = {"from_attributes": True}


class SeatListResponse(BaseModel):
    items: list[SeatResponse]
    total: int
    page: int
    page_size: int


class SeatDeleteResponse(BaseModel):
    message: str
    seat_id: int


class SeatAvailabilityResponse(BaseModel):
    seat_id: int
    seat_number: str
    status: str  # available, booked, mine, checked_in
    booking_id: Optional[int] = None

    model_config = {"from_attributes": True}


class BulkUploadResponse(BaseModel):
    total_rows: int
    created: int
    skipped_duplicate: int
    failed: int

    model_config = {"from_attributes": True}
