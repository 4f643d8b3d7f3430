from seat_booking.schemas.booking import BookingCreate, BookingListResponse, BookingResponse
from seat_booking.schemas.employee import EmployeeCreate, EmployeeResponse, EmployeeUpdate
from seat_booking.schemas.seat import SeatAvailabilityResponse, SeatCreate, SeatResponse

__all__ = [
    "BookingCreate", "BookingResponse", "BookingListResponse",
    "EmployeeCreate", "EmployeeUpdate", "EmployeeResponse",
    "SeatCreate", "SeatResponse", "SeatAvailabilityResponse",
]
