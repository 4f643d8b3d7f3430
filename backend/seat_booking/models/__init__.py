from seat_booking.models.booking import Booking, BookingStatus
from seat_booking.models.employee import Employee, EmployeeRole, EmployeeStatus
from seat_booking.models.seat import Seat

__all__ = [
    "Booking", "BookingStatus",
    "Employee", "EmployeeRole", "EmployeeStatus",
    "Seat",
]
