"""
Headline numbers for the admin dashboard.
"""

from datetime import date

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from seat_booking.models.booking import ACTIVE_STATUSES, Booking, BookingStatus
from seat_booking.models.employee import Employee, EmployeeStatus
from seat_booking.models.seat import Seat


async def get_dashboard_metrics(db: AsyncSession, current_day: date) -> dict:
    employee_counts = dict(
        (await db.execute(select(Employee.status, func.count()).group_by(Employee.status))).all()
    )
    total_seats = (
        await db.execute(select(func.count()).select_from(Seat).where(Seat.deleted_at.is_(None)))
    ).scalar()
    booking_counts = dict(
        (
            await db.execute(
                select(Booking.status, func.count())
                .where(Booking.booking_date == current_day, Booking.status.in_(ACTIVE_STATUSES))
                .group_by(Booking.status)
            )
        ).all()
    )

    active = employee_counts.get(EmployeeStatus.ACTIVE.value, 0)
    inactive = employee_counts.get(EmployeeStatus.INACTIVE.value, 0)
    checked_in = booking_counts.get(BookingStatus.CHECKED_IN.value, 0)
    confirmed = booking_counts.get(BookingStatus.CONFIRMED.value, 0)
    return {
        "total_employees": active + inactive,
        "active_employees": active,
        "inactive_employees": inactive,
        "total_seats": total_seats,
        "today_bookings": checked_in + confirmed,
        "today_checked_in": checked_in,
        "today_confirmed": confirmed,
    }
