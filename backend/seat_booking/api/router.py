"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter

from seat_booking.api.routes import admin, admin_employees, admin_seats, auth, bookings, seats

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
api_router.include_router(seats.router)
api_router.include_router(bookings.router)
api_router.include_router(admin_seats.router)
api_router.include_router(admin_employees.router)
api_router.include_router(admin.router)
