"""
Typed domain errors and their HTTP mapping.

Services raise these instead of HTTPException so that the reservation core
stays transport-agnostic. Each error carries a stable `code` that clients can
switch on and a human-readable message that is safe to show to the user.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from seat_booking.core.logging import get_logger

logger = get_logger(__name__)

GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."


class DomainError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "domain_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(DomainError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"


class ForbiddenError(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ConflictError(DomainError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class SeatAlreadyBookedError(ConflictError):
    code = "seat_already_booked"

    def __init__(self, message: str = "This seat is already booked for the selected date"):
        super().__init__(message)


class EmployeeAlreadyBookedError(ConflictError):
    code = "employee_already_booked"

    def __init__(self, message: str = "You already have a booking for this date"):
        super().__init__(message)


class IdempotencyKeyReusedError(ConflictError):
    code = "idempotency_key_reused"

    def __init__(self, message: str = "Idempotency-Key was already used for a different booking request"):
        super().__init__(message)


class DuplicateSeatNumberError(ConflictError):
    code = "duplicate_seat_number"


class DuplicateEmployeeError(ConflictError):
    code = "duplicate_employee"


class StaleStateError(DomainError):
    """A compare-and-set transition found the booking in another status."""

    status_code = status.HTTP_409_CONFLICT
    code = "stale_state"

    def __init__(self, booking_id: int, expected: str, actual: str):
        self.booking_id = booking_id
        self.expected = expected
        self.actual = actual
        super().__init__("This booking was already updated. Please refresh and try again.")


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    logger.warning(
        "domain_error",
        code=exc.code,
        status_code=exc.status_code,
        detail=exc.message,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_exception", error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": GENERIC_ERROR_MESSAGE, "code": "internal_error"},
    )


EXCEPTION_HANDLERS = {
    DomainError: domain_error_handler,
    Exception: unhandled_exception_handler,
}


def register_exception_handlers(app: FastAPI) -> None:
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)
