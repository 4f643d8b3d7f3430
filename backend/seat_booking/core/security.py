"""
Caller identity from a bearer JWT.

Tokens are minted by the identity provider; this service only verifies them
and turns the claims into an explicit Identity that is passed into every
reservation operation.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from seat_booking.core.config import get_settings
from seat_booking.core.exceptions import ForbiddenError
from seat_booking.models.employee import EmployeeRole

settings = get_settings()

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    employee_id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == EmployeeRole.ADMIN


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode["exp"] = expire
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Identity:
    """Raises JWTError or ValueError on a bad token."""
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    subject = payload.get("sub")
    if subject is None:
        raise JWTError("token has no subject")
    return Identity(
        employee_id=int(subject),
        role=payload.get("role", EmployeeRole.EMPLOYEE.value),
    )


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Identity:
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise unauthorized
    try:
        return decode_access_token(credentials.credentials)
    except (JWTError, ValueError):
        raise unauthorized


async def get_current_employee_id(identity: Identity = Depends(get_current_identity)) -> int:
    return identity.employee_id


async def require_admin(identity: Identity = Depends(get_current_identity)) -> Identity:
    if not identity.is_admin:
        raise ForbiddenError("Administrator access required")
    return identity
