"""
Pytest fixtures for test database, client, clock, and authentication.

Each test gets a fresh schema. By default that is a throw-away SQLite file
(the partial unique indexes behave the same there); set TEST_DATABASE_URL to
run against PostgreSQL instead.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("SWEEPER_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("TIMEZONE", "Asia/Kolkata")

from datetime import date, datetime
from typing import AsyncGenerator
from zoneinfo import ZoneInfo

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from seat_booking.core.clock import Clock, get_clock
from seat_booking.core.security import create_access_token
from seat_booking.db.base import Base
from seat_booking.db.session import get_db, get_session_factory
from seat_booking.main import app
from seat_booking.models.booking import Booking, BookingStatus
from seat_booking.models.employee import Employee, EmployeeRole
from seat_booking.models.seat import Seat

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL")

OFFICE_TZ = ZoneInfo("Asia/Kolkata")
TODAY = date(2024, 6, 10)


def local(year: int, month: int, day: int, hour: int = 0, minute: int = 0, second: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, second, tzinfo=OFFICE_TZ)


class FixedClock(Clock):
    """A clock that only moves when the test says so."""

    def __init__(self, now: datetime):
        super().__init__("Asia/Kolkata")
        self.current = now

    def now(self) -> datetime:
        return self.current

    def set(self, now: datetime) -> None:
        self.current = now


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    url = TEST_DATABASE_URL or f"sqlite+aiosqlite:///{tmp_path / 'seat_booking_test.db'}"
    test_engine = create_async_engine(url, echo=False)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FixedClock:
    """Monday 2024-06-10, 09:00 office time."""
    return FixedClock(local(2024, 6, 10, 9, 0))


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, session_factory, clock) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with the DB, session factory and clock overridden."""

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_clock] = lambda: clock

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _add_employee(db: AsyncSession, code: str, name: str, role: str = "employee") -> Employee:
    employee = Employee(
        employee_code=code,
        name=name,
        email=f"{code.lower()}@example.com",
        role=role,
    )
    db.add(employee)
    await db.commit()
    await db.refresh(employee)
    return employee


@pytest_asyncio.fixture
async def employee(db_session: AsyncSession) -> Employee:
    return await _add_employee(db_session, "E1", "Asha Rao")


@pytest_asyncio.fixture
async def other_employee(db_session: AsyncSession) -> Employee:
    return await _add_employee(db_session, "E2", "Ravi Kumar")


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> Employee:
    return await _add_employee(db_session, "ADM1", "Office Admin", role=EmployeeRole.ADMIN.value)


@pytest_asyncio.fixture
async def seats(db_session: AsyncSession) -> list[Seat]:
    created = [Seat(seat_number=number) for number in ("S-101", "S-102", "S-103")]
    db_session.add_all(created)
    await db_session.commit()
    for seat in created:
        await db_session.refresh(seat)
    return created


@pytest_asyncio.fixture
async def seat(seats) -> Seat:
    return seats[0]


def token_for(employee: Employee) -> str:
    return create_access_token(data={"sub": str(employee.id), "role": employee.role})


@pytest.fixture
def auth_headers(employee: Employee) -> dict:
    return {"Authorization": f"Bearer {token_for(employee)}"}


@pytest.fixture
def other_auth_headers(other_employee: Employee) -> dict:
    return {"Authorization": f"Bearer {token_for(other_employee)}"}


@pytest.fixture
def admin_headers(admin: Employee) -> dict:
    return {"Authorization": f"Bearer {token_for(admin)}"}


@pytest.fixture
def make_booking(db_session: AsyncSession):
    """Insert a booking row directly, bypassing the date/horizon rules."""

    async def _make(employee: Employee, seat: Seat, booking_date: date, status: str = "confirmed", **extra) -> Booking:
        if status == BookingStatus.CHECKED_IN.value and "check_in_time" not in extra:
            extra["check_in_time"] = local(booking_date.year, booking_date.month, booking_date.day, 9, 0)
        booking = Booking(
            employee_id=employee.id,
            seat_id=seat.id,
            booking_date=booking_date,
            status=status,
            **extra,
        )
        db_session.add(booking)
        await db_session.commit()
        await db_session.refresh(booking)
        return booking

    return _make
