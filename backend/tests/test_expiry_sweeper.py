"""
Tests for the expiry sweeper.
"""

from datetime import date

import pytest
from httpx import AsyncClient
from sqlalchemy import update

from seat_booking.models.booking import Booking
from seat_booking.services import booking_ledger, expiry_sweeper
from seat_booking.services.expiry_sweeper import sweep_expired_bookings

TODAY = date(2024, 6, 10)
YESTERDAY = date(2024, 6, 9)


async def _status_of(session_factory, booking_id):
    async with session_factory() as db:
        return (await booking_ledger.get(db, booking_id)).status


@pytest.mark.asyncio
async def test_sweep_expires_past_confirmed_bookings(session_factory, employee, other_employee, seats, make_booking):
    stale = await make_booking(employee, seats[0], YESTERDAY)
    older = await make_booking(other_employee, seats[1], date(2024, 6, 3))
    checked_in = await make_booking(other_employee, seats[2], YESTERDAY, status="checked_in")
    cancelled = await make_booking(employee, seats[2], YESTERDAY, status="cancelled")
    today = await make_booking(employee, seats[0], TODAY)

    result = await sweep_expired_bookings(session_factory, TODAY)

    assert result.scanned == 2
    assert result.expired == 2
    assert result.skipped == 0
    assert result.failed == 0
    assert await _status_of(session_factory, stale.id) == "expired"
    assert await _status_of(session_factory, older.id) == "expired"
    assert await _status_of(session_factory, checked_in.id) == "checked_in"
    assert await _status_of(session_factory, cancelled.id) == "cancelled"
    assert await _status_of(session_factory, today.id) == "confirmed"


@pytest.mark.asyncio
async def test_sweep_is_idempotent(session_factory, employee, seat, make_booking):
    await make_booking(employee, seat, YESTERDAY)

    first = await sweep_expired_bookings(session_factory, TODAY)
    second = await sweep_expired_bookings(session_factory, TODAY)

    assert first.expired == 1
    assert second.scanned == 0
    assert second.expired == 0


@pytest.mark.asyncio
async def test_sweep_skips_rows_changed_since_scan(session_factory, employee, other_employee, seats, make_booking, monkeypatch):
    """A row cancelled between the scan and its transition loses the CAS."""
    raced = await make_booking(employee, seats[0], YESTERDAY)
    plain = await make_booking(other_employee, seats[1], YESTERDAY)

    original = booking_ledger.list_expirable

    async def list_then_race(db, current_day):
        rows = await original(db, current_day)
        async with session_factory() as other:
            await other.execute(
                update(Booking).where(Booking.id == raced.id).values(status="cancelled")
            )
            await other.commit()
        return rows

    monkeypatch.setattr(expiry_sweeper.booking_ledger, "list_expirable", list_then_race)

    result = await sweep_expired_bookings(session_factory, TODAY)

    assert result.scanned == 2
    assert result.expired == 1
    assert result.skipped == 1
    assert await _status_of(session_factory, raced.id) == "cancelled"
    assert await _status_of(session_factory, plain.id) == "expired"


@pytest.mark.asyncio
async def test_sweep_continues_after_row_failure(session_factory, employee, other_employee, seats, make_booking, monkeypatch):
    broken = await make_booking(employee, seats[0], YESTERDAY)
    healthy = await make_booking(other_employee, seats[1], YESTERDAY)

    original = booking_ledger.transition

    async def flaky_transition(db, booking_id, *args, **kwargs):
        if booking_id == broken.id:
            raise RuntimeError("connection reset")
        return await original(db, booking_id, *args, **kwargs)

    monkeypatch.setattr(expiry_sweeper.booking_ledger, "transition", flaky_transition)

    result = await sweep_expired_bookings(session_factory, TODAY)

    assert result.failed == 1
    assert result.expired == 1
    assert await _status_of(session_factory, broken.id) == "confirmed"
    assert await _status_of(session_factory, healthy.id) == "expired"


@pytest.mark.asyncio
async def test_expire_endpoint(client: AsyncClient, admin_headers, employee, seat, make_booking):
    await make_booking(employee, seat, YESTERDAY)

    response = await client.post("/api/v1/admin/bookings/expire", headers=admin_headers)
    assert response.status_code == 200
    assert response.json() == {"scanned": 1, "expired": 1, "skipped": 0, "failed": 0}


@pytest.mark.asyncio
async def test_expire_endpoint_requires_admin(client: AsyncClient, auth_headers):
    response = await client.post("/api/v1/admin/bookings/expire", headers=auth_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_expired_booking_shows_in_history(client: AsyncClient, auth_headers, admin_headers, employee, seat, make_booking):
    booking = await make_booking(employee, seat, YESTERDAY)
    await client.post("/api/v1/admin/bookings/expire", headers=admin_headers)

    response = await client.get("/api/v1/bookings/me", params={"status": "expired"}, headers=auth_headers)
    assert [item["id"] for item in response.json()["items"]] == [booking.id]

    grid = await client.get(
        "/api/v1/seats/availability", params={"date": YESTERDAY.isoformat()}, headers=auth_headers
    )
    assert grid.json()[0]["status"] == "available"
