"""
Tests for booking endpoints: reserve, cancel, check in, history and the
seat grid, including conflict and time-window scenarios.
"""

import pytest
from httpx import AsyncClient
from prometheus_client import REGISTRY

from conftest import local

TODAY = "2024-06-10"
TOMORROW = "2024-06-11"


async def _book(client: AsyncClient, headers, seat_id: int, booking_date: str = TODAY, **kwargs):
    return await client.post(
        "/api/v1/bookings",
        json={"seat_id": seat_id, "booking_date": booking_date},
        headers=headers,
        **kwargs,
    )


async def _grid(client: AsyncClient, headers, booking_date: str = TODAY) -> dict:
    response = await client.get(
        "/api/v1/seats/availability", params={"date": booking_date}, headers=headers
    )
    assert response.status_code == 200
    return {row["seat_number"]: row for row in response.json()}


@pytest.mark.asyncio
async def test_book_seat(client: AsyncClient, auth_headers, employee, seat):
    """Successful booking is confirmed and shows up as `mine`."""
    response = await _book(client, auth_headers, seat.id)
    assert response.status_code == 201
    data = response.json()
    assert data["seat_id"] == seat.id
    assert data["seat_number"] == "S-101"
    assert data["employee_id"] == employee.id
    assert data["booking_date"] == TODAY
    assert data["status"] == "confirmed"
    assert data["check_in_time"] is None

    grid = await _grid(client, auth_headers)
    assert grid["S-101"]["status"] == "mine"
    assert grid["S-101"]["booking_id"] == data["id"]
    assert grid["S-102"]["status"] == "available"


@pytest.mark.asyncio
async def test_book_unauthenticated(client: AsyncClient, seat):
    """No token returns 401."""
    response = await _book(client, {}, seat.id)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_book_with_invalid_token(client: AsyncClient, seat):
    response = await _book(client, {"Authorization": "Bearer not-a-jwt"}, seat.id)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_book_taken_seat(client: AsyncClient, auth_headers, other_auth_headers, seat):
    """Second employee on the same seat and day gets 409 seat_already_booked."""
    assert (await _book(client, auth_headers, seat.id)).status_code == 201

    response = await _book(client, other_auth_headers, seat.id)
    assert response.status_code == 409
    assert response.json()["code"] == "seat_already_booked"
    assert response.json()["detail"] == "This seat is already booked for the selected date"

    grid = await _grid(client, other_auth_headers)
    assert grid["S-101"]["status"] == "booked"
    assert grid["S-101"]["booking_id"] is None


@pytest.mark.asyncio
async def test_book_second_seat_same_day(client: AsyncClient, auth_headers, seats):
    """An employee can hold only one seat per day."""
    assert (await _book(client, auth_headers, seats[0].id)).status_code == 201

    response = await _book(client, auth_headers, seats[1].id)
    assert response.status_code == 409
    assert response.json()["code"] == "employee_already_booked"


@pytest.mark.asyncio
async def test_book_same_seat_on_other_days(client: AsyncClient, auth_headers, other_auth_headers, seat):
    assert (await _book(client, auth_headers, seat.id, TODAY)).status_code == 201
    assert (await _book(client, auth_headers, seat.id, TOMORROW)).status_code == 201
    assert (await _book(client, other_auth_headers, seat.id, "2024-06-12")).status_code == 201


@pytest.mark.asyncio
async def test_book_past_date(client: AsyncClient, auth_headers, seat):
    response = await _book(client, auth_headers, seat.id, "2024-06-09")
    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"


@pytest.mark.asyncio
async def test_book_beyond_horizon(client: AsyncClient, auth_headers, seat):
    """Bookings are open through the end of the current month."""
    assert (await _book(client, auth_headers, seat.id, "2024-06-30")).status_code == 201

    response = await _book(client, auth_headers, seat.id, "2024-07-01")
    assert response.status_code == 400
    assert "2024-06-30" in response.json()["detail"]


@pytest.mark.asyncio
async def test_book_unknown_seat(client: AsyncClient, auth_headers, employee):
    response = await _book(client, auth_headers, 9999)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_book_with_idempotency_key(client: AsyncClient, auth_headers, seat):
    """Retrying with the same Idempotency-Key returns the first booking."""
    headers = {**auth_headers, "Idempotency-Key": "retry-abc"}
    first = await _book(client, headers, seat.id)
    second = await _book(client, headers, seat.id)

    assert first.status_code == 201
    assert second.status_code == 201
    assert second.json()["id"] == first.json()["id"]


@pytest.mark.asyncio
async def test_idempotency_key_reused_for_other_seat(client: AsyncClient, auth_headers, seats):
    """The same Idempotency-Key for a different seat or date is a 409, not a replay."""
    headers = {**auth_headers, "Idempotency-Key": "retry-abc"}
    seat_ids = [s.id for s in seats]
    assert (await _book(client, headers, seat_ids[0])).status_code == 201

    response = await _book(client, headers, seat_ids[1])
    assert response.status_code == 409
    assert response.json()["code"] == "idempotency_key_reused"

    response = await _book(client, headers, seat_ids[0], TOMORROW)
    assert response.status_code == 409
    assert response.json()["code"] == "idempotency_key_reused"

    grid = await _grid(client, auth_headers)
    assert [row["status"] for row in grid.values()] == ["mine", "available", "available"]


@pytest.mark.asyncio
async def test_inactive_employee_cannot_book(client: AsyncClient, auth_headers, admin_headers, employee, seat):
    response = await client.delete(f"/api/v1/admin/employees/{employee.id}", headers=admin_headers)
    assert response.status_code == 200

    response = await _book(client, auth_headers, seat.id)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_cancel_future_booking(client: AsyncClient, auth_headers, other_auth_headers, seat, clock):
    """Cancelling a future booking frees the seat for someone else."""
    booking_id = (await _book(client, auth_headers, seat.id, TOMORROW)).json()["id"]

    clock.set(local(2024, 6, 10, 18, 0))
    response = await client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "cancelled"
    assert data["booking_id"] == booking_id
    assert data["message"] == "Booking cancelled successfully"

    grid = await _grid(client, other_auth_headers, TOMORROW)
    assert grid["S-101"]["status"] == "available"
    assert (await _book(client, other_auth_headers, seat.id, TOMORROW)).status_code == 201


@pytest.mark.asyncio
async def test_cancel_counts_one_committed_transition(client: AsyncClient, auth_headers, seat):
    labels = {"from_status": "confirmed", "to_status": "cancelled"}
    booking_id = (await _book(client, auth_headers, seat.id, TOMORROW)).json()["id"]
    before = REGISTRY.get_sample_value("seat_booking_transitions_total", labels) or 0.0

    assert (await client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=auth_headers)).status_code == 200
    assert (await client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=auth_headers)).status_code == 403

    after = REGISTRY.get_sample_value("seat_booking_transitions_total", labels)
    assert after == before + 1


@pytest.mark.asyncio
async def test_cancel_today_before_cutoff(client: AsyncClient, auth_headers, seat, clock):
    booking_id = (await _book(client, auth_headers, seat.id)).json()["id"]

    clock.set(local(2024, 6, 10, 10, 29, 59))
    response = await client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=auth_headers)
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_cancel_today_after_cutoff(client: AsyncClient, auth_headers, seat, clock):
    """From 10:30 today's booking can no longer be cancelled."""
    booking_id = (await _book(client, auth_headers, seat.id)).json()["id"]

    clock.set(local(2024, 6, 10, 10, 30))
    response = await client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=auth_headers)
    assert response.status_code == 403
    assert response.json()["code"] == "forbidden"
    assert "10:30" in response.json()["detail"]


@pytest.mark.asyncio
async def test_cancel_twice(client: AsyncClient, auth_headers, seat):
    booking_id = (await _book(client, auth_headers, seat.id, TOMORROW)).json()["id"]
    assert (await client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=auth_headers)).status_code == 200

    response = await client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=auth_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_cancel_someone_elses_booking(client: AsyncClient, auth_headers, other_auth_headers, seat):
    """Another employee's booking looks like it does not exist."""
    booking_id = (await _book(client, auth_headers, seat.id, TOMORROW)).json()["id"]

    response = await client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=other_auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_cancel_missing_booking(client: AsyncClient, auth_headers, employee):
    response = await client.post("/api/v1/bookings/9999/cancel", headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_check_in(client: AsyncClient, auth_headers, other_auth_headers, seat, clock):
    booking_id = (await _book(client, auth_headers, seat.id)).json()["id"]

    clock.set(local(2024, 6, 10, 9, 45))
    response = await client.post(f"/api/v1/bookings/{booking_id}/check-in", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "checked_in"
    assert data["check_in_time"] is not None

    assert (await _grid(client, auth_headers))["S-101"]["status"] == "checked_in"
    assert (await _grid(client, other_auth_headers))["S-101"]["status"] == "booked"


@pytest.mark.asyncio
async def test_check_in_on_wrong_day(client: AsyncClient, auth_headers, seat):
    booking_id = (await _book(client, auth_headers, seat.id, TOMORROW)).json()["id"]

    response = await client.post(f"/api/v1/bookings/{booking_id}/check-in", headers=auth_headers)
    assert response.status_code == 403
    assert response.json()["detail"] == "Check-in is only possible on the day of the booking"


@pytest.mark.asyncio
async def test_check_in_twice(client: AsyncClient, auth_headers, seat):
    booking_id = (await _book(client, auth_headers, seat.id)).json()["id"]
    assert (await client.post(f"/api/v1/bookings/{booking_id}/check-in", headers=auth_headers)).status_code == 200

    response = await client.post(f"/api/v1/bookings/{booking_id}/check-in", headers=auth_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_checked_in_booking_cannot_be_cancelled(client: AsyncClient, auth_headers, seat):
    booking_id = (await _book(client, auth_headers, seat.id)).json()["id"]
    await client.post(f"/api/v1/bookings/{booking_id}/check-in", headers=auth_headers)

    response = await client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=auth_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_full_day_for_one_seat(
    client: AsyncClient, auth_headers, other_auth_headers, admin_headers, seat, clock
):
    """
    E1 books S-101 for today, E2 is turned away, E1 checks in after the
    cancel cutoff, and the next day's sweep leaves the checked-in row alone.
    """
    booking_id = (await _book(client, auth_headers, seat.id)).json()["id"]

    rejected = await _book(client, other_auth_headers, seat.id)
    assert rejected.json()["code"] == "seat_already_booked"

    clock.set(local(2024, 6, 10, 11, 0))
    assert (await client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=auth_headers)).status_code == 403
    assert (await client.post(f"/api/v1/bookings/{booking_id}/check-in", headers=auth_headers)).status_code == 200

    clock.set(local(2024, 6, 11, 1, 0))
    sweep = await client.post("/api/v1/admin/bookings/expire", headers=admin_headers)
    assert sweep.status_code == 200
    assert sweep.json()["expired"] == 0

    history = await client.get("/api/v1/bookings/me", headers=auth_headers)
    assert history.json()["items"][0]["status"] == "checked_in"


@pytest.mark.asyncio
async def test_my_bookings(client: AsyncClient, auth_headers, other_auth_headers, seats):
    """History is the caller's own bookings, newest date first, filterable."""
    await _book(client, auth_headers, seats[0].id, TODAY)
    tomorrow_id = (await _book(client, auth_headers, seats[1].id, TOMORROW)).json()["id"]
    await client.post(f"/api/v1/bookings/{tomorrow_id}/cancel", headers=auth_headers)
    await _book(client, other_auth_headers, seats[2].id, TODAY)

    response = await client.get("/api/v1/bookings/me", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert [item["booking_date"] for item in data["items"]] == [TOMORROW, TODAY]

    cancelled = await client.get("/api/v1/bookings/me", params={"status": "cancelled"}, headers=auth_headers)
    assert [item["id"] for item in cancelled.json()["items"]] == [tomorrow_id]

    on_day = await client.get("/api/v1/bookings/me", params={"date": TODAY}, headers=auth_headers)
    assert on_day.json()["total"] == 1
    assert on_day.json()["items"][0]["seat_number"] == "S-101"


@pytest.mark.asyncio
async def test_my_bookings_rejects_unknown_status(client: AsyncClient, auth_headers, employee):
    response = await client.get("/api/v1/bookings/me", params={"status": "pending"}, headers=auth_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_availability_requires_date(client: AsyncClient, auth_headers, seat):
    response = await client.get("/api/v1/seats/availability", headers=auth_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_seats(client: AsyncClient, auth_headers, seats):
    response = await client.get("/api/v1/seats", headers=auth_headers)
    assert response.status_code == 200
    assert [s["seat_number"] for s in response.json()] == ["S-101", "S-102", "S-103"]


@pytest.mark.asyncio
async def test_me(client: AsyncClient, auth_headers, employee):
    response = await client.get("/api/v1/auth/me", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["employee_code"] == "E1"
    assert response.json()["role"] == "employee"
