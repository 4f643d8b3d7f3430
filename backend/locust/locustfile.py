"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Many employees, one seat, one day
  locust -f locustfile.py --tags throughput   # Availability grid (cache)
  locust -f locustfile.py --tags edge         # Bad input
  locust -f locustfile.py                     # All tests

Tokens are minted locally with the service's SECRET_KEY, so set the same
SECRET_KEY in the environment of both the API and locust.
"""

import io
import os
import random
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from jose import jwt
from locust import HttpUser, between, events, tag, task
from locust.clients import HttpSession

SECRET_KEY = os.environ.get("SECRET_KEY", "super-secret-key-change-in-production")
ALGORITHM = os.environ.get("ALGORITHM", "HS256")
OFFICE_TZ = ZoneInfo(os.environ.get("TIMEZONE", "Asia/Kolkata"))
LOAD_EMPLOYEES = int(os.environ.get("LOAD_EMPLOYEES", "200"))

# Shared state
EMPLOYEE_IDS = []
SEAT_IDS = []
CONTESTED_SEAT_ID = None


def mint_token(employee_id, role="employee"):
    payload = {
        "sub": str(employee_id),
        "role": role,
        "exp": datetime.now(timezone.utc) + timedelta(hours=2),
    }
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def auth(employee_id, role="employee"):
    return {"Authorization": f"Bearer {mint_token(employee_id, role)}"}


def tomorrow():
    return (datetime.now(OFFICE_TZ).date() + timedelta(days=1)).isoformat()


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    """Setup: seed employees and seats through the admin API."""
    global CONTESTED_SEAT_ID
    client = HttpSession(base_url=environment.host, request_event=environment.events.request, user=None)
    admin = auth(0, role="admin")

    rows = "\n".join(
        f"LOAD{n:04d},Load User {n},load{n:04d}@example.com,employee" for n in range(LOAD_EMPLOYEES)
    )
    client.post(
        "/api/v1/admin/employees/bulk-upload",
        files={"file": ("employees.csv", io.BytesIO(f"employee_code,name,email,role\n{rows}\n".encode()), "text/csv")},
        headers=admin,
    )
    seats = "\n".join(f"LOAD-{n:03d}" for n in range(20))
    client.post(
        "/api/v1/admin/seats/bulk-upload",
        files={"file": ("seats.csv", io.BytesIO(f"seat_number\n{seats}\n".encode()), "text/csv")},
        headers=admin,
    )

    page = 1
    while True:
        resp = client.get(
            "/api/v1/admin/employees",
            params={"search": "load", "page": page, "page_size": 100},
            headers=admin,
        )
        items = resp.json().get("items", []) if resp.status_code == 200 else []
        EMPLOYEE_IDS.extend(item["id"] for item in items)
        if len(items) < 100:
            break
        page += 1

    resp = client.get("/api/v1/seats", headers=admin)
    if resp.status_code == 200:
        SEAT_IDS.extend(seat["id"] for seat in resp.json() if seat["seat_number"].startswith("LOAD-"))
    if SEAT_IDS:
        CONTESTED_SEAT_ID = SEAT_IDS[0]
    print(f"\nSeeded {len(EMPLOYEE_IDS)} employees and {len(SEAT_IDS)} seats\n")


class EmployeeUser(HttpUser):
    abstract = True

    def on_start(self):
        self.employee_id = random.choice(EMPLOYEE_IDS) if EMPLOYEE_IDS else None
        self.headers = auth(self.employee_id) if self.employee_id else {}


class ConcurrencyUser(EmployeeUser):
    """
    TEST 1: Concurrency - every user wants the same seat for tomorrow

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM bookings
      WHERE seat_id = X AND booking_date = 'tomorrow' AND status IN ('confirmed', 'checked_in');
    Should be exactly 1
    """
    wait_time = between(0, 0.1)

    @tag("concurrency")
    @task
    def book_contested_seat(self):
        if not CONTESTED_SEAT_ID or not self.headers:
            return

        with self.client.post(
            "/api/v1/bookings",
            json={"seat_id": CONTESTED_SEAT_ID, "booking_date": tomorrow()},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # Expected: seat or employee already booked
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(EmployeeUser):
    """
    TEST 2: Throughput - availability grid with and without Redis

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false on the API, run again
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def availability(self):
        if self.headers:
            self.client.get(
                "/api/v1/seats/availability",
                params={"date": tomorrow()},
                headers=self.headers,
                name="/api/v1/seats/availability [cached]",
            )

    @tag("throughput", "read")
    @task(3)
    def my_bookings(self):
        if self.headers:
            self.client.get("/api/v1/bookings/me", headers=self.headers, name="/api/v1/bookings/me")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(EmployeeUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s
    """
    wait_time = between(0.5, 1.5)

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_seat(self):
        with self.client.post(
            "/api/v1/bookings",
            json={"seat_id": 999999, "booking_date": tomorrow()},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def past_date(self):
        yesterday = (datetime.now(OFFICE_TZ).date() - timedelta(days=1)).isoformat()
        with self.client.post(
            "/api/v1/bookings",
            json={"seat_id": CONTESTED_SEAT_ID or 1, "booking_date": yesterday},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(
            "/api/v1/bookings",
            data="not json at all",
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, [400, 422])

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.post(
            "/api/v1/bookings",
            json={"seat_id": 1, "booking_date": tomorrow()},
            catch_response=True,
        ) as resp:
            self._expect(resp, [401])


class RealisticUser(EmployeeUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

      - Mostly looking at the grid
      - Some bookings on random seats and days this week
      - Occasional cancellations
    """
    wait_time = between(1, 3)

    @task(50)
    def browse_grid(self):
        if self.headers:
            self.client.get(
                "/api/v1/seats/availability",
                params={"date": tomorrow()},
                headers=self.headers,
                name="/api/v1/seats/availability",
            )

    @task(10)
    def book_random_seat(self):
        if SEAT_IDS and self.headers:
            day = datetime.now(OFFICE_TZ).date() + timedelta(days=random.randint(1, 5))
            with self.client.post(
                "/api/v1/bookings",
                json={"seat_id": random.choice(SEAT_IDS), "booking_date": day.isoformat()},
                headers=self.headers,
                name="/api/v1/bookings",
                catch_response=True,
            ) as resp:
                if resp.status_code in (201, 400, 409):
                    resp.success()

    @task(3)
    def cancel_latest(self):
        if not self.headers:
            return
        resp = self.client.get("/api/v1/bookings/me", params={"status": "confirmed"}, headers=self.headers)
        items = resp.json().get("items", []) if resp.status_code == 200 else []
        if items:
            with self.client.post(
                f"/api/v1/bookings/{items[0]['id']}/cancel",
                headers=self.headers,
                name="/api/v1/bookings/{id}/cancel",
                catch_response=True,
            ) as cancel:
                if cancel.status_code in (200, 403, 409):
                    cancel.success()
