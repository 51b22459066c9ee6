"""
Locust Load Test Suite

The trip under test must already exist (trips are created by fleet
administration). Tokens are minted locally with the API's signing key.

  TRIP_ID=1 SEAT_CAPACITY=40 SECRET_KEY=... locust -f locustfile.py

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test double booking
  locust -f locustfile.py --tags throughput   # Test seat map reads
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import os
import random
import string
from datetime import datetime, timedelta, timezone

import jwt
from locust import HttpUser, between, events, tag, task

TRIP_ID = int(os.getenv("TRIP_ID", "1"))
SEAT_CAPACITY = int(os.getenv("SEAT_CAPACITY", "40"))
SECRET_KEY = os.getenv("SECRET_KEY", "super-secret-key-change-in-production")

# Every ConcurrencyUser fights over this one seat
CONTESTED_SEAT = int(os.getenv("CONTESTED_SEAT", "1"))


def random_agent_id():
    return "agent_" + "".join(random.choices(string.ascii_lowercase, k=8))


def auth_headers(agent_id, role="agent"):
    token = jwt.encode(
        {
            "sub": agent_id,
            "role": role,
            "exp": datetime.now(timezone.utc) + timedelta(hours=2),
        },
        SECRET_KEY,
        algorithm="HS256",
    )
    return {"Authorization": f"Bearer {token}"}


def random_phone():
    return "07" + "".join(random.choices(string.digits, k=8))


def booking_payload(seat_number):
    return {
        "trip_id": TRIP_ID,
        "seat_number": seat_number,
        "passenger": {"name": f"Load Passenger {random.randint(1, 99999)}", "phone": random_phone()},
        "amount_paid": "25.00",
    }


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "="*60)
    print(f"Target trip {TRIP_ID}, {SEAT_CAPACITY} seats, contested seat {CONTESTED_SEAT}")
    print("="*60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - every user books the same seat

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM bookings
      WHERE trip_id = X AND seat_number = Y AND status IN ('booked', 'checked_in');
    Should be exactly 1
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = auth_headers(random_agent_id())

    @tag("concurrency")
    @task(3)
    def book_contested_seat(self):
        with self.client.post("/api/v1/bookings/",
            json=booking_payload(CONTESTED_SEAT),
            headers=self.headers,
            name="/api/v1/bookings/ [contested]",
            catch_response=True
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()  # 409: someone else won the seat
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("concurrency")
    @task(1)
    def reserve_contested_seat(self):
        with self.client.post(f"/api/v1/trips/{TRIP_ID}/seats/{CONTESTED_SEAT}/reserve",
            json={},
            headers=self.headers,
            name="/api/v1/trips/{id}/seats/{n}/reserve [contested]",
            catch_response=True
        ) as resp:
            if resp.status_code in (200, 409):
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - seat map and activity feed reads

    Run: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
    """
    wait_time = between(0.1, 0.5)

    def on_start(self):
        self.headers = auth_headers(random_agent_id())
        self.after_id = 0

    @tag("throughput", "read")
    @task(10)
    def seat_map(self):
        self.client.get(f"/api/v1/trips/{TRIP_ID}/seats", name="/api/v1/trips/{id}/seats")

    @tag("throughput", "read")
    @task(5)
    def poll_activity(self):
        resp = self.client.get(
            f"/api/v1/trips/{TRIP_ID}/activity?after_id={self.after_id}",
            headers=self.headers,
            name="/api/v1/trips/{id}/activity",
        )
        if resp.status_code == 200:
            self.after_id = resp.json()["next_after_id"]

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = auth_headers(random_agent_id())

    def _expect(self, resp, allowed):
        if resp.status_code in allowed:
            resp.success()
        else:
            resp.failure(f"Expected {allowed}, got {resp.status_code}")

    @tag("edge")
    @task
    def invalid_trip_id(self):
        payload = booking_payload(1)
        payload["trip_id"] = 999999
        with self.client.post("/api/v1/bookings/", json=payload,
            headers=self.headers, catch_response=True) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def seat_out_of_range(self):
        with self.client.post("/api/v1/bookings/", json=booking_payload(SEAT_CAPACITY + 1),
            headers=self.headers, catch_response=True) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def zero_amount(self):
        payload = booking_payload(random.randint(1, SEAT_CAPACITY))
        payload["amount_paid"] = "0"
        with self.client.post("/api/v1/bookings/", json=payload,
            headers=self.headers, catch_response=True) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post("/api/v1/bookings/", data="not json at all",
            headers=self.headers, catch_response=True) as resp:
            self._expect(resp, [400, 422])

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.post("/api/v1/bookings/", json=booking_payload(1),
            catch_response=True) as resp:
            self._expect(resp, [401])


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Mostly seat map views, some holds, occasional bookings and cancellations.
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.headers = auth_headers(random_agent_id())
        self.booking_ids = []

    @task(50)
    def view_seat_map(self):
        self.client.get(f"/api/v1/trips/{TRIP_ID}/seats", name="/api/v1/trips/{id}/seats")

    @task(10)
    def reserve_and_book(self):
        seat = random.randint(1, SEAT_CAPACITY)
        resp = self.client.post(f"/api/v1/trips/{TRIP_ID}/seats/{seat}/reserve",
            json={"hold_minutes": 10}, headers=self.headers,
            name="/api/v1/trips/{id}/seats/{n}/reserve")
        if resp.status_code != 200:
            return
        resp = self.client.post("/api/v1/bookings/", json=booking_payload(seat), headers=self.headers)
        if resp.status_code == 201:
            self.booking_ids.append(resp.json()["id"])

    @task(2)
    def cancel_booking(self):
        if self.booking_ids:
            booking_id = self.booking_ids.pop()
            self.client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=self.headers,
                name="/api/v1/bookings/{id}/cancel")
