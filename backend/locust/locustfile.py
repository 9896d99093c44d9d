"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags contention  # Many passengers, few seats
  locust -f locustfile.py --tags throughput  # Trip search cache
  locust -f locustfile.py --tags edge        # Bad input
  locust -f locustfile.py                    # All tests

Set LOCUST_TRIP_ID to an existing trip; LOCUST_TRIP_FROM/TO/DATE select the
route searched by the throughput users.
"""

import os
import random

from locust import HttpUser, task, between, tag, events

TRIP_ID = int(os.environ.get("LOCUST_TRIP_ID", "1"))
TRIP_FROM = os.environ.get("LOCUST_TRIP_FROM", "Irbid")
TRIP_TO = os.environ.get("LOCUST_TRIP_TO", "JUST university")
TRIP_DATE = os.environ.get("LOCUST_TRIP_DATE", "")
HOT_SEATS = list(range(1, 11))


def random_phone():
    return "07" + "".join(random.choices("0123456789", k=8))


def register_and_login(client):
    """Register a throwaway passenger and return auth headers (empty on failure)."""
    phone = random_phone()
    email = f"load_{phone}@test.com"
    client.post("/api/v1/auth/register", json={
        "name": "Load Tester",
        "email": email,
        "phone": phone,
        "password": "test123",
    })
    resp = client.post("/api/v1/auth/login", json={"email": email, "password": "test123"})
    if resp.status_code == 200:
        return {"Authorization": f"Bearer {resp.json()['access_token']}"}
    return {}


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print(f"\nContention target: trip {TRIP_ID}, seats {HOT_SEATS[0]}-{HOT_SEATS[-1]}\n")


class ContentionUser(HttpUser):
    """
    TEST 1: Seat contention - every user fights for the same 10 seats

    Run: locust -f locustfile.py --tags contention -u 100 -r 50 --run-time 30s

    After the run, verify no seat was handed out twice:
      SELECT seat_number, COUNT(*) FROM seat_allocations
      WHERE trip_id = X GROUP BY seat_number HAVING COUNT(*) > 1;
    Should return no rows.
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = register_and_login(self.client)

    @tag("contention")
    @task
    def hold_and_confirm(self):
        if not self.headers:
            return

        seats = random.sample(HOT_SEATS, random.randint(1, 2))
        with self.client.post("/api/v1/bookings/hold",
            json={"tripId": TRIP_ID, "pickup": "Load Stop", "dropoff": "Main Gate", "seats": seats},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code == 409:
                resp.success()  # Expected: someone else holds it
                return
            if resp.status_code != 200:
                resp.failure(f"Unexpected: {resp.status_code}")
                return
            booking_id = resp.json()["bookingId"]

        with self.client.post("/api/v1/bookings/confirm",
            json={"bookingId": booking_id},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code in (200, 409):
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - trip search cache and the uncached seat map

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: Stop Redis, run again
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def search_trips_cached(self):
        if TRIP_DATE:
            self.client.get("/api/v1/trips/",
                params={"from": TRIP_FROM, "to": TRIP_TO, "date": TRIP_DATE},
                name="/api/v1/trips/ [cached]")

    @tag("throughput", "read")
    @task(5)
    def seat_map(self):
        self.client.get(f"/api/v1/trips/{TRIP_ID}/seats", name="/api/v1/trips/{id}/seats")

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
        self.headers = register_and_login(self.client)

    def _expect(self, payload, codes, **kwargs):
        with self.client.post("/api/v1/bookings/hold",
            headers=kwargs.pop("headers", self.headers),
            catch_response=True,
            **({"json": payload} if payload is not None else kwargs),
        ) as resp:
            if resp.status_code in codes:
                resp.success()
            else:
                resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_trip(self):
        self._expect({"tripId": 999999, "pickup": "A", "dropoff": "B", "seats": [1]}, (404,))

    @tag("edge")
    @task
    def duplicate_seats(self):
        self._expect({"tripId": TRIP_ID, "pickup": "A", "dropoff": "B", "seats": [3, 3]}, (400,))

    @tag("edge")
    @task
    def empty_seats(self):
        self._expect({"tripId": TRIP_ID, "pickup": "A", "dropoff": "B", "seats": []}, (400,))

    @tag("edge")
    @task
    def seat_beyond_bus(self):
        self._expect({"tripId": TRIP_ID, "pickup": "A", "dropoff": "B", "seats": [999]}, (400,))

    @tag("edge")
    @task
    def malformed_json(self):
        self._expect(None, (400,), data="not json at all")

    @tag("edge")
    @task
    def missing_auth(self):
        self._expect({"tripId": TRIP_ID, "pickup": "A", "dropoff": "B", "seats": [1]}, (401,), headers={})

    @tag("edge")
    @task
    def bogus_ticket(self):
        with self.client.post("/api/v1/tickets/scan",
            json={"ticketToken": "not-a-ticket"},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            # Passengers may not scan at all.
            if resp.status_code in (403, 404):
                resp.success()
            else:
                resp.failure(f"Expected 403/404, got {resp.status_code}")
