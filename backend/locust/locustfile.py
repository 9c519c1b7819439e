"""
Locust Load Test Suite

Needs the API started with BOOTSTRAP_ADMIN_EMAIL / BOOTSTRAP_ADMIN_PASSWORD
set; the same values must be exported for locust so the setup step can
create events (event creation is reviewer-only).

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test overselling
  locust -f locustfile.py --tags throughput   # Test cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import os
import random
from datetime import date, timedelta

import requests
from locust import HttpUser, task, between, tag, events

ADMIN_EMAIL = os.environ.get("BOOTSTRAP_ADMIN_EMAIL", "admin@college.edu")
ADMIN_PASSWORD = os.environ.get("BOOTSTRAP_ADMIN_PASSWORD", "adminpassword")

CONCURRENCY_TICKETS = 10

# Shared state
EVENT_IDS = []
CONCURRENCY_EVENT_ID = None


def random_email():
    return f"load_{random.randint(100000, 999999)}@college.edu"


def event_payload(title, total_tickets):
    day = date.today() + timedelta(days=random.randint(1, 90))
    return {
        "title": title,
        "description": "Load test event",
        "date": day.isoformat(),
        "time_start": "18:00:00",
        "time_end": "20:00:00",
        "location": "Main Auditorium",
        "category": random.choice(["academic", "cultural", "sports", "workshops"]),
        "price": "0.00",
        "total_tickets": total_tickets,
    }


def login_headers(client, email, password):
    resp = client.post("/api/v1/auth/login", json={"email": email, "password": password})
    if resp.status_code != 200:
        return {}
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def register_student(client):
    email = random_email()
    client.post("/api/v1/auth/register", json={
        "name": "Load Student",
        "email": email,
        "password": "loadtest123",
    })
    return login_headers(client, email, "loadtest123")


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    """Setup: create the limited-capacity event every ConcurrencyUser fights over."""
    global CONCURRENCY_EVENT_ID
    session = requests.Session()

    resp = session.post(
        environment.host + "/api/v1/auth/login",
        json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
    )
    if resp.status_code != 200:
        print("SETUP: admin login failed, concurrency scenario disabled")
        return
    headers = {"Authorization": f"Bearer {resp.json()['access_token']}"}

    resp = session.post(
        environment.host + "/api/v1/events/",
        json=event_payload("Concurrency Test Event", CONCURRENCY_TICKETS),
        headers=headers,
    )
    if resp.status_code == 201:
        CONCURRENCY_EVENT_ID = resp.json()["id"]
        EVENT_IDS.append(CONCURRENCY_EVENT_ID)
        print(f"SETUP: event {CONCURRENCY_EVENT_ID} with {CONCURRENCY_TICKETS} tickets")


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 users -> 10 tickets

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM tickets WHERE event_id = X AND status = 'purchased';
    Should be exactly 10, and events.available_tickets should be 0.
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = register_student(self.client)

    @tag("concurrency")
    @task
    def buy_limited_ticket(self):
        if not CONCURRENCY_EVENT_ID or not self.headers:
            return

        with self.client.post(
            "/api/v1/tickets/",
            json={"event_id": CONCURRENCY_EVENT_ID},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 409 and resp.json().get("code") == "OUT_OF_INVENTORY":
                resp.success()  # Expected: sold out
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Cache effectiveness

    Run with and without Redis and compare requests/sec and P95 latency:
      locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_events_cached(self):
        page = random.randint(1, 5)
        self.client.get(f"/api/v1/events/?page={page}&page_size=20", name="/api/v1/events/ [cached]")

    @tag("throughput", "read")
    @task(3)
    def get_availability(self):
        """Never cached: always hits the database."""
        if EVENT_IDS:
            event_id = random.choice(EVENT_IDS)
            self.client.get(f"/api/v1/events/{event_id}/availability", name="/api/v1/events/{id}/availability")

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
        self.headers = register_student(self.client)

    def _expect(self, resp, allowed):
        if resp.status_code in allowed:
            resp.success()
        else:
            resp.failure(f"Expected {allowed}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_event(self):
        with self.client.post("/api/v1/tickets/", json={"event_id": 999999},
                              headers=self.headers, catch_response=True) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post("/api/v1/tickets/", data="not json at all",
                              headers=self.headers, catch_response=True) as resp:
            self._expect(resp, [400, 422])

    @tag("edge")
    @task
    def student_creates_event(self):
        with self.client.post("/api/v1/events/", json=event_payload("Not allowed", 5),
                              headers=self.headers, catch_response=True) as resp:
            self._expect(resp, [403])

    @tag("edge")
    @task
    def redeem_without_reviewer_role(self):
        with self.client.post("/api/v1/tickets/1/redeem",
                              headers=self.headers, catch_response=True) as resp:
            self._expect(resp, [403])

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.post("/api/v1/tickets/", json={"event_id": 1}, catch_response=True) as resp:
            self._expect(resp, [401])


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Mostly browsing, some purchases, occasional cancellations and proposals.
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.headers = register_student(self.client)
        self.tickets = []

    @task(50)
    def browse_events(self):
        resp = self.client.get("/api/v1/events/?page=1&page_size=20&available_only=true")
        if resp.status_code == 200:
            for event in resp.json().get("events", []):
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @task(10)
    def buy_ticket(self):
        if EVENT_IDS and self.headers:
            resp = self.client.post("/api/v1/tickets/", json={"event_id": random.choice(EVENT_IDS)},
                                    headers=self.headers)
            if resp.status_code == 201:
                self.tickets.append(resp.json()["id"])

    @task(3)
    def cancel_ticket(self):
        if self.tickets:
            ticket_id = self.tickets.pop()
            self.client.post(f"/api/v1/tickets/{ticket_id}/cancel", headers=self.headers,
                             name="/api/v1/tickets/{id}/cancel")

    @task(1)
    def propose_event(self):
        if self.headers:
            payload = event_payload(f"Proposal {random.randint(1, 10000)}", random.randint(10, 500))
            self.client.post("/api/v1/event-requests/", json=payload, headers=self.headers)
