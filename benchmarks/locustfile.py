"""
Locust load testing file for the payment authority API.

Usage:
    locust -f benchmarks/locustfile.py --host=http://localhost:6000

Then open http://localhost:8089 to configure and run load tests.

Expected behavior under load:
- No identity ever ends above the spending cap
- A token is never accepted twice
"""

import random

from locust import HttpUser, between, task

ACCEPTED = "ACCEPTED"


class PaymentAuthorityUser(HttpUser):
    """Simulated caller running the token -> charge protocol."""

    wait_time = between(0.05, 0.2)

    def on_start(self):
        """Initialize user session."""
        self.identity = f"listener-{random.randint(1, 500)}"

    def fetch_token(self):
        with self.client.post(
            "/api/payments/token", catch_response=True, name="issue_token"
        ) as response:
            if response.status_code != 200:
                response.failure(f"Got status code: {response.status_code}")
                return None
            response.success()
            return response.json()["token"]

    @task(10)
    def charge_reaction(self):
        """Fetch a token and redeem it (most common)."""
        token = self.fetch_token()
        if token is None:
            return

        payload = {
            "token": token,
            "identity": self.identity,
            "subject_id": f"song-{random.randint(1, 50)}",
            "amount": 10,
        }
        with self.client.post(
            "/api/payments", json=payload, catch_response=True, name="submit_charge"
        ) as response:
            if response.status_code != 200:
                response.failure(f"Got status code: {response.status_code}")
                return
            data = response.json()
            if data["cumulative_total"] > 50:
                response.failure(f"Cap exceeded: {data['cumulative_total']}")
            else:
                response.success()

    @task(2)
    def replay_token(self):
        """Submit the same token twice; the second must be refused."""
        token = self.fetch_token()
        if token is None:
            return

        payload = {
            "token": token,
            "identity": self.identity,
            "subject_id": "song-replay",
            "amount": 10,
        }
        self.client.post("/api/payments", json=payload, name="submit_charge")
        with self.client.post(
            "/api/payments", json=payload, catch_response=True, name="submit_charge_replay"
        ) as response:
            if response.status_code == 200 and response.json()["status"] != ACCEPTED:
                response.success()
            else:
                response.failure("Replayed token was accepted")

    @task(1)
    def check_total(self):
        """Read an identity's running total."""
        with self.client.get(
            f"/api/payments/totals/{self.identity}", catch_response=True, name="identity_total"
        ) as response:
            if response.status_code == 200 and response.json()["cumulative_total"] <= 50:
                response.success()
            else:
                response.failure(f"Unexpected total response: {response.text}")

    @task(1)
    def health_check(self):
        """Health check endpoint."""
        self.client.get("/health", name="health_check")
