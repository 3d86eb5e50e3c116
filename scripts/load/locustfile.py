"""
Locust load test for the Bufficorn Ranch trade server.

Each simulated user claims one of the seeded players and then hammers
POST /trades against random peers, which exercises the busy-mark guard and
the pair cooldown under contention. 409 responses are expected and counted
as successes; anything 5xx is a failure.

Usage:
  #   uvicorn ranchtrade.main:app --host 0.0.0.0 --port 8000
  #   locust -f scripts/load/locustfile.py --host http://127.0.0.1:8000

Environment variables (optional):
- WORLD_SEED: must match the server's seed (default: "ethdenver")
- PLAYERS_COUNT: number of seeded players (default: 24)
- WAIT_MIN / WAIT_MAX: seconds between tasks (defaults: 0.1 / 0.5)
"""
from __future__ import annotations

import os
import random
from typing import List, Optional

from locust import FastHttpUser, between, task

from ranchtrade.core.seeding import player_key


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


SEED = os.getenv("WORLD_SEED", "ethdenver")
PLAYER_KEYS: List[str] = [player_key(SEED, i) for i in range(int(os.getenv("PLAYERS_COUNT", "24")))]

# Rejections the server is expected to return under contention
EXPECTED_REJECTIONS = {403, 404, 409}


class Trader(FastHttpUser):
    """Claims a seeded player and trades with random peers."""

    wait_time = between(_env_float("WAIT_MIN", 0.1), _env_float("WAIT_MAX", 0.5))

    def on_start(self) -> None:
        self.key: str = random.choice(PLAYER_KEYS)
        self._token: Optional[str] = None
        with self.client.post("/auth", json={"key": self.key}, name="/auth", catch_response=True) as resp:
            if resp.status_code == 200:
                self._token = resp.json().get("token")
                self.client.headers.update({"Authorization": f"Bearer {self._token}"})
            else:
                resp.failure(f"claim failed: {resp.status_code}")

    @task(5)
    def trade(self) -> None:
        if self._token is None:
            return
        peer = random.choice([k for k in PLAYER_KEYS if k != self.key])
        with self.client.post("/trades", json={"to": peer}, name="/trades", catch_response=True) as resp:
            if resp.status_code == 200 or resp.status_code in EXPECTED_REJECTIONS:
                resp.success()
            else:
                resp.failure(f"unexpected status {resp.status_code}")

    @task(2)
    def history(self) -> None:
        if self._token is not None:
            self.client.get("/trades?limit=10", name="/trades [history]")

    @task(2)
    def profile(self) -> None:
        if self._token is not None:
            self.client.get(f"/players/{self.key}", name="/players/:key")

    @task(1)
    def leaderboard(self) -> None:
        self.client.get("/leaderboard?limit=20", name="/leaderboard")
