import os

# Must be set before ranchtrade.core.config is imported
os.environ["APP_ENV"] = "test"
os.environ["ENABLE_DB"] = "false"
os.environ.setdefault("SEED_ON_STARTUP", "true")

import pytest


class FakeClock:
    """Manually advanced epoch-millis clock."""

    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
