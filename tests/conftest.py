"""Shared fixtures for chainfetch tests."""

import pytest

from chainfetch import (
    CHAINFETCH,
    reset_default_http_client,
    reset_shared_rate_limiters,
)


class FakeClock:
    """Monotonic clock that only moves when something sleeps on it."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def clean_global_state():
    """Every test starts from default config and fresh shared clients."""
    CHAINFETCH.reset()
    reset_shared_rate_limiters()
    reset_default_http_client()
    yield
    CHAINFETCH.reset()
    reset_shared_rate_limiters()
    reset_default_http_client()
