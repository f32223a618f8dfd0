"""Shared pytest fixtures for Reliable Stream SDK tests."""

import pytest
from dotenv import load_dotenv
from typing import AsyncIterator, List

# Load environment variables from .env file for tests
load_dotenv()

from reliable_stream.config import constants
from reliable_stream.models.events import StreamEvent
from reliable_stream.reliability.metrics import RetryMetrics
from reliable_stream.reliability.policy import RetryPolicy


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast isolated tests")
    config.addinivalue_line("markers", "integration: end-to-end scenario tests")
    config.addinivalue_line("markers", "slow: tests that wait on real timers")


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


async def _collect(stream: AsyncIterator[StreamEvent]) -> List[StreamEvent]:
    return [event async for event in stream]


@pytest.fixture
def collect():
    """Drain an event stream into a list."""
    return _collect


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def fast_policy():
    """Policy with the default attempt budget and millisecond delays."""
    return RetryPolicy(max_attempts=3, use_backoff=False, base_delay=0.001, explicit_timeout=5.0)


@pytest.fixture
def metrics():
    return RetryMetrics()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every reliability variable from the environment."""
    for name in (
        constants.ENV_RETRIES,
        constants.ENV_RETRY_BACKOFF,
        constants.ENV_RETRY_TIMEOUT_MS,
        constants.ENV_CONTRACT_VALIDATION,
        constants.ENV_PRODUCER,
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
