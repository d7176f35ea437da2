"""Shared fixtures for resource handler tests."""

from unittest.mock import AsyncMock, Mock

import pytest

from brightbox_provider.api.client import ApiClient
from brightbox_provider.config.models import CredentialMode, Timeouts
from brightbox_provider.core.reconciler import PollSettings
from brightbox_provider.provider.session import Session


@pytest.fixture
def client() -> Mock:
    """API client double; its async methods are AsyncMocks."""
    return Mock(spec=ApiClient)


@pytest.fixture
def session(client: Mock) -> Session:
    """Session wrapping the client double."""
    return Session(
        client=client,
        mode=CredentialMode.API_CLIENT,
        api_url="https://api.gb1.brightbox.com",
        orbit_url="https://orbit.brightbox.com/v1/",
    )


@pytest.fixture
def poll() -> PollSettings:
    """Poll timing that never really sleeps."""
    return PollSettings(delay=0.0, min_interval=0.01, max_interval=0.05, sleep=AsyncMock())


@pytest.fixture
def timeouts() -> Timeouts:
    """Default operation timeouts."""
    return Timeouts()


class FakeClock:
    """Monotonic clock that only moves when its own sleep is awaited."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """Clock and sleep pair for timing-sensitive waits."""
    return FakeClock()
