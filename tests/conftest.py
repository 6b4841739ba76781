import os
import sys

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from feedesk.services.guards import action_guard
from feedesk.services.mock_store import reset_mock_store


class MockLatencyClient:
    """Client stub that records simulate_latency calls."""

    def __init__(self) -> None:
        self.use_mock_data = True
        self.latency_called = False

    async def simulate_latency(self) -> None:
        self.latency_called = True


@pytest.fixture(autouse=True)
def _reset_state() -> None:
    reset_mock_store()
    action_guard.clear()
    yield
    reset_mock_store()
    action_guard.clear()


@pytest.fixture
def mock_client() -> MockLatencyClient:
    return MockLatencyClient()
