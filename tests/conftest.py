"""Shared fixtures for stashsync tests."""

import os
from unittest.mock import AsyncMock, MagicMock

import pytest

from stashsync.sync.cache import InMemoryCache
from stashsync.sync.store import InMemoryRemoteStore
from stashsync.sync.sync_manager import SyncConfig, SyncEngine

# Keep tests independent of a developer's environment
os.environ.setdefault("STASHSYNC_REMOTE_URL", "http://records.test")


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


ADMIN_SECRET = "correct horse battery staple"


def counter_clock() -> int:
    """A clock that never advances, so versions grow by exactly one."""
    return 0


@pytest.fixture
def admin_secret():
    """Administrator secret used to create sessions."""
    return ADMIN_SECRET


@pytest.fixture
def store():
    """A shared in-memory remote store."""
    return InMemoryRemoteStore()


@pytest.fixture
def sample_state():
    """Sample inventory state."""
    return {
        "drawers": {
            "1": [{"name": "Peas", "amount": 2}],
            "2": [],
        },
        "templates": [{"name": "Peas", "category": "vegetables"}],
    }


@pytest.fixture
def make_engine(store):
    """Factory for engines sharing one remote store (one per device).

    Auto-push is off unless requested so tests decide when pushes happen.
    """
    def _make(
        initial_state=None,
        auto_push: bool = False,
        debounce_ms: int = 20,
        cache=None,
        state_sink=None,
        remote_timeout_seconds: float = 1.0,
        target_store=None,
    ) -> SyncEngine:
        engine = SyncEngine(
            store=target_store or store,
            cache=cache if cache is not None else InMemoryCache(),
            initial_state=initial_state,
            config=SyncConfig(
                debounce_ms=debounce_ms,
                auto_push=auto_push,
                remote_timeout_seconds=remote_timeout_seconds,
            ),
            state_sink=state_sink,
            clock=counter_clock,
        )
        return engine

    return _make


@pytest.fixture
def notifications():
    """Collects notifications from any engine it is attached to."""
    received = []

    def attach(engine):
        engine.add_event_handler(received.append)
        return received

    return attach


@pytest.fixture
def mock_httpx_client():
    """Create a mock httpx AsyncClient."""
    mock_client = AsyncMock()
    mock_response = MagicMock()
    mock_response.status_code = 200
    mock_response.json.return_value = {"state": {}, "version": 1, "invalidated": False}
    mock_response.text = '{"state": {}, "version": 1, "invalidated": false}'
    mock_client.get = AsyncMock(return_value=mock_response)
    mock_client.put = AsyncMock(return_value=mock_response)
    mock_client.aclose = AsyncMock()
    return mock_client
