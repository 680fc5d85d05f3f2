"""
Test configuration — ensures repo root is in sys.path + isolation guards.

This allows tests to import from top-level packages (wealth_rm, api, cli).
Every test gets its own app home so the persisted recently-viewed map
never leaks between tests or into the developer's ~/.wealth_rm.
"""

import sys
from datetime import UTC, datetime
from pathlib import Path

import pytest

# Add repo root to sys.path so tests can import wealth_rm.*, api.*, cli
REPO_ROOT = Path(__file__).parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from wealth_rm.clients.ranking import RankingEngine, reset_engine  # noqa: E402
from wealth_rm.clients.recency_store import (  # noqa: E402
    MemoryStorage,
    RecencyStore,
    reset_default_store,
)

# Fixed reference time for every test that depends on "now"
NOW = datetime(2026, 10, 19, 10, 0, tzinfo=UTC)
NOW_MS = int(NOW.timestamp() * 1000)


# =============================================================================
# ISOLATION GUARD: per-test app home
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point the app home at tmp_path and drop cached process-wide state."""
    monkeypatch.setenv("WEALTH_RM_HOME", str(tmp_path / "home"))
    monkeypatch.delenv("WEALTH_RM_RECENCY_FILE", raising=False)
    monkeypatch.delenv("WEALTH_RM_API_TOKEN", raising=False)
    reset_default_store()
    reset_engine()
    yield tmp_path / "home"
    reset_default_store()
    reset_engine()


# =============================================================================
# SHARED FIXTURES
# =============================================================================


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def store():
    """In-memory recency store with a deterministic clock."""
    return RecencyStore(MemoryStorage(), clock=lambda: NOW_MS)


@pytest.fixture
def engine(store):
    return RankingEngine(recency_store=store)


def make_client(client_id, **overrides) -> dict:
    """A complete, recently contacted client (needs no attention, passes every filter)."""
    data = {
        "id": client_id,
        "fullName": f"Client {client_id}",
        "tier": "gold",
        "riskProfile": "moderate",
        "aumValue": 1_000_000,
        "email": f"client{client_id}@example.com",
        "phone": f"+91 98000 000{client_id:02d}" if isinstance(client_id, int) else None,
        "lastContactDate": "2026-10-10T09:00:00Z",
        "alertCount": 0,
        "investmentHorizon": "long",
        "netWorth": 5_000_000,
        "profileStatus": "complete",
    }
    data.update(overrides)
    return data


@pytest.fixture
def client_factory():
    return make_client
