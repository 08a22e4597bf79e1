"""
Test configuration and fixtures for the Storeroom backend test suite.

Provides:
- A clean in-memory session registry per test
- FastAPI TestClient fixture
- Factory functions for creating sessions with loaded rows
"""
import pytest
from fastapi.testclient import TestClient

from backend.core.sessions import registry


SAMPLE_ROWS = [
    {"product name": "TV Samsung 55", "product code": "A1", "quantity": 5, "price": 100, "status": "New"},
    {"product name": "Phone X", "product code": "B2", "serial": "IMEI9", "quantity": 3, "price": 50, "status": "New"},
    {"product name": "TV LG 43", "product code": "C3", "quantity": 1, "price": 80, "status": "Demo"},
]


# ---------------------------------------------------------------------------
# Registry / client fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def clean_registry():
    """Every test starts and ends with no live sessions."""
    registry.clear()
    yield registry
    registry.clear()


@pytest.fixture()
def client():
    """Provide a FastAPI TestClient for the app."""
    from backend.api.main import app

    with TestClient(app) as c:
        yield c


# ---------------------------------------------------------------------------
# Factory functions
# ---------------------------------------------------------------------------

def create_session(client: TestClient, *, mode: str = "count", rows: list | None = None) -> str:
    """Create a session through the API, optionally load rows, and return its ID."""
    resp = client.post("/api/reconcile/sessions", json={"mode": mode})
    assert resp.status_code == 200
    session_id = resp.json()["session"]["session_id"]

    if rows is not None:
        resp = client.post(f"/api/reconcile/sessions/{session_id}/rows", json={"rows": rows, "source": "fixture"})
        assert resp.status_code == 200
    return session_id


@pytest.fixture()
def count_session(client) -> str:
    return create_session(client, mode="count", rows=SAMPLE_ROWS)


@pytest.fixture()
def checklist_session(client) -> str:
    return create_session(client, mode="checklist", rows=SAMPLE_ROWS)


@pytest.fixture()
def make_session(client):
    """Factory fixture: make_session(mode=..., rows=...) -> session ID."""
    def _make(mode: str = "count", rows: list | None = None) -> str:
        return create_session(client, mode=mode, rows=rows)
    return _make
