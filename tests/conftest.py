"""
Shared pytest fixtures for the presence server test suite.

This module provides fixtures that are automatically available to all test files:
- A controllable clock so session durations are exact
- Ledger, cache and service instances wired to a temporary snapshot file
- A FastAPI TestClient over a service built from those fixtures

Every fixture is function-scoped; no test shares state with another.
"""

from collections.abc import Generator
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from presence_server.config import ServerConfig
from presence_server.core.cache import PresenceCache
from presence_server.core.event_source import EventSourceStatus
from presence_server.core.ledger import SessionLedger
from presence_server.core.service import PresenceService
from presence_server.core.snapshot import SnapshotStore, SnapshotWriter
from tests.constants import T0

# ============================================================================
# CLOCK
# ============================================================================


class FakeClock:
    """
    Manually advanced clock.

    Call the instance to read the time; use :meth:`advance` to move it.
    """

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        """Move forward by ``timedelta(**kwargs)`` and return the new time."""
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    """Clock starting at :data:`tests.constants.T0`."""
    return FakeClock()


# ============================================================================
# CORE FIXTURES
# ============================================================================


@pytest.fixture
def ledger() -> SessionLedger:
    """An empty session ledger."""
    return SessionLedger()


@pytest.fixture
def cache(ledger: SessionLedger, clock: FakeClock) -> PresenceCache:
    """Presence cache over ``ledger`` with the default 5 s window."""
    return PresenceCache(ledger, staleness_window_ms=5000, clock=clock)


@pytest.fixture
def snapshot_path(tmp_path: Path) -> Path:
    """Snapshot location inside the test's temporary directory."""
    return tmp_path / "data" / "player-data.json"


@pytest.fixture
def snapshot_store(snapshot_path: Path) -> SnapshotStore:
    return SnapshotStore(snapshot_path)


@pytest.fixture
def service(
    ledger: SessionLedger,
    cache: PresenceCache,
    snapshot_store: SnapshotStore,
    clock: FakeClock,
) -> Generator[PresenceService, None, None]:
    """
    Presence service persisting to a temporary snapshot file.

    Cleanup:
        Drains and stops the snapshot writer thread.
    """
    svc = PresenceService(
        ledger=ledger,
        cache=cache,
        writer=SnapshotWriter(snapshot_store),
        clock=clock,
    )
    yield svc
    svc.close()


# ============================================================================
# FASTAPI TEST CLIENT FIXTURES
# ============================================================================


@pytest.fixture
def event_source() -> EventSourceStatus:
    return EventSourceStatus("mqtt")


@pytest.fixture
def test_client(
    service: PresenceService, event_source: EventSourceStatus
) -> Generator[TestClient, None, None]:
    """
    TestClient over an app built around the ``service`` fixture.

    Entering the client runs the app lifespan, so the snapshot is loaded
    exactly as it would be on a real startup.

    Example:
        def test_ingest(test_client):
            response = test_client.post("/api/events", json={...})
            assert response.status_code == 200
    """
    from presence_server.api.server import create_app

    settings = ServerConfig()
    settings.events.source = "mqtt"
    settings.ui.background = "url('wallpapers/test.png')"

    app = create_app(service=service, event_source=event_source, settings=settings)
    with TestClient(app) as client:
        yield client
