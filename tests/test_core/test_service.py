"""
Tests for the presence service: ingestion, queries and persistence wiring.

Includes the end-to-end scenarios the dashboard relies on (connect, query,
disconnect, restart).
"""

import json
import logging
import threading
from pathlib import Path

import pytest

from presence_server.config import ServerConfig
from presence_server.core.cache import PresenceCache
from presence_server.core.events import EventType
from presence_server.core.ledger import PlayerStatus, SessionLedger
from presence_server.core.service import PresenceService
from presence_server.core.snapshot import SnapshotStore, SnapshotWriter
from presence_server.core.validator import EventValidationError
from tests.constants import CONNECT_ALICE, DISCONNECT_ALICE, T0


def _by_name(service: PresenceService) -> dict:
    return {p.name: p for p in service.get_players().players}


def _restarted(snapshot_store: SnapshotStore, clock) -> PresenceService:
    """Build a second service over the same snapshot file, as after a restart."""
    ledger = SessionLedger()
    svc = PresenceService(
        ledger=ledger,
        cache=PresenceCache(ledger, clock=clock),
        writer=SnapshotWriter(SnapshotStore(snapshot_store.path)),
        clock=clock,
    )
    svc.load_snapshot()
    return svc


# ============================================================================
# SCENARIOS
# ============================================================================


@pytest.mark.integration
def test_connect_query_disconnect(service: PresenceService, clock):
    service.process_event(CONNECT_ALICE)

    alice = _by_name(service)["Alice"].to_dict()
    assert alice["status"] == "online"
    assert alice["currentSessionDuration"] == "0h 0m 0s"

    clock.advance(seconds=90)
    service.process_event(DISCONNECT_ALICE)

    alice = _by_name(service)["Alice"].to_dict()
    assert alice["status"] == "disconnected"
    assert alice["playedDuration"] == "0h 1m 30s"
    assert alice["lastDuration"] == "0h 1m 30s"
    assert alice["currentSessionDuration"] == "0h 0m 0s"


@pytest.mark.integration
def test_restart_reconciles_online_players(service: PresenceService, snapshot_store, clock):
    service.process_event(CONNECT_ALICE)
    clock.advance(minutes=2)
    service.process_event(DISCONNECT_ALICE)
    clock.advance(minutes=1)
    service.process_event(CONNECT_ALICE)
    service.flush()

    persisted = json.loads(snapshot_store.path.read_text(encoding="utf-8"))
    assert persisted["players"][0]["status"] == "online"

    restarted = _restarted(snapshot_store, clock)
    try:
        alice = _by_name(restarted)["Alice"]
        assert alice.status is PlayerStatus.DISCONNECTED
        assert alice.to_dict()["currentSessionDuration"] == "0h 0m 0s"
        assert alice.to_dict()["playedDuration"] == "0h 2m 0s"
        assert alice.session_start is None
    finally:
        restarted.close()


@pytest.mark.integration
def test_disconnect_after_restart_credits_nothing(service, snapshot_store, clock):
    service.process_event(CONNECT_ALICE)
    clock.advance(minutes=5)
    service.flush()

    restarted = _restarted(snapshot_store, clock)
    try:
        clock.advance(minutes=5)
        restarted.process_event(DISCONNECT_ALICE)

        alice = _by_name(restarted)["Alice"]
        assert alice.played_ms == 0
        assert alice.last_seen == clock.now
    finally:
        restarted.close()


@pytest.mark.integration
def test_reconnect_without_disconnect(service: PresenceService, clock):
    service.process_event(CONNECT_ALICE)
    clock.advance(minutes=10)
    service.process_event(CONNECT_ALICE)
    clock.advance(seconds=20)

    alice = _by_name(service)["Alice"]

    assert alice.current_ms == 20_000
    assert alice.played_ms == 0


# ============================================================================
# VALIDATION FAILURES
# ============================================================================


@pytest.mark.unit
def test_rejected_event_changes_nothing(service: PresenceService, snapshot_store, caplog):
    service.process_event(CONNECT_ALICE)
    service.flush()
    before = snapshot_store.path.read_text(encoding="utf-8")
    revision = service.ledger.revision

    with caplog.at_level(logging.WARNING):
        with pytest.raises(EventValidationError):
            service.process_event({"type": "PLAYER_JUMPED"})
    service.flush()

    assert service.ledger.revision == revision
    assert list(_by_name(service)) == ["Alice"]
    assert snapshot_store.path.read_text(encoding="utf-8") == before
    assert service.recent_events() and service.recent_events()[0].type is EventType.PLAYER_CONNECTED
    assert "Rejected event" in caplog.text


@pytest.mark.unit
def test_rejected_first_event_writes_no_snapshot(service: PresenceService, snapshot_store):
    with pytest.raises(EventValidationError):
        service.process_event({"type": "PLAYER_JUMPED"})
    service.flush()

    assert not snapshot_store.path.exists()


# ============================================================================
# PERSISTENCE AND AUDIT
# ============================================================================


@pytest.mark.unit
def test_each_mutation_is_persisted(service: PresenceService, snapshot_store, clock):
    service.process_event(CONNECT_ALICE)
    clock.advance(seconds=30)
    service.process_event(DISCONNECT_ALICE)
    service.flush()

    document = json.loads(snapshot_store.path.read_text(encoding="utf-8"))

    assert document["timestamp"] == "2026-10-19T12:00:30.000Z"
    assert document["players"][0]["playedDuration"] == "0h 0m 30s"


@pytest.mark.unit
def test_server_events_are_audited_not_persisted(service: PresenceService, snapshot_store):
    service.process_event({"type": "SERVER_STARTED", "worldName": "Bedrock level"})
    service.process_event({"type": "BACKUP_COMPLETE"})
    service.flush()

    assert not snapshot_store.path.exists()
    assert [e.type for e in service.recent_events()] == [
        EventType.BACKUP_COMPLETE,
        EventType.SERVER_STARTED,
    ]


@pytest.mark.unit
def test_recent_events_are_bounded(ledger, cache, clock):
    svc = PresenceService(ledger=ledger, cache=cache, clock=clock, audit_size=3)
    for index in range(5):
        svc.process_event({"type": "PLAYER_CONNECTED", "playerName": f"P{index}"})

    assert [e.player_name for e in svc.recent_events(10)] == ["P4", "P3", "P2"]
    assert [e.player_name for e in svc.recent_events(1)] == ["P4"]


@pytest.mark.unit
def test_persistence_failure_does_not_fail_ingestion(ledger, cache, clock, tmp_path: Path):
    blocker = tmp_path / "data"
    blocker.write_text("not a directory")
    svc = PresenceService(
        ledger=ledger,
        cache=cache,
        writer=SnapshotWriter(SnapshotStore(blocker / "player-data.json")),
        clock=clock,
    )
    try:
        svc.process_event(CONNECT_ALICE)
        svc.flush()
        assert _by_name(svc)["Alice"].is_online
    finally:
        svc.close()


@pytest.mark.unit
def test_load_snapshot_runs_once(service: PresenceService, snapshot_store, clock):
    snapshot_store.save([], saved_at=T0)
    assert service.load_snapshot() == 0

    service.process_event(CONNECT_ALICE)

    assert service.load_snapshot() == 0
    assert "Alice" in _by_name(service)


@pytest.mark.unit
def test_load_snapshot_after_ingestion_keeps_live_sessions(
    service: PresenceService, snapshot_store, clock
):
    service.process_event(CONNECT_ALICE)
    service.flush()
    assert snapshot_store.path.exists()

    assert service.load_snapshot() == 0

    alice = service.ledger.get("Alice")
    assert alice.status is PlayerStatus.ONLINE
    assert alice.session_start == T0


@pytest.mark.unit
def test_get_players_reports_query_time(service: PresenceService, clock):
    clock.advance(seconds=7)

    result = service.get_players()

    assert result.as_of == clock.now
    assert result.players == []
    assert result.online == []


@pytest.mark.unit
def test_from_config_uses_configured_paths(tmp_path: Path):
    cfg = ServerConfig()
    cfg.snapshot.path = str(tmp_path / "snap.json")
    cfg.cache.staleness_window_ms = 1234
    cfg.events.audit_size = 7

    svc = PresenceService.from_config(cfg)
    try:
        svc.process_event(CONNECT_ALICE)
        svc.flush()
        assert (tmp_path / "snap.json").exists()
        assert svc.load_snapshot() == 0
    finally:
        svc.close()


@pytest.mark.integration
def test_concurrent_ingestion_keeps_totals(service: PresenceService, snapshot_store, clock):
    names = [f"Player{index}" for index in range(8)]

    def session(name: str) -> None:
        for _ in range(25):
            service.process_event({"type": "PLAYER_CONNECTED", "playerName": name})
            service.process_event({"type": "PLAYER_DISCONNECTED", "playerName": name})

    threads = [threading.Thread(target=session, args=(name,)) for name in names]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    service.flush()

    players = _by_name(service)
    assert sorted(players) == sorted(names)
    assert all(p.status is PlayerStatus.DISCONNECTED for p in players.values())
    assert len(service.recent_events(1000)) == 400
    assert len(snapshot_store.load()) == 8
