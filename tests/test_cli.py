"""
Unit tests for CLI module (presence_server/cli.py).

Tests cover:
- Command parsing and help
- config command
- snapshot command (present, missing and explicit path)
- run command argument passing and error handling
"""

import argparse
from unittest.mock import patch

import pytest

from presence_server import cli
from presence_server.config import use_test_snapshot
from presence_server.core.ledger import PlayerRecord, PlayerStatus
from presence_server.core.snapshot import SnapshotStore
from tests.constants import T0

# ============================================================================
# PARSING
# ============================================================================


@pytest.mark.unit
def test_main_without_command_prints_help(capsys):
    assert cli.main([]) == 0
    assert "presence-server" in capsys.readouterr().out


@pytest.mark.unit
def test_main_dispatches_run_with_arguments():
    with patch("presence_server.api.server.start_server") as mock_start:
        result = cli.main(["run", "--host", "127.0.0.1", "-p", "4001"])

    assert result == 0
    mock_start.assert_called_once_with(host="127.0.0.1", port=4001)


# ============================================================================
# RUN COMMAND
# ============================================================================


@pytest.mark.unit
def test_cmd_run_keyboard_interrupt(capsys):
    with patch("presence_server.api.server.start_server", side_effect=KeyboardInterrupt):
        result = cli.cmd_run(argparse.Namespace(host=None, port=None))

    assert result == 0
    assert "Server stopped" in capsys.readouterr().out


@pytest.mark.unit
def test_cmd_run_startup_error(capsys):
    with patch("presence_server.api.server.start_server", side_effect=OSError("port in use")):
        result = cli.cmd_run(argparse.Namespace(host=None, port=3001))

    assert result == 1
    assert "port in use" in capsys.readouterr().err


# ============================================================================
# CONFIG COMMAND
# ============================================================================


@pytest.mark.unit
def test_cmd_config_prints_summary(capsys):
    assert cli.main(["config"]) == 0
    assert "PRESENCE SERVER CONFIGURATION" in capsys.readouterr().out


# ============================================================================
# SNAPSHOT COMMAND
# ============================================================================


@pytest.mark.unit
def test_cmd_snapshot_missing_file(tmp_path, capsys):
    result = cli.main(["snapshot", "--path", str(tmp_path / "missing.json")])

    assert result == 1
    assert "snapshot not found" in capsys.readouterr().err


@pytest.mark.unit
def test_cmd_snapshot_lists_players(tmp_path, capsys):
    path = tmp_path / "player-data.json"
    SnapshotStore(path).save(
        [
            PlayerRecord(
                name="Alice",
                status=PlayerStatus.ONLINE,
                last_seen=T0,
                world="Bedrock level",
                played_ms=5_400_000,
                last_ms=90_000,
                session_start=T0,
            ),
            PlayerRecord(name="Bob", status=PlayerStatus.DISCONNECTED),
        ],
        saved_at=T0,
    )

    assert cli.main(["snapshot", "--path", str(path)]) == 0

    out = capsys.readouterr().out
    assert "2 players" in out
    assert "1h 30m 0s" in out
    assert "Bedrock level" in out
    assert "Unknown" in out


@pytest.mark.unit
def test_cmd_snapshot_uses_configured_path(tmp_path, capsys):
    path = tmp_path / "configured.json"
    SnapshotStore(path).save([], saved_at=T0)

    with use_test_snapshot(path):
        assert cli.main(["snapshot"]) == 0

    assert "0 players" in capsys.readouterr().out
