"""JSON snapshot persistence for player records.

Overview
--------
The in-memory :class:`~presence_server.core.ledger.SessionLedger` is
authoritative while the process runs.  The snapshot is a best-effort copy that
lets a restarted process show the same player list, playtime totals and last
known worlds.  It is rewritten after every ledger mutation and read exactly
once, at startup.

File format
-----------
One JSON document, kept compatible with snapshots written by earlier versions
of the dashboard backend::

    {
      "players": [
        {
          "name": "Alice",
          "status": "online",
          "lastSeen": "2026-10-19T14:23:01.452Z",
          "xuid": "2535400000000000",
          "world": "Bedrock level",
          "container": "bedrock-server",
          "playedDuration": "3h 12m 5s",
          "lastDuration": "0h 45m 10s",
          "currentSessionDuration": "0h 12m 0s"
        }
      ],
      "timestamp": "2026-10-19T14:23:01.460Z"
    }

``sessionStart`` is never written.

Restart reconciliation
----------------------
A fresh process cannot know whether anybody is still connected, so
:meth:`SnapshotStore.load` turns every ``online`` record into
``disconnected`` with a zero live duration.  Presence is re-derived from new
events only.

Failure isolation
-----------------
:exc:`SnapshotWriteError` is raised by :meth:`SnapshotStore.save` on
filesystem failure.  :class:`SnapshotWriter` performs saves on a background
thread, catches the error and logs a warning.  A snapshot failure is **never
fatal** and never reaches the caller that ingested the event; only restart
continuity is lost.  A missing or unreadable snapshot on load means "no prior
data".
"""

from __future__ import annotations

import json
import logging
import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from presence_server.core.durations import parse_duration
from presence_server.core.events import format_timestamp, utc_now
from presence_server.core.ledger import PlayerRecord, PlayerStatus

logger = logging.getLogger(__name__)


# ── Exception ─────────────────────────────────────────────────────────────────


class SnapshotWriteError(Exception):
    """Raised when a snapshot cannot be serialised or written to disk.

    Callers **must** catch this, log a warning and carry on.  The in-memory
    ledger remains correct; only the on-disk copy is stale.
    """


# ── Store ─────────────────────────────────────────────────────────────────────


class SnapshotStore:
    """Reads and writes the snapshot file at ``path``.

    Args:
        path: Location of the JSON snapshot.  Parent directories are created
              on first write.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def build_payload(
        self, records: list[PlayerRecord], saved_at: datetime | None = None
    ) -> dict[str, Any]:
        """Serialise records into the on-disk document (without writing it)."""
        return {
            "players": [record.to_dict() for record in records],
            "timestamp": format_timestamp(saved_at or utc_now()),
        }

    def save(self, records: list[PlayerRecord], saved_at: datetime | None = None) -> None:
        """Write ``records`` to disk.

        Raises:
            SnapshotWriteError: If the write fails.
        """
        self.write_payload(self.build_payload(records, saved_at))

    def write_payload(self, payload: dict[str, Any]) -> None:
        """Atomically replace the snapshot file with ``payload``.

        The document is written to a sibling temporary file and renamed over
        the target, so a crash mid-write leaves the previous snapshot intact.

        Raises:
            SnapshotWriteError: If serialisation or any filesystem step fails.
        """
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            text = json.dumps(payload, ensure_ascii=False, indent=2)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(text, encoding="utf-8")
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as exc:
            raise SnapshotWriteError(f"Failed to write snapshot to {self.path}: {exc}") from exc

        logger.debug("snapshot: wrote %d players to %s", len(payload["players"]), self.path)

    def load(self) -> list[PlayerRecord]:
        """Load and reconcile records from disk.

        Returns:
            Records in file order, every one of them ``disconnected`` with no
            open session.  An empty list when the file is absent, unreadable
            or not a snapshot document.
        """
        if not self.path.exists():
            logger.info("No snapshot at %s; starting empty", self.path)
            return []

        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("Failed to load snapshot %s: %s; starting empty", self.path, exc)
            return []

        players = document.get("players") if isinstance(document, dict) else None
        if not isinstance(players, list):
            logger.warning("Snapshot %s has no player list; starting empty", self.path)
            return []

        records: list[PlayerRecord] = []
        was_online = 0
        for entry in players:
            record = _record_from_dict(entry)
            if record is None:
                logger.warning("Skipping malformed snapshot entry: %r", entry)
                continue
            if isinstance(entry, dict) and entry.get("status") == PlayerStatus.ONLINE.value:
                was_online += 1
            records.append(record)

        logger.info(
            "Loaded %d players from %s (%d marked disconnected after restart)",
            len(records),
            self.path,
            was_online,
        )
        return records


# ── Background writer ─────────────────────────────────────────────────────────


class SnapshotWriter:
    """Runs :meth:`SnapshotStore.write_payload` on a single worker thread.

    One worker means writes land in submission order, so the file always ends
    up holding the most recently scheduled payload.

    Args:
        store: Destination store.
    """

    def __init__(self, store: SnapshotStore) -> None:
        self._store = store
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="snapshot-writer")
        self._pending: set[Future[None]] = set()
        self._pending_lock = threading.Lock()
        self._closed = False

    @property
    def store(self) -> SnapshotStore:
        return self._store

    def schedule(self, payload: dict[str, Any]) -> None:
        """Queue a payload for writing and return immediately.

        After :meth:`close`, the payload is written synchronously instead.
        """
        with self._pending_lock:
            future = None
            if not self._closed:
                future = self._executor.submit(self._write, payload)
                self._pending.add(future)

        if future is None:
            self._write(payload)
            return
        future.add_done_callback(self._discard)

    def flush(self, timeout: float | None = None) -> None:
        """Block until every payload scheduled so far has been handled."""
        with self._pending_lock:
            pending = list(self._pending)
        if pending:
            wait(pending, timeout=timeout)

    def close(self) -> None:
        """Drain outstanding writes and stop the worker."""
        with self._pending_lock:
            if self._closed:
                return
            self._closed = True
        # Outside the lock: done callbacks of draining writes take it.
        self._executor.shutdown(wait=True)

    def _write(self, payload: dict[str, Any]) -> None:
        try:
            self._store.write_payload(payload)
        except SnapshotWriteError:
            logger.warning("Snapshot write failed; in-memory state unaffected.", exc_info=True)

    def _discard(self, future: Future[None]) -> None:
        with self._pending_lock:
            self._pending.discard(future)


# ── Internal helpers ──────────────────────────────────────────────────────────


def _record_from_dict(entry: Any) -> PlayerRecord | None:
    """Rebuild a disconnected record from one snapshot entry.

    Returns None when the entry has no usable name.
    """
    if not isinstance(entry, dict):
        return None
    name = entry.get("name")
    if not isinstance(name, str) or not name.strip():
        return None

    return PlayerRecord(
        name=name,
        status=PlayerStatus.DISCONNECTED,
        last_seen=_parse_timestamp(entry.get("lastSeen")),
        xuid=_optional_str(entry.get("xuid")),
        world=_optional_str(entry.get("world")),
        container=_optional_str(entry.get("container")),
        played_ms=parse_duration(entry.get("playedDuration")),
        last_ms=parse_duration(entry.get("lastDuration")),
        current_ms=0,
        session_start=None,
    )


def _parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _optional_str(value: Any) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str | int):
        return str(value) or None
    return None
