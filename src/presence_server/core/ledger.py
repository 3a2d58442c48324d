"""Session ledger: the per-player presence state machine.

:class:`SessionLedger` owns the map of :class:`PlayerRecord` objects and is
the only code that mutates session fields.  It is created once per process,
passed explicitly to the service that feeds it, and shared by reference with
the presence cache (the cache *is* a view over this map, never a copy).

State machine
-------------
Per player, keyed by name::

    absent        --CONNECTED-->     online        (record created)
    disconnected  --CONNECTED-->     online        (new session opened)
    online        --CONNECTED-->     online        (session restarted, see below)
    online        --DISCONNECTED-->  disconnected  (session closed and credited)
    disconnected  --DISCONNECTED-->  disconnected  (lastSeen only)
    absent        --DISCONNECTED-->  absent        (ignored)

A CONNECTED for a player who is already online (typically the game server
crashed and never sent the disconnect) overwrites ``session_start``.  The
unclosed interval is **not** credited to ``played_ms``: with at-most-once
delivery there is no way to know when that session really ended.

Durations
---------
All durations are integer milliseconds.  Closing a session adds the elapsed
time straight onto ``played_ms``; the ``"{h}h {m}m {s}s"`` form is produced
only by :meth:`PlayerRecord.to_dict`.

Concurrency
-----------
Every mutation runs under :attr:`SessionLedger.lock`, a re-entrant lock the
service and the cache also take, so a reader never observes a record halfway
through an update.  Each mutation bumps :attr:`SessionLedger.revision`; the
cache compares revisions to know its derived fields are stale.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from presence_server.core.durations import format_duration
from presence_server.core.events import EventType, GameEvent, format_timestamp

logger = logging.getLogger(__name__)

_ONE_MS = timedelta(milliseconds=1)


class PlayerStatus(str, Enum):
    """Presence status of a player record."""

    ONLINE = "online"
    DISCONNECTED = "disconnected"


@dataclass
class PlayerRecord:
    """
    Presence and playtime for one player.

    Attributes:
        name: Player display name; unique key.
        status: Current presence status.
        last_seen: Receipt time of the most recent event for this player.
        xuid: Last known platform identifier.
        world: Last known world; kept across disconnects.
        container: Last known server container; kept across disconnects.
        played_ms: Total time over all closed sessions.  Never decreases.
        last_ms: Length of the most recently closed session.
        current_ms: Length of the open session as of the last cache
                    recompute.  Zero while disconnected.
        session_start: Start of the open session.  Set only while online and
                       never persisted.
    """

    name: str
    status: PlayerStatus
    last_seen: datetime | None = None
    xuid: str | None = None
    world: str | None = None
    container: str | None = None
    played_ms: int = 0
    last_ms: int = 0
    current_ms: int = 0
    session_start: datetime | None = None

    @property
    def is_online(self) -> bool:
        return self.status is PlayerStatus.ONLINE

    def copy(self) -> PlayerRecord:
        """Return an independent copy (all fields are immutable values)."""
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the wire field names and text durations.

        ``session_start`` is deliberately absent: it is process-local state.
        """
        return {
            "name": self.name,
            "status": self.status.value,
            "lastSeen": format_timestamp(self.last_seen) if self.last_seen else None,
            "xuid": self.xuid,
            "world": self.world,
            "container": self.container,
            "playedDuration": format_duration(self.played_ms),
            "lastDuration": format_duration(self.last_ms),
            "currentSessionDuration": format_duration(self.current_ms),
        }


def elapsed_ms(start: datetime, end: datetime) -> int:
    """Whole milliseconds from ``start`` to ``end``, floored at zero."""
    return max(0, (end - start) // _ONE_MS)


class SessionLedger:
    """Owner of all :class:`PlayerRecord` state.

    Records are kept in first-seen order, which is also the order readers
    receive them in.
    """

    def __init__(self) -> None:
        self._records: dict[str, PlayerRecord] = {}
        self._lock = threading.RLock()
        self._revision = 0

    # ------------------------------------------------------------------
    # Shared state accessors
    # ------------------------------------------------------------------

    @property
    def lock(self) -> threading.RLock:
        """The single lock guarding the record map."""
        return self._lock

    @property
    def revision(self) -> int:
        """Monotonic mutation counter."""
        return self._revision

    @property
    def records(self) -> dict[str, PlayerRecord]:
        """The live record map.  Callers must hold :attr:`lock`."""
        return self._records

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def apply(self, event: GameEvent) -> bool:
        """Apply one validated event.

        Args:
            event: A normalized event.  Non-player kinds are accepted and
                   ignored.

        Returns:
            True if a player record was created or changed.
        """
        if not event.is_player_event:
            return False

        with self._lock:
            if event.type is EventType.PLAYER_CONNECTED:
                changed = self._connect(event)
            else:
                changed = self._disconnect(event)

            if changed:
                self._revision += 1
            return changed

    def restore(self, records: list[PlayerRecord]) -> None:
        """Replace the record map with ``records`` (startup only).

        Later entries win when a name appears twice.
        """
        with self._lock:
            self._records = {record.name: record for record in records}
            self._revision += 1
        logger.info("Restored %d player records", len(records))

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    def get(self, name: str) -> PlayerRecord | None:
        """Return a copy of one record, or None if the player is unknown."""
        with self._lock:
            record = self._records.get(name)
            return record.copy() if record else None

    def counts(self) -> tuple[int, int]:
        """Return ``(total players, online players)``."""
        with self._lock:
            online = sum(1 for record in self._records.values() if record.is_online)
            return len(self._records), online

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _connect(self, event: GameEvent) -> bool:
        name = event.player_name
        if not name:
            logger.warning("Ignoring connect without a player name")
            return False

        record = self._records.get(name)
        if record is None:
            record = PlayerRecord(name=name, status=PlayerStatus.ONLINE)
            self._records[name] = record
        elif record.is_online:
            logger.warning(
                "Player %s connected while already online; previous session dropped", name
            )

        record.status = PlayerStatus.ONLINE
        record.session_start = event.timestamp
        record.current_ms = 0
        self._touch(record, event)
        return True

    def _disconnect(self, event: GameEvent) -> bool:
        name = event.player_name
        record = self._records.get(name) if name else None
        if record is None:
            logger.debug("Ignoring disconnect for unknown player %s", name)
            return False

        if not record.is_online or record.session_start is None:
            # Duplicate or out-of-order disconnect: no session to close.
            record.status = PlayerStatus.DISCONNECTED
            record.last_seen = event.timestamp
            return True

        session_ms = elapsed_ms(record.session_start, event.timestamp)
        record.last_ms = session_ms
        record.played_ms += session_ms
        logger.debug("Closed session for %s: %s", name, format_duration(session_ms))

        record.status = PlayerStatus.DISCONNECTED
        record.session_start = None
        record.current_ms = 0
        self._touch(record, event, overwrite=False)
        return True

    @staticmethod
    def _touch(record: PlayerRecord, event: GameEvent, *, overwrite: bool = True) -> None:
        """Copy lastSeen and the descriptive fields from an event onto a record.

        With ``overwrite=False`` the event only fills world and container
        when the record has none yet.
        """
        record.last_seen = event.timestamp
        if event.player_xuid:
            record.xuid = event.player_xuid
        if event.world_name and (overwrite or not record.world):
            record.world = event.world_name
        if event.container_name and (overwrite or not record.container):
            record.container = event.container_name
