"""Presence core: event validation, session bookkeeping, caching, snapshots.

Public surface
--------------
- :class:`PresenceService`     : ingestion and query entry point.
- :class:`SessionLedger`       : per-player state machine and record owner.
- :class:`PresenceCache`       : bounded-staleness reads over the ledger.
- :class:`SnapshotStore`       : JSON snapshot load/save.
- :class:`SnapshotWriter`      : background snapshot writes.
- :func:`validate`             : raw event to :class:`GameEvent`.
- :exc:`EventValidationError`  : raised for rejected events.
- :exc:`SnapshotWriteError`    : raised when a snapshot cannot be written.

Usage example
-------------
::

    from presence_server.config import config
    from presence_server.core import EventValidationError, PresenceService

    service = PresenceService.from_config(config)
    service.load_snapshot()

    try:
        service.process_event({"type": "PLAYER_CONNECTED", "playerName": "Alice"})
    except EventValidationError:
        ...

    for player in service.get_players().players:
        print(player.name, player.status.value)
"""

from presence_server.core.cache import PresenceCache
from presence_server.core.durations import format_duration, parse_duration
from presence_server.core.events import EventType, GameEvent
from presence_server.core.ledger import PlayerRecord, PlayerStatus, SessionLedger
from presence_server.core.service import PlayerList, PresenceService
from presence_server.core.snapshot import SnapshotStore, SnapshotWriteError, SnapshotWriter
from presence_server.core.validator import EventValidationError, validate

__all__ = [
    "EventType",
    "EventValidationError",
    "GameEvent",
    "PlayerList",
    "PlayerRecord",
    "PlayerStatus",
    "PresenceCache",
    "PresenceService",
    "SessionLedger",
    "SnapshotStore",
    "SnapshotWriteError",
    "SnapshotWriter",
    "format_duration",
    "parse_duration",
    "validate",
]
