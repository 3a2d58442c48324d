"""
Event types and the normalized event record.

=============================================================================
EVENT KINDS
=============================================================================

Game server agents publish five kinds of lifecycle event.  The names are the
wire values the agents send in the ``type`` field and are kept verbatim:

    PLAYER_CONNECTED      a player joined a world
    PLAYER_DISCONNECTED   a player left a world
    SERVER_STARTED        the game server process came up
    SERVER_STOPPED        the game server process went down
    BACKUP_COMPLETE       a world backup finished

Only the two player kinds mutate presence state.  The server kinds are kept
in the audit log for collaborators and otherwise ignored.

=============================================================================
USAGE
=============================================================================

    from presence_server.core.events import EventType, GameEvent

    event = GameEvent(
        type=EventType.PLAYER_CONNECTED,
        timestamp=datetime.now(UTC),
        player_name="Alice",
        world_name="Bedrock level",
    )
    if event.is_player_event:
        ...

=============================================================================
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class EventType(str, Enum):
    """All event kinds accepted at the ingestion boundary."""

    PLAYER_CONNECTED = "PLAYER_CONNECTED"
    PLAYER_DISCONNECTED = "PLAYER_DISCONNECTED"
    SERVER_STARTED = "SERVER_STARTED"
    SERVER_STOPPED = "SERVER_STOPPED"
    BACKUP_COMPLETE = "BACKUP_COMPLETE"


PLAYER_EVENT_TYPES = frozenset({EventType.PLAYER_CONNECTED, EventType.PLAYER_DISCONNECTED})


def get_all_event_types() -> list[str]:
    """Return every accepted wire value, in declaration order."""
    return [kind.value for kind in EventType]


def is_valid_event_type(value: Any) -> bool:
    """Check whether ``value`` is one of the accepted wire values."""
    return isinstance(value, str) and value in EventType._value2member_map_


@dataclass(frozen=True)
class GameEvent:
    """
    A validated, normalized event.

    Instances are only produced by :func:`presence_server.core.validator.validate`
    (or directly by tests).  Every string field has already been trimmed and
    length-capped, and ``player_name`` is guaranteed to be present for player
    kinds.

    Attributes:
        type: The event kind.
        timestamp: Receipt time assigned by the ingesting boundary (UTC).
                   Whatever timestamp the sender supplied is discarded.
        player_name: Player display name; the key for player records.
        player_xuid: Opaque platform identifier, if the sender knew it.
        world_name: World the event relates to.
        container_name: Name of the container hosting the game server,
                        without a leading ``/``.
    """

    type: EventType
    timestamp: datetime
    player_name: str | None = None
    player_xuid: str | None = None
    world_name: str | None = None
    container_name: str | None = None

    @property
    def is_player_event(self) -> bool:
        """True for the kinds that mutate player records."""
        return self.type in PLAYER_EVENT_TYPES

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the wire field names, for the audit log."""
        return {
            "type": self.type.value,
            "playerName": self.player_name,
            "playerXuid": self.player_xuid,
            "worldName": self.world_name,
            "containerName": self.container_name,
            "timestamp": format_timestamp(self.timestamp),
        }


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock: the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def format_timestamp(value: datetime) -> str:
    """Render a timestamp as ISO-8601 UTC with millisecond precision and ``Z``."""
    if value.tzinfo is not None:
        value = value.astimezone(UTC)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")
