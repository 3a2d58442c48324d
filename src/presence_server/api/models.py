"""
Pydantic models for API responses.

Field names on the wire are camelCase because the dashboard and existing
snapshots already use them; the Python attributes are snake_case with
aliases.  FastAPI serialises by alias, so ``PlayerModel.last_seen`` is sent
as ``lastSeen``.
"""

from pydantic import BaseModel, ConfigDict, Field

from presence_server.core.events import GameEvent
from presence_server.core.ledger import PlayerRecord


class _WireModel(BaseModel):
    """Base for models whose wire names are camelCase aliases."""

    model_config = ConfigDict(populate_by_name=True)


# ============================================================================
# PLAYER DATA
# ============================================================================


class PlayerModel(_WireModel):
    """
    One player as shown on the dashboard.

    Durations use the ``"{h}h {m}m {s}s"`` text form.
    """

    name: str
    status: str
    last_seen: str | None = Field(default=None, alias="lastSeen")
    xuid: str | None = None
    world: str | None = None
    container: str | None = None
    played_duration: str = Field(alias="playedDuration")
    last_duration: str = Field(alias="lastDuration")
    current_session_duration: str = Field(alias="currentSessionDuration")

    @classmethod
    def from_record(cls, record: PlayerRecord) -> "PlayerModel":
        return cls.model_validate(record.to_dict())


class PlayerDataResponse(_WireModel):
    """
    Response for ``GET /api/player-data``.

    Attributes:
        players: Every known player, first-seen order.
        timestamp: Query time (ISO-8601).  Live durations may lag it by up
                   to one staleness window.
        mqtt_connected: Whether the event source is currently reachable.
        mqtt_error: Last error reported by the event source, if any.
        event_source: Configured event source kind (``mqtt`` or ``direct``).
    """

    players: list[PlayerModel]
    timestamp: str
    mqtt_connected: bool = Field(alias="mqttConnected")
    mqtt_error: str | None = Field(default=None, alias="mqttError")
    event_source: str = Field(alias="eventSource")


# ============================================================================
# EVENTS
# ============================================================================


class EventIngestResponse(BaseModel):
    """Response for ``POST /api/events``."""

    success: bool


class EventModel(_WireModel):
    """An ingested event as kept in the audit log."""

    type: str
    timestamp: str
    player_name: str | None = Field(default=None, alias="playerName")
    player_xuid: str | None = Field(default=None, alias="playerXuid")
    world_name: str | None = Field(default=None, alias="worldName")
    container_name: str | None = Field(default=None, alias="containerName")

    @classmethod
    def from_event(cls, event: GameEvent) -> "EventModel":
        return cls.model_validate(event.to_dict())


class RecentEventsResponse(BaseModel):
    """Response for ``GET /api/events/recent``; newest first."""

    events: list[EventModel]
