"""Player data and dashboard configuration endpoints."""

from fastapi import APIRouter

from presence_server.api.models import PlayerDataResponse, PlayerModel
from presence_server.config import UiSettings
from presence_server.core.event_source import EventSourceStatus
from presence_server.core.events import format_timestamp
from presence_server.core.service import PresenceService


def router(
    service: PresenceService,
    event_source: EventSourceStatus,
    ui: UiSettings,
) -> APIRouter:
    """Build the player router."""
    api = APIRouter(prefix="/api")

    @api.get("/player-data", response_model=PlayerDataResponse)
    def player_data():
        """
        Return every known player plus event source health.

        Live session durations are at most one staleness window old, and
        always current with respect to the latest ingested event.
        """
        result = service.get_players()
        source = event_source.snapshot()
        return PlayerDataResponse(
            players=[PlayerModel.from_record(player) for player in result.players],
            timestamp=format_timestamp(result.as_of),
            mqtt_connected=source.connected,
            mqtt_error=source.error,
            event_source=source.kind,
        )

    @api.get("/config")
    async def ui_config():
        """Return dashboard UI settings, or an empty object when none are set."""
        if ui.background:
            return {"background": ui.background}
        return {}

    return api
