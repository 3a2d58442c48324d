"""API route registration.

Each module exposes a ``router(...)`` factory that closes over the objects it
needs; :func:`register_routes` builds and mounts them all.
"""

from fastapi import FastAPI

from presence_server.api.routes import events, health, players
from presence_server.config import UiSettings
from presence_server.core.event_source import EventSourceStatus
from presence_server.core.service import PresenceService


def register_routes(
    app: FastAPI,
    service: PresenceService,
    event_source: EventSourceStatus,
    ui: UiSettings,
) -> None:
    """Register all API routes with the FastAPI app."""
    app.include_router(health.router(service))
    app.include_router(players.router(service, event_source, ui))
    app.include_router(events.router(service))
