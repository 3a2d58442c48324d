"""
FastAPI backend server for the presence dashboard.

This module builds the FastAPI application that exposes the presence service
over HTTP.  It:
- Creates (or accepts) the PresenceService that owns all player state
- Loads the snapshot once when the app starts and drains pending snapshot
  writes when it stops
- Registers the API route endpoints for ingestion and queries

The app is built by :func:`create_app` rather than at import time so tests
and embedding transports can inject their own service and event source.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from presence_server import __version__
from presence_server.api.routes import register_routes
from presence_server.config import ServerConfig, config
from presence_server.core.event_source import EventSourceStatus
from presence_server.core.service import PresenceService
from presence_server.logging_setup import configure_logging

logger = logging.getLogger(__name__)


def create_app(
    service: PresenceService | None = None,
    event_source: EventSourceStatus | None = None,
    settings: ServerConfig | None = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        service: Presence service to serve.  Built from ``settings`` if omitted.
        event_source: Status holder shared with the event transport.  A fresh
                      one for the configured source kind if omitted.
        settings: Configuration; defaults to the module-level singleton.

    Returns:
        A FastAPI app whose lifespan loads the snapshot on startup.
    """
    settings = settings or config
    if service is None:
        service = PresenceService.from_config(settings)
    if event_source is None:
        event_source = EventSourceStatus(settings.events.source)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        restored = service.load_snapshot()
        if settings.events.source == "direct":
            logger.info("Event source set to direct JSON - broker disabled")
        logger.info("Presence server ready with %d known players", restored)
        yield
        service.close()

    app = FastAPI(title="Presence Server", version=__version__, lifespan=lifespan)
    app.state.service = service
    app.state.event_source = event_source

    register_routes(app, service, event_source, settings.ui)
    return app


def start_server(host: str | None = None, port: int | None = None) -> None:
    """
    Configure logging and run the app under uvicorn.

    Args:
        host: Interface to bind; defaults to ``config.server.host``.
        port: Port to bind; defaults to ``config.server.port``.
    """
    import uvicorn

    configure_logging(config.logging)
    host = host or config.server.host
    port = port or config.server.port
    logger.info("Server running on %s:%d", host, port)
    uvicorn.run(create_app(), host=host, port=port)


if __name__ == "__main__":
    start_server()
