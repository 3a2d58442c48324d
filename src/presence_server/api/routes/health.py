"""Health and root endpoints.

Provides the root ``/`` endpoint (API identity and version) and the
``/health`` endpoint (liveness check with player counts).
"""

from fastapi import APIRouter

from presence_server import __version__
from presence_server.core.service import PresenceService


def router(service: PresenceService) -> APIRouter:
    """Build the health router with access to the presence service."""
    api = APIRouter()

    @api.get("/")
    async def root():
        """Root endpoint showing API identity and current version."""
        return {"message": "Presence Server API", "version": __version__}

    @api.get("/health")
    def health_check():
        """Health check endpoint."""
        total, online = service.ledger.counts()
        return {"status": "ok", "players": total, "online_players": online}

    return api
