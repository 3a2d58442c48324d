"""Event ingestion endpoints.

``POST /api/events`` is the direct-push transport: game server agents that
do not go through a broker post the same JSON objects here.
"""

from typing import Any

from fastapi import APIRouter, Body, HTTPException, Query

from presence_server.api.models import EventIngestResponse, EventModel, RecentEventsResponse
from presence_server.core.service import PresenceService
from presence_server.core.validator import EventValidationError


def router(service: PresenceService) -> APIRouter:
    """Build the events router."""
    api = APIRouter(prefix="/api/events")

    @api.post("", response_model=EventIngestResponse)
    def ingest_event(payload: Any = Body(...)):
        """
        Ingest one raw event.

        Returns 400 with the validation message when the event is rejected.
        Snapshot persistence happens in the background and never fails the
        request.
        """
        try:
            service.process_event(payload)
        except EventValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return EventIngestResponse(success=True)

    @api.get("/recent", response_model=RecentEventsResponse)
    def recent_events(limit: int = Query(50, ge=1, le=1000)):
        """Return the most recently ingested events, newest first."""
        events = service.recent_events(limit)
        return RecentEventsResponse(events=[EventModel.from_event(event) for event in events])

    return api
