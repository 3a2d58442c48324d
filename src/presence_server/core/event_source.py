"""Reachability status of the event source.

The transport that delivers events (a broker subscription or direct HTTP
pushes) lives outside this package.  It reports its health here so the HTTP
layer can show it next to the player list.  Nothing in the presence core
reads this object.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from presence_server.config import EventSourceKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventSourceState:
    """Point-in-time view of :class:`EventSourceStatus`."""

    kind: EventSourceKind
    connected: bool
    error: str | None


class EventSourceStatus:
    """Thread-safe holder for the transport's connection state.

    A ``direct`` source has no connection to lose and always reports
    ``connected=False``, matching what dashboards already expect.
    """

    def __init__(self, kind: EventSourceKind = "direct") -> None:
        self._kind = kind
        self._connected = False
        self._error: str | None = None
        self._lock = threading.Lock()
        # Only the first successful connect is logged; reconnect storms are not.
        self._ever_connected = False

    def mark_connected(self) -> None:
        with self._lock:
            if not self._ever_connected:
                logger.info("Connected to %s event source", self._kind)
                self._ever_connected = True
            self._connected = True
            self._error = None

    def mark_disconnected(self, error: str | None = None) -> None:
        with self._lock:
            if error:
                logger.error("%s event source error: %s", self._kind, error)
            elif self._connected:
                logger.info("Disconnected from %s event source", self._kind)
            self._connected = False
            if error:
                self._error = error

    def snapshot(self) -> EventSourceState:
        with self._lock:
            return EventSourceState(kind=self._kind, connected=self._connected, error=self._error)
