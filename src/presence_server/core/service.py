"""Presence service: the single entry point for ingestion and queries.

:class:`PresenceService` wires the validator, session ledger, presence cache
and snapshot writer together.  Transports hand it raw events; the HTTP layer
asks it for the player list.  Nothing here is a module-level global: build one
service per process (normally via :meth:`PresenceService.from_config`) and
pass it to whoever needs it.

Ingestion sequence (``process_event``):

1. Stamp the receipt time from the service clock.
2. Validate.  A rejection is logged and re-raised; the ledger, audit log and
   snapshot are untouched.
3. Under the ledger lock: apply the event, record it in the audit log and,
   when a record changed, invalidate the cache and queue a snapshot of the
   post-event state.
4. Return.  The snapshot is written on the writer's own thread.

Holding the ledger lock across step 3 serialises events from every transport
(broker callback threads, HTTP worker threads) into one arrival order, and
queueing the snapshot inside the lock keeps the write order identical to the
mutation order.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from itertools import islice
from typing import Any

from presence_server.config import ServerConfig
from presence_server.core.cache import PresenceCache
from presence_server.core.events import Clock, GameEvent, utc_now
from presence_server.core.ledger import PlayerRecord, SessionLedger
from presence_server.core.snapshot import SnapshotStore, SnapshotWriter
from presence_server.core.validator import EventValidationError, validate

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_SIZE = 1000


@dataclass(frozen=True)
class PlayerList:
    """Result of :meth:`PresenceService.get_players`.

    Attributes:
        players: Record copies in first-seen order.
        as_of: Query time.  Live durations may be up to one staleness
               window older than this.
    """

    players: list[PlayerRecord]
    as_of: datetime

    @property
    def online(self) -> list[PlayerRecord]:
        return [player for player in self.players if player.is_online]


class PresenceService:
    """Owns one ledger and everything that reads or persists it.

    Args:
        ledger: The session ledger to mutate.
        cache: Presence cache over the same ledger.
        writer: Snapshot writer, or None to run without persistence.
        clock: Source of receipt and query times.
        audit_size: Number of recent events kept in memory.
    """

    def __init__(
        self,
        *,
        ledger: SessionLedger,
        cache: PresenceCache,
        writer: SnapshotWriter | None = None,
        clock: Clock = utc_now,
        audit_size: int = DEFAULT_AUDIT_SIZE,
    ) -> None:
        self.ledger = ledger
        self.cache = cache
        self._writer = writer
        self._clock = clock
        self._audit: deque[GameEvent] = deque(maxlen=audit_size)
        self._snapshot_loaded = False

    @classmethod
    def from_config(cls, cfg: ServerConfig, *, clock: Clock = utc_now) -> PresenceService:
        """Build the default wiring from configuration."""
        ledger = SessionLedger()
        cache = PresenceCache(
            ledger, staleness_window_ms=cfg.cache.staleness_window_ms, clock=clock
        )
        writer = SnapshotWriter(SnapshotStore(cfg.snapshot.absolute_path))
        return cls(
            ledger=ledger,
            cache=cache,
            writer=writer,
            clock=clock,
            audit_size=cfg.events.audit_size,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load_snapshot(self) -> int:
        """Seed the ledger from the snapshot file.  Runs at most once.

        Once an event has been ingested the live ledger is authoritative and
        the snapshot is never loaded over it.

        Returns:
            Number of records restored (0 on repeat or late calls).
        """
        with self.ledger.lock:
            if self._snapshot_loaded:
                logger.warning("Snapshot load skipped; ledger already in use")
                return 0
            self._snapshot_loaded = True

            if self._writer is None:
                return 0

            records = self._writer.store.load()
            self.ledger.restore(records)
            self.cache.invalidate()
            return len(records)

    def flush(self, timeout: float | None = None) -> None:
        """Wait for queued snapshot writes to finish."""
        if self._writer is not None:
            self._writer.flush(timeout)

    def close(self) -> None:
        """Drain queued snapshot writes and stop the writer thread."""
        if self._writer is not None:
            self._writer.close()

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def process_event(self, raw: Any) -> GameEvent:
        """Validate and apply one raw event.

        Args:
            raw: Decoded JSON object from any transport.

        Returns:
            The normalized event as applied.

        Raises:
            EventValidationError: If the event is rejected.  No state changes.
        """
        received_at = self._clock()
        try:
            event = validate(raw, received_at=received_at)
        except EventValidationError as exc:
            logger.warning("Rejected event: %s", exc)
            raise

        logger.info(
            "Event received: %s - %s - %s",
            event.type.value,
            event.player_name or "N/A",
            event.world_name or "N/A",
        )

        with self.ledger.lock:
            self._snapshot_loaded = True
            changed = self.ledger.apply(event)
            self._audit.appendleft(event)
            if changed:
                self.cache.invalidate()
                if logger.isEnabledFor(logging.DEBUG):
                    total, online = self.ledger.counts()
                    logger.debug("Players updated: %d total, %d online", total, online)
                self._schedule_snapshot(received_at)

        return event

    def _schedule_snapshot(self, saved_at: datetime) -> None:
        """Queue the current ledger state for writing.  Caller holds the lock."""
        if self._writer is None:
            return
        payload = self._writer.store.build_payload(list(self.ledger.records.values()), saved_at)
        self._writer.schedule(payload)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_players(self) -> PlayerList:
        """Return every player with live durations no older than the window."""
        now = self._clock()
        return PlayerList(players=self.cache.read(now), as_of=now)

    def recent_events(self, limit: int = 50) -> list[GameEvent]:
        """Return up to ``limit`` ingested events, newest first."""
        with self.ledger.lock:
            return list(islice(self._audit, max(0, limit)))
