"""Presence cache: cheap, bounded-staleness reads over the session ledger.

Dashboards poll every couple of seconds.  Recomputing every open session's
live duration on each poll is wasted work, so :class:`PresenceCache` refreshes
``current_ms`` at most once per staleness window (5 s by default).

Two things make a read refresh:

1. The window has elapsed: ``now - last_recomputed > staleness_window``.
2. The ledger changed since the last refresh (its revision moved) or
   :meth:`PresenceCache.invalidate` was called.  A read that follows an event
   therefore always reflects it, whatever the window says.

The cache holds the ledger's map by reference and only ever writes
``current_ms`` on online records.  Readers get copies taken under the ledger
lock.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from presence_server.core.events import Clock, utc_now
from presence_server.core.ledger import PlayerRecord, SessionLedger, elapsed_ms

DEFAULT_STALENESS_WINDOW_MS = 5000


class PresenceCache:
    """Read-through view over a :class:`SessionLedger`.

    Args:
        ledger: The ledger whose records are served.
        staleness_window_ms: Maximum age of live durations before a read
                             recomputes them.
        clock: Source of "now"; injectable for tests.
    """

    def __init__(
        self,
        ledger: SessionLedger,
        *,
        staleness_window_ms: int = DEFAULT_STALENESS_WINDOW_MS,
        clock: Clock = utc_now,
    ) -> None:
        self._ledger = ledger
        self._window = timedelta(milliseconds=staleness_window_ms)
        self._clock = clock
        self._last_recomputed: datetime | None = None
        self._seen_revision: int | None = None

    @property
    def last_recomputed(self) -> datetime | None:
        """When live durations were last refreshed, or None if never."""
        return self._last_recomputed

    def invalidate(self) -> None:
        """Force the next read to recompute."""
        with self._ledger.lock:
            self._last_recomputed = None

    def read(self, now: datetime | None = None) -> list[PlayerRecord]:
        """Return copies of every record in first-seen order.

        Args:
            now: Evaluation time.  Defaults to the cache's clock.
        """
        with self._ledger.lock:
            if now is None:
                now = self._clock()
            if self._is_stale(now):
                self._recompute(now)
            return [record.copy() for record in self._ledger.records.values()]

    def _is_stale(self, now: datetime) -> bool:
        if self._last_recomputed is None or self._seen_revision != self._ledger.revision:
            return True
        return now - self._last_recomputed > self._window

    def _recompute(self, now: datetime) -> None:
        for record in self._ledger.records.values():
            if record.is_online and record.session_start is not None:
                record.current_ms = elapsed_ms(record.session_start, now)
        self._last_recomputed = now
        self._seen_revision = self._ledger.revision
