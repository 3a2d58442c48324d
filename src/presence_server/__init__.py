"""Presence Server: player presence and session tracking for game servers.

Consumes lifecycle events (player connected/disconnected, server started/
stopped, backup complete) from an event source, reduces them into one record
per player, and serves the derived presence model to dashboards over HTTP.

Version Management
------------------
``__version__`` is read from the installed package metadata at import time.
The single source of truth is the ``version`` field in ``pyproject.toml``.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

# ---------------------------------------------------------------------------
# Package version: read from pyproject.toml via importlib.metadata.
#
# If the package is imported without being installed (e.g. straight from a
# source checkout), fall back to a dev marker so the server can still start.
# ---------------------------------------------------------------------------
try:
    __version__: str = version("presence-server")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
