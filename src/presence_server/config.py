"""
Server configuration management.

This module handles loading and accessing server configuration from multiple sources
with a clear priority order:

    1. Environment variables (highest priority) - for containerized deployments
    2. Config file (config/server.ini) - for static deployments
    3. Built-in defaults (lowest priority) - sensible fallbacks

Configuration is loaded once at module import time and cached. The ServerConfig
dataclass provides typed access to all settings.

Usage:
    from presence_server.config import config

    print(config.server.port)
    print(config.cache.staleness_window_ms)
    print(config.snapshot.absolute_path)

Environment Variable Mapping:
    PRESENCE_HOST                 -> server.host
    PRESENCE_PORT                 -> server.port
    PRESENCE_STALENESS_WINDOW_MS  -> cache.staleness_window_ms
    PRESENCE_SNAPSHOT_PATH        -> snapshot.path
    PRESENCE_EVENT_SOURCE         -> events.source
    PRESENCE_LOG_LEVEL            -> logging.level
"""

import configparser
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

# =============================================================================
# PATH CONFIGURATION
# =============================================================================

# Project root directory (contains src/, config/, data/)
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Config file paths
CONFIG_DIR = PROJECT_ROOT / "config"
CONFIG_FILE = CONFIG_DIR / "server.ini"
CONFIG_EXAMPLE = CONFIG_DIR / "server.example.ini"

EventSourceKind = Literal["mqtt", "direct"]


# =============================================================================
# CONFIGURATION DATACLASSES
# =============================================================================


@dataclass
class ServerSettings:
    """Network server configuration."""

    host: str = "0.0.0.0"  # nosec B104 - intentional for server binding
    port: int = 3001


@dataclass
class CacheSettings:
    """Presence cache configuration.

    The staleness window is the only setting the presence core consumes.
    """

    staleness_window_ms: int = 5000


@dataclass
class SnapshotSettings:
    """Snapshot persistence configuration."""

    path: str = "data/player-data.json"

    @property
    def absolute_path(self) -> Path:
        """Get absolute path to the snapshot file."""
        p = Path(self.path)
        if p.is_absolute():
            return p
        return PROJECT_ROOT / p


@dataclass
class EventSettings:
    """Event ingestion settings.

    ``source`` only labels which transport feeds the server; the transport
    itself lives outside this package.
    """

    source: EventSourceKind = "direct"
    audit_size: int = 1000


@dataclass
class LoggingSettings:
    """Logging configuration."""

    level: str = "INFO"
    format: Literal["simple", "detailed", "json"] = "detailed"


@dataclass
class UiSettings:
    """Settings passed through to the dashboard via ``/api/config``."""

    background: str | None = None


@dataclass
class ServerConfig:
    """
    Complete server configuration.

    This is the main configuration object that aggregates all settings sections.
    Access via the module-level `config` singleton.
    """

    server: ServerSettings = field(default_factory=ServerSettings)
    cache: CacheSettings = field(default_factory=CacheSettings)
    snapshot: SnapshotSettings = field(default_factory=SnapshotSettings)
    events: EventSettings = field(default_factory=EventSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    ui: UiSettings = field(default_factory=UiSettings)


# =============================================================================
# CONFIGURATION LOADING
# =============================================================================


def _parse_event_source(value: str) -> EventSourceKind | None:
    """Normalise an event source name, returning None when unrecognised."""
    val = value.strip().lower()
    if val in ("mqtt", "direct"):
        return val  # type: ignore[return-value]
    return None


def _load_from_ini(parser: configparser.ConfigParser, cfg: ServerConfig) -> None:
    """Load configuration from parsed INI file into ServerConfig."""
    # Server section
    if parser.has_section("server"):
        if parser.has_option("server", "host"):
            cfg.server.host = parser.get("server", "host")
        if parser.has_option("server", "port"):
            cfg.server.port = parser.getint("server", "port")

    # Cache section
    if parser.has_section("cache"):
        if parser.has_option("cache", "staleness_window_ms"):
            cfg.cache.staleness_window_ms = parser.getint("cache", "staleness_window_ms")

    # Snapshot section
    if parser.has_section("snapshot"):
        if parser.has_option("snapshot", "path"):
            cfg.snapshot.path = parser.get("snapshot", "path")

    # Events section
    if parser.has_section("events"):
        if parser.has_option("events", "source"):
            source = _parse_event_source(parser.get("events", "source"))
            if source:
                cfg.events.source = source
        if parser.has_option("events", "audit_size"):
            cfg.events.audit_size = parser.getint("events", "audit_size")

    # Logging section
    if parser.has_section("logging"):
        if parser.has_option("logging", "level"):
            cfg.logging.level = parser.get("logging", "level").upper()
        if parser.has_option("logging", "format"):
            val = parser.get("logging", "format").lower()
            if val in ("simple", "detailed", "json"):
                cfg.logging.format = val  # type: ignore[assignment]

    # UI section
    if parser.has_section("ui"):
        if parser.has_option("ui", "background"):
            cfg.ui.background = parser.get("ui", "background") or None


def _apply_env_overrides(cfg: ServerConfig) -> None:
    """Apply environment variable overrides to configuration."""
    # Server settings
    if env_host := os.getenv("PRESENCE_HOST"):
        cfg.server.host = env_host
    if env_port := os.getenv("PRESENCE_PORT"):
        cfg.server.port = int(env_port)

    # Cache settings
    if env_window := os.getenv("PRESENCE_STALENESS_WINDOW_MS"):
        cfg.cache.staleness_window_ms = int(env_window)

    # Snapshot settings
    if env_snapshot := os.getenv("PRESENCE_SNAPSHOT_PATH"):
        cfg.snapshot.path = env_snapshot

    # Event settings
    if env_source := os.getenv("PRESENCE_EVENT_SOURCE"):
        source = _parse_event_source(env_source)
        if source:
            cfg.events.source = source

    # Logging settings
    if env_log := os.getenv("PRESENCE_LOG_LEVEL"):
        cfg.logging.level = env_log.upper()


def load_config() -> ServerConfig:
    """
    Load configuration from all sources with proper priority.

    Priority (highest wins):
        1. Environment variables
        2. config/server.ini
        3. config/server.example.ini (fallback for development)
        4. Built-in defaults

    Returns:
        ServerConfig: Fully populated configuration object.
    """
    cfg = ServerConfig()

    # Determine which config file to use
    config_file = None
    if CONFIG_FILE.exists():
        config_file = CONFIG_FILE
    elif CONFIG_EXAMPLE.exists():
        config_file = CONFIG_EXAMPLE

    if config_file:
        parser = configparser.ConfigParser()
        parser.read(config_file)
        _load_from_ini(parser, cfg)

    # Apply environment variable overrides (highest priority)
    _apply_env_overrides(cfg)

    return cfg


def reload_config() -> "ServerConfig":
    """
    Reload configuration from disk and environment.

    This updates the module-level `config` singleton. Already-built services
    keep the settings they were constructed with.

    Returns:
        ServerConfig: The newly loaded configuration.
    """
    global config
    config = load_config()
    return config


# =============================================================================
# MODULE-LEVEL SINGLETON
# =============================================================================

# Load configuration once at module import time
config = load_config()


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def get_config_status() -> dict:
    """
    Get configuration status for diagnostics.

    Returns a dictionary with configuration source information,
    useful for debugging and the ``config`` CLI command.
    """
    return {
        "config_file_exists": CONFIG_FILE.exists(),
        "config_file_path": str(CONFIG_FILE),
        "using_example": not CONFIG_FILE.exists() and CONFIG_EXAMPLE.exists(),
        "snapshot_path": str(config.snapshot.absolute_path),
        "event_source": config.events.source,
        "staleness_window_ms": config.cache.staleness_window_ms,
    }


def print_config_summary() -> None:
    """Print a summary of current configuration to stdout."""
    status = get_config_status()
    print("\n" + "=" * 60)
    print("PRESENCE SERVER CONFIGURATION")
    print("=" * 60)
    print(f"Config file: {status['config_file_path']}")
    print(f"File exists: {status['config_file_exists']}")
    if status["using_example"]:
        print("WARNING: Using example config (copy to server.ini for production)")
    print("-" * 60)
    print(f"Server:       {config.server.host}:{config.server.port}")
    print(f"Event source: {status['event_source']}")
    print(f"Staleness:    {status['staleness_window_ms']} ms")
    print(f"Snapshot:     {status['snapshot_path']}")
    print(f"Log level:    {config.logging.level}")
    print("=" * 60 + "\n")


# =============================================================================
# TEST HELPERS
# =============================================================================


class use_test_snapshot:
    """
    Context manager for pointing the snapshot store at a temporary file.

    Usage:
        from presence_server.config import use_test_snapshot

        def test_something(tmp_path):
            with use_test_snapshot(tmp_path / "player-data.json"):
                service = PresenceService.from_config(config)

    Args:
        snapshot_path: Path to the test snapshot file
    """

    def __init__(self, snapshot_path: Path | str):
        self.snapshot_path = Path(snapshot_path)
        self.original_path: str | None = None

    def __enter__(self) -> Path:
        """Set up test snapshot path."""
        self.original_path = config.snapshot.path
        config.snapshot.path = str(self.snapshot_path)
        return self.snapshot_path

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Restore original snapshot path."""
        if self.original_path is not None:
            config.snapshot.path = self.original_path
        return None
