"""
Command-line interface for the Presence Server.

Provides CLI commands for server management:
- run: Start the HTTP API server
- config: Print the resolved configuration
- snapshot: Show the players a restart would load from the snapshot file

Usage:
    presence-server run [--host HOST] [--port PORT]
    presence-server config
    presence-server snapshot [--path PATH]

Environment Variables:
    PRESENCE_HOST: Host to bind the API server (default: 0.0.0.0)
    PRESENCE_PORT: Port for the API server (default: 3001)
    PRESENCE_SNAPSHOT_PATH: Snapshot file location (default: data/player-data.json)
"""

import argparse
import sys


def cmd_run(args: argparse.Namespace) -> int:
    """
    Run the presence API server.

    Configuration Priority:
        1. CLI arguments (--host, --port)
        2. Environment variables (PRESENCE_HOST, PRESENCE_PORT)
        3. config/server.ini, then built-in defaults

    Returns:
        0 on clean shutdown (Ctrl+C), 1 on error during startup
    """
    from presence_server.api.server import start_server

    try:
        start_server(host=getattr(args, "host", None), port=getattr(args, "port", None))
        return 0
    except KeyboardInterrupt:
        print("\nServer stopped.")
        return 0
    except Exception as e:
        print(f"Error starting server: {e}", file=sys.stderr)
        return 1


def cmd_config(args: argparse.Namespace) -> int:
    """Print the resolved configuration summary."""
    from presence_server.config import print_config_summary

    print_config_summary()
    return 0


def cmd_snapshot(args: argparse.Namespace) -> int:
    """
    Print the players stored in a snapshot file.

    Shows the records exactly as a restarting server would load them, i.e.
    with every player disconnected.

    Returns:
        0 on success, 1 if the file does not exist
    """
    from presence_server.config import config
    from presence_server.core.durations import format_duration
    from presence_server.core.snapshot import SnapshotStore

    path = getattr(args, "path", None) or config.snapshot.absolute_path
    store = SnapshotStore(path)
    if not store.path.exists():
        print(f"Error: snapshot not found at {store.path}", file=sys.stderr)
        return 1

    records = store.load()
    print(f"{len(records)} players in {store.path}")
    for record in records:
        print(
            f"  {record.name:<24} played {format_duration(record.played_ms):>12}"
            f"  last {format_duration(record.last_ms):>12}"
            f"  world {record.world or 'Unknown'}"
        )
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="presence-server",
        description="Presence Server - player presence and playtime for game servers",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # run command
    run_parser = subparsers.add_parser(
        "run",
        help="Run the API server",
        description="Load the snapshot and start serving the presence API.",
    )
    run_parser.add_argument(
        "--port",
        "-p",
        type=int,
        help="API server port (default: 3001, or PRESENCE_PORT env var)",
    )
    run_parser.add_argument(
        "--host",
        type=str,
        help="Host to bind to (default: 0.0.0.0, or PRESENCE_HOST env var)",
    )
    run_parser.set_defaults(func=cmd_run)

    # config command
    config_parser = subparsers.add_parser("config", help="Show the resolved configuration")
    config_parser.set_defaults(func=cmd_config)

    # snapshot command
    snapshot_parser = subparsers.add_parser(
        "snapshot",
        help="Show players stored in the snapshot file",
    )
    snapshot_parser.add_argument(
        "--path",
        type=str,
        help="Snapshot file to read (default: configured snapshot path)",
    )
    snapshot_parser.set_defaults(func=cmd_snapshot)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
