"""HTTP API for the presence server."""
