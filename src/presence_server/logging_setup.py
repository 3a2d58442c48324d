"""Root logger configuration driven by :class:`~presence_server.config.LoggingSettings`.

Every module logs through ``logging.getLogger(__name__)``; this module only
decides where those records go and how they look.  Three formats are
supported:

- ``simple``  : ``[LEVEL] message``, for interactive consoles.
- ``detailed``: timestamp, level, logger name and message.
- ``json``    : one JSON object per line for log shippers.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime

from presence_server.config import LoggingSettings

_FORMATS = {
    "simple": "[%(levelname)s] %(message)s",
    "detailed": "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
}


class JsonFormatter(logging.Formatter):
    """Render a log record as a single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(settings: LoggingSettings) -> None:
    """Install a single stream handler on the root logger.

    Safe to call more than once: existing root handlers are replaced so a
    reload does not duplicate output.

    Args:
        settings: Level and format to apply.  Unknown level names fall back
                  to ``INFO``.
    """
    level = logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler()
    if settings.format == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(_FORMATS[settings.format]))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)
