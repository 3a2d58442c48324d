"""Event validation and normalization.

Raw events arrive as untyped JSON objects from whatever transport feeds the
server.  :func:`validate` is the only path from a raw object to a
:class:`~presence_server.core.events.GameEvent`; the session ledger never sees
anything that has not passed through here.

Normalization rules
-------------------
- ``type`` must be one of :class:`~presence_server.core.events.EventType`.
- ``playerName`` is required for the two player kinds.
- ``playerName``, ``worldName`` and ``containerName`` are trimmed and then
  silently truncated to their length caps.  Truncation is a clamp against
  oversized input, not a rejection.
- ``containerName`` loses one leading ``/`` (container runtimes report names
  like ``/bedrock-server``).
- ``playerXuid`` may be a string or an integer and is stored as a string.
- A wrong-typed optional field rejects a player event but is dropped from
  a server event.
- Any ``timestamp`` in the raw object is ignored; the caller supplies the
  receipt time.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from presence_server.core.events import PLAYER_EVENT_TYPES, EventType, GameEvent, is_valid_event_type

MAX_PLAYER_NAME_LENGTH = 50
MAX_WORLD_NAME_LENGTH = 100
MAX_CONTAINER_NAME_LENGTH = 100


class EventValidationError(ValueError):
    """Raised when a raw event is malformed or of an unknown kind.

    The event is rejected as a whole; nothing about it reaches the ledger.

    Attributes:
        field: Name of the offending wire field, or ``None`` when the input
               as a whole is unusable.
    """

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


def validate(raw: Any, *, received_at: datetime) -> GameEvent:
    """Validate a raw event and return its normalized form.

    Args:
        raw:         Decoded JSON object from the event source.
        received_at: Receipt time to stamp on the event.

    Returns:
        A new :class:`GameEvent`.  ``raw`` is not modified.

    Raises:
        EventValidationError: If ``raw`` is not a mapping, ``type`` is not a
                              recognized kind, a player event lacks a
                              ``playerName``, or an optional field has the
                              wrong type.
    """
    if not isinstance(raw, Mapping):
        raise EventValidationError(
            f"Event must be a JSON object, got {type(raw).__name__}."
        )

    raw_type = raw.get("type")
    if not is_valid_event_type(raw_type):
        raise EventValidationError(f"Unrecognized event type: {raw_type!r}.", field="type")
    event_type = EventType(raw_type)

    # Server kinds carry these fields for information only: a value of the
    # wrong type is dropped rather than rejecting the event.
    strict = event_type in PLAYER_EVENT_TYPES

    player_name = _clean_text(raw, "playerName", MAX_PLAYER_NAME_LENGTH, strict=strict)
    if strict and not player_name:
        raise EventValidationError(
            f"{event_type.value} requires a non-empty playerName.", field="playerName"
        )

    container_name = _clean_text(
        raw, "containerName", MAX_CONTAINER_NAME_LENGTH, strip_prefix="/", strict=strict
    )

    return GameEvent(
        type=event_type,
        timestamp=received_at,
        player_name=player_name,
        player_xuid=_clean_xuid(raw, strict=strict),
        world_name=_clean_text(raw, "worldName", MAX_WORLD_NAME_LENGTH, strict=strict),
        container_name=container_name,
    )


def _clean_text(
    raw: Mapping[str, Any],
    key: str,
    max_length: int,
    *,
    strip_prefix: str | None = None,
    strict: bool = True,
) -> str | None:
    """Trim, de-prefix and clamp an optional string field.

    Returns ``None`` for absent, null or blank values, and for non-strings
    when ``strict`` is false.
    """
    value = raw.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        if not strict:
            return None
        raise EventValidationError(f"{key} must be a string.", field=key)

    text = value.strip()
    if strip_prefix and text.startswith(strip_prefix):
        text = text[len(strip_prefix):].strip()
    text = text[:max_length]
    return text or None


def _clean_xuid(raw: Mapping[str, Any], *, strict: bool = True) -> str | None:
    """Normalize ``playerXuid`` to a string; brokers often send it as a number."""
    value = raw.get("playerXuid")
    if value is None:
        return None
    # bool is an int subclass but never a meaningful identifier.
    if isinstance(value, bool) or not isinstance(value, str | int):
        if not strict:
            return None
        raise EventValidationError("playerXuid must be a string or integer.", field="playerXuid")
    text = str(value).strip()
    return text or None
