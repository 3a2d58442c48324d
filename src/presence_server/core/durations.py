"""Duration formatting for the ``"{h}h {m}m {s}s"`` wire and storage form.

Durations are held as integer milliseconds everywhere inside the server.  The
text form exists only at the edges: the HTTP response and the snapshot file,
which the dashboard and older snapshots already depend on.

Hours are unbounded (``"250h 0m 0s"`` is valid); minutes and seconds are
always below 60.  Sub-second remainders are floored away, so formatting is
not injective, but :func:`parse_duration` followed by :func:`format_duration`
reproduces any string :func:`parse_duration` accepts.
"""

from __future__ import annotations

import re

MS_PER_SECOND = 1_000
MS_PER_MINUTE = 60_000
MS_PER_HOUR = 3_600_000

ZERO_DURATION = "0h 0m 0s"

_DURATION_RE = re.compile(r"^(0|[1-9]\d*)h ([1-5]?\d)m ([1-5]?\d)s$")


def format_duration(ms: int) -> str:
    """Render a millisecond count as ``"{h}h {m}m {s}s"``.

    Negative input is treated as zero.
    """
    ms = max(0, int(ms))
    hours = ms // MS_PER_HOUR
    minutes = (ms % MS_PER_HOUR) // MS_PER_MINUTE
    seconds = (ms % MS_PER_MINUTE) // MS_PER_SECOND
    return f"{hours}h {minutes}m {seconds}s"


def parse_duration(text: object) -> int:
    """Parse a ``"{h}h {m}m {s}s"`` string back to milliseconds.

    Only the canonical form is accepted: no leading zeros, minutes and
    seconds below 60.  Anything else yields ``0``.  This never
    raises: the only producer of these strings is :func:`format_duration`, so a
    mismatch means a hand-edited or damaged snapshot, and zero is the safe
    reading.
    """
    if not isinstance(text, str):
        return 0
    match = _DURATION_RE.match(text)
    if match is None:
        return 0
    hours, minutes, seconds = (int(part) for part in match.groups())
    return hours * MS_PER_HOUR + minutes * MS_PER_MINUTE + seconds * MS_PER_SECOND
