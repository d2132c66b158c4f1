"""Utility functions for formatting Discord messages."""

from __future__ import annotations

import math
import re
from functools import cache

_HUMAN_TIMESTAMP = re.compile(r"(?:(\d+)h)?(?:(\d+)m)?(?:(\d+)s)?")


@cache
def format_duration(seconds: int | float | None) -> str:
    if seconds is None or (isinstance(seconds, float) and not math.isfinite(seconds)) or seconds < 0:
        return "–"

    total_seconds = int(seconds)
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    secs = total_seconds % 60

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def parse_timestamp(value: str) -> int | None:
    """Parse a timestamp string into total seconds.

    Accepts formats like "90", "1:30", "1:30:00" or "1m30s".
    Returns None if the input is invalid.
    """
    value = value.strip()
    if not value:
        return None

    parts = value.split(":")
    if len(parts) > 3:
        return None

    try:
        int_parts = [int(p) for p in parts]
    except ValueError:
        return _parse_human_timestamp(value)

    if any(p < 0 for p in int_parts):
        return None

    if len(int_parts) == 1:
        return int_parts[0]
    if len(int_parts) == 2:
        return int_parts[0] * 60 + int_parts[1]
    return int_parts[0] * 3600 + int_parts[1] * 60 + int_parts[2]


def _parse_human_timestamp(raw: str) -> int | None:
    match = _HUMAN_TIMESTAMP.fullmatch(raw)
    if not match or not any(match.groups()):
        return None
    h, m, s = (int(g or 0) for g in match.groups())
    return h * 3600 + m * 60 + s


@cache
def truncate(text: str, max_length: int = 90) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 1] + "…"


def progress_bar(elapsed: float, total: float, slots: int = 10) -> str | None:
    """Render ``m:ss / m:ss`` over a bar with a marker at the current position.

    The marker sits at ``round(elapsed / total * slots)`` clamped to
    ``[0, slots]``. Returns None when *total* is unknown.
    """
    if not math.isfinite(total) or total <= 0:
        return None
    pos = max(0, min(slots, round(elapsed / total * slots)))
    bar = "▬" * pos + "\U0001f518" + "▬" * (slots - pos)
    return f"{format_duration(elapsed)} / {format_duration(total)}\n{bar}"
