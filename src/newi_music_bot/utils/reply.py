"""Utility functions for formatting Discord messages."""

from __future__ import annotations

import re
from functools import lru_cache

PROGRESS_GLYPH = "▬"
PROGRESS_KNOB = "\U0001f518"
FORMAT_CACHE_SIZE = 1024

_URL_RE = re.compile(r"^https?://", re.IGNORECASE)


@lru_cache(maxsize=FORMAT_CACHE_SIZE)
def format_clock(ms: int | float | None) -> str:
    """Format milliseconds as ``MM:SS``; minutes keep counting past an hour."""
    if ms is None or ms <= 0:
        return "00:00"

    total_seconds = int(ms // 1000)
    minutes = total_seconds // 60
    secs = total_seconds % 60
    return f"{minutes:02d}:{secs:02d}"


def format_track_title(title: str, author: str | None, requested_as_url: bool = False) -> str:
    if requested_as_url:
        return title
    if author:
        if author.lower() in title.lower():
            return title
        return f"{author} - {title}"
    return title


def build_progress_bar(position_ms: int | float, total_ms: int | float, bar_length: int = 18) -> str:
    """Render a fixed-width progress bar with a knob at the current position.

    Returns an empty string when the total duration is unknown (streams report 0).
    """
    if total_ms <= 0:
        return ""

    filled = int(position_ms / total_ms * bar_length)
    filled = max(0, min(filled, bar_length))
    return f"{PROGRESS_GLYPH * filled}{PROGRESS_KNOB}{PROGRESS_GLYPH * (bar_length - filled)}"


def parse_timestamp(value: str) -> int | None:
    """Parse a timestamp string into total seconds.

    Accepts formats like "90", "1:30", or "1:30:00".
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
        return None

    if any(p < 0 for p in int_parts):
        return None

    if len(int_parts) == 1:
        return int_parts[0]
    if len(int_parts) == 2:
        return int_parts[0] * 60 + int_parts[1]
    return int_parts[0] * 3600 + int_parts[1] * 60 + int_parts[2]


def is_url(query: str) -> bool:
    return bool(_URL_RE.match(query.strip()))


@lru_cache(maxsize=FORMAT_CACHE_SIZE)
def truncate(text: str, max_length: int = 90) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 1] + "…"
