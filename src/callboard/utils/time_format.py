"""Time formatting helpers for the board UI."""

from __future__ import annotations

import math


def format_seconds(seconds: float) -> str:
    """Format a position as MM:SS, or H:MM:SS from one hour on."""
    total = _coerce_seconds(seconds)
    hours = total // 3600
    minutes = (total // 60) % 60 if hours else total // 60
    secs = total % 60
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def format_age(seconds: float) -> str:
    """Short 'how long ago' text for the last state update."""
    age = max(0.0, seconds) if math.isfinite(seconds) else 0.0
    if age < 1.0:
        return "just now"
    if age < 60.0:
        return f"{int(age)}s ago"
    return f"{int(age // 60)}m ago"


def _coerce_seconds(value: float) -> int:
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(numeric):
        return 0
    return max(0, int(numeric))
