"""Display helpers for gauntlet results."""

from __future__ import annotations


def format_time(ms: float) -> str:
    """Format milliseconds as ``M:SS.cc`` or ``S.ccs`` under a minute."""
    total_ms = int(ms)
    total_seconds = total_ms // 1000
    minutes = total_seconds // 60
    seconds = total_seconds % 60
    centis = (total_ms % 1000) // 10

    if minutes > 0:
        return f"{minutes}:{seconds:02d}.{centis:02d}"
    return f"{seconds}.{centis:02d}s"


def format_accuracy(accuracy: float) -> str:
    """Format a 0..1 accuracy ratio as a percentage."""
    return f"{accuracy * 100:.1f}%"
