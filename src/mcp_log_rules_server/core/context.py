"""Context window extraction around a matched line."""

from __future__ import annotations

from collections.abc import Sequence

DEFAULT_CONTEXT_RADIUS = 3


def context_bounds(total: int, anchor: int, radius: int = DEFAULT_CONTEXT_RADIUS) -> tuple[int, int]:
    """Return the clamped [start, end) slice of lines around a 0-based anchor."""
    if radius < 0:
        raise ValueError("radius must be >= 0")
    if not 0 <= anchor < total:
        raise ValueError(f"anchor {anchor} is outside [0, {total})")
    start = max(0, anchor - radius)
    end = min(total, anchor + radius + 1)
    return start, end


def extract_context(
    lines: Sequence[str],
    anchor: int,
    radius: int = DEFAULT_CONTEXT_RADIUS,
) -> tuple[str, ...]:
    """Return the raw lines surrounding the anchor (anchor included)."""
    start, end = context_bounds(len(lines), anchor, radius)
    return tuple(lines[start:end])
