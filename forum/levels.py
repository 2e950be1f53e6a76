"""
Member level derived from accumulated points.
"""

from __future__ import annotations

# (minimum points, level), highest threshold first.
LEVEL_THRESHOLDS: tuple[tuple[int, int], ...] = (
    (5000, 5),
    (2000, 4),
    (500, 3),
    (100, 2),
    (10, 1),
)


def calculate_level(points: int) -> int:
    """Return the level (0-5) for a points total. Never stored, always recomputed."""
    for minimum, level in LEVEL_THRESHOLDS:
        if points >= minimum:
            return level
    return 0
