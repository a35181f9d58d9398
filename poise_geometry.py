"""
Poise -- Geometry Utilities
============================
Pure functions over 2D landmark coordinates. z is ignored everywhere.

Points may be MediaPipe-style objects (.x, .y), Landmark dataclasses,
tuples, or NumPy rows; point_xy() normalizes all of them.
"""

from __future__ import annotations

import math
from typing import Any, Iterable

from poise_types import EyeBounds


def point_xy(point: Any) -> tuple[float, float]:
    """Return (x, y) from an object (.x, .y) or an indexable ([0], [1])."""
    if hasattr(point, "x") and hasattr(point, "y"):
        return float(point.x), float(point.y)
    return float(point[0]), float(point[1])


def distance(a: Any, b: Any) -> float:
    """Euclidean distance between two points in the x/y plane.

    NaN coordinates propagate to a NaN result.
    """
    ax, ay = point_xy(a)
    bx, by = point_xy(b)
    return math.hypot(ax - bx, ay - by)


def bounding_box(points: Iterable[Any]) -> EyeBounds:
    """Min/max over x and y of a non-empty point set.

    Raises:
        ValueError: if `points` is empty. Callers pass fixed-size
                    landmark subsets, so an empty set means the
                    topology contract is broken.
    """
    coords = [point_xy(p) for p in points]
    if not coords:
        raise ValueError("bounding_box() requires at least one point")

    xs = [c[0] for c in coords]
    ys = [c[1] for c in coords]
    return EyeBounds(min_x=min(xs), max_x=max(xs), min_y=min(ys), max_y=max(ys))
