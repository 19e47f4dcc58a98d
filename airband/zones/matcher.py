"""
Stateless geometric hit tests.

Elliptical tests serve closed key/pad zones; segment distance serves open
multi-edge zones where a hit is "close enough to any edge", not containment.
"""

import math
from typing import Iterable, Tuple

Box = Tuple[float, float, float, float]          # (x_min, y_min, x_max, y_max)
Segment = Tuple[Tuple[float, float], Tuple[float, float]]


def rect_contains(box: Box, x: float, y: float) -> bool:
    """Inclusive axis-aligned box test."""
    x_min, y_min, x_max, y_max = box
    return x_min <= x <= x_max and y_min <= y <= y_max


def ellipse_value(cx: float, cy: float, rx: float, ry: float, x: float, y: float) -> float:
    """Normalized distance (dx/rx)^2 + (dy/ry)^2; <= 1 means inside."""
    if rx <= 0 or ry <= 0:
        return math.inf
    dx = (x - cx) / rx
    dy = (y - cy) / ry
    return dx * dx + dy * dy


def ellipse_contains(cx: float, cy: float, rx: float, ry: float, x: float, y: float) -> bool:
    return ellipse_value(cx, cy, rx, ry, x, y) <= 1.0


def distance_to_segment(
    px: float, py: float,
    x1: float, y1: float,
    x2: float, y2: float,
) -> float:
    """Distance from P to the closest point of the finite segment (x1,y1)-(x2,y2)."""
    dx = x2 - x1
    dy = y2 - y1
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return math.hypot(px - x1, py - y1)

    t = ((px - x1) * dx + (py - y1) * dy) / length_sq
    t = max(0.0, min(1.0, t))
    closest_x = x1 + t * dx
    closest_y = y1 + t * dy
    return math.hypot(px - closest_x, py - closest_y)


def min_distance_to_segments(x: float, y: float, segments: Iterable[Segment]) -> float:
    """Smallest distance to any segment (inf for an empty set)."""
    best = math.inf
    for (x1, y1), (x2, y2) in segments:
        d = distance_to_segment(x, y, x1, y1, x2, y2)
        if d < best:
            best = d
    return best
