"""
Perspective-aware partition of a surface quad into key zones.

The top and bottom edges are split into ``n`` equal parametric intervals and
matching points are joined, so keys narrow with the paper under perspective.
Shared boundaries are pulled inward by ``padding / n`` on each side to leave
a gap between neighbours; the outer edges of the first and last key stay put.
"""

import logging
from typing import List, Optional, Tuple, Union

from ..config import PartitionConfig
from ..zones.regions import ZoneRegion, ZoneKind, EllipseGeometry
from .types import SurfaceQuad, CalibrationFailure, Point

logger = logging.getLogger(__name__)


def _lerp(a: Point, b: Point, t: float) -> Point:
    return (a[0] + (b[0] - a[0]) * t, a[1] + (b[1] - a[1]) * t)


def _clamp(value: float, lo: Optional[float], hi: Optional[float]) -> float:
    if lo is not None:
        value = max(lo, value)
    if hi is not None:
        value = min(hi, value)
    return value


def zone_spans(n: int, padding: float) -> List[Tuple[Tuple[float, float], Tuple[float, float]]]:
    """
    Unpadded and padded parametric intervals for ``n`` zones.

    Returns a list of ``((t1, t2), (padded_t1, padded_t2))`` pairs.
    """
    if n < 1:
        raise ValueError(f"zone count must be >= 1, got {n}")
    offset = abs(padding) / n
    spans = []
    for i in range(n):
        t1 = i / n
        t2 = (i + 1) / n
        start = t1 if i == 0 else t1 + offset
        end = t2 if i == n - 1 else t2 - offset
        # Never let padding invert a slice
        mid = (t1 + t2) / 2.0
        start = max(0.0, min(start, mid))
        end = min(1.0, max(end, mid))
        spans.append(((t1, t2), (start, end)))
    return spans


def partition_zones(
    quad: SurfaceQuad,
    n: Optional[int] = None,
    config: Optional[PartitionConfig] = None,
) -> Union[List[ZoneRegion], CalibrationFailure]:
    """Split ``quad`` into ``n`` key zones with elliptical hitboxes."""
    config = config or PartitionConfig()
    n = config.zone_count if n is None else n

    failure = quad.validate(config.min_quad_area)
    if failure is not None:
        logger.warning("Refusing to partition quad: %s", failure.message)
        return failure

    zones = []
    for i, (span, (t1, t2)) in enumerate(zone_spans(n, config.padding)):
        top_start = _lerp(quad.top_left, quad.top_right, t1)
        top_end = _lerp(quad.top_left, quad.top_right, t2)
        bottom_start = _lerp(quad.bottom_left, quad.bottom_right, t1)
        bottom_end = _lerp(quad.bottom_left, quad.bottom_right, t2)

        xs = (top_start[0], top_end[0], bottom_start[0], bottom_end[0])
        ys = (top_start[1], top_end[1], bottom_start[1], bottom_end[1])
        x_min, x_max = min(xs), max(xs)
        y_min, y_max = min(ys), max(ys)
        width = x_max - x_min
        height = y_max - y_min

        radius_x = _clamp(width * config.radius_x_fraction, config.min_radius_x, config.max_radius_x)
        radius_y = _clamp(height * config.radius_y_fraction, config.min_radius_y, config.max_radius_y)

        zones.append(ZoneRegion(
            zone_id=f"key_{i}",
            output=i,
            kind=ZoneKind.KEY,
            geometry=EllipseGeometry(
                box=(x_min, y_min, x_max, y_max),
                center=(x_min + width / 2.0, y_min + height / 2.0),
                radius_x=radius_x,
                radius_y=radius_y,
            ),
            span=span,
            padded_span=(t1, t2),
        ))

    logger.debug("Partitioned quad into %d zones (padding %.3f)", n, config.padding)
    return zones
