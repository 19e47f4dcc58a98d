"""
Zone definitions for calibrated instrument surfaces.

A zone is a ``ZoneRegion`` with a ``ZoneKind`` tag and the geometry that kind
needs. Geometry types are independent frozen dataclasses; dispatch happens on
the tag, not on a class hierarchy.
"""

from enum import Enum
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from .matcher import (
    Box, Segment,
    rect_contains, ellipse_contains, min_distance_to_segments,
)


class ZoneKind(Enum):
    """Kinds of playable zones."""
    KEY = "key"      # partitioned paper key, elliptical hitbox inside its slice box
    PAD = "pad"      # free-standing drum pad, elliptical hitbox
    EDGE = "edge"    # open multi-edge shape hit by proximity (triangle)
    AREA = "area"    # whole box, e.g. a tambourine held anywhere in view


@dataclass(frozen=True)
class EllipseGeometry:
    box: Box
    center: Tuple[float, float]
    radius_x: float
    radius_y: float


@dataclass(frozen=True)
class SegmentGeometry:
    segments: Tuple[Segment, ...]
    proximity: float


@dataclass(frozen=True)
class BoxGeometry:
    box: Box


Geometry = Union[EllipseGeometry, SegmentGeometry, BoxGeometry]

_GEOMETRY_FOR_KIND = {
    ZoneKind.KEY: EllipseGeometry,
    ZoneKind.PAD: EllipseGeometry,
    ZoneKind.EDGE: SegmentGeometry,
    ZoneKind.AREA: BoxGeometry,
}


@dataclass(frozen=True)
class DirectionGate:
    """
    Velocity predicate for zones that only accept strikes "toward" them.

    ``axis`` is ``"x"`` or ``"y"``; the signed velocity component on that axis
    times ``sign`` must be at least ``min_speed``. Image y grows downward, so
    ``DirectionGate("y", 1)`` means "moving down".
    """
    axis: str
    sign: int
    min_speed: float = 0.0

    def __post_init__(self):
        if self.axis not in ("x", "y"):
            raise ValueError(f"DirectionGate axis must be 'x' or 'y', got {self.axis!r}")
        if self.sign not in (-1, 1):
            raise ValueError(f"DirectionGate sign must be -1 or 1, got {self.sign!r}")

    def allows(self, vx: float, vy: float) -> bool:
        component = vx if self.axis == "x" else vy
        return component * self.sign >= self.min_speed

    def displaced(self, dx: float, dy: float, min_displacement: float) -> bool:
        """True if the last step moved at least ``min_displacement`` px the gated way."""
        component = dx if self.axis == "x" else dy
        return component * self.sign >= min_displacement


@dataclass(frozen=True)
class ZoneRegion:
    """One playable zone. ``output`` is the note / sound index it maps to."""
    zone_id: str
    output: int
    kind: ZoneKind
    geometry: Geometry
    directions: Tuple[DirectionGate, ...] = ()
    requires_touch: bool = False
    span: Optional[Tuple[float, float]] = None          # unpadded parametric interval
    padded_span: Optional[Tuple[float, float]] = None   # after boundary padding

    def __post_init__(self):
        expected = _GEOMETRY_FOR_KIND[self.kind]
        if not isinstance(self.geometry, expected):
            raise ValueError(
                f"Zone {self.zone_id}: {self.kind.value} zones need "
                f"{expected.__name__}, got {type(self.geometry).__name__}"
            )

    @property
    def bounds(self) -> Box:
        """Axis-aligned bounds, for overlays."""
        geom = self.geometry
        if isinstance(geom, SegmentGeometry):
            xs = [p[0] for seg in geom.segments for p in seg]
            ys = [p[1] for seg in geom.segments for p in seg]
            pad = geom.proximity
            return (min(xs) - pad, min(ys) - pad, max(xs) + pad, max(ys) + pad)
        return geom.box

    def contains(self, x: float, y: float) -> bool:
        """Containment (or proximity, for edge zones) of a pixel position."""
        geom = self.geometry
        if self.kind in (ZoneKind.KEY, ZoneKind.PAD):
            cx, cy = geom.center
            return ellipse_contains(cx, cy, geom.radius_x, geom.radius_y, x, y)
        if self.kind is ZoneKind.EDGE:
            return min_distance_to_segments(x, y, geom.segments) <= geom.proximity
        return rect_contains(geom.box, x, y)


def gates_pass(
    zone: ZoneRegion,
    vx: float,
    vy: float,
    step: Tuple[float, float] = (0.0, 0.0),
    depth: Optional[float] = None,
    touch_z_threshold: float = -0.015,
    min_displacement: float = 0.0,
) -> bool:
    """Evaluate a zone's direction and touch gates for one motion sample."""
    for gate in zone.directions:
        if not gate.allows(vx, vy):
            return False
        if not gate.displaced(step[0], step[1], min_displacement):
            return False
    if zone.requires_touch:
        # Negative depth is closer to the camera; no depth means no touch.
        if depth is None or depth >= touch_z_threshold:
            return False
    return True
