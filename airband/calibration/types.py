"""
Calibration data types: frames, the detected surface quad, and failures.
"""

import time
from enum import Enum
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

Point = Tuple[float, float]


@dataclass
class Frame:
    """A raw BGR frame (OpenCV layout, HxWx3 uint8)."""
    pixels: np.ndarray
    timestamp: float = field(default_factory=time.time)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])


class FailureKind(Enum):
    """Why calibration produced no zones."""
    NO_SURFACE = "no_surface"                    # no qualifying paper candidate
    DEGENERATE_GEOMETRY = "degenerate_geometry"  # zero-area / non-convex quad
    INVALID_FRAME = "invalid_frame"              # empty or wrongly shaped pixels


@dataclass(frozen=True)
class CalibrationFailure:
    """Recoverable calibration result; retry on a later frame."""
    kind: FailureKind
    message: str = ""

    def __bool__(self):
        return False


def _cross(o: Point, a: Point, b: Point) -> float:
    return (a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0])


@dataclass(frozen=True)
class SurfaceQuad:
    """Four corners of the detected surface, in pixel coordinates."""
    top_left: Point
    top_right: Point
    bottom_right: Point
    bottom_left: Point

    @classmethod
    def from_points(cls, points) -> 'SurfaceQuad':
        """
        Order four arbitrary points into a quad.

        The two smallest-y points form the top edge and the rest the bottom
        edge; each pair is then sorted by x.
        """
        pts = sorted((tuple(map(float, p)) for p in points), key=lambda p: (p[1], p[0]))
        if len(pts) != 4:
            raise ValueError(f"A quad needs 4 points, got {len(pts)}")
        top = sorted(pts[:2])
        bottom = sorted(pts[2:])
        return cls(top_left=top[0], top_right=top[1],
                   bottom_right=bottom[1], bottom_left=bottom[0])

    @classmethod
    def from_box(cls, x_min: float, y_min: float, x_max: float, y_max: float) -> 'SurfaceQuad':
        return cls(
            top_left=(x_min, y_min),
            top_right=(x_max, y_min),
            bottom_right=(x_max, y_max),
            bottom_left=(x_min, y_max),
        )

    def corners(self) -> List[Point]:
        """Corners in cyclic order TL, TR, BR, BL."""
        return [self.top_left, self.top_right, self.bottom_right, self.bottom_left]

    @property
    def area(self) -> float:
        """Shoelace area (absolute)."""
        pts = self.corners()
        s = 0.0
        for i in range(4):
            x1, y1 = pts[i]
            x2, y2 = pts[(i + 1) % 4]
            s += x1 * y2 - x2 * y1
        return abs(s) / 2.0

    def is_convex(self) -> bool:
        """All four turns share one sign (no collinear corners)."""
        pts = self.corners()
        signs = []
        for i in range(4):
            c = _cross(pts[i], pts[(i + 1) % 4], pts[(i + 2) % 4])
            if abs(c) < 1e-9:
                return False
            signs.append(c > 0)
        return all(signs) or not any(signs)

    def validate(self, min_area: float) -> Optional[CalibrationFailure]:
        """Return a failure if the quad can't be partitioned, else None."""
        if not self.is_convex():
            return CalibrationFailure(
                FailureKind.DEGENERATE_GEOMETRY,
                "quad corners are collinear, coincident or not convex",
            )
        if self.area < min_area:
            return CalibrationFailure(
                FailureKind.DEGENERATE_GEOMETRY,
                f"quad area {self.area:.1f} below minimum {min_area:.1f}",
            )
        return None

    def to_dict(self) -> dict:
        return {
            'top_left': list(self.top_left),
            'top_right': list(self.top_right),
            'bottom_right': list(self.bottom_right),
            'bottom_left': list(self.bottom_left),
        }
