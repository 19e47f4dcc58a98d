"""
Zone geometry for air instruments.
Provides zone regions, pure hit tests, and per-instrument layouts.
"""

from .matcher import (
    rect_contains, ellipse_contains, ellipse_value,
    distance_to_segment, min_distance_to_segments,
)
from .regions import (
    ZoneKind, ZoneRegion, DirectionGate,
    EllipseGeometry, SegmentGeometry, BoxGeometry,
    gates_pass,
)
from .layouts import LAYOUTS, build_layout, drum_kit, triangle, tambourine


__all__ = [
    # Hit tests
    'rect_contains',
    'ellipse_contains',
    'ellipse_value',
    'distance_to_segment',
    'min_distance_to_segments',
    # Regions
    'ZoneKind',
    'ZoneRegion',
    'DirectionGate',
    'EllipseGeometry',
    'SegmentGeometry',
    'BoxGeometry',
    'gates_pass',
    # Layouts
    'LAYOUTS',
    'build_layout',
    'drum_kit',
    'triangle',
    'tambourine',
]
