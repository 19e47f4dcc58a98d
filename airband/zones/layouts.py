"""
Instrument zone layouts.

``piano`` zones come from a calibrated paper quad. The other instruments are
placed relative to the frame size and need no calibration.
"""

import logging
from typing import List, Optional

from .regions import (
    ZoneRegion, ZoneKind, DirectionGate,
    EllipseGeometry, SegmentGeometry, BoxGeometry,
)

logger = logging.getLogger(__name__)

# Drum kit outputs
SNARE = 0
KICK = 1
HIHAT = 2

LAYOUTS = ("piano", "drums", "triangle", "tambourine")


def _round_pad(zone_id: str, output: int, cx: float, cy: float, r: float, directions=()) -> ZoneRegion:
    return ZoneRegion(
        zone_id=zone_id,
        output=output,
        kind=ZoneKind.PAD,
        geometry=EllipseGeometry(box=(cx - r, cy - r, cx + r, cy + r), center=(cx, cy),
                                 radius_x=r, radius_y=r),
        directions=tuple(directions),
    )


def drum_kit(width: int, height: int, side_speed: float = 350.0) -> List[ZoneRegion]:
    """
    Two side snares, a kick pad and a hi-hat.

    Snares need a downward strike that also moves toward their side; the kick
    takes any downward strike and the hi-hat an upward flick.
    """
    short = min(width, height)
    snare_r = short * 0.14
    snare_y = height * 0.74
    down = DirectionGate("y", 1)

    return [
        _round_pad("snare_left", SNARE, width * 0.2, snare_y, snare_r,
                   (down, DirectionGate("x", -1, side_speed))),
        _round_pad("snare_right", SNARE, width * 0.8, snare_y, snare_r,
                   (down, DirectionGate("x", 1, side_speed))),
        _round_pad("kick", KICK, width * 0.5, height * 0.88, short * 0.18, (down,)),
        _round_pad("hihat", HIHAT, width * 0.5, height * 0.12, short * 0.12,
                   (DirectionGate("y", -1),)),
    ]


def triangle(
    width: int,
    height: int,
    size: float = 150.0,
    opening: float = 30.0,
    hit_distance: float = 20.0,
) -> List[ZoneRegion]:
    """
    A triangle struck by touching one of its bars.

    Both lower corners are cut by ``opening`` (inset 0.6 across, 0.4 up),
    so the bars meet inside the corners and the corner points themselves
    are out of reach.
    """
    cx, cy = width / 2.0, height / 2.0
    top = (cx, cy - size / 2.0)
    bottom_y = cy + size / 2.0
    inner_left = (cx - size / 2.0 + opening * 0.6, bottom_y - opening * 0.4)
    inner_right = (cx + size / 2.0 - opening * 0.6, bottom_y - opening * 0.4)

    segments = (
        (top, inner_left),
        (inner_left, inner_right),
        (inner_right, top),
    )
    return [ZoneRegion(
        zone_id="triangle",
        output=0,
        kind=ZoneKind.EDGE,
        geometry=SegmentGeometry(segments=segments, proximity=hit_distance),
        requires_touch=True,
    )]


def tambourine(width: int, height: int) -> List[ZoneRegion]:
    """One zone covering the whole view; played by shaking or slapping."""
    return [ZoneRegion(
        zone_id="tambourine",
        output=0,
        kind=ZoneKind.AREA,
        geometry=BoxGeometry(box=(0.0, 0.0, float(width), float(height))),
    )]


def build_layout(name: str, width: int, height: int) -> Optional[List[ZoneRegion]]:
    """
    Zones for a named instrument.

    Returns None for ``piano``, whose zones only exist after calibration.
    """
    builders = {
        "drums": drum_kit,
        "triangle": triangle,
        "tambourine": tambourine,
    }
    name = name.lower()
    if name == "piano":
        return None
    if name not in builders:
        raise ValueError(f"Unknown layout: {name}")

    zones = builders[name](width, height)
    logger.debug("%s layout: %s", name, ", ".join(z.zone_id for z in zones))
    return zones
