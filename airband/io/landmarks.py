"""
Landmark input: the per-tick output of an external hand tracker.

Recordings are JSONL, one tick per line::

    {"t": 0.033, "hands": [[0.41, 0.72, -0.02], {"x": 0.6, "y": 0.7}]}

Coordinates are normalized to [0, 1] of the frame; the third value (depth)
is optional.
"""

import json
import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Landmark:
    """One tracked point (typically an index fingertip), normalized."""
    x: float
    y: float
    z: Optional[float] = None

    @classmethod
    def parse(cls, raw) -> 'Landmark':
        if isinstance(raw, dict):
            return cls(float(raw['x']), float(raw['y']),
                       float(raw['z']) if raw.get('z') is not None else None)
        if len(raw) < 2:
            raise ValueError(f"Landmark needs at least x and y, got {raw!r}")
        z = float(raw[2]) if len(raw) > 2 and raw[2] is not None else None
        return cls(float(raw[0]), float(raw[1]), z)


@dataclass(frozen=True)
class LandmarkTick:
    timestamp: float
    hands: List[Landmark]


def read_landmarks(path: str) -> Iterator[LandmarkTick]:
    """Yield ticks from a JSONL recording, skipping malformed lines."""
    with open(path, 'r', encoding='utf-8') as f:
        for line_no, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                rec = json.loads(line)
                hands = [Landmark.parse(h) for h in rec.get('hands', [])]
                yield LandmarkTick(timestamp=float(rec['t']), hands=hands)
            except (ValueError, KeyError, TypeError) as e:
                logger.warning(f"{path}:{line_no}: skipping malformed tick ({e})")
