"""
Per-entity velocity estimation from a single previous sample.
"""

import math
import logging
from dataclasses import dataclass
from typing import Dict, Hashable, Optional, Tuple

from ..config import MotionConfig

logger = logging.getLogger(__name__)

EntityId = Hashable


@dataclass(frozen=True)
class EntitySample:
    """Latest observed position of an entity (pixels; optional depth)."""
    entity_id: EntityId
    position: Tuple[float, ...]
    timestamp: float

    @property
    def x(self) -> float:
        return self.position[0]

    @property
    def y(self) -> float:
        return self.position[1]

    @property
    def depth(self) -> Optional[float]:
        return self.position[2] if len(self.position) > 2 else None


@dataclass(frozen=True)
class VelocityEstimate:
    """Velocity derived from two consecutive samples (px/s, px/s^2)."""
    vx: float = 0.0
    vy: float = 0.0
    magnitude: float = 0.0
    acceleration: float = 0.0
    dt: float = 0.0
    dx: float = 0.0
    dy: float = 0.0
    first_sample: bool = False
    clock_anomaly: bool = False


class EntityTracker:
    """Keeps the most recent sample per entity and differentiates against it."""

    def __init__(self, config: Optional[MotionConfig] = None):
        self.config = config or MotionConfig()
        self._samples: Dict[EntityId, EntitySample] = {}
        self._magnitudes: Dict[EntityId, float] = {}

    def __contains__(self, entity_id: EntityId) -> bool:
        return entity_id in self._samples

    def __len__(self) -> int:
        return len(self._samples)

    def last_sample(self, entity_id: EntityId) -> Optional[EntitySample]:
        return self._samples.get(entity_id)

    def update(self, entity_id: EntityId, position, timestamp: float) -> VelocityEstimate:
        """
        Store the new sample and return velocity relative to the previous one.

        A first observation yields zero velocity. Elapsed time at or below
        ``min_dt`` (duplicate or out-of-order timestamps) also yields zero
        velocity, flagged as a clock anomaly.
        """
        sample = EntitySample(entity_id, tuple(float(v) for v in position), float(timestamp))
        previous = self._samples.get(entity_id)
        self._samples[entity_id] = sample

        if previous is None:
            self._magnitudes[entity_id] = 0.0
            return VelocityEstimate(first_sample=True)

        dt = sample.timestamp - previous.timestamp
        if dt <= self.config.min_dt:
            logger.debug("Clock anomaly for entity %s: dt=%.6f", entity_id, dt)
            return VelocityEstimate(dt=dt, clock_anomaly=True)

        dx = sample.x - previous.x
        dy = sample.y - previous.y
        vx = dx / dt
        vy = dy / dt
        magnitude = math.hypot(vx, vy)
        acceleration = (magnitude - self._magnitudes.get(entity_id, 0.0)) / dt
        self._magnitudes[entity_id] = magnitude

        return VelocityEstimate(
            vx=vx, vy=vy, magnitude=magnitude, acceleration=acceleration,
            dt=dt, dx=dx, dy=dy,
        )

    def forget(self, entity_id: EntityId):
        self._samples.pop(entity_id, None)
        self._magnitudes.pop(entity_id, None)

    def reset(self):
        self._samples.clear()
        self._magnitudes.clear()
