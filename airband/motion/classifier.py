"""
Edge-triggered motion classification.

Strikes
-------
A strike fires only on a *rising edge*: the metric (speed, or acceleration)
reaches ``strike_threshold`` while the previous metric was below it. Holding
a fast motion therefore fires once. A rising edge inside
``entity_cooldown_sec`` of the entity's last accepted event is dropped.

Shakes
------
With ``shake_enabled``, speed above ``shake_start_threshold`` starts a
repeating trigger and speed below ``shake_stop_threshold`` stops it. Between
the two thresholds the current state is held.

Contacts
--------
For touch-gated edge zones a slow touch still plays: ``contact`` fires when
the entity goes from "not touching a bar" to "touching a bar", at any speed.
"""

from __future__ import annotations

import logging
from enum import Enum
from dataclasses import dataclass
from typing import Dict, Optional

from ..config import MotionConfig
from .tracker import EntityId, VelocityEstimate

logger = logging.getLogger(__name__)


class MotionEventType(Enum):
    STRIKE = "strike"
    SHAKE_START = "shake_start"
    SHAKE_STOP = "shake_stop"
    CONTACT = "contact"


@dataclass(frozen=True)
class MotionEvent:
    """A classified motion for one entity on one tick."""
    event_type: MotionEventType
    entity_id: EntityId
    timestamp: float
    metric: float
    intensity: float
    vx: float = 0.0
    vy: float = 0.0
    interval: Optional[float] = None      # seconds between repeats, shakes only


@dataclass
class _EdgeState:
    prev_metric: float = 0.0
    last_accepted: Optional[float] = None
    shaking: bool = False
    in_contact: bool = False


def shake_interval(speed: float) -> float:
    """Repeat interval for a shake at ``speed`` px/s: faster shakes repeat sooner."""
    ms = max(35, 240 - min(200, round(speed / 12)))
    return ms / 1000.0


class MotionClassifier:
    """Turns velocity estimates into strike / shake events."""

    def __init__(self, config: Optional[MotionConfig] = None):
        self.config = config or MotionConfig()
        self._states: Dict[EntityId, _EdgeState] = {}

        logger.info(
            "MotionClassifier: strike %s>=%.0f cooldown=%.2fs shake=%s(%.0f/%.0f)",
            self.config.strike_metric, self.config.strike_threshold,
            self.config.entity_cooldown_sec, self.config.shake_enabled,
            self.config.shake_start_threshold, self.config.shake_stop_threshold,
        )

    def is_shaking(self, entity_id: EntityId) -> bool:
        state = self._states.get(entity_id)
        return state is not None and state.shaking

    def _metric(self, estimate: VelocityEstimate) -> float:
        if self.config.strike_metric == "acceleration":
            return estimate.acceleration
        if self.config.strike_metric == "speed":
            return estimate.magnitude
        raise ValueError(f"Unknown strike metric: {self.config.strike_metric}")

    def classify(
        self,
        entity_id: EntityId,
        estimate: VelocityEstimate,
        now: float,
    ) -> Optional[MotionEvent]:
        """Classify one estimate; returns at most one event."""
        cfg = self.config
        state = self._states.get(entity_id)
        if state is None:
            state = self._states[entity_id] = _EdgeState()

        if estimate.first_sample or estimate.clock_anomaly:
            return None

        metric = self._metric(estimate)
        rising = metric >= cfg.strike_threshold and state.prev_metric < cfg.strike_threshold
        state.prev_metric = metric

        speed = estimate.magnitude
        if rising:
            if self._in_cooldown(state, now):
                logger.debug("Strike for %s suppressed by cooldown", entity_id)
            else:
                return MotionEvent(
                    event_type=MotionEventType.STRIKE,
                    entity_id=entity_id,
                    timestamp=now,
                    metric=metric,
                    intensity=min(1.0, speed / cfg.intensity_scale),
                    vx=estimate.vx,
                    vy=estimate.vy,
                )

        if not cfg.shake_enabled:
            return None

        if not state.shaking and speed > cfg.shake_start_threshold:
            state.shaking = True
            return MotionEvent(
                event_type=MotionEventType.SHAKE_START,
                entity_id=entity_id,
                timestamp=now,
                metric=speed,
                intensity=min(1.0, speed / cfg.shake_intensity_scale),
                vx=estimate.vx,
                vy=estimate.vy,
                interval=shake_interval(speed),
            )
        if state.shaking and speed < cfg.shake_stop_threshold:
            state.shaking = False
            return MotionEvent(
                event_type=MotionEventType.SHAKE_STOP,
                entity_id=entity_id,
                timestamp=now,
                metric=speed,
                intensity=0.0,
                vx=estimate.vx,
                vy=estimate.vy,
            )
        return None

    def contact(
        self,
        entity_id: EntityId,
        touching: bool,
        now: float,
    ) -> Optional[MotionEvent]:
        """Track the touching state; returns a CONTACT event when it turns on."""
        state = self._states.get(entity_id)
        if state is None:
            state = self._states[entity_id] = _EdgeState()

        entered = touching and not state.in_contact
        state.in_contact = touching
        if not entered:
            return None
        return MotionEvent(
            event_type=MotionEventType.CONTACT,
            entity_id=entity_id,
            timestamp=now,
            metric=0.0,
            intensity=self.config.contact_intensity,
        )

    def _in_cooldown(self, state: _EdgeState, now: float) -> bool:
        if state.last_accepted is None:
            return False
        return now - state.last_accepted <= self.config.entity_cooldown_sec

    def mark_accepted(self, entity_id: EntityId, now: float):
        """Record that an event from this entity was emitted (starts its cooldown)."""
        state = self._states.get(entity_id)
        if state is None:
            state = self._states[entity_id] = _EdgeState()
        state.last_accepted = now

    def forget(self, entity_id: EntityId):
        self._states.pop(entity_id, None)

    def reset(self):
        self._states.clear()
