"""
Note event dispatch
===================

Per tick, every entity sample goes through

    EntityTracker.update -> MotionClassifier.classify -> zone matching

and yields at most one ``NoteEvent`` per entity: the first zone, in
definition order, that contains the position, passes its gates and is not in
its own cooldown. Zone cooldowns are separate from entity cooldowns, so two
hands can't machine-gun one zone.

Touch-gated edge zones (the triangle) also play on contact: an entity that
starts touching a bar fires a ``touch`` event at any speed, subject to the
zone cooldown.

Entity lifecycle
----------------
A record is created on the first sample (phase ``TRACKING``) and moves
between ``IDLE``, ``EDGE_FIRED`` and ``SHAKE_ACTIVE`` on later ticks. An
entity silent for longer than ``disappearance_timeout_sec`` is cleared:
tracker sample, edge state, cooldown and any shake task all go, so the id
starts fresh if it reappears.

All timestamps must come from one clock: the dispatcher's ``clock`` (used
for shake repeats) and the sample timestamps.

Thread-safe (single internal lock). Shake repeats publish from their own
threads.
"""

from __future__ import annotations

import time
import logging
import threading
from enum import Enum
from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from ..config import MotionConfig, DispatchConfig
from ..motion.tracker import EntityTracker, EntitySample, EntityId, VelocityEstimate
from ..motion.classifier import MotionClassifier, MotionEvent, MotionEventType
from ..motion.scheduler import ThreadScheduler
from ..zones.regions import ZoneRegion, ZoneKind, gates_pass

logger = logging.getLogger(__name__)


# ── Event data class ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class NoteEvent:
    """One musical trigger, published once."""
    zone_id: str
    entity_id: EntityId
    timestamp: float
    intensity: float
    output: int = 0
    kind: str = "strike"     # strike | shake | touch

    def to_dict(self) -> dict:
        d = asdict(self)
        d["timestamp"] = round(d["timestamp"], 4)
        d["intensity"] = round(d["intensity"], 4)
        return d


class EntityPhase(Enum):
    TRACKING = "tracking"
    IDLE = "idle"
    EDGE_FIRED = "edge_fired"
    SHAKE_ACTIVE = "shake_active"


# ── Per-entity record ────────────────────────────────────────────────────────

class _EntityRecord:
    __slots__ = ["entity_id", "last_seen", "phase", "shake_task", "shake_zone_id"]

    def __init__(self, entity_id: EntityId, timestamp: float):
        self.entity_id = entity_id
        self.last_seen = timestamp
        self.phase = EntityPhase.TRACKING
        self.shake_task = None
        self.shake_zone_id: Optional[str] = None

    def cancel_shake(self):
        if self.shake_task is not None:
            self.shake_task.cancel()
            self.shake_task = None
            self.shake_zone_id = None


# ── Dispatcher ───────────────────────────────────────────────────────────────

class EventDispatcher:
    """Composes motion classification with zone matching and cooldowns."""

    def __init__(
        self,
        zones: Optional[Sequence[ZoneRegion]] = None,
        motion_config: Optional[MotionConfig] = None,
        dispatch_config: Optional[DispatchConfig] = None,
        scheduler=None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.motion_config = motion_config or MotionConfig()
        self.config = dispatch_config or DispatchConfig()
        self.tracker = EntityTracker(self.motion_config)
        self.classifier = MotionClassifier(self.motion_config)
        self.scheduler = scheduler or ThreadScheduler()
        self._clock = clock

        self._zones: tuple = tuple(zones or ())
        self._records: Dict[EntityId, _EntityRecord] = {}
        self._zone_last_trigger: Dict[str, float] = {}
        self._sinks: List[Callable[[NoteEvent], Any]] = []
        self._lock = threading.Lock()

        self.note_count = 0

        logger.info(
            "EventDispatcher: %d zones, zone_cooldown=%.2fs disappearance_timeout=%.2fs",
            len(self._zones), self.config.zone_cooldown_sec,
            self.config.disappearance_timeout_sec,
        )

    # ── zones & sinks ────────────────────────────────────────────────────

    @property
    def zones(self) -> tuple:
        return self._zones

    def set_zones(self, zones: Sequence[ZoneRegion]):
        """Replace the whole zone set at once (between ticks)."""
        zones = tuple(zones)
        with self._lock:
            self._zones = zones
            self._zone_last_trigger.clear()
            ids = {z.zone_id for z in zones}
            for record in self._records.values():
                if record.shake_zone_id is not None and record.shake_zone_id not in ids:
                    record.cancel_shake()
                    record.phase = EntityPhase.IDLE
        logger.info("Zone set replaced: %d zones", len(zones))

    def add_sink(self, sink):
        """Register a NoteEvent consumer: a callable or an object with ``publish``."""
        self._sinks.append(sink.publish if hasattr(sink, "publish") else sink)

    def _publish(self, event: NoteEvent):
        for sink in self._sinks:
            try:
                sink(event)
            except Exception as e:
                logger.error(f"NoteEvent sink error: {e}")

    # ── queries ──────────────────────────────────────────────────────────

    def phase(self, entity_id: EntityId) -> Optional[EntityPhase]:
        """Current phase, or None if the entity is unobserved / cleared."""
        record = self._records.get(entity_id)
        return record.phase if record is not None else None

    @property
    def entity_ids(self) -> List[EntityId]:
        return list(self._records)

    def zone_in_cooldown(self, zone_id: str, now: float) -> bool:
        last = self._zone_last_trigger.get(zone_id)
        return last is not None and now - last <= self.config.zone_cooldown_sec

    # ── per tick ─────────────────────────────────────────────────────────

    def process(
        self,
        samples: Iterable[EntitySample],
        now: Optional[float] = None,
    ) -> List[NoteEvent]:
        """Run one tick; returns (and publishes) the new NoteEvents."""
        samples = list(samples)
        if now is None:
            now = max((s.timestamp for s in samples), default=self._clock())

        with self._lock:
            events = self._process_impl(samples, now)

        for evt in events:
            self._publish(evt)
        return events

    def _process_impl(self, samples: List[EntitySample], now: float) -> List[NoteEvent]:
        self._expire_locked(now)

        events: List[NoteEvent] = []
        seen = set()
        for sample in samples:
            eid = sample.entity_id
            if eid in seen:
                logger.debug("Duplicate sample for entity %s in one tick ignored", eid)
                continue
            seen.add(eid)

            record = self._records.get(eid)
            if record is None:
                record = _EntityRecord(eid, sample.timestamp)
                self._records[eid] = record
                logger.debug("Entity %s appeared at %s", eid, sample.position)
            record.last_seen = sample.timestamp

            estimate = self.tracker.update(eid, sample.position, sample.timestamp)
            motion = self.classifier.classify(eid, estimate, sample.timestamp)
            evt = self._handle(record, sample, estimate, motion)
            if evt is not None:
                events.append(evt)

        return events

    def _handle(
        self,
        record: _EntityRecord,
        sample: EntitySample,
        estimate: VelocityEstimate,
        motion: Optional[MotionEvent],
    ) -> Optional[NoteEvent]:
        resting = EntityPhase.SHAKE_ACTIVE if record.shake_task is not None else EntityPhase.IDLE

        touched = self._touched_zone(sample)
        contact = self.classifier.contact(sample.entity_id, touched is not None, sample.timestamp)

        if motion is not None and motion.event_type is MotionEventType.STRIKE:
            evt = self._match_strike(sample, estimate, motion)
            if evt is not None:
                return self._accept(record, sample, evt)
        elif motion is not None:
            if motion.event_type is MotionEventType.SHAKE_START:
                self._start_shake(record, sample, motion)
            elif motion.event_type is MotionEventType.SHAKE_STOP:
                if record.shake_task is not None:
                    logger.info("Shake stopped for entity %s", sample.entity_id)
                record.cancel_shake()
                record.phase = EntityPhase.IDLE
            return None

        if contact is not None and not self.zone_in_cooldown(touched.zone_id, sample.timestamp):
            return self._accept(record, sample, NoteEvent(
                zone_id=touched.zone_id,
                entity_id=sample.entity_id,
                timestamp=sample.timestamp,
                intensity=contact.intensity,
                output=touched.output,
                kind="touch",
            ))

        if not estimate.first_sample:
            record.phase = resting
        return None

    def _accept(self, record: _EntityRecord, sample: EntitySample, evt: NoteEvent) -> NoteEvent:
        self.classifier.mark_accepted(sample.entity_id, sample.timestamp)
        self._zone_last_trigger[evt.zone_id] = sample.timestamp
        record.phase = EntityPhase.EDGE_FIRED
        self.note_count += 1
        logger.debug(
            "NOTE %s (%s) by entity %s, intensity %.2f",
            evt.zone_id, evt.kind, sample.entity_id, evt.intensity,
        )
        return evt

    def _touched_zone(self, sample: EntitySample) -> Optional[ZoneRegion]:
        """First touch-gated edge zone the sample is near while pushed toward the camera."""
        depth = sample.depth
        if depth is None or depth >= self.config.touch_z_threshold:
            return None
        for zone in self._zones:
            if zone.kind is ZoneKind.EDGE and zone.requires_touch and zone.contains(sample.x, sample.y):
                return zone
        return None

    def _match_strike(
        self,
        sample: EntitySample,
        estimate: VelocityEstimate,
        motion: MotionEvent,
    ) -> Optional[NoteEvent]:
        cfg = self.config
        for zone in self._zones:
            if not zone.contains(sample.x, sample.y):
                continue
            if not gates_pass(
                zone, estimate.vx, estimate.vy,
                step=(estimate.dx, estimate.dy),
                depth=sample.depth,
                touch_z_threshold=cfg.touch_z_threshold,
                min_displacement=cfg.min_displacement_px,
            ):
                continue
            if self.zone_in_cooldown(zone.zone_id, sample.timestamp):
                continue
            return NoteEvent(
                zone_id=zone.zone_id,
                entity_id=sample.entity_id,
                timestamp=sample.timestamp,
                intensity=motion.intensity,
                output=zone.output,
            )
        return None

    def _start_shake(self, record: _EntityRecord, sample: EntitySample, motion: MotionEvent):
        zone = next((z for z in self._zones if z.contains(sample.x, sample.y)), None)
        if zone is None:
            logger.debug("Shake by entity %s outside every zone", sample.entity_id)
            return

        record.cancel_shake()
        entity_id = sample.entity_id
        intensity = motion.intensity

        def repeat():
            self._publish(NoteEvent(
                zone_id=zone.zone_id,
                entity_id=entity_id,
                timestamp=self._clock(),
                intensity=intensity,
                output=zone.output,
                kind="shake",
            ))

        record.shake_task = self.scheduler.schedule_repeating(
            motion.interval, repeat, name=f"shake-{entity_id}",
        )
        record.shake_zone_id = zone.zone_id
        record.phase = EntityPhase.SHAKE_ACTIVE
        logger.info(
            "Shake started for entity %s in %s (every %.0f ms)",
            entity_id, zone.zone_id, motion.interval * 1000,
        )

    # ── lifecycle ────────────────────────────────────────────────────────

    def expire(self, now: float) -> List[EntityId]:
        """Clear entities silent for longer than the disappearance timeout."""
        with self._lock:
            return self._expire_locked(now)

    def _expire_locked(self, now: float) -> List[EntityId]:
        timeout = self.config.disappearance_timeout_sec
        stale = [eid for eid, r in self._records.items() if now - r.last_seen > timeout]
        for eid in stale:
            self._clear_locked(eid)
            logger.debug("Entity %s cleared after %.2fs without samples", eid, timeout)
        return stale

    def clear_entity(self, entity_id: EntityId):
        with self._lock:
            self._clear_locked(entity_id)

    def _clear_locked(self, entity_id: EntityId):
        record = self._records.pop(entity_id, None)
        if record is not None:
            record.cancel_shake()
        self.tracker.forget(entity_id)
        self.classifier.forget(entity_id)

    def stop(self):
        """Cancel every shake task and drop all state before returning."""
        with self._lock:
            for record in self._records.values():
                record.cancel_shake()
            self._records.clear()
            self._zone_last_trigger.clear()
            self.tracker.reset()
            self.classifier.reset()
        logger.info("EventDispatcher stopped")
