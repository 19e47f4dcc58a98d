import time
import logging
from typing import Callable, List, Optional, Sequence

from .config import AirbandConfig
from .calibration import (
    CalibrationService, CalibrationState, CalibrationFailure, Frame,
    build_calibration_service,
)
from .events import EventDispatcher, NoteEvent, build_dispatcher
from .io.landmarks import Landmark
from .motion import EntityAssociator, EntitySample
from .zones import build_layout

logger = logging.getLogger(__name__)


class AirbandSession:
    """
    One air instrument: calibration, entity ids and event dispatch wired
    together.

    Call ``process_landmarks`` once per camera tick. Calibration requested
    with ``request_calibration`` runs in the background and its zones are
    swapped in at the start of the next tick.
    """

    def __init__(self, config: Optional[AirbandConfig] = None, scheduler=None,
                 clock: Callable[[], float] = time.monotonic):
        self.config = config or AirbandConfig()
        self._clock = clock
        self.calibration: CalibrationService = build_calibration_service(self.config)
        self.dispatcher: EventDispatcher = build_dispatcher(
            self.config, scheduler=scheduler, clock=clock)
        self.associator = EntityAssociator(
            self.config.association,
            timeout=self.config.dispatch.disappearance_timeout_sec,
        )
        self._listeners: List[Callable[[CalibrationState], None]] = []
        self._state = CalibrationState()
        self.frame_size = (self.config.session.frame_width, self.config.session.frame_height)

        layout = self.config.session.layout
        zones = build_layout(layout, *self.frame_size)
        if zones is not None:
            self._state = CalibrationState(zones=tuple(zones))
            self.dispatcher.set_zones(zones)
        logger.info("AirbandSession: layout=%s frame=%dx%d", layout, *self.frame_size)

    # ── calibration ──────────────────────────────────────────────────────

    @property
    def calibration_state(self) -> CalibrationState:
        return self._state

    def add_calibration_listener(self, listener: Callable[[CalibrationState], None]):
        self._listeners.append(listener)

    def add_sink(self, sink):
        self.dispatcher.add_sink(sink)

    def request_calibration(self, frame: Frame):
        """Calibrate on the background worker; applied on the next tick."""
        self.frame_size = (frame.width, frame.height)
        self.calibration.start()
        self.calibration.request(frame)

    def calibrate_now(self, frame: Frame, zone_count: Optional[int] = None):
        """Calibrate synchronously and apply the result before returning it."""
        self.frame_size = (frame.width, frame.height)
        result = self.calibration.calibrate(frame, zone_count)
        self._apply(result)
        return result

    def _apply(self, result):
        if isinstance(result, CalibrationFailure):
            # Previous zones (if any) stay active
            return
        self._state = result
        self.dispatcher.set_zones(result.zones)
        for listener in self._listeners:
            try:
                listener(result)
            except Exception as e:
                logger.error(f"Calibration listener error: {e}")

    # ── per tick ─────────────────────────────────────────────────────────

    def to_pixels(self, landmark: Landmark):
        width, height = self.frame_size
        x = 1.0 - landmark.x if self.config.session.mirror_x else landmark.x
        pos = (x * width, landmark.y * height)
        return pos if landmark.z is None else pos + (landmark.z,)

    def process_landmarks(self, landmarks: Sequence[Landmark],
                          timestamp: Optional[float] = None) -> List[NoteEvent]:
        """Run one tick on normalized landmarks; returns the NoteEvents fired."""
        now = self._clock() if timestamp is None else timestamp

        staged = self.calibration.take_result()
        if staged is not None:
            self._apply(staged)

        positions = [self.to_pixels(lm) for lm in landmarks]
        # Ids must expire together with the dispatcher's entity records
        self.associator.timeout = self.config.dispatch.disappearance_timeout_sec
        ids = self.associator.assign(positions, now)
        samples = [EntitySample(eid, pos, now) for eid, pos in zip(ids, positions)]
        return self.dispatcher.process(samples, now)

    # ── lifecycle ────────────────────────────────────────────────────────

    def update_config(self, section: str, **values):
        self.config.update(section, **values)

    def stop(self):
        """Stop background calibration and every repeating trigger."""
        self.calibration.stop()
        self.dispatcher.stop()
        self.associator.reset()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.stop()
