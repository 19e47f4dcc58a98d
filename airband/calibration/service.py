"""
Background calibration.

Surface detection is far heavier than a motion tick, so it runs on a worker
thread. Results are only *staged* here; the session swaps them in at the start
of its next tick, so the active zone set never changes halfway through one.
"""

import queue
import logging
import threading
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from ..config import CalibrationConfig, PartitionConfig
from ..zones.regions import ZoneRegion
from .detector import SurfaceDetector
from .partition import partition_zones
from .types import Frame, SurfaceQuad, CalibrationFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalibrationState:
    """Snapshot handed to overlay / calibration consumers."""
    quad: Optional[SurfaceQuad] = None
    zones: Tuple[ZoneRegion, ...] = ()
    is_calibrated: bool = False

    def to_dict(self) -> dict:
        return {
            'is_calibrated': self.is_calibrated,
            'quad': self.quad.to_dict() if self.quad else None,
            'zones': [
                {'zone_id': z.zone_id, 'output': z.output, 'kind': z.kind.value,
                 'bounds': [round(v, 1) for v in z.bounds]}
                for z in self.zones
            ],
        }


CalibrationResult = Union[CalibrationState, CalibrationFailure]


class CalibrationService:
    """
    Runs detect + partition on demand.

    ``calibrate`` works synchronously; ``request`` hands a frame to the worker
    thread (started with ``start``), where only the newest pending frame is
    kept.
    """

    def __init__(
        self,
        config: Optional[CalibrationConfig] = None,
        partition_config: Optional[PartitionConfig] = None,
    ):
        self.partition_config = partition_config or PartitionConfig()
        self.detector = SurfaceDetector(config, self.partition_config)

        self._requests: "queue.Queue[Frame]" = queue.Queue(maxsize=1)
        self._staged: Optional[CalibrationResult] = None
        self._staged_lock = threading.Lock()
        self._ready = threading.Event()

        self._running = False
        self._thread: Optional[threading.Thread] = None

    def calibrate(self, frame: Frame, zone_count: Optional[int] = None) -> CalibrationResult:
        """Detect the surface in ``frame`` and partition it."""
        quad = self.detector.detect_surface(frame)
        if isinstance(quad, CalibrationFailure):
            logger.warning("Calibration failed: %s (%s)", quad.kind.value, quad.message)
            return quad

        zones = partition_zones(quad, zone_count, self.partition_config)
        if isinstance(zones, CalibrationFailure):
            logger.warning("Calibration failed: %s (%s)", zones.kind.value, zones.message)
            return zones

        logger.info("Calibrated: %d zones", len(zones))
        return CalibrationState(quad=quad, zones=tuple(zones), is_calibrated=True)

    # ── background worker ────────────────────────────────────────────────

    def start(self):
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(target=self._worker_loop, name="calibration", daemon=True)
        self._thread.start()
        logger.info("Calibration worker started")

    def stop(self):
        self._running = False
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None
        logger.info("Calibration worker stopped")

    def request(self, frame: Frame):
        """Queue ``frame`` for calibration, replacing any frame still waiting."""
        try:
            self._requests.get_nowait()
        except queue.Empty:
            pass
        self._requests.put_nowait(frame)

    def take_result(self, wait: float = 0.0) -> Optional[CalibrationResult]:
        """Pop the staged result, optionally waiting up to ``wait`` seconds."""
        if wait > 0:
            self._ready.wait(wait)
        with self._staged_lock:
            result, self._staged = self._staged, None
            self._ready.clear()
        return result

    def _worker_loop(self):
        while self._running:
            try:
                frame = self._requests.get(timeout=0.1)
            except queue.Empty:
                continue
            result = self.calibrate(frame)
            with self._staged_lock:
                self._staged = result
                self._ready.set()
