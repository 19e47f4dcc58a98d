"""
Surface calibration for air instruments.
Detects the paper quad in a frame and partitions it into key zones.
"""

from .types import Frame, SurfaceQuad, CalibrationFailure, FailureKind
from .detector import SurfaceDetector, SurfaceCandidate, to_gray
from .partition import partition_zones, zone_spans
from .service import CalibrationService, CalibrationState


def build_calibration_service(config) -> CalibrationService:
    """Build a calibration service from an ``AirbandConfig``."""
    return CalibrationService(config.calibration, config.partition)


__all__ = [
    'Frame',
    'SurfaceQuad',
    'CalibrationFailure',
    'FailureKind',
    'SurfaceDetector',
    'SurfaceCandidate',
    'to_gray',
    'partition_zones',
    'zone_spans',
    'CalibrationService',
    'CalibrationState',
    'build_calibration_service',
]
