"""
Motion module for air instruments.
Velocity estimation, edge-triggered classification and stable entity ids.
"""

from .tracker import EntityTracker, EntitySample, VelocityEstimate
from .classifier import MotionClassifier, MotionEvent, MotionEventType, shake_interval
from .association import EntityAssociator
from .scheduler import RepeatingTask, ThreadScheduler, ReplayScheduler


__all__ = [
    'EntityTracker',
    'EntitySample',
    'VelocityEstimate',
    'MotionClassifier',
    'MotionEvent',
    'MotionEventType',
    'shake_interval',
    'EntityAssociator',
    'RepeatingTask',
    'ThreadScheduler',
    'ReplayScheduler',
]
