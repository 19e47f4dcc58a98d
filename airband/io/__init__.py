"""
I/O for the air-instrument pipeline.
Landmark recordings in, calibration frames from disk, NoteEvents out.
"""

from .landmarks import Landmark, LandmarkTick, read_landmarks
from .frames import load_frame
from .sink import JsonlEventSink, RecentEvents


__all__ = [
    'Landmark',
    'LandmarkTick',
    'read_landmarks',
    'load_frame',
    'JsonlEventSink',
    'RecentEvents',
]
