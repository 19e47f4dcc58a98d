"""
Pytest configuration and fixtures.
"""

import pytest
import numpy as np
import cv2
import sys
import os

# Add the repo root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from airband.calibration import Frame
from airband.config import AirbandConfig


class ManualTask:
    """Repeating task driven by ``ManualScheduler.fire``."""

    def __init__(self, interval, callback, name):
        self.interval = interval
        self.callback = callback
        self.name = name
        self.cancelled = False

    @property
    def active(self):
        return not self.cancelled

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Scheduler stand-in: nothing runs until the test calls ``fire``."""

    def __init__(self):
        self.tasks = []

    def schedule_repeating(self, interval, callback, name=None):
        task = ManualTask(interval, callback, name)
        self.tasks.append(task)
        return task

    @property
    def active_tasks(self):
        return [t for t in self.tasks if t.active]

    def fire(self, times=1):
        for _ in range(times):
            for task in self.active_tasks:
                task.callback()


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


def paper_frame(box=(160, 260, 480, 420), size=(640, 480), background=30, paper=230):
    """Dark frame with a filled bright rectangle (x1, y1, x2, y2)."""
    width, height = size
    img = np.full((height, width, 3), background, dtype=np.uint8)
    x1, y1, x2, y2 = box
    cv2.rectangle(img, (x1, y1), (x2, y2), (paper, paper, paper), thickness=-1)
    return Frame(pixels=img, timestamp=0.0)


@pytest.fixture
def sample_frame():
    """A 640x480 frame with white paper in the lower half."""
    return paper_frame()


@pytest.fixture
def dark_frame():
    return Frame(pixels=np.full((480, 640, 3), 30, dtype=np.uint8), timestamp=0.0)


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sample_config():
    """Pipeline configuration with association on and a short zone cooldown."""
    return AirbandConfig.from_dict({
        'session': {'frame_width': 640, 'frame_height': 480, 'mirror_x': False},
        'motion': {'strike_threshold': 800, 'entity_cooldown_sec': 0.1},
        'dispatch': {'zone_cooldown_sec': 0.35, 'disappearance_timeout_sec': 0.5},
    })


@pytest.fixture
def make_paper_frame():
    return paper_frame
