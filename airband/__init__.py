"""
airband: camera-driven air instruments.
Paper-surface calibration, motion classification and note event dispatch.
"""

from .config import AirbandConfig, load_config
from .pipeline import AirbandSession

__version__ = "0.1.0"

__all__ = ['AirbandConfig', 'load_config', 'AirbandSession']
