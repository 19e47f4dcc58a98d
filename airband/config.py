"""
Runtime configuration for the air-instrument pipeline.

Every component keeps a reference to its config section and reads the
attributes on each call, so values changed through ``AirbandConfig.update``
take effect on the next tick without rebuilding anything.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, asdict
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)


class _Section:
    """Shared helpers for config sections."""

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]):
        data = dict(data or {})
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(
                f"Unknown {cls.__name__} keys: {', '.join(sorted(unknown))}"
            )
        return cls(**data)

    def update(self, **values):
        known = {f.name for f in fields(self)}
        for key, value in values.items():
            if key not in known:
                raise ValueError(f"Unknown {type(self).__name__} key: {key}")
            setattr(self, key, value)


@dataclass
class CalibrationConfig(_Section):
    """Paper detection thresholds (empirically tuned for white paper on a table)."""
    downsample: int = 2
    edge_threshold: float = 50.0
    search_top_fraction: float = 0.4      # rows above this fraction are ignored
    min_component_pixels: int = 40
    min_size_fraction: float = 0.1
    max_size_fraction: float = 0.9
    min_aspect: float = 0.7
    max_height_ratio: float = 1.3
    min_center_y_fraction: float = 0.4
    lower_half_bias: float = 0.25
    brightness_threshold: float = 150.0
    min_bright_fraction: float = 0.4
    brightness_stride: int = 4


@dataclass
class PartitionConfig(_Section):
    """How a calibrated quad is split into zones."""
    zone_count: int = 10
    padding: float = 0.06
    radius_x_fraction: float = 0.25
    radius_y_fraction: float = 0.22
    min_radius_x: Optional[float] = 18.0
    max_radius_x: Optional[float] = 40.0
    min_radius_y: Optional[float] = 12.0
    max_radius_y: Optional[float] = 28.0
    min_quad_area: float = 100.0


@dataclass
class MotionConfig(_Section):
    """Velocity thresholds and motion-mode switches (pixels / seconds)."""
    strike_threshold: float = 800.0
    strike_metric: str = "speed"          # "speed" | "acceleration"
    entity_cooldown_sec: float = 0.1
    min_dt: float = 1e-6
    intensity_scale: float = 3000.0
    shake_enabled: bool = False
    shake_start_threshold: float = 400.0
    shake_stop_threshold: float = 300.0
    shake_intensity_scale: float = 2500.0
    contact_intensity: float = 1.0


@dataclass
class DispatchConfig(_Section):
    """Per-zone gating and entity lifetime."""
    zone_cooldown_sec: float = 0.35
    disappearance_timeout_sec: float = 0.5
    touch_z_threshold: float = -0.015
    min_displacement_px: float = 6.0


@dataclass
class AssociationConfig(_Section):
    """Cross-tick entity re-association."""
    enabled: bool = True
    max_match_distance: float = 150.0


@dataclass
class SessionConfig(_Section):
    """Landmark-to-pixel conversion and instrument selection."""
    frame_width: int = 640
    frame_height: int = 480
    mirror_x: bool = True
    layout: str = "piano"


@dataclass
class AirbandConfig:
    """Top-level configuration, one attribute per section."""
    calibration: CalibrationConfig = field(default_factory=CalibrationConfig)
    partition: PartitionConfig = field(default_factory=PartitionConfig)
    motion: MotionConfig = field(default_factory=MotionConfig)
    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    association: AssociationConfig = field(default_factory=AssociationConfig)
    session: SessionConfig = field(default_factory=SessionConfig)

    _SECTIONS = {
        'calibration': CalibrationConfig,
        'partition': PartitionConfig,
        'motion': MotionConfig,
        'dispatch': DispatchConfig,
        'association': AssociationConfig,
        'session': SessionConfig,
    }

    @classmethod
    def from_dict(cls, config: Optional[Dict[str, Any]]) -> 'AirbandConfig':
        """Create from a configuration dict (e.g. parsed YAML)."""
        config = config or {}
        unknown = set(config) - set(cls._SECTIONS)
        if unknown:
            raise ValueError(f"Unknown config sections: {', '.join(sorted(unknown))}")
        kwargs = {
            name: section_cls.from_dict(config.get(name))
            for name, section_cls in cls._SECTIONS.items()
        }
        return cls(**kwargs)

    def update(self, section: str, **values):
        """Adjust values of one section in place."""
        if section not in self._SECTIONS:
            raise ValueError(f"Unknown config section: {section}")
        getattr(self, section).update(**values)
        logger.info("Config updated: %s %s", section, values)

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {name: asdict(getattr(self, name)) for name in self._SECTIONS}


def load_config(path: Optional[str]) -> AirbandConfig:
    """Load a YAML config file; ``None`` yields the defaults."""
    if path is None:
        return AirbandConfig()
    with open(path, 'r') as f:
        raw = yaml.safe_load(f) or {}
    logger.info("Loaded config from %s", path)
    return AirbandConfig.from_dict(raw)
