"""
Paper surface detection.

Finds a bright, roughly horizontal rectangle in the lower part of a frame:

    downsample -> luminance -> 3x3 weighted blur -> Sobel magnitude
    -> binary edge mask -> 4-connected components (lower rows only)
    -> bounding boxes -> size / aspect / position / brightness scoring

Brightness is sampled from the full-resolution frame. No randomness is
involved, so the same frame and config always give the same quad.
"""

import math
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

import cv2
import numpy as np

from ..config import CalibrationConfig, PartitionConfig
from .types import Frame, SurfaceQuad, CalibrationFailure, FailureKind

logger = logging.getLogger(__name__)

BLUR_KERNEL = np.array(
    [[1, 2, 1],
     [2, 4, 2],
     [1, 2, 1]], dtype=np.float32
) / 16.0


@dataclass(frozen=True)
class SurfaceCandidate:
    """A scored bounding box, in downsampled pixel coordinates."""
    x_min: int
    y_min: int
    x_max: int
    y_max: int
    pixels: int
    aspect: float
    bright_fraction: float
    score: float

    @property
    def width(self) -> int:
        return self.x_max - self.x_min

    @property
    def height(self) -> int:
        return self.y_max - self.y_min


def to_gray(pixels: np.ndarray) -> Optional[np.ndarray]:
    """Luminance image from gray, BGR or BGRA pixels (None if unsupported)."""
    if pixels is None or pixels.size == 0:
        return None
    if pixels.ndim == 2:
        return pixels
    if pixels.ndim == 3 and pixels.shape[2] == 3:
        return cv2.cvtColor(pixels, cv2.COLOR_BGR2GRAY)
    if pixels.ndim == 3 and pixels.shape[2] == 4:
        return cv2.cvtColor(pixels, cv2.COLOR_BGRA2GRAY)
    return None


class SurfaceDetector:
    """Detects the paper quad in a frame."""

    def __init__(
        self,
        config: Optional[CalibrationConfig] = None,
        partition_config: Optional[PartitionConfig] = None,
    ):
        self.config = config or CalibrationConfig()
        self.partition_config = partition_config or PartitionConfig()

        logger.info(
            "SurfaceDetector: downsample=%d edge_threshold=%.0f search_top=%.2f "
            "brightness>%.0f (min %.0f%%)",
            self.config.downsample, self.config.edge_threshold,
            self.config.search_top_fraction, self.config.brightness_threshold,
            self.config.min_bright_fraction * 100,
        )

    def detect_surface(self, frame: Frame) -> Union[SurfaceQuad, CalibrationFailure]:
        """Return the best-scoring surface quad, or a failure to retry later."""
        full_gray = to_gray(frame.pixels)
        if full_gray is None:
            return CalibrationFailure(FailureKind.INVALID_FRAME, "unsupported pixel layout")

        scale = max(1, int(self.config.downsample))
        if full_gray.shape[0] // scale < 3 or full_gray.shape[1] // scale < 3:
            return CalibrationFailure(FailureKind.INVALID_FRAME, "frame too small")

        candidates = self.find_candidates(full_gray)
        if not candidates:
            logger.info("No paper candidate found")
            return CalibrationFailure(FailureKind.NO_SURFACE, "no qualifying bright rectangle")

        best = candidates[0]
        for cand in candidates[1:]:
            if cand.score > best.score:
                best = cand

        quad = SurfaceQuad.from_box(
            best.x_min * scale, best.y_min * scale,
            best.x_max * scale, best.y_max * scale,
        )
        failure = quad.validate(self.partition_config.min_quad_area)
        if failure is not None:
            return failure

        logger.info(
            "Paper detected: %dx%d px, aspect %.2f, %.0f%% bright, score %.0f",
            best.width * scale, best.height * scale, best.aspect,
            best.bright_fraction * 100, best.score,
        )
        return quad

    def find_candidates(self, full_gray: np.ndarray) -> List[SurfaceCandidate]:
        """All qualifying candidates, in component label order."""
        cfg = self.config
        scale = max(1, int(cfg.downsample))

        edges = self.edge_mask(full_gray)
        h, w = edges.shape

        start_row = int(h * cfg.search_top_fraction)
        edges[:start_row, :] = 0

        num, _, stats, _ = cv2.connectedComponentsWithStats(edges, connectivity=4)

        candidates = []
        for label in range(1, num):
            x, y, bw, bh, pixels = (int(v) for v in stats[label])
            if pixels < cfg.min_component_pixels:
                continue
            cand = self._score(
                (x, y, x + bw - 1, y + bh - 1), pixels, w, h, full_gray, scale,
            )
            if cand is not None:
                candidates.append(cand)

        logger.debug("%d components, %d candidates", num - 1, len(candidates))
        return candidates

    def edge_mask(self, full_gray: np.ndarray) -> np.ndarray:
        """Binary (0/255) Sobel edge mask of the downsampled, blurred image."""
        scale = max(1, int(self.config.downsample))
        small_h = full_gray.shape[0] // scale
        small_w = full_gray.shape[1] // scale
        small = full_gray[:small_h * scale:scale, :small_w * scale:scale]
        small = np.ascontiguousarray(small, dtype=np.float32)

        blurred = cv2.filter2D(small, cv2.CV_32F, BLUR_KERNEL, borderType=cv2.BORDER_REPLICATE)
        gx = cv2.Sobel(blurred, cv2.CV_32F, 1, 0, ksize=3)
        gy = cv2.Sobel(blurred, cv2.CV_32F, 0, 1, ksize=3)
        magnitude = cv2.magnitude(gx, gy)

        edges = np.where(magnitude > self.config.edge_threshold, 255, 0).astype(np.uint8)
        # Gradients are undefined on the one-pixel border
        edges[0, :] = 0
        edges[-1, :] = 0
        edges[:, 0] = 0
        edges[:, -1] = 0
        return edges

    def _score(
        self,
        box: Tuple[int, int, int, int],
        pixels: int,
        width: int,
        height: int,
        full_gray: np.ndarray,
        scale: int,
    ) -> Optional[SurfaceCandidate]:
        cfg = self.config
        x_min, y_min, x_max, y_max = box
        rect_w = x_max - x_min
        rect_h = y_max - y_min
        if rect_w <= 0 or rect_h <= 0:
            logger.debug("Rejected %s: degenerate box", box)
            return None
        area = rect_w * rect_h

        side = math.sqrt(area)
        shortest = min(width, height)
        if side < shortest * cfg.min_size_fraction or side > shortest * cfg.max_size_fraction:
            return None

        aspect = rect_w / rect_h
        if aspect < cfg.min_aspect or rect_h > rect_w * cfg.max_height_ratio:
            logger.debug("Rejected %s: too vertical (aspect %.2f)", box, aspect)
            return None

        center_y = (y_min + y_max) / 2.0
        if center_y < height * cfg.min_center_y_fraction:
            logger.debug("Rejected %s: too high (center y %.0f)", box, center_y)
            return None

        bright = self._bright_fraction(full_gray, box, scale)
        if bright < cfg.min_bright_fraction:
            logger.debug("Rejected %s: only %.0f%% bright", box, bright * 100)
            return None

        aspect_bonus = 1.0 + 0.5 * (min(aspect, 2.0) / 2.0)
        vertical_weight = 1.0 + cfg.lower_half_bias * max(0.0, center_y / height - 0.5)
        score = area * bright * aspect_bonus * vertical_weight

        return SurfaceCandidate(
            x_min=x_min, y_min=y_min, x_max=x_max, y_max=y_max,
            pixels=pixels, aspect=aspect, bright_fraction=bright, score=score,
        )

    def _bright_fraction(
        self,
        full_gray: np.ndarray,
        box: Tuple[int, int, int, int],
        scale: int,
    ) -> float:
        stride = max(1, int(self.config.brightness_stride))
        x_min, y_min, x_max, y_max = (v * scale for v in box)
        region = full_gray[y_min:y_max:stride, x_min:x_max:stride]
        if region.size == 0:
            return 0.0
        return float(np.count_nonzero(region > self.config.brightness_threshold)) / region.size
