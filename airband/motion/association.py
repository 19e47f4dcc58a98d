"""
Stable entity ids across ticks.

Landmark providers report hands as a per-frame list whose order can change
when hands enter, leave or cross. Ids are kept stable by solving a
minimum-distance assignment between the previous tick's positions and the
current detections (Hungarian algorithm); pairs farther apart than
``max_match_distance`` are not matched and get fresh ids.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from scipy.optimize import linear_sum_assignment

from ..config import AssociationConfig

logger = logging.getLogger(__name__)


class EntityAssociator:
    """Assigns persistent integer ids to per-tick positions."""

    def __init__(self, config: Optional[AssociationConfig] = None, timeout: float = 0.5):
        self.config = config or AssociationConfig()
        self.timeout = timeout
        self.next_id = 0
        # id -> (x, y, last_seen)
        self._tracks: Dict[int, Tuple[float, float, float]] = {}

    @property
    def active_ids(self) -> List[int]:
        return list(self._tracks)

    def assign(self, positions: Sequence[Sequence[float]], now: float) -> List[int]:
        """Return one id per position, in input order."""
        if not self.config.enabled:
            return list(range(len(positions)))

        self._expire(now)

        ids: List[Optional[int]] = [None] * len(positions)
        track_ids = list(self._tracks)

        if track_ids and len(positions) > 0:
            prev = np.array([self._tracks[t][:2] for t in track_ids], dtype=np.float64)
            curr = np.array([p[:2] for p in positions], dtype=np.float64)
            cost = np.linalg.norm(prev[:, None, :] - curr[None, :, :], axis=2)

            row_idx, col_idx = linear_sum_assignment(cost)
            for r, c in zip(row_idx, col_idx):
                if cost[r, c] <= self.config.max_match_distance:
                    ids[c] = track_ids[r]

        for i, pos in enumerate(positions):
            if ids[i] is None:
                ids[i] = self.next_id
                self.next_id += 1
                logger.debug("New entity %d at (%.0f, %.0f)", ids[i], pos[0], pos[1])
            self._tracks[ids[i]] = (float(pos[0]), float(pos[1]), now)

        return ids

    def _expire(self, now: float):
        stale = [t for t, (_, _, seen) in self._tracks.items() if now - seen > self.timeout]
        for t in stale:
            del self._tracks[t]

    def forget(self, entity_id: int):
        self._tracks.pop(entity_id, None)

    def reset(self):
        self._tracks.clear()
