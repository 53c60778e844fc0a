"""Whole-session volume pattern statistics."""

import logging
from typing import Sequence

import numpy as np

from ..models.analysis import VolumePatterns

logger = logging.getLogger(__name__)

QUIET_THRESHOLD = 0.01


def count_quiet_periods(volumes: np.ndarray, threshold: float = QUIET_THRESHOLD) -> int:
    """Number of maximal runs of samples strictly below the threshold."""
    quiet = volumes < threshold
    if not quiet.any():
        return 0
    # A run starts at a quiet sample whose predecessor is not quiet
    starts = quiet[1:] & ~quiet[:-1]
    return int(quiet[0]) + int(np.count_nonzero(starts))


def analyze_volume_patterns(volume_history: Sequence[float],
                            quiet_threshold: float = QUIET_THRESHOLD) -> VolumePatterns:
    """Compute mean, max, population standard deviation and quiet period count.

    An empty history yields all-zero statistics.
    """
    volumes = np.asarray(volume_history, dtype=np.float64)
    if volumes.size == 0:
        return VolumePatterns()

    patterns = VolumePatterns(
        average_volume=float(volumes.mean()),
        max_volume=float(volumes.max()),
        variability=float(volumes.std()),
        quiet_period_count=count_quiet_periods(volumes, quiet_threshold),
    )
    logger.debug(f"Volume patterns over {volumes.size} samples: {patterns}")
    return patterns
