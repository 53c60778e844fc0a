"""Snore event detection over one-second buckets of feature windows."""

import logging
import math
from typing import Iterable, List

from ..models.audio import AudioFeatureWindow
from .features import DEFAULT_FRAME_SIZE

logger = logging.getLogger(__name__)

ENERGY_THRESHOLD = 0.02
CENTROID_THRESHOLD = 1000.0


class EventDetector:
    """Counts one-second buckets that look like snoring.

    A bucket holds ``ceil(sample_rate / frame_size)`` consecutive frames and
    there is one bucket per whole second of audio, so the final bucket may
    hold fewer frames. A bucket is a snore event when its mean RMS energy
    exceeds ``energy_threshold`` and the centroid of its last frame is below
    ``centroid_threshold``.
    """

    def __init__(self, sample_rate: int, frame_size: int = DEFAULT_FRAME_SIZE,
                 energy_threshold: float = ENERGY_THRESHOLD,
                 centroid_threshold: float = CENTROID_THRESHOLD):
        if sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {sample_rate}")
        self.sample_rate = sample_rate
        self.frame_size = frame_size
        self.energy_threshold = energy_threshold
        self.centroid_threshold = centroid_threshold
        self.frames_per_bucket = math.ceil(sample_rate / frame_size)

    def bucket_count(self, total_samples: int) -> int:
        """Number of one-second buckets in a recording of this length."""
        return total_samples // self.sample_rate

    def _is_snore(self, bucket: List[AudioFeatureWindow]) -> bool:
        average_energy = sum(w.rms_energy for w in bucket) / len(bucket)
        return (average_energy > self.energy_threshold
                and bucket[-1].spectral_centroid < self.centroid_threshold)

    def count_events(self, windows: Iterable[AudioFeatureWindow], total_samples: int) -> int:
        """Consume feature windows in one pass and return the snore event count.

        Args:
            windows: Feature windows in frame order
            total_samples: Number of samples the windows were computed from

        Returns:
            Number of flagged buckets; 0 for recordings under one second
        """
        buckets = self.bucket_count(total_samples)
        if buckets == 0:
            logger.debug("Recording shorter than one second, no events")
            return 0

        events = 0
        evaluated = 0
        bucket: List[AudioFeatureWindow] = []
        for window in windows:
            if evaluated >= buckets:
                break
            bucket.append(window)
            if len(bucket) == self.frames_per_bucket:
                events += self._is_snore(bucket)
                evaluated += 1
                bucket = []

        if bucket and evaluated < buckets:
            events += self._is_snore(bucket)
            evaluated += 1

        logger.info(f"Detected {events} snore events in {evaluated} one-second buckets")
        return events
