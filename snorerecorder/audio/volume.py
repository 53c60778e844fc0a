"""Bounded live volume history for capture feedback."""

import logging
import threading
from collections import deque
from typing import List, Optional

from .audio_pub import CAPTURE_VOLUME, EventPublisher

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_SIZE = 300


class VolumeAggregator:
    """Fixed-capacity FIFO of recent volume samples.

    Appending past capacity evicts the oldest sample. Memory use is bounded
    by ``max_samples`` no matter how long the session runs.
    """

    def __init__(self, max_samples: int = DEFAULT_HISTORY_SIZE,
                 publisher: Optional[EventPublisher] = None):
        """Initialize volume aggregator.

        Args:
            max_samples: Maximum number of samples kept in the live history
            publisher: Optional publisher notified of every appended sample
        """
        if max_samples <= 0:
            raise ValueError(f"max_samples must be positive, got {max_samples}")

        self.max_samples = max_samples
        self.publisher = publisher

        # Thread-safe buffer
        self.history = deque(maxlen=max_samples)
        self.lock = threading.Lock()
        self._latest = 0.0
        self.total_samples = 0

        logger.info(f"VolumeAggregator initialized: {max_samples} samples capacity")

    def append(self, volume: float) -> None:
        """Add a volume sample, evicting the oldest one when full."""
        with self.lock:
            self.history.append(volume)
            self._latest = volume
            self.total_samples += 1

        if self.publisher:
            self.publisher.publish(CAPTURE_VOLUME, volume=volume)

    @property
    def latest(self) -> float:
        """Most recent volume sample, 0.0 when empty."""
        with self.lock:
            return self._latest

    def snapshot(self) -> List[float]:
        """Atomic copy of the live history, oldest first."""
        with self.lock:
            return list(self.history)

    def clear(self) -> None:
        """Reset the history."""
        with self.lock:
            self.history.clear()
            self._latest = 0.0
            self.total_samples = 0
            logger.debug("Volume history cleared")

    def __len__(self) -> int:
        with self.lock:
            return len(self.history)
