"""Event models for frames pushed by the audio input."""

from dataclasses import dataclass

import numpy as np


@dataclass
class AudioFrameEvent:
    """A single frame pushed by the frame source."""
    sequence_number: int
    samples: np.ndarray  # float32, normalized to [-1, 1], interleaved if multichannel
    timestamp: float  # Unix timestamp when the frame was delivered
    sample_rate: int = 44100
    channels: int = 1

    def mono(self) -> np.ndarray:
        """Return the first channel of the frame."""
        if self.channels <= 1:
            return self.samples
        return self.samples[::self.channels]
