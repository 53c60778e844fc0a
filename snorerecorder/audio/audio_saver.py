"""Durable WAV sink for captured audio frames."""

import logging
import threading
import wave
from pathlib import Path
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)


class WavAudioSink:
    """Appends normalized float frames to a 16-bit PCM WAV file."""

    def __init__(self, filepath: Path, sample_rate: int, channels: int = 1):
        """Initialize the sink.

        Args:
            filepath: Path of the WAV file to create
            sample_rate: Audio sample rate
            channels: Number of interleaved channels in written frames
        """
        self.filepath = Path(filepath)
        self.sample_rate = sample_rate
        self.channels = channels
        self.frames_written = 0
        self._wave: Optional[wave.Wave_write] = None
        self._lock = threading.Lock()

    def open(self) -> None:
        """Create the WAV file and write its header."""
        wf = wave.open(str(self.filepath), 'wb')
        wf.setnchannels(self.channels)
        wf.setsampwidth(2)  # 16-bit
        wf.setframerate(self.sample_rate)
        self._wave = wf
        logger.info(f"Audio sink opened: {self.filepath} ({self.sample_rate}Hz, {self.channels}ch)")

    def write(self, samples: np.ndarray) -> None:
        """Write normalized float samples.

        Raises:
            OSError: The underlying file write failed
        """
        pcm = (np.clip(samples, -1.0, 1.0) * 32767).astype("<i2")
        with self._lock:
            if self._wave is None:
                raise OSError(f"Audio sink is not open: {self.filepath}")
            self._wave.writeframes(pcm.tobytes())
            self.frames_written += len(pcm) // max(self.channels, 1)

    def close(self) -> None:
        """Finalize the WAV header and close the file."""
        with self._lock:
            if self._wave is None:
                return
            try:
                self._wave.close()
                logger.info(f"Audio saved to {self.filepath} ({self.frames_written} frames)")
            finally:
                self._wave = None

    @property
    def is_open(self) -> bool:
        return self._wave is not None
