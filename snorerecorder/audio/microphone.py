"""Microphone frame source backed by PyAudio."""

import pyaudio
import time
import logging
from typing import Optional

import numpy as np

from ..errors import AcquisitionError
from ..models.events import AudioFrameEvent
from .frame_source import FrameCallback, FrameSource

logger = logging.getLogger(__name__)


class PyAudioFrameSource(FrameSource):
    """Microphone input through a PyAudio float32 stream in callback mode."""

    def __init__(
        self,
        sample_rate: int = 44100,
        frame_size: int = 1024,
        channels: int = 1,
        device_index: Optional[int] = None,
    ):
        """Initialize frame source with specified parameters.

        Args:
            sample_rate: Audio sample rate
            frame_size: Number of samples per channel in each delivered frame
            channels: Number of audio channels (1 for mono)
            device_index: PyAudio input device index, None for the default device
        """
        self.sample_rate = sample_rate
        self.frame_size = frame_size
        self.channels = channels
        self.device_index = device_index

        self.callback: Optional[FrameCallback] = None
        self.sequence_number = 0
        self.overflow_count = 0

        # PyAudio instance
        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self.stream = None

    def open(self, callback: FrameCallback) -> None:
        if self.stream is not None:
            logger.warning("Frame source already open")
            return

        self.callback = callback
        self.sequence_number = 0
        try:
            self.pyaudio_instance = pyaudio.PyAudio()
            self.stream = self.pyaudio_instance.open(
                format=pyaudio.paFloat32,
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                input_device_index=self.device_index,
                frames_per_buffer=self.frame_size,
                stream_callback=self._on_stream_data,
            )
            self.stream.start_stream()
        except (OSError, ValueError) as e:
            self._release()
            raise AcquisitionError(f"Audio input not available: {e}") from e

        logger.info(f"Audio stream opened: {self.sample_rate}Hz, "
                    f"{self.frame_size} samples/frame, {self.channels} channel(s)")

    def _on_stream_data(self, in_data, frame_count, time_info, status):
        """PyAudio callback; runs on PortAudio's thread and must return quickly."""
        if status & pyaudio.paInputOverflow:
            self.overflow_count += 1
            logger.debug(f"Input overflow ({self.overflow_count} so far)")

        self.sequence_number += 1
        event = AudioFrameEvent(
            sequence_number=self.sequence_number,
            samples=np.frombuffer(in_data, dtype=np.float32),
            timestamp=time.time(),
            sample_rate=self.sample_rate,
            channels=self.channels,
        )
        if self.callback:
            self.callback(event)
        return (None, pyaudio.paContinue)

    def close(self) -> None:
        if self.stream is None:
            return
        logger.info(f"Closing audio stream after {self.sequence_number} frames")
        self._release()

    def _release(self) -> None:
        """Clean up audio resources."""
        try:
            if self.stream is not None:
                self.stream.stop_stream()
                self.stream.close()
        finally:
            self.stream = None
            if self.pyaudio_instance:
                self.pyaudio_instance.terminate()
                self.pyaudio_instance = None
            self.callback = None
