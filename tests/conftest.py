"""Pytest configuration and fixtures for SnoreRecorder tests."""

import pytest
import tempfile
import time
import logging
from datetime import timedelta
from unittest.mock import Mock, patch
import numpy as np

from snorerecorder.audio.audio_pub import EventPublisher
from snorerecorder.audio.audio_saver import WavAudioSink
from snorerecorder.audio.capture import CaptureEngine
from snorerecorder.audio.frame_source import FrameSource
from snorerecorder.audio.lease import ContinuationLease
from snorerecorder.audio.scheduler import Ticker
from snorerecorder.errors import AcquisitionError
from snorerecorder.models.events import AudioFrameEvent
from snorerecorder.models.session import SessionStatus
from snorerecorder.services.session_manager import SessionManager


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SAMPLE_RATE = 8000
FRAME_SIZE = 1024


def pytest_configure(config):
    for marker in ("unit", "integration", "slow", "hardware"):
        config.addinivalue_line("markers", marker)


class FakeFrameSource(FrameSource):
    """Frame source driven by the test instead of a microphone."""

    def __init__(self, fail_with: str = None, sample_rate: int = SAMPLE_RATE):
        self.fail_with = fail_with
        self.sample_rate = sample_rate
        self.callback = None
        self.sequence_number = 0
        self.open_count = 0
        self.close_count = 0

    def open(self, callback) -> None:
        if self.fail_with:
            raise AcquisitionError(self.fail_with)
        self.open_count += 1
        self.callback = callback

    def close(self) -> None:
        self.close_count += 1
        self.callback = None

    @property
    def is_open(self) -> bool:
        return self.callback is not None

    def push(self, samples, channels: int = 1) -> None:
        """Deliver one frame of samples to the engine."""
        self.sequence_number += 1
        event = AudioFrameEvent(
            sequence_number=self.sequence_number,
            samples=np.asarray(samples, dtype=np.float32),
            timestamp=time.time(),
            sample_rate=self.sample_rate,
            channels=channels,
        )
        if self.callback:
            self.callback(event)


class ManualTicker(Ticker):
    """Ticker advanced explicitly by the test."""

    def __init__(self, interval: float = 1.0):
        super().__init__(interval)
        self.callback = None
        self.cancel_count = 0

    def start(self, callback) -> None:
        self.callback = callback

    def cancel(self) -> None:
        self.cancel_count += 1
        self.callback = None

    def tick(self, count: int = 1) -> None:
        for _ in range(count):
            if self.callback is None:
                return
            self.callback()


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def session_manager(temp_data_dir):
    return SessionManager(temp_data_dir)


@pytest.fixture
def frame_source():
    return FakeFrameSource()


@pytest.fixture
def ticker():
    return ManualTicker()


@pytest.fixture
def lease():
    return ContinuationLease()


@pytest.fixture
def publisher():
    return EventPublisher()


@pytest.fixture
def capture_engine(frame_source, session_manager, ticker, lease, publisher):
    """Capture engine wired to fake collaborators."""
    engine = CaptureEngine(
        frame_source=frame_source,
        session_manager=session_manager,
        ticker=ticker,
        lease=lease,
        publisher=publisher,
        sample_rate=SAMPLE_RATE,
        frame_size=FRAME_SIZE,
    )
    yield engine
    engine.stop()


@pytest.fixture
def audio_test_data():
    """Generate normalized float audio test patterns."""
    def generate_audio(pattern="sine", duration_seconds=1.0, sample_rate=SAMPLE_RATE,
                       amplitude=0.5, frequency=440.0):
        """Generate audio samples for testing.

        Args:
            pattern: Type of audio pattern ('sine', 'noise', 'silence')
            duration_seconds: Duration of audio
            sample_rate: Sample rate in Hz
            amplitude: Peak amplitude in [0, 1]
            frequency: Sine frequency in Hz

        Returns:
            np.ndarray: float32 samples
        """
        samples = int(duration_seconds * sample_rate)

        if pattern == "sine":
            t = np.arange(samples) / sample_rate
            wave_data = amplitude * np.sin(2 * np.pi * frequency * t)
        elif pattern == "noise":
            rng = np.random.default_rng(1234)
            wave_data = rng.uniform(-amplitude, amplitude, samples)
        elif pattern == "silence":
            wave_data = np.zeros(samples)
        else:
            raise ValueError(f"Unknown pattern: {pattern}")

        return wave_data.astype(np.float32)

    return generate_audio


@pytest.fixture
def recorded_session(session_manager):
    """Factory for completed sessions with audio written to disk."""
    def create(samples, sample_rate=SAMPLE_RATE, duration_seconds=None, volume_history=None):
        session = session_manager.create_session(sample_rate)
        sink = WavAudioSink(session_manager.audio_path(session.session_id), sample_rate)
        sink.open()
        if len(samples):
            sink.write(np.asarray(samples, dtype=np.float32))
        sink.close()

        if duration_seconds is None:
            duration_seconds = len(samples) / sample_rate
        if volume_history is None:
            volume_history = [float(np.mean(np.abs(chunk)))
                              for chunk in np.array_split(np.asarray(samples),
                                                          max(1, len(samples) // FRAME_SIZE))
                              if len(chunk)]

        session.end_time = session.start_time + timedelta(seconds=duration_seconds)
        session.duration_seconds = duration_seconds
        session.volume_history = list(volume_history)
        session.status = SessionStatus.COMPLETED
        session_manager.save(session)
        return session

    return create


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        # Configure mock stream
        mock_stream.start_stream.return_value = None
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        # Configure mock PyAudio instance
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None

        # Configure mock PyAudio class
        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }
