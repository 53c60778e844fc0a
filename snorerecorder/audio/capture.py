"""Capture engine managing the recording session lifecycle."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Callable, List, Optional

import numpy as np

from ..errors import AcquisitionError, SessionActiveError, SessionIOError
from ..models.audio import CaptureStats
from ..models.events import AudioFrameEvent
from ..models.session import RecordingSession, SessionStatus
from ..services.session_manager import SessionManager
from .audio_pub import EventPublisher, SESSION_STARTED, SESSION_STOPPED
from .audio_saver import WavAudioSink
from .frame_source import FrameSource
from .lease import ContinuationLease
from .scheduler import Ticker, ThreadTicker
from .volume import VolumeAggregator, DEFAULT_HISTORY_SIZE


logger = logging.getLogger(__name__)


class CaptureEngine:
    """Continuous capture of one session at a time with live volume feedback."""

    # How often a ticker or lease callback rechecks a stop held by another thread
    STOP_POLL_INTERVAL = 0.05

    def __init__(
        self,
        frame_source: FrameSource,
        session_manager: SessionManager,
        ticker: Optional[Ticker] = None,
        lease: Optional[ContinuationLease] = None,
        publisher: Optional[EventPublisher] = None,
        sample_rate: int = 44100,
        channels: int = 1,
        frame_size: int = 1024,
        volume_history_size: int = DEFAULT_HISTORY_SIZE,
        on_completed: Optional[Callable[[RecordingSession], None]] = None,
    ):
        """Initialize capture engine.

        Args:
            frame_source: Source of pushed audio frames
            session_manager: Durable store for sessions and audio
            ticker: Duration tick scheduler (1 Hz thread ticker by default)
            lease: Continuation lease held for the whole capture
            publisher: Publisher for session and volume events
            sample_rate: Audio sample rate the source delivers
            channels: Number of channels the source delivers
            frame_size: Samples per channel in each frame
            volume_history_size: Capacity of the live volume history
            on_completed: Called with each finalized session (auto-analysis hook)
        """
        self.frame_source = frame_source
        self.session_manager = session_manager
        self.ticker = ticker or ThreadTicker(1.0)
        self.lease = lease or ContinuationLease()
        self.publisher = publisher or EventPublisher()
        self.sample_rate = sample_rate
        self.channels = channels
        self.frame_size = frame_size
        self.on_completed = on_completed

        self.volume_aggregator = VolumeAggregator(volume_history_size, self.publisher)

        # Session state, guarded by the lifecycle lock
        self._lifecycle_lock = threading.Lock()
        self.current_session: Optional[RecordingSession] = None
        self.last_session: Optional[RecordingSession] = None
        self._stopping = False

        # Frame dispatch; held only for the duration of a submit
        self._dispatch_lock = threading.Lock()
        self._accepting = False
        self._executor: Optional[ThreadPoolExecutor] = None
        self._sink: Optional[WavAudioSink] = None

        # Written only by the executor thread while capturing
        self._full_history: List[float] = []
        self.total_frames = 0
        self.write_errors = 0

        self._duration_lock = threading.Lock()
        self._ticks = 0
        self._deadline: Optional[float] = None

        # Set once a session is fully finalized, including the completion hook
        self._stopped_event = threading.Event()
        self._stopped_event.set()

    @property
    def is_capturing(self) -> bool:
        return self.current_session is not None

    @property
    def current_volume(self) -> float:
        return self.volume_aggregator.latest

    @property
    def volume_history(self) -> List[float]:
        return self.volume_aggregator.snapshot()

    @property
    def recording_duration(self) -> float:
        with self._duration_lock:
            return self._ticks * self.ticker.interval

    def wait_until_stopped(self, timeout: Optional[float] = None) -> bool:
        """Block until the current session has been finalized.

        Returns:
            True if no session is capturing when the call returns
        """
        return self._stopped_event.wait(timeout)

    def start(self, scheduled_duration_seconds: Optional[float] = None) -> RecordingSession:
        """Start a new capture session.

        Args:
            scheduled_duration_seconds: Stop automatically after this many seconds

        Returns:
            The new session in CAPTURING state

        Raises:
            SessionActiveError: A session is already being captured
            AcquisitionError: Audio input or the audio file could not be opened
        """
        with self._lifecycle_lock:
            if self.current_session is not None:
                raise SessionActiveError(
                    f"Session {self.current_session.session_id} is already capturing")

            try:
                session = self.session_manager.create_session(self.sample_rate, self.channels)
            except SessionIOError as e:
                raise AcquisitionError(f"Could not create session storage: {e}") from e

            sink = WavAudioSink(self.session_manager.audio_path(session.session_id),
                                self.sample_rate, self.channels)
            try:
                sink.open()
            except (OSError, EOFError) as e:
                self.session_manager.discard(session.session_id)
                raise AcquisitionError(f"Could not open audio file: {e}") from e

            logger.info(f"Starting capture for session {session.session_id}"
                        + (f" (scheduled: {scheduled_duration_seconds}s)"
                           if scheduled_duration_seconds is not None else ""))

            self.volume_aggregator.clear()
            self._full_history = []
            self.total_frames = 0
            self.write_errors = 0
            with self._duration_lock:
                self._ticks = 0
                self._deadline = scheduled_duration_seconds

            self._sink = sink
            executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="CaptureWriter")
            with self._dispatch_lock:
                self._executor = executor
                self._accepting = True

            try:
                self.frame_source.open(self.on_frame)
            except AcquisitionError:
                logger.error(f"Audio input unavailable, discarding session {session.session_id}")
                with self._dispatch_lock:
                    self._accepting = False
                    self._executor = None
                executor.shutdown(wait=True)
                sink.close()
                self._sink = None
                self.session_manager.discard(session.session_id)
                raise

            self._stopped_event.clear()
            self.current_session = session
            self.lease.acquire(self._on_lease_expired)
            self.ticker.start(self._on_tick)

        self.publisher.publish(SESSION_STARTED, session=session)
        return session

    def on_frame(self, event: AudioFrameEvent) -> None:
        """Frame source callback; hands the frame to the writer thread and returns."""
        with self._dispatch_lock:
            if not self._accepting:
                return
            self._executor.submit(self._process_frame, event)

    def _process_frame(self, event: AudioFrameEvent) -> None:
        """Write a frame to the sink and derive its volume (writer thread)."""
        try:
            self._sink.write(event.samples)
        except OSError as e:
            # Lossy write is preferred over aborting a multi-hour capture
            self.write_errors += 1
            logger.warning(f"Audio write failed for frame {event.sequence_number}: {e}")

        mono = event.mono()
        volume = float(np.mean(np.abs(mono))) if mono.size else 0.0
        self._full_history.append(volume)
        self.total_frames += 1
        self.volume_aggregator.append(volume)

    def _on_tick(self) -> None:
        """Count a tick of elapsed duration and enforce the scheduled stop."""
        if not self.is_capturing or self._stopping:
            return

        with self._duration_lock:
            self._ticks += 1
            elapsed = self._ticks * self.ticker.interval
            deadline = self._deadline

        if deadline is not None and elapsed >= deadline:
            logger.info(f"Scheduled duration reached ({elapsed:.1f}s), stopping capture")
            self._stop_unless_stopping()

    def _on_lease_expired(self) -> None:
        logger.warning("Continuation lease revoked, finalizing truncated session")
        try:
            self._stop_unless_stopping(truncated=True)
        except SessionIOError as e:
            logger.error(f"Failed to persist truncated session: {e}")

    def _stop_unless_stopping(self, truncated: bool = False) -> Optional[RecordingSession]:
        """Stop from a ticker or lease callback, yielding to a stop already under way.

        The stopping thread may be the caller itself (a signal delivered during
        stop) or may be joining the caller's thread, so never block on the
        lifecycle lock while a stop holds it.
        """
        while not self._lifecycle_lock.acquire(timeout=self.STOP_POLL_INTERVAL):
            if self._stopping:
                logger.debug("Stop already in progress")
                return None
        return self._stop_locked(truncated)

    def stop(self, truncated: bool = False) -> Optional[RecordingSession]:
        """Stop capturing and finalize the session.

        Safe to call repeatedly and from several threads; only the first call
        finalizes, later calls return None.

        Args:
            truncated: The capture ended because the continuation lease expired

        Returns:
            The finalized session, or None if nothing was capturing

        Raises:
            SessionIOError: The finalized session could not be persisted
        """
        self._lifecycle_lock.acquire()
        return self._stop_locked(truncated)

    def _stop_locked(self, truncated: bool) -> Optional[RecordingSession]:
        """Finalize the session; the caller holds the lifecycle lock, released here."""
        try:
            session = self.current_session
            if session is None:
                logger.debug("No capture in progress")
                return None

            self._stopping = True
            try:
                save_error = self._shutdown_capture(session, truncated)
            finally:
                self._stopping = False
        finally:
            self._lifecycle_lock.release()

        try:
            logger.info(f"Capture stopped. Duration: {session.duration_seconds:.1f}s, "
                        f"frames: {session.total_frames}, write errors: {session.write_errors}")
            self.publisher.publish(SESSION_STOPPED, session=session)

            if save_error is not None:
                raise save_error

            if self.on_completed:
                try:
                    self.on_completed(session)
                except Exception as e:
                    logger.error(f"Completion hook failed for {session.session_id}: {e}",
                                 exc_info=True)
        finally:
            self._stopped_event.set()

        return session

    def _shutdown_capture(self, session: RecordingSession,
                          truncated: bool) -> Optional[SessionIOError]:
        """Tear down the input, drain the writer and persist the session."""
        logger.info(f"Stopping capture for session {session.session_id}")
        # A lease expiring from here on has nothing left to truncate
        self.lease.release()
        with self._dispatch_lock:
            self._accepting = False
            executor = self._executor
            self._executor = None

        self.ticker.cancel()
        try:
            self.frame_source.close()
        except Exception as e:
            logger.warning(f"Error closing frame source: {e}")

        # Drain frames already handed to the writer thread
        executor.shutdown(wait=True)
        try:
            self._sink.close()
        except OSError as e:
            self.write_errors += 1
            logger.warning(f"Error finalizing audio file: {e}")
        self._sink = None

        self._finalize(session, truncated)
        self.current_session = None
        self.last_session = session

        try:
            self.session_manager.save(session)
        except SessionIOError as e:
            logger.error(f"Could not persist session {session.session_id}: {e}")
            return e
        return None

    def _finalize(self, session: RecordingSession, truncated: bool) -> None:
        """Write the end fields of a session after capture has stopped."""
        history = list(self._full_history)
        session.end_time = datetime.now()
        session.duration_seconds = self.recording_duration
        session.volume_history = history
        if history:
            session.average_volume = float(np.mean(history))
            session.max_volume = float(np.max(history))
        session.total_frames = self.total_frames
        session.write_errors = self.write_errors
        session.truncated = truncated
        session.status = SessionStatus.COMPLETED

    def get_capture_stats(self) -> CaptureStats:
        """Get current capture statistics."""
        return CaptureStats(
            is_capturing=self.is_capturing,
            duration_seconds=self.recording_duration,
            current_volume=self.current_volume,
            sample_rate=self.sample_rate,
            frame_size=self.frame_size,
            total_frames=self.total_frames,
            dropped_writes=self.write_errors,
            volume_history=self.volume_history,
        )
