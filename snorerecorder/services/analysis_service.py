"""Analysis service that runs the offline pipeline on a background worker."""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Dict, Optional

from ..analysis.detector import EventDetector
from ..analysis.features import FeatureExtractor, DEFAULT_FRAME_SIZE
from ..analysis.insights import generate_analysis_result
from ..analysis.patterns import analyze_volume_patterns
from ..audio.audio_pub import (
    EventPublisher,
    ANALYSIS_COMPLETED,
    ANALYSIS_FAILED,
    ANALYSIS_PROGRESS,
)
from ..errors import AnalysisError, AnalysisInProgressError, SessionIOError
from ..models.analysis import AnalysisProgress, AnalysisResult
from ..models.session import RecordingSession, SessionStatus
from .session_manager import SessionManager

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[AnalysisProgress], None]

# Progress checkpoints
QUEUED = (0.0, "queued")
FEATURE_EXTRACTION = (0.2, "feature_extraction")
EVENT_DETECTION = (0.4, "event_detection")
PATTERN_ANALYSIS = (0.6, "pattern_analysis")
INSIGHT_GENERATION = (0.8, "insight_generation")
COMPLETED = (1.0, "completed")


class _ProgressReporter:
    """Reports non-decreasing progress for one analysis run."""

    def __init__(self, session_id: str, publisher: EventPublisher,
                 callback: Optional[ProgressCallback]):
        self.session_id = session_id
        self.publisher = publisher
        self.callback = callback
        self.fraction = 0.0

    def report(self, checkpoint) -> None:
        fraction, stage = checkpoint
        self.fraction = max(self.fraction, fraction)
        progress = AnalysisProgress(self.session_id, self.fraction, stage)
        logger.debug(f"Analysis {self.session_id}: {stage} ({self.fraction:.0%})")

        self.publisher.publish(ANALYSIS_PROGRESS, progress=progress)
        if self.callback:
            try:
                self.callback(progress)
            except Exception as e:
                logger.error(f"Progress callback failed: {e}", exc_info=True)


class AnalysisService:
    """Runs feature extraction, event detection, pattern analysis and scoring."""

    def __init__(self,
                 session_manager: SessionManager,
                 publisher: Optional[EventPublisher] = None,
                 frame_size: int = DEFAULT_FRAME_SIZE,
                 max_workers: int = 1):
        """Initialize analysis service.

        Args:
            session_manager: Store used to read audio and persist results
            publisher: Publisher for progress and completion events
            frame_size: Analysis frame size in samples
            max_workers: Number of sessions analysed concurrently
        """
        self.session_manager = session_manager
        self.publisher = publisher or EventPublisher()
        self.feature_extractor = FeatureExtractor(frame_size)
        self.executor = ThreadPoolExecutor(max_workers=max_workers,
                                           thread_name_prefix="Analysis")
        self._lock = threading.Lock()
        self._in_flight: Dict[str, Future] = {}
        logger.info(f"AnalysisService initialized (frame size {frame_size}, "
                    f"{max_workers} worker(s))")

    def is_analyzing(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._in_flight

    def analyze(self, session: RecordingSession,
                progress_callback: Optional[ProgressCallback] = None) -> "Future[AnalysisResult]":
        """Schedule analysis of a completed session.

        Re-analysing an ANALYZED session is a no-op that returns its stored
        result. FAILED sessions may be retried.

        Returns:
            Future resolving to the AnalysisResult, or raising AnalysisError

        Raises:
            AnalysisInProgressError: The session is already being analysed
            AnalysisError: The session has not finished capturing
        """
        session_id = session.session_id
        with self._lock:
            if session_id in self._in_flight or session.status == SessionStatus.ANALYZING:
                raise AnalysisInProgressError(f"Session {session_id} is already being analyzed")

            if session.is_analyzed:
                logger.info(f"Session {session_id} already analyzed, skipping")
                done: Future = Future()
                done.set_result(session.analysis)
                return done

            if session.status not in (SessionStatus.COMPLETED, SessionStatus.FAILED):
                raise AnalysisError(
                    f"Session {session_id} is {session.status.value}, not ready for analysis")

            session.status = SessionStatus.ANALYZING
            reporter = _ProgressReporter(session_id, self.publisher, progress_callback)
            reporter.report(QUEUED)
            future = self.executor.submit(self._run, session, reporter)
            self._in_flight[session_id] = future

        logger.info(f"Analysis scheduled for session {session_id}")
        return future

    def _run(self, session: RecordingSession, reporter: _ProgressReporter) -> AnalysisResult:
        try:
            return self._analyze(session, reporter)
        finally:
            with self._lock:
                self._in_flight.pop(session.session_id, None)

    def _analyze(self, session: RecordingSession, reporter: _ProgressReporter) -> AnalysisResult:
        """Full analysis pipeline (worker thread)."""
        try:
            reporter.report(FEATURE_EXTRACTION)
            samples, sample_rate = self.session_manager.load_audio(session)
            windows = self.feature_extractor.extract(samples, sample_rate)

            reporter.report(EVENT_DETECTION)
            detector = EventDetector(sample_rate, self.feature_extractor.frame_size)
            snore_events = detector.count_events(windows, samples.size)

            reporter.report(PATTERN_ANALYSIS)
            patterns = analyze_volume_patterns(session.volume_history)

            reporter.report(INSIGHT_GENERATION)
            result = generate_analysis_result(snore_events, patterns, session.duration_seconds)

            session.analysis = result
            session.status = SessionStatus.ANALYZED
            self.session_manager.save(session, include_volume=False)

        except Exception as e:
            self._mark_failed(session, e)
            if isinstance(e, (AnalysisError, SessionIOError)):
                raise
            raise AnalysisError(f"Analysis of {session.session_id} failed: {e}") from e

        reporter.report(COMPLETED)
        logger.info(f"Analysis completed for session {session.session_id}")
        self.publisher.publish(ANALYSIS_COMPLETED, session=session, result=result)
        return result

    def _mark_failed(self, session: RecordingSession, error: Exception) -> None:
        logger.error(f"Analysis failed for session {session.session_id}: {error}",
                     exc_info=not isinstance(error, (AnalysisError, SessionIOError)))
        session.analysis = None
        session.status = SessionStatus.FAILED
        try:
            self.session_manager.save(session, include_volume=False)
        except SessionIOError as e:
            logger.warning(f"Could not record failure for {session.session_id}: {e}")
        self.publisher.publish(ANALYSIS_FAILED, session=session, error=error)

    def shutdown(self, wait: bool = True) -> None:
        """Wait for running analyses and stop the worker pool."""
        logger.info("Shutting down analysis service...")
        self.executor.shutdown(wait=wait)
