"""Main application entry point for SnoreRecorder."""

import sys
import signal
import argparse
import logging
import threading
from concurrent.futures import Future
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .audio.audio_pub import EventPublisher
from .audio.capture import CaptureEngine
from .audio.lease import ContinuationLease
from .audio.scheduler import ThreadTicker
from .config import SnoreRecorderConfig
from .errors import SnoreRecorderError
from .models.analysis import summarize
from .models.session import RecordingSession
from .services.analysis_service import AnalysisService
from .services.session_manager import SessionManager

logger = logging.getLogger(__name__)
console = Console()


class Application:
    """Composition root: builds and owns every service for one process."""

    def __init__(self, config: SnoreRecorderConfig):
        self.config = config
        self.pending_analyses: List[Future] = []

    def init(self) -> None:
        logger.info("Initializing services...")

        sample_rate = self.config.get('audio.sample_rate', 44100)
        channels = self.config.get('audio.channels', 1)
        frame_size = self.config.get('audio.frame_size', 1024)
        logger.info(f"Audio settings: {sample_rate}Hz, {frame_size} samples/frame, {channels} channels")

        self.publisher = EventPublisher()
        self.session_manager = SessionManager(self.config.get_data_directory())
        self.analysis_service = AnalysisService(
            self.session_manager,
            publisher=self.publisher,
            frame_size=self.config.get('analysis.frame_size', 1024),
            max_workers=self.config.get('analysis.max_workers', 1),
        )
        self.lease = ContinuationLease(self.config.get('capture.lease_seconds'))

        on_completed = self._auto_analyze if self.config.get('analysis.auto_analyze', True) else None
        self.capture_engine = CaptureEngine(
            frame_source=self._create_frame_source(sample_rate, frame_size, channels),
            session_manager=self.session_manager,
            ticker=ThreadTicker(self.config.get('capture.tick_interval_seconds', 1.0)),
            lease=self.lease,
            publisher=self.publisher,
            sample_rate=sample_rate,
            channels=channels,
            frame_size=frame_size,
            volume_history_size=self.config.get('capture.volume_history_size', 300),
            on_completed=on_completed,
        )

    def _create_frame_source(self, sample_rate: int, frame_size: int, channels: int):
        from .audio.microphone import PyAudioFrameSource
        return PyAudioFrameSource(
            sample_rate=sample_rate,
            frame_size=frame_size,
            channels=channels,
            device_index=self.config.get('audio.device_index'),
        )

    def _auto_analyze(self, session: RecordingSession) -> None:
        logger.info(f"Auto-analysis enabled, analyzing session {session.session_id}")
        self.pending_analyses.append(self.analysis_service.analyze(session))

    def record(self, duration: Optional[float]) -> Optional[RecordingSession]:
        """Capture until the scheduled duration elapses or the user interrupts."""
        session = self.capture_engine.start(duration)
        console.print(f"[bold green]Recording[/] session {session.session_id}"
                      + (f" for {duration:.0f}s" if duration else " (Ctrl+C to stop)"))
        try:
            while not self.capture_engine.wait_until_stopped(0.5):
                pass
        except KeyboardInterrupt:
            pass
        finally:
            self.capture_engine.stop()

        for future in self.pending_analyses:
            try:
                future.result()
            except SnoreRecorderError as e:
                console.print(f"[red]Analysis failed:[/] {e}")
        return self.capture_engine.last_session

    def analyze(self, session_id: str) -> Optional[RecordingSession]:
        session = self.session_manager.load(session_id)
        if session is None:
            raise SnoreRecorderError(f"Session not found: {session_id}")
        self.analysis_service.analyze(session).result()
        return session

    def cleanup(self) -> None:
        self.capture_engine.stop()
        self.analysis_service.shutdown()


def print_session(session: RecordingSession) -> None:
    """Print a session and its analysis."""
    table = Table(title=f"Session {session.session_id}", show_header=False)
    table.add_row("Started", session.start_time.strftime("%Y-%m-%d %H:%M"))
    table.add_row("Duration", session.duration_string)
    table.add_row("Status", session.status.value + (" (truncated)" if session.truncated else ""))
    table.add_row("Average volume", f"{session.average_volume:.4f}")
    table.add_row("Max volume", f"{session.max_volume:.4f}")

    result = session.analysis
    if result is not None:
        table.add_row("Snore events", str(result.snore_event_count))
        table.add_row("Snore rate", f"{result.snore_rate:.1f}/h")
        table.add_row("Severity", result.severity.value)
        table.add_row("Sleep quality", f"{result.sleep_quality_score:.1f} / 10")
    console.print(table)

    if result is not None:
        console.print(Panel(result.narrative, title="Analysis"))
        for recommendation in result.recommendations:
            console.print(f"  • {recommendation}")


def print_sessions(sessions: List[RecordingSession]) -> None:
    table = Table(title="Recordings", show_header=True, header_style="bold magenta")
    table.add_column("Session")
    table.add_column("Duration")
    table.add_column("Status")
    table.add_column("Analysis")
    for session in sessions:
        table.add_row(session.session_id, session.duration_string,
                      session.status.value, summarize(session.analysis))
    console.print(table)


def setup_logging(config: SnoreRecorderConfig, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/snorerecorder.log')
    console_output = config.get('logging.console_output', True)

    # Create logs directory if it doesn't exist
    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    # Set up handlers
    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("SnoreRecorder starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def lease_revocation_handler(lease: ContinuationLease):
    """Build a signal handler that expires the continuation lease.

    Expiry finalizes the session, which takes the capture engine's locks, so
    it runs on its own thread rather than inside the interrupted frame.
    """
    def handler(signum, frame):
        logger.warning(f"Received signal {signum}, revoking continuation lease")
        threading.Thread(target=lease.expire, name="LeaseRevocation").start()
    return handler


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="SnoreRecorder - overnight snore recording and analysis"
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: built-in settings)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (overrides config)"
    )
    parser.add_argument(
        "--version",
        action="version",
        version="SnoreRecorder v0.1.0"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    record = commands.add_parser("record", help="Record a session")
    record.add_argument("--duration", type=float,
                        help="Stop automatically after this many seconds")
    record.add_argument("--no-analyze", action="store_true",
                        help="Skip automatic analysis after recording")

    analyze = commands.add_parser("analyze", help="Analyze a recorded session")
    analyze.add_argument("session_id")

    show = commands.add_parser("show", help="Show one session")
    show.add_argument("session_id")

    commands.add_parser("list", help="List recorded sessions")

    delete = commands.add_parser("delete", help="Delete a session")
    delete.add_argument("session_id")

    cleanup = commands.add_parser("cleanup", help="Delete sessions past the storage limit")
    cleanup.add_argument("--max-age-days", type=int,
                         help="Override storage.max_age_days")
    return parser


def run_command(app: Application, args: argparse.Namespace) -> None:
    manager = app.session_manager
    if args.command == "record":
        if args.no_analyze:
            app.capture_engine.on_completed = None
        session = app.record(args.duration)
        if session is not None:
            print_session(session)
    elif args.command == "analyze":
        print_session(app.analyze(args.session_id))
    elif args.command == "show":
        session = manager.load(args.session_id)
        if session is None:
            raise SnoreRecorderError(f"Session not found: {args.session_id}")
        print_session(session)
        if session.analysis is None:
            console.print("Not yet analyzed")
    elif args.command == "list":
        print_sessions(manager.fetch())
    elif args.command == "delete":
        session = manager.load(args.session_id)
        if session is None:
            raise SnoreRecorderError(f"Session not found: {args.session_id}")
        manager.delete(session)
        console.print(f"Deleted session {args.session_id}")
    elif args.command == "cleanup":
        max_age = args.max_age_days or app.config.get('storage.max_age_days', 30)
        removed = manager.cleanup_old_sessions(max_age)
        stats = manager.get_storage_stats()
        console.print(f"Removed {removed} session(s); {stats.get('session_count', 0)} left, "
                      f"{stats.get('total_size_mb', 0)} MB used")


def main() -> None:
    """Main entry point for SnoreRecorder application."""
    args = build_parser().parse_args()

    try:
        config = SnoreRecorderConfig(args.config)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Configuration error:[/] {e}")
        sys.exit(2)

    setup_logging(config, args.log_level or config.get('logging.level', 'INFO'))

    app = Application(config)
    try:
        app.init()
        # The host revoking us (e.g. a service manager) ends the lease; the
        # capture engine then finalizes the session as truncated.
        signal.signal(signal.SIGTERM, lease_revocation_handler(app.lease))
        run_command(app, args)
    except KeyboardInterrupt:
        print("\nGoodbye!")
    except SnoreRecorderError as e:
        console.print(f"[red]Error:[/] {e}")
        logging.error(f"Application error: {e}")
        sys.exit(1)
    finally:
        if hasattr(app, "capture_engine"):
            app.cleanup()


if __name__ == "__main__":
    main()
