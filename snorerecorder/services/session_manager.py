"""Session manager for handling recording sessions and file operations."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Any, List, Optional, Tuple

import numpy as np

from ..errors import SessionIOError
from ..storage.file_manager import FileManager, audio_filename
from ..models.session import RecordingSession, SessionStatus

logger = logging.getLogger(__name__)


class SessionManager:
    """Durable store for recording sessions: metadata, volume history and audio."""

    def __init__(self, data_directory: str):
        """Initialize session manager.

        Args:
            data_directory: Base directory for all session data
        """
        self.file_manager = FileManager(data_directory)
        logger.info(f"SessionManager initialized with data dir: {data_directory}")

    def create_session(self, sample_rate: int, channels: int = 1) -> RecordingSession:
        """Create a new recording session in CAPTURING state.

        Raises:
            SessionIOError: The session directory could not be created
        """
        try:
            session_id = self.file_manager.create_session_directory()
        except OSError as e:
            raise SessionIOError(f"Could not create session directory: {e}") from e

        session = RecordingSession(
            session_id=session_id,
            start_time=datetime.now(),
            audio_file=audio_filename(session_id),
            sample_rate=sample_rate,
            channels=channels,
            status=SessionStatus.CAPTURING,
        )
        logger.info(f"Created new session: {session_id}")
        return session

    def audio_path(self, session_id: str) -> Path:
        """Path of the session's audio file."""
        return self.file_manager.get_audio_path(session_id)

    def save(self, session: RecordingSession, include_volume: bool = True) -> None:
        """Persist session metadata and, optionally, its full volume history.

        Raises:
            SessionIOError: Writing to disk failed
        """
        try:
            if include_volume:
                self.file_manager.save_volume_history(session.session_id, session.volume_history)
            self.file_manager.save_session_info(session)
        except OSError as e:
            raise SessionIOError(f"Could not save session {session.session_id}: {e}") from e

    def delete(self, session: RecordingSession) -> bool:
        """Delete a session's audio file and metadata."""
        try:
            return self.file_manager.delete_session(session.session_id)
        except OSError as e:
            raise SessionIOError(f"Could not delete session {session.session_id}: {e}") from e

    def discard(self, session_id: str) -> None:
        """Remove whatever was written for a session that never started."""
        try:
            self.file_manager.delete_session(session_id)
        except OSError as e:
            logger.warning(f"Could not discard session {session_id}: {e}")

    def load(self, session_id: str) -> Optional[RecordingSession]:
        """Load one session by id, or None if it does not exist."""
        return self.file_manager.load_session_info(session_id)

    def fetch(self, predicate: Optional[Callable[[RecordingSession], bool]] = None) -> List[RecordingSession]:
        """Load all sessions, optionally filtered by a predicate.

        Returns:
            Sessions in chronological order
        """
        sessions = []
        for session_id in self.file_manager.list_sessions():
            session = self.load(session_id)
            if session is None:
                continue
            if predicate is None or predicate(session):
                sessions.append(session)
        return sessions

    def load_audio(self, session: RecordingSession) -> Tuple[np.ndarray, int]:
        """Decode a session's stored audio to normalized mono float32 samples.

        Raises:
            NoAudioDataError, AudioDecodeError: The audio is missing or unreadable
            SessionIOError: Reading from disk failed
        """
        try:
            return self.file_manager.load_audio_samples(session.session_id)
        except OSError as e:
            raise SessionIOError(f"Could not read audio for {session.session_id}: {e}") from e

    def cleanup_old_sessions(self, max_age_days: int = 30) -> int:
        """Delete sessions older than the storage limit."""
        return self.file_manager.cleanup_old_sessions(max_age_days)

    def get_storage_stats(self) -> Dict[str, Any]:
        """Get storage usage statistics."""
        return self.file_manager.get_storage_stats()
