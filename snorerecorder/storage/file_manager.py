"""File management module for session audio, volume history and metadata."""

import json
import logging
import random
import shutil
import string
import wave
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..errors import AudioDecodeError, NoAudioDataError
from ..models.session import RecordingSession


logger = logging.getLogger(__name__)

SESSION_INFO_FILE = "session_info.json"
VOLUME_HISTORY_FILE = "volume.f32"

# Flat little-endian 32-bit float array
VOLUME_DTYPE = np.dtype("<f4")


def encode_volume_history(volumes: Sequence[float]) -> bytes:
    """Serialize a volume history to little-endian float32 bytes."""
    return np.asarray(volumes, dtype=VOLUME_DTYPE).tobytes()


def decode_volume_history(data: bytes) -> List[np.float32]:
    """Deserialize little-endian float32 bytes into a list of float32 values.

    Values are not widened to Python floats, so encoding the result gives
    back the original bytes, NaN payloads included.
    """
    if len(data) % VOLUME_DTYPE.itemsize:
        raise ValueError(f"Volume data length {len(data)} is not a multiple of "
                         f"{VOLUME_DTYPE.itemsize}")
    return list(np.frombuffer(data, dtype=VOLUME_DTYPE))


def audio_filename(session_id: str) -> str:
    """Audio file name derived from the session id."""
    return f"recording_{session_id}.wav"


class FileManager:
    """Manages file storage and organization for recordings and metadata."""

    def __init__(self, data_dir: str = "./data"):
        """Initialize file manager with data directory.

        Args:
            data_dir: Base directory for storing all data
        """
        self.data_dir = Path(data_dir)
        self.sessions_dir = self.data_dir / "sessions"
        self.logs_dir = self.data_dir / "logs"

        # Create directory structure
        self._ensure_directories()

        logger.info(f"FileManager initialized with data_dir: {self.data_dir}")

    def _ensure_directories(self) -> None:
        """Ensure all required directories exist."""
        for directory in [self.data_dir, self.sessions_dir, self.logs_dir]:
            directory.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Ensured directory exists: {directory}")

    def create_session_directory(self) -> str:
        """Create new session directory with timestamp and random suffix.

        Returns:
            Session ID (timestamp-based with random suffix)
        """
        # Include random suffix to ensure uniqueness
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        random_suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=4))
        session_id = f"{timestamp}_{random_suffix}"
        session_path = self.sessions_dir / session_id
        session_path.mkdir(exist_ok=True)

        logger.info(f"Created session directory: {session_path}")
        return session_id

    def get_session_path(self, session_id: str) -> Path:
        """Get full path to session directory."""
        return self.sessions_dir / session_id

    def get_audio_path(self, session_id: str) -> Path:
        """Get full path to the session's audio file."""
        return self.get_session_path(session_id) / audio_filename(session_id)

    def save_session_info(self, session: RecordingSession) -> str:
        """Save session metadata to JSON file.

        Args:
            session: Session to save

        Returns:
            Path to saved session info file
        """
        session_path = self.get_session_path(session.session_id)
        session_path.mkdir(exist_ok=True)

        info_file = session_path / SESSION_INFO_FILE
        tmp_file = info_file.with_suffix(".json.tmp")

        try:
            with open(tmp_file, 'w', encoding='utf-8') as f:
                json.dump(session.to_dict(), f, indent=2, ensure_ascii=False)
            tmp_file.replace(info_file)

            logger.info(f"Session info saved: {info_file}")
            return str(info_file)

        except Exception as e:
            logger.error(f"Error saving session info: {e}")
            raise

    def save_volume_history(self, session_id: str, volumes: Sequence[float]) -> str:
        """Save the full volume history as a flat float32 array."""
        volume_file = self.get_session_path(session_id) / VOLUME_HISTORY_FILE

        try:
            volume_file.write_bytes(encode_volume_history(volumes))
            logger.info(f"Volume history saved: {volume_file} ({len(volumes)} samples)")
            return str(volume_file)

        except Exception as e:
            logger.error(f"Error saving volume history: {e}")
            raise

    def load_volume_history(self, session_id: str) -> List[np.float32]:
        """Load the volume history, or an empty list if none was stored."""
        volume_file = self.get_session_path(session_id) / VOLUME_HISTORY_FILE
        if not volume_file.exists():
            return []
        return decode_volume_history(volume_file.read_bytes())

    def load_session_info(self, session_id: str) -> Optional[RecordingSession]:
        """Load session metadata and volume history.

        Args:
            session_id: Session identifier

        Returns:
            RecordingSession or None if not found
        """
        info_file = self.get_session_path(session_id) / SESSION_INFO_FILE

        if not info_file.exists():
            logger.warning(f"Session info file not found: {info_file}")
            return None

        try:
            with open(info_file, 'r', encoding='utf-8') as f:
                data = json.load(f)

            return RecordingSession.from_dict(data, self.load_volume_history(session_id))

        except Exception as e:
            logger.error(f"Error loading session info: {e}")
            return None

    def load_audio_samples(self, session_id: str) -> Tuple[np.ndarray, int]:
        """Decode the session's WAV file into normalized mono float32 samples.

        Returns:
            Tuple of (samples, sample_rate)

        Raises:
            NoAudioDataError: The file is missing or holds no samples
            AudioDecodeError: The file is not a readable 16-bit PCM WAV
        """
        audio_path = self.get_audio_path(session_id)
        if not audio_path.exists():
            raise NoAudioDataError(f"Audio file not found: {audio_path}")

        try:
            with wave.open(str(audio_path), 'rb') as wf:
                channels = wf.getnchannels()
                sample_width = wf.getsampwidth()
                sample_rate = wf.getframerate()
                frames = wf.readframes(wf.getnframes())
        except (wave.Error, EOFError) as e:
            raise AudioDecodeError(f"Could not decode {audio_path}: {e}") from e

        if sample_width != 2:
            raise AudioDecodeError(f"Unsupported sample width: {sample_width} bytes")

        samples = np.frombuffer(frames, dtype="<i2")
        if channels > 1:
            samples = samples[::channels]
        if samples.size == 0:
            raise NoAudioDataError(f"Audio file is empty: {audio_path}")

        logger.debug(f"Decoded {samples.size} samples at {sample_rate}Hz from {audio_path}")
        return samples.astype(np.float32) / 32768.0, sample_rate

    def delete_session(self, session_id: str) -> bool:
        """Delete a session directory with its audio and metadata."""
        session_path = self.get_session_path(session_id)
        if not session_path.exists():
            logger.warning(f"Session directory not found: {session_path}")
            return False

        shutil.rmtree(session_path)
        logger.info(f"Deleted session: {session_path}")
        return True

    def list_sessions(self) -> List[str]:
        """List all available session IDs.

        Returns:
            List of session IDs sorted by creation time
        """
        try:
            sessions = []
            for path in self.sessions_dir.iterdir():
                if path.is_dir() and (path / SESSION_INFO_FILE).exists():
                    sessions.append(path.name)

            sessions.sort()  # Sort chronologically
            logger.debug(f"Found {len(sessions)} sessions")
            return sessions

        except Exception as e:
            logger.error(f"Error listing sessions: {e}")
            return []

    def cleanup_old_sessions(self, max_age_days: int = 30) -> int:
        """Clean up old session files.

        Args:
            max_age_days: Maximum age in days before cleanup

        Returns:
            Number of sessions cleaned up
        """
        cutoff_time = datetime.now().timestamp() - (max_age_days * 24 * 60 * 60)
        cleaned_count = 0

        try:
            for session_path in self.sessions_dir.iterdir():
                if session_path.is_dir():
                    # Check if session is old enough
                    if session_path.stat().st_mtime < cutoff_time:
                        shutil.rmtree(session_path)
                        cleaned_count += 1
                        logger.info(f"Cleaned up old session: {session_path}")

            logger.info(f"Cleaned up {cleaned_count} old sessions")
            return cleaned_count

        except Exception as e:
            logger.error(f"Error during cleanup: {e}")
            return cleaned_count

    def get_storage_stats(self) -> Dict[str, Any]:
        """Get storage usage statistics.

        Returns:
            Dictionary with storage statistics
        """
        try:
            total_size = 0
            session_count = 0
            audio_files = 0

            for session_path in self.sessions_dir.iterdir():
                if session_path.is_dir():
                    session_count += 1
                    for file_path in session_path.rglob("*"):
                        if file_path.is_file():
                            total_size += file_path.stat().st_size
                            if file_path.suffix == '.wav':
                                audio_files += 1

            return {
                "total_size_bytes": total_size,
                "total_size_mb": round(total_size / (1024 * 1024), 2),
                "session_count": session_count,
                "audio_files": audio_files,
                "data_directory": str(self.data_dir)
            }

        except Exception as e:
            logger.error(f"Error getting storage stats: {e}")
            return {}
