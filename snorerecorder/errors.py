"""Exception hierarchy for capture, storage and analysis failures."""


class SnoreRecorderError(Exception):
    """Base class for all snorerecorder errors."""


class AcquisitionError(SnoreRecorderError):
    """Audio input could not be acquired (device or permission unavailable)."""


class SessionActiveError(AcquisitionError):
    """A capture session is already running."""


class SessionIOError(SnoreRecorderError):
    """Reading or writing durable session data failed."""


class AnalysisError(SnoreRecorderError):
    """Analysis of a recorded session failed."""


class NoAudioDataError(AnalysisError):
    """The session has no readable audio data."""


class AudioDecodeError(AnalysisError):
    """The stored audio file could not be decoded."""


class DegenerateDurationError(AnalysisError):
    """The session duration is zero or negative, so no rate can be derived."""


class AnalysisInProgressError(AnalysisError):
    """An analysis for this session is already running."""
