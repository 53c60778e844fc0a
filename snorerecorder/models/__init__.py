"""Data models for the SnoreRecorder application."""

from .audio import CaptureStats, AudioFeatureWindow
from .session import RecordingSession, SessionStatus
from .events import AudioFrameEvent
from .analysis import (
    Severity,
    VolumePatterns,
    AnalysisInsights,
    AnalysisProgress,
    AnalysisResult,
)

__all__ = [
    "CaptureStats",
    "AudioFeatureWindow",
    "RecordingSession",
    "SessionStatus",
    "AudioFrameEvent",
    # Analysis models
    "Severity",
    "VolumePatterns",
    "AnalysisInsights",
    "AnalysisProgress",
    "AnalysisResult",
]
