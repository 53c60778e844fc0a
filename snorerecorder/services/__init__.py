"""Services layer for SnoreRecorder application logic."""

from .session_manager import SessionManager
from .analysis_service import AnalysisService

__all__ = [
    "SessionManager",
    "AnalysisService",
]
