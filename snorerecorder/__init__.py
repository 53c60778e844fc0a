"""SnoreRecorder: overnight audio capture and snore analysis."""

__version__ = "0.1.0"
