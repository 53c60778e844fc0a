"""Audio capture and live volume feedback."""

from .capture import CaptureEngine
from .frame_source import FrameSource
from .volume import VolumeAggregator

__all__ = [
    'CaptureEngine',
    'FrameSource',
    'VolumeAggregator',
]
