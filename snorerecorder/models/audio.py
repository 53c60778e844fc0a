"""Audio-related data models."""

from dataclasses import dataclass, field
from typing import List


@dataclass
class CaptureStats:
    """Live capture statistics."""
    is_capturing: bool
    duration_seconds: float
    current_volume: float
    sample_rate: int
    frame_size: int
    total_frames: int
    dropped_writes: int
    volume_history: List[float] = field(default_factory=list)


@dataclass
class AudioFeatureWindow:
    """Features computed over one fixed-size analysis frame."""
    frame_index: int
    length: int  # Number of samples actually in this frame
    rms_energy: float
    zero_crossing_rate: float
    spectral_centroid: float  # Time-domain approximation, see analysis.features
