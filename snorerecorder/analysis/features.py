"""Windowed acoustic feature extraction over decoded session audio.

Samples are split into consecutive, non-overlapping frames of ``frame_size``
samples (the last frame may be shorter). For each frame we compute:

* RMS energy: ``sqrt(mean(x**2))``.
* Zero-crossing rate: adjacent pairs whose ``x >= 0`` sign differs, divided
  by ``len(frame) - 1``. A sample landing exactly on zero counts as
  non-negative, so a move from negative to zero is a crossing.
* Spectral centroid (approximation): ``sum(f_j * |x_j|) / sum(|x_j|)`` with
  ``f_j = j * sample_rate / frame_size``. This weights absolute amplitude by
  the sample's position in the frame rather than by a real frequency bin.
  It is not an FFT centroid and is kept as-is so detection thresholds tuned
  against it stay valid.
"""

import logging
from typing import Iterator

import numpy as np

from ..models.audio import AudioFeatureWindow

logger = logging.getLogger(__name__)

DEFAULT_FRAME_SIZE = 1024


def rms_energy(frame: np.ndarray) -> float:
    if frame.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(np.square(frame, dtype=np.float64))))


def zero_crossing_rate(frame: np.ndarray) -> float:
    if frame.size < 2:
        return 0.0
    non_negative = frame >= 0
    crossings = np.count_nonzero(non_negative[1:] != non_negative[:-1])
    return crossings / (frame.size - 1)


def spectral_centroid(frame: np.ndarray, sample_rate: int,
                      frame_size: int = DEFAULT_FRAME_SIZE) -> float:
    magnitudes = np.abs(frame).astype(np.float64)
    magnitude_sum = magnitudes.sum()
    if magnitude_sum <= 0:
        return 0.0
    frequencies = np.arange(frame.size, dtype=np.float64) * sample_rate / frame_size
    return float(np.dot(frequencies, magnitudes) / magnitude_sum)


def extract_features(samples: np.ndarray, sample_rate: int,
                     frame_size: int = DEFAULT_FRAME_SIZE) -> Iterator[AudioFeatureWindow]:
    """Yield one AudioFeatureWindow per analysis frame, in frame order.

    Args:
        samples: Normalized mono samples
        sample_rate: Sample rate of ``samples``
        frame_size: Analysis frame size in samples

    Yields:
        Feature windows; the generator is single-pass
    """
    if frame_size <= 0:
        raise ValueError(f"frame_size must be positive, got {frame_size}")

    samples = np.asarray(samples)
    for index, start in enumerate(range(0, samples.size, frame_size)):
        frame = samples[start:start + frame_size]
        yield AudioFeatureWindow(
            frame_index=index,
            length=int(frame.size),
            rms_energy=rms_energy(frame),
            zero_crossing_rate=zero_crossing_rate(frame),
            spectral_centroid=spectral_centroid(frame, sample_rate, frame_size),
        )


class FeatureExtractor:
    """Configured feature extraction for one analysis frame size."""

    def __init__(self, frame_size: int = DEFAULT_FRAME_SIZE):
        if frame_size <= 0:
            raise ValueError(f"frame_size must be positive, got {frame_size}")
        self.frame_size = frame_size

    def extract(self, samples: np.ndarray, sample_rate: int) -> Iterator[AudioFeatureWindow]:
        logger.debug(f"Extracting features from {len(samples)} samples "
                     f"at {sample_rate}Hz, frame size {self.frame_size}")
        return extract_features(samples, sample_rate, self.frame_size)
