"""Unit tests for windowed feature extraction."""

import pytest
import numpy as np

from snorerecorder.analysis.features import (
    FeatureExtractor,
    extract_features,
    rms_energy,
    spectral_centroid,
    zero_crossing_rate,
)


@pytest.mark.unit
class TestFrameFeatures:

    def test_rms_of_constant(self):
        assert rms_energy(np.full(100, 0.5)) == pytest.approx(0.5)

    def test_rms_of_sine(self, audio_test_data):
        samples = audio_test_data("sine", amplitude=1.0, frequency=100.0)
        assert rms_energy(samples) == pytest.approx(1 / np.sqrt(2), rel=1e-3)

    def test_rms_empty(self):
        assert rms_energy(np.array([])) == 0.0

    def test_zero_crossing_alternating(self):
        frame = np.array([1.0, -1.0, 1.0, -1.0, 1.0])
        assert zero_crossing_rate(frame) == pytest.approx(1.0)

    def test_zero_crossing_constant(self):
        assert zero_crossing_rate(np.full(10, 0.3)) == 0.0

    def test_zero_counts_as_non_negative(self):
        # -1 -> 0 crosses, 0 -> 1 does not
        frame = np.array([-1.0, 0.0, 1.0])
        assert zero_crossing_rate(frame) == pytest.approx(0.5)

    def test_zero_crossing_short_frame(self):
        assert zero_crossing_rate(np.array([0.5])) == 0.0

    def test_centroid_weights_position(self):
        # Frequencies 0, 2, 4, 6 for sample_rate 8 and frame_size 4
        frame = np.array([0.0, 0.0, 0.0, 1.0])
        assert spectral_centroid(frame, 8, 4) == pytest.approx(6.0)

        frame = np.array([1.0, 1.0, 1.0, 1.0])
        assert spectral_centroid(frame, 8, 4) == pytest.approx(3.0)

    def test_centroid_uses_absolute_amplitude(self):
        assert spectral_centroid(np.array([0.0, -1.0]), 8, 4) == pytest.approx(2.0)

    def test_centroid_of_silence(self):
        assert spectral_centroid(np.zeros(64), 8000, 64) == 0.0

    def test_centroid_short_frame_keeps_configured_frame_size(self):
        # A trailing short frame still divides by the configured frame size
        frame = np.array([0.0, 1.0])
        assert spectral_centroid(frame, 8000, 1024) == pytest.approx(8000 / 1024)


@pytest.mark.unit
class TestExtractFeatures:

    def test_window_count_and_lengths(self):
        windows = list(extract_features(np.zeros(2500), 8000, 1024))

        assert [w.length for w in windows] == [1024, 1024, 452]
        assert [w.frame_index for w in windows] == [0, 1, 2]

    def test_empty_input(self):
        assert list(extract_features(np.array([]), 8000, 1024)) == []

    def test_features_per_window(self):
        samples = np.concatenate([np.zeros(4), np.array([1.0, -1.0, 1.0, -1.0])])
        first, second = extract_features(samples, 8, 4)

        assert first.rms_energy == 0.0
        assert first.spectral_centroid == 0.0
        assert second.rms_energy == pytest.approx(1.0)
        assert second.zero_crossing_rate == pytest.approx(1.0)
        assert second.spectral_centroid == pytest.approx(3.0)

    def test_is_lazy(self):
        windows = extract_features(np.zeros(4096), 8000, 1024)
        assert next(windows).frame_index == 0

    def test_invalid_frame_size(self):
        with pytest.raises(ValueError):
            list(extract_features(np.zeros(10), 8000, 0))

    def test_extractor(self, audio_test_data):
        extractor = FeatureExtractor(frame_size=512)
        samples = audio_test_data("noise", duration_seconds=0.5)

        windows = list(extractor.extract(samples, 8000))

        assert len(windows) == 8
        assert all(w.rms_energy > 0 for w in windows)

    def test_extractor_rejects_bad_frame_size(self):
        with pytest.raises(ValueError):
            FeatureExtractor(frame_size=-1)
