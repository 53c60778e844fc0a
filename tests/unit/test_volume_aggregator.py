"""Unit tests for VolumeAggregator class."""

import pytest
import threading
from unittest.mock import Mock

from snorerecorder.audio.audio_pub import CAPTURE_VOLUME
from snorerecorder.audio.volume import VolumeAggregator, DEFAULT_HISTORY_SIZE


@pytest.mark.unit
class TestVolumeAggregator:
    """Test cases for VolumeAggregator class."""

    def test_initialization(self):
        aggregator = VolumeAggregator()

        assert aggregator.max_samples == DEFAULT_HISTORY_SIZE == 300
        assert len(aggregator) == 0
        assert aggregator.latest == 0.0
        assert aggregator.snapshot() == []

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            VolumeAggregator(0)

    def test_append_keeps_order(self):
        aggregator = VolumeAggregator(10)
        for volume in [0.1, 0.2, 0.3]:
            aggregator.append(volume)

        assert aggregator.snapshot() == [0.1, 0.2, 0.3]
        assert aggregator.latest == 0.3

    def test_capacity_evicts_oldest(self):
        """Test that the history never exceeds its capacity and drops oldest first."""
        aggregator = VolumeAggregator(300)
        for i in range(1000):
            aggregator.append(float(i))

        history = aggregator.snapshot()
        assert len(history) == 300
        assert history[0] == 700.0
        assert history[-1] == 999.0
        assert aggregator.total_samples == 1000

    def test_snapshot_is_a_copy(self):
        aggregator = VolumeAggregator(5)
        aggregator.append(0.5)

        snapshot = aggregator.snapshot()
        snapshot.append(1.0)

        assert aggregator.snapshot() == [0.5]

    def test_clear(self):
        aggregator = VolumeAggregator(5)
        aggregator.append(0.5)
        aggregator.clear()

        assert len(aggregator) == 0
        assert aggregator.latest == 0.0
        assert aggregator.total_samples == 0

    def test_publishes_each_sample(self):
        publisher = Mock()
        aggregator = VolumeAggregator(5, publisher)

        aggregator.append(0.25)

        publisher.publish.assert_called_once_with(CAPTURE_VOLUME, volume=0.25)

    def test_concurrent_append_and_snapshot(self):
        """Test that readers always see a consistent, bounded history."""
        aggregator = VolumeAggregator(50)
        errors = []

        def writer():
            for i in range(2000):
                aggregator.append(float(i))

        def reader():
            for _ in range(500):
                snapshot = aggregator.snapshot()
                if len(snapshot) > 50:
                    errors.append(len(snapshot))
                if snapshot != sorted(snapshot):
                    errors.append(snapshot)

        threads = [threading.Thread(target=writer)] + [threading.Thread(target=reader) for _ in range(3)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert aggregator.snapshot() == [float(i) for i in range(1950, 2000)]
