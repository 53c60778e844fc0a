"""Unit tests for SnoreRecorderConfig class."""

import pytest
from pathlib import Path

from snorerecorder.config import DEFAULT_CONFIG, SnoreRecorderConfig, find_config_file


@pytest.mark.unit
class TestSnoreRecorderConfig:

    def test_defaults_without_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = SnoreRecorderConfig()

        assert config.config_file is None
        assert config.get('audio.sample_rate') == 44100
        assert config.get('capture.volume_history_size') == 300
        assert config.get('analysis.frame_size') == 1024
        assert config.get('storage.max_age_days') == 30
        assert config.get('capture.lease_seconds') is None

    def test_defaults_are_not_shared(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = SnoreRecorderConfig()
        config.set('audio.sample_rate', 8000)

        assert DEFAULT_CONFIG['audio']['sample_rate'] == 44100

    def test_file_overrides_defaults(self, tmp_path):
        config_file = tmp_path / "snorerecorder.yaml"
        config_file.write_text(
            "audio:\n"
            "  sample_rate: 16000\n"
            "storage:\n"
            "  data_directory: recordings\n"
        )

        config = SnoreRecorderConfig(str(config_file))

        assert config.get('audio.sample_rate') == 16000
        assert config.get('audio.frame_size') == 1024
        assert config.get('storage.data_directory') == str(tmp_path / "recordings")
        assert config.get('logging.file_path') == str(tmp_path / "data/logs/snorerecorder.log")

    def test_absolute_paths_untouched(self, tmp_path):
        data_dir = tmp_path / "absolute"
        config_file = tmp_path / "config.yaml"
        config_file.write_text(f"storage:\n  data_directory: {data_dir}\n")

        config = SnoreRecorderConfig(str(config_file))

        assert config.get_data_directory() == str(data_dir)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            SnoreRecorderConfig(str(tmp_path / "missing.yaml"))

    def test_empty_file(self, tmp_path):
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")

        with pytest.raises(ValueError):
            SnoreRecorderConfig(str(config_file))

    def test_invalid_yaml(self, tmp_path):
        config_file = tmp_path / "bad.yaml"
        config_file.write_text("audio: [unclosed\n")

        with pytest.raises(ValueError, match="Invalid YAML"):
            SnoreRecorderConfig(str(config_file))

    def test_get_missing_key_returns_default(self):
        config = SnoreRecorderConfig()

        assert config.get('audio.nonexistent', 'fallback') == 'fallback'
        assert config.get('nonexistent.deeply.nested') is None

    def test_set_creates_sections(self):
        config = SnoreRecorderConfig()
        config.set('extra.option', True)

        assert config.get('extra.option') is True

    def test_data_directory_is_absolute(self):
        assert Path(SnoreRecorderConfig().get_data_directory()).is_absolute()

    def test_example_config_loads(self):
        example = Path(__file__).parents[2] / "snorerecorder.yaml"
        config = SnoreRecorderConfig(str(example))

        assert config.get('audio.sample_rate') > 0
        assert config.get('capture.volume_history_size') > 0

    def test_discovers_file_in_current_directory(self, tmp_path, monkeypatch):
        (tmp_path / "snorerecorder.yaml").write_text("audio:\n  sample_rate: 16000\n")
        monkeypatch.chdir(tmp_path)

        config = SnoreRecorderConfig()

        assert config.config_file == tmp_path.resolve() / "snorerecorder.yaml"
        assert config.get('audio.sample_rate') == 16000

    def test_discovers_file_in_parent_directory(self, tmp_path, monkeypatch):
        """Test that running from a subdirectory picks up the project's config."""
        (tmp_path / "snorerecorder.yaml").write_text("storage:\n  max_age_days: 7\n")
        nested = tmp_path / "nights" / "january"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)

        config = SnoreRecorderConfig()

        assert config.get('storage.max_age_days') == 7
        # Relative paths follow the discovered file, not the working directory
        assert config.get('storage.data_directory') == str(tmp_path.resolve() / "data")

    def test_nearest_file_wins(self, tmp_path):
        (tmp_path / "snorerecorder.yaml").write_text("audio:\n  sample_rate: 16000\n")
        nested = tmp_path / "nested"
        nested.mkdir()
        (nested / "snorerecorder.yaml").write_text("audio:\n  sample_rate: 8000\n")

        assert find_config_file(nested) == nested.resolve() / "snorerecorder.yaml"

    def test_find_config_file_none(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        if any((d / "snorerecorder.yaml").is_file() for d in tmp_path.resolve().parents):
            pytest.skip("A snorerecorder.yaml exists above the temp directory")

        assert find_config_file() is None
