"""Tests for eew.config: defaults, validation and JSON loading."""

import json

import pytest

from eew.config import EngineConfig
from eew.intensity import Intensity


class TestDefaults:
    def test_documented_defaults(self):
        config = EngineConfig()
        assert config.event_retention_seconds == 180
        assert config.cancel_removal_delay_seconds == 10
        assert config.sweep_interval_seconds == 10
        assert config.sweep_interval_follow_seconds == 2
        assert config.wavefront_interval_seconds == pytest.approx(0.01)
        assert not config.show_low_accuracy
        assert not config.ignore_stale_serials
        assert config.intensity_threshold is None

    def test_sweep_interval(self):
        config = EngineConfig()
        assert config.sweep_interval(auto_follow=True) == 2
        assert config.sweep_interval(auto_follow=False) == 10


class TestValidation:
    def test_threshold_parsed(self):
        assert EngineConfig(intensity_threshold="5-").intensity_threshold is Intensity.I5_LOWER

    def test_invalid_threshold(self):
        with pytest.raises(ValueError, match="threshold"):
            EngineConfig(intensity_threshold="banana")

    def test_non_positive_timing(self):
        with pytest.raises(ValueError, match="event_retention_seconds"):
            EngineConfig(event_retention_seconds=0)


class TestLoading:
    def test_from_dict_ignores_unknown(self, caplog):
        config = EngineConfig.from_dict({"show_low_accuracy": True, "colour": "red"})
        assert config.show_low_accuracy
        assert "colour" in caplog.text

    def test_from_file(self, tmp_path):
        path = tmp_path / "eew.json"
        path.write_text(json.dumps({"cancel_removal_delay_seconds": 5, "intensity_threshold": "4"}))
        config = EngineConfig.from_file(path)
        assert config.cancel_removal_delay_seconds == 5
        assert config.intensity_threshold is Intensity.I4

    def test_missing_file_uses_defaults(self, tmp_path, caplog):
        config = EngineConfig.from_file(tmp_path / "nope.json")
        assert config == EngineConfig()
        assert "Using defaults" in caplog.text

    def test_bad_json_uses_defaults(self, tmp_path):
        path = tmp_path / "eew.json"
        path.write_text("{not json")
        assert EngineConfig.from_file(path) == EngineConfig()

    def test_non_object_uses_defaults(self, tmp_path):
        path = tmp_path / "eew.json"
        path.write_text("[1, 2]")
        assert EngineConfig.from_file(path) == EngineConfig()
