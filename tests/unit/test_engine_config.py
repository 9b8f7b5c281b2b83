"""
Unit tests for Settings and EngineConfig.
"""

import pytest

from config import Settings
from src.adaptive.calibrator import DEFAULT_ANCHOR_CATEGORIES, CalibrationConfig
from src.coach.config import EngineConfig


class TestSettings:
    def test_defaults_match_engine_defaults(self):
        config = EngineConfig.from_settings(Settings())
        default = EngineConfig()
        assert config.calibration == default.calibration
        assert config.coverage == default.coverage
        assert config.selection == default.selection
        assert config.reflection == default.reflection
        assert config.matcher == default.matcher

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("CACR_RETREAT_WINDOW", "4")
        monkeypatch.setenv("CACR_ANCHOR_CATEGORIES", " Injection , crypto ,")
        config = EngineConfig.from_settings(Settings())
        assert config.calibration.retreat_window == 4
        assert config.calibration.anchor_categories == ("injection", "crypto")

    def test_invalid_threshold_rejected(self):
        with pytest.raises(ValueError):
            Settings(advance_min_f1=1.5)

    def test_unknown_matcher_rejected(self):
        with pytest.raises(ValueError):
            Settings(matcher="semantic")


class TestEngineConfig:
    def test_default_anchors(self):
        assert EngineConfig().calibration.anchor_categories == DEFAULT_ANCHOR_CATEGORIES

    def test_initial_difficulty_out_of_range(self):
        with pytest.raises(ValueError):
            EngineConfig(initial_difficulty=6)

    def test_inverted_levels(self):
        with pytest.raises(ValueError):
            settings = Settings(min_difficulty=4, max_difficulty=2)
            EngineConfig.from_settings(settings)

    @pytest.mark.parametrize("min_level,max_level", [(0, 5), (1, 9), (6, 8)])
    def test_level_range_must_stay_within_one_to_five(self, min_level, max_level):
        with pytest.raises(ValueError):
            EngineConfig(
                initial_difficulty=max(min_level, 1),
                calibration=CalibrationConfig(min_level=min_level, max_level=max_level),
            )

    @pytest.mark.parametrize("name,value", [("CACR_MAX_DIFFICULTY", "9"), ("CACR_MIN_DIFFICULTY", "6")])
    def test_settings_reject_levels_above_five(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)
        with pytest.raises(ValueError):
            Settings()
