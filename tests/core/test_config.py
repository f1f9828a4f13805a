"""Tests for EngineConfig."""

import pytest

from home_ambient.core.config import EngineConfig


class TestEngineConfig:
    """Tests for defaults, validation and serialization."""

    def test_defaults(self):
        """Test default configuration values."""
        config = EngineConfig()

        assert config.version == 1
        assert config.classification_floor == 0.5
        assert config.mood_floor == 0.6
        assert config.activity_floor == 0.6
        assert config.activity_window == 300.0
        assert config.sample_interval == 30.0
        assert config.rule_interval == 1800.0
        assert config.mining_interval == 3600.0
        assert config.history_capacity == 100
        assert config.pattern_capacity == 100
        assert config.min_pattern_samples == 20
        assert config.action_timeout == 10.0
        assert config.home_zone == "home"
        assert config.seed_presets is True

    def test_round_trip(self):
        """Test to_dict/from_dict keeps every field."""
        config = EngineConfig(
            classification_floor=0.6, mood_floor=0.7, history_capacity=50, home_zone="cabin"
        )
        restored = EngineConfig.from_dict(config.to_dict())

        assert restored == config

    def test_from_dict_missing_keys_use_defaults(self):
        """Test partial dicts fall back to defaults."""
        config = EngineConfig.from_dict({"rule_interval": 600})

        assert config.rule_interval == 600
        assert config.sample_interval == 30.0

    @pytest.mark.parametrize(
        "field,value",
        [
            ("classification_floor", 1.5),
            ("classification_floor", -0.1),
            ("sample_interval", 0),
            ("action_timeout", -1),
            ("activity_window", 0),
            ("activity_window", -300),
            ("mood_floor", 1.2),
            ("activity_floor", -0.5),
            ("history_capacity", 0),
            ("min_pattern_samples", 0),
        ],
    )
    def test_invalid_values_rejected(self, field, value):
        """Test out-of-range values raise ValueError."""
        with pytest.raises(ValueError):
            EngineConfig.from_dict({field: value})
