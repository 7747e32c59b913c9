"""
Tests for loading and validating the scoring config.
"""

import json

import pytest

from scoring.config import ScoringConfig, load_scoring_config
from shared.utils.errors import ConfigurationError
from shared.utils.types import ErrorType


class TestScoringConfig:
    def test_defaults_are_valid(self):
        config = ScoringConfig().validate()
        assert config.version == "1.0.0"
        assert config.category_weights["engagement"] == 0.4

    def test_no_path_returns_defaults(self):
        assert load_scoring_config(None) == ScoringConfig()

    def test_loads_partial_override_from_json(self, tmp_path):
        path = tmp_path / "scoring.json"
        path.write_text(
            json.dumps(
                {
                    "version": 2,
                    "category_weights": {
                        "engagement": 0.25,
                        "growth": 0.25,
                        "quality": 0.25,
                        "potential": 0.25,
                    },
                    "categories": [[75, "Breakout"], [40, "Rising"]],
                    "floor_category": "Emerging",
                }
            )
        )

        config = load_scoring_config(str(path))

        assert config.version == "2"
        assert config.category_weights["growth"] == 0.25
        assert config.categories == [(75.0, "Breakout"), (40.0, "Rising")]
        assert config.engagement_weights == ScoringConfig().engagement_weights

    @pytest.mark.parametrize(
        "data",
        [
            {
                "category_weights": {
                    "engagement": 0.5,
                    "growth": 0.3,
                    "quality": 0.2,
                    "potential": 0.1,
                }
            },
            {"growth_weights": {"play_velocity": 1.0}},
            {
                "potential_weights": {
                    "viral_coefficient": 1.2,
                    "market_position": -0.2,
                    "demographic_appeal": 0.0,
                }
            },
            {"reference_scales": {"like_rate": 0}},
            {"categories": [[50, "Low"], [90, "High"]]},
            {"categories": "high"},
            {"unknown_knob": 1},
        ],
    )
    def test_invalid_values_raise(self, data):
        with pytest.raises(ConfigurationError) as exc_info:
            ScoringConfig.from_dict(data)
        assert exc_info.value.error_type is ErrorType.CONFIG_ERROR

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_scoring_config(str(tmp_path / "missing.json"))

    def test_malformed_json_raises(self, tmp_path):
        path = tmp_path / "scoring.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError):
            load_scoring_config(str(path))

    def test_non_object_json_raises(self, tmp_path):
        path = tmp_path / "scoring.json"
        path.write_text("[1, 2, 3]")
        with pytest.raises(ConfigurationError):
            load_scoring_config(str(path))
