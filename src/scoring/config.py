"""
Versioned scoring configuration.

Weights, reference scales, placeholder defaults and the category table are
data, not code: a deployment may ship its own JSON file at
``SCORING_CONFIG_PATH``. Keys missing from the file keep their defaults.
"""

import json
import math
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, Tuple

from shared.utils.configs import scoring_config_path
from shared.utils.errors import ConfigurationError
from shared.utils.logger import logger

WEIGHT_TOLERANCE = 1e-6

CATEGORY_FACTORS = {
    "engagement": (
        "completion_rate",
        "replay_rate",
        "like_rate",
        "save_rate",
        "share_rate",
    ),
    "growth": (
        "play_velocity",
        "unique_listener_growth",
        "geographic_expansion",
        "time_consistency",
    ),
    "quality": (
        "skip_rate",
        "retention_rate",
        "cross_platform_score",
        "genre_fit",
    ),
    "potential": (
        "viral_coefficient",
        "market_position",
        "demographic_appeal",
    ),
}


@dataclass
class ScoringConfig:
    """
    Parameters of the strength scoring engine.

    Attributes:
        version: Identifier persisted with every score computed from this config
        category_weights: Weight of each sub-score in the overall score
        engagement_weights / growth_weights / quality_weights / potential_weights:
            Weight of each breakdown factor inside its sub-score
        reference_scales: Raw value that normalizes to 100 for unbounded factors
        points_per_source: Cross-platform points per distinct discovery source
        plays_per_source_divisor: Divisor applied to plays per source
        default_genre_fit: Genre fit used when no genre data exists
        default_demographic_appeal: Demographic appeal used when no region data exists
        categories: (threshold, label) pairs, highest threshold first
        floor_category: Label when no threshold matches
        precision: Decimal places every score and breakdown value is rounded to
    """

    version: str = "1.0.0"
    category_weights: Dict[str, float] = field(
        default_factory=lambda: {
            "engagement": 0.4,
            "growth": 0.3,
            "quality": 0.2,
            "potential": 0.1,
        }
    )
    engagement_weights: Dict[str, float] = field(
        default_factory=lambda: {
            "completion_rate": 0.3,
            "replay_rate": 0.25,
            "like_rate": 0.2,
            "save_rate": 0.15,
            "share_rate": 0.1,
        }
    )
    growth_weights: Dict[str, float] = field(
        default_factory=lambda: {
            "play_velocity": 0.4,
            "unique_listener_growth": 0.3,
            "geographic_expansion": 0.2,
            "time_consistency": 0.1,
        }
    )
    quality_weights: Dict[str, float] = field(
        default_factory=lambda: {
            "skip_rate": 0.4,
            "retention_rate": 0.3,
            "cross_platform_score": 0.2,
            "genre_fit": 0.1,
        }
    )
    potential_weights: Dict[str, float] = field(
        default_factory=lambda: {
            "viral_coefficient": 0.5,
            "market_position": 0.3,
            "demographic_appeal": 0.2,
        }
    )
    reference_scales: Dict[str, float] = field(
        default_factory=lambda: {
            "like_rate": 10.0,  # 10% of plays liked
            "save_rate": 5.0,
            "share_rate": 2.0,
            "play_velocity": 100.0,  # plays per day
            "geographic_expansion": 10.0,  # distinct regions
            "viral_coefficient": 0.1,  # shares per unique listener
        }
    )
    points_per_source: float = 10.0
    plays_per_source_divisor: float = 10.0
    default_genre_fit: float = 80.0
    default_demographic_appeal: float = 70.0
    categories: List[Tuple[float, str]] = field(
        default_factory=lambda: [
            (90.0, "Superstar Potential"),
            (80.0, "Strong Commercial Viability"),
            (70.0, "Solid Artist with Good Potential"),
            (60.0, "Developing Artist with Promise"),
            (50.0, "Early Stage, Needs Development"),
        ]
    )
    floor_category: str = "Requires Significant Improvement"
    precision: int = 6

    def factor_weights(self, category: str) -> Dict[str, float]:
        return getattr(self, f"{category}_weights")

    def validate(self) -> "ScoringConfig":
        """
        Check weights, scales and thresholds.

        Raises:
            ConfigurationError: If any weight group does not sum to 1.0, names
                unknown factors, or a scale or threshold is out of order
        """
        self._check_weights("category", self.category_weights, tuple(CATEGORY_FACTORS))
        for category, factors in CATEGORY_FACTORS.items():
            self._check_weights(category, self.factor_weights(category), factors)

        for name, scale in self.reference_scales.items():
            if not scale or scale <= 0:
                raise ConfigurationError(
                    message=f"Reference scale '{name}' must be positive, got {scale}"
                )
        if self.plays_per_source_divisor <= 0:
            raise ConfigurationError(message="plays_per_source_divisor must be positive")

        thresholds = [threshold for threshold, _ in self.categories]
        if thresholds != sorted(thresholds, reverse=True) or len(set(thresholds)) != len(
            thresholds
        ):
            raise ConfigurationError(
                message="Category thresholds must be strictly descending"
            )
        return self

    @staticmethod
    def _check_weights(group: str, weights: Dict[str, float], expected) -> None:
        if set(weights) != set(expected):
            raise ConfigurationError(
                message=f"{group} weights must name exactly {sorted(expected)}, "
                f"got {sorted(weights)}"
            )
        if any(w < 0 for w in weights.values()):
            raise ConfigurationError(message=f"{group} weights must be non-negative")
        total = math.fsum(weights.values())
        if abs(total - 1.0) > WEIGHT_TOLERANCE:
            raise ConfigurationError(
                message=f"{group} weights must sum to 1.0, got {total:.6f}"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScoringConfig":
        """Build a validated config, overlaying ``data`` on the defaults."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(
                message=f"Unknown scoring config keys: {sorted(unknown)}"
            )

        values = dict(data)
        if "categories" in values:
            try:
                values["categories"] = [
                    (float(threshold), str(label))
                    for threshold, label in values["categories"]
                ]
            except (TypeError, ValueError):
                raise ConfigurationError(
                    message="categories must be a list of [threshold, label] pairs"
                )
        if "version" in values:
            values["version"] = str(values["version"])

        return cls(**values).validate()


def load_scoring_config(path: Optional[str] = None) -> ScoringConfig:
    """
    Load the scoring config from a JSON file, or the defaults when no path is set.

    Args:
        path: JSON file path, defaults to SCORING_CONFIG_PATH

    Raises:
        ConfigurationError: If the file cannot be read or holds invalid values
    """
    path = path or scoring_config_path
    if not path:
        return ScoringConfig().validate()

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to load scoring config from {path}: {str(e)}")
        raise ConfigurationError(message=f"Failed to load scoring config: {str(e)}")

    if not isinstance(data, dict):
        raise ConfigurationError(message="Scoring config must be a JSON object")

    config = ScoringConfig.from_dict(data)
    logger.info(f"Loaded scoring config version {config.version} from {path}")
    return config
