"""
Artist strength scoring.

Pure functions: the same AggregatedStats, ArtistSignals, config and window
length always produce the same scores. Nothing here touches a store.
"""

import math
from dataclasses import dataclass, fields
from typing import Dict, Iterable, Sequence

from scoring.config import CATEGORY_FACTORS, ScoringConfig
from shared.schemas.dto import (
    AggregatedStats,
    ArtistScoreBreakdown,
    ArtistSignals,
    EngagementBreakdown,
    GrowthBreakdown,
    PotentialBreakdown,
    QualityBreakdown,
)


@dataclass
class ScoreResult:
    engagement_score: float
    growth_score: float
    quality_score: float
    potential_score: float
    overall_score: float
    score_category: str
    breakdown: ArtistScoreBreakdown


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    if value != value:  # NaN
        return low
    return max(low, min(high, value))


def scale(value: float, reference: float) -> float:
    """Map an unbounded non-negative value to 0-100, ``reference`` scoring 100."""
    return clamp(value / reference * 100)


def rate(count: float, total: float) -> float:
    return count / total * 100 if total else 0.0


def time_consistency(daily_counts: Sequence[int]) -> float:
    """100 * (1 - coefficient of variation) of daily plays, floored at 0."""
    if not daily_counts:
        return 0.0
    mean = sum(daily_counts) / len(daily_counts)
    if mean == 0:
        return 0.0
    variance = sum((c - mean) ** 2 for c in daily_counts) / len(daily_counts)
    return 100 * max(0.0, 1 - math.sqrt(variance) / mean)


def concentration_appeal(counts: Iterable[int]) -> float:
    """100 * (1 - Herfindahl index) of the shares, or -1 with no data."""
    counts = [c for c in counts if c > 0]
    total = sum(counts)
    if not total:
        return -1.0
    return 100 * (1 - sum((c / total) ** 2 for c in counts))


def concentration_share(counts: Iterable[int]) -> float:
    """Share of the largest count in percent, or -1 with no data."""
    counts = [c for c in counts if c > 0]
    total = sum(counts)
    if not total:
        return -1.0
    return max(counts) / total * 100


def cross_platform_score(
    source_counts: Dict[str, int], config: ScoringConfig
) -> float:
    active = [c for c in source_counts.values() if c > 0]
    if not active:
        return 0.0
    plays_per_source = sum(active) / len(active)
    return min(
        100.0,
        len(active) * config.points_per_source
        + plays_per_source / config.plays_per_source_divisor,
    )


def market_percentile(plays: int, other_artist_plays: Iterable[int]) -> float:
    """
    Percentile of ``plays`` among other artists' plays, ties counting half.

    An artist alone in the population is at the top when it has any plays.
    """
    others = list(other_artist_plays)
    if not others:
        return 100.0 if plays > 0 else 0.0
    below = sum(1 for p in others if p < plays)
    equal = sum(1 for p in others if p == plays)
    return (below + 0.5 * equal) / len(others) * 100


def categorize(overall: float, config: ScoringConfig) -> str:
    """First category whose threshold the score reaches, highest first."""
    for threshold, label in config.categories:
        if overall >= threshold:
            return label
    return config.floor_category


def build_breakdown(
    stats: AggregatedStats,
    signals: ArtistSignals,
    config: ScoringConfig,
    time_range_days: float,
) -> ArtistScoreBreakdown:
    """Raw per-factor values, before normalization."""
    plays = stats.total_plays
    genre_fit = concentration_share(signals.genre_play_counts.values())
    demographic = concentration_appeal(signals.region_play_counts.values())

    return ArtistScoreBreakdown(
        engagement=EngagementBreakdown(
            completion_rate=stats.avg_completion_rate,
            replay_rate=stats.replay_rate,
            like_rate=rate(stats.total_likes, plays),
            save_rate=rate(stats.total_saves, plays),
            share_rate=rate(stats.total_shares, plays),
        ),
        growth=GrowthBreakdown(
            play_velocity=plays / max(time_range_days, 1.0),
            unique_listener_growth=signals.unique_listener_growth,
            geographic_expansion=float(
                sum(1 for c in signals.region_play_counts.values() if c > 0)
            ),
            time_consistency=time_consistency(signals.daily_play_counts),
        ),
        quality=QualityBreakdown(
            skip_rate=stats.skip_rate,
            retention_rate=rate(signals.repeat_sessions, signals.total_sessions),
            cross_platform_score=cross_platform_score(
                signals.source_play_counts, config
            ),
            genre_fit=genre_fit if genre_fit >= 0 else config.default_genre_fit,
        ),
        potential=PotentialBreakdown(
            viral_coefficient=(
                stats.total_shares / stats.unique_plays if stats.unique_plays else 0.0
            ),
            market_position=signals.market_percentile,
            demographic_appeal=(
                demographic if demographic >= 0 else config.default_demographic_appeal
            ),
        ),
    )


def normalize(
    breakdown: ArtistScoreBreakdown, config: ScoringConfig
) -> Dict[str, Dict[str, float]]:
    """Map every breakdown factor onto 0-100."""
    scales = config.reference_scales
    normalized = {}
    for category in CATEGORY_FACTORS:
        values = getattr(breakdown, category)
        normalized[category] = {}
        for f in fields(values):
            raw = getattr(values, f.name)
            if f.name == "skip_rate":
                value = 100 - clamp(raw)
            elif f.name in scales:
                value = scale(raw, scales[f.name])
            else:
                value = clamp(raw)
            normalized[category][f.name] = value
    return normalized


def score_artist(
    stats: AggregatedStats,
    signals: ArtistSignals,
    config: ScoringConfig,
    time_range_days: float,
) -> ScoreResult:
    """
    Compute the four sub-scores, the overall score and the category.

    Zero plays yield an all-zero breakdown and scores in the lowest category.
    """
    precision = config.precision

    if stats.total_plays <= 0:
        return ScoreResult(
            engagement_score=0.0,
            growth_score=0.0,
            quality_score=0.0,
            potential_score=0.0,
            overall_score=0.0,
            score_category=categorize(0.0, config),
            breakdown=ArtistScoreBreakdown(),
        )

    breakdown = build_breakdown(stats, signals, config, time_range_days)
    normalized = normalize(breakdown, config)

    sub_scores = {}
    for category, values in normalized.items():
        weights = config.factor_weights(category)
        total = math.fsum(weights[name] * value for name, value in values.items())
        sub_scores[category] = round(clamp(total), precision)

    overall = round(
        clamp(
            math.fsum(
                config.category_weights[category] * score
                for category, score in sub_scores.items()
            )
        ),
        precision,
    )

    for category in CATEGORY_FACTORS:
        values = getattr(breakdown, category)
        for f in fields(values):
            setattr(values, f.name, round(float(getattr(values, f.name)), precision))

    return ScoreResult(
        engagement_score=sub_scores["engagement"],
        growth_score=sub_scores["growth"],
        quality_score=sub_scores["quality"],
        potential_score=sub_scores["potential"],
        overall_score=overall,
        score_category=categorize(overall, config),
        breakdown=breakdown,
    )
