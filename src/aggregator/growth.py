"""
Period-over-period growth against the preceding equal-length window.
"""

from typing import Optional, Sequence

from aggregator.service import TieredStatsAggregator
from shared.schemas.dto import AggregatedStats, GrowthMetrics
from shared.utils.time_range import TimeRange


def growth_rate(current: float, previous: float) -> float:
    """
    Percentage change from ``previous`` to ``current``.

    A zero baseline reports 100 when anything happened in the current
    window and 0 otherwise.
    """
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100


class GrowthCalculator:
    def __init__(self, aggregator: Optional[TieredStatsAggregator] = None):
        self.aggregator = aggregator or TieredStatsAggregator()

    async def calculate(
        self, track_ids: Sequence[str], time_range: TimeRange
    ) -> GrowthMetrics:
        current = await self.aggregator.aggregate(track_ids, time_range)
        previous = await self.aggregator.aggregate(track_ids, time_range.previous())
        return self.compare(current, previous)

    @staticmethod
    def compare(current: AggregatedStats, previous: AggregatedStats) -> GrowthMetrics:
        return GrowthMetrics(
            plays_growth=growth_rate(current.total_plays, previous.total_plays),
            likes_growth=growth_rate(current.total_likes, previous.total_likes),
            shares_growth=growth_rate(current.total_shares, previous.total_shares),
            unique_listener_growth=growth_rate(
                current.unique_plays, previous.unique_plays
            ),
        )
