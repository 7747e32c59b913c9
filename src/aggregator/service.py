"""
Tiered stats aggregation.

Serves AggregatedStats for a set of tracks and a time window, preferring the
precomputed rollup tables and falling back to the raw event tables when no
rollup covers the window.
"""

from typing import List, Optional, Sequence

from aggregator.stores import EventKind, EventStore, RollupStore
from shared.schemas.dto import AggregatedStats
from shared.utils.logger import logger
from shared.utils.time_range import RangeGranularity, TimeRange

ROLLUP_COUNT_FIELDS = (
    "total_plays",
    "unique_plays",
    "total_likes",
    "total_shares",
    "total_downloads",
    "total_saves",
)

ROLLUP_AVERAGE_FIELDS = (
    "avg_duration",
    "avg_completion_rate",
    "skip_rate",
    "replay_rate",
)


def sum_rollups(records: list) -> AggregatedStats:
    """
    Sum rollup counts and average their per-play fields.

    Averages and rates are weighted by each record's ``total_plays``, so
    records for busy and quiet tracks combine the way their raw plays would.
    """
    stats = AggregatedStats(source="rollup")
    for name in ROLLUP_COUNT_FIELDS:
        setattr(stats, name, sum(int(getattr(r, name) or 0) for r in records))
    for name in ROLLUP_AVERAGE_FIELDS:
        weighted = sum(
            float(getattr(r, name) or 0.0) * int(r.total_plays or 0) for r in records
        )
        setattr(stats, name, weighted / stats.total_plays if stats.total_plays else 0.0)
    return stats


class TieredStatsAggregator:
    """
    Aggregates event statistics for a track set.

    Tier selection:
        1. no tracks: zero-filled stats, no store access
        2. ranges with a rollup granularity: rollup records whose bucket
           starts in the window, when any exist
        3. otherwise: counts computed over the raw events in [start, end)
    """

    def __init__(
        self,
        event_store: Optional[EventStore] = None,
        rollup_store: Optional[RollupStore] = None,
    ):
        self.event_store = event_store or EventStore()
        self.rollup_store = rollup_store or RollupStore()

    async def aggregate(
        self, track_ids: Sequence[str], time_range: TimeRange
    ) -> AggregatedStats:
        track_ids = list(track_ids)
        if not track_ids:
            return AggregatedStats.empty()

        if time_range.granularity is not RangeGranularity.NONE:
            records = await self.rollup_store.fetch(
                time_range.granularity, track_ids, time_range
            )
            if records:
                logger.debug(
                    f"Serving {time_range.token} stats for {len(track_ids)} tracks "
                    f"from {len(records)} {time_range.granularity.value} rollups"
                )
                return sum_rollups(records)
            logger.debug(
                f"No {time_range.granularity.value} rollups for {time_range.token}, "
                "falling back to raw events"
            )

        return await self.aggregate_raw(track_ids, time_range)

    async def aggregate_raw(
        self, track_ids: Optional[Sequence[str]], time_range: TimeRange
    ) -> AggregatedStats:
        """Compute stats from raw events. ``track_ids=None`` covers every track."""
        start, end = time_range.start, time_range.end
        store = self.event_store

        plays = await store.count_events(EventKind.PLAY, track_ids, start, end)
        likes = await store.count_events(EventKind.LIKE, track_ids, start, end)
        shares = await store.count_events(EventKind.SHARE, track_ids, start, end)
        downloads = await store.count_events(EventKind.DOWNLOAD, track_ids, start, end)
        saves = await store.count_events(EventKind.SAVE, track_ids, start, end)
        unique_plays = await store.count_unique_sessions(track_ids, start, end)
        quality = await store.play_quality(track_ids, start, end)

        return AggregatedStats(
            total_plays=plays,
            unique_plays=unique_plays,
            total_likes=likes,
            total_shares=shares,
            total_downloads=downloads,
            total_saves=saves,
            avg_duration=quality["avg_duration"],
            avg_completion_rate=quality["avg_completion_rate"],
            skip_rate=quality["skip_rate"],
            replay_rate=quality["replay_rate"],
            source="raw",
        )

    async def source_breakdown(
        self, track_ids: Optional[Sequence[str]], time_range: TimeRange
    ) -> List[dict]:
        if track_ids is not None and not track_ids:
            return []
        return await self.event_store.source_breakdown(
            track_ids, time_range.start, time_range.end
        )

    async def platform_breakdown(
        self, track_ids: Optional[Sequence[str]], time_range: TimeRange
    ) -> List[dict]:
        if track_ids is not None and not track_ids:
            return []
        return await self.event_store.platform_breakdown(
            track_ids, time_range.start, time_range.end
        )

    async def top_tracks(
        self, track_ids: Optional[Sequence[str]], time_range: TimeRange, limit: int = 10
    ) -> List[dict]:
        if track_ids is not None and not track_ids:
            return []
        return await self.event_store.top_tracks(
            track_ids, time_range.start, time_range.end, limit
        )
