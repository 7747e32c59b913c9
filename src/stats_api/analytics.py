"""
Per-metric analytics for a track, an artist's tracks, or the whole catalog.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request, Response

from aggregator.service import TieredStatsAggregator
from aggregator.stores import CatalogStore
from shared.schemas.dto import AggregatedStats
from shared.utils.configs import base_configs
from shared.utils.helpers import success_response
from shared.utils.logger import logger
from shared.utils.time_range import TimeRange, resolve_time_range
from stats_api.auth import require_admin

METRICS = ("plays", "likes", "shares", "downloads", "saves")
DEFAULT_METRIC = "plays"
GLOBAL_TOP_TRACKS = 10


def metric_fields(metric: str, stats: AggregatedStats) -> Dict[str, Any]:
    """The AggregatedStats fields reported for one metric."""
    if metric == "plays":
        return {
            "totalPlays": stats.total_plays,
            "uniquePlays": stats.unique_plays,
            "avgDuration": stats.avg_duration,
            "avgCompletionRate": stats.avg_completion_rate,
            "skipRate": stats.skip_rate,
            "replayRate": stats.replay_rate,
        }
    if metric == "likes":
        return {"totalLikes": stats.total_likes}
    if metric == "shares":
        return {"totalShares": stats.total_shares}
    if metric == "downloads":
        return {"totalDownloads": stats.total_downloads}
    return {"totalSaves": stats.total_saves}


class AnalyticsService:
    def __init__(
        self,
        aggregator: Optional[TieredStatsAggregator] = None,
        catalog: Optional[CatalogStore] = None,
    ):
        self.aggregator = aggregator or TieredStatsAggregator()
        self.catalog = catalog or CatalogStore()

    async def get_analytics(
        self,
        time_range: TimeRange,
        metric: str = DEFAULT_METRIC,
        track_id: Optional[str] = None,
        artist_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Analytics for one metric. ``track_id`` wins over ``artist_id``; with
        neither, the whole catalog is covered.
        """
        if metric not in METRICS:
            metric = DEFAULT_METRIC

        track_ids: Optional[List[str]]
        if track_id:
            track_ids = [track_id]
        elif artist_id:
            track_ids = await self.catalog.artist_track_ids(artist_id)
        else:
            track_ids = None

        if track_ids is None:
            # no rollup covers "every track", so global reads are always raw
            stats = await self.aggregator.aggregate_raw(None, time_range)
        else:
            stats = await self.aggregator.aggregate(track_ids, time_range)

        data = metric_fields(metric, stats)
        if metric == "plays":
            data["sourceBreakdown"] = await self.aggregator.source_breakdown(
                track_ids, time_range
            )
            if track_ids is None:
                data["topTracks"] = await self.aggregator.top_tracks(
                    None, time_range, GLOBAL_TOP_TRACKS
                )
        elif metric == "shares":
            data["platformBreakdown"] = await self.aggregator.platform_breakdown(
                track_ids, time_range
            )

        if not track_id and artist_id:
            data["tracksCount"] = len(track_ids)
        data["source"] = stats.source
        return data


router = APIRouter()


@router.get("/stats/analytics", dependencies=[Depends(require_admin)])
async def analytics_handler(request: Request) -> Response:
    params = request.query_params
    token = params.get("timeRange") or base_configs["default_time_range"]
    time_range = resolve_time_range(token)
    metric = params.get("metric") or DEFAULT_METRIC
    if metric not in METRICS:
        logger.debug(f"Unknown metric '{metric}', using '{DEFAULT_METRIC}'")
        metric = DEFAULT_METRIC

    service: AnalyticsService = request.app.state.analytics
    data = await service.get_analytics(
        time_range,
        metric=metric,
        track_id=params.get("trackId") or None,
        artist_id=params.get("artistId") or None,
    )
    return success_response({**data, "timeRange": time_range.token, "metric": metric})
