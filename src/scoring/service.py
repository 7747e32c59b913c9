"""
Artist scoring service.

Gathers an artist's AggregatedStats and scoring signals from the stores and
runs them through the scoring engine.
"""

import math
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from aggregator.growth import GrowthCalculator
from aggregator.service import TieredStatsAggregator
from aggregator.stores import CatalogStore, EventStore
from scoring.config import ScoringConfig, load_scoring_config
from scoring.engine import market_percentile, score_artist
from shared.schemas.dto import AggregatedStats, ArtistScore, ArtistSignals
from shared.utils.configs import base_configs
from shared.utils.errors import NotFoundError
from shared.utils.logger import logger
from shared.utils.time_range import TimeRange
from shared.utils.types import ErrorType


def daily_series(counts: Dict[int, int], time_range: TimeRange) -> List[int]:
    """
    Plays per 24 hour bucket for the last ``time_range.days`` days, oldest first.

    ``counts`` is keyed by whole days before ``time_range.end``, so buckets
    line up with the window rather than with calendar days.
    """
    days = max(1, int(math.ceil(time_range.days)))
    return [counts.get(offset, 0) for offset in reversed(range(days))]


class ArtistScoringService:
    """
    Computes ArtistScore objects for single artists.

    The service never persists; the batch coordinator owns writes.
    """

    def __init__(
        self,
        aggregator: Optional[TieredStatsAggregator] = None,
        event_store: Optional[EventStore] = None,
        catalog: Optional[CatalogStore] = None,
        config: Optional[ScoringConfig] = None,
    ):
        self.event_store = event_store or EventStore()
        self.aggregator = aggregator or TieredStatsAggregator(
            event_store=self.event_store
        )
        self.catalog = catalog or CatalogStore()
        self.config = config or load_scoring_config()

    async def population_play_totals(
        self,
        time_range: TimeRange,
        population: Optional[Sequence[Tuple[str, str]]] = None,
    ) -> Dict[str, int]:
        """
        Plays in the window for every artist in the scoring population.

        Artists without a play in the window are included with 0 so they
        still count in market percentiles.
        """
        if population is None:
            population = await self.catalog.scoring_population()
        totals = await self.event_store.artist_play_totals(
            time_range.start, time_range.end
        )
        return {artist_id: totals.get(artist_id, 0) for artist_id, _ in population}

    async def score(
        self,
        artist_id: str,
        time_range: TimeRange,
        population_totals: Optional[Dict[str, int]] = None,
    ) -> ArtistScore:
        """
        Score one artist over a window.

        Raises:
            NotFoundError: If no artist profile has this id
        """
        artist = await self.catalog.get_artist(artist_id)
        if artist is None:
            raise NotFoundError(
                message=f"Artist {artist_id} not found",
                error_type=ErrorType.NOT_FOUND,
            )
        return await self.score_profile(
            artist.id, artist.artist_name, time_range, population_totals
        )

    async def score_profile(
        self,
        artist_id: str,
        artist_name: str,
        time_range: TimeRange,
        population_totals: Optional[Dict[str, int]] = None,
    ) -> ArtistScore:
        """Score an artist already known to exist."""
        track_ids = await self.catalog.public_track_ids(artist_id)
        stats = await self.aggregator.aggregate(track_ids, time_range)

        if stats.total_plays > 0:
            if population_totals is None:
                population_totals = await self.population_play_totals(time_range)
            signals = await self.gather_signals(
                artist_id, track_ids, stats, time_range, population_totals
            )
        else:
            signals = ArtistSignals()

        result = score_artist(stats, signals, self.config, time_range.days)
        logger.debug(
            f"Scored artist {artist_id} for {time_range.token}: "
            f"{result.overall_score:.2f} ({stats.source})"
        )

        return ArtistScore(
            artist_id=artist_id,
            artist_name=artist_name,
            engagement_score=result.engagement_score,
            growth_score=result.growth_score,
            quality_score=result.quality_score,
            potential_score=result.potential_score,
            overall_score=result.overall_score,
            score_category=result.score_category,
            time_range=time_range.token,
            config_version=self.config.version,
            breakdown=result.breakdown,
            calculated_at=datetime.now(base_configs["timezone"]),
        )

    async def gather_signals(
        self,
        artist_id: str,
        track_ids: Sequence[str],
        stats: AggregatedStats,
        time_range: TimeRange,
        population_totals: Dict[str, int],
    ) -> ArtistSignals:
        start, end = time_range.start, time_range.end
        store = self.event_store

        previous = await self.aggregator.aggregate(track_ids, time_range.previous())
        growth = GrowthCalculator.compare(stats, previous)

        regions = await store.plays_by("region", track_ids, start, end)
        sources = await store.plays_by("source", track_ids, start, end)
        daily = await store.daily_play_counts(track_ids, start, end)
        total_sessions, repeat_sessions = await store.session_counts(
            track_ids, start, end
        )
        genres = await store.genre_play_counts(track_ids, start, end)

        own_plays = population_totals.get(artist_id, stats.total_plays)
        others = [
            plays for other, plays in population_totals.items() if other != artist_id
        ]

        return ArtistSignals(
            region_play_counts=regions,
            source_play_counts=sources,
            daily_play_counts=daily_series(daily, time_range),
            total_sessions=total_sessions,
            repeat_sessions=repeat_sessions,
            genre_play_counts=genres,
            unique_listener_growth=growth.unique_listener_growth,
            market_percentile=market_percentile(own_plays, others),
        )
