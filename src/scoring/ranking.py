"""
Ranking of artist strength scores.
"""

import asyncio
from dataclasses import replace
from typing import Iterable, List, Optional

from aggregator.stores import CatalogStore
from scoring.repository import ScoreRepository
from scoring.service import ArtistScoringService
from shared.schemas.dto import ArtistScore, RankedPage
from shared.utils.configs import base_configs, batch_configs
from shared.utils.logger import logger
from shared.utils.time_range import TimeRange


def sort_key(score: ArtistScore):
    # overall desc, then name and id asc: a total order, so ranks never tie
    return (-score.overall_score, score.artist_name, score.artist_id)


def rank_scores(
    scores: Iterable[ArtistScore],
    min_score: float = 0.0,
    limit: int = base_configs["default_limit"],
    page: int = 1,
) -> RankedPage:
    """
    Filter, order and rank scores, then cut the requested page.

    Ranks are positions in the filtered, ordered list (1-based, contiguous)
    and do not depend on the page requested.
    """
    eligible = sorted(
        (score for score in scores if score.overall_score >= min_score), key=sort_key
    )
    ranked = [replace(score, rank=index + 1) for index, score in enumerate(eligible)]
    offset = (page - 1) * limit
    return RankedPage(
        artists=ranked[offset : offset + limit],
        total=len(ranked),
        page=page,
        limit=limit,
    )


class RankingService:
    def __init__(
        self,
        scoring: Optional[ArtistScoringService] = None,
        repository: Optional[ScoreRepository] = None,
        catalog: Optional[CatalogStore] = None,
        max_concurrency: Optional[int] = None,
    ):
        self.scoring = scoring or ArtistScoringService()
        self.repository = repository or ScoreRepository()
        self.catalog = catalog or CatalogStore()
        self.max_concurrency = max_concurrency or batch_configs["max_concurrency"]

    async def top_artists(
        self,
        time_range: TimeRange,
        min_score: float = 0.0,
        limit: int = base_configs["default_limit"],
        page: int = 1,
    ) -> RankedPage:
        """
        Ranked page of artists for a range.

        Serves persisted scores; when none exist for the range yet, scores the
        population live without persisting.
        """
        scores = await self.repository.load(time_range.token)
        if not scores:
            logger.info(
                f"No persisted scores for {time_range.token}, computing live rankings"
            )
            scores = await self.live_scores(time_range)
        return rank_scores(scores, min_score=min_score, limit=limit, page=page)

    async def live_scores(self, time_range: TimeRange) -> List[ArtistScore]:
        population = await self.catalog.scoring_population()
        if not population:
            return []

        totals = await self.scoring.population_play_totals(time_range, population)
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def score_one(artist_id: str, artist_name: str) -> ArtistScore:
            async with semaphore:
                return await self.scoring.score_profile(
                    artist_id, artist_name, time_range, totals
                )

        return list(
            await asyncio.gather(*(score_one(aid, name) for aid, name in population))
        )

    async def rank_of(self, score: ArtistScore, time_range: TimeRange) -> int:
        """Rank a freshly computed score within the persisted population."""
        persisted = await self.repository.load(time_range.token)
        others = [s for s in persisted if s.artist_id != score.artist_id]
        page = rank_scores(others + [score], limit=len(others) + 1)
        for ranked in page.artists:
            if ranked.artist_id == score.artist_id:
                return ranked.rank
        return page.total
