"""
Persistence for artist strength scores.
"""

import json
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import delete, func, select, text

from aggregator.stores import has_public_track
from shared.db.database import Database, db
from shared.db.models import ArtistProfile, ArtistStrengthScore
from shared.schemas.dto import ArtistScore, ArtistScoreBreakdown

UPSERT_SCORE_SQL = """
    INSERT INTO artist_strength_scores (
        artist_id, time_range, engagement_score, growth_score, quality_score,
        potential_score, overall_score, score_category, breakdown,
        config_version, calculated_at
    )
    VALUES (
        :artist_id, :time_range, :engagement_score, :growth_score, :quality_score,
        :potential_score, :overall_score, :score_category, CAST(:breakdown AS JSON),
        :config_version, :calculated_at
    )
    ON CONFLICT (artist_id, time_range) DO UPDATE SET
        engagement_score = EXCLUDED.engagement_score,
        growth_score = EXCLUDED.growth_score,
        quality_score = EXCLUDED.quality_score,
        potential_score = EXCLUDED.potential_score,
        overall_score = EXCLUDED.overall_score,
        score_category = EXCLUDED.score_category,
        breakdown = EXCLUDED.breakdown,
        config_version = EXCLUDED.config_version,
        calculated_at = EXCLUDED.calculated_at
"""


def score_from_row(row: ArtistStrengthScore, artist_name: str) -> ArtistScore:
    return ArtistScore(
        artist_id=row.artist_id,
        artist_name=artist_name,
        engagement_score=row.engagement_score,
        growth_score=row.growth_score,
        quality_score=row.quality_score,
        potential_score=row.potential_score,
        overall_score=row.overall_score,
        score_category=row.score_category,
        time_range=row.time_range,
        config_version=row.config_version,
        breakdown=ArtistScoreBreakdown.from_dict(row.breakdown),
        calculated_at=row.calculated_at,
    )


class ScoreRepository:
    """Reads and writes rows of ``artist_strength_scores``."""

    def __init__(self, database: Optional[Database] = None):
        self.database = database or db

    async def upsert(self, score: ArtistScore) -> None:
        """
        Write one score with a single INSERT ... ON CONFLICT statement.

        The row for (artist_id, time_range) is replaced as a whole; concurrent
        writers for the same key never produce a mix of two runs.
        """
        params: Dict[str, Any] = {
            "artist_id": score.artist_id,
            "time_range": score.time_range,
            **score.score_columns(),
            "calculated_at": score.calculated_at,
        }
        params["breakdown"] = json.dumps(params["breakdown"], sort_keys=True)

        async with self.database.session() as session:
            await session.execute(text(UPSERT_SCORE_SQL), params)

    async def load(self, time_range: str) -> List[ArtistScore]:
        """Persisted scores for a range, limited to the current scoring population."""
        query = (
            select(ArtistStrengthScore, ArtistProfile.artist_name)
            .join(ArtistProfile, ArtistProfile.id == ArtistStrengthScore.artist_id)
            .where(
                ArtistStrengthScore.time_range == time_range,
                ArtistProfile.is_active.is_(True),
                has_public_track(),
            )
        )
        async with self.database.session() as session:
            rows = (await session.execute(query)).all()
        return [score_from_row(row, name) for row, name in rows]

    async def prune(self, time_range: str, keep_artist_ids: Sequence[str]) -> int:
        """
        Delete a range's scores for artists outside ``keep_artist_ids``.

        Returns:
            Number of rows deleted
        """
        query = delete(ArtistStrengthScore).where(
            ArtistStrengthScore.time_range == time_range,
            ArtistStrengthScore.artist_id.not_in(list(keep_artist_ids)),
        )
        async with self.database.session() as session:
            result = await session.execute(query)
        return int(result.rowcount or 0)

    async def coverage(self, time_range: str) -> Dict[str, Any]:
        """How much of the scoring population has a persisted score, and when."""
        in_population = [ArtistProfile.is_active.is_(True), has_public_track()]
        async with self.database.session() as session:
            persisted, last_calculated = (
                await session.execute(
                    select(
                        func.count(ArtistStrengthScore.id),
                        func.max(ArtistStrengthScore.calculated_at),
                    )
                    .join(
                        ArtistProfile, ArtistProfile.id == ArtistStrengthScore.artist_id
                    )
                    .where(ArtistStrengthScore.time_range == time_range, *in_population)
                )
            ).one()
            total = (
                await session.execute(
                    select(func.count(ArtistProfile.id)).where(*in_population)
                )
            ).scalar_one()

        persisted = int(persisted or 0)
        total = int(total or 0)
        return {
            "persistedArtists": persisted,
            "totalActiveArtists": total,
            "completionPercentage": round(persisted / total * 100, 2) if total else 0.0,
            "lastCalculated": last_calculated.isoformat() if last_calculated else None,
        }
