"""
Persisted artist strength scores.
"""

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from . import Base


class ArtistStrengthScore(Base):
    """
    The latest strength score of an artist for one time range.

    Written only by the batch recalculation coordinator through a single
    INSERT ... ON CONFLICT (artist_id, time_range) statement, so a row never
    mixes sub-scores from two runs.

    Attributes:
        artist_id (str): Scored artist profile.
        time_range (str): Normalized range token the score was computed for.
        engagement_score / growth_score / quality_score / potential_score (float):
            Sub-scores, 0-100.
        overall_score (float): Weighted blend of the sub-scores, 0-100.
        score_category (str): Label bucketed from overall_score.
        breakdown (dict): ArtistScoreBreakdown in its serialized form.
        config_version (str): Scoring configuration version used.
        calculated_at (datetime): When the row was last written.
    """

    __tablename__ = "artist_strength_scores"

    id = Column(Integer, primary_key=True)
    artist_id = Column(
        String(64), ForeignKey("artist_profiles.id", ondelete="CASCADE"), nullable=False
    )
    time_range = Column(String(8), nullable=False)
    engagement_score = Column(Float, nullable=False)
    growth_score = Column(Float, nullable=False)
    quality_score = Column(Float, nullable=False)
    potential_score = Column(Float, nullable=False)
    overall_score = Column(Float, nullable=False, index=True)
    score_category = Column(String(64), nullable=False)
    breakdown = Column(JSON, nullable=False)
    config_version = Column(String(32), nullable=False)
    calculated_at = Column(DateTime(timezone=True), nullable=False)

    artist = relationship("ArtistProfile")

    __table_args__ = (
        UniqueConstraint(
            "artist_id", "time_range", name="uq_artist_strength_scores_artist_range"
        ),
    )
