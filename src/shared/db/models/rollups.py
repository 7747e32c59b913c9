"""
Precomputed per-track rollups at weekly, monthly and yearly granularity.

The tables are written by the rollup job; a bucket is final once its window
has elapsed. Each table holds exactly one row per (track_id, bucket).
"""

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import declared_attr

from shared.utils.time_range import RangeGranularity

from . import Base


class RollupMixin:
    """
    Columns shared by every rollup table.

    Attributes:
        track_id (str): Track the bucket aggregates.
        total_plays (int): Play events in the bucket.
        unique_plays (int): Distinct listening sessions in the bucket.
        total_likes (int): Like actions (unlikes excluded).
        total_shares (int): Share events.
        total_downloads (int): Download events.
        total_saves (int): Save actions (unsaves excluded).
        avg_duration (float): Mean seconds played.
        avg_completion_rate (float): Mean completion, 0-100.
        skip_rate (float): Percent of plays skipped.
        replay_rate (float): Percent of plays replayed.
    """

    # name of the column holding the bucket start, set by each table
    bucket_column = None

    id = Column(Integer, primary_key=True)

    @declared_attr
    def track_id(cls):
        return Column(String(64), ForeignKey("tracks.id"), nullable=False, index=True)

    total_plays = Column(Integer, nullable=False, default=0)
    unique_plays = Column(Integer, nullable=False, default=0)
    total_likes = Column(Integer, nullable=False, default=0)
    total_shares = Column(Integer, nullable=False, default=0)
    total_downloads = Column(Integer, nullable=False, default=0)
    total_saves = Column(Integer, nullable=False, default=0)
    avg_duration = Column(Float, nullable=False, default=0.0)
    avg_completion_rate = Column(Float, nullable=False, default=0.0)
    skip_rate = Column(Float, nullable=False, default=0.0)
    replay_rate = Column(Float, nullable=False, default=0.0)

    @classmethod
    def bucket(cls):
        return getattr(cls, cls.bucket_column)


class WeeklyStats(RollupMixin, Base):
    __tablename__ = "weekly_stats"
    bucket_column = "week_start"

    week_start = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("track_id", "week_start", name="uq_weekly_stats_track_week"),
    )


class MonthlyStats(RollupMixin, Base):
    __tablename__ = "monthly_stats"
    bucket_column = "month_start"

    month_start = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "track_id", "month_start", name="uq_monthly_stats_track_month"
        ),
    )


class YearlyStats(RollupMixin, Base):
    __tablename__ = "yearly_stats"
    bucket_column = "year"

    year = Column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("track_id", "year", name="uq_yearly_stats_track_year"),
    )


ROLLUP_MODELS = {
    RangeGranularity.WEEKLY: WeeklyStats,
    RangeGranularity.MONTHLY: MonthlyStats,
    RangeGranularity.YEARLY: YearlyStats,
}
