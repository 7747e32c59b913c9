"""
Data Transfer Objects (DTOs) for the application.
"""

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from typing import Any, Dict, List, Optional

from shared.utils.types import JobStatus


def to_camel(name: str) -> str:
    head, *tail = name.split("_")
    return head + "".join(part.title() for part in tail)


def camel_dict(obj) -> Dict[str, Any]:
    """Serialize a flat dataclass with camelCase keys."""
    return {to_camel(f.name): getattr(obj, f.name) for f in fields(obj)}


@dataclass
class AggregatedStats:
    """
    Aggregate counts and rates for a set of tracks over one window.

    Always fully populated; the zero fill is ``AggregatedStats.empty()``.

    Attributes:
        total_plays (int): Play events.
        unique_plays (int): Distinct listening sessions (unique listeners).
        total_likes (int): Like actions.
        total_shares (int): Share events.
        total_downloads (int): Download events.
        total_saves (int): Save actions.
        avg_duration (float): Mean seconds played.
        avg_completion_rate (float): Mean completion, 0-100.
        skip_rate (float): Percent of plays skipped.
        replay_rate (float): Percent of plays replayed.
        source (str): Tier that served the request: rollup, raw or empty.
    """

    total_plays: int = 0
    unique_plays: int = 0
    total_likes: int = 0
    total_shares: int = 0
    total_downloads: int = 0
    total_saves: int = 0
    avg_duration: float = 0.0
    avg_completion_rate: float = 0.0
    skip_rate: float = 0.0
    replay_rate: float = 0.0
    source: str = "empty"

    @classmethod
    def empty(cls) -> "AggregatedStats":
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        return camel_dict(self)


@dataclass
class GrowthMetrics:
    """Period-over-period growth, in percent, against the preceding window."""

    plays_growth: float = 0.0
    likes_growth: float = 0.0
    shares_growth: float = 0.0
    unique_listener_growth: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return camel_dict(self)


@dataclass
class ArtistSignals:
    """
    Artist-level inputs to the scoring engine beyond AggregatedStats.

    Attributes:
        region_play_counts (Dict[str, int]): Plays per listener region.
        source_play_counts (Dict[str, int]): Plays per discovery source.
        daily_play_counts (List[int]): Plays per day across the window, oldest first.
        total_sessions (int): Listening sessions with at least one play.
        repeat_sessions (int): Sessions with more than one play.
        genre_play_counts (Dict[str, int]): Plays per track genre.
        unique_listener_growth (float): Unique listener growth vs. previous window, percent.
        market_percentile (float): Percentile of the artist's plays in the population, 0-100.
    """

    region_play_counts: Dict[str, int] = field(default_factory=dict)
    source_play_counts: Dict[str, int] = field(default_factory=dict)
    daily_play_counts: List[int] = field(default_factory=list)
    total_sessions: int = 0
    repeat_sessions: int = 0
    genre_play_counts: Dict[str, int] = field(default_factory=dict)
    unique_listener_growth: float = 0.0
    market_percentile: float = 0.0


@dataclass
class EngagementBreakdown:
    completion_rate: float = 0.0
    replay_rate: float = 0.0
    like_rate: float = 0.0
    save_rate: float = 0.0
    share_rate: float = 0.0


@dataclass
class GrowthBreakdown:
    play_velocity: float = 0.0
    unique_listener_growth: float = 0.0
    geographic_expansion: float = 0.0
    time_consistency: float = 0.0


@dataclass
class QualityBreakdown:
    skip_rate: float = 0.0
    retention_rate: float = 0.0
    cross_platform_score: float = 0.0
    genre_fit: float = 0.0


@dataclass
class PotentialBreakdown:
    viral_coefficient: float = 0.0
    market_position: float = 0.0
    demographic_appeal: float = 0.0


@dataclass
class ArtistScoreBreakdown:
    """The raw per-factor values behind the four sub-scores."""

    engagement: EngagementBreakdown = field(default_factory=EngagementBreakdown)
    growth: GrowthBreakdown = field(default_factory=GrowthBreakdown)
    quality: QualityBreakdown = field(default_factory=QualityBreakdown)
    potential: PotentialBreakdown = field(default_factory=PotentialBreakdown)

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return {
            "engagement": camel_dict(self.engagement),
            "growth": camel_dict(self.growth),
            "quality": camel_dict(self.quality),
            "potential": camel_dict(self.potential),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Dict[str, float]]]) -> "ArtistScoreBreakdown":
        """Rebuild a breakdown from its camelCase serialized form."""
        data = data or {}

        def build(category_cls, values):
            values = values or {}
            return category_cls(
                **{
                    f.name: float(values.get(to_camel(f.name), 0.0))
                    for f in fields(category_cls)
                }
            )

        return cls(
            engagement=build(EngagementBreakdown, data.get("engagement")),
            growth=build(GrowthBreakdown, data.get("growth")),
            quality=build(QualityBreakdown, data.get("quality")),
            potential=build(PotentialBreakdown, data.get("potential")),
        )


@dataclass
class ArtistScore:
    """
    Strength score of one artist for one time range.

    ``rank`` is assigned at read time by the ranking service and is relative
    to the filtered, sorted set it was served in.
    """

    artist_id: str
    artist_name: str
    engagement_score: float = 0.0
    growth_score: float = 0.0
    quality_score: float = 0.0
    potential_score: float = 0.0
    overall_score: float = 0.0
    score_category: str = ""
    time_range: str = ""
    config_version: str = ""
    rank: Optional[int] = None
    breakdown: ArtistScoreBreakdown = field(default_factory=ArtistScoreBreakdown)
    calculated_at: Optional[datetime] = None

    def score_columns(self) -> Dict[str, Any]:
        """Columns persisted for this score, keyed by column name."""
        return {
            "engagement_score": self.engagement_score,
            "growth_score": self.growth_score,
            "quality_score": self.quality_score,
            "potential_score": self.potential_score,
            "overall_score": self.overall_score,
            "score_category": self.score_category,
            "breakdown": self.breakdown.to_dict(),
            "config_version": self.config_version,
        }

    def to_dict(self, include_breakdown: bool = True) -> Dict[str, Any]:
        data = {
            "artistId": self.artist_id,
            "artistName": self.artist_name,
            "engagementScore": self.engagement_score,
            "growthScore": self.growth_score,
            "qualityScore": self.quality_score,
            "potentialScore": self.potential_score,
            "overallScore": self.overall_score,
            "scoreCategory": self.score_category,
            "rank": self.rank,
            "timeRange": self.time_range,
            "configVersion": self.config_version,
            "calculatedAt": (
                self.calculated_at.isoformat() if self.calculated_at else None
            ),
        }
        if include_breakdown:
            data["breakdown"] = self.breakdown.to_dict()
        return data


@dataclass
class RankedPage:
    """One page of ranked artists plus the size of the filtered set."""

    artists: List[ArtistScore]
    total: int
    page: int
    limit: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "artists": [artist.to_dict(include_breakdown=False) for artist in self.artists],
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
        }


@dataclass
class BatchJob:
    """
    Status record of one batch recalculation run.

    Attributes:
        job_id (str): Unique run identifier.
        time_range (str): Normalized range token being recalculated.
        status (JobStatus): queued, running, completed or failed.
        total (int): Artists in the population.
        processed (int): Artists scored and persisted.
        failed (int): Artists whose score could not be computed or persisted.
        accepted (bool): False when a trigger was folded into an in-flight run.
        error (str): Failure reason for a failed run.
    """

    job_id: str
    time_range: str
    status: JobStatus = JobStatus.QUEUED
    total: int = 0
    processed: int = 0
    failed: int = 0
    accepted: bool = True
    error: Optional[str] = None
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def in_flight(self) -> bool:
        return self.status in (JobStatus.QUEUED, JobStatus.RUNNING)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        for key in ("created_at", "started_at", "finished_at"):
            value = data[key]
            data[key] = value.isoformat() if value else None
        return {to_camel(key): value for key, value in data.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BatchJob":
        def parse(value):
            return datetime.fromisoformat(value) if value else None

        return cls(
            job_id=data["jobId"],
            time_range=data["timeRange"],
            status=JobStatus(data["status"]),
            total=data.get("total", 0),
            processed=data.get("processed", 0),
            failed=data.get("failed", 0),
            accepted=data.get("accepted", True),
            error=data.get("error"),
            created_at=parse(data.get("createdAt")),
            started_at=parse(data.get("startedAt")),
            finished_at=parse(data.get("finishedAt")),
        )
