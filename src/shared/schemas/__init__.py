from .dto import (
    AggregatedStats,
    ArtistScore,
    ArtistScoreBreakdown,
    ArtistSignals,
    BatchJob,
    EngagementBreakdown,
    GrowthBreakdown,
    GrowthMetrics,
    PotentialBreakdown,
    QualityBreakdown,
    RankedPage,
)
