"""
Models for the database.
"""

from sqlalchemy.orm import declarative_base

# Create the declarative base that all models will inherit from
Base = declarative_base()

# Import all models after Base is defined
# flake8: noqa: E402
from .catalog import (
    ArtistProfile,
    Playlist,
    PlaylistAnalytics,
    PlaylistSubmission,
    QuickLink,
    Track,
    User,
)
from .events import DownloadEvent, LikeEvent, PlayEvent, SaveEvent, ShareEvent
from .rollups import ROLLUP_MODELS, MonthlyStats, WeeklyStats, YearlyStats
from .scores import ArtistStrengthScore

# Re-export everything for convenience
__all__ = [
    "Base",
    "User",
    "ArtistProfile",
    "Track",
    "QuickLink",
    "Playlist",
    "PlaylistAnalytics",
    "PlaylistSubmission",
    "PlayEvent",
    "LikeEvent",
    "ShareEvent",
    "DownloadEvent",
    "SaveEvent",
    "WeeklyStats",
    "MonthlyStats",
    "YearlyStats",
    "ROLLUP_MODELS",
    "ArtistStrengthScore",
]
