"""
Raw interaction events.

One append-only table per event kind. Rows are written by the telemetry
ingestion service; the analytics core only counts and groups them.
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import relationship

from . import Base

# Discovery surfaces a play/like/share/download can originate from
SOURCE_TYPES = ("landing", "playlist", "search", "direct", "share", "player")

# Destinations of a share
PLATFORM_TYPES = ("twitter", "facebook", "instagram", "whatsapp", "copy_link", "embed")


class PlayEvent(Base):
    """
    A single playback of a track.

    Attributes:
        track_id (str): Played track.
        user_id (str): Listener account, null for anonymous listeners.
        session_id (str): Listening session, the unit of unique-listener counts.
        timestamp (datetime): When playback started.
        source (str): Discovery surface (see SOURCE_TYPES).
        playlist_id (str): Playlist the play came from, if any.
        duration (float): Seconds actually played.
        completion_rate (float): Share of the track played, 0-100.
        skipped (bool): Listener skipped before the end.
        replayed (bool): Listener replayed the track in the same session.
        region (str): Listener region code derived at ingestion.
    """

    __tablename__ = "play_events"

    id = Column(Integer, primary_key=True)
    track_id = Column(String(64), ForeignKey("tracks.id"), nullable=False)
    user_id = Column(String(64))
    session_id = Column(String(128), nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)
    source = Column(String(32), nullable=False)
    playlist_id = Column(String(64))
    duration = Column(Float)
    completion_rate = Column(Float)
    skipped = Column(Boolean)
    replayed = Column(Boolean)
    region = Column(String(16))

    track = relationship("Track")

    __table_args__ = (
        Index("ix_play_events_track_timestamp", track_id, timestamp),
        Index("ix_play_events_session", session_id),
    )


class LikeEvent(Base):
    __tablename__ = "like_events"

    id = Column(Integer, primary_key=True)
    track_id = Column(String(64), ForeignKey("tracks.id"), nullable=False)
    user_id = Column(String(64))
    session_id = Column(String(128), nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)
    source = Column(String(32))
    action = Column(String(16), nullable=False)  # like | unlike

    track = relationship("Track")

    __table_args__ = (Index("ix_like_events_track_timestamp", track_id, timestamp),)


class ShareEvent(Base):
    __tablename__ = "share_events"

    id = Column(Integer, primary_key=True)
    track_id = Column(String(64), ForeignKey("tracks.id"), nullable=False)
    user_id = Column(String(64))
    session_id = Column(String(128), nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)
    source = Column(String(32))
    platform = Column(String(32), nullable=False)

    track = relationship("Track")

    __table_args__ = (Index("ix_share_events_track_timestamp", track_id, timestamp),)


class DownloadEvent(Base):
    __tablename__ = "download_events"

    id = Column(Integer, primary_key=True)
    track_id = Column(String(64), ForeignKey("tracks.id"), nullable=False)
    user_id = Column(String(64))
    session_id = Column(String(128), nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)
    source = Column(String(32))
    region = Column(String(16))

    track = relationship("Track")

    __table_args__ = (
        Index("ix_download_events_track_timestamp", track_id, timestamp),
    )


class SaveEvent(Base):
    __tablename__ = "save_events"

    id = Column(Integer, primary_key=True)
    track_id = Column(String(64), ForeignKey("tracks.id"), nullable=False)
    user_id = Column(String(64))
    session_id = Column(String(128), nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)
    playlist_id = Column(String(64))
    action = Column(String(16), nullable=False)  # save | unsave

    track = relationship("Track")

    __table_args__ = (Index("ix_save_events_track_timestamp", track_id, timestamp),)
