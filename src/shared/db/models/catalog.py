"""
Catalog entities the analytics core reads but never writes.
"""

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from . import Base


class User(Base):
    """
    Represents a platform account.

    Attributes:
        id (str): Primary key for the user.
        email (str): Login email.
        role (str): One of ADMIN, ARTIST or USER. Gates the global analytics
            and batch endpoints.
    """

    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    email = Column(String(255))
    role = Column(String(32), nullable=False, default="USER")

    artist_profile = relationship("ArtistProfile", back_populates="user", uselist=False)


class ArtistProfile(Base):
    """
    Represents an artist whose tracks are scored.

    Attributes:
        id (str): Primary key of the artist profile.
        user_id (str): Owning user account.
        artist_name (str): Display name, also the ranking tie-breaker.
        is_active (bool): Inactive artists are excluded from batch runs.
        is_verified (bool): Verification badge shown on dashboards.

    Relationships:
        tracks (list[Track]): Tracks published under this profile.
    """

    __tablename__ = "artist_profiles"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(64), ForeignKey("users.id"), unique=True)
    artist_name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True)
    is_verified = Column(Boolean, default=False)

    user = relationship("User", back_populates="artist_profile")
    tracks = relationship("Track", back_populates="artist_profile")


class Track(Base):
    """
    Represents a published track.

    Attributes:
        id (str): Primary key of the track.
        title (str): Track title.
        artist (str): Free-text artist credit.
        genre (str): Primary genre, used for the genre-fit signal.
        user_id (str): Uploading user.
        artist_profile_id (str): Artist profile the track is scored under.
        is_public (bool): Only public tracks count toward artist scores.
        play_count (int): Denormalized lifetime play counter.
        cover_image_url (str): Artwork location.
    """

    __tablename__ = "tracks"

    id = Column(String(64), primary_key=True)
    title = Column(String(255), nullable=False)
    artist = Column(String(255))
    genre = Column(String(100))
    user_id = Column(String(64), ForeignKey("users.id"), index=True)
    artist_profile_id = Column(String(64), ForeignKey("artist_profiles.id"), index=True)
    is_public = Column(Boolean, default=True)
    play_count = Column(Integer, default=0)
    cover_image_url = Column(Text)

    artist_profile = relationship("ArtistProfile", back_populates="tracks")


class QuickLink(Base):
    """A shareable track landing page; its visits feed dashboard activity."""

    __tablename__ = "quick_links"

    id = Column(String(64), primary_key=True)
    track_id = Column(String(64), ForeignKey("tracks.id"), index=True)
    slug = Column(String(255), nullable=False)
    last_visited_at = Column(DateTime(timezone=True))

    track = relationship("Track")


class Playlist(Base):
    __tablename__ = "playlists"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    created_by = Column(String(64), ForeignKey("users.id"), index=True)
    current_tracks = Column(Integer, default=0)
    status = Column(String(32))

    analytics = relationship("PlaylistAnalytics", back_populates="playlist")


class PlaylistAnalytics(Base):
    """Daily playlist counters written by the playlist service."""

    __tablename__ = "playlist_analytics"

    id = Column(Integer, primary_key=True)
    playlist_id = Column(String(64), ForeignKey("playlists.id"), index=True)
    date = Column(Date, nullable=False)
    views = Column(Integer, default=0)
    plays = Column(Integer, default=0)
    likes = Column(Integer, default=0)
    shares = Column(Integer, default=0)
    unique_listeners = Column(Integer, default=0)

    playlist = relationship("Playlist", back_populates="analytics")


class PlaylistSubmission(Base):
    __tablename__ = "playlist_submissions"

    id = Column(String(64), primary_key=True)
    artist_id = Column(String(64), ForeignKey("users.id"), index=True)
    playlist_id = Column(String(64), ForeignKey("playlists.id"))
    track_id = Column(String(64), ForeignKey("tracks.id"))
    status = Column(String(32))
    submitted_at = Column(DateTime(timezone=True), nullable=False)

    playlist = relationship("Playlist")
    track = relationship("Track")
