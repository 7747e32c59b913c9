"""
Read-only adapters over the event, rollup and catalog tables.

Every method opens its own session and issues a small number of indexed
queries. Windows are half-open: ``start <= timestamp < end``.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import DateTime, case, distinct, func, literal, select

from shared.db.database import Database, db
from shared.db.models import (
    ROLLUP_MODELS,
    ArtistProfile,
    DownloadEvent,
    LikeEvent,
    PlayEvent,
    SaveEvent,
    ShareEvent,
    Track,
)
from shared.utils.time_range import RangeGranularity, TimeRange


class EventKind(Enum):
    """Raw event tables, with the action value that makes a row count."""

    PLAY = "play"
    LIKE = "like"
    SHARE = "share"
    DOWNLOAD = "download"
    SAVE = "save"

    @property
    def model(self):
        return EVENT_MODELS[self]

    @property
    def counted_action(self) -> Optional[str]:
        # unlike / unsave rows are recorded but never counted
        return {EventKind.LIKE: "like", EventKind.SAVE: "save"}.get(self)


EVENT_MODELS = {
    EventKind.PLAY: PlayEvent,
    EventKind.LIKE: LikeEvent,
    EventKind.SHARE: ShareEvent,
    EventKind.DOWNLOAD: DownloadEvent,
    EventKind.SAVE: SaveEvent,
}


SECONDS_PER_DAY = 86400


def _window(model, track_ids: Optional[Sequence[str]], start: datetime, end: datetime):
    conditions = [model.timestamp >= start, model.timestamp < end]
    if track_ids is not None:
        conditions.append(model.track_id.in_(list(track_ids)))
    return conditions


def has_public_track():
    """EXISTS clause: the correlated ArtistProfile owns at least one public track."""
    return (
        select(Track.id)
        .where(Track.artist_profile_id == ArtistProfile.id, Track.is_public.is_(True))
        .exists()
    )


class EventStore:
    """Counts and groupings over the raw event tables."""

    def __init__(self, database: Optional[Database] = None):
        self.database = database or db

    async def count_events(
        self,
        kind: EventKind,
        track_ids: Optional[Sequence[str]],
        start: datetime,
        end: datetime,
    ) -> int:
        model = kind.model
        conditions = _window(model, track_ids, start, end)
        if kind.counted_action:
            conditions.append(model.action == kind.counted_action)

        async with self.database.session() as session:
            result = await session.execute(select(func.count(model.id)).where(*conditions))
            return int(result.scalar_one() or 0)

    async def count_unique_sessions(
        self, track_ids: Optional[Sequence[str]], start: datetime, end: datetime
    ) -> int:
        async with self.database.session() as session:
            result = await session.execute(
                select(func.count(distinct(PlayEvent.session_id))).where(
                    *_window(PlayEvent, track_ids, start, end)
                )
            )
            return int(result.scalar_one() or 0)

    async def play_quality(
        self, track_ids: Optional[Sequence[str]], start: datetime, end: datetime
    ) -> Dict[str, float]:
        """
        Averages and rates carried on play rows.

        Rates are computed over the plays that carry the flag; a window where
        no play carries it reports 0.
        """
        query = select(
            func.avg(PlayEvent.duration),
            func.avg(PlayEvent.completion_rate),
            func.count(PlayEvent.skipped),
            func.sum(case((PlayEvent.skipped.is_(True), 1), else_=0)),
            func.count(PlayEvent.replayed),
            func.sum(case((PlayEvent.replayed.is_(True), 1), else_=0)),
        ).where(*_window(PlayEvent, track_ids, start, end))

        async with self.database.session() as session:
            row = (await session.execute(query)).one()

        avg_duration, avg_completion, skip_total, skipped, replay_total, replayed = row
        return {
            "avg_duration": float(avg_duration or 0.0),
            "avg_completion_rate": float(avg_completion or 0.0),
            "skip_rate": (float(skipped or 0) / skip_total * 100) if skip_total else 0.0,
            "replay_rate": (
                (float(replayed or 0) / replay_total * 100) if replay_total else 0.0
            ),
        }

    async def plays_by(
        self,
        column_name: str,
        track_ids: Optional[Sequence[str]],
        start: datetime,
        end: datetime,
    ) -> Dict[str, int]:
        """Play counts grouped by a play column (region or source), nulls dropped."""
        column = getattr(PlayEvent, column_name)
        query = (
            select(column, func.count(PlayEvent.id))
            .where(*_window(PlayEvent, track_ids, start, end), column.is_not(None))
            .group_by(column)
            .order_by(column)
        )
        async with self.database.session() as session:
            rows = (await session.execute(query)).all()
        return {key: int(count) for key, count in rows}

    async def daily_play_counts(
        self, track_ids: Sequence[str], start: datetime, end: datetime
    ) -> Dict[int, int]:
        """Plays keyed by whole days before ``end`` (0 is the last 24 hours)."""
        age = literal(end, DateTime(timezone=True)) - PlayEvent.timestamp
        offset = func.floor(func.extract("epoch", age) / SECONDS_PER_DAY)
        query = (
            select(offset, func.count(PlayEvent.id))
            .where(*_window(PlayEvent, track_ids, start, end))
            .group_by(offset)
        )
        async with self.database.session() as session:
            rows = (await session.execute(query)).all()
        return {int(days): int(count) for days, count in rows}

    async def session_counts(
        self, track_ids: Sequence[str], start: datetime, end: datetime
    ) -> Tuple[int, int]:
        """Return (sessions with a play, sessions with more than one play)."""
        per_session = (
            select(PlayEvent.session_id, func.count(PlayEvent.id).label("plays"))
            .where(*_window(PlayEvent, track_ids, start, end))
            .group_by(PlayEvent.session_id)
            .subquery()
        )
        query = select(
            func.count(),
            func.sum(case((per_session.c.plays > 1, 1), else_=0)),
        ).select_from(per_session)
        async with self.database.session() as session:
            total, repeat = (await session.execute(query)).one()
        return int(total or 0), int(repeat or 0)

    async def genre_play_counts(
        self, track_ids: Sequence[str], start: datetime, end: datetime
    ) -> Dict[str, int]:
        query = (
            select(Track.genre, func.count(PlayEvent.id))
            .join(Track, Track.id == PlayEvent.track_id)
            .where(*_window(PlayEvent, track_ids, start, end), Track.genre.is_not(None))
            .group_by(Track.genre)
        )
        async with self.database.session() as session:
            rows = (await session.execute(query)).all()
        return {genre: int(count) for genre, count in rows}

    async def artist_play_totals(self, start: datetime, end: datetime) -> Dict[str, int]:
        """Plays on public tracks per active artist, for market percentiles."""
        query = (
            select(Track.artist_profile_id, func.count(PlayEvent.id))
            .join(Track, Track.id == PlayEvent.track_id)
            .join(ArtistProfile, ArtistProfile.id == Track.artist_profile_id)
            .where(
                PlayEvent.timestamp >= start,
                PlayEvent.timestamp < end,
                Track.is_public.is_(True),
                ArtistProfile.is_active.is_(True),
            )
            .group_by(Track.artist_profile_id)
        )
        async with self.database.session() as session:
            rows = (await session.execute(query)).all()
        return {artist_id: int(count) for artist_id, count in rows}

    async def source_breakdown(
        self, track_ids: Optional[Sequence[str]], start: datetime, end: datetime
    ) -> List[Dict[str, object]]:
        query = (
            select(
                PlayEvent.source,
                func.count(PlayEvent.id),
                func.avg(PlayEvent.duration),
                func.avg(PlayEvent.completion_rate),
            )
            .where(*_window(PlayEvent, track_ids, start, end))
            .group_by(PlayEvent.source)
            .order_by(func.count(PlayEvent.id).desc(), PlayEvent.source)
        )
        async with self.database.session() as session:
            rows = (await session.execute(query)).all()
        return [
            {
                "source": source,
                "count": int(count),
                "avgDuration": float(avg_duration or 0.0),
                "avgCompletionRate": float(avg_completion or 0.0),
            }
            for source, count, avg_duration, avg_completion in rows
        ]

    async def platform_breakdown(
        self, track_ids: Optional[Sequence[str]], start: datetime, end: datetime
    ) -> List[Dict[str, object]]:
        query = (
            select(ShareEvent.platform, func.count(ShareEvent.id))
            .where(*_window(ShareEvent, track_ids, start, end))
            .group_by(ShareEvent.platform)
            .order_by(func.count(ShareEvent.id).desc(), ShareEvent.platform)
        )
        async with self.database.session() as session:
            rows = (await session.execute(query)).all()
        return [{"platform": platform, "count": int(count)} for platform, count in rows]

    async def top_tracks(
        self,
        track_ids: Optional[Sequence[str]],
        start: datetime,
        end: datetime,
        limit: int,
    ) -> List[Dict[str, object]]:
        """Most played tracks in the window with their display details."""
        plays = func.count(PlayEvent.id)
        query = (
            select(
                Track.id,
                Track.title,
                Track.artist,
                ArtistProfile.artist_name,
                Track.play_count,
                Track.cover_image_url,
                plays,
            )
            .join(Track, Track.id == PlayEvent.track_id)
            .outerjoin(ArtistProfile, ArtistProfile.id == Track.artist_profile_id)
            .where(*_window(PlayEvent, track_ids, start, end))
            .group_by(
                Track.id,
                Track.title,
                Track.artist,
                ArtistProfile.artist_name,
                Track.play_count,
                Track.cover_image_url,
            )
            .order_by(plays.desc(), Track.id)
            .limit(limit)
        )
        async with self.database.session() as session:
            rows = (await session.execute(query)).all()
        return [
            {
                "trackId": track_id,
                "plays": int(count),
                "track": {
                    "title": title,
                    "artist": artist or artist_name,
                    "playCount": play_count or 0,
                    "coverImageUrl": cover,
                },
            }
            for track_id, title, artist, artist_name, play_count, cover, count in rows
        ]


class RollupStore:
    """Reads precomputed weekly, monthly and yearly rollups."""

    def __init__(self, database: Optional[Database] = None):
        self.database = database or db

    async def fetch(
        self,
        granularity: RangeGranularity,
        track_ids: Sequence[str],
        time_range: TimeRange,
    ) -> list:
        """
        Rollup rows for the tracks whose bucket start lies in the window.

        Yearly buckets match on calendar year, inclusive at both ends.
        Rows are ordered by (track_id, bucket) so downstream sums are stable.
        """
        model = ROLLUP_MODELS.get(granularity)
        if model is None:
            return []

        bucket = model.bucket()
        if granularity is RangeGranularity.YEARLY:
            in_window = [
                bucket >= time_range.start.year,
                bucket <= time_range.end.year,
            ]
        else:
            in_window = [bucket >= time_range.start, bucket <= time_range.end]

        query = (
            select(model)
            .where(model.track_id.in_(list(track_ids)), *in_window)
            .order_by(model.track_id, bucket)
        )
        async with self.database.session() as session:
            return list((await session.execute(query)).scalars().all())


class CatalogStore:
    """Artist and track lookups."""

    def __init__(self, database: Optional[Database] = None):
        self.database = database or db

    async def get_artist(self, artist_id: str) -> Optional[ArtistProfile]:
        async with self.database.session() as session:
            result = await session.execute(
                select(ArtistProfile).where(ArtistProfile.id == artist_id)
            )
            return result.scalar_one_or_none()

    async def public_track_ids(self, artist_id: str) -> List[str]:
        async with self.database.session() as session:
            result = await session.execute(
                select(Track.id)
                .where(Track.artist_profile_id == artist_id, Track.is_public.is_(True))
                .order_by(Track.id)
            )
            return list(result.scalars().all())

    async def artist_track_ids(self, artist_id: str) -> List[str]:
        async with self.database.session() as session:
            result = await session.execute(
                select(Track.id)
                .where(Track.artist_profile_id == artist_id)
                .order_by(Track.id)
            )
            return list(result.scalars().all())

    async def scoring_population(self) -> List[Tuple[str, str]]:
        """(artist_id, artist_name) of active artists with a public track."""
        query = (
            select(ArtistProfile.id, ArtistProfile.artist_name)
            .where(ArtistProfile.is_active.is_(True), has_public_track())
            .order_by(ArtistProfile.artist_name, ArtistProfile.id)
        )
        async with self.database.session() as session:
            rows = (await session.execute(query)).all()
        return [(artist_id, name) for artist_id, name in rows]

