"""
Dashboard stats for the signed-in user's own tracks.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy import select

from aggregator.growth import GrowthCalculator
from aggregator.service import TieredStatsAggregator
from shared.db.database import Database, db
from shared.db.models import (
    ArtistProfile,
    DownloadEvent,
    LikeEvent,
    PlayEvent,
    Playlist,
    PlaylistAnalytics,
    PlaylistSubmission,
    QuickLink,
    Track,
)
from shared.schemas.dto import AggregatedStats
from shared.utils.configs import base_configs
from shared.utils.helpers import success_response
from shared.utils.time_range import TimeRange, resolve_time_range
from stats_api.auth import Identity, get_identity

RECENT_PLAYS = 10
RECENT_OTHER = 5
TOP_TRACKS = 5
RECENT_SUBMISSIONS = 10


def _track_summary(track: Track) -> Dict[str, Any]:
    return {
        "id": track.id,
        "title": track.title,
        "artist": track.artist or "Unknown Artist",
    }


class DashboardStore:
    """Catalog and activity queries only the dashboard needs."""

    def __init__(self, database: Optional[Database] = None):
        self.database = database or db

    async def user_tracks(self, user_id: str) -> List[Dict[str, Any]]:
        async with self.database.session() as session:
            rows = (
                await session.execute(
                    select(Track.id, Track.title, Track.play_count)
                    .where(Track.user_id == user_id)
                    .order_by(Track.id)
                )
            ).all()
        return [
            {"id": track_id, "title": title, "playCount": play_count or 0}
            for track_id, title, play_count in rows
        ]

    async def artist_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        async with self.database.session() as session:
            profile = (
                await session.execute(
                    select(ArtistProfile).where(ArtistProfile.user_id == user_id)
                )
            ).scalar_one_or_none()
        if profile is None:
            return None
        return {
            "id": profile.id,
            "artistName": profile.artist_name,
            "isVerified": bool(profile.is_verified),
        }

    async def recent_activity(
        self, track_ids: Sequence[str], start: datetime
    ) -> Dict[str, List[Dict[str, Any]]]:
        activity = {"plays": [], "likes": [], "downloads": [], "pageVisits": []}
        if not track_ids:
            return activity

        track_ids = list(track_ids)
        async with self.database.session() as session:
            plays = await session.execute(
                select(PlayEvent, Track)
                .join(Track, Track.id == PlayEvent.track_id)
                .where(PlayEvent.track_id.in_(track_ids), PlayEvent.timestamp >= start)
                .order_by(PlayEvent.timestamp.desc())
                .limit(RECENT_PLAYS)
            )
            for event, track in plays.all():
                activity["plays"].append(
                    {
                        "type": "play",
                        "track": _track_summary(track),
                        "timestamp": event.timestamp,
                        "source": event.source,
                    }
                )

            likes = await session.execute(
                select(LikeEvent, Track)
                .join(Track, Track.id == LikeEvent.track_id)
                .where(
                    LikeEvent.track_id.in_(track_ids),
                    LikeEvent.timestamp >= start,
                    LikeEvent.action == "like",
                )
                .order_by(LikeEvent.timestamp.desc())
                .limit(RECENT_OTHER)
            )
            for event, track in likes.all():
                activity["likes"].append(
                    {
                        "type": "like",
                        "track": _track_summary(track),
                        "timestamp": event.timestamp,
                    }
                )

            downloads = await session.execute(
                select(DownloadEvent, Track)
                .join(Track, Track.id == DownloadEvent.track_id)
                .where(
                    DownloadEvent.track_id.in_(track_ids),
                    DownloadEvent.timestamp >= start,
                )
                .order_by(DownloadEvent.timestamp.desc())
                .limit(RECENT_OTHER)
            )
            for event, track in downloads.all():
                activity["downloads"].append(
                    {
                        "type": "download",
                        "track": _track_summary(track),
                        "timestamp": event.timestamp,
                    }
                )

            visits = await session.execute(
                select(QuickLink, Track)
                .join(Track, Track.id == QuickLink.track_id)
                .where(
                    QuickLink.track_id.in_(track_ids),
                    QuickLink.last_visited_at >= start,
                )
                .order_by(QuickLink.last_visited_at.desc())
                .limit(RECENT_OTHER)
            )
            for link, track in visits.all():
                activity["pageVisits"].append(
                    {
                        "type": "page_visit",
                        "track": _track_summary(track),
                        "timestamp": link.last_visited_at,
                        "slug": link.slug,
                    }
                )

        return activity

    async def playlist_stats(self, user_id: str, start: datetime) -> Dict[str, Any]:
        async with self.database.session() as session:
            playlists = (
                await session.execute(
                    select(Playlist)
                    .where(Playlist.created_by == user_id)
                    .order_by(Playlist.name)
                )
            ).scalars().all()

            analytics_rows = []
            if playlists:
                analytics_rows = (
                    await session.execute(
                        select(PlaylistAnalytics).where(
                            PlaylistAnalytics.playlist_id.in_([p.id for p in playlists]),
                            PlaylistAnalytics.date >= start.date(),
                        )
                    )
                ).scalars().all()

            submissions = (
                await session.execute(
                    select(PlaylistSubmission, Playlist.name, Track.title)
                    .outerjoin(Playlist, Playlist.id == PlaylistSubmission.playlist_id)
                    .outerjoin(Track, Track.id == PlaylistSubmission.track_id)
                    .where(
                        PlaylistSubmission.artist_id == user_id,
                        PlaylistSubmission.submitted_at >= start,
                    )
                    .order_by(PlaylistSubmission.submitted_at.desc())
                    .limit(RECENT_SUBMISSIONS)
                )
            ).all()

        by_playlist: Dict[str, List[Dict[str, int]]] = {}
        for row in analytics_rows:
            by_playlist.setdefault(row.playlist_id, []).append(
                {
                    "views": row.views or 0,
                    "plays": row.plays or 0,
                    "likes": row.likes or 0,
                    "shares": row.shares or 0,
                    "uniqueListeners": row.unique_listeners or 0,
                }
            )

        return {
            "playlists": [
                {
                    "id": playlist.id,
                    "name": playlist.name,
                    "currentTracks": playlist.current_tracks or 0,
                    "status": playlist.status,
                    "analytics": by_playlist.get(playlist.id, []),
                }
                for playlist in playlists
            ],
            "submissions": [
                {
                    "id": submission.id,
                    "status": submission.status,
                    "submittedAt": submission.submitted_at,
                    "playlist": {"id": submission.playlist_id, "name": playlist_name},
                    "track": {"id": submission.track_id, "title": track_title},
                }
                for submission, playlist_name, track_title in submissions
            ],
        }


def engagement_metrics(stats: AggregatedStats) -> Dict[str, float]:
    plays = stats.total_plays

    def pct(count: int) -> float:
        return count / plays * 100 if plays else 0.0

    return {
        "likeRate": pct(stats.total_likes),
        "shareRate": pct(stats.total_shares),
        "saveRate": pct(stats.total_saves),
        "downloadRate": pct(stats.total_downloads),
        "completionRate": stats.avg_completion_rate,
    }


class DashboardService:
    def __init__(
        self,
        store: Optional[DashboardStore] = None,
        aggregator: Optional[TieredStatsAggregator] = None,
    ):
        self.store = store or DashboardStore()
        self.aggregator = aggregator or TieredStatsAggregator()

    async def get_stats(self, user_id: str, time_range: TimeRange) -> Dict[str, Any]:
        tracks = await self.store.user_tracks(user_id)
        track_ids = [track["id"] for track in tracks]

        stats = await self.aggregator.aggregate(track_ids, time_range)
        previous = await self.aggregator.aggregate(track_ids, time_range.previous())

        return {
            "overview": {
                "totalTracks": len(tracks),
                "totalPlays": stats.total_plays,
                "totalLikes": stats.total_likes,
                "totalShares": stats.total_shares,
                "totalDownloads": stats.total_downloads,
                "totalSaves": stats.total_saves,
                "uniqueListeners": stats.unique_plays,
                "avgDuration": stats.avg_duration,
                "avgCompletionRate": stats.avg_completion_rate,
            },
            "artistProfile": await self.store.artist_profile(user_id),
            "recentActivity": await self.store.recent_activity(
                track_ids, time_range.start
            ),
            "topTracks": await self.aggregator.top_tracks(
                track_ids, time_range, TOP_TRACKS
            ),
            "engagementMetrics": engagement_metrics(stats),
            "playlistStats": await self.store.playlist_stats(user_id, time_range.start),
            "growthMetrics": GrowthCalculator.compare(stats, previous).to_dict(),
            "timeRange": time_range.token,
        }


router = APIRouter()


@router.get("/dashboard/stats")
async def dashboard_handler(
    request: Request, identity: Identity = Depends(get_identity)
) -> Response:
    token = request.query_params.get("timeRange") or base_configs["default_time_range"]
    service: DashboardService = request.app.state.dashboard
    data = await service.get_stats(identity.user_id, resolve_time_range(token))
    return success_response(data)
