"""
In-memory stand-ins for the SQL-backed stores, Redis cache and score table.

They implement the same async methods as the real classes so services can be
exercised without a database.
"""

from collections import Counter, defaultdict
from datetime import datetime, timedelta
from types import SimpleNamespace
from typing import Dict, List, Optional

import pytz

from aggregator.stores import EventKind
from shared.utils.time_range import RangeGranularity

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=pytz.utc)


def days_ago(days: float, now: datetime = NOW) -> datetime:
    return now - timedelta(days=days)


class FakeEventStore:
    """Raw events kept as plain records, queried with the SQL semantics."""

    def __init__(self, tracks: Optional[Dict[str, SimpleNamespace]] = None):
        self.tracks = tracks if tracks is not None else {}
        self.events: Dict[EventKind, List[SimpleNamespace]] = defaultdict(list)

    def add(self, kind: EventKind, track_id: str, timestamp: datetime, **values):
        values.setdefault("session_id", f"session-{len(self.events[kind])}")
        self.events[kind].append(
            SimpleNamespace(track_id=track_id, timestamp=timestamp, **values)
        )

    def add_plays(self, track_id: str, count: int, timestamp: datetime, **values):
        for i in range(count):
            play = dict(values)
            play.setdefault("session_id", f"{track_id}-listener-{i}")
            play.setdefault("source", "direct")
            self.add(EventKind.PLAY, track_id, timestamp, **play)

    def _window(self, kind, track_ids, start, end):
        return [
            e
            for e in self.events[kind]
            if (track_ids is None or e.track_id in track_ids)
            and start <= e.timestamp < end
        ]

    async def count_events(self, kind, track_ids, start, end):
        rows = self._window(kind, track_ids, start, end)
        if kind.counted_action:
            rows = [e for e in rows if e.action == kind.counted_action]
        return len(rows)

    async def count_unique_sessions(self, track_ids, start, end):
        return len({e.session_id for e in self._window(EventKind.PLAY, track_ids, start, end)})

    async def play_quality(self, track_ids, start, end):
        plays = self._window(EventKind.PLAY, track_ids, start, end)

        def mean(values):
            values = [v for v in values if v is not None]
            return sum(values) / len(values) if values else 0.0

        def pct(flags):
            flags = [f for f in flags if f is not None]
            return sum(1 for f in flags if f) / len(flags) * 100 if flags else 0.0

        return {
            "avg_duration": mean(getattr(p, "duration", None) for p in plays),
            "avg_completion_rate": mean(getattr(p, "completion_rate", None) for p in plays),
            "skip_rate": pct(getattr(p, "skipped", None) for p in plays),
            "replay_rate": pct(getattr(p, "replayed", None) for p in plays),
        }

    async def plays_by(self, column_name, track_ids, start, end):
        counts = Counter(
            getattr(e, column_name, None)
            for e in self._window(EventKind.PLAY, track_ids, start, end)
        )
        counts.pop(None, None)
        return dict(counts)

    async def daily_play_counts(self, track_ids, start, end):
        return dict(
            Counter(
                (end - e.timestamp) // timedelta(days=1)
                for e in self._window(EventKind.PLAY, track_ids, start, end)
            )
        )

    async def session_counts(self, track_ids, start, end):
        per_session = Counter(
            e.session_id for e in self._window(EventKind.PLAY, track_ids, start, end)
        )
        return len(per_session), sum(1 for c in per_session.values() if c > 1)

    async def genre_play_counts(self, track_ids, start, end):
        counts = Counter(
            self.tracks[e.track_id].genre
            for e in self._window(EventKind.PLAY, track_ids, start, end)
            if e.track_id in self.tracks and self.tracks[e.track_id].genre
        )
        return dict(counts)

    async def artist_play_totals(self, start, end):
        totals = Counter()
        for e in self._window(EventKind.PLAY, None, start, end):
            track = self.tracks.get(e.track_id)
            if track is not None and track.is_public:
                totals[track.artist_profile_id] += 1
        return dict(totals)

    async def source_breakdown(self, track_ids, start, end):
        counts = Counter(
            e.source for e in self._window(EventKind.PLAY, track_ids, start, end)
        )
        return [
            {"source": source, "count": count, "avgDuration": 0.0, "avgCompletionRate": 0.0}
            for source, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
        ]

    async def platform_breakdown(self, track_ids, start, end):
        counts = Counter(
            e.platform for e in self._window(EventKind.SHARE, track_ids, start, end)
        )
        return [
            {"platform": platform, "count": count}
            for platform, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
        ]

    async def top_tracks(self, track_ids, start, end, limit):
        counts = Counter(
            e.track_id for e in self._window(EventKind.PLAY, track_ids, start, end)
        )
        ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:limit]
        return [{"trackId": track_id, "plays": plays} for track_id, plays in ranked]


class FakeRollupStore:
    """Rollup records keyed by granularity; ``bucket`` is a datetime or a year."""

    def __init__(self):
        self.records: Dict[RangeGranularity, List[SimpleNamespace]] = defaultdict(list)

    # column defaults of the rollup tables (shared.db.models.rollups)
    COLUMN_DEFAULTS = {
        "total_plays": 0,
        "unique_plays": 0,
        "total_likes": 0,
        "total_shares": 0,
        "total_downloads": 0,
        "total_saves": 0,
        "avg_duration": 0.0,
        "avg_completion_rate": 0.0,
        "skip_rate": 0.0,
        "replay_rate": 0.0,
    }

    def add(self, granularity: RangeGranularity, track_id: str, bucket, **values):
        self.records[granularity].append(
            SimpleNamespace(
                track_id=track_id, bucket=bucket, **{**self.COLUMN_DEFAULTS, **values}
            )
        )

    async def fetch(self, granularity, track_ids, time_range):
        if granularity is RangeGranularity.YEARLY:
            low, high = time_range.start.year, time_range.end.year
        else:
            low, high = time_range.start, time_range.end
        rows = [
            r
            for r in self.records[granularity]
            if r.track_id in track_ids and low <= r.bucket <= high
        ]
        return sorted(rows, key=lambda r: (r.track_id, r.bucket))


class FakeCatalogStore:
    def __init__(self, tracks: Dict[str, SimpleNamespace]):
        self.tracks = tracks
        self.artists: Dict[str, SimpleNamespace] = {}

    def add_artist(self, artist_id: str, name: str, track_ids=(), is_active=True, genre=None):
        self.artists[artist_id] = SimpleNamespace(
            id=artist_id, artist_name=name, is_active=is_active
        )
        for track_id in track_ids:
            self.tracks[track_id] = SimpleNamespace(
                id=track_id, artist_profile_id=artist_id, is_public=True, genre=genre
            )

    async def get_artist(self, artist_id):
        return self.artists.get(artist_id)

    async def public_track_ids(self, artist_id):
        return sorted(
            t.id
            for t in self.tracks.values()
            if t.artist_profile_id == artist_id and t.is_public
        )

    async def artist_track_ids(self, artist_id):
        return sorted(t.id for t in self.tracks.values() if t.artist_profile_id == artist_id)

    async def scoring_population(self):
        population = [
            (a.id, a.artist_name)
            for a in self.artists.values()
            if a.is_active
            and any(
                t.artist_profile_id == a.id and t.is_public for t in self.tracks.values()
            )
        ]
        return sorted(population, key=lambda p: (p[1], p[0]))


class FakeScoreRepository:
    """Score table keyed by (artist_id, time_range), replaced whole on upsert."""

    def __init__(self):
        self.rows: Dict[tuple, dict] = {}
        self.upserts = 0

    async def upsert(self, score):
        self.upserts += 1
        self.rows[(score.artist_id, score.time_range)] = {
            "score": score,
            "columns": score.score_columns(),
        }

    async def load(self, time_range):
        return [
            row["score"] for (_, token), row in sorted(self.rows.items()) if token == time_range
        ]

    async def prune(self, time_range, keep_artist_ids):
        keep = set(keep_artist_ids)
        stale = [
            key for key in self.rows if key[1] == time_range and key[0] not in keep
        ]
        for key in stale:
            del self.rows[key]
        return len(stale)

    async def coverage(self, time_range):
        persisted = sum(1 for (_, token) in self.rows if token == time_range)
        return {
            "persistedArtists": persisted,
            "totalActiveArtists": persisted,
            "completionPercentage": 100.0 if persisted else 0.0,
            "lastCalculated": None,
        }


class FakeRedisCache:
    """Dict-backed cache with the RedisCache interface."""

    def __init__(self, connected: bool = True):
        self.connected = connected
        self.data: Dict[str, object] = {}

    def _key(self, prefix, identifier):
        return f"{prefix}:{identifier}"

    async def set(self, key_prefix, identifier, data, ttl=None):
        if not self.connected:
            return False
        self.data[self._key(key_prefix, identifier)] = data
        return True

    async def get(self, key_prefix, identifier):
        if not self.connected:
            return None
        return self.data.get(self._key(key_prefix, identifier))

    async def acquire_lock(self, key_prefix, identifier, owner, ttl):
        if not self.connected:
            return None
        key = self._key(key_prefix, identifier)
        if key in self.data:
            return False
        self.data[key] = owner
        return True

    async def release_lock(self, key_prefix, identifier, owner):
        key = self._key(key_prefix, identifier)
        if self.data.get(key) == owner:
            del self.data[key]
            return True
        return False

