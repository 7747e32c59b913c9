"""
Tests for the batch recalculation coordinator and its CLI entry point.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from aggregator.service import TieredStatsAggregator
from fakes import (
    NOW,
    FakeCatalogStore,
    FakeEventStore,
    FakeRedisCache,
    FakeRollupStore,
    FakeScoreRepository,
    days_ago,
)
from recalculator.app import app
from recalculator.service import BatchRecalculationCoordinator
from scoring.config import ScoringConfig
from scoring.ranking import RankingService
from scoring.service import ArtistScoringService
from shared.cache.job_store import JobStatusStore
from shared.schemas.dto import ArtistScore, BatchJob
from shared.utils.errors import DatabaseError, NotFoundError
from shared.utils.time_range import resolve_time_range
from shared.utils.types import JobStatus


class StubScoring:
    """Scores every artist 50 and records how many were scored at once."""

    def __init__(self, fail_for=(), delay: float = 0.0, gate: asyncio.Event = None):
        self.fail_for = set(fail_for)
        self.delay = delay
        self.gate = gate
        self.in_flight = 0
        self.peak = 0
        self.calls = 0

    async def population_play_totals(self, time_range, population=None):
        return {}

    async def score_profile(self, artist_id, artist_name, time_range, totals):
        self.calls += 1
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            await asyncio.sleep(self.delay)
            if artist_id in self.fail_for:
                raise DatabaseError(f"timeout reading plays for {artist_id}")
            return ArtistScore(
                artist_id=artist_id,
                artist_name=artist_name,
                overall_score=50.0,
                time_range=time_range.token,
                calculated_at=NOW,
            )
        finally:
            self.in_flight -= 1


def population(count: int) -> FakeCatalogStore:
    catalog = FakeCatalogStore({})
    for i in range(count):
        catalog.add_artist(f"artist-{i}", f"Artist {i}", [f"track-{i}"])
    return catalog


def coordinator_for(scoring, catalog, cache=None, repository=None, **kwargs):
    return BatchRecalculationCoordinator(
        scoring=scoring,
        repository=repository or FakeScoreRepository(),
        catalog=catalog,
        job_store=JobStatusStore(cache=cache or FakeRedisCache(), ttl=60),
        **kwargs,
    )


class TestTrigger:
    @pytest.mark.asyncio
    async def test_second_trigger_joins_in_flight_run(self):
        gate = asyncio.Event()
        scoring = StubScoring(gate=gate)
        coordinator = coordinator_for(scoring, population(3))

        first = await coordinator.trigger("7d")
        second = await coordinator.trigger("7d")
        gate.set()
        finished = await coordinator.wait("7d")

        assert first.accepted is True
        assert second.accepted is False
        assert second.job_id == first.job_id
        assert finished.status is JobStatus.COMPLETED
        assert scoring.calls == 3

    @pytest.mark.asyncio
    async def test_concurrent_triggers_start_one_run(self):
        gate = asyncio.Event()
        scoring = StubScoring(gate=gate)
        coordinator = coordinator_for(scoring, population(2))

        jobs = await asyncio.gather(*(coordinator.trigger("30d") for _ in range(5)))
        gate.set()
        await coordinator.wait("30d")

        assert sum(1 for job in jobs if job.accepted) == 1
        assert len({job.job_id for job in jobs}) == 1
        assert scoring.calls == 2

    @pytest.mark.asyncio
    async def test_different_ranges_run_independently(self):
        coordinator = coordinator_for(StubScoring(), population(2))

        week = await coordinator.trigger("7d")
        month = await coordinator.trigger("30d")
        await coordinator.wait("7d")
        await coordinator.wait("30d")

        assert week.accepted and month.accepted
        assert week.job_id != month.job_id

    @pytest.mark.asyncio
    async def test_new_run_allowed_after_completion(self):
        coordinator = coordinator_for(StubScoring(), population(1))

        first = await coordinator.trigger("7d")
        await coordinator.wait("7d")
        second = await coordinator.trigger("7d")
        await coordinator.wait("7d")

        assert second.accepted is True
        assert second.job_id != first.job_id

    @pytest.mark.asyncio
    async def test_run_held_by_another_process(self):
        cache = FakeRedisCache()
        other = BatchJob(job_id="other-job", time_range="7d", status=JobStatus.RUNNING)
        cache.data["strength_job_lock:7d"] = "other-job"
        cache.data["strength_job_latest:7d"] = other.to_dict()
        scoring = StubScoring()
        coordinator = coordinator_for(scoring, population(2), cache=cache)

        job = await coordinator.trigger("7d")

        assert job.accepted is False
        assert job.job_id == "other-job"
        assert job.status is JobStatus.RUNNING
        assert scoring.calls == 0

    @pytest.mark.asyncio
    async def test_runs_without_redis(self):
        coordinator = coordinator_for(
            StubScoring(), population(2), cache=FakeRedisCache(connected=False)
        )

        job = await coordinator.trigger("7d")
        finished = await coordinator.wait("7d")

        assert job.accepted is True
        assert finished.processed == 2

    @pytest.mark.asyncio
    async def test_lock_released_after_run(self):
        cache = FakeRedisCache()
        coordinator = coordinator_for(StubScoring(), population(1), cache=cache)

        await coordinator.trigger("7d")
        await coordinator.wait("7d")

        assert "strength_job_lock:7d" not in cache.data

    @pytest.mark.asyncio
    async def test_unknown_range_recalculates_all_time(self):
        coordinator = coordinator_for(StubScoring(), population(1))

        job = await coordinator.trigger("fortnight")
        await coordinator.wait("all")

        assert job.time_range == "all"


class TestRun:
    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        scoring = StubScoring(delay=0.01)
        repository = FakeScoreRepository()
        coordinator = coordinator_for(
            scoring, population(8), repository=repository, max_concurrency=3
        )

        await coordinator.trigger("7d")
        job = await coordinator.wait("7d")

        assert scoring.peak == 3
        assert job.processed == 8
        assert repository.upserts == 8

    @pytest.mark.asyncio
    async def test_one_failing_artist_does_not_fail_the_run(self):
        scoring = StubScoring(fail_for={"artist-1"})
        repository = FakeScoreRepository()
        coordinator = coordinator_for(scoring, population(4), repository=repository)

        await coordinator.trigger("7d")
        job = await coordinator.wait("7d")

        assert job.status is JobStatus.COMPLETED
        assert job.total == 4
        assert job.processed == 3
        assert job.failed == 1
        assert ("artist-1", "7d") not in repository.rows
        assert job.started_at is not None and job.finished_at is not None

    @pytest.mark.asyncio
    async def test_population_failure_fails_the_run(self):
        catalog = AsyncMock()
        catalog.scoring_population.side_effect = DatabaseError("connection refused")
        coordinator = coordinator_for(StubScoring(), catalog)

        await coordinator.trigger("7d")
        job = await coordinator.wait("7d")

        assert job.status is JobStatus.FAILED
        assert job.error == "connection refused"
        assert job.finished_at is not None

    @pytest.mark.asyncio
    async def test_rerun_persists_identical_scores(self):
        tracks = {}
        events = FakeEventStore(tracks)
        catalog = FakeCatalogStore(tracks)
        catalog.add_artist("a", "Artist A", ["ta1", "ta2"], genre="house")
        catalog.add_artist("b", "Artist B", ["tb1"], genre="techno")
        catalog.add_artist("c", "Artist C", ["tc1"])
        events.add_plays("ta1", 40, days_ago(3), completion_rate=70.0, region="US")
        events.add_plays("ta2", 15, days_ago(20), completion_rate=95.0, region="UK")
        events.add_plays("tb1", 25, days_ago(1), completion_rate=50.0, source="search")
        scoring = ArtistScoringService(
            aggregator=TieredStatsAggregator(events, FakeRollupStore()),
            event_store=events,
            catalog=catalog,
            config=ScoringConfig(),
        )
        repository = FakeScoreRepository()
        coordinator = coordinator_for(scoring, catalog, repository=repository)

        await coordinator.trigger("all")
        await coordinator.wait("all")
        first = {key: row["columns"] for key, row in repository.rows.items()}
        await coordinator.trigger("all")
        await coordinator.wait("all")
        second = {key: row["columns"] for key, row in repository.rows.items()}

        assert set(first) == {("a", "all"), ("b", "all"), ("c", "all")}
        assert first == second
        assert repository.upserts == 6
        assert first[("c", "all")]["overall_score"] == 0.0

    @pytest.mark.asyncio
    async def test_rerun_drops_artists_that_left_the_population(self):
        tracks = {}
        events = FakeEventStore(tracks)
        catalog = FakeCatalogStore(tracks)
        catalog.add_artist("a", "Artist A", ["ta"])
        catalog.add_artist("b", "Artist B", ["tb"])
        events.add_plays("ta", 40, days_ago(2), completion_rate=90.0)
        events.add_plays("tb", 5, days_ago(2), completion_rate=60.0)
        scoring = ArtistScoringService(
            aggregator=TieredStatsAggregator(events, FakeRollupStore()),
            event_store=events,
            catalog=catalog,
            config=ScoringConfig(),
        )
        repository = FakeScoreRepository()
        coordinator = coordinator_for(scoring, catalog, repository=repository)
        ranking = RankingService(scoring=scoring, repository=repository, catalog=catalog)

        await coordinator.trigger("all")
        await coordinator.wait("all")
        before = await ranking.top_artists(resolve_time_range("all"))
        tracks["ta"].is_public = False
        await coordinator.trigger("all")
        job = await coordinator.wait("all")
        after = await ranking.top_artists(resolve_time_range("all"))

        assert {s.artist_id for s in before.artists} == {"a", "b"}
        assert job.total == 1
        assert set(repository.rows) == {("b", "all")}
        assert [s.artist_id for s in after.artists] == ["b"]
        assert after.artists[0].rank == 1


class TestRecalculateArtist:
    def build(self):
        tracks = {}
        events = FakeEventStore(tracks)
        catalog = FakeCatalogStore(tracks)
        catalog.add_artist("a", "Artist A", ["ta"])
        catalog.add_artist("b", "Artist B", ["tb"])
        events.add_plays("ta", 30, days_ago(2), completion_rate=80.0)
        events.add_plays("tb", 10, days_ago(2), completion_rate=60.0)
        scoring = ArtistScoringService(
            aggregator=TieredStatsAggregator(events, FakeRollupStore()),
            event_store=events,
            catalog=catalog,
            config=ScoringConfig(),
        )
        repository = FakeScoreRepository()
        return coordinator_for(scoring, catalog, repository=repository), repository

    @pytest.mark.asyncio
    async def test_scores_and_persists_one_artist(self):
        coordinator, repository = self.build()

        score = await coordinator.recalculate_artist("a", "30d")

        assert score.artist_id == "a"
        assert score.time_range == "30d"
        assert set(repository.rows) == {("a", "30d")}
        assert repository.rows[("a", "30d")]["score"] == score

    @pytest.mark.asyncio
    async def test_unknown_artist_is_not_persisted(self):
        coordinator, repository = self.build()

        with pytest.raises(NotFoundError):
            await coordinator.recalculate_artist("missing", "30d")
        assert repository.rows == {}


class TestUpsertWithRetry:
    @pytest.mark.asyncio
    async def test_retries_deadlocks_with_backoff(self):
        repository = AsyncMock()
        repository.upsert.side_effect = [
            Exception("deadlock detected"),
            Exception("could not obtain lock: lock timeout"),
            None,
        ]
        coordinator = coordinator_for(StubScoring(), population(0), repository=repository)
        sleep = AsyncMock()

        with patch("recalculator.service.asyncio.sleep", sleep):
            await coordinator.upsert_with_retry(ArtistScore("a", "A", time_range="7d"))

        assert repository.upsert.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == pytest.approx([0.1, 0.25])

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        repository = AsyncMock()
        repository.upsert.side_effect = Exception("deadlock detected")
        coordinator = coordinator_for(
            StubScoring(), population(0), repository=repository, max_retries=2
        )

        with patch("recalculator.service.asyncio.sleep", AsyncMock()):
            with pytest.raises(Exception, match="deadlock"):
                await coordinator.upsert_with_retry(ArtistScore("a", "A"))

        assert repository.upsert.await_count == 2

    @pytest.mark.asyncio
    async def test_other_errors_are_not_retried(self):
        repository = AsyncMock()
        repository.upsert.side_effect = DatabaseError("check constraint violated")
        coordinator = coordinator_for(StubScoring(), population(0), repository=repository)

        with pytest.raises(DatabaseError):
            await coordinator.upsert_with_retry(ArtistScore("a", "A"))

        assert repository.upsert.await_count == 1


class TestStatus:
    @pytest.mark.asyncio
    async def test_reports_latest_job_and_coverage(self):
        repository = FakeScoreRepository()
        coordinator = coordinator_for(StubScoring(), population(2), repository=repository)

        job = await coordinator.trigger("7d")
        await coordinator.wait("7d")
        status = await coordinator.status("7d")

        assert status["timeRange"] == "7d"
        assert status["job"]["jobId"] == job.job_id
        assert status["job"]["status"] == "completed"
        assert status["job"]["processed"] == 2
        assert status["persistedArtists"] == 2

    @pytest.mark.asyncio
    async def test_status_reads_shared_record(self):
        cache = FakeRedisCache()
        finished = BatchJob(
            job_id="from-elsewhere",
            time_range="30d",
            status=JobStatus.COMPLETED,
            total=4,
            processed=4,
            created_at=NOW,
            finished_at=NOW,
        )
        cache.data["strength_job_latest:30d"] = finished.to_dict()
        coordinator = coordinator_for(StubScoring(), population(0), cache=cache)

        status = await coordinator.status("30d")

        assert status["job"]["jobId"] == "from-elsewhere"
        assert status["job"]["finishedAt"] == NOW.isoformat()

    @pytest.mark.asyncio
    async def test_status_without_any_run(self):
        coordinator = coordinator_for(StubScoring(), population(0))

        status = await coordinator.status("1y")

        assert status["job"] is None
        assert status["persistedArtists"] == 0


class TestApp:
    @pytest.mark.asyncio
    async def test_runs_to_completion_and_closes_database(self):
        coordinator = coordinator_for(StubScoring(), population(2))

        with patch("recalculator.app.db") as mock_db:
            mock_db.close = AsyncMock()
            result = await app("90d", coordinator=coordinator)

        assert result["status"] == "completed"
        assert result["timeRange"] == "90d"
        assert result["processed"] == 2
        mock_db.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_reports_in_flight_run_without_waiting(self):
        cache = FakeRedisCache()
        cache.data["strength_job_lock:7d"] = "other-job"
        coordinator = coordinator_for(StubScoring(), population(1), cache=cache)

        with patch("recalculator.app.db") as mock_db:
            mock_db.close = AsyncMock()
            result = await app("7d", coordinator=coordinator)

        assert result["accepted"] is False
        assert result["status"] == "running"
