"""
Batch recalculation of artist strength scores.

Scores every active artist with a public track for one time range and
persists each result, with at most one run per range in flight.
"""

import asyncio
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import uuid4

from aggregator.stores import CatalogStore
from scoring.repository import ScoreRepository
from scoring.service import ArtistScoringService
from shared.cache.job_store import JobStatusStore
from shared.schemas.dto import ArtistScore, BatchJob
from shared.utils.configs import base_configs, batch_configs
from shared.utils.logger import logger
from shared.utils.time_range import TimeRange, resolve_time_range
from shared.utils.types import JobStatus

RETRYABLE_ERRORS = ("deadlock", "lock timeout", "concurrent update")


def _now() -> datetime:
    return datetime.now(base_configs["timezone"])


class BatchRecalculationCoordinator:
    """
    Runs and de-duplicates batch recalculations.

    Runs for the same range are serialized twice over: an asyncio.Lock per
    range guards this process, and a Redis SET NX lock guards against other
    processes. A trigger that finds a run in flight gets that run back with
    ``accepted=False``.

    Attributes:
        scoring (ArtistScoringService): Computes each artist's score.
        repository (ScoreRepository): Persists scores with single-statement upserts.
        catalog (CatalogStore): Supplies the population of artists to score.
        job_store (JobStatusStore): Shared job status records and run locks.
        max_concurrency (int): Artists scored at once within a run.
        max_retries (int): Upsert attempts on deadlocks and lock timeouts.
    """

    def __init__(
        self,
        scoring: Optional[ArtistScoringService] = None,
        repository: Optional[ScoreRepository] = None,
        catalog: Optional[CatalogStore] = None,
        job_store: Optional[JobStatusStore] = None,
        max_concurrency: Optional[int] = None,
        max_retries: Optional[int] = None,
    ):
        self.scoring = scoring or ArtistScoringService()
        self.repository = repository or ScoreRepository()
        self.catalog = catalog or CatalogStore()
        self.job_store = job_store or JobStatusStore()
        self.max_concurrency = max_concurrency or batch_configs["max_concurrency"]
        self.max_retries = max_retries or batch_configs["max_retries"]

        self._locks: Dict[str, asyncio.Lock] = {}
        self._active: Dict[str, BatchJob] = {}
        self._tasks: Dict[str, asyncio.Task] = {}

    def _lock_for(self, time_range: str) -> asyncio.Lock:
        if time_range not in self._locks:
            self._locks[time_range] = asyncio.Lock()
        return self._locks[time_range]

    async def trigger(self, time_range_token: Optional[str]) -> BatchJob:
        """
        Start a recalculation for a range unless one is already in flight.

        Returns immediately; the run continues as a background task.

        Returns:
            The new job, or the in-flight job with ``accepted=False``
        """
        time_range = resolve_time_range(time_range_token)
        token = time_range.token

        async with self._lock_for(token):
            active = self._active.get(token)
            if active is not None and active.in_flight:
                logger.info(
                    f"Run {active.job_id} for {token} in flight, not starting another"
                )
                return replace(active, accepted=False)

            job_id = str(uuid4())
            if not await self.job_store.acquire_run_lock(token, job_id):
                latest = await self.job_store.latest(token)
                logger.info(f"Run for {token} in flight in another process")
                if latest is not None:
                    return replace(latest, accepted=False)
                return BatchJob(
                    job_id=job_id,
                    time_range=token,
                    status=JobStatus.RUNNING,
                    accepted=False,
                )

            job = BatchJob(
                job_id=job_id,
                time_range=token,
                status=JobStatus.QUEUED,
                created_at=_now(),
            )
            self._active[token] = job
            await self.job_store.save(job)
            self._tasks[token] = asyncio.create_task(
                self._run_and_release(job, time_range)
            )

        logger.info(f"Queued strength recalculation {job.job_id} for {token}")
        return replace(job)

    async def wait(self, time_range_token: Optional[str]) -> Optional[BatchJob]:
        """Wait for this process's current run of a range, if any."""
        token = resolve_time_range(time_range_token).token
        task = self._tasks.get(token)
        if task is not None:
            await task
        return self._active.get(token)

    async def _run_and_release(self, job: BatchJob, time_range: TimeRange) -> None:
        try:
            await self.run(job, time_range)
        finally:
            self._tasks.pop(job.time_range, None)
            await self.job_store.release_run_lock(job.time_range, job.job_id)

    async def run(
        self, job: BatchJob, time_range: Optional[TimeRange] = None
    ) -> BatchJob:
        """
        Score and persist the whole population for the job's range, then drop
        the range's scores for artists that have left the population.

        One artist failing is logged and counted in ``job.failed``; only a
        failure to load the population fails the run.
        """
        time_range = time_range or resolve_time_range(job.time_range)
        job.status = JobStatus.RUNNING
        job.started_at = _now()
        await self.job_store.save(job)

        try:
            population = await self.catalog.scoring_population()
            job.total = len(population)
            logger.info(
                f"Recalculating {job.total} artists for {job.time_range} ({job.job_id})"
            )
            totals = await self.scoring.population_play_totals(time_range, population)
            semaphore = asyncio.Semaphore(self.max_concurrency)

            async def process(artist_id: str, artist_name: str) -> None:
                async with semaphore:
                    try:
                        score = await self.scoring.score_profile(
                            artist_id, artist_name, time_range, totals
                        )
                        await self.upsert_with_retry(score)
                        job.processed += 1
                    except Exception as e:
                        job.failed += 1
                        logger.error(f"Failed to score artist {artist_id}: {str(e)}")

            await asyncio.gather(*(process(aid, name) for aid, name in population))
            pruned = await self.repository.prune(
                job.time_range, [artist_id for artist_id, _ in population]
            )
            if pruned:
                logger.info(f"Removed {pruned} {job.time_range} scores outside the population")
            job.status = JobStatus.COMPLETED
            logger.info(
                f"Recalculation {job.job_id} completed: {job.processed} processed, "
                f"{job.failed} failed"
            )
        except Exception as e:
            job.status = JobStatus.FAILED
            job.error = str(e)
            logger.error(f"Recalculation {job.job_id} failed: {str(e)}")
        finally:
            job.finished_at = _now()
            await self.job_store.save(job)

        return job

    async def recalculate_artist(
        self, artist_id: str, time_range_token: Optional[str]
    ) -> ArtistScore:
        """
        Score one artist now and persist the result.

        Raises:
            NotFoundError: If no artist profile has this id
        """
        time_range = resolve_time_range(time_range_token)
        score = await self.scoring.score(artist_id, time_range)
        await self.upsert_with_retry(score)
        logger.info(
            f"Recalculated {artist_id} for {time_range.token}: {score.overall_score:.2f}"
        )
        return score

    async def upsert_with_retry(self, score: ArtistScore) -> None:
        """Persist a score, retrying deadlocks and lock timeouts with backoff."""
        for attempt in range(self.max_retries):
            try:
                await self.repository.upsert(score)
                return
            except Exception as e:
                error_str = str(e).lower()
                if (
                    any(marker in error_str for marker in RETRYABLE_ERRORS)
                    and attempt < self.max_retries - 1
                ):
                    delay = 0.1 * (2**attempt) + (0.05 * attempt)  # 0.1, 0.25, 0.55
                    logger.warning(
                        f"Deadlock upserting {score.artist_id} on attempt {attempt + 1}, "
                        f"retrying in {delay:.2f}s..."
                    )
                    await asyncio.sleep(delay)
                    continue
                raise

    async def status(self, time_range_token: Optional[str]) -> Dict[str, Any]:
        """Latest job for the range plus persisted score coverage."""
        token = resolve_time_range(time_range_token).token
        job = self._active.get(token)
        if job is None or not job.in_flight:
            job = await self.job_store.latest(token) or job
        coverage = await self.repository.coverage(token)
        return {
            "timeRange": token,
            "job": job.to_dict() if job else None,
            **coverage,
        }
