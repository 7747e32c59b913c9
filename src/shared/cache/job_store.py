"""
Batch job status records and per-range run locks.
"""

from typing import Dict, Optional

from shared.cache.redis_cache import RedisCache, redis_cache
from shared.schemas.dto import BatchJob
from shared.utils.configs import batch_configs
from shared.utils.logger import logger

LATEST_PREFIX = "strength_job_latest"
LOCK_PREFIX = "strength_job_lock"


class JobStatusStore:
    """
    Keeps the latest BatchJob per time range.

    Records are written through to Redis so any API process can answer a
    status query; the in-process mirror serves the owning process and covers
    Redis outages.
    """

    def __init__(self, cache: Optional[RedisCache] = None, ttl: Optional[int] = None):
        self.cache = cache or redis_cache
        self.ttl = ttl or batch_configs["job_ttl"]
        self._latest: Dict[str, BatchJob] = {}

    async def save(self, job: BatchJob) -> None:
        self._latest[job.time_range] = job
        await self.cache.set(LATEST_PREFIX, job.time_range, job.to_dict(), ttl=self.ttl)

    async def latest(self, time_range: str) -> Optional[BatchJob]:
        """Latest job for a range, preferring the shared Redis record."""
        cached = await self.cache.get(LATEST_PREFIX, time_range)
        if cached:
            return BatchJob.from_dict(cached)
        return self._latest.get(time_range)

    async def acquire_run_lock(self, time_range: str, owner: str) -> bool:
        """
        Take the cross-process lock for a range.

        Returns True when the lock is held, or when Redis is unavailable and
        only the in-process lock applies.
        """
        acquired = await self.cache.acquire_lock(
            LOCK_PREFIX, time_range, owner, ttl=batch_configs["lock_ttl"]
        )
        if acquired is None:
            logger.warning(
                f"Redis unavailable, run lock for {time_range} is process-local only"
            )
            return True
        return acquired

    async def release_run_lock(self, time_range: str, owner: str) -> None:
        await self.cache.release_lock(LOCK_PREFIX, time_range, owner)
