"""
Redis cache utility for job status records and run locks.
"""

import json
from typing import Any, Optional

import redis
import redis.asyncio as aioredis

from shared.utils.configs import redis_config
from shared.utils.errors import RedisError
from shared.utils.logger import logger
from shared.utils.types import ErrorType


class RedisCache:
    """
    Redis manager for storing and retrieving coordinator state.

    Uses the asyncio client so a slow or unreachable Redis only delays the
    awaiting request, never the server's event loop. When Redis is
    unreachable every operation degrades to a no-op that reports failure, so
    callers keep their in-process state authoritative.
    """

    def __init__(self, redis_url: Optional[str] = None):
        """Initialize the Redis connection pool; connections open lazily."""
        try:
            self.redis_client = aioredis.from_url(
                redis_url or redis_config["redis_url"],
                decode_responses=redis_config["redis_decode_responses"],
                socket_timeout=redis_config["redis_socket_timeout"],
                socket_connect_timeout=redis_config["redis_socket_connect_timeout"],
                retry_on_timeout=redis_config["redis_retry_on_timeout"],
            )
        except Exception as e:
            logger.error(f"Failed to connect to Redis: {str(e)}")
            self.redis_client = None
            logger.warning("Using null Redis client - shared job state disabled")

    async def is_connected(self) -> bool:
        """Check if Redis connection is working."""
        if not self.redis_client:
            return False
        try:
            await self.redis_client.ping()
            return True
        except redis.RedisError:
            return False

    def _get_cache_key(self, key_prefix: str, identifier: str) -> str:
        """
        Generate a cache key.

        Args:
            key_prefix: Prefix for the cache key
            identifier: Unique identifier for the cache key

        Returns:
            Complete cache key
        """
        return f"{key_prefix}:{identifier}"

    async def set(
        self, key_prefix: str, identifier: str, data: Any, ttl: Optional[int] = None
    ) -> bool:
        """
        Set JSON-serializable data in the cache.

        Args:
            key_prefix: Prefix for the cache key
            identifier: Unique identifier for the cache key
            data: Data to store in the cache
            ttl: Time-to-live in seconds, or None for no expiration

        Returns:
            True if successful, False otherwise
        """
        if not await self.is_connected():
            logger.warning("Redis not connected - skipping cache operation")
            return False

        try:
            cache_key = self._get_cache_key(key_prefix, identifier)
            data_json = json.dumps(data)

            if ttl is not None:
                await self.redis_client.setex(cache_key, ttl, data_json)
            else:
                await self.redis_client.set(cache_key, data_json)

            logger.debug(f"Cached data with key {cache_key} and TTL {ttl} seconds")
            return True

        except redis.RedisError as e:
            logger.error(f"Error setting data in cache: {str(e)}")
            return False

    async def get(self, key_prefix: str, identifier: str) -> Optional[Any]:
        """
        Get data from the cache.

        Returns:
            Cached data if found, None otherwise
        """
        if not await self.is_connected():
            return None

        try:
            cache_key = self._get_cache_key(key_prefix, identifier)
            cached_data = await self.redis_client.get(cache_key)

            if cached_data:
                return json.loads(cached_data)
            return None

        except redis.RedisError as e:
            logger.error(f"Error getting data from cache: {str(e)}")
            return None

    async def acquire_lock(
        self, key_prefix: str, identifier: str, owner: str, ttl: int
    ) -> Optional[bool]:
        """
        Try to take a named lock with SET NX EX.

        Returns:
            True if acquired, False if another owner holds it, None when Redis
            is unavailable and the caller must rely on local locking alone

        Raises:
            RedisError: If Redis is connected but the command fails
        """
        if not await self.is_connected():
            return None

        try:
            acquired = await self.redis_client.set(
                self._get_cache_key(key_prefix, identifier), owner, nx=True, ex=ttl
            )
            return bool(acquired)
        except redis.RedisError as e:
            logger.error(f"Error acquiring lock {key_prefix}:{identifier}: {str(e)}")
            raise RedisError(
                message=f"Failed to acquire lock: {str(e)}",
                error_type=ErrorType.REDIS_ERROR,
                status_code=503,
            )

    async def release_lock(self, key_prefix: str, identifier: str, owner: str) -> bool:
        """Release a lock only if it is still held by ``owner``."""
        if not await self.is_connected():
            return False

        cache_key = self._get_cache_key(key_prefix, identifier)
        try:
            current = await self.redis_client.get(cache_key)
            if isinstance(current, bytes):
                current = current.decode()
            if current == owner:
                await self.redis_client.delete(cache_key)
                return True
            return False
        except redis.RedisError as e:
            logger.error(f"Error releasing lock {cache_key}: {str(e)}")
            return False


# Create a global Redis cache instance
redis_cache = RedisCache()
