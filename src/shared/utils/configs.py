"""
Configuration settings for the application.
"""

import os
from typing import Optional, TypedDict

import pytz
from dotenv import load_dotenv

load_dotenv()  # Load variables from .env


class BaseConfig(TypedDict):
    """Type definition for base configuration values.

    Attributes:
        timezone: pytz timezone used for all instants (UTC)
        all_time_days: Window length, in days, assumed for the "all" range
        default_time_range: Range token used when a request omits one
        default_limit: Page size for ranking requests without a limit
        max_limit: Largest page size a ranking request may ask for
    """

    timezone: pytz.BaseTzInfo
    all_time_days: int
    default_time_range: str
    default_limit: int
    max_limit: int


class DbConfig(TypedDict):
    pg_database_url: Optional[str]
    echo: bool
    pool_size: int
    max_overflow: int
    pool_timeout: int
    pool_recycle: int
    pool_pre_ping: bool
    isolation_level: str


class BatchConfig(TypedDict):
    """Type definition for the batch recalculation coordinator.

    Attributes:
        max_concurrency: Artists scored at the same time within one run
        lock_ttl: Seconds a per-range Redis run lock is held before expiring
        job_ttl: Seconds a job status record is kept in Redis
        max_retries: Attempts per artist upsert on deadlock or lock timeout
    """

    max_concurrency: int
    lock_ttl: int
    job_ttl: int
    max_retries: int


base_configs: BaseConfig = {
    "timezone": pytz.utc,
    "all_time_days": int(os.getenv("ALL_TIME_DAYS", 365 * 3)),
    "default_time_range": os.getenv("DEFAULT_TIME_RANGE", "7d"),
    "default_limit": int(os.getenv("DEFAULT_LIMIT", 50)),
    "max_limit": int(os.getenv("MAX_LIMIT", 100)),
}

db_configs: DbConfig = {
    "pg_database_url": os.getenv("PG_DATABASE_URL"),
    "echo": os.getenv("DB_ECHO", "false").lower()
    == "true",  # Set to True for debugging
    "pool_size": int(os.getenv("DB_POOL_SIZE", 5)),
    "max_overflow": int(os.getenv("DB_MAX_OVERFLOW", 10)),
    "pool_timeout": int(os.getenv("DB_POOL_TIMEOUT", 30)),
    "pool_recycle": int(os.getenv("DB_POOL_RECYCLE", 1800)),
    "pool_pre_ping": os.getenv("DB_POOL_PRE_PING", "true").lower() == "true",
    "isolation_level": os.getenv("DB_ISOLATION_LEVEL", "READ COMMITTED"),
}

redis_config = {
    "redis_url": os.getenv("REDIS_URL", "redis://localhost:6379"),
    "redis_socket_timeout": int(os.getenv("REDIS_SOCKET_TIMEOUT", 5)),
    "redis_socket_connect_timeout": int(os.getenv("REDIS_SOCKET_CONNECT_TIMEOUT", 5)),
    "redis_retry_on_timeout": os.getenv("REDIS_RETRY_ON_TIMEOUT", "true").lower()
    == "true",
    "redis_decode_responses": os.getenv("REDIS_DECODE_RESPONSES", "true").lower()
    == "true",
}

batch_configs: BatchConfig = {
    # Kept at or below the connection pool size so a run never starves reads
    "max_concurrency": int(os.getenv("BATCH_MAX_CONCURRENCY", 5)),
    "lock_ttl": int(os.getenv("BATCH_LOCK_TTL", 60 * 60)),
    "job_ttl": int(os.getenv("BATCH_JOB_TTL", 60 * 60 * 24 * 7)),
    "max_retries": int(os.getenv("BATCH_MAX_RETRIES", 3)),
}

api_configs = {
    "host": os.getenv("API_HOST", "0.0.0.0"),
    "port": int(os.getenv("API_PORT", 8080)),
    "user_id_header": os.getenv("API_USER_ID_HEADER", "X-User-Id"),
    "user_role_header": os.getenv("API_USER_ROLE_HEADER", "X-User-Role"),
}

scoring_config_path: Optional[str] = os.getenv("SCORING_CONFIG_PATH")
