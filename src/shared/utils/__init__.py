"""
Utility functions and shared resources.
"""

from .configs import base_configs, batch_configs, db_configs
from .errors import (
    AuthorizationError,
    ConfigurationError,
    DatabaseError,
    NotFoundError,
    RedisError,
    ValidationError,
)
from .logger import logger
from .time_range import RangeGranularity, TimeRange, resolve_time_range
from .types import ErrorType, JobStatus
