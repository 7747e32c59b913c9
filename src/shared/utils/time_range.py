"""
Time range resolution for analytics queries.

Maps the symbolic range tokens used by the dashboards (``24h``, ``7d``,
``30d``, ``90d``, ``1y``, ``all``) onto a concrete ``[start, end)`` window and
the rollup granularity that may serve it.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Optional, Tuple

from shared.utils.configs import base_configs
from shared.utils.logger import logger


class RangeGranularity(Enum):
    """Rollup table that can serve a range, or NONE for raw-only ranges."""

    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    NONE = "none"


EPOCH = datetime(1970, 1, 1, tzinfo=base_configs["timezone"])

ALL_TIME = "all"

# token -> (lookback, granularity); "all" has no lookback
RANGE_DEFINITIONS: Dict[str, Tuple[Optional[timedelta], RangeGranularity]] = {
    "24h": (timedelta(hours=24), RangeGranularity.NONE),
    "7d": (timedelta(days=7), RangeGranularity.WEEKLY),
    "30d": (timedelta(days=30), RangeGranularity.MONTHLY),
    "90d": (timedelta(days=90), RangeGranularity.MONTHLY),
    "1y": (timedelta(days=365), RangeGranularity.YEARLY),
    ALL_TIME: (None, RangeGranularity.NONE),
}

# Older clients still send "3m"
RANGE_ALIASES = {"3m": "90d"}

VALID_TIME_RANGES = tuple(RANGE_DEFINITIONS)


@dataclass(frozen=True)
class TimeRange:
    """
    A resolved analytics window.

    Attributes:
        token (str): Normalized range token ("all" for unknown input).
        start (datetime): Inclusive window start.
        end (datetime): Exclusive window end (the resolution instant).
        granularity (RangeGranularity): Rollup table eligible to serve the window.
        days (float): Window length in days used for per-day rates.
    """

    token: str
    start: datetime
    end: datetime
    granularity: RangeGranularity
    days: float

    @property
    def length(self) -> timedelta:
        return self.end - self.start

    def previous(self) -> "TimeRange":
        """Return the equal-length window immediately preceding this one."""
        return replace(self, start=self.start - self.length, end=self.start)


def normalize_time_range(token: Optional[str]) -> str:
    """Normalize a raw token, falling back to "all" for anything unrecognized."""
    if token is None:
        return ALL_TIME
    cleaned = str(token).strip().lower()
    cleaned = RANGE_ALIASES.get(cleaned, cleaned)
    if cleaned not in RANGE_DEFINITIONS:
        logger.debug(f"Unknown time range '{token}', falling back to '{ALL_TIME}'")
        return ALL_TIME
    return cleaned


def resolve_time_range(
    token: Optional[str], now: Optional[datetime] = None
) -> TimeRange:
    """
    Resolve a range token to a concrete window ending at ``now``.

    Never raises: unknown or missing tokens resolve to the unbounded "all"
    window.

    Args:
        token: Range token from the request
        now: Resolution instant, defaults to the current time

    Returns:
        The resolved TimeRange
    """
    now = now or datetime.now(base_configs["timezone"])
    normalized = normalize_time_range(token)
    lookback, granularity = RANGE_DEFINITIONS[normalized]

    if lookback is None:
        start = EPOCH
        days = float(base_configs["all_time_days"])
    else:
        start = now - lookback
        days = max(lookback / timedelta(days=1), 1.0)

    return TimeRange(
        token=normalized,
        start=start,
        end=now,
        granularity=granularity,
        days=days,
    )
