"""
Tests for time range resolution.
"""

from datetime import timedelta

import pytest

from fakes import NOW
from shared.utils.time_range import (
    EPOCH,
    RangeGranularity,
    normalize_time_range,
    resolve_time_range,
)


class TestResolveTimeRange:
    """Range tokens resolve to concrete windows ending now."""

    @pytest.mark.parametrize(
        "token,lookback,granularity",
        [
            ("24h", timedelta(hours=24), RangeGranularity.NONE),
            ("7d", timedelta(days=7), RangeGranularity.WEEKLY),
            ("30d", timedelta(days=30), RangeGranularity.MONTHLY),
            ("90d", timedelta(days=90), RangeGranularity.MONTHLY),
            ("1y", timedelta(days=365), RangeGranularity.YEARLY),
        ],
    )
    def test_bounded_ranges(self, token, lookback, granularity):
        time_range = resolve_time_range(token, now=NOW)
        assert time_range.token == token
        assert time_range.start == NOW - lookback
        assert time_range.end == NOW
        assert time_range.granularity is granularity

    @pytest.mark.parametrize("token", ["all", "forever", "", None, "7 days"])
    def test_unknown_tokens_fall_back_to_all(self, token):
        time_range = resolve_time_range(token, now=NOW)
        assert time_range.token == "all"
        assert time_range.start == EPOCH
        assert time_range.granularity is RangeGranularity.NONE

    def test_all_time_uses_configured_day_count(self):
        assert resolve_time_range("all", now=NOW).days == 1095

    def test_day_count_has_floor_of_one(self):
        assert resolve_time_range("24h", now=NOW).days == 1.0
        assert resolve_time_range("30d", now=NOW).days == 30.0

    def test_legacy_alias_and_case(self):
        assert normalize_time_range("3m") == "90d"
        assert normalize_time_range(" 7D ") == "7d"

    def test_previous_window_is_adjacent_and_equal_length(self):
        current = resolve_time_range("7d", now=NOW)
        previous = current.previous()
        assert previous.end == current.start
        assert previous.length == current.length
        assert previous.granularity is current.granularity
        assert previous.token == current.token
