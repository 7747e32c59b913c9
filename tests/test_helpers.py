"""
Tests for request parsing and response helpers.
"""

import json
from datetime import datetime

import pytest
import pytz

from shared.schemas.dto import BatchJob
from shared.utils.errors import ValidationError
from shared.utils.helpers import (
    dumps,
    error_response,
    parse_float_param,
    parse_int_param,
    prepare_database_url,
    success_response,
)
from shared.utils.types import JobStatus


class TestParseParams:
    def test_int_default_and_bounds(self):
        assert parse_int_param({}, "limit", 50, 1, 100) == 50
        assert parse_int_param({"limit": ""}, "limit", 50, 1, 100) == 50
        assert parse_int_param({"limit": "100"}, "limit", 50, 1, 100) == 100

    @pytest.mark.parametrize("raw", ["0", "101", "-5", "2.5", "many"])
    def test_int_rejects_bad_values(self, raw):
        with pytest.raises(ValidationError) as exc_info:
            parse_int_param({"limit": raw}, "limit", 50, 1, 100)
        assert exc_info.value.status_code == 400

    def test_float(self):
        assert parse_float_param({}, "minScore", 0.0) == 0.0
        assert parse_float_param({"minScore": "85.5"}, "minScore", 0.0) == 85.5
        with pytest.raises(ValidationError):
            parse_float_param({"minScore": "nan"}, "minScore", 0.0)
        with pytest.raises(ValidationError):
            parse_float_param({"minScore": "high"}, "minScore", 0.0)


class TestPrepareDatabaseUrl:
    def test_converts_to_asyncpg(self):
        url, connect_args = prepare_database_url("postgres://u:p@localhost:5432/stats")
        assert url == "postgresql+asyncpg://u:p@localhost:5432/stats"
        assert connect_args == {}

    def test_hosted_databases_use_ssl(self):
        url, connect_args = prepare_database_url(
            "postgresql://u:p@ep-cool-1.us-east-2.aws.neon.tech/stats"
        )
        assert url.startswith("postgresql+asyncpg://")
        assert connect_args == {"ssl": True}

    def test_missing_url(self):
        with pytest.raises(ValueError):
            prepare_database_url(None)


class TestResponses:
    def test_success_body_uses_camel_case_objects(self):
        created = datetime(2026, 3, 15, 12, 0, tzinfo=pytz.utc)
        job = BatchJob(job_id="job-1", time_range="7d", created_at=created)

        response = success_response({"job": job}, status_code=202)

        assert response.status_code == 202
        body = json.loads(response.body)
        assert body["success"] is True
        assert body["data"]["job"]["jobId"] == "job-1"
        assert body["data"]["job"]["createdAt"] == "2026-03-15T12:00:00+00:00"

    def test_error_body(self):
        response = error_response(403, "Forbidden")
        assert response.status_code == 403
        assert json.loads(response.body) == {"error": "Forbidden"}

    def test_dumps_handles_enums_and_dates(self):
        payload = {"status": JobStatus.RUNNING, "day": datetime(2026, 1, 2).date()}
        assert json.loads(dumps(payload)) == {"status": "running", "day": "2026-01-02"}
