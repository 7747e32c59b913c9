"""
HTTP surface of the analytics core.
- Serves analytics, dashboard stats and artist strength rankings
- Recalculates a single artist on demand
- Accepts batch recalculation triggers and reports their status
- Maps service errors onto status codes with an ``{"error": message}`` body
"""

import json
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Request, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from recalculator.service import BatchRecalculationCoordinator
from scoring.ranking import RankingService
from scoring.service import ArtistScoringService
from shared.db.database import db
from shared.utils.configs import api_configs, base_configs
from shared.utils.errors import SERVICE_ERRORS, ValidationError
from shared.utils.helpers import (
    error_response,
    parse_float_param,
    parse_int_param,
    success_response,
)
from shared.utils.logger import logger
from shared.utils.time_range import resolve_time_range
from shared.utils.types import ErrorType
from shared.utils.version import get_version
from stats_api.analytics import AnalyticsService
from stats_api.analytics import router as analytics_router
from stats_api.auth import require_admin
from stats_api.dashboard import DashboardService
from stats_api.dashboard import router as dashboard_router

MAX_PAGE = 10_000

router = APIRouter()


async def service_error_handler(request: Request, e: Exception) -> Response:
    log = logger.error if e.status_code >= 500 else logger.info
    log(f"{e.error_type.value} on {request.method} {request.url.path}: {e.message}")
    return error_response(e.status_code, e.message)


async def http_error_handler(request: Request, e: StarletteHTTPException) -> Response:
    return error_response(e.status_code, str(e.detail))


async def unexpected_error_handler(request: Request, e: Exception) -> Response:
    logger.exception(f"Unexpected error on {request.method} {request.url.path}: {e}")
    return error_response(500, "Internal server error")


def _time_range_param(request: Request) -> str:
    return request.query_params.get("timeRange") or base_configs["default_time_range"]


@router.get("/stats/artists/top", dependencies=[Depends(require_admin)])
async def top_artists_handler(request: Request) -> Response:
    params = request.query_params
    limit = parse_int_param(
        params, "limit", base_configs["default_limit"], 1, base_configs["max_limit"]
    )
    page = parse_int_param(params, "page", 1, 1, MAX_PAGE)
    min_score = parse_float_param(params, "minScore", 0.0)
    time_range = resolve_time_range(_time_range_param(request))

    ranked = await request.app.state.ranking.top_artists(
        time_range, min_score=min_score, limit=limit, page=page
    )
    logger.info(
        f"Served {len(ranked.artists)} of {ranked.total} ranked artists "
        f"for {time_range.token} (minScore {min_score})"
    )
    return success_response(
        {**ranked.to_dict(), "timeRange": time_range.token, "minScore": min_score}
    )


@router.get(
    "/stats/artist/{artist_id}/strength", dependencies=[Depends(require_admin)]
)
async def artist_strength_handler(artist_id: str, request: Request) -> Response:
    time_range = resolve_time_range(_time_range_param(request))

    score = await request.app.state.scoring.score(artist_id, time_range)
    score.rank = await request.app.state.ranking.rank_of(score, time_range)
    return success_response(score.to_dict(include_breakdown=True))


async def _json_body(request: Request) -> dict:
    """Optional JSON object body; an empty body reads as ``{}``."""
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        body = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError(
            message="Request body must be JSON",
            error_type=ErrorType.VALIDATION_ERROR,
        )
    if not isinstance(body, dict):
        raise ValidationError(message="Request body must be a JSON object")
    return body


@router.post(
    "/stats/artist/{artist_id}/strength", dependencies=[Depends(require_admin)]
)
async def recalculate_artist_handler(artist_id: str, request: Request) -> Response:
    body = await _json_body(request)
    token = body.get("timeRange") or base_configs["default_time_range"]

    coordinator = request.app.state.coordinator
    score = await coordinator.recalculate_artist(artist_id, str(token))
    time_range = resolve_time_range(score.time_range)
    score.rank = await request.app.state.ranking.rank_of(score, time_range)
    return success_response(
        {
            "artistId": artist_id,
            "timeRange": score.time_range,
            "score": score.to_dict(include_breakdown=True),
            "recalculatedAt": score.calculated_at,
        }
    )


@router.post("/stats/batch-calculate", dependencies=[Depends(require_admin)])
async def trigger_batch_handler(request: Request) -> Response:
    body = await _json_body(request)
    token = body.get("timeRange") or base_configs["default_time_range"]
    job = await request.app.state.coordinator.trigger(str(token))
    return success_response(job.to_dict(), status_code=202)


@router.get("/stats/batch-calculate", dependencies=[Depends(require_admin)])
async def batch_status_handler(request: Request) -> Response:
    status = await request.app.state.coordinator.status(_time_range_param(request))
    return success_response(status)


@router.get("/health")
async def health_handler() -> Response:
    return success_response({"status": "ok", "version": get_version()})


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Stats API {get_version()} started")
    yield
    await db.close()
    logger.info("Stats API stopped")


def create_app(
    scoring: Optional[ArtistScoringService] = None,
    ranking: Optional[RankingService] = None,
    coordinator: Optional[BatchRecalculationCoordinator] = None,
    analytics: Optional[AnalyticsService] = None,
    dashboard: Optional[DashboardService] = None,
) -> FastAPI:
    """
    Build the web application.

    Services are created with their default stores unless supplied; the
    ranking service and coordinator share the scoring service so one scoring
    config serves every route.
    """
    scoring = scoring or ArtistScoringService()

    app = FastAPI(lifespan=lifespan, title="Artist Strength Stats API")
    app.state.scoring = scoring
    app.state.ranking = ranking or RankingService(scoring=scoring)
    app.state.coordinator = coordinator or BatchRecalculationCoordinator(
        scoring=scoring
    )
    app.state.analytics = analytics or AnalyticsService()
    app.state.dashboard = dashboard or DashboardService()

    for error in SERVICE_ERRORS:
        app.add_exception_handler(error, service_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    app.include_router(router)
    app.include_router(analytics_router)
    app.include_router(dashboard_router)
    return app


def main() -> None:
    logger.info(
        f"Starting stats API {get_version()} on {api_configs['host']}:{api_configs['port']}"
    )
    uvicorn.run(create_app(), host=api_configs["host"], port=api_configs["port"])


if __name__ == "__main__":
    main()
