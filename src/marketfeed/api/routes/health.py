"""Health check endpoints."""

from fastapi import APIRouter, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel

from marketfeed import __version__
from marketfeed.core.database import check_database_connection
from marketfeed.core.redis import check_redis_connection

router = APIRouter()


class HealthResponse(BaseModel):
    """Basic health check response."""

    status: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness check response with dependency status."""

    status: str
    database: bool
    redis: bool


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Basic health check endpoint."""
    return HealthResponse(status="healthy", version=__version__)


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    responses={
        status.HTTP_503_SERVICE_UNAVAILABLE: {
            "description": "Database unreachable",
        }
    },
)
async def readiness_check(response: Response) -> ReadinessResponse:
    """Readiness check that verifies storage and cache.

    The database is required; a missing Redis only degrades the service,
    since feeds are then computed without caching.
    """
    db_ok = await check_database_connection()
    redis_ok = await check_redis_connection()

    if not db_ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        state = "unavailable"
    elif not redis_ok:
        state = "degraded"
    else:
        state = "ready"

    return ReadinessResponse(status=state, database=db_ok, redis=redis_ok)


@router.get("/metrics")
async def metrics() -> Response:
    """Expose metrics in the Prometheus text exposition format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
