"""Tests for health endpoints."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient) -> None:
    """Test basic health check endpoint."""
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["version"] == "0.1.0"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("db_ok", "redis_ok", "status_code", "state"),
    [
        (True, True, 200, "ready"),
        (True, False, 200, "degraded"),
        (False, True, 503, "unavailable"),
    ],
)
async def test_readiness_check(
    client: AsyncClient,
    db_ok: bool,
    redis_ok: bool,
    status_code: int,
    state: str,
) -> None:
    """Storage is required for readiness; the cache only degrades it."""
    with (
        patch(
            "marketfeed.api.routes.health.check_database_connection",
            AsyncMock(return_value=db_ok),
        ),
        patch(
            "marketfeed.api.routes.health.check_redis_connection",
            AsyncMock(return_value=redis_ok),
        ),
    ):
        response = await client.get("/health/ready")

    assert response.status_code == status_code
    data = response.json()
    assert data == {"status": state, "database": db_ok, "redis": redis_ok}


@pytest.mark.asyncio
async def test_metrics_endpoint(client: AsyncClient) -> None:
    """Prometheus exposition includes the feed series."""
    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "marketfeed_feed_cache_total" in response.text
