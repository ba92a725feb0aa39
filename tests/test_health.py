"""Tests for health endpoints."""

from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

from echannel.api.v1.endpoints import health


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient) -> None:
    """Test health check endpoint."""
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "version" in data
    assert response.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient) -> None:
    """Test a caller-supplied request id comes back unchanged."""
    response = await client.get("/api/v1/ping", headers={"X-Request-ID": "abc123"})

    assert response.json() == {"message": "pong"}
    assert response.headers["X-Request-ID"] == "abc123"


@pytest.mark.parametrize(
    "db_healthy, redis_healthy, expected",
    [
        (True, True, "healthy"),
        (True, False, "degraded"),
        (False, True, "unhealthy"),
        (False, False, "unhealthy"),
    ],
)
def test_overall_status(db_healthy: bool, redis_healthy: bool, expected: str) -> None:
    assert health._overall_status(db_healthy, redis_healthy) == expected


@pytest.mark.asyncio
async def test_detailed_health_without_redis(client: AsyncClient, monkeypatch) -> None:
    """Test that losing Redis degrades rather than fails the service."""
    monkeypatch.setattr(health, "check_database_connection", AsyncMock(return_value=True))
    monkeypatch.setattr(health, "check_redis_connection", AsyncMock(return_value=False))

    response = await client.get("/api/v1/health/detailed")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "degraded"
    assert data["database"] == "healthy"
    assert data["redis"] == "unhealthy"
