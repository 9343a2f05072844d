"""Health endpoint tests."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health(client: AsyncClient) -> None:
    """GET /health returns 200 with healthy status."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_readiness_without_redis(client: AsyncClient) -> None:
    """Database answers; Redis is not configured in tests and reported as disabled."""
    response = await client.get("/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"] == {"database": "ok", "redis": "disabled"}


@pytest.mark.asyncio
async def test_version(client: AsyncClient) -> None:
    """GET /version returns name, version and environment."""
    response = await client.get("/version")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "calledit-api"
    assert data["version"] == "0.1.0"
    assert "environment" in data
