"""Health endpoint tests."""

from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

from progresstracker.services.container import ServiceContainer


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    """Test basic health check endpoint."""
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["environment"] == "test"
    assert data["uptime"] >= 0
    assert "timestamp" in data


@pytest.mark.asyncio
async def test_liveness(client: AsyncClient):
    response = await client.get("/liveness")
    assert response.status_code == 200
    assert response.text == "OK"


@pytest.mark.asyncio
async def test_readiness_degraded_without_redis(client: AsyncClient):
    """The local cache keeps the instance serving, but not fully ready."""
    response = await client.get("/readiness")
    assert response.status_code == 200
    assert response.json() == {
        "status": "degraded",
        "checks": {"server": True, "redis": False, "email_service": True},
    }


@pytest.mark.asyncio
async def test_readiness_ready(client: AsyncClient, container: ServiceContainer):
    container.cache.ping = AsyncMock(return_value=True)  # type: ignore[method-assign]

    response = await client.get("/readiness")
    assert response.status_code == 200
    assert response.json()["status"] == "ready"


@pytest.mark.asyncio
async def test_readiness_without_email_service(client: AsyncClient, container: ServiceContainer):
    container.provider.base_url = ""

    response = await client.get("/readiness")
    assert response.status_code == 503
    assert response.json()["status"] == "not ready"


@pytest.mark.asyncio
async def test_status(client: AsyncClient):
    response = await client.get("/status")
    assert response.status_code == 200
    data = response.json()
    assert data["application"]["environment"] == "test"
    assert data["services"]["cache"] == {
        "backend": "local",
        "redis_connected": False,
        "redis_url": "not configured",
    }
    assert data["services"]["email"] == {"url": "http://email.test", "configured": True}


@pytest.mark.asyncio
async def test_health_not_under_api(client: AsyncClient):
    response = await client.get("/api/health")
    assert response.status_code == 404
