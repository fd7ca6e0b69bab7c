"""Tests for health check endpoints."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient) -> None:
    response = await client.get("/api/v1/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "version" in data


@pytest.mark.asyncio
async def test_ping(client: AsyncClient) -> None:
    response = await client.get("/api/v1/ping")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_detailed_health_all_up(client: AsyncClient) -> None:
    with (
        patch(
            "mri_records.api.v1.endpoints.health.check_database_connection",
            AsyncMock(return_value=True),
        ),
        patch(
            "mri_records.api.v1.endpoints.health.check_redis_connection",
            AsyncMock(return_value=True),
        ),
    ):
        response = await client.get("/api/v1/health/detailed")

    data = response.json()
    assert data["status"] == "healthy"
    assert data["database"] == "healthy"
    assert data["redis"] == "healthy"
    assert data["storage"] == "healthy"


@pytest.mark.asyncio
async def test_storage_outage_does_not_degrade(client: AsyncClient, mock_storage) -> None:
    mock_storage.check_connection.return_value = False

    with (
        patch(
            "mri_records.api.v1.endpoints.health.check_database_connection",
            AsyncMock(return_value=True),
        ),
        patch(
            "mri_records.api.v1.endpoints.health.check_redis_connection",
            AsyncMock(return_value=False),
        ),
    ):
        response = await client.get("/api/v1/health/detailed")

    data = response.json()
    assert data["status"] == "degraded"
    assert data["redis"] == "unhealthy"
    assert data["storage"] == "unhealthy"
