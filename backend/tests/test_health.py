"""Health, root and error-mapping endpoint tests."""

import pytest
from httpx import AsyncClient

from areahub import __version__


@pytest.mark.asyncio
async def test_health_check(async_client: AsyncClient) -> None:
    """Test health check endpoint returns healthy status."""
    response = await async_client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_root_endpoint(async_client: AsyncClient) -> None:
    """Test root endpoint returns API info."""
    response = await async_client.get("/")
    assert response.status_code == 200
    assert response.json() == {
        "name": "AREA Hub API",
        "version": __version__,
        "docs": "/docs",
    }


@pytest.mark.asyncio
async def test_api_v1_status(async_client: AsyncClient) -> None:
    response = await async_client.get("/api/v1/status")
    assert response.json() == {"status": "ok", "version": "v1"}


@pytest.mark.asyncio
async def test_not_found_error_body(async_client: AsyncClient) -> None:
    """AppError subclasses are rendered as {error, message}."""
    response = await async_client.get(
        "/api/v1/executions/00000000-0000-0000-0000-000000000000"
    )
    assert response.status_code == 404
    assert response.json() == {
        "error": "not_found",
        "message": "Execution record 00000000-0000-0000-0000-000000000000 not found",
    }
