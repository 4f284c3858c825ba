"""Tests for health check endpoints."""

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.integration


async def test_health(client: AsyncClient) -> None:
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


async def test_database_health(client: AsyncClient) -> None:
    """The database check runs a query on the request session."""
    response = await client.get("/health/db")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "database": "connected"}
