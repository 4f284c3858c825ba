"""Tests for request/response logging middleware."""

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.integration


async def test_logging_middleware_adds_timing_header(client: AsyncClient) -> None:
    """Test that middleware adds X-Process-Time header to responses."""
    response = await client.get("/health")

    assert "X-Process-Time" in response.headers
    assert float(response.headers["X-Process-Time"]) >= 0


async def test_logging_middleware_skips_health_endpoint(
    client: AsyncClient, caplog, propagate_logs
) -> None:
    """Test that middleware doesn't log health check endpoint."""
    with caplog.at_level("INFO"):
        response = await client.get("/health")

    assert response.status_code == 200
    assert "/health" not in caplog.text


async def test_logging_middleware_logs_api_request(
    client: AsyncClient, caplog, propagate_logs, auth_headers: dict, currencies
) -> None:
    """Test that middleware logs API requests with their status."""
    with caplog.at_level("INFO"):
        response = await client.get("/api/v1/currencies/", headers=auth_headers)

    assert response.status_code == 200
    assert "→ GET /api/v1/currencies/" in caplog.text
    assert "← GET /api/v1/currencies/ - 200" in caplog.text


async def test_logging_middleware_logs_failures_at_warning_level(
    client: AsyncClient, caplog, propagate_logs
) -> None:
    """Test that middleware logs error responses at WARNING level."""
    with caplog.at_level("WARNING"):
        response = await client.get("/api/v1/invalid-endpoint")

    assert response.status_code == 404
    warnings = [r for r in caplog.records if r.name == "fxledger.core.middleware"]
    assert len(warnings) == 1
    assert warnings[0].levelname == "WARNING"
    assert "- 404" in warnings[0].getMessage()
