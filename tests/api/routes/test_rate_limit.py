"""Tests for rate limiting functionality."""

import json
from unittest.mock import MagicMock

import pytest
from httpx import AsyncClient

from fxledger.core.config import settings
from fxledger.core.rate_limit import _retry_after_seconds, rate_limit_exceeded_handler


@pytest.mark.integration
async def test_rate_limit_enforced_on_refresh_endpoint(
    client: AsyncClient, auth_headers: dict
) -> None:
    """The market rate refresh endpoint stops answering after its limit."""
    allowed = int(settings.SYNC_RATE_LIMIT.split("/")[0])

    for i in range(allowed):
        response = await client.post("/api/v1/exchange-rates/refresh", headers=auth_headers)
        assert response.status_code == 200, f"Request {i + 1} failed with {response.status_code}"

    response = await client.post("/api/v1/exchange-rates/refresh", headers=auth_headers)

    assert response.status_code == 429
    data = response.json()
    assert "Rate limit exceeded" in data["detail"]
    assert data["retry_after"] == 60
    assert response.headers["Retry-After"] == "60"


@pytest.mark.integration
async def test_other_endpoints_are_not_limited(client: AsyncClient, auth_headers: dict) -> None:
    """Only the refresh endpoint carries a limit."""
    allowed = int(settings.SYNC_RATE_LIMIT.split("/")[0])

    for _ in range(allowed + 2):
        response = await client.get("/api/v1/currencies/", headers=auth_headers)
        assert response.status_code == 200


@pytest.mark.unit
@pytest.mark.parametrize(
    ("detail", "expected"),
    [
        ("10 per 1 minute", 60),
        ("5 per 1 second", 1),
        ("100 per 2 hours", 7200),
        ("1 per 1 day", 86400),
        ("something else", 60),
    ],
)
def test_retry_after_seconds(detail: str, expected: int) -> None:
    assert _retry_after_seconds(detail) == expected


@pytest.mark.unit
def test_rate_limit_response_format() -> None:
    """The handler answers 429 with detail, retry_after and a Retry-After header."""
    exc = MagicMock(detail="10 per 1 minute")

    response = rate_limit_exceeded_handler(MagicMock(), exc)

    assert response.status_code == 429
    assert json.loads(response.body) == {
        "detail": "Rate limit exceeded: 10 per 1 minute",
        "retry_after": 60,
    }
    assert response.headers["Retry-After"] == "60"
