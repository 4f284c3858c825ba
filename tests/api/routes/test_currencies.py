"""Tests for currency endpoints."""

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.integration

BASE_URL = "/api/v1/currencies"


async def test_requires_authentication(client: AsyncClient) -> None:
    """Requests without a bearer token are rejected."""
    response = await client.get(f"{BASE_URL}/")

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"


async def test_rejects_invalid_token(client: AsyncClient, test_user) -> None:
    """Tokens that do not verify are rejected."""
    response = await client.get(
        f"{BASE_URL}/", headers={"Authorization": "Bearer not-a-real-token"}
    )

    assert response.status_code == 401


async def test_list_currencies(
    client: AsyncClient, auth_headers: dict, currencies, custom_usd
) -> None:
    """Global currencies plus the user's own, custom before global for equal codes."""
    response = await client.get(f"{BASE_URL}/", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert [c["code"] for c in data] == ["CNY", "EUR", "GBP", "JPY", "USD", "USD"]
    assert [c["is_custom"] for c in data if c["code"] == "USD"] == [True, False]


async def test_resolve_prefers_custom_currency(
    client: AsyncClient, auth_headers: dict, custom_usd
) -> None:
    """A code resolves to the user's custom currency first."""
    custom_id = str(custom_usd.id)

    response = await client.get(f"{BASE_URL}/resolve/usd", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["id"] == custom_id
    assert response.json()["decimal_places"] == 4


async def test_resolve_unknown_currency(
    client: AsyncClient, auth_headers: dict, currencies
) -> None:
    """Unknown codes return 404 with a machine-readable error code."""
    response = await client.get(f"{BASE_URL}/resolve/XYZ", headers=auth_headers)

    assert response.status_code == 404
    assert response.json() == {
        "detail": "Currency XYZ not found",
        "error_code": "CURRENCY_NOT_FOUND",
    }


class TestCustomCurrencyEndpoints:
    """Creating and deleting custom currencies."""

    async def test_create_custom_currency(
        self, client: AsyncClient, auth_headers: dict, currencies
    ) -> None:
        response = await client.post(
            f"{BASE_URL}/",
            json={"code": "btc", "name": "Bitcoin", "symbol": "₿", "decimal_places": 8},
            headers=auth_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["code"] == "BTC"
        assert data["is_custom"] is True
        assert data["decimal_places"] == 8

    async def test_duplicate_custom_currency(
        self, client: AsyncClient, auth_headers: dict, custom_usd
    ) -> None:
        response = await client.post(
            f"{BASE_URL}/",
            json={"code": "USD", "name": "Another Dollar", "symbol": "$"},
            headers=auth_headers,
        )

        assert response.status_code == 409
        assert response.json()["error_code"] == "DUPLICATE_CURRENCY"

    @pytest.mark.parametrize(
        "payload",
        [
            {"code": "U$", "name": "Bad", "symbol": "$"},
            {"code": "US", "name": "Short", "symbol": "$"},
            {"code": "USDT", "name": "Tether", "symbol": "₮", "decimal_places": 12},
        ],
    )
    async def test_invalid_custom_currency(
        self, client: AsyncClient, auth_headers: dict, payload: dict
    ) -> None:
        response = await client.post(f"{BASE_URL}/", json=payload, headers=auth_headers)

        assert response.status_code == 422

    async def test_delete_custom_currency(
        self, client: AsyncClient, auth_headers: dict, custom_usd
    ) -> None:
        custom_id = str(custom_usd.id)

        response = await client.delete(f"{BASE_URL}/{custom_id}", headers=auth_headers)

        assert response.status_code == 204
        resolved = await client.get(f"{BASE_URL}/resolve/USD", headers=auth_headers)
        assert resolved.json()["id"] != custom_id

    async def test_global_currency_cannot_be_deleted(
        self, client: AsyncClient, auth_headers: dict, currencies
    ) -> None:
        eur_id = str(currencies["EUR"].id)

        response = await client.delete(f"{BASE_URL}/{eur_id}", headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"


class TestEnabledCurrencyEndpoints:
    """The per-user currency universe and base currency."""

    async def test_enable_and_list(
        self, client: AsyncClient, auth_headers: dict, currencies
    ) -> None:
        for code in ("EUR", "CNY"):
            response = await client.post(
                f"{BASE_URL}/enabled", json={"currency": code}, headers=auth_headers
            )
            assert response.status_code == 201

        response = await client.get(f"{BASE_URL}/enabled", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert [e["currency"]["code"] for e in data] == ["EUR", "CNY"]
        assert all(e["is_active"] for e in data)

    async def test_enable_unknown_currency(
        self, client: AsyncClient, auth_headers: dict, currencies
    ) -> None:
        response = await client.post(
            f"{BASE_URL}/enabled", json={"currency": "XYZ"}, headers=auth_headers
        )

        assert response.status_code == 404
        assert response.json()["error_code"] == "CURRENCY_NOT_FOUND"

    async def test_disable_currency(
        self, client: AsyncClient, auth_headers: dict, currencies
    ) -> None:
        eur_id = str(currencies["EUR"].id)
        await client.post(f"{BASE_URL}/enabled", json={"currency": "EUR"}, headers=auth_headers)

        response = await client.delete(f"{BASE_URL}/enabled/{eur_id}", headers=auth_headers)

        assert response.status_code == 204
        listed = await client.get(f"{BASE_URL}/enabled", headers=auth_headers)
        assert listed.json() == []

    async def test_base_currency_cannot_be_disabled(
        self, client: AsyncClient, auth_headers: dict, currencies
    ) -> None:
        usd_id = str(currencies["USD"].id)
        await client.put(f"{BASE_URL}/base", json={"currency": "USD"}, headers=auth_headers)

        response = await client.delete(f"{BASE_URL}/enabled/{usd_id}", headers=auth_headers)

        assert response.status_code == 409
        assert response.json()["error_code"] == "CURRENCY_IN_USE"

    async def test_set_base_currency_and_settings(
        self, client: AsyncClient, auth_headers: dict, currencies
    ) -> None:
        gbp_id = str(currencies["GBP"].id)

        response = await client.put(
            f"{BASE_URL}/base", json={"currency": "gbp"}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["base_currency_id"] == gbp_id

        settings_response = await client.get(f"{BASE_URL}/settings", headers=auth_headers)
        assert settings_response.json() == {
            "base_currency_id": gbp_id,
            "auto_update_rates": False,
            "last_rate_update": None,
        }

        enabled = await client.get(f"{BASE_URL}/enabled", headers=auth_headers)
        assert [e["currency"]["code"] for e in enabled.json()] == ["GBP"]

    async def test_toggle_auto_update(
        self, client: AsyncClient, auth_headers: dict, test_user
    ) -> None:
        response = await client.patch(
            f"{BASE_URL}/settings", json={"auto_update_rates": True}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["auto_update_rates"] is True
