"""Tests for currency resolution and the per-user currency universe."""

from datetime import date
from decimal import Decimal

import pytest

from fxledger.core.exceptions import (
    ConflictError,
    CurrencyInUseError,
    CurrencyNotFoundError,
    NotFoundError,
    ValidationError,
)
from fxledger.models.currency import Currency
from fxledger.schemas.currency import CurrencyCreate
from fxledger.schemas.exchange_rate import ExchangeRateCreate
from fxledger.services import currency_service, exchange_rate_service

pytestmark = pytest.mark.integration


class TestResolveCurrency:
    """Code and id resolution with custom currencies shadowing global ones."""

    async def test_code_resolves_to_global_currency(self, test_db, test_user, currencies):
        currency = await currency_service.resolve_currency(test_db, "eur", test_user.id)

        assert currency.id == currencies["EUR"].id
        assert not currency.is_custom

    async def test_custom_currency_wins_over_global(
        self, test_db, test_user, currencies, custom_usd
    ):
        currency = await currency_service.resolve_currency(test_db, "USD", test_user.id)

        assert currency.id == custom_usd.id
        assert currency.decimal_places == 4

    async def test_global_currency_still_reachable_by_id(
        self, test_db, test_user, currencies, custom_usd
    ):
        global_usd = currencies["USD"]

        currency = await currency_service.resolve_currency(
            test_db, str(global_usd.id), test_user.id
        )

        assert currency.id == global_usd.id

    async def test_other_users_see_the_global_currency(
        self, test_db, other_user, currencies, custom_usd
    ):
        currency = await currency_service.resolve_currency(test_db, "USD", other_user.id)

        assert currency.id == currencies["USD"].id

    async def test_other_users_custom_currency_is_not_found_by_id(
        self, test_db, other_user, custom_usd
    ):
        with pytest.raises(CurrencyNotFoundError):
            await currency_service.resolve_currency(test_db, str(custom_usd.id), other_user.id)

    async def test_unknown_code(self, test_db, test_user, currencies):
        with pytest.raises(CurrencyNotFoundError) as exc_info:
            await currency_service.resolve(test_db, "xyz", test_user.id)

        assert exc_info.value.detail == "Currency XYZ not found"
        assert exc_info.value.error_code == "CURRENCY_NOT_FOUND"


class TestCustomCurrencies:
    """Creating and deleting custom currencies."""

    async def test_create_custom_currency(self, test_db, test_user, currencies):
        currency = await currency_service.create_custom_currency(
            test_db,
            test_user,
            CurrencyCreate(code="btc", name="Bitcoin", symbol="₿", decimal_places=8),
        )

        assert currency.code == "BTC"
        assert currency.owner_id == test_user.id
        visible = await currency_service.list_visible_currencies(test_db, test_user.id)
        assert "BTC" in [c.code for c in visible]

    async def test_custom_code_may_shadow_global_code(self, test_db, test_user, currencies):
        currency = await currency_service.create_custom_currency(
            test_db, test_user, CurrencyCreate(code="USD", name="Ledger Dollar", symbol="$")
        )

        visible = await currency_service.list_visible_currencies(test_db, test_user.id)
        usd = [c for c in visible if c.code == "USD"]
        # Custom before global for equal codes
        assert [c.id for c in usd] == [currency.id, currencies["USD"].id]

    async def test_duplicate_custom_code_conflicts(self, test_db, test_user, custom_usd):
        with pytest.raises(ConflictError) as exc_info:
            await currency_service.create_custom_currency(
                test_db, test_user, CurrencyCreate(code="usd", name="Again", symbol="$")
            )

        assert exc_info.value.error_code == "DUPLICATE_CURRENCY"

    async def test_other_users_custom_currencies_are_hidden(
        self, test_db, other_user, currencies, custom_usd
    ):
        visible = await currency_service.list_visible_currencies(test_db, other_user.id)

        assert custom_usd.id not in [c.id for c in visible]
        assert len(visible) == len(currencies)

    async def test_delete_custom_currency(self, test_db, test_user, custom_usd, enable):
        user_id, custom_id = test_user.id, custom_usd.id
        await enable(str(custom_id))

        await currency_service.delete_custom_currency(test_db, test_user, custom_id)

        currency = await currency_service.resolve_currency(test_db, "USD", user_id)
        assert currency.id != custom_id
        assert await currency_service.list_enabled_currencies(test_db, user_id) == []

    async def test_global_currency_cannot_be_deleted(self, test_db, test_user, currencies):
        with pytest.raises(ValidationError):
            await currency_service.delete_custom_currency(
                test_db, test_user, currencies["EUR"].id
            )

    async def test_custom_currency_with_rates_cannot_be_deleted(
        self, test_db, test_user, currencies, custom_usd, enable
    ):
        user_id, custom_id = test_user.id, custom_usd.id
        await enable(str(custom_id), "EUR")
        await exchange_rate_service.create_user_rate(
            test_db,
            user_id,
            ExchangeRateCreate(
                from_currency=str(custom_id),
                to_currency="EUR",
                rate=Decimal("0.9"),
                effective_date=date(2024, 1, 15),
            ),
        )

        with pytest.raises(CurrencyInUseError):
            await currency_service.delete_custom_currency(test_db, test_user, custom_id)


class TestEnabledCurrencies:
    """Enabling, disabling and the base currency."""

    async def test_enable_is_idempotent(self, test_db, test_user, currencies):
        first = await currency_service.enable_currency(test_db, test_user.id, "EUR")
        second = await currency_service.enable_currency(test_db, test_user.id, "eur")

        assert first.id == second.id
        enabled = await currency_service.list_enabled_currencies(test_db, test_user.id)
        assert [e.currency.code for e in enabled] == ["EUR"]

    async def test_enabled_currencies_keep_display_order(self, test_db, test_user, currencies):
        for code in ("JPY", "EUR", "CNY"):
            await currency_service.enable_currency(test_db, test_user.id, code)

        enabled = await currency_service.list_enabled_currencies(test_db, test_user.id)

        assert [e.currency.code for e in enabled] == ["JPY", "EUR", "CNY"]
        assert [e.order for e in enabled] == [0, 1, 2]

    async def test_disable_and_enable_again(self, test_db, test_user, currencies, enable):
        user_id, eur_id = test_user.id, currencies["EUR"].id
        await enable("EUR", "USD")

        await currency_service.disable_currency(test_db, user_id, eur_id)
        active = await currency_service.get_active_currencies(test_db, user_id)
        assert [c.code for c in active] == ["USD"]

        await currency_service.enable_currency(test_db, user_id, str(eur_id))
        active = await currency_service.get_active_currencies(test_db, user_id)
        assert sorted(c.code for c in active) == ["EUR", "USD"]

    async def test_disable_unknown_currency(self, test_db, test_user, currencies):
        with pytest.raises(NotFoundError):
            await currency_service.disable_currency(test_db, test_user.id, currencies["GBP"].id)

    async def test_base_currency_cannot_be_disabled(self, test_db, test_user, currencies):
        user_id, usd_id = test_user.id, currencies["USD"].id
        await currency_service.set_base_currency(test_db, user_id, "USD")

        with pytest.raises(CurrencyInUseError) as exc_info:
            await currency_service.disable_currency(test_db, user_id, usd_id)

        assert exc_info.value.error_code == "CURRENCY_IN_USE"

    async def test_currency_with_user_rates_cannot_be_disabled(
        self, test_db, test_user, currencies, enable
    ):
        user_id, cny_id = test_user.id, currencies["CNY"].id
        await enable("USD", "CNY")
        await exchange_rate_service.create_user_rate(
            test_db,
            user_id,
            ExchangeRateCreate(
                from_currency="USD",
                to_currency="CNY",
                rate=Decimal("7.1"),
                effective_date=date(2024, 1, 15),
            ),
        )

        with pytest.raises(CurrencyInUseError):
            await currency_service.disable_currency(test_db, user_id, cny_id)

    async def test_set_base_currency_enables_it(self, test_db, test_user, currencies):
        user_settings = await currency_service.set_base_currency(test_db, test_user.id, "GBP")

        assert user_settings.base_currency_id == currencies["GBP"].id
        active = await currency_service.get_active_currencies(test_db, test_user.id)
        assert [c.code for c in active] == ["GBP"]

    async def test_settings_default_and_auto_update_flag(self, test_db, test_user):
        user_settings = await currency_service.get_user_settings(test_db, test_user.id)
        assert user_settings.base_currency_id is None
        assert user_settings.auto_update_rates is False

        user_settings = await currency_service.set_auto_update_rates(test_db, test_user.id, True)

        assert user_settings.auto_update_rates is True


async def test_custom_currency_is_stored_per_owner(test_db, test_user, other_user, currencies):
    """Two users may each own a custom currency with the same code."""
    mine = await currency_service.create_custom_currency(
        test_db, test_user, CurrencyCreate(code="PTS", name="Points", symbol="P")
    )
    theirs = await currency_service.create_custom_currency(
        test_db, other_user, CurrencyCreate(code="PTS", name="Points", symbol="P")
    )

    assert mine.id != theirs.id
    assert isinstance(mine, Currency)
