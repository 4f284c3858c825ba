"""Tests for CurrencyRepository and EnabledCurrencyRepository."""

import pytest

from fxledger.models.currency import Currency
from fxledger.models.enabled_currency import EnabledCurrency
from fxledger.repositories.currency import CurrencyRepository
from fxledger.repositories.enabled_currency import EnabledCurrencyRepository

pytestmark = pytest.mark.integration


class TestCurrencyRepository:
    """Visibility-aware currency lookups."""

    async def test_find_visible_by_code_prefers_custom(
        self, test_db, test_user, other_user, custom_usd, currencies
    ):
        repo = CurrencyRepository(Currency, test_db)

        mine = await repo.find_visible_by_code(test_user.id, "usd")
        theirs = await repo.find_visible_by_code(other_user.id, "USD")

        assert mine.id == custom_usd.id
        assert theirs.id == currencies["USD"].id

    async def test_get_visible_hides_other_users_currencies(
        self, test_db, test_user, other_user, custom_usd
    ):
        repo = CurrencyRepository(Currency, test_db)

        assert await repo.get_visible(test_user.id, custom_usd.id) is not None
        assert await repo.get_visible(other_user.id, custom_usd.id) is None

    async def test_get_custom_by_code_ignores_global(self, test_db, test_user, currencies):
        repo = CurrencyRepository(Currency, test_db)

        assert await repo.get_custom_by_code(test_user.id, "EUR") is None

    async def test_create_and_delete(self, test_db, test_user):
        repo = CurrencyRepository(Currency, test_db)

        currency = await repo.create(
            obj_in={"code": "PTS", "name": "Points", "symbol": "P", "owner_id": test_user.id}
        )
        assert currency.decimal_places == 2

        await repo.delete(id=currency.id)
        assert await repo.get(currency.id) is None

    async def test_delete_missing_currency(self, test_db, custom_usd):
        repo = CurrencyRepository(Currency, test_db)
        await repo.delete(id=custom_usd.id)

        with pytest.raises(ValueError):
            await repo.delete(id=custom_usd.id)


class TestEnabledCurrencyRepository:
    """The per-user currency universe."""

    async def test_active_currencies_skip_disabled_rows(self, test_db, test_user, currencies):
        repo = EnabledCurrencyRepository(EnabledCurrency, test_db)
        for order, code in enumerate(("USD", "EUR", "CNY")):
            test_db.add(
                EnabledCurrency(
                    user_id=test_user.id,
                    currency_id=currencies[code].id,
                    order=order,
                    is_active=code != "EUR",
                )
            )
        await test_db.flush()

        active = await repo.active_currencies(test_user.id)
        all_rows = await repo.list_for_user(test_user.id, active_only=False)

        assert sorted(c.code for c in active) == ["CNY", "USD"]
        assert [row.currency.code for row in all_rows] == ["USD", "EUR", "CNY"]
        assert await repo.next_order(test_user.id) == 3

    async def test_next_order_starts_at_zero(self, test_db, test_user):
        repo = EnabledCurrencyRepository(EnabledCurrency, test_db)

        assert await repo.next_order(test_user.id) == 0
