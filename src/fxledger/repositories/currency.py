"""Currency repository: visibility-aware currency lookups."""

import uuid

from sqlalchemy import or_, select

from fxledger.models.currency import Currency
from fxledger.repositories.base import BaseRepository


def _visible_to(user_id: int):
    """Filter for global currencies plus the user's own custom ones."""
    return or_(Currency.owner_id.is_(None), Currency.owner_id == user_id)


class CurrencyRepository(BaseRepository[Currency]):
    """Repository for Currency model.

    A user sees every global currency plus the custom currencies they own.
    Other users' custom currencies are never returned, even by id.

    Example:
        >>> repo = CurrencyRepository(Currency, db)
        >>> usd = await repo.find_visible_by_code(user.id, "USD")
    """

    async def list_visible(self, user_id: int) -> list[Currency]:
        """List currencies visible to a user.

        Returns:
            Currencies ordered by code, custom before global for equal codes
        """
        result = await self.db.execute(
            select(Currency)
            .where(_visible_to(user_id))
            .order_by(Currency.code, Currency.owner_id.is_(None), Currency.id)
        )
        return list(result.scalars().all())

    async def get_visible(self, user_id: int, currency_id: uuid.UUID) -> Currency | None:
        """Get a currency by id if the user may see it."""
        result = await self.db.execute(
            select(Currency).where((Currency.id == currency_id) & _visible_to(user_id))
        )
        return result.scalar_one_or_none()

    async def find_visible_by_code(self, user_id: int, code: str) -> Currency | None:
        """Find the currency a user means by a code.

        The user's custom currency wins over a global currency with the same
        code.

        Args:
            user_id: Id of the user resolving the code
            code: Currency code, any case

        Returns:
            The matching currency, or None if no visible currency has the code

        Example:
            >>> # user 1 owns a custom "USD" with 4 decimal places
            >>> usd = await repo.find_visible_by_code(1, "usd")
            >>> usd.is_custom, usd.decimal_places
            (True, 4)
        """
        result = await self.db.execute(
            select(Currency)
            .where((Currency.code == code.upper()) & _visible_to(user_id))
            .order_by(Currency.owner_id.is_(None), Currency.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_custom_by_code(self, user_id: int, code: str) -> Currency | None:
        """Get the custom currency a user owns under a code."""
        result = await self.db.execute(
            select(Currency).where(
                (Currency.code == code.upper()) & (Currency.owner_id == user_id)
            )
        )
        return result.scalar_one_or_none()
