"""EnabledCurrency repository: the per-user currency universe."""

import uuid

from sqlalchemy import func, select

from fxledger.models.currency import Currency
from fxledger.models.enabled_currency import EnabledCurrency
from fxledger.repositories.base import BaseRepository


class EnabledCurrencyRepository(BaseRepository[EnabledCurrency]):
    """Repository for EnabledCurrency model.

    Example:
        >>> repo = EnabledCurrencyRepository(EnabledCurrency, db)
        >>> universe = await repo.active_currencies(user.id)
    """

    async def list_for_user(
        self,
        user_id: int,
        *,
        active_only: bool = True,
    ) -> list[EnabledCurrency]:
        """List the currencies a user has enabled, in display order.

        Args:
            user_id: Owning user
            active_only: Skip rows that were disabled (default: True)

        Returns:
            Enabled currency rows with their currency loaded
        """
        query = select(EnabledCurrency).where(EnabledCurrency.user_id == user_id)
        if active_only:
            query = query.where(EnabledCurrency.is_active == True)  # noqa: E712

        query = query.order_by(EnabledCurrency.order, EnabledCurrency.created_at)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_for_user(self, user_id: int, currency_id: uuid.UUID) -> EnabledCurrency | None:
        """Get the enabled row of a currency for a user, active or not."""
        result = await self.db.execute(
            select(EnabledCurrency).where(
                (EnabledCurrency.user_id == user_id)
                & (EnabledCurrency.currency_id == currency_id)
            )
        )
        return result.scalar_one_or_none()

    async def active_currencies(self, user_id: int) -> list[Currency]:
        """The user's currency universe: every actively enabled currency."""
        result = await self.db.execute(
            select(Currency)
            .join(EnabledCurrency, EnabledCurrency.currency_id == Currency.id)
            .where(
                (EnabledCurrency.user_id == user_id)
                & (EnabledCurrency.is_active == True)  # noqa: E712
            )
        )
        return list(result.scalars().all())

    async def next_order(self, user_id: int) -> int:
        """Display position for a newly enabled currency (after the last one)."""
        result = await self.db.execute(
            select(func.max(EnabledCurrency.order)).where(EnabledCurrency.user_id == user_id)
        )
        current = result.scalar_one_or_none()
        return 0 if current is None else current + 1
