"""ExchangeRate repository: the persisted rate edges of every user."""

import logging
import uuid
from datetime import date

from sqlalchemy import case, delete, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import aliased

from fxledger.core.exceptions import DerivationStorageError, DuplicateRateError, NotFoundError
from fxledger.models.currency import Currency
from fxledger.models.exchange_rate import ExchangeRate, RateType
from fxledger.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

AUTHORITATIVE_TYPES = (RateType.USER, RateType.API)

# Lower sorts first: USER, then API, then AUTO
_priority_order = case(
    {rate_type: rate_type.priority for rate_type in RateType},
    value=ExchangeRate.rate_type,
    else_=len(RateType),
)


class ExchangeRateRepository(BaseRepository[ExchangeRate]):
    """Repository for ExchangeRate model.

    USER and API rates are written one at a time through ``upsert_edge`` and
    ``delete_edge``. AUTO rates are only ever written as a whole generation
    through ``replace_auto_edges``.

    Example:
        >>> repo = ExchangeRateRepository(ExchangeRate, db)
        >>> edge = await repo.find_latest_edge(user.id, usd.id, eur.id, date.today())
        >>> if edge:
        ...     print(f"1 USD = {edge.rate} EUR since {edge.effective_date}")
    """

    async def find_latest_edge(
        self,
        user_id: int,
        from_currency_id: uuid.UUID,
        to_currency_id: uuid.UUID,
        as_of: date,
        rate_types: tuple[RateType, ...] | None = None,
    ) -> ExchangeRate | None:
        """Get the rate that applies to a currency pair on a date.

        Picks the rate with the greatest effective date not after ``as_of``.
        Rates on the same date are ranked USER, API, AUTO, then by the most
        recent write.

        Args:
            user_id: Owning user
            from_currency_id: Source currency
            to_currency_id: Target currency
            as_of: Date the rate must be effective on
            rate_types: Only consider rates of these types (default: all)

        Returns:
            The applicable rate, or None when the pair has no rate yet
        """
        query = select(ExchangeRate).where(
            (ExchangeRate.user_id == user_id)
            & (ExchangeRate.from_currency_id == from_currency_id)
            & (ExchangeRate.to_currency_id == to_currency_id)
            & (ExchangeRate.effective_date <= as_of)
        )
        if rate_types is not None:
            query = query.where(ExchangeRate.rate_type.in_(rate_types))

        result = await self.db.execute(
            query.order_by(
                ExchangeRate.effective_date.desc(),
                _priority_order,
                ExchangeRate.updated_at.desc(),
            )
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return result.unique().scalar_one_or_none()

    async def list_edges(
        self,
        user_id: int,
        *,
        from_currency_id: uuid.UUID | None = None,
        to_currency_id: uuid.UUID | None = None,
        rate_type: RateType | None = None,
    ) -> list[ExchangeRate]:
        """List a user's rates, optionally filtered.

        Returns:
            Rates ordered by source code, target code, newest date first
        """
        from_currency = aliased(Currency)
        to_currency = aliased(Currency)

        query = (
            select(ExchangeRate)
            .join(from_currency, ExchangeRate.from_currency_id == from_currency.id)
            .join(to_currency, ExchangeRate.to_currency_id == to_currency.id)
            .where(ExchangeRate.user_id == user_id)
        )
        if from_currency_id is not None:
            query = query.where(ExchangeRate.from_currency_id == from_currency_id)
        if to_currency_id is not None:
            query = query.where(ExchangeRate.to_currency_id == to_currency_id)
        if rate_type is not None:
            query = query.where(ExchangeRate.rate_type == rate_type)

        query = query.order_by(
            from_currency.code,
            to_currency.code,
            ExchangeRate.effective_date.desc(),
            _priority_order,
        ).execution_options(populate_existing=True)

        result = await self.db.execute(query)
        return list(result.unique().scalars().all())

    async def list_authoritative(self, user_id: int) -> list[ExchangeRate]:
        """All USER and API rates of a user, the input of rate derivation."""
        result = await self.db.execute(
            select(ExchangeRate)
            .where(
                (ExchangeRate.user_id == user_id)
                & ExchangeRate.rate_type.in_(AUTHORITATIVE_TYPES)
            )
            .execution_options(populate_existing=True)
        )
        return list(result.unique().scalars().all())

    async def has_authoritative_edges(self, user_id: int, currency_id: uuid.UUID) -> bool:
        """Whether any USER or API rate of the user starts or ends at a currency."""
        result = await self.db.execute(
            select(func.count(ExchangeRate.id)).where(
                (ExchangeRate.user_id == user_id)
                & ExchangeRate.rate_type.in_(AUTHORITATIVE_TYPES)
                & or_(
                    ExchangeRate.from_currency_id == currency_id,
                    ExchangeRate.to_currency_id == currency_id,
                )
            )
        )
        return result.scalar_one() > 0

    async def get_for_user(self, user_id: int, rate_id: uuid.UUID) -> ExchangeRate | None:
        """Get a rate by id if it belongs to the user."""
        result = await self.db.execute(
            select(ExchangeRate).where(
                (ExchangeRate.id == rate_id) & (ExchangeRate.user_id == user_id)
            )
        )
        return result.unique().scalar_one_or_none()

    async def get_with_currencies(self, rate_id: uuid.UUID) -> ExchangeRate | None:
        """Reload a rate together with both of its currencies."""
        result = await self.db.execute(
            select(ExchangeRate)
            .where(ExchangeRate.id == rate_id)
            .execution_options(populate_existing=True)
        )
        return result.unique().scalar_one_or_none()

    async def get_by_key(
        self,
        user_id: int,
        from_currency_id: uuid.UUID,
        to_currency_id: uuid.UUID,
        effective_date: date,
    ) -> ExchangeRate | None:
        """Get the rate stored under a (user, pair, date) key, whatever its type."""
        result = await self.db.execute(
            select(ExchangeRate).where(
                (ExchangeRate.user_id == user_id)
                & (ExchangeRate.from_currency_id == from_currency_id)
                & (ExchangeRate.to_currency_id == to_currency_id)
                & (ExchangeRate.effective_date == effective_date)
            )
        )
        return result.unique().scalar_one_or_none()

    async def delete_auto_edges(self, user_id: int) -> int:
        """Delete the whole current AUTO generation of a user.

        Returns:
            Number of rates deleted

        Note:
            Caller must commit the transaction.
        """
        result = await self.db.execute(
            delete(ExchangeRate).where(
                (ExchangeRate.user_id == user_id) & (ExchangeRate.rate_type == RateType.AUTO)
            )
        )
        await self.db.flush()
        return result.rowcount  # type: ignore

    async def replace_auto_edges(self, user_id: int, new_edges: list[ExchangeRate]) -> int:
        """Swap a user's AUTO generation for a new one.

        The delete and the inserts share the caller's transaction, so readers
        see either the old generation or the new one.

        Args:
            user_id: Owning user
            new_edges: Unsaved AUTO rates of the new generation

        Returns:
            Number of AUTO rates deleted

        Raises:
            DerivationStorageError: If the delete or the insert fails; the
                caller's transaction must then be rolled back

        Example:
            >>> async with transactional(db):
            ...     await repo.replace_auto_edges(user.id, derived_edges)
        """
        try:
            deleted = await self.delete_auto_edges(user_id)
            self.db.add_all(new_edges)
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Failed to replace derived rates for user {user_id}: {e}")
            raise DerivationStorageError() from e
        return deleted

    async def upsert_edge(self, edge: ExchangeRate) -> ExchangeRate:
        """Save a new or modified USER/API rate.

        If an AUTO rate holds the same (user, pair, date) key, the whole AUTO
        generation is discarded; the caller regenerates it in the same
        transaction.

        Args:
            edge: New or already persistent USER/API rate

        Returns:
            The saved rate (flushed, not committed)

        Raises:
            ValueError: If ``edge`` is an AUTO rate
            DuplicateRateError: If another USER/API rate holds the key
        """
        if edge.rate_type is RateType.AUTO:
            raise ValueError("AUTO rates are only written by replace_auto_edges")

        # A modified persistent edge must not be flushed before the key check
        with self.db.no_autoflush:
            holder = await self.get_by_key(
                edge.user_id, edge.from_currency_id, edge.to_currency_id, edge.effective_date
            )
        if holder is not None and holder is not edge:
            if holder.rate_type is not RateType.AUTO:
                raise DuplicateRateError()
            await self.delete_auto_edges(edge.user_id)

        self.db.add(edge)
        try:
            await self.db.flush()
        except IntegrityError as e:
            raise DuplicateRateError() from e
        return edge

    async def delete_edge(self, user_id: int, rate_id: uuid.UUID) -> ExchangeRate:
        """Delete a USER/API rate.

        Raises:
            NotFoundError: If the rate does not exist, belongs to another
                user, or is an AUTO rate

        Note:
            Caller must commit the transaction.
        """
        edge = await self.get_for_user(user_id, rate_id)
        if edge is None or edge.rate_type is RateType.AUTO:
            raise NotFoundError("Exchange rate not found")

        await self.db.delete(edge)
        await self.db.flush()
        return edge
