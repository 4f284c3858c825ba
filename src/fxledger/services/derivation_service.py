"""Regeneration of derived (AUTO) exchange rates.

Every change to a user's USER or API rates, or to the set of currencies the
user has enabled, is followed by a full regeneration: the previous AUTO
generation is discarded and a new one computed from scratch by
``fxledger.services.rate_engine``. The regeneration runs in the caller's
transaction, so the triggering change and the new AUTO rates are committed
together or not at all.
"""

import logging
import uuid
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from fxledger.db.session import transactional
from fxledger.models.enabled_currency import EnabledCurrency
from fxledger.models.exchange_rate import ExchangeRate, RateType
from fxledger.models.user import User
from fxledger.repositories.enabled_currency import EnabledCurrencyRepository
from fxledger.repositories.exchange_rate import ExchangeRateRepository
from fxledger.repositories.user import UserRepository
from fxledger.schemas.exchange_rate import DerivationSummary
from fxledger.services.rate_engine import DerivationMethod, DerivedRate, derive_rates

logger = logging.getLogger(__name__)


def _describe(derived: DerivedRate, codes: dict[uuid.UUID, str]) -> str:
    if derived.method is DerivationMethod.REVERSE:
        return (
            f"Reverse of {codes[derived.to_currency_id]}→{codes[derived.from_currency_id]}"
        )
    return f"Derived via {codes[derived.via_currency_id]}"  # type: ignore[index]


async def regenerate_auto_rates(
    db: AsyncSession,
    user_id: int,
    effective_date: date,
) -> DerivationSummary:
    """Replace a user's AUTO rates with a freshly derived generation.

    Does not commit; call it inside ``transactional(db)``. The user's row is
    locked first, so concurrent regenerations for one user run one after the
    other and the last to commit wins.

    Args:
        db: Database session
        user_id: User whose rates are regenerated
        effective_date: Date stamped on every derived rate

    Returns:
        Counts of the reverse and transitive rates written

    Raises:
        DerivationStorageError: If the new generation could not be stored

    Example:
        >>> async with transactional(db):
        ...     await rate_repo.upsert_edge(edge)
        ...     summary = await regenerate_auto_rates(db, user.id, edge.effective_date)
        >>> print(summary.total)
    """
    await UserRepository(User, db).lock_for_update(user_id)

    currencies = await EnabledCurrencyRepository(EnabledCurrency, db).active_currencies(user_id)
    rate_repo = ExchangeRateRepository(ExchangeRate, db)
    authoritative = await rate_repo.list_authoritative(user_id)

    derived = derive_rates(currencies, authoritative)
    codes = {currency.id: currency.code for currency in currencies}

    new_edges = [
        ExchangeRate(
            user_id=user_id,
            from_currency_id=rate.from_currency_id,
            to_currency_id=rate.to_currency_id,
            rate=rate.rate,
            effective_date=effective_date,
            rate_type=RateType.AUTO,
            notes=_describe(rate, codes),
            source_rate_id=rate.source_rate_id,
        )
        for rate in derived
    ]
    deleted = await rate_repo.replace_auto_edges(user_id, new_edges)

    summary = DerivationSummary(
        effective_date=effective_date,
        reverse_count=sum(1 for rate in derived if rate.method is DerivationMethod.REVERSE),
        transitive_count=sum(1 for rate in derived if rate.method is DerivationMethod.TRANSITIVE),
    )
    logger.info(
        f"Regenerated derived rates for user {user_id} on {effective_date}: "
        f"{summary.reverse_count} reverse, {summary.transitive_count} transitive "
        f"({len(currencies)} currencies, {len(authoritative)} source rates, "
        f"{deleted} replaced)"
    )
    return summary


async def regenerate_for_user(db: AsyncSession, user_id: int) -> DerivationSummary:
    """Regenerate a user's AUTO rates on request, stamped with today's date."""
    async with transactional(db):
        summary = await regenerate_auto_rates(db, user_id, date.today())
    return summary
