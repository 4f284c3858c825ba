"""Conversion service: best-effort currency conversion.

Conversions never raise. When no rate applies, the result reports
``success=False`` and passes the original amount through unchanged, so
dashboards can still show a figure and flag it as inaccurate.
"""

import logging
import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fxledger.core.constants import ConversionConstants, RateConstants
from fxledger.models.exchange_rate import ExchangeRate, RateType
from fxledger.repositories.exchange_rate import ExchangeRateRepository
from fxledger.schemas.conversion import BatchConversionResult, ConversionResult
from fxledger.schemas.exchange_rate import MissingRate, RateIntegrityReport, StaleRate
from fxledger.services.currency_service import get_active_currencies, get_user_settings
from fxledger.services.rate_engine import currency_sort_key

logger = logging.getLogger(__name__)


def _failed(
    amount: Decimal,
    from_currency_id: uuid.UUID,
    to_currency_id: uuid.UUID | None,
    error: str,
) -> ConversionResult:
    return ConversionResult(
        from_currency_id=from_currency_id,
        to_currency_id=to_currency_id,
        original_amount=amount,
        converted_amount=amount,
        success=False,
        error=error,
    )


async def convert(
    db: AsyncSession,
    user_id: int,
    amount: Decimal,
    from_currency_id: uuid.UUID,
    to_currency_id: uuid.UUID,
    as_of: date | None = None,
) -> ConversionResult:
    """Convert an amount with the rate that applies on a date.

    Args:
        db: Database session
        user_id: User whose rates are used
        amount: Amount in the source currency
        from_currency_id: Source currency
        to_currency_id: Target currency
        as_of: Date the rate must be effective on (default: today)

    Returns:
        The conversion result; ``error`` is "no rate path" when the pair has
        no rate and "conversion failed" when the lookup itself failed

    Example:
        >>> result = await convert(db, user.id, Decimal("100"), cny.id, eur.id)
        >>> if result.success:
        ...     print(f"{result.converted_amount} EUR at {result.rate}")
    """
    as_of = as_of or date.today()

    if from_currency_id == to_currency_id:
        return ConversionResult(
            from_currency_id=from_currency_id,
            to_currency_id=to_currency_id,
            original_amount=amount,
            converted_amount=amount,
            rate=Decimal(1),
            success=True,
        )

    try:
        edge = await ExchangeRateRepository(ExchangeRate, db).find_latest_edge(
            user_id, from_currency_id, to_currency_id, as_of
        )
        if edge is None:
            return _failed(
                amount, from_currency_id, to_currency_id, ConversionConstants.NO_RATE_PATH
            )
        converted = amount * edge.rate
    except (SQLAlchemyError, ArithmeticError) as e:
        logger.error(
            f"Conversion {from_currency_id}→{to_currency_id} failed for user {user_id}: {e}",
            exc_info=True,
        )
        return _failed(
            amount, from_currency_id, to_currency_id, ConversionConstants.CONVERSION_FAILED
        )

    return ConversionResult(
        from_currency_id=from_currency_id,
        to_currency_id=to_currency_id,
        original_amount=amount,
        converted_amount=converted,
        rate=edge.rate,
        rate_date=edge.effective_date,
        success=True,
    )


async def convert_to_base(
    db: AsyncSession,
    user_id: int,
    amount: Decimal,
    from_currency_id: uuid.UUID,
    as_of: date | None = None,
) -> ConversionResult:
    """Convert an amount into the user's base currency.

    Without a base currency the result fails with "no base currency".
    """
    user_settings = await get_user_settings(db, user_id)
    if user_settings.base_currency_id is None:
        return _failed(amount, from_currency_id, None, ConversionConstants.NO_BASE_CURRENCY)

    return await convert(
        db, user_id, amount, from_currency_id, user_settings.base_currency_id, as_of
    )


async def convert_batch(
    db: AsyncSession,
    user_id: int,
    items: list[tuple[Decimal, uuid.UUID]],
    to_currency_id: uuid.UUID | None = None,
    as_of: date | None = None,
) -> BatchConversionResult:
    """Convert several amounts into one currency.

    Each item succeeds or fails on its own; a batch never fails as a whole.

    Args:
        db: Database session
        user_id: User whose rates are used
        items: (amount, currency id) pairs
        to_currency_id: Target currency; the user's base currency if None
        as_of: Date the rates must be effective on (default: today)

    Returns:
        Per-item results, the sum of converted amounts (failed items count
        with their original amount) and whether any item failed
    """
    results: list[ConversionResult] = []
    for amount, currency_id in items:
        if to_currency_id is None:
            result = await convert_to_base(db, user_id, amount, currency_id, as_of)
        else:
            result = await convert(db, user_id, amount, currency_id, to_currency_id, as_of)
        results.append(result)

    return BatchConversionResult(
        results=results,
        total=sum((result.converted_amount for result in results), Decimal(0)),
        has_missing_rates=any(not result.success for result in results),
    )


async def find_missing_rates(
    db: AsyncSession,
    user_id: int,
    as_of: date | None = None,
) -> list[MissingRate]:
    """List enabled currencies that cannot be converted into the base currency.

    Returns:
        One entry per enabled currency without a rate to the base currency
        as of the date; empty when no base currency is set
    """
    as_of = as_of or date.today()
    user_settings = await get_user_settings(db, user_id)
    if user_settings.base_currency_id is None:
        return []

    currencies = sorted(await get_active_currencies(db, user_id), key=currency_sort_key)
    base = next((c for c in currencies if c.id == user_settings.base_currency_id), None)
    if base is None:
        return []

    repo = ExchangeRateRepository(ExchangeRate, db)
    missing: list[MissingRate] = []
    for currency in currencies:
        if currency.id == base.id:
            continue
        if await repo.find_latest_edge(user_id, currency.id, base.id, as_of) is None:
            missing.append(
                MissingRate(
                    currency_id=currency.id,
                    currency_code=currency.code,
                    base_currency_id=base.id,
                    base_currency_code=base.code,
                )
            )

    if missing:
        logger.info(f"User {user_id} has {len(missing)} currencies without a rate to {base.code}")
    return missing


async def find_stale_market_rates(
    db: AsyncSession,
    user_id: int,
    as_of: date | None = None,
) -> list[StaleRate]:
    """List market (API) rates that have not been refreshed recently.

    Only the latest API rate of each currency pair is considered; it is stale
    when it is more than ``RateConstants.STALE_MARKET_RATE_DAYS`` days older
    than ``as_of``. Rates dated after ``as_of`` are ignored.
    """
    as_of = as_of or date.today()
    edges = await ExchangeRateRepository(ExchangeRate, db).list_edges(
        user_id, rate_type=RateType.API
    )

    # Edges come newest first within each pair
    latest: dict[tuple[uuid.UUID, uuid.UUID], ExchangeRate] = {}
    for edge in edges:
        if edge.effective_date <= as_of:
            latest.setdefault((edge.from_currency_id, edge.to_currency_id), edge)

    stale = [
        StaleRate(
            rate_id=edge.id,
            from_currency_code=edge.from_currency.code,
            to_currency_code=edge.to_currency.code,
            effective_date=edge.effective_date,
            age_days=(as_of - edge.effective_date).days,
        )
        for edge in latest.values()
        if (as_of - edge.effective_date).days > RateConstants.STALE_MARKET_RATE_DAYS
    ]
    if stale:
        logger.warning(
            f"User {user_id} has {len(stale)} market rates older than "
            f"{RateConstants.STALE_MARKET_RATE_DAYS} days"
        )
    return stale


async def check_rate_integrity(
    db: AsyncSession,
    user_id: int,
    as_of: date | None = None,
) -> RateIntegrityReport:
    """Combine the missing-rate and stale-market-rate reports for a date."""
    as_of = as_of or date.today()
    return RateIntegrityReport(
        as_of=as_of,
        missing_rates=await find_missing_rates(db, user_id, as_of),
        stale_rates=await find_stale_market_rates(db, user_id, as_of),
    )
