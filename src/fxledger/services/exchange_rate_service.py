"""Exchange rate service: user-entered rates and their derived rates.

Each mutation writes USER rates and regenerates every AUTO rate of the user
inside the same transaction. New rates are also compared with the rates the
stored ones already imply; disagreements are reported as warnings, never as
errors.
"""

import logging
import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fxledger.core.constants import RateConstants
from fxledger.core.exceptions import NotFoundError, ValidationError
from fxledger.db.session import transactional
from fxledger.models.currency import Currency
from fxledger.models.exchange_rate import ExchangeRate, RateType
from fxledger.repositories.exchange_rate import AUTHORITATIVE_TYPES, ExchangeRateRepository
from fxledger.schemas.exchange_rate import (
    DerivationSummary,
    ExchangeRateBatchResponse,
    ExchangeRateCreate,
    ExchangeRateResponse,
    ExchangeRateUpdate,
    RateBatchError,
)
from fxledger.services.currency_service import resolve_currency
from fxledger.services.derivation_service import regenerate_auto_rates
from fxledger.services.rate_engine import quantize_rate

logger = logging.getLogger(__name__)


def _ensure_not_future(effective_date: date) -> None:
    if effective_date > date.today():
        raise ValidationError("Effective date cannot be in the future")


def _deviates(rate: Decimal, expected: Decimal) -> bool:
    return abs(rate - expected) > expected * RateConstants.CHAIN_TOLERANCE


async def check_rate_chain(
    db: AsyncSession,
    user_id: int,
    from_currency: Currency,
    to_currency: Currency,
    rate: Decimal,
    effective_date: date,
) -> list[str]:
    """Compare a rate with what the user's stored rates already imply.

    Two checks are made against the rates effective on ``effective_date``:
    the inverse of the latest USER/API rate in the opposite direction, and
    the derived rate composed through an intermediate currency. A relative
    deviation above ``RateConstants.CHAIN_TOLERANCE`` yields a warning.

    Args:
        db: Database session
        user_id: Owning user
        from_currency: Source currency of the new rate
        to_currency: Target currency of the new rate
        rate: The new rate
        effective_date: Day the new rate applies from

    Returns:
        Human-readable warnings; empty when the rate is consistent
    """
    repo = ExchangeRateRepository(ExchangeRate, db)
    pair = f"{from_currency.code}→{to_currency.code}"
    warnings: list[str] = []

    reverse = await repo.find_latest_edge(
        user_id, to_currency.id, from_currency.id, effective_date, rate_types=AUTHORITATIVE_TYPES
    )
    if reverse is not None:
        implied = quantize_rate(1 / reverse.rate)
        if _deviates(rate, implied):
            warnings.append(
                f"{to_currency.code}→{from_currency.code} = {reverse.rate} implies "
                f"{pair} = {implied}, not {rate}"
            )

    derived = await repo.find_latest_edge(
        user_id, from_currency.id, to_currency.id, effective_date, rate_types=(RateType.AUTO,)
    )
    # Reverse AUTO rates are covered by the check above
    if derived is not None and derived.source_rate_id is None and _deviates(rate, derived.rate):
        warnings.append(
            f"{pair} = {rate} differs from the derived rate {derived.rate} ({derived.notes})"
        )

    if warnings:
        logger.warning(f"Inconsistent rate {pair} for user {user_id}: {'; '.join(warnings)}")
    return warnings


async def list_rates(
    db: AsyncSession,
    user_id: int,
    *,
    from_currency: str | None = None,
    to_currency: str | None = None,
    rate_type: RateType | None = None,
) -> list[ExchangeRate]:
    """List a user's rates of every type, optionally filtered.

    Args:
        db: Database session
        user_id: Owning user
        from_currency: Source currency code or id
        to_currency: Target currency code or id
        rate_type: Only rates of this type

    Raises:
        CurrencyNotFoundError: If a currency filter does not resolve
    """
    from_id = (await resolve_currency(db, from_currency, user_id)).id if from_currency else None
    to_id = (await resolve_currency(db, to_currency, user_id)).id if to_currency else None

    return await ExchangeRateRepository(ExchangeRate, db).list_edges(
        user_id,
        from_currency_id=from_id,
        to_currency_id=to_id,
        rate_type=rate_type,
    )


async def _write_user_rate(
    db: AsyncSession,
    repo: ExchangeRateRepository,
    user_id: int,
    data: ExchangeRateCreate,
) -> tuple[ExchangeRate, list[str]]:
    from_currency = await resolve_currency(db, data.from_currency, user_id)
    to_currency = await resolve_currency(db, data.to_currency, user_id)
    if from_currency.id == to_currency.id:
        raise ValidationError("Source and target currency must differ")
    _ensure_not_future(data.effective_date)

    warnings = await check_rate_chain(
        db, user_id, from_currency, to_currency, data.rate, data.effective_date
    )
    edge = ExchangeRate(
        user_id=user_id,
        from_currency_id=from_currency.id,
        to_currency_id=to_currency.id,
        rate=data.rate,
        effective_date=data.effective_date,
        rate_type=RateType.USER,
        notes=data.notes,
    )
    await repo.upsert_edge(edge)
    logger.info(
        f"User {user_id} set {from_currency.code}→{to_currency.code} = {data.rate} "
        f"from {data.effective_date}"
    )
    return edge, warnings


async def create_user_rate(
    db: AsyncSession,
    user_id: int,
    data: ExchangeRateCreate,
) -> tuple[ExchangeRate, DerivationSummary, list[str]]:
    """Record a user-entered rate and regenerate derived rates.

    Derived rates are stamped with the new rate's effective date.

    Args:
        db: Database session
        user_id: Owning user
        data: Rate to record; currencies given by code or id

    Returns:
        The stored rate (with its currencies loaded), the derivation summary
        and the consistency warnings of ``check_rate_chain``

    Raises:
        CurrencyNotFoundError: If a currency does not resolve
        ValidationError: If both currencies are the same or the date is in
            the future
        DuplicateRateError: If a USER/API rate already exists for the pair
            and date

    Example:
        >>> rate, summary, warnings = await create_user_rate(
        ...     db,
        ...     user.id,
        ...     ExchangeRateCreate(
        ...         from_currency="USD",
        ...         to_currency="CNY",
        ...         rate=Decimal("7.0"),
        ...         effective_date=date(2024, 1, 15),
        ...     ),
        ... )
    """
    repo = ExchangeRateRepository(ExchangeRate, db)

    async with transactional(db):
        edge, warnings = await _write_user_rate(db, repo, user_id, data)
        summary = await regenerate_auto_rates(db, user_id, data.effective_date)

    stored = await repo.get_with_currencies(edge.id)
    return stored or edge, summary, warnings


async def create_user_rates(
    db: AsyncSession,
    user_id: int,
    items: list[ExchangeRateCreate],
) -> ExchangeRateBatchResponse:
    """Record several user-entered rates and regenerate derived rates once.

    Every rate is checked on its own. Rates with an unknown currency, the
    same currency on both sides, a future date or an existing rate on the
    same pair and date are reported in ``errors``; the others are stored
    together in one transaction. Derived rates are stamped with the latest
    effective date among the stored rates.

    Args:
        db: Database session
        user_id: Owning user
        items: Rates to record, in request order

    Returns:
        Stored rates, per-item errors, consistency warnings and the
        derivation summary (None when nothing was stored)

    Raises:
        DerivationStorageError: If the derived rates could not be stored;
            no rate of the batch is kept
    """
    repo = ExchangeRateRepository(ExchangeRate, db)
    stored: list[ExchangeRate] = []
    errors: list[RateBatchError] = []
    warnings: list[str] = []
    summary: DerivationSummary | None = None

    async with transactional(db):
        for index, data in enumerate(items):
            try:
                edge, item_warnings = await _write_user_rate(db, repo, user_id, data)
            except (NotFoundError, ValidationError) as e:
                # A failed flush leaves the transaction unusable
                if isinstance(e.__cause__, SQLAlchemyError):
                    raise
                errors.append(
                    RateBatchError(
                        index=index,
                        from_currency=data.from_currency,
                        to_currency=data.to_currency,
                        detail=e.detail,
                        error_code=e.error_code,
                    )
                )
                continue
            stored.append(edge)
            warnings.extend(item_warnings)

        if stored:
            latest = max(edge.effective_date for edge in stored)
            summary = await regenerate_auto_rates(db, user_id, latest)

    logger.info(
        f"User {user_id} entered {len(items)} rates: {len(stored)} stored, "
        f"{len(errors)} rejected"
    )
    rates = []
    for edge in stored:
        reloaded = await repo.get_with_currencies(edge.id)
        rates.append(ExchangeRateResponse.from_model(reloaded or edge))
    return ExchangeRateBatchResponse(
        rates=rates, errors=errors, warnings=warnings, derivation=summary
    )


async def update_user_rate(
    db: AsyncSession,
    user_id: int,
    rate_id: uuid.UUID,
    data: ExchangeRateUpdate,
) -> tuple[ExchangeRate, DerivationSummary, list[str]]:
    """Change a USER or API rate and regenerate derived rates.

    Editing a market (API) rate turns it into a USER rate.

    Raises:
        NotFoundError: If the rate does not exist or is an AUTO rate
        ValidationError: If the new date is in the future
        DuplicateRateError: If the new date collides with another USER/API rate
    """
    repo = ExchangeRateRepository(ExchangeRate, db)

    async with transactional(db):
        edge = await repo.get_for_user(user_id, rate_id)
        if edge is None or edge.rate_type is RateType.AUTO:
            raise NotFoundError("Exchange rate not found")

        changes = data.model_dump(exclude_unset=True)
        if changes.get("rate") is None:
            changes.pop("rate", None)
        if changes.get("effective_date") is None:
            changes.pop("effective_date", None)
        if "effective_date" in changes:
            _ensure_not_future(changes["effective_date"])

        warnings = await check_rate_chain(
            db,
            user_id,
            edge.from_currency,
            edge.to_currency,
            changes.get("rate", edge.rate),
            changes.get("effective_date", edge.effective_date),
        )
        for field, value in changes.items():
            setattr(edge, field, value)
        edge.rate_type = RateType.USER

        await repo.upsert_edge(edge)
        summary = await regenerate_auto_rates(db, user_id, edge.effective_date)

    logger.info(f"User {user_id} updated exchange rate {rate_id}")
    stored = await repo.get_with_currencies(edge.id)
    return stored or edge, summary, warnings


async def delete_user_rate(
    db: AsyncSession,
    user_id: int,
    rate_id: uuid.UUID,
) -> DerivationSummary:
    """Delete a USER or API rate and regenerate derived rates as of today.

    Raises:
        NotFoundError: If the rate does not exist or is an AUTO rate
    """
    repo = ExchangeRateRepository(ExchangeRate, db)

    async with transactional(db):
        await repo.delete_edge(user_id, rate_id)
        summary = await regenerate_auto_rates(db, user_id, date.today())

    logger.info(f"User {user_id} deleted exchange rate {rate_id}")
    return summary
