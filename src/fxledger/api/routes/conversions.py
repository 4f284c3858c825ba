"""Conversion API routes."""

import logging
from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Query

from fxledger.core.deps import CurrentUser, DbSession
from fxledger.schemas.conversion import (
    BatchConversionRequest,
    BatchConversionResult,
    ConversionResult,
)
from fxledger.services import conversion_service
from fxledger.services.currency_service import resolve

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=ConversionResult)
async def convert_amount(
    current_user: CurrentUser,
    db: DbSession,
    amount: Decimal = Query(..., description="Amount in the source currency"),
    from_currency: str = Query(..., description="Source currency code or id"),
    to_currency: str | None = Query(None, description="Target currency; base currency if omitted"),
    as_of: date | None = Query(None, description="Date the rate must be effective on"),
) -> ConversionResult:
    """Convert one amount.

    A missing rate is reported with ``success: false`` and the original amount,
    never as an error status.

    Raises:
        CurrencyNotFoundError: 404 if a currency does not resolve

    Example:
        GET /api/v1/conversions/?amount=100&from_currency=CNY&to_currency=EUR
    """
    from_id = await resolve(db, from_currency, current_user.id)
    if to_currency is None:
        return await conversion_service.convert_to_base(
            db, current_user.id, amount, from_id, as_of
        )

    to_id = await resolve(db, to_currency, current_user.id)
    return await conversion_service.convert(db, current_user.id, amount, from_id, to_id, as_of)


@router.post("/batch", response_model=BatchConversionResult)
async def convert_batch(
    batch: BatchConversionRequest,
    current_user: CurrentUser,
    db: DbSession,
) -> BatchConversionResult:
    """Convert several amounts into one currency.

    Every currency is resolved before anything is converted; an unknown
    currency fails the request with 404. Missing rates only mark single items
    as failed.

    Example:
        POST /api/v1/conversions/batch
        {
            "items": [{"amount": "100", "currency": "CNY"}, {"amount": "5", "currency": "USD"}],
            "to_currency": "EUR"
        }
    """
    to_id = await resolve(db, batch.to_currency, current_user.id) if batch.to_currency else None
    items = [
        (item.amount, await resolve(db, item.currency, current_user.id)) for item in batch.items
    ]

    result = await conversion_service.convert_batch(db, current_user.id, items, to_id, batch.as_of)
    if result.has_missing_rates:
        missing = sum(1 for item in result.results if not item.success)
        logger.info(f"Batch conversion for user {current_user.id}: {missing} items without a rate")
    return result
