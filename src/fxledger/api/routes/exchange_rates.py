"""Exchange rate API routes."""

import logging
import uuid
from datetime import date

from fastapi import APIRouter, Query, Request

from fxledger.core.config import settings
from fxledger.core.deps import CurrentUser, DbSession
from fxledger.core.rate_limit import limiter
from fxledger.models.exchange_rate import RateType
from fxledger.schemas.exchange_rate import (
    DerivationSummary,
    ExchangeRateBatchCreate,
    ExchangeRateBatchResponse,
    ExchangeRateCreate,
    ExchangeRateMutationResponse,
    ExchangeRateResponse,
    ExchangeRateUpdate,
    MissingRate,
    RateIntegrityReport,
    RateRefreshResponse,
)
from fxledger.services import conversion_service, exchange_rate_service, market_rate_service
from fxledger.services.derivation_service import regenerate_for_user

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=list[ExchangeRateResponse])
async def list_exchange_rates(
    current_user: CurrentUser,
    db: DbSession,
    from_currency: str | None = Query(None, description="Source currency code or id"),
    to_currency: str | None = Query(None, description="Target currency code or id"),
    rate_type: RateType | None = Query(None, description="Only rates of this type"),
) -> list[ExchangeRateResponse]:
    """List the current user's exchange rates, derived ones included.

    Example:
        GET /api/v1/exchange-rates/
        GET /api/v1/exchange-rates/?from_currency=USD&rate_type=auto
    """
    rates = await exchange_rate_service.list_rates(
        db,
        current_user.id,
        from_currency=from_currency,
        to_currency=to_currency,
        rate_type=rate_type,
    )
    return [ExchangeRateResponse.from_model(rate) for rate in rates]


@router.post("/", response_model=ExchangeRateMutationResponse, status_code=201)
async def create_exchange_rate(
    rate_data: ExchangeRateCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> ExchangeRateMutationResponse:
    """Record a user-entered exchange rate and regenerate derived rates.

    Raises:
        CurrencyNotFoundError: 404 if a currency does not resolve
        ValidationError: 400 for same-currency pairs and future dates
        DuplicateRateError: 400 if a rate already exists for the pair and date

    Example:
        POST /api/v1/exchange-rates/
        {
            "from_currency": "USD",
            "to_currency": "CNY",
            "rate": "7.1",
            "effective_date": "2024-01-15"
        }
    """
    rate, summary, warnings = await exchange_rate_service.create_user_rate(
        db, current_user.id, rate_data
    )
    return ExchangeRateMutationResponse(
        rate=ExchangeRateResponse.from_model(rate),
        derivation=summary,
        warnings=warnings,
    )


@router.post("/batch", response_model=ExchangeRateBatchResponse)
async def create_exchange_rates(
    batch: ExchangeRateBatchCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> ExchangeRateBatchResponse:
    """Record several user-entered rates and regenerate derived rates once.

    Rates that cannot be stored are listed in ``errors`` by their position;
    the others are stored.

    Example:
        POST /api/v1/exchange-rates/batch
        {
            "rates": [
                {"from_currency": "USD", "to_currency": "CNY", "rate": "7.1",
                 "effective_date": "2024-01-15"},
                {"from_currency": "EUR", "to_currency": "USD", "rate": "1.09",
                 "effective_date": "2024-01-15"}
            ]
        }
    """
    return await exchange_rate_service.create_user_rates(db, current_user.id, batch.rates)


@router.get("/missing", response_model=list[MissingRate])
async def list_missing_rates(
    current_user: CurrentUser,
    db: DbSession,
    as_of: date | None = Query(None, description="Date rates must be effective on"),
) -> list[MissingRate]:
    """Enabled currencies that cannot be converted into the base currency."""
    return await conversion_service.find_missing_rates(db, current_user.id, as_of)


@router.get("/integrity", response_model=RateIntegrityReport)
async def check_rate_integrity(
    current_user: CurrentUser,
    db: DbSession,
    as_of: date | None = Query(None, description="Date the report is made for"),
) -> RateIntegrityReport:
    """Report currencies without a rate to the base currency and stale market rates."""
    return await conversion_service.check_rate_integrity(db, current_user.id, as_of)


@router.post("/regenerate", response_model=DerivationSummary)
async def regenerate_exchange_rates(current_user: CurrentUser, db: DbSession) -> DerivationSummary:
    """Rebuild every derived exchange rate of the current user."""
    return await regenerate_for_user(db, current_user.id)


@router.post("/refresh", response_model=RateRefreshResponse)
@limiter.limit(settings.SYNC_RATE_LIMIT)
async def refresh_market_rates(
    request: Request,
    current_user: CurrentUser,
    db: DbSession,
    force: bool = Query(False, description="Ignore the auto-update setting and interval"),
) -> RateRefreshResponse:
    """Fetch market rates for the base currency and regenerate derived rates.

    Raises:
        ValidationError: 400 if no base currency is set
        ExternalAPIError: 503 if the market rate provider cannot be used

    Example:
        POST /api/v1/exchange-rates/refresh?force=true
    """
    return await market_rate_service.refresh_market_rates(db, current_user.id, force=force)


@router.put("/{rate_id}", response_model=ExchangeRateMutationResponse)
async def update_exchange_rate(
    rate_id: uuid.UUID,
    rate_data: ExchangeRateUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> ExchangeRateMutationResponse:
    """Change a user or market exchange rate and regenerate derived rates.

    Raises:
        NotFoundError: 404 for unknown and derived rates
    """
    rate, summary, warnings = await exchange_rate_service.update_user_rate(
        db, current_user.id, rate_id, rate_data
    )
    return ExchangeRateMutationResponse(
        rate=ExchangeRateResponse.from_model(rate),
        derivation=summary,
        warnings=warnings,
    )


@router.delete("/{rate_id}", response_model=ExchangeRateMutationResponse)
async def delete_exchange_rate(
    rate_id: uuid.UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> ExchangeRateMutationResponse:
    """Delete a user or market exchange rate and regenerate derived rates.

    Raises:
        NotFoundError: 404 for unknown and derived rates
    """
    summary = await exchange_rate_service.delete_user_rate(db, current_user.id, rate_id)
    return ExchangeRateMutationResponse(derivation=summary)
