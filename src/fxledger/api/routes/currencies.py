"""Currency API routes: visible currencies, enabled currencies and the base currency."""

import logging
import uuid

from fastapi import APIRouter, status

from fxledger.core.deps import CurrentUser, DbSession
from fxledger.models.currency import Currency
from fxledger.models.enabled_currency import EnabledCurrency
from fxledger.models.user import UserSettings
from fxledger.schemas.currency import (
    CurrencyCreate,
    CurrencyReference,
    CurrencyResponse,
    EnabledCurrencyCreate,
    EnabledCurrencyResponse,
    UserSettingsResponse,
    UserSettingsUpdate,
)
from fxledger.services import currency_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=list[CurrencyResponse])
async def list_currencies(current_user: CurrentUser, db: DbSession) -> list[Currency]:
    """List global currencies plus the current user's custom currencies.

    Example:
        GET /api/v1/currencies/
    """
    currencies = await currency_service.list_visible_currencies(db, current_user.id)
    logger.info(f"Found {len(currencies)} currencies for user {current_user.id}")
    return currencies


@router.get("/resolve/{code_or_id}", response_model=CurrencyResponse)
async def resolve_currency(code_or_id: str, current_user: CurrentUser, db: DbSession) -> Currency:
    """Resolve a currency code or id to the currency the user means.

    A custom currency wins over a global currency with the same code.

    Raises:
        CurrencyNotFoundError: 404 if nothing visible matches

    Example:
        GET /api/v1/currencies/resolve/usd
    """
    return await currency_service.resolve_currency(db, code_or_id, current_user.id)


@router.post("/", response_model=CurrencyResponse, status_code=status.HTTP_201_CREATED)
async def create_currency(
    currency_data: CurrencyCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> Currency:
    """Create a custom currency owned by the current user.

    Raises:
        ConflictError: 409 if the user already owns a currency with the code

    Example:
        POST /api/v1/currencies/
        {
            "code": "BTC",
            "name": "Bitcoin",
            "symbol": "₿",
            "decimal_places": 8
        }
    """
    return await currency_service.create_custom_currency(db, current_user, currency_data)


@router.get("/enabled", response_model=list[EnabledCurrencyResponse])
async def list_enabled_currencies(
    current_user: CurrentUser,
    db: DbSession,
) -> list[EnabledCurrency]:
    """List the currencies the current user works with, in display order."""
    return await currency_service.list_enabled_currencies(db, current_user.id)


@router.post(
    "/enabled",
    response_model=EnabledCurrencyResponse,
    status_code=status.HTTP_201_CREATED,
)
async def enable_currency(
    enabled_data: EnabledCurrencyCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> EnabledCurrency:
    """Enable a currency and regenerate derived exchange rates.

    Example:
        POST /api/v1/currencies/enabled
        {"currency": "EUR"}
    """
    return await currency_service.enable_currency(
        db, current_user.id, enabled_data.currency, enabled_data.order
    )


@router.delete("/enabled/{currency_id}", status_code=status.HTTP_204_NO_CONTENT)
async def disable_currency(
    currency_id: uuid.UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> None:
    """Disable a currency and regenerate derived exchange rates.

    Raises:
        NotFoundError: 404 if the currency is not enabled
        CurrencyInUseError: 409 if it is the base currency or has rates
    """
    await currency_service.disable_currency(db, current_user.id, currency_id)


@router.get("/settings", response_model=UserSettingsResponse)
async def get_settings(current_user: CurrentUser, db: DbSession) -> UserSettings:
    """Base currency and rate refresh preferences of the current user."""
    return await currency_service.get_user_settings(db, current_user.id)


@router.patch("/settings", response_model=UserSettingsResponse)
async def update_settings(
    settings_data: UserSettingsUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> UserSettings:
    """Turn automatic market rate refreshes on or off."""
    return await currency_service.set_auto_update_rates(
        db, current_user.id, settings_data.auto_update_rates
    )


@router.put("/base", response_model=UserSettingsResponse)
async def set_base_currency(
    reference: CurrencyReference,
    current_user: CurrentUser,
    db: DbSession,
) -> UserSettings:
    """Set the base currency, enabling it if needed.

    Example:
        PUT /api/v1/currencies/base
        {"currency": "USD"}
    """
    return await currency_service.set_base_currency(db, current_user.id, reference.currency)


@router.delete("/{currency_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_currency(
    currency_id: uuid.UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> None:
    """Delete one of the current user's custom currencies.

    Raises:
        CurrencyNotFoundError: 404 if the currency is not visible
        ValidationError: 400 for global currencies
        CurrencyInUseError: 409 if it is still in use
    """
    await currency_service.delete_custom_currency(db, current_user, currency_id)
