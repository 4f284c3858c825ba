"""Currency service: identity resolution and the per-user currency universe.

Currency codes are ambiguous: a user may own a custom ``USD`` next to the
global ``USD``. Requests may name a currency by code or by id; this module
turns either into exactly one currency record, preferring the user's own
currency. Everything past this boundary works with ids only.

It also manages which currencies a user has enabled and which one is the
base currency. Every change to the enabled set regenerates the user's
derived rates, see ``fxledger.services.derivation_service``.
"""

import logging
import uuid
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from fxledger.core.exceptions import (
    ConflictError,
    CurrencyInUseError,
    CurrencyNotFoundError,
    NotFoundError,
    ValidationError,
)
from fxledger.db.session import transactional
from fxledger.models.currency import Currency
from fxledger.models.enabled_currency import EnabledCurrency
from fxledger.models.exchange_rate import ExchangeRate
from fxledger.models.user import User, UserSettings
from fxledger.repositories.currency import CurrencyRepository
from fxledger.repositories.enabled_currency import EnabledCurrencyRepository
from fxledger.repositories.exchange_rate import ExchangeRateRepository
from fxledger.repositories.user import UserRepository
from fxledger.schemas.currency import CurrencyCreate
from fxledger.services.derivation_service import regenerate_auto_rates

logger = logging.getLogger(__name__)


def _parse_id(value: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


async def resolve_by_code(db: AsyncSession, code: str, user_id: int) -> Currency:
    """Find the currency a user means by a code.

    Args:
        db: Database session
        code: Currency code, any case
        user_id: User resolving the code

    Returns:
        The user's custom currency with that code if there is one, otherwise
        the global currency

    Raises:
        CurrencyNotFoundError: If no visible currency has the code
    """
    currency = await CurrencyRepository(Currency, db).find_visible_by_code(user_id, code)
    if currency is None:
        raise CurrencyNotFoundError(f"Currency {code.upper()} not found")
    return currency


async def resolve_currency(db: AsyncSession, code_or_id: str, user_id: int) -> Currency:
    """Resolve a currency reference given as an id or as a code.

    An id is accepted only when it names a global currency or one of the
    user's own. Anything else is treated as a code.

    Raises:
        CurrencyNotFoundError: If the reference matches no visible currency

    Example:
        >>> currency = await resolve_currency(db, "eur", user.id)
        >>> same = await resolve_currency(db, str(currency.id), user.id)
        >>> assert same.id == currency.id
    """
    currency_id = _parse_id(code_or_id)
    if currency_id is not None:
        currency = await CurrencyRepository(Currency, db).get_visible(user_id, currency_id)
        if currency is not None:
            return currency
        raise CurrencyNotFoundError(f"Currency {code_or_id} not found")

    return await resolve_by_code(db, code_or_id, user_id)


async def resolve(db: AsyncSession, code_or_id: str, user_id: int) -> uuid.UUID:
    """Resolve a currency reference to its id."""
    currency = await resolve_currency(db, code_or_id, user_id)
    return currency.id


async def list_visible_currencies(db: AsyncSession, user_id: int) -> list[Currency]:
    """Global currencies plus the user's custom ones, ordered by code."""
    return await CurrencyRepository(Currency, db).list_visible(user_id)


async def create_custom_currency(db: AsyncSession, user: User, data: CurrencyCreate) -> Currency:
    """Create a currency owned by a user.

    A custom code may shadow a global code, but a user cannot own two
    currencies with the same code.

    Raises:
        ConflictError: If the user already owns a currency with the code
    """
    repo = CurrencyRepository(Currency, db)

    async with transactional(db):
        if await repo.get_custom_by_code(user.id, data.code) is not None:
            raise ConflictError(
                f"You already have a custom currency {data.code}",
                error_code="DUPLICATE_CURRENCY",
            )
        currency = await repo.create(obj_in={**data.model_dump(), "owner_id": user.id})

    logger.info(f"User {user.id} created custom currency {currency.code} ({currency.id})")
    return currency


async def get_user_settings(db: AsyncSession, user_id: int) -> UserSettings:
    """Currency settings of a user; a default row is created on first use."""
    return await UserRepository(User, db).get_or_create_settings(user_id)


async def _ensure_removable(db: AsyncSession, user_id: int, currency: Currency) -> None:
    """Refuse to take a currency out of use while something depends on it.

    AUTO rates never block removal: they are regenerated right afterwards.

    Raises:
        CurrencyInUseError: If the currency is the base currency or carries
            USER/API rates
    """
    user_settings = await get_user_settings(db, user_id)
    if user_settings.base_currency_id == currency.id:
        raise CurrencyInUseError(f"{currency.code} is your base currency")

    rate_repo = ExchangeRateRepository(ExchangeRate, db)
    if await rate_repo.has_authoritative_edges(user_id, currency.id):
        raise CurrencyInUseError(f"{currency.code} still has exchange rates")


async def delete_custom_currency(db: AsyncSession, user: User, currency_id: uuid.UUID) -> None:
    """Delete one of the user's custom currencies.

    Raises:
        CurrencyNotFoundError: If the currency is not visible to the user
        ValidationError: If the currency is a global one
        CurrencyInUseError: If the currency is still in use
    """
    repo = CurrencyRepository(Currency, db)
    enabled_repo = EnabledCurrencyRepository(EnabledCurrency, db)

    async with transactional(db):
        currency = await repo.get_visible(user.id, currency_id)
        if currency is None:
            raise CurrencyNotFoundError()
        if not currency.is_custom:
            raise ValidationError("Global currencies cannot be deleted")

        await _ensure_removable(db, user.id, currency)

        enabled = await enabled_repo.get_for_user(user.id, currency.id)
        was_active = enabled is not None and enabled.is_active
        if enabled is not None:
            await enabled_repo.delete(id=enabled.id)
        await repo.delete(id=currency.id)

        if was_active:
            await regenerate_auto_rates(db, user.id, date.today())

    logger.info(f"User {user.id} deleted custom currency {currency.code} ({currency.id})")


async def list_enabled_currencies(db: AsyncSession, user_id: int) -> list[EnabledCurrency]:
    return await EnabledCurrencyRepository(EnabledCurrency, db).list_for_user(user_id)


async def get_active_currencies(db: AsyncSession, user_id: int) -> list[Currency]:
    """The user's currency universe."""
    return await EnabledCurrencyRepository(EnabledCurrency, db).active_currencies(user_id)


async def _activate(
    db: AsyncSession,
    user_id: int,
    currency: Currency,
    order: int | None = None,
) -> tuple[EnabledCurrency, bool]:
    """Make a currency part of the user's universe.

    Returns:
        The enabled row and whether the universe changed
    """
    repo = EnabledCurrencyRepository(EnabledCurrency, db)
    enabled = await repo.get_for_user(user_id, currency.id)

    if enabled is not None and enabled.is_active:
        return enabled, False

    if enabled is None:
        enabled = EnabledCurrency(
            user_id=user_id,
            currency=currency,
            is_active=True,
            order=order if order is not None else await repo.next_order(user_id),
        )
        db.add(enabled)
    else:
        enabled.is_active = True
        if order is not None:
            enabled.order = order

    await db.flush()
    return enabled, True


async def enable_currency(
    db: AsyncSession,
    user_id: int,
    code_or_id: str,
    order: int | None = None,
) -> EnabledCurrency:
    """Enable a currency for a user and regenerate derived rates.

    Enabling an already active currency changes nothing.

    Raises:
        CurrencyNotFoundError: If the reference matches no visible currency
    """
    async with transactional(db):
        currency = await resolve_currency(db, code_or_id, user_id)
        enabled, changed = await _activate(db, user_id, currency, order)
        if changed:
            await regenerate_auto_rates(db, user_id, date.today())

    if changed:
        logger.info(f"User {user_id} enabled currency {currency.code}")
    return enabled


async def disable_currency(db: AsyncSession, user_id: int, currency_id: uuid.UUID) -> None:
    """Take a currency out of the user's universe and regenerate derived rates.

    Raises:
        NotFoundError: If the currency is not enabled for the user
        CurrencyInUseError: If it is the base currency or has USER/API rates
    """
    repo = EnabledCurrencyRepository(EnabledCurrency, db)

    async with transactional(db):
        enabled = await repo.get_for_user(user_id, currency_id)
        if enabled is None or not enabled.is_active:
            raise NotFoundError("Currency is not enabled")

        await _ensure_removable(db, user_id, enabled.currency)
        enabled.is_active = False
        await db.flush()

        await regenerate_auto_rates(db, user_id, date.today())

    logger.info(f"User {user_id} disabled currency {enabled.currency.code}")


async def set_base_currency(db: AsyncSession, user_id: int, code_or_id: str) -> UserSettings:
    """Choose the currency reports convert into.

    The currency is enabled first if needed. Existing rates are not touched.

    Raises:
        CurrencyNotFoundError: If the reference matches no visible currency
    """
    async with transactional(db):
        currency = await resolve_currency(db, code_or_id, user_id)
        _, changed = await _activate(db, user_id, currency)

        user_settings = await get_user_settings(db, user_id)
        user_settings.base_currency_id = currency.id
        await db.flush()

        if changed:
            await regenerate_auto_rates(db, user_id, date.today())

    logger.info(f"User {user_id} set base currency to {currency.code}")
    return user_settings


async def set_auto_update_rates(db: AsyncSession, user_id: int, enabled: bool) -> UserSettings:
    """Turn automatic market rate refreshes on or off for a user."""
    async with transactional(db):
        user_settings = await get_user_settings(db, user_id)
        user_settings.auto_update_rates = enabled
        await db.flush()

    logger.info(f"User {user_id} turned automatic rate updates {'on' if enabled else 'off'}")
    return user_settings
