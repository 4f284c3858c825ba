"""Market rate service: fetch provider rates and store them as API rates.

Provider:
- Frankfurter-compatible HTTP API (https://frankfurter.dev)
- ``GET {MARKET_RATE_API_URL}/latest?base=USD`` returns
  ``{"base": "USD", "date": "2024-01-15", "rates": {"EUR": 0.92, ...}}``
- Free, no authentication required

Refresh rules:
- Only currencies the user has enabled receive a rate; one API rate is written
  per ``base → currency`` pair, effective on the provider's date
- A USER rate on the same pair and date is never overwritten
- An API rate on the same pair and date is updated in place
- A failed fetch or an unusable payload writes nothing
- Automatic refreshes honour the user's auto-update flag and run at most once
  per ``MARKET_RATE_MIN_INTERVAL_HOURS``; a forced refresh skips both checks
"""

import logging
from datetime import UTC, date, datetime, timedelta

import httpx
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from fxledger.core.config import settings
from fxledger.core.exceptions import ExternalAPIError, ValidationError
from fxledger.db.base import utcnow
from fxledger.db.session import transactional
from fxledger.models.currency import Currency
from fxledger.models.exchange_rate import ExchangeRate, RateType
from fxledger.repositories.currency import CurrencyRepository
from fxledger.repositories.exchange_rate import ExchangeRateRepository
from fxledger.schemas.exchange_rate import MarketRateSnapshot, RateRefreshResponse
from fxledger.services.currency_service import get_active_currencies, get_user_settings
from fxledger.services.derivation_service import regenerate_auto_rates
from fxledger.services.rate_engine import currency_sort_key

logger = logging.getLogger(__name__)

_MARKET_RATE_NOTE = "Market rate"


async def fetch_market_rates(
    base_code: str,
    client: httpx.AsyncClient | None = None,
) -> MarketRateSnapshot:
    """Fetch the latest provider rates for a base currency.

    Args:
        base_code: Base currency code (e.g., "USD")
        client: HTTP client to use; a short-lived client is created if omitted

    Returns:
        The validated provider payload

    Raises:
        ExternalAPIError: On timeouts, HTTP errors and malformed payloads

    Example:
        >>> snapshot = await fetch_market_rates("USD")
        >>> rates, rejected = snapshot.parsed_rates()
        >>> print(snapshot.date, rates["EUR"])
        2024-01-15 0.9200000000
    """
    base_code = base_code.upper()
    url = f"{settings.MARKET_RATE_API_URL.rstrip('/')}/latest"

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=settings.MARKET_RATE_TIMEOUT_SECONDS) as owned:
                response = await owned.get(url, params={"base": base_code})
        else:
            response = await client.get(url, params={"base": base_code})
        response.raise_for_status()

    except httpx.TimeoutException as e:
        logger.error(f"Timed out fetching market rates for {base_code}: {e}")
        raise ExternalAPIError("Market rate provider timed out") from e
    except httpx.HTTPStatusError as e:
        status_code = e.response.status_code
        logger.error(f"Market rate provider returned HTTP {status_code} for {base_code}")
        if status_code == 404:
            raise ExternalAPIError(
                f"Market rates are not available for {base_code}",
                error_code="CURRENCY_NOT_SUPPORTED",
            ) from e
        if status_code == 429:
            raise ExternalAPIError(
                "Market rate provider rate limit exceeded",
                error_code="RATE_LIMIT_EXCEEDED",
            ) from e
        raise ExternalAPIError(f"Market rate provider returned HTTP {status_code}") from e
    except httpx.HTTPError as e:
        logger.error(f"HTTP error fetching market rates for {base_code}: {e}")
        raise ExternalAPIError("Market rate provider unavailable") from e

    try:
        snapshot = MarketRateSnapshot.model_validate(response.json())
    except (ValueError, PydanticValidationError) as e:
        logger.error(f"Malformed market rate payload for {base_code}: {e}")
        raise ExternalAPIError(
            "Market rate provider returned a malformed payload",
            error_code="MALFORMED_RATE_PAYLOAD",
        ) from e

    if snapshot.base.upper() != base_code:
        logger.error(f"Market rate payload is for {snapshot.base}, expected {base_code}")
        raise ExternalAPIError(
            "Market rate provider returned rates for another base currency",
            error_code="MALFORMED_RATE_PAYLOAD",
        )

    logger.info(
        f"Fetched {len(snapshot.rates)} market rates for {base_code} on {snapshot.date}"
    )
    return snapshot


def _as_aware(moment: datetime) -> datetime:
    # SQLite drops the timezone of stored datetimes
    return moment if moment.tzinfo is not None else moment.replace(tzinfo=UTC)


async def refresh_market_rates(
    db: AsyncSession,
    user_id: int,
    *,
    force: bool = False,
    client: httpx.AsyncClient | None = None,
) -> RateRefreshResponse:
    """Store the latest market rates for the user's base currency.

    Args:
        db: Database session
        user_id: User whose rates are refreshed
        force: Ignore the auto-update flag and the refresh interval
        client: HTTP client passed on to ``fetch_market_rates``

    Returns:
        What was written, skipped or left alone, plus the derivation summary.
        ``skipped`` is True when the refresh did not run at all.

    Raises:
        ValidationError: If the user has no base currency
        ExternalAPIError: If the provider could not be used; nothing is written
    """
    user_settings = await get_user_settings(db, user_id)

    if not force and not user_settings.auto_update_rates:
        return RateRefreshResponse(
            base_currency=None,
            skipped=True,
            skip_reason="Automatic rate updates are disabled",
        )

    if user_settings.base_currency_id is None:
        raise ValidationError("Set a base currency before refreshing market rates")

    if not force and user_settings.last_rate_update is not None:
        interval = timedelta(hours=settings.MARKET_RATE_MIN_INTERVAL_HOURS)
        if datetime.now(UTC) - _as_aware(user_settings.last_rate_update) < interval:
            return RateRefreshResponse(
                base_currency=None,
                skipped=True,
                skip_reason=(
                    f"Rates were refreshed less than "
                    f"{settings.MARKET_RATE_MIN_INTERVAL_HOURS} hours ago"
                ),
            )

    base = await CurrencyRepository(Currency, db).get(user_settings.base_currency_id)
    if base is None:
        raise ValidationError("Set a base currency before refreshing market rates")

    snapshot = await fetch_market_rates(base.code, client=client)
    usable, rejected = snapshot.parsed_rates()
    if rejected:
        logger.warning(f"Ignoring unusable market rates for {', '.join(sorted(rejected))}")

    targets = [
        currency
        for currency in await get_active_currencies(db, user_id)
        if currency.id != base.id and not currency.is_custom
    ]
    targets.sort(key=currency_sort_key)

    repo = ExchangeRateRepository(ExchangeRate, db)
    updated: list[str] = []
    skipped: list[str] = []
    conflicts: list[str] = []

    async with transactional(db):
        for currency in targets:
            rate = usable.get(currency.code)
            if rate is None:
                skipped.append(currency.code)
                continue

            existing = await repo.get_by_key(user_id, base.id, currency.id, snapshot.date)
            if existing is not None and existing.rate_type is RateType.USER:
                conflicts.append(currency.code)
                continue
            if existing is not None and existing.rate_type is RateType.API:
                existing.rate = rate
                await repo.upsert_edge(existing)
            else:
                await repo.upsert_edge(
                    ExchangeRate(
                        user_id=user_id,
                        from_currency_id=base.id,
                        to_currency_id=currency.id,
                        rate=rate,
                        effective_date=snapshot.date,
                        rate_type=RateType.API,
                        notes=_MARKET_RATE_NOTE,
                    )
                )
            updated.append(currency.code)

        user_settings.last_rate_update = utcnow()
        summary = await regenerate_auto_rates(db, user_id, date.today())

    logger.info(
        f"Refreshed market rates for user {user_id} ({base.code} on {snapshot.date}): "
        f"{len(updated)} written, {len(skipped)} unavailable, {len(conflicts)} kept as USER"
    )
    return RateRefreshResponse(
        base_currency=base.code,
        updated_count=len(updated),
        skipped_currencies=skipped,
        user_rate_conflicts=conflicts,
        effective_date=snapshot.date,
        derivation=summary,
    )
