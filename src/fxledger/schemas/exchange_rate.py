"""Exchange rate schemas for request/response validation."""

import uuid
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, Field, computed_field

from fxledger.core.constants import APIConstants, RateConstants
from fxledger.models.exchange_rate import ExchangeRate, RateType


class ExchangeRateCreate(BaseModel):
    """Schema for creating a user-entered exchange rate.

    Currencies may be given by code or by id; codes resolve to the user's
    custom currency first, then to the global one.
    """

    from_currency: str = Field(..., min_length=1, max_length=36)
    to_currency: str = Field(..., min_length=1, max_length=36)
    rate: Decimal = Field(
        ..., gt=0, le=RateConstants.MAX_RATE, decimal_places=RateConstants.RATE_SCALE
    )
    effective_date: date
    notes: str | None = Field(None, max_length=RateConstants.MAX_NOTES_LENGTH)


class ExchangeRateBatchCreate(BaseModel):
    """Schema for entering several rates at once.

    Each rate is checked on its own; rates that fail are reported and the
    others are still stored.
    """

    rates: list[ExchangeRateCreate] = Field(
        ..., min_length=1, max_length=APIConstants.MAX_RATE_BATCH_SIZE
    )


class ExchangeRateUpdate(BaseModel):
    """Schema for updating an exchange rate (partial)."""

    rate: Decimal | None = Field(
        None, gt=0, le=RateConstants.MAX_RATE, decimal_places=RateConstants.RATE_SCALE
    )
    effective_date: date | None = None
    notes: str | None = Field(None, max_length=RateConstants.MAX_NOTES_LENGTH)


class ExchangeRateResponse(BaseModel):
    """Schema for exchange rate response."""

    id: uuid.UUID
    from_currency_id: uuid.UUID
    to_currency_id: uuid.UUID
    from_currency_code: str
    to_currency_code: str
    rate: Decimal
    effective_date: date
    rate_type: RateType
    notes: str | None
    source_rate_id: uuid.UUID | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, rate: ExchangeRate) -> "ExchangeRateResponse":
        """Build the response from a rate loaded together with its currencies."""
        return cls(
            id=rate.id,
            from_currency_id=rate.from_currency_id,
            to_currency_id=rate.to_currency_id,
            from_currency_code=rate.from_currency.code,
            to_currency_code=rate.to_currency.code,
            rate=rate.rate,
            effective_date=rate.effective_date,
            rate_type=rate.rate_type,
            notes=rate.notes,
            source_rate_id=rate.source_rate_id,
            created_at=rate.created_at,
            updated_at=rate.updated_at,
        )


class DerivationSummary(BaseModel):
    """Outcome of one regeneration of derived (AUTO) rates."""

    effective_date: date
    reverse_count: int = 0
    transitive_count: int = 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> int:
        return self.reverse_count + self.transitive_count


class ExchangeRateMutationResponse(BaseModel):
    """Schema returned by rate create/update/delete and regeneration."""

    rate: ExchangeRateResponse | None = None
    derivation: DerivationSummary
    warnings: list[str] = Field(default_factory=list)


class RateBatchError(BaseModel):
    """A rate of a batch that was not stored, by position in the request."""

    index: int
    from_currency: str
    to_currency: str
    detail: str
    error_code: str | None = None


class ExchangeRateBatchResponse(BaseModel):
    """Schema returned by batch rate entry.

    ``derivation`` is None when no rate of the batch was stored.
    """

    rates: list[ExchangeRateResponse]
    errors: list[RateBatchError] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    derivation: DerivationSummary | None = None


class MarketRateSnapshot(BaseModel):
    """Payload of the market rate provider.

    Example:
        {"base": "USD", "date": "2024-01-15", "rates": {"EUR": 0.92, "CNY": 7.1}}
    """

    base: str = Field(..., min_length=1)
    date: date
    rates: dict[str, Any]

    def parsed_rates(self) -> tuple[dict[str, Decimal], list[str]]:
        """Split provider entries into usable rates and rejected codes.

        Returns:
            Tuple of ({CODE: rate}, [rejected codes]). Entries that are not
            positive numbers up to ``MAX_RATE`` are rejected individually.
        """
        usable: dict[str, Decimal] = {}
        rejected: list[str] = []

        for code, value in self.rates.items():
            if isinstance(value, bool) or not isinstance(value, (int, float, str)):
                rejected.append(code)
                continue
            try:
                rate = Decimal(str(value))
                if not rate.is_finite() or not 0 < rate <= RateConstants.MAX_RATE:
                    raise InvalidOperation
                rate = rate.quantize(RateConstants.RATE_QUANTUM)
            except InvalidOperation:
                rejected.append(code)
                continue
            if rate == 0:
                rejected.append(code)
                continue
            usable[code.upper()] = rate

        return usable, rejected


class RateRefreshResponse(BaseModel):
    """Schema for a market rate refresh result."""

    base_currency: str | None
    updated_count: int = 0
    skipped_currencies: list[str] = Field(default_factory=list)
    user_rate_conflicts: list[str] = Field(default_factory=list)
    effective_date: date | None = None
    skipped: bool = False
    skip_reason: str | None = None
    derivation: DerivationSummary | None = None


class MissingRate(BaseModel):
    """An enabled currency that cannot be converted into the base currency."""

    currency_id: uuid.UUID
    currency_code: str
    base_currency_id: uuid.UUID
    base_currency_code: str


class StaleRate(BaseModel):
    """A market rate that has not been refreshed for too long."""

    rate_id: uuid.UUID
    from_currency_code: str
    to_currency_code: str
    effective_date: date
    age_days: int


class RateIntegrityReport(BaseModel):
    """Gaps and stale data in a user's rates as of a date."""

    as_of: date
    missing_rates: list[MissingRate]
    stale_rates: list[StaleRate]
