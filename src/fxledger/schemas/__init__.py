"""Schemas package."""

from fxledger.schemas.auth import TokenData
from fxledger.schemas.conversion import (
    BatchConversionRequest,
    BatchConversionResult,
    ConversionItem,
    ConversionResult,
)
from fxledger.schemas.currency import (
    CurrencyBase,
    CurrencyCreate,
    CurrencyReference,
    CurrencyResponse,
    EnabledCurrencyCreate,
    EnabledCurrencyResponse,
    UserSettingsResponse,
    UserSettingsUpdate,
)
from fxledger.schemas.exchange_rate import (
    DerivationSummary,
    ExchangeRateCreate,
    ExchangeRateMutationResponse,
    ExchangeRateResponse,
    ExchangeRateUpdate,
    MarketRateSnapshot,
    MissingRate,
    RateRefreshResponse,
)

__all__ = [
    # Authentication schemas
    "TokenData",
    # Currency schemas
    "CurrencyBase",
    "CurrencyCreate",
    "CurrencyReference",
    "CurrencyResponse",
    "EnabledCurrencyCreate",
    "EnabledCurrencyResponse",
    "UserSettingsResponse",
    "UserSettingsUpdate",
    # Exchange rate schemas
    "DerivationSummary",
    "ExchangeRateCreate",
    "ExchangeRateMutationResponse",
    "ExchangeRateResponse",
    "ExchangeRateUpdate",
    "MarketRateSnapshot",
    "MissingRate",
    "RateRefreshResponse",
    # Conversion schemas
    "BatchConversionRequest",
    "BatchConversionResult",
    "ConversionItem",
    "ConversionResult",
]
