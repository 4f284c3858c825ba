"""Conversion schemas for request/response validation."""

import uuid
from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from fxledger.core.constants import APIConstants


class ConversionResult(BaseModel):
    """Outcome of converting one amount.

    A missing rate is not an error: ``success`` is False, ``converted_amount``
    equals the original amount and ``error`` says why.
    """

    from_currency_id: uuid.UUID
    to_currency_id: uuid.UUID | None
    original_amount: Decimal
    converted_amount: Decimal
    rate: Decimal | None = None
    rate_date: date | None = None
    success: bool
    error: str | None = None


class ConversionItem(BaseModel):
    """One amount of a batch conversion; the currency is a code or an id."""

    amount: Decimal
    currency: str = Field(..., min_length=1, max_length=36)


class BatchConversionRequest(BaseModel):
    """Schema for converting several amounts into one target currency.

    When ``to_currency`` is omitted, amounts are converted into the user's
    base currency.
    """

    items: list[ConversionItem] = Field(..., max_length=APIConstants.MAX_BATCH_SIZE)
    to_currency: str | None = Field(None, min_length=1, max_length=36)
    as_of: date | None = None


class BatchConversionResult(BaseModel):
    """Per-item results plus their sum in the target currency."""

    results: list[ConversionResult]
    total: Decimal
    has_missing_rates: bool
