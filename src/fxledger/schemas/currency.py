"""Currency schemas for request/response validation."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from fxledger.core.constants import CurrencyConstants


class CurrencyBase(BaseModel):
    """Base currency schema."""

    code: str = Field(
        ...,
        min_length=CurrencyConstants.MIN_CODE_LENGTH,
        max_length=CurrencyConstants.MAX_CODE_LENGTH,
        pattern="^[A-Za-z0-9]+$",
    )
    name: str = Field(..., min_length=1, max_length=100)
    symbol: str = Field(..., min_length=1, max_length=10)
    decimal_places: int = Field(
        CurrencyConstants.DEFAULT_DECIMAL_PLACES,
        ge=0,
        le=CurrencyConstants.MAX_DECIMAL_PLACES,
    )

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        return value.upper()


class CurrencyCreate(CurrencyBase):
    """Schema for creating a custom currency."""

    pass


class CurrencyResponse(CurrencyBase):
    """Schema for currency response."""

    id: uuid.UUID
    is_custom: bool

    model_config = {"from_attributes": True}


class CurrencyReference(BaseModel):
    """A currency given either by code or by id."""

    currency: str = Field(..., min_length=1, max_length=36, description="Currency code or id")


class EnabledCurrencyCreate(CurrencyReference):
    """Schema for enabling a currency for the current user."""

    order: int | None = Field(None, ge=0)


class EnabledCurrencyResponse(BaseModel):
    """Schema for an enabled currency."""

    currency_id: uuid.UUID
    is_active: bool
    order: int
    currency: CurrencyResponse

    model_config = {"from_attributes": True}


class UserSettingsResponse(BaseModel):
    """Schema for the currency settings of a user."""

    base_currency_id: uuid.UUID | None
    auto_update_rates: bool
    last_rate_update: datetime | None

    model_config = {"from_attributes": True}


class UserSettingsUpdate(BaseModel):
    """Schema for changing the rate refresh preference of a user."""

    auto_update_rates: bool
