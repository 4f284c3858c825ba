"""Repository layer for database operations.

This package centralizes all database access. Repositories flush but never
commit; services decide where a transaction begins and ends.

Repositories:
    - BaseRepository: Generic get/create/delete for any model
    - UserRepository: Users and their currency settings
    - CurrencyRepository: Visibility-aware currency lookups
    - EnabledCurrencyRepository: The per-user currency universe
    - ExchangeRateRepository: USER/API rate edges and AUTO generations

Usage:
    >>> from fxledger.repositories import CurrencyRepository, ExchangeRateRepository
    >>> from fxledger.models.currency import Currency
    >>> from fxledger.models.exchange_rate import ExchangeRate
    >>>
    >>> # In a service
    >>> usd = await CurrencyRepository(Currency, db).find_visible_by_code(user.id, "USD")
    >>> rates = await ExchangeRateRepository(ExchangeRate, db).list_edges(user.id)
"""

from fxledger.repositories.base import BaseRepository
from fxledger.repositories.currency import CurrencyRepository
from fxledger.repositories.enabled_currency import EnabledCurrencyRepository
from fxledger.repositories.exchange_rate import ExchangeRateRepository
from fxledger.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "CurrencyRepository",
    "EnabledCurrencyRepository",
    "ExchangeRateRepository",
]
