"""Application-wide constants and configuration values.

Centralizes the magic numbers used by the exchange rate engine, the rate
validators and the API layer. Constants are grouped by concern.
"""

from decimal import Decimal


class RateConstants:
    """Constants for storing and validating exchange rates."""

    # Rates are stored as Numeric(20, 10); derived rates are rounded to this
    # quantum before storage so repeated regeneration writes identical values.
    RATE_PRECISION = 20
    RATE_SCALE = 10
    RATE_QUANTUM = Decimal(1).scaleb(-RATE_SCALE)

    # Upper bound accepted for a user-entered rate
    MAX_RATE = Decimal("1000000")

    # Free-text notes attached to a rate
    MAX_NOTES_LENGTH = 500

    # Relative deviation tolerated between a new rate and the rate implied by
    # the stored ones before a warning is reported
    CHAIN_TOLERANCE = Decimal("0.0001")

    # Market (API) rates older than this many days are reported as stale
    STALE_MARKET_RATE_DAYS = 7


class CurrencyConstants:
    """Constants for currency records."""

    MIN_CODE_LENGTH = 3
    MAX_CODE_LENGTH = 10
    DEFAULT_DECIMAL_PLACES = 2
    MAX_DECIMAL_PLACES = 8


class ConversionConstants:
    """Error messages reported on failed conversions."""

    NO_RATE_PATH = "no rate path"
    CONVERSION_FAILED = "conversion failed"
    NO_BASE_CURRENCY = "no base currency"


class APIConstants:
    """Constants for API behavior, limits, and defaults."""

    # Upper bound for a batch conversion request
    MAX_BATCH_SIZE = 1000

    # Upper bound for a batch rate entry request
    MAX_RATE_BATCH_SIZE = 200
