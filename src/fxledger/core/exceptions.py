"""Centralized exception hierarchy and handlers for the application.

All services and routes raise exceptions from this hierarchy rather than
generic exceptions or HTTPException directly. The registered handler turns
them into JSON responses with the matching HTTP status code.

Exception Hierarchy:
    AppException (base)
    ├── ValidationError (400)
    │   └── DuplicateRateError (400)
    ├── AuthenticationError (401)
    ├── NotFoundError (404)
    │   └── CurrencyNotFoundError (404)
    ├── ConflictError (409)
    │   └── CurrencyInUseError (409)
    ├── ExternalAPIError (503)
    └── DerivationStorageError (500)

A missing conversion rate is not an exception: the conversion service reports
it through ``ConversionResult.success = False``.

Usage in Services:
    from fxledger.core.exceptions import ValidationError

    if from_currency_id == to_currency_id:
        raise ValidationError("Source and target currency must differ")
"""

import logging
from typing import Any

from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppException(Exception):
    """
    Base exception class for all application errors.

    Attributes:
        status_code: HTTP status code for this error type
        detail: User-facing error message
        error_code: Machine-readable error code (optional)
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail: str = "Internal server error"
    error_code: str | None = None

    def __init__(
        self,
        detail: str | None = None,
        *,
        error_code: str | None = None,
    ) -> None:
        """
        Initialize the exception.

        Args:
            detail: Custom error message (overrides class default)
            error_code: Machine-readable error identifier
        """
        self.detail = detail or self.__class__.detail
        self.error_code = error_code or self.__class__.error_code
        super().__init__(self.detail)


class ValidationError(AppException):
    """
    Raised when input validation fails.

    Used for invalid request parameters, malformed data, or constraint violations.
    Maps to HTTP 400 Bad Request.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Validation error"
    error_code = "VALIDATION_ERROR"


class DuplicateRateError(ValidationError):
    """
    Raised when a user or market rate would collide with an existing one.

    Only one rate may exist per (user, from currency, to currency, effective
    date). The existing rate is never silently overwritten.
    """

    detail = "An exchange rate already exists for this currency pair and date"
    error_code = "DUPLICATE_RATE"


class AuthenticationError(AppException):
    """
    Raised when authentication fails.

    Maps to HTTP 401 Unauthorized.
    """

    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Authentication failed"
    error_code = "AUTHENTICATION_ERROR"


class NotFoundError(AppException):
    """
    Raised when a requested resource is not found.

    Maps to HTTP 404 Not Found.
    """

    status_code = status.HTTP_404_NOT_FOUND
    detail = "Resource not found"
    error_code = "NOT_FOUND"


class CurrencyNotFoundError(NotFoundError):
    """
    Raised when a currency code or id does not resolve for a user.

    Only global currencies and the user's own custom currencies are visible,
    so another user's custom currency is reported as not found as well.
    """

    detail = "Currency not found"
    error_code = "CURRENCY_NOT_FOUND"


class ConflictError(AppException):
    """
    Raised when there's a conflict in the operation.

    Maps to HTTP 409 Conflict.
    """

    status_code = status.HTTP_409_CONFLICT
    detail = "Resource conflict"
    error_code = "CONFLICT"


class CurrencyInUseError(ConflictError):
    """Raised when a currency cannot be disabled or removed while still referenced."""

    detail = "Currency is still in use"
    error_code = "CURRENCY_IN_USE"


class ExternalAPIError(AppException):
    """
    Raised when an external API call fails.

    Used when the market rate provider is unavailable or returns an
    unusable payload. Maps to HTTP 503 Service Unavailable.
    """

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    detail = "External service unavailable"
    error_code = "EXTERNAL_API_ERROR"


class DerivationStorageError(AppException):
    """
    Raised when derived rates could not be written.

    The surrounding transaction is rolled back, so the previous set of
    derived rates and the triggering rate change are both left untouched.
    """

    detail = "Failed to store derived exchange rates"
    error_code = "DERIVATION_STORAGE_FAILURE"


async def app_exception_handler(
    request: Request,
    exc: AppException,
) -> JSONResponse:
    """
    Handle application exceptions and convert to HTTP responses.

    Args:
        request: FastAPI request object
        exc: The exception instance

    Returns:
        JSONResponse with error details and HTTP status code

    Response Format:
        {
            "detail": "User-facing error message",
            "error_code": "MACHINE_READABLE_CODE"  # optional
        }
    """
    if exc.status_code >= 500:
        logger.error(
            f"{exc.__class__.__name__}: {exc.detail}",
            exc_info=True,
            extra={
                "status_code": exc.status_code,
                "error_code": exc.error_code,
                "request_path": request.url.path,
            },
        )
    else:
        logger.warning(
            f"{exc.__class__.__name__}: {exc.detail}",
            extra={
                "status_code": exc.status_code,
                "error_code": exc.error_code,
                "request_path": request.url.path,
            },
        )

    response_body: dict[str, Any] = {"detail": exc.detail}
    if exc.error_code:
        response_body["error_code"] = exc.error_code

    return JSONResponse(
        status_code=exc.status_code,
        content=response_body,
    )
