"""Request logging middleware."""

import logging
import time
from collections.abc import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

QUIET_PATHS = frozenset({"/health", "/health/db", "/docs", "/openapi.json", "/redoc"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each API request with its status code and duration.

    Adds an ``X-Process-Time`` header (seconds, three decimals) to every
    response. Health checks and documentation pages are not logged.
    """

    def __init__(self, app: ASGIApp, quiet_paths: frozenset[str] = QUIET_PATHS) -> None:
        super().__init__(app)
        self._quiet_paths = quiet_paths

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        quiet = path in self._quiet_paths

        if not quiet:
            client_host = request.client.host if request.client else "unknown"
            logger.info(f"→ {request.method} {path} from {client_host}")

        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        if not quiet:
            # Client and server errors are logged one level up
            log_level = logging.WARNING if response.status_code >= 400 else logging.INFO
            logger.log(
                log_level,
                f"← {request.method} {path} - {response.status_code} ({duration:.3f}s)",
            )

        response.headers["X-Process-Time"] = f"{duration:.3f}"
        return response
