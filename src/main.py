"""FastAPI application entry point."""

import logging
import logging.config
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from fxledger.api.routes import conversions, currencies, exchange_rates, health
from fxledger.core.config import settings
from fxledger.core.exceptions import AppException, app_exception_handler
from fxledger.core.middleware import RequestLoggingMiddleware
from fxledger.core.rate_limit import limiter, rate_limit_exceeded_handler
from fxledger.db.base import Base
from fxledger.db.session import engine

# Configure logging
logging.config.dictConfig(settings.logging_config())
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan events."""
    logger.info(f"Starting {settings.APP_NAME} ({settings.ENVIRONMENT})")

    # Create tables (use Alembic in production)
    if settings.ENVIRONMENT == "development":
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    yield

    logger.info(f"Shutting down {settings.APP_NAME}")
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    debug=settings.DEBUG,
    lifespan=lifespan,
)

# Add rate limiter to app state
app.state.limiter = limiter

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=settings.CORS_ORIGIN_REGEX,
    allow_credentials=settings.CORS_CREDENTIALS,
    allow_methods=settings.CORS_METHODS,
    allow_headers=settings.CORS_HEADERS,
)

# Added last, so it is the outermost layer
app.add_middleware(RequestLoggingMiddleware)

# Register exception handlers
app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)  # type: ignore[arg-type]

# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(currencies.router, prefix="/api/v1/currencies", tags=["currencies"])
app.include_router(
    exchange_rates.router,
    prefix="/api/v1/exchange-rates",
    tags=["exchange-rates"],
)
app.include_router(conversions.router, prefix="/api/v1/conversions", tags=["conversions"])
