"""Database session management with transaction utilities.

This module provides:
- AsyncSession factory for dependency injection
- ``transactional``, the unit-of-work context manager every rate mutation
  runs inside, so an edge write and the regeneration of derived rates are
  committed or rolled back together
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from fxledger.core.config import settings

logger = logging.getLogger(__name__)

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DB_ECHO,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_timeout=settings.DB_POOL_TIMEOUT,
    pool_recycle=settings.DB_POOL_RECYCLE,
    pool_pre_ping=True,
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency for route handlers.

    Commits when the request succeeds, rolls back when it raises.

    Yields:
        AsyncSession: Database session for the request
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@asynccontextmanager
async def transactional(
    db: AsyncSession,
    *,
    commit: bool = True,
) -> AsyncGenerator[AsyncSession, None]:
    """Explicit transaction context manager with automatic commit/rollback.

    Args:
        db: The database session
        commit: Whether to commit on success (default: True)

    Yields:
        AsyncSession: The database session

    Raises:
        Exception: Re-raises any exception after rollback

    Example:
        ```python
        async with transactional(db):
            await repo.upsert_edge(edge)
            await repo.replace_auto_edges(user_id, derived)
            # Both statements commit together or not at all
        ```
    """
    try:
        yield db
        if commit:
            await db.commit()
            logger.debug("Transaction committed successfully")
    except Exception as e:
        await db.rollback()
        logger.error(f"Transaction rolled back due to error: {type(e).__name__}: {e}")
        raise
