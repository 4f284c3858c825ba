"""Pytest fixtures for testing."""

import logging
from collections.abc import AsyncGenerator, Awaitable, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from fxledger.core.rate_limit import limiter
from fxledger.core.security import create_access_token
from fxledger.db.base import Base
from fxledger.db.session import get_db
from fxledger.models.currency import Currency
from fxledger.models.user import User
from fxledger.services import currency_service
from main import app

# Test database URL (SQLite in-memory for fast tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

GLOBAL_CURRENCIES = [
    ("USD", "US Dollar", "$", 2),
    ("EUR", "Euro", "€", 2),
    ("CNY", "Chinese Yuan", "¥", 2),
    ("GBP", "British Pound", "£", 2),
    ("JPY", "Japanese Yen", "¥", 0),
]


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_db(test_engine) -> AsyncGenerator[AsyncSession]:
    """Create a test database session."""
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session_maker() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(test_db: AsyncSession) -> AsyncGenerator[AsyncClient]:
    """Create a test client with database override."""

    async def override_get_db() -> AsyncGenerator[AsyncSession]:
        yield test_db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()


async def _create_user(db: AsyncSession, username: str, is_active: bool = True) -> User:
    user = User(email=f"{username}@example.com", username=username, is_active=is_active)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture(scope="function")
async def test_user(test_db: AsyncSession) -> User:
    """Create a test user."""
    return await _create_user(test_db, "testuser")


@pytest_asyncio.fixture(scope="function")
async def other_user(test_db: AsyncSession) -> User:
    """Create a second user whose data must stay invisible to test_user."""
    return await _create_user(test_db, "otheruser")


@pytest_asyncio.fixture(scope="function")
async def inactive_user(test_db: AsyncSession) -> User:
    """Create an inactive user."""
    return await _create_user(test_db, "inactiveuser", is_active=False)


@pytest.fixture(scope="function")
def auth_headers(test_user: User) -> dict[str, str]:
    """Authorization headers with a token for test_user."""
    token = create_access_token(data={"sub": test_user.username})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture(scope="function")
async def currencies(test_db: AsyncSession) -> dict[str, Currency]:
    """Seed the global currencies, keyed by code."""
    seeded = {
        code: Currency(code=code, name=name, symbol=symbol, decimal_places=places)
        for code, name, symbol, places in GLOBAL_CURRENCIES
    }
    test_db.add_all(seeded.values())
    await test_db.commit()
    return seeded


@pytest_asyncio.fixture(scope="function")
async def custom_usd(test_db: AsyncSession, test_user: User, currencies) -> Currency:
    """A custom USD owned by test_user, shadowing the global USD."""
    currency = Currency(
        code="USD",
        name="Ledger Dollar",
        symbol="$",
        decimal_places=4,
        owner_id=test_user.id,
    )
    test_db.add(currency)
    await test_db.commit()
    return currency


@pytest.fixture(scope="function")
def enable(
    test_db: AsyncSession, test_user: User
) -> Callable[..., Awaitable[None]]:
    """Enable currencies for test_user by code or id."""
    user_id = test_user.id

    async def _enable(*references: str) -> None:
        for reference in references:
            await currency_service.enable_currency(test_db, user_id, reference)

    return _enable


@pytest.fixture(scope="function")
def propagate_logs(monkeypatch: pytest.MonkeyPatch) -> None:
    """Let caplog see records of the application loggers."""
    monkeypatch.setattr(logging.getLogger("fxledger"), "propagate", True)


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> None:
    """Start every test with empty rate limit counters."""
    limiter.reset()
