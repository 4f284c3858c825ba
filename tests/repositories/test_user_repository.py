"""Tests for UserRepository."""

import pytest

from fxledger.models.user import User
from fxledger.repositories.user import UserRepository

pytestmark = pytest.mark.integration


async def test_get_by_username(test_db, test_user):
    repo = UserRepository(User, test_db)

    user = await repo.get_by_username("testuser")

    assert user is not None
    assert user.id == test_user.id
    assert await repo.get_by_username("nobody") is None


async def test_settings_are_created_once(test_db, test_user):
    """The first lookup creates the default settings row, later ones reuse it."""
    repo = UserRepository(User, test_db)
    assert await repo.get_settings(test_user.id) is None

    first = await repo.get_or_create_settings(test_user.id)
    second = await repo.get_or_create_settings(test_user.id)

    assert first is second
    assert first.auto_update_rates is False
    assert first.base_currency_id is None
