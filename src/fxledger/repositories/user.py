"""User repository for user and user settings lookups."""

from sqlalchemy import select

from fxledger.models.user import User, UserSettings
from fxledger.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for User model.

    Example:
        >>> repo = UserRepository(User, db)
        >>> user = await repo.get_by_username("johndoe")
    """

    async def get_by_username(self, username: str) -> User | None:
        """Get user by username.

        Args:
            username: The username to search for

        Returns:
            User object if found, None otherwise
        """
        result = await self.db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def get_settings(self, user_id: int) -> UserSettings | None:
        """Get the currency settings row of a user, if one was ever written."""
        result = await self.db.execute(select(UserSettings).where(UserSettings.user_id == user_id))
        return result.scalar_one_or_none()

    async def get_or_create_settings(self, user_id: int) -> UserSettings:
        """Get the currency settings of a user, creating the default row on first use.

        Note:
            Caller must commit the transaction.
        """
        user_settings = await self.get_settings(user_id)
        if user_settings is None:
            user_settings = UserSettings(user_id=user_id, auto_update_rates=False)
            self.db.add(user_settings)
            await self.db.flush()
        return user_settings

    async def lock_for_update(self, user_id: int) -> None:
        """Lock a user's row until the end of the current transaction.

        Concurrent regenerations of the same user's derived rates queue up
        behind this lock, so each one sees the generation committed by the
        previous one.
        """
        await self.db.execute(select(User.id).where(User.id == user_id).with_for_update())
