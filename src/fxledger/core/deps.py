"""Dependencies for FastAPI routes."""

from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from fxledger.core.security import decode_token
from fxledger.db.session import get_db
from fxledger.models.user import User
from fxledger.repositories.user import UserRepository
from fxledger.schemas.auth import TokenData

# Bearer tokens are issued by the identity provider in front of the service
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """
    Get the current authenticated user from the JWT bearer token.

    Args:
        credentials: Bearer credentials from the Authorization header
        db: Database session

    Returns:
        The authenticated, active user

    Raises:
        HTTPException: 401 if the token is missing, invalid or names no
            active user
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise credentials_exception

    try:
        payload = decode_token(credentials.credentials)
        username: str | None = payload.get("sub")

        if username is None:
            raise credentials_exception

        token_data = TokenData(username=username)
    except jwt.InvalidTokenError:
        raise credentials_exception

    user = await UserRepository(User, db).get_by_username(token_data.username or "")

    if user is None or not user.is_active:
        raise credentials_exception

    return user


# Type alias for cleaner dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
