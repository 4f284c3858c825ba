"""Authentication schemas."""

from pydantic import BaseModel


class TokenData(BaseModel):
    """Claims extracted from a verified bearer token."""

    username: str | None = None
