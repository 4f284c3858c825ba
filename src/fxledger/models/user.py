"""User and per-user settings models."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from fxledger.db.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    """User model."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class UserSettings(Base, TimestampMixin):
    """Currency settings of a user.

    Attributes:
        user_id: Owner of the settings (one row per user)
        base_currency_id: Currency that dashboards and reports convert into
        auto_update_rates: Whether market rates may be refreshed automatically
        last_rate_update: When market rates were last written for this user
    """

    __tablename__ = "user_settings"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    base_currency_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("currencies.id", ondelete="SET NULL"), nullable=True
    )
    auto_update_rates: Mapped[bool] = mapped_column(Boolean, default=False)
    last_rate_update: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
