"""Per-user enabled currency model."""

import uuid

from sqlalchemy import Boolean, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fxledger.db.base import Base, TimestampMixin
from fxledger.models.currency import Currency


class EnabledCurrency(Base, TimestampMixin):
    """A currency a user works with.

    The active rows form the user's currency universe: the set of currencies
    the rate engine makes mutually convertible.

    Attributes:
        user_id: Owning user
        currency_id: Enabled currency (global or the user's own custom one)
        is_active: Whether the currency currently takes part in rate derivation
        order: Display order chosen by the user
    """

    __tablename__ = "user_currencies"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    currency_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("currencies.id", ondelete="CASCADE"), index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    order: Mapped[int] = mapped_column(Integer, default=0)

    currency: Mapped[Currency] = relationship(lazy="joined")

    __table_args__ = (UniqueConstraint("user_id", "currency_id", name="uq_user_currency"),)
