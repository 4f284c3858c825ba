"""Currency model: global reference currencies and per-user custom currencies."""

import uuid
from dataclasses import dataclass

from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column

from fxledger.db.base import Base, TimestampMixin


@dataclass(frozen=True)
class GlobalScope:
    """Currency seeded for every user."""

    def visible_to(self, user_id: int) -> bool:
        return True


@dataclass(frozen=True)
class OwnedBy:
    """Custom currency created by one user and visible only to them."""

    user_id: int

    def visible_to(self, user_id: int) -> bool:
        return self.user_id == user_id


CurrencyScope = GlobalScope | OwnedBy


class Currency(Base, TimestampMixin):
    """Currency record.

    A code is not unique on its own: a user may shadow a global ``USD`` with a
    custom ``USD`` (for example with a different number of decimal places).
    Everything inside the application refers to currencies by ``id``; codes
    are only resolved at the API boundary, see
    ``fxledger.services.currency_service.resolve_by_code``.

    Attributes:
        id: Unique identifier
        code: Upper-case ISO-like code, 3 to 10 characters
        name: Display name (e.g., "US Dollar")
        symbol: Currency symbol (e.g., "$")
        decimal_places: Number of minor unit digits used when displaying amounts
        owner_id: Owning user for custom currencies, None for global ones
    """

    __tablename__ = "currencies"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, index=True)
    code: Mapped[str] = mapped_column(String(10), index=True)
    name: Mapped[str] = mapped_column(String(100))
    symbol: Mapped[str] = mapped_column(String(10))
    decimal_places: Mapped[int] = mapped_column(Integer, default=2)
    owner_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True
    )

    __table_args__ = (
        UniqueConstraint("code", "owner_id", name="uq_currency_code_owner"),
        # NULL owners never collide in a unique constraint
        Index(
            "uq_currencies_global_code",
            "code",
            unique=True,
            postgresql_where=text("owner_id IS NULL"),
            sqlite_where=text("owner_id IS NULL"),
        ),
    )

    @property
    def scope(self) -> CurrencyScope:
        if self.owner_id is None:
            return GlobalScope()
        return OwnedBy(self.owner_id)

    @property
    def is_custom(self) -> bool:
        return self.owner_id is not None

    def __repr__(self) -> str:
        return f"<Currency {self.code} {self.scope}>"
