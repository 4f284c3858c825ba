"""Exchange rate model: one directed, dated, provenance-tagged rate edge."""

import enum
import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Date,
    Enum,
    ForeignKey,
    Index,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fxledger.core.constants import RateConstants
from fxledger.db.base import Base, TimestampMixin
from fxledger.models.currency import Currency


class RateType(str, enum.Enum):
    """Where a rate comes from.

    USER and API rates are authoritative facts. AUTO rates are derived from
    them by the rate engine and are replaced wholesale on every regeneration.
    """

    USER = "user"
    API = "api"
    AUTO = "auto"

    @property
    def priority(self) -> int:
        """Lower wins: USER beats API beats AUTO."""
        return _PRIORITY[self]

    @property
    def is_authoritative(self) -> bool:
        return self is not RateType.AUTO


_PRIORITY = {RateType.USER: 0, RateType.API: 1, RateType.AUTO: 2}


class ExchangeRate(Base, TimestampMixin):
    """Exchange rate from one currency to another, valid from a date onwards.

    ``1 from_currency = rate to_currency``.

    Attributes:
        id: Unique identifier for the rate
        user_id: Owning user; every user has an independent rate graph
        from_currency_id: Source currency
        to_currency_id: Target currency
        rate: Positive rate
        effective_date: Day from which the rate applies
        rate_type: Provenance (USER, API or AUTO)
        notes: Free-text note; AUTO rates describe how they were derived
        source_rate_id: For reverse AUTO rates, the rate they invert
    """

    __tablename__ = "exchange_rates"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    from_currency_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("currencies.id", ondelete="CASCADE"), index=True
    )
    to_currency_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("currencies.id", ondelete="CASCADE"), index=True
    )
    rate: Mapped[Decimal] = mapped_column(
        Numeric(RateConstants.RATE_PRECISION, RateConstants.RATE_SCALE)
    )
    effective_date: Mapped[date] = mapped_column(Date, index=True)
    rate_type: Mapped[RateType] = mapped_column(Enum(RateType), default=RateType.USER)
    notes: Mapped[str | None] = mapped_column(
        String(RateConstants.MAX_NOTES_LENGTH), nullable=True
    )
    source_rate_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    from_currency: Mapped[Currency] = relationship(foreign_keys=[from_currency_id], lazy="joined")
    to_currency: Mapped[Currency] = relationship(foreign_keys=[to_currency_id], lazy="joined")

    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "from_currency_id",
            "to_currency_id",
            "effective_date",
            name="uq_exchange_rate_user_pair_date",
        ),
        CheckConstraint(
            "from_currency_id <> to_currency_id", name="ck_exchange_rate_distinct_currencies"
        ),
        Index("ix_exchange_rates_user_type", "user_id", "rate_type"),
        Index(
            "ix_exchange_rates_user_pair_date",
            "user_id",
            "from_currency_id",
            "to_currency_id",
            "effective_date",
        ),
    )

    @property
    def pair(self) -> tuple[uuid.UUID, uuid.UUID]:
        return self.from_currency_id, self.to_currency_id
