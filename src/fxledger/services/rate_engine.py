"""Exchange rate derivation engine.

Given the currencies a user has enabled and the user's authoritative (USER
and API) rates, computes every rate that can be derived from them:

1. One authoritative rate is kept per ordered pair: USER beats API, then the
   latest effective date wins, then the most recent write.
2. Reverse rates: ``B→A = 1 / rate(A→B)`` for every kept rate whose reverse
   is not itself known.
3. Single-hop transitive rates: ``X→Y = rate(X→Z) * rate(Z→Y)`` for every
   pair still without a rate, using the first intermediate ``Z`` that works.
   Pairs composed earlier in the same pass count as known.

Currencies are always visited in the same order (code, custom before
global, id), so the same inputs always produce the same derived rates.

This module does no I/O. ``fxledger.services.derivation_service`` loads the
inputs and stores the output.
"""

import enum
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import ROUND_HALF_EVEN, Decimal

from fxledger.core.constants import RateConstants
from fxledger.models.currency import Currency
from fxledger.models.exchange_rate import ExchangeRate

Pair = tuple[uuid.UUID, uuid.UUID]

# Largest magnitude a Numeric(20, 10) column holds
_STORABLE_LIMIT = Decimal(10) ** (RateConstants.RATE_PRECISION - RateConstants.RATE_SCALE)


class DerivationMethod(str, enum.Enum):
    REVERSE = "reverse"
    TRANSITIVE = "transitive"


@dataclass(frozen=True)
class DerivedRate:
    """A rate produced by the engine, not yet stored.

    Attributes:
        from_currency_id: Source currency
        to_currency_id: Target currency
        rate: Rate rounded to the storage scale
        method: How the rate was derived
        via_currency_id: Intermediate currency of a transitive rate
        source_rate_id: Authoritative rate that a reverse rate inverts
    """

    from_currency_id: uuid.UUID
    to_currency_id: uuid.UUID
    rate: Decimal
    method: DerivationMethod
    via_currency_id: uuid.UUID | None = None
    source_rate_id: uuid.UUID | None = None


def currency_sort_key(currency: Currency) -> tuple[str, int, str]:
    """Stable visiting order: code, then custom before global, then id."""
    return currency.code, 0 if currency.is_custom else 1, str(currency.id)


def quantize_rate(rate: Decimal) -> Decimal:
    """Round a rate half-even to the storage scale."""
    return rate.quantize(RateConstants.RATE_QUANTUM, rounding=ROUND_HALF_EVEN)


def _storable(rate: Decimal) -> Decimal | None:
    """Quantized rate, or None if it rounds to zero or overflows the column."""
    # Checked before quantizing: quantize fails past the context precision
    if not Decimal(0) < rate < _STORABLE_LIMIT:
        return None
    rate = quantize_rate(rate)
    return rate if Decimal(0) < rate < _STORABLE_LIMIT else None


def _naive_utc(moment: datetime | None) -> datetime:
    # SQLite hands back naive datetimes; freshly written rows are aware
    if moment is None:
        return datetime.min
    if moment.tzinfo is not None:
        return moment.astimezone(UTC).replace(tzinfo=None)
    return moment


def _authority(edge: ExchangeRate) -> tuple:
    return -edge.rate_type.priority, edge.effective_date, _naive_utc(edge.updated_at)


def select_authoritative(edges: Iterable[ExchangeRate]) -> dict[Pair, ExchangeRate]:
    """Keep the most authoritative USER/API rate of every ordered pair.

    AUTO rates in ``edges`` are ignored.

    Returns:
        Mapping of (from_currency_id, to_currency_id) to the winning rate
    """
    selected: dict[Pair, ExchangeRate] = {}
    for edge in edges:
        if not edge.rate_type.is_authoritative:
            continue
        current = selected.get(edge.pair)
        if current is None or _authority(edge) > _authority(current):
            selected[edge.pair] = edge
    return selected


def derive_rates(
    currencies: Iterable[Currency],
    edges: Iterable[ExchangeRate],
) -> list[DerivedRate]:
    """Compute all derived rates for one currency universe.

    Args:
        currencies: The user's enabled currencies
        edges: The user's USER/API rates; rates touching a currency outside
            ``currencies`` are ignored

    Returns:
        Reverse rates first, then transitive rates, each in visiting order.
        Rates that round to zero or do not fit the storage column are left
        out.

    Example:
        >>> # USD→CNY = 7.0 and USD→EUR = 0.9 are known
        >>> derived = derive_rates([cny, eur, usd], [usd_cny, usd_eur])
        >>> [(d.method.value, d.rate) for d in derived][:2]
        [('reverse', Decimal('0.1428571429')), ('reverse', Decimal('1.1111111111'))]
    """
    ordered = sorted(currencies, key=currency_sort_key)
    universe = {currency.id for currency in ordered}
    position = {currency.id: index for index, currency in enumerate(ordered)}

    known = {
        pair: edge
        for pair, edge in select_authoritative(edges).items()
        if pair[0] in universe and pair[1] in universe and edge.rate > 0
    }
    graph: dict[Pair, Decimal] = {pair: Decimal(edge.rate) for pair, edge in known.items()}
    derived: list[DerivedRate] = []

    for pair in sorted(known, key=lambda p: (position[p[0]], position[p[1]])):
        from_id, to_id = pair
        if (to_id, from_id) in known:
            continue
        rate = _storable(Decimal(1) / graph[pair])
        if rate is None:
            continue
        graph[(to_id, from_id)] = rate
        derived.append(
            DerivedRate(
                from_currency_id=to_id,
                to_currency_id=from_id,
                rate=rate,
                method=DerivationMethod.REVERSE,
                source_rate_id=known[pair].id,
            )
        )

    for x in ordered:
        for y in ordered:
            if x.id == y.id or (x.id, y.id) in graph:
                continue
            for z in ordered:
                if z.id == x.id or z.id == y.id:
                    continue
                first = graph.get((x.id, z.id))
                second = graph.get((z.id, y.id))
                if first is None or second is None:
                    continue
                rate = _storable(first * second)
                if rate is None:
                    continue
                graph[(x.id, y.id)] = rate
                derived.append(
                    DerivedRate(
                        from_currency_id=x.id,
                        to_currency_id=y.id,
                        rate=rate,
                        method=DerivationMethod.TRANSITIVE,
                        via_currency_id=z.id,
                    )
                )
                break

    return derived
