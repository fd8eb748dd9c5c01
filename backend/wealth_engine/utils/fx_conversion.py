# backend/wealth_engine/utils/fx_conversion.py
"""
FX Rate Table and Conversion

An FX table is anchored to one base currency:

    rates[C] = how many units of C one unit of the base buys
    Example: base=USD, rates={"USD": 1, "SGD": 1.35}  →  1 USD = 1.35 SGD

Any pair is derived through the base (cross rate):

    amount_B = amount_A × rates[B] / rates[A]

with direct shortcuts when either side is the base.

Conversion never raises on missing data. Identical currencies return the
amount untouched; a missing table, an unknown currency, or a non-positive
rate returns the amount unconverted. Callers that need to know whether a
conversion was degraded ask ``FxRateTable.supports()`` first.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from wealth_engine.utils.numbers import to_decimal_or_none

ONE = Decimal("1")


@dataclass(frozen=True)
class FxRateTable:
    """
    Snapshot of FX rates anchored to ``base``.

    Attributes:
        base: Anchor currency (ISO 4217, upper case)
        rates: Currency → units of that currency per one base unit.
               The base itself is implicitly 1 when absent.
    """

    base: str
    rates: dict[str, Decimal] = field(default_factory=dict)

    def __post_init__(self) -> None:
        base = self.base.strip().upper()
        normalized: dict[str, Decimal] = {}
        for currency, rate in self.rates.items():
            value = to_decimal_or_none(rate)
            if value is not None and value > 0:
                normalized[currency.strip().upper()] = value
        normalized.setdefault(base, ONE)
        object.__setattr__(self, "base", base)
        object.__setattr__(self, "rates", normalized)

    def rate_for(self, currency: str) -> Decimal | None:
        """Units of ``currency`` per base unit, or None if unknown."""
        return self.rates.get(currency.strip().upper())

    def supports(self, currency: str) -> bool:
        return self.rate_for(currency) is not None


def convert(
    amount: Decimal,
    from_currency: str,
    to_currency: str,
    table: FxRateTable | None,
) -> Decimal:
    """
    Convert an amount between currencies through the table's base.

    Example:
        - base=USD, rates={USD: 1, SGD: 1.35}
        - convert(100, "USD", "SGD") → 135
        - convert(135, "SGD", "USD") → 100

    Args:
        amount: Amount in ``from_currency``
        from_currency: Source currency code
        to_currency: Target currency code
        table: Rate table, or None when rates are unavailable

    Returns:
        Converted amount; the original amount when the currencies match or
        the conversion cannot be resolved
    """
    if not from_currency or not to_currency:
        return amount
    if from_currency.strip().upper() == to_currency.strip().upper():
        return amount
    if table is None:
        return amount

    source = from_currency.strip().upper()
    target = to_currency.strip().upper()

    # Two-step through the base keeps the documented formula exact:
    # amount × rate(base→B) / rate(base→A)
    if source == table.base:
        rate_to = table.rate_for(target)
        return amount if rate_to is None else amount * rate_to

    rate_from = table.rate_for(source)
    if rate_from is None:
        return amount
    if target == table.base:
        return amount / rate_from

    rate_to = table.rate_for(target)
    if rate_to is None:
        return amount
    return amount * rate_to / rate_from


def invert_rate(rate: Decimal) -> Decimal:
    """
    Invert an FX rate (1 A = X B  →  1 B = 1/X A).

    Raises:
        ValueError: If rate is zero or negative
    """
    if rate <= 0:
        raise ValueError(f"Cannot invert non-positive rate: {rate}")
    return ONE / rate
