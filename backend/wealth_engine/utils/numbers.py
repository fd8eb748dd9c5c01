# backend/wealth_engine/utils/numbers.py
"""
Numeric coercion helpers.

Stored portfolio documents are often partially populated (a lot without a
fee, a balance saved as NaN by an older client). The engine treats any
missing or non-finite number as zero instead of failing the whole calculation.

Usage:
    from wealth_engine.utils.numbers import coerce_decimal, round_money

    fee = coerce_decimal(raw.get("fee"))     # None / NaN / "abc" -> Decimal("0")
    total = round_money(value)               # Decimal("12.35")
"""

import math
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

ZERO = Decimal("0")
CENT = Decimal("0.01")


def to_decimal_or_none(value: Any) -> Decimal | None:
    """
    Convert a value to Decimal, returning None for missing or non-finite input.

    Floats go through str() so 0.1 becomes Decimal("0.1"), not the binary
    expansion.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    try:
        if isinstance(value, float):
            if math.isnan(value) or math.isinf(value):
                return None
            return Decimal(str(value))
        result = Decimal(str(value).strip())
    except (InvalidOperation, TypeError, ValueError):
        return None
    return result if result.is_finite() else None


def coerce_decimal(value: Any) -> Decimal:
    """Convert a value to Decimal, treating missing or non-finite input as 0."""
    result = to_decimal_or_none(value)
    return ZERO if result is None else result


def round_money(value: Decimal) -> Decimal:
    """Round a monetary amount to cents (half-up)."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)
