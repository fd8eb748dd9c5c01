# backend/wealth_engine/schemas/validators.py
"""
Reusable validation functions for the persisted document schemas.

Stored documents were written by older clients and are often partially
populated, so these validators normalize rather than reject:
- Numbers: None / NaN / garbage → 0
- Dates: ISO timestamps cut to their date part
- Currency codes: trimmed and upper-cased
"""

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from wealth_engine.utils.numbers import coerce_decimal

# Currency: ISO 4217 format (3 uppercase letters)
CURRENCY_PATTERN = re.compile(r'^[A-Z]{3}$')

# Length of "YYYY-MM-DD"
ISO_DATE_LENGTH = 10


def coerce_amount(value: Any) -> Decimal:
    """Numeric field: missing or non-finite values become 0."""
    return coerce_decimal(value)


def coerce_lot_date(value: Any) -> Any:
    """
    Lot date: accept "2024-01-05", "2024-01-05T10:00:00.000Z" or a datetime.

    Strings are cut to their first 10 characters so pydantic parses them as
    a plain date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return value.strip()[:ISO_DATE_LENGTH]
    return value


def normalize_currency(value: Any) -> str:
    """
    Currency code: trimmed and upper-cased; empty stays empty.

    Raises:
        ValueError: If a non-empty value is not three letters
    """
    if value is None:
        return ""
    normalized = str(value).strip().upper()
    if normalized and not CURRENCY_PATTERN.match(normalized):
        raise ValueError(f"Invalid currency code: '{value}'. Must be 3 letters (ISO 4217)")
    return normalized


def normalize_symbol(value: Any) -> str:
    """Symbol: trimmed and upper-cased."""
    if value is None:
        return ""
    return str(value).strip().upper()
