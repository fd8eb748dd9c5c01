# backend/wealth_engine/utils/date_utils.py
"""
Date utility functions for the Wealth Engine.

Shared calendar helpers for the net worth reconstruction and the time-bucket
aggregator. Labels use fixed English month abbreviations so output does not
depend on the process locale.

Usage:
    from wealth_engine.utils.date_utils import week_start, day_label

    week_start(date(2024, 1, 3))   # date(2023, 12, 31), the Sunday
    day_label(date(2024, 1, 5))    # "5 Jan"
"""

from datetime import date, datetime, timedelta

MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def day_of(value: date | datetime) -> date:
    """Calendar day of a date or datetime."""
    if isinstance(value, datetime):
        return value.date()
    return value


def as_datetime(value: date | datetime) -> datetime:
    """Promote a date to midnight; datetimes pass through."""
    if isinstance(value, datetime):
        return value
    return datetime(value.year, value.month, value.day)


def week_start(d: date) -> date:
    """
    Sunday starting the week that contains ``d``.

    date.weekday() counts Monday as 0, so Sunday (6) maps to an offset of 0
    and Monday to an offset of 1.
    """
    return d - timedelta(days=(d.weekday() + 1) % 7)


def most_recent_sunday(d: date) -> date:
    """Latest Sunday on or before ``d``."""
    return week_start(d)


def month_key(d: date) -> str:
    """Bucket key "YYYY-MM"."""
    return f"{d.year:04d}-{d.month:02d}"


def day_label(d: date) -> str:
    """Label like "5 Jan"."""
    return f"{d.day} {MONTH_ABBREVIATIONS[d.month - 1]}"


def month_label(d: date) -> str:
    """Label like "Jan 24"."""
    return f"{MONTH_ABBREVIATIONS[d.month - 1]} {d.year % 100:02d}"


def shift_months(d: date, months: int) -> date:
    """
    Move ``d`` by a number of calendar months, clamping the day.

    Example:
        >>> shift_months(date(2024, 3, 31), -1)
        date(2024, 2, 29)
    """
    index = d.year * 12 + (d.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    for day in (d.day, 30, 29, 28):
        try:
            return d.replace(year=year, month=month, day=day)
        except ValueError:
            continue
    raise ValueError(f"Cannot shift {d} by {months} months")


def date_range(start_date: date, end_date: date) -> list[date]:
    """Every calendar day from start to end, inclusive."""
    days = []
    current = start_date
    while current <= end_date:
        days.append(current)
        current += timedelta(days=1)
    return days
