# tests/utils/test_date_utils.py
"""
Tests for calendar helpers.
"""

from datetime import date, datetime

import pytest

from wealth_engine.utils.date_utils import (
    as_datetime,
    date_range,
    day_label,
    day_of,
    month_key,
    month_label,
    shift_months,
    week_start,
)


class TestWeekStart:
    """Tests for week_start (Sunday-based weeks)."""

    @pytest.mark.parametrize("day,expected", [
        (date(2024, 1, 7), date(2024, 1, 7)),     # Sunday
        (date(2024, 1, 8), date(2024, 1, 7)),     # Monday
        (date(2024, 1, 13), date(2024, 1, 7)),    # Saturday
        (date(2024, 1, 3), date(2023, 12, 31)),   # across the year boundary
    ])
    def test_sunday_of_week(self, day, expected):
        assert week_start(day) == expected


class TestLabels:
    def test_day_label(self):
        assert day_label(date(2024, 1, 5)) == "5 Jan"

    def test_month_label_two_digit_year(self):
        assert month_label(date(2009, 12, 1)) == "Dec 09"

    def test_month_key_zero_padded(self):
        assert month_key(date(2024, 3, 31)) == "2024-03"


class TestShiftMonths:
    @pytest.mark.parametrize("start,months,expected", [
        (date(2024, 3, 31), -1, date(2024, 2, 29)),
        (date(2023, 3, 31), -1, date(2023, 2, 28)),
        (date(2024, 1, 15), -3, date(2023, 10, 15)),
        (date(2024, 5, 31), -1, date(2024, 4, 30)),
        (date(2024, 11, 30), 2, date(2025, 1, 30)),
        (date(2024, 6, 1), -12, date(2023, 6, 1)),
    ])
    def test_shift_clamps_day(self, start, months, expected):
        assert shift_months(start, months) == expected


class TestConversions:
    def test_day_of_datetime(self):
        assert day_of(datetime(2024, 1, 5, 23, 59)) == date(2024, 1, 5)

    def test_day_of_date(self):
        assert day_of(date(2024, 1, 5)) == date(2024, 1, 5)

    def test_as_datetime_promotes_to_midnight(self):
        assert as_datetime(date(2024, 1, 5)) == datetime(2024, 1, 5)

    def test_date_range_inclusive(self):
        days = date_range(date(2024, 2, 27), date(2024, 3, 1))

        assert days == [date(2024, 2, 27), date(2024, 2, 28), date(2024, 2, 29), date(2024, 3, 1)]

    def test_date_range_empty_when_reversed(self):
        assert date_range(date(2024, 3, 2), date(2024, 3, 1)) == []
