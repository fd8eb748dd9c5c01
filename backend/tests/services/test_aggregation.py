# backend/tests/services/test_aggregation.py
"""
Tests for net worth chart aggregation.

Test Coverage:
- Day passthrough: ordering, labels, idempotence
- Canonical weeks (Sunday buckets, last point wins)
- Months ("YYYY-MM" buckets, "Jan 24" labels)
- Anchored weeks (nearest point to each of the last N Sundays)
- Timeframe windows and their granularity
- Invalid granularity / timeframe
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from wealth_engine.services.exceptions import InvalidGranularityError, InvalidTimeframeError
from wealth_engine.services.networth import (
    Granularity,
    NetWorthPoint,
    Timeframe,
    aggregate,
    aggregate_for_timeframe,
    aggregate_weeks_anchored,
)


def point(d: date, cash: int = 0) -> NetWorthPoint:
    return NetWorthPoint(
        t=datetime(d.year, d.month, d.day, tzinfo=timezone.utc),
        cash=Decimal(cash),
        investments=Decimal("0"),
        debt=Decimal("0"),
    )


def daily(start: date, end: date) -> list[NetWorthPoint]:
    """One point per day, cash = day index."""
    points = []
    current, index = start, 0
    while current <= end:
        points.append(point(current, index))
        current += timedelta(days=1)
        index += 1
    return points


# =============================================================================
# DAY
# =============================================================================

class TestDay:
    def test_passthrough_with_labels(self):
        series = daily(date(2024, 1, 4), date(2024, 1, 6))

        result = aggregate(series, "day")

        assert [p.label for p in result] == ["4 Jan", "5 Jan", "6 Jan"]
        assert [p.cash for p in result] == [p.cash for p in series]

    def test_sorts_by_timestamp(self):
        series = daily(date(2024, 1, 4), date(2024, 1, 6))

        result = aggregate(list(reversed(series)), Granularity.DAY)

        assert [p.t for p in result] == [p.t for p in series]

    def test_idempotent(self):
        once = aggregate(daily(date(2024, 1, 1), date(2024, 1, 10)), "day")

        assert aggregate(once, "day") == once

    def test_empty_series(self):
        assert aggregate([], "week") == []


# =============================================================================
# WEEK
# =============================================================================

class TestWeek:
    def test_sunday_buckets_keep_last_point(self):
        """Mon 1 Jan 2024 … Mon 8 Jan 2024 → Sundays 31 Dec and 7 Jan."""
        series = daily(date(2024, 1, 1), date(2024, 1, 8))

        result = aggregate(series, "week")

        assert [p.label for p in result] == ["31 Dec", "7 Jan"]
        assert [p.t.date() for p in result] == [date(2024, 1, 6), date(2024, 1, 8)]
        assert [p.cash for p in result] == [Decimal(5), Decimal(7)]

    def test_result_does_not_depend_on_input_order(self):
        series = daily(date(2024, 1, 1), date(2024, 1, 20))

        assert aggregate(list(reversed(series)), "week") == aggregate(series, "week")

    def test_sunday_starts_its_own_bucket(self):
        series = [point(date(2024, 1, 6), 1), point(date(2024, 1, 7), 2)]

        result = aggregate(series, "week")

        assert [p.label for p in result] == ["31 Dec", "7 Jan"]

    def test_timestamps_non_decreasing(self):
        result = aggregate(daily(date(2023, 11, 1), date(2024, 2, 1)), "week")

        stamps = [p.t for p in result]
        assert stamps == sorted(stamps)


# =============================================================================
# MONTH
# =============================================================================

class TestMonth:
    def test_month_buckets(self):
        series = [
            point(date(2024, 1, 30), 1),
            point(date(2024, 1, 31), 2),
            point(date(2024, 2, 1), 3),
        ]

        result = aggregate(series, "month")

        assert [p.label for p in result] == ["Jan 24", "Feb 24"]
        assert [p.cash for p in result] == [Decimal(2), Decimal(3)]

    def test_year_boundary(self):
        series = daily(date(2023, 12, 30), date(2024, 1, 2))

        result = aggregate(series, "MONTH")

        assert [p.label for p in result] == ["Dec 23", "Jan 24"]


# =============================================================================
# ANCHORED WEEKS
# =============================================================================

class TestAnchoredWeeks:
    def test_targets_last_sundays(self):
        series = daily(date(2024, 1, 1), date(2024, 1, 17))

        result = aggregate_weeks_anchored(series, weeks=3, today=date(2024, 1, 17))

        assert [p.label for p in result] == ["31 Dec", "7 Jan", "14 Jan"]
        assert [p.t.date() for p in result] == [date(2024, 1, 1), date(2024, 1, 7), date(2024, 1, 14)]

    def test_tie_goes_to_later_point(self):
        series = [point(date(2024, 1, 5), 1), point(date(2024, 1, 9), 2)]

        result = aggregate_weeks_anchored(series, weeks=1, today=date(2024, 1, 7))

        assert len(result) == 1
        assert result[0].cash == Decimal(2)
        assert result[0].label == "7 Jan"

    def test_target_without_point_in_tolerance_is_omitted(self):
        series = [point(date(2024, 1, 15))]

        result = aggregate_weeks_anchored(series, weeks=2, today=datetime(2024, 1, 15, 9, tzinfo=timezone.utc))

        assert [p.label for p in result] == ["14 Jan"]

    def test_differs_from_canonical_buckets(self):
        """Canonical weeks use the last point; anchored weeks the nearest one."""
        series = daily(date(2024, 1, 1), date(2024, 1, 10))

        canonical = aggregate(series, "week")
        anchored = aggregate_weeks_anchored(series, weeks=2, today=date(2024, 1, 10))

        assert canonical[0].t.date() == date(2024, 1, 6)
        assert anchored[0].t.date() == date(2024, 1, 1)

    @pytest.mark.parametrize("weeks", [0, -2])
    def test_non_positive_weeks(self, weeks):
        assert aggregate_weeks_anchored(daily(date(2024, 1, 1), date(2024, 1, 3)), weeks, date(2024, 1, 3)) == []


# =============================================================================
# TIMEFRAMES
# =============================================================================

class TestTimeframes:
    @pytest.fixture
    def quarter(self) -> list[NetWorthPoint]:
        """Daily points 1 Jan … 31 Mar 2024 (Mar 31 is a Sunday)."""
        return daily(date(2024, 1, 1), date(2024, 3, 31))

    def test_one_week_is_daily(self, quarter):
        result = aggregate_for_timeframe(quarter, "1W")

        assert len(result) == 8
        assert result[0].label == "24 Mar"
        assert result[-1].label == "31 Mar"

    def test_one_month_clamps_day(self, quarter):
        result = aggregate_for_timeframe(quarter, Timeframe.ONE_MONTH)

        assert result[0].label == "29 Feb"
        assert len(result) == 32

    def test_three_months_is_weekly(self, quarter):
        result = aggregate_for_timeframe(quarter, "3m")

        assert len(result) == 14
        assert result[0].label == "31 Dec"
        assert result[-1].label == "31 Mar"

    @pytest.mark.parametrize("timeframe", ["6M", "1Y", "ALL"])
    def test_long_timeframes_are_monthly(self, quarter, timeframe):
        result = aggregate_for_timeframe(quarter, timeframe)

        assert [p.label for p in result] == ["Jan 24", "Feb 24", "Mar 24"]

    def test_empty_series(self):
        assert aggregate_for_timeframe([], "1Y") == []


class TestInvalidInput:
    @pytest.mark.parametrize("granularity", ["hour", "", "weekly"])
    def test_invalid_granularity(self, granularity):
        with pytest.raises(InvalidGranularityError) as exc_info:
            aggregate([], granularity)

        assert exc_info.value.field == "granularity"

    def test_invalid_timeframe(self):
        with pytest.raises(InvalidTimeframeError):
            aggregate_for_timeframe(daily(date(2024, 1, 1), date(2024, 1, 2)), "5Y")
