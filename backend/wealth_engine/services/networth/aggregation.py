# backend/wealth_engine/services/networth/aggregation.py
"""
Time-bucket aggregation of dense net worth series for charts.

Granularities:
    day    passthrough, ordered by timestamp, label "5 Jan"
    week   bucket = Sunday starting the week, last point wins, label = Sunday
    month  bucket = "YYYY-MM", last point wins, label "Jan 24"

Buckets are accumulated in a dict and sorted by key before output, so the
result does not depend on input order. Within a bucket the chronologically
last point represents it (end-of-period value).

Anchored weeks:
    aggregate_weeks_anchored() answers "what was it on each of the last N
    Sundays" instead of bucketing: each target Sunday takes the nearest
    point within 7 days.

Timeframes:
    aggregate_for_timeframe() picks both the window and the granularity for
    a chart range (1W, 1M, 3M, 6M, 1Y, ALL).

Usage:
    from wealth_engine.services.networth import aggregate, aggregate_for_timeframe

    weekly = aggregate(history.data, "week")
    chart = aggregate_for_timeframe(history.data, "3M")
"""

from __future__ import annotations

import dataclasses
import enum
import logging
from collections.abc import Callable, Iterable
from datetime import date, datetime, timedelta

from wealth_engine.services.constants import TIMEFRAME_MONTHS, TIMEFRAME_WEEK_DAYS
from wealth_engine.services.exceptions import InvalidGranularityError, InvalidTimeframeError
from wealth_engine.services.networth.types import NetWorthPoint
from wealth_engine.utils.date_utils import (
    day_label,
    day_of,
    month_key,
    month_label,
    most_recent_sunday,
    shift_months,
    week_start,
)

logger = logging.getLogger(__name__)

# Maximum distance between a target Sunday and the point chosen for it
ANCHOR_TOLERANCE = timedelta(days=7)


class Granularity(str, enum.Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class Timeframe(str, enum.Enum):
    ONE_WEEK = "1W"
    ONE_MONTH = "1M"
    THREE_MONTHS = "3M"
    SIX_MONTHS = "6M"
    ONE_YEAR = "1Y"
    ALL = "ALL"


TIMEFRAME_GRANULARITY: dict[Timeframe, Granularity] = {
    Timeframe.ONE_WEEK: Granularity.DAY,
    Timeframe.ONE_MONTH: Granularity.DAY,
    Timeframe.THREE_MONTHS: Granularity.WEEK,
    Timeframe.SIX_MONTHS: Granularity.MONTH,
    Timeframe.ONE_YEAR: Granularity.MONTH,
    Timeframe.ALL: Granularity.MONTH,
}


def parse_granularity(granularity: Granularity | str) -> Granularity:
    """
    Accept an enum member or its string value (case-insensitive).

    Raises:
        InvalidGranularityError: For anything else
    """
    if isinstance(granularity, Granularity):
        return granularity
    try:
        return Granularity(str(granularity).strip().lower())
    except ValueError:
        raise InvalidGranularityError(str(granularity)) from None


def parse_timeframe(timeframe: Timeframe | str) -> Timeframe:
    """
    Accept an enum member or its string value (case-insensitive).

    Raises:
        InvalidTimeframeError: For anything else
    """
    if isinstance(timeframe, Timeframe):
        return timeframe
    try:
        return Timeframe(str(timeframe).strip().upper())
    except ValueError:
        raise InvalidTimeframeError(str(timeframe)) from None


# =============================================================================
# BUCKET AGGREGATION
# =============================================================================

def aggregate(
        series: Iterable[NetWorthPoint],
        granularity: Granularity | str,
) -> list[NetWorthPoint]:
    """
    Downsample a series into labeled day, week or month points.

    Args:
        series: Points in any order
        granularity: "day", "week" or "month"

    Returns:
        Labeled points ordered by bucket (non-decreasing timestamps)

    Raises:
        InvalidGranularityError: If granularity is not recognized
    """
    granularity = parse_granularity(granularity)
    ordered = sorted(series, key=lambda p: p.t)

    if granularity == Granularity.DAY:
        return [_labeled(p, day_label(day_of(p.t))) for p in ordered]

    if granularity == Granularity.WEEK:
        return _bucket_last(ordered, week_start, lambda key, d: day_label(key))

    return _bucket_last(ordered, month_key, lambda key, d: month_label(d))


def _bucket_last(
        ordered: list[NetWorthPoint],
        key_of: Callable[[date], date | str],
        label_of: Callable[[date | str, date], str],
) -> list[NetWorthPoint]:
    """
    Keep the chronologically last point of every bucket.

    ``ordered`` is sorted by timestamp, so a later point always replaces an
    earlier one; equal timestamps keep input order (sorted() is stable).
    """
    buckets: dict[date | str, NetWorthPoint] = {}
    for point in ordered:
        buckets[key_of(day_of(point.t))] = point

    return [
        _labeled(buckets[key], label_of(key, day_of(buckets[key].t)))
        for key in sorted(buckets)
    ]


def _labeled(point: NetWorthPoint, label: str) -> NetWorthPoint:
    return dataclasses.replace(point, label=label)


# =============================================================================
# ANCHORED WEEKS
# =============================================================================

def aggregate_weeks_anchored(
        series: Iterable[NetWorthPoint],
        weeks: int,
        today: date | datetime,
) -> list[NetWorthPoint]:
    """
    One point per Sunday for the last ``weeks`` weeks.

    Targets are the most recent Sunday on or before ``today`` and the
    ``weeks - 1`` Sundays before it. Each target takes the point nearest to
    it within 7 days; on a tie the later point wins. Targets with nothing in
    range are omitted.

    Returns:
        Points labeled with their target Sunday, oldest first
    """
    if weeks <= 0:
        return []

    points = sorted(series, key=lambda p: p.t)
    anchor = most_recent_sunday(day_of(today))
    targets = [anchor - timedelta(weeks=i) for i in range(weeks - 1, -1, -1)]

    result = []
    for target in targets:
        best: NetWorthPoint | None = None
        best_distance: timedelta | None = None
        for point in points:
            distance = abs(day_of(point.t) - target)
            if distance > ANCHOR_TOLERANCE:
                continue
            # <= so that a later point wins ties
            if best_distance is None or distance <= best_distance:
                best, best_distance = point, distance
        if best is not None:
            result.append(_labeled(best, day_label(target)))

    return result


# =============================================================================
# TIMEFRAMES
# =============================================================================

def timeframe_start(timeframe: Timeframe | str, newest: datetime) -> datetime | None:
    """
    First instant of a timeframe window ending at ``newest``.

    Returns:
        None for ALL (no lower bound)
    """
    timeframe = parse_timeframe(timeframe)
    if timeframe == Timeframe.ALL:
        return None
    if timeframe == Timeframe.ONE_WEEK:
        return newest - timedelta(days=TIMEFRAME_WEEK_DAYS)

    shifted = shift_months(newest.date(), -TIMEFRAME_MONTHS[timeframe.value])
    return newest.replace(year=shifted.year, month=shifted.month, day=shifted.day)


def aggregate_for_timeframe(
        series: Iterable[NetWorthPoint],
        timeframe: Timeframe | str,
) -> list[NetWorthPoint]:
    """
    Window and downsample a series for a chart timeframe.

    1W and 1M → day, 3M → week, 6M, 1Y and ALL → month. The window ends at
    the newest point. If no point falls in the window, the whole series is
    aggregated instead.

    Raises:
        InvalidTimeframeError: If timeframe is not recognized
    """
    timeframe = parse_timeframe(timeframe)
    ordered = sorted(series, key=lambda p: p.t)
    if not ordered:
        return []

    start = timeframe_start(timeframe, ordered[-1].t)
    window = ordered if start is None else [p for p in ordered if p.t >= start]
    if not window:
        logger.debug(f"No points in {timeframe.value} window, aggregating whole series")
        window = ordered

    return aggregate(window, TIMEFRAME_GRANULARITY[timeframe])
