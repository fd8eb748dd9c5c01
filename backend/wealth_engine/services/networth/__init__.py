# backend/wealth_engine/services/networth/__init__.py
"""
Net worth history package.

Usage:
    from wealth_engine.services.networth import (
        NetWorthHistoryCalculator,
        aggregate,
        aggregate_for_timeframe,
    )

    history = NetWorthHistoryCalculator().calculate(
        accounts, transactions,
        current_investment_value=valuation.total_value,
        days_back=180,
    )
    weekly = aggregate(history.data, "week")

Architecture:
    networth/
    ├── types.py            # NetWorthPoint, NetWorthHistory
    ├── reconstruction.py   # Backward two-pass reconstruction
    └── aggregation.py      # Day / week / month buckets and timeframes
"""

from wealth_engine.services.networth.aggregation import (
    Granularity,
    Timeframe,
    aggregate,
    aggregate_for_timeframe,
    aggregate_weeks_anchored,
    parse_granularity,
    parse_timeframe,
)
from wealth_engine.services.networth.reconstruction import (
    NetWorthHistoryCalculator,
    account_category,
)
from wealth_engine.services.networth.types import NetWorthHistory, NetWorthPoint

__all__ = [
    "NetWorthHistoryCalculator",
    "account_category",
    "NetWorthHistory",
    "NetWorthPoint",
    "Granularity",
    "Timeframe",
    "aggregate",
    "aggregate_for_timeframe",
    "aggregate_weeks_anchored",
    "parse_granularity",
    "parse_timeframe",
]
