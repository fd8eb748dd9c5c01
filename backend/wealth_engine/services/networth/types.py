# backend/wealth_engine/services/networth/types.py
"""
Data types for net worth history and chart aggregation.

Type Hierarchy:
    NetWorthPoint    - cash / investments / debt at one instant
    NetWorthHistory  - reconstruction result (one point per calendar day)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class NetWorthPoint:
    """
    Net worth components at one instant.

    Attributes:
        t: Timestamp of the point (midnight for daily points)
        cash: Liquid balances
        investments: Investment value
        debt: Amount owed (positive)
        label: Display label set by the aggregator
    """

    t: datetime
    cash: Decimal
    investments: Decimal
    debt: Decimal
    label: str | None = None

    @property
    def net_worth(self) -> Decimal:
        return self.cash + self.investments - self.debt


@dataclass
class NetWorthHistory:
    """
    Reconstructed daily net worth series, ordered oldest → newest.

    Attributes:
        days_back: Requested window length
        data: Exactly days_back + 1 points
        skipped_transactions: Transactions ignored (unknown/excluded account)
        warnings: Data quality warnings
    """

    days_back: int
    data: list[NetWorthPoint]
    skipped_transactions: int = 0
    warnings: list[str] = field(default_factory=list)

    @property
    def total_points(self) -> int:
        return len(self.data)

    @property
    def latest(self) -> NetWorthPoint | None:
        return self.data[-1] if self.data else None
