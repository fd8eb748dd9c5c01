# backend/wealth_engine/services/valuation/__init__.py
"""
Valuation Service Package.

This package provides portfolio valuation capabilities:
- Point-in-time valuation across portfolios (ValuationService.get_valuation)
- Weighted-average-cost lot ledger (compute_pnl)
- Daily holdings value from price history (HoldingsHistoryCalculator)

Usage:
    from wealth_engine.services.valuation import ValuationService, compute_pnl

    pnl = compute_pnl(lots, mark_price=Decimal("150"))

    valuation = ValuationService().get_valuation(
        portfolios, quotes, fx_table, reporting_currency="USD",
    )

Architecture:
    valuation/
    ├── __init__.py              # This file - package exports
    ├── types.py                 # Internal data classes
    ├── calculators.py           # Lot ledger and holdings gathering
    ├── history_calculator.py    # Daily holdings value series
    └── service.py               # ValuationService (orchestrator)

Data Flow:
    Portfolios → HoldingsCalculator → HoldingPosition (lots per symbol)
    Lots (converted per unit) + Mark → LotLedgerCalculator → PnLResult
    PnLResult + Quote → HoldingValuation → PortfolioValuation
"""

from wealth_engine.services.valuation.calculators import (
    HoldingsCalculator,
    LedgerState,
    LotLedgerCalculator,
    aggregate_lots,
    compute_pnl,
    sort_lots,
)
from wealth_engine.services.valuation.history_calculator import HoldingsHistoryCalculator
from wealth_engine.services.valuation.service import ValuationService
from wealth_engine.services.valuation.types import (
    HoldingPosition,
    HoldingsHistory,
    HoldingsHistoryPoint,
    HoldingValuation,
    PnLResult,
    PortfolioValuation,
)

__all__ = [
    # Main service
    "ValuationService",
    "HoldingsHistoryCalculator",
    # Calculators
    "HoldingsCalculator",
    "LotLedgerCalculator",
    "LedgerState",
    "aggregate_lots",
    "compute_pnl",
    "sort_lots",
    # Types
    "HoldingPosition",
    "PnLResult",
    "HoldingValuation",
    "PortfolioValuation",
    "HoldingsHistoryPoint",
    "HoldingsHistory",
]
