# backend/wealth_engine/services/valuation/types.py
"""
Internal data types for the Valuation Service.

These dataclasses are produced by the valuation calculators. They are NOT
Pydantic schemas - the persisted portfolio document lives in
wealth_engine/schemas/state.py.

Design Principles:
- Immutable where possible (frozen=True for value objects)
- Use Decimal for ALL financial values (never float)
- Amounts are unrounded inside calculators; rounding to cents happens
  when PortfolioValuation is assembled
- Optional fields use None, not sentinel values
- Warnings accumulate for data quality tracking

Type Hierarchy:
    HoldingPosition      - Lots of one symbol (merged or per portfolio)
    PnLResult            - Weighted-average-cost ledger output for one lot list
    HoldingValuation     - Complete valuation for one symbol
    PortfolioValuation   - Totals across the included portfolios
    HoldingsHistoryPoint - Market value of held positions on one day
    HoldingsHistory      - Time series result
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from wealth_engine.models import Lot


# =============================================================================
# POSITION
# =============================================================================

@dataclass
class HoldingPosition:
    """
    Lots of one symbol gathered for valuation.

    Produced by HoldingsCalculator: one per (portfolio, symbol) in a
    per-portfolio view, or one per symbol with merged lots in a combined view.

    Attributes:
        symbol: Instrument symbol
        name: Display name (first non-empty name seen)
        instrument_type: Instrument type value
        currency: Resolved native currency
        lots: Lots in insertion order (portfolio order, then lot order)
        portfolio_id: Owning portfolio, None when merged
    """

    symbol: str
    name: str
    instrument_type: str
    currency: str
    lots: list[Lot] = field(default_factory=list)
    portfolio_id: str | None = None


# =============================================================================
# PROFIT & LOSS
# =============================================================================

@dataclass(frozen=True)
class PnLResult:
    """
    Lot ledger result at a mark price (weighted average cost).

    Attributes:
        quantity: Units still held after every lot is applied
        avg_cost: Fee-inclusive average cost per held unit (0 if nothing held)
        cost_basis: Remaining cost of held units (quantity × avg_cost)
        realized: Gain/loss locked in by sells, net of sell fees
        unrealized: quantity × (mark − avg_cost)
        oversold: True if any sell disposed more than was held
        oversold_quantity: Total units sold beyond the held quantity

    Formulas:
        BUY:  cost += qty × price + fee; quantity += qty
        SELL: avg = cost / quantity
              realized += qty × (price − avg) − fee
              quantity −= qty; cost −= avg × qty
    """

    quantity: Decimal
    avg_cost: Decimal
    cost_basis: Decimal
    realized: Decimal
    unrealized: Decimal
    oversold: bool = False
    oversold_quantity: Decimal = Decimal("0")

    @property
    def total(self) -> Decimal:
        return self.realized + self.unrealized

    @property
    def has_position(self) -> bool:
        return self.quantity > Decimal("0")


# =============================================================================
# HOLDING VALUATION
# =============================================================================

@dataclass
class HoldingValuation:
    """
    Complete valuation for one symbol in the reporting currency.

    In a combined view the lots of the same symbol from every included
    portfolio are merged first, and ``portfolio_id`` is None.

    Attributes:
        symbol: Instrument symbol (e.g., "AAPL", "VOD.L")
        name: Display name
        instrument_type: stock, etf, fund, bond or crypto
        currency: Native trading currency (explicit or inferred)
        portfolio_id: Owning portfolio (None when merged across portfolios)
        quantity: Units held
        avg_cost: Average cost per unit, reporting currency
        cost_basis: Remaining cost of held units, reporting currency
        price: Mark price per unit, reporting currency (None without a quote)
        market_value: quantity × price (None without a quote)
        unrealized_pnl: market_value − cost_basis (None without a quote)
        realized_pnl: Gains locked in by sells
        day_change: quantity × today's per-unit change (None without a quote)
        day_change_percentage: Quote change in percent (None without a quote)
        weight: Share of total market value in percent (None without a quote)
        oversold: True if the lot list sells more than it buys
        warnings: Holding-level data quality warnings
    """

    symbol: str
    name: str
    instrument_type: str
    currency: str
    portfolio_id: str | None
    quantity: Decimal
    avg_cost: Decimal
    cost_basis: Decimal
    price: Decimal | None
    market_value: Decimal | None
    unrealized_pnl: Decimal | None
    realized_pnl: Decimal
    day_change: Decimal | None = None
    day_change_percentage: Decimal | None = None
    weight: Decimal | None = None
    oversold: bool = False
    warnings: list[str] = field(default_factory=list)

    @property
    def has_complete_data(self) -> bool:
        """True if a quote was available to mark the position."""
        return self.market_value is not None


# =============================================================================
# PORTFOLIO VALUATION
# =============================================================================

@dataclass
class PortfolioValuation:
    """
    Valuation of one or more portfolios in a reporting currency.

    Attributes:
        reporting_currency: Currency of every amount below
        valuation_time: When the valuation was computed
        portfolio_ids: Portfolios that contributed (after tracking filter)
        combined: True if lots were merged per symbol across portfolios
        holdings: Open positions (quantity > 0)
        total_market_value: Σ market value of holdings with a quote
        total_cash: Σ portfolio cash converted from each base currency
        total_cost_basis: Σ remaining cost of open positions
        total_realized_pnl: Σ realized P&L (closed positions included)
        total_unrealized_pnl: Σ unrealized P&L of holdings with a quote
        day_change: Σ quantity × per-unit change
        day_change_percentage: day_change / |market value − day_change| × 100
        breakdown: Per-portfolio valuations when combined=False
        warnings: Data quality warnings (missing quotes, FX, over-sells)
    """

    reporting_currency: str
    valuation_time: datetime
    portfolio_ids: list[str]
    combined: bool
    holdings: list[HoldingValuation]
    total_market_value: Decimal
    total_cash: Decimal
    total_cost_basis: Decimal
    total_realized_pnl: Decimal
    total_unrealized_pnl: Decimal
    day_change: Decimal
    day_change_percentage: Decimal
    breakdown: list[PortfolioValuation] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def total_value(self) -> Decimal:
        """Market value plus cash."""
        return self.total_market_value + self.total_cash

    @property
    def total_pnl(self) -> Decimal:
        """Realized plus unrealized."""
        return self.total_realized_pnl + self.total_unrealized_pnl

    @property
    def has_complete_data(self) -> bool:
        return all(h.has_complete_data for h in self.holdings)

    def get_holding(self, symbol: str) -> HoldingValuation | None:
        """First holding with this symbol, or None."""
        for holding in self.holdings:
            if holding.symbol == symbol:
                return holding
        return None


# =============================================================================
# HISTORY (holdings value from price history)
# =============================================================================

@dataclass(frozen=True)
class HoldingsHistoryPoint:
    """
    Market value of positions held on one calendar day.

    Attributes:
        date: Day of the point
        value: Σ quantity held × close price, reporting currency
        cost_basis: Σ remaining cost of positions held that day
        holdings_count: Positions with quantity > 0 that day
        priced_count: Positions that had a usable price
    """

    date: date
    value: Decimal
    cost_basis: Decimal
    holdings_count: int
    priced_count: int

    @property
    def has_complete_data(self) -> bool:
        return self.priced_count == self.holdings_count


@dataclass
class HoldingsHistory:
    """Daily holdings value series between two dates (inclusive)."""

    reporting_currency: str
    start_date: date
    end_date: date
    data: list[HoldingsHistoryPoint]
    warnings: list[str] = field(default_factory=list)

    @property
    def total_points(self) -> int:
        return len(self.data)
