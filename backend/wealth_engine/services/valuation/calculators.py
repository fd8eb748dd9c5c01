# backend/wealth_engine/services/valuation/calculators.py
"""
Point-in-time valuation calculators.

Each calculator follows the Single Responsibility Principle:
- LotLedgerCalculator: Weighted-average-cost P&L for one lot list
- HoldingsCalculator: Gathers lots per symbol (merged or per portfolio)

Design Principles:
- Stateless (no instance state, pure functions)
- Receives all inputs explicitly, no I/O
- Returns structured result objects
- Uses Decimal for ALL financial calculations
- Bad numbers are coerced to 0 instead of aborting the calculation

Usage:
    ledger = LotLedgerCalculator()
    pnl = ledger.calculate(lots, mark_price=Decimal("150"))
    pnl.quantity, pnl.avg_cost, pnl.realized, pnl.unrealized
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from wealth_engine.models import Lot, LotSide, Portfolio
from wealth_engine.services.currency_resolution import resolve_currency
from wealth_engine.services.valuation.types import HoldingPosition, PnLResult
from wealth_engine.utils.numbers import ZERO, coerce_decimal

logger = logging.getLogger(__name__)

# Precision of the synthetic price written by aggregate_lots()
AGGREGATE_PRICE_PLACES = Decimal("0.000001")


# =============================================================================
# LOT LEDGER
# =============================================================================

@dataclass
class LedgerState:
    """
    Running totals while lots are applied in date order.

    Used directly by the history calculator for the rolling-state pattern
    (apply each lot once, snapshot as dates advance).
    """

    quantity: Decimal = ZERO
    cost: Decimal = ZERO
    realized: Decimal = ZERO
    oversold_quantity: Decimal = ZERO

    @property
    def avg_cost(self) -> Decimal:
        if self.quantity <= ZERO:
            return ZERO
        return self.cost / self.quantity


def sort_lots(lots: Iterable[Lot]) -> list[Lot]:
    """
    Order lots by trade date.

    sorted() is stable, so lots on the same date keep their insertion order.
    """
    return sorted(lots, key=lambda lot: lot.date)


class LotLedgerCalculator:
    """
    Computes quantity, average cost and P&L from buy/sell lots.

    Uses weighted average cost, not FIFO lot matching: every sell is
    charged the average cost of the units held just before it.

    Over-sells (selling more than is held) are clamped: only the held units
    realize a gain, quantity and cost stop at zero, and the result is flagged.
    """

    def calculate(self, lots: Iterable[Lot], mark_price: Decimal | None) -> PnLResult:
        """
        Apply every lot in date order and mark the remainder.

        Args:
            lots: Buy/sell lots in any order
            mark_price: Current price per unit (None/NaN treated as 0)

        Returns:
            PnLResult with quantity, avg_cost, realized and unrealized
        """
        state = LedgerState()
        for lot in sort_lots(lots):
            self.apply_lot(state, lot)

        mark = coerce_decimal(mark_price)
        avg_cost = state.avg_cost
        unrealized = state.quantity * (mark - avg_cost) if state.quantity > ZERO else ZERO

        return PnLResult(
            quantity=state.quantity,
            avg_cost=avg_cost,
            cost_basis=state.cost,
            realized=state.realized,
            unrealized=unrealized,
            oversold=state.oversold_quantity > ZERO,
            oversold_quantity=state.oversold_quantity,
        )

    def apply_lot(self, state: LedgerState, lot: Lot) -> None:
        """
        Apply one lot to the running state (mutates state).

        BUY:  cost += qty × price + fee; quantity += qty
        SELL: realized += matched × (price − avg) − fee
              quantity −= matched; cost −= avg × matched
              where matched = min(qty, quantity held)
        """
        quantity = coerce_decimal(lot.quantity)
        price = coerce_decimal(lot.price)
        fee = coerce_decimal(lot.fee)

        if quantity <= ZERO:
            logger.debug(f"Ignoring lot {lot.id} with non-positive quantity {quantity}")
            return

        if lot.side == LotSide.BUY:
            state.cost += quantity * price + fee
            state.quantity += quantity
            return

        avg = state.avg_cost
        matched = min(quantity, state.quantity)
        excess = quantity - matched

        state.realized += matched * (price - avg) - fee

        if excess > ZERO:
            logger.warning(
                f"Lot {lot.id} sells {quantity} but only {state.quantity} held; "
                f"clamping position at zero"
            )
            state.oversold_quantity += excess
            state.quantity = ZERO
            state.cost = ZERO
            return

        state.quantity -= matched
        state.cost -= avg * matched
        if state.quantity == ZERO:
            state.cost = ZERO


def compute_pnl(lots: Iterable[Lot], mark_price: Decimal | None) -> PnLResult:
    """Module-level shortcut for LotLedgerCalculator().calculate()."""
    return LotLedgerCalculator().calculate(lots, mark_price)


def aggregate_lots(lots: Iterable[Lot], lot_id: str, on_date: date) -> Lot | None:
    """
    Collapse a lot list into a single buy lot at the running average cost.

    Used when a holding is moved to another portfolio in aggregate mode.

    Args:
        lots: Lots to collapse
        lot_id: ID for the synthetic lot
        on_date: Trade date for the synthetic lot

    Returns:
        One BUY lot carrying the held quantity at average cost (fees folded
        into the price), or None if nothing is held
    """
    pnl = compute_pnl(lots, mark_price=ZERO)
    if not pnl.has_position:
        return None

    return Lot(
        id=lot_id,
        side=LotSide.BUY,
        quantity=pnl.quantity,
        price=pnl.avg_cost.quantize(AGGREGATE_PRICE_PLACES),
        date=on_date,
    )


# =============================================================================
# HOLDINGS CALCULATOR
# =============================================================================

class HoldingsCalculator:
    """
    Gathers holdings from portfolios into HoldingPositions.

    Combined mode merges the lots of the same symbol across every given
    portfolio before any quantity is computed, so a position split over
    two portfolios is valued once at its combined average cost.
    Per-portfolio mode keeps each (portfolio, symbol) separate.

    Note:
        Archived holdings are skipped. Quantity filtering (qty > 0) is left
        to the caller because closed positions still carry realized P&L.
    """

    def calculate(
            self,
            portfolios: Iterable[Portfolio],
            combined: bool = True,
    ) -> list[HoldingPosition]:
        """
        Build positions from portfolio holdings.

        Args:
            portfolios: Portfolios to read, in display order
            combined: Merge lots per symbol across portfolios

        Returns:
            Positions in first-seen order
        """
        positions: dict[tuple[str | None, str], HoldingPosition] = {}

        for portfolio in portfolios:
            for symbol, holding in portfolio.holdings.items():
                if holding.archived:
                    continue

                key = (None if combined else portfolio.id, symbol)
                position = positions.get(key)
                if position is None:
                    position = HoldingPosition(
                        symbol=symbol,
                        name=holding.name or symbol,
                        instrument_type=holding.instrument_type.value,
                        currency=resolve_currency(holding.currency, symbol),
                        portfolio_id=key[0],
                    )
                    positions[key] = position
                elif not position.name or position.name == symbol:
                    position.name = holding.name or symbol

                position.lots.extend(holding.lots)

        return list(positions.values())
