# backend/wealth_engine/services/valuation/history_calculator.py
"""
Holdings History Calculator: market value of held positions per day.

Generates one point per calendar day from daily close prices:
1. Price bars are indexed by (symbol, date) once up front
2. Lots are applied with the Rolling State pattern as dates advance
3. Each day is marked with the latest close within PRICE_FALLBACK_DAYS

Key Insight:
    Holdings CHANGE over time as buys/sells occur, so today's quantity
    cannot be multiplied by past prices. Quantity is recomputed for every
    date, but incrementally: each lot is applied exactly once.

Complexity: O(D + L) where D = number of dates, L = number of lots
(plus the fallback lookback, bounded by PRICE_FALLBACK_DAYS per symbol).

Design Principles:
- Batch operations where possible
- Graceful handling of missing data (skip the symbol that day, warn once)
- Reuses the point-in-time lot ledger for consistency
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal

from wealth_engine.config import settings
from wealth_engine.models import Lot, Portfolio
from wealth_engine.services.constants import PRICE_FALLBACK_DAYS
from wealth_engine.services.exceptions import ValidationError
from wealth_engine.services.market_data.base import PriceBar
from wealth_engine.services.valuation.calculators import (
    HoldingsCalculator,
    LedgerState,
    LotLedgerCalculator,
    sort_lots,
)
from wealth_engine.services.valuation.types import (
    HoldingsHistory,
    HoldingsHistoryPoint,
)
from wealth_engine.utils.date_utils import date_range
from wealth_engine.utils.fx_conversion import FxRateTable, convert
from wealth_engine.utils.numbers import ZERO, coerce_decimal, round_money

logger = logging.getLogger(__name__)


@dataclass
class _RollingPosition:
    """Lots of one symbol plus the cursor into them."""

    symbol: str
    currency: str
    lots: list[Lot]
    state: LedgerState = field(default_factory=LedgerState)
    next_lot: int = 0


class HoldingsHistoryCalculator:
    """
    Calculates the daily market value of held positions.

    Attributes:
        PRICE_FALLBACK_DAYS: Maximum days to look back for a missing close
        _holdings_calc: Gathers lots per symbol across portfolios
        _ledger: Applies one lot to a running LedgerState
    """

    PRICE_FALLBACK_DAYS: int = PRICE_FALLBACK_DAYS

    def __init__(
            self,
            holdings_calc: HoldingsCalculator | None = None,
            ledger: LotLedgerCalculator | None = None,
    ) -> None:
        self._holdings_calc = holdings_calc or HoldingsCalculator()
        self._ledger = ledger or LotLedgerCalculator()

    def calculate(
            self,
            portfolios: Iterable[Portfolio],
            price_history: Mapping[str, Iterable[PriceBar]],
            fx_table: FxRateTable | None,
            reporting_currency: str | None,
            start_date: date,
            end_date: date,
    ) -> HoldingsHistory:
        """
        Build the daily holdings value series.

        Args:
            portfolios: Portfolios whose holdings are valued (lots merged per symbol)
            price_history: Symbol → daily bars (e.g. QuoteCache.get_history())
            fx_table: Current rates; historical FX is not modelled
            reporting_currency: Output currency (default: settings.reporting_currency)
            start_date: First day of the series
            end_date: Last day of the series (inclusive)

        Returns:
            HoldingsHistory with one point per calendar day

        Raises:
            ValidationError: If start_date is after end_date
        """
        if start_date > end_date:
            raise ValidationError(
                f"start_date {start_date} is after end_date {end_date}",
                field="start_date",
            )

        currency = (reporting_currency or settings.reporting_currency).strip().upper()
        warnings: list[str] = []

        positions = [
            _RollingPosition(
                symbol=p.symbol,
                currency=p.currency,
                lots=sort_lots(self._convert_lot(lot, p.currency, currency, fx_table) for lot in p.lots),
            )
            for p in self._holdings_calc.calculate(portfolios, combined=True)
        ]

        if not positions:
            return HoldingsHistory(
                reporting_currency=currency,
                start_date=start_date,
                end_date=end_date,
                data=[],
                warnings=["No holdings to value"],
            )

        price_map = self._build_price_map(price_history)
        missing_warned: set[str] = set()
        data: list[HoldingsHistoryPoint] = []

        for target_date in date_range(start_date, end_date):
            value = ZERO
            cost_basis = ZERO
            held = 0
            priced = 0

            for position in positions:
                # Apply every lot up to and including target_date
                while position.next_lot < len(position.lots):
                    lot = position.lots[position.next_lot]
                    if lot.date > target_date:
                        break
                    self._ledger.apply_lot(position.state, lot)
                    position.next_lot += 1

                if position.state.quantity <= ZERO:
                    continue

                held += 1
                cost_basis += position.state.cost

                close = self._find_price(price_map, position.symbol, target_date)
                if close is None:
                    if position.symbol not in missing_warned:
                        missing_warned.add(position.symbol)
                        warnings.append(
                            f"No price for {position.symbol} on {target_date} "
                            f"(or {self.PRICE_FALLBACK_DAYS} days before)"
                        )
                    continue

                priced += 1
                value += position.state.quantity * convert(close, position.currency, currency, fx_table)

            data.append(HoldingsHistoryPoint(
                date=target_date,
                value=round_money(value),
                cost_basis=round_money(cost_basis),
                holdings_count=held,
                priced_count=priced,
            ))

        incomplete = sum(1 for p in data if not p.has_complete_data)
        if incomplete:
            warnings.append(f"{incomplete} of {len(data)} data points have incomplete price data")
            logger.warning(f"Holdings history has {incomplete} incomplete points")

        return HoldingsHistory(
            reporting_currency=currency,
            start_date=start_date,
            end_date=end_date,
            data=data,
            warnings=warnings,
        )

    # =========================================================================
    # PRIVATE HELPERS
    # =========================================================================

    @staticmethod
    def _build_price_map(
            price_history: Mapping[str, Iterable[PriceBar]],
    ) -> dict[tuple[str, date], Decimal]:
        """Index closes by (SYMBOL, date) for O(1) lookup."""
        price_map: dict[tuple[str, date], Decimal] = {}
        for symbol, bars in price_history.items():
            key = symbol.strip().upper()
            for bar in bars:
                price_map[(key, bar.date)] = bar.close
        return price_map

    def _find_price(
            self,
            price_map: dict[tuple[str, date], Decimal],
            symbol: str,
            target_date: date,
    ) -> Decimal | None:
        """Latest close on or before target_date within the fallback window."""
        key = symbol.strip().upper()
        for offset in range(self.PRICE_FALLBACK_DAYS + 1):
            close = price_map.get((key, target_date - timedelta(days=offset)))
            if close is not None:
                return close
        return None

    @staticmethod
    def _convert_lot(lot: Lot, native: str, currency: str, fx_table: FxRateTable | None) -> Lot:
        return dataclasses.replace(
            lot,
            price=convert(coerce_decimal(lot.price), native, currency, fx_table),
            fee=convert(coerce_decimal(lot.fee), native, currency, fx_table),
        )
