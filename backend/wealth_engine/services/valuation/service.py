# backend/wealth_engine/services/valuation/service.py
"""
Valuation Service - Main orchestrator for portfolio valuation.

This is the single entry point for point-in-time valuation:
- get_valuation(): Market value, P&L, day change and cash across portfolios

Design Principles:
- No I/O: quotes and FX rates are passed in (QuoteCache.snapshot(),
  FXRateService.build_table()), so a valuation is a pure function of its inputs
- Composable: Uses specialized calculators for each task
- Degrade, never fail: a missing quote or FX rate becomes a warning

Conversion Rule:
    Every per-unit amount (mark price, lot price, lot fee, day change) is
    converted to the reporting currency BEFORE it is multiplied by quantity.
    Converting a finished total instead would mix rates when one symbol's
    lots were bought in a portfolio with a different base currency.

Usage:
    from wealth_engine.services.valuation import ValuationService

    service = ValuationService()
    valuation = service.get_valuation(
        portfolios=store.state.portfolios.values(),
        quotes=quote_cache.snapshot(),
        fx_table=fx_service.build_table({"SGD", "GBP"}),
        reporting_currency="USD",
    )
    valuation.total_value, valuation.day_change_percentage
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from decimal import Decimal

from wealth_engine.config import settings
from wealth_engine.models import Lot, Portfolio
from wealth_engine.services.constants import DISPLAY_PERCENTAGE_PRECISION
from wealth_engine.services.market_data.base import Quote
from wealth_engine.services.valuation.calculators import (
    HoldingsCalculator,
    LotLedgerCalculator,
)
from wealth_engine.services.valuation.types import (
    HoldingPosition,
    HoldingValuation,
    PortfolioValuation,
)
from wealth_engine.utils.fx_conversion import FxRateTable, convert
from wealth_engine.utils.numbers import ZERO, coerce_decimal, round_money

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


class ValuationService:
    """
    Main service for portfolio valuation.

    Attributes:
        _holdings_calc: Gathers lots per symbol (merged or per portfolio)
        _ledger: Weighted-average-cost P&L for one lot list
    """

    def __init__(
            self,
            holdings_calc: HoldingsCalculator | None = None,
            ledger: LotLedgerCalculator | None = None,
    ) -> None:
        self._holdings_calc = holdings_calc or HoldingsCalculator()
        self._ledger = ledger or LotLedgerCalculator()

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def get_valuation(
            self,
            portfolios: Iterable[Portfolio],
            quotes: Mapping[str, Quote],
            fx_table: FxRateTable | None,
            reporting_currency: str | None = None,
            tracked_only: bool = True,
            combined: bool = True,
            now: datetime | None = None,
    ) -> PortfolioValuation:
        """
        Value portfolios in one reporting currency.

        Args:
            portfolios: Portfolios to consider
            quotes: Symbol → latest quote
            fx_table: Rates for conversion (None ⇒ amounts stay unconverted)
            reporting_currency: Output currency (default: settings.reporting_currency)
            tracked_only: Skip portfolios with tracking disabled
            combined: Merge lots per symbol across portfolios; when False each
                      portfolio is valued separately and returned in ``breakdown``
            now: Valuation timestamp (default: current UTC time)

        Returns:
            PortfolioValuation rounded to cents
        """
        currency = (reporting_currency or settings.reporting_currency).strip().upper()
        valuation_time = now or datetime.now(timezone.utc)

        included = [p for p in portfolios if p.tracking_enabled or not tracked_only]
        logger.info(
            f"Valuing {len(included)} portfolio(s) in {currency} "
            f"(combined={combined}, quotes={len(quotes)})"
        )

        valuation = self._value_portfolios(
            included, quotes, fx_table, currency, valuation_time, combined,
        )

        if not combined:
            valuation.breakdown = [
                self._value_portfolios([p], quotes, fx_table, currency, valuation_time, False)
                for p in included
            ]

        return valuation

    # =========================================================================
    # PRIVATE HELPERS
    # =========================================================================

    def _value_portfolios(
            self,
            portfolios: list[Portfolio],
            quotes: Mapping[str, Quote],
            fx_table: FxRateTable | None,
            currency: str,
            valuation_time: datetime,
            combined: bool,
    ) -> PortfolioValuation:
        warnings: list[str] = []
        holdings: list[HoldingValuation] = []

        total_market_value = ZERO
        total_cost_basis = ZERO
        total_realized = ZERO
        total_unrealized = ZERO
        day_change = ZERO

        for position in self._holdings_calc.calculate(portfolios, combined=combined):
            holding = self._value_holding(position, quotes.get(position.symbol), fx_table, currency)
            warnings.extend(holding.warnings)
            total_realized += holding.realized_pnl

            # Closed positions only contribute realized P&L
            if holding.quantity <= ZERO:
                continue

            holdings.append(holding)
            total_cost_basis += holding.cost_basis
            if holding.has_complete_data:
                total_market_value += holding.market_value
                total_unrealized += holding.unrealized_pnl
                day_change += holding.day_change

        total_cash = ZERO
        for portfolio in portfolios:
            if portfolio.cash and not self._can_convert(portfolio.base_currency, currency, fx_table):
                warnings.append(
                    f"No FX rate for {portfolio.base_currency}/{currency}; "
                    f"cash of '{portfolio.name}' shown unconverted"
                )
            total_cash += convert(portfolio.cash, portfolio.base_currency, currency, fx_table)

        denominator = abs(total_market_value - day_change)
        day_change_percentage = day_change / denominator * HUNDRED if denominator else ZERO

        for holding in holdings:
            if holding.has_complete_data and total_market_value > ZERO:
                holding.weight = (holding.market_value / total_market_value * HUNDRED).quantize(
                    DISPLAY_PERCENTAGE_PRECISION
                )
            self._round_holding(holding)

        missing = sum(1 for h in holdings if not h.has_complete_data)
        if missing:
            logger.warning(f"{missing} holding(s) valued without a quote")

        return PortfolioValuation(
            reporting_currency=currency,
            valuation_time=valuation_time,
            portfolio_ids=[p.id for p in portfolios],
            combined=combined,
            holdings=holdings,
            total_market_value=round_money(total_market_value),
            total_cash=round_money(total_cash),
            total_cost_basis=round_money(total_cost_basis),
            total_realized_pnl=round_money(total_realized),
            total_unrealized_pnl=round_money(total_unrealized),
            day_change=round_money(day_change),
            day_change_percentage=round_money(day_change_percentage),
            warnings=list(dict.fromkeys(warnings)),
        )

    def _value_holding(
            self,
            position: HoldingPosition,
            quote: Quote | None,
            fx_table: FxRateTable | None,
            currency: str,
    ) -> HoldingValuation:
        """
        Value one position with every per-unit amount converted first.

        Returns:
            HoldingValuation with unrounded amounts; price fields are None
            when no quote is available
        """
        warnings: list[str] = []
        native = position.currency

        if not self._can_convert(native, currency, fx_table):
            warnings.append(
                f"No FX rate for {native}/{currency}; {position.symbol} shown unconverted"
            )

        lots = [self._convert_lot(lot, native, currency, fx_table) for lot in position.lots]

        mark = None
        if quote is not None:
            mark = convert(quote.last, native, currency, fx_table)

        pnl = self._ledger.calculate(lots, mark)

        if pnl.oversold:
            warnings.append(
                f"{position.symbol} sells {pnl.oversold_quantity} more units than were bought"
            )

        holding = HoldingValuation(
            symbol=position.symbol,
            name=position.name,
            instrument_type=position.instrument_type,
            currency=native,
            portfolio_id=position.portfolio_id,
            quantity=pnl.quantity,
            avg_cost=pnl.avg_cost,
            cost_basis=pnl.cost_basis,
            price=None,
            market_value=None,
            unrealized_pnl=None,
            realized_pnl=pnl.realized,
            oversold=pnl.oversold,
            warnings=warnings,
        )

        if pnl.quantity <= ZERO:
            return holding

        if quote is None:
            warnings.append(f"No quote available for {position.symbol}")
            return holding

        holding.price = mark
        holding.market_value = pnl.quantity * mark
        holding.unrealized_pnl = pnl.unrealized
        holding.day_change = pnl.quantity * convert(quote.change, native, currency, fx_table)
        holding.day_change_percentage = quote.change_percentage
        return holding

    @staticmethod
    def _convert_lot(
            lot: Lot,
            native: str,
            currency: str,
            fx_table: FxRateTable | None,
    ) -> Lot:
        if native.upper() == currency:
            return lot
        return dataclasses.replace(
            lot,
            price=convert(coerce_decimal(lot.price), native, currency, fx_table),
            fee=convert(coerce_decimal(lot.fee), native, currency, fx_table),
        )

    @staticmethod
    def _can_convert(source: str, target: str, fx_table: FxRateTable | None) -> bool:
        if source.strip().upper() == target:
            return True
        return fx_table is not None and fx_table.supports(source) and fx_table.supports(target)

    @staticmethod
    def _round_holding(holding: HoldingValuation) -> None:
        """Round money amounts to cents; prices and quantity stay exact."""
        holding.cost_basis = round_money(holding.cost_basis)
        holding.realized_pnl = round_money(holding.realized_pnl)
        if holding.market_value is not None:
            holding.market_value = round_money(holding.market_value)
        if holding.unrealized_pnl is not None:
            holding.unrealized_pnl = round_money(holding.unrealized_pnl)
        if holding.day_change is not None:
            holding.day_change = round_money(holding.day_change)
