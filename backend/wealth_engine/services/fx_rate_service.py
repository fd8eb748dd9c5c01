# backend/wealth_engine/services/fx_rate_service.py
"""
FX Rate Service: builds FxRateTables from a market data provider.

=============================================================================
FX RATE CONVENTION
=============================================================================

Tables use the Yahoo Finance convention, anchored to one base currency:

    rates[C] = "1 base_currency = X C"

Example (base USD):
    rates = {"USD": 1, "SGD": 1.35, "EUR": 0.92}

    Meaning: 1 USD = 1.35 SGD, 1 USD = 0.92 EUR

Conversion between any two currencies goes through the base; see
wealth_engine.utils.fx_conversion.convert.

=============================================================================

Design Principles:
- Degrade, never fail: a pair that cannot be fetched is skipped; the
  previous table's rate for it is carried forward when there is one
- Inverse fallback: if BASE→C is unknown, try C→BASE and invert
- Financial Precision: Decimal for every rate

Usage:
    from wealth_engine.services.fx_rate_service import FXRateService

    service = FXRateService(YahooFinanceProvider(), base_currency="USD")
    table = service.build_table({"SGD", "EUR", "GBP"})
    convert(Decimal("100"), "USD", "SGD", table)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from decimal import Decimal

from wealth_engine.config import settings
from wealth_engine.services.exceptions import MarketDataError
from wealth_engine.services.market_data.base import MarketDataProvider
from wealth_engine.utils.fx_conversion import FxRateTable, invert_rate

logger = logging.getLogger(__name__)


class FXRateService:
    """
    Fetches current FX rates and assembles them into FxRateTables.

    The most recent table is kept as last-known-good. When a refresh cannot
    fetch anything, that table is returned unchanged so valuations keep
    converting with slightly old rates instead of not at all.

    Attributes:
        base_currency: Anchor currency of every table built
        last_table: Most recent table (None before the first success)
        last_updated: When last_table was built
    """

    def __init__(
            self,
            provider: MarketDataProvider,
            base_currency: str | None = None,
    ) -> None:
        self._provider = provider
        self.base_currency = (base_currency or settings.fx_base_currency).strip().upper()
        self.last_table: FxRateTable | None = None
        self.last_updated: datetime | None = None

    def build_table(self, currencies: Iterable[str]) -> FxRateTable | None:
        """
        Fetch rates for the given currencies and return a table.

        Args:
            currencies: Currency codes needed (base and duplicates ignored)

        Returns:
            A table containing every rate that could be resolved, or the
            previous table / None when nothing could be fetched
        """
        wanted = sorted({c.strip().upper() for c in currencies if c and c.strip()} - {self.base_currency})
        if not wanted:
            table = FxRateTable(base=self.base_currency)
            self._remember(table)
            return table

        previous = self.last_table.rates if self.last_table else {}
        rates: dict[str, Decimal] = {}
        fetched = 0

        for currency in wanted:
            rate = self._fetch_rate(currency)
            if rate is not None:
                rates[currency] = rate
                fetched += 1
            elif currency in previous:
                logger.warning(
                    f"Using previous {self.base_currency}/{currency} rate {previous[currency]}"
                )
                rates[currency] = previous[currency]

        if fetched == 0:
            logger.warning(
                f"No FX rates fetched for {self.base_currency} -> {', '.join(wanted)}; "
                f"keeping previous table"
            )
            return self.last_table

        table = FxRateTable(base=self.base_currency, rates=rates)
        self._remember(table)
        logger.info(f"FX table built: base={self.base_currency}, {fetched}/{len(wanted)} rates fetched")
        return table

    def _fetch_rate(self, currency: str) -> Decimal | None:
        """
        Rate for BASE→currency, trying the inverse pair as a fallback.

        Returns:
            The rate, or None if neither direction could be fetched
        """
        try:
            rate = self._provider.get_fx_rate(self.base_currency, currency)
            if rate > 0:
                return rate
        except MarketDataError as e:
            logger.debug(f"Direct FX {self.base_currency}/{currency} failed: {e}")

        try:
            inverse = self._provider.get_fx_rate(currency, self.base_currency)
            if inverse > 0:
                return invert_rate(inverse)
        except MarketDataError as e:
            logger.warning(f"FX rate {self.base_currency}/{currency} unavailable: {e}")

        return None

    def _remember(self, table: FxRateTable) -> None:
        self.last_table = table
        self.last_updated = datetime.now(timezone.utc)
