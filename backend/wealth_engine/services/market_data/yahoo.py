# backend/wealth_engine/services/market_data/yahoo.py
"""
Yahoo Finance market data provider implementation.

Implements the MarketDataProvider interface with the yfinance library.
Symbols are passed through in Yahoo's own notation ("AAPL", "VOD.L",
"BTC-USD"); FX pairs use the "USDSGD=X" form.

Key features:
- Quotes derived from recent daily bars (last close and previous close)
- Historical OHLCV bars for chart ranges ("5d" ... "max")
- Latest FX rates for currency tables
- Optional fundamentals from the ticker info endpoint
- Retry mechanism inherited from base class

Limitations:
- Rate limits exist but are not documented
- Data may be delayed 15-20 minutes for some markets
"""

import logging
import math
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import yfinance as yf

from wealth_engine.services.exceptions import (
    ProviderUnavailableError,
    TickerNotFoundError,
    RateLimitError,
    ValidationError,
)
from wealth_engine.services.market_data.base import (
    Fundamentals,
    MarketDataProvider,
    PriceBar,
    Quote,
)

logger = logging.getLogger(__name__)


class YahooFinanceProvider(MarketDataProvider):
    """
    Yahoo Finance implementation of MarketDataProvider.

    Configuration:
        timeout: Request timeout in seconds (default: 10)
        quote_range: History range fetched with every quote (default: "1y")
        include_fundamentals: Also read ticker info for fundamentals

    Retry Behavior (inherited from MarketDataProvider):
        - Retries on ProviderUnavailableError and RateLimitError
        - Does NOT retry on TickerNotFoundError (permanent failure)
        - Exponential backoff: 1s → 2s → 4s, 3 attempts

    Example:
        provider = YahooFinanceProvider(timeout=15)

        quote = provider.get_quote("VOD.L")
        bars = provider.get_history("VOD.L", "6mo")
        rate = provider.get_fx_rate("USD", "SGD")   # 1 USD = rate SGD
    """

    VALID_RANGES: frozenset[str] = frozenset({
        "5d", "1mo", "3mo", "6mo", "1y", "2y", "5y", "10y", "ytd", "max",
    })

    # Range used to read the latest FX close (covers weekends and holidays)
    FX_RANGE: str = "5d"

    # Ticker info keys → Fundamentals fields
    FUNDAMENTAL_FIELDS: dict[str, str] = {
        "marketCap": "market_cap",
        "trailingPE": "pe_ratio",
        "forwardPE": "forward_pe",
        "trailingEps": "eps",
        "dividendYield": "dividend_yield",
        "beta": "beta",
        "fiftyTwoWeekHigh": "week52_high",
        "fiftyTwoWeekLow": "week52_low",
    }

    # =========================================================================
    # INITIALIZATION
    # =========================================================================

    def __init__(
            self,
            timeout: int = 10,
            quote_range: str = "1y",
            include_fundamentals: bool = False,
    ) -> None:
        self._timeout = timeout
        self._quote_range = self._validate_range(quote_range)
        self._include_fundamentals = include_fundamentals
        logger.info(
            f"YahooFinanceProvider initialized "
            f"(timeout={timeout}s, quote_range={quote_range})"
        )

    @property
    def name(self) -> str:
        return "yahoo"

    # =========================================================================
    # QUOTES
    # =========================================================================

    def get_quote(self, symbol: str) -> Quote:
        """
        Fetch the latest quote for a symbol.

        Args:
            symbol: Yahoo symbol (e.g., "AAPL", "VOD.L", "BTC-USD")

        Returns:
            Quote with last, change and the price series of quote_range

        Raises:
            TickerNotFoundError: If symbol not found
            ProviderUnavailableError: If Yahoo Finance unavailable
        """
        return self._execute_with_retry(self._fetch_quote, symbol)

    def _fetch_quote(self, symbol: str) -> Quote:
        """Internal method to fetch a quote (called by retry wrapper)."""
        symbol = symbol.strip().upper()
        bars = self._fetch_history(symbol, self._quote_range)
        if not bars:
            raise TickerNotFoundError(symbol=symbol, provider=self.name)

        fundamentals = None
        if self._include_fundamentals:
            fundamentals = self._fetch_fundamentals(symbol)

        return Quote.from_bars(
            symbol=symbol,
            bars=bars,
            timestamp=datetime.now(timezone.utc),
            fundamentals=fundamentals,
        )

    # =========================================================================
    # HISTORICAL PRICES
    # =========================================================================

    def get_history(self, symbol: str, history_range: str) -> list[PriceBar]:
        """
        Fetch daily OHLCV bars for a symbol.

        Args:
            symbol: Yahoo symbol
            history_range: One of VALID_RANGES

        Returns:
            Bars ordered oldest first

        Raises:
            ValidationError: If the range is not supported
            TickerNotFoundError: If symbol not found
            ProviderUnavailableError: If Yahoo Finance unavailable
        """
        history_range = self._validate_range(history_range)
        return self._execute_with_retry(
            self._fetch_history,
            symbol.strip().upper(),
            history_range,
        )

    def _fetch_history(self, symbol: str, history_range: str) -> list[PriceBar]:
        """Internal method to fetch bars."""
        logger.debug(f"Fetching {history_range} history for {symbol}")

        try:
            yf_ticker = yf.Ticker(symbol)
            df = yf_ticker.history(
                period=history_range,
                interval="1d",
                auto_adjust=False,  # raw closes, not dividend-adjusted
                timeout=self._timeout,
            )

            if df is None or df.empty:
                info = yf_ticker.info
                if not self._is_valid_ticker_info(info):
                    raise TickerNotFoundError(symbol=symbol, provider=self.name)

                logger.warning(f"No price data for {symbol} over {history_range}")
                return []

            bars = self._dataframe_to_bars(df)
            logger.debug(f"Fetched {len(bars)} bars for {symbol}")
            return bars

        except TickerNotFoundError:
            raise
        except Exception as e:
            raise self._classify_error(e, symbol) from e

    # =========================================================================
    # FX RATES
    # =========================================================================

    def get_fx_rate(self, base_currency: str, quote_currency: str) -> Decimal:
        """
        Fetch the latest close of an FX pair: 1 base = X quote.

        Raises:
            TickerNotFoundError: If Yahoo has no such pair
            ProviderUnavailableError: If Yahoo Finance unavailable
        """
        base = base_currency.strip().upper()
        quote = quote_currency.strip().upper()
        if base == quote:
            return Decimal("1")

        bars = self._execute_with_retry(
            self._fetch_history,
            self.build_fx_symbol(base, quote),
            self.FX_RANGE,
        )
        if not bars:
            raise TickerNotFoundError(symbol=self.build_fx_symbol(base, quote), provider=self.name)
        return bars[-1].close

    @staticmethod
    def build_fx_symbol(base_currency: str, quote_currency: str) -> str:
        """Yahoo FX symbol, e.g. ("USD", "SGD") → "USDSGD=X"."""
        return f"{base_currency.upper()}{quote_currency.upper()}=X"

    # =========================================================================
    # FUNDAMENTALS
    # =========================================================================

    def _fetch_fundamentals(self, symbol: str) -> Fundamentals | None:
        """
        Read ticker info into Fundamentals.

        Fundamentals are decoration on top of a quote, so a failure here is
        logged and the quote is returned without them.
        """
        try:
            info = yf.Ticker(symbol).info
        except Exception as e:
            logger.warning(f"Fundamentals unavailable for {symbol}: {e}")
            return None

        if not self._is_valid_ticker_info(info):
            return None

        values: dict[str, Any] = {
            field_name: self._to_decimal(info.get(key))
            for key, field_name in self.FUNDAMENTAL_FIELDS.items()
        }
        return Fundamentals(
            company_name=info.get("longName") or info.get("shortName"),
            sector=info.get("sector"),
            industry=info.get("industry"),
            description=info.get("longBusinessSummary"),
            avg_volume=self._to_int(info.get("averageVolume")),
            **values,
        )

    # =========================================================================
    # PARSING
    # =========================================================================

    def _dataframe_to_bars(self, df) -> list[PriceBar]:
        """
        Convert a yfinance history DataFrame to PriceBars.

        Args:
            df: DataFrame with columns Open, High, Low, Close, Volume

        Returns:
            Bars in index order; rows without a close are skipped
        """
        bars = []

        for idx, row in df.iterrows():
            price_date = idx.date() if hasattr(idx, 'date') else idx

            close_price = self._to_decimal(row.get('Close'))
            if close_price is None or close_price <= 0:
                logger.warning(f"Skipping {price_date}: missing close price")
                continue

            open_price = self._to_decimal(row.get('Open')) or close_price
            high_price = self._to_decimal(row.get('High')) or close_price
            low_price = self._to_decimal(row.get('Low')) or close_price

            try:
                bars.append(PriceBar(
                    date=price_date,
                    open=open_price,
                    high=max(high_price, low_price),
                    low=min(high_price, low_price),
                    close=close_price,
                    volume=self._to_int(row.get('Volume')),
                ))
            except ValueError as e:
                logger.warning(f"Error parsing row {idx}: {e}")

        return bars

    @staticmethod
    def _to_decimal(value: Any) -> Decimal | None:
        """Convert a value to Decimal, returning None for NaN/None."""
        if value is None:
            return None
        try:
            if math.isnan(float(value)):
                return None
            return Decimal(str(value)).quantize(Decimal("0.00000001"))
        except (TypeError, ValueError, ArithmeticError):
            return None

    @staticmethod
    def _to_int(value: Any) -> int | None:
        """Convert a value to int, returning None for NaN/None."""
        if value is None:
            return None
        try:
            if math.isnan(float(value)):
                return None
            return int(value)
        except (TypeError, ValueError, OverflowError):
            return None

    # =========================================================================
    # HELPER METHODS
    # =========================================================================

    def _validate_range(self, history_range: str) -> str:
        normalized = history_range.strip().lower()
        if normalized not in self.VALID_RANGES:
            valid = ", ".join(sorted(self.VALID_RANGES))
            raise ValidationError(
                f"Invalid history range: '{history_range}'. Valid options: {valid}",
                field="history_range",
            )
        return normalized

    def _is_valid_ticker_info(self, info: dict | None) -> bool:
        """
        Check if Yahoo Finance info dict represents a valid ticker.

        Yahoo returns an info dict even for invalid tickers, but it lacks
        meaningful data. We check for price or name to validate.
        """
        if not info:
            return False
        return bool(
            info.get("regularMarketPrice")
            or info.get("shortName")
            or info.get("longName")
        )

    def _classify_error(self, error: Exception, symbol: str) -> Exception:
        """Map a raw yfinance/network error to a typed provider error."""
        error_str = str(error).lower()

        if "not found" in error_str or "no data" in error_str or "delisted" in error_str:
            return TickerNotFoundError(symbol=symbol, provider=self.name)

        if "rate limit" in error_str or "too many requests" in error_str:
            return RateLimitError(provider=self.name)

        logger.error(f"Yahoo Finance error for {symbol}: {error}")
        return ProviderUnavailableError(provider=self.name, reason=str(error))
