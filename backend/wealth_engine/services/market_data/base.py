# backend/wealth_engine/services/market_data/base.py
"""
Abstract interface for market data providers (the QuoteProvider contract).

Every provider normalizes its data into the shapes defined here:
- Quote: last price, same-day change, price series, optional bars and
  fundamentals
- PriceBar: one day of OHLCV data
- FX rates as plain Decimals ("1 base = X quote")

Design Principles:
- Interface Segregation: Only what the quote cache and FX service consume
- Dependency Inversion: The cache depends on this ABC, not on yfinance
- DRY: Retry with exponential backoff implemented once in the base class
- Errors are typed: TickerNotFoundError is permanent, ProviderUnavailableError
  and RateLimitError are transient and retried
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import TypeVar, Callable, Any

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from wealth_engine.services.exceptions import (
    ProviderUnavailableError,
    RateLimitError,
)

logger = logging.getLogger(__name__)

T = TypeVar('T')

ZERO = Decimal("0")
HUNDRED = Decimal("100")


# =============================================================================
# DATA CLASSES - PRICE DATA
# =============================================================================

@dataclass(frozen=True)
class PricePoint:
    """One (t, v) sample of a price series."""

    t: datetime
    v: Decimal


@dataclass(frozen=True)
class PriceBar:
    """
    Single day's OHLCV price data.

    Attributes:
        date: Trading date
        open: Opening price
        high: Highest price during the day
        low: Lowest price during the day
        close: Closing price (used for marks and series)
        volume: Units traded (None when the source has no volume)
    """

    date: date
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: int | None = None

    def __post_init__(self) -> None:
        """Validate price data."""
        if self.close <= 0:
            raise ValueError(f"close price must be positive, got {self.close}")
        if self.high < self.low:
            raise ValueError(f"high ({self.high}) cannot be less than low ({self.low})")


@dataclass(frozen=True)
class Fundamentals:
    """
    Optional company data shown next to a quote.

    Every field is optional: providers fill what they have.
    """

    company_name: str | None = None
    sector: str | None = None
    industry: str | None = None
    description: str | None = None
    market_cap: Decimal | None = None
    pe_ratio: Decimal | None = None
    forward_pe: Decimal | None = None
    eps: Decimal | None = None
    dividend_yield: Decimal | None = None
    beta: Decimal | None = None
    week52_high: Decimal | None = None
    week52_low: Decimal | None = None
    avg_volume: int | None = None


@dataclass(frozen=True)
class Quote:
    """
    Latest market data for one symbol.

    Attributes:
        symbol: Instrument symbol as requested
        last: Last traded (or last close) price in the instrument currency
        change: Absolute change versus the previous close
        change_percentage: change / previous close × 100
        timestamp: When the quote was fetched (UTC)
        series: Ordered (t, v) closes for charts
        bars: Ordered daily OHLCV bars, when the provider supplies them
        fundamentals: Company data, when available
    """

    symbol: str
    last: Decimal
    change: Decimal
    change_percentage: Decimal
    timestamp: datetime
    series: tuple[PricePoint, ...] = ()
    bars: tuple[PriceBar, ...] = ()
    fundamentals: Fundamentals | None = None

    @property
    def previous_close(self) -> Decimal:
        return self.last - self.change

    @classmethod
    def from_bars(
            cls,
            symbol: str,
            bars: list[PriceBar],
            timestamp: datetime | None = None,
            fundamentals: Fundamentals | None = None,
    ) -> Quote:
        """
        Build a quote from daily bars.

        last = final close; change = last − previous close (0 with a single
        bar); percentage is 0 when the previous close is 0.
        """
        if not bars:
            raise ValueError(f"Cannot build a quote for {symbol} without bars")

        ordered = sorted(bars, key=lambda b: b.date)
        last = ordered[-1].close
        previous = ordered[-2].close if len(ordered) > 1 else last
        change = last - previous
        percentage = (change / previous * HUNDRED) if previous else ZERO

        series = tuple(
            PricePoint(t=datetime(b.date.year, b.date.month, b.date.day, tzinfo=timezone.utc), v=b.close)
            for b in ordered
        )

        return cls(
            symbol=symbol,
            last=last,
            change=change,
            change_percentage=percentage,
            timestamp=timestamp or datetime.now(timezone.utc),
            series=series,
            bars=tuple(ordered),
            fundamentals=fundamentals,
        )


@dataclass
class RefreshResult:
    """
    Outcome of one quote cache refresh.

    A failed symbol keeps its previous quote; callers treat "failed" and
    "skipped" the same way (no fresh data this cycle).

    Attributes:
        updated: Symbols with a fresh quote
        skipped: Symbols whose cached quote was still within its TTL
        failed: Symbol → error message for fetches that raised
    """

    updated: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def success_count(self) -> int:
        return len(self.updated)

    @property
    def failure_count(self) -> int:
        return len(self.failed)

    @property
    def all_successful(self) -> bool:
        return self.failure_count == 0


# =============================================================================
# ABSTRACT BASE CLASS
# =============================================================================

class MarketDataProvider(ABC):
    """
    Abstract base class for market data providers.

    Retry Behavior:
        `_execute_with_retry` implements exponential backoff. Subclasses can
        override the configuration through class attributes:

        - MAX_RETRY_ATTEMPTS: Total attempts (default: 3)
        - RETRY_MIN_WAIT: Minimum wait in seconds (default: 1)
        - RETRY_MAX_WAIT: Maximum wait in seconds (default: 10)
        - RETRY_MULTIPLIER: Exponential multiplier (default: 1)

    Retryable Exceptions:
        - ProviderUnavailableError: Network issues, timeouts, server errors
        - RateLimitError: API rate limit exceeded

    Non-Retryable Exceptions:
        - TickerNotFoundError: Permanent failure (symbol doesn't exist)
    """

    MAX_RETRY_ATTEMPTS: int = 3
    RETRY_MIN_WAIT: int = 1
    RETRY_MAX_WAIT: int = 10
    RETRY_MULTIPLIER: int = 1

    # =========================================================================
    # ABSTRACT PROPERTIES AND METHODS
    # =========================================================================

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Unique identifier for this provider, used in logs and errors.

        Returns:
            Provider name (e.g., "yahoo")
        """
        pass

    @abstractmethod
    def get_quote(self, symbol: str) -> Quote:
        """
        Fetch the latest quote for a symbol.

        Raises:
            TickerNotFoundError: Symbol unknown to the provider
            ProviderUnavailableError: Network or API error (retryable)
            RateLimitError: Rate limit exceeded (retryable)
        """
        pass

    @abstractmethod
    def get_history(self, symbol: str, history_range: str) -> list[PriceBar]:
        """
        Fetch daily bars for a symbol over a range such as "1mo" or "1y".

        Returns:
            Bars ordered oldest first (may be empty)

        Raises:
            TickerNotFoundError: Symbol unknown to the provider
            ProviderUnavailableError: Network or API error (retryable)
            RateLimitError: Rate limit exceeded (retryable)
        """
        pass

    @abstractmethod
    def get_fx_rate(self, base_currency: str, quote_currency: str) -> Decimal:
        """
        Fetch the latest FX rate: 1 base_currency = X quote_currency.

        Raises:
            TickerNotFoundError: Pair unknown to the provider
            ProviderUnavailableError: Network or API error (retryable)
        """
        pass

    # =========================================================================
    # RETRY HELPER METHOD
    # =========================================================================

    def _execute_with_retry(
            self,
            func: Callable[..., T],
            *args: Any,
            **kwargs: Any,
    ) -> T:
        """
        Execute a function with retry logic for transient failures.

        Retries ProviderUnavailableError and RateLimitError with exponential
        backoff; anything else propagates immediately.

        Returns:
            Return value of func

        Raises:
            The last exception if all retries fail
        """

        @retry(
            stop=stop_after_attempt(self.MAX_RETRY_ATTEMPTS),
            wait=wait_exponential(
                multiplier=self.RETRY_MULTIPLIER,
                min=self.RETRY_MIN_WAIT,
                max=self.RETRY_MAX_WAIT,
            ),
            retry=retry_if_exception_type((ProviderUnavailableError, RateLimitError)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        def _inner() -> T:
            return func(*args, **kwargs)

        return _inner()

    def is_available(self) -> bool:
        """
        Check if the provider is currently available.

        Default implementation returns True. Subclasses can override
        to implement health checks.
        """
        return True
