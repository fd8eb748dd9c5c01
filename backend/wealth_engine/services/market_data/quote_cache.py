# backend/wealth_engine/services/market_data/quote_cache.py
"""
Quote Cache: symbol → last quote, refreshed sequentially from a provider.

The cache is the only place the engine touches the network. Everything else
(valuation, history) reads the snapshot it holds.

Refresh rules:
- Symbols are fetched one at a time with a fixed pause between requests
  (upstream rate limits); never in parallel
- A failed fetch keeps the previous quote (last-known-good), is logged, and
  the loop moves on; no provider error ever reaches the caller
- Quotes younger than the price TTL are skipped unless force=True

History rules:
- Bars are cached per (symbol, range) for the history TTL
- On provider failure stale bars are served; with nothing cached, []

Usage:
    cache = QuoteCache(YahooFinanceProvider())
    result = cache.refresh(["AAPL", "VOD.L"])
    quote = cache.get("AAPL")        # None if never fetched
    snapshot = cache.snapshot()      # dict for ValuationService
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from wealth_engine.config import settings
from wealth_engine.services.market_data.base import (
    MarketDataProvider,
    PriceBar,
    Quote,
    RefreshResult,
)
from wealth_engine.utils.context import operation_scope

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class _CachedHistory:
    bars: tuple[PriceBar, ...]
    fetched_at: datetime


class QuoteCache:
    """
    In-memory quote and price-history cache in front of a provider.

    Attributes:
        delay_seconds: Pause between two consecutive fetches
        price_ttl: Age after which a quote is refreshed
        history_ttl: Age after which cached bars are refetched

    Note:
        ``sleep`` and ``clock`` are injectable so tests run instantly and
        deterministically.
    """

    def __init__(
            self,
            provider: MarketDataProvider,
            delay_seconds: float | None = None,
            price_ttl_seconds: int | None = None,
            history_ttl_seconds: int | None = None,
            sleep: Callable[[float], None] = time.sleep,
            clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._provider = provider
        self.delay_seconds = (
            settings.quote_refresh_delay_seconds if delay_seconds is None else delay_seconds
        )
        self.price_ttl = timedelta(seconds=(
            settings.quote_price_ttl_seconds if price_ttl_seconds is None else price_ttl_seconds
        ))
        self.history_ttl = timedelta(seconds=(
            settings.quote_history_ttl_seconds if history_ttl_seconds is None else history_ttl_seconds
        ))
        self._sleep = sleep
        self._clock = clock

        self._quotes: dict[str, Quote] = {}
        self._fetched_at: dict[str, datetime] = {}
        self._history: dict[tuple[str, str], _CachedHistory] = {}

    # =========================================================================
    # READ ACCESS
    # =========================================================================

    def get(self, symbol: str) -> Quote | None:
        return self._quotes.get(self._normalize(symbol))

    def snapshot(self) -> dict[str, Quote]:
        """Copy of every cached quote keyed by symbol."""
        return dict(self._quotes)

    def is_stale(self, symbol: str) -> bool:
        """True if the symbol has no quote or its quote is older than the TTL."""
        fetched_at = self._fetched_at.get(self._normalize(symbol))
        if fetched_at is None:
            return True
        return self._clock() - fetched_at >= self.price_ttl

    def seed(self, quotes: Iterable[Quote]) -> None:
        """
        Load quotes from an external cache (e.g. restored on start-up).

        Each quote is considered fetched at its own timestamp.
        """
        for quote in quotes:
            key = self._normalize(quote.symbol)
            self._quotes[key] = quote
            self._fetched_at[key] = quote.timestamp

    # =========================================================================
    # REFRESH
    # =========================================================================

    def refresh(self, symbols: Iterable[str], force: bool = False) -> RefreshResult:
        """
        Fetch fresh quotes one symbol at a time.

        Args:
            symbols: Symbols to refresh (duplicates and blanks ignored)
            force: Refetch even if the cached quote is within its TTL

        Returns:
            RefreshResult listing updated, skipped and failed symbols
        """
        result = RefreshResult()
        targets = self._unique(symbols)
        if not targets:
            return result

        with operation_scope("refresh"):
            if not self._provider.is_available():
                logger.warning(f"Provider '{self._provider.name}' unavailable, keeping cached quotes")
                for symbol in targets:
                    result.failed[symbol] = "provider unavailable"
                return result

            fetched_any = False
            for symbol in targets:
                if not force and not self.is_stale(symbol):
                    result.skipped.append(symbol)
                    continue

                if fetched_any and self.delay_seconds > 0:
                    self._sleep(self.delay_seconds)
                fetched_any = True

                try:
                    quote = self._provider.get_quote(symbol)
                except Exception as e:
                    logger.warning(f"Quote fetch failed for {symbol}, keeping last quote: {e}")
                    result.failed[symbol] = str(e)
                    continue

                self._quotes[symbol] = quote
                self._fetched_at[symbol] = self._clock()
                result.updated.append(symbol)
                logger.debug(f"{symbol}: last={quote.last} change={quote.change}")

            logger.info(
                f"Quote refresh finished: {result.success_count} updated, "
                f"{len(result.skipped)} fresh, {result.failure_count} failed",
                extra={"symbols": len(targets)},
            )

        return result

    # =========================================================================
    # HISTORY
    # =========================================================================

    def get_history(self, symbol: str, history_range: str | None = None) -> list[PriceBar]:
        """
        Daily bars for a symbol, served from cache within the history TTL.

        Args:
            symbol: Instrument symbol
            history_range: Provider range (default: settings.quote_history_range)

        Returns:
            Bars oldest first; stale bars when the provider fails; [] when
            nothing was ever fetched
        """
        key = (self._normalize(symbol), history_range or settings.quote_history_range)
        cached = self._history.get(key)
        now = self._clock()

        if cached is not None and now - cached.fetched_at < self.history_ttl:
            logger.debug(f"History cache hit for {key[0]} ({key[1]})")
            return list(cached.bars)

        try:
            bars = self._provider.get_history(key[0], key[1])
        except Exception as e:
            if cached is not None:
                logger.warning(f"History fetch failed for {key[0]}, serving stale bars: {e}")
                return list(cached.bars)
            logger.warning(f"History fetch failed for {key[0]}, no cached bars: {e}")
            return []

        self._history[key] = _CachedHistory(bars=tuple(bars), fetched_at=now)
        return list(bars)

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _normalize(symbol: str) -> str:
        return symbol.strip().upper()

    def _unique(self, symbols: Iterable[str]) -> list[str]:
        seen: set[str] = set()
        ordered = []
        for symbol in symbols:
            if not symbol or not symbol.strip():
                continue
            key = self._normalize(symbol)
            if key not in seen:
                seen.add(key)
                ordered.append(key)
        return ordered
