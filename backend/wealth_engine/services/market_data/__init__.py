# backend/wealth_engine/services/market_data/__init__.py
"""
Market data services package.

This package contains:
- Abstract interface for market data providers (base.py)
- Yahoo Finance implementation (yahoo.py)
- In-memory quote and history cache (quote_cache.py)

Usage:
    from wealth_engine.services.market_data import (
        QuoteCache,
        YahooFinanceProvider,
    )

    cache = QuoteCache(YahooFinanceProvider())
    cache.refresh(["AAPL", "D05.SI"])

Architecture:
    MarketDataProvider (ABC)
    └── YahooFinanceProvider (concrete)

    QuoteCache
    └── Sequential refresh with last-known-good fallback
"""

from wealth_engine.services.market_data.base import (
    Fundamentals,
    MarketDataProvider,
    PriceBar,
    PricePoint,
    Quote,
    RefreshResult,
)
from wealth_engine.services.market_data.quote_cache import QuoteCache
from wealth_engine.services.market_data.yahoo import YahooFinanceProvider

__all__ = [
    # Abstract interface
    "MarketDataProvider",
    # Data classes
    "PricePoint",
    "PriceBar",
    "Fundamentals",
    "Quote",
    "RefreshResult",
    # Concrete implementations
    "YahooFinanceProvider",
    "QuoteCache",
]
