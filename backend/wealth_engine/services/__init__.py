# backend/wealth_engine/services/__init__.py
"""
Service layer for valuation, net worth history and portfolio state.

Services:
- Are plain Python: no I/O framework, no global state
- Raise domain-specific exceptions (services.exceptions)
- Receive their collaborators (providers, persistence) as arguments
- Report degraded data as warnings on their results instead of raising

Usage:
    from wealth_engine.services import ValuationService, NetWorthHistoryCalculator
    from wealth_engine.services import PortfolioStore, QuoteCache, FXRateService
    from wealth_engine.services import (
        PortfolioNotFoundError,
        MarketDataError,
    )

Architecture:
    services/
    ├── __init__.py                  # This file - main exports
    ├── exceptions.py                # Domain exceptions
    ├── constants.py                 # Business constants and limits
    ├── currency_resolution.py       # Symbol suffix → trading currency
    ├── fx_rate_service.py           # FX rate table from a provider
    ├── market_data/                 # Market data package
    │   ├── base.py                  # Abstract provider interface
    │   ├── yahoo.py                 # Yahoo Finance implementation
    │   └── quote_cache.py           # Quote / history cache
    ├── networth/                    # Net worth history
    │   ├── types.py                 # NetWorthPoint, NetWorthHistory
    │   ├── reconstruction.py        # Backward reconstruction
    │   └── aggregation.py           # Day / week / month buckets
    ├── state/                       # Portfolio state
    │   ├── persistence.py           # Persistence providers
    │   ├── migration.py             # Legacy document migration
    │   └── store.py                 # PortfolioStore
    └── valuation/                   # Valuation service
        ├── service.py               # Main valuation orchestrator
        ├── types.py                 # Valuation data types
        ├── calculators.py           # Lot ledger and holdings gathering
        └── history_calculator.py    # Holdings value time series
"""

from wealth_engine.services.currency_resolution import infer_currency, resolve_currency
# Exceptions
from wealth_engine.services.exceptions import (
    ServiceError,
    ValidationError,
    InvalidGranularityError,
    InvalidTimeframeError,
    NotFoundError,
    PortfolioNotFoundError,
    HoldingNotFoundError,
    LotNotFoundError,
    MarketDataError,
    ProviderUnavailableError,
    TickerNotFoundError,
    RateLimitError,
    PersistenceError,
)
from wealth_engine.services.fx_rate_service import FXRateService
# Market Data
from wealth_engine.services.market_data import (
    MarketDataProvider,
    Quote,
    PriceBar,
    RefreshResult,
    YahooFinanceProvider,
    QuoteCache,
)
# Net worth
from wealth_engine.services.networth import (
    NetWorthHistoryCalculator,
    NetWorthHistory,
    NetWorthPoint,
    aggregate,
    aggregate_for_timeframe,
    aggregate_weeks_anchored,
)
# Portfolio state
from wealth_engine.services.state import (
    PortfolioStore,
    InMemoryPersistenceProvider,
    SqlAlchemyPersistenceProvider,
    migrate,
)
# Valuation
from wealth_engine.services.valuation import (
    ValuationService,
    HoldingsHistoryCalculator,
    compute_pnl,
)

__all__ = [
    # ==========================================================================
    # Services
    # ==========================================================================
    "ValuationService",
    "HoldingsHistoryCalculator",
    "NetWorthHistoryCalculator",
    "FXRateService",
    "QuoteCache",
    "PortfolioStore",
    # ==========================================================================
    # Functions
    # ==========================================================================
    "compute_pnl",
    "aggregate",
    "aggregate_for_timeframe",
    "aggregate_weeks_anchored",
    "infer_currency",
    "resolve_currency",
    "migrate",
    # ==========================================================================
    # Providers and types
    # ==========================================================================
    "MarketDataProvider",
    "YahooFinanceProvider",
    "Quote",
    "PriceBar",
    "RefreshResult",
    "NetWorthHistory",
    "NetWorthPoint",
    "InMemoryPersistenceProvider",
    "SqlAlchemyPersistenceProvider",
    # ==========================================================================
    # Exceptions
    # ==========================================================================
    "ServiceError",
    "ValidationError",
    "InvalidGranularityError",
    "InvalidTimeframeError",
    "NotFoundError",
    "PortfolioNotFoundError",
    "HoldingNotFoundError",
    "LotNotFoundError",
    "MarketDataError",
    "ProviderUnavailableError",
    "TickerNotFoundError",
    "RateLimitError",
    "PersistenceError",
]
