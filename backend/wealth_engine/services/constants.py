# backend/wealth_engine/services/constants.py
"""
Centralized constants for the Wealth Engine services.

Business constants that are not user-tunable live here; anything that
depends on the deployment (TTLs, delays, currencies) is in config.Settings.

Usage:
    from wealth_engine.services.constants import (
        PRICE_FALLBACK_DAYS,
        CURRENCY_PRECISION,
    )
"""

from decimal import Decimal


# =============================================================================
# PRICE FALLBACK SETTINGS
# =============================================================================

# Maximum days to look back when a close is missing (weekends, holidays)
PRICE_FALLBACK_DAYS: int = 5


# =============================================================================
# DECIMAL PRECISION CONSTANTS
# =============================================================================

# Currency amounts: 2 decimal places
CURRENCY_PRECISION: Decimal = Decimal("0.01")

# Display percentage: 2 decimal places (e.g., 12.34%)
DISPLAY_PERCENTAGE_PRECISION: Decimal = Decimal("0.01")


# =============================================================================
# HISTORY LIMITS
# =============================================================================

# Maximum days a net worth reconstruction may walk back (20 years)
MAX_HISTORY_DAYS: int = 365 * 20 + 5

# Window lengths in calendar months for chart timeframes (1W is in days)
TIMEFRAME_WEEK_DAYS: int = 7
TIMEFRAME_MONTHS: dict[str, int] = {
    "1M": 1,
    "3M": 3,
    "6M": 6,
    "1Y": 12,
}


# =============================================================================
# PORTFOLIO STATE DEFAULTS
# =============================================================================

# Benchmark of new portfolios and of the one created from a v1 document
DEFAULT_BENCHMARK: str = "SPY"

# Watchlist of the portfolio seeded on a fresh start
DEFAULT_WATCHLIST: tuple[str, ...] = ("AAPL", "TSLA", "SPY", "BTC-USD")

# Prefix of generated portfolio IDs ("pf-3k9x2a")
PORTFOLIO_ID_PREFIX: str = "pf-"
