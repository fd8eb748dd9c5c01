# backend/tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Persistence fixtures (in-memory provider, in-memory SQLite)
- Mock provider fixtures
- Sample data factories (lots, holdings, portfolios, quotes)
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from wealth_engine.models import (
    Base,
    Holding,
    InstrumentType,
    Lot,
    LotSide,
    Portfolio,
)
from wealth_engine.services.exceptions import TickerNotFoundError
from wealth_engine.services.market_data.base import MarketDataProvider, PriceBar, Quote
from wealth_engine.services.state.persistence import InMemoryPersistenceProvider

FIXED_NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def session_factory(db_engine) -> Iterator[sessionmaker[Session]]:
    """Session factory bound to the in-memory engine."""
    yield sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def memory_persistence() -> InMemoryPersistenceProvider:
    """Empty dict-backed persistence provider."""
    return InMemoryPersistenceProvider()


# =============================================================================
# MOCK MARKET DATA PROVIDER
# =============================================================================

class MockMarketDataProvider(MarketDataProvider):
    """
    Mock implementation of MarketDataProvider for testing.

    Allows configuring quotes, bars and FX rates per symbol and simulating
    errors. Unknown symbols raise TickerNotFoundError.
    """

    def __init__(self):
        self._quotes: dict[str, Quote] = {}
        self._history: dict[str, list[PriceBar]] = {}
        self._fx_rates: dict[tuple[str, str], Decimal] = {}
        self._errors: dict[str, Exception] = {}
        self._available = True
        self.quote_calls: list[str] = []
        self.history_calls: list[tuple[str, str]] = []
        self.fx_calls: list[tuple[str, str]] = []

    @property
    def name(self) -> str:
        return "mock"

    def add_quote(self, quote: Quote) -> None:
        """Configure a successful quote response."""
        self._quotes[quote.symbol.upper()] = quote

    def add_history(self, symbol: str, bars: list[PriceBar]) -> None:
        """Configure a history response."""
        self._history[symbol.upper()] = bars

    def add_fx_rate(self, base: str, quote: str, rate: Decimal) -> None:
        """Configure an FX rate response (1 base = rate quote)."""
        self._fx_rates[(base.upper(), quote.upper())] = rate

    def remove_fx_rate(self, base: str, quote: str) -> None:
        self._fx_rates.pop((base.upper(), quote.upper()), None)

    def add_error(self, symbol: str, error: Exception) -> None:
        """Configure an error for a symbol (quotes and history)."""
        self._errors[symbol.upper()] = error

    def clear_error(self, symbol: str) -> None:
        self._errors.pop(symbol.upper(), None)

    def set_available(self, available: bool) -> None:
        """Set provider availability for health checks."""
        self._available = available

    def get_quote(self, symbol: str) -> Quote:
        key = symbol.upper()
        self.quote_calls.append(key)
        if key in self._errors:
            raise self._errors[key]
        if key in self._quotes:
            return self._quotes[key]
        raise TickerNotFoundError(symbol=key, provider=self.name)

    def get_history(self, symbol: str, history_range: str) -> list[PriceBar]:
        key = symbol.upper()
        self.history_calls.append((key, history_range))
        if key in self._errors:
            raise self._errors[key]
        if key in self._history:
            return list(self._history[key])
        raise TickerNotFoundError(symbol=key, provider=self.name)

    def get_fx_rate(self, base_currency: str, quote_currency: str) -> Decimal:
        pair = (base_currency.upper(), quote_currency.upper())
        self.fx_calls.append(pair)
        if pair in self._fx_rates:
            return self._fx_rates[pair]
        raise TickerNotFoundError(symbol=f"{pair[0]}{pair[1]}=X", provider=self.name)

    def is_available(self) -> bool:
        """Return configured availability."""
        return self._available


@pytest.fixture
def mock_provider() -> MockMarketDataProvider:
    """Create a fresh mock provider for each test."""
    return MockMarketDataProvider()


# =============================================================================
# SAMPLE DATA FACTORIES
# =============================================================================

def create_lot(
        side: LotSide = LotSide.BUY,
        quantity: str = "10",
        price: str = "100",
        on: date = date(2024, 1, 1),
        fee: str = "0",
        lot_id: str | None = None,
) -> Lot:
    """Factory function for Lot test data (amounts as strings for exact Decimals)."""
    return Lot(
        id=lot_id or f"{side.value}-{on.isoformat()}-{quantity}",
        side=side,
        quantity=Decimal(quantity),
        price=Decimal(price),
        date=on,
        fee=Decimal(fee),
    )


def create_holding(
        symbol: str = "AAPL",
        lots: list[Lot] | None = None,
        currency: str = "USD",
        name: str = "",
        instrument_type: InstrumentType = InstrumentType.STOCK,
        archived: bool = False,
) -> Holding:
    """Factory function for Holding test data."""
    return Holding(
        symbol=symbol,
        name=name or symbol,
        instrument_type=instrument_type,
        currency=currency,
        lots=list(lots or []),
        archived=archived,
    )


def create_portfolio(
        portfolio_id: str = "pf-test01",
        name: str = "Test Portfolio",
        base_currency: str = "USD",
        holdings: list[Holding] | None = None,
        cash: str = "0",
        tracking_enabled: bool = True,
) -> Portfolio:
    """Factory function for Portfolio test data."""
    return Portfolio(
        id=portfolio_id,
        name=name,
        base_currency=base_currency,
        holdings={h.symbol: h for h in holdings or []},
        cash=Decimal(cash),
        tracking_enabled=tracking_enabled,
        created_at=FIXED_NOW,
    )


def create_bars(
        start: date,
        closes: list[str],
        skip_weekends: bool = False,
) -> list[PriceBar]:
    """Consecutive daily bars starting at ``start`` with the given closes."""
    bars = []
    current = start
    for close in closes:
        while skip_weekends and current.weekday() >= 5:
            current += timedelta(days=1)
        value = Decimal(close)
        bars.append(PriceBar(date=current, open=value, high=value, low=value, close=value))
        current += timedelta(days=1)
    return bars


def create_quote(
        symbol: str = "AAPL",
        last: str = "150",
        change: str = "0",
        timestamp: datetime = FIXED_NOW,
) -> Quote:
    """Factory function for Quote test data."""
    last_value = Decimal(last)
    change_value = Decimal(change)
    previous = last_value - change_value
    percentage = change_value / previous * 100 if previous else Decimal("0")
    return Quote(
        symbol=symbol,
        last=last_value,
        change=change_value,
        change_percentage=percentage,
        timestamp=timestamp,
    )


# =============================================================================
# FIXTURE EXPORTS (for convenience imports in tests)
# =============================================================================

@pytest.fixture
def scenario_a_lots() -> list[Lot]:
    """Two buys: 10 @ 100, then 5 @ 120."""
    return [
        create_lot(LotSide.BUY, "10", "100", date(2024, 1, 1)),
        create_lot(LotSide.BUY, "5", "120", date(2024, 2, 1)),
    ]


@pytest.fixture
def sample_portfolio(scenario_a_lots) -> Portfolio:
    """USD portfolio holding AAPL (Scenario A lots) and 1000 cash."""
    return create_portfolio(
        holdings=[create_holding("AAPL", scenario_a_lots, name="Apple Inc.")],
        cash="1000",
    )
