# backend/tests/services/test_quote_cache.py
"""
Tests for QuoteCache.

The provider is the MockMarketDataProvider from conftest; sleep and clock
are injected so nothing waits and TTLs are deterministic.

Test Coverage:
- Sequential refresh with a fixed pause between fetches
- TTL skipping and force
- Last-known-good on failure, unavailable provider
- History caching, stale fallback, empty fallback
- Seeding from stored quotes
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from wealth_engine.services.exceptions import RateLimitError, TickerNotFoundError
from wealth_engine.services.market_data import QuoteCache
from wealth_engine.services.market_data.base import Quote
from tests.conftest import FIXED_NOW, create_bars, create_quote


class FakeClock:
    def __init__(self):
        self.now = FIXED_NOW

    def __call__(self):
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def cache(mock_provider, clock, sleeps) -> QuoteCache:
    for symbol, last in (("AAPL", "150"), ("MSFT", "400"), ("VOD.L", "0.75")):
        mock_provider.add_quote(create_quote(symbol, last=last))
    return QuoteCache(
        mock_provider,
        delay_seconds=0.12,
        price_ttl_seconds=300,
        history_ttl_seconds=86400,
        sleep=sleeps.append,
        clock=clock,
    )


class TestRefresh:
    def test_fetches_sequentially_with_delay(self, cache, mock_provider, sleeps):
        result = cache.refresh(["AAPL", "MSFT", "VOD.L"])

        assert mock_provider.quote_calls == ["AAPL", "MSFT", "VOD.L"]
        assert sleeps == [0.12, 0.12]
        assert result.updated == ["AAPL", "MSFT", "VOD.L"]
        assert result.all_successful
        assert cache.get("aapl").last == Decimal("150")

    def test_duplicates_and_blanks_ignored(self, cache, mock_provider):
        result = cache.refresh(["aapl", "AAPL", " ", "", "msft"])

        assert mock_provider.quote_calls == ["AAPL", "MSFT"]
        assert result.success_count == 2

    def test_empty_input(self, cache, mock_provider):
        result = cache.refresh([])

        assert result.updated == [] and result.failed == {}
        assert mock_provider.quote_calls == []

    def test_fresh_quotes_are_skipped(self, cache, mock_provider, clock, sleeps):
        cache.refresh(["AAPL"])
        clock.advance(60)

        result = cache.refresh(["AAPL", "MSFT"])

        assert result.skipped == ["AAPL"]
        assert result.updated == ["MSFT"]
        assert mock_provider.quote_calls == ["AAPL", "MSFT"]
        assert sleeps == []

    def test_stale_after_ttl(self, cache, mock_provider, clock):
        cache.refresh(["AAPL"])
        assert cache.is_stale("AAPL") is False

        clock.advance(300)

        assert cache.is_stale("AAPL") is True
        cache.refresh(["AAPL"])
        assert mock_provider.quote_calls == ["AAPL", "AAPL"]

    def test_force_ignores_ttl(self, cache, mock_provider):
        cache.refresh(["AAPL"])
        result = cache.refresh(["AAPL"], force=True)

        assert result.updated == ["AAPL"]
        assert mock_provider.quote_calls == ["AAPL", "AAPL"]

    def test_unknown_symbol_is_stale(self, cache):
        assert cache.is_stale("NOPE") is True
        assert cache.get("NOPE") is None


class TestFailures:
    def test_failure_keeps_last_known_good(self, cache, mock_provider, clock):
        cache.refresh(["AAPL"])
        clock.advance(600)
        mock_provider.add_error("AAPL", RateLimitError(provider="mock"))

        result = cache.refresh(["AAPL", "MSFT"])

        assert list(result.failed) == ["AAPL"]
        assert result.updated == ["MSFT"]
        assert cache.get("AAPL").last == Decimal("150")
        assert cache.is_stale("AAPL") is True

    def test_unknown_symbol_fails_without_raising(self, cache):
        result = cache.refresh(["NOPE"])

        assert "NOPE" in result.failed
        assert cache.get("NOPE") is None

    def test_failure_does_not_stop_loop(self, cache, mock_provider, sleeps):
        mock_provider.add_error("AAPL", TickerNotFoundError(symbol="AAPL", provider="mock"))

        result = cache.refresh(["AAPL", "MSFT"])

        assert result.updated == ["MSFT"]
        assert sleeps == [0.12]

    def test_unavailable_provider(self, cache, mock_provider):
        mock_provider.set_available(False)

        result = cache.refresh(["AAPL", "MSFT"])

        assert result.failed == {"AAPL": "provider unavailable", "MSFT": "provider unavailable"}
        assert mock_provider.quote_calls == []


class TestSnapshotAndSeed:
    def test_snapshot_is_a_copy(self, cache):
        cache.refresh(["AAPL"])

        snapshot = cache.snapshot()
        snapshot.clear()

        assert cache.get("AAPL") is not None

    def test_seed_uses_quote_timestamp(self, cache, clock, mock_provider):
        old = create_quote("TSLA", last="200", timestamp=FIXED_NOW - timedelta(hours=1))
        fresh = create_quote("NVDA", last="900", timestamp=FIXED_NOW)

        cache.seed([old, fresh])

        assert cache.get("TSLA").last == Decimal("200")
        assert cache.is_stale("TSLA") is True
        assert cache.is_stale("NVDA") is False
        assert set(cache.snapshot()) == {"TSLA", "NVDA"}


class TestHistory:
    @pytest.fixture
    def bars(self):
        return create_bars(date(2024, 3, 11), ["100", "101", "102"])

    def test_history_cached_within_ttl(self, cache, mock_provider, clock, bars):
        mock_provider.add_history("AAPL", bars)

        first = cache.get_history("AAPL", "1mo")
        clock.advance(3600)
        second = cache.get_history("aapl", "1mo")

        assert first == bars
        assert second == bars
        assert mock_provider.history_calls == [("AAPL", "1mo")]

    def test_history_refetched_after_ttl(self, cache, mock_provider, clock, bars):
        mock_provider.add_history("AAPL", bars)
        cache.get_history("AAPL", "1mo")
        clock.advance(86400)

        cache.get_history("AAPL", "1mo")

        assert len(mock_provider.history_calls) == 2

    def test_range_is_part_of_the_key(self, cache, mock_provider, bars):
        mock_provider.add_history("AAPL", bars)

        cache.get_history("AAPL", "1mo")
        cache.get_history("AAPL", "1y")

        assert mock_provider.history_calls == [("AAPL", "1mo"), ("AAPL", "1y")]

    def test_default_range_from_settings(self, cache, mock_provider, bars):
        mock_provider.add_history("AAPL", bars)

        cache.get_history("AAPL")

        assert mock_provider.history_calls == [("AAPL", "1y")]

    def test_stale_bars_served_on_failure(self, cache, mock_provider, clock, bars):
        mock_provider.add_history("AAPL", bars)
        cache.get_history("AAPL", "1mo")
        clock.advance(90000)
        mock_provider.add_error("AAPL", RateLimitError(provider="mock"))

        assert cache.get_history("AAPL", "1mo") == bars

    def test_nothing_cached_returns_empty(self, cache):
        assert cache.get_history("NOPE", "1mo") == []


def test_quote_from_bars():
    bars = create_bars(date(2024, 3, 11), ["100", "110"])

    quote = Quote.from_bars("AAPL", bars, timestamp=FIXED_NOW)

    assert quote.last == Decimal("110")
    assert quote.change == Decimal("10")
    assert quote.change_percentage == Decimal("10")
    assert quote.previous_close == Decimal("100")
    assert len(quote.series) == 2
