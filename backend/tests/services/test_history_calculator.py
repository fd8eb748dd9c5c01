# backend/tests/services/test_history_calculator.py
"""
Unit tests for HoldingsHistoryCalculator.

These tests verify the Rolling State algorithm that applies lots in date
order and marks held positions with daily closes.

Key Properties Tested:
1. Lots are applied as dates advance (buys/sells change later points only)
2. Missing closes fall back up to PRICE_FALLBACK_DAYS, then warn once
3. Closes are converted to the reporting currency
4. Empty input and reversed date ranges
"""

from datetime import date
from decimal import Decimal

import pytest

from wealth_engine.models import LotSide
from wealth_engine.services.exceptions import ValidationError
from wealth_engine.services.valuation import HoldingsHistoryCalculator
from wealth_engine.utils.fx_conversion import FxRateTable
from tests.conftest import create_bars, create_holding, create_lot, create_portfolio


@pytest.fixture
def calculator() -> HoldingsHistoryCalculator:
    return HoldingsHistoryCalculator()


class TestRollingState:
    """Quantity is recomputed per day from the lots dated on or before it."""

    @pytest.fixture
    def portfolio(self):
        return create_portfolio(holdings=[create_holding("AAPL", [
            create_lot(LotSide.BUY, "10", "100", date(2024, 1, 2)),
            create_lot(LotSide.BUY, "5", "100", date(2024, 1, 4)),
            create_lot(LotSide.SELL, "5", "110", date(2024, 1, 5)),
        ])])

    def test_values_follow_lot_dates(self, calculator, portfolio):
        bars = create_bars(date(2024, 1, 1), ["100", "101", "102", "103", "104", "105"])

        history = calculator.calculate(
            [portfolio], {"AAPL": bars}, None, "USD", date(2024, 1, 1), date(2024, 1, 6),
        )

        assert [p.value for p in history.data] == [
            Decimal("0"), Decimal("1010"), Decimal("1020"),
            Decimal("1545"), Decimal("1040"), Decimal("1050"),
        ]
        assert [p.holdings_count for p in history.data] == [0, 1, 1, 1, 1, 1]
        assert history.total_points == 6
        assert history.warnings == []

    def test_cost_basis_tracks_remaining_cost(self, calculator, portfolio):
        bars = create_bars(date(2024, 1, 1), ["100"] * 6)

        history = calculator.calculate(
            [portfolio], {"AAPL": bars}, None, "USD", date(2024, 1, 1), date(2024, 1, 6),
        )

        by_date = {p.date: p.cost_basis for p in history.data}
        assert by_date[date(2024, 1, 1)] == Decimal("0")
        assert by_date[date(2024, 1, 2)] == Decimal("1000")
        assert by_date[date(2024, 1, 4)] == Decimal("1500")
        assert by_date[date(2024, 1, 5)] == Decimal("1000")

    def test_lot_order_in_document_does_not_matter(self, calculator):
        portfolio = create_portfolio(holdings=[create_holding("AAPL", [
            create_lot(LotSide.SELL, "4", "100", date(2024, 1, 3)),
            create_lot(LotSide.BUY, "10", "100", date(2024, 1, 1)),
        ])])
        bars = create_bars(date(2024, 1, 1), ["10", "10", "10"])

        history = calculator.calculate(
            [portfolio], {"AAPL": bars}, None, "USD", date(2024, 1, 1), date(2024, 1, 3),
        )

        assert [p.value for p in history.data] == [Decimal("100"), Decimal("100"), Decimal("60")]

    def test_symbol_lookup_is_case_insensitive(self, calculator, portfolio):
        bars = create_bars(date(2024, 1, 2), ["50"])

        history = calculator.calculate(
            [portfolio], {"aapl": bars}, None, "USD", date(2024, 1, 2), date(2024, 1, 2),
        )

        assert history.data[0].value == Decimal("500.00")


class TestPriceFallback:
    """Missing closes look back a bounded number of days."""

    def test_fallback_and_single_warning(self, calculator):
        portfolio = create_portfolio(holdings=[
            create_holding("AAPL", [create_lot(quantity="2", on=date(2024, 1, 1))]),
        ])
        bars = create_bars(date(2024, 1, 1), ["50"])

        history = calculator.calculate(
            [portfolio], {"AAPL": bars}, None, "USD", date(2024, 1, 1), date(2024, 1, 8),
        )

        values = [p.value for p in history.data]
        assert values[:6] == [Decimal("100")] * 6
        assert values[6:] == [Decimal("0"), Decimal("0")]
        assert history.data[6].has_complete_data is False
        assert history.warnings == [
            "No price for AAPL on 2024-01-07 (or 5 days before)",
            "2 of 8 data points have incomplete price data",
        ]

    def test_no_bars_at_all(self, calculator):
        portfolio = create_portfolio(holdings=[create_holding("AAPL", [create_lot(on=date(2024, 1, 1))])])

        history = calculator.calculate(
            [portfolio], {}, None, "USD", date(2024, 1, 1), date(2024, 1, 2),
        )

        assert all(p.priced_count == 0 for p in history.data)
        assert all(p.cost_basis == Decimal("1000.00") for p in history.data)
        assert len([w for w in history.warnings if w.startswith("No price for AAPL")]) == 1


class TestCurrency:
    def test_closes_converted_to_reporting_currency(self, calculator):
        portfolio = create_portfolio(holdings=[
            create_holding("D05.SI", [create_lot(quantity="10", price="27", on=date(2024, 1, 1))], currency="SGD"),
        ])
        table = FxRateTable(base="USD", rates={"SGD": Decimal("1.35")})
        bars = create_bars(date(2024, 1, 1), ["33.75"])

        history = calculator.calculate(
            [portfolio], {"D05.SI": bars}, table, "USD", date(2024, 1, 1), date(2024, 1, 1),
        )

        point = history.data[0]
        assert point.value == Decimal("250.00")
        assert point.cost_basis == Decimal("200.00")
        assert history.reporting_currency == "USD"


class TestEdgeCases:
    def test_start_after_end_raises(self, calculator, sample_portfolio):
        with pytest.raises(ValidationError) as exc_info:
            calculator.calculate(
                [sample_portfolio], {}, None, "USD", date(2024, 2, 1), date(2024, 1, 1),
            )

        assert exc_info.value.field == "start_date"

    def test_no_holdings(self, calculator):
        history = calculator.calculate(
            [create_portfolio()], {}, None, "USD", date(2024, 1, 1), date(2024, 1, 5),
        )

        assert history.data == []
        assert history.warnings == ["No holdings to value"]

    def test_single_day_range(self, calculator, sample_portfolio):
        bars = create_bars(date(2024, 3, 1), ["150"])

        history = calculator.calculate(
            [sample_portfolio], {"AAPL": bars}, None, "USD", date(2024, 3, 1), date(2024, 3, 1),
        )

        assert len(history.data) == 1
        assert history.data[0].value == Decimal("2250.00")
