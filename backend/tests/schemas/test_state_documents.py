# backend/tests/schemas/test_state_documents.py
"""
Tests for the stored state document schemas.

Old clients wrote partially populated documents, so most of these tests
check that parsing is lenient where it should be and strict where it must be.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from wealth_engine.models import InstrumentType, LotSide, PortfolioState, PortfolioType
from wealth_engine.schemas import HoldingDocument, LotDocument, PortfolioDocument, PortfolioStateDocument
from wealth_engine.schemas.validators import coerce_lot_date, normalize_currency
from tests.conftest import create_holding, create_lot, create_portfolio


class TestLotDocument:
    @pytest.mark.parametrize("raw,expected", [
        (None, Decimal("0")),
        ("NaN", Decimal("0")),
        (float("nan"), Decimal("0")),
        ("abc", Decimal("0")),
        (0.1, Decimal("0.1")),
        ("12.5", Decimal("12.5")),
    ])
    def test_numbers_coerced(self, raw, expected):
        lot = LotDocument.model_validate({"qty": 1, "price": raw, "date": "2024-01-01"})

        assert lot.price == expected

    def test_iso_timestamp_cut_to_date(self):
        lot = LotDocument.model_validate({"qty": 1, "price": 1, "date": "2024-05-06T23:59:59.000Z"})

        assert lot.date == date(2024, 5, 6)

    def test_side_is_case_insensitive(self):
        lot = LotDocument.model_validate({"side": " Sell ", "qty": 1, "date": "2024-01-01"})

        assert lot.side == LotSide.SELL

    @pytest.mark.parametrize("side", list(LotSide))
    def test_side_survives_round_trip(self, side):
        lot = create_lot(side=side)

        stored = LotDocument.from_domain(lot).to_storage()

        assert stored["side"] == side.value
        assert LotDocument.model_validate(stored).to_domain() == lot

    def test_missing_id_is_generated(self):
        lot = LotDocument.model_validate({"qty": 1, "date": "2024-01-01"})

        assert len(lot.id) == 12

    def test_date_is_required(self):
        with pytest.raises(ValidationError):
            LotDocument.model_validate({"qty": 1})


class TestHoldingDocument:
    def test_unknown_type_is_stock(self):
        holding = HoldingDocument.model_validate({"type": "warrant"})

        assert holding.instrument_type == InstrumentType.STOCK

    @pytest.mark.parametrize("instrument_type", list(InstrumentType))
    def test_type_survives_round_trip(self, instrument_type):
        holding = create_holding("VOO", [create_lot()], instrument_type=instrument_type)

        stored = HoldingDocument.from_domain(holding).to_storage()

        assert stored["type"] == instrument_type.value
        assert HoldingDocument.model_validate(stored).to_domain("VOO") == holding

    @pytest.mark.parametrize("raw,expected", [("ETF", InstrumentType.ETF), (" crypto ", InstrumentType.CRYPTO)])
    def test_type_strings_are_normalized(self, raw, expected):
        assert HoldingDocument.model_validate({"type": raw}).instrument_type == expected

    def test_invalid_currency_rejected(self):
        with pytest.raises(ValidationError):
            HoldingDocument.model_validate({"currency": "dollars"})

    def test_symbol_taken_from_key(self):
        holding = HoldingDocument.model_validate({"name": "Vodafone"}).to_domain(" vod.l ")

        assert holding.symbol == "VOD.L"
        assert holding.archived is False


class TestPortfolioStateDocument:
    def test_storage_uses_camel_case(self):
        portfolio = create_portfolio(
            holdings=[create_holding("AAPL", [create_lot(quantity="2.5", price="180")])],
            cash="12.3",
        )
        portfolio.holdings_order = ["AAPL"]

        stored = PortfolioDocument.from_domain(portfolio).to_storage()

        assert stored["baseCurrency"] == "USD"
        assert stored["trackingEnabled"] is True
        assert stored["holdingsOrder"] == ["AAPL"]
        assert stored["type"] == "Live"
        assert stored["holdings"]["AAPL"]["lots"][0]["qty"] == "2.5"
        assert stored["cash"] == "12.3"

    def test_domain_round_trip(self):
        portfolio = create_portfolio(holdings=[create_holding("AAPL", [create_lot()])], cash="5")
        portfolio.updated_at = datetime(2024, 3, 16, tzinfo=timezone.utc)
        state = PortfolioState(
            portfolios={portfolio.id: portfolio},
            portfolio_order=[portfolio.id],
            active_portfolio_id=portfolio.id,
        )

        stored = PortfolioStateDocument.from_domain(state).to_storage()
        restored = PortfolioStateDocument.model_validate(stored).to_domain()

        assert restored == state

    def test_order_drops_unknown_ids_and_active_falls_back(self):
        document = PortfolioStateDocument.model_validate({
            "portfolios": {"pf-1": {"id": "pf-1", "name": "A", "baseCurrency": "USD"}},
            "portfolioOrder": ["pf-9", "pf-1"],
            "activePortfolioId": "pf-9",
        })

        state = document.to_domain()

        assert state.portfolio_order == ["pf-1"]
        assert state.active_portfolio_id is None

    @pytest.mark.parametrize("portfolio_type", list(PortfolioType))
    def test_portfolio_type_survives_round_trip(self, portfolio_type):
        portfolio = create_portfolio()
        portfolio.portfolio_type = portfolio_type

        stored = PortfolioDocument.from_domain(portfolio).to_storage()

        assert stored["type"] == portfolio_type.value
        assert PortfolioDocument.model_validate(stored).to_domain().portfolio_type == portfolio_type

    def test_missing_base_currency_uses_default(self):
        document = PortfolioDocument.model_validate({"id": "pf-1", "name": "A", "baseCurrency": None})

        assert document.base_currency == "SGD"


class TestValidators:
    def test_coerce_lot_date_passthrough(self):
        assert coerce_lot_date(datetime(2024, 1, 2, 15, 0)) == date(2024, 1, 2)
        assert coerce_lot_date(date(2024, 1, 2)) == date(2024, 1, 2)

    @pytest.mark.parametrize("raw,expected", [(None, ""), ("", ""), (" sgd ", "SGD")])
    def test_normalize_currency(self, raw, expected):
        assert normalize_currency(raw) == expected
