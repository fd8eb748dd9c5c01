# backend/tests/services/test_persistence.py
"""
Tests for the persistence providers.

Test Coverage:
- InMemoryPersistenceProvider isolation (deep copies in and out)
- SqlAlchemyPersistenceProvider round trip and replacement on SQLite
- SQLAlchemy errors wrapped in PersistenceError
- PortfolioStore end-to-end on the SQL provider
"""

from datetime import date
from decimal import Decimal

import pytest

from wealth_engine.database import check_database_health, create_session_factory
from wealth_engine.models import Base
from wealth_engine.services.exceptions import PersistenceError
from wealth_engine.services.state import (
    InMemoryPersistenceProvider,
    PersistenceProvider,
    PortfolioStore,
    SqlAlchemyPersistenceProvider,
)

DOCUMENT = {"portfolios": {"pf-1": {"id": "pf-1", "name": "Main", "cash": "10.00"}}, "portfolioOrder": ["pf-1"]}


# =============================================================================
# IN-MEMORY
# =============================================================================

class TestInMemoryPersistence:
    def test_missing_key(self, memory_persistence):
        assert memory_persistence.load("nothing") is None

    def test_saved_document_is_isolated(self, memory_persistence):
        document = {"portfolios": {"pf-1": {"name": "Main"}}}
        memory_persistence.save("k", document)

        document["portfolios"]["pf-1"]["name"] = "Changed"
        loaded = memory_persistence.load("k")
        loaded["portfolios"].clear()

        assert memory_persistence.load("k") == {"portfolios": {"pf-1": {"name": "Main"}}}

    def test_counts_saves(self, memory_persistence):
        memory_persistence.save("a", {})
        memory_persistence.save("a", {"x": 1})

        assert memory_persistence.save_count == 2
        assert memory_persistence.keys() == ["a"]

    def test_satisfies_protocol(self, memory_persistence, session_factory):
        assert isinstance(memory_persistence, PersistenceProvider)
        assert isinstance(SqlAlchemyPersistenceProvider(session_factory), PersistenceProvider)


# =============================================================================
# SQLALCHEMY
# =============================================================================

class TestSqlAlchemyPersistence:
    @pytest.fixture
    def persistence(self, session_factory) -> SqlAlchemyPersistenceProvider:
        return SqlAlchemyPersistenceProvider(session_factory)

    def test_round_trip(self, persistence):
        persistence.save("invest:v2", DOCUMENT)

        assert persistence.load("invest:v2") == DOCUMENT
        assert persistence.load("invest:v1") is None

    def test_save_replaces_document(self, persistence):
        persistence.save("invest:v2", DOCUMENT)
        persistence.save("invest:v2", {"portfolios": {}})

        assert persistence.load("invest:v2") == {"portfolios": {}}

    def test_keys_are_independent(self, persistence):
        persistence.save("invest:v1", {"watchlist": ["AAPL"]})
        persistence.save("invest:v2", DOCUMENT)

        assert persistence.load("invest:v1") == {"watchlist": ["AAPL"]}

    def test_errors_are_wrapped(self, persistence, db_engine):
        Base.metadata.drop_all(db_engine)

        with pytest.raises(PersistenceError) as exc_info:
            persistence.save("invest:v2", DOCUMENT)
        assert exc_info.value.key == "invest:v2"

        with pytest.raises(PersistenceError):
            persistence.load("invest:v2")

    def test_store_end_to_end(self, db_engine):
        persistence = SqlAlchemyPersistenceProvider(create_session_factory(db_engine))
        store = PortfolioStore(persistence)
        store.load()
        store.add_lot("AAPL", Decimal("3"), Decimal("180.25"), date(2024, 2, 1))

        reloaded = PortfolioStore(persistence)
        lot = reloaded.active_portfolio.holdings["AAPL"].lots[0]

        assert lot.quantity == Decimal("3")
        assert lot.price == Decimal("180.25")
        assert reloaded.state.active_portfolio_id == store.state.active_portfolio_id


def test_database_health(db_engine):
    assert check_database_health(db_engine) == {"status": "healthy", "database": "sqlite"}
