# backend/wealth_engine/services/state/__init__.py
"""
Portfolio state package.

Usage:
    from wealth_engine.services.state import (
        InMemoryPersistenceProvider,
        PortfolioStore,
    )

    store = PortfolioStore(InMemoryPersistenceProvider())
    store.load()
    store.add_watch("NVDA")

Architecture:
    state/
    ├── persistence.py   # PersistenceProvider protocol + adapters
    ├── migration.py     # v1 → v2 upgrade and v2 normalization
    └── store.py         # PortfolioStore (single mutation gateway)
"""

from wealth_engine.services.state.migration import (
    MigrationResult,
    MigrationSource,
    migrate,
    new_portfolio_id,
)
from wealth_engine.services.state.persistence import (
    InMemoryPersistenceProvider,
    PersistenceProvider,
    SqlAlchemyPersistenceProvider,
)
from wealth_engine.services.state.store import PortfolioStore, new_lot_id

__all__ = [
    "PortfolioStore",
    "new_lot_id",
    "new_portfolio_id",
    "migrate",
    "MigrationResult",
    "MigrationSource",
    "PersistenceProvider",
    "InMemoryPersistenceProvider",
    "SqlAlchemyPersistenceProvider",
]
