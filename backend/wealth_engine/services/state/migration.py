# backend/wealth_engine/services/state/migration.py
"""
Legacy migration of stored portfolio state, run on every load.

Rules:
- v2 document present: normalize it; portfolios missing ``trackingEnabled``
  get ``True``; a missing ``portfolioOrder`` is rebuilt. The document is
  written back only if one of those changed.
- only a v1 document present: wrap its holdings and watchlist into one
  Live portfolio ("My Portfolio", SGD, benchmark SPY, cash 0, tracking on)
  and save it as v2. The v1 document is left untouched.
- nothing stored: no state (the store seeds a default portfolio).

Running the migration on an already-migrated store writes nothing.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from wealth_engine.config import Settings, settings as default_settings
from wealth_engine.models import Portfolio, PortfolioState, PortfolioType
from wealth_engine.schemas.state import LegacyStateDocument, PortfolioStateDocument
from wealth_engine.services.constants import DEFAULT_BENCHMARK, PORTFOLIO_ID_PREFIX
from wealth_engine.services.state.persistence import PersistenceProvider
from wealth_engine.utils.numbers import ZERO

logger = logging.getLogger(__name__)


class MigrationSource(str, Enum):
    V2 = "v2"
    V1 = "v1"
    EMPTY = "empty"


@dataclass
class MigrationResult:
    """
    Outcome of a migration run.

    Attributes:
        source: Which document the state came from
        state: Loaded state (None when nothing was stored)
        saved: True if a v2 document was written
        changes: Human-readable list of what was normalized
    """

    source: MigrationSource
    state: PortfolioState | None
    saved: bool = False
    changes: list[str] = field(default_factory=list)


def new_portfolio_id() -> str:
    return f"{PORTFOLIO_ID_PREFIX}{uuid.uuid4().hex[:6]}"


def migrate(
        persistence: PersistenceProvider,
        settings: Settings | None = None,
        now: datetime | None = None,
        id_factory: Callable[[], str] = new_portfolio_id,
) -> MigrationResult:
    """
    Load stored state, upgrading v1 documents and normalizing v2 ones.

    Args:
        persistence: Where the documents live
        settings: Storage keys and defaults (default: global settings)
        now: Creation time for a migrated portfolio (default: UTC now)
        id_factory: ID generator for a migrated portfolio

    Returns:
        MigrationResult describing the source and whether anything was written

    Raises:
        PersistenceError: If the provider fails
        pydantic.ValidationError: If a stored document is structurally invalid
    """
    settings = settings or default_settings

    raw_v2 = persistence.load(settings.state_storage_key)
    if raw_v2 is not None:
        return _normalize_v2(persistence, settings, raw_v2)

    raw_v1 = persistence.load(settings.legacy_state_storage_key)
    if raw_v1 is not None:
        return _upgrade_v1(persistence, settings, raw_v1, now or datetime.now(timezone.utc), id_factory)

    logger.info("No stored portfolio state found")
    return MigrationResult(source=MigrationSource.EMPTY, state=None)


def _normalize_v2(
        persistence: PersistenceProvider,
        settings: Settings,
        raw: dict[str, Any],
) -> MigrationResult:
    changes = []

    for portfolio_id, portfolio in (raw.get("portfolios") or {}).items():
        if isinstance(portfolio, dict) and portfolio.get("trackingEnabled") is None:
            changes.append(f"trackingEnabled set on {portfolio_id}")

    if not raw.get("portfolioOrder") and raw.get("portfolios"):
        changes.append("portfolioOrder rebuilt")

    document = PortfolioStateDocument.model_validate(raw)
    state = document.to_domain()

    if not changes:
        logger.debug(f"State '{settings.state_storage_key}' already current")
        return MigrationResult(source=MigrationSource.V2, state=state)

    persistence.save(settings.state_storage_key, PortfolioStateDocument.from_domain(state).to_storage())
    logger.info(f"Normalized stored state: {', '.join(changes)}")
    return MigrationResult(source=MigrationSource.V2, state=state, saved=True, changes=changes)


def _upgrade_v1(
        persistence: PersistenceProvider,
        settings: Settings,
        raw: dict[str, Any],
        now: datetime,
        id_factory: Callable[[], str],
) -> MigrationResult:
    legacy = LegacyStateDocument.model_validate(raw)
    portfolio_id = id_factory()

    portfolio = Portfolio(
        id=portfolio_id,
        name=settings.default_portfolio_name,
        base_currency=settings.default_base_currency,
        holdings={
            symbol.strip().upper(): holding.to_domain(symbol)
            for symbol, holding in legacy.holdings.items()
        },
        watchlist=list(legacy.watchlist),
        cash=ZERO,
        cash_events=[],
        tracking_enabled=True,
        benchmark=DEFAULT_BENCHMARK,
        portfolio_type=PortfolioType.LIVE,
        created_at=now,
    )
    state = PortfolioState(
        portfolios={portfolio_id: portfolio},
        portfolio_order=[portfolio_id],
        active_portfolio_id=portfolio_id,
    )

    persistence.save(settings.state_storage_key, PortfolioStateDocument.from_domain(state).to_storage())
    logger.info(
        f"Migrated v1 state into portfolio {portfolio_id} "
        f"({len(portfolio.holdings)} holdings, {len(portfolio.watchlist)} watched)"
    )
    return MigrationResult(
        source=MigrationSource.V1,
        state=state,
        saved=True,
        changes=[f"v1 document wrapped into {portfolio_id}"],
    )
