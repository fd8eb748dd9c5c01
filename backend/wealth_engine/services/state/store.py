# backend/wealth_engine/services/state/store.py
"""
Portfolio Store - owner of the persisted portfolio state.

PortfolioStore is the single writer of the portfolio tree. Every mutation
goes through one gateway (_mutate) which:
1. Takes the store lock
2. Lazily loads (and migrates) the stored document
3. Applies the change to the in-memory PortfolioState
4. Replaces the whole persisted document
5. Rolls the in-memory state back if the change or the save raised

Design Principles:
- Operations default to the active portfolio when no portfolio_id is given
- Unknown IDs raise NotFoundError subclasses instead of silently no-oping
- Readers get the live state; callers must not mutate it directly
- Symbols are stored upper-case

Usage:
    persistence = SqlAlchemyPersistenceProvider(session_factory)
    store = PortfolioStore(persistence)
    store.load()

    lot = store.add_lot("VOD.L", quantity=Decimal("100"), price=Decimal("0.72"),
                        trade_date=date(2024, 1, 5))
    store.add_cash(Decimal("500"))
"""

from __future__ import annotations

import copy
import dataclasses
import logging
import threading
import uuid
from collections.abc import Callable, Iterable
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, TypeVar

from wealth_engine.config import Settings, settings as default_settings
from wealth_engine.models import (
    CashEvent,
    Holding,
    InstrumentType,
    Lot,
    LotSide,
    MoveMode,
    Portfolio,
    PortfolioState,
    PortfolioType,
)
from wealth_engine.schemas.state import PortfolioStateDocument
from wealth_engine.schemas.validators import normalize_currency, normalize_symbol
from wealth_engine.services.constants import DEFAULT_BENCHMARK, DEFAULT_WATCHLIST
from wealth_engine.services.currency_resolution import resolve_currency
from wealth_engine.services.exceptions import (
    HoldingNotFoundError,
    LotNotFoundError,
    PortfolioNotFoundError,
    ValidationError,
)
from wealth_engine.services.state.migration import migrate, new_portfolio_id
from wealth_engine.services.state.persistence import PersistenceProvider
from wealth_engine.services.valuation.calculators import aggregate_lots
from wealth_engine.utils.context import operation_scope
from wealth_engine.utils.numbers import ZERO, round_money, to_decimal_or_none

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Fields of a portfolio update_portfolio() may change
UPDATABLE_PORTFOLIO_FIELDS = frozenset({"name", "base_currency", "benchmark", "portfolio_type"})

# Fields of a lot update_lot() may change
UPDATABLE_LOT_FIELDS = frozenset({"side", "quantity", "price", "fee", "date"})


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_lot_id() -> str:
    return uuid.uuid4().hex[:12]


class PortfolioStore:
    """
    Owns the PortfolioState and serializes every change to it.

    Args:
        persistence: Where the v1/v2 documents are read and written
        settings: Storage keys and defaults (default: global settings)
        clock: Source of "now" for timestamps (default: UTC now)
        id_factory: Portfolio ID generator (default: "pf-" + 6 hex chars)
    """

    def __init__(
            self,
            persistence: PersistenceProvider,
            settings: Settings | None = None,
            clock: Callable[[], datetime] | None = None,
            id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._persistence = persistence
        self._settings = settings or default_settings
        self._clock = clock or _utc_now
        self._id_factory = id_factory or new_portfolio_id
        self._lock = threading.RLock()
        self._state: PortfolioState | None = None

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def load(self) -> PortfolioState:
        """
        Load stored state, migrating legacy documents.

        A fresh start (nothing stored) seeds one default portfolio with the
        default watchlist and saves it.
        """
        with self._lock, operation_scope("load"):
            result = migrate(
                self._persistence,
                settings=self._settings,
                now=self._clock(),
                id_factory=self._id_factory,
            )
            state = result.state
            if state is None:
                state = self._seed_default()
                self._state = state
                self._save()
                logger.info(f"Seeded default portfolio {state.active_portfolio_id}")
            else:
                self._state = state

            if state.active_portfolio_id is None and state.portfolio_order:
                state.active_portfolio_id = state.portfolio_order[0]

            logger.info(
                f"Loaded {len(state.portfolios)} portfolios from {result.source.value} "
                f"(active: {state.active_portfolio_id})"
            )
            return state

    @property
    def state(self) -> PortfolioState:
        if self._state is None:
            return self.load()
        return self._state

    @property
    def active_portfolio(self) -> Portfolio | None:
        state = self.state
        if state.active_portfolio_id is None:
            return None
        return state.portfolios.get(state.active_portfolio_id)

    def get_portfolio(self, portfolio_id: str | None = None) -> Portfolio:
        """Portfolio by ID (active portfolio when None)."""
        return self._resolve(self.state, portfolio_id)

    def all_symbols(self) -> list[str]:
        """Every held or watched symbol across all portfolios, deduplicated in first-seen order."""
        symbols: dict[str, None] = {}
        for portfolio in self.state.portfolios.values():
            for symbol in portfolio.holdings:
                symbols.setdefault(symbol, None)
            for symbol in portfolio.watchlist:
                symbols.setdefault(symbol, None)
        return list(symbols)

    def tracked_portfolios(self) -> list[Portfolio]:
        """Non-archived portfolios with tracking enabled, in display order."""
        state = self.state
        ordered = [state.portfolios[pid] for pid in state.portfolio_order if pid in state.portfolios]
        unordered = [p for pid, p in state.portfolios.items() if pid not in state.portfolio_order]
        return [p for p in ordered + unordered if p.tracking_enabled and not p.archived]

    # =========================================================================
    # PORTFOLIOS
    # =========================================================================

    def create_portfolio(
            self,
            name: str,
            base_currency: str,
            benchmark: str | None = None,
            portfolio_type: PortfolioType = PortfolioType.LIVE,
            seed_from_active: bool = False,
    ) -> str:
        """
        Create a portfolio, append it to the order and make it active.

        Args:
            name: Display name
            base_currency: ISO code of the portfolio currency
            benchmark: Benchmark symbol (default: SPY)
            portfolio_type: Live or Paper
            seed_from_active: Copy holdings and watchlist of the active portfolio

        Returns:
            The new portfolio ID
        """
        currency = self._require_currency(base_currency, "base_currency")

        def apply(state: PortfolioState) -> str:
            now = self._clock()
            portfolio_id = self._id_factory()
            while portfolio_id in state.portfolios:
                portfolio_id = self._id_factory()

            holdings: dict[str, Holding] = {}
            watchlist: list[str] = []
            active = state.portfolios.get(state.active_portfolio_id or "")
            if seed_from_active and active is not None:
                holdings = copy.deepcopy(active.holdings)
                watchlist = list(active.watchlist)

            state.portfolios[portfolio_id] = Portfolio(
                id=portfolio_id,
                name=name,
                base_currency=currency,
                holdings=holdings,
                watchlist=watchlist,
                benchmark=normalize_symbol(benchmark) or DEFAULT_BENCHMARK,
                portfolio_type=portfolio_type,
                created_at=now,
                updated_at=now,
            )
            state.portfolio_order.append(portfolio_id)
            state.active_portfolio_id = portfolio_id
            return portfolio_id

        portfolio_id = self._mutate("create_portfolio", apply)
        logger.info(f"Created portfolio {portfolio_id} '{name}' ({currency})")
        return portfolio_id

    def rename_portfolio(self, portfolio_id: str, name: str) -> None:
        self.update_portfolio(portfolio_id, name=name)

    def update_portfolio(self, portfolio_id: str, **changes: Any) -> Portfolio:
        """
        Update name, base_currency, benchmark or portfolio_type.

        Raises:
            ValidationError: For any other field or an invalid currency
            PortfolioNotFoundError: If the portfolio does not exist
        """
        unknown = set(changes) - UPDATABLE_PORTFOLIO_FIELDS
        if unknown:
            raise ValidationError(
                f"Cannot update portfolio fields: {', '.join(sorted(unknown))}",
                field=sorted(unknown)[0],
            )
        if "base_currency" in changes:
            changes["base_currency"] = self._require_currency(changes["base_currency"], "base_currency")
        if changes.get("benchmark") is not None:
            changes["benchmark"] = normalize_symbol(changes["benchmark"])
        if "portfolio_type" in changes:
            changes["portfolio_type"] = PortfolioType(changes["portfolio_type"])

        def apply(state: PortfolioState) -> Portfolio:
            portfolio = self._require_portfolio(state, portfolio_id)
            for key, value in changes.items():
                setattr(portfolio, key, value)
            self._touch(portfolio)
            return portfolio

        return self._mutate("update_portfolio", apply)

    def set_active_portfolio(self, portfolio_id: str) -> None:
        def apply(state: PortfolioState) -> None:
            self._require_portfolio(state, portfolio_id)
            state.active_portfolio_id = portfolio_id

        self._mutate("set_active_portfolio", apply)

    def archive_portfolio(self, portfolio_id: str) -> None:
        self.set_portfolio_archived(portfolio_id, True)

    def set_portfolio_archived(self, portfolio_id: str, archived: bool) -> None:
        """
        Archive or restore a portfolio.

        Archiving removes it from the display order and, if it was active,
        activates the first remaining portfolio. Restoring appends it to the
        end of the order.
        """
        def apply(state: PortfolioState) -> None:
            portfolio = self._require_portfolio(state, portfolio_id)
            portfolio.archived = archived
            self._touch(portfolio)
            if archived:
                self._drop_from_order(state, portfolio_id)
            elif portfolio_id not in state.portfolio_order:
                state.portfolio_order.append(portfolio_id)

        self._mutate("set_portfolio_archived", apply)

    def set_portfolio_tracking(self, portfolio_id: str, enabled: bool) -> None:
        def apply(state: PortfolioState) -> None:
            portfolio = self._require_portfolio(state, portfolio_id)
            portfolio.tracking_enabled = enabled
            self._touch(portfolio)

        self._mutate("set_portfolio_tracking", apply)

    def delete_portfolio(self, portfolio_id: str) -> None:
        def apply(state: PortfolioState) -> None:
            self._require_portfolio(state, portfolio_id)
            del state.portfolios[portfolio_id]
            self._drop_from_order(state, portfolio_id)

        self._mutate("delete_portfolio", apply)
        logger.info(f"Deleted portfolio {portfolio_id}")

    def set_portfolio_order(self, order: Iterable[str]) -> None:
        """
        Replace the display order.

        The active portfolio stays active if it is still in the order;
        otherwise the first portfolio of the new order becomes active.
        """
        order = list(dict.fromkeys(order))

        def apply(state: PortfolioState) -> None:
            for portfolio_id in order:
                self._require_portfolio(state, portfolio_id)
            state.portfolio_order = order
            if state.active_portfolio_id not in order:
                state.active_portfolio_id = order[0] if order else None

        self._mutate("set_portfolio_order", apply)

    # =========================================================================
    # HOLDINGS
    # =========================================================================

    def add_holding(
            self,
            symbol: str,
            name: str = "",
            instrument_type: InstrumentType = InstrumentType.STOCK,
            currency: str | None = None,
            portfolio_id: str | None = None,
    ) -> Holding:
        """
        Add an empty holding; an existing holding is returned unchanged.

        The currency is resolved from the symbol suffix when not given.
        """
        symbol = self._require_symbol(symbol)
        currency = self._require_currency(currency, "currency") if currency else None

        def apply(state: PortfolioState) -> Holding:
            portfolio = self._resolve(state, portfolio_id)
            existing = portfolio.holdings.get(symbol)
            if existing is not None:
                logger.debug(f"Holding {symbol} already exists in {portfolio.id}")
                return existing
            holding = Holding(
                symbol=symbol,
                name=name,
                instrument_type=instrument_type,
                currency=resolve_currency(currency, symbol),
            )
            portfolio.holdings[symbol] = holding
            self._touch(portfolio)
            return holding

        return self._mutate("add_holding", apply)

    def remove_holding(self, symbol: str, portfolio_id: str | None = None) -> None:
        symbol = normalize_symbol(symbol)

        def apply(state: PortfolioState) -> None:
            portfolio = self._resolve(state, portfolio_id)
            self._require_holding(portfolio, symbol)
            del portfolio.holdings[symbol]
            self._touch(portfolio)

        self._mutate("remove_holding", apply)

    def set_holdings_archived(
            self,
            symbols: Iterable[str],
            archived: bool,
            portfolio_id: str | None = None,
    ) -> int:
        """
        Archive or restore several holdings at once.

        Symbols the portfolio does not hold are ignored.

        Returns:
            Number of holdings changed
        """
        wanted = {normalize_symbol(s) for s in symbols}

        def apply(state: PortfolioState) -> int:
            portfolio = self._resolve(state, portfolio_id)
            changed = 0
            for symbol in wanted:
                holding = portfolio.holdings.get(symbol)
                if holding is not None:
                    holding.archived = archived
                    changed += 1
            if changed:
                self._touch(portfolio)
            return changed

        return self._mutate("set_holdings_archived", apply)

    def set_holdings_order(self, order: Iterable[str], portfolio_id: str | None = None) -> None:
        """Custom display order of the portfolio's holdings."""
        order = list(dict.fromkeys(normalize_symbol(s) for s in order))

        def apply(state: PortfolioState) -> None:
            portfolio = self._resolve(state, portfolio_id)
            portfolio.holdings_order = order
            self._touch(portfolio)

        self._mutate("set_holdings_order", apply)

    def move_holding(
            self,
            symbol: str,
            from_id: str,
            to_id: str,
            mode: MoveMode = MoveMode.LOTS,
    ) -> Holding | None:
        """
        Move a holding between portfolios.

        In LOTS mode every lot is appended to the destination holding as is.
        In AGGREGATE mode the lots collapse into one buy lot at the running
        average cost (fees folded in), dated today. A closed position has
        nothing to aggregate, so no destination holding is created for it.
        The source holding is removed either way.

        Returns:
            The destination holding, or None if nothing was carried over

        Raises:
            ValidationError: If source and destination are the same
            PortfolioNotFoundError: If either portfolio does not exist
            HoldingNotFoundError: If the source does not hold the symbol
        """
        symbol = normalize_symbol(symbol)
        mode = MoveMode(mode)
        if from_id == to_id:
            raise ValidationError("Source and destination portfolio are the same", field="to_id")

        def apply(state: PortfolioState) -> Holding | None:
            source = self._require_portfolio(state, from_id)
            destination = self._require_portfolio(state, to_id)
            holding = self._require_holding(source, symbol)

            if mode is MoveMode.AGGREGATE:
                lot = aggregate_lots(holding.lots, lot_id=new_lot_id(), on_date=self._clock().date())
                moved = [lot] if lot is not None else []
            else:
                moved = list(holding.lots)

            del source.holdings[symbol]
            self._touch(source)

            target = destination.holdings.get(symbol)
            if not moved and mode is MoveMode.AGGREGATE:
                return target
            if target is None:
                target = Holding(
                    symbol=symbol,
                    name=holding.name,
                    instrument_type=holding.instrument_type,
                    currency=holding.currency,
                )
                destination.holdings[symbol] = target

            target.lots.extend(moved)
            self._touch(destination)
            return target

        target = self._mutate("move_holding", apply)
        logger.info(f"Moved {symbol} from {from_id} to {to_id} ({mode.value})")
        return target

    # =========================================================================
    # LOTS
    # =========================================================================

    def add_lot(
            self,
            symbol: str,
            quantity: Decimal,
            price: Decimal,
            trade_date: date,
            side: LotSide = LotSide.BUY,
            fee: Decimal = ZERO,
            name: str = "",
            instrument_type: InstrumentType = InstrumentType.STOCK,
            currency: str | None = None,
            portfolio_id: str | None = None,
    ) -> Lot:
        """
        Record a trade, creating the holding if needed.

        Raises:
            ValidationError: If quantity <= 0, or price or fee < 0
        """
        symbol = self._require_symbol(symbol)
        lot = Lot(
            id=new_lot_id(),
            side=LotSide(side),
            quantity=self._require_amount(quantity, "quantity"),
            price=self._require_amount(price, "price"),
            date=trade_date,
            fee=self._require_amount(fee, "fee"),
        )
        self._validate_lot(lot)
        currency = self._require_currency(currency, "currency") if currency else None

        def apply(state: PortfolioState) -> Lot:
            portfolio = self._resolve(state, portfolio_id)
            holding = portfolio.holdings.get(symbol)
            if holding is None:
                holding = Holding(
                    symbol=symbol,
                    name=name,
                    instrument_type=instrument_type,
                    currency=resolve_currency(currency, symbol),
                )
                portfolio.holdings[symbol] = holding
            holding.lots.append(lot)
            self._touch(portfolio)
            return lot

        self._mutate("add_lot", apply)
        logger.debug(f"Added {lot.side.value} lot {lot.id}: {lot.quantity} {symbol} @ {lot.price}")
        return lot

    def update_lot(
            self,
            symbol: str,
            lot_id: str,
            portfolio_id: str | None = None,
            **changes: Any,
    ) -> Lot:
        """
        Update side, quantity, price, fee or date of a lot.

        Raises:
            ValidationError: For unknown fields or values that break lot rules
            HoldingNotFoundError / LotNotFoundError: If the lot does not exist
        """
        unknown = set(changes) - UPDATABLE_LOT_FIELDS
        if unknown:
            raise ValidationError(
                f"Cannot update lot fields: {', '.join(sorted(unknown))}",
                field=sorted(unknown)[0],
            )
        symbol = normalize_symbol(symbol)
        if "side" in changes:
            changes["side"] = LotSide(changes["side"])
        for key in ("quantity", "price", "fee"):
            if key in changes:
                changes[key] = self._require_amount(changes[key], key)

        def apply(state: PortfolioState) -> Lot:
            portfolio = self._resolve(state, portfolio_id)
            holding = self._require_holding(portfolio, symbol)
            index = self._lot_index(holding, lot_id)
            updated = dataclasses.replace(holding.lots[index], **changes)
            self._validate_lot(updated)
            holding.lots[index] = updated
            self._touch(portfolio)
            return updated

        return self._mutate("update_lot", apply)

    def remove_lot(self, symbol: str, lot_id: str, portfolio_id: str | None = None) -> None:
        """Remove a lot; the holding goes too once it has no lots left."""
        symbol = normalize_symbol(symbol)

        def apply(state: PortfolioState) -> None:
            portfolio = self._resolve(state, portfolio_id)
            holding = self._require_holding(portfolio, symbol)
            del holding.lots[self._lot_index(holding, lot_id)]
            if not holding.lots:
                del portfolio.holdings[symbol]
            self._touch(portfolio)

        self._mutate("remove_lot", apply)

    # =========================================================================
    # CASH
    # =========================================================================

    def add_cash(
            self,
            amount: Decimal,
            portfolio_id: str | None = None,
            on: datetime | None = None,
    ) -> Decimal:
        """
        Deposit (positive) or withdraw (negative) cash and record the event.

        Returns:
            The new balance, rounded to cents
        """
        amount = self._require_amount(amount, "amount")

        def apply(state: PortfolioState) -> Decimal:
            portfolio = self._resolve(state, portfolio_id)
            portfolio.cash = round_money(portfolio.cash + amount)
            portfolio.cash_events.append(CashEvent(date=on or self._clock(), amount=amount))
            self._touch(portfolio)
            return portfolio.cash

        return self._mutate("add_cash", apply)

    def adjust_cash(self, amount: Decimal, portfolio_id: str | None = None) -> Decimal:
        """Change the cash balance without recording an event (trade settlement)."""
        amount = self._require_amount(amount, "amount")

        def apply(state: PortfolioState) -> Decimal:
            portfolio = self._resolve(state, portfolio_id)
            portfolio.cash = round_money(portfolio.cash + amount)
            self._touch(portfolio)
            return portfolio.cash

        return self._mutate("adjust_cash", apply)

    # =========================================================================
    # WATCHLIST
    # =========================================================================

    def set_watchlist(self, symbols: Iterable[str], portfolio_id: str | None = None) -> None:
        watchlist = list(dict.fromkeys(s for s in (normalize_symbol(x) for x in symbols) if s))

        def apply(state: PortfolioState) -> None:
            portfolio = self._resolve(state, portfolio_id)
            portfolio.watchlist = watchlist
            self._touch(portfolio)

        self._mutate("set_watchlist", apply)

    def add_watch(self, symbol: str, portfolio_id: str | None = None) -> None:
        symbol = self._require_symbol(symbol)

        def apply(state: PortfolioState) -> None:
            portfolio = self._resolve(state, portfolio_id)
            if symbol not in portfolio.watchlist:
                portfolio.watchlist.append(symbol)
                self._touch(portfolio)

        self._mutate("add_watch", apply)

    def remove_watch(self, symbol: str, portfolio_id: str | None = None) -> None:
        symbol = normalize_symbol(symbol)

        def apply(state: PortfolioState) -> None:
            portfolio = self._resolve(state, portfolio_id)
            portfolio.watchlist = [s for s in portfolio.watchlist if s != symbol]
            self._touch(portfolio)

        self._mutate("remove_watch", apply)

    # =========================================================================
    # MUTATION GATEWAY
    # =========================================================================

    def _mutate(self, action: str, apply: Callable[[PortfolioState], T]) -> T:
        """
        Apply one change under the lock and persist the whole document.

        The in-memory state is restored from a snapshot if ``apply`` or the
        save raises, so a failed write never leaves memory ahead of storage.
        """
        with self._lock, operation_scope(action):
            state = self.state
            backup = copy.deepcopy(state)
            try:
                result = apply(state)
                self._save()
            except Exception:
                self._state = backup
                logger.warning(f"{action} failed; state rolled back")
                raise
            return result

    def _save(self) -> None:
        document = PortfolioStateDocument.from_domain(self._state).to_storage()
        self._persistence.save(self._settings.state_storage_key, document)

    def _seed_default(self) -> PortfolioState:
        now = self._clock()
        portfolio_id = self._id_factory()
        portfolio = Portfolio(
            id=portfolio_id,
            name=self._settings.default_portfolio_name,
            base_currency=self._settings.default_base_currency,
            watchlist=list(DEFAULT_WATCHLIST),
            benchmark=DEFAULT_BENCHMARK,
            created_at=now,
            updated_at=now,
        )
        return PortfolioState(
            portfolios={portfolio_id: portfolio},
            portfolio_order=[portfolio_id],
            active_portfolio_id=portfolio_id,
        )

    # =========================================================================
    # LOOKUPS AND VALIDATION
    # =========================================================================

    def _resolve(self, state: PortfolioState, portfolio_id: str | None) -> Portfolio:
        return self._require_portfolio(state, portfolio_id or state.active_portfolio_id)

    @staticmethod
    def _require_portfolio(state: PortfolioState, portfolio_id: str | None) -> Portfolio:
        portfolio = state.portfolios.get(portfolio_id) if portfolio_id else None
        if portfolio is None:
            raise PortfolioNotFoundError(portfolio_id or "(none active)")
        return portfolio

    @staticmethod
    def _require_holding(portfolio: Portfolio, symbol: str) -> Holding:
        holding = portfolio.holdings.get(symbol)
        if holding is None:
            raise HoldingNotFoundError(symbol, portfolio.id)
        return holding

    @staticmethod
    def _lot_index(holding: Holding, lot_id: str) -> int:
        for index, lot in enumerate(holding.lots):
            if lot.id == lot_id:
                return index
        raise LotNotFoundError(lot_id, holding.symbol)

    @staticmethod
    def _drop_from_order(state: PortfolioState, portfolio_id: str) -> None:
        state.portfolio_order = [pid for pid in state.portfolio_order if pid != portfolio_id]
        if state.active_portfolio_id == portfolio_id:
            state.active_portfolio_id = state.portfolio_order[0] if state.portfolio_order else None

    @staticmethod
    def _validate_lot(lot: Lot) -> None:
        if lot.quantity <= 0:
            raise ValidationError("Lot quantity must be positive", field="quantity")
        if lot.price < 0:
            raise ValidationError("Lot price cannot be negative", field="price")
        if lot.fee < 0:
            raise ValidationError("Lot fee cannot be negative", field="fee")

    @staticmethod
    def _require_symbol(symbol: str) -> str:
        normalized = normalize_symbol(symbol)
        if not normalized:
            raise ValidationError("Symbol is required", field="symbol")
        return normalized

    @staticmethod
    def _require_amount(value: Any, field: str) -> Decimal:
        """Finite Decimal from user input; floats go through str()."""
        amount = to_decimal_or_none(value)
        if amount is None:
            raise ValidationError(f"{field} must be a finite number, got {value!r}", field=field)
        return amount

    @staticmethod
    def _require_currency(currency: str, field: str) -> str:
        try:
            normalized = normalize_currency(currency)
        except ValueError as e:
            raise ValidationError(str(e), field=field) from e
        if not normalized:
            raise ValidationError("Currency is required", field=field)
        return normalized

    def _touch(self, portfolio: Portfolio) -> None:
        portfolio.updated_at = self._clock()
