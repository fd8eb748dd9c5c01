# backend/wealth_engine/schemas/state.py
"""
Pydantic schemas for the persisted portfolio state documents.

Two document versions exist in storage:
- v1 (LegacyStateDocument): a single implicit portfolio,
  {"holdings": {...}, "watchlist": [...]}
- v2 (PortfolioStateDocument): many portfolios,
  {"portfolios": {...}, "portfolioOrder": [...], "activePortfolioId": ...}

Keys are camelCase on disk (aliases) and snake_case in Python. Lot quantity
is stored as "qty" and instrument type as "type".

Validation layers:
- Before-validators: coerce numbers (None / NaN → 0), cut ISO timestamps
  to dates, normalize currency codes and symbols
- Conversion: to_domain() / from_domain() map to the dataclasses in
  wealth_engine.models; the calculators never see these schemas
"""

from __future__ import annotations

import datetime as dt
import uuid
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from wealth_engine.config import settings
from wealth_engine.models import (
    CashEvent,
    Holding,
    InstrumentType,
    Lot,
    LotSide,
    Portfolio,
    PortfolioState,
    PortfolioType,
)
from wealth_engine.schemas.validators import (
    coerce_amount,
    coerce_lot_date,
    normalize_currency,
    normalize_symbol,
)


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


def _utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class DocumentModel(BaseModel):
    """Base for stored documents: camelCase aliases, unknown keys ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_storage(self) -> dict[str, Any]:
        """JSON-safe dict with on-disk key names."""
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# LOTS AND HOLDINGS
# =============================================================================

class LotDocument(DocumentModel):
    id: str = Field(default_factory=_new_id)
    side: LotSide = LotSide.BUY
    quantity: Decimal = Field(default=Decimal("0"), alias="qty")
    price: Decimal = Decimal("0")
    fee: Decimal = Decimal("0")
    date: dt.date

    @field_validator("quantity", "price", "fee", mode="before")
    @classmethod
    def coerce_numbers(cls, v: Any) -> Decimal:
        return coerce_amount(v)

    @field_validator("date", mode="before")
    @classmethod
    def cut_timestamp(cls, v: Any) -> Any:
        return coerce_lot_date(v)

    @field_validator("side", mode="before")
    @classmethod
    def normalize_side(cls, v: Any) -> Any:
        if v is None:
            return LotSide.BUY
        if isinstance(v, LotSide):
            return v
        return str(v).strip().lower()

    def to_domain(self) -> Lot:
        return Lot(
            id=self.id,
            side=self.side,
            quantity=self.quantity,
            price=self.price,
            date=self.date,
            fee=self.fee,
        )

    @classmethod
    def from_domain(cls, lot: Lot) -> LotDocument:
        return cls(
            id=lot.id,
            side=lot.side,
            quantity=lot.quantity,
            price=lot.price,
            fee=lot.fee,
            date=lot.date,
        )


class HoldingDocument(DocumentModel):
    symbol: str = ""
    name: str = ""
    instrument_type: InstrumentType = Field(default=InstrumentType.STOCK, alias="type")
    currency: str = ""
    lots: list[LotDocument] = Field(default_factory=list)
    archived: bool = False

    @field_validator("symbol", mode="before")
    @classmethod
    def clean_symbol(cls, v: Any) -> str:
        return normalize_symbol(v)

    @field_validator("currency", mode="before")
    @classmethod
    def clean_currency(cls, v: Any) -> str:
        return normalize_currency(v)

    @field_validator("instrument_type", mode="before")
    @classmethod
    def known_type(cls, v: Any) -> InstrumentType:
        """Unknown instrument types are stored as stocks."""
        if isinstance(v, InstrumentType):
            return v
        try:
            return InstrumentType(str(v).strip().lower())
        except ValueError:
            return InstrumentType.STOCK

    @field_validator("archived", mode="before")
    @classmethod
    def none_is_false(cls, v: Any) -> bool:
        return bool(v)

    def to_domain(self, symbol: str) -> Holding:
        return Holding(
            symbol=self.symbol or normalize_symbol(symbol),
            name=self.name,
            instrument_type=self.instrument_type,
            currency=self.currency,
            lots=[lot.to_domain() for lot in self.lots],
            archived=self.archived,
        )

    @classmethod
    def from_domain(cls, holding: Holding) -> HoldingDocument:
        return cls(
            symbol=holding.symbol,
            name=holding.name,
            instrument_type=holding.instrument_type,
            currency=holding.currency,
            lots=[LotDocument.from_domain(lot) for lot in holding.lots],
            archived=holding.archived,
        )


# =============================================================================
# PORTFOLIOS
# =============================================================================

class CashEventDocument(DocumentModel):
    date: dt.datetime
    amount: Decimal = Decimal("0")

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_numbers(cls, v: Any) -> Decimal:
        return coerce_amount(v)


class PortfolioDocument(DocumentModel):
    id: str
    name: str
    base_currency: str = Field(alias="baseCurrency")
    benchmark: str | None = None
    watchlist: list[str] = Field(default_factory=list)
    holdings: dict[str, HoldingDocument] = Field(default_factory=dict)
    holdings_order: list[str] = Field(default_factory=list, alias="holdingsOrder")
    portfolio_type: PortfolioType = Field(default=PortfolioType.LIVE, alias="type")
    archived: bool = False
    cash: Decimal = Decimal("0")
    cash_events: list[CashEventDocument] = Field(default_factory=list, alias="cashEvents")
    tracking_enabled: bool = Field(default=True, alias="trackingEnabled")
    created_at: dt.datetime = Field(default_factory=_utc_now, alias="createdAt")
    updated_at: dt.datetime | None = Field(default=None, alias="updatedAt")

    @field_validator("base_currency", mode="before")
    @classmethod
    def clean_currency(cls, v: Any) -> str:
        return normalize_currency(v) or settings.default_base_currency

    @field_validator("cash", mode="before")
    @classmethod
    def coerce_numbers(cls, v: Any) -> Decimal:
        return coerce_amount(v)

    @field_validator("watchlist", "holdings_order", "cash_events", mode="before")
    @classmethod
    def none_is_empty_list(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("holdings", mode="before")
    @classmethod
    def none_is_empty_dict(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("portfolio_type", mode="before")
    @classmethod
    def known_type(cls, v: Any) -> PortfolioType:
        """Anything but "Paper" is a live portfolio."""
        if isinstance(v, PortfolioType):
            return v
        if v is not None and str(v).strip().lower() == PortfolioType.PAPER.value.lower():
            return PortfolioType.PAPER
        return PortfolioType.LIVE

    @field_validator("archived", mode="before")
    @classmethod
    def none_is_false(cls, v: Any) -> bool:
        return bool(v)

    @field_validator("tracking_enabled", mode="before")
    @classmethod
    def none_is_true(cls, v: Any) -> bool:
        return True if v is None else bool(v)

    def to_domain(self) -> Portfolio:
        return Portfolio(
            id=self.id,
            name=self.name,
            base_currency=self.base_currency,
            holdings={
                symbol.strip().upper(): holding.to_domain(symbol)
                for symbol, holding in self.holdings.items()
            },
            holdings_order=list(self.holdings_order),
            watchlist=list(self.watchlist),
            cash=self.cash,
            cash_events=[CashEvent(date=e.date, amount=e.amount) for e in self.cash_events],
            tracking_enabled=self.tracking_enabled,
            archived=self.archived,
            benchmark=self.benchmark,
            portfolio_type=self.portfolio_type,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_domain(cls, portfolio: Portfolio) -> PortfolioDocument:
        return cls(
            id=portfolio.id,
            name=portfolio.name,
            base_currency=portfolio.base_currency,
            benchmark=portfolio.benchmark,
            watchlist=list(portfolio.watchlist),
            holdings={
                symbol: HoldingDocument.from_domain(holding)
                for symbol, holding in portfolio.holdings.items()
            },
            holdings_order=list(portfolio.holdings_order),
            portfolio_type=portfolio.portfolio_type,
            archived=portfolio.archived,
            cash=portfolio.cash,
            cash_events=[
                CashEventDocument(date=e.date, amount=e.amount) for e in portfolio.cash_events
            ],
            tracking_enabled=portfolio.tracking_enabled,
            created_at=portfolio.created_at,
            updated_at=portfolio.updated_at,
        )


# =============================================================================
# STATE DOCUMENTS
# =============================================================================

class PortfolioStateDocument(DocumentModel):
    """Version 2 document: every portfolio plus ordering and selection."""

    portfolios: dict[str, PortfolioDocument] = Field(default_factory=dict)
    portfolio_order: list[str] = Field(default_factory=list, alias="portfolioOrder")
    active_portfolio_id: str | None = Field(default=None, alias="activePortfolioId")

    def to_domain(self) -> PortfolioState:
        portfolios = {pid: doc.to_domain() for pid, doc in self.portfolios.items()}
        order = [pid for pid in self.portfolio_order if pid in portfolios]
        if not self.portfolio_order:
            order = list(portfolios)
        active = self.active_portfolio_id if self.active_portfolio_id in portfolios else None
        return PortfolioState(
            portfolios=portfolios,
            portfolio_order=order,
            active_portfolio_id=active,
        )

    @classmethod
    def from_domain(cls, state: PortfolioState) -> PortfolioStateDocument:
        return cls(
            portfolios={
                pid: PortfolioDocument.from_domain(p) for pid, p in state.portfolios.items()
            },
            portfolio_order=list(state.portfolio_order),
            active_portfolio_id=state.active_portfolio_id,
        )


class LegacyStateDocument(DocumentModel):
    """Version 1 document: the holdings and watchlist of one implicit portfolio."""

    holdings: dict[str, HoldingDocument] = Field(default_factory=dict)
    watchlist: list[str] = Field(default_factory=list)

    @field_validator("holdings", mode="before")
    @classmethod
    def none_is_empty_dict(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("watchlist", mode="before")
    @classmethod
    def none_is_empty_list(cls, v: Any) -> Any:
        return [] if v is None else v
