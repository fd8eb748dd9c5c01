# backend/wealth_engine/models.py
"""
Domain model for portfolios, holdings, lots and cash accounts.

Plain dataclasses hold the in-memory state the engine computes over. The
only SQLAlchemy mapping is StateDocument, the key/value table behind
SqlAlchemyPersistenceProvider: the whole portfolio tree is stored as one JSON
document, not normalized into tables.
"""
import enum
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import String, DateTime, JSON
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


# =============================================================================
# ENUMS
# =============================================================================

class LotSide(str, enum.Enum):
    BUY = "buy"
    SELL = "sell"


class InstrumentType(str, enum.Enum):
    STOCK = "stock"
    BOND = "bond"
    CRYPTO = "crypto"
    FUND = "fund"
    ETF = "etf"


class PortfolioType(str, enum.Enum):
    LIVE = "Live"
    PAPER = "Paper"


class AccountCategory(str, enum.Enum):
    """How an account contributes to net worth."""
    LIQUID = "liquid"
    DEBT = "debt"
    INVESTMENT = "investment"


class AccountKind(str, enum.Enum):
    CHECKING = "checking"
    SAVINGS = "savings"
    CASH = "cash"
    OTHER = "other"
    CREDIT = "credit"
    LOAN = "loan"
    MORTGAGE = "mortgage"
    INVESTMENT = "investment"
    RETIREMENT = "retirement"

    @property
    def category(self) -> AccountCategory:
        return ACCOUNT_CATEGORIES[self]


# Every AccountKind must appear here; reconstruction looks kinds up in this
# table and rejects anything missing.
ACCOUNT_CATEGORIES: dict[AccountKind, AccountCategory] = {
    AccountKind.CHECKING: AccountCategory.LIQUID,
    AccountKind.SAVINGS: AccountCategory.LIQUID,
    AccountKind.CASH: AccountCategory.LIQUID,
    AccountKind.OTHER: AccountCategory.LIQUID,
    AccountKind.CREDIT: AccountCategory.DEBT,
    AccountKind.LOAN: AccountCategory.DEBT,
    AccountKind.MORTGAGE: AccountCategory.DEBT,
    AccountKind.INVESTMENT: AccountCategory.INVESTMENT,
    AccountKind.RETIREMENT: AccountCategory.INVESTMENT,
}


class TransactionKind(str, enum.Enum):
    INCOME = "income"
    EXPENSE = "expense"


class MoveMode(str, enum.Enum):
    """How a holding's lots travel when moved between portfolios."""
    LOTS = "lots"
    AGGREGATE = "aggregate"


# =============================================================================
# PORTFOLIO STATE
# =============================================================================

@dataclass(frozen=True)
class Lot:
    """
    One buy or sell execution.

    Attributes:
        id: Stable identifier within its holding
        side: BUY or SELL
        quantity: Units traded (> 0)
        price: Per-unit price in the instrument currency
        fee: Commission in the instrument currency
        date: Trade date
    """
    id: str
    side: LotSide
    quantity: Decimal
    price: Decimal
    date: date
    fee: Decimal = Decimal("0")


@dataclass
class Holding:
    """Aggregate position in one instrument, composed of lots."""
    symbol: str
    name: str
    instrument_type: InstrumentType
    currency: str
    lots: list[Lot] = field(default_factory=list)
    archived: bool = False


@dataclass(frozen=True)
class CashEvent:
    """Deposit (positive) or withdrawal (negative) into portfolio cash."""
    date: datetime
    amount: Decimal


@dataclass
class Portfolio:
    id: str
    name: str
    base_currency: str
    holdings: dict[str, Holding] = field(default_factory=dict)
    holdings_order: list[str] = field(default_factory=list)
    watchlist: list[str] = field(default_factory=list)
    cash: Decimal = Decimal("0")
    cash_events: list[CashEvent] = field(default_factory=list)
    tracking_enabled: bool = True
    archived: bool = False
    benchmark: str | None = None
    portfolio_type: PortfolioType = PortfolioType.LIVE
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime | None = None


@dataclass
class PortfolioState:
    """The whole persisted tree: every portfolio plus ordering and selection."""
    portfolios: dict[str, Portfolio] = field(default_factory=dict)
    portfolio_order: list[str] = field(default_factory=list)
    active_portfolio_id: str | None = None


# =============================================================================
# CASH ACCOUNTS
# =============================================================================

@dataclass(frozen=True)
class Account:
    """
    A bank, card, loan or investment account with its current balance.

    Debt accounts may store their balance as a negative number; the absolute
    value is used as the amount owed.
    """
    id: str
    name: str
    kind: AccountKind
    balance: Decimal
    include_in_net_worth: bool = True


@dataclass(frozen=True)
class CashTransaction:
    """Income or expense booked against an account (matched by name)."""
    id: str
    kind: TransactionKind
    amount: Decimal
    timestamp: datetime
    account: str | None = None


# =============================================================================
# PERSISTENCE TABLE
# =============================================================================

class StateDocument(Base):
    """One JSON document per storage key, fully replaced on every save."""
    __tablename__ = "state_documents"

    key: Mapped[str] = mapped_column(String(200), primary_key=True)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
