# backend/wealth_engine/services/networth/reconstruction.py
"""
Net Worth History Calculator: rebuilds past net worth from today backwards.

Only current balances and the transaction log are known, so history is
derived by undoing transactions one day at a time.

Algorithm (two passes):
    1. Index: bucket in-window transactions by calendar day. Transactions
       dated after ``now`` count as today; older ones are ignored; those
       without a known, included account are skipped.
    2. Walk: from today back to the first day, reverse each day's
       transactions newest first. After a day is reversed its state is
       the state at the START of that day and is recorded as its snapshot
       (cash and debt clamped at zero). Today's point is the current state.

Days without transactions take the nearest later snapshot: nothing moved
between that snapshot and them. Today's transactions are reversed too, so
the days before today start from the state at the start of today.

Reversal by account category:
    debt        expense → debt −= amount     income → debt += amount
    liquid      expense → cash += amount     income → cash −= amount
    investment  income  → inv −= amount      expense → inv += amount

Known approximation:
    Investment value is not rebuilt from price history. It only moves with
    deposits to and withdrawals from investment accounts.

Complexity: O(D + T log T) for D days and T transactions.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

from wealth_engine.config import settings
from wealth_engine.models import (
    ACCOUNT_CATEGORIES,
    Account,
    AccountCategory,
    AccountKind,
    CashTransaction,
    TransactionKind,
)
from wealth_engine.services.constants import MAX_HISTORY_DAYS
from wealth_engine.services.exceptions import ValidationError
from wealth_engine.services.networth.types import NetWorthHistory, NetWorthPoint
from wealth_engine.utils.numbers import ZERO, coerce_decimal

logger = logging.getLogger(__name__)


@dataclass
class _RunningBalances:
    """Mutable totals while transactions are reversed."""

    cash: Decimal
    investments: Decimal
    debt: Decimal

    def snapshot(self, t: datetime) -> NetWorthPoint:
        return NetWorthPoint(
            t=t,
            cash=max(ZERO, self.cash),
            investments=self.investments,
            debt=max(ZERO, self.debt),
        )


def account_category(kind: AccountKind | str) -> AccountCategory:
    """
    Category of an account kind.

    Raises:
        ValueError: If the kind is not a known AccountKind or has no category
    """
    account_kind = AccountKind(kind)
    category = ACCOUNT_CATEGORIES.get(account_kind)
    if category is None:
        raise ValueError(f"Account kind '{account_kind.value}' has no net worth category")
    return category


class NetWorthHistoryCalculator:
    """
    Reconstructs a daily net worth series from balances and transactions.

    Stateless: every input is passed to calculate().
    """

    def calculate(
            self,
            accounts: Iterable[Account],
            transactions: Iterable[CashTransaction],
            current_investment_value: Decimal,
            days_back: int | None = None,
            now: datetime | None = None,
    ) -> NetWorthHistory:
        """
        Build the series ending today.

        Args:
            accounts: Current accounts with balances
            transactions: Transaction log (any order)
            current_investment_value: Today's investment value (e.g.
                PortfolioValuation.total_value)
            days_back: Days before today to cover (default:
                settings.history_days_back)
            now: Current time (default: UTC now)

        Returns:
            NetWorthHistory with exactly days_back + 1 points, oldest first

        Raises:
            ValidationError: If days_back is negative or too large
            ValueError: If an account kind has no net worth category
        """
        if days_back is None:
            days_back = settings.history_days_back
        if days_back < 0:
            raise ValidationError(f"days_back must be >= 0, got {days_back}", field="days_back")
        if days_back > MAX_HISTORY_DAYS:
            raise ValidationError(
                f"days_back must be <= {MAX_HISTORY_DAYS}, got {days_back}",
                field="days_back",
            )

        now = now or datetime.now(timezone.utc)
        today = now.date()
        first_day = today - timedelta(days=days_back)

        included = {}
        for account in accounts:
            if account.include_in_net_worth and account.name not in included:
                included[account.name] = account

        current = self._initial_balances(included.values(), current_investment_value)

        # Pass 1: index transactions by day
        by_day, skipped = self._index_transactions(transactions, included, now, first_day)
        if skipped:
            logger.debug(f"Skipped {skipped} transaction(s) without an included account")

        # Pass 2: walk back, snapshot the start of every transaction day
        running = _RunningBalances(current.cash, current.investments, current.debt)
        snapshots: dict[date, NetWorthPoint] = {}

        for day in sorted(by_day, reverse=True):
            entries = sorted(
                by_day[day],
                key=lambda entry: self._aligned(entry[1].timestamp, now),
                reverse=True,
            )
            for account, transaction in entries:
                self._reverse(running, account, transaction)
            snapshots[day] = running.snapshot(self._midnight(day, now))

        # Today is the current state; earlier days carry the nearest later start-of-day snapshot
        data: list[NetWorthPoint] = [current.snapshot(now)]
        carry = snapshots.get(today, data[0])
        for offset in range(1, days_back + 1):
            day = today - timedelta(days=offset)
            carry = snapshots.get(day, carry)
            data.append(NetWorthPoint(
                t=self._midnight(day, now),
                cash=carry.cash,
                investments=carry.investments,
                debt=carry.debt,
            ))
        data.reverse()

        logger.info(
            f"Reconstructed {len(data)} net worth points from "
            f"{sum(len(v) for v in by_day.values())} transaction(s)"
        )

        warnings = []
        if skipped:
            warnings.append(f"{skipped} transaction(s) skipped: account unknown or excluded")

        return NetWorthHistory(
            days_back=days_back,
            data=data,
            skipped_transactions=skipped,
            warnings=warnings,
        )

    # =========================================================================
    # PRIVATE HELPERS
    # =========================================================================

    @staticmethod
    def _initial_balances(
            accounts: Iterable[Account],
            current_investment_value: Decimal,
    ) -> _RunningBalances:
        """Today's totals: Σ liquid balances, Σ |debt balances|, given investments."""
        cash = ZERO
        debt = ZERO
        for account in accounts:
            category = account_category(account.kind)
            balance = coerce_decimal(account.balance)
            if category == AccountCategory.LIQUID:
                cash += balance
            elif category == AccountCategory.DEBT:
                debt += abs(balance)
        return _RunningBalances(
            cash=cash,
            investments=coerce_decimal(current_investment_value),
            debt=debt,
        )

    @staticmethod
    def _index_transactions(
            transactions: Iterable[CashTransaction],
            accounts: dict[str, Account],
            now: datetime,
            first_day: date,
    ) -> tuple[dict[date, list[tuple[Account, CashTransaction]]], int]:
        by_day: dict[date, list[tuple[Account, CashTransaction]]] = defaultdict(list)
        skipped = 0
        today = now.date()

        for transaction in transactions:
            account = accounts.get(transaction.account) if transaction.account else None
            if account is None:
                skipped += 1
                continue

            day = NetWorthHistoryCalculator._aligned(transaction.timestamp, now).date()
            if day > today:
                day = today
            if day < first_day:
                continue
            by_day[day].append((account, transaction))

        return by_day, skipped

    @staticmethod
    def _reverse(running: _RunningBalances, account: Account, transaction: CashTransaction) -> None:
        """Undo one transaction on the running balances."""
        amount = coerce_decimal(transaction.amount)
        is_expense = TransactionKind(transaction.kind) == TransactionKind.EXPENSE
        category = account_category(account.kind)

        if category == AccountCategory.DEBT:
            running.debt += -amount if is_expense else amount
        elif category == AccountCategory.LIQUID:
            running.cash += amount if is_expense else -amount
        elif category == AccountCategory.INVESTMENT:
            running.investments += amount if is_expense else -amount
        else:
            raise ValueError(f"Unhandled account category: {category}")

    @staticmethod
    def _aligned(timestamp: datetime, now: datetime) -> datetime:
        """
        Timestamp expressed like ``now`` so naive and aware values compare.

        Aware timestamps move to the timezone of ``now``; naive ones are read
        as wall-clock time there. With a naive ``now`` every timezone is dropped.
        """
        if now.tzinfo is None:
            return timestamp.replace(tzinfo=None)
        if timestamp.tzinfo is None:
            return timestamp.replace(tzinfo=now.tzinfo)
        return timestamp.astimezone(now.tzinfo)

    @staticmethod
    def _midnight(day: date, now: datetime) -> datetime:
        return datetime.combine(day, time.min, tzinfo=now.tzinfo)
