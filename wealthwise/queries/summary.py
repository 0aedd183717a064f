"""
Financial Summary Queries

DESIGN DECISION: Every figure the user (or the AI advisor) sees is
computed here, DETERMINISTICALLY, from stored data. The advisor only
formats and interprets what these functions return.

All functions are read-only over the ledger.
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from wealthwise.ledger import AccountStore
from wealthwise.models.ledger import (
    AccountKind,
    RecurringRule,
    Transaction,
    TransactionType,
)
from wealthwise.models.summary import CategoryTotal, FinancialSummary


ZERO = Decimal("0")


def _total(transactions: Iterable[Transaction], type_: TransactionType) -> Decimal:
    return sum((t.amount for t in transactions if t.type == type_), ZERO)


def expense_by_category(transactions: Iterable[Transaction]) -> list[CategoryTotal]:
    """Expense totals per category, largest first."""
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    counts: dict[str, int] = defaultdict(int)
    for t in transactions:
        if t.type != TransactionType.EXPENSE:
            continue
        category = t.category or "uncategorized"
        totals[category] += t.amount
        counts[category] += 1
    
    return sorted(
        (CategoryTotal(category=c, total=totals[c], count=counts[c]) for c in totals),
        key=lambda c: (-c.total, c.category),
    )


def build_summary(
    transactions: Sequence[Transaction],
    accounts: AccountStore,
    rules: Sequence[RecurringRule],
    as_of: date,
) -> FinancialSummary:
    """
    Snapshot the finances as of a day.
    
    Month and year figures cover the calendar month and year that
    contain as_of (transactions dated after as_of are left out of
    them). Transfers move money between accounts and count as
    neither income nor expense.
    """
    this_month = [
        t for t in transactions
        if (t.date.year, t.date.month) == (as_of.year, as_of.month) and t.date <= as_of
    ]
    this_year = [t for t in transactions if t.date.year == as_of.year and t.date <= as_of]
    
    total_assets = accounts.total(AccountKind.ASSET)
    total_liabilities = accounts.total(AccountKind.LIABILITY)
    
    return FinancialSummary(
        as_of=as_of,
        total_assets=total_assets,
        total_liabilities=total_liabilities,
        net_worth=total_assets - total_liabilities,
        month_income=_total(this_month, TransactionType.INCOME),
        month_expenses=_total(this_month, TransactionType.EXPENSE),
        year_income=_total(this_year, TransactionType.INCOME),
        year_expenses=_total(this_year, TransactionType.EXPENSE),
        total_income=_total(transactions, TransactionType.INCOME),
        total_expenses=_total(transactions, TransactionType.EXPENSE),
        expense_by_category=expense_by_category(this_month),
        transaction_count=len(transactions),
        active_rule_count=sum(1 for r in rules if r.active),
    )


def recent_transactions(transactions: Sequence[Transaction], limit: int = 20) -> list[Transaction]:
    """The newest transactions: by date, then most recently added."""
    ordered = sorted(reversed(transactions), key=lambda t: t.date, reverse=True)
    return ordered[:limit]


def search_transactions(
    transactions: Sequence[Transaction],
    text: str = "",
    type_: Optional[TransactionType] = None,
) -> list[Transaction]:
    """
    Filter by free text (note or category, case-insensitive) and type.
    
    Order is kept as given.
    """
    needle = text.strip().casefold()
    return [
        t for t in transactions
        if (type_ is None or t.type == type_)
        and (not needle or needle in t.note.casefold() or needle in t.category.casefold())
    ]


def monthly_cash_flow(
    transactions: Iterable[Transaction],
    year: int,
) -> dict[int, tuple[Decimal, Decimal]]:
    """Income and expenses per month (1..12) of a year."""
    flow = {month: (ZERO, ZERO) for month in range(1, 13)}
    for t in transactions:
        if t.date.year != year:
            continue
        income, expenses = flow[t.date.month]
        if t.type == TransactionType.INCOME:
            flow[t.date.month] = (income + t.amount, expenses)
        elif t.type == TransactionType.EXPENSE:
            flow[t.date.month] = (income, expenses + t.amount)
    return flow
