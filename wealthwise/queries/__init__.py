"""Read-only queries over the ledger."""

from wealthwise.queries.summary import (
    build_summary,
    expense_by_category,
    monthly_cash_flow,
    recent_transactions,
    search_transactions,
)

__all__ = [
    "build_summary",
    "expense_by_category",
    "monthly_cash_flow",
    "recent_transactions",
    "search_transactions",
]
