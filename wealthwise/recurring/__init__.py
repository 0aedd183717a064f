"""Recurring rules: monthly schedule arithmetic and the catch-up processor."""

from wealthwise.recurring.processor import CancelMode, RecurringRuleProcessor
from wealthwise.recurring.schedule import (
    advance_one_month,
    iter_due_dates,
    project_occurrences,
    resolve_day,
)

__all__ = [
    "CancelMode",
    "RecurringRuleProcessor",
    "advance_one_month",
    "iter_due_dates",
    "project_occurrences",
    "resolve_day",
]
