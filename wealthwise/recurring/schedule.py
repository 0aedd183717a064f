"""
Monthly schedule arithmetic.

One policy everywhere: a rule fires on its day_of_month, clamped to the
last day of shorter months. A 31st rule fires Jan 31, Feb 28 (29 in leap
years), Mar 31, Apr 30. The clamp never drifts because every step
starts again from day_of_month, not from the previous (clamped) date.
"""

import calendar
from datetime import date
from typing import Iterator, Optional

from wealthwise.models.ledger import RecurringRule


def resolve_day(target_day: int, year: int, month: int) -> date:
    """The target day in the given month, clamped to the month's length."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(target_day, last_day))


def advance_one_month(current: date, target_day: Optional[int] = None) -> date:
    """
    Step exactly one calendar month forward.
    
    target_day defaults to current.day; pass the rule's day_of_month so
    that a clamped date (Feb 28) goes back to the 31st in March.
    """
    year, month = (current.year + 1, 1) if current.month == 12 else (current.year, current.month + 1)
    return resolve_day(target_day or current.day, year, month)


def iter_due_dates(rule: RecurringRule) -> Iterator[date]:
    """
    Every date the rule will fire from next_due_date on.
    
    Stops after remaining_occurrences dates; unlimited rules never stop,
    so callers must bound the iteration themselves.
    """
    if not rule.active:
        return
    due = rule.next_due_date
    remaining = rule.remaining_occurrences
    while remaining is None or remaining > 0:
        yield due
        if remaining is not None:
            remaining -= 1
        due = advance_one_month(due, rule.day_of_month)


def project_occurrences(rule: RecurringRule, start: date, end: date) -> list[date]:
    """Dates in [start, end] on which the rule has yet to fire."""
    dates = []
    for due in iter_due_dates(rule):
        if due > end:
            break
        if due >= start:
            dates.append(due)
    return dates
