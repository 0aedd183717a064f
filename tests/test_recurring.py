"""
Tests for recurring rules.

Test strategy:
1. Schedule arithmetic (month advance, day clamping, projection)
2. Catch-up processing: exactly once, oldest first, retirement
3. Cancellation modes and the cascade back to opening balances
4. Creating a rule from a transaction marked recurring
"""

import pytest
from datetime import date
from decimal import Decimal

from wealthwise.activity import ActivityLogger
from wealthwise.exceptions import NotFoundError, ValidationError
from wealthwise.ledger import LedgerEngine
from wealthwise.models.activity import ActivityEventType
from wealthwise.models.ledger import (
    RULE_NAME_MAX_LENGTH,
    RecurringRule,
    Transaction,
    TransactionType,
)
from wealthwise.recurring import (
    CancelMode,
    RecurringRuleProcessor,
    advance_one_month,
    project_occurrences,
    resolve_day,
)


TODAY = date(2026, 10, 17)


def rent_rule(next_due, remaining=None, day=None, amount="800", **kwargs):
    return RecurringRule(
        name="Rent",
        amount=Decimal(amount),
        type=TransactionType.EXPENSE,
        category="housing",
        source_id="cash",
        day_of_month=day or next_due.day,
        next_due_date=next_due,
        remaining_occurrences=remaining,
        **kwargs,
    )


def make_processor(data, logger=None):
    logger = logger or ActivityLogger()
    engine = LedgerEngine(data, activity_logger=logger)
    return RecurringRuleProcessor(data, engine, activity_logger=logger), engine


class TestSchedule:
    """Month stepping with the clamp policy."""
    
    def test_resolve_day_clamps_to_month_end(self):
        """Test day 31 in short months."""
        assert resolve_day(31, 2026, 4) == date(2026, 4, 30)
        assert resolve_day(31, 2026, 2) == date(2026, 2, 28)
        assert resolve_day(31, 2028, 2) == date(2028, 2, 29)
        assert resolve_day(15, 2026, 2) == date(2026, 2, 15)
    
    def test_advance_returns_to_target_day_after_clamp(self):
        """Test Feb 28 steps back to Mar 31 for a 31st rule."""
        assert advance_one_month(date(2026, 1, 31), 31) == date(2026, 2, 28)
        assert advance_one_month(date(2026, 2, 28), 31) == date(2026, 3, 31)
    
    def test_advance_over_year_end(self):
        """Test December rolls into January of the next year."""
        assert advance_one_month(date(2026, 12, 31), 31) == date(2027, 1, 31)
    
    def test_project_occurrences_clamps_uniformly(self):
        """Test projection uses the same clamp as processing."""
        rule = rent_rule(date(2026, 1, 31))
        assert project_occurrences(rule, date(2026, 2, 1), date(2026, 4, 30)) == [
            date(2026, 2, 28),
            date(2026, 3, 31),
            date(2026, 4, 30),
        ]
    
    def test_project_occurrences_honours_remaining(self):
        """Test a counted rule stops projecting when it runs out."""
        rule = rent_rule(date(2026, 11, 1), remaining=2)
        assert project_occurrences(rule, date(2026, 11, 1), date(2027, 6, 30)) == [
            date(2026, 11, 1),
            date(2026, 12, 1),
        ]
    
    def test_inactive_rule_projects_nothing(self):
        """Test a retired rule has no future."""
        rule = rent_rule(date(2026, 11, 1), active=False)
        assert project_occurrences(rule, date(2026, 1, 1), date(2027, 12, 31)) == []


class TestProcessDue:
    """The catch-up pass."""
    
    @pytest.mark.parametrize("remaining,expected", [
        (None, 4),
        (2, 2),
        (4, 4),
        (10, 4),
    ])
    def test_materializes_min_of_remaining_and_due(self, data, remaining, expected):
        """Test a rule 3 months overdue creates min(R, 3 + 1) transactions."""
        processor, engine = make_processor(data)
        rule = processor.add_rule(rent_rule(date(2026, 7, 17), remaining=remaining))
        
        created = processor.process_due(TODAY)
        
        assert len(created) == expected
        assert all(t.recurring_rule_id == rule.id for t in created)
        assert engine.accounts.get("cash").balance == Decimal("1000") - 800 * expected
        if remaining is None:
            assert rule.remaining_occurrences is None
            assert rule.active
        else:
            assert rule.remaining_occurrences == remaining - expected
            assert rule.active == (remaining - expected > 0)
    
    def test_oldest_first_and_dates_advance(self, data):
        """Test occurrences are dated in order and next due moves past today."""
        processor, _ = make_processor(data)
        rule = processor.add_rule(rent_rule(date(2026, 8, 1)))
        
        created = processor.process_due(TODAY)
        
        assert [t.date for t in created] == [date(2026, 8, 1), date(2026, 9, 1), date(2026, 10, 1)]
        assert rule.next_due_date == date(2026, 11, 1)
        assert rule.last_processed_date == TODAY
    
    def test_day_31_clamps_in_30_day_month(self, data):
        """Test a 31st rule fires on the 30th in April."""
        processor, _ = make_processor(data)
        rule = processor.add_rule(rent_rule(date(2026, 1, 31)))
        
        created = processor.process_due(date(2026, 5, 1))
        
        assert [t.date for t in created] == [
            date(2026, 1, 31),
            date(2026, 2, 28),
            date(2026, 3, 31),
            date(2026, 4, 30),
        ]
        assert rule.next_due_date == date(2026, 5, 31)
    
    def test_second_run_same_day_creates_nothing(self, data):
        """Test processing is exactly once per occurrence."""
        processor, engine = make_processor(data)
        processor.add_rule(rent_rule(date(2026, 9, 17)))
        
        assert len(processor.process_due(TODAY)) == 2
        assert processor.process_due(TODAY) == []
        assert len(engine.transactions) == 2
    
    def test_future_rule_left_untouched(self, data):
        """Test a rule not yet due keeps its dates."""
        processor, _ = make_processor(data)
        rule = processor.add_rule(rent_rule(date(2026, 11, 1)))
        
        assert processor.process_due(TODAY) == []
        assert rule.next_due_date == date(2026, 11, 1)
        assert rule.last_processed_date is None
    
    def test_exhausted_active_rule_is_retired_without_materializing(self, data):
        """Test remaining 0 retires the rule instead of firing it."""
        processor, engine = make_processor(data)
        rule = processor.add_rule(rent_rule(date(2026, 10, 1), remaining=0))
        
        assert processor.process_due(TODAY) == []
        assert rule.active is False
        assert rule.next_due_date == date(2026, 10, 1)
        assert engine.transactions == []
    
    def test_note_counts_down(self, data):
        """Test generated notes carry the prefix and what is left."""
        processor, _ = make_processor(data)
        processor.add_rule(rent_rule(date(2026, 9, 1), remaining=3))
        
        created = processor.process_due(TODAY)
        
        assert [t.note for t in created] == ["[Auto] Rent (2 left)", "[Auto] Rent (1 left)"]
    
    def test_invalid_template_is_skipped(self, data):
        """Test a rule that would create an invalid transaction is logged and left alone."""
        logger = ActivityLogger()
        processor, engine = make_processor(data, logger)
        rule = rent_rule(date(2026, 9, 1), amount="0")
        data.recurring_rules.append(rule)
        
        assert processor.process_due(TODAY) == []
        assert rule.active
        assert rule.next_due_date == date(2026, 9, 1)
        assert engine.transactions == []
        assert any(e.event_type == ActivityEventType.RULE_SKIPPED for e in logger.recent_events)


class TestCancel:
    """User-initiated rule deletion."""
    
    def test_cancel_entirely_restores_opening_balances(self, data, opening):
        """Test the cascade reverts and removes every generated transaction."""
        processor, engine = make_processor(data)
        rule = processor.add_rule(rent_rule(date(2026, 6, 10)))
        engine.add_transaction(Transaction(
            date=date(2026, 10, 2),
            type=TransactionType.INCOME,
            amount=Decimal("50"),
            category="gift",
            source_id="savings",
        ))
        assert len(processor.process_due(TODAY)) == 5
        
        processor.cancel_rule(rule.id, CancelMode.ENTIRELY)
        
        assert processor.rules == []
        assert engine.transactions_for_rule(rule.id) == []
        assert len(engine.transactions) == 1
        assert engine.accounts.get("cash").balance == opening["cash"]
        assert engine.accounts.get("savings").balance == opening["savings"] + 50
    
    def test_cancel_from_now_keeps_history(self, data):
        """Test retiring keeps the rule and its transactions."""
        processor, engine = make_processor(data)
        rule = processor.add_rule(rent_rule(date(2026, 10, 1)))
        processor.process_due(TODAY)
        
        processor.cancel_rule(rule.id, CancelMode.FROM_NOW)
        
        assert processor.get_rule(rule.id).active is False
        assert len(engine.transactions) == 1
        assert processor.process_due(date(2027, 3, 1)) == []
    
    def test_cancel_unknown_rule(self, data):
        """Test cancelling a missing rule raises NotFoundError."""
        processor, _ = make_processor(data)
        with pytest.raises(NotFoundError):
            processor.cancel_rule("missing", CancelMode.FROM_NOW)


class TestScheduleFromTransaction:
    """Marking a new transaction as recurring."""
    
    def _salary(self, day):
        return Transaction(
            date=day,
            type=TransactionType.INCOME,
            amount=Decimal("3000"),
            category="salary",
            note="Salary",
            source_id="cash",
        )
    
    def test_due_today_records_first_occurrence(self, data):
        """Test the first occurrence is applied now and the rule starts next month."""
        processor, engine = make_processor(data)
        
        rule, first = processor.schedule_from_transaction(self._salary(TODAY), 12, TODAY)
        
        assert first is not None
        assert first.recurring_rule_id == rule.id
        assert first.note == "[Auto] Salary (first of 12)"
        assert rule.remaining_occurrences == 11
        assert rule.next_due_date == date(2026, 11, 17)
        assert rule.day_of_month == 17
        assert engine.accounts.get("cash").balance == Decimal("4000")
    
    def test_future_date_only_schedules(self, data):
        """Test a future start date creates the rule only."""
        processor, engine = make_processor(data)
        
        rule, first = processor.schedule_from_transaction(self._salary(date(2026, 11, 3)), 12, TODAY)
        
        assert first is None
        assert rule.next_due_date == date(2026, 11, 3)
        assert rule.remaining_occurrences == 12
        assert engine.transactions == []
    
    def test_single_occurrence_rule_is_created_retired(self, data):
        """Test occurrences=1 due today leaves nothing to schedule."""
        processor, _ = make_processor(data)
        
        rule, first = processor.schedule_from_transaction(self._salary(TODAY), 1, TODAY)
        
        assert first is not None
        assert rule.remaining_occurrences == 0
        assert rule.active is False
    
    def test_unlimited_rule(self, data):
        """Test occurrences=None keeps no count."""
        processor, _ = make_processor(data)
        rule, first = processor.schedule_from_transaction(self._salary(TODAY), None, TODAY)
        assert rule.remaining_occurrences is None
        assert first.note == "[Auto] Salary"
    
    def test_long_note_is_shortened_for_rule_name(self, data):
        """Test a note longer than a rule name still schedules, with the name cut to fit."""
        processor, _ = make_processor(data)
        salary = self._salary(TODAY).model_copy(update={"note": "x" * 300})
        
        rule, first = processor.schedule_from_transaction(salary, 3, TODAY)
        
        assert rule.name == "x" * RULE_NAME_MAX_LENGTH
        assert first.note == f"[Auto] {'x' * RULE_NAME_MAX_LENGTH} (first of 3)"
        assert processor.rules == [rule]
    
    def test_invalid_template_rejected_before_rule(self, data):
        """Test a transaction without category or note raises ValidationError and creates nothing."""
        processor, engine = make_processor(data)
        blank = self._salary(TODAY).model_copy(update={"note": "", "category": ""})
        
        with pytest.raises(ValidationError):
            processor.schedule_from_transaction(blank, 3, TODAY)
        
        assert processor.rules == []
        assert engine.transactions == []
    
    def test_zero_occurrences_rejected(self, data):
        """Test at least one occurrence is required."""
        processor, engine = make_processor(data)
        with pytest.raises(ValidationError):
            processor.schedule_from_transaction(self._salary(TODAY), 0, TODAY)
        assert processor.rules == []
        assert engine.transactions == []


class TestProjectMonth:
    """Pending occurrences for a calendar view."""
    
    def test_next_month_pending(self, data):
        """Test an unlimited rule shows up once in next month."""
        processor, _ = make_processor(data)
        rule = processor.add_rule(rent_rule(date(2026, 11, 15)))
        
        projected = processor.project_month(2026, 11, TODAY)
        
        assert [(p.rule_id, p.date) for p in projected] == [(rule.id, date(2026, 11, 15))]
    
    def test_current_month_excludes_past_dates(self, data):
        """Test only dates from today on are projected."""
        processor, _ = make_processor(data)
        processor.add_rule(rent_rule(date(2026, 10, 25)))
        processor.add_rule(rent_rule(date(2026, 10, 5)))
        
        projected = processor.project_month(2026, 10, TODAY)
        
        assert [p.date for p in projected] == [date(2026, 10, 25)]
    
    def test_exhausted_before_month(self, data):
        """Test a rule with one occurrence left does not reach the month after."""
        processor, _ = make_processor(data)
        processor.add_rule(rent_rule(date(2026, 11, 15), remaining=1))
        assert processor.project_month(2026, 12, TODAY) == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
