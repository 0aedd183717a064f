"""
Recurring Rule Processor

Turns due occurrences of monthly rules into ledger transactions,
exactly once each.

Per rule state machine:

    active --(remaining hits 0, or cancelled)--> retired (active=False)

retired is terminal. process_due() is run once at startup, before any
user mutation is accepted, and may be run again whenever the day
changes. Running it twice on the same day materializes nothing new
because next_due_date has already moved past today.

CRITICAL: occurrences are materialized oldest first and each one is
fully applied (balances + rule counters) before the next is looked at.
"""

from datetime import date
from enum import Enum
from typing import Optional
from uuid import UUID

from wealthwise.activity import ActivityLogger
from wealthwise.exceptions import NotFoundError, ValidationError
from wealthwise.ledger import LedgerEngine
from wealthwise.models.activity import ActivityEventBuilder
from wealthwise.models.ledger import (
    RULE_NAME_MAX_LENGTH,
    FinancialData,
    ProjectedOccurrence,
    RecurringRule,
    Transaction,
    generate_id,
)
from wealthwise.recurring.schedule import (
    advance_one_month,
    project_occurrences,
    resolve_day,
)
from wealthwise.validation import LedgerValidator


class CancelMode(str, Enum):
    """How a user deletes a rule."""
    FROM_NOW = "from_now"   # retire the rule, keep it and its history
    ENTIRELY = "entirely"   # remove the rule and revert its history


class RecurringRuleProcessor:
    """
    Owns the recurring rule catalog of a FinancialData aggregate.
    
    All balance changes go through the LedgerEngine; the processor only
    decides when, and keeps the rule counters in step.
    """
    
    def __init__(
        self,
        data: FinancialData,
        engine: LedgerEngine,
        validator: Optional[LedgerValidator] = None,
        activity_logger: Optional[ActivityLogger] = None,
        note_prefix: str = "[Auto]",
    ):
        self._data = data
        self._engine = engine
        self._validator = validator or LedgerValidator()
        self._activity = activity_logger or ActivityLogger()
        self._note_prefix = note_prefix
    
    @property
    def rules(self) -> list[RecurringRule]:
        return list(self._data.recurring_rules)
    
    @property
    def active_rules(self) -> list[RecurringRule]:
        return [rule for rule in self._data.recurring_rules if rule.active]
    
    def get_rule(self, rule_id: str) -> RecurringRule:
        for rule in self._data.recurring_rules:
            if rule.id == rule_id:
                return rule
        raise NotFoundError("recurring rule", rule_id)
    
    # ── Catalog ───────────────────────────────────────────────────────────────
    
    def _validate_rule(self, rule: RecurringRule) -> None:
        try:
            self._validator.ensure_valid_rule(rule)
        except ValidationError as e:
            self._activity.log(ActivityEventBuilder.validation_failed(
                "rule",
                rule.id,
                [issue.message for issue in e.issues if issue.severity == "error"],
            ))
            raise
    
    def add_rule(self, rule: RecurringRule) -> RecurringRule:
        """Validate and store a rule. It is not processed until process_due()."""
        rule = self._engine.resolve_endpoint_kinds(rule)
        self._validate_rule(rule)
        if any(r.id == rule.id for r in self._data.recurring_rules):
            raise ValidationError(f"A recurring rule with id '{rule.id}' already exists.")
        
        self._data.recurring_rules.append(rule)
        self._activity.log(ActivityEventBuilder.rule_added(
            rule.id,
            rule.name,
            rule.remaining_occurrences,
        ))
        return rule
    
    def schedule_from_transaction(
        self,
        transaction: Transaction,
        occurrences: Optional[int],
        today: date,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[RecurringRule, Optional[Transaction]]:
        """
        Create a monthly rule from a transaction the user marked recurring.
        
        The rule fires on the transaction's day of month. When the
        transaction date is today or earlier, the first occurrence is
        recorded immediately and the rule starts one month later.
        occurrences=None means the rule runs until cancelled.
        
        Returns: (rule, first_transaction or None)
        """
        if occurrences is not None and occurrences < 1:
            raise ValidationError("A recurring transaction needs at least one occurrence.")
        
        due_now = transaction.date <= today
        day_of_month = transaction.date.day
        remaining = occurrences
        next_due = transaction.date
        if due_now:
            next_due = advance_one_month(transaction.date, day_of_month)
            if remaining is not None:
                remaining -= 1
        
        self._validator.ensure_valid_transaction(self._engine.resolve_endpoint_kinds(transaction))
        
        # Notes may be longer than a rule name
        name = (transaction.note or transaction.category)[:RULE_NAME_MAX_LENGTH]
        rule = self._engine.resolve_endpoint_kinds(RecurringRule(
            id=generate_id(),
            name=name,
            amount=transaction.amount,
            type=transaction.type,
            category=transaction.category,
            source_id=transaction.source_id,
            source_kind=transaction.source_kind,
            destination_id=transaction.destination_id,
            destination_kind=transaction.destination_kind,
            day_of_month=day_of_month,
            next_due_date=next_due,
            last_processed_date=today if due_now else None,
            active=remaining is None or remaining > 0,
            remaining_occurrences=remaining,
        ))
        self._validate_rule(rule)
        
        first = None
        if due_now:
            note = f"{self._note_prefix} {name}"
            if occurrences is not None:
                note += f" (first of {occurrences})"
            first = self._engine.add_transaction(
                transaction.model_copy(update={"note": note, "recurring_rule_id": rule.id}),
                correlation_id=correlation_id,
            )
        
        self._data.recurring_rules.append(rule)
        self._activity.log(ActivityEventBuilder.rule_added(rule.id, rule.name, remaining))
        if not rule.active:
            self._activity.log(ActivityEventBuilder.rule_retired(rule.id, correlation_id=correlation_id))
        return rule, first
    
    def cancel_rule(
        self,
        rule_id: str,
        mode: CancelMode,
        correlation_id: Optional[UUID] = None,
    ) -> RecurringRule:
        """
        Cancel a rule.
        
        FROM_NOW retires the rule and keeps everything it produced.
        ENTIRELY removes the rule and reverts every transaction it produced.
        """
        rule = self.get_rule(rule_id)
        
        if mode == CancelMode.ENTIRELY:
            self._engine.delete_transactions_by_rule(rule.id, correlation_id=correlation_id)
            self._data.recurring_rules[:] = [
                r for r in self._data.recurring_rules if r.id != rule.id
            ]
        else:
            rule.active = False
        
        self._activity.log(ActivityEventBuilder.rule_cancelled(rule.id, mode.value))
        return rule
    
    # ── Processing ────────────────────────────────────────────────────────────
    
    def _note_for(self, rule: RecurringRule) -> str:
        note = f"{self._note_prefix} {rule.name}"
        if rule.remaining_occurrences is not None:
            note += f" ({rule.remaining_occurrences - 1} left)"
        return note
    
    def _materialize(
        self,
        rule: RecurringRule,
        due: date,
        correlation_id: Optional[UUID],
    ) -> Transaction:
        return self._engine.add_transaction(
            Transaction(
                date=due,
                type=rule.type,
                amount=rule.amount,
                category=rule.category,
                note=self._note_for(rule),
                source_id=rule.source_id,
                source_kind=rule.source_kind,
                destination_id=rule.destination_id,
                destination_kind=rule.destination_kind,
                recurring_rule_id=rule.id,
            ),
            correlation_id=correlation_id,
        )
    
    def process_rule(
        self,
        rule: RecurringRule,
        today: date,
        correlation_id: Optional[UUID] = None,
    ) -> list[Transaction]:
        """
        Materialize every occurrence of one rule that is due on or before today.
        
        Returns the transactions created, oldest first.
        """
        if not rule.active:
            return []
        
        result = self._validator.validate_rule(rule)
        if result.has_errors:
            self._activity.log(ActivityEventBuilder.rule_skipped(rule.id, result.error_messages))
            return []
        
        created = []
        due = rule.next_due_date
        while due <= today:
            if rule.remaining_occurrences == 0:
                rule.active = False
                break
            
            created.append(self._materialize(rule, due, correlation_id))
            
            if rule.remaining_occurrences is not None:
                rule.remaining_occurrences -= 1
                if rule.remaining_occurrences == 0:
                    rule.active = False
            
            due = advance_one_month(due, rule.day_of_month)
            
            if not rule.active:
                break
        
        if created:
            rule.next_due_date = due
            rule.last_processed_date = today
            self._activity.log(ActivityEventBuilder.rule_materialized(
                rule.id,
                len(created),
                due.isoformat(),
                correlation_id=correlation_id,
            ))
        if not rule.active:
            self._activity.log(ActivityEventBuilder.rule_retired(rule.id, correlation_id=correlation_id))
        return created
    
    def process_due(
        self,
        today: date,
        correlation_id: Optional[UUID] = None,
    ) -> list[Transaction]:
        """Run the catch-up pass over every active rule."""
        created = []
        for rule in self.active_rules:
            created.extend(self.process_rule(rule, today, correlation_id))
        return created
    
    # ── Projection ────────────────────────────────────────────────────────────
    
    def project_month(self, year: int, month: int, today: date) -> list[ProjectedOccurrence]:
        """
        Occurrences still to come in a calendar month, by date.
        
        Past dates are left out (the catch-up pass owns those) and so is
        anything already materialized.
        """
        start = max(date(year, month, 1), today)
        end = resolve_day(31, year, month)
        projected = []
        for rule in self.active_rules:
            for due in project_occurrences(rule, start, end):
                projected.append(ProjectedOccurrence(
                    rule_id=rule.id,
                    name=rule.name,
                    date=due,
                    type=rule.type,
                    amount=rule.amount,
                    category=rule.category,
                ))
        projected.sort(key=lambda p: p.date)
        return projected
