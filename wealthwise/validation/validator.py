"""
Ledger Validation

DESIGN DECISION: Validation runs BEFORE any mutation and collects
every issue instead of stopping at the first one.

Checks:
- Amount must be positive
- Category must be present
- Transfers need two distinct endpoints
- Income / expense only use the source account

Rules get the same checks as transactions (a rule is a transaction
template) plus rule-specific ones.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them; the ledger refuses to apply an invalid entry.
"""

from decimal import Decimal
from typing import Iterable, Optional, Union

from wealthwise.exceptions import ValidationError
from wealthwise.models.ledger import (
    CustomCategory,
    RecurringRule,
    Transaction,
    TransactionType,
)
from wealthwise.models.validation import ValidationIssue, ValidationResult


class LedgerValidator:
    """Validates transactions, recurring rules and categories."""
    
    def _validate_entry(
        self,
        entry: Union[Transaction, RecurringRule],
    ) -> list[ValidationIssue]:
        """
        Checks shared by transactions and rule templates.
        
        Returns: list_of_issues
        """
        issues = []
        
        if entry.amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
                severity="error",
            ))
        elif entry.amount <= Decimal("0"):
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
                suggested_fix="Enter the amount without a sign; the type decides the direction",
            ))
        
        if not entry.category:
            issues.append(ValidationIssue(
                field="category",
                issue_type="missing",
                message="Category is required",
                severity="error",
                suggested_fix="Pick a category",
            ))
        
        if entry.type == TransactionType.TRANSFER:
            if not entry.source_id or not entry.destination_id:
                issues.append(ValidationIssue(
                    field="destination_id" if entry.source_id else "source_id",
                    issue_type="missing",
                    message="A transfer needs both a source and a destination account",
                    severity="error",
                ))
            elif entry.source_id == entry.destination_id:
                issues.append(ValidationIssue(
                    field="destination_id",
                    issue_type="duplicate_endpoint",
                    message="Source and destination accounts must be different",
                    severity="error",
                ))
        elif entry.destination_id:
            issues.append(ValidationIssue(
                field="destination_id",
                issue_type="invalid_value",
                message=f"A destination account only applies to transfers, not {entry.type.value}",
                severity="error",
                suggested_fix="Use a transfer, or clear the destination",
            ))
        
        if entry.source_id and entry.source_kind is None:
            issues.append(ValidationIssue(
                field="source_kind",
                issue_type="unresolved",
                message="Source account kind is unknown; the entry will not move any balance",
                severity="warning",
            ))
        
        return issues
    
    def _result(
        self,
        entity_type: str,
        entity_id: Optional[str],
        issues: list[ValidationIssue],
    ) -> ValidationResult:
        return ValidationResult(
            entity_type=entity_type,
            entity_id=entity_id,
            is_valid=not any(issue.severity == "error" for issue in issues),
            issues=issues,
            warnings=[issue.message for issue in issues if issue.severity == "warning"],
        )
    
    def validate_transaction(self, transaction: Transaction) -> ValidationResult:
        """Validate a transaction before it is applied."""
        return self._result(
            "transaction",
            transaction.id,
            self._validate_entry(transaction),
        )
    
    def validate_rule(self, rule: RecurringRule) -> ValidationResult:
        """Validate a recurring rule's template and schedule fields."""
        issues = self._validate_entry(rule)
        
        if not rule.name.strip():
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Rule name is required",
                severity="error",
            ))
        
        if rule.active and rule.remaining_occurrences == 0:
            issues.append(ValidationIssue(
                field="remaining_occurrences",
                issue_type="exhausted",
                message="Rule has no occurrences left and will be retired",
                severity="warning",
            ))
        
        return self._result("rule", rule.id, issues)
    
    def validate_custom_category(
        self,
        category: CustomCategory,
        existing: Iterable[CustomCategory],
    ) -> ValidationResult:
        issues = []
        name = category.name.casefold()
        if any(c.name.casefold() == name and c.type == category.type for c in existing):
            issues.append(ValidationIssue(
                field="name",
                issue_type="duplicate",
                message=f"Category '{category.name}' already exists for {category.type.value}",
                severity="error",
            ))
        return self._result("category", category.id, issues)
    
    def ensure_valid_transaction(self, transaction: Transaction) -> ValidationResult:
        """Validate, raising ValidationError when there are errors."""
        result = self.validate_transaction(transaction)
        if result.has_errors:
            raise ValidationError.from_result(result)
        return result
    
    def ensure_valid_rule(self, rule: RecurringRule) -> ValidationResult:
        result = self.validate_rule(rule)
        if result.has_errors:
            raise ValidationError.from_result(result)
        return result
    
    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.
        
        This is what the UI shows next to the form.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed."
        
        lines = []
        
        if result.has_errors:
            lines.append("❌ Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")
        
        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please note:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")
        
        return "\n".join(lines)
