"""Exceptions raised by ledger and recurring-rule operations."""

from typing import Optional

from wealthwise.models.validation import ValidationIssue, ValidationResult


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class ValidationError(LedgerError):
    """
    Input failed validation. Raised before any state is touched.
    
    Not to be confused with pydantic.ValidationError, which signals a
    malformed model rather than a rejected business operation.
    """
    
    def __init__(self, message: str, issues: Optional[list[ValidationIssue]] = None):
        self.issues = issues or []
        super().__init__(message)
    
    @classmethod
    def from_result(cls, result: ValidationResult) -> "ValidationError":
        messages = "; ".join(result.error_messages)
        return cls(f"Invalid {result.entity_type}: {messages}", result.issues)


class NotFoundError(LedgerError):
    """A transaction, rule or account id does not exist."""
    
    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")
