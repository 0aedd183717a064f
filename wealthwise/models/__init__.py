"""
Data Models Package

This package contains all Pydantic models used in WealthWise.
All data flowing through the system must conform to these schemas.
"""

from wealthwise.models.ledger import (
    ASSET_CATEGORIES,
    LIABILITY_CATEGORIES,
    RULE_NAME_MAX_LENGTH,
    SCHEMA_VERSION,
    Account,
    AccountGroups,
    AccountKind,
    CustomCategory,
    FinancialData,
    ProjectedOccurrence,
    RecurrenceFrequency,
    RecurringRule,
    Transaction,
    TransactionType,
    generate_id,
)
from wealthwise.models.validation import (
    ValidationIssue,
    ValidationResult,
)
from wealthwise.models.summary import (
    CategoryTotal,
    FinancialSummary,
    PriceQuote,
)
from wealthwise.models.activity import (
    ActivityEvent,
    ActivityEventBuilder,
    ActivityEventType,
    ActivitySeverity,
)

__all__ = [
    # Ledger models
    "ASSET_CATEGORIES",
    "LIABILITY_CATEGORIES",
    "RULE_NAME_MAX_LENGTH",
    "SCHEMA_VERSION",
    "Account",
    "AccountGroups",
    "AccountKind",
    "CustomCategory",
    "FinancialData",
    "ProjectedOccurrence",
    "RecurrenceFrequency",
    "RecurringRule",
    "Transaction",
    "TransactionType",
    "generate_id",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Summary models
    "CategoryTotal",
    "FinancialSummary",
    "PriceQuote",
    # Activity models
    "ActivityEvent",
    "ActivityEventBuilder",
    "ActivityEventType",
    "ActivitySeverity",
]
