"""
Activity Event Models for WealthWise

Every ledger mutation and every external call produces an event that
goes to the structured local log. This provides:
1. Debugging information when a balance looks wrong
2. A readable trail of what the recurring processor did on startup
3. Visibility into failing external services

DESIGN DECISION: Events are log lines, not records. They are never
written into the FinancialData blob.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class ActivityEventType(str, Enum):
    """Types of events we log."""
    # Ledger
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    TRANSACTIONS_CASCADE_DELETED = "transactions_cascade_deleted"
    BALANCE_DELTA_SKIPPED = "balance_delta_skipped"
    VALIDATION_FAILED = "validation_failed"
    
    # Accounts
    ACCOUNT_SAVED = "account_saved"
    ACCOUNT_DELETED = "account_deleted"
    BALANCE_OVERRIDDEN = "balance_overridden"
    
    # Recurring rules
    RULE_ADDED = "rule_added"
    RULE_MATERIALIZED = "rule_materialized"
    RULE_RETIRED = "rule_retired"
    RULE_CANCELLED = "rule_cancelled"
    RULE_SKIPPED = "rule_skipped"
    
    # Persistence
    DATA_LOADED = "data_loaded"
    DATA_LOAD_FALLBACK = "data_load_fallback"
    DATA_SAVED = "data_saved"
    DATA_EXPORTED = "data_exported"
    DATA_IMPORTED = "data_imported"
    IMPORT_REJECTED = "import_rejected"
    
    # External services
    ADVICE_GENERATED = "advice_generated"
    PRICE_LOOKED_UP = "price_looked_up"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class ActivitySeverity(str, Enum):
    """Severity level for activity events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class ActivityEvent(BaseModel):
    """A single activity event."""
    
    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )
    
    event_type: ActivityEventType
    severity: ActivitySeverity = ActivitySeverity.INFO
    
    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'rule', 'account')"
    )
    entity_id: Optional[str] = None
    
    # Correlation - for tracking events caused by one user action
    correlation_id: Optional[UUID] = None
    
    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    
    error_message: Optional[str] = None
    
    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )
    
    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class ActivityEventBuilder:
    """
    Helper class to build activity events with common patterns.
    
    Usage:
        event = ActivityEventBuilder.transaction_added(txn_id, "expense", amount)
    """
    
    @staticmethod
    def transaction_added(
        transaction_id: str,
        transaction_type: str,
        amount: Decimal,
        recurring_rule_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.TRANSACTION_ADDED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction added: {transaction_type} {amount}",
            details={
                "type": transaction_type,
                "amount": str(amount),
                "recurring_rule_id": recurring_rule_id,
            },
            is_user_action=recurring_rule_id is None,
        )
    
    @staticmethod
    def transaction_updated(
        transaction_id: str,
        old_amount: Decimal,
        new_amount: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.TRANSACTION_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Transaction updated (reverted and reapplied)",
            details={
                "old_amount": str(old_amount),
                "new_amount": str(new_amount),
            },
            is_user_action=True,
        )
    
    @staticmethod
    def transaction_deleted(
        transaction_id: str,
        amount: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Transaction deleted and reverted",
            details={"amount": str(amount)},
            is_user_action=True,
        )
    
    @staticmethod
    def cascade_deleted(
        rule_id: str,
        count: int,
        correlation_id: Optional[UUID] = None,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.TRANSACTIONS_CASCADE_DELETED,
            entity_type="rule",
            entity_id=rule_id,
            correlation_id=correlation_id,
            description=f"Removed {count} transactions produced by rule",
            details={"count": count},
        )
    
    @staticmethod
    def delta_skipped(
        account_id: str,
        account_kind: str,
        delta: Decimal,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.BALANCE_DELTA_SKIPPED,
            severity=ActivitySeverity.DEBUG,
            entity_type="account",
            entity_id=account_id,
            description="Balance delta skipped: account not in store",
            details={"kind": account_kind, "delta": str(delta)},
        )
    
    @staticmethod
    def validation_failed(
        entity_type: str,
        entity_id: Optional[str],
        messages: list[str],
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.VALIDATION_FAILED,
            severity=ActivitySeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"Validation failed with {len(messages)} errors",
            details={"errors": messages},
            is_user_action=True,
        )
    
    @staticmethod
    def account_saved(account_id: str, kind: str, name: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.ACCOUNT_SAVED,
            entity_type="account",
            entity_id=account_id,
            description=f"Account saved: {name}",
            details={"kind": kind},
            is_user_action=True,
        )
    
    @staticmethod
    def account_deleted(account_id: str, orphaned: int) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.ACCOUNT_DELETED,
            entity_type="account",
            entity_id=account_id,
            description="Account deleted",
            details={"orphaned_transactions": orphaned},
            is_user_action=True,
        )
    
    @staticmethod
    def balance_overridden(
        account_id: str,
        old_balance: Decimal,
        new_balance: Decimal,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.BALANCE_OVERRIDDEN,
            entity_type="account",
            entity_id=account_id,
            description="Balance set directly (not a transaction)",
            details={
                "old_balance": str(old_balance),
                "new_balance": str(new_balance),
            },
            is_user_action=True,
        )
    
    @staticmethod
    def rule_added(rule_id: str, name: str, remaining: Optional[int]) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.RULE_ADDED,
            entity_type="rule",
            entity_id=rule_id,
            description=f"Recurring rule added: {name}",
            details={"remaining_occurrences": remaining},
            is_user_action=True,
        )
    
    @staticmethod
    def rule_materialized(
        rule_id: str,
        count: int,
        next_due_date: str,
        correlation_id: Optional[UUID] = None,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.RULE_MATERIALIZED,
            entity_type="rule",
            entity_id=rule_id,
            correlation_id=correlation_id,
            description=f"Materialized {count} occurrences",
            details={"count": count, "next_due_date": next_due_date},
        )
    
    @staticmethod
    def rule_retired(rule_id: str, correlation_id: Optional[UUID] = None) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.RULE_RETIRED,
            entity_type="rule",
            entity_id=rule_id,
            correlation_id=correlation_id,
            description="Recurring rule exhausted and retired",
        )
    
    @staticmethod
    def rule_cancelled(rule_id: str, mode: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.RULE_CANCELLED,
            entity_type="rule",
            entity_id=rule_id,
            description=f"Recurring rule cancelled ({mode})",
            details={"mode": mode},
            is_user_action=True,
        )
    
    @staticmethod
    def rule_skipped(rule_id: str, messages: list[str]) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.RULE_SKIPPED,
            severity=ActivitySeverity.WARNING,
            entity_type="rule",
            entity_id=rule_id,
            description="Recurring rule skipped: template is invalid",
            details={"errors": messages},
        )
    
    @staticmethod
    def data_loaded(path: str, transactions: int, accounts: int) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.DATA_LOADED,
            description="Financial data loaded",
            details={
                "path": path,
                "transactions": transactions,
                "accounts": accounts,
            },
        )
    
    @staticmethod
    def data_load_fallback(path: str, reason: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.DATA_LOAD_FALLBACK,
            severity=ActivitySeverity.WARNING,
            description="Stored data unreadable, starting empty",
            error_message=reason,
            details={"path": path},
        )
    
    @staticmethod
    def data_saved(path: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.DATA_SAVED,
            severity=ActivitySeverity.DEBUG,
            description="Financial data saved",
            details={"path": path},
        )
    
    @staticmethod
    def data_exported(path: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.DATA_EXPORTED,
            description="Backup exported",
            details={"path": path},
            is_user_action=True,
        )
    
    @staticmethod
    def data_imported(transactions: int) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.DATA_IMPORTED,
            description=f"Backup restored with {transactions} transactions",
            details={"transactions": transactions},
            is_user_action=True,
        )
    
    @staticmethod
    def import_rejected(reason: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.IMPORT_REJECTED,
            severity=ActivitySeverity.WARNING,
            description="Backup rejected",
            error_message=reason,
            is_user_action=True,
        )
    
    @staticmethod
    def advice_generated(has_query: bool, length: int) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.ADVICE_GENERATED,
            entity_type="advice",
            description="Advisor analysis generated",
            details={"has_query": has_query, "length": length},
            is_user_action=True,
        )
    
    @staticmethod
    def price_looked_up(symbol: str, found: bool) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.PRICE_LOOKED_UP,
            entity_type="quote",
            entity_id=symbol,
            description=f"Price lookup for {symbol}",
            details={"found": found},
            is_user_action=True,
        )
    
    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.EXTERNAL_SERVICE_ERROR,
            severity=ActivitySeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )
