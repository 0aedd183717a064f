"""
Core Ledger Models for WealthWise

These models define the schemas of everything that is persisted:
accounts, transactions, recurring rules and the FinancialData aggregate.
They are designed to:
1. Enforce type safety at runtime
2. Serialize to the camelCase JSON blob the app has always stored
3. Keep money exact (Decimal, never float)

DESIGN DECISION: Models only enforce shape (types, ranges).
Business rules (positive amounts, transfer endpoints) live in
wealthwise.validation so they can be reported as a list of issues
before any mutation happens.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


SCHEMA_VERSION = 2
RULE_NAME_MAX_LENGTH = 200


def generate_id() -> str:
    """Generate a new opaque entity id."""
    return uuid4().hex


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class AccountKind(str, Enum):
    """Which side of the balance sheet an account is on."""
    ASSET = "asset"
    LIABILITY = "liability"


class TransactionType(str, Enum):
    """
    Transaction types.
    
    income/expense touch at most one account (the source).
    transfer moves money from a source to a destination.
    """
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class RecurrenceFrequency(str, Enum):
    """Supported recurrence frequencies (monthly only for now)."""
    MONTHLY = "monthly"


# Suggested account categories per kind; free text is still accepted
ASSET_CATEGORIES = ("cash", "investment", "property", "crypto", "other")
LIABILITY_CATEGORIES = ("credit_card", "loan", "mortgage", "other")


class LedgerModel(BaseModel):
    """Base for persisted models: camelCase on the wire, snake_case in Python."""
    
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


# =============================================================================
# ACCOUNTS
# =============================================================================

class Account(LedgerModel):
    """
    An asset or liability with a running balance.
    
    For liabilities the balance is the outstanding debt, so a positive
    balance means money owed.
    """
    
    id: str = Field(
        default_factory=generate_id,
        description="Unique account ID"
    )
    kind: AccountKind = Field(
        ...,
        description="Asset or liability"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display name"
    )
    category: str = Field(
        default="other",
        max_length=50,
        description="Account category (cash, credit_card, ...)"
    )
    balance: Decimal = Field(
        default=Decimal("0"),
        description="Current balance in the base currency"
    )
    
    # Investment specific fields (assets only)
    symbol: Optional[str] = Field(
        default=None,
        max_length=20,
        description="Ticker symbol for investment assets"
    )
    shares: Optional[Decimal] = Field(default=None, ge=0)
    purchase_price: Optional[Decimal] = Field(default=None, ge=0)
    current_price: Optional[Decimal] = Field(default=None, ge=0)
    currency: Optional[str] = Field(
        default=None,
        max_length=3,
        description="Quote currency of current_price"
    )
    last_updated: Optional[dt.date] = None
    
    def market_value(self, fx_rate: Decimal = Decimal("1")) -> Optional[Decimal]:
        """
        Value of an investment position in the base currency.
        
        Returns None when shares or price are unknown.
        """
        if self.shares is None or self.current_price is None:
            return None
        return self.shares * self.current_price * fx_rate
    
    def unrealized_gain(self) -> Optional[Decimal]:
        """Gain versus purchase price, in the quote currency."""
        if self.shares is None or self.current_price is None:
            return None
        return (self.current_price - (self.purchase_price or Decimal("0"))) * self.shares


class AccountGroups(LedgerModel):
    """Accounts as persisted: two lists, one per kind."""
    
    assets: list[Account] = Field(default_factory=list)
    liabilities: list[Account] = Field(default_factory=list)


# =============================================================================
# TRANSACTIONS AND RULES
# =============================================================================

class Transaction(LedgerModel):
    """
    A single ledger entry.
    
    source/destination are account references. Their *_kind fields say
    which balance-sheet side the id belongs to; the ledger engine fills
    them in from the account store when the account is known.
    
    Stored transactions are immutable: edits go through
    LedgerEngine.update_transaction with a new instance.
    """
    
    model_config = ConfigDict(frozen=True)
    
    id: str = Field(
        default_factory=generate_id,
        description="Unique transaction ID (stable across edits)"
    )
    date: dt.date = Field(
        ...,
        description="Calendar day of the transaction"
    )
    type: TransactionType
    amount: Decimal = Field(
        ...,
        description="Positive amount in the base currency"
    )
    category: str = Field(
        default="",
        max_length=100
    )
    note: str = Field(
        default="",
        max_length=1000
    )
    
    source_id: Optional[str] = None
    source_kind: Optional[AccountKind] = None
    destination_id: Optional[str] = None
    destination_kind: Optional[AccountKind] = None
    
    recurring_rule_id: Optional[str] = Field(
        default=None,
        description="Rule that produced this transaction, if any"
    )


class RecurringRule(LedgerModel):
    """
    A monthly template that materializes into transactions.
    
    remaining_occurrences=None means the rule runs until cancelled.
    """
    
    id: str = Field(default_factory=generate_id)
    name: str = Field(
        ...,
        min_length=1,
        max_length=RULE_NAME_MAX_LENGTH,
        description="User friendly name, e.g. 'Mortgage'"
    )
    amount: Decimal
    type: TransactionType
    category: str = Field(default="", max_length=100)
    
    source_id: Optional[str] = None
    source_kind: Optional[AccountKind] = None
    destination_id: Optional[str] = None
    destination_kind: Optional[AccountKind] = None
    
    frequency: RecurrenceFrequency = RecurrenceFrequency.MONTHLY
    day_of_month: int = Field(
        ...,
        ge=1,
        le=31,
        description="Target day; clamped to the month's last day"
    )
    next_due_date: dt.date
    last_processed_date: Optional[dt.date] = None
    active: bool = True
    remaining_occurrences: Optional[int] = Field(
        default=None,
        ge=0,
        description="Occurrences left; None = unlimited"
    )


class ProjectedOccurrence(LedgerModel):
    """A future occurrence of a rule that has not been materialized yet."""
    
    rule_id: str
    name: str
    date: dt.date
    type: TransactionType
    amount: Decimal
    category: str = ""


class CustomCategory(LedgerModel):
    """A user-defined transaction category."""
    
    id: str = Field(default_factory=generate_id)
    name: str = Field(..., min_length=1, max_length=100)
    type: TransactionType
    icon_name: str = Field(default="Tag", max_length=50)


# =============================================================================
# AGGREGATE ROOT
# =============================================================================

class FinancialData(LedgerModel):
    """
    Everything the app persists, as one unit.
    
    There is no partial persistence: the whole aggregate is loaded and
    saved at once.
    """
    
    schema_version: int = Field(default=SCHEMA_VERSION, ge=1)
    transactions: list[Transaction] = Field(default_factory=list)
    accounts: AccountGroups = Field(default_factory=AccountGroups)
    recurring_rules: list[RecurringRule] = Field(default_factory=list)
    custom_categories: list[CustomCategory] = Field(default_factory=list)
    
    def to_json(self, indent: Optional[int] = None) -> str:
        """Serialize with the persisted (camelCase) keys."""
        return self.model_dump_json(by_alias=True, indent=indent)
