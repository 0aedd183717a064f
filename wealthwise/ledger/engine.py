"""
Ledger Engine

Applies and reverses transactions against the account store.

INVARIANT: for every account A,

    balance(A) == opening(A) + sum of apply-deltas on A
                  over the transactions currently stored

The engine keeps this incrementally (add = apply, delete = revert,
update = revert old + apply new). replay_balances() recomputes it from
scratch so the invariant can be checked.

Every operation validates first and only then mutates, all without
yielding, so callers never observe a half-applied change.
"""

from decimal import Decimal
from typing import Mapping, Optional
from uuid import UUID

from wealthwise.activity import ActivityLogger
from wealthwise.exceptions import NotFoundError, ValidationError
from wealthwise.ledger.accounts import AccountStore
from wealthwise.ledger.effects import EffectPolarity, LedgerEntry, resolve_effects
from wealthwise.models.activity import ActivityEventBuilder
from wealthwise.models.ledger import FinancialData, Transaction
from wealthwise.validation import LedgerValidator


class LedgerEngine:
    """
    Owns the transaction list of a FinancialData aggregate and keeps
    the account balances consistent with it.
    """
    
    def __init__(
        self,
        data: FinancialData,
        accounts: Optional[AccountStore] = None,
        validator: Optional[LedgerValidator] = None,
        activity_logger: Optional[ActivityLogger] = None,
    ):
        self._data = data
        self._accounts = accounts or AccountStore(data.accounts)
        self._validator = validator or LedgerValidator()
        self._activity = activity_logger or ActivityLogger()
    
    @property
    def accounts(self) -> AccountStore:
        return self._accounts
    
    @property
    def transactions(self) -> list[Transaction]:
        """Stored transactions in insertion order (a copy)."""
        return list(self._data.transactions)
    
    def get_transaction(self, transaction_id: str) -> Transaction:
        return self._data.transactions[self._index_of(transaction_id)]
    
    def transactions_for_display(self) -> list[Transaction]:
        """Most recent first: by date, then latest inserted."""
        return sorted(
            reversed(self._data.transactions),
            key=lambda t: t.date,
            reverse=True,
        )
    
    def transactions_for_rule(self, rule_id: str) -> list[Transaction]:
        return [t for t in self._data.transactions if t.recurring_rule_id == rule_id]
    
    # ── Internals ─────────────────────────────────────────────────────────────
    
    def _index_of(self, transaction_id: str) -> int:
        for index, transaction in enumerate(self._data.transactions):
            if transaction.id == transaction_id:
                return index
        raise NotFoundError("transaction", transaction_id)
    
    def resolve_endpoint_kinds(self, entry: LedgerEntry) -> LedgerEntry:
        """
        Tag each endpoint with the kind of the account it points to.
        
        The account store is authoritative; an id it does not know keeps
        whatever kind the caller supplied.
        """
        updates = {}
        source_kind = self._accounts.kind_of(entry.source_id)
        if source_kind is not None and source_kind != entry.source_kind:
            updates["source_kind"] = source_kind
        destination_kind = self._accounts.kind_of(entry.destination_id)
        if destination_kind is not None and destination_kind != entry.destination_kind:
            updates["destination_kind"] = destination_kind
        return entry.model_copy(update=updates) if updates else entry
    
    def _validate(self, transaction: Transaction) -> None:
        try:
            self._validator.ensure_valid_transaction(transaction)
        except ValidationError as e:
            self._activity.log(ActivityEventBuilder.validation_failed(
                "transaction",
                transaction.id,
                [issue.message for issue in e.issues if issue.severity == "error"],
            ))
            raise
    
    def _apply(self, transaction: Transaction, polarity: EffectPolarity) -> None:
        skipped = self._accounts.apply(resolve_effects(transaction, polarity))
        for delta in skipped:
            self._activity.log(ActivityEventBuilder.delta_skipped(
                delta.account_id,
                delta.account_kind.value,
                delta.delta,
            ))
    
    # ── Operations ────────────────────────────────────────────────────────────
    
    def add_transaction(
        self,
        transaction: Transaction,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Validate, apply and store a new transaction.
        
        Returns the stored transaction (endpoint kinds filled in).
        """
        transaction = self.resolve_endpoint_kinds(transaction)
        self._validate(transaction)
        if any(t.id == transaction.id for t in self._data.transactions):
            raise ValidationError(f"A transaction with id '{transaction.id}' already exists.")
        
        self._apply(transaction, EffectPolarity.APPLY)
        self._data.transactions.append(transaction)
        
        self._activity.log(ActivityEventBuilder.transaction_added(
            transaction.id,
            transaction.type.value,
            transaction.amount,
            recurring_rule_id=transaction.recurring_rule_id,
            correlation_id=correlation_id,
        ))
        return transaction
    
    def update_transaction(
        self,
        transaction_id: str,
        new_transaction: Transaction,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Replace a stored transaction: revert the old effects, apply the new.
        
        The stored id is kept. The recurring rule link is carried over
        unless new_transaction explicitly sets recurring_rule_id
        (including explicitly setting it to None).
        """
        index = self._index_of(transaction_id)
        old = self._data.transactions[index]
        
        updates = {"id": old.id}
        if "recurring_rule_id" not in new_transaction.model_fields_set:
            updates["recurring_rule_id"] = old.recurring_rule_id
        replacement = self.resolve_endpoint_kinds(new_transaction.model_copy(update=updates))
        self._validate(replacement)
        
        self._apply(old, EffectPolarity.REVERT)
        self._apply(replacement, EffectPolarity.APPLY)
        self._data.transactions[index] = replacement
        
        self._activity.log(ActivityEventBuilder.transaction_updated(
            old.id,
            old.amount,
            replacement.amount,
            correlation_id=correlation_id,
        ))
        return replacement
    
    def delete_transaction(
        self,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """Revert a transaction's effects and remove it."""
        index = self._index_of(transaction_id)
        transaction = self._data.transactions[index]
        
        self._apply(transaction, EffectPolarity.REVERT)
        del self._data.transactions[index]
        
        self._activity.log(ActivityEventBuilder.transaction_deleted(
            transaction.id,
            transaction.amount,
            correlation_id=correlation_id,
        ))
        return transaction
    
    def delete_transactions_by_rule(
        self,
        rule_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> list[Transaction]:
        """Revert and remove every transaction produced by a rule."""
        removed = self.transactions_for_rule(rule_id)
        for transaction in removed:
            self._apply(transaction, EffectPolarity.REVERT)
        self._data.transactions[:] = [
            t for t in self._data.transactions if t.recurring_rule_id != rule_id
        ]
        
        self._activity.log(ActivityEventBuilder.cascade_deleted(
            rule_id,
            len(removed),
            correlation_id=correlation_id,
        ))
        return removed
    
    # ── Consistency ───────────────────────────────────────────────────────────
    
    def replay_balances(self, opening_balances: Mapping[str, Decimal]) -> dict[str, Decimal]:
        """
        Recompute every balance from opening balances and the stored list.
        
        Deltas for accounts that are not in the store (or whose kind does
        not match) are skipped, exactly as the incremental path does.
        """
        balances = {account.id: Decimal(opening_balances.get(account.id, 0)) for account in self._accounts}
        for transaction in self._data.transactions:
            for account_id, kind, delta in resolve_effects(transaction):
                if self._accounts.kind_of(account_id) == kind:
                    balances[account_id] += delta
        return balances
    
    def is_consistent_with(self, opening_balances: Mapping[str, Decimal]) -> bool:
        """True when replaying from opening_balances gives the current balances."""
        return self.replay_balances(opening_balances) == self._accounts.balances()
