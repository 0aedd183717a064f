"""
Account Store

One map of every account keyed by id, each tagged with its kind.
The store wraps the persisted AccountGroups lists and keeps them in
sync, so the aggregate is always ready to be saved as-is.
"""

from decimal import Decimal
from itertools import chain
from typing import Iterable, Iterator, Optional

from wealthwise.exceptions import NotFoundError, ValidationError
from wealthwise.ledger.effects import BalanceDelta
from wealthwise.models.ledger import Account, AccountGroups, AccountKind


UNKNOWN_ACCOUNT_NAME = "Unknown account"


class AccountStore:
    """
    Holds the current balance of every asset and liability.
    
    adjust() is the only path transaction effects take; set_balance()
    and upsert() are the explicit non-transactional overrides.
    """
    
    def __init__(self, groups: AccountGroups):
        self._groups = groups
        self._index: dict[str, Account] = {}
        for account in chain(groups.assets, groups.liabilities):
            self._index[account.id] = account
    
    def __contains__(self, account_id: object) -> bool:
        return account_id in self._index
    
    def __iter__(self) -> Iterator[Account]:
        return iter(self._index.values())
    
    def __len__(self) -> int:
        return len(self._index)
    
    def get(self, account_id: Optional[str]) -> Optional[Account]:
        if account_id is None:
            return None
        return self._index.get(account_id)
    
    def require(self, account_id: str) -> Account:
        account = self._index.get(account_id)
        if account is None:
            raise NotFoundError("account", account_id)
        return account
    
    def kind_of(self, account_id: Optional[str]) -> Optional[AccountKind]:
        account = self.get(account_id)
        return account.kind if account else None
    
    def name_of(self, account_id: Optional[str]) -> str:
        """Display name, with a fallback for dangling references."""
        account = self.get(account_id)
        return account.name if account else UNKNOWN_ACCOUNT_NAME
    
    def balances(self) -> dict[str, Decimal]:
        return {account_id: account.balance for account_id, account in self._index.items()}
    
    def _list_for(self, kind: AccountKind) -> list[Account]:
        return self._groups.assets if kind == AccountKind.ASSET else self._groups.liabilities
    
    # ── Transaction effects ───────────────────────────────────────────────────
    
    def adjust(self, account_id: str, kind: AccountKind, delta: Decimal) -> bool:
        """
        Add delta to an account's balance.
        
        Returns False (and changes nothing) when no account of that kind
        has this id; a missing account is never an error.
        """
        account = self._index.get(account_id)
        if account is None or account.kind != kind:
            return False
        account.balance += delta
        return True
    
    def apply(self, deltas: Iterable[BalanceDelta]) -> list[BalanceDelta]:
        """Apply deltas; returns the ones that were skipped."""
        return [d for d in deltas if not self.adjust(d.account_id, d.account_kind, d.delta)]
    
    # ── Direct account management ─────────────────────────────────────────────
    
    def add(self, account: Account) -> Account:
        if account.id in self._index:
            raise ValidationError(f"An account with id '{account.id}' already exists.")
        self._list_for(account.kind).append(account)
        self._index[account.id] = account
        return account
    
    def upsert(self, account: Account) -> Account:
        """
        Insert or fully replace an account, balance included.
        
        This is a direct override and bypasses the ledger.
        """
        existing = self._index.get(account.id)
        if existing is None:
            return self.add(account)
        old_list = self._list_for(existing.kind)
        position = next(i for i, a in enumerate(old_list) if a is existing)
        if existing.kind == account.kind:
            old_list[position] = account
        else:
            del old_list[position]
            self._list_for(account.kind).append(account)
        self._index[account.id] = account
        return account
    
    def set_balance(self, account_id: str, balance: Decimal) -> Decimal:
        """Overwrite a balance directly. Returns the previous balance."""
        account = self.require(account_id)
        previous = account.balance
        account.balance = balance
        return previous
    
    def remove(self, account_id: str) -> Account:
        """Delete an account. Transactions referencing it keep the dangling id."""
        account = self.require(account_id)
        accounts = self._list_for(account.kind)
        accounts[:] = [a for a in accounts if a is not account]
        del self._index[account_id]
        return account
    
    def total(self, kind: AccountKind) -> Decimal:
        return sum((a.balance for a in self._list_for(kind)), Decimal("0"))
