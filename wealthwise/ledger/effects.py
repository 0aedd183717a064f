"""
Balance Effect Resolver

Maps a transaction (or a recurring rule template) to the signed
balance changes it causes. Pure functions: no storage access, no
mutation, so the same code drives apply, revert and replay.

Sign conventions (apply polarity):

    type       leg          asset     liability
    income     source       +amount   -amount   (refund lowers debt)
    expense    source       -amount   +amount   (spending raises debt)
    transfer   source       -amount   +amount   (cash advance raises debt)
    transfer   destination  +amount   -amount   (payment lowers debt)

Revert polarity negates every delta.
"""

from collections import defaultdict
from decimal import Decimal
from enum import Enum
from typing import Iterable, NamedTuple, Optional, Union

from wealthwise.models.ledger import (
    AccountKind,
    RecurringRule,
    Transaction,
    TransactionType,
)


LedgerEntry = Union[Transaction, RecurringRule]


class EffectPolarity(str, Enum):
    """Whether effects are being applied or undone."""
    APPLY = "apply"
    REVERT = "revert"


class BalanceDelta(NamedTuple):
    """One signed change to one account."""
    account_id: str
    account_kind: AccountKind
    delta: Decimal


# Money leaving an account vs. money arriving in it
_OUTGOING = {AccountKind.ASSET: -1, AccountKind.LIABILITY: 1}
_INCOMING = {AccountKind.ASSET: 1, AccountKind.LIABILITY: -1}


def _legs(entry: LedgerEntry) -> list[tuple[Optional[str], Optional[AccountKind], dict]]:
    source = (entry.source_id, entry.source_kind)
    if entry.type == TransactionType.INCOME:
        return [(*source, _INCOMING)]
    if entry.type == TransactionType.EXPENSE:
        return [(*source, _OUTGOING)]
    destination = (entry.destination_id, entry.destination_kind)
    return [(*source, _OUTGOING), (*destination, _INCOMING)]


def resolve_effects(
    entry: LedgerEntry,
    polarity: EffectPolarity = EffectPolarity.APPLY,
) -> list[BalanceDelta]:
    """
    Resolve the balance deltas of a transaction or rule template.
    
    An endpoint without an id or without a kind contributes nothing;
    an unlinked income/expense therefore yields an empty list.
    """
    sign = 1 if polarity == EffectPolarity.APPLY else -1
    deltas = []
    for account_id, kind, direction in _legs(entry):
        if not account_id or kind is None:
            continue
        deltas.append(BalanceDelta(account_id, kind, entry.amount * direction[kind] * sign))
    return deltas


def net_effects(entries: Iterable[LedgerEntry]) -> dict[tuple[str, AccountKind], Decimal]:
    """Sum of apply-deltas per (account id, kind) over many entries."""
    totals: dict[tuple[str, AccountKind], Decimal] = defaultdict(Decimal)
    for entry in entries:
        for account_id, kind, delta in resolve_effects(entry):
            totals[(account_id, kind)] += delta
    return dict(totals)
