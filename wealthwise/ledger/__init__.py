"""Ledger package: balance effects, account store and the ledger engine."""

from wealthwise.ledger.effects import (
    BalanceDelta,
    EffectPolarity,
    net_effects,
    resolve_effects,
)
from wealthwise.ledger.accounts import UNKNOWN_ACCOUNT_NAME, AccountStore
from wealthwise.ledger.engine import LedgerEngine

__all__ = [
    "AccountStore",
    "BalanceDelta",
    "EffectPolarity",
    "LedgerEngine",
    "UNKNOWN_ACCOUNT_NAME",
    "net_effects",
    "resolve_effects",
]
