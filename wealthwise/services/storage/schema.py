"""
Persisted Blob Schema Upgrades

DESIGN DECISION: All backward compatibility lives here, at the
persistence boundary, and nowhere else. Older blobs are rewritten to
the current camelCase shape before pydantic ever sees them, so the
models never need null checks for missing collections.

Version 1 (no schemaVersion key) used:
- top-level "assets" / "liabilities" lists instead of "accounts"
- "value" for an account balance and "type" for its category
- "sourceType" / "destinationType" for endpoint kinds
- "recurringTransactions" for the rule catalog
- no "customCategories" or "recurringTransactions" at all in the oldest blobs
"""

from typing import Any

from wealthwise.models.ledger import SCHEMA_VERSION, AccountKind
from wealthwise.services.storage.interface import ImportFormatError


_ENDPOINT_RENAMES = {
    "sourceType": "sourceKind",
    "destinationType": "destinationKind",
}


def _rename(item: dict, old: str, new: str) -> None:
    if old in item and new not in item:
        item[new] = item.pop(old)


def _upgrade_entry(entry: dict) -> dict:
    entry = dict(entry)
    for old, new in _ENDPOINT_RENAMES.items():
        _rename(entry, old, new)
    return entry


def _upgrade_account(account: dict, kind: AccountKind) -> dict:
    account = dict(account)
    _rename(account, "value", "balance")
    if "category" not in account and isinstance(account.get("type"), str):
        account["category"] = account.pop("type")
    account.setdefault("kind", kind.value)
    return account


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def upgrade_payload(payload: dict) -> dict:
    """
    Rewrite a decoded blob of any known version to the current shape.
    
    The input is not modified.
    """
    upgraded = dict(payload)
    
    accounts = upgraded.get("accounts")
    if not isinstance(accounts, dict):
        accounts = {
            "assets": upgraded.pop("assets", []),
            "liabilities": upgraded.pop("liabilities", []),
        }
    upgraded["accounts"] = {
        "assets": [
            _upgrade_account(a, AccountKind.ASSET) for a in _as_list(accounts.get("assets"))
        ],
        "liabilities": [
            _upgrade_account(a, AccountKind.LIABILITY) for a in _as_list(accounts.get("liabilities"))
        ],
    }
    
    _rename(upgraded, "recurringTransactions", "recurringRules")
    upgraded["transactions"] = [_upgrade_entry(t) for t in _as_list(upgraded.get("transactions"))]
    upgraded["recurringRules"] = [_upgrade_entry(r) for r in _as_list(upgraded.get("recurringRules"))]
    upgraded["customCategories"] = _as_list(upgraded.get("customCategories"))
    upgraded["schemaVersion"] = SCHEMA_VERSION
    return upgraded


def check_import_shape(payload: Any) -> None:
    """
    Minimal structural check for a user-supplied backup.
    
    Raises:
        ImportFormatError: If transactions or accounts are not lists, or
            any list holds something other than objects
    """
    if not isinstance(payload, dict):
        raise ImportFormatError("Backup must be a JSON object")
    
    if not isinstance(payload.get("transactions"), list):
        raise ImportFormatError("Backup has no transaction list")
    
    accounts = payload.get("accounts")
    if isinstance(accounts, dict):
        groups = (accounts.get("assets"), accounts.get("liabilities"))
    else:
        groups = (payload.get("assets"), payload.get("liabilities"))
    if not all(isinstance(group, list) for group in groups):
        raise ImportFormatError("Backup has no asset and liability lists")
    
    entries = {
        "transactions": payload["transactions"],
        "assets": groups[0],
        "liabilities": groups[1],
        "recurringRules": payload.get("recurringRules", payload.get("recurringTransactions")),
        "customCategories": payload.get("customCategories"),
    }
    for name, items in entries.items():
        if isinstance(items, list) and not all(isinstance(item, dict) for item in items):
            raise ImportFormatError(f"Backup {name} must be a list of objects")
