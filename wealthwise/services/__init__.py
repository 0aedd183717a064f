"""Services package."""

from wealthwise.services.storage import (
    ImportFormatError,
    InMemoryStorage,
    JsonFileStorage,
    LedgerStorageInterface,
    StorageError,
    export_backup,
    parse_backup,
)

__all__ = [
    "ImportFormatError",
    "InMemoryStorage",
    "JsonFileStorage",
    "LedgerStorageInterface",
    "StorageError",
    "export_backup",
    "parse_backup",
]
