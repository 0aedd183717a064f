"""
Storage Services Package

Provides the persistence interface, the local JSON file backend, schema
upgrades for older blobs, and backup export/import.
"""

from wealthwise.services.storage.interface import (
    ImportFormatError,
    LedgerStorageInterface,
    StorageError,
)
from wealthwise.services.storage.schema import check_import_shape, upgrade_payload
from wealthwise.services.storage.json_file import (
    InMemoryStorage,
    JsonFileStorage,
    decode_financial_data,
)
from wealthwise.services.storage.backup import (
    backup_filename,
    export_backup,
    parse_backup,
)

__all__ = [
    # Interface
    "LedgerStorageInterface",
    # Exceptions
    "ImportFormatError",
    "StorageError",
    # Implementations
    "InMemoryStorage",
    "JsonFileStorage",
    # Schema and backups
    "backup_filename",
    "check_import_shape",
    "decode_financial_data",
    "export_backup",
    "parse_backup",
    "upgrade_payload",
]
