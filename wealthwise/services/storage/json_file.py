"""
Local JSON File Storage

DESIGN DECISION: The whole FinancialData aggregate lives in one JSON
file named after the storage key. This is the single-device equivalent
of a browser's local storage entry:
1. Human readable and easy to back up
2. No database setup required
3. Whole-object, last-write-wins

CRITICAL: save() writes a temporary sibling file and renames it over
the old one. A crash mid-write leaves the previous snapshot intact.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError as PydanticValidationError

from wealthwise.activity import ActivityLogger
from wealthwise.config import AppSettings
from wealthwise.models.activity import ActivityEventBuilder
from wealthwise.models.ledger import FinancialData
from wealthwise.services.storage.interface import LedgerStorageInterface, StorageError
from wealthwise.services.storage.schema import upgrade_payload


def decode_financial_data(text: str) -> FinancialData:
    """
    Decode a stored blob of any known schema version.
    
    Raises:
        ValueError: If the text is not a JSON object (json.JSONDecodeError
            is a ValueError)
        pydantic.ValidationError: If the upgraded payload does not fit
            the models
    """
    payload = json.loads(text)
    if not isinstance(payload, dict):
        raise ValueError("Stored data must be a JSON object")
    return FinancialData.model_validate(upgrade_payload(payload))


class JsonFileStorage(LedgerStorageInterface):
    """FinancialData persisted as <data_dir>/<storage_key>.json."""
    
    def __init__(
        self,
        path: Union[str, Path],
        activity_logger: Optional[ActivityLogger] = None,
    ):
        self._path = Path(path)
        self._activity = activity_logger or ActivityLogger()
    
    @classmethod
    def from_settings(
        cls,
        settings: AppSettings,
        activity_logger: Optional[ActivityLogger] = None,
    ) -> "JsonFileStorage":
        return cls(settings.storage_path, activity_logger)
    
    @property
    def path(self) -> Path:
        return self._path
    
    def load(self) -> FinancialData:
        if not self._path.exists():
            self._activity.log(ActivityEventBuilder.data_load_fallback(
                str(self._path),
                "no stored data",
            ))
            return FinancialData()
        
        try:
            data = decode_financial_data(self._path.read_text(encoding="utf-8"))
        except (OSError, TypeError, ValueError, PydanticValidationError) as e:
            self._activity.log(ActivityEventBuilder.data_load_fallback(
                str(self._path),
                str(e),
            ))
            return FinancialData()
        
        self._activity.log(ActivityEventBuilder.data_loaded(
            str(self._path),
            len(data.transactions),
            len(data.accounts.assets) + len(data.accounts.liabilities),
        ))
        return data
    
    def save(self, data: FinancialData) -> None:
        text = data.to_json(indent=2)
        temp_name = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._path.parent,
                prefix=f".{self._path.stem}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                temp_name = handle.name
                handle.write(text)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_name, self._path)
        except OSError as e:
            if temp_name and os.path.exists(temp_name):
                os.unlink(temp_name)
            raise StorageError(f"Failed to save data to {self._path}: {e}") from e
        
        self._activity.log(ActivityEventBuilder.data_saved(str(self._path)))


class InMemoryStorage(LedgerStorageInterface):
    """
    Keeps the serialized blob in memory.
    
    Data still goes through JSON on every save/load so tests exercise
    the same encoding as the file backend.
    """
    
    def __init__(self, initial: Optional[str] = None):
        self._blob = initial
        self.save_count = 0
    
    @property
    def blob(self) -> Optional[str]:
        return self._blob
    
    def load(self) -> FinancialData:
        if self._blob is None:
            return FinancialData()
        try:
            return decode_financial_data(self._blob)
        except (TypeError, ValueError, PydanticValidationError):
            return FinancialData()
    
    def save(self, data: FinancialData) -> None:
        self._blob = data.to_json()
        self.save_count += 1
