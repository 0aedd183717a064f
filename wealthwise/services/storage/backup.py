"""
Backup export and import.

Exports are the full aggregate, pretty printed, in a file named after
the day it was taken. Imports are checked for a minimal shape first and
then decoded exactly like the stored blob, so a backup taken by any
earlier version can be restored.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Union

from pydantic import ValidationError as PydanticValidationError

from wealthwise.models.ledger import FinancialData
from wealthwise.services.storage.interface import ImportFormatError, StorageError
from wealthwise.services.storage.schema import check_import_shape, upgrade_payload


BACKUP_FILENAME_FORMAT = "WealthWise_Backup_{:%Y%m%d}.json"


def backup_filename(now: datetime) -> str:
    return BACKUP_FILENAME_FORMAT.format(now)


def export_backup(
    data: FinancialData,
    directory: Union[str, Path],
    now: datetime,
) -> Path:
    """
    Write the full aggregate to <directory>/WealthWise_Backup_YYYYMMDD.json.
    
    A second export on the same day overwrites the first.
    
    Raises:
        StorageError: If the file cannot be written
    """
    path = Path(directory) / backup_filename(now)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(data.to_json(indent=2), encoding="utf-8")
    except OSError as e:
        raise StorageError(f"Failed to write backup {path}: {e}") from e
    return path


def parse_backup(text: str) -> FinancialData:
    """
    Decode a user-supplied backup.
    
    Raises:
        ImportFormatError: If the text is not JSON, lacks the transaction
            and account lists, or does not fit the models
    """
    try:
        payload = json.loads(text)
    except ValueError as e:
        raise ImportFormatError(f"Backup is not valid JSON: {e}") from e
    
    check_import_shape(payload)
    
    try:
        return FinancialData.model_validate(upgrade_payload(payload))
    except (TypeError, ValueError, PydanticValidationError) as e:
        raise ImportFormatError(f"Backup contents are invalid: {e}") from e
