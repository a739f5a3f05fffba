"""Input models for a restore run: the backup document and its options.

Usage:
    from db_restore.restore.models import BackupDocument, RestoreOptions

    document = BackupDocument.from_payload(payload["backupData"])
    options = RestoreOptions(clear_existing=True, restore_tables=["products"])
"""

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from db_restore.exceptions import BackupValidationError
from db_restore.restore.catalog import TableCatalog


class BackupDocument(BaseModel):
    """Snapshot of several tables: opaque metadata plus rows per table.

    ``data`` keys are kept exactly as the producer wrote them; aliases are
    resolved against a catalog by ``table_keys``.
    """

    metadata: Any = None
    data: dict[str, Any]

    @classmethod
    def from_payload(cls, payload: Any) -> "BackupDocument":
        """Build a document from decoded JSON.

        Raises:
            BackupValidationError: If the payload is not an object or has no
                ``data`` object.
        """
        if not isinstance(payload, Mapping):
            raise BackupValidationError("Invalid backup data: expected a JSON object")
        data = payload.get("data")
        if not isinstance(data, Mapping):
            raise BackupValidationError("Invalid backup data: missing 'data' object")
        return cls(metadata=payload.get("metadata"), data=dict(data))

    @classmethod
    def from_file(cls, path: str | Path) -> "BackupDocument":
        """Load a document from a JSON file.

        Raises:
            BackupValidationError: If the file is missing, is not valid JSON,
                or is not a backup document.
        """
        try:
            with open(path, "r") as f:
                payload = json.load(f)
        except FileNotFoundError as e:
            raise BackupValidationError(f"Backup file not found: {path}") from e
        except json.JSONDecodeError as e:
            raise BackupValidationError(f"Invalid JSON in {path}: {e}") from e
        return cls.from_payload(payload)

    def table_keys(self, catalog: TableCatalog) -> dict[str, str]:
        """Map canonical table names to the document key holding their rows.

        A canonical key wins over an alias when both are present.  Keys the
        catalog does not know are left out.
        """
        keys: dict[str, str] = {}
        for key in self.data:
            canonical = catalog.resolve(key)
            if canonical is None:
                continue
            if canonical not in keys or key == canonical:
                keys[canonical] = key
        return keys

    def records(self, key: str) -> list:
        """Rows stored under a document key; a non-list value counts as empty."""
        rows = self.data.get(key)
        return rows if isinstance(rows, list) else []


class RestoreOptions(BaseModel):
    """Caller options for one restore run.

    Accepts both snake_case and the camelCase names of the JSON request.
    """

    model_config = ConfigDict(populate_by_name=True)

    clear_existing: bool = Field(default=False, alias="clearExisting")
    restore_tables: list[str] | None = Field(default=None, alias="restoreTables")
    resume: bool = False


class RestoreRequest(BaseModel):
    """JSON request body of the restore entry point."""

    model_config = ConfigDict(populate_by_name=True)

    backup_data: Any = Field(default=None, alias="backupData")
    options: RestoreOptions = Field(default_factory=RestoreOptions)
