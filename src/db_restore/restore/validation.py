"""Offline checks of a backup document against a table catalog.

Nothing here talks to a store.  ``restore_backup`` does not require a
clean report: unknown tables are skipped and bad rows are left for the
store to reject.  The report is for operators previewing a file.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field

from db_restore.exceptions import BackupValidationError
from db_restore.restore.catalog import IdPolicy, TableCatalog
from db_restore.restore.models import BackupDocument


class ValidationReport(BaseModel):
    """Result of ``validate_backup``.

    Attributes:
        valid: True when there are no errors.
        errors: Problems that make rows unrestorable.
        warnings: Problems that will be silently tolerated.
        table_counts: Record count per recognized table (canonical names).
        unknown_tables: Document keys the catalog does not know.
    """

    valid: bool = True
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    table_counts: dict[str, int] = Field(default_factory=dict)
    unknown_tables: list[str] = Field(default_factory=list)


def validate_backup(payload: Any, catalog: TableCatalog) -> ValidationReport:
    """Validate a decoded backup document.

    Checks that ``data`` is an object, that each recognized table holds a
    list of objects, and that ``PRESERVE`` tables carry their primary key.

    Args:
        payload: Decoded JSON (``{"metadata": ..., "data": {...}}``).
        catalog: Table catalog to validate against.

    Returns:
        ``ValidationReport``.
    """
    report = ValidationReport()

    try:
        document = BackupDocument.from_payload(payload)
    except BackupValidationError as e:
        report.errors.append(str(e))
        report.valid = False
        return report

    if document.metadata is None:
        report.warnings.append("Missing metadata section")

    table_keys = document.table_keys(catalog)
    report.unknown_tables = [k for k in document.data if catalog.resolve(k) is None]
    for key in report.unknown_tables:
        report.warnings.append(f"Unknown table '{key}' will be ignored")

    for key in document.data:
        canonical = catalog.resolve(key)
        if canonical is not None and table_keys[canonical] != key:
            report.warnings.append(
                f"'{key}' ignored: '{table_keys[canonical]}' also holds {canonical}"
            )

    for table in catalog.master_order():
        if table not in table_keys:
            continue
        key = table_keys[table]
        table_def = catalog.get(table)
        raw = document.data[key]

        if not isinstance(raw, list):
            report.warnings.append(
                f"{key}: expected a list, got {type(raw).__name__} (treated as empty)"
            )
            report.table_counts[table] = 0
            continue

        report.table_counts[table] = len(raw)
        for index, row in enumerate(raw):
            if not isinstance(row, Mapping):
                report.errors.append(f"{key} row #{index} is not an object")
            elif table_def.id_policy is IdPolicy.PRESERVE and row.get(table_def.pk) in (
                None,
                "",
            ):
                report.warnings.append(
                    f"{key} row #{index} has no '{table_def.pk}'; "
                    f"the store will assign one"
                )

    report.valid = not report.errors
    return report
