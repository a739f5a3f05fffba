"""Backup restore engine with a declarative table catalog.

Replays a backup document into a store in dependency order, with
optional clearing, per-table identity policies, batched inserts and
per-table results.

Usage:
    from db_restore.restore import BackupDocument, RestoreOptions, restore_backup
    from db_restore.restore import RestoreLock, handle_restore_request
"""

from db_restore.restore.batch import DEFAULT_BATCH_SIZE, insert_in_batches
from db_restore.restore.catalog import (
    MARKETPLACE_CATALOG,
    IdPolicy,
    TableCatalog,
    TableDef,
    TableName,
)
from db_restore.restore.checkpoint import CheckpointStore, RestoreCheckpoint
from db_restore.restore.clearing import clear_tables
from db_restore.restore.lock import RestoreLock
from db_restore.restore.models import BackupDocument, RestoreOptions, RestoreRequest
from db_restore.restore.orchestrator import restore_backup
from db_restore.restore.plan import build_restore_plan
from db_restore.restore.results import RestoreSummary, TableRestoreResult, TableState
from db_restore.restore.sanitizer import sanitize_records
from db_restore.restore.service import handle_restore_request
from db_restore.restore.validation import ValidationReport, validate_backup

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "MARKETPLACE_CATALOG",
    "BackupDocument",
    "CheckpointStore",
    "IdPolicy",
    "RestoreCheckpoint",
    "RestoreLock",
    "RestoreOptions",
    "RestoreRequest",
    "RestoreSummary",
    "TableCatalog",
    "TableDef",
    "TableName",
    "TableRestoreResult",
    "TableState",
    "ValidationReport",
    "build_restore_plan",
    "clear_tables",
    "handle_restore_request",
    "insert_in_batches",
    "restore_backup",
    "sanitize_records",
    "validate_backup",
]
