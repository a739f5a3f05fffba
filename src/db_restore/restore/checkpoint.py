"""Restore checkpoints: per-table progress persisted after every batch.

A restore is not transactional, so a crash leaves earlier tables restored
and later ones untouched.  The checkpoint records, per table, how far
insertion got so a rerun of the same backup against the same target
continues instead of inserting duplicates.

Checkpoints are JSON files under the state directory, one per target, and
are only honored when the backup fingerprint matches.
"""

import hashlib
import json
import logging
import os
import re
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from db_restore.restore.batch import BatchOutcome, BatchReport
from db_restore.restore.models import BackupDocument

logger = logging.getLogger(__name__)


def fingerprint_document(document: BackupDocument) -> str:
    """SHA-256 of the document's table data (metadata excluded)."""
    payload = json.dumps(document.data, sort_keys=True, default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TableProgress(BaseModel):
    """Insertion progress of one table."""

    next_offset: int = 0          # first record not yet sent
    attempted: int = 0
    inserted: int = 0
    batches: int = 0
    errors: list[str] = Field(default_factory=list)
    completed: bool = False

    def record(self, report: BatchReport) -> None:
        """Fold one batch report into the progress."""
        self.next_offset = report.next_offset
        self.attempted += report.size
        self.inserted += report.inserted
        self.batches += 1
        if report.error is not None:
            self.errors.append(report.error)

    def to_outcome(self) -> BatchOutcome:
        return BatchOutcome(
            attempted=self.attempted,
            inserted=self.inserted,
            batches=self.batches,
            errors=list(self.errors),
        )


class RestoreCheckpoint(BaseModel):
    """Progress of one restore run against one target."""

    target: str
    fingerprint: str
    plan: list[str] = Field(default_factory=list)
    clear_existing: bool = False
    cleared: bool = False
    tables: dict[str, TableProgress] = Field(default_factory=dict)
    started_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    def progress(self, table: str) -> TableProgress:
        """Get (creating if needed) the progress entry for a table."""
        if table not in self.tables:
            self.tables[table] = TableProgress()
        return self.tables[table]

    @property
    def has_progress(self) -> bool:
        """True once any batch was recorded or clearing finished."""
        return self.cleared or any(p.batches or p.completed for p in self.tables.values())


class CheckpointStore:
    """Reads and writes checkpoint files in a directory.

    Args:
        directory: Directory holding checkpoint files (created on save).
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def path_for(self, target: str) -> Path:
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", target) or "default"
        return self.directory / f"restore-{safe}.checkpoint.json"

    def load(self, target: str, fingerprint: str) -> RestoreCheckpoint | None:
        """Load the checkpoint for a target if it belongs to this backup.

        Returns:
            The checkpoint, or ``None`` when there is none, it is unreadable,
            or it was written for a different backup.
        """
        path = self.path_for(target)
        if not path.exists():
            return None
        try:
            checkpoint = RestoreCheckpoint.model_validate_json(path.read_text())
        except (OSError, ValidationError) as e:
            logger.warning("Ignoring unreadable checkpoint %s: %s", path, e)
            return None
        if checkpoint.fingerprint != fingerprint:
            logger.warning(
                "Ignoring checkpoint %s: it was written for a different backup", path
            )
            return None
        return checkpoint

    def save(self, checkpoint: RestoreCheckpoint) -> Path:
        """Atomically write a checkpoint (temp file + rename)."""
        checkpoint.updated_at = _now()
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(checkpoint.target)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        tmp_path.write_text(checkpoint.model_dump_json(indent=2))
        os.replace(tmp_path, path)
        return path

    def delete(self, target: str) -> None:
        """Remove the checkpoint for a target, if any."""
        path = self.path_for(target)
        if path.exists():
            path.unlink()
