"""Per-table results and the run summary.

``TableRestoreResult.from_outcome`` classifies a table; ``RestoreSummary``
aggregates them and renders the JSON response body.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from db_restore.restore.batch import BatchOutcome


class TableState(str, Enum):
    """Lifecycle of a table within one restore run."""

    PENDING = "pending"
    RESTORING = "restoring"
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class TableRestoreResult(BaseModel):
    """Outcome of restoring one table."""

    table: str
    attempted: int = 0
    inserted: int = 0
    success: bool = True
    error: str | None = None
    state: TableState = TableState.PENDING
    batches: int = 0
    batch_errors: list[str] = Field(default_factory=list)

    @classmethod
    def from_outcome(cls, table: str, outcome: BatchOutcome) -> "TableRestoreResult":
        """Classify a table from its batch outcome.

        - ``FAILED``: nothing inserted and at least one batch errored.
        - ``PARTIAL``: something inserted and at least one batch errored;
          reported as a success with an annotation.
        - ``SUCCESS``: no batch errored.
        """
        result = cls(
            table=table,
            attempted=outcome.attempted,
            inserted=outcome.inserted,
            batches=outcome.batches,
            batch_errors=list(outcome.errors),
        )
        error_count = len(outcome.errors)

        if error_count and outcome.inserted == 0:
            result.state = TableState.FAILED
            result.success = False
            result.error = outcome.errors[0] or "Insert failed"
        elif error_count:
            result.state = TableState.PARTIAL
            noun = "batch error" if error_count == 1 else "batch errors"
            result.error = f"{error_count} {noun} (partial restore)"
        else:
            result.state = TableState.SUCCESS
        return result

    @classmethod
    def failed(cls, table: str, error: str, attempted: int = 0) -> "TableRestoreResult":
        """Result for a table that could not be processed at all."""
        return cls(
            table=table,
            attempted=attempted,
            success=False,
            error=error or "Unknown error",
            state=TableState.FAILED,
        )

    def to_response(self) -> dict[str, Any]:
        """Render as ``{"success", "count", "error"?}``."""
        body: dict[str, Any] = {"success": self.success, "count": self.inserted}
        if self.error is not None:
            body["error"] = self.error
        return body


class RestoreSummary(BaseModel):
    """Summary of one restore run.

    Attributes:
        plan: Tables processed, in order.
        per_table: Result per planned table, in plan order.
        cleared_tables: Tables successfully cleared (reverse plan order).
        clearing_errors: Delete-all failures by table (advisory only).
        resumed: True if the run continued from a checkpoint.
        metadata: Backup metadata echoed back to the caller.
    """

    plan: list[str] = Field(default_factory=list)
    per_table: dict[str, TableRestoreResult] = Field(default_factory=dict)
    cleared_tables: list[str] = Field(default_factory=list)
    clearing_errors: dict[str, str] = Field(default_factory=dict)
    resumed: bool = False
    metadata: Any = None

    @property
    def total_inserted(self) -> int:
        """Rows inserted across all tables."""
        return sum(r.inserted for r in self.per_table.values())

    @property
    def failed_tables(self) -> list[str]:
        """Tables in ``FAILED`` state, in plan order."""
        return [name for name, r in self.per_table.items() if not r.success]

    @property
    def overall_success(self) -> bool:
        """True iff no table failed."""
        return not self.failed_tables

    @property
    def message(self) -> str:
        return (
            f"Restored {self.total_inserted} records across "
            f"{len(self.per_table)} tables"
        )

    def to_response(self) -> dict[str, Any]:
        """Render the JSON response body of the restore entry point."""
        body: dict[str, Any] = {
            "success": self.overall_success,
            "message": self.message,
            "results": {name: r.to_response() for name, r in self.per_table.items()},
        }
        if self.failed_tables:
            body["failedTables"] = self.failed_tables
        body["backupMetadata"] = self.metadata
        return body
