"""Chunked, error-isolated inserts for one table.

Usage:
    from db_restore.restore.batch import insert_in_batches

    outcome = await insert_in_batches(store, "products", rows, batch_size=100)
    outcome.inserted, outcome.errors
"""

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field

from db_restore.adapters.base import RestoreStore

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100


@dataclass
class BatchReport:
    """Outcome of a single insert call.

    Attributes:
        index: Zero-based batch number within this call of ``insert_in_batches``.
        offset: Record offset of the batch's first row in the full table.
        size: Number of rows sent.
        inserted: Rows the store reported as written (0 on error).
        error: Error message when the call raised.
    """

    index: int
    offset: int
    size: int
    inserted: int = 0
    error: str | None = None

    @property
    def next_offset(self) -> int:
        """Offset of the first row after this batch."""
        return self.offset + self.size


@dataclass
class BatchOutcome:
    """Totals for all batches of one table."""

    attempted: int = 0
    inserted: int = 0
    batches: int = 0
    errors: list[str] = field(default_factory=list)


def chunk_records(records: list, batch_size: int) -> Iterator[tuple[int, list]]:
    """Yield ``(offset, chunk)`` pairs of at most ``batch_size`` records."""
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")
    for offset in range(0, len(records), batch_size):
        yield offset, records[offset:offset + batch_size]


async def insert_in_batches(
    store: RestoreStore,
    table: str,
    records: list[dict],
    batch_size: int = DEFAULT_BATCH_SIZE,
    start_offset: int = 0,
    on_batch: Callable[[BatchReport], None] | None = None,
) -> BatchOutcome:
    """Insert records in consecutive chunks, one awaited call at a time.

    The inserted count comes from the store, not from the chunk size.  A
    chunk that raises is recorded and the next chunk is still attempted,
    so a few bad rows cannot block the rest of a large table.

    Args:
        store: Target store.
        table: Table name.
        records: Sanitized records for the whole table.
        batch_size: Maximum rows per insert call.
        start_offset: Skip records before this offset (resume support).
        on_batch: Optional callback invoked after each batch.

    Returns:
        ``BatchOutcome`` covering the batches sent by this call.
    """
    outcome = BatchOutcome()
    pending = records[start_offset:]

    for index, (relative_offset, chunk) in enumerate(chunk_records(pending, batch_size)):
        report = BatchReport(
            index=index,
            offset=start_offset + relative_offset,
            size=len(chunk),
        )
        try:
            report.inserted = await store.insert_many(table, chunk)
        except Exception as e:
            report.error = str(e) or type(e).__name__
            logger.error(
                "Error restoring batch %d of %s (rows %d-%d): %s",
                index + 1,
                table,
                report.offset,
                report.next_offset - 1,
                report.error,
            )
            outcome.errors.append(report.error)

        outcome.batches += 1
        outcome.attempted += report.size
        outcome.inserted += report.inserted

        if on_batch is not None:
            on_batch(report)

    return outcome
