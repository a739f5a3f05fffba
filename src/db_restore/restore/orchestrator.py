"""Restore orchestration: plan, clear, sanitize, insert, aggregate.

Tables are processed strictly one after another in plan order, and each
batch is awaited before the next, because a child row must never reach
the store before the parent rows it references.  Nothing here is
transactional across tables: a crash leaves earlier tables restored.
Pass a ``CheckpointStore`` to make reruns resumable.

Usage:
    from db_restore.restore.orchestrator import restore_backup

    async with RestoreLock("staging", state_dir):
        summary = await restore_backup(
            store,
            BackupDocument.from_file("backup-2026-01-15.json"),
            RestoreOptions(clear_existing=True),
        )
    summary.to_response()
"""

import logging
from collections.abc import Callable

from db_restore.adapters.base import RestoreStore
from db_restore.restore.batch import DEFAULT_BATCH_SIZE, BatchReport, insert_in_batches
from db_restore.restore.catalog import MARKETPLACE_CATALOG, TableCatalog
from db_restore.restore.checkpoint import (
    CheckpointStore,
    RestoreCheckpoint,
    TableProgress,
    fingerprint_document,
)
from db_restore.restore.clearing import clear_tables
from db_restore.restore.models import BackupDocument, RestoreOptions
from db_restore.restore.plan import build_restore_plan
from db_restore.restore.results import RestoreSummary, TableRestoreResult, TableState
from db_restore.restore.sanitizer import sanitize_records

logger = logging.getLogger(__name__)

StateCallback = Callable[[str, TableState, TableRestoreResult | None], None]


async def restore_backup(
    store: RestoreStore,
    document: BackupDocument,
    options: RestoreOptions | None = None,
    catalog: TableCatalog = MARKETPLACE_CATALOG,
    batch_size: int = DEFAULT_BATCH_SIZE,
    checkpoints: CheckpointStore | None = None,
    target: str = "default",
    on_state: StateCallback | None = None,
) -> RestoreSummary:
    """Replay a backup document into a store.

    The caller must hold a ``RestoreLock`` for ``target`` around this call;
    the engine itself performs no mutual exclusion and no authorization.

    Args:
        store: Target store.
        document: Parsed backup document.
        options: Clearing, table subset, and resume options.
        catalog: Table catalog (dependency order and identity policies).
        batch_size: Maximum rows per insert call.
        checkpoints: Optional checkpoint store for resumable runs.
        target: Target environment key used for checkpoints.
        on_state: Optional callback ``(table, state, result)`` invoked on
            every table state transition.  ``result`` is set for final states.

    Returns:
        ``RestoreSummary`` with one result per planned table.

    Example:
        summary = await restore_backup(store, document, RestoreOptions())
        if not summary.overall_success:
            notify_operators(summary.failed_tables)
    """
    options = options or RestoreOptions()
    plan = build_restore_plan(catalog, document, options.restore_tables)
    table_keys = document.table_keys(catalog)

    summary = RestoreSummary(plan=plan, metadata=document.metadata)

    def notify(table: str, state: TableState, result: TableRestoreResult | None = None) -> None:
        if on_state is not None:
            on_state(table, state, result)

    checkpoint = _open_checkpoint(checkpoints, document, options, plan, target)
    if checkpoint is not None and options.resume and checkpoint.has_progress:
        summary.resumed = True
        logger.info("Resuming restore into %s from checkpoint", target)

    logger.info("Restore plan: %s", ", ".join(plan) if plan else "(empty)")
    for table in plan:
        notify(table, TableState.PENDING)

    # Clearing completes for every table before any insert begins
    if options.clear_existing:
        if summary.resumed:
            logger.info("Skipping clearing: resumed run already made progress")
        else:
            cleared, clearing_errors = await clear_tables(store, catalog, plan)
            summary.cleared_tables = cleared
            summary.clearing_errors = clearing_errors
            if checkpoint is not None:
                checkpoint.cleared = True
                checkpoints.save(checkpoint)

    for table in plan:
        notify(table, TableState.RESTORING)
        progress = checkpoint.progress(table) if checkpoint is not None else None

        if progress is not None and progress.completed:
            result = TableRestoreResult.from_outcome(table, progress.to_outcome())
            logger.info("Skipping %s: completed in a previous run", table)
        else:
            result = await _restore_table(
                store,
                catalog,
                document,
                table,
                table_keys[table],
                batch_size,
                progress,
                checkpoint,
                checkpoints,
            )

        summary.per_table[table] = result
        notify(table, result.state, result)

    if checkpoints is not None:
        checkpoints.delete(target)

    if summary.overall_success:
        logger.info(summary.message)
    else:
        logger.error(
            "%s; failed tables: %s", summary.message, ", ".join(summary.failed_tables)
        )
    return summary


def _open_checkpoint(
    checkpoints: CheckpointStore | None,
    document: BackupDocument,
    options: RestoreOptions,
    plan: list[str],
    target: str,
) -> RestoreCheckpoint | None:
    """Load a matching checkpoint when resuming, else start a fresh one."""
    if checkpoints is None:
        return None

    fingerprint = fingerprint_document(document)
    if options.resume:
        existing = checkpoints.load(target, fingerprint)
        if existing is not None:
            return existing

    checkpoint = RestoreCheckpoint(
        target=target,
        fingerprint=fingerprint,
        plan=plan,
        clear_existing=options.clear_existing,
    )
    checkpoints.save(checkpoint)
    return checkpoint


async def _restore_table(
    store: RestoreStore,
    catalog: TableCatalog,
    document: BackupDocument,
    table: str,
    key: str,
    batch_size: int,
    progress: TableProgress | None,
    checkpoint: RestoreCheckpoint | None,
    checkpoints: CheckpointStore | None,
) -> TableRestoreResult:
    """Sanitize and insert one table; never raises."""
    records = document.records(key)
    try:
        sanitized = sanitize_records(catalog.get(table), records)

        def on_batch(report: BatchReport) -> None:
            if progress is not None:
                progress.record(report)
                checkpoints.save(checkpoint)

        start_offset = progress.next_offset if progress is not None else 0
        if start_offset:
            logger.info("Resuming %s at record %d", table, start_offset)

        outcome = await insert_in_batches(
            store,
            table,
            sanitized,
            batch_size=batch_size,
            start_offset=start_offset,
            on_batch=on_batch,
        )
        # Progress already folds in batches from earlier runs
        if progress is not None:
            outcome = progress.to_outcome()
        result = TableRestoreResult.from_outcome(table, outcome)
    except Exception as e:
        logger.exception("Error restoring table %s", table)
        result = TableRestoreResult.failed(
            table, str(e) or type(e).__name__, attempted=len(records)
        )
        if progress is not None and progress.inserted == 0:
            progress.errors.append(result.error)

    if progress is not None:
        progress.completed = True
        checkpoints.save(checkpoint)

    logger.info(
        "Restored %s: %d/%d rows (%s)",
        table,
        result.inserted,
        result.attempted,
        result.state.value,
    )
    return result
