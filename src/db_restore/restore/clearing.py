"""Best-effort clearing of target tables before a restore."""

import logging

from db_restore.adapters.base import RestoreStore
from db_restore.restore.catalog import TableCatalog

logger = logging.getLogger(__name__)


async def clear_tables(
    store: RestoreStore,
    catalog: TableCatalog,
    plan: list[str],
) -> tuple[list[str], dict[str, str]]:
    """Delete all rows from every planned table, children first.

    Walks ``plan`` in reverse so dependent rows go before the rows they
    reference.  A failed delete is logged and recorded, and clearing moves
    on to the next table.  Returns only after every table was attempted.

    Args:
        store: Target store.
        catalog: Table catalog (supplies each table's primary key).
        plan: Restore plan in forward order.

    Returns:
        Tuple of (tables cleared in order, ``{table: error message}`` for
        tables whose delete failed).
    """
    cleared: list[str] = []
    errors: dict[str, str] = {}

    for table in reversed(plan):
        table_def = catalog.get(table)
        pk = table_def.pk if table_def else "id"
        try:
            await store.delete_all(table, pk=pk)
        except Exception as e:
            logger.warning("Failed to clear table %s: %s", table, e)
            errors[table] = str(e) or type(e).__name__
            continue
        logger.info("Cleared table %s", table)
        cleared.append(table)

    return cleared, errors
