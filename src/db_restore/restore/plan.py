"""Restore plan: which tables to process, and in what order."""

import logging

from db_restore.restore.catalog import TableCatalog
from db_restore.restore.models import BackupDocument

logger = logging.getLogger(__name__)


def build_restore_plan(
    catalog: TableCatalog,
    document: BackupDocument,
    requested: list[str] | None = None,
) -> list[str]:
    """Compute the table processing order for one restore.

    The plan is the catalog's master order filtered to tables present in
    the document and, when given, in ``requested``.  The caller's ordering
    of ``requested`` never affects the result.

    Unknown names, and requested tables the document does not contain, are
    dropped without error so a snapshot from an older or newer schema
    still restores what it can.

    Args:
        catalog: Table catalog providing the master dependency order.
        document: Backup document whose ``data`` keys define availability.
        requested: Optional subset of table names or aliases.

    Returns:
        Canonical table names, parents before children.

    Example:
        >>> build_restore_plan(MARKETPLACE_CATALOG, doc, ["products", "categories"])
        ['categories', 'products']
    """
    available = document.table_keys(catalog)

    for key in document.data:
        if catalog.resolve(key) is None:
            logger.debug("Ignoring unknown table '%s' in backup", key)

    if requested is None:
        wanted = set(available)
    else:
        wanted = set()
        for name in requested:
            canonical = catalog.resolve(name)
            if canonical is None:
                logger.debug("Ignoring unknown requested table '%s'", name)
            elif canonical not in available:
                logger.debug("Requested table '%s' is not in the backup", name)
            else:
                wanted.add(canonical)

    return [name for name in catalog.master_order() if name in wanted]
