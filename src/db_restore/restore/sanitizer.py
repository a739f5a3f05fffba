"""Apply a table's identity policy to records before insertion."""

from collections.abc import Mapping

from db_restore.restore.catalog import IdPolicy, TableDef


def sanitize_records(table_def: TableDef, records: list) -> list:
    """Return the records to send for a table.

    ``REGENERATE`` returns shallow copies without the primary key field so
    the store assigns a fresh identity.  ``PRESERVE`` returns the records
    untouched.  The input list and its records are never mutated.

    A record that is not a mapping is passed through as is; the store
    rejects it and only the batch holding it fails.
    """
    if table_def.id_policy is IdPolicy.PRESERVE:
        return list(records)

    return [
        {k: v for k, v in record.items() if k != table_def.pk}
        if isinstance(record, Mapping)
        else record
        for record in records
    ]
