"""Restore store protocol definition.

Defines the ``RestoreStore`` Protocol that every target store must
implement.  All methods are ``async def`` -- the engine awaits each call
before issuing the next one.

Usage:
    from db_restore.adapters.base import RestoreStore

    async def do_work(store: RestoreStore) -> None:
        await store.delete_all("products")
        written = await store.insert_many("products", [{"title": "Bike"}])
        total = await store.count("products")
        await store.close()
"""

from typing import Protocol


class RestoreStore(Protocol):
    """Target store interface consumed by the restore engine.

    The engine is agnostic to transport: PostgreSQL, Supabase, or any
    other backend that can delete all rows of a table, insert a list of
    rows in one call, and report errors per call by raising.
    """

    async def delete_all(self, table: str, pk: str = "id") -> None:
        """Delete every row from a table.

        Args:
            table: Table name.
            pk: Primary key column.  Stores whose delete API refuses an
                unfiltered delete use it to build an always-true filter.

        Raises:
            Exception: If the delete fails (the caller logs and continues).
        """
        ...

    async def insert_many(self, table: str, rows: list[dict]) -> int:
        """Insert rows in a single call and return how many were written.

        Args:
            table: Table name.
            rows: Row dicts.  Rows may have differing key sets.

        Returns:
            Number of rows the store reports as written.

        Raises:
            Exception: On constraint violation or any other store error.
        """
        ...

    async def count(self, table: str) -> int:
        """Return the number of rows currently in a table."""
        ...

    async def close(self) -> None:
        """Close connections and release resources."""
        ...
