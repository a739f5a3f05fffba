"""Async Supabase restore store.

Provides ``AsyncSupabaseAdapter``, an async implementation of the
``RestoreStore`` protocol using the supabase-py async client.  Use a
service role key so row level security does not hide or reject rows.

The client is initialized lazily on first use with an ``asyncio.Lock``
to ensure it is created exactly once.

Usage:
    from db_restore.adapters.supabase import AsyncSupabaseAdapter

    adapter = AsyncSupabaseAdapter(
        url="https://xyzproject.supabase.co",
        key="eyJ...",
    )

    written = await adapter.insert_many("products", rows)
    await adapter.close()
"""

import asyncio

from supabase import AsyncClient, acreate_client


class AsyncSupabaseAdapter:
    """Async Supabase implementation of the ``RestoreStore`` protocol.

    Args:
        url: Supabase project URL.
        key: Supabase service role key.
    """

    def __init__(self, url: str, key: str) -> None:
        self._url: str = url
        self._key: str = key
        self._client: AsyncClient | None = None
        self._lock: asyncio.Lock = asyncio.Lock()

    async def _get_client(self) -> AsyncClient:
        """Get or create the async Supabase client.

        Returns:
            Initialized ``AsyncClient``.
        """
        if self._client is None:
            async with self._lock:
                # Double-check after acquiring lock
                if self._client is None:
                    self._client = await acreate_client(self._url, self._key)
        return self._client

    # ------------------------------------------------------------------
    # Store Methods
    # ------------------------------------------------------------------

    async def delete_all(self, table: str, pk: str = "id") -> None:
        """Delete every row.

        PostgREST refuses an unfiltered DELETE, so the key is filtered with
        ``NOT IS NULL``, which matches every row whatever the key type.
        """
        client = await self._get_client()
        await client.table(table).delete().not_.is_(pk, "null").execute()

    async def insert_many(self, table: str, rows: list[dict]) -> int:
        """Bulk insert rows and return the number of rows PostgREST returned.

        Filters out metadata fields (starting with ``_``) before insertion.
        Errors surface as ``postgrest.exceptions.APIError``.
        """
        if not rows:
            return 0
        client = await self._get_client()
        clean_rows = [
            {k: v for k, v in row.items() if not k.startswith("_")} for row in rows
        ]
        result = await client.table(table).insert(clean_rows).execute()
        return len(result.data or [])

    async def count(self, table: str) -> int:
        """Return the exact row count via a ``HEAD`` request."""
        client = await self._get_client()
        result = await (
            client.table(table).select("*", count="exact", head=True).execute()
        )
        return result.count or 0

    async def close(self) -> None:
        """Close the Supabase async client.

        If the client was never initialized, this is a no-op.
        """
        if self._client is not None:
            await self._client.aclose()
            self._client = None
