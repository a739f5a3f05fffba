"""Restore store adapters package.

Provides the ``RestoreStore`` Protocol and concrete async adapter
implementations for PostgreSQL and (optionally) Supabase.

``AsyncSupabaseAdapter`` is only available when the ``supabase`` extra
is installed.  A missing ``supabase`` dependency does not prevent
importing the rest of the package.

Usage:
    from db_restore.adapters import RestoreStore, AsyncPostgresAdapter

    # With supabase extra installed:
    from db_restore.adapters import AsyncSupabaseAdapter
"""

from db_restore.adapters.base import RestoreStore
from db_restore.adapters.postgres import AsyncPostgresAdapter

__all__ = [
    "RestoreStore",
    "AsyncPostgresAdapter",
]

try:
    from db_restore.adapters.supabase import AsyncSupabaseAdapter

    __all__.append("AsyncSupabaseAdapter")
except ImportError:
    # supabase extra not installed -- AsyncSupabaseAdapter unavailable
    pass
