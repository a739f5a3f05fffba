"""db-restore: dependency-ordered backup restore for a Supabase-backed marketplace.

Replays a backup document into PostgreSQL (or Supabase) table by table in
foreign-key order, with optional clearing, per-table identity policies,
batched inserts, per-table results, checkpoints and a restore lock.

Usage:
    from db_restore import BackupDocument, RestoreOptions, restore_backup
    from db_restore import RestoreLock, get_adapter
    from db_restore import AdminPolicy, Principal, handle_restore_request
"""

__version__ = "0.1.0"

# Adapters
from db_restore.adapters.base import RestoreStore
from db_restore.adapters.postgres import AsyncPostgresAdapter

# Auth
from db_restore.auth import AdminPolicy, AuthorizationPolicy, Principal

# Config
from db_restore.config.loader import get_settings, load_db_config
from db_restore.config.models import DatabaseConfig, DatabaseProfile, RestoreSettings

# Exceptions
from db_restore.exceptions import (
    AuthorizationError,
    BackupValidationError,
    CatalogError,
    DbRestoreError,
    ProfileNotFoundError,
    RestoreInProgressError,
)

# Factory
from db_restore.factory import get_adapter, resolve_profile, resolve_url

# Restore engine
from db_restore.restore import (
    MARKETPLACE_CATALOG,
    BackupDocument,
    CheckpointStore,
    IdPolicy,
    RestoreLock,
    RestoreOptions,
    RestoreSummary,
    TableCatalog,
    TableDef,
    TableName,
    TableRestoreResult,
    TableState,
    build_restore_plan,
    handle_restore_request,
    restore_backup,
    validate_backup,
)

__all__ = [
    # Adapters
    "RestoreStore",
    "AsyncPostgresAdapter",
    # Auth
    "AdminPolicy",
    "AuthorizationPolicy",
    "Principal",
    # Config
    "get_settings",
    "load_db_config",
    "DatabaseConfig",
    "DatabaseProfile",
    "RestoreSettings",
    # Exceptions
    "DbRestoreError",
    "AuthorizationError",
    "BackupValidationError",
    "CatalogError",
    "ProfileNotFoundError",
    "RestoreInProgressError",
    # Factory
    "get_adapter",
    "resolve_profile",
    "resolve_url",
    # Restore engine
    "MARKETPLACE_CATALOG",
    "BackupDocument",
    "CheckpointStore",
    "IdPolicy",
    "RestoreLock",
    "RestoreOptions",
    "RestoreSummary",
    "TableCatalog",
    "TableDef",
    "TableName",
    "TableRestoreResult",
    "TableState",
    "build_restore_plan",
    "handle_restore_request",
    "restore_backup",
    "validate_backup",
]

# Optional: AsyncSupabaseAdapter (only available with supabase extra)
try:
    from db_restore.adapters.supabase import AsyncSupabaseAdapter

    __all__.append("AsyncSupabaseAdapter")
except ImportError:
    # supabase extra not installed -- AsyncSupabaseAdapter unavailable
    pass
