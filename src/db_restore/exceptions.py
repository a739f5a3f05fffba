"""Exception hierarchy for db-restore.

Only failures that abort a whole operation are raised.  Per-batch insert
errors, per-table failures, and clearing errors are recorded in the
``RestoreSummary`` instead.
"""


class DbRestoreError(Exception):
    """Base exception for all db-restore errors."""

    pass


class BackupValidationError(DbRestoreError):
    """Raised when a backup document is malformed (e.g., missing ``data``).

    Always raised before any store mutation.
    """

    pass


class CatalogError(DbRestoreError):
    """Raised when a table catalog has a cycle or an undeclared dependency."""

    pass


class ProfileNotFoundError(DbRestoreError):
    """Raised when no database profile or credentials are configured."""

    pass


class RestoreInProgressError(DbRestoreError):
    """Raised when another restore already holds the lock for a target."""

    def __init__(self, target: str, holder: str | None = None):
        self.target = target
        self.holder = holder
        message = f"A restore is already running against '{target}'"
        if holder:
            message = f"{message} (held by {holder})"
        super().__init__(message)


class AuthorizationError(DbRestoreError):
    """Raised when the caller may not run a restore.

    Attributes:
        status: HTTP-style status code (401 unauthenticated, 403 forbidden).
    """

    def __init__(self, message: str, status: int = 403):
        self.status = status
        super().__init__(message)
