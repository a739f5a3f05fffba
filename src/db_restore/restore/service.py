"""Restore request handler: JSON request in, ``(status, body)`` out.

This is the administrative entry point.  It authorizes the caller once,
rejects malformed backups before touching the store, holds the restore
lock for the whole run, and converts every failure into a structured
response.

Usage:
    status, body = await handle_restore_request(
        request_json,
        principal=principal,
        policy=AdminPolicy.from_settings(settings),
        store=adapter,
        lock=RestoreLock("production", settings.state_dir),
    )
"""

import logging
from typing import Any

from pydantic import ValidationError

from db_restore.adapters.base import RestoreStore
from db_restore.auth import AuthorizationPolicy, Principal
from db_restore.exceptions import (
    AuthorizationError,
    BackupValidationError,
    RestoreInProgressError,
)
from db_restore.restore.batch import DEFAULT_BATCH_SIZE
from db_restore.restore.catalog import MARKETPLACE_CATALOG, TableCatalog
from db_restore.restore.checkpoint import CheckpointStore
from db_restore.restore.lock import RestoreLock
from db_restore.restore.models import BackupDocument, RestoreRequest
from db_restore.restore.orchestrator import restore_backup

logger = logging.getLogger(__name__)


async def handle_restore_request(
    payload: Any,
    principal: Principal | None,
    policy: AuthorizationPolicy,
    store: RestoreStore,
    lock: RestoreLock,
    catalog: TableCatalog = MARKETPLACE_CATALOG,
    batch_size: int = DEFAULT_BATCH_SIZE,
    checkpoints: CheckpointStore | None = None,
) -> tuple[int, dict[str, Any]]:
    """Handle one restore request.

    Args:
        payload: Decoded request body (``{"backupData": ..., "options": ...}``).
        principal: Authenticated caller, or ``None``.
        policy: Authorization policy, evaluated once.
        store: Target store.
        lock: Restore lock for the target; held for the whole run.
        catalog: Table catalog.
        batch_size: Maximum rows per insert call.
        checkpoints: Optional checkpoint store for resumable runs.

    Returns:
        Tuple of (HTTP-style status code, JSON-serializable body).
    """
    try:
        policy.authorize(principal)
    except AuthorizationError as e:
        logger.warning(
            "Restore access denied for %s: %s",
            principal.user_id if principal else "anonymous",
            e,
        )
        return e.status, {"error": str(e)}

    try:
        try:
            request = RestoreRequest.model_validate(payload)
        except ValidationError as e:
            raise BackupValidationError(f"Invalid restore request: {e}") from e
        document = BackupDocument.from_payload(request.backup_data)
    except BackupValidationError as e:
        logger.warning("Rejected restore request: %s", e)
        return 400, {"error": "Invalid backup data"}

    try:
        async with lock:
            summary = await restore_backup(
                store,
                document,
                request.options,
                catalog=catalog,
                batch_size=batch_size,
                checkpoints=checkpoints,
                target=lock.target,
            )
    except RestoreInProgressError as e:
        logger.warning("%s", e)
        return 409, {"error": str(e)}
    except Exception as e:
        logger.exception("Restore error")
        return 500, {"error": str(e) or "Failed to restore backup"}

    logger.info(
        "Restore by %s finished: %s", principal.email or principal.user_id, summary.message
    )
    return 200, summary.to_response()
