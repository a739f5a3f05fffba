"""Advisory lock preventing concurrent restores against one target.

The lock is a file created with ``O_EXCL`` under the state directory plus
an in-process registry, keyed by target environment.  Hold it for the
whole orchestration: acquire before clearing, release after the summary.

Usage:
    async with RestoreLock("staging", state_dir):
        summary = await restore_backup(store, document, options)
"""

import json
import logging
import os
import re
import socket
from datetime import datetime, timezone
from pathlib import Path

from db_restore.exceptions import RestoreInProgressError

logger = logging.getLogger(__name__)

# Targets locked by this process
_ACTIVE_TARGETS: set[str] = set()


class RestoreLock:
    """Non-blocking, fail-fast advisory lock for one target.

    Args:
        target: Target environment key (profile name or store URL).
        state_dir: Directory holding lock files.
    """

    def __init__(self, target: str, state_dir: str | Path) -> None:
        self.target = target
        self.state_dir = Path(state_dir)
        self._held = False

    @property
    def path(self) -> Path:
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", self.target) or "default"
        return self.state_dir / f"restore-{safe}.lock"

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self) -> None:
        """Take the lock.

        Raises:
            RestoreInProgressError: If this process or another one holds it.
        """
        if self.target in _ACTIVE_TARGETS:
            raise RestoreInProgressError(self.target, holder=f"pid {os.getpid()}")

        self.state_dir.mkdir(parents=True, exist_ok=True)
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            raise RestoreInProgressError(self.target, holder=self._read_holder()) from None

        with os.fdopen(fd, "w") as f:
            json.dump(
                {
                    "target": self.target,
                    "pid": os.getpid(),
                    "host": socket.gethostname(),
                    "acquired_at": datetime.now(timezone.utc).isoformat(),
                },
                f,
            )

        _ACTIVE_TARGETS.add(self.target)
        self._held = True
        logger.debug("Acquired restore lock %s", self.path)

    def release(self) -> None:
        """Release the lock if held.  Safe to call more than once."""
        if not self._held:
            return
        _ACTIVE_TARGETS.discard(self.target)
        self._held = False
        try:
            self.path.unlink()
        except FileNotFoundError:
            logger.warning("Restore lock %s was already removed", self.path)
        logger.debug("Released restore lock %s", self.path)

    def break_lock(self) -> bool:
        """Remove a stale lock file left by a crashed process.

        Returns:
            True if a lock file was removed.
        """
        if self.path.exists():
            self.path.unlink()
            return True
        return False

    def _read_holder(self) -> str | None:
        try:
            info = json.loads(self.path.read_text())
        except (OSError, ValueError):
            return None
        return f"pid {info.get('pid')} on {info.get('host')} since {info.get('acquired_at')}"

    async def __aenter__(self) -> "RestoreLock":
        self.acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()
