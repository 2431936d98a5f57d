"""JSON lock file that arbitrates which desktop instance owns the backend worker."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import orjson

from ..data_models import BackendLockPayload

logger = logging.getLogger(__name__)


class BackendLockFile:
    """Reads, claims, updates and releases the backend lock file.

    A fresh lock is claimed with an exclusive create so two instances racing
    past the stale check cannot both believe they own it. Updates to an owned
    lock go through a temp file and ``os.replace``.
    """

    def __init__(self, path: Path, *, owner_pid: Optional[int] = None) -> None:
        self.path = Path(path)
        self.owner_pid = owner_pid if owner_pid is not None else os.getpid()

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> Optional[BackendLockPayload]:
        """Return the lock contents, or None when the file is missing or unreadable."""
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:  # policy_guard: allow-silent-handler
            return None
        except OSError as exc:  # policy_guard: allow-silent-handler
            logger.warning("Failed to read diagnostics backend lock %s: %s", self.path, exc)
            return None
        try:
            return BackendLockPayload.from_payload(orjson.loads(raw))
        except (orjson.JSONDecodeError, ValueError) as exc:  # policy_guard: allow-silent-handler
            logger.warning("Failed to parse diagnostics backend lock %s: %s", self.path, exc)
            return None

    def claim(self, payload: BackendLockPayload) -> bool:
        """Create the lock file exclusively.

        Returns:
            False if another process created the file first.

        Raises:
            OSError: If the file cannot be created for any other reason.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o644)
        except FileExistsError:  # policy_guard: allow-silent-handler
            return False
        with os.fdopen(fd, "wb") as handle:
            handle.write(_encode(payload))
            handle.flush()
            os.fsync(handle.fileno())
        return True

    def write(self, payload: BackendLockPayload) -> None:
        """Atomically replace the lock contents.

        Raises:
            OSError: If the temp file cannot be written or moved into place.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(f"{self.path.name}.{os.getpid()}.tmp")
        tmp_path.write_bytes(_encode(payload))
        os.replace(tmp_path, self.path)

    def remove(self, *, force: bool = False) -> bool:
        """Delete the lock file.

        Without *force* the file is only removed when this process owns it.

        Returns:
            True if a file was removed.
        """
        if not self.path.exists():
            return False
        if not force:
            payload = self.read()
            if payload is not None and payload.owner_pid != self.owner_pid:
                logger.debug("Leaving diagnostics backend lock owned by PID %s", payload.owner_pid)
                return False
        try:
            self.path.unlink()
        except FileNotFoundError:  # policy_guard: allow-silent-handler
            return False
        except OSError as exc:  # policy_guard: allow-silent-handler
            logger.warning("Failed to remove diagnostics backend lock %s: %s", self.path, exc)
            return False
        return True


def _encode(payload: BackendLockPayload) -> bytes:
    return orjson.dumps(payload.to_payload(), option=orjson.OPT_INDENT_2)


__all__ = ["BackendLockFile"]
