"""Development preflight for the backend lock.

Run before starting the desktop app to clear a lock left behind by a dead
instance and to report whether another instance or a stray worker already
owns the diagnostics backend.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from .backend_supervisor import PortProbe
from .backend_supervisor_helpers import BackendLockFile, is_port_busy, is_process_alive
from .config import DiagnosticsSettings
from .data_models import BackendLockPayload
from .http_utils import fallback_endpoint, origin_endpoint

logger = logging.getLogger(__name__)


class LockStatus(Enum):
    ABSENT = "absent"
    STALE_REMOVED = "stale-removed"
    UNREADABLE_REMOVED = "unreadable-removed"
    HELD = "held"


@dataclass(frozen=True)
class PreflightReport:
    lock_path: Path
    lock_status: LockStatus
    host: str
    port: int
    port_in_use: bool
    holder: Optional[BackendLockPayload] = None

    @property
    def is_clear(self) -> bool:
        return self.lock_status != LockStatus.HELD and not self.port_in_use

    def summary_lines(self) -> List[str]:
        lines: List[str] = []
        if self.lock_status in (LockStatus.STALE_REMOVED, LockStatus.UNREADABLE_REMOVED):
            lines.append(f"[diagnostics] Removed stale backend lock at {self.lock_path}")
        elif self.lock_status == LockStatus.HELD and self.holder is not None:
            child = self.holder.child_pid if self.holder.child_pid is not None else "unknown"
            lines.append(f"[diagnostics] Backend lock currently held by PID {self.holder.owner_pid} (child {child}).")
        if self.port_in_use:
            lines.append(
                f"[diagnostics] Detected an existing diagnostics backend listening at {self.host}:{self.port}."
            )
        if not lines:
            lines.append("[diagnostics] Backend lock is clear.")
        return lines


def _resolve_endpoint(api_origin: str) -> Tuple[str, int]:
    try:
        return origin_endpoint(api_origin)
    except ValueError as exc:  # policy_guard: allow-silent-handler
        logger.warning("Failed to parse diagnostics API origin %r: %s", api_origin, exc)
        return fallback_endpoint()


def _inspect_lock(lock: BackendLockFile) -> Tuple[LockStatus, Optional[BackendLockPayload]]:
    if not lock.exists():
        return LockStatus.ABSENT, None

    payload = lock.read()
    if payload is None:
        logger.warning("Unable to read backend lock at %s. Treating as stale.", lock.path)
        lock.remove(force=True)
        return LockStatus.UNREADABLE_REMOVED, None

    if is_process_alive(payload.owner_pid) or is_process_alive(payload.child_pid):
        return LockStatus.HELD, payload

    lock.remove(force=True)
    return LockStatus.STALE_REMOVED, payload


async def run_preflight(settings: DiagnosticsSettings, *, port_probe: PortProbe = is_port_busy) -> PreflightReport:
    """Clear a stale lock and report lock ownership and port usage."""
    lock = BackendLockFile(settings.lock_path)
    status, holder = _inspect_lock(lock)
    host, port = _resolve_endpoint(settings.api_origin)
    port_in_use = await port_probe(host, port)

    report = PreflightReport(
        lock_path=lock.path,
        lock_status=status,
        host=host,
        port=port,
        port_in_use=port_in_use,
        holder=holder,
    )
    for line in report.summary_lines():
        logger.info("%s", line)
    return report


__all__ = ["LockStatus", "PreflightReport", "run_preflight"]
