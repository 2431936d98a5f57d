"""Backend worker lifecycle state, process health events and the lock payload."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from .timestamps import parse_iso, to_iso, utc_now


class BackendLifecycleState(Enum):
    """Lifecycle of the supervised backend worker"""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    ERROR = "error"


class ProcessEventType(Enum):
    SPAWN = "spawn"
    EXIT = "exit"
    CRASH = "crash"


@dataclass(frozen=True)
class BackendProcessState:
    status: BackendLifecycleState
    updated_at: datetime
    message: Optional[str] = None
    pid: Optional[int] = None
    last_exit_code: Optional[int] = None
    last_exit_signal: Optional[str] = None

    @classmethod
    def initial(cls) -> "BackendProcessState":
        return cls(status=BackendLifecycleState.STOPPED, message="Backend not started", updated_at=utc_now())

    def to_payload(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "message": self.message,
            "pid": self.pid,
            "lastExitCode": self.last_exit_code,
            "lastExitSignal": self.last_exit_signal,
            "updatedAt": to_iso(self.updated_at),
        }


@dataclass(frozen=True)
class ProcessHealthEvent:
    type: ProcessEventType
    reason: str
    exit_code: Optional[int] = None
    occurred_at: datetime = field(default_factory=utc_now)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "occurredAt": to_iso(self.occurred_at),
            "type": self.type.value,
            "exitCode": self.exit_code,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class BackendLockPayload:
    """Contents of the cross-instance backend lock file."""

    owner_pid: int
    created_at: datetime
    child_pid: Optional[int] = None

    def to_payload(self) -> Dict[str, Any]:
        return {
            "ownerPid": self.owner_pid,
            "childPid": self.child_pid,
            "createdAt": to_iso(self.created_at),
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "BackendLockPayload":
        """Parse lock file contents.

        Raises:
            ValueError: If the owner PID or creation time is missing or malformed.
        """
        if not isinstance(payload, Mapping):
            raise ValueError("Backend lock payload must be an object")
        owner_pid = payload.get("ownerPid")
        if not isinstance(owner_pid, int) or isinstance(owner_pid, bool):
            raise ValueError(f"Backend lock ownerPid must be an integer, got {owner_pid!r}")
        child_pid = payload.get("childPid")
        if child_pid is not None and (not isinstance(child_pid, int) or isinstance(child_pid, bool)):
            raise ValueError(f"Backend lock childPid must be an integer, got {child_pid!r}")
        raw_created = payload.get("createdAt")
        created_at = parse_iso(raw_created) if raw_created else utc_now()
        return cls(owner_pid=owner_pid, child_pid=child_pid, created_at=created_at)


__all__ = [
    "BackendLifecycleState",
    "BackendLockPayload",
    "BackendProcessState",
    "ProcessEventType",
    "ProcessHealthEvent",
]
