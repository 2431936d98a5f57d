"""Storage health alerts raised when preference persistence fails."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from .timestamps import optional_iso, parse_iso, parse_optional_iso, to_iso, utc_now


class StorageHealthStatus(Enum):
    OK = "ok"
    DEGRADED = "degraded"
    UNAVAILABLE = "unavailable"


class StorageFailureReason(Enum):
    """Classified cause of a storage failure"""

    PERMISSION_DENIED = "permission-denied"
    DISK_FULL = "disk-full"
    CORRUPTED = "corrupted"
    UNKNOWN = "unknown"


RECOMMENDED_ACTIONS: Dict[StorageFailureReason, str] = {
    StorageFailureReason.PERMISSION_DENIED: "Check that the application can write to its data directory.",
    StorageFailureReason.DISK_FULL: "Free up disk space, then change a preference to retry saving.",
    StorageFailureReason.CORRUPTED: "Reset diagnostics preferences to rebuild the preference store.",
    StorageFailureReason.UNKNOWN: "Restart the application; preferences stay active for this session only.",
}


@dataclass(frozen=True)
class StorageHealthAlert:
    """Transient alert attached to a preference record until the next successful write."""

    status: StorageHealthStatus
    detected_at: datetime
    reason: StorageFailureReason
    message: str
    recommended_action: str
    retry_available_at: Optional[datetime] = None

    def __post_init__(self):
        if not isinstance(self.status, StorageHealthStatus):
            raise TypeError(f"status must be a StorageHealthStatus, got {self.status!r}")
        if not isinstance(self.reason, StorageFailureReason):
            raise TypeError(f"reason must be a StorageFailureReason, got {self.reason!r}")
        if not self.message:
            raise ValueError("Storage health alert message must not be empty")

    @classmethod
    def unavailable(
        cls,
        reason: StorageFailureReason,
        message: str,
        *,
        detected_at: Optional[datetime] = None,
        retry_available_at: Optional[datetime] = None,
    ) -> "StorageHealthAlert":
        return cls(
            status=StorageHealthStatus.UNAVAILABLE,
            detected_at=detected_at or utc_now(),
            reason=reason,
            message=message,
            recommended_action=RECOMMENDED_ACTIONS[reason],
            retry_available_at=retry_available_at,
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "detectedAt": to_iso(self.detected_at),
            "reason": self.reason.value,
            "message": self.message,
            "recommendedAction": self.recommended_action,
            "retryAvailableAt": optional_iso(self.retry_available_at),
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "StorageHealthAlert":
        """Parse the camelCase wire shape.

        Raises:
            ValueError: If a field is missing or carries an unknown value.
        """
        try:
            reason = StorageFailureReason(payload["reason"])
            return cls(
                status=StorageHealthStatus(payload["status"]),
                detected_at=parse_iso(payload["detectedAt"]),
                reason=reason,
                message=str(payload["message"]),
                recommended_action=str(payload.get("recommendedAction") or RECOMMENDED_ACTIONS[reason]),
                retry_available_at=parse_optional_iso(payload.get("retryAvailableAt")),
            )
        except KeyError as exc:
            raise ValueError(f"Storage health alert missing field {exc.args[0]!r}") from exc


__all__ = ["RECOMMENDED_ACTIONS", "StorageFailureReason", "StorageHealthAlert", "StorageHealthStatus"]
