"""Snapshot request results and the aggregated manager state."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from .backend_state import BackendProcessState, ProcessHealthEvent
from .preference_record import DiagnosticsPreferenceRecord
from .storage_health import StorageHealthAlert

DiagnosticsSnapshot = Dict[str, Any]

NDJSON_CONTENT_TYPE = "application/x-ndjson"
REFRESH_FAILED_CODE = "DIAGNOSTICS_REFRESH_FAILED"


@dataclass(frozen=True)
class DiagnosticsErrorPayload:
    error_code: str
    message: str
    retry_after_seconds: Optional[float] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"errorCode": self.error_code, "message": self.message}
        if self.retry_after_seconds is not None:
            payload["retryAfterSeconds"] = self.retry_after_seconds
        return payload

    @classmethod
    def from_response_body(cls, body: Any, *, status: int, fallback_message: str) -> "DiagnosticsErrorPayload":
        """Build an error from a JSON error body, tolerating missing fields."""
        if not isinstance(body, Mapping):
            return cls(error_code=f"HTTP_{status}", message=fallback_message)
        retry_after = body.get("retryAfterSeconds")
        if isinstance(retry_after, bool) or not isinstance(retry_after, (int, float)):
            retry_after = None
        return cls(
            error_code=str(body.get("errorCode") or f"HTTP_{status}"),
            message=str(body.get("message") or fallback_message),
            retry_after_seconds=retry_after,
        )


@dataclass(frozen=True)
class DiagnosticsRefreshResult:
    success: bool
    snapshot: Optional[DiagnosticsSnapshot] = None
    error: Optional[DiagnosticsErrorPayload] = None

    @classmethod
    def ok(cls, snapshot: Optional[DiagnosticsSnapshot]) -> "DiagnosticsRefreshResult":
        return cls(success=True, snapshot=snapshot)

    @classmethod
    def failed(cls, error: DiagnosticsErrorPayload) -> "DiagnosticsRefreshResult":
        return cls(success=False, error=error)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": self.success}
        if self.snapshot is not None:
            payload["snapshot"] = self.snapshot
        if self.error is not None:
            payload["error"] = self.error.to_payload()
        return payload


@dataclass(frozen=True)
class DiagnosticsExportPayload:
    filename: str
    content_type: str
    body: str

    def to_payload(self) -> Dict[str, Any]:
        return {"filename": self.filename, "contentType": self.content_type, "body": self.body}


@dataclass(frozen=True)
class DiagnosticsManagerState:
    """Point-in-time view of everything the UI layer renders."""

    backend: BackendProcessState
    warnings: Tuple[str, ...]
    process_events: Tuple[ProcessHealthEvent, ...]
    latest_snapshot: Optional[DiagnosticsSnapshot]
    preferences: Optional[DiagnosticsPreferenceRecord]
    storage_health: Optional[StorageHealthAlert]

    def to_payload(self) -> Dict[str, Any]:
        return {
            "backend": self.backend.to_payload(),
            "warnings": list(self.warnings),
            "processEvents": [event.to_payload() for event in self.process_events],
            "latestSnapshot": self.latest_snapshot,
            "preferences": self.preferences.to_payload() if self.preferences else None,
            "storageHealth": self.storage_health.to_payload() if self.storage_health else None,
        }


__all__ = [
    "DiagnosticsErrorPayload",
    "DiagnosticsExportPayload",
    "DiagnosticsManagerState",
    "DiagnosticsRefreshResult",
    "DiagnosticsSnapshot",
    "NDJSON_CONTENT_TYPE",
    "REFRESH_FAILED_CODE",
]
