"""Diagnostics data models package."""

from .backend_state import (
    BackendLifecycleState,
    BackendLockPayload,
    BackendProcessState,
    ProcessEventType,
    ProcessHealthEvent,
)
from .consent_event import (
    CONSENT_EVENT_WINDOW,
    ConsentActor,
    ConsentChannel,
    ConsentEventLog,
    ConsentState,
    append_consent_event,
    normalize_consent_events,
)
from .preference_record import (
    DEFAULT_CONSENT_SUMMARY,
    DiagnosticsPreferenceRecord,
    PreferenceUpdate,
    UpdatedBy,
    apply_update,
)
from .snapshot import (
    NDJSON_CONTENT_TYPE,
    REFRESH_FAILED_CODE,
    DiagnosticsErrorPayload,
    DiagnosticsExportPayload,
    DiagnosticsManagerState,
    DiagnosticsRefreshResult,
    DiagnosticsSnapshot,
)
from .storage_health import StorageFailureReason, StorageHealthAlert, StorageHealthStatus

__all__ = [
    "BackendLifecycleState",
    "BackendLockPayload",
    "BackendProcessState",
    "CONSENT_EVENT_WINDOW",
    "ConsentActor",
    "ConsentChannel",
    "ConsentEventLog",
    "ConsentState",
    "DEFAULT_CONSENT_SUMMARY",
    "DiagnosticsErrorPayload",
    "DiagnosticsExportPayload",
    "DiagnosticsManagerState",
    "DiagnosticsPreferenceRecord",
    "DiagnosticsRefreshResult",
    "DiagnosticsSnapshot",
    "NDJSON_CONTENT_TYPE",
    "PreferenceUpdate",
    "ProcessEventType",
    "ProcessHealthEvent",
    "REFRESH_FAILED_CODE",
    "StorageFailureReason",
    "StorageHealthAlert",
    "StorageHealthStatus",
    "UpdatedBy",
    "append_consent_event",
    "apply_update",
    "normalize_consent_events",
]
