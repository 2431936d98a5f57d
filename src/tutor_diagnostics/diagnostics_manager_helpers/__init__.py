"""Helpers for the diagnostics manager."""

from .api_client import ApiResponse, DiagnosticsApiClient, SessionFactory
from .export_builder import export_from_response, fallback_export
from .preference_sync import PreferenceSyncQueue, PreferenceSyncRequest, SyncOutcome, SyncReason
from .process_history import MAX_PROCESS_EVENTS, ProcessEventHistory, RetentionWarnings

__all__ = [
    "ApiResponse",
    "DiagnosticsApiClient",
    "MAX_PROCESS_EVENTS",
    "PreferenceSyncQueue",
    "PreferenceSyncRequest",
    "ProcessEventHistory",
    "RetentionWarnings",
    "SessionFactory",
    "SyncOutcome",
    "SyncReason",
    "export_from_response",
    "fallback_export",
]
