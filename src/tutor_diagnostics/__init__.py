"""Diagnostics supervision for the desktop tutoring app.

Owns the backend worker process, the persisted diagnostics preferences and
the orchestration that joins them to the backend diagnostics API.
"""

from .backend_supervisor import BackendProcessSupervisor, SupervisorEvent
from .config import DiagnosticsSettings
from .context import DiagnosticsContext
from .diagnostics_manager import DiagnosticsManager
from .events import DiagnosticsEvent, EventBus
from .preferences_vault import PreferenceUpdateResult, PreferencesVault, VaultEvent
from .safe_storage_outage import SafeStorageOutageService

__all__ = [
    "BackendProcessSupervisor",
    "DiagnosticsContext",
    "DiagnosticsEvent",
    "DiagnosticsManager",
    "DiagnosticsSettings",
    "EventBus",
    "PreferenceUpdateResult",
    "PreferencesVault",
    "SafeStorageOutageService",
    "SupervisorEvent",
    "VaultEvent",
]
