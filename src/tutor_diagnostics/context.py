"""Explicit wiring of the diagnostics subsystem for one desktop process.

Everything the subsystem needs is built once here and handed to the host,
instead of living in module-level singletons.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .backend_supervisor import BackendEntryResolver, BackendProcessSupervisor, PortProbe
from .backend_supervisor_helpers import ErrorDialogPresenter, LoggingDialogPresenter, is_port_busy
from .config import DiagnosticsSettings
from .diagnostics_manager import DiagnosticsManager
from .diagnostics_manager_helpers import DiagnosticsApiClient, SessionFactory
from .preferences_vault import PreferencesVault
from .preferences_vault_helpers import JsonFilePreferenceStore, PreferenceStore
from .safe_storage_outage import SafeStorageOutageService


@dataclass
class DiagnosticsContext:
    settings: DiagnosticsSettings
    supervisor: BackendProcessSupervisor
    vault: PreferencesVault
    api_client: DiagnosticsApiClient
    manager: DiagnosticsManager
    safe_storage: SafeStorageOutageService

    @classmethod
    def create(
        cls,
        settings: DiagnosticsSettings,
        *,
        resolve_backend_entry: BackendEntryResolver,
        dialogs: Optional[ErrorDialogPresenter] = None,
        store: Optional[PreferenceStore] = None,
        session_factory: Optional[SessionFactory] = None,
        port_probe: PortProbe = is_port_busy,
    ) -> "DiagnosticsContext":
        dialogs = dialogs or LoggingDialogPresenter()
        supervisor = BackendProcessSupervisor(
            resolve_backend_entry=resolve_backend_entry,
            lock_path=settings.lock_path,
            api_origin=settings.api_origin,
            manage_lock=settings.manage_backend_lock,
            mode=settings.mode,
            dialogs=dialogs,
            port_probe=port_probe,
        )
        vault = PreferencesVault(store or JsonFilePreferenceStore(settings.preferences_path))
        api_client = DiagnosticsApiClient(
            settings.api_origin,
            request_timeout=settings.request_timeout_seconds,
            session_factory=session_factory,
        )
        manager = DiagnosticsManager(
            settings=settings,
            supervisor=supervisor,
            vault=vault,
            api_client=api_client,
            dialogs=dialogs,
        )
        return cls(
            settings=settings,
            supervisor=supervisor,
            vault=vault,
            api_client=api_client,
            manager=manager,
            safe_storage=SafeStorageOutageService(),
        )

    async def start(self) -> None:
        await self.manager.initialize()

    async def shutdown(self) -> None:
        await self.manager.shutdown()

    async def __aenter__(self) -> "DiagnosticsContext":
        await self.start()
        return self

    async def __aexit__(self, _exc_type, _exc, _tb) -> None:
        await self.shutdown()


__all__ = ["DiagnosticsContext"]
