"""Aggregate backend, snapshot and preference state for the UI layer.

``DiagnosticsManager`` is the only entry point the UI uses. It composes the
backend supervisor and the preference vault, talks to the backend's
diagnostics API, and republishes everything on one typed event bus. No
degradable failure escapes it: network errors become result objects or log
records, and persistence errors become storage health alerts.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .backend_supervisor import BackendProcessSupervisor, SupervisorEvent
from .backend_supervisor_helpers import DialogRequest, ErrorDialogPresenter, LoggingDialogPresenter
from .config import DiagnosticsSettings
from .data_models import (
    REFRESH_FAILED_CODE,
    BackendProcessState,
    DiagnosticsErrorPayload,
    DiagnosticsExportPayload,
    DiagnosticsManagerState,
    DiagnosticsPreferenceRecord,
    DiagnosticsRefreshResult,
    DiagnosticsSnapshot,
    PreferenceUpdate,
    ProcessHealthEvent,
    StorageHealthAlert,
)
from .diagnostics_manager_helpers import (
    DiagnosticsApiClient,
    PreferenceSyncQueue,
    PreferenceSyncRequest,
    ProcessEventHistory,
    RetentionWarnings,
    SyncReason,
    export_from_response,
    fallback_export,
)
from .events import DiagnosticsEvent, EventBus, Listener, Unsubscribe
from .exceptions import DiagnosticsDirectoryError
from .network_errors import REQUEST_ERROR_TYPES, describe_error, is_network_unreachable_error
from .preferences_vault import PreferencesVault, PreferenceUpdateResult, VaultEvent

logger = logging.getLogger(__name__)

HTTP_NO_CONTENT = 204
REFRESH_FAILED_MESSAGE = "Diagnostics refresh request failed"


class DiagnosticsManager:
    """Facade over the supervisor, the preference vault and the diagnostics API."""

    def __init__(
        self,
        *,
        settings: DiagnosticsSettings,
        supervisor: BackendProcessSupervisor,
        vault: PreferencesVault,
        api_client: DiagnosticsApiClient,
        dialogs: Optional[ErrorDialogPresenter] = None,
        sync_queue: Optional[PreferenceSyncQueue] = None,
    ) -> None:
        self._settings = settings
        self._supervisor = supervisor
        self._vault = vault
        self._api = api_client
        self._dialogs = dialogs or LoggingDialogPresenter()
        self._sync_queue = sync_queue or PreferenceSyncQueue(api_client, max_attempts=settings.sync_max_attempts)

        self.events: EventBus[DiagnosticsEvent] = EventBus(DiagnosticsEvent)
        self._history = ProcessEventHistory()
        self._warnings = RetentionWarnings()
        self._latest_snapshot: Optional[DiagnosticsSnapshot] = None
        self._latest_preferences: Optional[DiagnosticsPreferenceRecord] = None
        self._latest_storage_health: Optional[StorageHealthAlert] = None
        self._diagnostics_directory: Optional[Path] = None
        self._initial_fetch: Optional[asyncio.Task] = None
        self._shutting_down = False

        self._vault_disposers: List[Unsubscribe] = [
            vault.on(VaultEvent.UPDATED, self._handle_vault_updated),
            vault.on(VaultEvent.STORAGE_HEALTH, self._handle_vault_storage_health),
        ]
        self._supervisor_disposers: List[Unsubscribe] = [
            supervisor.on(SupervisorEvent.STATE_CHANGED, self._handle_backend_state),
            supervisor.on(SupervisorEvent.PROCESS_EVENT, self._handle_process_event),
            supervisor.on(SupervisorEvent.BACKEND_ERROR, self._handle_backend_error),
        ]

    def on(self, event: DiagnosticsEvent, listener: Listener) -> Unsubscribe:
        return self.events.subscribe(event, listener)

    async def initialize(self) -> None:
        """Prepare storage, start the backend and kick off the first sync and snapshot fetch.

        Raises:
            DiagnosticsDirectoryError: If the diagnostics directory cannot be created.
        """
        self.get_diagnostics_directory()
        await self._vault.bootstrap()
        self._update_storage_health(self._vault.get_storage_health(), force=True)
        await self._supervisor.start()

        record = self.get_preferences_record()
        if record is not None:
            self._queue_sync(PreferenceSyncRequest(reason=SyncReason.BOOTSTRAP, record=record))
        self._initial_fetch = asyncio.create_task(self._initial_snapshot_fetch(), name="diagnostics-initial-snapshot")

    async def shutdown(self) -> None:
        if self._shutting_down:
            return
        self._shutting_down = True
        self._sync_queue.close()
        self._dispose(self._vault_disposers)

        timeout = self._settings.shutdown_sync_timeout_seconds
        if not await self._sync_queue.drain(timeout=timeout):
            logger.warning("Pending diagnostics preference sync did not complete within %ss", timeout)
            await self._sync_queue.cancel_pending()

        initial_fetch, self._initial_fetch = self._initial_fetch, None
        if initial_fetch is not None and not initial_fetch.done():
            initial_fetch.cancel()
            await asyncio.wait({initial_fetch})

        await self._supervisor.stop()
        self._dispose(self._supervisor_disposers)
        await self._api.close()

    def get_diagnostics_directory(self) -> Path:
        if self._diagnostics_directory is not None:
            return self._diagnostics_directory
        directory = self._settings.diagnostics_directory
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            self._dialogs.show_error(
                DialogRequest(
                    title="Unable to prepare diagnostics storage",
                    message=f"The diagnostics directory could not be created at {directory}.\n{exc}",
                    blocking=True,
                )
            )
            raise DiagnosticsDirectoryError(f"Cannot create diagnostics directory {directory}", path=str(directory)) from exc
        self._diagnostics_directory = directory
        return directory

    def get_state(self) -> DiagnosticsManagerState:
        return DiagnosticsManagerState(
            backend=self._supervisor.state,
            warnings=self._warnings.snapshot(),
            process_events=self._history.snapshot(),
            latest_snapshot=copy.deepcopy(self._latest_snapshot),
            preferences=self._latest_preferences,
            storage_health=self._latest_storage_health,
        )

    def get_preferences_record(self) -> Optional[DiagnosticsPreferenceRecord]:
        return self._latest_preferences

    def get_storage_health_alert(self) -> Optional[StorageHealthAlert]:
        return self._latest_storage_health

    def get_process_event_payloads(self) -> List[Dict[str, Any]]:
        return [event.to_payload() for event in self._history.snapshot()]

    async def update_preferences(self, update: PreferenceUpdate) -> PreferenceUpdateResult:
        result = await self._vault.update_preferences(update)
        if result.applied:
            self._queue_sync(
                PreferenceSyncRequest(reason=SyncReason.UPDATE, record=result.record, consent_event=update.consent_event)
            )
        return result

    def set_latest_snapshot(self, snapshot: Optional[DiagnosticsSnapshot]) -> None:
        self._latest_snapshot = copy.deepcopy(snapshot)
        self.events.publish(DiagnosticsEvent.SNAPSHOT_UPDATED, copy.deepcopy(snapshot))

    async def fetch_latest_snapshot(self) -> Optional[DiagnosticsSnapshot]:
        """Fetch the summary; falls back to the cached snapshot when the backend has nothing."""
        payload = await self._fetch_summary()
        if payload is not None:
            self.set_latest_snapshot(payload)
            return payload
        return copy.deepcopy(self._latest_snapshot)

    async def refresh_snapshot(self) -> DiagnosticsRefreshResult:
        try:
            response = await self._api.refresh_snapshot()
        except REQUEST_ERROR_TYPES as exc:  # policy_guard: allow-silent-handler
            logger.warning("Diagnostics refresh failed: %s", describe_error(exc))
            return DiagnosticsRefreshResult.failed(DiagnosticsErrorPayload(REFRESH_FAILED_CODE, describe_error(exc)))

        if not response.ok:
            return DiagnosticsRefreshResult.failed(self._refresh_error(response))

        # An empty 2xx body means the backend has nothing new yet, same as 204
        if response.status == HTTP_NO_CONTENT or not response.body.strip():
            return DiagnosticsRefreshResult.ok(None)
        try:
            snapshot = response.json()
        except ValueError as exc:  # policy_guard: allow-silent-handler
            return DiagnosticsRefreshResult.failed(DiagnosticsErrorPayload(REFRESH_FAILED_CODE, describe_error(exc)))
        if not isinstance(snapshot, dict):
            return DiagnosticsRefreshResult.failed(
                DiagnosticsErrorPayload(REFRESH_FAILED_CODE, "Diagnostics refresh returned an unexpected payload")
            )

        self.set_latest_snapshot(snapshot)
        return DiagnosticsRefreshResult.ok(copy.deepcopy(snapshot))

    async def export_snapshot(self) -> Optional[DiagnosticsExportPayload]:
        """Return the backend's export, or a one-line NDJSON export of the cached snapshot."""
        try:
            response = await self._api.request_export()
        except REQUEST_ERROR_TYPES as exc:  # policy_guard: allow-silent-handler
            logger.warning("Diagnostics export failed: %s", describe_error(exc))
            return await self._fallback_export()

        if response.status == HTTP_NO_CONTENT:
            return await self._fallback_export()
        if not response.ok:
            logger.warning("Diagnostics export request failed: %s", response.status)
            return await self._fallback_export()

        exported = export_from_response(response)
        if exported is None:
            return await self._fallback_export()
        return exported

    def add_retention_warning(self, message: str) -> None:
        normalized = self._warnings.add(message)
        if normalized is not None:
            self.events.publish(DiagnosticsEvent.RETENTION_WARNING, normalized)

    def clear_retention_warnings(self) -> None:
        self._warnings.clear()

    async def _fetch_summary(self) -> Optional[DiagnosticsSnapshot]:
        try:
            response = await self._api.fetch_summary()
        except REQUEST_ERROR_TYPES as exc:  # policy_guard: allow-silent-handler
            if is_network_unreachable_error(exc):
                logger.info("Diagnostics backend unreachable for summary: %s", describe_error(exc))
            else:
                logger.warning("Failed to fetch diagnostics summary: %s", describe_error(exc))
            return None

        if response.status == HTTP_NO_CONTENT:
            return None
        if not response.ok:
            logger.warning("Diagnostics summary request failed: %s", self._summary_failure_detail(response))
            return None
        try:
            payload = response.json()
        except ValueError as exc:  # policy_guard: allow-silent-handler
            logger.warning("Failed to parse diagnostics summary: %s", exc)
            return None
        if not isinstance(payload, dict):
            logger.warning("Diagnostics summary was not an object")
            return None
        return payload

    @staticmethod
    def _summary_failure_detail(response) -> str:
        if response.is_json:
            try:
                body = response.json()
            except ValueError:  # policy_guard: allow-silent-handler
                body = None
            if isinstance(body, dict) and body.get("errorCode"):
                return str(body["errorCode"])
            return str(response.status)
        return f"{response.status} {response.text()}".strip()

    @staticmethod
    def _refresh_error(response) -> DiagnosticsErrorPayload:
        if response.is_json:
            try:
                body = response.json()
            except ValueError:  # policy_guard: allow-silent-handler
                body = None
            return DiagnosticsErrorPayload.from_response_body(
                body, status=response.status, fallback_message=REFRESH_FAILED_MESSAGE
            )
        return DiagnosticsErrorPayload(
            error_code=f"HTTP_{response.status}",
            message=response.text() or REFRESH_FAILED_MESSAGE,
        )

    async def _fallback_export(self) -> Optional[DiagnosticsExportPayload]:
        if self._latest_snapshot is None:
            await self.fetch_latest_snapshot()
        return fallback_export(self._latest_snapshot)

    async def _initial_snapshot_fetch(self) -> None:
        snapshot = await self.fetch_latest_snapshot()
        if snapshot is None:
            logger.debug("No diagnostics snapshot available at startup")

    def _queue_sync(self, request: PreferenceSyncRequest) -> None:
        if self._shutting_down:
            return
        self._sync_queue.enqueue(request)

    def _update_storage_health(self, alert: Optional[StorageHealthAlert], *, force: bool = False) -> None:
        changed = force or alert != self._latest_storage_health
        self._latest_storage_health = alert
        if changed:
            self.events.publish(DiagnosticsEvent.PREFERENCES_STORAGE_HEALTH, alert)

    def _handle_vault_updated(self, record: DiagnosticsPreferenceRecord) -> None:
        self._latest_preferences = record
        self._update_storage_health(record.storage_health)
        self.events.publish(DiagnosticsEvent.PREFERENCES_UPDATED, record)

    def _handle_vault_storage_health(self, record: DiagnosticsPreferenceRecord) -> None:
        self._update_storage_health(record.storage_health)

    def _handle_backend_state(self, state: BackendProcessState) -> None:
        self.events.publish(DiagnosticsEvent.BACKEND_STATE_CHANGED, state)

    def _handle_process_event(self, event: ProcessHealthEvent) -> None:
        self._history.record(event)
        self.events.publish(DiagnosticsEvent.PROCESS_EVENT, event)

    def _handle_backend_error(self, error: Dict[str, str]) -> None:
        self.events.publish(DiagnosticsEvent.BACKEND_ERROR, dict(error))

    @staticmethod
    def _dispose(disposers: List[Unsubscribe]) -> None:
        for dispose in disposers:
            dispose()
        disposers.clear()


__all__ = ["DiagnosticsManager"]
