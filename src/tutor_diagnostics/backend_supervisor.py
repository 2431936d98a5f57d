"""Supervise the sidecar diagnostics backend worker.

The supervisor owns the worker process for one desktop instance: it
arbitrates with other instances through a lock file and a port probe,
spawns the worker, watches it for exits and stops it on request. Every
state transition is published on the supervisor's event bus.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Optional, Tuple, Union

from .backend_supervisor_helpers import (
    BackendLockFile,
    DialogRequest,
    ErrorDialogPresenter,
    LoggingDialogPresenter,
    describe_returncode,
    is_port_busy,
    is_process_alive,
    launch_backend,
    terminate_process,
)
from .backend_supervisor_helpers import messages
from .backend_supervisor_helpers.dialogs import DEVELOPMENT_DETAIL
from .backend_supervisor_helpers.process_launcher import FORCE_TIMEOUT_SECONDS, GRACEFUL_TIMEOUT_SECONDS
from .data_models import (
    BackendLifecycleState,
    BackendLockPayload,
    BackendProcessState,
    ProcessEventType,
    ProcessHealthEvent,
)
from .data_models.timestamps import utc_now
from .events import EventBus, Listener, Unsubscribe
from .exceptions import BackendContentionError, BackendSpawnError
from .http_utils import fallback_endpoint, origin_endpoint

logger = logging.getLogger(__name__)

BackendEntryResolver = Callable[[], Optional[Union[str, Path]]]
PortProbe = Callable[[str, int], Awaitable[bool]]
Launcher = Callable[..., Awaitable[asyncio.subprocess.Process]]


class SupervisorEvent(Enum):
    STATE_CHANGED = "state-changed"
    PROCESS_EVENT = "process-event"
    BACKEND_ERROR = "backend-error"


class BackendProcessSupervisor:
    """Lifecycle owner for the backend worker process."""

    def __init__(
        self,
        *,
        resolve_backend_entry: BackendEntryResolver,
        lock_path: Path,
        api_origin: str,
        manage_lock: bool = True,
        mode: str = "development",
        dialogs: Optional[ErrorDialogPresenter] = None,
        port_probe: PortProbe = is_port_busy,
        launcher: Launcher = launch_backend,
        graceful_timeout: float = GRACEFUL_TIMEOUT_SECONDS,
        force_timeout: float = FORCE_TIMEOUT_SECONDS,
    ) -> None:
        self._resolve_backend_entry = resolve_backend_entry
        self._lock = BackendLockFile(lock_path)
        self._api_origin = api_origin
        self._manage_lock = manage_lock
        self._mode = mode
        self._dialogs = dialogs or LoggingDialogPresenter()
        self._port_probe = port_probe
        self._launcher = launcher
        self._graceful_timeout = graceful_timeout
        self._force_timeout = force_timeout

        self.events: EventBus[SupervisorEvent] = EventBus(SupervisorEvent)
        self._state = BackendProcessState.initial()
        self._process: Optional[asyncio.subprocess.Process] = None
        self._watcher: Optional[asyncio.Task] = None

    @property
    def state(self) -> BackendProcessState:
        return self._state

    @property
    def lock_path(self) -> Path:
        return self._lock.path

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process is not None else None

    def is_running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    def on(self, event: SupervisorEvent, listener: Listener) -> Unsubscribe:
        return self.events.subscribe(event, listener)

    async def ensure_can_start(self) -> bool:
        """Arbitrate with other desktop instances and claim the lock.

        Returns:
            True when this instance may spawn the worker. On refusal the state
            moves to ``error`` and a blocking dialog is shown.
        """
        if not self._manage_lock:
            return True

        try:
            self._clear_or_reject_existing_lock()
            await self._reject_busy_port()
            self._claim_lock()
        except BackendContentionError as exc:
            logger.warning("%s", exc)
            self._update_state(status=BackendLifecycleState.ERROR, message=exc.state_message)
            self._show_dialog(exc.dialog_title, exc.dialog_message, blocking=True)
            return False
        return True

    async def start(self) -> bool:
        """Spawn the worker if this instance may own it.

        Returns:
            True if a worker is running after the call.
        """
        if self._process is not None:
            return True

        entry = self._resolve_entry()
        if entry is None:
            self._update_state(status=BackendLifecycleState.ERROR, message=messages.ENTRY_MISSING)
            self._show_dialog(messages.ENTRY_MISSING_TITLE, messages.ENTRY_MISSING_DETAIL, blocking=True)
            return False

        if not await self.ensure_can_start():
            return False

        self._update_state(status=BackendLifecycleState.STARTING, message=messages.STARTING)
        try:
            process = await self._launcher(entry, env_overrides={"LLM_TUTOR_MODE": self._mode})
        except BackendSpawnError as exc:
            self._handle_spawn_failure(str(exc))
            return False

        self._process = process
        self._record_child_pid(process.pid)
        self._record_event(ProcessEventType.SPAWN, messages.SPAWNED)
        self._update_state(status=BackendLifecycleState.RUNNING, message=messages.RUNNING, pid=process.pid)
        self._watcher = asyncio.create_task(self._watch(process), name="diagnostics-backend-watcher")
        logger.info("Diagnostics backend started (PID %s)", process.pid)
        return True

    async def stop(self) -> None:
        """Stop the worker without reporting the exit as a crash."""
        process = self._process
        if process is None:
            return
        self._process = None

        watcher, self._watcher = self._watcher, None
        if watcher is not None and not watcher.done():
            watcher.cancel()
            try:
                await watcher
            except asyncio.CancelledError:  # policy_guard: allow-silent-handler
                logger.debug("Backend exit watcher cancelled for PID %s", process.pid)

        try:
            await terminate_process(process, graceful_timeout=self._graceful_timeout, force_timeout=self._force_timeout)
        except RuntimeError:  # policy_guard: allow-silent-handler
            logger.exception("Failed to stop diagnostics backend")

        if self._manage_lock:
            self._lock.remove()
        self._record_event(ProcessEventType.EXIT, messages.STOPPED_BY_APPLICATION)
        self._update_state(status=BackendLifecycleState.STOPPED, message=messages.STOPPED, pid=None)

    async def wait_for_exit(self) -> BackendProcessState:
        """Wait until the exit watcher has processed the worker's exit."""
        watcher = self._watcher
        if watcher is not None:
            await asyncio.shield(watcher)
        return self._state

    def _resolve_entry(self) -> Optional[Path]:
        raw_entry = self._resolve_backend_entry()
        if not raw_entry:
            return None
        entry = Path(raw_entry)
        if not entry.exists():
            logger.warning("Backend entry %s does not exist", entry)
            return None
        return entry

    def _clear_or_reject_existing_lock(self) -> None:
        existing = self._lock.read()
        if existing is None:
            if self._lock.exists():
                logger.warning("Removing unreadable diagnostics backend lock at %s", self._lock.path)
                self._lock.remove(force=True)
            return

        if not is_process_alive(existing.owner_pid) and not is_process_alive(existing.child_pid):
            logger.info(
                "Removing stale diagnostics backend lock (owner PID %s, child PID %s)",
                existing.owner_pid,
                existing.child_pid,
            )
            self._lock.remove(force=True)
            return

        message = messages.already_managed(existing.owner_pid)
        raise BackendContentionError(
            message,
            state_message=message,
            dialog_title=messages.ALREADY_RUNNING_TITLE,
            dialog_message=messages.already_managed_detail(message, str(self._lock.path)),
        )

    async def _reject_busy_port(self) -> None:
        host, port = self._probe_endpoint()
        if not await self._port_probe(host, port):
            return
        message = messages.port_in_use(host, port)
        raise BackendContentionError(
            message,
            state_message=messages.port_in_use_state(message),
            dialog_title=messages.PORT_BUSY_TITLE,
            dialog_message=messages.port_in_use_detail(message),
        )

    def _claim_lock(self) -> None:
        payload = BackendLockPayload(owner_pid=self._lock.owner_pid, created_at=utc_now())
        try:
            claimed = self._lock.claim(payload)
        except OSError as exc:  # policy_guard: allow-silent-handler
            logger.warning("Failed to write diagnostics backend lock %s: %s", self._lock.path, exc)
            return
        if claimed:
            return
        message = messages.lock_claimed_elsewhere(str(self._lock.path))
        raise BackendContentionError(
            message,
            state_message=message,
            dialog_title=messages.ALREADY_RUNNING_TITLE,
            dialog_message=messages.already_managed_detail(message, str(self._lock.path)),
        )

    def _record_child_pid(self, child_pid: int) -> None:
        if not self._manage_lock:
            return
        existing = self._lock.read()
        payload = BackendLockPayload(
            owner_pid=self._lock.owner_pid,
            child_pid=child_pid,
            created_at=existing.created_at if existing else utc_now(),
        )
        try:
            self._lock.write(payload)
        except OSError as exc:  # policy_guard: allow-silent-handler
            logger.warning("Failed to update diagnostics backend lock %s: %s", self._lock.path, exc)

    def _probe_endpoint(self) -> Tuple[str, int]:
        try:
            return origin_endpoint(self._api_origin)
        except ValueError as exc:  # policy_guard: allow-silent-handler
            logger.warning("Failed to parse diagnostics API origin %r: %s", self._api_origin, exc)
            return fallback_endpoint()

    async def _watch(self, process: asyncio.subprocess.Process) -> None:
        returncode = await process.wait()
        self._handle_exit(process, returncode)

    def _handle_exit(self, process: asyncio.subprocess.Process, returncode: int) -> None:
        if process is not self._process:
            return
        self._process = None
        self._watcher = None
        if self._manage_lock:
            self._lock.remove()

        exit_code, signal_name = describe_returncode(returncode)
        crashed = exit_code != 0
        reason = messages.format_crash_message(exit_code, signal_name)
        self._record_event(ProcessEventType.CRASH if crashed else ProcessEventType.EXIT, reason, exit_code)
        self._update_state(
            status=BackendLifecycleState.ERROR if crashed else BackendLifecycleState.STOPPED,
            message=reason,
            pid=None,
            last_exit_code=exit_code,
            last_exit_signal=signal_name,
        )
        if crashed:
            logger.error("%s", reason)
            self.events.publish(SupervisorEvent.BACKEND_ERROR, {"message": reason})
            self._show_dialog(messages.CRASH_TITLE, messages.crash_detail(reason), blocking=False)
        else:
            logger.info("%s", reason)

    def _handle_spawn_failure(self, message: str) -> None:
        if self._manage_lock:
            self._lock.remove()
        logger.error("Failed to launch diagnostics backend: %s", message)
        self._record_event(ProcessEventType.CRASH, message)
        self._update_state(status=BackendLifecycleState.ERROR, message=message, pid=None)
        self.events.publish(SupervisorEvent.BACKEND_ERROR, {"message": message})
        self._show_dialog(messages.SPAWN_FAILED_TITLE, messages.spawn_failed_detail(message), blocking=True)

    def _update_state(self, **changes) -> None:
        self._state = dataclasses.replace(self._state, updated_at=utc_now(), **changes)
        self.events.publish(SupervisorEvent.STATE_CHANGED, self._state)

    def _record_event(self, event_type: ProcessEventType, reason: str, exit_code: Optional[int] = None) -> None:
        event = ProcessHealthEvent(type=event_type, reason=reason, exit_code=exit_code)
        self.events.publish(SupervisorEvent.PROCESS_EVENT, event)

    def _show_dialog(self, title: str, message: str, *, blocking: bool) -> None:
        detail = DEVELOPMENT_DETAIL if self._manage_lock else None
        self._dialogs.show_error(DialogRequest(title=title, message=message, blocking=blocking, detail=detail))


__all__ = ["BackendEntryResolver", "BackendProcessSupervisor", "PortProbe", "SupervisorEvent"]
