"""User-facing text for backend lifecycle transitions."""

from typing import Optional

NOT_STARTED = "Backend not started"
STARTING = "Starting diagnostics backend..."
RUNNING = "Diagnostics backend running"
STOPPED = "Backend stopped"
SPAWNED = "Backend process spawned"
STOPPED_BY_APPLICATION = "Backend process stopped by application"
ENTRY_MISSING = "Backend entry point is missing"

ENTRY_MISSING_TITLE = "Backend unavailable"
ENTRY_MISSING_DETAIL = (
    "The diagnostics backend could not be located. Check that the backend has been built before launching the desktop app."
)
ALREADY_RUNNING_TITLE = "Diagnostics backend already running"
PORT_BUSY_TITLE = "Diagnostics backend unavailable"
SPAWN_FAILED_TITLE = "Diagnostics backend error"
CRASH_TITLE = "Diagnostics backend stopped"


def format_crash_message(exit_code: Optional[int], signal_name: Optional[str]) -> str:
    if exit_code is not None:
        return f"Backend process exited with code {exit_code}"
    if signal_name:
        return f"Backend process terminated due to signal {signal_name}"
    return "Backend process exited unexpectedly"


def already_managed(owner_pid: int) -> str:
    return f"Diagnostics backend already managed by PID {owner_pid}."


def already_managed_detail(message: str, lock_path: str) -> str:
    return f"{message} Stop the existing session or remove the lock file at {lock_path} before retrying."


def lock_claimed_elsewhere(lock_path: str) -> str:
    return f"Diagnostics backend lock at {lock_path} was claimed by another instance."


def port_in_use(host: str, port: int) -> str:
    return f"Diagnostics backend port {host}:{port} is already in use."


def port_in_use_state(message: str) -> str:
    return f"{message} Stop the other process before launching the desktop shell."


def port_in_use_detail(message: str) -> str:
    return f"{message} Stop the conflicting process or change DIAGNOSTICS_PORT before retrying."


def spawn_failed_detail(message: str) -> str:
    return f"{message}. The backend process could not be started."


def crash_detail(reason: str) -> str:
    return (
        f"{reason}. The application will continue running, but diagnostics data may be stale "
        "until the backend is restarted."
    )
