"""Helpers for the backend process supervisor."""

from .dialogs import DialogRequest, ErrorDialogPresenter, LoggingDialogPresenter
from .liveness import is_process_alive
from .lock_file import BackendLockFile
from .port_probe import is_port_busy
from .process_launcher import describe_returncode, launch_backend, terminate_process

__all__ = [
    "BackendLockFile",
    "DialogRequest",
    "ErrorDialogPresenter",
    "LoggingDialogPresenter",
    "describe_returncode",
    "is_port_busy",
    "is_process_alive",
    "launch_backend",
    "terminate_process",
]
