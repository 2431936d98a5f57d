"""Exception classes for the diagnostics subsystem.

All custom exceptions inherit from ``DiagnosticsError`` so callers can catch
the whole family at the boundary of the desktop shell.

Exception classes support two patterns:
1. No-argument raise: raise BackendSpawnError()
2. Contextual attributes: err = BackendContentionError(owner_pid=123); raise err
"""

from typing import Any


class DiagnosticsError(Exception):
    """Base exception for all diagnostics errors.

    Supports keyword arguments that are stored as attributes for debugging.
    """

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        if not message:
            message = self.__class__.__doc__ or "Diagnostics error occurred"
        super().__init__(message)
        for key, value in kwargs.items():
            setattr(self, key, value)


class BackendContentionError(DiagnosticsError):
    """Another desktop instance or process already owns the diagnostics backend."""


class BackendSpawnError(DiagnosticsError):
    """The diagnostics backend process could not be started."""


class DiagnosticsDirectoryError(DiagnosticsError):
    """The diagnostics directory could not be created."""


class PreferencesConcurrencyError(DiagnosticsError):
    """Diagnostics preferences have been modified since the last read."""

    code = "DIAGNOSTICS_PREFERENCES_STALE"


class PreferencesVaultNotReadyError(DiagnosticsError):
    """Diagnostics preference vault has not been bootstrapped."""


class PreferenceStoreError(DiagnosticsError):
    """Diagnostics preference store could not be read or written."""


__all__ = [
    "BackendContentionError",
    "BackendSpawnError",
    "DiagnosticsDirectoryError",
    "DiagnosticsError",
    "PreferenceStoreError",
    "PreferencesConcurrencyError",
    "PreferencesVaultNotReadyError",
]
