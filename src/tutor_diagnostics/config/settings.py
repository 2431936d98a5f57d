"""Diagnostics subsystem settings resolved from the environment."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..http_utils import ensure_http_url
from .errors import ConfigurationError
from .runtime import env_int, env_seconds, env_str

DEFAULT_API_ORIGIN = "http://127.0.0.1:4319"
DEFAULT_DATA_DIRECTORY = Path.home() / ".llm-tutor"
DIAGNOSTICS_SUBDIRECTORY = "diagnostics"
BACKEND_LOCK_FILENAME = "backend.dev.lock"
PREFERENCES_FILENAME = "diagnostics-preferences.json"

DEFAULT_REQUEST_TIMEOUT_SECONDS = 5.0
DEFAULT_SYNC_MAX_ATTEMPTS = 4
DEFAULT_SHUTDOWN_SYNC_TIMEOUT_SECONDS = 10.0

_PRODUCTION_MODE = "production"
_KNOWN_MODES = {"development", _PRODUCTION_MODE}


@dataclass(frozen=True)
class DiagnosticsSettings:
    """Immutable view of the knobs the diagnostics subsystem reads at startup."""

    data_directory: Path
    api_origin: str = DEFAULT_API_ORIGIN
    lock_path_override: Optional[Path] = None
    mode: str = "development"
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS
    sync_max_attempts: int = DEFAULT_SYNC_MAX_ATTEMPTS
    shutdown_sync_timeout_seconds: float = DEFAULT_SHUTDOWN_SYNC_TIMEOUT_SECONDS

    @property
    def diagnostics_directory(self) -> Path:
        return self.data_directory / DIAGNOSTICS_SUBDIRECTORY

    @property
    def lock_path(self) -> Path:
        if self.lock_path_override is not None:
            return self.lock_path_override
        return self.diagnostics_directory / BACKEND_LOCK_FILENAME

    @property
    def preferences_path(self) -> Path:
        return self.diagnostics_directory / PREFERENCES_FILENAME

    @property
    def manage_backend_lock(self) -> bool:
        """Packaged builds trust the installer and skip cross-instance arbitration."""
        return self.mode != _PRODUCTION_MODE

    @classmethod
    def from_env(cls) -> "DiagnosticsSettings":
        """Build settings from environment variables and .env fallbacks.

        Raises:
            ConfigurationError: When a variable is present but malformed.
        """
        raw_origin = env_str("DIAGNOSTICS_API_ORIGIN", DEFAULT_API_ORIGIN)
        try:
            api_origin = ensure_http_url(raw_origin).rstrip("/")
        except ValueError as exc:
            raise ConfigurationError.invalid_format("DIAGNOSTICS_API_ORIGIN", raw_origin, "an http(s) origin") from exc

        raw_data_dir = env_str("LLM_TUTOR_DATA_DIR")
        data_directory = Path(raw_data_dir).expanduser() if raw_data_dir else DEFAULT_DATA_DIRECTORY

        raw_lock = env_str("LLM_TUTOR_DEV_BACKEND_LOCK")
        lock_override = Path(raw_lock).expanduser().resolve() if raw_lock else None

        mode = env_str("LLM_TUTOR_MODE", "development").lower()
        if mode not in _KNOWN_MODES:
            raise ConfigurationError.invalid_value("LLM_TUTOR_MODE", mode, f"Expected one of {sorted(_KNOWN_MODES)}")

        sync_attempts = env_int("DIAGNOSTICS_SYNC_MAX_ATTEMPTS", DEFAULT_SYNC_MAX_ATTEMPTS)
        if sync_attempts < 1:
            raise ConfigurationError.invalid_value("DIAGNOSTICS_SYNC_MAX_ATTEMPTS", sync_attempts, "Must be at least 1")

        return cls(
            data_directory=data_directory,
            api_origin=api_origin,
            lock_path_override=lock_override,
            mode=mode,
            request_timeout_seconds=env_seconds("DIAGNOSTICS_REQUEST_TIMEOUT_SECONDS", DEFAULT_REQUEST_TIMEOUT_SECONDS),
            sync_max_attempts=sync_attempts,
            shutdown_sync_timeout_seconds=env_seconds(
                "DIAGNOSTICS_SHUTDOWN_SYNC_TIMEOUT_SECONDS", DEFAULT_SHUTDOWN_SYNC_TIMEOUT_SECONDS
            ),
        )


__all__ = ["DiagnosticsSettings", "DEFAULT_API_ORIGIN"]
