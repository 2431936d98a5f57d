"""Configuration helpers for the diagnostics subsystem."""

from .errors import ConfigurationError
from .runtime import env_bool, env_float, env_int, env_seconds, env_str, reset_default_values
from .settings import DEFAULT_API_ORIGIN, DiagnosticsSettings

__all__ = [
    "ConfigurationError",
    "DEFAULT_API_ORIGIN",
    "DiagnosticsSettings",
    "env_bool",
    "env_float",
    "env_int",
    "env_seconds",
    "env_str",
    "reset_default_values",
]
