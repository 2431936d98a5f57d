"""Errors raised while resolving diagnostics settings."""

from __future__ import annotations

from typing import Any


class ConfigurationError(RuntimeError):
    """A diagnostics setting is missing, malformed or out of range."""

    @classmethod
    def invalid_format(cls, variable: str, raw_value: str, expected: str) -> "ConfigurationError":
        return cls(f"Environment variable {variable!r} must be {expected} (got {raw_value!r})")

    @classmethod
    def missing_value(cls, variable: str) -> "ConfigurationError":
        return cls(f"Required environment variable {variable!r} is not set")

    @classmethod
    def invalid_value(cls, variable: str, value: Any, reason: str) -> "ConfigurationError":
        return cls(f"Environment variable {variable!r} has unsupported value {value!r}: {reason}")


__all__ = ["ConfigurationError"]
