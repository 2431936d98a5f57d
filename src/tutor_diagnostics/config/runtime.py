"""Environment lookups with ``.env`` fallbacks for the diagnostics settings.

Process environment always wins. A variable that is unset or blank falls back
to the first ``.env`` candidate declaring it, then to the caller's default.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Dict, Optional, TypeVar

from .errors import ConfigurationError

T = TypeVar("T")

_BOOLEAN_WORDS = {
    "1": True,
    "true": True,
    "yes": True,
    "on": True,
    "0": False,
    "false": False,
    "no": False,
    "off": False,
}

_DOTENV_CANDIDATES = (Path(".env"), Path.home() / ".llm-tutor" / ".env")

_DEFAULT_VALUES: Optional[Dict[str, str]] = None


def _load_default_values() -> Dict[str, str]:
    from .runtime_helpers import DotenvLoader

    global _DEFAULT_VALUES
    if _DEFAULT_VALUES is None:
        merged: Dict[str, str] = {}
        for candidate in _DOTENV_CANDIDATES:
            for key, value in DotenvLoader.load_from_file(candidate).items():
                merged.setdefault(key, value)
        _DEFAULT_VALUES = merged
    return _DEFAULT_VALUES


def reset_default_values(values: Optional[Dict[str, str]] = None) -> None:
    """Drop cached .env defaults, optionally replacing them with *values*."""
    global _DEFAULT_VALUES
    _DEFAULT_VALUES = dict(values) if values is not None else None


def _lookup(name: str, *, strip: bool = True) -> Optional[str]:
    for raw in (os.getenv(name), _load_default_values().get(name)):
        if raw is None:
            continue
        value = raw.strip() if strip else raw
        if value:
            return value
    return None


def _convert(name: str, or_value: Optional[T], required: bool, parse: Callable[[str], T], expected: str) -> Optional[T]:
    raw = _lookup(name)
    if raw is None:
        if required and or_value is None:
            raise ConfigurationError.missing_value(name)
        return or_value
    try:
        return parse(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError.invalid_format(name, raw, expected) from exc


def env_str(name: str, or_value: Optional[str] = None, *, required: bool = False, strip: bool = True) -> Optional[str]:
    value = _lookup(name, strip=strip)
    if value is not None:
        return value
    if required and or_value is None:
        raise ConfigurationError.missing_value(name)
    return or_value


def env_int(name: str, or_value: Optional[int] = None, *, required: bool = False) -> Optional[int]:
    return _convert(name, or_value, required, int, "an integer")


def env_float(name: str, or_value: Optional[float] = None, *, required: bool = False) -> Optional[float]:
    return _convert(name, or_value, required, float, "a number")


def _parse_bool(raw: str) -> bool:
    try:
        return _BOOLEAN_WORDS[raw.lower()]
    except KeyError as exc:
        raise ValueError(raw) from exc


def env_bool(name: str, or_value: Optional[bool] = None, *, required: bool = False) -> Optional[bool]:
    return _convert(name, or_value, required, _parse_bool, f"one of {sorted(_BOOLEAN_WORDS)}")


def env_seconds(name: str, or_value: Optional[float] = None, *, required: bool = False) -> Optional[float]:
    """Read a non-negative duration in seconds."""
    value = env_float(name, or_value, required=required)
    if value is not None and value < 0:
        raise ConfigurationError.invalid_value(name, value, "durations cannot be negative")
    return value


__all__ = [
    "env_bool",
    "env_float",
    "env_int",
    "env_seconds",
    "env_str",
    "reset_default_values",
]
