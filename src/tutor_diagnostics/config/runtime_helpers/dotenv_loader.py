"""Parser for ``.env`` files used as configuration fallbacks."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional, Tuple

from ..errors import ConfigurationError

_EXPORT_PREFIX = "export "
_QUOTES = ("'", '"')


class DotenvLoader:
    """Reads ``KEY=value`` pairs; comments, blank lines and lines without ``=`` are ignored."""

    @staticmethod
    def load_from_file(path: Path) -> Dict[str, str]:
        """
        Args:
            path: Candidate .env file

        Returns:
            Declared variables, or an empty dict when the file does not exist

        Raises:
            ConfigurationError: If the file exists but cannot be read
        """
        if not path.is_file():
            return {}
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigurationError(f"Unable to read settings file {path}: {exc}") from exc

        declared: Dict[str, str] = {}
        for line in lines:
            pair = DotenvLoader.parse_line(line)
            if pair is not None:
                declared[pair[0]] = pair[1]
        return declared

    @staticmethod
    def parse_line(line: str) -> Optional[Tuple[str, str]]:
        text = line.strip()
        if text.startswith(_EXPORT_PREFIX):
            text = text[len(_EXPORT_PREFIX) :].lstrip()
        if not text or text.startswith("#"):
            return None
        key, separator, value = text.partition("=")
        key = key.strip()
        if not separator or not key:
            return None
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in _QUOTES:
            value = value[1:-1]
        return key, value


__all__ = ["DotenvLoader"]
