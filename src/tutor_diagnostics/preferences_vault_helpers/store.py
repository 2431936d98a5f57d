"""Backing stores for the diagnostics preference record."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

import orjson

from ..data_models import StorageFailureReason
from ..exceptions import PreferenceStoreError

logger = logging.getLogger(__name__)

RECORD_KEY = "record"

RecordPayload = Dict[str, Any]


class PreferenceStore(Protocol):
    """Key-value persistence for the single preference record payload."""

    async def get(self) -> Optional[RecordPayload]: ...

    async def set(self, value: RecordPayload) -> None: ...


class JsonFilePreferenceStore:
    """Stores ``{"record": {...}}`` in a JSON file, written atomically off the event loop."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    async def get(self) -> Optional[RecordPayload]:
        return await asyncio.to_thread(self._read)

    async def set(self, value: RecordPayload) -> None:
        await asyncio.to_thread(self._write, value)

    def _read(self) -> Optional[RecordPayload]:
        if not self.path.exists():
            return None
        document = orjson.loads(self.path.read_bytes())
        if not isinstance(document, dict):
            raise PreferenceStoreError(
                f"Preference store {self.path} is corrupted: expected an object",
                reason=StorageFailureReason.CORRUPTED,
            )
        record = document.get(RECORD_KEY)
        if record is not None and not isinstance(record, dict):
            raise PreferenceStoreError(
                f"Preference store {self.path} is corrupted: {RECORD_KEY!r} is not an object",
                reason=StorageFailureReason.CORRUPTED,
            )
        return record

    def _write(self, value: RecordPayload) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        with tmp_path.open("wb") as handle:
            handle.write(orjson.dumps({RECORD_KEY: value}, option=orjson.OPT_INDENT_2))
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, self.path)
        logger.debug("Persisted diagnostics preferences to %s", self.path)


__all__ = ["JsonFilePreferenceStore", "PreferenceStore", "RECORD_KEY", "RecordPayload"]
