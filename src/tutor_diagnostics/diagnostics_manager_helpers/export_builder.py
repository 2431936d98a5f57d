"""Build diagnostics export payloads from a server response or a cached snapshot."""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Mapping, Optional
from urllib.parse import unquote

import orjson

from ..data_models import NDJSON_CONTENT_TYPE, DiagnosticsExportPayload, DiagnosticsSnapshot
from ..data_models.timestamps import filename_stamp, parse_iso, utc_now
from .api_client import ApiResponse

logger = logging.getLogger(__name__)

_FILENAME_PATTERN = re.compile(r"filename\*?=(?:UTF-8''|\")?([^\";]+)", re.IGNORECASE)


def export_filename(generated_at: datetime) -> str:
    return f"diagnostics-snapshot-{filename_stamp(generated_at)}.jsonl"


def filename_from_content_disposition(header: Optional[str]) -> Optional[str]:
    if not header:
        return None
    match = _FILENAME_PATTERN.search(header)
    if not match:
        return None
    raw = match.group(1).strip()
    try:
        return unquote(raw, errors="strict")
    except UnicodeDecodeError:  # policy_guard: allow-silent-handler
        logger.warning("Failed to decode diagnostics export filename %r", raw)
        return raw


def snapshot_generated_at(snapshot: Mapping[str, object]) -> datetime:
    raw = snapshot.get("generatedAt")
    if isinstance(raw, str):
        try:
            return parse_iso(raw)
        except ValueError:  # policy_guard: allow-silent-handler
            logger.debug("Snapshot generatedAt %r is not a timestamp", raw)
    return utc_now()


def export_from_response(response: ApiResponse) -> Optional[DiagnosticsExportPayload]:
    """Return the export the server produced, or None if it sent nothing usable."""
    body = response.text()
    if not body.strip():
        return None
    filename = filename_from_content_disposition(response.header("content-disposition")) or export_filename(utc_now())
    return DiagnosticsExportPayload(
        filename=filename,
        content_type=response.header("content-type") or NDJSON_CONTENT_TYPE,
        body=body,
    )


def fallback_export(snapshot: Optional[DiagnosticsSnapshot]) -> Optional[DiagnosticsExportPayload]:
    """Serialise a cached snapshot as a single NDJSON line."""
    if snapshot is None:
        return None
    return DiagnosticsExportPayload(
        filename=export_filename(snapshot_generated_at(snapshot)),
        content_type=NDJSON_CONTENT_TYPE,
        body=orjson.dumps(snapshot).decode() + "\n",
    )


__all__ = [
    "export_filename",
    "export_from_response",
    "fallback_export",
    "filename_from_content_disposition",
    "snapshot_generated_at",
]
