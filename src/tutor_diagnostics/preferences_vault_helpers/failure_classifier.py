"""Map persistence failures onto storage health reasons.

Structured signals win: an explicit ``reason`` attribute, then the OS errno,
then decoder exceptions. Keyword sniffing of the message is only a fallback
for stores that raise opaque errors, and it is inherently fragile.
"""

from __future__ import annotations

import errno
import json
from typing import Optional

import orjson

from ..data_models import StorageFailureReason

_PERMISSION_ERRNOS = frozenset({errno.EACCES, errno.EPERM, errno.EROFS})
_DISK_FULL_ERRNOS = frozenset(code for code in (errno.ENOSPC, getattr(errno, "EDQUOT", None)) if code is not None)
_DECODE_ERRORS = (json.JSONDecodeError, orjson.JSONDecodeError, UnicodeDecodeError)

_MESSAGE_RULES = (
    (StorageFailureReason.PERMISSION_DENIED, ("permission", "eacces")),
    (StorageFailureReason.DISK_FULL, ("disk", "space", "enospc")),
    (StorageFailureReason.CORRUPTED, ("corrupt",)),
)


def classify_storage_failure(error: BaseException) -> StorageFailureReason:
    reason = _classify_structured(error, depth=0)
    if reason is not None:
        return reason
    return _classify_message(format_failure_message(error, ""))


def format_failure_message(error: BaseException, fallback: str = "Unknown error") -> str:
    message = str(error).strip()
    return message or fallback


def _classify_structured(error: BaseException, *, depth: int) -> Optional[StorageFailureReason]:
    explicit = getattr(error, "reason", None)
    if isinstance(explicit, StorageFailureReason):
        return explicit
    if isinstance(error, PermissionError):
        return StorageFailureReason.PERMISSION_DENIED
    if isinstance(error, OSError) and error.errno is not None:
        if error.errno in _PERMISSION_ERRNOS:
            return StorageFailureReason.PERMISSION_DENIED
        if error.errno in _DISK_FULL_ERRNOS:
            return StorageFailureReason.DISK_FULL
    if isinstance(error, _DECODE_ERRORS):
        return StorageFailureReason.CORRUPTED

    cause = error.__cause__
    if cause is not None and depth < 3:
        return _classify_structured(cause, depth=depth + 1)
    return None


def _classify_message(message: str) -> StorageFailureReason:
    lowered = message.lower()
    for reason, keywords in _MESSAGE_RULES:
        if any(keyword in lowered for keyword in keywords):
            return reason
    return StorageFailureReason.UNKNOWN


__all__ = ["classify_storage_failure", "format_failure_message"]
