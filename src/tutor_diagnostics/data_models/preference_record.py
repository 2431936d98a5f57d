"""Diagnostics preference record and the update request applied to it."""

from __future__ import annotations

import dataclasses
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from .consent_event import (
    CONSENT_EVENT_WINDOW,
    ConsentEventInput,
    ConsentEventLog,
    append_consent_event,
    coerce_consent_event,
    normalize_consent_events,
)
from .storage_health import StorageHealthAlert
from .timestamps import TimestampInput, parse_iso, to_iso, utc_now

DEFAULT_CONSENT_SUMMARY = "Remote providers are disabled"
MAX_CONSENT_SUMMARY_LENGTH = 240

_BOOLEAN_FIELDS = (
    ("highContrastEnabled", "high_contrast_enabled"),
    ("reducedMotionEnabled", "reduced_motion_enabled"),
    ("remoteProvidersEnabled", "remote_providers_enabled"),
)


class UpdatedBy(Enum):
    """Which layer of the application wrote the record last"""

    RENDERER = "renderer"
    BACKEND = "backend"
    MAIN = "main"


def _validate_consent_summary(summary: Any) -> None:
    if not isinstance(summary, str):
        raise TypeError("consent_summary must be a string")
    if not 1 <= len(summary) <= MAX_CONSENT_SUMMARY_LENGTH:
        raise ValueError(f"consent_summary must be 1..{MAX_CONSENT_SUMMARY_LENGTH} characters")


@dataclass(frozen=True)
class DiagnosticsPreferenceRecord:
    """The single per-installation diagnostics preference record."""

    id: str
    high_contrast_enabled: bool
    reduced_motion_enabled: bool
    remote_providers_enabled: bool
    last_updated_at: datetime
    updated_by: UpdatedBy
    consent_summary: str
    consent_events: Tuple[ConsentEventLog, ...] = ()
    storage_health: Optional[StorageHealthAlert] = None

    def __post_init__(self):
        for _, attribute in _BOOLEAN_FIELDS:
            if not isinstance(getattr(self, attribute), bool):
                raise TypeError(f"{attribute} must be a boolean")
        if not isinstance(self.updated_by, UpdatedBy):
            raise TypeError(f"updated_by must be an UpdatedBy, got {self.updated_by!r}")
        _validate_consent_summary(self.consent_summary)
        if len(self.consent_events) > CONSENT_EVENT_WINDOW:
            raise ValueError(f"At most {CONSENT_EVENT_WINDOW} consent events are retained")

    @classmethod
    def create_default(cls, *, now: Optional[datetime] = None) -> "DiagnosticsPreferenceRecord":
        return cls(
            id=str(uuid.uuid4()),
            high_contrast_enabled=False,
            reduced_motion_enabled=False,
            remote_providers_enabled=False,
            last_updated_at=now or utc_now(),
            updated_by=UpdatedBy.MAIN,
            consent_summary=DEFAULT_CONSENT_SUMMARY,
        )

    def with_storage_health(self, alert: Optional[StorageHealthAlert]) -> "DiagnosticsPreferenceRecord":
        return dataclasses.replace(self, storage_health=alert)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "highContrastEnabled": self.high_contrast_enabled,
            "reducedMotionEnabled": self.reduced_motion_enabled,
            "remoteProvidersEnabled": self.remote_providers_enabled,
            "lastUpdatedAt": to_iso(self.last_updated_at),
            "updatedBy": self.updated_by.value,
            "consentSummary": self.consent_summary,
            "consentEvents": [event.to_payload() for event in self.consent_events],
            "storageHealth": self.storage_health.to_payload() if self.storage_health else None,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "DiagnosticsPreferenceRecord":
        """Parse a stored or wire record, filling the optional fields with defaults.

        Raises:
            ValueError: If a required field is missing or a value is out of range.
            TypeError: If a field has the wrong type.
        """
        if not isinstance(payload, Mapping):
            raise TypeError("Diagnostics preference record must be an object")
        try:
            last_updated_at = parse_iso(payload["lastUpdatedAt"])
            updated_by = UpdatedBy(payload["updatedBy"])
            consent_summary = payload["consentSummary"]
        except KeyError as exc:
            raise ValueError(f"Diagnostics preference record missing field {exc.args[0]!r}") from exc

        raw_events = payload.get("consentEvents") or []
        if len(raw_events) > CONSENT_EVENT_WINDOW:
            raise ValueError(f"At most {CONSENT_EVENT_WINDOW} consent events are retained")
        raw_health = payload.get("storageHealth")

        record_id = str(payload.get("id") or uuid.uuid4())
        uuid.UUID(record_id)
        return cls(
            id=record_id,
            high_contrast_enabled=payload.get("highContrastEnabled", False),
            reduced_motion_enabled=payload.get("reducedMotionEnabled", False),
            remote_providers_enabled=payload.get("remoteProvidersEnabled", False),
            last_updated_at=last_updated_at,
            updated_by=updated_by,
            consent_summary=consent_summary,
            consent_events=normalize_consent_events(raw_events),
            storage_health=StorageHealthAlert.from_payload(raw_health) if raw_health else None,
        )


@dataclass(frozen=True)
class PreferenceUpdate:
    """A full replacement of the user-editable preference fields."""

    high_contrast_enabled: bool
    reduced_motion_enabled: bool
    remote_providers_enabled: bool
    consent_summary: str
    updated_by: UpdatedBy
    expected_last_updated_at: Optional[TimestampInput] = None
    consent_event: Optional[ConsentEventLog] = field(default=None)

    def __post_init__(self):
        for _, attribute in _BOOLEAN_FIELDS:
            if not isinstance(getattr(self, attribute), bool):
                raise TypeError(f"{attribute} must be a boolean")
        if not isinstance(self.updated_by, UpdatedBy):
            raise TypeError("Diagnostics preference update requires a valid updatedBy identifier")
        if not isinstance(self.consent_summary, str) or not self.consent_summary.strip():
            raise TypeError("consent_summary must be a non-empty string")
        _validate_consent_summary(self.consent_summary)
        expected = self.expected_last_updated_at
        if expected is not None and not isinstance(expected, (str, datetime)):
            raise TypeError("expected_last_updated_at must be a string or datetime when provided")
        if self.consent_event is not None and not isinstance(self.consent_event, ConsentEventLog):
            object.__setattr__(self, "consent_event", coerce_consent_event(self.consent_event))

    @classmethod
    def from_payload(cls, payload: Any) -> "PreferenceUpdate":
        """Validate an update request arriving from the UI layer.

        Raises:
            TypeError: If the payload is not an object or a field has the wrong type.
            ValueError: If the consent event is malformed.
        """
        if not isinstance(payload, Mapping):
            raise TypeError("Diagnostics preference update payload must be an object")
        try:
            updated_by = UpdatedBy(payload.get("updatedBy"))
        except ValueError as exc:
            raise TypeError("Diagnostics preference update requires a valid updatedBy identifier") from exc

        values: Dict[str, Any] = {}
        for wire_name, attribute in _BOOLEAN_FIELDS:
            value = payload.get(wire_name)
            if not isinstance(value, bool):
                raise TypeError(f"{wire_name} must be a boolean")
            values[attribute] = value

        summary = payload.get("consentSummary")
        if not isinstance(summary, str) or not summary.strip():
            raise TypeError("consentSummary must be a non-empty string")

        raw_event: Optional[ConsentEventInput] = payload.get("consentEvent")
        return cls(
            consent_summary=summary.strip(),
            updated_by=updated_by,
            expected_last_updated_at=payload.get("expectedLastUpdatedAt"),
            consent_event=coerce_consent_event(raw_event) if raw_event else None,
            **values,
        )


def apply_update(
    record: DiagnosticsPreferenceRecord, update: PreferenceUpdate, *, updated_at: datetime
) -> DiagnosticsPreferenceRecord:
    """Return *record* with *update* applied and its storage alert cleared."""
    consent_events = record.consent_events
    if update.consent_event is not None:
        consent_events = append_consent_event(consent_events, update.consent_event)

    return dataclasses.replace(
        record,
        high_contrast_enabled=update.high_contrast_enabled,
        reduced_motion_enabled=update.reduced_motion_enabled,
        remote_providers_enabled=update.remote_providers_enabled,
        consent_summary=update.consent_summary,
        updated_by=update.updated_by,
        last_updated_at=updated_at,
        consent_events=consent_events,
        storage_health=None,
    )


__all__ = [
    "DEFAULT_CONSENT_SUMMARY",
    "DiagnosticsPreferenceRecord",
    "PreferenceUpdate",
    "UpdatedBy",
    "apply_update",
]
