"""Remote-provider consent transitions retained on the preference record."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Tuple, Union

from .timestamps import parse_iso, to_iso

CONSENT_EVENT_WINDOW = 3
MAX_NOTICE_VERSION_LENGTH = 120


class ConsentActor(Enum):
    LEARNER = "learner"
    MAINTAINER = "maintainer"


class ConsentState(Enum):
    DISABLED = "disabled"
    ENABLED = "enabled"


class ConsentChannel(Enum):
    UI_TOGGLE = "ui-toggle"
    CONFIG_MIGRATION = "config-migration"


@dataclass(frozen=True)
class ConsentEventLog:
    """A single consent transition; it must actually change state."""

    event_id: str
    occurred_at: datetime
    actor: ConsentActor
    previous_state: ConsentState
    next_state: ConsentState
    notice_version: str
    channel: ConsentChannel

    def __post_init__(self):
        uuid.UUID(str(self.event_id))
        if self.previous_state == self.next_state:
            raise ValueError("Consent transition must change state")
        if not 1 <= len(self.notice_version) <= MAX_NOTICE_VERSION_LENGTH:
            raise ValueError(f"notice_version must be 1..{MAX_NOTICE_VERSION_LENGTH} characters")

    def to_payload(self) -> Dict[str, Any]:
        return {
            "eventId": self.event_id,
            "occurredAt": to_iso(self.occurred_at),
            "actor": self.actor.value,
            "previousState": self.previous_state.value,
            "nextState": self.next_state.value,
            "noticeVersion": self.notice_version,
            "channel": self.channel.value,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ConsentEventLog":
        try:
            return cls(
                event_id=str(payload["eventId"]),
                occurred_at=parse_iso(payload["occurredAt"]),
                actor=ConsentActor(payload["actor"]),
                previous_state=ConsentState(payload["previousState"]),
                next_state=ConsentState(payload["nextState"]),
                notice_version=str(payload["noticeVersion"]),
                channel=ConsentChannel(payload["channel"]),
            )
        except KeyError as exc:
            raise ValueError(f"Consent event missing field {exc.args[0]!r}") from exc


ConsentEventInput = Union[ConsentEventLog, Mapping[str, Any]]


def coerce_consent_event(event: ConsentEventInput) -> ConsentEventLog:
    if isinstance(event, ConsentEventLog):
        return event
    return ConsentEventLog.from_payload(event)


def normalize_consent_events(events: Iterable[ConsentEventInput]) -> Tuple[ConsentEventLog, ...]:
    """Parse, order by occurrence and keep only the most recent window."""
    parsed = sorted((coerce_consent_event(event) for event in events), key=lambda event: event.occurred_at)
    return tuple(parsed[-CONSENT_EVENT_WINDOW:])


def append_consent_event(
    events: Iterable[ConsentEventInput], additional: ConsentEventInput
) -> Tuple[ConsentEventLog, ...]:
    return normalize_consent_events([*events, additional])


__all__ = [
    "CONSENT_EVENT_WINDOW",
    "ConsentActor",
    "ConsentChannel",
    "ConsentEventInput",
    "ConsentEventLog",
    "ConsentState",
    "append_consent_event",
    "coerce_consent_event",
    "normalize_consent_events",
]
