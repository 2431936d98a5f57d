"""Track outages of the OS secure-storage facility.

While an outage is active, requests that needed secure storage are recorded
by id so the UI can tell the user which actions were blocked.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

from .data_models.timestamps import optional_iso, utc_now
from .events import EventBus, Unsubscribe

logger = logging.getLogger(__name__)


class SafeStorageStatus(Enum):
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


class OutageEvent(Enum):
    STATE_CHANGED = "state-changed"


@dataclass(frozen=True)
class SafeStorageOutageState:
    is_active: bool = False
    started_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    blocked_request_ids: Tuple[str, ...] = ()

    def to_payload(self) -> Dict[str, Any]:
        return {
            "isActive": self.is_active,
            "startedAt": optional_iso(self.started_at),
            "resolvedAt": optional_iso(self.resolved_at),
            "blockedRequestIds": list(self.blocked_request_ids),
        }


class SafeStorageOutageService:
    def __init__(
        self,
        *,
        now: Callable[[], datetime] = utc_now,
        initial_state: Optional[SafeStorageOutageState] = None,
    ) -> None:
        self._now = now
        self._state = initial_state or SafeStorageOutageState()
        self._events: EventBus[OutageEvent] = EventBus(OutageEvent)

    def get_state(self) -> SafeStorageOutageState:
        return self._state

    def get_status(self) -> SafeStorageStatus:
        return SafeStorageStatus.UNAVAILABLE if self._state.is_active else SafeStorageStatus.AVAILABLE

    def is_outage_active(self) -> bool:
        return self._state.is_active

    def set_availability(self, is_available: bool) -> SafeStorageOutageState:
        """Move between available and unavailable; repeating the current status is a no-op."""
        if is_available != self._state.is_active:
            return self._state

        timestamp = self._now()
        if is_available:
            next_state = dataclasses.replace(self._state, is_active=False, resolved_at=timestamp, blocked_request_ids=())
            logger.info("Secure storage available again")
        else:
            next_state = SafeStorageOutageState(is_active=True, started_at=timestamp)
            logger.warning("Secure storage outage started")
        self._update_state(next_state)
        return self._state

    def start_outage(self) -> SafeStorageOutageState:
        return self.set_availability(False)

    def resolve_outage(self) -> SafeStorageOutageState:
        return self.set_availability(True)

    def record_blocked_request(self, request_id: str) -> SafeStorageOutageState:
        """Remember a request blocked by the outage; ignored when inactive, blank or already recorded."""
        if not self._state.is_active or not isinstance(request_id, str) or not request_id.strip():
            return self._state
        if request_id in self._state.blocked_request_ids:
            return self._state
        self._update_state(
            dataclasses.replace(self._state, blocked_request_ids=(*self._state.blocked_request_ids, request_id))
        )
        return self._state

    def on_state_change(self, listener: Callable[[SafeStorageOutageState], None]) -> Unsubscribe:
        return self._events.subscribe(OutageEvent.STATE_CHANGED, listener)

    def _update_state(self, next_state: SafeStorageOutageState) -> None:
        self._state = next_state
        self._events.publish(OutageEvent.STATE_CHANGED, next_state)


__all__ = ["SafeStorageOutageService", "SafeStorageOutageState", "SafeStorageStatus"]
