"""Typed publish/subscribe used to fan diagnostics notifications out to the UI layer."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Dict, Generic, List, TypeVar

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)
Listener = Callable[[Any], None]
Unsubscribe = Callable[[], None]


class DiagnosticsEvent(Enum):
    """Notifications the diagnostics manager publishes to the UI layer."""

    BACKEND_STATE_CHANGED = "backend-state-changed"
    PROCESS_EVENT = "process-event"
    RETENTION_WARNING = "retention-warning"
    BACKEND_ERROR = "backend-error"
    SNAPSHOT_UPDATED = "snapshot-updated"
    PREFERENCES_UPDATED = "preferences-updated"
    PREFERENCES_STORAGE_HEALTH = "preferences-storage-health"


class EventBus(Generic[E]):
    """Synchronous fan-out keyed by a closed enum of event names.

    Listeners run in subscription order. A listener that raises is logged and
    does not prevent delivery to the remaining listeners.
    """

    def __init__(self, event_type: type[E]) -> None:
        self._event_type = event_type
        self._listeners: Dict[E, List[Listener]] = {}

    def subscribe(self, event: E, listener: Listener) -> Unsubscribe:
        """Register *listener* for *event* and return a callable that removes it."""
        if not isinstance(event, self._event_type):
            raise TypeError(f"{event!r} is not a {self._event_type.__name__}")
        self._listeners.setdefault(event, []).append(listener)

        def _unsubscribe() -> None:
            listeners = self._listeners.get(event)
            if listeners and listener in listeners:
                listeners.remove(listener)

        return _unsubscribe

    def publish(self, event: E, payload: Any = None) -> None:
        for listener in list(self._listeners.get(event, ())):
            try:
                listener(payload)
            except Exception:  # policy_guard: allow-broad-except
                logger.exception("Listener for %s failed", event.value)

    def listener_count(self, event: E) -> int:
        return len(self._listeners.get(event, ()))

    def clear(self) -> None:
        self._listeners.clear()


__all__ = ["DiagnosticsEvent", "EventBus", "Listener", "Unsubscribe"]
