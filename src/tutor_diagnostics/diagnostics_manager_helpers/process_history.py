"""Bounded history of backend process events and the retention warning list."""

from __future__ import annotations

from collections import deque
from typing import Deque, List, Optional, Tuple

from ..data_models import ProcessHealthEvent

MAX_PROCESS_EVENTS = 50


class ProcessEventHistory:
    """Ring buffer keeping the most recent process events, oldest first."""

    def __init__(self, max_events: int = MAX_PROCESS_EVENTS) -> None:
        self._events: Deque[ProcessHealthEvent] = deque(maxlen=max_events)

    def record(self, event: ProcessHealthEvent) -> None:
        self._events.append(event)

    def snapshot(self) -> Tuple[ProcessHealthEvent, ...]:
        return tuple(self._events)

    def __len__(self) -> int:
        return len(self._events)


class RetentionWarnings:
    def __init__(self) -> None:
        self._warnings: List[str] = []

    def add(self, message: str) -> Optional[str]:
        """Store a trimmed warning once; returns the normalized text, or None if blank."""
        normalized = message.strip()
        if not normalized:
            return None
        if normalized not in self._warnings:
            self._warnings.append(normalized)
        return normalized

    def clear(self) -> None:
        self._warnings.clear()

    def snapshot(self) -> Tuple[str, ...]:
        return tuple(self._warnings)


__all__ = ["MAX_PROCESS_EVENTS", "ProcessEventHistory", "RetentionWarnings"]
