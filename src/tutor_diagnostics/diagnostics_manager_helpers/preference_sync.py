"""Sequential, retrying push of preference changes to the backend.

Requests run one after another in enqueue order. Each request retries with
exponential backoff; a 503 means the backend's own storage is down, so the
request is deferred rather than retried. Failures are logged, never raised.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, Set

from ..backoff import PREFERENCE_SYNC_BACKOFF, BackoffConfig, DelayCalculator
from ..data_models import ConsentEventLog, DiagnosticsPreferenceRecord
from ..network_errors import REQUEST_ERROR_TYPES, describe_error, is_network_unreachable_error
from .api_client import ApiResponse

logger = logging.getLogger(__name__)

HTTP_SERVICE_UNAVAILABLE = 503

Sleep = Callable[[float], Awaitable[Any]]


class PreferencesEndpoint(Protocol):
    async def put_preferences(self, payload: Dict[str, Any]) -> ApiResponse: ...


class SyncReason(Enum):
    BOOTSTRAP = "bootstrap"
    UPDATE = "update"


class SyncOutcome(Enum):
    SYNCED = "synced"
    DEFERRED = "deferred"
    FAILED = "failed"


@dataclass(frozen=True)
class PreferenceSyncRequest:
    reason: SyncReason
    record: DiagnosticsPreferenceRecord
    consent_event: Optional[ConsentEventLog] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "highContrastEnabled": self.record.high_contrast_enabled,
            "reducedMotionEnabled": self.record.reduced_motion_enabled,
            "remoteProvidersEnabled": self.record.remote_providers_enabled,
            "consentSummary": self.record.consent_summary,
        }
        if self.consent_event is not None:
            payload["consentEvent"] = self.consent_event.to_payload()
        return payload


class PreferenceSyncQueue:
    """Chain of sync tasks; each waits for its predecessor before starting."""

    def __init__(
        self,
        endpoint: PreferencesEndpoint,
        *,
        backoff: BackoffConfig = PREFERENCE_SYNC_BACKOFF,
        max_attempts: Optional[int] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._endpoint = endpoint
        self._backoff = backoff
        self._max_attempts = max_attempts or backoff.max_attempts
        self._sleep = sleep
        self._tail: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Stop accepting new requests; queued ones still run."""
        self._closed = True

    def enqueue(self, request: PreferenceSyncRequest) -> Optional[asyncio.Task]:
        if self._closed:
            logger.debug("Ignoring %s preference sync after shutdown began", request.reason.value)
            return None
        task = asyncio.create_task(self._run_after(self._tail, request), name=f"preference-sync-{request.reason.value}")
        self._tail = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self, timeout: Optional[float] = None) -> bool:
        """Wait for every queued request to finish.

        Returns:
            False if *timeout* elapsed first.
        """
        while self._tasks:
            pending = set(self._tasks)
            _, still_pending = await asyncio.wait(pending, timeout=timeout)
            if still_pending:
                return False
        return True

    async def cancel_pending(self) -> None:
        """Cancel queued requests and wait until none of them is still running."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.wait(tasks)

    async def _run_after(self, previous: Optional[asyncio.Task], request: PreferenceSyncRequest) -> SyncOutcome:
        if previous is not None and not previous.done():
            await asyncio.wait({previous})
        return await self.sync(request)

    async def sync(self, request: PreferenceSyncRequest) -> SyncOutcome:
        """Push one request, retrying with backoff."""
        payload = request.to_payload()
        last_error: Optional[str] = None

        for attempt in range(1, self._max_attempts + 1):
            try:
                response = await self._endpoint.put_preferences(payload)
            except REQUEST_ERROR_TYPES as exc:  # policy_guard: allow-silent-handler
                last_error = describe_error(exc)
                if is_network_unreachable_error(exc):
                    logger.debug("Diagnostics backend unreachable during preference sync: %s", last_error)
            else:
                if response.ok:
                    logger.debug("Synced diagnostics preferences (%s)", request.reason.value)
                    return SyncOutcome.SYNCED
                if response.status == HTTP_SERVICE_UNAVAILABLE:
                    logger.warning("Diagnostics preference sync deferred: backend storage unavailable")
                    return SyncOutcome.DEFERRED
                body = response.text().strip()
                last_error = f"Unexpected diagnostics preference sync status {response.status}"
                if body:
                    last_error += f": {body}"

            if attempt < self._max_attempts:
                delay = DelayCalculator.calculate_full_delay(self._backoff, attempt, "diagnostics preference sync")
                await self._sleep(delay)

        logger.warning(
            "Failed to sync diagnostics preferences with backend after %d attempts (%s): %s",
            self._max_attempts,
            request.reason.value,
            last_error,
        )
        return SyncOutcome.FAILED


__all__ = [
    "PreferenceSyncQueue",
    "PreferenceSyncRequest",
    "PreferencesEndpoint",
    "SyncOutcome",
    "SyncReason",
]
