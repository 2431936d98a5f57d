"""Persisted diagnostics preferences with optimistic concurrency.

Updates are applied strictly one at a time in submission order. Each update
may carry the ``last_updated_at`` value its author last read; it is accepted
when that token matches either the current record or the record that was
current when the queue last became non-empty, so a burst of updates issued
from the same read all apply in order. Any other token is rejected without
touching the record.

A failed write never loses the user's change: the update stays applied in
memory and the record carries a storage health alert until a later write to
the store succeeds.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from .data_models import (
    DiagnosticsPreferenceRecord,
    PreferenceUpdate,
    StorageHealthAlert,
    apply_update,
)
from .data_models.timestamps import ONE_MILLISECOND, TimestampInput, parse_iso, utc_now
from .events import EventBus, Listener, Unsubscribe
from .exceptions import PreferencesConcurrencyError, PreferencesVaultNotReadyError
from .preferences_vault_helpers import PreferenceStore, classify_storage_failure, format_failure_message

logger = logging.getLogger(__name__)

STALE_PREFERENCES_CODE = PreferencesConcurrencyError.code
STALE_PREFERENCES_MESSAGE = "Diagnostics preferences have been modified since the last read."


class VaultEvent(Enum):
    UPDATED = "updated"
    STORAGE_HEALTH = "storage-health"


@dataclass(frozen=True)
class PreferenceUpdateResult:
    """Outcome of ``update_preferences``.

    ``record`` is always the vault's current record after the call. A stale
    token yields ``applied=False`` with ``error_code`` set.
    """

    record: DiagnosticsPreferenceRecord
    applied: bool
    error_code: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def accepted(cls, record: DiagnosticsPreferenceRecord) -> "PreferenceUpdateResult":
        return cls(record=record, applied=True)

    @classmethod
    def stale(cls, record: DiagnosticsPreferenceRecord) -> "PreferenceUpdateResult":
        return cls(record=record, applied=False, error_code=STALE_PREFERENCES_CODE, message=STALE_PREFERENCES_MESSAGE)

    @property
    def is_stale(self) -> bool:
        return self.error_code == STALE_PREFERENCES_CODE

    def raise_for_conflict(self) -> DiagnosticsPreferenceRecord:
        """Return the record, raising ``PreferencesConcurrencyError`` if the update was rejected."""
        if not self.applied:
            raise PreferencesConcurrencyError(self.message or STALE_PREFERENCES_MESSAGE, current_record=self.record)
        return self.record


class PreferencesVault:
    """Owns the single diagnostics preference record for this installation."""

    def __init__(self, store: PreferenceStore, *, now: Callable[[], datetime] = utc_now) -> None:
        self._store = store
        self._now = now
        self.events: EventBus[VaultEvent] = EventBus(VaultEvent)
        self._current: Optional[DiagnosticsPreferenceRecord] = None
        self._bootstrap_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()
        self._pending_updates = 0
        self._queue_baseline: Optional[datetime] = None

    @property
    def is_bootstrapped(self) -> bool:
        return self._current is not None

    def on(self, event: VaultEvent, listener: Listener) -> Unsubscribe:
        return self.events.subscribe(event, listener)

    def get_current_record(self) -> DiagnosticsPreferenceRecord:
        return self._require_current()

    def get_storage_health(self) -> Optional[StorageHealthAlert]:
        return self._require_current().storage_health

    async def bootstrap(self) -> None:
        """Load the stored record, or seed a default one. Safe to call repeatedly."""
        if self._current is not None:
            return
        async with self._bootstrap_lock:
            if self._current is not None:
                return
            await self._load()

    async def update_preferences(self, update: PreferenceUpdate) -> PreferenceUpdateResult:
        await self.bootstrap()

        if self._pending_updates == 0:
            self._queue_baseline = self._require_current().last_updated_at
        self._pending_updates += 1
        try:
            async with self._write_lock:
                return await self._perform_update(update)
        finally:
            self._pending_updates -= 1
            if self._pending_updates == 0:
                self._queue_baseline = self._require_current().last_updated_at

    async def _load(self) -> None:
        try:
            payload = await self._store.get()
            record = DiagnosticsPreferenceRecord.from_payload(payload) if payload else None
        except Exception as exc:  # policy_guard: allow-broad-except
            self._adopt_unreadable_store(exc)
            return

        if record is None:
            self._current = DiagnosticsPreferenceRecord.create_default(now=self._now())
            logger.info("Seeded default diagnostics preferences")
            self._publish(VaultEvent.UPDATED)
            return

        self._current = record
        self._publish(VaultEvent.UPDATED)
        if record.storage_health is not None:
            self._publish(VaultEvent.STORAGE_HEALTH)

    def _adopt_unreadable_store(self, error: BaseException) -> None:
        reason = classify_storage_failure(error)
        message = format_failure_message(error)
        alert = StorageHealthAlert.unavailable(
            reason, f"Failed to load diagnostics preferences: {message}", detected_at=self._now()
        )
        self._current = DiagnosticsPreferenceRecord.create_default(now=self._now()).with_storage_health(alert)
        logger.warning("[diagnostics] Preference vault could not read stored preferences: %s", message)
        self._publish(VaultEvent.UPDATED)
        self._publish(VaultEvent.STORAGE_HEALTH)

    async def _perform_update(self, update: PreferenceUpdate) -> PreferenceUpdateResult:
        current = self._require_current()

        expected = update.expected_last_updated_at
        if expected not in (None, "") and not self._token_matches(expected, current):
            logger.info("Rejected stale diagnostics preference update from %s", update.updated_by.value)
            return PreferenceUpdateResult.stale(current)

        candidate = apply_update(current, update, updated_at=self._next_timestamp(current.last_updated_at))
        try:
            await self._store.set(candidate.to_payload())
        except Exception as exc:  # policy_guard: allow-broad-except
            return PreferenceUpdateResult.accepted(self._handle_persistence_failure(candidate, exc))

        self._current = candidate
        self._publish(VaultEvent.UPDATED)
        if current.storage_health is not None:
            logger.info("Diagnostics preference storage recovered")
            self._publish(VaultEvent.STORAGE_HEALTH)
        return PreferenceUpdateResult.accepted(candidate)

    def _handle_persistence_failure(
        self, record: DiagnosticsPreferenceRecord, error: BaseException
    ) -> DiagnosticsPreferenceRecord:
        reason = classify_storage_failure(error)
        message = format_failure_message(error)
        alert = StorageHealthAlert.unavailable(
            reason, f"Failed to persist diagnostics preferences: {message}", detected_at=self._now()
        )
        with_alert = record.with_storage_health(alert)
        self._current = with_alert
        logger.warning("[diagnostics] Preference vault persistence failed: %s", message)
        self._publish(VaultEvent.UPDATED)
        self._publish(VaultEvent.STORAGE_HEALTH)
        return with_alert

    def _token_matches(self, expected: TimestampInput, current: DiagnosticsPreferenceRecord) -> bool:
        try:
            expected_at = parse_iso(expected)
        except (TypeError, ValueError):  # policy_guard: allow-silent-handler
            return False
        baseline = self._queue_baseline or current.last_updated_at
        return expected_at in (current.last_updated_at, baseline)

    def _next_timestamp(self, previous: datetime) -> datetime:
        candidate = self._now()
        if candidate <= previous:
            candidate = previous + ONE_MILLISECOND
        return candidate

    def _publish(self, event: VaultEvent) -> None:
        self.events.publish(event, self._current)

    def _require_current(self) -> DiagnosticsPreferenceRecord:
        if self._current is None:
            raise PreferencesVaultNotReadyError("Diagnostics preference vault has not been bootstrapped")
        return self._current


__all__ = [
    "PreferenceUpdateResult",
    "PreferencesVault",
    "STALE_PREFERENCES_CODE",
    "VaultEvent",
]
