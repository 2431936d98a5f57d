import asyncio
import errno
import json
from datetime import datetime, timezone

import pytest

from tutor_diagnostics.data_models import DiagnosticsPreferenceRecord, StorageFailureReason, UpdatedBy
from tutor_diagnostics.data_models.timestamps import ONE_MILLISECOND, to_iso
from tutor_diagnostics.exceptions import PreferencesConcurrencyError, PreferencesVaultNotReadyError
from tutor_diagnostics.preferences_vault import STALE_PREFERENCES_CODE, PreferencesVault, VaultEvent
from tutor_diagnostics.preferences_vault_helpers import JsonFilePreferenceStore
from tests.helpers.preference_fakes import MemoryPreferenceStore, make_update

_NOW = datetime(2024, 7, 1, 10, 0, tzinfo=timezone.utc)


def _fixed_clock():
    return _NOW


def _vault(store=None):
    vault = PreferencesVault(store if store is not None else MemoryPreferenceStore(), now=_fixed_clock)
    published = {"updated": [], "health": []}
    vault.on(VaultEvent.UPDATED, published["updated"].append)
    vault.on(VaultEvent.STORAGE_HEALTH, published["health"].append)
    return vault, published


class TestPreferencesVaultBootstrap:
    """Tests for loading the stored record."""

    @pytest.mark.asyncio
    async def test_seeds_default_record_once(self):
        vault, published = _vault()

        await asyncio.gather(vault.bootstrap(), vault.bootstrap())

        record = vault.get_current_record()
        assert record.last_updated_at == _NOW
        assert record.updated_by is UpdatedBy.MAIN
        assert len(published["updated"]) == 1
        assert published["health"] == []

    @pytest.mark.asyncio
    async def test_loads_existing_record(self):
        stored = DiagnosticsPreferenceRecord.create_default(now=_NOW).to_payload()
        stored["highContrastEnabled"] = True
        vault, _ = _vault(MemoryPreferenceStore(stored))

        await vault.bootstrap()

        assert vault.get_current_record().high_contrast_enabled is True
        assert vault.get_current_record().id == stored["id"]

    @pytest.mark.asyncio
    async def test_unreadable_store_degrades_to_default_with_alert(self):
        store = MemoryPreferenceStore()
        store.read_error = json.JSONDecodeError("Expecting value", "{", 1)
        vault, published = _vault(store)

        await vault.bootstrap()

        alert = vault.get_storage_health()
        assert alert.reason is StorageFailureReason.CORRUPTED
        assert vault.get_current_record().consent_summary == "Remote providers are disabled"
        assert len(published["health"]) == 1

    def test_access_before_bootstrap_raises(self):
        vault, _ = _vault()
        with pytest.raises(PreferencesVaultNotReadyError):
            vault.get_current_record()


class TestPreferencesVaultUpdates:
    """Tests for ordered, optimistic preference updates."""

    @pytest.mark.asyncio
    async def test_concurrent_updates_apply_in_submission_order(self):
        store = MemoryPreferenceStore()
        store.write_delay = 0.01
        vault, _ = _vault(store)
        await vault.bootstrap()
        token = to_iso(vault.get_current_record().last_updated_at)

        updates = [
            make_update(high_contrast=True, expected=token),
            make_update(high_contrast=True, reduced_motion=True, expected=token),
            make_update(reduced_motion=True, summary="Third", expected=token),
        ]
        results = await asyncio.gather(*(vault.update_preferences(update) for update in updates))

        assert all(result.applied for result in results)
        assert [write["consentSummary"] for write in store.writes] == [
            "Remote providers are disabled",
            "Remote providers are disabled",
            "Third",
        ]
        assert [write["reducedMotionEnabled"] for write in store.writes] == [False, True, True]
        final = vault.get_current_record()
        assert final.high_contrast_enabled is False
        assert final.consent_summary == "Third"
        assert final.last_updated_at == _NOW + 3 * ONE_MILLISECOND

    @pytest.mark.asyncio
    async def test_stale_token_is_rejected_without_changes(self):
        store = MemoryPreferenceStore()
        vault, published = _vault(store)
        await vault.bootstrap()
        first = await vault.update_preferences(make_update(high_contrast=True))
        assert first.applied

        stale = await vault.update_preferences(make_update(reduced_motion=True, expected=to_iso(_NOW)))

        assert stale.applied is False
        assert stale.is_stale
        assert stale.error_code == STALE_PREFERENCES_CODE
        assert stale.record == first.record
        assert vault.get_current_record() == first.record
        assert len(store.writes) == 1
        assert len(published["updated"]) == 2
        with pytest.raises(PreferencesConcurrencyError):
            stale.raise_for_conflict()

    @pytest.mark.asyncio
    async def test_missing_or_blank_token_skips_staleness_check(self):
        vault, _ = _vault()
        await vault.bootstrap()

        assert (await vault.update_preferences(make_update(expected=None))).applied
        assert (await vault.update_preferences(make_update(expected=""))).applied

    @pytest.mark.asyncio
    async def test_unparseable_token_is_stale(self):
        vault, _ = _vault()
        await vault.bootstrap()

        result = await vault.update_preferences(make_update(expected="not-a-time"))

        assert result.is_stale

    @pytest.mark.asyncio
    async def test_failed_write_keeps_change_and_recovery_clears_alert_once(self):
        store = MemoryPreferenceStore()
        vault, published = _vault(store)
        await vault.bootstrap()

        store.fail_with = OSError(errno.ENOSPC, "No space left on device")
        failed = await vault.update_preferences(make_update(high_contrast=True))

        assert failed.applied is True
        assert failed.record.high_contrast_enabled is True
        assert failed.record.storage_health.reason is StorageFailureReason.DISK_FULL
        assert len(published["health"]) == 1

        store.fail_with = None
        recovered = await vault.update_preferences(make_update(high_contrast=True, reduced_motion=True))
        await vault.update_preferences(make_update())

        assert recovered.record.storage_health is None
        assert vault.get_storage_health() is None
        assert len(published["health"]) == 2
        assert published["health"][1].storage_health is None
        assert store.value["reducedMotionEnabled"] is False

    @pytest.mark.asyncio
    async def test_persisted_record_survives_restart(self, tmp_path):
        path = tmp_path / "diagnostics-preferences.json"
        first, _ = _vault(JsonFilePreferenceStore(path))
        await first.bootstrap()
        applied = await first.update_preferences(make_update(remote_providers=True, summary="Remote enabled"))

        second, _ = _vault(JsonFilePreferenceStore(path))
        await second.bootstrap()

        assert second.get_current_record() == applied.record
