import errno
import json

import orjson
import pytest

from tutor_diagnostics.data_models import StorageFailureReason
from tutor_diagnostics.exceptions import PreferenceStoreError
from tutor_diagnostics.preferences_vault_helpers import (
    JsonFilePreferenceStore,
    classify_storage_failure,
    format_failure_message,
)


class TestJsonFilePreferenceStore:
    """Tests for the JSON file backing store."""

    @pytest.mark.asyncio
    async def test_missing_file_reads_as_none(self, tmp_path):
        store = JsonFilePreferenceStore(tmp_path / "prefs.json")
        assert await store.get() is None

    @pytest.mark.asyncio
    async def test_set_writes_record_key_and_get_reads_it_back(self, tmp_path):
        path = tmp_path / "nested" / "prefs.json"
        store = JsonFilePreferenceStore(path)

        await store.set({"consentSummary": "hello"})

        assert orjson.loads(path.read_bytes()) == {"record": {"consentSummary": "hello"}}
        assert await store.get() == {"consentSummary": "hello"}
        assert sorted(p.name for p in path.parent.iterdir()) == ["prefs.json"]

    @pytest.mark.asyncio
    async def test_wrong_shape_is_reported_as_corruption(self, tmp_path):
        path = tmp_path / "prefs.json"
        path.write_text('{"record": [1, 2]}')

        with pytest.raises(PreferenceStoreError) as exc_info:
            await JsonFilePreferenceStore(path).get()

        assert exc_info.value.reason is StorageFailureReason.CORRUPTED

    @pytest.mark.asyncio
    async def test_invalid_json_raises_decode_error(self, tmp_path):
        path = tmp_path / "prefs.json"
        path.write_text("{truncated")

        with pytest.raises(orjson.JSONDecodeError):
            await JsonFilePreferenceStore(path).get()


class TestClassifyStorageFailure:
    """Tests for mapping persistence errors to storage health reasons."""

    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (PermissionError(errno.EACCES, "denied"), StorageFailureReason.PERMISSION_DENIED),
            (OSError(errno.EROFS, "read-only file system"), StorageFailureReason.PERMISSION_DENIED),
            (OSError(errno.ENOSPC, "No space left on device"), StorageFailureReason.DISK_FULL),
            (json.JSONDecodeError("bad", "doc", 0), StorageFailureReason.CORRUPTED),
            (RuntimeError("EACCES while writing"), StorageFailureReason.PERMISSION_DENIED),
            (RuntimeError("disk quota reached"), StorageFailureReason.DISK_FULL),
            (RuntimeError("file looks corrupt"), StorageFailureReason.CORRUPTED),
            (RuntimeError("something else"), StorageFailureReason.UNKNOWN),
        ],
    )
    def test_classification(self, error, expected):
        assert classify_storage_failure(error) is expected

    def test_errno_wins_over_misleading_message(self):
        error = OSError(errno.ENOSPC, "permission checks passed but nothing was written")
        assert classify_storage_failure(error) is StorageFailureReason.DISK_FULL

    def test_explicit_reason_attribute_wins(self):
        error = PreferenceStoreError("permission", reason=StorageFailureReason.CORRUPTED)
        assert classify_storage_failure(error) is StorageFailureReason.CORRUPTED

    def test_chained_cause_is_inspected(self):
        try:
            try:
                raise OSError(errno.ENOSPC, "full")
            except OSError as inner:
                raise RuntimeError("write failed") from inner
        except RuntimeError as outer:
            assert classify_storage_failure(outer) is StorageFailureReason.DISK_FULL

    def test_format_failure_message_falls_back_when_blank(self):
        assert format_failure_message(RuntimeError("")) == "Unknown error"
        assert format_failure_message(RuntimeError(" boom ")) == "boom"
