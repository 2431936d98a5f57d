"""Root pytest configuration and shared fixtures."""

from __future__ import annotations

import os

import pytest

from tutor_diagnostics.config import DiagnosticsSettings, reset_default_values

# Keep tests fast and independent of the developer's environment
os.environ.setdefault("DIAGNOSTICS_REQUEST_TIMEOUT_SECONDS", "5")
os.environ.setdefault("DIAGNOSTICS_SYNC_MAX_ATTEMPTS", "4")
os.environ.setdefault("DIAGNOSTICS_SHUTDOWN_SYNC_TIMEOUT_SECONDS", "2")


@pytest.fixture(autouse=True)
def isolated_dotenv_defaults():
    """Ignore any .env files on the machine running the tests."""
    reset_default_values({})
    yield
    reset_default_values()


@pytest.fixture
def diagnostics_settings(tmp_path):
    return DiagnosticsSettings(
        data_directory=tmp_path / "data",
        api_origin="http://127.0.0.1:4319",
        shutdown_sync_timeout_seconds=2.0,
    )
