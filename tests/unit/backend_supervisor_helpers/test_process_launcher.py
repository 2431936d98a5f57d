import asyncio
import signal
import sys
from pathlib import Path

import pytest

from tutor_diagnostics.backend_supervisor_helpers import describe_returncode, launch_backend, terminate_process
from tutor_diagnostics.backend_supervisor_helpers.process_launcher import build_command
from tutor_diagnostics.exceptions import BackendSpawnError

_CONST_3 = 3


def test_build_command_runs_python_entries_with_current_interpreter():
    assert build_command(Path("/srv/backend/main.py")) == [sys.executable, "/srv/backend/main.py"]
    assert build_command(Path("/srv/backend/run")) == ["/srv/backend/run"]


def test_describe_returncode_splits_exit_code_and_signal():
    assert describe_returncode(0) == (0, None)
    assert describe_returncode(_CONST_3) == (_CONST_3, None)
    assert describe_returncode(-signal.SIGTERM) == (None, "SIGTERM")


@pytest.mark.asyncio
async def test_launch_backend_passes_environment_overrides(tmp_path):
    marker = tmp_path / "mode.txt"
    entry = tmp_path / "worker.py"
    entry.write_text(
        "import os, pathlib\n"
        f"pathlib.Path({str(marker)!r}).write_text(os.environ['LLM_TUTOR_MODE'])\n"
    )

    process = await launch_backend(entry, env_overrides={"LLM_TUTOR_MODE": "development"})

    assert await process.wait() == 0
    assert marker.read_text() == "development"


@pytest.mark.asyncio
async def test_launch_backend_wraps_os_errors(tmp_path):
    entry = tmp_path / "not-executable"
    entry.write_text("plain text")

    with pytest.raises(BackendSpawnError):
        await launch_backend(entry)


@pytest.mark.asyncio
async def test_terminate_process_stops_long_running_child():
    process = await asyncio.create_subprocess_exec(sys.executable, "-c", "import time; time.sleep(60)")

    returncode = await terminate_process(process, graceful_timeout=5, force_timeout=2)

    assert returncode == -signal.SIGTERM
    assert await terminate_process(process) == returncode
