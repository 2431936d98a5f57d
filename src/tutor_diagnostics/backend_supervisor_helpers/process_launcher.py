"""Spawn and terminate the backend worker process."""

import asyncio
import logging
import os
import signal
import sys
from pathlib import Path
from typing import List, Mapping, Optional

from ..exceptions import BackendSpawnError

logger = logging.getLogger(__name__)

GRACEFUL_TIMEOUT_SECONDS = 3.0
FORCE_TIMEOUT_SECONDS = 2.0


def build_command(entry: Path) -> List[str]:
    """Python entry points run under the current interpreter; anything else is executed directly."""
    if entry.suffix == ".py":
        return [sys.executable, str(entry)]
    return [str(entry)]


async def launch_backend(entry: Path, *, env_overrides: Optional[Mapping[str, str]] = None) -> asyncio.subprocess.Process:
    """
    Start the backend worker with the parent's stdio.

    Args:
        entry: Resolved backend entry point
        env_overrides: Variables layered on top of the current environment

    Returns:
        The running subprocess

    Raises:
        BackendSpawnError: If the operating system refuses to start the process
    """
    env = dict(os.environ)
    if env_overrides:
        env.update(env_overrides)
    command = build_command(entry)
    try:
        return await asyncio.create_subprocess_exec(*command, env=env)
    except OSError as exc:
        raise BackendSpawnError(str(exc) or f"Failed to launch {entry}", entry=str(entry)) from exc


def describe_returncode(returncode: int):
    """Split an asyncio returncode into ``(exit_code, signal_name)``; negative codes mean a signal."""
    if returncode >= 0:
        return returncode, None
    try:
        return None, signal.Signals(-returncode).name
    except ValueError:  # policy_guard: allow-silent-handler
        return None, f"SIG{-returncode}"


async def terminate_process(
    process: asyncio.subprocess.Process,
    *,
    graceful_timeout: float = GRACEFUL_TIMEOUT_SECONDS,
    force_timeout: float = FORCE_TIMEOUT_SECONDS,
) -> int:
    """Terminate *process* gracefully, then SIGKILL it if it lingers.

    Returns:
        The process return code

    Raises:
        RuntimeError: If the process survives SIGKILL for *force_timeout* seconds
    """
    if process.returncode is not None:
        return process.returncode

    try:
        process.terminate()
    except ProcessLookupError:  # policy_guard: allow-silent-handler
        logger.debug("Backend process %s exited before termination", process.pid)
        return await process.wait()

    try:
        return await asyncio.wait_for(process.wait(), graceful_timeout)
    except asyncio.TimeoutError:  # policy_guard: allow-silent-handler
        logger.warning("Backend process %s did not terminate within %ss; sending SIGKILL", process.pid, graceful_timeout)

    try:
        process.kill()
    except ProcessLookupError:  # policy_guard: allow-silent-handler
        return await process.wait()
    try:
        return await asyncio.wait_for(process.wait(), force_timeout)
    except asyncio.TimeoutError as exc:
        raise RuntimeError(
            f"Backend process {process.pid} persisted after SIGKILL for {force_timeout}s; manual intervention required."
        ) from exc
