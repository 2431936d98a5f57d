"""Process liveness checks for lock arbitration."""

import logging
from typing import Optional

import psutil

logger = logging.getLogger(__name__)


def is_process_alive(pid: Optional[int]) -> bool:
    """Return True when *pid* names a running (non-zombie) process.

    A process we are not permitted to inspect still counts as alive.
    """
    if not isinstance(pid, int) or isinstance(pid, bool) or pid <= 0:
        return False
    if not psutil.pid_exists(pid):
        return False
    try:
        return psutil.Process(pid).status() != psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:  # policy_guard: allow-silent-handler
        return False
    except psutil.AccessDenied:  # policy_guard: allow-silent-handler
        logger.debug("Access denied inspecting PID %s; treating it as alive", pid)
        return True
