"""TCP probe used to detect a port already held by another backend."""

import asyncio
import errno
import logging

logger = logging.getLogger(__name__)

PROBE_TIMEOUT_SECONDS = 0.5
_FREE_ERRNOS = frozenset({errno.ECONNREFUSED, errno.ENOENT})


async def is_port_busy(host: str, port: int, *, timeout: float = PROBE_TIMEOUT_SECONDS) -> bool:
    """Return True if something accepts (or silently holds) a TCP connection on host:port.

    A connection that neither completes nor fails within *timeout* counts as busy.
    Refused connections are free. Any other socket error is logged and treated as free.
    """
    try:
        _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout)
    except asyncio.TimeoutError:  # policy_guard: allow-silent-handler
        logger.debug("Port probe to %s:%s timed out; treating port as busy", host, port)
        return True
    except OSError as exc:  # policy_guard: allow-silent-handler
        if exc.errno not in _FREE_ERRNOS and not isinstance(exc, ConnectionRefusedError):
            logger.warning("Diagnostics backend port probe failed: %s", exc)
        return False

    writer.close()
    try:
        await writer.wait_closed()
    except OSError as exc:  # policy_guard: allow-silent-handler
        logger.debug("Port probe socket close failed: %s", exc)
    return True


__all__ = ["PROBE_TIMEOUT_SECONDS", "is_port_busy"]
