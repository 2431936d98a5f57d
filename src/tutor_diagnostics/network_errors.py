"""
Classify failures of requests to the diagnostics backend.

"Backend not reachable" (not started yet, restarting, port closed) is routine
for a sidecar worker and is logged quietly; anything else is worth a warning.
"""

import asyncio
import socket

import aiohttp

# Connection-level failures: the request never reached a live backend
UNREACHABLE_ERROR_TYPES = (
    aiohttp.ClientConnectorError,
    aiohttp.ServerDisconnectedError,
    aiohttp.ServerTimeoutError,
    asyncio.TimeoutError,
    ConnectionError,
    socket.gaierror,
)

# Every failure a diagnostics request may raise short of a programming error
REQUEST_ERROR_TYPES = (aiohttp.ClientError, asyncio.TimeoutError, OSError, ValueError)


def is_network_unreachable_error(exc: BaseException) -> bool:
    if isinstance(exc, UNREACHABLE_ERROR_TYPES):
        return True
    wrapped = getattr(exc, "os_error", None) or exc.__cause__
    return isinstance(wrapped, (ConnectionError, socket.gaierror))


def describe_error(exc: BaseException, fallback: str = "Unknown error") -> str:
    """Human readable text for *exc*; never empty."""
    text = str(exc).strip()
    if text:
        return text
    if isinstance(exc, asyncio.TimeoutError):
        return "Request timed out"
    return fallback


__all__ = ["REQUEST_ERROR_TYPES", "UNREACHABLE_ERROR_TYPES", "describe_error", "is_network_unreachable_error"]
