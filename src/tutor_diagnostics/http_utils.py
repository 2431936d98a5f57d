"""URL helpers for the diagnostics API origin."""

from typing import Any, Optional, Tuple
from urllib.parse import urlsplit

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 4319
_ALLOWED_SCHEMES = {"http": 80, "https": 443}


def is_aiohttp_session_open(session: Optional[Any]) -> bool:
    """True when *session* exists and has not been closed."""
    return session is not None and getattr(session, "closed", True) is False


def ensure_http_url(url: str) -> str:
    """Return *url* unchanged if it is an absolute http(s) URL.

    Raises:
        ValueError: For other schemes or a missing host.
    """
    parts = urlsplit(url)
    if parts.scheme.lower() not in _ALLOWED_SCHEMES:
        raise ValueError(f"Unsupported URL scheme: {url}")
    if not parts.netloc:
        raise ValueError(f"URL missing network location: {url}")
    return url


def join_url(origin: str, path: str) -> str:
    return ensure_http_url(f"{origin.rstrip('/')}/{path.lstrip('/')}")


def origin_endpoint(origin: str) -> Tuple[str, int]:
    """``(host, port)`` the origin listens on, defaulting the port from the scheme.

    Raises:
        ValueError: If the origin has no host or an invalid port.
    """
    parts = urlsplit(origin)
    if not parts.hostname:
        raise ValueError(f"URL missing host: {origin}")
    port = parts.port or _ALLOWED_SCHEMES.get(parts.scheme.lower(), 80)
    return parts.hostname, port


def fallback_endpoint() -> Tuple[str, int]:
    return DEFAULT_HOST, DEFAULT_PORT


__all__ = ["ensure_http_url", "fallback_endpoint", "is_aiohttp_session_open", "join_url", "origin_endpoint"]
