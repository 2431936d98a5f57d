"""HTTP client for the backend's internal diagnostics API."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional

import aiohttp
import orjson

from ..http_utils import is_aiohttp_session_open, join_url

logger = logging.getLogger(__name__)

SUMMARY_PATH = "/internal/diagnostics/summary"
REFRESH_PATH = "/internal/diagnostics/refresh"
EXPORT_PATH = "/internal/diagnostics/export"
PREFERENCES_PATH = "/internal/diagnostics/preferences"

JSON_CONTENT_TYPE = "application/json"
DEFAULT_REQUEST_TIMEOUT_SECONDS = 5.0

SessionFactory = Callable[[], aiohttp.ClientSession]


@dataclass(frozen=True)
class ApiResponse:
    """Fully-read HTTP response; header names are lower-cased."""

    status: int
    body: bytes = b""
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())

    @property
    def is_json(self) -> bool:
        content_type = self.header("content-type") or ""
        return JSON_CONTENT_TYPE in content_type.lower()

    def json(self) -> Any:
        """Decode the body as JSON.

        Raises:
            ValueError: If the body is not valid JSON.
        """
        return orjson.loads(self.body)

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


class DiagnosticsApiClient:
    """Thin aiohttp wrapper; every request is bounded by ``request_timeout`` seconds."""

    def __init__(
        self,
        origin: str,
        *,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        session_factory: Optional[SessionFactory] = None,
    ) -> None:
        self.origin = origin.rstrip("/")
        self.request_timeout = request_timeout
        self._timeout = aiohttp.ClientTimeout(total=request_timeout)
        self._session_factory = session_factory
        self._session: Optional[aiohttp.ClientSession] = None

    def _ensure_session(self) -> aiohttp.ClientSession:
        if not is_aiohttp_session_open(self._session):
            if self._session_factory is not None:
                self._session = self._session_factory()
            else:
                self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def request(self, method: str, path: str, *, json_body: Optional[Mapping[str, Any]] = None) -> ApiResponse:
        """
        Issue a request against the diagnostics API and read the whole body.

        Raises:
            aiohttp.ClientError: On transport failures
            asyncio.TimeoutError: When the request exceeds the timeout
        """
        url = join_url(self.origin, path)
        headers: Dict[str, str] = {"accept": JSON_CONTENT_TYPE}
        data: Optional[bytes] = None
        if json_body is not None:
            headers["content-type"] = JSON_CONTENT_TYPE
            data = orjson.dumps(json_body)

        session = self._ensure_session()
        async with session.request(method, url, headers=headers, data=data, timeout=self._timeout) as response:
            body = await response.read()
            response_headers = {str(name).lower(): value for name, value in response.headers.items()}
            logger.debug("%s %s -> %s", method, path, response.status)
            return ApiResponse(status=response.status, body=body, headers=response_headers)

    async def fetch_summary(self) -> ApiResponse:
        return await self.request("GET", SUMMARY_PATH)

    async def refresh_snapshot(self) -> ApiResponse:
        return await self.request("POST", REFRESH_PATH)

    async def request_export(self) -> ApiResponse:
        return await self.request("GET", EXPORT_PATH)

    async def put_preferences(self, payload: Mapping[str, Any]) -> ApiResponse:
        return await self.request("PUT", PREFERENCES_PATH, json_body=payload)

    async def close(self) -> None:
        session, self._session = self._session, None
        if session is not None and is_aiohttp_session_open(session):
            await session.close()


__all__ = [
    "ApiResponse",
    "DiagnosticsApiClient",
    "EXPORT_PATH",
    "PREFERENCES_PATH",
    "REFRESH_PATH",
    "SUMMARY_PATH",
    "SessionFactory",
]
