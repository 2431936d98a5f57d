"""Hand-written aiohttp stand-ins for the diagnostics API client."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

import orjson


class FakeHeaders:
    def __init__(self, headers: Optional[Mapping[str, str]] = None):
        self._headers = dict(headers or {})

    def items(self):
        return self._headers.items()


class FakeResponse:
    def __init__(self, status=200, body: Any = b"", headers: Optional[Mapping[str, str]] = None):
        self.status = status
        if isinstance(body, (dict, list)):
            body = orjson.dumps(body)
            headers = {"Content-Type": "application/json", **dict(headers or {})}
        elif isinstance(body, str):
            body = body.encode()
        self._body = body
        self.headers = FakeHeaders(headers)

    async def read(self):
        return self._body


class FakeRequestContext:
    def __init__(self, response):
        self._response = response

    async def __aenter__(self):
        if isinstance(self._response, BaseException):
            raise self._response
        return self._response

    async def __aexit__(self, _exc_type, _exc, _tb):
        return False


class FakeSession:
    """Serves queued responses (or raises queued exceptions) in order."""

    def __init__(self, responses=None):
        self._responses: List[Any] = list(responses or [])
        self.closed = False
        self.requests: List[Dict[str, Any]] = []

    def queue_response(self, response):
        self._responses.append(response)

    def request(self, method, url, *, headers=None, data=None, timeout=None):
        self.requests.append({"method": method, "url": url, "headers": dict(headers or {}), "data": data, "timeout": timeout})
        if self._responses:
            return FakeRequestContext(self._responses.pop(0))
        return FakeRequestContext(FakeResponse(status=204))

    async def close(self):
        self.closed = True


def session_factory_for(session: FakeSession):
    return lambda: session
