import aiohttp
import orjson
import pytest

from tutor_diagnostics.diagnostics_manager_helpers import ApiResponse, DiagnosticsApiClient
from tests.helpers.fake_http import FakeResponse, FakeSession, session_factory_for

_CONST_200 = 200
_CONST_503 = 503


class TestDiagnosticsApiClient:
    """Tests for the aiohttp diagnostics client."""

    @pytest.mark.asyncio
    async def test_get_sends_accept_header_and_reads_body(self):
        session = FakeSession([FakeResponse(status=_CONST_200, body={"generatedAt": "2024-01-01T00:00:00.000Z"})])
        client = DiagnosticsApiClient("http://127.0.0.1:4319/", session_factory=session_factory_for(session))

        response = await client.fetch_summary()

        request = session.requests[0]
        assert request["method"] == "GET"
        assert request["url"] == "http://127.0.0.1:4319/internal/diagnostics/summary"
        assert request["headers"] == {"accept": "application/json"}
        assert request["data"] is None
        assert isinstance(request["timeout"], aiohttp.ClientTimeout)
        assert request["timeout"].total == 5.0
        assert response.ok
        assert response.is_json
        assert response.json() == {"generatedAt": "2024-01-01T00:00:00.000Z"}

    @pytest.mark.asyncio
    async def test_put_preferences_sends_json_body(self):
        session = FakeSession([FakeResponse(status=204)])
        client = DiagnosticsApiClient("http://127.0.0.1:4319", session_factory=session_factory_for(session))

        await client.put_preferences({"highContrastEnabled": True})

        request = session.requests[0]
        assert request["method"] == "PUT"
        assert request["url"].endswith("/internal/diagnostics/preferences")
        assert request["headers"]["content-type"] == "application/json"
        assert orjson.loads(request["data"]) == {"highContrastEnabled": True}

    @pytest.mark.asyncio
    async def test_transport_errors_propagate(self):
        session = FakeSession([aiohttp.ClientConnectionError("refused")])
        client = DiagnosticsApiClient("http://127.0.0.1:4319", session_factory=session_factory_for(session))

        with pytest.raises(aiohttp.ClientConnectionError):
            await client.refresh_snapshot()

    @pytest.mark.asyncio
    async def test_close_closes_session_and_recreates_on_demand(self):
        sessions = []

        def factory():
            sessions.append(FakeSession())
            return sessions[-1]

        client = DiagnosticsApiClient("http://127.0.0.1:4319", session_factory=factory)
        await client.request_export()
        await client.close()
        await client.request_export()

        assert len(sessions) == 2
        assert sessions[0].closed is True
        assert sessions[1].closed is False


def test_api_response_helpers():
    response = ApiResponse(status=_CONST_503, body=b"busy", headers={"content-type": "text/plain"})

    assert response.ok is False
    assert response.is_json is False
    assert response.header("Content-Type") == "text/plain"
    assert response.text() == "busy"
