"""Integration tests for GoogleMcpServer and its HTTP app.

Google is mocked at the transport level, so tool calls run through
validation, the session cache, the real service clients and back into
the MCP result envelope.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock, PropertyMock, patch

import httpx
import pytest
from mcp import types
from mcp.server import Server
from starlette.testclient import TestClient

from google_mcp.clients.base import CALENDAR_API_BASE, TASKS_API_BASE
from google_mcp.config import ServerSettings
from google_mcp.server import GoogleMcpServer
from google_mcp.server.http import NO_CACHE, create_app
from google_mcp.session import ServiceClientFactory, SessionManager


def _text(result: types.CallToolResult) -> str:
    assert len(result.content) == 1
    return result.content[0].text


def _make_server(
    mock_authenticator: MagicMock, http_client: httpx.AsyncClient, multi_tenant: bool = False
) -> GoogleMcpServer:
    settings = ServerSettings(multi_tenant=multi_tenant)
    sessions = SessionManager(
        ServiceClientFactory(mock_authenticator, http_client), multi_tenant=multi_tenant
    )
    return GoogleMcpServer(settings, http_client=http_client, sessions=sessions)


@pytest.fixture
def server(mock_authenticator, http_client) -> GoogleMcpServer:
    return _make_server(mock_authenticator, http_client)


@pytest.fixture
def multi_tenant_server(mock_authenticator, http_client) -> GoogleMcpServer:
    return _make_server(mock_authenticator, http_client, multi_tenant=True)


@pytest.mark.integration
class TestListTools:
    """Tests for tool listing through the server."""

    def test_should_list_full_catalog_without_scope(self, server: GoogleMcpServer) -> None:
        """Verify every tool is listed when no scope filter is given."""
        assert len(server.list_tools()) == 36

    def test_should_filter_by_space_separated_scopes(self, server: GoogleMcpServer) -> None:
        """Verify short scope names are accepted."""
        names = [tool.name for tool in server.list_tools("drive.readonly tasks.readonly")]

        assert names == [
            "google_drive_list_files",
            "google_drive_get_file_content",
            "google_tasks_list_tasklists",
            "google_tasks_list_tasks",
            "google_tasks_get_task",
        ]

    @pytest.mark.asyncio
    async def test_should_answer_list_tools_request(self, server: GoogleMcpServer) -> None:
        """Verify the registered MCP handler returns the catalog."""
        handler = server.server.request_handlers[types.ListToolsRequest]

        response = await handler(types.ListToolsRequest(method="tools/list"))

        assert len(response.root.tools) == 36


@pytest.mark.integration
class TestCallTool:
    """Tests for tool calls end to end."""

    @pytest.mark.asyncio
    async def test_should_act_as_default_identity(self, server: GoogleMcpServer, google_api) -> None:
        """Verify credential-less calls use the stored identity."""
        google_api.add(
            "GET",
            f"{TASKS_API_BASE}/users/@me/lists",
            {"items": [{"id": "L1", "title": "Home", "updated": "2025-04-01T00:00:00Z"}]},
        )

        result = await server.call_tool("google_tasks_list_tasklists", {})

        assert result.isError is False
        assert '"title": "Home"' in _text(result)
        assert google_api.last().headers["Authorization"] == "Bearer default-token"

    @pytest.mark.asyncio
    async def test_should_answer_call_tool_request(self, server: GoogleMcpServer, google_api) -> None:
        """Verify the registered MCP handler routes to the dispatcher."""
        google_api.add("GET", f"{CALENDAR_API_BASE}/users/me/calendarList", {"items": []})
        handler = server.server.request_handlers[types.CallToolRequest]

        response = await handler(
            types.CallToolRequest(
                method="tools/call",
                params=types.CallToolRequestParams(name="google_calendar_list_calendars", arguments={}),
            )
        )

        assert response.root.isError is False

    @pytest.mark.asyncio
    async def test_should_report_unknown_tool(self, server: GoogleMcpServer) -> None:
        """Verify unknown tools produce an error result, not an exception."""
        result = await server.call_tool("google_photos_list", {})

        assert result.isError is True
        assert _text(result) == "Unknown tool: google_photos_list"

    @pytest.mark.asyncio
    async def test_should_report_validation_errors(self, server: GoogleMcpServer, google_api) -> None:
        """Verify invalid arguments never reach Google."""
        result = await server.call_tool("google_calendar_get_event", {})

        assert result.isError is True
        assert _text(result) == (
            "Error: Invalid arguments for google_calendar_get_event: eventId: Field required"
        )
        assert google_api.requests == []

    @pytest.mark.asyncio
    async def test_should_report_google_errors(self, server: GoogleMcpServer, google_api) -> None:
        """Verify upstream failures become error results carrying Google's message."""
        google_api.add(
            "GET",
            f"{CALENDAR_API_BASE}/calendars/primary/events/e1",
            {"error": {"code": 403, "message": "Insufficient Permission"}},
            status_code=403,
        )

        result = await server.call_tool("google_calendar_get_event", {"eventId": "e1"})

        assert result.isError is True
        assert _text(result) == "Error: Insufficient Permission"

    @pytest.mark.asyncio
    async def test_should_act_as_caller_in_multi_tenant_mode(
        self, multi_tenant_server: GoogleMcpServer, google_api
    ) -> None:
        """Verify each caller's token is forwarded to Google."""
        google_api.add("GET", f"{TASKS_API_BASE}/users/@me/lists", {"items": []})

        await multi_tenant_server.call_tool("google_tasks_list_tasklists", {}, "token-a")
        first = google_api.last().headers["Authorization"]
        await multi_tenant_server.call_tool("google_tasks_list_tasklists", {}, "token-b")
        second = google_api.last().headers["Authorization"]

        assert first == "Bearer token-a"
        assert second == "Bearer token-b"
        assert len(multi_tenant_server.sessions) == 2

    @pytest.mark.asyncio
    async def test_should_reject_anonymous_multi_tenant_call(
        self, multi_tenant_server: GoogleMcpServer, google_api
    ) -> None:
        """Verify calls without a bearer credential fail in multi-tenant mode."""
        result = await multi_tenant_server.call_tool("google_tasks_list_tasklists", {})

        assert result.isError is True
        assert "bearer credential is required" in _text(result)
        assert google_api.requests == []


@pytest.mark.unit
class TestCurrentCredential:
    """Tests for reading the caller credential from the request context."""

    def test_should_return_none_outside_request(self, server: GoogleMcpServer) -> None:
        """Verify stdio-style calls have no credential."""
        assert server._current_credential() is None

    def test_should_read_bearer_header(self, server: GoogleMcpServer) -> None:
        """Verify the Authorization header of the HTTP request is parsed."""
        context = SimpleNamespace(request=SimpleNamespace(headers={"authorization": "Bearer abc"}))

        with patch.object(Server, "request_context", new_callable=PropertyMock, return_value=context):
            assert server._current_credential() == "abc"

    def test_should_ignore_context_without_request(self, server: GoogleMcpServer) -> None:
        """Verify contexts without an HTTP request yield no credential."""
        context = SimpleNamespace(request=None)

        with patch.object(Server, "request_context", new_callable=PropertyMock, return_value=context):
            assert server._current_credential() is None


@pytest.mark.integration
class TestHttpApp:
    """Tests for the HTTP routes outside /mcp."""

    @pytest.fixture
    def client(self, server: GoogleMcpServer) -> TestClient:
        return TestClient(create_app(server))

    def test_should_report_health(self, client: TestClient) -> None:
        """Verify the health route reports the server as healthy."""
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["server"] == "google-mcp"
        assert response.headers["cache-control"] == NO_CACHE

    def test_should_serve_openid_configuration(self, client: TestClient) -> None:
        """Verify the discovery document requests offline access."""
        response = client.get("/.well-known/openid-configuration")

        assert response.status_code == 200
        body = response.json()
        assert body["issuer"] == "https://accounts.google.com"
        assert body["authorization_endpoint"].endswith("access_type=offline")
        assert "S256" in body["code_challenge_methods_supported"]
        assert response.headers["cache-control"] == NO_CACHE

    def test_should_not_serve_unknown_routes(self, client: TestClient) -> None:
        """Verify unrelated paths are not found."""
        assert client.get("/nope").status_code == 404
