"""Google MCP server.

Exposes Calendar, Gmail, Drive, Tasks and Meet operations as MCP tools.
In single-tenant mode every call acts as the operator's stored identity
(created with ``google-mcp setup``). In multi-tenant mode every call
must carry the caller's own Google access token as a bearer credential,
and each caller gets their own cached service clients.
"""

import asyncio
import logging
from typing import Any

import httpx
from mcp import types
from mcp.server import Server
from mcp.server.stdio import stdio_server

from google_mcp.__version__ import __version__
from google_mcp.auth import Authenticator, extract_credential
from google_mcp.clients import create_http_client
from google_mcp.config import ServerSettings, configure_logging
from google_mcp.dispatcher import ToolDispatcher
from google_mcp.session import ServiceClientFactory, SessionManager
from google_mcp.tools import get_tools_for_scopes, parse_scope_filter

logger = logging.getLogger(__name__)

SERVER_NAME = "google-mcp"


class GoogleMcpServer:
    """Composition root: settings, sessions, dispatcher and the MCP server.

    Attributes:
        settings: Effective server settings.
        sessions: Per-identity client cache.
        dispatcher: Tool call router.
        server: Low-level MCP Server instance.
    """

    def __init__(
        self,
        settings: ServerSettings | None = None,
        http_client: httpx.AsyncClient | None = None,
        sessions: SessionManager | None = None,
    ) -> None:
        self.settings = settings or ServerSettings.from_env()
        self.http_client = http_client or create_http_client()
        self.authenticator = Authenticator(
            self.http_client, verify_credentials=self.settings.verify_credentials
        )
        self.factory = ServiceClientFactory(self.authenticator, self.http_client)
        self.sessions = sessions or SessionManager(
            self.factory,
            multi_tenant=self.settings.multi_tenant,
            idle_ttl=self.settings.client_idle_ttl,
            max_identities=self.settings.max_cached_identities,
        )
        self.dispatcher = ToolDispatcher(self.sessions)
        self.server = Server(SERVER_NAME, version=__version__)
        self._setup_handlers()

    def _setup_handlers(self) -> None:
        """Register MCP request handlers."""

        async def list_tools(req: types.ListToolsRequest) -> types.ServerResult:
            scope = getattr(req.params, "scope", None) if req.params else None
            tools = self.list_tools(scope)
            return types.ServerResult(types.ListToolsResult(tools=tools))

        async def call_tool(req: types.CallToolRequest) -> types.ServerResult:
            result = await self.call_tool(
                req.params.name, req.params.arguments, self._current_credential()
            )
            return types.ServerResult(result)

        self.server.request_handlers[types.ListToolsRequest] = list_tools
        self.server.request_handlers[types.CallToolRequest] = call_tool

    def list_tools(self, scope: str | list[str] | None = None) -> list[types.Tool]:
        """Return the tools visible under a space separated scope filter."""
        scopes = parse_scope_filter(scope)
        logger.info("Listing tools for scopes: %s", scopes or "all")
        return get_tools_for_scopes(scopes)

    async def call_tool(
        self,
        name: str,
        arguments: dict[str, Any] | None,
        credential: str | None = None,
    ) -> types.CallToolResult:
        return await self.dispatcher.handle(name, arguments, credential)

    def _current_credential(self) -> str | None:
        """Bearer credential of the HTTP request being served, if any.

        stdio requests carry no headers and always act as the default identity.
        """
        try:
            context = self.server.request_context
        except LookupError:
            return None

        request = getattr(context, "request", None)
        headers = getattr(request, "headers", None)
        if headers is None:
            return None
        return extract_credential(headers.get("authorization"))

    async def close(self) -> None:
        """Close the shared HTTP client and release resources."""
        await self.factory.close()

    async def run_stdio(self) -> None:
        """Run the MCP server using stdio transport."""
        self.sessions.start()
        try:
            async with stdio_server() as (read_stream, write_stream):
                await self.server.run(
                    read_stream,
                    write_stream,
                    self.server.create_initialization_options(),
                )
        finally:
            await self.close()

    async def run_http(self, host: str | None = None, port: int | None = None) -> None:
        """Run the MCP server behind the streamable HTTP app."""
        import uvicorn

        from google_mcp.server.http import create_app

        config = uvicorn.Config(
            create_app(self),
            host=host or self.settings.host,
            port=port or self.settings.port,
            log_level=self.settings.log_level.lower(),
        )
        logger.info("Serving HTTP on %s:%s", config.host, config.port)
        try:
            await uvicorn.Server(config).serve()
        finally:
            await self.close()

    async def run(self) -> None:
        """Run on the configured transport."""
        if self.settings.transport == "http":
            await self.run_http()
        else:
            await self.run_stdio()


def main() -> None:
    """Entry point for the Google MCP server."""
    settings = ServerSettings.from_env()
    configure_logging(settings.log_level)
    server = GoogleMcpServer(settings)
    asyncio.run(server.run())


if __name__ == "__main__":
    main()
