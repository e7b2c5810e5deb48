"""Streamable HTTP transport.

Routes:
    /mcp: MCP over streamable HTTP, JSON responses, no server-side sessions.
        The caller's ``Authorization: Bearer <token>`` header selects the
        Google identity the tools act as.
    /health: Liveness check.
    /.well-known/openid-configuration: Google's OAuth discovery document,
        with offline access requested so clients receive refresh tokens.
"""

import contextlib
import logging
from collections.abc import AsyncIterator
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from google_mcp.__version__ import __version__

if TYPE_CHECKING:
    from google_mcp.server.google_mcp_server import GoogleMcpServer

logger = logging.getLogger(__name__)

NO_CACHE = "no-cache, no-store, must-revalidate"

OPENID_CONFIGURATION = {
    "issuer": "https://accounts.google.com",
    "authorization_endpoint": "https://accounts.google.com/o/oauth2/v2/auth?access_type=offline",
    "device_authorization_endpoint": "https://oauth2.googleapis.com/device/code",
    "token_endpoint": "https://oauth2.googleapis.com/token?access_type=offline",
    "userinfo_endpoint": "https://openidconnect.googleapis.com/v1/userinfo",
    "revocation_endpoint": "https://oauth2.googleapis.com/revoke",
    "jwks_uri": "https://www.googleapis.com/oauth2/v3/certs",
    "response_types_supported": [
        "code",
        "token",
        "id_token",
        "code token",
        "code id_token",
        "token id_token",
        "code token id_token",
        "none",
    ],
    "subject_types_supported": ["public"],
    "id_token_signing_alg_values_supported": ["RS256"],
    "scopes_supported": ["openid", "email", "profile"],
    "token_endpoint_auth_methods_supported": ["client_secret_post", "client_secret_basic"],
    "claims_supported": [
        "aud",
        "email",
        "email_verified",
        "exp",
        "family_name",
        "given_name",
        "iat",
        "iss",
        "name",
        "picture",
        "sub",
    ],
    "code_challenge_methods_supported": ["plain", "S256"],
    "grant_types_supported": [
        "authorization_code",
        "refresh_token",
        "urn:ietf:params:oauth:grant-type:device_code",
        "urn:ietf:params:oauth:grant-type:jwt-bearer",
    ],
}


class NoCacheMiddleware:
    """Add ``Cache-Control: no-cache`` to every HTTP response."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_header(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = [(k, v) for k, v in message.get("headers", []) if k.lower() != b"cache-control"]
                headers.append((b"cache-control", NO_CACHE.encode()))
                message["headers"] = headers
            await send(message)

        await self.app(scope, receive, send_with_header)


class StreamableHTTPEndpoint:
    """ASGI endpoint handing requests to the MCP session manager."""

    def __init__(self, session_manager: StreamableHTTPSessionManager) -> None:
        self.session_manager = session_manager

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.session_manager.handle_request(scope, receive, send)


async def health(request: Request) -> JSONResponse:
    return JSONResponse(
        {
            "status": "healthy",
            "server": "google-mcp",
            "version": __version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    )


async def openid_configuration(request: Request) -> JSONResponse:
    return JSONResponse(OPENID_CONFIGURATION)


def create_app(mcp_server: "GoogleMcpServer") -> Starlette:
    """Build the ASGI app serving ``mcp_server`` over HTTP.

    Default initialization (single-tenant mode) is started when the app
    starts up, not when the first tool call arrives.
    """
    session_manager = StreamableHTTPSessionManager(
        app=mcp_server.server,
        json_response=True,
        stateless=True,
    )

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        mcp_server.sessions.start()
        async with session_manager.run():
            logger.info("Streamable HTTP session manager started")
            yield

    app = Starlette(
        routes=[
            Route("/health", health, methods=["GET"]),
            Route("/.well-known/openid-configuration", openid_configuration, methods=["GET"]),
            Route("/mcp", endpoint=StreamableHTTPEndpoint(session_manager)),
        ],
        lifespan=lifespan,
    )
    app.add_middleware(NoCacheMiddleware)
    return app
