"""OAuth manager for the server operator's default Google identity.

Runs the installed-app consent flow once (``google-mcp setup``), persists
the resulting token with TokenStorage, and refreshes it on demand when
the server runs in single-tenant mode.

Environment Variables:
    GOOGLE_OAUTH_CLIENT_ID: Google OAuth client ID (required for setup)
    GOOGLE_OAUTH_CLIENT_SECRET: Google OAuth client secret (required for setup)
    GOOGLE_OAUTH_REDIRECT_URI: Redirect URI (default: http://127.0.0.1:8789/callback)
"""

import asyncio
import logging
import os
import secrets
import sys
import webbrowser
from datetime import datetime, timedelta, timezone
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path
from urllib.parse import parse_qs, urlparse

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow

from google_mcp.auth.models import OAuthToken, StoredToken, TokenMetadata, TokenStatus
from google_mcp.auth.token_storage import TokenStorage

logger = logging.getLogger(__name__)

SERVICE_NAME = "google-mcp"

# Full-access scope of every service the tool catalog covers
GOOGLE_MCP_SCOPES = [
    "https://www.googleapis.com/auth/calendar",
    "https://mail.google.com/",
    "https://www.googleapis.com/auth/drive",
    "https://www.googleapis.com/auth/tasks",
    "https://www.googleapis.com/auth/meetings.space.readonly",
]

GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"  # nosec B105 - public endpoint

DEFAULT_OAUTH_HOST = "127.0.0.1"
DEFAULT_OAUTH_PORT = 8789
DEFAULT_REDIRECT_URI = "http://127.0.0.1:8789/callback"
CALLBACK_TIMEOUT_SECONDS = 300

_SUCCESS_PAGE = (
    b"<html><body><h1>Authentication Successful!</h1>"
    b"<p>You can close this window and return to the terminal.</p></body></html>"
)
_FAILURE_PAGE = (
    b"<html><body><h1>Authentication Failed</h1>"
    b"<p>Please close this window and try again.</p></body></html>"
)


class OAuthFlowError(Exception):
    """The consent flow did not produce an authorization code."""


def _make_callback_handler(callback_path: str, result: dict[str, str]) -> type[BaseHTTPRequestHandler]:
    """Build a one-shot handler that records ``code`` or ``error`` into ``result``."""

    class OAuthCallbackHandler(BaseHTTPRequestHandler):
        def log_message(self, format: str, *args) -> None:
            pass

        def do_GET(self) -> None:
            request = urlparse(self.path)
            if request.path != callback_path:
                self.send_response(404)
                self.end_headers()
                self.wfile.write(b"Not Found")
                return

            params = parse_qs(request.query)
            if "code" in params:
                result["code"] = params["code"][0]
                status, page = 200, _SUCCESS_PAGE
            else:
                result["error"] = params.get("error", ["no authorization code received"])[0]
                status, page = 400, _FAILURE_PAGE

            self.send_response(status)
            self.send_header("Content-type", "text/html")
            self.end_headers()
            self.wfile.write(page)

    return OAuthCallbackHandler


class OAuthManager:
    """Authenticate, store and refresh the default identity's token.

    Attributes:
        storage: Token storage instance for persisting credentials.

    Example:
        ```python
        manager = OAuthManager()
        await manager.authenticate(client_id="...", client_secret="...")

        status, stored = manager.get_status()
        if status == TokenStatus.EXPIRED:
            token = await manager.refresh_if_needed()
        ```
    """

    def __init__(self, storage: TokenStorage | None = None, service_name: str = SERVICE_NAME) -> None:
        """Initialize OAuth manager.

        Args:
            storage: Token storage instance. Creates default if not provided.
            service_name: Key under which the token is stored.
        """
        self.storage = storage or TokenStorage()
        self._service_name = service_name

    @property
    def service_name(self) -> str:
        return self._service_name

    @property
    def token_path(self) -> Path:
        """Path to the tokens.json file backing this manager."""
        return self.storage.token_path

    def has_valid_tokens(self) -> bool:
        """Return True when a non-expired token is stored."""
        return self.storage.get_status(self._service_name) == TokenStatus.VALID

    def _credentials_to_token(self, credentials: Credentials, scopes: list[str]) -> OAuthToken:
        """Convert google-auth Credentials to an OAuthToken.

        Naive expiry times are read as UTC; a missing expiry defaults to
        one hour from now.
        """
        if credentials.expiry:
            expires_at = credentials.expiry
            if expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=timezone.utc)
        else:
            expires_at = datetime.now(timezone.utc) + timedelta(hours=1)

        return OAuthToken(  # nosec B106 - "Bearer" is the OAuth token type
            access_token=credentials.token,
            refresh_token=credentials.refresh_token,
            expires_at=expires_at,
            scopes=scopes,
            token_type="Bearer",
        )

    def _token_to_credentials(self, token: OAuthToken) -> Credentials:
        return Credentials(
            token=token.access_token,
            refresh_token=token.refresh_token,
            token_uri=GOOGLE_TOKEN_URI,
            scopes=token.scopes,
        )

    async def authenticate(
        self,
        scopes: list[str] | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
    ) -> OAuthToken:
        """Run the consent flow and store the resulting token.

        Args:
            scopes: OAuth scopes to request. Defaults to GOOGLE_MCP_SCOPES.
            client_id: Google OAuth client ID.
            client_secret: Google OAuth client secret.

        Returns:
            The newly stored OAuthToken.

        Raises:
            ValueError: If client ID or secret is missing.
            OAuthFlowError: If the user denies consent or no code arrives.
        """
        if scopes is None:
            scopes = GOOGLE_MCP_SCOPES

        if not client_id or not client_secret:
            raise ValueError(
                "Client ID and secret required. "
                "Pass as arguments or set GOOGLE_OAUTH_CLIENT_ID and "
                "GOOGLE_OAUTH_CLIENT_SECRET environment variables."
            )

        redirect_uri = os.environ.get("GOOGLE_OAUTH_REDIRECT_URI", DEFAULT_REDIRECT_URI)
        client_config = {
            "web": {
                "client_id": client_id,
                "client_secret": client_secret,
                "auth_uri": GOOGLE_AUTH_URI,
                "token_uri": GOOGLE_TOKEN_URI,
                "redirect_uris": [redirect_uri],
            }
        }

        # The consent flow blocks on a local HTTP callback
        loop = asyncio.get_running_loop()
        credentials = await loop.run_in_executor(
            None, self._run_oauth_flow, client_config, scopes, redirect_uri
        )

        token = self._credentials_to_token(credentials, scopes)
        metadata = TokenMetadata(service_name=self._service_name, provider="google")
        self.storage.store(self._service_name, token, metadata)
        logger.info("Stored OAuth token for %s at %s", self._service_name, self.token_path)

        return token

    def _run_oauth_flow(
        self, client_config: dict, scopes: list[str], redirect_uri: str
    ) -> Credentials:
        """Open the consent page and wait for the redirect (blocking).

        Args:
            client_config: Google OAuth client configuration (web type).
            scopes: OAuth scopes to request.
            redirect_uri: Full redirect URI including path.

        Returns:
            Credentials carrying access and refresh tokens.
        """
        flow = Flow.from_client_config(client_config, scopes=scopes, redirect_uri=redirect_uri)
        auth_url, _ = flow.authorization_url(
            access_type="offline",
            prompt="consent",
            state=secrets.token_urlsafe(32),
        )

        parsed = urlparse(redirect_uri)
        host = parsed.hostname or DEFAULT_OAUTH_HOST
        port = parsed.port or DEFAULT_OAUTH_PORT
        callback_path = parsed.path or "/callback"

        result: dict[str, str] = {}
        server = HTTPServer((host, port), _make_callback_handler(callback_path, result))
        server.timeout = CALLBACK_TIMEOUT_SECONDS

        print("Opening browser for Google authorization...", file=sys.stderr)
        print(f"If browser doesn't open, visit: {auth_url}", file=sys.stderr)
        webbrowser.open(auth_url)

        try:
            server.handle_request()
        finally:
            server.server_close()

        if "error" in result:
            raise OAuthFlowError(f"OAuth authentication failed: {result['error']}")
        if "code" not in result:
            raise OAuthFlowError("No authorization code received from Google")

        flow.fetch_token(code=result["code"])
        return flow.credentials

    async def refresh_if_needed(self) -> OAuthToken | None:
        """Refresh the stored token if it is expired or about to expire.

        Returns:
            The refreshed token, the existing token if still valid, or None
            when no token is stored or it has no refresh token.
        """
        stored = self.storage.retrieve(self._service_name)
        if stored is None:
            return None

        if not stored.token.is_expired():
            return stored.token

        if stored.token.refresh_token is None:
            return None

        credentials = self._token_to_credentials(stored.token)
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, credentials.refresh, Request())

        new_token = self._credentials_to_token(credentials, stored.token.scopes)
        stored.metadata.last_refreshed = datetime.now(timezone.utc)
        self.storage.store(self._service_name, new_token, stored.metadata)
        logger.info("Refreshed OAuth token for %s", self._service_name)

        return new_token

    def get_status(self) -> tuple[TokenStatus, StoredToken | None]:
        """Return the token status and the stored record, if any."""
        status = self.storage.get_status(self._service_name)
        stored = self.storage.retrieve(self._service_name) if status != TokenStatus.MISSING else None
        return (status, stored)
