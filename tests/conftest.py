"""Shared pytest fixtures for google-mcp tests.

This module provides reusable fixtures for testing OAuth authentication,
token storage, the session layer, and mocked Google REST APIs.
"""

import json
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from google_mcp.auth.credentials import BearerTokenAuth
from google_mcp.auth.models import OAuthToken, StoredToken, TokenMetadata

# =============================================================================
# Token Fixtures
# =============================================================================


@pytest.fixture
def valid_token() -> OAuthToken:
    """Create a valid, non-expired OAuth token."""
    return OAuthToken(
        access_token="test_access_token_abc123",
        refresh_token="test_refresh_token_xyz789",
        expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        scopes=[
            "https://www.googleapis.com/auth/calendar",
            "https://mail.google.com/",
            "https://www.googleapis.com/auth/drive",
            "https://www.googleapis.com/auth/tasks",
            "https://www.googleapis.com/auth/meetings.space.readonly",
        ],
        token_type="Bearer",
    )


@pytest.fixture
def expired_token() -> OAuthToken:
    """Create an expired OAuth token."""
    return OAuthToken(
        access_token="expired_access_token",
        refresh_token="test_refresh_token",
        expires_at=datetime.now(timezone.utc) - timedelta(hours=1),
        scopes=["https://www.googleapis.com/auth/calendar"],
        token_type="Bearer",
    )


@pytest.fixture
def token_metadata() -> TokenMetadata:
    """Create token metadata for testing."""
    return TokenMetadata(
        service_name="google-mcp",
        provider="google",
        created_at=datetime.now(timezone.utc) - timedelta(days=1),
    )


@pytest.fixture
def stored_token(valid_token: OAuthToken, token_metadata: TokenMetadata) -> StoredToken:
    """Create a complete stored token for testing."""
    return StoredToken(
        version=1,
        metadata=token_metadata,
        token=valid_token,
    )


# =============================================================================
# Token Storage Fixtures
# =============================================================================


@pytest.fixture
def temp_token_dir(tmp_path: Path) -> Path:
    """Create a temporary directory for token storage tests."""
    token_dir = tmp_path / ".google-mcp"
    token_dir.mkdir(parents=True, mode=0o700)
    return token_dir


@pytest.fixture
def temp_token_path(temp_token_dir: Path) -> Path:
    """Get the path for a temporary tokens.json file."""
    return temp_token_dir / "tokens.json"


@pytest.fixture
def token_storage(temp_token_path: Path):
    """Create a TokenStorage instance with temporary storage."""
    from google_mcp.auth.token_storage import TokenStorage

    return TokenStorage(token_path=temp_token_path)


# =============================================================================
# OAuth Manager Fixtures
# =============================================================================


@pytest.fixture
def oauth_manager(token_storage):
    """Create an OAuthManager with temporary storage."""
    from google_mcp.auth.oauth_manager import OAuthManager

    return OAuthManager(storage=token_storage)


@pytest.fixture
def mock_google_credentials() -> MagicMock:
    """Create a mock Google OAuth2 Credentials object."""
    mock_creds = MagicMock()
    mock_creds.token = "mock_access_token"
    mock_creds.refresh_token = "mock_refresh_token"
    mock_creds.expiry = datetime.now(timezone.utc) + timedelta(hours=1)
    mock_creds.expired = False
    mock_creds.valid = True
    mock_creds.scopes = ["https://www.googleapis.com/auth/calendar"]
    return mock_creds


# =============================================================================
# Mock Google REST APIs
# =============================================================================


class GoogleApiStub:
    """Canned Google API responses served through httpx.MockTransport.

    Routes are keyed by method and URL without the query string. Every
    request is recorded so tests can assert on params, headers and bodies.
    Unrouted requests get a Google-style 404.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        method: str,
        url: str,
        json_body: Any = None,
        status_code: int = 200,
        text: str | None = None,
    ) -> None:
        def respond(request: httpx.Request) -> httpx.Response:
            if text is not None:
                return httpx.Response(status_code, text=text)
            if json_body is None:
                return httpx.Response(status_code)
            return httpx.Response(status_code, json=json_body)

        self.routes[(method.upper(), url)] = respond

    def add_handler(
        self, method: str, url: str, handler: Callable[[httpx.Request], httpx.Response]
    ) -> None:
        self.routes[(method.upper(), url)] = handler

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = f"{request.url.scheme}://{request.url.host}{request.url.path}"
        route = self.routes.get((request.method, url))
        if route is None:
            return httpx.Response(
                404, json={"error": {"code": 404, "message": f"No route for {request.method} {url}"}}
            )
        return route(request)

    def last(self, method: str | None = None) -> httpx.Request:
        matching = [r for r in self.requests if method is None or r.method == method]
        return matching[-1]

    @staticmethod
    def body(request: httpx.Request) -> Any:
        return json.loads(request.content)


@pytest.fixture
def google_api() -> GoogleApiStub:
    """Route table for mocked Google API calls."""
    return GoogleApiStub()


@pytest.fixture
def http_client(google_api: GoogleApiStub) -> httpx.AsyncClient:
    """AsyncClient whose requests are answered by ``google_api``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(google_api.handler))


@pytest.fixture
def bearer_auth() -> BearerTokenAuth:
    """Auth handle for a fixed caller token."""
    return BearerTokenAuth("caller-token")


# =============================================================================
# Session Layer Fixtures
# =============================================================================


@pytest.fixture
def mock_authenticator() -> MagicMock:
    """Authenticator whose authenticate() returns a BearerTokenAuth for the credential."""
    authenticator = MagicMock()

    async def authenticate(credential: str | None = None) -> BearerTokenAuth:
        return BearerTokenAuth(credential or "default-token")

    authenticator.authenticate = AsyncMock(side_effect=authenticate)
    return authenticator


# =============================================================================
# CLI Test Fixtures
# =============================================================================


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
