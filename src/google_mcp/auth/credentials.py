"""Caller credentials: header parsing, fingerprinting and authentication.

A credential is the raw bearer token a caller sends in its Authorization
header. It is used to authenticate API calls on the caller's behalf and
is reduced to a SHA-256 fingerprint wherever it has to live longer than
one request (cache keys, log lines).
"""

import hashlib
import logging
from typing import Protocol

import httpx

from google_mcp.auth.models import TokenStatus
from google_mcp.auth.oauth_manager import OAuthManager
from google_mcp.auth.token_storage import TokenStorage
from google_mcp.errors import AuthInitializationError

logger = logging.getLogger(__name__)

TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"
BEARER_SCHEME = "bearer"


def extract_credential(authorization: str | None) -> str | None:
    """Parse a bearer Authorization header into a raw credential.

    Args:
        authorization: Raw header value, e.g. ``"Bearer ya29.a0..."``.

    Returns:
        The token, or None when the header is absent, empty, uses another
        scheme, or carries an empty token.
    """
    if not authorization:
        return None

    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != BEARER_SCHEME:
        return None

    token = token.strip()
    return token or None


def fingerprint(credential: str) -> str:
    """Derive the one-way cache key for a credential.

    Args:
        credential: Non-empty raw credential.

    Returns:
        Hex-encoded SHA-256 digest of the UTF-8 credential.

    Raises:
        ValueError: If the credential is empty.
    """
    if not credential:
        raise ValueError("Cannot fingerprint an empty credential")
    return hashlib.sha256(credential.encode("utf-8")).hexdigest()


def short_fingerprint(value: str) -> str:
    """Truncate a fingerprint for log output."""
    return value[:8]


class AuthenticatedHandle(Protocol):
    """Anything that can produce a bearer access token for Google APIs."""

    async def get_access_token(self) -> str: ...


class BearerTokenAuth:
    """Handle for an access token supplied by the caller.

    The token is used as-is; refreshing it is the caller's responsibility.
    """

    def __init__(self, token: str) -> None:
        self._token = token

    async def get_access_token(self) -> str:
        return self._token

    def __repr__(self) -> str:
        return f"BearerTokenAuth(fingerprint={short_fingerprint(fingerprint(self._token))})"


class StoredTokenAuth:
    """Handle for the operator's stored token, refreshed on demand.

    Attributes:
        storage: TokenStorage holding the default identity's token.
        manager: OAuthManager used to refresh the token when it expires.
    """

    def __init__(self, storage: TokenStorage, manager: OAuthManager) -> None:
        self.storage = storage
        self.manager = manager

    async def get_access_token(self) -> str:
        """Get a valid access token, refreshing if necessary.

        Raises:
            AuthInitializationError: If no token is stored, the stored token
                is corrupted, or refresh fails.
        """
        service_name = self.manager.service_name
        status = self.storage.get_status(service_name)

        if status == TokenStatus.MISSING:
            raise AuthInitializationError(
                f"No OAuth token found for service '{service_name}'. "
                "Please authenticate first using: google-mcp setup"
            )

        if status == TokenStatus.INVALID:
            raise AuthInitializationError(
                f"OAuth token for service '{service_name}' is invalid or corrupted. "
                "Please re-authenticate using: google-mcp setup"
            )

        if status == TokenStatus.EXPIRED:
            logger.info("Stored token expired, attempting refresh")
            try:
                token = await self.manager.refresh_if_needed()
            except Exception as e:
                raise AuthInitializationError(f"Token refresh failed: {e}") from e
            if token is None:
                raise AuthInitializationError(
                    "Token refresh failed. Please re-authenticate using: google-mcp setup"
                )
            return token.access_token

        stored = self.storage.retrieve(service_name)
        if stored is None:
            raise AuthInitializationError("Stored token disappeared while reading it")
        return stored.token.access_token


class Authenticator:
    """Turn a credential (or its absence) into an authenticated handle.

    Args:
        http_client: Shared client used for the tokeninfo round-trip.
        verify_credentials: Check caller tokens with Google before use.
        storage: Token storage for the default identity.
        manager: OAuth manager for the default identity.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        verify_credentials: bool = True,
        storage: TokenStorage | None = None,
        manager: OAuthManager | None = None,
    ) -> None:
        self._http_client = http_client
        self.verify_credentials = verify_credentials
        self._storage = storage
        self._manager = manager

    async def authenticate(self, credential: str | None = None) -> AuthenticatedHandle:
        """Authenticate a caller credential or the default identity.

        Args:
            credential: Raw bearer token, or None for the stored default token.

        Returns:
            A handle whose ``get_access_token()`` yields a usable token.

        Raises:
            AuthInitializationError: If the credential is rejected or no
                usable default token exists.
        """
        if credential:
            if self.verify_credentials:
                await self._verify(credential)
            return BearerTokenAuth(credential)

        return await self._authenticate_default()

    async def _verify(self, credential: str) -> None:
        key = short_fingerprint(fingerprint(credential))
        try:
            # Form body keeps the token out of the request URL
            response = await self._http_client.post(
                TOKENINFO_URL, data={"access_token": credential}
            )
        except httpx.HTTPError as e:
            raise AuthInitializationError(f"Could not verify credential: {e}") from e

        if response.status_code != 200:
            logger.info("Credential %s rejected by Google (HTTP %s)", key, response.status_code)
            raise AuthInitializationError("Credential rejected by Google: invalid or expired token")

        logger.debug("Credential %s verified", key)

    async def _authenticate_default(self) -> AuthenticatedHandle:
        storage = self._storage or TokenStorage()
        manager = self._manager or OAuthManager(storage=storage)
        handle = StoredTokenAuth(storage, manager)
        # Fail now rather than on the first tool call
        await handle.get_access_token()
        return handle
