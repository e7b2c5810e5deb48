"""Authentication for google-mcp.

Two kinds of identity reach the Google APIs:

- a caller's own bearer token (multi-tenant mode), wrapped by
  ``BearerTokenAuth`` and keyed by its ``fingerprint``;
- the operator's stored token (single-tenant mode), created once with
  ``google-mcp setup`` and refreshed by ``OAuthManager``.

Quick Start:
    ```python
    from google_mcp.auth import Authenticator, extract_credential

    credential = extract_credential(request.headers.get("authorization"))
    handle = await Authenticator(http_client).authenticate(credential)
    token = await handle.get_access_token()
    ```
"""

from google_mcp.auth.credentials import (
    AuthenticatedHandle,
    Authenticator,
    BearerTokenAuth,
    StoredTokenAuth,
    extract_credential,
    fingerprint,
)
from google_mcp.auth.models import (
    OAuthToken,
    StoredToken,
    TokenMetadata,
    TokenStatus,
)
from google_mcp.auth.oauth_manager import GOOGLE_MCP_SCOPES, OAuthManager
from google_mcp.auth.token_storage import TokenStorage

__all__ = [
    "AuthenticatedHandle",
    "Authenticator",
    "BearerTokenAuth",
    "StoredTokenAuth",
    "extract_credential",
    "fingerprint",
    "OAuthManager",
    "TokenStorage",
    "OAuthToken",
    "StoredToken",
    "TokenMetadata",
    "TokenStatus",
    "GOOGLE_MCP_SCOPES",
]
