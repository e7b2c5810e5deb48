"""JSON token storage for the default (single-tenant) identity.

Storage Location: ./.google-mcp/tokens.json, or the directory named by
GOOGLE_MCP_CREDENTIALS_DIR.

Only the server operator's own token lives here. Caller credentials in
multi-tenant mode are never persisted.
"""

import json
import logging
import os
from pathlib import Path

from google_mcp.auth.models import (
    OAuthToken,
    StoredToken,
    TokenMetadata,
    TokenStatus,
)

logger = logging.getLogger(__name__)

CREDENTIALS_DIR_ENV = "GOOGLE_MCP_CREDENTIALS_DIR"
CREDENTIALS_DIR_NAME = ".google-mcp"
TOKEN_FILE_NAME = "tokens.json"


def get_token_path() -> Path:
    """Resolve the token file path.

    Returns:
        ``$GOOGLE_MCP_CREDENTIALS_DIR/tokens.json`` when the variable is set,
        otherwise ``./.google-mcp/tokens.json`` under the working directory.
    """
    configured = os.environ.get(CREDENTIALS_DIR_ENV)
    base = Path(configured).expanduser() if configured else Path.cwd() / CREDENTIALS_DIR_NAME
    return base / TOKEN_FILE_NAME


class TokenStorage:
    """JSON-file storage for OAuth tokens, keyed by service name.

    The file holds one ``StoredToken`` record per service name. Directory
    permissions are kept at 0700 and the file at 0600.

    Attributes:
        token_path: Path to the tokens.json file.
        credentials_dir: Directory containing the token file.
    """

    def __init__(self, token_path: Path | None = None) -> None:
        """Initialize token storage.

        Args:
            token_path: Custom path for tokens.json. Resolved with
                ``get_token_path()`` when omitted.
        """
        self.token_path = token_path or get_token_path()
        self.credentials_dir = self.token_path.parent
        self._ensure_credentials_dir()

    def _ensure_credentials_dir(self) -> None:
        """Create credentials directory with secure permissions if needed."""
        creds_dir = self.token_path.parent
        if not creds_dir.exists():
            creds_dir.mkdir(parents=True, mode=0o700)
        else:
            creds_dir.chmod(0o700)

    def _load_tokens(self) -> dict[str, dict]:
        """Load every record from the JSON file.

        Returns:
            Mapping of service name to raw record, empty when the file is
            absent or unreadable.
        """
        if not self.token_path.exists():
            return {}

        try:
            with open(self.token_path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError):
            logger.warning("Token file %s is unreadable; treating as empty", self.token_path)
            return {}

        return data if isinstance(data, dict) else {}

    def _save_tokens(self, tokens: dict[str, dict]) -> None:
        self._ensure_credentials_dir()

        with open(self.token_path, "w") as f:
            json.dump(tokens, f, indent=2, default=str)

        self.token_path.chmod(0o600)

    def store(
        self,
        service_name: str,
        token: OAuthToken,
        metadata: TokenMetadata,
    ) -> None:
        """Store an OAuth token, replacing any previous one for the service.

        Args:
            service_name: Unique identifier for the service.
            token: OAuth token data to store.
            metadata: Token metadata including provider info.
        """
        stored_token = StoredToken(version=1, metadata=metadata, token=token)

        tokens = self._load_tokens()
        tokens[service_name] = json.loads(stored_token.model_dump_json())
        self._save_tokens(tokens)

    def retrieve(self, service_name: str) -> StoredToken | None:
        """Retrieve a stored OAuth token.

        Args:
            service_name: Unique identifier for the service.

        Returns:
            StoredToken if found and well-formed, None otherwise.
        """
        tokens = self._load_tokens()

        if service_name not in tokens:
            return None

        try:
            return StoredToken.model_validate(tokens[service_name])
        except (ValueError, KeyError):
            return None

    def get_status(self, service_name: str) -> TokenStatus:
        """Get the status of a stored token.

        Args:
            service_name: Unique identifier for the service.

        Returns:
            MISSING when absent, INVALID when present but unparseable,
            EXPIRED when past (or near) its expiry, VALID otherwise.
        """
        stored = self.retrieve(service_name)

        if stored is None:
            if service_name in self._load_tokens():
                return TokenStatus.INVALID
            return TokenStatus.MISSING

        if stored.token.is_expired():
            return TokenStatus.EXPIRED

        return TokenStatus.VALID
