"""Runtime configuration for the google-mcp server.

Settings come from environment variables and may be overridden by CLI
options. Invalid values fail fast with a pydantic ``ValidationError`` at
startup, before any request is served.

Environment Variables:
    GOOGLE_MCP_MULTIUSER: Require a bearer credential on every tool call.
    GOOGLE_MCP_TRANSPORT: ``stdio`` (default) or ``http``.
    GOOGLE_MCP_HOST: Bind address for the HTTP transport (default: 0.0.0.0).
    PORT: Listen port for the HTTP transport (default: 3000).
    GOOGLE_MCP_VERIFY_CREDENTIALS: Check caller tokens against Google's
        tokeninfo endpoint before building clients (default: true).
    GOOGLE_MCP_CLIENT_IDLE_TTL: Seconds an idle caller's clients stay
        cached (default: 3600, ``0`` or ``none`` disables expiry).
    GOOGLE_MCP_MAX_CACHED_IDENTITIES: Maximum distinct callers with cached
        clients (default: 1000, ``0`` or ``none`` disables the bound).
    GOOGLE_MCP_LOG_LEVEL: Logging level name (default: INFO).
"""

import logging
import os
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

ENV_PREFIX = "GOOGLE_MCP_"

DEFAULT_HOST = "0.0.0.0"  # nosec B104 - container deployments bind all interfaces
DEFAULT_PORT = 3000
DEFAULT_CLIENT_IDLE_TTL = 3600.0
DEFAULT_MAX_CACHED_IDENTITIES = 1000

_DISABLED = {"", "0", "none", "off", "false"}


class ServerSettings(BaseModel):
    """Validated server settings.

    Attributes:
        multi_tenant: When true there is no default identity and callers
            must always supply a credential.
        transport: Which transport to serve on.
        host: HTTP bind address.
        port: HTTP listen port.
        verify_credentials: Round-trip caller tokens to Google before use.
        client_idle_ttl: Idle expiry for cached per-caller clients, seconds.
        max_cached_identities: LRU bound on distinct cached callers.
        log_level: Root logging level.
    """

    model_config = ConfigDict(frozen=True)

    multi_tenant: bool = False
    transport: Literal["stdio", "http"] = "stdio"
    host: str = DEFAULT_HOST
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    verify_credentials: bool = True
    client_idle_ttl: float | None = Field(default=DEFAULT_CLIENT_IDLE_TTL, gt=0)
    max_cached_identities: int | None = Field(default=DEFAULT_MAX_CACHED_IDENTITIES, gt=0)
    log_level: str = "INFO"

    @field_validator("client_idle_ttl", "max_cached_identities", mode="before")
    @classmethod
    def _disable_bound(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip().lower() in _DISABLED:
            return None
        if value == 0:
            return None
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level '{value}'")
        return level

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: Any) -> "ServerSettings":
        """Build settings from environment variables.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.
            **overrides: Explicit values (e.g. from CLI options) that win
                over the environment. ``None`` values are ignored.

        Returns:
            Validated ServerSettings.

        Raises:
            pydantic.ValidationError: If any value is malformed.
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}

        mapping = {
            "multi_tenant": f"{ENV_PREFIX}MULTIUSER",
            "transport": f"{ENV_PREFIX}TRANSPORT",
            "host": f"{ENV_PREFIX}HOST",
            "port": "PORT",
            "verify_credentials": f"{ENV_PREFIX}VERIFY_CREDENTIALS",
            "client_idle_ttl": f"{ENV_PREFIX}CLIENT_IDLE_TTL",
            "max_cached_identities": f"{ENV_PREFIX}MAX_CACHED_IDENTITIES",
            "log_level": f"{ENV_PREFIX}LOG_LEVEL",
        }
        for field_name, env_name in mapping.items():
            if env_name in env:
                values[field_name] = env[env_name]

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(values)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once, writing to stderr.

    stdout is reserved for the stdio transport's protocol frames.
    """
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # httpx logs full request URLs at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
