"""Unit tests for server settings."""

import logging
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from google_mcp.config import (
    DEFAULT_CLIENT_IDLE_TTL,
    DEFAULT_HOST,
    DEFAULT_MAX_CACHED_IDENTITIES,
    DEFAULT_PORT,
    ServerSettings,
    configure_logging,
)


@pytest.mark.unit
class TestServerSettingsDefaults:
    """Tests for default settings."""

    def test_should_default_to_single_tenant_stdio(self) -> None:
        """Verify an empty environment yields the documented defaults."""
        settings = ServerSettings.from_env({})

        assert settings.multi_tenant is False
        assert settings.transport == "stdio"
        assert settings.host == DEFAULT_HOST
        assert settings.port == DEFAULT_PORT == 3000
        assert settings.verify_credentials is True
        assert settings.client_idle_ttl == DEFAULT_CLIENT_IDLE_TTL
        assert settings.max_cached_identities == DEFAULT_MAX_CACHED_IDENTITIES
        assert settings.log_level == "INFO"

    def test_should_be_immutable(self) -> None:
        """Verify settings cannot change after startup."""
        settings = ServerSettings()

        with pytest.raises(ValidationError):
            settings.port = 9000


@pytest.mark.unit
class TestServerSettingsFromEnv:
    """Tests for ServerSettings.from_env()."""

    def test_should_read_environment_variables(self) -> None:
        """Verify each variable maps to its setting."""
        settings = ServerSettings.from_env(
            {
                "GOOGLE_MCP_MULTIUSER": "true",
                "GOOGLE_MCP_TRANSPORT": "http",
                "GOOGLE_MCP_HOST": "127.0.0.1",
                "PORT": "8080",
                "GOOGLE_MCP_VERIFY_CREDENTIALS": "false",
                "GOOGLE_MCP_CLIENT_IDLE_TTL": "120",
                "GOOGLE_MCP_MAX_CACHED_IDENTITIES": "50",
                "GOOGLE_MCP_LOG_LEVEL": "debug",
            }
        )

        assert settings.multi_tenant is True
        assert settings.transport == "http"
        assert settings.host == "127.0.0.1"
        assert settings.port == 8080
        assert settings.verify_credentials is False
        assert settings.client_idle_ttl == 120
        assert settings.max_cached_identities == 50
        assert settings.log_level == "DEBUG"

    def test_should_let_overrides_win(self) -> None:
        """Verify explicit values take precedence over the environment."""
        settings = ServerSettings.from_env(
            {"PORT": "8080", "GOOGLE_MCP_TRANSPORT": "stdio"}, port=9090, transport="http"
        )

        assert settings.port == 9090
        assert settings.transport == "http"

    def test_should_ignore_none_overrides(self) -> None:
        """Verify unset CLI options fall through to the environment."""
        settings = ServerSettings.from_env({"PORT": "8080"}, port=None, multi_tenant=None)

        assert settings.port == 8080
        assert settings.multi_tenant is False

    @pytest.mark.parametrize("value", ["0", "none", "off", ""])
    def test_should_disable_idle_expiry(self, value: str) -> None:
        """Verify zero-like values turn off idle expiry."""
        settings = ServerSettings.from_env({"GOOGLE_MCP_CLIENT_IDLE_TTL": value})

        assert settings.client_idle_ttl is None

    def test_should_disable_identity_bound_with_zero(self) -> None:
        """Verify a zero bound means unbounded."""
        settings = ServerSettings.from_env({}, max_cached_identities=0)

        assert settings.max_cached_identities is None

    @pytest.mark.parametrize(
        "environ",
        [
            {"PORT": "not-a-port"},
            {"PORT": "70000"},
            {"GOOGLE_MCP_TRANSPORT": "websocket"},
            {"GOOGLE_MCP_LOG_LEVEL": "chatty"},
            {"GOOGLE_MCP_CLIENT_IDLE_TTL": "-5"},
            {"GOOGLE_MCP_MULTIUSER": "maybe"},
        ],
    )
    def test_should_reject_malformed_values(self, environ: dict[str, str]) -> None:
        """Verify bad configuration fails fast."""
        with pytest.raises(ValidationError):
            ServerSettings.from_env(environ)


@pytest.mark.unit
class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_should_quiet_http_client_request_logs(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Verify httpx and httpcore only log warnings so request URLs stay out of the logs."""
        for name in ("httpx", "httpcore"):
            monkeypatch.setattr(logging.getLogger(name), "level", logging.NOTSET)

        with patch("google_mcp.config.logging.basicConfig") as basic_config:
            configure_logging("DEBUG")

        basic_config.assert_called_once()
        assert basic_config.call_args.kwargs["level"] == "DEBUG"
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING
