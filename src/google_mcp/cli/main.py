"""Command-line interface for google-mcp."""

import asyncio
import sys

import click

from google_mcp.__version__ import __version__


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """Google MCP Server - Google Workspace tools over the Model Context Protocol.

    This tool provides 36 tools across:
    - Calendar (events, free time)
    - Gmail (read, send, organize)
    - Drive (files, sharing)
    - Tasks (lists, tasks)
    - Meet (meetings, transcripts)
    """
    pass


@main.command()
@click.option("--client-id", envvar="GOOGLE_OAUTH_CLIENT_ID", help="Google OAuth client ID")
@click.option(
    "--client-secret", envvar="GOOGLE_OAUTH_CLIENT_SECRET", help="Google OAuth client secret"
)
def setup(client_id: str | None, client_secret: str | None) -> None:
    """Set up the default identity for single-tenant mode.

    This will:
    1. Open browser for OAuth2 consent flow
    2. Store the token at ./.google-mcp/tokens.json (or $GOOGLE_MCP_CREDENTIALS_DIR)

    Requires:
    - GOOGLE_OAUTH_CLIENT_ID environment variable or --client-id option
    - GOOGLE_OAUTH_CLIENT_SECRET environment variable or --client-secret option
    """
    from google_mcp.auth import OAuthManager

    manager = OAuthManager()

    if manager.has_valid_tokens():
        click.echo("✓ Already authenticated!")
        click.echo(f"Token stored at: {manager.token_path}")
        click.echo("")

        if not click.confirm("Re-authenticate?"):
            return

    if not client_id or not client_secret:
        click.echo("❌ Error: OAuth client credentials required")
        click.echo("")
        click.echo("Set environment variables:")
        click.echo("  export GOOGLE_OAUTH_CLIENT_ID='your-client-id'")
        click.echo("  export GOOGLE_OAUTH_CLIENT_SECRET='your-client-secret'")
        click.echo("")
        click.echo("Or pass as options:")
        click.echo("  google-mcp setup --client-id=... --client-secret=...")
        sys.exit(1)

    click.echo("Starting OAuth authentication flow...")
    click.echo("Browser will open for Google consent...")
    click.echo("")

    try:
        asyncio.run(manager.authenticate(client_id=client_id, client_secret=client_secret))
        click.echo("✓ Authentication successful!")
        click.echo(f"Token stored at: {manager.token_path}")
        click.echo("")
        click.echo("Run 'google-mcp doctor' to verify setup.")
    except Exception as e:
        click.echo(f"❌ Authentication failed: {e}")
        sys.exit(1)


@main.command()
@click.option(
    "--transport",
    type=click.Choice(["stdio", "http"]),
    default=None,
    help="Transport to serve on (default: $GOOGLE_MCP_TRANSPORT or stdio)",
)
@click.option("--host", default=None, help="HTTP bind address (default: $GOOGLE_MCP_HOST or 0.0.0.0)")
@click.option("--port", type=int, default=None, help="HTTP port (default: $PORT or 3000)")
@click.option(
    "--multiuser",
    is_flag=True,
    default=False,
    help="Multi-tenant mode: every call must carry the caller's bearer token",
)
def serve(
    transport: str | None, host: str | None, port: int | None, multiuser: bool
) -> None:
    """Start the MCP server.

    In single-tenant mode (the default) every tool acts as the identity
    stored by 'google-mcp setup', which must exist before the server starts.
    In multi-tenant mode there is no default identity; each HTTP caller
    authenticates with 'Authorization: Bearer <google-access-token>'.
    """
    from pydantic import ValidationError

    from google_mcp.auth import OAuthManager, TokenStatus
    from google_mcp.config import ServerSettings, configure_logging
    from google_mcp.server import GoogleMcpServer

    try:
        settings = ServerSettings.from_env(
            transport=transport, host=host, port=port, multi_tenant=multiuser or None
        )
    except ValidationError as e:
        click.echo(f"❌ Invalid configuration: {e}", err=True)
        sys.exit(1)

    if not settings.multi_tenant:
        status, _ = OAuthManager().get_status()

        if status == TokenStatus.MISSING:
            click.echo("❌ Not authenticated. Run 'google-mcp setup' first.", err=True)
            sys.exit(1)

        if status == TokenStatus.INVALID:
            click.echo(
                "❌ Token file corrupted. Run 'google-mcp setup' to re-authenticate.", err=True
            )
            sys.exit(1)

    configure_logging(settings.log_level)
    mode = "multi-tenant" if settings.multi_tenant else "single-tenant"

    try:
        click.echo(f"Starting Google MCP server ({settings.transport}, {mode})...", err=True)
        asyncio.run(GoogleMcpServer(settings).run())
    except KeyboardInterrupt:
        click.echo("\nServer stopped.", err=True)
    except Exception as e:
        click.echo(f"❌ Server error: {e}", err=True)
        sys.exit(1)


@main.command()
@click.option(
    "--scope",
    "scopes",
    multiple=True,
    help="Only show tools for these OAuth scopes (repeatable or space separated, short names accepted)",
)
def tools(scopes: tuple[str, ...]) -> None:
    """List the tools the server exposes, optionally filtered by scope."""
    from google_mcp.tools import get_tools_for_scopes, parse_scope_filter

    selected = get_tools_for_scopes(parse_scope_filter(list(scopes)))
    for tool in selected:
        click.echo(f"{tool.name}: {tool.description.splitlines()[0] if tool.description else ''}")
    click.echo("")
    click.echo(f"{len(selected)} tool(s)")


@main.command()
def doctor() -> None:
    """Check installation and authentication status.

    Verifies:
    1. Python dependencies installed
    2. Token validity for the default identity
    """
    from google_mcp.auth import OAuthManager, TokenStatus

    click.echo("Google MCP Status:")
    click.echo("")

    click.echo("Dependencies:")
    try:
        import google.auth  # noqa: F401
        import google_auth_oauthlib  # noqa: F401
        import mcp  # noqa: F401

        click.echo("  ✓ mcp installed")
        click.echo("  ✓ google-auth installed")
        click.echo("  ✓ google-auth-oauthlib installed")
    except ImportError as e:
        click.echo(f"  ❌ Missing dependency: {e}")
        sys.exit(1)

    click.echo("")

    manager = OAuthManager()
    status, stored = manager.get_status()

    click.echo("Authentication (single-tenant default identity):")
    click.echo(f"  Token file: {manager.token_path}")

    if status == TokenStatus.MISSING:
        click.echo("  ❌ Not authenticated")
        click.echo("")
        click.echo("Run 'google-mcp setup' to authenticate, or serve with --multiuser.")
        sys.exit(1)
    elif status == TokenStatus.INVALID:
        click.echo("  ❌ Token file corrupted")
        click.echo("")
        click.echo("Run 'google-mcp setup' to re-authenticate.")
        sys.exit(1)
    elif status == TokenStatus.EXPIRED:
        click.echo("  ⚠️  Token expired (can be refreshed)")
        click.echo("")
        click.echo("Run 'google-mcp setup' or token will refresh automatically on use.")
    elif status == TokenStatus.VALID:
        click.echo("  ✓ Authenticated")
        if stored:
            click.echo(
                f"  Token expires: {stored.token.expires_at.strftime('%Y-%m-%d %H:%M:%S UTC')}"
            )
            click.echo(f"  Scopes: {len(stored.token.scopes)} configured")

    click.echo("")
    click.echo("✓ Ready to use!")


if __name__ == "__main__":
    main()
