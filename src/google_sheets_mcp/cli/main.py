"""Command-line interface for google-sheets-mcp."""

import asyncio
import sys
from typing import NoReturn

import click

from google_sheets_mcp.__version__ import __version__
from google_sheets_mcp.config import AUTHORIZATION_TIMEOUT_SECONDS, AppPaths
from google_sheets_mcp.errors import SheetsMcpError


def _manager():
    from google_sheets_mcp.auth import CredentialStore, OAuthManager

    return OAuthManager(CredentialStore(AppPaths.from_env()))


def _fail(message: str) -> NoReturn:
    click.echo(f"❌ {message}", err=True)
    sys.exit(1)


def _register_host_settings() -> None:
    from google_sheets_mcp.host_settings import register_server, server_entry

    settings_path = AppPaths.from_env().settings_path
    entry = server_entry()
    try:
        changed = register_server(settings_path, entry)
    except OSError as e:
        click.echo(f"❌ Could not update {settings_path}: {e}", err=True)
        click.echo("You may need to add this to your settings manually:", err=True)
        click.echo(f'  "mcpServers": {{"google-sheets": {entry}}}', err=True)
        sys.exit(1)

    if changed:
        click.echo(f"✓ Added Google Sheets MCP server to {settings_path}")
        click.echo("⚠️  Restart your MCP host for the change to take effect.")
    else:
        click.echo("✓ Google Sheets MCP server already configured correctly")


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """Google Sheets MCP Server - read-only Google Sheets tools for Claude.

    This tool provides 5 tools:
    - Spreadsheet info and tab listing
    - Tab data (whole tab or A1 range)
    - Drive file search and spreadsheet content search
    """
    pass


@main.command()
@click.option("--manual", is_flag=True, help="Paste the redirect URL instead of running a local listener")
@click.option("--no-browser", is_flag=True, help="Do not open the consent page automatically")
@click.option(
    "--timeout",
    type=int,
    default=AUTHORIZATION_TIMEOUT_SECONDS,
    show_default=True,
    help="Seconds to wait for the browser redirect",
)
@click.option("--skip-settings", is_flag=True, help="Do not register the server in the host settings")
def setup(manual: bool, no_browser: bool, timeout: int, skip_settings: bool) -> None:
    """Authorize Google Sheets access and register the MCP server.

    This will:
    1. Open the browser for the Google consent page
    2. Capture the redirect on a local port (or ask you to paste it)
    3. Save the token to ~/.google-sheets-mcp-token.json
    4. Add the server to ~/.claude/settings.json
    """
    from google_sheets_mcp.auth import TokenStatus

    manager = _manager()

    if manager.store.get_token_status() == TokenStatus.VALID:
        click.echo("✓ Already authenticated!")
        click.echo(f"Token stored at: {manager.token_path}")
        click.echo("")
        if not click.confirm("Re-authenticate?"):
            return

    click.echo("Starting OAuth authentication flow...")
    if not no_browser:
        click.echo("Browser will open for Google consent...")
    click.echo("")

    def prompt(text: str) -> str:
        return click.prompt(text)

    try:
        asyncio.run(
            manager.authenticate(
                open_browser=not no_browser,
                manual=manual,
                prompt=prompt,
                notify=click.echo,
                timeout=timeout,
            )
        )
    except SheetsMcpError as e:
        click.echo("")
        _fail(f"Authentication failed: {e}")

    click.echo("✓ Authentication successful!")
    click.echo(f"Token stored at: {manager.token_path}")
    click.echo("")

    if not skip_settings:
        _register_host_settings()
        click.echo("")

    click.echo("Run 'google-sheets-mcp doctor' to verify setup.")


@main.command("auth-url")
def auth_url() -> None:
    """Print the Google consent URL for out-of-band authorization."""
    manager = _manager()
    try:
        url = manager.authorization_url()
    except SheetsMcpError as e:
        _fail(str(e))

    click.echo("1. Open this URL in your browser:")
    click.echo(url)
    click.echo("")
    click.echo("2. Complete the consent screen")
    click.echo(f"3. You'll be redirected to: {manager.redirect_uri}?code=<AUTHORIZATION_CODE>")
    click.echo("4. Copy the full redirect URL (or just the code) and run:")
    click.echo("   google-sheets-mcp exchange '<REDIRECT_URL_OR_CODE>'")


@main.command()
@click.argument("code_or_url")
def exchange(code_or_url: str) -> None:
    """Exchange an authorization code (or redirect URL) for a token."""
    manager = _manager()
    try:
        manager.exchange_code(code_or_url)
    except SheetsMcpError as e:
        _fail(str(e))

    click.echo(f"✓ Token saved successfully to: {manager.token_path}")
    click.echo("You can now use the Google Sheets MCP server!")


@main.command()
def configure() -> None:
    """Register the MCP server in the host settings file."""
    _register_host_settings()


@main.command()
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
def cleanup(yes: bool) -> None:
    """Remove saved credentials, token and (optionally) the host settings entry."""
    from google_sheets_mcp.host_settings import unregister_server

    manager = _manager()
    paths = AppPaths.from_env()

    click.echo("This will remove:")
    click.echo(f"  1. OAuth credentials file ({manager.credentials_path})")
    click.echo(f"  2. Authentication token file ({manager.token_path})")
    click.echo("  3. MCP server configuration from the host settings (optional)")
    click.echo("")

    if not yes and not click.confirm("⚠️  Are you sure you want to remove all credentials?"):
        click.echo("Cleanup cancelled.")
        return

    removed = 0
    if manager.store.delete_client_credentials():
        click.echo(f"✓ Removed OAuth credentials: {manager.credentials_path}")
        removed += 1
    else:
        click.echo("ℹ️  OAuth credentials file not found (already removed)")

    if manager.store.delete_token():
        click.echo(f"✓ Removed authentication token: {manager.token_path}")
        removed += 1
    else:
        click.echo("ℹ️  Token file not found (already removed)")

    remove_settings = yes or click.confirm(
        "Remove Google Sheets MCP server from the host settings?"
    )
    if remove_settings:
        if unregister_server(paths.settings_path):
            click.echo("✓ Removed MCP server from host settings")
            removed += 1
        else:
            click.echo("ℹ️  MCP server not found in host settings (already removed)")

    click.echo("")
    if removed:
        click.echo(f"✓ Cleanup complete! Removed {removed} item(s).")
    else:
        click.echo("ℹ️  No credentials found to remove.")
    if remove_settings:
        click.echo("⚠️  Restart your MCP host for changes to take effect.")


@main.command()
def mcp() -> None:
    """Start the MCP server for Claude integration.

    Starts the stdio MCP server. The OAuth credentials file must exist;
    a missing token is reported by each tool with an authorization URL.

    This command is typically invoked by the MCP host.
    """
    manager = _manager()
    if not manager.store.has_client_credentials():
        _fail(
            f"OAuth credentials file not found at {manager.credentials_path}. "
            "Run 'google-sheets-mcp doctor' for setup instructions."
        )

    from google_sheets_mcp.server import main as server_main

    try:
        click.echo("Starting Google Sheets MCP server...", err=True)
        server_main()
    except KeyboardInterrupt:
        click.echo("\nServer stopped.", err=True)


@main.command()
def doctor() -> None:
    """Check installation and authentication status.

    Verifies:
    1. Python dependencies installed
    2. OAuth credentials file present and valid
    3. Token status
    """
    from google_sheets_mcp.auth import TokenStatus

    click.echo("Google Sheets MCP Status:")
    click.echo("")

    click.echo("Dependencies:")
    try:
        import google.auth  # noqa: F401
        import google_auth_oauthlib  # noqa: F401
        import httpx  # noqa: F401
        import mcp  # noqa: F401

        click.echo("  ✓ google-auth installed")
        click.echo("  ✓ google-auth-oauthlib installed")
        click.echo("  ✓ httpx installed")
        click.echo("  ✓ mcp installed")
    except ImportError as e:
        click.echo(f"  ❌ Missing dependency: {e}")
        sys.exit(1)

    click.echo("")

    manager = _manager()
    click.echo("OAuth client:")
    click.echo(f"  Credentials file: {manager.credentials_path}")
    try:
        client = manager.load_client()
    except SheetsMcpError as e:
        click.echo(f"  ❌ {e}")
        sys.exit(1)
    click.echo(f"  ✓ {client.client_type} client {client.client_id}")
    click.echo(f"  Redirect URI: {manager.redirect_uri}")

    click.echo("")

    status = manager.store.get_token_status()
    click.echo("Authentication:")
    click.echo(f"  Token file: {manager.token_path}")

    if status == TokenStatus.MISSING:
        click.echo("  ❌ Not authenticated")
        click.echo("")
        click.echo("Run 'google-sheets-mcp setup' to authenticate.")
        sys.exit(1)
    elif status == TokenStatus.INVALID:
        click.echo("  ❌ Token file corrupted")
        click.echo("")
        click.echo("Delete the token file and run 'google-sheets-mcp setup' to re-authenticate.")
        sys.exit(1)
    elif status == TokenStatus.EXPIRED:
        click.echo("  ⚠️  Access token expired (refreshed automatically on use)")
    else:
        stored = manager.store.load_token()
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
