"""Exceptions raised by the authenticator and the spreadsheet gateway.

Tool handlers never let these escape to the MCP host: the dispatcher turns
each one into a single ``Error: ...`` line. Messages are therefore kept on one
line and carry their own remediation text.
"""

from pathlib import Path


class SheetsMcpError(Exception):
    """Base class for all google-sheets-mcp failures."""


class MissingCredentialsFile(SheetsMcpError):
    """The OAuth client-secret file does not exist."""

    def __init__(self, path: Path, message: str | None = None) -> None:
        self.path = path
        super().__init__(
            message
            or f"Credentials file not found at {path}. "
            "Create an OAuth 2.0 client (Desktop app) in the Google Cloud console "
            "and save its JSON to this path."
        )


class InvalidCredentialsFile(MissingCredentialsFile):
    """The OAuth client-secret file exists but cannot be used."""

    def __init__(self, path: Path, reason: str) -> None:
        self.reason = reason
        super().__init__(
            path,
            f"Credentials file at {path} is not a valid OAuth client file ({reason}). "
            "Download it again from the Google Cloud console.",
        )


class MissingToken(SheetsMcpError):
    """No authentication token has been saved yet."""

    def __init__(self, token_path: Path, auth_url: str) -> None:
        self.token_path = token_path
        self.auth_url = auth_url
        super().__init__(
            f"Authentication token not found at {token_path}. "
            f"Authorize this app by visiting {auth_url} and then run "
            "'google-sheets-mcp exchange <code>', or run 'google-sheets-mcp setup'."
        )


class TokenExpired(SheetsMcpError):
    """The saved token was rejected or could not be refreshed."""

    def __init__(self, token_path: Path | None = None, detail: str | None = None) -> None:
        self.token_path = token_path
        location = str(token_path) if token_path else "the token file"
        prefix = f"{detail}. " if detail else ""
        super().__init__(
            f"{prefix}Authentication token expired or revoked. "
            f"Delete {location} and run 'google-sheets-mcp setup' to re-authenticate."
        )


class InvalidUrl(SheetsMcpError):
    """The supplied string is not a Google Sheets URL."""

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(
            "Invalid Google Sheets URL. Expected format: "
            "https://docs.google.com/spreadsheets/d/SPREADSHEET_ID/edit"
        )


class AccessDenied(SheetsMcpError):
    """The spreadsheet or file does not exist or is not shared with the user."""

    def __init__(self, resource: str, status_code: int | None = None) -> None:
        self.resource = resource
        self.status_code = status_code
        super().__init__(
            f"Unable to read {resource}. Make sure it exists and you have access to it."
        )


class RangeOrTabNotFound(SheetsMcpError):
    """The requested tab or A1 range does not exist in the spreadsheet."""

    def __init__(self, range_notation: str, detail: str | None = None) -> None:
        self.range_notation = range_notation
        suffix = f" ({detail})" if detail else ""
        super().__init__(
            f"Tab or range not found: {range_notation}{suffix}. "
            "Check the tab name with google_sheets_list_tabs and use A1 notation like 'A1:D10'."
        )


class ResponseTooLarge(SheetsMcpError):
    """The rendered response is over the character ceiling."""

    def __init__(self, size: int, limit: int, hint: str) -> None:
        self.size = size
        self.limit = limit
        super().__init__(f"Response exceeds size limit ({size} > {limit} characters). {hint}")


class ExchangeFailed(SheetsMcpError):
    """The authorization code could not be exchanged for a token."""

    def __init__(self, detail: str) -> None:
        super().__init__(
            f"Failed to exchange authorization code: {detail}. "
            "Codes are single-use and expire quickly; request a fresh authorization URL."
        )


class AuthorizationTimeout(SheetsMcpError):
    """No OAuth redirect reached the local listener in time."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(
            f"Authorization timeout - no redirect received within {int(timeout)} seconds"
        )


class PortInUse(SheetsMcpError):
    """The redirect listener port is taken by another process."""

    def __init__(self, port: int) -> None:
        self.port = port
        super().__init__(
            f"Port {port} is already in use. Stop the process using it or set "
            "GOOGLE_SHEETS_MCP_CALLBACK_PORT, or use 'setup --manual'."
        )


class PortPermissionDenied(SheetsMcpError):
    """Binding the redirect listener port requires elevated privileges."""

    def __init__(self, port: int) -> None:
        self.port = port
        super().__init__(
            f"Port {port} requires elevated privileges. Use a port above 1024 or 'setup --manual'."
        )


class UnknownError(SheetsMcpError):
    """Any remote failure that does not fit a more specific kind."""
