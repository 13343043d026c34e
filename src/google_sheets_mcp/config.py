"""Paths and constants for google-sheets-mcp.

All local files live under a single base directory (the operator's home by
default). The base directory is resolved once and handed to the stores that
need it, so tests can point everything at a temporary directory.

Environment Variables:
    GOOGLE_SHEETS_MCP_HOME: Base directory for credential, token and host
        settings files (default: the user's home directory).
    GOOGLE_SHEETS_MCP_CALLBACK_PORT: Port for the one-shot OAuth redirect
        listener (default: 3000).
"""

import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict

# Maximum characters returned by a single tool call
CHARACTER_LIMIT = 25000

# Data rows rendered in a markdown table before the "more rows" note
MAX_MARKDOWN_ROWS = 100

# Drive caps page size for file search
MAX_SEARCH_FILES = 50

# Read-write Sheets plus read-only Drive, as granted to the OAuth client
SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive.readonly",
]

DEFAULT_CALLBACK_HOST = "localhost"
DEFAULT_CALLBACK_PORT = 3000
AUTHORIZATION_TIMEOUT_SECONDS = 300

CREDENTIALS_FILENAME = ".google-sheets-mcp-credentials.json"
TOKEN_FILENAME = ".google-sheets-mcp-token.json"

# Key under "mcpServers" in the host settings file
HOST_SERVER_KEY = "google-sheets"


class AppPaths(BaseModel):
    """Local file locations derived from one base directory.

    Attributes:
        base_dir: Directory holding the credential and token files.
    """

    model_config = ConfigDict(frozen=True)

    base_dir: Path

    @property
    def credentials_path(self) -> Path:
        """OAuth client-secret file downloaded from the Google Cloud console."""
        return self.base_dir / CREDENTIALS_FILENAME

    @property
    def token_path(self) -> Path:
        """Access/refresh token file written after authorization."""
        return self.base_dir / TOKEN_FILENAME

    @property
    def settings_path(self) -> Path:
        """Host configuration file patched with the server launch entry."""
        return self.base_dir / ".claude" / "settings.json"

    @classmethod
    def from_env(cls) -> "AppPaths":
        """Resolve the base directory from the environment.

        Returns:
            AppPaths rooted at GOOGLE_SHEETS_MCP_HOME or the home directory.
        """
        base = os.environ.get("GOOGLE_SHEETS_MCP_HOME")
        return cls(base_dir=Path(base).expanduser() if base else Path.home())


def get_callback_port() -> int:
    """Get the redirect listener port, honoring GOOGLE_SHEETS_MCP_CALLBACK_PORT."""
    value = os.environ.get("GOOGLE_SHEETS_MCP_CALLBACK_PORT")
    if not value:
        return DEFAULT_CALLBACK_PORT
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f"GOOGLE_SHEETS_MCP_CALLBACK_PORT must be an integer, got {value!r}") from e
