"""OAuth authentication for the Google Sheets MCP server.

Quick Start:
    ```python
    from google_sheets_mcp.auth import OAuthManager

    manager = OAuthManager()

    # Operator: run the browser consent flow once
    await manager.authenticate()

    # Server: build the credential handle from the saved token
    credentials = manager.get_credentials()
    ```
"""

from google_sheets_mcp.auth.callback_server import OAuthCallbackServer, wait_for_authorization_code
from google_sheets_mcp.auth.models import (
    ClientCredentials,
    OAuthToken,
    StoredToken,
    TokenMetadata,
    TokenStatus,
)
from google_sheets_mcp.auth.oauth_manager import OAuthManager, extract_authorization_code
from google_sheets_mcp.auth.token_storage import CredentialStore

__all__ = [
    "OAuthManager",
    "CredentialStore",
    "OAuthCallbackServer",
    "ClientCredentials",
    "OAuthToken",
    "StoredToken",
    "TokenMetadata",
    "TokenStatus",
    "extract_authorization_code",
    "wait_for_authorization_code",
]
