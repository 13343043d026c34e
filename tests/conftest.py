"""Shared pytest fixtures for google-sheets-mcp tests.

This module provides reusable fixtures for the credential files, OAuth
tokens and a mocked Google API transport.
"""

import json
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import httpx
import pytest

from google_sheets_mcp.auth.models import OAuthToken, StoredToken, TokenMetadata
from google_sheets_mcp.config import AppPaths

# =============================================================================
# Environment and Paths
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Point every default path at tmp_path and clear port overrides."""
    monkeypatch.setenv("GOOGLE_SHEETS_MCP_HOME", str(tmp_path))
    monkeypatch.delenv("GOOGLE_SHEETS_MCP_CALLBACK_PORT", raising=False)


@pytest.fixture
def app_paths(tmp_path: Path) -> AppPaths:
    """AppPaths rooted at the test's temporary directory."""
    return AppPaths(base_dir=tmp_path)


@pytest.fixture
def client_secrets() -> dict[str, Any]:
    """Client-secret document as downloaded for a desktop OAuth client."""
    return {
        "installed": {
            "client_id": "test-client-id.apps.googleusercontent.com",
            "client_secret": "test-client-secret",  # pragma: allowlist secret
            "auth_uri": "https://accounts.google.com/o/oauth2/auth",
            "token_uri": "https://oauth2.googleapis.com/token",
            "redirect_uris": ["http://localhost"],
        }
    }


@pytest.fixture
def credentials_file(app_paths: AppPaths, client_secrets: dict[str, Any]) -> Path:
    """Write the client-secret file and return its path."""
    app_paths.credentials_path.write_text(json.dumps(client_secrets))
    return app_paths.credentials_path


# =============================================================================
# Token Fixtures
# =============================================================================


@pytest.fixture
def valid_token() -> OAuthToken:
    """Create a valid, non-expired OAuth token."""
    return OAuthToken(
        access_token="test_access_token_abc123",
        refresh_token="test_refresh_token_xyz789",
        expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        scopes=[
            "https://www.googleapis.com/auth/spreadsheets",
            "https://www.googleapis.com/auth/drive.readonly",
        ],
        token_type="Bearer",
    )


@pytest.fixture
def expired_token() -> OAuthToken:
    """Create an expired OAuth token."""
    return OAuthToken(
        access_token="expired_access_token",
        refresh_token="test_refresh_token",
        expires_at=datetime.now(timezone.utc) - timedelta(hours=1),
        scopes=["https://www.googleapis.com/auth/spreadsheets"],
        token_type="Bearer",
    )


@pytest.fixture
def token_metadata() -> TokenMetadata:
    """Create token metadata for testing."""
    return TokenMetadata(
        service_name="google-sheets-mcp",
        provider="google",
        created_at=datetime.now(timezone.utc) - timedelta(days=1),
    )


@pytest.fixture
def stored_token(valid_token: OAuthToken, token_metadata: TokenMetadata) -> StoredToken:
    """Create a complete stored token for testing."""
    return StoredToken(version=1, metadata=token_metadata, token=valid_token)


# =============================================================================
# Store and Manager Fixtures
# =============================================================================


@pytest.fixture
def credential_store(app_paths: AppPaths):
    """Create a CredentialStore with temporary storage."""
    from google_sheets_mcp.auth.token_storage import CredentialStore

    return CredentialStore(app_paths)


@pytest.fixture
def oauth_manager(credential_store, credentials_file: Path):
    """Create an OAuthManager with a client file and no token."""
    from google_sheets_mcp.auth.oauth_manager import OAuthManager

    return OAuthManager(store=credential_store)


@pytest.fixture
def authenticated_manager(oauth_manager, valid_token: OAuthToken, token_metadata: TokenMetadata):
    """OAuthManager with a valid token already saved."""
    oauth_manager.store.save_token(valid_token, token_metadata)
    return oauth_manager


# =============================================================================
# Mock Google API Transport
# =============================================================================


class GoogleApiStub:
    """Route table for httpx.MockTransport.

    Routes are matched on the request's decoded path; each route returns a
    JSON body (and optional status code). Every request is recorded.
    """

    def __init__(self) -> None:
        self.routes: dict[str, tuple[int, Any]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, path: str, body: Any, status_code: int = 200) -> None:
        self.routes[path] = (status_code, body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path not in self.routes:
            return httpx.Response(404, json={"error": {"code": 404, "message": "Not found"}})
        status_code, body = self.routes[path]
        return httpx.Response(status_code, json=body)

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]


@pytest.fixture
def google_api() -> GoogleApiStub:
    """Empty route table for the mocked Google APIs."""
    return GoogleApiStub()


@pytest.fixture
def http_client(google_api: GoogleApiStub) -> httpx.AsyncClient:
    """httpx client whose requests are answered by ``google_api``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(google_api.handler))


@pytest.fixture
def make_sheets_server(authenticated_manager, http_client) -> Callable[..., Any]:
    """Factory for a GoogleSheetsServer wired to the mocked transport."""
    from google_sheets_mcp.server.google_sheets_server import GoogleSheetsServer
    from google_sheets_mcp.server.sheets_gateway import SheetsGateway

    def factory(manager=None):
        manager = manager or authenticated_manager
        gateway = SheetsGateway(manager, http_client=http_client)
        return GoogleSheetsServer(manager=manager, gateway=gateway)

    return factory
