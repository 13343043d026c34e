"""Unit tests for client credential and OAuth token models."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from google_sheets_mcp.auth.models import (
    ClientCredentials,
    OAuthToken,
    StoredToken,
    TokenMetadata,
    TokenStatus,
)


@pytest.mark.unit
class TestClientCredentials:
    """Tests for ClientCredentials.from_client_secrets()."""

    def test_should_read_installed_section(self, client_secrets: dict) -> None:
        """Verify desktop client files are parsed."""
        client = ClientCredentials.from_client_secrets(client_secrets)

        assert client.client_id == "test-client-id.apps.googleusercontent.com"
        assert client.client_secret == "test-client-secret"  # pragma: allowlist secret
        assert client.redirect_uri == "http://localhost"
        assert client.client_type == "installed"

    def test_should_read_web_section(self) -> None:
        """Verify web client files are parsed with their first redirect URI."""
        client = ClientCredentials.from_client_secrets(
            {
                "web": {
                    "client_id": "web-id",
                    "client_secret": "web-secret",  # pragma: allowlist secret
                    "redirect_uris": ["http://localhost:8080/callback", "https://example.com"],
                }
            }
        )

        assert client.client_type == "web"
        assert client.redirect_uri == "http://localhost:8080/callback"

    def test_should_default_redirect_uri_when_absent(self) -> None:
        """Verify a missing redirect_uris list falls back to http://localhost."""
        client = ClientCredentials.from_client_secrets(
            {"installed": {"client_id": "id", "client_secret": "secret"}}
        )
        assert client.redirect_uri == "http://localhost"

    def test_should_reject_document_without_client_section(self) -> None:
        """Verify ValueError when neither installed nor web is present."""
        with pytest.raises(ValueError, match="'installed' or 'web'"):
            ClientCredentials.from_client_secrets({"other": {}})

    def test_should_reject_empty_client_id(self) -> None:
        """Verify missing fields fail validation."""
        with pytest.raises(ValidationError):
            ClientCredentials.from_client_secrets({"installed": {"client_secret": "secret"}})

    def test_should_render_client_config_for_oauthlib(self, client_secrets: dict) -> None:
        """Verify to_client_config keeps the original section name."""
        config = ClientCredentials.from_client_secrets(client_secrets).to_client_config()

        section = config["installed"]
        assert section["client_id"] == "test-client-id.apps.googleusercontent.com"
        assert section["token_uri"] == "https://oauth2.googleapis.com/token"
        assert section["redirect_uris"] == ["http://localhost"]


@pytest.mark.unit
class TestOAuthToken:
    """Tests for OAuthToken model."""

    def test_should_create_valid_token(self, valid_token: OAuthToken) -> None:
        """Verify token creation with valid data."""
        assert valid_token.access_token == "test_access_token_abc123"
        assert valid_token.refresh_token == "test_refresh_token_xyz789"
        assert valid_token.token_type == "Bearer"
        assert len(valid_token.scopes) == 2

    def test_should_detect_non_expired_token(self, valid_token: OAuthToken) -> None:
        """Verify is_expired returns False for valid token."""
        assert valid_token.is_expired() is False

    def test_should_detect_expired_token(self, expired_token: OAuthToken) -> None:
        """Verify is_expired returns True for expired token."""
        assert expired_token.is_expired() is True

    def test_should_respect_buffer_seconds(self) -> None:
        """Verify is_expired respects buffer_seconds parameter."""
        token = OAuthToken(
            access_token="test",
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=30),
            scopes=[],
        )
        assert token.is_expired(buffer_seconds=60) is True
        assert token.is_expired(buffer_seconds=10) is False

    def test_should_treat_naive_expiry_as_utc(self) -> None:
        """Verify naive timestamps compare as UTC."""
        token = OAuthToken(
            access_token="test",
            expires_at=datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(hours=1),
        )
        assert token.is_expired() is False


@pytest.mark.unit
class TestTokenMetadata:
    """Tests for TokenMetadata model."""

    def test_should_create_metadata_with_defaults(self) -> None:
        """Verify metadata creation with required fields only."""
        metadata = TokenMetadata(service_name="test-service")
        assert metadata.service_name == "test-service"
        assert metadata.provider == "google"
        assert metadata.created_at is not None
        assert metadata.last_refreshed is None


@pytest.mark.unit
class TestStoredToken:
    """Tests for StoredToken model."""

    def test_should_create_stored_token(self, stored_token: StoredToken) -> None:
        """Verify stored token combines token and metadata."""
        assert stored_token.version == 1
        assert stored_token.token.access_token == "test_access_token_abc123"
        assert stored_token.metadata.service_name == "google-sheets-mcp"

    def test_should_survive_json_round_trip(self, stored_token: StoredToken) -> None:
        """Verify the on-disk representation parses back to the same token."""
        restored = StoredToken.model_validate_json(stored_token.model_dump_json())
        assert restored == stored_token


@pytest.mark.unit
class TestTokenStatus:
    """Tests for TokenStatus enum."""

    def test_should_have_expected_statuses(self) -> None:
        """Verify all expected statuses exist."""
        assert TokenStatus.VALID.value == "valid"
        assert TokenStatus.EXPIRED.value == "expired"
        assert TokenStatus.MISSING.value == "missing"
        assert TokenStatus.INVALID.value == "invalid"
