"""Pydantic models for OAuth client credentials and saved tokens."""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_REDIRECT_URI = "http://localhost"


class TokenStatus(str, Enum):
    """State of the saved token file."""

    VALID = "valid"
    EXPIRED = "expired"
    MISSING = "missing"
    INVALID = "invalid"


class ClientCredentials(BaseModel):
    """OAuth client identity loaded from the client-secret file.

    Attributes:
        client_id: OAuth client ID.
        client_secret: OAuth client secret.
        redirect_uri: First redirect URI registered for the client.
        client_type: Section the values came from ("installed" or "web").
    """

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(..., min_length=1)
    client_secret: str = Field(..., min_length=1)
    redirect_uri: str = Field(default=DEFAULT_REDIRECT_URI)
    client_type: str = Field(default="installed")

    @classmethod
    def from_client_secrets(cls, data: dict[str, Any]) -> "ClientCredentials":
        """Build credentials from a Google client-secret JSON document.

        Args:
            data: Parsed file contents with an "installed" or "web" section.

        Returns:
            ClientCredentials for the section found.

        Raises:
            ValueError: If neither section is present or fields are missing.
        """
        for client_type in ("installed", "web"):
            section = data.get(client_type)
            if isinstance(section, dict):
                break
        else:
            raise ValueError("expected an 'installed' or 'web' section")

        redirect_uris = section.get("redirect_uris") or [DEFAULT_REDIRECT_URI]
        return cls(
            client_id=section.get("client_id", ""),
            client_secret=section.get("client_secret", ""),
            redirect_uri=redirect_uris[0],
            client_type=client_type,
        )

    def to_client_config(self) -> dict[str, Any]:
        """Render the client config shape expected by google-auth-oauthlib."""
        return {
            self.client_type: {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                "token_uri": "https://oauth2.googleapis.com/token",
                "redirect_uris": [self.redirect_uri],
            }
        }


class OAuthToken(BaseModel):
    """Access/refresh token pair returned by the code exchange."""

    access_token: str
    refresh_token: str | None = None
    expires_at: datetime
    scopes: list[str] = Field(default_factory=list)
    token_type: str = "Bearer"

    def is_expired(self, buffer_seconds: int = 60) -> bool:
        """Check whether the access token is expired or about to expire.

        Args:
            buffer_seconds: Treat tokens expiring within this window as expired.

        Returns:
            True if the token should not be used without a refresh.
        """
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return datetime.now(timezone.utc) + timedelta(seconds=buffer_seconds) >= expires_at


class TokenMetadata(BaseModel):
    """Bookkeeping stored alongside the token."""

    service_name: str
    provider: str = "google"
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_refreshed: datetime | None = None


class StoredToken(BaseModel):
    """On-disk token document."""

    version: int = 1
    metadata: TokenMetadata
    token: OAuthToken
