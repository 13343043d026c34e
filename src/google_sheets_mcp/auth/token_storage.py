"""Local storage for the OAuth client file and the saved token.

Two plain JSON files live under the configured base directory:

    ~/.google-sheets-mcp-credentials.json   OAuth client (installed or web)
    ~/.google-sheets-mcp-token.json         access/refresh token document

The client file is written by the operator; this module only reads and
deletes it. The token file is overwritten by the authenticator after every
successful code exchange.
"""

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from google_sheets_mcp.auth.models import (
    ClientCredentials,
    OAuthToken,
    StoredToken,
    TokenMetadata,
    TokenStatus,
)
from google_sheets_mcp.config import AppPaths
from google_sheets_mcp.errors import InvalidCredentialsFile, MissingCredentialsFile

logger = logging.getLogger(__name__)


class CredentialStore:
    """JSON-backed store for client credentials and the OAuth token.

    Attributes:
        credentials_path: Path to the OAuth client-secret file.
        token_path: Path to the saved token file.

    Example:
        ```python
        store = CredentialStore(AppPaths.from_env())
        client = store.load_client_credentials()
        stored = store.load_token()
        if stored is None:
            print("Run google-sheets-mcp setup first")
        ```
    """

    def __init__(self, paths: AppPaths) -> None:
        """Initialize the store.

        Args:
            paths: Resolved file locations.
        """
        self.credentials_path = paths.credentials_path
        self.token_path = paths.token_path

    def has_client_credentials(self) -> bool:
        """Check whether the client-secret file exists."""
        return self.credentials_path.exists()

    def load_client_credentials(self) -> ClientCredentials:
        """Load the OAuth client from disk.

        Returns:
            ClientCredentials parsed from the "installed" or "web" section.

        Raises:
            MissingCredentialsFile: If the file does not exist.
            InvalidCredentialsFile: If the file is unreadable or malformed.
        """
        if not self.credentials_path.exists():
            raise MissingCredentialsFile(self.credentials_path)

        try:
            with open(self.credentials_path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidCredentialsFile(self.credentials_path, f"invalid JSON: {e.msg}") from e
        except OSError as e:
            raise InvalidCredentialsFile(self.credentials_path, e.strerror or str(e)) from e

        if not isinstance(data, dict):
            raise InvalidCredentialsFile(self.credentials_path, "expected a JSON object")

        try:
            return ClientCredentials.from_client_secrets(data)
        except ValidationError as e:
            fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err["loc"])
            raise InvalidCredentialsFile(self.credentials_path, f"missing {fields}") from e
        except ValueError as e:
            raise InvalidCredentialsFile(self.credentials_path, str(e)) from e

    def load_token(self) -> StoredToken | None:
        """Load the saved token.

        Returns:
            StoredToken if the file exists and parses, None otherwise.
        """
        if not self.token_path.exists():
            return None

        try:
            with open(self.token_path) as f:
                return StoredToken.model_validate(json.load(f))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Ignoring unreadable token file {self.token_path}: {e}")
            return None

    def save_token(self, token: OAuthToken, metadata: TokenMetadata) -> None:
        """Write the token file, replacing any previous content.

        Args:
            token: Token returned by the code exchange.
            metadata: Bookkeeping for the token.
        """
        stored = StoredToken(version=1, metadata=metadata, token=token)

        self.token_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.token_path, "w") as f:
            f.write(stored.model_dump_json(indent=2))

        # Owner read/write only
        self.token_path.chmod(0o600)
        logger.info(f"Saved authentication token to {self.token_path}")

    def get_token_status(self) -> TokenStatus:
        """Report the state of the saved token.

        Returns:
            TokenStatus for the token file.
        """
        if not self.token_path.exists():
            return TokenStatus.MISSING

        stored = self.load_token()
        if stored is None:
            return TokenStatus.INVALID

        if stored.token.is_expired():
            return TokenStatus.EXPIRED

        return TokenStatus.VALID

    def delete_token(self) -> bool:
        """Delete the token file.

        Returns:
            True if a file was removed, False if it did not exist.
        """
        return _unlink(self.token_path)

    def delete_client_credentials(self) -> bool:
        """Delete the client-secret file.

        Returns:
            True if a file was removed, False if it did not exist.
        """
        return _unlink(self.credentials_path)


def _unlink(path: Path) -> bool:
    if not path.exists():
        return False
    path.unlink()
    return True
