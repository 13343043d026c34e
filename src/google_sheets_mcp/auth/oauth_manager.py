"""OAuth manager for the Google Sheets MCP server.

Two paths use this module:

* Tool serving calls :meth:`OAuthManager.get_credentials`, which only reads
  local files. When no token exists it fails fast with a fresh authorization
  URL embedded in the error instead of blocking on user interaction.
* The operator runs ``google-sheets-mcp setup`` (or ``exchange``), which drives
  the interactive authorization-code flow and writes the token file.

Codes are exchanged without PKCE so that a URL printed by one process (e.g.
in a tool error) can be completed by ``google-sheets-mcp exchange`` in another.
"""

import asyncio
import logging
import webbrowser
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from urllib.parse import parse_qs, unquote, urlparse

from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow

from google_sheets_mcp.auth.callback_server import OAuthCallbackServer
from google_sheets_mcp.auth.models import ClientCredentials, OAuthToken, TokenMetadata
from google_sheets_mcp.auth.token_storage import CredentialStore
from google_sheets_mcp.config import (
    AUTHORIZATION_TIMEOUT_SECONDS,
    DEFAULT_CALLBACK_HOST,
    SCOPES,
    AppPaths,
    get_callback_port,
)
from google_sheets_mcp.errors import ExchangeFailed, MissingToken, TokenExpired, UnknownError

logger = logging.getLogger(__name__)

SERVICE_NAME = "google-sheets-mcp"
TOKEN_URI = "https://oauth2.googleapis.com/token"  # nosec B105 - public Google endpoint

LOOPBACK_HOSTS = {"localhost", "127.0.0.1", "::1"}


def extract_authorization_code(text: str) -> str:
    """Pull the authorization code out of a pasted redirect URL or bare code.

    Args:
        text: Either ``http://localhost:3000/?code=...&scope=...`` or the code.

    Returns:
        The decoded authorization code.

    Raises:
        ExchangeFailed: If no code can be found.
    """
    text = text.strip()
    if "code=" in text:
        query = urlparse(text).query if "?" in text else text
        code = parse_qs(query).get("code", [""])[0]
    else:
        code = unquote(text)

    if not code:
        raise ExchangeFailed("no authorization code found in the input")
    return code


class OAuthManager:
    """Authenticator for Google Sheets and Drive.

    Attributes:
        store: Credential store holding the client file and token file.

    Example:
        ```python
        manager = OAuthManager()

        # Operator flow
        await manager.authenticate()

        # Serving path
        credentials = manager.get_credentials()
        ```
    """

    def __init__(self, store: CredentialStore | None = None) -> None:
        """Initialize OAuth manager.

        Args:
            store: Credential store. Creates one rooted at the default base
                directory if not provided.
        """
        self.store = store or CredentialStore(AppPaths.from_env())
        self._client: ClientCredentials | None = None
        self._credentials: Credentials | None = None

    @property
    def token_path(self) -> Path:
        """Path of the saved token file."""
        return self.store.token_path

    @property
    def credentials_path(self) -> Path:
        """Path of the OAuth client file."""
        return self.store.credentials_path

    def load_client(self) -> ClientCredentials:
        """Load the OAuth client once per process.

        Raises:
            MissingCredentialsFile: If the client file is absent or malformed.
        """
        if self._client is None:
            self._client = self.store.load_client_credentials()
        return self._client

    @property
    def redirect_uri(self) -> str:
        """Redirect URI used for consent and code exchange.

        Loopback redirect URIs without an explicit port (the default for
        desktop clients) get the callback listener port appended.
        """
        client = self.load_client()
        parsed = urlparse(client.redirect_uri)
        if parsed.port is None and parsed.hostname in LOOPBACK_HOSTS:
            return f"{parsed.scheme or 'http'}://{DEFAULT_CALLBACK_HOST}:{get_callback_port()}/"
        return client.redirect_uri

    @property
    def callback_port(self) -> int:
        """Port the redirect listener binds."""
        return urlparse(self.redirect_uri).port or get_callback_port()

    def _create_flow(self) -> Flow:
        return Flow.from_client_config(
            self.load_client().to_client_config(),
            scopes=SCOPES,
            redirect_uri=self.redirect_uri,
            autogenerate_code_verifier=False,
        )

    def _authorization_url(self, flow: Flow) -> str:
        auth_url, _ = flow.authorization_url(access_type="offline", prompt="consent")
        return auth_url

    def authorization_url(self) -> str:
        """Generate a consent URL requesting offline access.

        Returns:
            URL the operator opens in a browser.
        """
        return self._authorization_url(self._create_flow())

    def _credentials_to_token(self, credentials: Credentials) -> OAuthToken:
        """Convert google-auth Credentials to OAuthToken."""
        if credentials.expiry:
            expires_at = credentials.expiry
            if expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=timezone.utc)
        else:
            # Google access tokens last one hour
            expires_at = datetime.now(timezone.utc) + timedelta(hours=1)

        return OAuthToken(  # nosec B106 - "Bearer" is OAuth token type, not a password
            access_token=credentials.token,
            refresh_token=credentials.refresh_token,
            expires_at=expires_at,
            scopes=list(credentials.scopes or SCOPES),
            token_type="Bearer",
        )

    def _token_to_credentials(self, token: OAuthToken, client: ClientCredentials) -> Credentials:
        """Convert OAuthToken to google-auth Credentials.

        The client ID and secret are attached so the credentials can refresh
        themselves. google-auth compares expiry against naive UTC.
        """
        expiry = token.expires_at
        if expiry.tzinfo is not None:
            expiry = expiry.astimezone(timezone.utc).replace(tzinfo=None)

        return Credentials(
            token=token.access_token,
            refresh_token=token.refresh_token,
            token_uri=TOKEN_URI,
            client_id=client.client_id,
            client_secret=client.client_secret,
            scopes=token.scopes,
            expiry=expiry,
        )

    def get_credentials(self) -> Credentials:
        """Return the credential handle used by the API calls.

        Reads local files only; no network call is made here. The handle is
        cached for the life of the process.

        Returns:
            google-auth Credentials built from the client file and the token.

        Raises:
            MissingCredentialsFile: If the client file is absent or malformed.
            MissingToken: If no token has been saved yet.
            TokenExpired: If the token file is corrupted.
        """
        if self._credentials is not None:
            return self._credentials

        client = self.load_client()

        if not self.store.token_path.exists():
            raise MissingToken(self.store.token_path, self.authorization_url())

        stored = self.store.load_token()
        if stored is None:
            raise TokenExpired(self.store.token_path, "Authentication token file is corrupted")

        self._credentials = self._token_to_credentials(stored.token, client)
        return self._credentials

    def invalidate(self) -> None:
        """Forget the cached credential handle so the next call reloads the token file."""
        self._credentials = None

    def refresh(self, credentials: Credentials) -> None:
        """Refresh an expired access token in memory (blocking).

        Raises:
            TokenExpired: If Google rejects the refresh token.
            UnknownError: If the token endpoint cannot be reached.
        """
        if not credentials.refresh_token:
            raise TokenExpired(self.store.token_path, "No refresh token available")

        try:
            credentials.refresh(Request())
        except RefreshError as e:
            raise TokenExpired(self.store.token_path, f"Token refresh failed: {e}") from e
        except TransportError as e:
            raise UnknownError(f"Could not reach Google token endpoint: {e}") from e
        logger.info("Refreshed access token")

    async def get_access_token(self) -> str:
        """Get a valid access token, refreshing if necessary.

        Returns:
            Bearer token for the Authorization header.
        """
        credentials = self.get_credentials()
        if not credentials.valid:
            logger.info("Access token expired, refreshing...")
            loop = asyncio.get_event_loop()
            await loop.run_in_executor(None, self.refresh, credentials)
        return credentials.token

    def exchange_code(self, code_or_url: str) -> OAuthToken:
        """Exchange an authorization code for a token and save it.

        Args:
            code_or_url: Bare code or the full redirect URL.

        Returns:
            The saved OAuthToken.

        Raises:
            ExchangeFailed: If Google rejects the code or cannot be reached.
        """
        code = extract_authorization_code(code_or_url)
        return self._exchange(self._create_flow(), code)

    def _exchange(self, flow: Flow, code: str) -> OAuthToken:
        try:
            flow.fetch_token(code=code)
        except Exception as e:
            raise ExchangeFailed(str(e) or type(e).__name__) from e

        token = self._credentials_to_token(flow.credentials)
        self.store.save_token(token, TokenMetadata(service_name=SERVICE_NAME))
        self.invalidate()
        return token

    async def authenticate(
        self,
        open_browser: bool = True,
        manual: bool = False,
        prompt: Callable[[str], str] | None = None,
        notify: Callable[[str], None] = print,
        timeout: float = AUTHORIZATION_TIMEOUT_SECONDS,
    ) -> OAuthToken:
        """Perform the interactive authorization-code flow.

        Args:
            open_browser: Open the consent page in the system browser.
            manual: Ask the operator to paste the redirect URL instead of
                running the local listener.
            prompt: Reads the pasted redirect URL or code (manual mode only).
            notify: Receives progress messages for the operator.
            timeout: Seconds the listener waits for the redirect.

        Returns:
            OAuthToken that was saved to the token file.

        Raises:
            MissingCredentialsFile: If the client file is absent or malformed.
            AuthorizationTimeout, PortInUse, PortPermissionDenied: Listener failures.
            ExchangeFailed: If the code exchange fails.
        """
        if manual and prompt is None:
            raise ValueError("manual authorization requires a prompt callback")

        # Surface client file problems before starting any I/O
        self.load_client()

        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(
            None, self._run_oauth_flow, open_browser, manual, prompt, notify, timeout
        )

    def _run_oauth_flow(
        self,
        open_browser: bool,
        manual: bool,
        prompt: Callable[[str], str] | None,
        notify: Callable[[str], None],
        timeout: float,
    ) -> OAuthToken:
        """Run the OAuth flow (blocking operation)."""
        flow = self._create_flow()
        auth_url = self._authorization_url(flow)

        if manual:
            notify(f"Authorization URL: {auth_url}")
            if open_browser:
                self._open_browser(auth_url, notify)
            code = extract_authorization_code(prompt("Paste the redirect URL or authorization code"))
        else:
            # Bind before opening the browser so the redirect cannot arrive first
            with OAuthCallbackServer(DEFAULT_CALLBACK_HOST, self.callback_port) as listener:
                notify(f"Authorization URL: {auth_url}")
                if open_browser:
                    self._open_browser(auth_url, notify)
                notify(
                    f"Waiting for authorization on http://{DEFAULT_CALLBACK_HOST}:{listener.port} ..."
                )
                code = listener.wait(timeout)

        notify("Authorization code received, exchanging for token...")
        return self._exchange(flow, code)

    @staticmethod
    def _open_browser(url: str, notify: Callable[[str], None]) -> None:
        if webbrowser.open(url):
            notify("Browser opened automatically.")
        else:
            notify("Could not open a browser automatically. Copy the URL above manually.")
