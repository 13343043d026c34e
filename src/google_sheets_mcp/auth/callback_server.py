"""One-shot local HTTP listener that captures the OAuth redirect.

The listener binds a fixed loopback port, waits for the single browser
redirect that carries ``code=``, answers it with a confirmation page and
releases the port. Stray requests (favicons, probes) are answered with 400
and do not end the wait.
"""

import errno
import logging
import time
from http.server import BaseHTTPRequestHandler, HTTPServer
from urllib.parse import parse_qs, urlparse

from google_sheets_mcp.config import AUTHORIZATION_TIMEOUT_SECONDS
from google_sheets_mcp.errors import (
    AuthorizationTimeout,
    ExchangeFailed,
    PortInUse,
    PortPermissionDenied,
    UnknownError,
)

logger = logging.getLogger(__name__)

SUCCESS_PAGE = b"""<!DOCTYPE html>
<html>
  <head>
    <title>Authorization Successful</title>
    <style>
      body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif; margin: 40px; text-align: center; }
      h1 { color: #28a745; }
      p { color: #666; margin-top: 20px; }
    </style>
  </head>
  <body>
    <h1>Authorization Successful!</h1>
    <p>You can close this window and return to your terminal.</p>
  </body>
</html>
"""

FAILURE_PAGE = (
    b"<html><body><h1>Authorization Failed</h1>"
    b"<p>Please close this window and try again.</p></body></html>"
)


class _CallbackHandler(BaseHTTPRequestHandler):
    """Record the first redirect carrying an authorization code or error."""

    # Socket timeout for a connected client that never sends a request line
    timeout = 10

    server: "_OneShotHTTPServer"

    def log_message(self, format: str, *args) -> None:
        """Route request logs to the module logger instead of stderr."""
        logger.debug("callback: " + format, *args)

    def do_GET(self) -> None:
        """Handle GET request from the OAuth redirect."""
        query = parse_qs(urlparse(self.path).query)

        if "error" in query:
            self.server.error = query["error"][0]
            self._respond(400, FAILURE_PAGE)
            return

        code = query.get("code", [""])[0]
        if not code:
            self._respond(400, b"Invalid request")
            return

        self.server.code = code
        self._respond(200, SUCCESS_PAGE)

    def _respond(self, status: int, body: bytes) -> None:
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)


class _OneShotHTTPServer(HTTPServer):
    code: str | None = None
    error: str | None = None


class OAuthCallbackServer:
    """Scoped redirect listener.

    The port is bound on enter and released on exit, whichever way the wait
    ends.

    Example:
        ```python
        with OAuthCallbackServer("localhost", 3000) as listener:
            webbrowser.open(auth_url)
            code = listener.wait(timeout=300)
        ```
    """

    def __init__(self, host: str, port: int) -> None:
        self.host = host
        self.requested_port = port
        self._server: _OneShotHTTPServer | None = None

    @property
    def port(self) -> int:
        """Port actually bound (differs from the requested one only for port 0)."""
        if self._server is None:
            raise RuntimeError("Callback server is not running")
        return self._server.server_address[1]

    def __enter__(self) -> "OAuthCallbackServer":
        try:
            self._server = _OneShotHTTPServer((self.host, self.requested_port), _CallbackHandler)
        except OSError as e:
            if e.errno == errno.EADDRINUSE:
                raise PortInUse(self.requested_port) from e
            if e.errno in (errno.EACCES, errno.EPERM):
                raise PortPermissionDenied(self.requested_port) from e
            raise UnknownError(
                f"Could not start callback listener on {self.host}:{self.requested_port}: {e}"
            ) from e
        logger.info(f"Listening for OAuth redirect on http://{self.host}:{self.port}")
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        """Release the port. Safe to call more than once."""
        if self._server is not None:
            self._server.server_close()
            self._server = None

    def wait(self, timeout: float = AUTHORIZATION_TIMEOUT_SECONDS) -> str:
        """Block until the redirect arrives.

        Args:
            timeout: Seconds to wait for a qualifying request.

        Returns:
            The authorization code from the redirect.

        Raises:
            AuthorizationTimeout: If no code arrives in time.
            ExchangeFailed: If Google redirected with an error (e.g. access_denied).
        """
        if self._server is None:
            raise RuntimeError("Callback server is not running")

        server = self._server
        deadline = time.monotonic() + timeout
        while server.code is None and server.error is None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise AuthorizationTimeout(timeout)
            server.timeout = remaining
            server.handle_request()

        if server.error is not None:
            raise ExchangeFailed(f"authorization was denied ({server.error})")
        return server.code


def wait_for_authorization_code(
    host: str, port: int, timeout: float = AUTHORIZATION_TIMEOUT_SECONDS
) -> str:
    """Bind the listener, wait for one redirect and release the port.

    Args:
        host: Interface to bind.
        port: Port to bind.
        timeout: Seconds to wait for the redirect.

    Returns:
        The authorization code.
    """
    with OAuthCallbackServer(host, port) as listener:
        return listener.wait(timeout)
