"""External user-consent steps for the authorization-code flow.

A consent step is any callable ``(authorization_url, redirect_uri) -> ConsentResult``.
Two implementations are provided:

* :class:`LoopbackBrowserConsent` opens the system browser and captures the
  redirect on a local HTTP listener bound to the redirect URI.
* :class:`ManualConsent` prints the URL and reads the redirect URL the user
  pastes back, for redirect URIs that cannot be served locally.
"""

from __future__ import annotations

import sys
import threading
import webbrowser
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Callable, Optional, TextIO
from urllib.parse import parse_qs, urlparse

from trackplay.backend.auth.models import ConsentResult
from trackplay.backend.common.errors import AuthError
from trackplay.backend.common.logging import get_logger

log = get_logger(__name__)

ConsentStep = Callable[[str, str], ConsentResult]


class _RedirectServer(HTTPServer):
    def __init__(self, server_address, handler, expected_path: str):
        super().__init__(server_address, handler)
        self.expected_path = expected_path
        self.redirect_url: Optional[str] = None
        self.error: Optional[str] = None
        self.done = threading.Event()


class _RedirectHandler(BaseHTTPRequestHandler):
    server: _RedirectServer

    def do_GET(self):  # type: ignore[override]
        parsed = urlparse(self.path)
        # Ignore stray requests such as /favicon.ico.
        if parsed.path.rstrip("/") != self.server.expected_path.rstrip("/"):
            self.send_response(404)
            self.end_headers()
            return

        qs = parse_qs(parsed.query)
        error = qs.get("error", [None])[0]
        if error is not None:
            self.server.error = error
        else:
            self.server.redirect_url = self.path
        self.server.done.set()

        self.send_response(200)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.end_headers()
        if error:
            self.wfile.write(b"Authorization failed. You may close this window.")
        else:
            self.wfile.write(b"TrackPlay is signed in. You may close this window.")

    def log_message(self, format, *args):  # silence default logging
        return


class LoopbackBrowserConsent:
    """Consent through the system browser with a loopback redirect listener."""

    def __init__(
        self,
        *,
        timeout_seconds: float = 300.0,
        open_browser: Callable[[str], bool] = webbrowser.open,
    ) -> None:
        self._timeout = timeout_seconds
        self._open_browser = open_browser

    def __call__(self, authorization_url: str, redirect_uri: str) -> ConsentResult:
        target = urlparse(redirect_uri)
        if target.scheme != "http" or target.hostname not in {"127.0.0.1", "localhost"}:
            raise AuthError(f"redirect URI {redirect_uri!r} cannot be served on the loopback interface")

        server = _RedirectServer(
            (target.hostname, target.port or 80),
            _RedirectHandler,
            expected_path=target.path or "/",
        )
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        try:
            log.info("Opening browser for Trakt authorization")
            self._open_browser(authorization_url)
            if not server.done.wait(self._timeout):
                log.info("Timed out waiting for Trakt authorization")
                return ConsentResult.cancelled("timeout")
        finally:
            server.shutdown()
            server.server_close()

        if server.error:
            log.info("Trakt authorization denied", extra={"reason": server.error})
            return ConsentResult.cancelled(server.error)

        return ConsentResult.success(f"{target.scheme}://{target.netloc}{server.redirect_url}")


class ManualConsent:
    """Consent by copy/paste: show the URL, read back the redirect URL."""

    def __init__(
        self,
        *,
        reader: Callable[[str], str] = input,
        out: Optional[TextIO] = None,
    ) -> None:
        self._reader = reader
        self._out = out

    def __call__(self, authorization_url: str, redirect_uri: str) -> ConsentResult:
        out = self._out or sys.stderr
        out.write(f"Open this URL to authorize TrackPlay:\n{authorization_url}\n")
        out.flush()
        try:
            pasted = self._reader(f"Paste the URL you were redirected to ({redirect_uri}...): ")
        except (EOFError, KeyboardInterrupt):
            return ConsentResult.cancelled("aborted")

        pasted = (pasted or "").strip()
        if not pasted:
            return ConsentResult.cancelled("empty")

        return ConsentResult.success(pasted)
