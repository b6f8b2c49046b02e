from __future__ import annotations

from typing import Any, Dict, Mapping, Optional
import socket

import requests
from requests.adapters import HTTPAdapter

from trackplay.backend.common.errors import AuthError, NetworkError, ProviderError
from trackplay.backend.common.logging import get_logger
from trackplay.backend.network_handlers.url_manager import URLManager

log = get_logger(__name__)


# ---------------- Exceptions ----------------

class RequestTimeout(NetworkError): ...
class DNSFailure(NetworkError): ...
class ConnectionFailed(NetworkError): ...
class InvalidPayload(ProviderError): ...


class HttpStatusMixin:
    status_code: int = 0


class Unauthorized(HttpStatusMixin, AuthError): ...
class Forbidden(HttpStatusMixin, AuthError): ...
class BadRequest(HttpStatusMixin, ProviderError): ...
class NotFound(HttpStatusMixin, ProviderError): ...
class RateLimited(HttpStatusMixin, ProviderError): ...
class Upstream5xx(HttpStatusMixin, ProviderError): ...
class Client4xx(HttpStatusMixin, ProviderError): ...


def _map_http_error(status: int, service: str) -> Exception:
    if status == 400: err = BadRequest(f"{service}: 400 Bad Request")
    elif status == 401: err = Unauthorized(f"{service}: 401 Unauthorized")
    elif status == 403: err = Forbidden(f"{service}: 403 Forbidden")
    elif status == 404: err = NotFound(f"{service}: 404 Not Found")
    elif status == 429: err = RateLimited(f"{service}: 429 Too Many Requests")
    elif 500 <= status < 600: err = Upstream5xx(f"{service}: {status} Upstream error")
    else: err = Client4xx(f"{service}: {status} HTTP error")

    err.status_code = status
    return err


# ---------------- Main Session ----------------

class HttpSession:
    """
    API client bound to a single provider:
      - URL building + per-service headers/query defaults via URLManager
      - Own bearer-token slot, written through set_auth_token only
      - Per-request timeout
      - Typed error mapping (no retries)
    """

    def __init__(
        self,
        service: str,
        *,
        urlm: Optional[URLManager] = None,
        timeout: float = 20,
        session: Optional[requests.Session] = None,
    ):
        self.service = service
        self.urlm = urlm or URLManager()
        self.timeout = timeout
        self._auth_token: Optional[str] = None

        if session is None:
            session = requests.Session()
            session.mount("http://", HTTPAdapter(pool_connections=8, pool_maxsize=16))
            session.mount("https://", HTTPAdapter(pool_connections=8, pool_maxsize=16))
        self._session = session

    # -------- token slot --------

    def set_auth_token(self, token: Optional[str]) -> None:
        """Set (or clear with ``None``) the bearer token used by later calls."""

        self._auth_token = token or None

    @property
    def auth_token(self) -> Optional[str]:
        return self._auth_token

    # -------- public API --------

    def get(
        self,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        authorized: bool = True,
    ) -> requests.Response:

        return self.request("GET", path, params=params, headers=headers, authorized=authorized)

    def post(
        self,
        path: str,
        *,
        json_body: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        authorized: bool = True,
    ) -> requests.Response:

        return self.request(
            "POST",
            path,
            params=params,
            json_body=json_body,
            headers=headers,
            authorized=authorized,
        )

    def get_json(self, path: str, **kwargs: Any) -> Any:
        return self._parse_json(self.get(path, **kwargs))

    def post_json(self, path: str, **kwargs: Any) -> Any:
        return self._parse_json(self.post(path, **kwargs))

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json_body: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        authorized: bool = True,
    ) -> requests.Response:

        url, base_headers = self.urlm.build(self.service, path, params)
        hdrs: Dict[str, str] = dict(base_headers or {})
        if headers:
            hdrs.update(headers)

        # Read once so a concurrent token swap cannot split a single request.
        token = self._auth_token
        if authorized and token:
            hdrs["Authorization"] = f"Bearer {token}"

        try:
            resp = self._session.request(
                method=method,
                url=url,
                headers=hdrs,
                json=dict(json_body) if json_body is not None else None,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            log.warning("%s %s timed out", method, path, extra={"service": self.service})
            raise RequestTimeout(str(e)) from e
        except requests.exceptions.ConnectionError as e:
            log.warning("%s %s connection failed", method, path, extra={"service": self.service})
            if isinstance(getattr(e, "__cause__", None), socket.gaierror):
                raise DNSFailure(str(e)) from e
            raise ConnectionFailed(str(e)) from e
        except requests.exceptions.RequestException as e:
            raise NetworkError(str(e)) from e

        status = resp.status_code
        if status >= 400:
            log.warning(
                "%s %s failed with HTTP %s",
                method,
                path,
                status,
                extra={"service": self.service},
            )
            raise _map_http_error(status, self.service)

        return resp

    def close(self) -> None:
        self._session.close()

    # -------- internals --------

    def _parse_json(self, response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise InvalidPayload(f"{self.service} returned a non-JSON payload") from exc
