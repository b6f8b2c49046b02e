"""Authorization-code flow against Trakt."""

from __future__ import annotations

import threading
from typing import Any, Dict, Optional
from urllib.parse import parse_qs, urlencode, urlparse

from trackplay.backend.auth.consent import ConsentStep, LoopbackBrowserConsent
from trackplay.backend.auth.models import AuthorizationState, ConsentResult, TokenPair
from trackplay.backend.common.errors import AuthError, ConfigError, TrackPlayError
from trackplay.backend.common.logging import get_logger
from trackplay.backend.network_handlers.session import HttpSession
from trackplay.config import settings


class OAuthFlowController:
    """Drives idle -> awaiting_consent -> exchanging_code -> complete|failed.

    One flow at a time: a second :meth:`authorize` while the first is still
    running is rejected with :class:`AuthError`.
    """

    def __init__(
        self,
        session: HttpSession,
        *,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        authorize_url: str,
        token_url: str,
        consent_step: Optional[ConsentStep] = None,
    ) -> None:
        self._log = get_logger(__name__)
        self._session = session
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri
        self._authorize_url = authorize_url
        self._token_url = token_url
        self._consent_step: ConsentStep = consent_step or LoopbackBrowserConsent()
        self._state = AuthorizationState.IDLE
        self._flow_lock = threading.Lock()

    @classmethod
    def from_settings(
        cls,
        session: HttpSession,
        *,
        consent_step: Optional[ConsentStep] = None,
    ) -> "OAuthFlowController":
        keys = settings.get_trakt_keys()
        if not keys.get("client_id") or not keys.get("client_secret"):
            raise ConfigError("TRAKT_CLIENT_ID and TRAKT_CLIENT_SECRET must be configured")

        return cls(
            session,
            client_id=keys["client_id"],
            client_secret=keys["client_secret"],
            redirect_uri=keys["redirect_uri"],
            authorize_url=session.urlm.endpoint("trakt", "oauth", "authorize"),
            token_url=session.urlm.endpoint("trakt", "oauth", "token"),
            consent_step=consent_step,
        )

    # ------------------------------------------------------------------
    @property
    def state(self) -> AuthorizationState:
        return self._state

    @property
    def redirect_uri(self) -> str:
        return self._redirect_uri

    def build_authorization_url(self) -> str:
        query = urlencode(
            {
                "response_type": "code",
                "client_id": self._client_id,
                "redirect_uri": self._redirect_uri,
            }
        )
        return f"{self._authorize_url}?{query}"

    def authorize(self) -> TokenPair:
        """Run the whole consent + code exchange and return the issued pair."""

        if not self._flow_lock.acquire(blocking=False):
            raise AuthError("authorization already in progress")
        try:
            self._transition(AuthorizationState.AWAITING_CONSENT)
            try:
                outcome = self._consent_step(self.build_authorization_url(), self._redirect_uri)
            except AuthError:
                self._transition(AuthorizationState.FAILED)
                raise
            except OSError as exc:
                self._transition(AuthorizationState.FAILED)
                raise AuthError("authentication failed") from exc

            code = self._code_from_outcome(outcome)
            return self.exchange_code(code)
        finally:
            self._flow_lock.release()

    def exchange_code(self, code: str) -> TokenPair:
        self._transition(AuthorizationState.EXCHANGING_CODE)
        pair = self._token_request(
            {
                "code": code,
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "redirect_uri": self._redirect_uri,
                "grant_type": "authorization_code",
            }
        )
        self._transition(AuthorizationState.COMPLETE)
        self._log.info("Trakt access token granted via authorization code")

        return pair

    def refresh(self, refresh_token: str) -> TokenPair:
        """Explicit refresh-token exchange. Never invoked automatically."""

        if not refresh_token:
            raise AuthError("no refresh token available")
        pair = self._token_request(
            {
                "refresh_token": refresh_token,
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "redirect_uri": self._redirect_uri,
                "grant_type": "refresh_token",
            }
        )
        self._log.info("Trakt access token refreshed")

        return pair

    @staticmethod
    def extract_code(redirect_url: str) -> Optional[str]:
        query = parse_qs(urlparse(redirect_url).query)
        code = query.get("code", [None])[0]

        return code or None

    # ------------------------------------------------------------------
    def _code_from_outcome(self, outcome: ConsentResult) -> str:
        if outcome.is_cancelled or not outcome.redirect_url:
            self._log.info("Trakt consent cancelled", extra={"reason": outcome.reason})
            self._transition(AuthorizationState.FAILED)
            raise AuthError("authentication failed")

        code = self.extract_code(outcome.redirect_url)
        if not code:
            self._transition(AuthorizationState.FAILED)
            raise AuthError("missing code")

        return code

    def _token_request(self, payload: Dict[str, Any]) -> TokenPair:
        try:
            data = self._session.post_json(self._token_url, json_body=payload, authorized=False)
            return TokenPair.from_token_response(data)
        except TrackPlayError as exc:
            self._transition(AuthorizationState.FAILED)
            raise AuthError(f"token exchange failed: {exc}") from exc

    def _transition(self, new_state: AuthorizationState) -> None:
        self._log.debug(
            "oauth_state",
            extra={"from_state": self._state.value, "to_state": new_state.value},
        )
        self._state = new_state
