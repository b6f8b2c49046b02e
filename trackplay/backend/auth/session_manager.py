"""Process-wide authentication state with subscribe/notify propagation."""

from __future__ import annotations

import threading
from typing import Callable, List, Optional, Sequence

from trackplay.backend.auth.credential_store import CredentialStore
from trackplay.backend.auth.models import SessionState, TokenPair
from trackplay.backend.auth.oauth_flow import OAuthFlowController
from trackplay.backend.common.errors import AuthError, StorageError
from trackplay.backend.common.logging import get_logger
from trackplay.backend.network_handlers.session import HttpSession

SessionListener = Callable[[SessionState], None]


class SessionManager:
    """Owns :class:`SessionState`; the only writer of the clients' bearer slots.

    Operations are serialized: each one observes the completed effect of the
    previous one. Listeners are called synchronously, in subscription order,
    after every transition.
    """

    def __init__(
        self,
        store: CredentialStore,
        clients: Sequence[HttpSession] = (),
    ) -> None:
        self._log = get_logger(__name__)
        self._store = store
        self._clients = tuple(clients)
        self._state = SessionState.initializing()
        self._listeners: List[SessionListener] = []
        self._lock = threading.RLock()

    @property
    def state(self) -> SessionState:
        return self._state

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""

        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------
    def initialize(self) -> SessionState:
        with self._lock:
            try:
                pair = self._store.get()
            except StorageError as exc:
                self._log.warning("Credential store unavailable: %s", exc)
                pair = None

            if pair is None:
                self._set_clients_token(None)
                return self._transition(SessionState.signed_out())

            self._set_clients_token(pair.access_token)
            return self._transition(SessionState.signed_in(pair.access_token))

    def sign_in(self, pair: TokenPair) -> SessionState:
        """Persist, then activate.

        A failed write leaves the state and the clients untouched and re-raises
        :class:`StorageError`, so callers never mistake it for a sign-in.
        """

        with self._lock:
            try:
                self._store.set(pair)
            except StorageError as exc:
                self._log.error("Error signing in: %s", exc)
                raise

            self._set_clients_token(pair.access_token)
            return self._transition(SessionState.signed_in(pair.access_token))

    def sign_out(self) -> SessionState:
        with self._lock:
            try:
                self._store.clear()
            except StorageError as exc:
                self._log.error("Error signing out: %s", exc)

            self._set_clients_token(None)
            return self._transition(SessionState.signed_out())

    def refresh(self, oauth: OAuthFlowController) -> SessionState:
        """Exchange the stored refresh token for a new pair and sign in with it."""

        with self._lock:
            pair = self._store.get()
            if pair is None:
                raise AuthError("no stored session to refresh")
            return self.sign_in(oauth.refresh(pair.refresh_token))

    # ------------------------------------------------------------------
    def _set_clients_token(self, token: Optional[str]) -> None:
        for client in self._clients:
            client.set_auth_token(token)

    def _transition(self, new_state: SessionState) -> SessionState:
        previous = self._state
        self._state = new_state
        self._log.info(
            "session_phase",
            extra={"from_phase": previous.phase.value, "to_phase": new_state.phase.value},
        )
        for listener in list(self._listeners):
            try:
                listener(new_state)
            except Exception:  # noqa: BLE001
                self._log.exception("Session listener failed")

        return new_state
