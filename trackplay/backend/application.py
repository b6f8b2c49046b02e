"""Composition root: one session manager, threaded explicitly to its consumers.

Everything that needs the signed-in state receives it from
:class:`TrackPlayApplication`; there is no module-level session singleton.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, List, Optional, TypeVar

from trackplay.backend.auth.consent import ConsentStep
from trackplay.backend.auth.credential_store import CredentialStore
from trackplay.backend.auth.models import SessionState
from trackplay.backend.auth.oauth_flow import OAuthFlowController
from trackplay.backend.auth.session_manager import SessionManager
from trackplay.backend.common.errors import AuthError, StorageError, TrackPlayError
from trackplay.backend.common.logging import get_logger
from trackplay.backend.information_handlers.models import HistoryEntry, RecommendationBundle
from trackplay.backend.information_handlers.providers import InformationProviders
from trackplay.backend.information_handlers.tmdb_manager import TMDbManager
from trackplay.backend.information_handlers.trakt_manager import TraktManager
from trackplay.backend.network_handlers.session import HttpSession
from trackplay.backend.network_handlers.url_manager import URLManager
from trackplay.config import settings

T = TypeVar("T")

AUTH_FAILED_MESSAGE = "Authentication failed. Please try again."
HISTORY_FAILED_MESSAGE = "Failed to load watch history. Please try again."
RECOMMENDATIONS_FAILED_MESSAGE = "Failed to load recommendations. Please try again."
NOT_SIGNED_IN_MESSAGE = "You are not signed in."


@dataclass(frozen=True)
class LoginResult:
    state: SessionState
    error_message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error_message is None


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """Data for a screen, or a user-facing message explaining why there is none."""

    data: Optional[T] = None
    error_message: Optional[str] = None
    retryable: bool = False

    @property
    def ok(self) -> bool:
        return self.error_message is None


class TrackPlayApplication:
    """Wires the HTTP sessions, managers, credential store and session manager.

    Only the Trakt session is handed to the :class:`SessionManager`; TMDb
    requests authenticate with the configured API key alone.
    """

    def __init__(
        self,
        *,
        store: Optional[CredentialStore] = None,
        consent_step: Optional[ConsentStep] = None,
        urlm: Optional[URLManager] = None,
        trakt_session: Optional[HttpSession] = None,
        tmdb_session: Optional[HttpSession] = None,
        oauth: Optional[OAuthFlowController] = None,
    ) -> None:
        self._log = get_logger(__name__)
        cfg = settings.get_settings()
        urlm = urlm or URLManager()

        self.trakt_session = trakt_session or HttpSession("trakt", urlm=urlm, timeout=cfg.request_timeout)
        self.tmdb_session = tmdb_session or HttpSession("tmdb", urlm=urlm, timeout=cfg.request_timeout)
        self.providers = InformationProviders(
            trakt=TraktManager(self.trakt_session),
            tmdb=TMDbManager(self.tmdb_session),
            poster_workers=cfg.poster_workers,
        )
        self.session = SessionManager(store or CredentialStore(), [self.trakt_session])
        self._consent_step = consent_step
        self._oauth = oauth

    @property
    def oauth(self) -> OAuthFlowController:
        """Built on first use so commands that never sign in need no client secret."""

        if self._oauth is None:
            self._oauth = OAuthFlowController.from_settings(
                self.trakt_session,
                consent_step=self._consent_step,
            )
        return self._oauth

    @property
    def state(self) -> SessionState:
        return self.session.state

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------
    def start(self) -> SessionState:
        return self.session.initialize()

    def login(self) -> LoginResult:
        """Run the authorization-code flow; sign in only with a valid, persisted pair."""

        oauth = self.oauth
        try:
            pair = oauth.authorize()
        except AuthError as exc:
            self._log.error("Error during Trakt sign-in: %s", exc)
            return LoginResult(state=self.session.state, error_message=AUTH_FAILED_MESSAGE)

        try:
            state = self.session.sign_in(pair)
        except StorageError:
            return LoginResult(state=self.session.state, error_message=AUTH_FAILED_MESSAGE)

        return LoginResult(state=state)

    def logout(self) -> SessionState:
        return self.session.sign_out()

    def refresh(self) -> LoginResult:
        oauth = self.oauth
        try:
            state = self.session.refresh(oauth)
        except (AuthError, StorageError) as exc:
            self._log.error("Error refreshing Trakt session: %s", exc)
            return LoginResult(state=self.session.state, error_message=AUTH_FAILED_MESSAGE)

        return LoginResult(state=state)

    # ------------------------------------------------------------------
    # Screen data
    # ------------------------------------------------------------------
    def load_history(self) -> FetchResult[List[HistoryEntry]]:
        if not self.session.state.is_signed_in:
            return FetchResult(error_message=NOT_SIGNED_IN_MESSAGE, retryable=False)
        try:
            return FetchResult(data=self.providers.watched_history())
        except TrackPlayError as exc:
            self._log.error("Error loading watch history: %s", exc)
            return FetchResult(error_message=HISTORY_FAILED_MESSAGE, retryable=not isinstance(exc, AuthError))

    def load_recommendations(self, *, with_posters: bool = True) -> FetchResult[RecommendationBundle]:
        if not self.session.state.is_signed_in:
            return FetchResult(error_message=NOT_SIGNED_IN_MESSAGE, retryable=False)
        try:
            return FetchResult(data=self.providers.recommendations(with_posters=with_posters))
        except TrackPlayError as exc:
            self._log.error("Error loading recommendations: %s", exc)
            return FetchResult(
                error_message=RECOMMENDATIONS_FAILED_MESSAGE,
                retryable=not isinstance(exc, AuthError),
            )

    def close(self) -> None:
        self.providers.close()
