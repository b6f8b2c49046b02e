"""Trakt sign-in: token persistence, authorization-code flow and session state."""

from trackplay.backend.auth.consent import ConsentStep, LoopbackBrowserConsent, ManualConsent
from trackplay.backend.auth.credential_store import CredentialStore
from trackplay.backend.auth.models import (
    AuthorizationState,
    ConsentResult,
    SessionPhase,
    SessionState,
    TokenPair,
)
from trackplay.backend.auth.oauth_flow import OAuthFlowController
from trackplay.backend.auth.session_manager import SessionListener, SessionManager

__all__ = [
    "AuthorizationState",
    "ConsentResult",
    "ConsentStep",
    "CredentialStore",
    "LoopbackBrowserConsent",
    "ManualConsent",
    "OAuthFlowController",
    "SessionListener",
    "SessionManager",
    "SessionPhase",
    "SessionState",
    "TokenPair",
]
