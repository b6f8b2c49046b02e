"""Value types shared by the credential store, OAuth flow and session manager."""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from trackplay.backend.common.errors import AuthError


class TokenPair(BaseModel):
    """Access/refresh token pair issued by the tracking provider."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    access_token: str = Field(min_length=1)
    refresh_token: str = Field(min_length=1)
    expires_in: Optional[int] = Field(default=None, ge=0)

    @classmethod
    def from_token_response(cls, payload: Any) -> "TokenPair":
        """Build a pair from an OAuth token endpoint response body."""

        if not isinstance(payload, Mapping):
            raise AuthError("token response is not an object")
        if payload.get("expires_in") is None:
            raise AuthError("token response is missing expires_in")
        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            raise AuthError("token response is missing access_token or refresh_token") from exc

    def as_storage(self) -> dict[str, str]:
        return {"access_token": self.access_token, "refresh_token": self.refresh_token}


class SessionPhase(str, Enum):
    INITIALIZING = "initializing"
    SIGNED_OUT = "signed_out"
    SIGNED_IN = "signed_in"


class SessionState(BaseModel):
    """Snapshot of the authentication status. Immutable; replaced on every transition."""

    model_config = ConfigDict(frozen=True)

    is_loading: bool
    is_signed_in: bool
    token: Optional[str] = None

    @classmethod
    def initializing(cls) -> "SessionState":
        return cls(is_loading=True, is_signed_in=False, token=None)

    @classmethod
    def signed_out(cls) -> "SessionState":
        return cls(is_loading=False, is_signed_in=False, token=None)

    @classmethod
    def signed_in(cls, token: str) -> "SessionState":
        if not token:
            raise ValueError("signed-in state requires a token")
        return cls(is_loading=False, is_signed_in=True, token=token)

    @property
    def phase(self) -> SessionPhase:
        if self.is_loading:
            return SessionPhase.INITIALIZING
        if self.is_signed_in:
            return SessionPhase.SIGNED_IN
        return SessionPhase.SIGNED_OUT


class AuthorizationState(str, Enum):
    IDLE = "idle"
    AWAITING_CONSENT = "awaiting_consent"
    EXCHANGING_CODE = "exchanging_code"
    COMPLETE = "complete"
    FAILED = "failed"


class ConsentResult(BaseModel):
    """Outcome of the external consent step."""

    model_config = ConfigDict(frozen=True)

    redirect_url: Optional[str] = None
    is_cancelled: bool = False
    reason: Optional[str] = None

    @classmethod
    def success(cls, redirect_url: str) -> "ConsentResult":
        return cls(redirect_url=redirect_url)

    @classmethod
    def cancelled(cls, reason: Optional[str] = None) -> "ConsentResult":
        return cls(is_cancelled=True, reason=reason)
