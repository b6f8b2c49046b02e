from __future__ import annotations



class TrackPlayError(Exception):
    """Base for all TrackPlay exceptions."""


class ConfigError(TrackPlayError):
    """Configuration related issues."""


class TaskError(TrackPlayError):
    """Task scheduling/execution issues."""


class NetworkError(TrackPlayError):
    """Transport-level failure reaching a provider."""


class AuthError(TrackPlayError):
    """Consent denied, token exchange failed, or a token was rejected."""


class ProviderError(TrackPlayError):
    """Provider (Trakt/TMDb) answered with an error or an unusable payload."""


class StorageError(TrackPlayError):
    """Credential persistence read/write/clear failure."""
