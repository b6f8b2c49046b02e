"""Backend public interfaces with lazy loading to avoid circular imports."""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING, Any

__all__ = [
    "FetchResult",
    "InformationProviders",
    "LoginResult",
    "SessionManager",
    "SessionState",
    "TrackPlayApplication",
]

_MODULE_EXPORTS = {
    "application": {
        "FetchResult",
        "LoginResult",
        "TrackPlayApplication",
    },
    "auth": {
        "SessionManager",
        "SessionState",
    },
    "information_handlers.providers": {
        "InformationProviders",
    },
}

if TYPE_CHECKING:  # pragma: no cover - for static analysis only
    from .application import FetchResult, LoginResult, TrackPlayApplication
    from .auth import SessionManager, SessionState
    from .information_handlers.providers import InformationProviders


def __getattr__(name: str) -> Any:
    for module_name, symbols in _MODULE_EXPORTS.items():
        if name in symbols:
            module = importlib.import_module(f"{__name__}.{module_name}")
            value = getattr(module, name)
            globals()[name] = value
            return value
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


def __dir__() -> list[str]:
    exported = set(__all__)
    for symbols in _MODULE_EXPORTS.values():
        exported.update(symbols)
    exported.update(globals().keys())
    return sorted(exported)
