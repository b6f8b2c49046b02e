from __future__ import annotations

import importlib
from typing import TYPE_CHECKING, Any

__all__ = [
    "DEFAULT_REDIRECT_URI",
    "DEFAULT_TMDB_IMAGE_BASE_URL",
    "PATHS",
    "Settings",
    "core",
    "paths",
    "providers",
    "get_provider_settings_path",
    "get_service_config",
    "get_settings",
    "get_tmdb_image_base_url",
    "get_tokens_dir",
    "get_trakt_keys",
    "get_user_settings_path",
    "list_provider_configs",
    "load_provider_settings",
    "reload_provider_settings",
]

_MODULE_EXPORTS = {
    "core": {
        "Settings",
        "get_settings",
    },
    "paths": {
        "PATHS",
        "get_provider_settings_path",
        "get_tokens_dir",
        "get_user_settings_path",
    },
    "providers": {
        "DEFAULT_REDIRECT_URI",
        "DEFAULT_TMDB_IMAGE_BASE_URL",
        "get_service_config",
        "get_tmdb_image_base_url",
        "get_trakt_keys",
        "list_provider_configs",
        "load_provider_settings",
        "reload_provider_settings",
    },
}

_SUBMODULE_NAMES = {"core", "paths", "providers"}

if TYPE_CHECKING:  # pragma: no cover - only for static analysis
    from . import core, paths, providers
    from .core import Settings, get_settings
    from .paths import PATHS, get_provider_settings_path, get_tokens_dir, get_user_settings_path
    from .providers import (
        DEFAULT_REDIRECT_URI,
        DEFAULT_TMDB_IMAGE_BASE_URL,
        get_service_config,
        get_tmdb_image_base_url,
        get_trakt_keys,
        list_provider_configs,
        load_provider_settings,
        reload_provider_settings,
    )


def __getattr__(name: str) -> Any:
    if name in _SUBMODULE_NAMES:
        module = importlib.import_module(f"{__name__}.{name}")
        globals()[name] = module
        return module

    for module_name, symbols in _MODULE_EXPORTS.items():
        if name in symbols:
            module = importlib.import_module(f"{__name__}.{module_name}")
            value = getattr(module, name)
            globals()[name] = value
            return value

    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


def __dir__() -> list[str]:
    exported = set(__all__)
    exported.update(_SUBMODULE_NAMES)
    for symbols in _MODULE_EXPORTS.values():
        exported.update(symbols)
    exported.update(globals().keys())
    return sorted(exported)
