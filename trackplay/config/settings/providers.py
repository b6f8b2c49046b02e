from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from .paths import expand_env, get_provider_settings_path, read_json

DEFAULT_REDIRECT_URI = "http://127.0.0.1:8765/callback"
DEFAULT_TMDB_IMAGE_BASE_URL = "https://image.tmdb.org/t/p/w500"


def load_provider_settings() -> Dict[str, Any]:
    data = read_json(get_provider_settings_path())

    return expand_env(data)


try:  # pragma: no cover - guard against missing files at import time
    PROVIDER_SETTINGS: Dict[str, Any] = load_provider_settings()
except (OSError, ValueError):
    PROVIDER_SETTINGS = {}


def reload_provider_settings() -> Dict[str, Any]:
    """Re-read the provider file, picking up environment changes."""

    global PROVIDER_SETTINGS
    PROVIDER_SETTINGS = load_provider_settings()

    return PROVIDER_SETTINGS


def list_provider_configs() -> Dict[str, Dict[str, Any]]:
    providers = PROVIDER_SETTINGS.get("providers", {}) if PROVIDER_SETTINGS else {}
    result: Dict[str, Dict[str, Any]] = {}
    for name, cfg in providers.items():
        result[name] = dict(cfg) if isinstance(cfg, Mapping) else {}

    return result


def get_service_config(service: str) -> Optional[Dict[str, Any]]:
    return list_provider_configs().get(service)


def get_tmdb_image_base_url() -> str:
    cfg = get_service_config("tmdb") or {}
    images = cfg.get("images", {}) or {}

    return images.get("base_url") or DEFAULT_TMDB_IMAGE_BASE_URL


def get_trakt_keys() -> Dict[str, Optional[str]]:
    """Client credentials for the authorization-code flow; blanks become ``None``."""

    cfg = get_service_config("trakt") or {}

    return {
        "client_id": cfg.get("client_id") or None,
        "client_secret": cfg.get("client_secret") or None,
        "redirect_uri": cfg.get("redirect_uri") or DEFAULT_REDIRECT_URI,
    }


__all__ = [
    "DEFAULT_REDIRECT_URI",
    "DEFAULT_TMDB_IMAGE_BASE_URL",
    "PROVIDER_SETTINGS",
    "get_service_config",
    "get_tmdb_image_base_url",
    "get_trakt_keys",
    "list_provider_configs",
    "load_provider_settings",
    "reload_provider_settings",
]
