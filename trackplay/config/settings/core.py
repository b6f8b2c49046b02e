from __future__ import annotations

import json
import os
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .paths import get_user_settings_path, read_json

_SETTINGS_LOCK = threading.Lock()
_SETTINGS_SINGLETON: Optional["Settings"] = None

_DEFAULT_REQUEST_TIMEOUT = 20.0
_DEFAULT_POSTER_WORKERS = 8


@dataclass
class Settings:
    app_name: str
    env: str
    log_level: str
    request_timeout: float
    poster_workers: int

    def as_dict(self) -> Dict[str, Any]:
        return {
            "app_name": self.app_name,
            "env": self.env,
            "log_level": self.log_level,
            "request_timeout": self.request_timeout,
            "poster_workers": self.poster_workers,
        }


def load_user_settings() -> Dict[str, Any]:
    path = get_user_settings_path()
    if not path.exists():
        return {}
    try:
        data = read_json(path)
    except (OSError, json.JSONDecodeError):
        return {}

    return data if isinstance(data, dict) else {}


def _coerce_positive_int(raw: Any, default: int) -> int:
    try:
        return max(1, int(raw))
    except (TypeError, ValueError):
        return default


def _coerce_positive_float(raw: Any, default: float) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return default

    return value if value > 0 else default


def _build_settings() -> Settings:
    user_cfg = load_user_settings()
    app_name = os.getenv("TRACKPLAY_APP_NAME", user_cfg.get("app_name", "TrackPlay"))
    env = os.getenv("TRACKPLAY_ENV", user_cfg.get("env", "development"))
    log_level = os.getenv("TRACKPLAY_LOG_LEVEL", user_cfg.get("log_level", "INFO")).upper()

    request_timeout = _coerce_positive_float(
        os.getenv("TRACKPLAY_REQUEST_TIMEOUT") or user_cfg.get("request_timeout"),
        _DEFAULT_REQUEST_TIMEOUT,
    )
    poster_workers = _coerce_positive_int(
        os.getenv("TRACKPLAY_POSTER_WORKERS") or user_cfg.get("poster_workers"),
        _DEFAULT_POSTER_WORKERS,
    )

    return Settings(
        app_name=app_name,
        env=env,
        log_level=log_level,
        request_timeout=request_timeout,
        poster_workers=poster_workers,
    )


def get_settings(*, reload: bool = False) -> Settings:
    global _SETTINGS_SINGLETON
    with _SETTINGS_LOCK:
        if _SETTINGS_SINGLETON is None or reload:
            _SETTINGS_SINGLETON = _build_settings()

        return _SETTINGS_SINGLETON


__all__ = [
    "Settings",
    "get_settings",
    "load_user_settings",
]
