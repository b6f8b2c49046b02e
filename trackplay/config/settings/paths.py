from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv

_CONFIG_DIR = Path(__file__).resolve().parent.parent
_PACKAGE_ROOT = _CONFIG_DIR.parent
_PATH_BASES = [_PACKAGE_ROOT, *_PACKAGE_ROOT.parents]

load_dotenv(_PACKAGE_ROOT / ".env")
load_dotenv()


def _var_root() -> Path:
    home = os.getenv("TRACKPLAY_HOME")
    if home:
        return Path(home).expanduser()

    return _PACKAGE_ROOT / "var"


_DEFAULT_CONFIG_PATHS = {
    "provider_settings": str(_CONFIG_DIR / "providerservicesettings.json"),
    "tokens": str(_var_root() / "tokens"),
    "user_settings": str(_var_root() / "user_settings.json"),
}

_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def expand_env_in_str(value: str) -> str:
    """Expand ``${VAR}`` tokens within a string."""

    def _repl(match: re.Match[str]) -> str:
        var = match.group(1)
        return os.getenv(var, "")

    return _ENV_PATTERN.sub(_repl, value)


def expand_env(obj: Any) -> Any:
    """Recursively expand environment variables in nested structures."""
    if isinstance(obj, str):
        return expand_env_in_str(obj)
    if isinstance(obj, list):
        return [expand_env(v) for v in obj]
    if isinstance(obj, dict):
        return {k: expand_env(v) for k, v in obj.items()}

    return obj


def read_json(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def _resolve_candidate(value: str) -> str:
    candidate = Path(value).expanduser()
    if candidate.is_absolute():
        return str(candidate.resolve())

    for base in _PATH_BASES:
        resolved = (base / candidate).resolve()
        if resolved.exists() or resolved.parent.exists():
            return str(resolved)

    return str((_PACKAGE_ROOT / candidate).resolve())


def load_config_paths() -> Dict[str, str]:
    cfg_path = _CONFIG_DIR / "config_paths.json"
    if not cfg_path.exists():
        return {k: str(Path(v).resolve()) for k, v in _DEFAULT_CONFIG_PATHS.items()}

    raw = read_json(cfg_path)
    merged = {**_DEFAULT_CONFIG_PATHS, **(raw or {})}

    for key, value in list(merged.items()):
        merged[key] = _resolve_candidate(value)

    return merged


PATHS: Dict[str, str] = load_config_paths()


def get_provider_settings_path() -> Path:
    return Path(PATHS["provider_settings"])


def get_tokens_dir() -> Path:
    return Path(PATHS["tokens"])


def get_user_settings_path() -> Path:
    return Path(PATHS["user_settings"])


__all__ = [
    "PATHS",
    "expand_env",
    "expand_env_in_str",
    "get_provider_settings_path",
    "get_tokens_dir",
    "get_user_settings_path",
    "load_config_paths",
    "read_json",
]
