from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import urlencode, urljoin

from trackplay.config.settings import providers as provider_settings



# ----------------------------
# Data views (read-only access)
# ----------------------------

@dataclass(frozen=True)
class ServiceView:
    name: str
    base_url: str
    default_headers: Dict[str, str]
    default_params: Dict[str, str]
    endpoints: Dict[str, Any]


# ----------------------------
# URL Manager
# ----------------------------

class URLManager:
    """
    Builds service URLs and injects per-service defaults (headers, auth in query),
    without doing any network I/O. Pure config-driven.

    - TMDb: appends `api_key` from settings (already env-expanded) into query
    - Trakt: relies on default headers containing `trakt-api-key` (env-expanded)
    """

    def __init__(self, services: Optional[Mapping[str, Mapping[str, Any]]] = None):
        raw = services if services is not None else provider_settings.list_provider_configs()
        self._views: Dict[str, ServiceView] = {
            name: self._build_view(name, dict(cfg or {})) for name, cfg in raw.items()
        }

    # -------- Public API --------

    def build(self, service: str, path: str, params: Optional[Mapping[str, Any]] = None
              ) -> Tuple[str, Dict[str, str]]:
        """
        Build a full URL for an absolute/relative path for a given service.
        Returns (url, headers).
        """
        view = self._require_view(service)
        query = dict(view.default_params)
        query.update({k: v for k, v in (params or {}).items() if v is not None})
        headers = dict(view.default_headers)

        if path.startswith(("http://", "https://")):
            url = path
        else:
            url = urljoin(_ensure_trailing_slash(view.base_url), path.lstrip("/"))

        if query:
            url = f"{url}?{urlencode(query, doseq=True)}"

        return url, headers

    def endpoint(self, service: str, *keys: str, **fmt: Any) -> str:
        """
        Resolve a (possibly nested) endpoint template and fill its placeholders.
        Example:
            endpoint("trakt", "sync", "history", media_type="movies")
        """
        node: Any = self._require_view(service).endpoints
        for key in keys:
            if not isinstance(node, Mapping) or key not in node:
                raise ValueError(f"Unknown endpoint '{'.'.join(keys)}' for service '{service}'")
            node = node[key]
        if not isinstance(node, str):
            raise ValueError(f"Endpoint '{'.'.join(keys)}' for service '{service}' is not a path")

        return node.format(**fmt) if fmt else node

    # -------- Internals --------

    def _require_view(self, service: str) -> ServiceView:
        if service not in self._views:
            raise ValueError(f"Unknown service '{service}'. Known: {list(self._views.keys())}")

        return self._views[service]

    @staticmethod
    def _build_view(service: str, raw: Dict[str, Any]) -> ServiceView:
        params: Dict[str, str] = {}
        # Service-specific auth injection kept minimal on purpose.
        if service == "tmdb" and raw.get("api_key"):
            params["api_key"] = raw["api_key"]

        return ServiceView(
            name=service,
            base_url=raw.get("base_url") or "",
            default_headers={k: str(v) for k, v in (raw.get("default_headers") or {}).items()},
            default_params=params,
            endpoints=dict(raw.get("endpoints") or {}),
        )


# ----------------------------
# Helpers
# ----------------------------

def _ensure_trailing_slash(u: str) -> str:
    return u if u.endswith("/") else (u + "/")
