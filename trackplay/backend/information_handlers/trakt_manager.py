"""Trakt read access for the signed-in user: watch history and recommendations.

The bearer token is never handled here; :class:`SessionManager` writes it into
the :class:`HttpSession` this manager is built on.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from trackplay.backend.common.logging import get_logger
from trackplay.backend.information_handlers.mappers import (
    normalize_history,
    normalize_recommendations,
)
from trackplay.backend.information_handlers.models import (
    HistoryEntry,
    RecommendationBundle,
)
from trackplay.backend.network_handlers.session import HttpSession, InvalidPayload

_SERVICE_NAME = "trakt"
_HISTORY_TYPES = ("movies", "episodes")
_RECOMMENDATION_TYPES = ("movies", "shows")


class TraktManager:
    """Thin wrapper around the Trakt sync and recommendations endpoints."""

    def __init__(self, session: Optional[HttpSession] = None, *, history_limit: Optional[int] = None) -> None:
        self._log = get_logger(__name__)
        self._session = session or HttpSession(_SERVICE_NAME)
        self._history_limit = history_limit

    @property
    def session(self) -> HttpSession:
        return self._session

    # ------------------------------------------------------------------
    # Raw fetches
    # ------------------------------------------------------------------
    def fetch_history(self, media_type: str) -> List[Any]:
        """``GET /sync/history/{movies|episodes}`` as the raw record list."""

        if media_type not in _HISTORY_TYPES:
            raise ValueError(f"Unsupported history type '{media_type}'")

        params: Dict[str, Any] = {}
        if self._history_limit:
            params["limit"] = self._history_limit

        path = self._session.urlm.endpoint(_SERVICE_NAME, "sync", "history", media_type=media_type)
        return self._get_list(path, params=params)

    def fetch_recommendations(self, media_type: str) -> List[Any]:
        """``GET /recommendations/{movies|shows}`` as the raw record list."""

        if media_type not in _RECOMMENDATION_TYPES:
            raise ValueError(f"Unsupported recommendation type '{media_type}'")

        path = self._session.urlm.endpoint(_SERVICE_NAME, "recommendations", media_type=media_type)
        return self._get_list(path)

    # ------------------------------------------------------------------
    # Normalized views
    # ------------------------------------------------------------------
    def get_watched_history(self) -> List[HistoryEntry]:
        """Movies and episodes merged into one list, newest first."""

        movies = self.fetch_history("movies")
        episodes = self.fetch_history("episodes")
        entries = normalize_history(movies, episodes)
        self._log.info(
            "Loaded Trakt history",
            extra={"movies": len(movies), "episodes": len(episodes), "entries": len(entries)},
        )

        return entries

    def get_recommendations(self) -> RecommendationBundle:
        movies = self.fetch_recommendations("movies")
        shows = self.fetch_recommendations("shows")
        bundle = normalize_recommendations(movies, shows)
        self._log.info(
            "Loaded Trakt recommendations",
            extra={"movies": len(bundle.movies), "shows": len(bundle.shows)},
        )

        return bundle

    # ------------------------------------------------------------------
    def _get_list(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Any]:
        payload = self._session.get_json(path, params=params)
        if not isinstance(payload, list):
            raise InvalidPayload(f"{_SERVICE_NAME}: expected a list from {path}")

        return payload
