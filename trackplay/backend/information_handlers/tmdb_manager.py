"""Poster lookup against TMDb.

TMDb is keyed by the configured ``api_key`` (injected into the query string by
:class:`URLManager`), so this manager never carries a user token.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from trackplay.backend.information_handlers.models import MediaType
from trackplay.backend.network_handlers.session import HttpSession, InvalidPayload
from trackplay.config import settings

_SERVICE_NAME = "tmdb"

_RESULT_KEYS = {
    MediaType.MOVIE: "movie_results",
    MediaType.SHOW: "tv_results",
}


class TMDbManager:
    """Resolve poster images for IMDb ids through ``/find``."""

    def __init__(
        self,
        session: Optional[HttpSession] = None,
        *,
        image_base_url: Optional[str] = None,
    ) -> None:
        self._session = session or HttpSession(_SERVICE_NAME)
        self._image_base_url = (image_base_url or settings.get_tmdb_image_base_url()).rstrip("/")

    @property
    def session(self) -> HttpSession:
        return self._session

    def find_by_imdb_id(self, imdb_id: str) -> Dict[str, Any]:
        path = self._session.urlm.endpoint(_SERVICE_NAME, "find", external_id=imdb_id)
        payload = self._session.get_json(
            path,
            params={"external_source": "imdb_id"},
            authorized=False,
        )
        if not isinstance(payload, Mapping):
            raise InvalidPayload(f"{_SERVICE_NAME}: expected an object from {path}")

        return dict(payload)

    def poster_url(self, imdb_id: str, media_type: MediaType) -> Optional[str]:
        """Full poster URL of the first match, or ``None`` when TMDb has none.

        Transport and HTTP errors propagate; callers decide how to degrade.
        """

        payload = self.find_by_imdb_id(imdb_id)
        results = payload.get(_RESULT_KEYS[MediaType(media_type)]) or []
        if not results or not isinstance(results[0], Mapping):
            return None

        poster_path = results[0].get("poster_path")
        if not poster_path:
            return None

        return f"{self._image_base_url}/{str(poster_path).lstrip('/')}"
