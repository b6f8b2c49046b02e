"""Top level interface for media information providers.

:class:`InformationProviders` wires the Trakt and TMDb managers together so
consumers get normalized models from a single entry point. It is synchronous
and thin; concurrency is limited to the poster fan-out.
"""

from __future__ import annotations

from typing import List, Optional

from trackplay.backend.common.logging import get_logger
from trackplay.backend.common.tasks import TaskRunner
from trackplay.backend.information_handlers.mappers import enrich_with_posters
from trackplay.backend.information_handlers.models import (
    HistoryEntry,
    MediaType,
    RecommendationBundle,
)
from trackplay.backend.information_handlers.tmdb_manager import TMDbManager
from trackplay.backend.information_handlers.trakt_manager import TraktManager


class InformationProviders:
    """Aggregate façade over :class:`TraktManager` and :class:`TMDbManager`.

    Parameters
    ----------
    trakt, tmdb:
        Managers to delegate to. Defaults build their own sessions from the
        provider configuration.
    poster_workers:
        Upper bound on concurrent poster lookups per call.
    """

    def __init__(
        self,
        *,
        trakt: Optional[TraktManager] = None,
        tmdb: Optional[TMDbManager] = None,
        poster_workers: int = 8,
    ) -> None:
        self._log = get_logger(__name__)
        self.trakt = trakt or TraktManager()
        self.tmdb = tmdb or TMDbManager()
        self._poster_workers = max(1, int(poster_workers))

    def watched_history(self) -> List[HistoryEntry]:
        return self.trakt.get_watched_history()

    def recommendations(self, *, with_posters: bool = True) -> RecommendationBundle:
        bundle = self.trakt.get_recommendations()
        if not with_posters:
            return bundle

        return self.attach_posters(bundle)

    def attach_posters(self, bundle: RecommendationBundle) -> RecommendationBundle:
        """Fill ``poster_url`` for movies and shows on one shared worker pool."""

        if not any(e.imdb_id for e in (*bundle.movies, *bundle.shows)):
            return bundle

        with TaskRunner(max_workers=self._poster_workers, context="posters") as runner:
            movies = enrich_with_posters(bundle.movies, MediaType.MOVIE, self.tmdb.poster_url, runner=runner)
            shows = enrich_with_posters(bundle.shows, MediaType.SHOW, self.tmdb.poster_url, runner=runner)

        return RecommendationBundle(movies=movies, shows=shows)

    def close(self) -> None:
        self.trakt.session.close()
        self.tmdb.session.close()
