"""Watch history, recommendations and artwork from Trakt and TMDb."""

from trackplay.backend.information_handlers.links import link_for_entry, stremio_link
from trackplay.backend.information_handlers.models import (
    HistoryEntry,
    MediaType,
    RecommendationBundle,
    RecommendationEntry,
)
from trackplay.backend.information_handlers.providers import InformationProviders
from trackplay.backend.information_handlers.tmdb_manager import TMDbManager
from trackplay.backend.information_handlers.trakt_manager import TraktManager

__all__ = [
    "HistoryEntry",
    "InformationProviders",
    "MediaType",
    "RecommendationBundle",
    "RecommendationEntry",
    "TMDbManager",
    "TraktManager",
    "link_for_entry",
    "stremio_link",
]
