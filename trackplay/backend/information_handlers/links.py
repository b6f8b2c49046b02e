"""Stremio deep links for recommended titles."""

from __future__ import annotations

from typing import Optional, Union

from trackplay.backend.information_handlers.models import MediaType, RecommendationEntry

STREMIO_SCHEME = "stremio://"


def stremio_link(imdb_id: Optional[str], media_type: Union[MediaType, str]) -> Optional[str]:
    """Deep link opening the title's detail page in Stremio.

    Movies address a single stream id (the imdb id again); shows open the
    series page. Without an imdb id there is nothing to link to.
    """

    if not imdb_id:
        return None

    kind = MediaType(media_type)
    if kind is MediaType.MOVIE:
        return f"{STREMIO_SCHEME}/detail/movie/{imdb_id}/{imdb_id}"

    return f"{STREMIO_SCHEME}/detail/series/{imdb_id}"


def link_for_entry(entry: RecommendationEntry) -> Optional[str]:
    return stremio_link(entry.imdb_id, entry.type)
