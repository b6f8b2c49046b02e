"""Pure reshaping of provider payloads into the UI-facing models.

Only :func:`enrich_with_posters` performs I/O, and only through the poster
lookup it is given.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence

from pydantic import ValidationError

from trackplay.backend.common.logging import get_logger
from trackplay.backend.common.tasks import TaskRunner, TaskSpec, gather_settled
from trackplay.backend.information_handlers.models import (
    HistoryEntry,
    MediaType,
    RecommendationBundle,
    RecommendationEntry,
)

log = get_logger(__name__)

PosterLookup = Callable[[str, MediaType], Optional[str]]


def normalize_history(
    movies_raw: Iterable[Any],
    episodes_raw: Iterable[Any],
) -> List[HistoryEntry]:
    """Merge movie and episode history, most recently watched first.

    The sort is stable, so entries with the same ``watched_at`` keep movies
    ahead of episodes and provider order within each list.
    """

    entries: List[HistoryEntry] = []
    for item in movies_raw or []:
        entry = _history_movie(item)
        if entry is not None:
            entries.append(entry)
    for item in episodes_raw or []:
        entry = _history_episode(item)
        if entry is not None:
            entries.append(entry)

    return sorted(entries, key=lambda e: e.watched_at, reverse=True)


def normalize_recommendations(
    movies_raw: Iterable[Any],
    shows_raw: Iterable[Any],
) -> RecommendationBundle:
    """Map both recommendation lists, keeping provider order."""

    movies = [e for e in (_recommendation(i, MediaType.MOVIE) for i in movies_raw or []) if e]
    shows = [e for e in (_recommendation(i, MediaType.SHOW) for i in shows_raw or []) if e]

    return RecommendationBundle(movies=movies, shows=shows)


def enrich_with_posters(
    entries: Sequence[RecommendationEntry],
    media_type: MediaType,
    poster_lookup: PosterLookup,
    *,
    runner: Optional[TaskRunner] = None,
    max_workers: int = 8,
) -> List[RecommendationEntry]:
    """Attach poster URLs, looking them up concurrently.

    Entries without an imdb id pass through untouched and cost no lookup.
    A failing lookup leaves only that entry without a poster.
    """

    pending = [(index, entry) for index, entry in enumerate(entries) if entry.imdb_id]
    if not pending:
        return list(entries)

    specs = [
        TaskSpec(fn=poster_lookup, args=(entry.imdb_id, media_type), name=f"poster:{entry.imdb_id}")
        for _, entry in pending
    ]
    if runner is not None:
        outcomes = gather_settled(runner, specs)
    else:
        with TaskRunner(max_workers=min(max_workers, len(specs)), context="posters") as own_runner:
            outcomes = gather_settled(own_runner, specs)

    enriched = list(entries)
    for (index, entry), outcome in zip(pending, outcomes):
        if not outcome.ok:
            log.warning(
                "Poster lookup failed for %s: %s",
                entry.imdb_id,
                outcome.error,
                extra={"media_type": media_type.value},
            )
            continue
        if outcome.value:
            enriched[index] = entry.model_copy(update={"poster_url": outcome.value})

    return enriched


# ----------------------------------------------------------------------
# Record helpers
# ----------------------------------------------------------------------

def _history_movie(item: Any) -> Optional[HistoryEntry]:
    if not isinstance(item, Mapping):
        return None
    movie = item.get("movie") if isinstance(item.get("movie"), Mapping) else {}
    return _history_entry(item, movie.get("title"), MediaType.MOVIE)


def _history_episode(item: Any) -> Optional[HistoryEntry]:
    if not isinstance(item, Mapping):
        return None
    show = item.get("show") if isinstance(item.get("show"), Mapping) else {}
    episode = item.get("episode") if isinstance(item.get("episode"), Mapping) else {}
    return _history_entry(item, episode_title(show.get("title"), episode), MediaType.SHOW)


def episode_title(show_title: Any, episode: Mapping[str, Any]) -> str:
    """``"{show} - {episode}"``, or ``"{show} - S{season}E{number}"`` for untitled episodes."""

    name = episode.get("title")
    if name:
        return f"{show_title} - {name}"

    season = _format_number(episode.get("season"))
    number = _format_number(episode.get("number"))
    return f"{show_title} - S{season}E{number}"


def _history_entry(item: Mapping[str, Any], title: Any, media_type: MediaType) -> Optional[HistoryEntry]:
    watched_at = parse_datetime(item.get("watched_at"))
    if watched_at is None or item.get("id") is None or title is None:
        log.debug("Skipping unusable history record", extra={"media_type": media_type.value})
        return None
    try:
        return HistoryEntry(id=item["id"], title=str(title), type=media_type, watched_at=watched_at)
    except ValidationError:
        log.debug("Skipping invalid history record", extra={"media_type": media_type.value})
        return None


def _recommendation(item: Any, media_type: MediaType) -> Optional[RecommendationEntry]:
    if not isinstance(item, Mapping):
        return None
    ids = item.get("ids") if isinstance(item.get("ids"), Mapping) else {}
    if ids.get("trakt") is None:
        return None
    try:
        return RecommendationEntry(
            id=ids["trakt"],
            imdb_id=ids.get("imdb") or None,
            title=item.get("title") or "",
            year=_try_int(item.get("year")),
            type=media_type,
            rating=_try_float(item.get("rating")),
        )
    except ValidationError:
        log.debug("Skipping invalid recommendation record", extra={"media_type": media_type.value})
        return None


def parse_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    return parsed.astimezone(timezone.utc)


def _format_number(value: Any) -> str:
    number = _try_int(value)
    return str(number) if number is not None else "?"


def _try_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _try_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
