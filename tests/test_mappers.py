"""Tests for history and recommendation reshaping."""

import random
import threading
from datetime import datetime, timezone

import pytest

from trackplay.backend.common.errors import NetworkError
from trackplay.backend.common.tasks import TaskRunner
from trackplay.backend.information_handlers.mappers import (
    enrich_with_posters,
    normalize_history,
    normalize_recommendations,
)
from trackplay.backend.information_handlers.models import MediaType, RecommendationEntry


def _movie(id_, title, watched_at):
    return {"id": id_, "watched_at": watched_at, "action": "watch", "type": "movie", "movie": {"title": title}}


def _episode(id_, show, watched_at, *, title=None, season=1, number=1):
    return {
        "id": id_,
        "watched_at": watched_at,
        "type": "episode",
        "show": {"title": show},
        "episode": {"title": title, "season": season, "number": number},
    }


def _rec(trakt_id, title, imdb=None, year=2000, rating=None):
    item = {"title": title, "year": year, "ids": {"trakt": trakt_id, "imdb": imdb}}
    if rating is not None:
        item["rating"] = rating
    return item


class TestNormalizeHistory:
    def test_merges_and_sorts_descending(self):
        entries = normalize_history(
            [_movie(1, "Heat", "2024-01-03T10:00:00.000Z")],
            [_episode(2, "Lost", "2024-01-05T10:00:00.000Z", title="Pilot")],
        )

        assert [(e.id, e.title, e.type) for e in entries] == [
            (2, "Lost - Pilot", MediaType.SHOW),
            (1, "Heat", MediaType.MOVIE),
        ]
        assert entries[0].watched_at == datetime(2024, 1, 5, 10, tzinfo=timezone.utc)

    def test_untitled_episode_uses_season_and_number(self):
        entries = normalize_history([], [_episode(3, "Lost", "2024-01-05T10:00:00Z", season=2, number=7)])

        assert entries[0].title == "Lost - S2E7"

    def test_ties_keep_movies_first_then_provider_order(self):
        same = "2024-02-01T00:00:00Z"
        entries = normalize_history(
            [_movie(1, "A", same), _movie(2, "B", same)],
            [_episode(3, "S", same, title="e1"), _episode(4, "S", same, title="e2")],
        )

        assert [e.id for e in entries] == [1, 2, 3, 4]

    def test_sequence_is_non_increasing(self):
        entries = normalize_history(
            [_movie(1, "A", "2023-05-01T00:00:00Z"), _movie(2, "B", "2024-05-01T00:00:00Z")],
            [_episode(3, "S", "2023-12-01T00:00:00Z", title="x"), _episode(4, "S", "2022-01-01T00:00:00Z", title="y")],
        )

        stamps = [e.watched_at for e in entries]
        assert stamps == sorted(stamps, reverse=True)
        assert len(entries) == 4

    @pytest.mark.parametrize("seed", [0, 1, 7, 42, 2024])
    def test_input_order_does_not_change_result(self, seed):
        rng = random.Random(seed)
        movies = [_movie(i, f"M{i}", f"2024-01-{i:02d}T12:00:00Z") for i in range(1, 11)]
        episodes = [_episode(100 + i, "S", f"2024-02-{i:02d}T12:00:00Z", title=f"e{i}") for i in range(1, 11)]
        expected = normalize_history(movies, episodes)

        shuffled_movies = movies[:]
        shuffled_episodes = episodes[:]
        rng.shuffle(shuffled_movies)
        rng.shuffle(shuffled_episodes)

        assert normalize_history(shuffled_movies, shuffled_episodes) == expected

    def test_empty_inputs(self):
        assert normalize_history([], []) == []

    @pytest.mark.parametrize(
        "record",
        [
            "not a mapping",
            {"watched_at": "2024-01-01T00:00:00Z", "movie": {"title": "No id"}},
            {"id": 9, "watched_at": "yesterday", "movie": {"title": "Bad date"}},
            {"id": 9, "movie": {"title": "No date"}},
        ],
    )
    def test_unusable_records_are_skipped(self, record):
        entries = normalize_history([record, _movie(1, "Kept", "2024-01-01T00:00:00Z")], [])

        assert [e.id for e in entries] == [1]


class TestNormalizeRecommendations:
    def test_maps_fields_and_keeps_order(self):
        bundle = normalize_recommendations(
            [_rec(10, "Inception", "tt1375666", 2010, 8.8), _rec(11, "Up", "tt1049413", 2009)],
            [_rec(20, "Dark", "tt5753856", 2017)],
        )

        first = bundle.movies[0]
        assert (first.id, first.imdb_id, first.title, first.year, first.rating) == (
            10,
            "tt1375666",
            "Inception",
            2010,
            8.8,
        )
        assert first.type is MediaType.MOVIE
        assert first.poster_url is None
        assert [m.id for m in bundle.movies] == [10, 11]
        assert bundle.movies[1].rating is None
        assert [s.type for s in bundle.shows] == [MediaType.SHOW]

    def test_empty_imdb_id_becomes_none(self):
        bundle = normalize_recommendations([_rec(1, "X", imdb="")], [])

        assert bundle.movies[0].imdb_id is None

    def test_records_without_trakt_id_are_skipped(self):
        bundle = normalize_recommendations([{"title": "No ids"}, _rec(1, "X")], [None])

        assert [m.id for m in bundle.movies] == [1]
        assert list(bundle.shows) == []


def _entry(id_, imdb):
    return RecommendationEntry(id=id_, imdb_id=imdb, title=f"T{id_}", type=MediaType.MOVIE)


class TestEnrichWithPosters:
    def test_attaches_posters_in_input_order(self):
        entries = [_entry(1, "tt1"), _entry(2, None), _entry(3, "tt3")]

        result = enrich_with_posters(entries, MediaType.MOVIE, lambda imdb, kind: f"https://img/{imdb}.jpg")

        assert [e.id for e in result] == [1, 2, 3]
        assert [e.poster_url for e in result] == ["https://img/tt1.jpg", None, "https://img/tt3.jpg"]

    def test_failed_lookup_only_affects_its_entry(self):
        def _lookup(imdb, kind):
            if imdb == "tt2":
                raise NetworkError("down")
            return f"https://img/{imdb}.jpg"

        result = enrich_with_posters([_entry(1, "tt1"), _entry(2, "tt2"), _entry(3, "tt3")], MediaType.MOVIE, _lookup)

        assert [e.poster_url for e in result] == ["https://img/tt1.jpg", None, "https://img/tt3.jpg"]

    def test_missing_poster_leaves_none(self):
        result = enrich_with_posters([_entry(1, "tt1")], MediaType.MOVIE, lambda imdb, kind: None)

        assert result[0].poster_url is None

    def test_no_lookup_without_imdb_ids(self):
        calls = []

        result = enrich_with_posters(
            [_entry(1, None), _entry(2, None)],
            MediaType.SHOW,
            lambda imdb, kind: calls.append(imdb),
        )

        assert calls == []
        assert [e.id for e in result] == [1, 2]

    def test_lookup_receives_media_type(self):
        seen = []

        enrich_with_posters([_entry(1, "tt1")], MediaType.SHOW, lambda imdb, kind: seen.append((imdb, kind)))

        assert seen == [("tt1", MediaType.SHOW)]

    def test_lookups_run_concurrently_on_shared_runner(self):
        barrier = threading.Barrier(3, timeout=5)

        def _lookup(imdb, kind):
            barrier.wait()
            return f"https://img/{imdb}.jpg"

        with TaskRunner(max_workers=3) as runner:
            result = enrich_with_posters(
                [_entry(1, "tt1"), _entry(2, "tt2"), _entry(3, "tt3")],
                MediaType.MOVIE,
                _lookup,
                runner=runner,
            )

        assert all(e.poster_url for e in result)
