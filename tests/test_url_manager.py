"""Tests for config-driven URL building."""

import pytest

from trackplay.backend.network_handlers.url_manager import URLManager


class TestBuild:
    def test_absolute_path_bypasses_base_url(self, urlm):
        url, headers = urlm.build("trakt", "https://trakt.tv/oauth/authorize")

        assert url == "https://trakt.tv/oauth/authorize"
        assert headers["trakt-api-version"] == "2"

    def test_none_params_are_dropped(self, urlm):
        url, _ = urlm.build("trakt", "/sync/history/movies", {"limit": None, "page": 2})

        assert url == "https://api.trakt.tv/sync/history/movies?page=2"

    def test_base_path_is_kept(self, urlm):
        url, _ = urlm.build("tmdb", "/find/tt1")

        assert url == "https://api.themoviedb.org/3/find/tt1?api_key=tmdb-key"

    def test_headers_are_copies(self, urlm):
        _, headers = urlm.build("trakt", "/x")
        headers["trakt-api-key"] = "changed"

        _, again = urlm.build("trakt", "/x")
        assert again["trakt-api-key"] == "client-id"

    def test_unknown_service(self, urlm):
        with pytest.raises(ValueError):
            urlm.build("imdb", "/x")


class TestEndpoint:
    def test_nested_template_is_filled(self, urlm):
        assert urlm.endpoint("trakt", "sync", "history", media_type="episodes") == "/sync/history/episodes"

    def test_plain_endpoint(self, urlm):
        assert urlm.endpoint("trakt", "oauth", "token") == "https://api.trakt.tv/oauth/token"

    def test_unknown_endpoint(self, urlm):
        with pytest.raises(ValueError):
            urlm.endpoint("trakt", "sync", "watchlist")

    def test_non_leaf_endpoint(self, urlm):
        with pytest.raises(ValueError):
            urlm.endpoint("trakt", "oauth")


def test_trakt_has_no_query_defaults():
    urlm = URLManager({"trakt": {"base_url": "https://api.trakt.tv", "api_key": "ignored"}})

    url, _ = urlm.build("trakt", "/users/me")

    assert url == "https://api.trakt.tv/users/me"
