"""Shared pytest fixtures for the TrackPlay test suite."""

from typing import Any, Optional
from unittest.mock import MagicMock

import pytest
import requests
from cryptography.fernet import Fernet

from trackplay.backend.auth.credential_store import CredentialStore
from trackplay.backend.auth.models import TokenPair
from trackplay.backend.network_handlers.session import HttpSession
from trackplay.backend.network_handlers.url_manager import URLManager

SERVICES = {
    "trakt": {
        "base_url": "https://api.trakt.tv",
        "default_headers": {
            "Content-Type": "application/json",
            "trakt-api-version": "2",
            "trakt-api-key": "client-id",
        },
        "endpoints": {
            "oauth": {
                "authorize": "https://trakt.tv/oauth/authorize",
                "token": "https://api.trakt.tv/oauth/token",
            },
            "sync": {"history": "/sync/history/{media_type}"},
            "recommendations": "/recommendations/{media_type}",
        },
    },
    "tmdb": {
        "base_url": "https://api.themoviedb.org/3",
        "api_key": "tmdb-key",
        "default_headers": {"Accept": "application/json"},
        "endpoints": {"find": "/find/{external_id}"},
    },
}


def make_response(status: int = 200, payload: Any = None, *, text: Optional[str] = None) -> MagicMock:
    """Build a ``requests.Response`` stand-in."""
    response = MagicMock(spec=requests.Response)
    response.status_code = status
    if text is not None:
        response.json.side_effect = ValueError("not json")
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def urlm() -> URLManager:
    """Returns a URLManager built from static provider settings."""
    return URLManager(SERVICES)


@pytest.fixture
def mock_requests() -> MagicMock:
    """Returns a MagicMock standing in for ``requests.Session``."""
    mock = MagicMock(spec=requests.Session)
    mock.request.return_value = make_response(200, {})
    return mock


@pytest.fixture
def trakt_http(urlm, mock_requests) -> HttpSession:
    return HttpSession("trakt", urlm=urlm, timeout=5, session=mock_requests)


@pytest.fixture
def tmdb_http(urlm, mock_requests) -> HttpSession:
    return HttpSession("tmdb", urlm=urlm, timeout=5, session=mock_requests)


@pytest.fixture
def token_pair() -> TokenPair:
    """Returns a valid token pair."""
    return TokenPair(access_token="access-1", refresh_token="refresh-1", expires_in=7776000)


@pytest.fixture
def credential_store(tmp_path) -> CredentialStore:
    """Returns a CredentialStore writing into a temporary directory."""
    return CredentialStore(tmp_path / "tokens", key=Fernet.generate_key())


@pytest.fixture
def mock_store() -> MagicMock:
    """Returns a MagicMock for CredentialStore with nothing stored."""
    mock = MagicMock(spec=CredentialStore)
    mock.get.return_value = None
    return mock
