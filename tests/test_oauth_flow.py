"""Tests for the authorization-code flow controller."""

import threading
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs, urlparse

import pytest

from trackplay.backend.auth.models import AuthorizationState, ConsentResult
from trackplay.backend.auth.oauth_flow import OAuthFlowController
from trackplay.backend.common.errors import AuthError, ConfigError
from trackplay.backend.network_handlers.session import RequestTimeout

from tests.conftest import make_response

REDIRECT = "http://127.0.0.1:8765/callback"
TOKEN_BODY = {
    "access_token": "access-1",
    "refresh_token": "refresh-1",
    "expires_in": 7776000,
    "token_type": "bearer",
}


def _controller(trakt_http, consent) -> OAuthFlowController:
    return OAuthFlowController(
        trakt_http,
        client_id="client-id",
        client_secret="client-secret",
        redirect_uri=REDIRECT,
        authorize_url="https://trakt.tv/oauth/authorize",
        token_url="https://api.trakt.tv/oauth/token",
        consent_step=consent,
    )


class TestAuthorizationUrl:
    def test_carries_client_and_redirect(self, trakt_http):
        url = _controller(trakt_http, MagicMock()).build_authorization_url()

        parsed = urlparse(url)
        query = parse_qs(parsed.query)
        assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == "https://trakt.tv/oauth/authorize"
        assert query == {"response_type": ["code"], "client_id": ["client-id"], "redirect_uri": [REDIRECT]}


class TestAuthorize:
    def test_success_returns_pair_and_completes(self, trakt_http, mock_requests):
        consent = MagicMock(return_value=ConsentResult.success(f"{REDIRECT}?code=abc123"))
        mock_requests.request.return_value = make_response(200, TOKEN_BODY)
        controller = _controller(trakt_http, consent)

        pair = controller.authorize()

        assert (pair.access_token, pair.refresh_token, pair.expires_in) == ("access-1", "refresh-1", 7776000)
        assert controller.state is AuthorizationState.COMPLETE
        consent.assert_called_once_with(controller.build_authorization_url(), REDIRECT)

    def test_exchange_posts_code_without_bearer(self, trakt_http, mock_requests):
        trakt_http.set_auth_token("stale")
        mock_requests.request.return_value = make_response(200, TOKEN_BODY)
        consent = MagicMock(return_value=ConsentResult.success(f"{REDIRECT}?code=abc123"))

        _controller(trakt_http, consent).authorize()

        call = mock_requests.request.call_args.kwargs
        assert call["method"] == "POST"
        assert call["url"] == "https://api.trakt.tv/oauth/token"
        assert call["json"] == {
            "code": "abc123",
            "client_id": "client-id",
            "client_secret": "client-secret",
            "redirect_uri": REDIRECT,
            "grant_type": "authorization_code",
        }
        assert "Authorization" not in call["headers"]

    def test_cancelled_consent_fails_without_exchange(self, trakt_http, mock_requests):
        consent = MagicMock(return_value=ConsentResult.cancelled("user closed"))
        controller = _controller(trakt_http, consent)

        with pytest.raises(AuthError, match="authentication failed"):
            controller.authorize()

        assert controller.state is AuthorizationState.FAILED
        mock_requests.request.assert_not_called()

    def test_redirect_without_code_fails(self, trakt_http, mock_requests):
        consent = MagicMock(return_value=ConsentResult.success(f"{REDIRECT}?state=xyz"))
        controller = _controller(trakt_http, consent)

        with pytest.raises(AuthError, match="missing code"):
            controller.authorize()

        assert controller.state is AuthorizationState.FAILED
        mock_requests.request.assert_not_called()

    @pytest.mark.parametrize(
        "body",
        [
            {"access_token": "a", "expires_in": 10},
            {"refresh_token": "r", "expires_in": 10},
            {"access_token": "a", "refresh_token": "r"},
            {"access_token": "", "refresh_token": "r", "expires_in": 10},
            ["not", "an", "object"],
        ],
    )
    def test_incomplete_token_response_fails(self, trakt_http, mock_requests, body):
        consent = MagicMock(return_value=ConsentResult.success(f"{REDIRECT}?code=abc"))
        mock_requests.request.return_value = make_response(200, body)
        controller = _controller(trakt_http, consent)

        with pytest.raises(AuthError):
            controller.authorize()

        assert controller.state is AuthorizationState.FAILED

    def test_token_endpoint_error_is_auth_error(self, trakt_http, mock_requests):
        consent = MagicMock(return_value=ConsentResult.success(f"{REDIRECT}?code=abc"))
        mock_requests.request.return_value = make_response(401, {"error": "invalid_grant"})

        with pytest.raises(AuthError, match="token exchange failed"):
            _controller(trakt_http, consent).authorize()

    def test_transport_failure_is_chained(self, trakt_http, mock_requests):
        consent = MagicMock(return_value=ConsentResult.success(f"{REDIRECT}?code=abc"))
        controller = _controller(trakt_http, consent)

        with patch.object(trakt_http, "post_json", side_effect=RequestTimeout("slow")):
            with pytest.raises(AuthError) as excinfo:
                controller.authorize()

        assert isinstance(excinfo.value.__cause__, RequestTimeout)

    def test_consent_os_error_becomes_auth_error(self, trakt_http):
        consent = MagicMock(side_effect=OSError("address in use"))
        controller = _controller(trakt_http, consent)

        with pytest.raises(AuthError):
            controller.authorize()

        assert controller.state is AuthorizationState.FAILED

    def test_second_concurrent_authorize_is_rejected(self, trakt_http, mock_requests):
        entered = threading.Event()
        release = threading.Event()

        def _slow_consent(url, redirect):
            entered.set()
            release.wait(5)
            return ConsentResult.cancelled()

        controller = _controller(trakt_http, _slow_consent)
        errors = []

        def _first():
            try:
                controller.authorize()
            except AuthError as exc:
                errors.append(exc)

        worker = threading.Thread(target=_first)
        worker.start()
        assert entered.wait(5)

        with pytest.raises(AuthError, match="already in progress"):
            controller.authorize()

        release.set()
        worker.join(5)
        assert [str(e) for e in errors] == ["authentication failed"]

    def test_can_retry_after_failure(self, trakt_http, mock_requests):
        consent = MagicMock(
            side_effect=[
                ConsentResult.cancelled(),
                ConsentResult.success(f"{REDIRECT}?code=abc"),
            ]
        )
        mock_requests.request.return_value = make_response(200, TOKEN_BODY)
        controller = _controller(trakt_http, consent)

        with pytest.raises(AuthError):
            controller.authorize()
        pair = controller.authorize()

        assert pair.access_token == "access-1"
        assert controller.state is AuthorizationState.COMPLETE


class TestRefresh:
    def test_refresh_uses_refresh_grant(self, trakt_http, mock_requests):
        mock_requests.request.return_value = make_response(200, dict(TOKEN_BODY, access_token="access-2"))

        pair = _controller(trakt_http, MagicMock()).refresh("refresh-1")

        body = mock_requests.request.call_args.kwargs["json"]
        assert body["grant_type"] == "refresh_token"
        assert body["refresh_token"] == "refresh-1"
        assert pair.access_token == "access-2"

    def test_refresh_requires_token(self, trakt_http):
        with pytest.raises(AuthError):
            _controller(trakt_http, MagicMock()).refresh("")


class TestExtractCode:
    def test_reads_code_parameter(self):
        assert OAuthFlowController.extract_code(f"{REDIRECT}?code=xyz&state=1") == "xyz"

    def test_missing_or_empty_code(self):
        assert OAuthFlowController.extract_code(REDIRECT) is None
        assert OAuthFlowController.extract_code(f"{REDIRECT}?code=") is None


class TestFromSettings:
    def test_missing_credentials_raise_config_error(self, trakt_http):
        keys = {"client_id": "", "client_secret": "", "redirect_uri": REDIRECT}
        with patch("trackplay.config.settings.get_trakt_keys", return_value=keys):
            with pytest.raises(ConfigError):
                OAuthFlowController.from_settings(trakt_http)

    def test_endpoints_come_from_configuration(self, trakt_http):
        keys = {"client_id": "cid", "client_secret": "secret", "redirect_uri": REDIRECT}
        with patch("trackplay.config.settings.get_trakt_keys", return_value=keys):
            controller = OAuthFlowController.from_settings(trakt_http, consent_step=MagicMock())

        assert controller.build_authorization_url().startswith("https://trakt.tv/oauth/authorize?")
        assert controller.redirect_uri == REDIRECT
