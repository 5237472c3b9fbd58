"""
Unit tests for the bearer token lifecycle.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

import pytest
import requests

from photoframe.error_handling import AuthError
from photoframe.services.auth import AuthContext, TokenState


def _token_response(json_body, ok=True, status_code=200):
    response = MagicMock()
    response.ok = ok
    response.status_code = status_code
    response.reason = "OK" if ok else "Bad Request"
    response.json.return_value = json_body
    return response


@pytest.fixture
def token_session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def context(caches, clock, token_session):
    return AuthContext(
        token_endpoint="https://oauth.test/token",
        token_lifetime=3300,
        refresh_token_store=caches.refresh_tokens,
        session=token_session,
        clock=clock,
    )


class TestTokenState:
    """Test cases for the credential lifecycle."""

    def test_no_credential(self, context):
        assert context.state is TokenState.NO_CREDENTIAL
        assert not context.has_credential

        with pytest.raises(AuthError) as exc_info:
            context.get_token()

        assert exc_info.value.code == "no_credential"

    def test_valid_after_sign_in(self, context, token_session):
        context.set_tokens("access", "refresh", profile_id="p1")

        assert context.state is TokenState.VALID
        assert context.get_token() == "access"
        token_session.post.assert_not_called()

    def test_stale_after_lifetime(self, context, clock):
        context.set_tokens("access", "refresh", profile_id="p1")

        clock.advance(3300)

        assert context.state is TokenState.STALE

    def test_sign_in_without_access_token_is_stale(self, context):
        context.set_tokens(None, "refresh")

        assert context.state is TokenState.STALE

    def test_clear(self, context):
        context.set_tokens("access", "refresh")

        context.clear()

        assert context.state is TokenState.NO_CREDENTIAL


class TestRefreshCredentialStore:
    """Test cases for remembering refresh credentials per profile."""

    def test_refresh_token_is_remembered(self, context, caches):
        context.set_tokens("access", "refresh", profile_id="p1")

        assert caches.refresh_tokens.get("p1") == {"refreshToken": "refresh"}

    def test_missing_refresh_token_is_restored(self, context, caches):
        caches.refresh_tokens.set("p1", {"refreshToken": "remembered"})

        context.set_tokens("access", None, profile_id="p1")

        assert context.has_credential
        assert context._refresh_credential == "remembered"

    def test_unknown_profile_without_refresh_token(self, context):
        context.set_tokens("access", None, profile_id="p2")

        assert context.state is TokenState.NO_CREDENTIAL


class TestRefresh:
    """Test cases for the token exchange."""

    def test_refresh_sends_refresh_credential(self, context, token_session, clock):
        context.set_tokens("old-access", "the-refresh-token")
        clock.advance(4000)
        token_session.post.return_value = _token_response({"access_token": "new-access", "expires_in": 3599})

        token = context.get_token()

        assert token == "new-access"
        assert context.state is TokenState.VALID
        args, kwargs = token_session.post.call_args
        assert args == ("https://oauth.test/token",)
        assert kwargs["data"] == {
            "client_id": "test-client-id",
            "client_secret": "test-client-secret",
            "refresh_token": "the-refresh-token",
            "grant_type": "refresh_token",
        }

    def test_fresh_token_is_not_refreshed(self, context, token_session):
        context.set_tokens("access", "refresh")

        assert context.refresh_token() == "access"
        token_session.post.assert_not_called()

    def test_refresh_rejected(self, context, token_session):
        context.set_tokens(None, "revoked")
        token_session.post.return_value = _token_response(
            {"error": "invalid_grant", "error_description": "Token has been revoked."}, ok=False, status_code=400
        )

        with pytest.raises(AuthError) as exc_info:
            context.get_token()

        assert exc_info.value.code == "token_refresh_failed"
        assert context.token is None

    def test_refresh_transport_failure(self, context, token_session):
        context.set_tokens(None, "refresh")
        token_session.post.side_effect = requests.ConnectionError("offline")

        with pytest.raises(AuthError):
            context.get_token()

    def test_refresh_without_access_token(self, context, token_session):
        context.set_tokens(None, "refresh")
        token_session.post.return_value = _token_response({"token_type": "Bearer"})

        with pytest.raises(AuthError):
            context.get_token()

    def test_concurrent_callers_share_one_refresh(self, context, token_session):
        context.set_tokens(None, "refresh", profile_id="p1")
        posts = []
        posts_lock = threading.Lock()

        def slow_post(*args, **kwargs):
            with posts_lock:
                posts.append(kwargs["data"]["refresh_token"])
            time.sleep(0.05)
            return _token_response({"access_token": f"access-{len(posts)}"})

        token_session.post.side_effect = slow_post

        with ThreadPoolExecutor(max_workers=5) as pool:
            tokens = list(pool.map(lambda _: context.get_token(), range(5)))

        assert posts == ["refresh"]
        assert tokens == ["access-1"] * 5
        assert context.state is TokenState.VALID
