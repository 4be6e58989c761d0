"""
Unit tests for jobboard/identity.py - session tokens and viewer resolution.
"""

import time
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from jose import jwt

from jobboard.errors import ApiError
from jobboard.identity import (
    ANONYMOUS,
    SESSION_COOKIE,
    VIEWER_CACHE_KEY,
    ClerkIdentity,
    IdentityUser,
    Viewer,
    load_viewer,
)

from factories import make_user


def session_token(**claims):
    payload = {"sub": "user_1", "sid": "sess_1", "exp": int(time.time()) + 300}
    payload.update(claims)
    return jwt.encode(payload, "test-secret", algorithm="HS256")


def fake_request(headers=None, cookies=None):
    return SimpleNamespace(headers=headers or {}, cookies=cookies or {})


class TestClerkIdentity:

    def test_token_from_bearer_header(self):
        identity = ClerkIdentity()

        assert identity.token_from_request(fake_request({"Authorization": "Bearer abc"})) == "abc"

    def test_token_from_session_cookie(self):
        identity = ClerkIdentity()

        assert identity.token_from_request(fake_request(cookies={SESSION_COOKIE: "xyz"})) == "xyz"

    def test_current_user_from_claims(self):
        identity = ClerkIdentity()
        token = session_token(name="Ada Lovelace", email="ada@example.com")

        user = identity.current_user(fake_request(cookies={SESSION_COOKIE: token}))

        assert user == IdentityUser(
            id="user_1", session_id="sess_1", name="Ada Lovelace", email="ada@example.com"
        )
        assert identity.get_token(fake_request(cookies={SESSION_COOKIE: token})) == token

    def test_expired_token_is_rejected(self):
        identity = ClerkIdentity()
        token = session_token(exp=int(time.time()) - 3600)

        assert identity.claims(token) is None
        assert identity.current_user(fake_request(cookies={SESSION_COOKIE: token})) is None

    def test_garbage_token_is_rejected(self):
        identity = ClerkIdentity()

        assert identity.claims("not-a-jwt") is None

    def test_token_without_subject(self):
        identity = ClerkIdentity()
        token = session_token(sub=None)

        assert identity.current_user(fake_request(cookies={SESSION_COOKIE: token})) is None


class TestViewer:

    def test_anonymous(self):
        assert not ANONYMOUS.is_authenticated
        assert not ANONYMOUS.has_role("candidate")
        assert ANONYMOUS.display_name == ""

    def test_profile_name_wins(self):
        viewer = Viewer(
            user=IdentityUser(id="u", session_id="s", name="Clerk Name"),
            token="tok",
            role="admin",
            profile={"name": "Saved Name"},
        )

        assert viewer.display_name == "Saved Name"
        assert viewer.has_role("recruiter", "admin")


class TestLoadViewer:

    @pytest.fixture
    def identity(self):
        identity = MagicMock()
        identity.current_user.return_value = IdentityUser(id="clerk_1", session_id="sess_abc")
        identity.get_token.return_value = "tok"
        return identity

    def test_role_fetched_once_per_session(self, app, identity, mock_client):
        mock_client.get_me.return_value = make_user(role="recruiter", name="Rita")

        with app.test_request_context("/"):
            first = load_viewer(identity, mock_client)
            second = load_viewer(identity, mock_client)

        assert first.role == second.role == "recruiter"
        assert first.display_name == "Rita"
        mock_client.get_me.assert_called_once_with("tok")

    def test_new_identity_session_refetches(self, app, identity, mock_client):
        with app.test_request_context("/"):
            load_viewer(identity, mock_client)
            identity.current_user.return_value = IdentityUser(id="clerk_1", session_id="sess_new")
            load_viewer(identity, mock_client)

        assert mock_client.get_me.call_count == 2

    def test_failed_lookup_means_no_role(self, app, identity, mock_client):
        mock_client.get_me.side_effect = ApiError(500, "Boom")

        with app.test_request_context("/"):
            viewer = load_viewer(identity, mock_client)
            load_viewer(identity, mock_client)

        assert viewer.is_authenticated
        assert viewer.role is None
        assert mock_client.get_me.call_count == 1

    def test_signed_out_clears_cache(self, app, identity, mock_client):
        from flask import session

        identity.current_user.return_value = None

        with app.test_request_context("/"):
            session[VIEWER_CACHE_KEY] = {"sid": "old", "role": "admin"}
            viewer = load_viewer(identity, mock_client)

            assert viewer is ANONYMOUS
            assert VIEWER_CACHE_KEY not in session
