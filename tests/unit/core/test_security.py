"""Unit tests for the auth collaborator."""

import pytest

from notepad.core.exceptions import AuthenticationError
from notepad.core.security import (
    ANONYMOUS_SCOPE,
    AnonymousAuth,
    AuthProvider,
    StaticUserAuth,
    resolve_user_scope,
)


class _BrokenAuth:
    def current_user_id(self) -> str | None:
        raise AuthenticationError("session expired")


class TestResolveUserScope:
    def test_signed_in_user(self):
        assert resolve_user_scope(StaticUserAuth("alice")) == "alice"

    def test_anonymous_session(self):
        assert resolve_user_scope(AnonymousAuth()) == ANONYMOUS_SCOPE

    def test_no_provider(self):
        assert resolve_user_scope(None) == ANONYMOUS_SCOPE

    def test_auth_failure_falls_back_to_anonymous(self):
        assert resolve_user_scope(_BrokenAuth()) == ANONYMOUS_SCOPE


class TestProviders:
    def test_static_user_rejects_empty_id(self):
        with pytest.raises(AuthenticationError):
            StaticUserAuth("")

    def test_providers_satisfy_protocol(self):
        assert isinstance(StaticUserAuth("bob"), AuthProvider)
        assert isinstance(AnonymousAuth(), AuthProvider)
