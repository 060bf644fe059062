"""
Security Utilities.

The authentication collaborator. Sign-in itself lives outside this package;
the core only asks for the current user id to scope remote documents.
"""

from typing import Protocol, runtime_checkable

from notepad.core.exceptions import AuthenticationError
from notepad.core.logging import get_logger

logger = get_logger(__name__)

ANONYMOUS_SCOPE = "anonymous"


@runtime_checkable
class AuthProvider(Protocol):
    """Supplies the opaque id of the signed-in user."""

    def current_user_id(self) -> str | None:
        """
        Return the current user id, or None for an anonymous session.

        Raises:
            AuthenticationError: If the session cannot be resolved
        """
        ...


class StaticUserAuth:
    """AuthProvider with a fixed user id (from config/.env or the CLI)."""

    def __init__(self, user_id: str) -> None:
        if not user_id:
            raise AuthenticationError("User id must not be empty")
        self._user_id = user_id

    def current_user_id(self) -> str | None:
        return self._user_id


class AnonymousAuth:
    """AuthProvider for an unauthenticated session."""

    def current_user_id(self) -> str | None:
        return None


def resolve_user_scope(auth: AuthProvider | None) -> str:
    """
    Resolve the remote document scope for the current session.

    Authentication problems never block local work: any failure to resolve
    a user falls back to the anonymous scope.

    Args:
        auth: Auth collaborator, or None when none is configured

    Returns:
        User id, or the anonymous scope
    """
    if auth is None:
        return ANONYMOUS_SCOPE
    try:
        user_id = auth.current_user_id()
    except AuthenticationError as e:
        logger.warning(
            "Could not resolve current user, using anonymous scope",
            extra={"error": e.message},
        )
        return ANONYMOUS_SCOPE
    return user_id or ANONYMOUS_SCOPE
