"""Authenticated session handed over by the identity provider."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import UnauthorizedError
from .utils import validate_id


@dataclass(frozen=True)
class AuthSession:
    """The signed-in user as supplied by the identity provider."""

    user_id: str


def require_user(session: AuthSession | None) -> str:
    """Return the session's user id or refuse the operation.

    Raises:
        UnauthorizedError: If there is no session or it carries no user id.
        ValueError: If the user id is not a safe storage identifier.

    """
    if session is None or not session.user_id:
        msg = "Unauthorized"
        raise UnauthorizedError(msg)
    return validate_id(session.user_id, "user_id")
