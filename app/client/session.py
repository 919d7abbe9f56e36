"""Client-held session: the bearer token and the signed in user."""
from typing import Any, Optional


class SessionContext:
    """
    Token and user of one signed in session.

    Lives from login until logout or until the server rejects the token.
    ``login_route`` is where the user is sent once the session is cleared.
    """

    def __init__(self, login_route: str, token: Optional[str] = None, user: Optional[dict[str, Any]] = None):
        self.login_route = login_route
        self._token = token
        self._user = user

    def get_token(self) -> Optional[str]:
        return self._token

    def get_user(self) -> Optional[dict[str, Any]]:
        return self._user

    def set(self, token: str, user: Optional[dict[str, Any]] = None) -> None:
        self._token = token
        self._user = user

    def clear(self) -> None:
        self._token = None
        self._user = None

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None
