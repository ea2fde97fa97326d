"""Authenticated session state backed by the persisted client store."""

import logging
from typing import Any

from restaurant_dashboard.repositories.local_store import ClientStateRepository

logger = logging.getLogger(__name__)


class AuthSession:
    """Current bearer token and user record.

    Credentials are loaded from the repository on construction and written
    back on every change, so a restarted client resumes the same session.
    """

    def __init__(self, repository: ClientStateRepository) -> None:
        """Initialize the session from persisted credentials.

        Args:
            repository: Client state repository holding the token and user
        """
        self.repository = repository
        self.token: str | None = repository.get_auth_token()
        self.user: dict[str, Any] | None = repository.get_user()

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def token_provider(self) -> str | None:
        """Return the current token; passed to the API client."""
        return self.token

    def set_credentials(self, token: str, user: dict[str, Any]) -> None:
        """Store new credentials after a successful login."""
        self.token = token
        self.user = user
        if not (self.repository.save_auth_token(token) and self.repository.save_user(user)):
            logger.warning("Credentials could not be persisted; session will not survive a restart")

    def logout(self) -> None:
        """Forget the credentials locally. No request is sent."""
        self.token = None
        self.user = None
        self.repository.clear_credentials()
        logger.info("Logged out")

    @property
    def restaurant_id(self) -> str | None:
        """Restaurant of the logged-in user.

        ``restaurantId`` may be a bare id or a populated ``{_id}`` reference.
        """
        user = self.user or {}
        value = user.get("restaurantId")
        if isinstance(value, dict):
            value = value.get("_id") or value.get("id")
        return str(value) if value else None

    @property
    def restaurant_code(self) -> str | None:
        """Restaurant code carried on the user record, if any."""
        user = self.user or {}
        restaurant = user.get("restaurant")
        code = user.get("restaurantCode")
        if not code and isinstance(restaurant, dict):
            code = restaurant.get("restaurantCode")
        return code if isinstance(code, str) and code else None
