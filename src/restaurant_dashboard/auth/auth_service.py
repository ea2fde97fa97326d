"""Login and owner registration flows."""

import logging
from dataclasses import dataclass
from typing import Any

from restaurant_dashboard.auth.session import AuthSession
from restaurant_dashboard.services.api_errors import extract_api_error
from restaurant_dashboard.services.dashboard_api_client import DashboardApiClient
from restaurant_dashboard.services.query_cache import QueryCache

logger = logging.getLogger(__name__)


@dataclass
class AuthOutcome:
    """Result of a login or registration attempt.

    Attributes:
        success: Whether the backend accepted the request
        message: User-facing error message on failure
        field_errors: Per-field messages on failure, empty when none were sent
        restaurant_code: Code to show on the login screen after registration
        email: Email to prefill on the login screen after registration
    """

    success: bool
    message: str | None = None
    field_errors: dict[str, str] | None = None
    restaurant_code: str | None = None
    email: str | None = None


@dataclass
class OwnerRegistration:
    """Fields required to register a restaurant owner."""

    first_name: str
    last_name: str
    email: str
    password: str
    phone: str
    restaurant_name: str
    cuisine: str

    def to_payload(self) -> dict[str, str]:
        return {
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "password": self.password,
            "phone": self.phone,
            "restaurantName": self.restaurant_name,
            "cuisine": self.cuisine,
        }


class AuthService:
    """Runs the auth flows and converts failures into displayable outcomes."""

    def __init__(self, client: DashboardApiClient, session: AuthSession, cache: QueryCache | None = None) -> None:
        self.client = client
        self.session = session
        self.cache = cache

    async def login(self, email: str, password: str) -> AuthOutcome:
        """Log in and persist the returned credentials.

        Args:
            email: Account email
            password: Account password

        Returns:
            AuthOutcome; on failure carries the extracted message and field errors
        """
        try:
            data = await self.client.login(email, password)
        except Exception as e:
            parsed = extract_api_error(e)
            logger.info(f"Login failed for {email}: {parsed.message}")
            return AuthOutcome(success=False, message=parsed.message, field_errors=parsed.field_errors or {})

        token = data.get("token") if isinstance(data, dict) else None
        user = data.get("user") if isinstance(data, dict) else None
        if token and isinstance(user, dict):
            self.session.set_credentials(token, user)
            if self.cache is not None:
                self.cache.clear()

        return AuthOutcome(success=True)

    async def register_owner(self, registration: OwnerRegistration) -> AuthOutcome:
        """Register a restaurant owner.

        No credentials are stored; the caller proceeds to login with the
        returned restaurant code and email.
        """
        try:
            data = await self.client.register_owner(registration.to_payload())
        except Exception as e:
            parsed = extract_api_error(e)
            logger.info(f"Registration failed for {registration.email}: {parsed.message}")
            return AuthOutcome(success=False, message=parsed.message, field_errors=parsed.field_errors or {})

        restaurant = data.get("restaurant") if isinstance(data, dict) else None
        code = restaurant.get("restaurantCode") if isinstance(restaurant, dict) else None
        return AuthOutcome(success=True, restaurant_code=code, email=registration.email)

    async def restaurant_code(self) -> str | None:
        """Return the restaurant code from the user record or the backend."""
        code = self.session.restaurant_code
        if code:
            return code

        restaurant_id = self.session.restaurant_id
        if not restaurant_id:
            return None

        try:
            data: Any = await self.client.get_restaurant_code(restaurant_id)
        except Exception as e:
            logger.warning(f"Could not fetch restaurant code for {restaurant_id}: {e}")
            return None

        if not isinstance(data, dict):
            return None
        nested = data.get("restaurant")
        code = data.get("restaurantCode") or (nested.get("restaurantCode") if isinstance(nested, dict) else None)
        return code if isinstance(code, str) and code else None

    def logout(self) -> None:
        self.session.logout()
        if self.cache is not None:
            self.cache.clear()
