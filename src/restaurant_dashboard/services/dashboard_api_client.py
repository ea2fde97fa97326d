"""Client for the restaurant administration REST API."""

import json
import logging
import time
from collections.abc import Callable
from typing import Any

import httpx

from restaurant_dashboard.observability.decorators import traced
from restaurant_dashboard.observability.metrics import record_api_call
from restaurant_dashboard.services.api_errors import ApiError, ApiErrorKind

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], str | None]


class DashboardApiClient:
    """Async HTTP client for the dashboard backend.

    Every method returns the decoded JSON body untouched; normalization into
    canonical models happens in the feature services. Failures are raised as
    ApiError so callers can convert them with extract_api_error.
    """

    def __init__(
        self,
        base_url: str,
        token_provider: TokenProvider | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
    ) -> None:
        """Initialize the dashboard API client.

        Args:
            base_url: Base URL of the backend (e.g., "http://localhost:3000")
            token_provider: Callable returning the current bearer token, or None
            transport: Optional httpx transport, used by tests
            timeout: Request timeout in seconds; httpx defaults apply when omitted
        """
        self.base_url = base_url.rstrip("/")
        self._token_provider = token_provider
        self._transport = transport
        self._timeout = timeout

    @property
    def token(self) -> str | None:
        """Current bearer token, if one is available."""
        if self._token_provider is None:
            return None
        return self._token_provider() or None

    def _client(self) -> httpx.AsyncClient:
        options: dict[str, Any] = {"base_url": self.base_url, "transport": self._transport}
        if self._timeout is not None:
            options["timeout"] = self._timeout
        return httpx.AsyncClient(**options)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        body: Any = None,
        authenticated: bool = True,
        operation: str | None = None,
    ) -> Any:
        """Send one request and decode its JSON body.

        Args:
            method: HTTP method
            path: Path relative to the base URL
            params: Query parameters; None values are dropped
            body: JSON request body
            authenticated: Attach the bearer token when one exists
            operation: Label used for the call-duration metric

        Returns:
            Decoded response body, or None for an empty body

        Raises:
            ApiError: On transport failure, invalid JSON or HTTP status >= 400
        """
        headers = {"Content-Type": "application/json"}
        token = self.token if authenticated else None
        if token:
            headers["Authorization"] = f"Bearer {token}"

        query = {key: value for key, value in (params or {}).items() if value is not None}
        for key, value in query.items():
            if isinstance(value, bool):
                query[key] = "true" if value else "false"

        started = time.perf_counter()
        try:
            async with self._client() as client:
                response = await client.request(
                    method,
                    path,
                    params=query or None,
                    json=body,
                    headers=headers,
                )
        except httpx.TimeoutException as e:
            logger.error(f"{method} {path} timed out: {e}")  # pragma: no cover
            raise ApiError(ApiErrorKind.TIMEOUT_ERROR, error=str(e)) from e
        except httpx.RequestError as e:
            logger.error(f"{method} {path} failed: {e}")  # pragma: no cover
            raise ApiError(ApiErrorKind.FETCH_ERROR, error=str(e)) from e
        finally:
            record_api_call(method, operation or path, time.perf_counter() - started)

        data = _decode(response)

        if response.status_code >= 400:
            logger.error(f"{method} {path} returned {response.status_code}")
            raise ApiError(response.status_code, data=None if data is _INVALID else data)

        if data is _INVALID:
            logger.error(f"{method} {path} returned a body that is not JSON")
            raise ApiError(ApiErrorKind.PARSING_ERROR, error=response.text[:200])

        return data

    # Categories

    @traced("dashboard_api.list_categories")
    async def list_categories(self, restaurant_id: str) -> Any:
        return await self._request(
            "GET", "/api/categories", params={"restaurantId": restaurant_id}, operation="list_categories"
        )

    @traced("dashboard_api.list_categories_with_product_count")
    async def list_categories_with_product_count(self, restaurant_id: str) -> Any:
        return await self._request(
            "GET",
            "/api/categories/with-product-count",
            params={"restaurantId": restaurant_id},
            operation="list_categories_with_product_count",
        )

    @traced("dashboard_api.create_category")
    async def create_category(self, payload: dict[str, Any]) -> Any:
        return await self._request("POST", "/api/categories", body=payload, operation="create_category")

    @traced("dashboard_api.update_category")
    async def update_category(self, category_id: str, payload: dict[str, Any]) -> Any:
        return await self._request(
            "PUT", f"/api/categories/{category_id}", body=payload, operation="update_category"
        )

    @traced("dashboard_api.delete_category")
    async def delete_category(self, category_id: str) -> Any:
        return await self._request("DELETE", f"/api/categories/{category_id}", operation="delete_category")

    # Products

    @traced("dashboard_api.list_products")
    async def list_products(self, restaurant_id: str) -> Any:
        return await self._request(
            "GET", "/api/products", params={"restaurantId": restaurant_id}, operation="list_products"
        )

    @traced("dashboard_api.get_product")
    async def get_product(self, product_id: str) -> Any:
        return await self._request("GET", f"/api/products/{product_id}", operation="get_product")

    @traced("dashboard_api.create_product")
    async def create_product(self, payload: dict[str, Any]) -> Any:
        return await self._request("POST", "/api/products", body=payload, operation="create_product")

    @traced("dashboard_api.update_product")
    async def update_product(self, product_id: str, payload: dict[str, Any]) -> Any:
        return await self._request(
            "PUT", f"/api/products/{product_id}", body=payload, operation="update_product"
        )

    @traced("dashboard_api.update_product_availability")
    async def update_product_availability(
        self,
        product_id: str,
        is_available: bool,
        stock_quantity: int | None = None,
        low_stock_threshold: int | None = None,
    ) -> Any:
        """Toggle availability without sending the rest of the product."""
        body: dict[str, Any] = {"isAvailable": is_available}
        if stock_quantity is not None:
            body["stockQuantity"] = stock_quantity
        if low_stock_threshold is not None:
            body["lowStockThreshold"] = low_stock_threshold
        return await self._request(
            "PUT",
            f"/api/products/{product_id}/availability",
            body=body,
            operation="update_product_availability",
        )

    @traced("dashboard_api.delete_product")
    async def delete_product(self, product_id: str) -> Any:
        return await self._request("DELETE", f"/api/products/{product_id}", operation="delete_product")

    # Offers

    @traced("dashboard_api.list_offers")
    async def list_offers(
        self,
        page: int | None = None,
        limit: int | None = None,
        search: str | None = None,
        is_available: bool | None = None,
        sort_by: str | None = None,
        sort_order: str | None = None,
        store_id: str | None = None,
    ) -> Any:
        """Fetch one page of offers.

        Returns:
            Envelope of the form {success, data, pagination, statistics}
        """
        params = {
            "page": page,
            "limit": limit,
            "search": search or None,
            "isAvailable": is_available,
            "sortBy": sort_by,
            "sortOrder": sort_order,
            "storeId": store_id,
        }
        return await self._request("GET", "/api/offers", params=params, operation="list_offers")

    @traced("dashboard_api.get_offer")
    async def get_offer(self, offer_id: str) -> Any:
        return await self._request("GET", f"/api/offers/{offer_id}", operation="get_offer")

    @traced("dashboard_api.get_offer_statistics")
    async def get_offer_statistics(self) -> Any:
        return await self._request("GET", "/api/offers/statistics", operation="get_offer_statistics")

    @traced("dashboard_api.create_offer")
    async def create_offer(self, payload: dict[str, Any]) -> Any:
        return await self._request("POST", "/api/offers", body=payload, operation="create_offer")

    @traced("dashboard_api.update_offer")
    async def update_offer(self, offer_id: str, payload: dict[str, Any]) -> Any:
        return await self._request("PUT", f"/api/offers/{offer_id}", body=payload, operation="update_offer")

    @traced("dashboard_api.delete_offer")
    async def delete_offer(self, offer_id: str) -> Any:
        return await self._request("DELETE", f"/api/offers/{offer_id}", operation="delete_offer")

    @traced("dashboard_api.toggle_offer_availability")
    async def toggle_offer_availability(self, offer_id: str) -> Any:
        return await self._request(
            "PATCH", f"/api/offers/{offer_id}/toggle-availability", operation="toggle_offer_availability"
        )

    @traced("dashboard_api.list_public_offers")
    async def list_public_offers(self, restaurant_id: str, store_id: str | None = None) -> Any:
        path = f"/api/offers/public/restaurant/{restaurant_id}"
        if store_id:
            path = f"{path}/store/{store_id}"
        return await self._request("GET", path, authenticated=False, operation="list_public_offers")

    @traced("dashboard_api.redeem_offer")
    async def redeem_offer(self, offer_id: str, customer_id: str | None = None) -> Any:
        body = {"customerId": customer_id} if customer_id else {}
        return await self._request(
            "POST",
            f"/api/offers/public/{offer_id}/redeem",
            body=body,
            authenticated=False,
            operation="redeem_offer",
        )

    # Discounts

    @traced("dashboard_api.list_discounts")
    async def list_discounts(
        self,
        restaurant_id: str | None = None,
        is_active: bool | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> Any:
        params = {"restaurantId": restaurant_id, "isActive": is_active, "page": page, "limit": limit}
        return await self._request("GET", "/api/discounts", params=params, operation="list_discounts")

    @traced("dashboard_api.get_discount")
    async def get_discount(self, discount_id: str) -> Any:
        return await self._request("GET", f"/api/discounts/{discount_id}", operation="get_discount")

    @traced("dashboard_api.create_discount")
    async def create_discount(self, payload: dict[str, Any]) -> Any:
        return await self._request("POST", "/api/discounts", body=payload, operation="create_discount")

    @traced("dashboard_api.update_discount")
    async def update_discount(self, discount_id: str, payload: dict[str, Any]) -> Any:
        return await self._request(
            "PUT", f"/api/discounts/{discount_id}", body=payload, operation="update_discount"
        )

    @traced("dashboard_api.delete_discount")
    async def delete_discount(self, discount_id: str) -> Any:
        return await self._request("DELETE", f"/api/discounts/{discount_id}", operation="delete_discount")

    @traced("dashboard_api.get_discount_stats")
    async def get_discount_stats(self, restaurant_id: str) -> Any:
        return await self._request(
            "GET", "/api/discounts/stats", params={"restaurantId": restaurant_id}, operation="get_discount_stats"
        )

    @traced("dashboard_api.validate_discount_code")
    async def validate_discount_code(self, payload: dict[str, Any]) -> Any:
        return await self._request(
            "POST", "/api/discounts/validate", body=payload, operation="validate_discount_code"
        )

    @traced("dashboard_api.list_active_discounts")
    async def list_active_discounts(self, restaurant_id: str) -> Any:
        return await self._request(
            "GET",
            "/api/discounts/active",
            params={"restaurantId": restaurant_id},
            operation="list_active_discounts",
        )

    # Public reads

    @traced("dashboard_api.get_public_products")
    async def get_public_products(self, restaurant_id: str) -> Any:
        return await self._request(
            "GET", f"/api/public/products/{restaurant_id}", authenticated=False, operation="get_public_products"
        )

    @traced("dashboard_api.get_public_categories")
    async def get_public_categories(self, restaurant_id: str) -> Any:
        return await self._request(
            "GET",
            f"/api/public/categories/{restaurant_id}",
            authenticated=False,
            operation="get_public_categories",
        )

    @traced("dashboard_api.get_public_discounts")
    async def get_public_discounts(self, restaurant_id: str) -> Any:
        return await self._request(
            "GET",
            f"/api/public/discounts/{restaurant_id}",
            authenticated=False,
            operation="get_public_discounts",
        )

    @traced("dashboard_api.get_restaurant")
    async def get_restaurant(self, restaurant_id: str) -> Any:
        return await self._request("GET", f"/api/restaurants/{restaurant_id}", operation="get_restaurant")

    @traced("dashboard_api.get_restaurant_code")
    async def get_restaurant_code(self, restaurant_id: str) -> Any:
        return await self._request(
            "GET", f"/api/restaurants/{restaurant_id}/code", operation="get_restaurant_code"
        )

    # Auth

    @traced("dashboard_api.register_owner")
    async def register_owner(self, payload: dict[str, Any]) -> Any:
        return await self._request(
            "POST",
            "/api/auth/register/restaurant-owner",
            body=payload,
            authenticated=False,
            operation="register_owner",
        )

    @traced("dashboard_api.login")
    async def login(self, email: str, password: str) -> Any:
        return await self._request(
            "POST",
            "/api/auth/login",
            body={"email": email, "password": password},
            authenticated=False,
            operation="login",
        )


_INVALID = object()


def _decode(response: httpx.Response) -> Any:
    """Decode a JSON body; an empty body decodes to None."""
    if not response.content:
        return None
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _INVALID
