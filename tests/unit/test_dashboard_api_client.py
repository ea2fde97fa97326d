"""Unit tests for DashboardApiClient."""

import json
from collections.abc import Callable

import httpx
import pytest

from restaurant_dashboard.services.api_errors import ApiError, ApiErrorKind
from restaurant_dashboard.services.dashboard_api_client import DashboardApiClient


@pytest.mark.unit
class TestDashboardApiClient:
    """Test suite for DashboardApiClient."""

    def test_client_initialization(self) -> None:
        client = DashboardApiClient(base_url="http://api.test/", token_provider=lambda: "")
        assert client.base_url == "http://api.test"
        assert client.token is None

    @pytest.mark.asyncio
    async def test_bearer_token_and_query_params(self, make_api_client: Callable[..., DashboardApiClient]) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"success": True, "data": []})

        client = make_api_client(handler, token="abc")
        result = await client.list_offers(page=2, limit=20, search="", is_available=False)

        assert result == {"success": True, "data": []}
        request = seen[0]
        assert request.method == "GET"
        assert request.url.path == "/api/offers"
        assert request.headers["Authorization"] == "Bearer abc"
        assert dict(request.url.params) == {"page": "2", "limit": "20", "isAvailable": "false"}

    @pytest.mark.asyncio
    async def test_no_authorization_header_without_token(
        self, make_api_client: Callable[..., DashboardApiClient]
    ) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[])

        client = make_api_client(handler, token=None)
        await client.list_products("r1")

        assert "Authorization" not in seen[0].headers

    @pytest.mark.asyncio
    async def test_public_endpoints_never_send_the_token(
        self, make_api_client: Callable[..., DashboardApiClient]
    ) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[])

        client = make_api_client(handler, token="abc")
        await client.get_public_products("r1")
        await client.list_public_offers("r1", "s1")

        assert seen[0].url.path == "/api/public/products/r1"
        assert seen[1].url.path == "/api/offers/public/restaurant/r1/store/s1"
        assert all("Authorization" not in request.headers for request in seen)

    @pytest.mark.asyncio
    async def test_json_body_is_sent(self, make_api_client: Callable[..., DashboardApiClient]) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"success": True})

        client = make_api_client(handler)
        await client.update_product_availability("p1", False, stock_quantity=3)

        assert seen[0].method == "PUT"
        assert seen[0].url.path == "/api/products/p1/availability"
        assert json.loads(seen[0].content) == {"isAvailable": False, "stockQuantity": 3}

    @pytest.mark.asyncio
    async def test_http_error_raises_api_error_with_body(
        self, make_api_client: Callable[..., DashboardApiClient]
    ) -> None:
        client = make_api_client(lambda request: httpx.Response(401, json={"code": "INVALID_PASSWORD"}))

        with pytest.raises(ApiError) as exc_info:
            await client.login("a@b.test", "wrong")

        assert exc_info.value.status == 401
        assert exc_info.value.data == {"code": "INVALID_PASSWORD"}

    @pytest.mark.asyncio
    async def test_http_error_with_non_json_body(self, make_api_client: Callable[..., DashboardApiClient]) -> None:
        client = make_api_client(lambda request: httpx.Response(502, text="<html>Bad Gateway</html>"))

        with pytest.raises(ApiError) as exc_info:
            await client.get_product("p1")

        assert exc_info.value.status == 502
        assert exc_info.value.data is None

    @pytest.mark.asyncio
    async def test_invalid_json_is_a_parsing_error(self, make_api_client: Callable[..., DashboardApiClient]) -> None:
        client = make_api_client(lambda request: httpx.Response(200, text="not json"))

        with pytest.raises(ApiError) as exc_info:
            await client.list_categories("r1")

        assert exc_info.value.status is ApiErrorKind.PARSING_ERROR

    @pytest.mark.asyncio
    async def test_connection_failure_is_a_fetch_error(
        self, make_api_client: Callable[..., DashboardApiClient]
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = make_api_client(handler)

        with pytest.raises(ApiError) as exc_info:
            await client.list_discounts("r1")

        assert exc_info.value.status is ApiErrorKind.FETCH_ERROR

    @pytest.mark.asyncio
    async def test_timeout_is_a_timeout_error(self, make_api_client: Callable[..., DashboardApiClient]) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        client = make_api_client(handler)

        with pytest.raises(ApiError) as exc_info:
            await client.get_restaurant("r1")

        assert exc_info.value.status is ApiErrorKind.TIMEOUT_ERROR

    @pytest.mark.asyncio
    async def test_empty_body_decodes_to_none(self, make_api_client: Callable[..., DashboardApiClient]) -> None:
        client = make_api_client(lambda request: httpx.Response(204))
        assert await client.delete_offer("o1") is None
