"""Component tests wiring the API client, query cache, services and views together."""

from collections import Counter

import httpx
import pytest

from restaurant_dashboard.repositories.local_store import ClientStateRepository, InMemoryStore
from restaurant_dashboard.services.catalog_service import CategoryService, ProductService
from restaurant_dashboard.services.dashboard_api_client import DashboardApiClient
from restaurant_dashboard.services.discount_service import DiscountService
from restaurant_dashboard.services.display_screen_service import DisplayScreenCoordinator
from restaurant_dashboard.services.offer_service import OfferService
from restaurant_dashboard.services.query_cache import QueryCache
from restaurant_dashboard.state.product_catalog import ProductCatalogView

RESTAURANT_ID = "r1"


class FakeBackend:
    """In-process dashboard backend answering the endpoints the display screen reads."""

    def __init__(self) -> None:
        self.calls: Counter[str] = Counter()
        self.auth_headers: dict[str, str | None] = {}
        self.products = [
            {"_id": "p1", "name": "Falafel Wrap", "price": 7.5, "categoryId": "c1", "isAvailable": True},
            {"_id": "p2", "name": {"en": "Hummus", "de": "Hummus"}, "price": "4.20", "categoryId": {"_id": "c2"}},
            {
                "_id": "p3",
                "name": "Baklava",
                "price": 3,
                "categoryId": "c2",
                "isAvailable": True,
                "availability": {"isAvailable": False},
            },
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls[f"{request.method} {path}"] += 1
        self.auth_headers[path] = request.headers.get("Authorization")

        if path == "/api/products":
            return httpx.Response(200, json={"success": True, "products": self.products})
        if path == "/api/public/products/r1":
            return httpx.Response(200, json={"success": True, "data": self.products[:1]})
        if path == "/api/categories":
            return httpx.Response(200, json={"categories": [{"_id": "c1", "name": "Wraps"}, {"_id": "c2"}]})
        if path == "/api/public/categories/r1":
            return httpx.Response(200, json={"data": [{"_id": "c1", "name": "Wraps"}]})
        if path == "/api/offers/public/restaurant/r1":
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "data": [
                        {"_id": "o1", "title": {"en": "Lunch", "ar": "غداء"}, "price": 9, "isAvailable": True},
                        {"_id": "o2", "title": "Dinner", "price": 15, "isAvailable": True},
                    ],
                },
            )
        if path == "/api/discounts":
            return httpx.Response(200, json={"discounts": [{"_id": "d1", "name": {"en": "Happy hour"}}]})
        if path == "/api/public/discounts/r1":
            return httpx.Response(200, json={"discounts": []})
        if path == "/api/restaurants/r1":
            return httpx.Response(200, json={"restaurant": {"name": "Cedar House", "contact": {"phone": "+49 30"}}})
        if request.method == "PUT" and path.endswith("/availability"):
            return httpx.Response(200, json={"success": True})
        if request.method == "DELETE" and path == "/api/products/p1":
            return httpx.Response(404, json={"message": "Product not found"})
        return httpx.Response(404, json={"message": f"No route for {path}"})


def _wire(backend: FakeBackend, token: str | None) -> tuple[DisplayScreenCoordinator, ProductCatalogView]:
    client = DashboardApiClient(
        base_url="http://api.test",
        token_provider=lambda: token,
        transport=httpx.MockTransport(backend),
    )
    cache = QueryCache()
    products = ProductService(client, cache)
    categories = CategoryService(client, cache)
    coordinator = DisplayScreenCoordinator(
        client,
        products,
        categories,
        OfferService(client, cache),
        DiscountService(client, cache),
        ClientStateRepository(InMemoryStore()),
        RESTAURANT_ID,
    )
    return coordinator, ProductCatalogView(products, categories, RESTAURANT_ID)


@pytest.mark.component
class TestDisplayScreenFlow:
    """End-to-end flows through the real client and cache."""

    @pytest.mark.asyncio
    async def test_views_share_records_but_resolve_availability_separately(self) -> None:
        backend = FakeBackend()
        coordinator, catalog = _wire(backend, token="jwt")

        results = await coordinator.refresh_all()
        assert all(result.success for result in results)

        assert await catalog.load() is True

        display_ids = [product.id for product in coordinator.view().products]
        catalog_available = {product.id: product.is_available for product in catalog.products}

        assert display_ids == ["p1", "p3"]
        assert catalog_available == {"p1": True, "p2": True, "p3": False}
        assert backend.calls["GET /api/products"] == 1
        assert backend.auth_headers["/api/products"] == "Bearer jwt"
        assert backend.auth_headers["/api/offers/public/restaurant/r1"] is None

    @pytest.mark.asyncio
    async def test_mutation_invalidates_shared_list(self) -> None:
        backend = FakeBackend()
        coordinator, catalog = _wire(backend, token="jwt")
        await catalog.load()

        assert await catalog.toggle_availability("p2") is True
        assert catalog.products[1].is_available is False
        await catalog.load()

        assert backend.calls["PUT /api/products/p2/availability"] == 1
        assert backend.calls["GET /api/products"] == 2

    @pytest.mark.asyncio
    async def test_failed_delete_reports_backend_message(self) -> None:
        backend = FakeBackend()
        _, catalog = _wire(backend, token="jwt")
        await catalog.load()

        catalog.request_delete(catalog.products[0])
        assert await catalog.confirm_delete() is False

        assert catalog.error == "Product not found"
        assert len(catalog.products) == 3

    @pytest.mark.asyncio
    async def test_anonymous_display_uses_public_endpoints(self) -> None:
        backend = FakeBackend()
        coordinator, _ = _wire(backend, token=None)

        await coordinator.refresh_all()
        await coordinator.start_restaurant_enrichment()
        view = coordinator.view()

        assert [product.id for product in view.products] == ["p1"]
        assert [category.id for category in view.categories] == ["c1"]
        assert backend.calls["GET /api/products"] == 0
        assert backend.calls["GET /api/public/products/r1"] == 1
        assert view.restaurant_info.name == "Cedar House"
        assert view.restaurant_info.phone == "+49 30"

    @pytest.mark.asyncio
    async def test_language_switch_relocalizes_offers(self) -> None:
        backend = FakeBackend()
        coordinator, _ = _wire(backend, token="jwt")
        await coordinator.refresh_all()

        await coordinator.set_language("ar")
        view = coordinator.view()

        assert view.is_rtl is True
        assert [offer.title for offer in view.offers] == ["Dinner", "غداء"]
        assert backend.calls["GET /api/offers/public/restaurant/r1"] == 2
