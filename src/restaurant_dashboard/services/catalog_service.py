"""Category and product services."""

import logging
from typing import Any

from restaurant_dashboard.models.catalog_models import Category, Product
from restaurant_dashboard.normalizers.response_normalizer import (
    AvailabilityPolicy,
    normalize_category,
    normalize_product,
    resolve_localized,
    unwrap_collection,
    unwrap_record,
)
from restaurant_dashboard.services.base_service import CachedApiService
from restaurant_dashboard.services.dashboard_api_client import DashboardApiClient
from restaurant_dashboard.services.query_cache import QueryCache

logger = logging.getLogger(__name__)

CATEGORIES_TAG = "Categories"
PRODUCTS_TAG = "Products"


def split_allergens(ingredients: str) -> list[str]:
    """Split a comma-joined ingredient string into trimmed, non-empty entries."""
    return [part.strip() for part in (ingredients or "").split(",") if part.strip()]


def product_payload(product: Product, restaurant_id: str) -> dict[str, Any]:
    """Build the create/update request body for a product.

    Args:
        product: Canonical product; its id is not sent
        restaurant_id: Owning restaurant

    Returns:
        Request body in the backend's field names
    """
    return {
        "restaurantId": restaurant_id,
        "name": product.name,
        "description": product.description,
        "price": float(product.price),
        "categoryId": product.category_id,
        "isAvailable": product.is_available,
        "isNewItem": product.is_new,
        "allergens": split_allergens(product.ingredients),
        "images": [product.image] if product.image else [],
    }


class CategoryService(CachedApiService):
    """Reads and mutations of menu categories."""

    def __init__(self, client: DashboardApiClient, cache: QueryCache) -> None:
        super().__init__(client, cache, CATEGORIES_TAG)

    async def list_categories(self, restaurant_id: str, force: bool = False) -> list[Category] | None:
        """List categories of a restaurant.

        Returns:
            Normalized categories, or None when skipped for lack of a token
        """
        records = await self._query(
            ("categories", restaurant_id),
            lambda: self._fetch_list(self.client.list_categories, restaurant_id),
            tags=[self._list_tag()],
            force=force,
        )
        if records is None:
            return None
        return [normalize_category(record) for record in records]

    async def list_public_categories(self, restaurant_id: str, force: bool = False) -> list[Category]:
        """List categories through the unauthenticated display endpoint."""
        records = await self._query(
            ("public_categories", restaurant_id),
            lambda: self._fetch_list(self.client.get_public_categories, restaurant_id),
            tags=[self._list_tag()],
            authenticated=False,
            force=force,
        )
        return [normalize_category(record) for record in records or []]

    async def list_categories_with_product_count(self, restaurant_id: str) -> list[tuple[Category, int]] | None:
        """List categories with the number of available products in each."""
        records = await self._query(
            ("categories_with_count", restaurant_id),
            lambda: self._fetch_list(self.client.list_categories_with_product_count, restaurant_id),
            tags=[self._list_tag()],
        )
        if records is None:
            return None

        result = []
        for record in records:
            count = record.get("activeProductCount", record.get("productCount", 0)) if isinstance(record, dict) else 0
            result.append((normalize_category(record), count if isinstance(count, int) and count >= 0 else 0))
        return result

    async def _fetch_list(self, call: Any, restaurant_id: str) -> list[Any]:
        return unwrap_collection(await call(restaurant_id), "categories")

    async def create_category(
        self,
        restaurant_id: str,
        name: Any,
        description: Any = None,
        is_active: bool | None = None,
    ) -> Category:
        """Create a category.

        A localized name or description is sent as its English string.
        """
        payload: dict[str, Any] = {"restaurantId": restaurant_id, "name": _flatten(name)}
        if description is not None:
            payload["description"] = _flatten(description)
        payload["isActive"] = True if is_active is None else is_active

        created = await self.client.create_category(payload)
        self._invalidate()
        logger.info(f"Created category for restaurant {restaurant_id}")
        return normalize_category(unwrap_record(created, "category"))

    async def update_category(self, category_id: str, name: str, description: str | None = None) -> Category:
        payload: dict[str, Any] = {"name": {"en": name}}
        if description is not None:
            payload["description"] = {"en": description}
        updated = await self.client.update_category(category_id, payload)
        self._invalidate(category_id)
        return normalize_category(unwrap_record(updated, "category"))

    async def delete_category(self, category_id: str) -> None:
        await self.client.delete_category(category_id)
        self._invalidate(category_id)
        logger.info(f"Deleted category {category_id}")


class ProductService(CachedApiService):
    """Reads and mutations of products."""

    def __init__(self, client: DashboardApiClient, cache: QueryCache) -> None:
        super().__init__(client, cache, PRODUCTS_TAG)

    async def _records(self, restaurant_id: str, force: bool) -> list[Any] | None:
        return await self._query(
            ("products", restaurant_id),
            lambda: self._fetch_list(self.client.list_products, restaurant_id),
            tags=[self._list_tag()],
            force=force,
        )

    async def list_products(
        self,
        restaurant_id: str,
        policy: AvailabilityPolicy = AvailabilityPolicy.STRICT,
        language: str | None = None,
        force: bool = False,
    ) -> list[Product] | None:
        """List products of a restaurant.

        The raw records are cached; each caller normalizes them with its own
        availability policy.

        Args:
            restaurant_id: Restaurant to list
            policy: Availability resolution of the calling view
            language: Preferred language for localized names
            force: Bypass a fresh cached result

        Returns:
            Normalized products, or None when skipped for lack of a token
        """
        records = await self._records(restaurant_id, force)
        if records is None:
            return None
        return [normalize_product(record, policy, language) for record in records]

    async def list_public_products(
        self, restaurant_id: str, language: str | None = None, force: bool = False
    ) -> list[Product]:
        records = await self._query(
            ("public_products", restaurant_id),
            lambda: self._fetch_list(self.client.get_public_products, restaurant_id),
            tags=[self._list_tag()],
            authenticated=False,
            force=force,
        )
        return [normalize_product(record, AvailabilityPolicy.STRICT, language) for record in records or []]

    async def _fetch_list(self, call: Any, restaurant_id: str) -> list[Any]:
        return unwrap_collection(await call(restaurant_id), "products")

    async def get_product(
        self, product_id: str, policy: AvailabilityPolicy = AvailabilityPolicy.LENIENT
    ) -> Product | None:
        """Fetch one product, bypassing any cached copy."""
        record = await self._query(
            ("product", product_id),
            lambda: self.client.get_product(product_id),
            tags=[self._item_tag(product_id)],
            force=True,
        )
        if record is None:
            return None
        return normalize_product(unwrap_record(record, "product"), policy)

    async def create_product(self, product: Product, restaurant_id: str) -> Any:
        created = await self.client.create_product(product_payload(product, restaurant_id))
        self._invalidate()
        logger.info(f"Created product {product.name!r} for restaurant {restaurant_id}")
        return created

    async def update_product(self, product: Product, restaurant_id: str) -> Any:
        updated = await self.client.update_product(product.id, product_payload(product, restaurant_id))
        self._invalidate(product.id)
        return updated

    async def set_availability(self, product_id: str, is_available: bool) -> Any:
        """Toggle availability through the dedicated endpoint."""
        result = await self.client.update_product_availability(product_id, is_available)
        self._invalidate(product_id)
        return result

    async def delete_product(self, product_id: str) -> None:
        await self.client.delete_product(product_id)
        self._invalidate(product_id)
        logger.info(f"Deleted product {product_id}")


def _flatten(value: Any) -> str:
    if isinstance(value, dict):
        english = value.get("en")
        return english if isinstance(english, str) and english else resolve_localized(value)
    return value if isinstance(value, str) else ""
