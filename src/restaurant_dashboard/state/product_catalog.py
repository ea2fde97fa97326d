"""Product management listing: search, filters, statistics and quick actions."""

import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from restaurant_dashboard.models.catalog_models import Category, Product
from restaurant_dashboard.normalizers.response_normalizer import AvailabilityPolicy
from restaurant_dashboard.services.api_errors import extract_api_error
from restaurant_dashboard.services.catalog_service import CategoryService, ProductService
from restaurant_dashboard.state.highlight import SUCCESS_BADGE_SECONDS, RecentlyAddedTracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogStatistics:
    """Figures shown above the product list."""

    total: int
    available: int
    new: int
    average_price: Decimal


class ProductCatalogView:
    """State of the product management page.

    Products are read with the lenient availability policy: a product
    without any availability field counts as available here. A product that
    appears after creation is highlighted in the list for five seconds and
    carries a success badge for three.
    """

    def __init__(
        self,
        products: ProductService,
        categories: CategoryService,
        restaurant_id: str,
        tracker: RecentlyAddedTracker | None = None,
        badges: RecentlyAddedTracker | None = None,
    ) -> None:
        self.product_service = products
        self.category_service = categories
        self.restaurant_id = restaurant_id
        self.tracker = tracker or RecentlyAddedTracker()
        self.success_badges = badges or RecentlyAddedTracker(SUCCESS_BADGE_SECONDS)

        self.products: list[Product] = []
        self.categories: list[Category] = []
        self.search_term = ""
        self.filter_available: bool | None = None
        self.filter_new: bool | None = None
        self.error: str | None = None
        self.pending_delete: Product | None = None

    async def load(self, force: bool = False) -> bool:
        """Load products and categories.

        Returns:
            False if loading failed or was skipped for lack of a token
        """
        try:
            products = await self.product_service.list_products(
                self.restaurant_id, AvailabilityPolicy.LENIENT, force=force
            )
            categories = await self.category_service.list_categories(self.restaurant_id, force=force)
        except Exception as e:
            self.error = extract_api_error(e).message
            logger.error(f"Loading the catalog of restaurant {self.restaurant_id} failed: {self.error}")
            return False

        if products is None or categories is None:
            return False

        self.products = products
        self.categories = categories
        self.error = None
        ids = [product.id for product in products]
        self.tracker.observe(ids)
        self.success_badges.observe(ids)
        return True

    def has_success_badge(self, product_id: str) -> bool:
        return self.success_badges.is_highlighted(product_id)

    # Listing

    def filtered(self) -> list[Product]:
        """Products matching the search term and the active filters."""
        term = self.search_term.strip().lower()
        return [
            product
            for product in self.products
            if (not term or term in product.name.lower() or term in product.description.lower())
            and (self.filter_available is None or product.is_available == self.filter_available)
            and (self.filter_new is None or product.is_new == self.filter_new)
        ]

    def products_in_category(self, category_id: str) -> list[Product]:
        return [product for product in self.filtered() if product.category_id == category_id]

    def statistics(self) -> CatalogStatistics:
        total = len(self.products)
        average = sum((product.price for product in self.products), Decimal("0")) / total if total else Decimal("0")
        return CatalogStatistics(
            total=total,
            available=sum(1 for product in self.products if product.is_available),
            new=sum(1 for product in self.products if product.is_new),
            average_price=average.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
        )

    def toggle_available_filter(self) -> None:
        self.filter_available = None if self.filter_available is True else True

    def toggle_new_filter(self) -> None:
        self.filter_new = None if self.filter_new is True else True

    def clear_filters(self) -> None:
        self.filter_available = None
        self.filter_new = None

    # Products

    async def toggle_availability(self, product_id: str) -> bool:
        """Flip a product's availability through the dedicated endpoint.

        The local copy is flipped first and restored if the request fails.
        """
        index = next((i for i, product in enumerate(self.products) if product.id == product_id), None)
        if index is None:
            return False

        original = self.products[index]
        self.products[index] = original.model_copy(update={"is_available": not original.is_available})

        try:
            await self.product_service.set_availability(product_id, not original.is_available)
        except Exception as e:
            self._restore(original)
            self.error = extract_api_error(e).message
            return False
        return True

    def _restore(self, original: Product) -> None:
        # The list may have been reloaded or shrunk while the request ran
        for i, product in enumerate(self.products):
            if product.id == original.id:
                self.products[i] = product.model_copy(update={"is_available": original.is_available})
                return

    def request_delete(self, product: Product) -> None:
        self.pending_delete = product

    def cancel_delete(self) -> None:
        self.pending_delete = None

    async def confirm_delete(self) -> bool:
        """Delete the product awaiting confirmation."""
        if self.pending_delete is None:
            return False
        try:
            await self.product_service.delete_product(self.pending_delete.id)
        except Exception as e:
            self.error = extract_api_error(e).message
            return False

        deleted_id = self.pending_delete.id
        self.products = [product for product in self.products if product.id != deleted_id]
        self.pending_delete = None
        return True

    # Categories

    async def create_category(self, name: str) -> bool:
        return await self._category_action(self.category_service.create_category(self.restaurant_id, name))

    async def rename_category(self, category_id: str, name: str) -> bool:
        return await self._category_action(self.category_service.update_category(category_id, name))

    async def delete_category(self, category_id: str) -> bool:
        return await self._category_action(self.category_service.delete_category(category_id))

    async def _category_action(self, action: Awaitable[object]) -> bool:
        try:
            await action
        except Exception as e:
            self.error = extract_api_error(e).message
            return False
        self.error = None
        return True
