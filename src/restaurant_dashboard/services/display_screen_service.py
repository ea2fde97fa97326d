"""Polling coordinator for the public display screen."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field

from restaurant_dashboard.models.admin_models import RestaurantInfo
from restaurant_dashboard.models.catalog_models import Category, Offer, Product
from restaurant_dashboard.models.promotion_models import Discount
from restaurant_dashboard.normalizers.response_normalizer import (
    AvailabilityPolicy,
    normalize_restaurant_info,
    restaurant_info_from_user,
)
from restaurant_dashboard.observability.metrics import record_refresh_failure, record_refresh_success
from restaurant_dashboard.repositories.local_store import ClientStateRepository
from restaurant_dashboard.scheduling.task_scheduler import TaskScheduler
from restaurant_dashboard.services.api_errors import extract_api_error
from restaurant_dashboard.services.catalog_service import CategoryService, ProductService
from restaurant_dashboard.services.dashboard_api_client import DashboardApiClient
from restaurant_dashboard.services.discount_service import DiscountService
from restaurant_dashboard.services.offer_service import OfferService

logger = logging.getLogger(__name__)

PRODUCTS = "products"
CATEGORIES = "categories"
OFFERS = "offers"
DISCOUNTS = "discounts"
COLLECTIONS = (PRODUCTS, CATEGORIES, OFFERS, DISCOUNTS)

COLLECTION_REFRESH_SECONDS = 30.0
CATCH_ALL_REFRESH_SECONDS = 60.0
RTL_LANGUAGES = frozenset({"ar"})
ALL_CATEGORIES = "all"


@dataclass
class RefreshResult:
    """Outcome of refreshing one collection.

    Attributes:
        collection: Collection name
        success: Whether a new snapshot was stored
        item_count: Items in the stored snapshot
        error_message: Extracted error message on failure
    """

    collection: str
    success: bool
    item_count: int = 0
    error_message: str | None = None


class DisplayView(BaseModel):
    """Everything the display screen renders, recombined from four collections."""

    restaurant_id: str
    language: str
    is_rtl: bool
    selected_category: str = ALL_CATEGORIES
    restaurant_info: RestaurantInfo = Field(default_factory=RestaurantInfo)
    products: list[Product] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)
    offers: list[Offer] = Field(default_factory=list)
    discounts: list[Discount] = Field(default_factory=list)
    errors: dict[str, str] = Field(default_factory=dict, description="Last refresh error per collection")


class DisplayScreenCoordinator:
    """Keeps the display screen's collections fresh without a push channel.

    Each collection is refreshed every 30 seconds, all four every 60 seconds,
    and all four again whenever the restaurant, the language or the network
    connection changes. Triggers are not debounced; the query cache joins
    identical in-flight requests. The latest successful snapshot of each
    collection is kept: a failed refresh records its error and leaves the
    snapshot alone.
    """

    def __init__(
        self,
        client: DashboardApiClient,
        products: ProductService,
        categories: CategoryService,
        offers: OfferService,
        discounts: DiscountService,
        repository: ClientStateRepository,
        restaurant_id: str,
        language: str = "en",
        scheduler: TaskScheduler | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            client: Dashboard API client, used for the restaurant details
            products: Product service
            categories: Category service
            offers: Offer service
            discounts: Discount service
            repository: Persisted client state (restaurant info cache, user, language)
            restaurant_id: Restaurant shown on the screen
            language: Display language
            scheduler: Scheduler driving the polling; a new one is created when omitted
        """
        self.client = client
        self.products = products
        self.categories = categories
        self.offers = offers
        self.discounts = discounts
        self.repository = repository
        self.restaurant_id = restaurant_id
        self.language = language
        self.scheduler = scheduler or TaskScheduler()

        self._snapshots: dict[str, list[Any]] = {name: [] for name in COLLECTIONS}
        self._errors: dict[str, str] = {}
        self._enrichment: asyncio.Task[None] | None = None
        self.restaurant_info = self._initial_restaurant_info()

    @property
    def is_rtl(self) -> bool:
        return self.language in RTL_LANGUAGES

    def _initial_restaurant_info(self) -> RestaurantInfo:
        cached = self.repository.get_restaurant_info()
        if cached is not None and not cached.is_empty():
            return cached
        return restaurant_info_from_user(self.repository.get_user())

    def snapshot(self, collection: str) -> list[Any]:
        """Latest successfully fetched items of a collection."""
        return list(self._snapshots[collection])

    # Lifecycle

    async def start(self, tick: float = 1.0) -> list[RefreshResult]:
        """Schedule the polling policy, refresh everything once and start polling."""
        for name in COLLECTIONS:
            self.scheduler.every(name, COLLECTION_REFRESH_SECONDS, self._refresher(name))
        self.scheduler.every("all", CATCH_ALL_REFRESH_SECONDS, self.refresh_all)

        self.start_restaurant_enrichment()
        results = await self.refresh_all()
        self.scheduler.start(tick)
        return results

    async def close(self) -> None:
        """Stop polling and cancel the restaurant-details request."""
        self.scheduler.cancel()
        await self.cancel_restaurant_enrichment()

    def _refresher(self, collection: str) -> Any:
        async def refresh() -> None:
            await self.refresh(collection)

        return refresh

    # Triggers

    async def set_restaurant_id(self, restaurant_id: str) -> list[RefreshResult]:
        """Switch restaurants; snapshots of the previous one are dropped."""
        if restaurant_id == self.restaurant_id:
            return []
        self.restaurant_id = restaurant_id
        self._snapshots = {name: [] for name in COLLECTIONS}
        self._errors.clear()
        await self.cancel_restaurant_enrichment()
        self.start_restaurant_enrichment()
        return await self.refresh_all()

    async def set_language(self, language: str) -> list[RefreshResult]:
        """Switch the display language and refetch localized content."""
        if language == self.language:
            return []
        self.language = language
        self.repository.save_language(language)
        return await self.refresh_all()

    async def on_reconnect(self) -> list[RefreshResult]:
        logger.info("Network reconnected, refreshing display screen")
        return await self.refresh_all()

    # Refresh

    async def refresh_all(self) -> list[RefreshResult]:
        """Refresh the four collections concurrently."""
        results = await asyncio.gather(*(self.refresh(name) for name in COLLECTIONS))
        return list(results)

    async def refresh(self, collection: str) -> RefreshResult:
        """Refetch one collection and store its snapshot on success.

        Args:
            collection: One of products, categories, offers, discounts

        Returns:
            RefreshResult for the collection. A result that arrives after the
            restaurant changed is dropped and reported as unsuccessful.
        """
        started = time.perf_counter()
        restaurant_id = self.restaurant_id
        try:
            items = await self._fetch(collection)
        except Exception as e:
            if restaurant_id != self.restaurant_id:
                return self._superseded(collection, restaurant_id)
            message = extract_api_error(e).message
            self._errors[collection] = message
            record_refresh_failure(collection, type(e).__name__)
            logger.error(f"Refreshing {collection} for restaurant {self.restaurant_id} failed: {message}")
            return RefreshResult(collection=collection, success=False, error_message=message)

        if restaurant_id != self.restaurant_id:
            return self._superseded(collection, restaurant_id)
        if items is None:
            return RefreshResult(collection=collection, success=False, item_count=len(self._snapshots[collection]))

        self._snapshots[collection] = items
        self._errors.pop(collection, None)
        record_refresh_success(collection, time.perf_counter() - started)
        logger.info(f"Refreshed {collection} for restaurant {self.restaurant_id}: {len(items)} items")
        return RefreshResult(collection=collection, success=True, item_count=len(items))

    def _superseded(self, collection: str, restaurant_id: str) -> RefreshResult:
        logger.info(f"Dropping {collection} of restaurant {restaurant_id}, now showing {self.restaurant_id}")
        return RefreshResult(collection=collection, success=False)

    async def _fetch(self, collection: str) -> list[Any] | None:
        rid = self.restaurant_id
        authenticated = bool(self.client.token)

        if collection == PRODUCTS:
            if authenticated:
                return await self.products.list_products(rid, AvailabilityPolicy.STRICT, self.language, force=True)
            return await self.products.list_public_products(rid, self.language, force=True)
        if collection == CATEGORIES:
            if authenticated:
                return await self.categories.list_categories(rid, force=True)
            return await self.categories.list_public_categories(rid, force=True)
        if collection == OFFERS:
            return await self.offers.list_active_offers(rid, language=self.language, force=True)
        if collection == DISCOUNTS:
            if authenticated:
                return await self.discounts.list_discounts(rid, language=self.language, force=True)
            return await self.discounts.list_public_discounts(rid, self.language, force=True)
        raise ValueError(f"Unknown collection: {collection}")

    # Restaurant details

    def start_restaurant_enrichment(self) -> asyncio.Task[None]:
        """Fetch the restaurant details in the background."""
        self._enrichment = asyncio.create_task(self._enrich_restaurant_info(self.restaurant_id))
        return self._enrichment

    async def cancel_restaurant_enrichment(self) -> None:
        task, self._enrichment = self._enrichment, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            logger.debug("Restaurant details request cancelled")

    async def _enrich_restaurant_info(self, restaurant_id: str) -> None:
        try:
            data = await self.client.get_restaurant(restaurant_id)
        except Exception as e:
            logger.warning(f"Could not load details of restaurant {restaurant_id}: {e}")
            return

        info = normalize_restaurant_info(data)
        self.restaurant_info = info
        self.repository.save_restaurant_info(info)

    # View

    def view(self, category_id: str = ALL_CATEGORIES) -> DisplayView:
        """Build the rendered view from the latest snapshots.

        Args:
            category_id: Category to show, or "all"

        Returns:
            DisplayView with available products and available, active offers
        """
        products = [product for product in self._snapshots[PRODUCTS] if product.is_available]
        if category_id != ALL_CATEGORIES:
            products = [product for product in products if product.category_id == category_id]

        offers = [offer for offer in self._snapshots[OFFERS] if offer.is_available and offer.is_active]
        if self.is_rtl:
            offers.reverse()

        return DisplayView(
            restaurant_id=self.restaurant_id,
            language=self.language,
            is_rtl=self.is_rtl,
            selected_category=category_id,
            restaurant_info=self.restaurant_info,
            products=products,
            categories=list(self._snapshots[CATEGORIES]),
            offers=offers,
            discounts=list(self._snapshots[DISCOUNTS]),
            errors=dict(self._errors),
        )
