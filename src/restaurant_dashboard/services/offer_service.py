"""Offer service."""

import logging
from dataclasses import asdict, dataclass
from typing import Any

from restaurant_dashboard.models.catalog_models import Offer, OfferPage, OfferStatistics
from restaurant_dashboard.normalizers.response_normalizer import (
    normalize_offer,
    normalize_offer_page,
    normalize_offer_statistics,
    unwrap_collection,
    unwrap_record,
)
from restaurant_dashboard.services.base_service import CachedApiService
from restaurant_dashboard.services.dashboard_api_client import DashboardApiClient
from restaurant_dashboard.services.query_cache import QueryCache

logger = logging.getLogger(__name__)

OFFER_TAG = "Offer"
OFFER_STATISTICS_TAG = "OfferStatistics"
ACTIVE_ID = "ACTIVE"
STATS_ID = "STATS"


@dataclass(frozen=True)
class OfferListQuery:
    """Arguments of the paged offers list."""

    page: int = 1
    limit: int = 20
    search: str | None = None
    is_available: bool | None = None
    sort_by: str | None = None
    sort_order: str | None = None
    store_id: str | None = None


class OfferService(CachedApiService):
    """Reads and mutations of offers."""

    def __init__(self, client: DashboardApiClient, cache: QueryCache) -> None:
        super().__init__(client, cache, OFFER_TAG)

    async def list_offers(
        self, query: OfferListQuery | None = None, language: str | None = None, force: bool = False
    ) -> OfferPage | None:
        """Fetch one page of offers with its pagination and statistics.

        Returns:
            OfferPage, or None when skipped for lack of a token
        """
        query = query or OfferListQuery()
        raw = await self._query(
            ("offers", query),
            lambda: self.client.list_offers(**asdict(query)),
            tags=[self._list_tag()],
            force=force,
        )
        if raw is None:
            return None
        return normalize_offer_page(raw, language)

    async def get_offer(self, offer_id: str, language: str | None = None) -> Offer | None:
        raw = await self._query(
            ("offer", offer_id),
            lambda: self.client.get_offer(offer_id),
            tags=[self._item_tag(offer_id)],
        )
        if raw is None:
            return None
        return normalize_offer(unwrap_record(raw, "offer"), language)

    async def get_statistics(self) -> OfferStatistics | None:
        raw = await self._query(
            ("offer_statistics",),
            self.client.get_offer_statistics,
            tags=[(OFFER_STATISTICS_TAG, STATS_ID)],
        )
        if raw is None:
            return None
        return normalize_offer_statistics(unwrap_record(raw, "statistics"))

    async def list_active_offers(
        self, restaurant_id: str, store_id: str | None = None, language: str | None = None, force: bool = False
    ) -> list[Offer]:
        """List public offers of a restaurant, optionally for one store."""
        records = await self._query(
            ("active_offers", restaurant_id, store_id),
            lambda: self._fetch_active(restaurant_id, store_id),
            tags=[(OFFER_TAG, ACTIVE_ID)],
            authenticated=False,
            force=force,
        )
        return [normalize_offer(record, language) for record in records or []]

    async def _fetch_active(self, restaurant_id: str, store_id: str | None) -> list[Any]:
        return unwrap_collection(await self.client.list_public_offers(restaurant_id, store_id), "offers")

    async def create_offer(self, payload: dict[str, Any]) -> Any:
        created = await self.client.create_offer(payload)
        self._invalidate_offers()
        logger.info(f"Created offer {payload.get('title')!r}")
        return created

    async def update_offer(self, offer_id: str, payload: dict[str, Any]) -> Any:
        updated = await self.client.update_offer(offer_id, payload)
        self._invalidate_offers(offer_id)
        return updated

    async def delete_offer(self, offer_id: str) -> None:
        await self.client.delete_offer(offer_id)
        self._invalidate_offers(offer_id)
        logger.info(f"Deleted offer {offer_id}")

    async def toggle_availability(self, offer_id: str) -> bool | None:
        """Flip an offer's availability.

        Returns:
            The new availability reported by the backend, if any
        """
        result = await self.client.toggle_offer_availability(offer_id)
        self._invalidate_offers(offer_id)
        data = unwrap_record(result, "data")
        flag = data.get("isAvailable") if isinstance(data, dict) else None
        return flag if isinstance(flag, bool) else None

    async def redeem_offer(self, offer_id: str, customer_id: str | None = None) -> Any:
        result = await self.client.redeem_offer(offer_id, customer_id)
        self._invalidate_offers(offer_id)
        return result

    def _invalidate_offers(self, offer_id: str | None = None) -> None:
        self._invalidate(offer_id, (OFFER_TAG, ACTIVE_ID), (OFFER_STATISTICS_TAG, STATS_ID))
