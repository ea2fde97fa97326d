"""Discount service and form-to-backend transformation."""

import logging
from datetime import UTC, datetime
from typing import Any

from restaurant_dashboard.models.promotion_models import (
    Discount,
    DiscountFormData,
    DiscountStats,
    DiscountUpdateData,
)
from restaurant_dashboard.normalizers.response_normalizer import (
    normalize_discount,
    normalize_discount_stats,
    unwrap_collection,
    unwrap_record,
)
from restaurant_dashboard.services.base_service import CachedApiService
from restaurant_dashboard.services.dashboard_api_client import DashboardApiClient
from restaurant_dashboard.services.query_cache import QueryCache

logger = logging.getLogger(__name__)

DISCOUNT_TAG = "Discount"
DISCOUNT_STATS_TAG = "DiscountStats"

SPECIFIC_PRODUCTS_TARGET = "specific_products"

DESCRIPTION_PREFIXES = {"en": "Discount", "ar": "خصم", "de": "Rabatt"}


def to_iso_timestamp(value: datetime) -> str:
    """Format a datetime as a UTC timestamp with millisecond precision.

    Naive datetimes are taken as UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _localized(text: str) -> dict[str, str]:
    return {"en": text, "ar": text, "de": text}


def _schedule(from_date: datetime, to_date: datetime) -> dict[str, Any]:
    return {
        "startDate": to_iso_timestamp(from_date),
        "endDate": to_iso_timestamp(to_date),
        "isRecurring": False,
    }


def _target(product_ids: list[str]) -> dict[str, Any]:
    return {"type": SPECIFIC_PRODUCTS_TARGET, "productIds": list(product_ids)}


def build_create_payload(form: DiscountFormData, restaurant_id: str) -> dict[str, Any]:
    """Transform discount form values into the create request body.

    The name is repeated in every language and the description is generated
    from it.

    Args:
        form: Validated form values
        restaurant_id: Owning restaurant

    Returns:
        Request body in the backend's shape
    """
    return {
        "restaurantId": restaurant_id,
        "name": _localized(form.name),
        "description": {lang: f"{prefix}: {form.name}" for lang, prefix in DESCRIPTION_PREFIXES.items()},
        "rule": {"type": form.discount_type.value, "value": float(form.discount_value)},
        "target": _target(form.selected_products),
        "schedule": _schedule(form.from_date, form.to_date),
        "isActive": form.is_active,
        "isPublic": True,
        "priority": 0,
    }


def build_update_payload(data: DiscountUpdateData) -> dict[str, Any]:
    """Transform partial form values into the update request body.

    The rule is only sent when both type and value are set, the schedule
    only when both dates are set.
    """
    payload: dict[str, Any] = {}
    if data.name:
        payload["name"] = _localized(data.name)
    if data.discount_type is not None and data.discount_value is not None:
        payload["rule"] = {"type": data.discount_type.value, "value": float(data.discount_value)}
    if data.selected_products is not None:
        payload["target"] = _target(data.selected_products)
    if data.from_date is not None and data.to_date is not None:
        payload["schedule"] = _schedule(data.from_date, data.to_date)
    return payload


class DiscountService(CachedApiService):
    """Reads and mutations of discounts."""

    def __init__(self, client: DashboardApiClient, cache: QueryCache) -> None:
        super().__init__(client, cache, DISCOUNT_TAG)

    async def list_discounts(
        self,
        restaurant_id: str,
        is_active: bool | None = None,
        language: str | None = None,
        force: bool = False,
    ) -> list[Discount] | None:
        """List discounts of a restaurant.

        Returns:
            Normalized discounts, or None when skipped for lack of a token
        """
        records = await self._query(
            ("discounts", restaurant_id, is_active),
            lambda: self._fetch_list(restaurant_id, is_active),
            tags=[DISCOUNT_TAG],
            force=force,
        )
        if records is None:
            return None
        return [normalize_discount(record, language) for record in records]

    async def _fetch_list(self, restaurant_id: str, is_active: bool | None) -> list[Any]:
        return unwrap_collection(
            await self.client.list_discounts(restaurant_id=restaurant_id, is_active=is_active), "discounts"
        )

    async def list_public_discounts(
        self, restaurant_id: str, language: str | None = None, force: bool = False
    ) -> list[Discount]:
        records = await self._query(
            ("public_discounts", restaurant_id),
            lambda: self._fetch_public(restaurant_id),
            tags=[DISCOUNT_TAG],
            authenticated=False,
            force=force,
        )
        return [normalize_discount(record, language) for record in records or []]

    async def _fetch_public(self, restaurant_id: str) -> list[Any]:
        return unwrap_collection(await self.client.get_public_discounts(restaurant_id), "discounts")

    async def list_active_discounts(self, restaurant_id: str, language: str | None = None) -> list[Discount] | None:
        records = await self._query(
            ("active_discounts", restaurant_id),
            lambda: self._fetch_active(restaurant_id),
            tags=[DISCOUNT_TAG],
        )
        if records is None:
            return None
        return [normalize_discount(record, language) for record in records]

    async def _fetch_active(self, restaurant_id: str) -> list[Any]:
        return unwrap_collection(await self.client.list_active_discounts(restaurant_id), "discounts")

    async def get_discount(self, discount_id: str, language: str | None = None) -> Discount | None:
        raw = await self._query(
            ("discount", discount_id),
            lambda: self.client.get_discount(discount_id),
            tags=[self._item_tag(discount_id)],
        )
        if raw is None:
            return None
        return normalize_discount(unwrap_record(raw, "discount"), language)

    async def get_stats(self, restaurant_id: str) -> DiscountStats | None:
        raw = await self._query(
            ("discount_stats", restaurant_id),
            lambda: self.client.get_discount_stats(restaurant_id),
            tags=[DISCOUNT_STATS_TAG],
        )
        if raw is None:
            return None
        return normalize_discount_stats(unwrap_record(raw, "stats"))

    async def create_discount(self, form: DiscountFormData, restaurant_id: str) -> Discount:
        created = await self.client.create_discount(build_create_payload(form, restaurant_id))
        self.cache.invalidate(DISCOUNT_TAG, DISCOUNT_STATS_TAG)
        logger.info(f"Created discount {form.name!r} for restaurant {restaurant_id}")
        return normalize_discount(unwrap_record(created, "discount"))

    async def update_discount(self, discount_id: str, data: DiscountUpdateData) -> Discount:
        updated = await self.client.update_discount(discount_id, build_update_payload(data))
        self.cache.invalidate(DISCOUNT_TAG, DISCOUNT_STATS_TAG)
        return normalize_discount(unwrap_record(updated, "discount"))

    async def delete_discount(self, discount_id: str) -> None:
        await self.client.delete_discount(discount_id)
        self.cache.invalidate(DISCOUNT_TAG, DISCOUNT_STATS_TAG)
        logger.info(f"Deleted discount {discount_id}")

    async def validate_code(
        self,
        code: str,
        order_total: float,
        order_items: list[dict[str, Any]] | None = None,
        customer_id: str | None = None,
    ) -> Any:
        """Ask the backend whether a discount code applies to an order."""
        payload: dict[str, Any] = {"code": code, "orderItems": order_items or [], "orderTotal": order_total}
        if customer_id:
            payload["customerId"] = customer_id
        return await self.client.validate_discount_code(payload)
