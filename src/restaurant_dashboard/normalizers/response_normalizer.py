"""Normalization of backend payloads into canonical view-models.

The backend has answered with several schema versions over time: names as
plain strings or as localized ``{en, ar, de}`` objects, availability as a
flat flag or nested under ``availability``, ``allergens`` or ``ingredients``
arrays, populated or bare references. No version flag is sent, so each field
is resolved through an ordered list of fallbacks.

Every function in this module is pure and total: malformed or missing input
degrades to defaults (empty string, zero, False, empty list) instead of
raising.
"""

from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from restaurant_dashboard.models.admin_models import RestaurantInfo
from restaurant_dashboard.models.catalog_models import (
    Category,
    Offer,
    OfferPage,
    OfferProduct,
    OfferStatistics,
    OfferUnit,
    Pagination,
    Product,
)
from restaurant_dashboard.models.promotion_models import (
    Discount,
    DiscountRule,
    DiscountSchedule,
    DiscountStats,
    DiscountTarget,
    DiscountType,
)

LANGUAGE_FALLBACK_ORDER = ("en", "ar", "de")


class AvailabilityPolicy(str, Enum):
    """How product availability is resolved when the backend is ambiguous.

    STRICT: available only if ``availability.isAvailable`` or ``isAvailable``
    is literally True. Used by the display screen, discounts and the offer
    product picker.

    LENIENT: a nested ``availability`` object wins when present, otherwise
    ``isAvailable`` with an absent value counting as available. Used by the
    product-management listing.
    """

    STRICT = "strict"
    LENIENT = "lenient"


def resolve_localized(value: Any, language: str | None = None) -> str:
    """Resolve a plain or localized field to a display string.

    Args:
        value: A string, a mapping keyed by language code, or anything else
        language: Preferred language tried before the fallback order

    Returns:
        The resolved string, or an empty string when nothing usable exists
    """
    if isinstance(value, str):
        return value
    if not isinstance(value, Mapping):
        return ""

    order = LANGUAGE_FALLBACK_ORDER if language is None else (language, *LANGUAGE_FALLBACK_ORDER)
    for code in order:
        candidate = value.get(code)
        if isinstance(candidate, str) and candidate:
            return candidate
    return ""


def unwrap_collection(payload: Any, key: str) -> list[Any]:
    """Extract a list of records from a bare or enveloped collection response.

    Args:
        payload: Decoded response body
        key: Envelope key used by the endpoint (e.g. "products")

    Returns:
        The records, or an empty list if the payload holds none
    """
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping):
        for candidate in (key, "data"):
            items = payload.get(candidate)
            if isinstance(items, list):
                return items
    return []


def unwrap_record(payload: Any, key: str) -> Any:
    """Extract a single record from a bare or enveloped response.

    Args:
        payload: Decoded response body
        key: Envelope key used by the endpoint (e.g. "product")

    Returns:
        ``payload[key]`` or ``payload["data"]`` when that is a mapping, else the payload
    """
    if isinstance(payload, Mapping):
        for candidate in (key, "data"):
            record = payload.get(candidate)
            if isinstance(record, Mapping):
                return record
    return payload


def resolve_availability(raw: Any, policy: AvailabilityPolicy = AvailabilityPolicy.STRICT) -> bool:
    """Resolve product availability from either the flat or the nested field."""
    record = _record(raw)
    nested = record.get("availability")

    if policy is AvailabilityPolicy.STRICT:
        nested_flag = isinstance(nested, Mapping) and nested.get("isAvailable") is True
        return nested_flag or record.get("isAvailable") is True

    if isinstance(nested, Mapping):
        return bool(nested.get("isAvailable"))
    flat = record.get("isAvailable")
    return True if flat is None else bool(flat)


def normalize_category(raw: Any) -> Category:
    """Normalize a backend category record."""
    record = _record(raw)
    is_active = record.get("isActive")
    return Category(
        id=_identifier(record),
        name=resolve_localized(record.get("name")),
        description=resolve_localized(record.get("description")),
        is_active=True if is_active is None else bool(is_active),
    )


def normalize_product(
    raw: Any,
    policy: AvailabilityPolicy = AvailabilityPolicy.STRICT,
    language: str | None = None,
) -> Product:
    """Normalize a backend product record.

    Args:
        raw: Product record in any known schema version
        policy: Availability resolution policy of the calling view
        language: Preferred language for localized fields

    Returns:
        Fully-defaulted Product
    """
    record = _record(raw)
    return Product(
        id=_identifier(record),
        name=resolve_localized(record.get("name"), language),
        category_id=_reference_id(record.get("categoryId")),
        description=resolve_localized(record.get("description"), language),
        price=_non_negative(record.get("price")),
        ingredients=_ingredients(record),
        image=_first_image(record),
        is_available=resolve_availability(record, policy),
        is_new=_is_new(record),
    )


def normalize_offer(raw: Any, language: str | None = None) -> Offer:
    """Normalize a backend offer record, including its product references."""
    record = _record(raw)
    products = record.get("products")
    tags = record.get("tags")
    original_price = _to_decimal(record.get("originalPrice"))
    is_active = record.get("isActive")

    return Offer(
        id=_identifier(record),
        title=resolve_localized(record.get("title"), language),
        description=resolve_localized(record.get("description"), language),
        image=_first_image(record),
        price=_non_negative(record.get("price")),
        original_price=original_price if original_price is not None and original_price >= 0 else None,
        currency=_text(record.get("currency")) or "EUR",
        products=[_offer_product(entry, language) for entry in products]
        if isinstance(products, list)
        else [],
        is_available=record.get("isAvailable") is True,
        is_active=is_active is not False,
        tags=[tag for tag in tags if isinstance(tag, str)] if isinstance(tags, list) else [],
        valid_from=_datetime(record.get("validFrom")),
        valid_until=_datetime(record.get("validUntil")),
        max_redemptions=_optional_count(record.get("maxRedemptions")),
        store_id=_reference_id(record.get("storeId")) or None,
    )


def normalize_offer_statistics(raw: Any) -> OfferStatistics:
    """Normalize offer statistics from the list envelope or the statistics endpoint."""
    record = _record(raw)
    total = record.get("total", record.get("totalOffers"))
    available = record.get("available", record.get("availableOffers"))
    return OfferStatistics(
        total=_count(total),
        available=_count(available),
        total_value=_non_negative(record.get("totalValue")),
        average_price=_non_negative(record.get("averagePrice")),
        total_redemptions=_count(record.get("totalRedemptions")),
    )


def normalize_offer_page(raw: Any, language: str | None = None) -> OfferPage:
    """Normalize the ``{success, data, pagination, statistics}`` offers envelope."""
    record = _record(raw)
    pagination = _record(record.get("pagination"))
    offers = unwrap_collection(raw, "offers")
    return OfferPage(
        offers=[normalize_offer(offer, language) for offer in offers],
        pagination=Pagination(
            page=max(1, _count(pagination.get("page")) or 1),
            limit=_count(pagination.get("limit")) if "limit" in pagination else len(offers),
            total=_count(pagination.get("total")) if "total" in pagination else len(offers),
            pages=_count(pagination.get("pages")),
        ),
        statistics=normalize_offer_statistics(record.get("statistics")),
    )


def normalize_discount(raw: Any, language: str | None = None) -> Discount:
    """Normalize a backend discount record.

    The nested ``rule`` object is preferred; older records carrying ``type``
    and ``value`` at the top level are accepted as well.
    """
    record = _record(raw)
    rule = record.get("rule")
    if not isinstance(rule, Mapping):
        rule = record

    target = _record(record.get("target"))
    product_ids = target.get("productIds")
    schedule = _record(record.get("schedule"))
    end_date = _datetime(schedule.get("endDate")) or _datetime(record.get("validTill"))

    return Discount(
        id=_identifier(record),
        name=resolve_localized(record.get("name"), language),
        description=resolve_localized(record.get("description"), language),
        rule=DiscountRule(
            type=_discount_type(rule.get("type")),
            value=_non_negative(rule.get("value")),
        ),
        target=DiscountTarget(
            product_ids=[
                ref for ref in (_reference_id(item) for item in product_ids) if ref
            ]
            if isinstance(product_ids, list)
            else []
        ),
        schedule=DiscountSchedule(
            start_date=_datetime(schedule.get("startDate")),
            end_date=end_date,
        ),
        is_active=bool(record.get("isActive")),
        is_public=bool(record.get("isPublic")),
        usage_count=_count(record.get("usageCount")),
    )


def normalize_discount_stats(raw: Any) -> DiscountStats:
    """Normalize the discount statistics response."""
    record = _record(raw)
    return DiscountStats(
        total_discounts=_count(record.get("totalDiscounts")),
        active_discounts=_count(record.get("activeDiscounts")),
        public_discounts=_count(record.get("publicDiscounts")),
        total_usage=_count(record.get("totalUsage")),
        total_discount_amount=_non_negative(record.get("totalDiscountAmount")),
    )


def normalize_restaurant_info(raw: Any) -> RestaurantInfo:
    """Extract display header data from a restaurant detail response."""
    record = _record(raw)
    nested = _record(record.get("restaurant"))
    return RestaurantInfo(
        name=_first_text(record.get("name"), nested.get("name")),
        phone=_first_text(
            _record(record.get("contact")).get("phone"),
            _record(nested.get("contact")).get("phone"),
        ),
        cuisine=_first_text(record.get("cuisine"), nested.get("cuisine")),
    )


def restaurant_info_from_user(user: Any) -> RestaurantInfo:
    """Derive display header data from a stored user record."""
    record = _record(user)
    restaurant = _record(record.get("restaurant"))
    return RestaurantInfo(
        name=_first_text(
            restaurant.get("name"),
            record.get("restaurantName"),
            record.get("businessName"),
            record.get("name"),
            restaurant.get("displayName"),
        ),
        phone=_first_text(
            _record(restaurant.get("contact")).get("phone"),
            _record(record.get("contact")).get("phone"),
            record.get("phone"),
            record.get("restaurantPhone"),
        ),
        cuisine=_first_text(
            restaurant.get("cuisine"),
            record.get("cuisine"),
            restaurant.get("type"),
        ),
    )


def _record(raw: Any) -> Mapping[str, Any]:
    return raw if isinstance(raw, Mapping) else {}


def _identifier(record: Mapping[str, Any]) -> str:
    value = record.get("_id")
    if value is None or value == "":
        value = record.get("id")
    return "" if value is None else str(value)


def _reference_id(value: Any) -> str:
    """Resolve a bare or populated reference to its identifier."""
    if isinstance(value, Mapping):
        return _identifier(value)
    if value is None:
        return ""
    return str(value)


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _first_text(*values: Any) -> str | None:
    for value in values:
        text = _text(value)
        if text is not None:
            return text
    return None


def _to_decimal(value: Any) -> Decimal | None:
    """Convert a numeric-looking value to a finite Decimal, or None."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        return None
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def _non_negative(value: Any) -> Decimal:
    number = _to_decimal(value)
    if number is None or number < 0:
        return Decimal("0")
    return number


def _count(value: Any) -> int:
    number = _to_decimal(value)
    if number is None or number < 0:
        return 0
    return int(number)


def _datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        return None


def _ingredients(record: Mapping[str, Any]) -> str:
    for key in ("allergens", "ingredients"):
        items = record.get(key)
        if isinstance(items, list):
            return ", ".join(str(item) for item in items if item is not None)
    ingredients = record.get("ingredients")
    return ingredients if isinstance(ingredients, str) else ""


def _first_image(record: Mapping[str, Any]) -> str | None:
    images = record.get("images")
    if isinstance(images, list) and images and _text(images[0]):
        return images[0]
    return _text(record.get("image"))


def _is_new(record: Mapping[str, Any]) -> bool:
    flag = record.get("isNewItem")
    if flag is None:
        flag = record.get("isNew")
    return bool(flag)


def _discount_type(value: Any) -> DiscountType:
    try:
        return DiscountType(value)
    except ValueError:
        return DiscountType.PERCENTAGE


def _offer_unit(value: Any) -> OfferUnit:
    try:
        return OfferUnit(value)
    except ValueError:
        return OfferUnit.NUMBER


def _offer_product(entry: Any, language: str | None) -> OfferProduct:
    if isinstance(entry, str):
        return OfferProduct(product_id=entry)

    record = _record(entry)
    reference = record.get("productId")
    quantity = _to_decimal(record.get("quantity"))

    if isinstance(reference, Mapping):
        product_id = _identifier(reference)
        name = resolve_localized(reference.get("name"), language)
        price = _non_negative(reference.get("price"))
    else:
        product_id = _reference_id(reference)
        name = ""
        price = Decimal("0")

    return OfferProduct(
        product_id=product_id,
        quantity=quantity if quantity is not None and quantity > 0 else Decimal("1"),
        unit=_offer_unit(record.get("unit")),
        name=name,
        price=price,
    )


def _optional_count(value: Any) -> int | None:
    number = _to_decimal(value)
    if number is None or number < 0:
        return None
    return int(number)
