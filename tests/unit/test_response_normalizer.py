"""Unit tests for the response normalizer."""

from datetime import datetime
from decimal import Decimal

import pytest

from restaurant_dashboard.models.catalog_models import OfferUnit
from restaurant_dashboard.models.promotion_models import DiscountType
from restaurant_dashboard.normalizers.response_normalizer import (
    AvailabilityPolicy,
    normalize_category,
    normalize_discount,
    normalize_offer,
    normalize_offer_page,
    normalize_product,
    normalize_restaurant_info,
    resolve_availability,
    resolve_localized,
    restaurant_info_from_user,
    unwrap_collection,
    unwrap_record,
)

MALFORMED_INPUTS = [
    {},
    None,
    "not a record",
    42,
    [],
    {"name": None, "price": "abc", "categoryId": 17, "availability": "yes"},
    {"name": {"fr": "Bonjour"}, "price": float("nan"), "allergens": None, "images": [None]},
    {"products": "oops", "tags": [1, None], "rule": [], "schedule": {"startDate": "not a date"}},
    {"price": -5, "usageCount": -1, "target": {"productIds": [None, {"_id": "x"}]}},
]


@pytest.mark.unit
class TestNormalizerTotality:
    """Every normalizer returns a fully-defaulted entity for any input."""

    @pytest.mark.parametrize("raw", MALFORMED_INPUTS)
    def test_product_never_raises(self, raw: object) -> None:
        product = normalize_product(raw)
        assert product.price >= 0
        assert isinstance(product.name, str)

    @pytest.mark.parametrize("raw", MALFORMED_INPUTS)
    def test_category_never_raises(self, raw: object) -> None:
        assert isinstance(normalize_category(raw).name, str)

    @pytest.mark.parametrize("raw", MALFORMED_INPUTS)
    def test_offer_never_raises(self, raw: object) -> None:
        offer = normalize_offer(raw)
        assert offer.currency == "EUR"
        assert all(item.quantity > 0 for item in offer.products)

    @pytest.mark.parametrize("raw", MALFORMED_INPUTS)
    def test_discount_never_raises(self, raw: object) -> None:
        discount = normalize_discount(raw)
        assert discount.usage_count >= 0
        assert discount.rule.value >= 0

    def test_empty_product_is_fully_defaulted(self) -> None:
        product = normalize_product({})
        assert product.id == ""
        assert product.name == ""
        assert product.category_id == ""
        assert product.price == Decimal("0")
        assert product.ingredients == ""
        assert product.image is None
        assert product.is_available is False
        assert product.is_new is False


@pytest.mark.unit
class TestLocalizedFields:
    def test_plain_string_is_returned_as_is(self) -> None:
        assert resolve_localized("Soup") == "Soup"

    def test_english_is_preferred(self) -> None:
        assert resolve_localized({"en": "Soup", "ar": "شوربة", "de": "Suppe"}) == "Soup"

    def test_falls_back_to_arabic_then_german(self) -> None:
        assert resolve_localized({"en": "", "ar": "شوربة", "de": "Suppe"}) == "شوربة"
        assert resolve_localized({"de": "Suppe"}) == "Suppe"

    def test_requested_language_comes_first(self) -> None:
        assert resolve_localized({"en": "Soup", "de": "Suppe"}, "de") == "Suppe"

    def test_unknown_shapes_resolve_to_empty(self) -> None:
        assert resolve_localized({"fr": "Soupe"}) == ""
        assert resolve_localized(None) == ""
        assert resolve_localized(12) == ""


@pytest.mark.unit
class TestProductNormalization:
    def test_legacy_schema(self, legacy_product_record: dict) -> None:
        product = normalize_product(legacy_product_record)

        assert product.id == "p1"
        assert product.name == "Falafel Wrap"
        assert product.price == Decimal("7.5")
        assert product.category_id == "c1"
        assert product.ingredients == "sesame, gluten"
        assert product.image == "https://img.test/falafel.jpg"
        assert product.is_available is True
        assert product.is_new is True

    def test_nested_schema(self, nested_product_record: dict) -> None:
        product = normalize_product(nested_product_record)

        assert product.name == "Hummus"
        assert product.description == "طبق"
        assert product.price == Decimal("4.20")
        assert product.category_id == "c2"
        assert product.ingredients == "sesame"
        assert product.is_available is True

    def test_allergens_win_over_ingredients(self) -> None:
        product = normalize_product({"allergens": ["nuts"], "ingredients": ["milk"]})
        assert product.ingredients == "nuts"

    def test_falls_back_to_single_image(self) -> None:
        assert normalize_product({"images": [], "image": "a.png"}).image == "a.png"

    def test_id_falls_back_to_plain_id(self) -> None:
        assert normalize_product({"id": 7}).id == "7"


@pytest.mark.unit
class TestAvailabilityPolicies:
    def test_strict_requires_literal_true(self) -> None:
        assert resolve_availability({}, AvailabilityPolicy.STRICT) is False
        assert resolve_availability({"isAvailable": "true"}, AvailabilityPolicy.STRICT) is False
        assert resolve_availability({"isAvailable": True}, AvailabilityPolicy.STRICT) is True

    def test_strict_accepts_either_field(self) -> None:
        record = {"availability": {"isAvailable": False}, "isAvailable": True}
        assert resolve_availability(record, AvailabilityPolicy.STRICT) is True

    def test_lenient_treats_missing_as_available(self) -> None:
        assert resolve_availability({}, AvailabilityPolicy.LENIENT) is True

    def test_lenient_prefers_nested_object(self) -> None:
        record = {"availability": {"isAvailable": False}, "isAvailable": True}
        assert resolve_availability(record, AvailabilityPolicy.LENIENT) is False

    def test_lenient_respects_explicit_false(self) -> None:
        assert resolve_availability({"isAvailable": False}, AvailabilityPolicy.LENIENT) is False


@pytest.mark.unit
class TestCategoryNormalization:
    def test_localized_name(self, mock_categories: list[dict]) -> None:
        category = normalize_category(mock_categories[1])
        assert category.id == "c2"
        assert category.name == "Starters"
        assert category.is_active is True

    def test_inactive_category(self) -> None:
        assert normalize_category({"isActive": False}).is_active is False


@pytest.mark.unit
class TestOfferNormalization:
    def test_populated_and_bare_product_references(self) -> None:
        offer = normalize_offer(
            {
                "_id": "o1",
                "title": {"en": "Lunch Deal"},
                "price": 12,
                "originalPrice": 15,
                "products": [
                    {"productId": {"_id": "p1", "name": {"en": "Wrap"}, "price": 7}, "quantity": 2, "unit": "Number"},
                    {"productId": "p2", "quantity": 0.5, "unit": "KG"},
                    "p3",
                ],
                "isAvailable": True,
                "tags": ["lunch", 3],
                "validUntil": "2030-01-01T00:00:00Z",
            }
        )

        assert offer.title == "Lunch Deal"
        assert offer.original_price == Decimal("15")
        assert [item.product_id for item in offer.products] == ["p1", "p2", "p3"]
        assert offer.products[0].name == "Wrap"
        assert offer.products[0].quantity == Decimal("2")
        assert offer.products[1].unit is OfferUnit.KG
        assert offer.products[2].quantity == Decimal("1")
        assert offer.tags == ["lunch"]
        assert offer.valid_until == datetime.fromisoformat("2030-01-01T00:00:00+00:00")
        assert offer.is_active is True

    def test_non_positive_quantity_defaults_to_one(self) -> None:
        offer = normalize_offer({"products": [{"productId": "p1", "quantity": -3, "unit": "Litre"}]})
        assert offer.products[0].quantity == Decimal("1")
        assert offer.products[0].unit is OfferUnit.NUMBER

    def test_offer_page_envelope(self) -> None:
        page = normalize_offer_page(
            {
                "success": True,
                "data": [{"_id": "o1", "title": "A"}, {"_id": "o2", "title": "B"}],
                "pagination": {"page": 2, "limit": 20, "total": 22, "pages": 2},
                "statistics": {"totalOffers": 22, "availableOffers": 5, "totalValue": "300.5"},
            }
        )

        assert [offer.id for offer in page.offers] == ["o1", "o2"]
        assert page.pagination.page == 2
        assert page.pagination.total == 22
        assert page.statistics.total == 22
        assert page.statistics.available == 5
        assert page.statistics.total_value == Decimal("300.5")


@pytest.mark.unit
class TestDiscountNormalization:
    def test_nested_rule_and_schedule(self) -> None:
        discount = normalize_discount(
            {
                "_id": "d1",
                "name": {"en": "Summer", "de": "Sommer"},
                "rule": {"type": "fixed", "value": 5},
                "target": {"type": "specific_products", "productIds": ["p1", {"_id": "p2"}]},
                "schedule": {"startDate": "2030-06-01T00:00:00.000Z", "endDate": "2030-06-30T00:00:00.000Z"},
                "isActive": True,
                "isPublic": True,
                "usageCount": 3,
            },
            "de",
        )

        assert discount.name == "Sommer"
        assert discount.rule.type is DiscountType.FIXED
        assert discount.rule.value == Decimal("5")
        assert discount.target.product_ids == ["p1", "p2"]
        assert discount.schedule.end_date > discount.schedule.start_date
        assert discount.usage_count == 3

    def test_legacy_flat_rule(self) -> None:
        discount = normalize_discount({"type": "percentage", "value": "15", "validTill": "2030-01-01"})
        assert discount.rule.value == Decimal("15")
        assert discount.schedule.end_date == datetime(2030, 1, 1)

    def test_unknown_rule_type_defaults_to_percentage(self) -> None:
        assert normalize_discount({"rule": {"type": "bogo"}}).rule.type is DiscountType.PERCENTAGE


@pytest.mark.unit
class TestEnvelopes:
    def test_unwrap_collection_shapes(self) -> None:
        assert unwrap_collection([1, 2], "products") == [1, 2]
        assert unwrap_collection({"products": [1]}, "products") == [1]
        assert unwrap_collection({"success": True, "data": [2]}, "products") == [2]
        assert unwrap_collection({"data": {"not": "a list"}}, "products") == []
        assert unwrap_collection(None, "products") == []

    def test_unwrap_record_shapes(self) -> None:
        assert unwrap_record({"product": {"_id": "p"}}, "product") == {"_id": "p"}
        assert unwrap_record({"success": True, "data": {"_id": "p"}}, "product") == {"_id": "p"}
        assert unwrap_record({"_id": "p"}, "product") == {"_id": "p"}


@pytest.mark.unit
class TestRestaurantInfo:
    def test_from_detail_response(self) -> None:
        info = normalize_restaurant_info(
            {"restaurant": {"name": "Cedar", "contact": {"phone": "+49 1"}, "cuisine": "Lebanese"}}
        )
        assert (info.name, info.phone, info.cuisine) == ("Cedar", "+49 1", "Lebanese")

    def test_from_user_record_fallbacks(self) -> None:
        info = restaurant_info_from_user({"restaurantName": "Cedar", "phone": "123", "restaurant": {"type": "Grill"}})
        assert info.name == "Cedar"
        assert info.phone == "123"
        assert info.cuisine == "Grill"

    def test_from_missing_user(self) -> None:
        assert restaurant_info_from_user(None).is_empty()
