"""Offers page: create/edit drawer, paged list and quick actions."""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from restaurant_dashboard.models.catalog_models import Offer, OfferPage, OfferUnit, Product
from restaurant_dashboard.normalizers.response_normalizer import AvailabilityPolicy
from restaurant_dashboard.services.api_errors import extract_api_error
from restaurant_dashboard.services.catalog_service import ProductService
from restaurant_dashboard.services.discount_service import to_iso_timestamp
from restaurant_dashboard.services.offer_service import OfferListQuery, OfferService

logger = logging.getLogger(__name__)

ITEMS_PER_PAGE = 20
DEFAULT_CURRENCY = "EUR"

REQUIRED_MESSAGE = "required"
SELECT_PRODUCT_MESSAGE = "selectAtLeastOneProduct"


@dataclass
class OfferProductRow:
    """One product line of the offer form; quantity is kept as typed."""

    product_id: str
    quantity: str = ""
    unit: OfferUnit = OfferUnit.NUMBER


@dataclass
class OfferDraft:
    title: str = ""
    description: str = ""
    image: str = ""
    price: str = ""
    original_price: str = ""
    currency: str = DEFAULT_CURRENCY
    products: list[OfferProductRow] = field(default_factory=list)
    is_available: bool = True
    valid_from: datetime | None = None
    valid_until: datetime | None = None
    max_redemptions: str = ""
    tags: list[str] = field(default_factory=list)
    store_id: str = ""

    @classmethod
    def from_offer(cls, offer: Offer) -> "OfferDraft":
        return cls(
            title=offer.title,
            description=offer.description,
            image=offer.image or "",
            price=str(offer.price),
            original_price="" if offer.original_price is None else str(offer.original_price),
            currency=offer.currency or DEFAULT_CURRENCY,
            products=[
                OfferProductRow(product_id=item.product_id, quantity=str(item.quantity), unit=item.unit)
                for item in offer.products
            ],
            is_available=offer.is_available,
            valid_from=offer.valid_from,
            valid_until=offer.valid_until,
            max_redemptions="" if offer.max_redemptions is None else str(offer.max_redemptions),
            tags=list(offer.tags),
            store_id=offer.store_id or "",
        )


def _positive(raw: str) -> Decimal | None:
    try:
        value = Decimal(raw.strip())
    except (InvalidOperation, AttributeError):
        return None
    if not value.is_finite() or value <= 0:
        return None
    return value


def validate_offer_draft(draft: OfferDraft) -> dict[str, str]:
    """Check an offer draft.

    Quantity errors are keyed ``product-qty-{index}``.
    """
    errors: dict[str, str] = {}
    if not draft.title.strip():
        errors["title"] = REQUIRED_MESSAGE
    if _positive(draft.price) is None:
        errors["price"] = REQUIRED_MESSAGE
    if not draft.products:
        errors["products"] = SELECT_PRODUCT_MESSAGE
    for index, row in enumerate(draft.products):
        if _positive(row.quantity) is None:
            errors[f"product-qty-{index}"] = REQUIRED_MESSAGE
    return errors


def build_offer_payload(draft: OfferDraft) -> dict[str, Any]:
    """Request body for creating or updating an offer; optional fields left empty are omitted."""
    payload: dict[str, Any] = {
        "title": draft.title,
        "description": draft.description,
        "image": draft.image,
        "price": float(Decimal(draft.price.strip())),
        "currency": draft.currency or DEFAULT_CURRENCY,
        "products": [
            {"productId": row.product_id, "quantity": float(Decimal(row.quantity.strip())), "unit": row.unit.value}
            for row in draft.products
        ],
        "isAvailable": draft.is_available,
        "tags": list(draft.tags),
    }
    original_price = _positive(draft.original_price)
    if original_price is not None:
        payload["originalPrice"] = float(original_price)
    if draft.valid_from is not None:
        payload["validFrom"] = to_iso_timestamp(draft.valid_from)
    if draft.valid_until is not None:
        payload["validUntil"] = to_iso_timestamp(draft.valid_until)
    if draft.max_redemptions.strip().isdigit():
        payload["maxRedemptions"] = int(draft.max_redemptions.strip())
    if draft.store_id:
        payload["storeId"] = draft.store_id
    return payload


def is_selectable(product: Product) -> bool:
    """Whether a product may be added to an offer."""
    return product.is_available and bool(product.name) and product.price > 0 and bool(product.category_id)


class OfferDrawer:
    """State of the offers page."""

    def __init__(self, offers: OfferService, products: ProductService, restaurant_id: str) -> None:
        self.offer_service = offers
        self.product_service = products
        self.restaurant_id = restaurant_id

        self.is_open = False
        self.editing: Offer | None = None
        self.draft = OfferDraft()
        self.form_errors: dict[str, str] = {}
        self.error: str | None = None
        self.is_submitting = False
        self.is_deleting = False
        self.pending_delete: str | None = None

        self.search_term = ""
        self.filter_available: bool | None = None
        self.current_page = 1
        self.page: OfferPage | None = None
        self.products: list[Product] = []

    # Listing

    def list_query(self) -> OfferListQuery:
        return OfferListQuery(
            page=self.current_page,
            limit=ITEMS_PER_PAGE,
            search=self.search_term or None,
            is_available=self.filter_available,
        )

    async def load(self, language: str | None = None, force: bool = False) -> bool:
        """Load the current page of offers and the selectable products."""
        try:
            page = await self.offer_service.list_offers(self.list_query(), language, force=force)
            products = await self.product_service.list_products(
                self.restaurant_id, AvailabilityPolicy.STRICT, language, force=force
            )
        except Exception as e:
            self.error = extract_api_error(e).message
            logger.error(f"Loading offers failed: {self.error}")
            return False

        if page is None or products is None:
            return False
        self.page = page
        self.products = products
        self.error = None
        return True

    def set_search_term(self, term: str) -> None:
        self.search_term = term
        self.current_page = 1

    def set_filter_available(self, available: bool | None) -> None:
        self.filter_available = available
        self.current_page = 1

    def set_page(self, page: int) -> None:
        self.current_page = max(1, page)

    def selectable_products(self) -> list[Product]:
        return [product for product in self.products if is_selectable(product)]

    # Drawer

    def open(self, offer: Offer | None = None) -> None:
        """Open the drawer empty, or filled from an existing offer."""
        self.editing = offer
        self.draft = OfferDraft.from_offer(offer) if offer is not None else OfferDraft()
        self.form_errors = {}
        self.error = None
        self.is_open = True

    def close(self) -> None:
        self.is_open = False
        self.editing = None
        self.draft = OfferDraft()
        self.form_errors = {}

    def update(self, **fields: object) -> None:
        """Change draft fields; each edited field loses its error."""
        self.draft = replace(self.draft, **fields)
        for name in fields:
            self.form_errors.pop(name, None)

    def add_product(self, product_id: str) -> bool:
        """Add a product row for a selectable product not yet in the offer."""
        if not product_id or any(row.product_id == product_id for row in self.draft.products):
            return False
        if product_id not in {product.id for product in self.selectable_products()}:
            logger.warning(f"Product {product_id} is not available for offers")
            return False
        self.draft.products.append(OfferProductRow(product_id=product_id))
        self.form_errors.pop("products", None)
        return True

    def update_product(self, index: int, quantity: str | None = None, unit: OfferUnit | None = None) -> None:
        row = self.draft.products[index]
        if quantity is not None:
            row.quantity = quantity
            self.form_errors.pop(f"product-qty-{index}", None)
        if unit is not None:
            row.unit = unit

    def remove_product(self, index: int) -> None:
        del self.draft.products[index]
        self.form_errors = {key: value for key, value in self.form_errors.items() if not key.startswith("product-qty-")}

    async def submit(self) -> bool:
        """Validate the draft, then create or update the offer.

        Returns:
            True if the offer was saved and the drawer closed
        """
        errors = validate_offer_draft(self.draft)
        self.form_errors = errors
        if errors:
            return False

        payload = build_offer_payload(self.draft)
        self.is_submitting = True
        try:
            if self.editing is not None:
                await self.offer_service.update_offer(self.editing.id, payload)
            else:
                await self.offer_service.create_offer(payload)
        except Exception as e:
            parsed = extract_api_error(e)
            self.error = parsed.message
            logger.error(f"Saving offer failed: {parsed.message}")
            return False
        finally:
            self.is_submitting = False

        self.close()
        return True

    # Quick actions

    def request_delete(self, offer_id: str) -> None:
        self.pending_delete = offer_id

    def cancel_delete(self) -> None:
        self.pending_delete = None

    async def confirm_delete(self) -> bool:
        if self.pending_delete is None:
            return False
        self.is_deleting = True
        try:
            await self.offer_service.delete_offer(self.pending_delete)
        except Exception as e:
            self.error = extract_api_error(e).message
            return False
        finally:
            self.is_deleting = False
        self.pending_delete = None
        return True

    async def toggle_availability(self, offer_id: str) -> bool:
        try:
            await self.offer_service.toggle_availability(offer_id)
        except Exception as e:
            self.error = extract_api_error(e).message
            return False
        return True
