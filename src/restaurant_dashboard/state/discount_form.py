"""Discount configuration page: form, product picker and discount list."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation

from restaurant_dashboard.models.catalog_models import Product
from restaurant_dashboard.models.promotion_models import Discount, DiscountFormData, DiscountType
from restaurant_dashboard.normalizers.response_normalizer import AvailabilityPolicy
from restaurant_dashboard.services.api_errors import extract_api_error
from restaurant_dashboard.services.catalog_service import ProductService
from restaurant_dashboard.services.discount_service import DiscountService
from restaurant_dashboard.state.highlight import TransientFlag

logger = logging.getLogger(__name__)

PICKER_PAGE_SIZE = 10
UNKNOWN_PRODUCT_NAME = "Unknown Product"

NAME_REQUIRED_MESSAGE = "Discount name is required."
DATES_REQUIRED_MESSAGE = "Start and end dates are required."
DATE_ORDER_MESSAGE = "End date must be after the start date."
VALUE_INVALID_MESSAGE = "Discount value must be a positive number."
PRODUCTS_REQUIRED_MESSAGE = "Select at least one product."
NOT_AUTHENTICATED_MESSAGE = "You must be logged in to manage discounts."
SAVED_MESSAGE = "Discount saved."


@dataclass
class DiscountDraft:
    """Form values as entered; the value is kept as typed."""

    name: str = ""
    from_date: datetime | None = None
    to_date: datetime | None = None
    discount_type: DiscountType = DiscountType.PERCENTAGE
    discount_value: str = ""
    selected_products: list[str] = field(default_factory=list)


def _parse_value(raw: str) -> Decimal | None:
    try:
        value = Decimal(raw.strip())
    except (InvalidOperation, AttributeError):
        return None
    if not value.is_finite() or value <= 0:
        return None
    return value


def validate_discount_draft(draft: DiscountDraft) -> dict[str, str]:
    """Check the form before anything is sent.

    Returns:
        Messages keyed by field; empty when the draft can be submitted
    """
    errors: dict[str, str] = {}
    if not draft.name.strip():
        errors["name"] = NAME_REQUIRED_MESSAGE
    if draft.from_date is None or draft.to_date is None:
        errors["dates"] = DATES_REQUIRED_MESSAGE
    elif draft.to_date <= draft.from_date:
        errors["dates"] = DATE_ORDER_MESSAGE
    if _parse_value(draft.discount_value) is None:
        errors["discount_value"] = VALUE_INVALID_MESSAGE
    if not draft.selected_products:
        errors["selected_products"] = PRODUCTS_REQUIRED_MESSAGE
    return errors


def is_discountable(product: Product, search_term: str = "") -> bool:
    """Whether a product may be offered in the discount product picker."""
    if not (product.is_available and product.name and product.name != UNKNOWN_PRODUCT_NAME):
        return False
    if product.price <= 0 or not product.category_id:
        return False
    term = search_term.strip().lower()
    return not term or term in product.name.lower() or term in product.description.lower()


class DiscountFormView:
    """State of the discounts page.

    Products for the picker are read with the strict availability policy, so
    a product without availability information is never offered.
    """

    def __init__(
        self,
        discounts: DiscountService,
        products: ProductService,
        restaurant_id: str | None,
        success_banner: TransientFlag | None = None,
    ) -> None:
        self.discount_service = discounts
        self.product_service = products
        self.restaurant_id = restaurant_id
        self.success_banner = success_banner or TransientFlag()

        self.draft = DiscountDraft()
        self.field_errors: dict[str, str] = {}
        self.error: str | None = None
        self.is_submitting = False
        self.search_term = ""
        self.show_count = PICKER_PAGE_SIZE
        self.products: list[Product] = []
        self.discounts: list[Discount] = []
        self.pending_delete: Discount | None = None

    async def load(self, language: str | None = None, force: bool = False) -> bool:
        """Load the product picker and the existing discounts."""
        if not self.restaurant_id:
            return False
        try:
            products = await self.product_service.list_products(
                self.restaurant_id, AvailabilityPolicy.STRICT, language, force=force
            )
            discounts = await self.discount_service.list_discounts(self.restaurant_id, language=language, force=force)
        except Exception as e:
            self.error = extract_api_error(e).message
            logger.error(f"Loading discounts of restaurant {self.restaurant_id} failed: {self.error}")
            return False

        if products is None or discounts is None:
            return False
        self.products = products
        self.discounts = discounts
        self.error = None
        return True

    # Product picker

    def selectable_products(self) -> list[Product]:
        return [product for product in self.products if is_discountable(product, self.search_term)]

    def visible_products(self) -> list[Product]:
        return self.selectable_products()[: self.show_count]

    def has_more(self) -> bool:
        return len(self.selectable_products()) > self.show_count

    def set_search_term(self, term: str) -> None:
        self.search_term = term
        self.show_count = PICKER_PAGE_SIZE

    def show_more(self) -> None:
        self.show_count += PICKER_PAGE_SIZE

    def toggle_product(self, product_id: str) -> None:
        selected = self.draft.selected_products
        if product_id in selected:
            selected.remove(product_id)
        else:
            selected.append(product_id)
        self.field_errors.pop("selected_products", None)

    def select_all(self) -> None:
        """Select every selectable product, or clear the selection if all are selected."""
        ids = [product.id for product in self.selectable_products()]
        if len(self.draft.selected_products) == len(ids):
            self.draft.selected_products = []
        else:
            self.draft.selected_products = ids
        self.field_errors.pop("selected_products", None)

    # Form

    def update(self, **fields: object) -> None:
        for name, value in fields.items():
            if not hasattr(self.draft, name):
                raise AttributeError(f"Unknown discount form field: {name}")
            setattr(self.draft, name, value)
            self.field_errors.pop("dates" if name in ("from_date", "to_date") else name, None)

    def reset(self) -> None:
        self.draft = DiscountDraft()
        self.field_errors = {}
        self.error = None

    async def submit(self) -> bool:
        """Validate and create the discount.

        Nothing is sent when validation fails or no token is present.

        Returns:
            True if the discount was created
        """
        errors = validate_discount_draft(self.draft)
        if errors:
            self.field_errors = errors
            return False
        if not self.discount_service.client.token or not self.restaurant_id:
            self.error = NOT_AUTHENTICATED_MESSAGE
            return False

        form = DiscountFormData(
            name=self.draft.name.strip(),
            from_date=self.draft.from_date,
            to_date=self.draft.to_date,
            discount_type=self.draft.discount_type,
            discount_value=_parse_value(self.draft.discount_value),
            selected_products=list(self.draft.selected_products),
            is_active=True,
        )

        self.is_submitting = True
        try:
            await self.discount_service.create_discount(form, self.restaurant_id)
        except Exception as e:
            parsed = extract_api_error(e)
            self.error = parsed.message
            self.field_errors = dict(parsed.field_errors or {})
            logger.error(f"Creating discount failed: {parsed.message}")
            return False
        finally:
            self.is_submitting = False

        self.reset()
        self.success_banner.show(SAVED_MESSAGE)
        await self.load()
        return True

    # Deletion

    def request_delete(self, discount: Discount) -> None:
        self.pending_delete = discount

    def cancel_delete(self) -> None:
        self.pending_delete = None

    async def confirm_delete(self) -> bool:
        if self.pending_delete is None:
            return False
        discount_id = self.pending_delete.id
        try:
            await self.discount_service.delete_discount(discount_id)
        except Exception as e:
            self.error = extract_api_error(e).message
            return False

        self.pending_delete = None
        self.discounts = [discount for discount in self.discounts if discount.id != discount_id]
        await self.load()
        return True
