"""Create/edit drawer for products."""

import logging
import os
import re
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from enum import Enum

from restaurant_dashboard.models.catalog_models import Product
from restaurant_dashboard.normalizers.response_normalizer import AvailabilityPolicy
from restaurant_dashboard.services.api_errors import extract_api_error
from restaurant_dashboard.services.catalog_service import ProductService, split_allergens

logger = logging.getLogger(__name__)

ALLERGENS_REQUIRED_MESSAGE = "Please add allergens or ingredients before saving."
NAME_REQUIRED_MESSAGE = "Name is required."
CATEGORY_REQUIRED_MESSAGE = "Category is required."
PRICE_INVALID_MESSAGE = "Price must be a number of at least 0."

OBJECT_ID_PATTERN = re.compile(r"^[a-fA-F0-9]{24}$")


class DrawerState(str, Enum):
    """Lifecycle of the product drawer."""

    CLOSED = "closed"
    OPEN_FOR_CREATE = "open_for_create"
    OPEN_FOR_EDIT = "open_for_edit"
    SUBMITTING = "submitting"


@dataclass
class ProductDraft:
    """Buffered form values. Price is kept as entered."""

    name: str = ""
    category_id: str = ""
    description: str = ""
    price: str = "0"
    ingredients: str = ""
    image: str = ""
    is_available: bool = True
    is_new: bool = False

    @classmethod
    def from_product(cls, product: Product) -> "ProductDraft":
        return cls(
            name=product.name,
            category_id=product.category_id,
            description=product.description,
            price=str(product.price),
            ingredients=product.ingredients,
            image=product.image or "",
            is_available=product.is_available,
            is_new=product.is_new,
        )

    def to_product(self, product_id: str = "") -> Product:
        """Build the canonical product; call only after validation passed."""
        return Product(
            id=product_id,
            name=self.name.strip(),
            category_id=self.category_id,
            description=self.description,
            price=Decimal(self.price.strip()),
            ingredients=", ".join(split_allergens(self.ingredients)),
            image=self.image or None,
            is_available=self.is_available,
            is_new=self.is_new,
        )


def validate_draft(draft: ProductDraft) -> dict[str, str]:
    """Check a draft before submission.

    Returns:
        Messages keyed by field; empty when the draft can be submitted
    """
    errors: dict[str, str] = {}
    if not draft.name.strip():
        errors["name"] = NAME_REQUIRED_MESSAGE
    if not draft.category_id:
        errors["category_id"] = CATEGORY_REQUIRED_MESSAGE

    try:
        price = Decimal(draft.price.strip())
    except (InvalidOperation, AttributeError):
        price = None
    if price is None or not price.is_finite() or price < 0:
        errors["price"] = PRICE_INVALID_MESSAGE

    if not split_allergens(draft.ingredients):
        errors["ingredients"] = ALLERGENS_REQUIRED_MESSAGE
    return errors


class ProductEditDrawer:
    """State machine behind the product create/edit drawer.

    Closed -> OpenForCreate -> Submitting -> Closed, or
    Closed -> OpenForEdit -> Submitting -> Closed. A failed submission
    returns to the open state it came from with the buffer intact and the
    error exposed.
    """

    def __init__(self, products: ProductService, restaurant_id: str, fetch_on_edit: bool | None = None) -> None:
        """Initialize the drawer.

        Args:
            products: Product service used to fetch and save
            restaurant_id: Restaurant owning new products
            fetch_on_edit: Refetch the product before editing; defaults to the
                FETCH_PRODUCT_ON_EDIT environment variable
        """
        self.products = products
        self.restaurant_id = restaurant_id
        if fetch_on_edit is None:
            fetch_on_edit = os.getenv("FETCH_PRODUCT_ON_EDIT", "false").lower() == "true"
        self.fetch_on_edit = fetch_on_edit

        self.state = DrawerState.CLOSED
        self.editing_id: str | None = None
        self.draft = ProductDraft()
        self.form_error: str | None = None
        self.field_errors: dict[str, str] = {}

    @property
    def is_open(self) -> bool:
        return self.state is not DrawerState.CLOSED

    def open_for_create(self, category_id: str = "") -> None:
        self._reset()
        self.draft.category_id = category_id
        self.state = DrawerState.OPEN_FOR_CREATE

    async def open_for_edit(self, product: Product) -> None:
        """Open the drawer on an existing product.

        With fetching enabled, a token present and a well-formed id, the
        product is refetched first; any failure falls back to the given item.
        """
        self._reset()
        source = product
        product_id = (product.id or "").strip()

        if self.fetch_on_edit and self.products.client.token and OBJECT_ID_PATTERN.match(product_id):
            try:
                fresh = await self.products.get_product(product_id, AvailabilityPolicy.LENIENT)
            except Exception as e:
                self.form_error = extract_api_error(e).message
                logger.warning(f"Refetching product {product_id} failed, editing the listed copy: {e}")
                fresh = None
            if fresh is not None:
                source = fresh

        self.editing_id = product.id
        self.draft = ProductDraft.from_product(source)
        self.state = DrawerState.OPEN_FOR_EDIT

    def update(self, **fields: object) -> None:
        """Change buffered values; editing a field clears its error."""
        if self.state not in (DrawerState.OPEN_FOR_CREATE, DrawerState.OPEN_FOR_EDIT):
            raise RuntimeError(f"Cannot edit the drawer while {self.state.value}")
        self.draft = replace(self.draft, **fields)
        for name in fields:
            self.field_errors.pop(name, None)

    async def submit(self) -> bool:
        """Validate locally, then create or update the product.

        Returns:
            True if the product was saved and the drawer closed
        """
        if self.state not in (DrawerState.OPEN_FOR_CREATE, DrawerState.OPEN_FOR_EDIT):
            return False

        errors = validate_draft(self.draft)
        if errors:
            self.field_errors = errors
            self.form_error = errors.get("ingredients") or next(iter(errors.values()))
            return False

        previous = self.state
        self.state = DrawerState.SUBMITTING
        self.form_error = None
        self.field_errors = {}

        try:
            if previous is DrawerState.OPEN_FOR_EDIT and self.editing_id:
                await self.products.update_product(self.draft.to_product(self.editing_id), self.restaurant_id)
            else:
                await self.products.create_product(self.draft.to_product(), self.restaurant_id)
        except Exception as e:
            parsed = extract_api_error(e)
            self.state = previous
            self.form_error = parsed.message
            self.field_errors = dict(parsed.field_errors or {})
            logger.error(f"Saving product failed: {parsed.message}")
            return False

        self.close()
        return True

    def close(self) -> None:
        self._reset()
        self.state = DrawerState.CLOSED

    def _reset(self) -> None:
        self.editing_id = None
        self.draft = ProductDraft()
        self.form_error = None
        self.field_errors = {}
