"""Canonical catalog view-models.

These models are the single normalized shape used by every view, whatever
schema version the backend answered with. Every field has a default so an
empty record is a valid entity; see the response normalizer for how raw
payloads are mapped onto them.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Category(BaseModel):
    """Menu category."""

    id: str = Field(default="", description="Backend identifier of the category")
    name: str = Field(default="", description="Display name")
    description: str = Field(default="", description="Display description")
    is_active: bool = Field(default=True, description="Whether the category is shown")


class Product(BaseModel):
    """Menu product."""

    model_config = ConfigDict(json_encoders={Decimal: str})

    id: str = Field(default="", description="Backend identifier of the product")
    name: str = Field(default="", description="Display name")
    category_id: str = Field(default="", description="Category this product belongs to")
    description: str = Field(default="", description="Display description")
    price: Decimal = Field(default=Decimal("0"), description="Product price", ge=0)
    ingredients: str = Field(default="", description="Comma-joined allergens or ingredients")
    image: str | None = Field(None, description="Image URL or data URI")
    is_available: bool = Field(default=False, description="Whether the product can be ordered")
    is_new: bool = Field(default=False, description="Whether the product is flagged as new")


class OfferUnit(str, Enum):
    """Unit of a product quantity inside an offer."""

    NUMBER = "Number"
    KG = "KG"
    NONE = "None"


class OfferProduct(BaseModel):
    """Product reference inside an offer."""

    model_config = ConfigDict(json_encoders={Decimal: str})

    product_id: str = Field(default="", description="Referenced product identifier")
    quantity: Decimal = Field(default=Decimal("1"), description="Quantity of the product", gt=0)
    unit: OfferUnit = Field(default=OfferUnit.NUMBER, description="Unit of the quantity")
    name: str = Field(default="", description="Product name when the reference was populated")
    price: Decimal = Field(default=Decimal("0"), description="Product price when populated", ge=0)


class Offer(BaseModel):
    """Promotional bundle of products sold at a fixed price."""

    model_config = ConfigDict(json_encoders={Decimal: str})

    id: str = Field(default="", description="Backend identifier of the offer")
    title: str = Field(default="", description="Display title")
    description: str = Field(default="", description="Display description")
    image: str | None = Field(None, description="Image URL or data URI")
    price: Decimal = Field(default=Decimal("0"), description="Bundle price", ge=0)
    original_price: Decimal | None = Field(None, description="Price before the offer", ge=0)
    currency: str = Field(default="EUR", description="ISO currency code")
    products: list[OfferProduct] = Field(default_factory=list, description="Bundled products")
    is_available: bool = Field(default=False, description="Whether the offer is available")
    is_active: bool = Field(default=True, description="Whether the offer is active")
    tags: list[str] = Field(default_factory=list, description="Free-form tags")
    valid_from: datetime | None = Field(None, description="Start of the offer period")
    valid_until: datetime | None = Field(None, description="End of the offer period")
    max_redemptions: int | None = Field(None, description="Redemption limit", ge=0)
    store_id: str | None = Field(None, description="Store the offer is restricted to")


class Pagination(BaseModel):
    """Paging information of a list response."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=0)
    total: int = Field(default=0, ge=0)
    pages: int = Field(default=0, ge=0)


class OfferStatistics(BaseModel):
    """Aggregate figures over a restaurant's offers."""

    model_config = ConfigDict(json_encoders={Decimal: str})

    total: int = Field(default=0, description="Number of offers", ge=0)
    available: int = Field(default=0, description="Number of available offers", ge=0)
    total_value: Decimal = Field(default=Decimal("0"), description="Sum of offer prices")
    average_price: Decimal = Field(default=Decimal("0"), description="Average offer price")
    total_redemptions: int = Field(default=0, description="Redemptions across all offers", ge=0)


class OfferPage(BaseModel):
    """One page of the offers list."""

    offers: list[Offer] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)
    statistics: OfferStatistics = Field(default_factory=OfferStatistics)
