"""Discount view-models and the discount form payload."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class DiscountType(str, Enum):
    """How a discount value is applied."""

    PERCENTAGE = "percentage"
    FIXED = "fixed"


class DiscountRule(BaseModel):
    """Discount rule."""

    model_config = ConfigDict(json_encoders={Decimal: str})

    type: DiscountType = Field(default=DiscountType.PERCENTAGE, description="Rule type")
    value: Decimal = Field(default=Decimal("0"), description="Percentage or fixed amount", ge=0)


class DiscountTarget(BaseModel):
    """Products a discount applies to."""

    product_ids: list[str] = Field(default_factory=list, description="Targeted product ids")


class DiscountSchedule(BaseModel):
    """Validity window of a discount."""

    start_date: datetime | None = Field(None, description="First moment the discount applies")
    end_date: datetime | None = Field(None, description="Last moment the discount applies")


class Discount(BaseModel):
    """Canonical discount."""

    id: str = Field(default="", description="Backend identifier of the discount")
    name: str = Field(default="", description="Display name")
    description: str = Field(default="", description="Display description")
    rule: DiscountRule = Field(default_factory=DiscountRule)
    target: DiscountTarget = Field(default_factory=DiscountTarget)
    schedule: DiscountSchedule = Field(default_factory=DiscountSchedule)
    is_active: bool = Field(default=False, description="Whether the discount is active")
    is_public: bool = Field(default=False, description="Whether the discount is public")
    usage_count: int = Field(default=0, description="Number of redemptions so far", ge=0)


class DiscountFormData(BaseModel):
    """Values entered in the discount form, before backend transformation."""

    model_config = ConfigDict(json_encoders={Decimal: str})

    name: str
    from_date: datetime
    to_date: datetime
    discount_type: DiscountType = DiscountType.PERCENTAGE
    discount_value: Decimal = Field(..., ge=0)
    selected_products: list[str] = Field(default_factory=list)
    is_active: bool = True


class DiscountUpdateData(BaseModel):
    """Partial discount form values for an update; unset fields are not sent."""

    model_config = ConfigDict(json_encoders={Decimal: str})

    name: str | None = None
    from_date: datetime | None = None
    to_date: datetime | None = None
    discount_type: DiscountType | None = None
    discount_value: Decimal | None = Field(None, ge=0)
    selected_products: list[str] | None = None


class DiscountStats(BaseModel):
    """Aggregate discount figures of a restaurant."""

    model_config = ConfigDict(json_encoders={Decimal: str})

    total_discounts: int = Field(default=0, ge=0)
    active_discounts: int = Field(default=0, ge=0)
    public_discounts: int = Field(default=0, ge=0)
    total_usage: int = Field(default=0, ge=0)
    total_discount_amount: Decimal = Field(default=Decimal("0"), ge=0)
