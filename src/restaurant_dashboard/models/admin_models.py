"""Models for restaurant identity, loyalty mock-up, registry and QR codes."""

from datetime import date
from enum import Enum

from pydantic import BaseModel, Field


class RestaurantInfo(BaseModel):
    """Header information shown on the display screen."""

    name: str | None = None
    phone: str | None = None
    cuisine: str | None = None

    def is_empty(self) -> bool:
        """Return True when no field carries a value."""
        return not (self.name or self.phone or self.cuisine)


class Reward(BaseModel):
    """Loyalty reward. Lives in memory only."""

    id: int = Field(..., description="Process-local identifier")
    points: int = Field(..., description="Points needed to claim the reward", gt=0)
    title: str = Field(..., description="Reward title")
    description: str = Field(default="", description="Reward description")
    start_date: date = Field(..., description="First day the reward can be claimed")
    end_date: date = Field(..., description="Last day the reward can be claimed")
    active: bool = Field(default=True, description="Whether the reward is offered")
    claimed: bool = Field(default=False, description="Whether the reward has been claimed")
    claim_date: date | None = Field(None, description="Day the reward was claimed")


class LoyaltyCustomer(BaseModel):
    """Loyalty program member."""

    id: int
    name: str
    email: str
    current_points: int = Field(default=0, ge=0)
    total_points_earned: int = Field(default=0, ge=0)
    total_points_redeemed: int = Field(default=0, ge=0)


class RewardHistoryEntry(BaseModel):
    """Record of a claimed reward."""

    id: int
    reward_id: int
    reward_title: str
    customer_id: int
    points_used: int
    claim_date: date


class RestaurantStatus(str, Enum):
    """Lifecycle status of a registered restaurant."""

    ACTIVE = "active"
    PENDING = "pending"
    SUSPENDED = "suspended"


class RegisteredRestaurant(BaseModel):
    """Restaurant entry in the super-admin registry."""

    id: str
    name: str
    owner: str
    email: str = ""
    phone: str = ""
    city: str = ""
    cuisine: str = ""
    status: RestaurantStatus = RestaurantStatus.PENDING


class TableQrCode(BaseModel):
    """QR code generated for a table."""

    table: int = Field(..., description="Table number", gt=0)
    value: str = Field(..., description="URL encoded in the QR code")
    image: str = Field(..., description="PNG data URI of the QR code")
