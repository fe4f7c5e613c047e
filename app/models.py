"""Records stored in Supabase, validated on the way out of the data store."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SubscriptionTier(str, Enum):
    STARTER = "STARTER"
    GROWTH = "GROWTH"
    PROFESSIONAL = "PROFESSIONAL"


class StaffRole(str, Enum):
    MANAGER = "MANAGER"
    STAFF = "STAFF"


class StaffStatus(str, Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"
    READY_FOR_PICKUP = "READY_FOR_PICKUP"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


PUBLISHED_REVIEW_STATUS = "published"


class Record(BaseModel):
    model_config = ConfigDict(extra="ignore", use_enum_values=False)


class User(Record):
    id: str
    email: str
    name: Optional[str] = None


class Restaurant(Record):
    id: str
    owner_id: str
    name: str
    slug: Optional[str] = None
    subscription_tier: Optional[str] = None
    is_active: bool = True
    accepting_orders: bool = False


class StaffPermissions(BaseModel):
    """Capability set held by a staff member."""

    can_manage_menu: bool = False
    can_manage_hours: bool = False
    can_manage_orders: bool = False
    can_view_analytics: bool = False
    can_manage_settings: bool = False

    @classmethod
    def full(cls) -> "StaffPermissions":
        return cls(
            can_manage_menu=True,
            can_manage_hours=True,
            can_manage_orders=True,
            can_view_analytics=True,
            can_manage_settings=True,
        )

    @classmethod
    def orders_only(cls) -> "StaffPermissions":
        return cls(can_manage_orders=True)


class StaffMember(Record):
    id: str
    restaurant_id: str
    user_id: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    role: StaffRole
    status: StaffStatus
    permissions: Optional[StaffPermissions] = None
    invited_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MenuCategory(Record):
    id: str
    restaurant_id: str
    name: str
    description: Optional[str] = None
    sort_order: int = 0
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MenuItem(Record):
    id: str
    restaurant_id: str
    category_id: Optional[str] = None
    name: str
    description: Optional[str] = None
    price: int
    image_url: Optional[str] = None
    sort_order: int = 0
    is_available: bool = True
    is_vegetarian: bool = False
    is_vegan: bool = False
    is_gluten_free: bool = False
    is_spicy: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OrderLine(BaseModel):
    """One entry of an order's item list.

    Historical orders are not uniform: some lines carry ``menu_item_id``,
    older ones only ``id`` or just a name, and quantity/price may be missing.
    """

    model_config = ConfigDict(extra="ignore")

    menu_item_id: Optional[str] = None
    id: Optional[str] = None
    name: Optional[str] = None
    price: Optional[float] = None
    quantity: Optional[float] = None


class FoodOrder(Record):
    id: str
    restaurant_id: str
    order_number: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    items: List[OrderLine] = Field(default_factory=list)
    subtotal: int = 0
    tax: int = 0
    total: int = 0
    status: str
    placed_at: datetime
    pickup_time: Optional[datetime] = None
    payment_method: Optional[str] = None
    payment_status: Optional[str] = None

    @field_validator("items", mode="before")
    @classmethod
    def _coerce_items(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [entry for entry in value if isinstance(entry, (dict, OrderLine))]
        return []


class Review(Record):
    id: str
    restaurant_id: str
    customer_id: Optional[str] = None
    rating: int = Field(ge=1, le=5)
    title: Optional[str] = None
    review_text: Optional[str] = None
    status: str = PUBLISHED_REVIEW_STATUS
    helpful_count: int = 0
    restaurant_response: Optional[str] = None
    responded_at: Optional[datetime] = None
    created_at: datetime


__all__ = [
    "FoodOrder",
    "MenuCategory",
    "MenuItem",
    "OrderLine",
    "OrderStatus",
    "PUBLISHED_REVIEW_STATUS",
    "Restaurant",
    "Review",
    "StaffMember",
    "StaffPermissions",
    "StaffRole",
    "StaffStatus",
    "SubscriptionTier",
    "User",
]
