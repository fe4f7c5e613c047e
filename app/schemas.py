from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.models import StaffPermissions, StaffRole


class CategoryCreate(BaseModel):
    restaurant_id: str
    name: str
    description: Optional[str] = None
    sort_order: int


class CategoryUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    description: Optional[str] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None


class MenuItemCreate(BaseModel):
    restaurant_id: str
    category_id: Optional[str] = None
    name: str
    description: Optional[str] = None
    price: int = Field(..., description="Price in cents")
    image_url: Optional[str] = None
    sort_order: int
    is_vegetarian: bool = False
    is_vegan: bool = False
    is_gluten_free: bool = False
    is_spicy: bool = False


class MenuItemUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    category_id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[int] = None
    image_url: Optional[str] = None
    sort_order: Optional[int] = None
    is_available: Optional[bool] = None
    is_vegetarian: Optional[bool] = None
    is_vegan: Optional[bool] = None
    is_gluten_free: Optional[bool] = None
    is_spicy: Optional[bool] = None


class ReorderEntry(BaseModel):
    id: str
    sort_order: int


class ReorderPayload(BaseModel):
    items: List[ReorderEntry] = Field(default_factory=list)


class ReorderResponse(BaseModel):
    updated: int


class StaffInvite(BaseModel):
    restaurant_id: str
    email: EmailStr
    name: Optional[str] = None
    role: StaffRole = StaffRole.STAFF
    permissions: Optional[StaffPermissions] = None


class StaffUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    role: Optional[StaffRole] = None
    permissions: Optional[StaffPermissions] = None


class AdminCategoryCreate(BaseModel):
    name: str
    description: Optional[str] = None
    sort_order: int


class AdminMenuItemCreate(BaseModel):
    category_name: Optional[str] = Field(default=None, description="Exact name of an existing category")
    name: str
    description: Optional[str] = None
    price: int = Field(..., description="Price in cents")
    image_url: Optional[str] = None
    sort_order: int
    is_vegetarian: bool = False
    is_vegan: bool = False
    is_gluten_free: bool = False
    is_spicy: bool = False


class AdminMenuItemUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    item_name: str
    price: Optional[int] = None
    description: Optional[str] = None
    is_available: Optional[bool] = None


class MenuPurgeResponse(BaseModel):
    success: bool = True
    deleted_items: int = 0
    deleted_categories: int = 0


class HealthResponse(BaseModel):
    status: str = "ok"
    checks: Dict[str, str] = Field(default_factory=dict)
