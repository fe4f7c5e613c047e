"""Menu catalog endpoints: public reads and owner mutations."""

from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends

from app.api.dependencies import get_current_user, get_data_store
from app.models import MenuCategory, MenuItem, User
from app.schemas import (
    CategoryCreate,
    CategoryUpdate,
    MenuItemCreate,
    MenuItemUpdate,
    ReorderPayload,
    ReorderResponse,
)
from app.services import catalog_service
from app.services.data_store import SupabaseDataStore

router = APIRouter(prefix="/api/menu", tags=["menu"])


@router.get("/restaurants/{restaurant_id}/categories", response_model=List[MenuCategory])
async def list_categories_endpoint(
    restaurant_id: str,
    store: SupabaseDataStore = Depends(get_data_store),
) -> List[MenuCategory]:
    return await catalog_service.get_categories(store, restaurant_id)


@router.get("/restaurants/{restaurant_id}/items", response_model=List[MenuItem])
async def list_restaurant_items_endpoint(
    restaurant_id: str,
    store: SupabaseDataStore = Depends(get_data_store),
) -> List[MenuItem]:
    return await catalog_service.get_by_restaurant(store, restaurant_id)


@router.get("/categories/{category_id}/items", response_model=List[MenuItem])
async def list_category_items_endpoint(
    category_id: str,
    store: SupabaseDataStore = Depends(get_data_store),
) -> List[MenuItem]:
    return await catalog_service.get_by_category(store, category_id)


@router.post("/categories", response_model=MenuCategory, status_code=201)
async def create_category_endpoint(
    payload: CategoryCreate,
    store: SupabaseDataStore = Depends(get_data_store),
    user: Optional[User] = Depends(get_current_user),
) -> MenuCategory:
    return await catalog_service.create_category(store, user, payload.model_dump())


@router.post("/categories/reorder", response_model=ReorderResponse)
async def reorder_categories_endpoint(
    payload: ReorderPayload,
    store: SupabaseDataStore = Depends(get_data_store),
    user: Optional[User] = Depends(get_current_user),
) -> ReorderResponse:
    entries = [entry.model_dump() for entry in payload.items]
    updated = await catalog_service.reorder_categories(store, user, entries)
    return ReorderResponse(updated=updated)


@router.patch("/categories/{category_id}", response_model=MenuCategory)
async def update_category_endpoint(
    category_id: str,
    payload: CategoryUpdate,
    store: SupabaseDataStore = Depends(get_data_store),
    user: Optional[User] = Depends(get_current_user),
) -> MenuCategory:
    return await catalog_service.update_category(store, user, category_id, payload.model_dump(exclude_unset=True))


@router.delete("/categories/{category_id}")
async def delete_category_endpoint(
    category_id: str,
    store: SupabaseDataStore = Depends(get_data_store),
    user: Optional[User] = Depends(get_current_user),
) -> Dict[str, bool]:
    await catalog_service.remove_category(store, user, category_id)
    return {"success": True}


@router.post("/items", response_model=MenuItem, status_code=201)
async def create_item_endpoint(
    payload: MenuItemCreate,
    store: SupabaseDataStore = Depends(get_data_store),
    user: Optional[User] = Depends(get_current_user),
) -> MenuItem:
    return await catalog_service.create_item(store, user, payload.model_dump())


@router.post("/items/reorder", response_model=ReorderResponse)
async def reorder_items_endpoint(
    payload: ReorderPayload,
    store: SupabaseDataStore = Depends(get_data_store),
    user: Optional[User] = Depends(get_current_user),
) -> ReorderResponse:
    entries = [entry.model_dump() for entry in payload.items]
    updated = await catalog_service.reorder_items(store, user, entries)
    return ReorderResponse(updated=updated)


@router.patch("/items/{item_id}", response_model=MenuItem)
async def update_item_endpoint(
    item_id: str,
    payload: MenuItemUpdate,
    store: SupabaseDataStore = Depends(get_data_store),
    user: Optional[User] = Depends(get_current_user),
) -> MenuItem:
    return await catalog_service.update_item(store, user, item_id, payload.model_dump(exclude_unset=True))


@router.post("/items/{item_id}/toggle-availability", response_model=MenuItem)
async def toggle_item_availability_endpoint(
    item_id: str,
    store: SupabaseDataStore = Depends(get_data_store),
    user: Optional[User] = Depends(get_current_user),
) -> MenuItem:
    return await catalog_service.toggle_availability(store, user, item_id)


@router.post("/items/{item_id}/duplicate", response_model=MenuItem, status_code=201)
async def duplicate_item_endpoint(
    item_id: str,
    store: SupabaseDataStore = Depends(get_data_store),
    user: Optional[User] = Depends(get_current_user),
) -> MenuItem:
    return await catalog_service.duplicate_item(store, user, item_id)


@router.delete("/items/{item_id}")
async def delete_item_endpoint(
    item_id: str,
    store: SupabaseDataStore = Depends(get_data_store),
    user: Optional[User] = Depends(get_current_user),
) -> Dict[str, bool]:
    await catalog_service.remove_item(store, user, item_id)
    return {"success": True}
