"""Slug-addressed catalog maintenance, guarded by the ``X-Admin-Secret`` header."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.dependencies import get_data_store, require_admin
from app.models import MenuCategory, MenuItem
from app.schemas import AdminCategoryCreate, AdminMenuItemCreate, AdminMenuItemUpdate, MenuPurgeResponse
from app.services import admin_catalog_service
from app.services.data_store import SupabaseDataStore

router = APIRouter(
    prefix="/api/admin/restaurants/{slug}",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


@router.post("/categories", response_model=MenuCategory, status_code=201)
async def admin_create_category_endpoint(
    slug: str,
    payload: AdminCategoryCreate,
    store: SupabaseDataStore = Depends(get_data_store),
) -> MenuCategory:
    return await admin_catalog_service.admin_create_category(store, slug, payload.model_dump())


@router.post("/items", response_model=MenuItem, status_code=201)
async def admin_create_item_endpoint(
    slug: str,
    payload: AdminMenuItemCreate,
    store: SupabaseDataStore = Depends(get_data_store),
) -> MenuItem:
    return await admin_catalog_service.admin_create_item(store, slug, payload.model_dump())


@router.patch("/items", response_model=MenuItem)
async def admin_update_item_endpoint(
    slug: str,
    payload: AdminMenuItemUpdate,
    store: SupabaseDataStore = Depends(get_data_store),
) -> MenuItem:
    return await admin_catalog_service.admin_update_item(store, slug, payload.model_dump(exclude_unset=True))


@router.delete("/menu", response_model=MenuPurgeResponse)
async def admin_delete_menu_endpoint(
    slug: str,
    store: SupabaseDataStore = Depends(get_data_store),
) -> MenuPurgeResponse:
    purge = await admin_catalog_service.admin_delete_all(store, slug)
    return MenuPurgeResponse(deleted_items=purge.deleted_items, deleted_categories=purge.deleted_categories)
