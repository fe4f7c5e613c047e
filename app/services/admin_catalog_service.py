"""Catalog maintenance addressed by restaurant slug.

These operations back the seeding and bulk-maintenance tooling. They are
authorized by the shared admin secret at the HTTP layer instead of by
restaurant ownership, and they do not apply plan limits.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from app.models import MenuCategory, MenuItem, Restaurant
from app.services.catalog_service import (
    CATEGORY_DESCRIPTION_MAX,
    CATEGORY_NAME_MAX,
    DIETARY_FLAGS,
    IMAGE_URL_MAX,
    ITEM_DESCRIPTION_MAX,
    ITEM_NAME_MAX,
)
from app.services.data_store import SupabaseDataStore
from app.services.errors import NotFound, ValidationFailed
from app.services.validation import (
    validate_flag,
    validate_optional_string,
    validate_price,
    validate_required_string,
    validate_sort_order,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MenuPurge:
    deleted_items: int
    deleted_categories: int


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def get_restaurant_by_slug(store: SupabaseDataStore, slug: Any) -> Restaurant:
    slug = validate_required_string(slug, "Restaurant slug")
    restaurant = await store.get_restaurant_by_slug(slug)
    if restaurant is None:
        raise NotFound(f'Restaurant with slug "{slug}" not found.')
    return restaurant


async def admin_create_category(store: SupabaseDataStore, slug: str, payload: Mapping[str, Any]) -> MenuCategory:
    name = validate_required_string(payload.get("name"), "Category name", max_length=CATEGORY_NAME_MAX)
    description = validate_optional_string(
        payload.get("description"), "Description", max_length=CATEGORY_DESCRIPTION_MAX
    )
    sort_order = validate_sort_order(payload.get("sort_order"))
    restaurant = await get_restaurant_by_slug(store, slug)

    now = _utcnow()
    category = await store.insert_category(
        {
            "restaurant_id": restaurant.id,
            "name": name,
            "description": description,
            "sort_order": sort_order,
            "is_active": True,
            "created_at": now,
            "updated_at": now,
        }
    )
    logger.info("Admin created menu category", extra={"slug": restaurant.slug, "category_id": category.id})
    return category


async def admin_create_item(store: SupabaseDataStore, slug: str, payload: Mapping[str, Any]) -> MenuItem:
    """Create an item, filing it under the category with exactly ``category_name``.

    An unknown category name leaves the item uncategorized.
    """

    name = validate_required_string(payload.get("name"), "Menu item name", max_length=ITEM_NAME_MAX)
    description = validate_optional_string(
        payload.get("description"), "Description", max_length=ITEM_DESCRIPTION_MAX
    )
    price = validate_price(payload.get("price"), "Menu item price")
    sort_order = validate_sort_order(payload.get("sort_order"))
    image_url = validate_optional_string(payload.get("image_url"), "Image URL", max_length=IMAGE_URL_MAX)
    flags = {flag: validate_flag(payload.get(flag) or False, flag) for flag in DIETARY_FLAGS}
    category_name = payload.get("category_name")
    restaurant = await get_restaurant_by_slug(store, slug)

    category_id: Optional[str] = None
    if category_name:
        categories = await store.list_categories(restaurant.id)
        match = next((category for category in categories if category.name == category_name), None)
        if match is None:
            logger.info("Admin item category not found", extra={"slug": restaurant.slug, "category": category_name})
        else:
            category_id = match.id

    now = _utcnow()
    item = await store.insert_item(
        {
            "restaurant_id": restaurant.id,
            "category_id": category_id,
            "name": name,
            "description": description,
            "price": price,
            "image_url": image_url,
            "sort_order": sort_order,
            "is_available": True,
            **flags,
            "created_at": now,
            "updated_at": now,
        }
    )
    logger.info("Admin created menu item", extra={"slug": restaurant.slug, "item_id": item.id})
    return item


async def admin_update_item(store: SupabaseDataStore, slug: str, payload: Mapping[str, Any]) -> MenuItem:
    item_name = payload.get("item_name")
    if not isinstance(item_name, str) or not item_name:
        raise ValidationFailed("Item name is required.")
    changes: Dict[str, Any] = {}
    if payload.get("price") is not None:
        changes["price"] = validate_price(payload["price"], "Menu item price")
    if payload.get("description") is not None:
        changes["description"] = validate_optional_string(
            payload["description"], "Description", max_length=ITEM_DESCRIPTION_MAX
        )
    if payload.get("is_available") is not None:
        changes["is_available"] = validate_flag(payload["is_available"], "is_available")
    restaurant = await get_restaurant_by_slug(store, slug)

    items = await store.list_items_by_restaurant(restaurant.id)
    item = next((candidate for candidate in items if candidate.name == item_name), None)
    if item is None:
        raise NotFound(f'Menu item "{item_name}" not found.')

    changes["updated_at"] = _utcnow()
    updated = await store.update_item(item.id, changes)
    logger.info("Admin updated menu item", extra={"slug": restaurant.slug, "item_id": item.id})
    return updated


async def admin_delete_all(store: SupabaseDataStore, slug: str) -> MenuPurge:
    """Remove every item, then every category, of the restaurant."""

    restaurant = await get_restaurant_by_slug(store, slug)
    deleted_items = await store.delete_items_by_restaurant(restaurant.id)
    deleted_categories = await store.delete_categories_by_restaurant(restaurant.id)
    logger.warning(
        "Admin purged restaurant menu",
        extra={"slug": restaurant.slug, "items": deleted_items, "categories": deleted_categories},
    )
    return MenuPurge(deleted_items=deleted_items, deleted_categories=deleted_categories)


__all__ = [
    "MenuPurge",
    "admin_create_category",
    "admin_create_item",
    "admin_delete_all",
    "admin_update_item",
    "get_restaurant_by_slug",
]
