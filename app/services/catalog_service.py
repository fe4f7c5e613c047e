"""Menu categories and items: public reads and owner-only mutations.

Every mutation follows the same order: validate input, load the target row,
authorize against the row's own restaurant, check plan limits where the
catalog grows, then write.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from app.models import MenuCategory, MenuItem, User
from app.services.access_service import require_owner
from app.services.data_store import CATEGORIES_TABLE, ITEMS_TABLE, SupabaseDataStore
from app.services.errors import Conflict, LimitExceeded, NotFound, ValidationFailed
from app.services.plans import can_add_category, can_add_menu_item
from app.services.validation import (
    validate_flag,
    validate_optional_string,
    validate_price,
    validate_required_string,
    validate_sort_order,
)

logger = logging.getLogger(__name__)

CATEGORY_NAME_MAX = 100
CATEGORY_DESCRIPTION_MAX = 500
ITEM_NAME_MAX = 200
ITEM_DESCRIPTION_MAX = 1000
IMAGE_URL_MAX = 2048
COPY_SUFFIX = " (Copy)"
DIETARY_FLAGS = ("is_vegetarian", "is_vegan", "is_gluten_free", "is_spicy")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Public reads


async def get_categories(store: SupabaseDataStore, restaurant_id: str) -> List[MenuCategory]:
    return await store.list_categories(restaurant_id)


async def get_by_restaurant(store: SupabaseDataStore, restaurant_id: str) -> List[MenuItem]:
    return await store.list_items_by_restaurant(restaurant_id)


async def get_by_category(store: SupabaseDataStore, category_id: str) -> List[MenuItem]:
    return await store.list_items_by_category(category_id)


# Categories


async def create_category(store: SupabaseDataStore, user: Optional[User], payload: Mapping[str, Any]) -> MenuCategory:
    restaurant_id = validate_required_string(payload.get("restaurant_id"), "Restaurant")
    name = validate_required_string(payload.get("name"), "Category name", max_length=CATEGORY_NAME_MAX)
    description = validate_optional_string(
        payload.get("description"), "Description", max_length=CATEGORY_DESCRIPTION_MAX
    )
    sort_order = validate_sort_order(payload.get("sort_order"))

    restaurant = await require_owner(store, user, restaurant_id)

    # Known gap: the count and the insert are two requests, so two concurrent
    # creates can both pass the check and overshoot the cap by one.
    current_count = await store.count_categories(restaurant.id)
    check = can_add_category(restaurant.subscription_tier, current_count)
    if not check.allowed:
        raise LimitExceeded(check.message)

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
    logger.info("Menu category created", extra={"restaurant_id": restaurant.id, "category_id": category.id})
    return category


async def update_category(
    store: SupabaseDataStore,
    user: Optional[User],
    category_id: str,
    changes: Mapping[str, Any],
) -> MenuCategory:
    update_body = _category_changes(changes)

    category = await store.get_category(category_id)
    if category is None:
        raise NotFound("Category not found.")
    await require_owner(store, user, category.restaurant_id)

    update_body["updated_at"] = _utcnow()
    return await store.update_category(category.id, update_body)


def _category_changes(changes: Mapping[str, Any]) -> Dict[str, Any]:
    update_body: Dict[str, Any] = {}
    if "name" in changes:
        update_body["name"] = validate_required_string(
            changes["name"], "Category name", max_length=CATEGORY_NAME_MAX
        )
    if "description" in changes:
        update_body["description"] = validate_optional_string(
            changes["description"], "Description", max_length=CATEGORY_DESCRIPTION_MAX
        )
    if "sort_order" in changes:
        update_body["sort_order"] = validate_sort_order(changes["sort_order"])
    if "is_active" in changes:
        update_body["is_active"] = validate_flag(changes["is_active"], "is_active")
    return update_body


async def remove_category(store: SupabaseDataStore, user: Optional[User], category_id: str) -> None:
    category = await store.get_category(category_id)
    if category is None:
        raise NotFound("Category not found.")
    await require_owner(store, user, category.restaurant_id)

    if await store.category_has_items(category.id):
        raise Conflict("Cannot delete a category that still has items. Move or delete its items first.")

    await store.delete_category(category.id)
    logger.info("Menu category removed", extra={"restaurant_id": category.restaurant_id, "category_id": category.id})


# Items


async def create_item(store: SupabaseDataStore, user: Optional[User], payload: Mapping[str, Any]) -> MenuItem:
    restaurant_id = validate_required_string(payload.get("restaurant_id"), "Restaurant")
    name = validate_required_string(payload.get("name"), "Menu item name", max_length=ITEM_NAME_MAX)
    description = validate_optional_string(
        payload.get("description"), "Description", max_length=ITEM_DESCRIPTION_MAX
    )
    price = validate_price(payload.get("price"), "Menu item price")
    sort_order = validate_sort_order(payload.get("sort_order"))
    image_url = validate_optional_string(payload.get("image_url"), "Image URL", max_length=IMAGE_URL_MAX)
    flags = {flag: validate_flag(payload.get(flag) or False, flag) for flag in DIETARY_FLAGS}
    category_id = payload.get("category_id")

    restaurant = await require_owner(store, user, restaurant_id)
    if category_id is not None:
        await _ensure_category_in_restaurant(store, str(category_id), restaurant.id)

    # Known gap: see create_category.
    current_count = await store.count_items(restaurant.id)
    check = can_add_menu_item(restaurant.subscription_tier, current_count)
    if not check.allowed:
        raise LimitExceeded(check.message)

    now = _utcnow()
    item = await store.insert_item(
        {
            "restaurant_id": restaurant.id,
            "category_id": str(category_id) if category_id is not None else None,
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
    logger.info("Menu item created", extra={"restaurant_id": restaurant.id, "item_id": item.id})
    return item


async def update_item(
    store: SupabaseDataStore,
    user: Optional[User],
    item_id: str,
    changes: Mapping[str, Any],
) -> MenuItem:
    update_body = _item_changes(changes)

    item = await _load_item(store, item_id)
    await require_owner(store, user, item.restaurant_id)
    if update_body.get("category_id") is not None:
        await _ensure_category_in_restaurant(store, update_body["category_id"], item.restaurant_id)

    update_body["updated_at"] = _utcnow()
    return await store.update_item(item.id, update_body)


def _item_changes(changes: Mapping[str, Any]) -> Dict[str, Any]:
    update_body: Dict[str, Any] = {}
    if "name" in changes:
        update_body["name"] = validate_required_string(changes["name"], "Menu item name", max_length=ITEM_NAME_MAX)
    if "description" in changes:
        update_body["description"] = validate_optional_string(
            changes["description"], "Description", max_length=ITEM_DESCRIPTION_MAX
        )
    if "price" in changes:
        update_body["price"] = validate_price(changes["price"], "Menu item price")
    if "sort_order" in changes:
        update_body["sort_order"] = validate_sort_order(changes["sort_order"])
    if "image_url" in changes:
        update_body["image_url"] = validate_optional_string(changes["image_url"], "Image URL", max_length=IMAGE_URL_MAX)
    if "category_id" in changes:
        raw = changes["category_id"]
        update_body["category_id"] = str(raw) if raw is not None else None
    if "is_available" in changes:
        update_body["is_available"] = validate_flag(changes["is_available"], "is_available")
    for flag in DIETARY_FLAGS:
        if flag in changes:
            update_body[flag] = validate_flag(changes[flag], flag)
    return update_body


async def toggle_availability(store: SupabaseDataStore, user: Optional[User], item_id: str) -> MenuItem:
    item = await _load_item(store, item_id)
    await require_owner(store, user, item.restaurant_id)
    return await store.update_item(
        item.id,
        {"is_available": not item.is_available, "updated_at": _utcnow()},
    )


async def remove_item(store: SupabaseDataStore, user: Optional[User], item_id: str) -> None:
    item = await _load_item(store, item_id)
    await require_owner(store, user, item.restaurant_id)
    await store.delete_item(item.id)
    logger.info("Menu item removed", extra={"restaurant_id": item.restaurant_id, "item_id": item.id})


async def duplicate_item(store: SupabaseDataStore, user: Optional[User], item_id: str) -> MenuItem:
    """Clone an item next to the original, hidden until the owner publishes it."""

    item = await _load_item(store, item_id)
    restaurant = await require_owner(store, user, item.restaurant_id)

    # Known gap: see create_category.
    current_count = await store.count_items(restaurant.id)
    check = can_add_menu_item(restaurant.subscription_tier, current_count)
    if not check.allowed:
        raise LimitExceeded(check.message)

    now = _utcnow()
    copy = await store.insert_item(
        {
            "restaurant_id": item.restaurant_id,
            "category_id": item.category_id,
            "name": f"{item.name}{COPY_SUFFIX}",
            "description": item.description,
            "price": item.price,
            "image_url": item.image_url,
            "sort_order": item.sort_order + 1,
            "is_available": False,
            **{flag: getattr(item, flag) for flag in DIETARY_FLAGS},
            "created_at": now,
            "updated_at": now,
        }
    )
    logger.info(
        "Menu item duplicated",
        extra={"restaurant_id": item.restaurant_id, "source_item_id": item.id, "item_id": copy.id},
    )
    return copy


# Reordering


async def reorder_items(
    store: SupabaseDataStore,
    user: Optional[User],
    entries: Sequence[Mapping[str, Any]],
) -> int:
    normalized = _normalize_reorder_entries(entries)
    if not normalized:
        return 0
    items = await store.get_items_by_ids(entry["id"] for entry in normalized)
    restaurant_id = _single_restaurant(normalized, items, "Menu item")
    await require_owner(store, user, restaurant_id)
    return await store.apply_sort_orders(ITEMS_TABLE, normalized, _utcnow())


async def reorder_categories(
    store: SupabaseDataStore,
    user: Optional[User],
    entries: Sequence[Mapping[str, Any]],
) -> int:
    normalized = _normalize_reorder_entries(entries)
    if not normalized:
        return 0
    categories = await store.get_categories_by_ids(entry["id"] for entry in normalized)
    restaurant_id = _single_restaurant(normalized, categories, "Category")
    await require_owner(store, user, restaurant_id)
    return await store.apply_sort_orders(CATEGORIES_TABLE, normalized, _utcnow())


def _normalize_reorder_entries(entries: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    normalized: List[Dict[str, Any]] = []
    seen = set()
    for entry in entries:
        row_id = validate_required_string(entry.get("id"), "id")
        if row_id in seen:
            raise ValidationFailed(f"Duplicate id in reorder request: {row_id}")
        seen.add(row_id)
        normalized.append({"id": row_id, "sort_order": validate_sort_order(entry.get("sort_order"))})
    return normalized


def _single_restaurant(entries: List[Dict[str, Any]], rows: Mapping[str, Any], label: str) -> str:
    """Every entry must exist and belong to the restaurant of the first one."""

    restaurant_ids = set()
    for entry in entries:
        row = rows.get(entry["id"])
        if row is None:
            raise NotFound(f"{label} not found.")
        restaurant_ids.add(row.restaurant_id)
    first_restaurant = rows[entries[0]["id"]].restaurant_id
    if len(restaurant_ids) > 1:
        logger.warning(
            "Reorder request spans several restaurants",
            extra={"restaurant_ids": sorted(restaurant_ids)},
        )
        raise ValidationFailed("All reordered entries must belong to the same restaurant.")
    return first_restaurant


async def _load_item(store: SupabaseDataStore, item_id: str) -> MenuItem:
    item = await store.get_item(item_id)
    if item is None:
        raise NotFound("Menu item not found.")
    return item


async def _ensure_category_in_restaurant(store: SupabaseDataStore, category_id: str, restaurant_id: str) -> None:
    category = await store.get_category(category_id)
    if category is None:
        raise NotFound("Category not found.")
    if category.restaurant_id != restaurant_id:
        raise ValidationFailed("The category belongs to another restaurant.")


__all__ = [
    "create_category",
    "create_item",
    "duplicate_item",
    "get_by_category",
    "get_by_restaurant",
    "get_categories",
    "remove_category",
    "remove_item",
    "reorder_categories",
    "reorder_items",
    "toggle_availability",
    "update_category",
    "update_item",
]
