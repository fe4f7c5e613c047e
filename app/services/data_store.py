"""Supabase-backed data access for the restaurant core.

Every method wraps a blocking supabase-py call in ``asyncio.to_thread`` so the
aggregator can fan requests out concurrently. Reads are retried with a short
backoff when the network layer fails; writes are not.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, TypeVar

from httpx import HTTPError as HttpxError
from postgrest import APIError as PostgrestAPIError
from pydantic import BaseModel
from supabase import Client

from app.config.supabase_client import get_supabase_client
from app.models import (
    FoodOrder,
    MenuCategory,
    MenuItem,
    Restaurant,
    Review,
    StaffMember,
    StaffStatus,
    User,
)
from app.services.errors import NotFound, ServiceUnavailable, UpstreamError
from app.services.postgrest_client import raise_postgrest_error

logger = logging.getLogger(__name__)
T = TypeVar("T")

USERS_TABLE = "users"
RESTAURANTS_TABLE = "restaurants"
STAFF_TABLE = "restaurant_staff"
CATEGORIES_TABLE = "menu_categories"
ITEMS_TABLE = "menu_items"
ORDERS_TABLE = "food_orders"
REVIEWS_TABLE = "restaurant_reviews"

REORDER_FUNCTION = "reorder_sort_orders"
READ_RETRY_DELAYS = (0.2, 0.5)
PAGE_SIZE = 1000


def format_timestamp(value: datetime) -> str:
    normalized = value.astimezone(timezone.utc)
    return normalized.isoformat().replace("+00:00", "Z")


def serialize_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Convert a python payload into JSON values PostgREST accepts."""

    serialized: Dict[str, Any] = {}
    for key, value in row.items():
        if isinstance(value, datetime):
            serialized[key] = format_timestamp(value)
        elif isinstance(value, Enum):
            serialized[key] = value.value
        elif isinstance(value, BaseModel):
            serialized[key] = value.model_dump(mode="json")
        else:
            serialized[key] = value
    return serialized


def _with_read_retries(operation: Callable[[], T], *, label: str) -> T:
    """Retry a blocking read on transport errors; the last failure propagates."""

    for delay in READ_RETRY_DELAYS:
        try:
            return operation()
        except HttpxError as exc:
            logger.warning("Supabase read failed, retrying", extra={"label": label, "error": str(exc)})
            time.sleep(delay)
    return operation()


class SupabaseDataStore:
    """DAO relying on the service-role Supabase client.

    Row level security is not relied upon: callers are authorized by the
    access service before any method here is invoked.
    """

    page_size = PAGE_SIZE

    def __init__(self, client: Optional[Client] = None):
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_supabase_client()
        if self._client is None:
            raise ServiceUnavailable("Supabase is not configured.")
        return self._client

    async def _read(self, operation: Callable[[], T], *, context: str) -> T:
        try:
            return await asyncio.to_thread(_with_read_retries, operation, label=context)
        except PostgrestAPIError as exc:
            raise_postgrest_error(exc, context=context)
        except HttpxError as exc:
            logger.error("Supabase unreachable during %s: %s", context, exc)
            raise ServiceUnavailable() from exc

    async def _write(self, operation: Callable[[], T], *, context: str) -> T:
        try:
            return await asyncio.to_thread(operation)
        except PostgrestAPIError as exc:
            raise_postgrest_error(exc, context=context)
        except HttpxError as exc:
            logger.error("Supabase unreachable during %s: %s", context, exc)
            raise ServiceUnavailable() from exc

    async def _select_by_id(self, table: str, row_id: str, *, context: str) -> Optional[Dict[str, Any]]:
        def _request() -> Optional[Dict[str, Any]]:
            response = self.client.table(table).select("*").eq("id", row_id).limit(1).execute()
            return response.data[0] if response.data else None

        return await self._read(_request, context=context)

    async def _select_in(self, table: str, column: str, values: Iterable[str], *, context: str) -> List[Dict[str, Any]]:
        wanted = sorted({str(value) for value in values if value})
        if not wanted:
            return []

        def _request() -> List[Dict[str, Any]]:
            response = self.client.table(table).select("*").in_(column, wanted).execute()
            return response.data or []

        return await self._read(_request, context=context)

    async def _insert(self, table: str, row: Mapping[str, Any], *, context: str) -> Dict[str, Any]:
        def _request() -> Dict[str, Any]:
            response = self.client.table(table).insert(serialize_row(row)).execute()
            if not response.data:
                raise UpstreamError(f"Supabase did not return the created row ({context}).")
            return response.data[0]

        return await self._write(_request, context=context)

    async def _update(self, table: str, row_id: str, changes: Mapping[str, Any], *, context: str) -> Dict[str, Any]:
        def _request() -> Dict[str, Any]:
            response = self.client.table(table).update(serialize_row(changes)).eq("id", row_id).execute()
            if not response.data:
                raise NotFound()
            return response.data[0]

        return await self._write(_request, context=context)

    async def _delete(self, table: str, row_id: str, *, context: str) -> None:
        def _request() -> None:
            response = self.client.table(table).delete().eq("id", row_id).execute()
            if not response.data:
                raise NotFound()

        await self._write(_request, context=context)

    async def _delete_where(self, table: str, column: str, value: str, *, context: str) -> int:
        """Delete every matching row and return how many went away."""

        def _request() -> int:
            response = self.client.table(table).delete().eq(column, value).execute()
            return len(response.data or [])

        return await self._write(_request, context=context)

    async def _count(self, table: str, column: str, value: str, *, context: str) -> int:
        def _request() -> int:
            response = (
                self.client.table(table)
                .select("id", count="exact")
                .eq(column, value)
                .execute()
            )
            if response.count is not None:
                return int(response.count)
            return len(response.data or [])

        return await self._read(_request, context=context)

    # Users

    async def get_user_by_email(self, email: str) -> Optional[User]:
        def _request() -> Optional[Dict[str, Any]]:
            response = self.client.table(USERS_TABLE).select("*").eq("email", email).limit(1).execute()
            return response.data[0] if response.data else None

        row = await self._read(_request, context="user lookup")
        return User.model_validate(row) if row else None

    async def get_users_by_ids(self, user_ids: Iterable[str]) -> Dict[str, User]:
        rows = await self._select_in(USERS_TABLE, "id", user_ids, context="users batch lookup")
        users = [User.model_validate(row) for row in rows]
        return {user.id: user for user in users}

    # Restaurants

    async def get_restaurant(self, restaurant_id: str) -> Optional[Restaurant]:
        row = await self._select_by_id(RESTAURANTS_TABLE, restaurant_id, context="restaurant lookup")
        return Restaurant.model_validate(row) if row else None

    async def get_restaurants_by_ids(self, restaurant_ids: Iterable[str]) -> Dict[str, Restaurant]:
        rows = await self._select_in(RESTAURANTS_TABLE, "id", restaurant_ids, context="restaurants batch lookup")
        restaurants = [Restaurant.model_validate(row) for row in rows]
        return {restaurant.id: restaurant for restaurant in restaurants}

    async def list_restaurants_by_owner(self, owner_id: str) -> List[Restaurant]:
        def _request() -> List[Dict[str, Any]]:
            response = (
                self.client.table(RESTAURANTS_TABLE)
                .select("*")
                .eq("owner_id", owner_id)
                .order("created_at", desc=False)
                .execute()
            )
            return response.data or []

        rows = await self._read(_request, context="owned restaurants lookup")
        return [Restaurant.model_validate(row) for row in rows]

    async def get_restaurant_by_slug(self, slug: str) -> Optional[Restaurant]:
        def _request() -> Optional[Dict[str, Any]]:
            response = self.client.table(RESTAURANTS_TABLE).select("*").eq("slug", slug).limit(1).execute()
            return response.data[0] if response.data else None

        row = await self._read(_request, context="restaurant slug lookup")
        return Restaurant.model_validate(row) if row else None

    # Staff

    async def get_staff(self, staff_id: str) -> Optional[StaffMember]:
        row = await self._select_by_id(STAFF_TABLE, staff_id, context="staff lookup")
        return StaffMember.model_validate(row) if row else None

    async def get_active_membership(self, user_id: str, restaurant_id: str) -> Optional[StaffMember]:
        def _request() -> Optional[Dict[str, Any]]:
            response = (
                self.client.table(STAFF_TABLE)
                .select("*")
                .eq("user_id", user_id)
                .eq("restaurant_id", restaurant_id)
                .eq("status", StaffStatus.ACTIVE.value)
                .limit(1)
                .execute()
            )
            return response.data[0] if response.data else None

        row = await self._read(_request, context="staff membership lookup")
        return StaffMember.model_validate(row) if row else None

    async def list_active_memberships(self, user_id: str) -> List[StaffMember]:
        def _request() -> List[Dict[str, Any]]:
            response = (
                self.client.table(STAFF_TABLE)
                .select("*")
                .eq("user_id", user_id)
                .eq("status", StaffStatus.ACTIVE.value)
                .execute()
            )
            return response.data or []

        rows = await self._read(_request, context="staff memberships lookup")
        return [StaffMember.model_validate(row) for row in rows]

    async def list_staff(self, restaurant_id: str, *, limit: Optional[int] = None) -> List[StaffMember]:
        """Staff rows of a restaurant, most recently created first."""

        def _request() -> List[Dict[str, Any]]:
            query = (
                self.client.table(STAFF_TABLE)
                .select("*")
                .eq("restaurant_id", restaurant_id)
                .order("created_at", desc=True)
            )
            if limit is not None:
                query = query.limit(limit)
            return query.execute().data or []

        rows = await self._read(_request, context="staff listing")
        return [StaffMember.model_validate(row) for row in rows]

    async def list_invitations_for_email(self, email: str) -> List[StaffMember]:
        def _request() -> List[Dict[str, Any]]:
            response = (
                self.client.table(STAFF_TABLE)
                .select("*")
                .eq("email", email.strip().lower())
                .eq("status", StaffStatus.PENDING.value)
                .order("created_at", desc=True)
                .execute()
            )
            return response.data or []

        rows = await self._read(_request, context="pending invitations lookup")
        return [StaffMember.model_validate(row) for row in rows]

    async def insert_staff(self, row: Mapping[str, Any]) -> StaffMember:
        created = await self._insert(STAFF_TABLE, row, context="staff invitation")
        return StaffMember.model_validate(created)

    async def update_staff(self, staff_id: str, changes: Mapping[str, Any]) -> StaffMember:
        updated = await self._update(STAFF_TABLE, staff_id, changes, context="staff update")
        return StaffMember.model_validate(updated)

    async def delete_staff(self, staff_id: str) -> None:
        await self._delete(STAFF_TABLE, staff_id, context="staff removal")

    # Menu categories

    async def list_categories(self, restaurant_id: str) -> List[MenuCategory]:
        def _request() -> List[Dict[str, Any]]:
            response = (
                self.client.table(CATEGORIES_TABLE)
                .select("*")
                .eq("restaurant_id", restaurant_id)
                .order("sort_order", desc=False)
                .order("created_at", desc=False)
                .execute()
            )
            return response.data or []

        rows = await self._read(_request, context="categories listing")
        return [MenuCategory.model_validate(row) for row in rows]

    async def get_category(self, category_id: str) -> Optional[MenuCategory]:
        row = await self._select_by_id(CATEGORIES_TABLE, category_id, context="category lookup")
        return MenuCategory.model_validate(row) if row else None

    async def get_categories_by_ids(self, category_ids: Iterable[str]) -> Dict[str, MenuCategory]:
        rows = await self._select_in(CATEGORIES_TABLE, "id", category_ids, context="categories batch lookup")
        categories = [MenuCategory.model_validate(row) for row in rows]
        return {category.id: category for category in categories}

    async def count_categories(self, restaurant_id: str) -> int:
        return await self._count(CATEGORIES_TABLE, "restaurant_id", restaurant_id, context="categories count")

    async def insert_category(self, row: Mapping[str, Any]) -> MenuCategory:
        created = await self._insert(CATEGORIES_TABLE, row, context="category creation")
        return MenuCategory.model_validate(created)

    async def update_category(self, category_id: str, changes: Mapping[str, Any]) -> MenuCategory:
        updated = await self._update(CATEGORIES_TABLE, category_id, changes, context="category update")
        return MenuCategory.model_validate(updated)

    async def delete_category(self, category_id: str) -> None:
        await self._delete(CATEGORIES_TABLE, category_id, context="category removal")

    async def delete_categories_by_restaurant(self, restaurant_id: str) -> int:
        return await self._delete_where(CATEGORIES_TABLE, "restaurant_id", restaurant_id, context="categories purge")

    # Menu items

    async def list_items_by_restaurant(self, restaurant_id: str) -> List[MenuItem]:
        return await self._list_items("restaurant_id", restaurant_id, context="menu items listing")

    async def list_items_by_category(self, category_id: str) -> List[MenuItem]:
        return await self._list_items("category_id", category_id, context="category items listing")

    async def _list_items(self, column: str, value: str, *, context: str) -> List[MenuItem]:
        def _request() -> List[Dict[str, Any]]:
            response = (
                self.client.table(ITEMS_TABLE)
                .select("*")
                .eq(column, value)
                .order("sort_order", desc=False)
                .order("created_at", desc=False)
                .execute()
            )
            return response.data or []

        rows = await self._read(_request, context=context)
        return [MenuItem.model_validate(row) for row in rows]

    async def get_item(self, item_id: str) -> Optional[MenuItem]:
        row = await self._select_by_id(ITEMS_TABLE, item_id, context="menu item lookup")
        return MenuItem.model_validate(row) if row else None

    async def get_items_by_ids(self, item_ids: Iterable[str]) -> Dict[str, MenuItem]:
        rows = await self._select_in(ITEMS_TABLE, "id", item_ids, context="menu items batch lookup")
        items = [MenuItem.model_validate(row) for row in rows]
        return {item.id: item for item in items}

    async def count_items(self, restaurant_id: str) -> int:
        return await self._count(ITEMS_TABLE, "restaurant_id", restaurant_id, context="menu items count")

    async def category_has_items(self, category_id: str) -> bool:
        def _request() -> bool:
            response = (
                self.client.table(ITEMS_TABLE)
                .select("id")
                .eq("category_id", category_id)
                .limit(1)
                .execute()
            )
            return bool(response.data)

        return await self._read(_request, context="category usage check")

    async def insert_item(self, row: Mapping[str, Any]) -> MenuItem:
        created = await self._insert(ITEMS_TABLE, row, context="menu item creation")
        return MenuItem.model_validate(created)

    async def update_item(self, item_id: str, changes: Mapping[str, Any]) -> MenuItem:
        updated = await self._update(ITEMS_TABLE, item_id, changes, context="menu item update")
        return MenuItem.model_validate(updated)

    async def delete_item(self, item_id: str) -> None:
        await self._delete(ITEMS_TABLE, item_id, context="menu item removal")

    async def delete_items_by_restaurant(self, restaurant_id: str) -> int:
        return await self._delete_where(ITEMS_TABLE, "restaurant_id", restaurant_id, context="menu items purge")

    async def apply_sort_orders(
        self,
        table: str,
        entries: Sequence[Mapping[str, Any]],
        updated_at: datetime,
    ) -> int:
        """Write every ``{id, sort_order}`` pair in one database transaction."""

        payload = {
            "p_table": table,
            "p_entries": [{"id": str(entry["id"]), "sort_order": int(entry["sort_order"])} for entry in entries],
            "p_updated_at": format_timestamp(updated_at),
        }

        def _request() -> int:
            response = self.client.rpc(REORDER_FUNCTION, payload).execute()
            data = response.data
            if isinstance(data, list):
                data = data[0] if data else 0
            return int(data or 0)

        return await self._write(_request, context=f"{table} reorder")

    # Orders and reviews

    async def list_orders(
        self,
        restaurant_id: str,
        *,
        limit: Optional[int] = None,
        since: Optional[datetime] = None,
        status: Optional[str] = None,
    ) -> List[FoodOrder]:
        """Orders of a restaurant, newest first.

        Without ``limit`` every matching row is read, page by page, so the
        PostgREST max-rows cap never truncates a window.
        """

        def _query():
            query = self.client.table(ORDERS_TABLE).select("*").eq("restaurant_id", restaurant_id)
            if since is not None:
                query = query.gte("placed_at", format_timestamp(since))
            if status is not None:
                query = query.eq("status", status)
            return query.order("placed_at", desc=True).order("id", desc=False)

        rows = await self._read(lambda: self._collect(_query, limit), context="orders lookup")
        return [FoodOrder.model_validate(row) for row in rows]

    async def list_reviews(
        self,
        restaurant_id: str,
        *,
        limit: Optional[int] = None,
        status: Optional[str] = None,
    ) -> List[Review]:
        """Reviews of a restaurant, newest first."""

        def _query():
            query = self.client.table(REVIEWS_TABLE).select("*").eq("restaurant_id", restaurant_id)
            if status is not None:
                query = query.eq("status", status)
            return query.order("created_at", desc=True).order("id", desc=False)

        rows = await self._read(lambda: self._collect(_query, limit), context="reviews lookup")
        return [Review.model_validate(row) for row in rows]

    def _collect(self, build_query: Callable[[], Any], limit: Optional[int]) -> List[Dict[str, Any]]:
        if limit is not None:
            return build_query().limit(limit).execute().data or []
        rows: List[Dict[str, Any]] = []
        start = 0
        while True:
            page = build_query().range(start, start + self.page_size - 1).execute().data or []
            rows.extend(page)
            if len(page) < self.page_size:
                return rows
            start += self.page_size


__all__ = [
    "CATEGORIES_TABLE",
    "ITEMS_TABLE",
    "SupabaseDataStore",
    "format_timestamp",
    "serialize_row",
]
