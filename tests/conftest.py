from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple
from uuid import uuid4

import pytest

from app.models import (
    FoodOrder,
    MenuCategory,
    MenuItem,
    Restaurant,
    Review,
    StaffMember,
    StaffPermissions,
    StaffRole,
    StaffStatus,
    User,
)
from app.services.data_store import CATEGORIES_TABLE, ITEMS_TABLE, SupabaseDataStore, serialize_row
from app.services.errors import NotFound, UpstreamError

NOW = datetime(2024, 6, 15, 18, 0, tzinfo=timezone.utc)


def _merge(record, changes: Mapping[str, Any]):
    data = record.model_dump()
    data.update(serialize_row(changes))
    return type(record).model_validate(data)


class FakeDataStore(SupabaseDataStore):
    """In-memory stand-in for the Supabase tables."""

    def __init__(self):
        super().__init__(client=None)
        self.users: Dict[str, User] = {}
        self.restaurants: Dict[str, Restaurant] = {}
        self.staff: Dict[str, StaffMember] = {}
        self.categories: Dict[str, MenuCategory] = {}
        self.items: Dict[str, MenuItem] = {}
        self.orders: Dict[str, FoodOrder] = {}
        self.reviews: Dict[str, Review] = {}
        self.failing_reads: Set[Tuple[str, str]] = set()
        self.reorder_calls: List[Tuple[str, List[Dict[str, Any]]]] = []
        self.inserted_rows: List[Dict[str, Any]] = []

    # Seeding helpers

    def add_user(self, email: str, name: Optional[str] = None) -> User:
        user = User(id=str(uuid4()), email=email, name=name)
        self.users[user.id] = user
        return user

    def add_restaurant(
        self,
        owner: User,
        name: str = "Bistro",
        tier: Optional[str] = "STARTER",
        slug: Optional[str] = None,
    ) -> Restaurant:
        restaurant = Restaurant(id=str(uuid4()), owner_id=owner.id, name=name, slug=slug, subscription_tier=tier)
        self.restaurants[restaurant.id] = restaurant
        return restaurant

    def add_staff(
        self,
        restaurant: Restaurant,
        *,
        user: Optional[User] = None,
        email: Optional[str] = None,
        role: StaffRole = StaffRole.STAFF,
        status: StaffStatus = StaffStatus.ACTIVE,
        permissions: Optional[StaffPermissions] = None,
        updated_at: Optional[datetime] = None,
    ) -> StaffMember:
        member = StaffMember(
            id=str(uuid4()),
            restaurant_id=restaurant.id,
            user_id=user.id if user else None,
            email=(email or (user.email if user else "")).lower() or None,
            name=user.name if user else None,
            role=role,
            status=status,
            permissions=permissions,
            created_at=updated_at or NOW - timedelta(days=3),
            updated_at=updated_at or NOW - timedelta(days=3),
        )
        self.staff[member.id] = member
        return member

    def add_category(self, restaurant: Restaurant, name: str = "Mains", sort_order: int = 0) -> MenuCategory:
        category = MenuCategory(
            id=str(uuid4()),
            restaurant_id=restaurant.id,
            name=name,
            sort_order=sort_order,
            created_at=NOW,
            updated_at=NOW,
        )
        self.categories[category.id] = category
        return category

    def add_item(
        self,
        category: MenuCategory,
        name: str = "Burger",
        price: int = 1599,
        sort_order: int = 0,
        **extra: Any,
    ) -> MenuItem:
        item = MenuItem(
            id=str(uuid4()),
            restaurant_id=category.restaurant_id,
            category_id=category.id,
            name=name,
            price=price,
            sort_order=sort_order,
            created_at=NOW,
            updated_at=NOW,
            **extra,
        )
        self.items[item.id] = item
        return item

    def add_order(
        self,
        restaurant: Restaurant,
        *,
        placed_at: datetime,
        status: str = "COMPLETED",
        total: int = 2000,
        items: Optional[List[Dict[str, Any]]] = None,
        customer_name: Optional[str] = "Sam",
    ) -> FoodOrder:
        order = FoodOrder(
            id=str(uuid4()),
            restaurant_id=restaurant.id,
            order_number=f"{len(self.orders) + 1:04d}",
            customer_name=customer_name,
            items=items or [],
            subtotal=total,
            total=total,
            status=status,
            placed_at=placed_at,
        )
        self.orders[order.id] = order
        return order

    def add_review(
        self,
        restaurant: Restaurant,
        *,
        rating: int,
        created_at: datetime,
        status: str = "published",
        customer: Optional[User] = None,
        review_text: Optional[str] = None,
        title: Optional[str] = None,
    ) -> Review:
        review = Review(
            id=str(uuid4()),
            restaurant_id=restaurant.id,
            customer_id=customer.id if customer else None,
            rating=rating,
            title=title,
            review_text=review_text,
            status=status,
            created_at=created_at,
        )
        self.reviews[review.id] = review
        return review

    def _check_read(self, restaurant_id: str, source: str) -> None:
        if (restaurant_id, source) in self.failing_reads:
            raise UpstreamError(f"{source} read failed")

    # Users and restaurants

    async def get_user_by_email(self, email: str) -> Optional[User]:
        return next((user for user in self.users.values() if user.email == email), None)

    async def get_users_by_ids(self, user_ids: Iterable[str]) -> Dict[str, User]:
        return {uid: self.users[uid] for uid in set(user_ids) if uid in self.users}

    async def get_restaurant(self, restaurant_id: str) -> Optional[Restaurant]:
        return self.restaurants.get(restaurant_id)

    async def get_restaurants_by_ids(self, restaurant_ids: Iterable[str]) -> Dict[str, Restaurant]:
        return {rid: self.restaurants[rid] for rid in set(restaurant_ids) if rid in self.restaurants}

    async def list_restaurants_by_owner(self, owner_id: str) -> List[Restaurant]:
        return [r for r in self.restaurants.values() if r.owner_id == owner_id]

    async def get_restaurant_by_slug(self, slug: str) -> Optional[Restaurant]:
        return next((r for r in self.restaurants.values() if r.slug == slug), None)

    # Staff

    async def get_staff(self, staff_id: str) -> Optional[StaffMember]:
        return self.staff.get(staff_id)

    async def get_active_membership(self, user_id: str, restaurant_id: str) -> Optional[StaffMember]:
        return next(
            (
                m
                for m in self.staff.values()
                if m.user_id == user_id and m.restaurant_id == restaurant_id and m.status is StaffStatus.ACTIVE
            ),
            None,
        )

    async def list_active_memberships(self, user_id: str) -> List[StaffMember]:
        return [m for m in self.staff.values() if m.user_id == user_id and m.status is StaffStatus.ACTIVE]

    async def list_staff(self, restaurant_id: str, *, limit: Optional[int] = None) -> List[StaffMember]:
        self._check_read(restaurant_id, "staff")
        rows = sorted(
            (m for m in self.staff.values() if m.restaurant_id == restaurant_id),
            key=lambda m: m.created_at or NOW,
            reverse=True,
        )
        return rows[:limit] if limit is not None else rows

    async def list_invitations_for_email(self, email: str) -> List[StaffMember]:
        return [m for m in self.staff.values() if m.email == email and m.status is StaffStatus.PENDING]

    async def insert_staff(self, row: Mapping[str, Any]) -> StaffMember:
        member = StaffMember.model_validate({"id": str(uuid4()), **serialize_row(row)})
        self.staff[member.id] = member
        return member

    async def update_staff(self, staff_id: str, changes: Mapping[str, Any]) -> StaffMember:
        if staff_id not in self.staff:
            raise NotFound()
        self.staff[staff_id] = _merge(self.staff[staff_id], changes)
        return self.staff[staff_id]

    async def delete_staff(self, staff_id: str) -> None:
        if self.staff.pop(staff_id, None) is None:
            raise NotFound()

    # Categories

    async def list_categories(self, restaurant_id: str) -> List[MenuCategory]:
        rows = [c for c in self.categories.values() if c.restaurant_id == restaurant_id]
        return sorted(rows, key=lambda c: (c.sort_order, c.created_at or NOW))

    async def get_category(self, category_id: str) -> Optional[MenuCategory]:
        return self.categories.get(category_id)

    async def get_categories_by_ids(self, category_ids: Iterable[str]) -> Dict[str, MenuCategory]:
        return {cid: self.categories[cid] for cid in set(category_ids) if cid in self.categories}

    async def count_categories(self, restaurant_id: str) -> int:
        return sum(1 for c in self.categories.values() if c.restaurant_id == restaurant_id)

    async def insert_category(self, row: Mapping[str, Any]) -> MenuCategory:
        self.inserted_rows.append(dict(row))
        category = MenuCategory.model_validate({"id": str(uuid4()), **serialize_row(row)})
        self.categories[category.id] = category
        return category

    async def update_category(self, category_id: str, changes: Mapping[str, Any]) -> MenuCategory:
        if category_id not in self.categories:
            raise NotFound()
        self.categories[category_id] = _merge(self.categories[category_id], changes)
        return self.categories[category_id]

    async def delete_category(self, category_id: str) -> None:
        if self.categories.pop(category_id, None) is None:
            raise NotFound()

    async def delete_categories_by_restaurant(self, restaurant_id: str) -> int:
        doomed = [cid for cid, c in self.categories.items() if c.restaurant_id == restaurant_id]
        for cid in doomed:
            del self.categories[cid]
        return len(doomed)

    # Items

    async def list_items_by_restaurant(self, restaurant_id: str) -> List[MenuItem]:
        rows = [i for i in self.items.values() if i.restaurant_id == restaurant_id]
        return sorted(rows, key=lambda i: i.sort_order)

    async def list_items_by_category(self, category_id: str) -> List[MenuItem]:
        rows = [i for i in self.items.values() if i.category_id == category_id]
        return sorted(rows, key=lambda i: i.sort_order)

    async def get_item(self, item_id: str) -> Optional[MenuItem]:
        return self.items.get(item_id)

    async def get_items_by_ids(self, item_ids: Iterable[str]) -> Dict[str, MenuItem]:
        return {iid: self.items[iid] for iid in set(item_ids) if iid in self.items}

    async def count_items(self, restaurant_id: str) -> int:
        return sum(1 for i in self.items.values() if i.restaurant_id == restaurant_id)

    async def category_has_items(self, category_id: str) -> bool:
        return any(i.category_id == category_id for i in self.items.values())

    async def insert_item(self, row: Mapping[str, Any]) -> MenuItem:
        self.inserted_rows.append(dict(row))
        item = MenuItem.model_validate({"id": str(uuid4()), **serialize_row(row)})
        self.items[item.id] = item
        return item

    async def update_item(self, item_id: str, changes: Mapping[str, Any]) -> MenuItem:
        if item_id not in self.items:
            raise NotFound()
        self.items[item_id] = _merge(self.items[item_id], changes)
        return self.items[item_id]

    async def delete_item(self, item_id: str) -> None:
        if self.items.pop(item_id, None) is None:
            raise NotFound()

    async def delete_items_by_restaurant(self, restaurant_id: str) -> int:
        doomed = [iid for iid, i in self.items.items() if i.restaurant_id == restaurant_id]
        for iid in doomed:
            del self.items[iid]
        return len(doomed)

    async def apply_sort_orders(
        self,
        table: str,
        entries: Sequence[Mapping[str, Any]],
        updated_at: datetime,
    ) -> int:
        rows = {ITEMS_TABLE: self.items, CATEGORIES_TABLE: self.categories}[table]
        self.reorder_calls.append((table, [dict(entry) for entry in entries]))
        for entry in entries:
            rows[entry["id"]] = _merge(rows[entry["id"]], {"sort_order": entry["sort_order"], "updated_at": updated_at})
        return len(entries)

    # Orders and reviews

    async def list_orders(
        self,
        restaurant_id: str,
        *,
        limit: Optional[int] = None,
        since: Optional[datetime] = None,
        status: Optional[str] = None,
    ) -> List[FoodOrder]:
        self._check_read(restaurant_id, "orders")
        rows = [
            o
            for o in self.orders.values()
            if o.restaurant_id == restaurant_id
            and (since is None or o.placed_at >= since)
            and (status is None or o.status == status)
        ]
        rows.sort(key=lambda o: o.placed_at, reverse=True)
        return rows[:limit] if limit is not None else rows

    async def list_reviews(
        self,
        restaurant_id: str,
        *,
        limit: Optional[int] = None,
        status: Optional[str] = None,
    ) -> List[Review]:
        self._check_read(restaurant_id, "reviews")
        rows = [
            r
            for r in self.reviews.values()
            if r.restaurant_id == restaurant_id and (status is None or r.status == status)
        ]
        rows.sort(key=lambda r: r.created_at, reverse=True)
        return rows[:limit] if limit is not None else rows


@pytest.fixture(name="store")
def store_fixture() -> FakeDataStore:
    return FakeDataStore()


@pytest.fixture(name="owner")
def owner_fixture(store: FakeDataStore) -> User:
    return store.add_user("owner@example.com", "Olivia Owner")


@pytest.fixture(name="restaurant")
def restaurant_fixture(store: FakeDataStore, owner: User) -> Restaurant:
    return store.add_restaurant(owner, "Olivia's Diner", slug="olivias-diner")
