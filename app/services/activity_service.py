"""Dashboard activity feed and counters across every accessible restaurant.

Reads are batched per entity type: one bounded query per restaurant, all of
them dispatched concurrently, followed by a single deduplicated user lookup.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Set, Tuple, TypeVar, Union

from pydantic import BaseModel, Field, computed_field

from app.config.settings import get_local_timezone
from app.models import FoodOrder, OrderStatus, PUBLISHED_REVIEW_STATUS, Review, StaffMember, StaffRole, StaffStatus, User
from app.services.access_service import RestaurantAccess, list_accessible_restaurants, resolve_access
from app.services.analytics_service import round_half_up
from app.services.data_store import SupabaseDataStore
from app.services.errors import Unauthenticated, Unauthorized

logger = logging.getLogger(__name__)
T = TypeVar("T")

MAX_ITEMS_PER_TYPE = 10
DEFAULT_ACTIVITY_LIMIT = 20
MAX_ACTIVITY_LIMIT = 100
REVIEW_EXCERPT_LENGTH = 80
ACTIVE_ORDER_STATUSES = frozenset(
    {OrderStatus.PENDING.value, OrderStatus.CONFIRMED.value, OrderStatus.PREPARING.value}
)
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class ActivityItem(BaseModel):
    id: str
    kind: str
    title: str
    description: str
    timestamp: datetime
    restaurant_id: str
    restaurant_name: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ActivityFeed(BaseModel):
    items: List[ActivityItem] = Field(default_factory=list)
    failed_restaurant_ids: List[str] = Field(default_factory=list)

    @computed_field
    @property
    def partial(self) -> bool:
        return bool(self.failed_restaurant_ids)


class DashboardOrderStats(BaseModel):
    pending_orders: int = 0
    today_orders: int = 0
    today_revenue: int = 0
    average_rating: float = 0
    failed_restaurant_ids: List[str] = Field(default_factory=list)


@dataclass(frozen=True)
class OrderActivity:
    order: FoodOrder
    restaurant_name: Optional[str]

    def to_item(self) -> ActivityItem:
        order = self.order
        label = order.order_number or order.id
        return ActivityItem(
            id=order.id,
            kind="order",
            title=f"New order #{label}",
            description=f"{order.customer_name or 'Guest'} - ${order.total / 100:.2f}",
            timestamp=order.placed_at,
            restaurant_id=order.restaurant_id,
            restaurant_name=self.restaurant_name,
            metadata={"status": order.status, "total": order.total, "item_count": len(order.items)},
        )


@dataclass(frozen=True)
class ReviewActivity:
    review: Review
    reviewer: Optional[User]
    restaurant_name: Optional[str]

    def to_item(self) -> ActivityItem:
        review = self.review
        text = review.review_text or ""
        if not text:
            description = "No comment"
        elif len(text) > REVIEW_EXCERPT_LENGTH:
            description = text[:REVIEW_EXCERPT_LENGTH] + "..."
        else:
            description = text
        return ActivityItem(
            id=review.id,
            kind="review",
            title=f"New {review.rating}-star review",
            description=description,
            timestamp=review.created_at,
            restaurant_id=review.restaurant_id,
            restaurant_name=self.restaurant_name,
            metadata={
                "rating": review.rating,
                "reviewer_name": (self.reviewer.name if self.reviewer else None) or "Anonymous",
            },
        )


STAFF_STATUS_LABELS: Dict[StaffStatus, str] = {
    StaffStatus.ACTIVE: "joined",
    StaffStatus.PENDING: "was invited",
    StaffStatus.INACTIVE: "left",
}

STAFF_ROLE_LABELS: Dict[StaffRole, str] = {
    StaffRole.MANAGER: "Manager",
    StaffRole.STAFF: "Staff",
}


@dataclass(frozen=True)
class StaffActivity:
    member: StaffMember
    user: Optional[User]
    restaurant_name: Optional[str]

    def to_item(self) -> ActivityItem:
        member = self.member
        display_name = (self.user.name if self.user else None) or member.name or member.email or "Team member"
        timestamp = member.updated_at or member.created_at or member.invited_at or _EPOCH
        return ActivityItem(
            id=member.id,
            kind="staff",
            title=f"{display_name} {STAFF_STATUS_LABELS[member.status]}",
            description=f"Role: {STAFF_ROLE_LABELS[member.role]}",
            timestamp=timestamp,
            restaurant_id=member.restaurant_id,
            restaurant_name=self.restaurant_name,
            metadata={"role": member.role.value, "status": member.status.value},
        )


ActivityEvent = Union[OrderActivity, ReviewActivity, StaffActivity]


def clamp_limit(limit: Optional[int]) -> int:
    if not limit:
        return DEFAULT_ACTIVITY_LIMIT
    return min(max(int(limit), 1), MAX_ACTIVITY_LIMIT)


async def resolve_scope(
    store: SupabaseDataStore,
    user: Optional[User],
    restaurant_id: Optional[str],
) -> List[RestaurantAccess]:
    """The single requested restaurant, or every restaurant the caller can access."""

    if user is None:
        raise Unauthenticated()
    if restaurant_id:
        access = await resolve_access(store, user, restaurant_id)
        if access is None:
            raise Unauthorized("Not authorized to view this restaurant's activity.")
        return [access]
    return await list_accessible_restaurants(store, user)


async def _fan_out(
    restaurant_ids: Sequence[str],
    fetch: Callable[[str], Awaitable[List[T]]],
    *,
    fail_fast: bool,
) -> Tuple[Dict[str, List[T]], Dict[str, BaseException]]:
    results = await asyncio.gather(
        *(fetch(restaurant_id) for restaurant_id in restaurant_ids),
        return_exceptions=not fail_fast,
    )
    rows: Dict[str, List[T]] = {}
    failures: Dict[str, BaseException] = {}
    for restaurant_id, result in zip(restaurant_ids, results):
        if isinstance(result, BaseException):
            failures[restaurant_id] = result
        else:
            rows[restaurant_id] = result
    return rows, failures


def _raise_if_nothing_survived(
    failures: Dict[Tuple[str, str], BaseException],
    restaurant_ids: Sequence[str],
    batches: int,
) -> None:
    if not failures:
        return
    for (restaurant_id, source), exc in failures.items():
        logger.warning(
            "Dashboard sub-read failed",
            extra={"restaurant_id": restaurant_id, "source": source, "error": repr(exc)},
        )
    if len(failures) >= len(restaurant_ids) * batches:
        raise next(iter(failures.values()))


async def get_recent_activity(
    store: SupabaseDataStore,
    user: Optional[User],
    restaurant_id: Optional[str] = None,
    limit: Optional[int] = None,
) -> ActivityFeed:
    limit = clamp_limit(limit)
    accesses = await resolve_scope(store, user, restaurant_id)
    if not accesses:
        return ActivityFeed()

    restaurant_ids = [access.restaurant_id for access in accesses]
    names = {access.restaurant_id: access.restaurant.name for access in accesses}
    fail_fast = restaurant_id is not None

    (orders, order_failures), (reviews, review_failures), (staff, staff_failures) = await asyncio.gather(
        _fan_out(restaurant_ids, lambda rid: store.list_orders(rid, limit=MAX_ITEMS_PER_TYPE), fail_fast=fail_fast),
        _fan_out(restaurant_ids, lambda rid: store.list_reviews(rid, limit=MAX_ITEMS_PER_TYPE), fail_fast=fail_fast),
        _fan_out(restaurant_ids, lambda rid: store.list_staff(rid, limit=MAX_ITEMS_PER_TYPE), fail_fast=fail_fast),
    )
    failures: Dict[Tuple[str, str], BaseException] = {}
    failures.update({(rid, "orders"): exc for rid, exc in order_failures.items()})
    failures.update({(rid, "reviews"): exc for rid, exc in review_failures.items()})
    failures.update({(rid, "staff"): exc for rid, exc in staff_failures.items()})
    _raise_if_nothing_survived(failures, restaurant_ids, 3)

    user_ids: Set[str] = set()
    for rows in reviews.values():
        user_ids.update(review.customer_id for review in rows if review.customer_id)
    for rows in staff.values():
        user_ids.update(member.user_id for member in rows if member.user_id)
    users = await store.get_users_by_ids(user_ids) if user_ids else {}

    events: List[ActivityEvent] = []
    for rid in restaurant_ids:
        name = names.get(rid)
        events.extend(OrderActivity(order, name) for order in orders.get(rid, []))
        events.extend(
            ReviewActivity(review, users.get(review.customer_id or ""), name) for review in reviews.get(rid, [])
        )
        events.extend(StaffActivity(member, users.get(member.user_id or ""), name) for member in staff.get(rid, []))

    items = [event.to_item() for event in events]
    items.sort(key=lambda item: (item.timestamp, item.id), reverse=True)
    return ActivityFeed(
        items=items[:limit],
        failed_restaurant_ids=sorted({rid for rid, _ in failures}),
    )


def local_midnight(now: Optional[datetime] = None) -> datetime:
    local_now = (now or datetime.now(timezone.utc)).astimezone(get_local_timezone())
    return local_now.replace(hour=0, minute=0, second=0, microsecond=0)


async def get_order_stats(
    store: SupabaseDataStore,
    user: Optional[User],
    restaurant_id: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> DashboardOrderStats:
    accesses = await resolve_scope(store, user, restaurant_id)
    if not accesses:
        return DashboardOrderStats()

    restaurant_ids = [access.restaurant_id for access in accesses]
    fail_fast = restaurant_id is not None
    (orders, order_failures), (reviews, review_failures) = await asyncio.gather(
        _fan_out(restaurant_ids, lambda rid: store.list_orders(rid), fail_fast=fail_fast),
        _fan_out(
            restaurant_ids,
            lambda rid: store.list_reviews(rid, status=PUBLISHED_REVIEW_STATUS),
            fail_fast=fail_fast,
        ),
    )
    failures: Dict[Tuple[str, str], BaseException] = {}
    failures.update({(rid, "orders"): exc for rid, exc in order_failures.items()})
    failures.update({(rid, "reviews"): exc for rid, exc in review_failures.items()})
    _raise_if_nothing_survived(failures, restaurant_ids, 2)

    stats = summarize_orders(
        [order for rows in orders.values() for order in rows],
        [review for rows in reviews.values() for review in rows],
        today_start=local_midnight(now),
    )
    stats.failed_restaurant_ids = sorted({rid for rid, _ in failures})
    return stats


def summarize_orders(
    orders: Sequence[FoodOrder],
    reviews: Sequence[Review],
    *,
    today_start: datetime,
) -> DashboardOrderStats:
    pending = 0
    today_orders = 0
    today_revenue = 0
    for order in orders:
        if order.status in ACTIVE_ORDER_STATUSES:
            pending += 1
        if order.placed_at >= today_start:
            today_orders += 1
            today_revenue += order.total

    total_rating = sum(review.rating for review in reviews)
    average = round_half_up(total_rating / len(reviews), 1) if reviews else 0
    return DashboardOrderStats(
        pending_orders=pending,
        today_orders=today_orders,
        today_revenue=today_revenue,
        average_rating=average,
    )


__all__ = [
    "ActivityEvent",
    "ActivityFeed",
    "ActivityItem",
    "DashboardOrderStats",
    "OrderActivity",
    "ReviewActivity",
    "StaffActivity",
    "clamp_limit",
    "get_order_stats",
    "get_recent_activity",
    "local_midnight",
    "summarize_orders",
]
