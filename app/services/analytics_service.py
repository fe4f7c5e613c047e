"""Time-windowed statistics for a single restaurant (manager role or higher)."""

from __future__ import annotations

import math
from collections import Counter
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import BaseModel, Field

from app.config.settings import get_local_timezone
from app.models import FoodOrder, OrderStatus, PUBLISHED_REVIEW_STATUS, Review, User
from app.services.access_service import Role, require_role
from app.services.data_store import SupabaseDataStore

DEFAULT_DAYS = 30
DEFAULT_TREND_DAYS = 14
MIN_DAYS = 1
MAX_DAYS = 365
DEFAULT_POPULAR_LIMIT = 10
MAX_POPULAR_LIMIT = 50
RECENT_REVIEWS = 5
OPEN_ORDER_STATUSES = frozenset(
    {
        OrderStatus.PENDING.value,
        OrderStatus.CONFIRMED.value,
        OrderStatus.PREPARING.value,
        OrderStatus.READY_FOR_PICKUP.value,
    }
)

Number = Union[int, float]


class OrderStats(BaseModel):
    days: int
    total_orders: int = 0
    completed_orders: int = 0
    cancelled_orders: int = 0
    pending_orders: int = 0
    total_revenue: int = 0
    average_order_value: float = 0
    completion_rate: int = 0


class DailyTrend(BaseModel):
    date: date
    orders: int = 0
    revenue: int = 0


class PopularItem(BaseModel):
    id: str
    name: str
    count: Number = 0
    revenue: Number = 0


class HourlyBucket(BaseModel):
    hour: int
    label: str
    orders: int = 0


class RecentReview(BaseModel):
    rating: int
    title: Optional[str] = None
    created_at: datetime


class ReviewSummary(BaseModel):
    total_reviews: int = 0
    average_rating: float = 0
    recent_reviews: List[RecentReview] = Field(default_factory=list)


def clamp_days(days: Any, default: int = DEFAULT_DAYS) -> int:
    """Missing, non-finite or sub-minimum windows fall back to ``default``."""

    if days is None or isinstance(days, bool):
        return default
    try:
        value = float(days)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(value) or value < MIN_DAYS:
        return default
    return min(int(math.floor(value)), MAX_DAYS)


def clamp_popular_limit(limit: Optional[int]) -> int:
    if not limit:
        return DEFAULT_POPULAR_LIMIT
    return min(max(int(limit), 1), MAX_POPULAR_LIMIT)


def window_start(now: datetime, days: int) -> datetime:
    return now - timedelta(days=days)


def hour_label(hour: int) -> str:
    display = 12 if hour % 12 == 0 else hour % 12
    return f"{display}{'AM' if hour < 12 else 'PM'}"


def _non_negative(value: Optional[Number], default: Number) -> Number:
    if value is None:
        return default
    if isinstance(value, float):
        if not math.isfinite(value):
            return default
        if value.is_integer():
            value = int(value)
    return max(value, 0)


def round_half_up(value: float, digits: int = 0) -> Number:
    """Round halves upward: 12.5 -> 13 and 4.25 -> 4.3."""

    if digits == 0:
        return math.floor(value + 0.5)
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


# Pure computations


def compute_order_stats(orders: Sequence[FoodOrder], *, now: datetime, days: int) -> OrderStats:
    cutoff = window_start(now, days)
    recent = [order for order in orders if order.placed_at >= cutoff]
    completed = [order for order in recent if order.status == OrderStatus.COMPLETED.value]
    cancelled = sum(1 for order in recent if order.status == OrderStatus.CANCELLED.value)
    pending = sum(1 for order in recent if order.status in OPEN_ORDER_STATUSES)

    total = len(recent)
    revenue = sum(order.total or 0 for order in completed)
    return OrderStats(
        days=days,
        total_orders=total,
        completed_orders=len(completed),
        cancelled_orders=cancelled,
        pending_orders=pending,
        total_revenue=revenue,
        average_order_value=revenue / len(completed) if completed else 0,
        completion_rate=round_half_up(len(completed) / total * 100) if total else 0,
    )


def compute_daily_trends(
    orders: Sequence[FoodOrder],
    *,
    now: datetime,
    days: int,
    tz: Optional[tzinfo] = None,
) -> List[DailyTrend]:
    """One bucket per local calendar day of the window, oldest first."""

    tz = tz or get_local_timezone()
    today = now.astimezone(tz).date()
    buckets: Dict[date, DailyTrend] = {}
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        buckets[day] = DailyTrend(date=day)

    cutoff = window_start(now, days)
    for order in orders:
        if order.placed_at < cutoff:
            continue
        bucket = buckets.get(order.placed_at.astimezone(tz).date())
        if bucket is None:
            continue
        bucket.orders += 1
        if order.status == OrderStatus.COMPLETED.value:
            bucket.revenue += order.total or 0
    return list(buckets.values())


def compute_popular_items(orders: Sequence[FoodOrder], *, limit: int) -> List[PopularItem]:
    items: Dict[str, PopularItem] = {}
    for order in orders:
        if order.status != OrderStatus.COMPLETED.value:
            continue
        for line in order.items:
            key = line.menu_item_id or line.id or line.name
            if not key:
                continue
            entry = items.get(key)
            if entry is None:
                entry = items[key] = PopularItem(id=key, name=line.name or "Unknown Item")
            quantity = _non_negative(line.quantity, 1)
            price = _non_negative(line.price, 0)
            entry.count += quantity
            entry.revenue += price * quantity
    ranked = sorted(items.values(), key=lambda entry: entry.count, reverse=True)
    return ranked[:limit]


def compute_hourly_distribution(
    orders: Sequence[FoodOrder],
    *,
    now: datetime,
    days: int,
    tz: Optional[tzinfo] = None,
) -> List[HourlyBucket]:
    tz = tz or get_local_timezone()
    cutoff = window_start(now, days)
    counts: Counter[int] = Counter(
        order.placed_at.astimezone(tz).hour for order in orders if order.placed_at >= cutoff
    )
    return [HourlyBucket(hour=hour, label=hour_label(hour), orders=counts.get(hour, 0)) for hour in range(24)]


def compute_review_summary(reviews: Sequence[Review]) -> ReviewSummary:
    published = [review for review in reviews if review.status == PUBLISHED_REVIEW_STATUS]
    if not published:
        return ReviewSummary()
    average = sum(review.rating for review in published) / len(published)
    recent = sorted(published, key=lambda review: review.created_at, reverse=True)[:RECENT_REVIEWS]
    return ReviewSummary(
        total_reviews=len(published),
        average_rating=round_half_up(average, 1),
        recent_reviews=[
            RecentReview(rating=review.rating, title=review.title, created_at=review.created_at)
            for review in recent
        ],
    )


# Authorized entry points


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def get_order_stats(
    store: SupabaseDataStore,
    user: Optional[User],
    restaurant_id: str,
    days: Any = None,
    *,
    now: Optional[datetime] = None,
) -> OrderStats:
    await require_role(store, user, restaurant_id, Role.MANAGER)
    window = clamp_days(days)
    now = now or _utcnow()
    orders = await store.list_orders(restaurant_id, since=window_start(now, window))
    return compute_order_stats(orders, now=now, days=window)


async def get_daily_trends(
    store: SupabaseDataStore,
    user: Optional[User],
    restaurant_id: str,
    days: Any = None,
    *,
    now: Optional[datetime] = None,
) -> List[DailyTrend]:
    await require_role(store, user, restaurant_id, Role.MANAGER)
    window = clamp_days(days, DEFAULT_TREND_DAYS)
    now = now or _utcnow()
    orders = await store.list_orders(restaurant_id, since=window_start(now, window))
    return compute_daily_trends(orders, now=now, days=window)


async def get_popular_items(
    store: SupabaseDataStore,
    user: Optional[User],
    restaurant_id: str,
    limit: Optional[int] = None,
) -> List[PopularItem]:
    await require_role(store, user, restaurant_id, Role.MANAGER)
    orders = await store.list_orders(restaurant_id, status=OrderStatus.COMPLETED.value)
    return compute_popular_items(orders, limit=clamp_popular_limit(limit))


async def get_hourly_distribution(
    store: SupabaseDataStore,
    user: Optional[User],
    restaurant_id: str,
    days: Any = None,
    *,
    now: Optional[datetime] = None,
) -> List[HourlyBucket]:
    await require_role(store, user, restaurant_id, Role.MANAGER)
    window = clamp_days(days)
    now = now or _utcnow()
    orders = await store.list_orders(restaurant_id, since=window_start(now, window))
    return compute_hourly_distribution(orders, now=now, days=window)


async def get_review_summary(
    store: SupabaseDataStore,
    user: Optional[User],
    restaurant_id: str,
) -> ReviewSummary:
    await require_role(store, user, restaurant_id, Role.MANAGER)
    reviews = await store.list_reviews(restaurant_id, status=PUBLISHED_REVIEW_STATUS)
    return compute_review_summary(reviews)


__all__ = [
    "DailyTrend",
    "HourlyBucket",
    "OrderStats",
    "PopularItem",
    "ReviewSummary",
    "clamp_days",
    "compute_daily_trends",
    "compute_hourly_distribution",
    "compute_order_stats",
    "compute_popular_items",
    "compute_review_summary",
    "get_daily_trends",
    "get_hourly_distribution",
    "get_order_stats",
    "get_popular_items",
    "get_review_summary",
    "hour_label",
]
