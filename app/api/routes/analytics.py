"""Per-restaurant analytics; manager role or higher."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import get_current_user, get_data_store
from app.models import User
from app.services import analytics_service
from app.services.analytics_service import DailyTrend, HourlyBucket, OrderStats, PopularItem, ReviewSummary
from app.services.data_store import SupabaseDataStore

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


@router.get("/{restaurant_id}/orders", response_model=OrderStats)
async def order_stats_endpoint(
    restaurant_id: str,
    days: Optional[float] = Query(default=None),
    store: SupabaseDataStore = Depends(get_data_store),
    user: Optional[User] = Depends(get_current_user),
) -> OrderStats:
    return await analytics_service.get_order_stats(store, user, restaurant_id, days)


@router.get("/{restaurant_id}/trends", response_model=List[DailyTrend])
async def daily_trends_endpoint(
    restaurant_id: str,
    days: Optional[float] = Query(default=None),
    store: SupabaseDataStore = Depends(get_data_store),
    user: Optional[User] = Depends(get_current_user),
) -> List[DailyTrend]:
    return await analytics_service.get_daily_trends(store, user, restaurant_id, days)


@router.get("/{restaurant_id}/popular-items", response_model=List[PopularItem])
async def popular_items_endpoint(
    restaurant_id: str,
    limit: Optional[int] = Query(default=None),
    store: SupabaseDataStore = Depends(get_data_store),
    user: Optional[User] = Depends(get_current_user),
) -> List[PopularItem]:
    return await analytics_service.get_popular_items(store, user, restaurant_id, limit)


@router.get("/{restaurant_id}/hourly", response_model=List[HourlyBucket])
async def hourly_distribution_endpoint(
    restaurant_id: str,
    days: Optional[float] = Query(default=None),
    store: SupabaseDataStore = Depends(get_data_store),
    user: Optional[User] = Depends(get_current_user),
) -> List[HourlyBucket]:
    return await analytics_service.get_hourly_distribution(store, user, restaurant_id, days)


@router.get("/{restaurant_id}/reviews", response_model=ReviewSummary)
async def review_summary_endpoint(
    restaurant_id: str,
    store: SupabaseDataStore = Depends(get_data_store),
    user: Optional[User] = Depends(get_current_user),
) -> ReviewSummary:
    return await analytics_service.get_review_summary(store, user, restaurant_id)
