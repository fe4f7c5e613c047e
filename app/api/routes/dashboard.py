from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import get_current_user, get_data_store
from app.models import User
from app.services import activity_service
from app.services.activity_service import ActivityFeed, DashboardOrderStats
from app.services.data_store import SupabaseDataStore

router = APIRouter()


@router.get("/activity", response_model=ActivityFeed)
async def dashboard_activity_endpoint(
    restaurant_id: Optional[str] = Query(default=None),
    limit: Optional[int] = Query(default=None),
    store: SupabaseDataStore = Depends(get_data_store),
    user: Optional[User] = Depends(get_current_user),
) -> ActivityFeed:
    return await activity_service.get_recent_activity(store, user, restaurant_id, limit)


@router.get("/order-stats", response_model=DashboardOrderStats)
async def dashboard_order_stats_endpoint(
    restaurant_id: Optional[str] = Query(default=None),
    store: SupabaseDataStore = Depends(get_data_store),
    user: Optional[User] = Depends(get_current_user),
) -> DashboardOrderStats:
    return await activity_service.get_order_stats(store, user, restaurant_id)
