"""Staff invitations and membership management."""

from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends

from app.api.dependencies import get_current_user, get_data_store, get_notifier
from app.models import StaffMember, User
from app.schemas import StaffInvite, StaffUpdate
from app.services import staff_service
from app.services.data_store import SupabaseDataStore
from app.services.notification_service import NotificationDispatcher

router = APIRouter(prefix="/api/staff", tags=["staff"])


@router.get("/invitations", response_model=List[StaffMember])
async def my_invitations_endpoint(
    store: SupabaseDataStore = Depends(get_data_store),
    user: Optional[User] = Depends(get_current_user),
) -> List[StaffMember]:
    return await staff_service.get_my_pending_invitations(store, user)


@router.post("/invitations/{staff_id}/accept", response_model=StaffMember)
async def accept_invitation_endpoint(
    staff_id: str,
    store: SupabaseDataStore = Depends(get_data_store),
    user: Optional[User] = Depends(get_current_user),
) -> StaffMember:
    return await staff_service.accept_invitation(store, user, staff_id)


@router.post("/invitations/{staff_id}/decline")
async def decline_invitation_endpoint(
    staff_id: str,
    store: SupabaseDataStore = Depends(get_data_store),
    user: Optional[User] = Depends(get_current_user),
) -> Dict[str, bool]:
    await staff_service.decline_invitation(store, user, staff_id)
    return {"success": True}


@router.get("/restaurants/{restaurant_id}", response_model=List[StaffMember])
async def list_staff_endpoint(
    restaurant_id: str,
    store: SupabaseDataStore = Depends(get_data_store),
    user: Optional[User] = Depends(get_current_user),
) -> List[StaffMember]:
    return await staff_service.list_staff(store, user, restaurant_id)


@router.post("", response_model=StaffMember, status_code=201)
async def invite_staff_endpoint(
    payload: StaffInvite,
    store: SupabaseDataStore = Depends(get_data_store),
    user: Optional[User] = Depends(get_current_user),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> StaffMember:
    return await staff_service.invite_staff(store, user, payload.model_dump(), notifier=notifier)


@router.patch("/{staff_id}", response_model=StaffMember)
async def update_staff_endpoint(
    staff_id: str,
    payload: StaffUpdate,
    store: SupabaseDataStore = Depends(get_data_store),
    user: Optional[User] = Depends(get_current_user),
) -> StaffMember:
    return await staff_service.update_staff(store, user, staff_id, payload.model_dump(exclude_unset=True))


@router.post("/{staff_id}/deactivate", response_model=StaffMember)
async def deactivate_staff_endpoint(
    staff_id: str,
    store: SupabaseDataStore = Depends(get_data_store),
    user: Optional[User] = Depends(get_current_user),
) -> StaffMember:
    return await staff_service.deactivate_staff(store, user, staff_id)


@router.post("/{staff_id}/reactivate", response_model=StaffMember)
async def reactivate_staff_endpoint(
    staff_id: str,
    store: SupabaseDataStore = Depends(get_data_store),
    user: Optional[User] = Depends(get_current_user),
) -> StaffMember:
    return await staff_service.reactivate_staff(store, user, staff_id)


@router.delete("/{staff_id}")
async def remove_staff_endpoint(
    staff_id: str,
    store: SupabaseDataStore = Depends(get_data_store),
    user: Optional[User] = Depends(get_current_user),
) -> Dict[str, bool]:
    await staff_service.remove_staff(store, user, staff_id)
    return {"success": True}
