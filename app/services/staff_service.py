"""Staff invitations and membership lifecycle.

Rows move PENDING -> ACTIVE on acceptance, ACTIVE <-> INACTIVE on
deactivation/reactivation, and are hard-deleted on decline or removal.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError

from app.models import StaffMember, StaffPermissions, StaffRole, StaffStatus, User
from app.services.access_service import Role, require_owner, require_role
from app.services.data_store import SupabaseDataStore
from app.services.errors import Conflict, NotFound, Unauthorized, ValidationFailed
from app.services.identity_service import require_user
from app.services.notification_service import NotificationDispatcher
from app.services.validation import validate_optional_string, validate_required_string

logger = logging.getLogger(__name__)

EMAIL_MAX = 254
STAFF_NAME_MAX = 100
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
OPEN_MEMBERSHIP_STATUSES = frozenset({StaffStatus.ACTIVE, StaffStatus.PENDING})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(value: Any) -> str:
    email = validate_required_string(value, "Email", max_length=EMAIL_MAX).lower()
    if not EMAIL_PATTERN.match(email):
        raise ValidationFailed("Email address is not valid.")
    return email


def _parse_role(value: Any) -> StaffRole:
    try:
        return StaffRole(value)
    except ValueError as exc:
        raise ValidationFailed("Role must be MANAGER or STAFF.") from exc


def _parse_permissions(value: Any) -> StaffPermissions:
    if isinstance(value, StaffPermissions):
        return value
    try:
        return StaffPermissions.model_validate(value)
    except ValidationError as exc:
        raise ValidationFailed("Permissions must be a set of true/false flags.") from exc


def permissions_for_invite(role: StaffRole, permissions: Any = None) -> StaffPermissions:
    if role is StaffRole.MANAGER:
        return StaffPermissions.full()
    if permissions is None:
        return StaffPermissions.orders_only()
    return _parse_permissions(permissions)


async def _load_member(store: SupabaseDataStore, staff_id: str) -> StaffMember:
    member = await store.get_staff(staff_id)
    if member is None:
        raise NotFound("Staff member not found.")
    return member


async def list_staff(store: SupabaseDataStore, user: Optional[User], restaurant_id: str) -> List[StaffMember]:
    await require_role(store, user, restaurant_id, Role.MANAGER)
    return await store.list_staff(restaurant_id)


async def invite_staff(
    store: SupabaseDataStore,
    user: Optional[User],
    payload: Mapping[str, Any],
    *,
    notifier: Optional[NotificationDispatcher] = None,
) -> StaffMember:
    restaurant_id = validate_required_string(payload.get("restaurant_id"), "Restaurant")
    email = normalize_email(payload.get("email"))
    name = validate_optional_string(payload.get("name"), "Name", max_length=STAFF_NAME_MAX)
    role = _parse_role(payload.get("role", StaffRole.STAFF.value))
    permissions = permissions_for_invite(role, payload.get("permissions"))

    restaurant = await require_owner(store, user, restaurant_id)
    if user is not None and user.email.lower() == email:
        raise ValidationFailed("You already own this restaurant.")

    existing = await store.list_staff(restaurant.id)
    for member in existing:
        if (member.email or "").lower() == email and member.status in OPEN_MEMBERSHIP_STATUSES:
            raise Conflict("This email already has an active or pending invitation.")

    now = _utcnow()
    member = await store.insert_staff(
        {
            "restaurant_id": restaurant.id,
            "email": email,
            "name": name,
            "role": role,
            "status": StaffStatus.PENDING,
            "permissions": permissions,
            "invited_at": now,
            "created_at": now,
            "updated_at": now,
        }
    )
    logger.info("Staff invited", extra={"restaurant_id": restaurant.id, "staff_id": member.id, "role": role.value})

    if notifier is not None:
        notifier.dispatch_in_background(
            email,
            f"You're invited to join {restaurant.name}",
            f"You have been invited to help manage {restaurant.name} as {role.value.lower()}. "
            "Sign in to accept the invitation.",
        )
    return member


async def get_my_pending_invitations(store: SupabaseDataStore, user: Optional[User]) -> List[StaffMember]:
    user = require_user(user)
    return await store.list_invitations_for_email(user.email.strip().lower())


async def _load_own_invitation(store: SupabaseDataStore, user: Optional[User], staff_id: str) -> StaffMember:
    user = require_user(user)
    member = await _load_member(store, staff_id)
    if (member.email or "").lower() != user.email.strip().lower():
        raise Unauthorized("This invitation belongs to another email address.")
    if member.status is not StaffStatus.PENDING:
        raise ValidationFailed("This invitation is no longer pending.")
    return member


async def accept_invitation(store: SupabaseDataStore, user: Optional[User], staff_id: str) -> StaffMember:
    member = await _load_own_invitation(store, user, staff_id)
    now = _utcnow()
    accepted = await store.update_staff(
        member.id,
        {
            "status": StaffStatus.ACTIVE,
            "user_id": user.id,
            "name": member.name or user.name,
            "accepted_at": now,
            "updated_at": now,
        },
    )
    logger.info("Staff invitation accepted", extra={"staff_id": member.id, "restaurant_id": member.restaurant_id})
    return accepted


async def decline_invitation(store: SupabaseDataStore, user: Optional[User], staff_id: str) -> None:
    member = await _load_own_invitation(store, user, staff_id)
    await store.delete_staff(member.id)
    logger.info("Staff invitation declined", extra={"staff_id": member.id, "restaurant_id": member.restaurant_id})


async def _transition(
    store: SupabaseDataStore,
    user: Optional[User],
    staff_id: str,
    *,
    source: StaffStatus,
    target: StaffStatus,
) -> StaffMember:
    member = await _load_member(store, staff_id)
    await require_owner(store, user, member.restaurant_id)
    if member.status is not source:
        raise ValidationFailed(
            f"Only {source.value.lower()} staff members can be moved to {target.value.lower()}."
        )
    return await store.update_staff(member.id, {"status": target, "updated_at": _utcnow()})


async def deactivate_staff(store: SupabaseDataStore, user: Optional[User], staff_id: str) -> StaffMember:
    return await _transition(store, user, staff_id, source=StaffStatus.ACTIVE, target=StaffStatus.INACTIVE)


async def reactivate_staff(store: SupabaseDataStore, user: Optional[User], staff_id: str) -> StaffMember:
    return await _transition(store, user, staff_id, source=StaffStatus.INACTIVE, target=StaffStatus.ACTIVE)


async def remove_staff(store: SupabaseDataStore, user: Optional[User], staff_id: str) -> None:
    member = await _load_member(store, staff_id)
    await require_owner(store, user, member.restaurant_id)
    await store.delete_staff(member.id)
    logger.info("Staff removed", extra={"staff_id": member.id, "restaurant_id": member.restaurant_id})


async def update_staff(
    store: SupabaseDataStore,
    user: Optional[User],
    staff_id: str,
    changes: Mapping[str, Any],
) -> StaffMember:
    """Change a member's role and/or permissions; managers always hold every permission."""

    role = _parse_role(changes["role"]) if changes.get("role") is not None else None
    permissions = _parse_permissions(changes["permissions"]) if changes.get("permissions") is not None else None

    member = await _load_member(store, staff_id)
    await require_owner(store, user, member.restaurant_id)

    update_body: Dict[str, Any] = {}
    effective_role = role or member.role
    if role is not None:
        update_body["role"] = role
    if effective_role is StaffRole.MANAGER:
        update_body["permissions"] = StaffPermissions.full()
    elif permissions is not None:
        update_body["permissions"] = permissions
    elif role is not None and member.role is StaffRole.MANAGER:
        update_body["permissions"] = StaffPermissions.orders_only()
    if not update_body:
        return member

    update_body["updated_at"] = _utcnow()
    return await store.update_staff(member.id, update_body)


__all__ = [
    "accept_invitation",
    "deactivate_staff",
    "decline_invitation",
    "get_my_pending_invitations",
    "invite_staff",
    "list_staff",
    "normalize_email",
    "permissions_for_invite",
    "reactivate_staff",
    "remove_staff",
    "update_staff",
]
