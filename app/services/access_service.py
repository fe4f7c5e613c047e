"""Ownership and role checks scoped to a single restaurant."""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from app.models import Restaurant, StaffMember, StaffPermissions, StaffRole, User
from app.services.data_store import SupabaseDataStore
from app.services.errors import NotFound, ServiceUnavailable, Unauthenticated, Unauthorized

logger = logging.getLogger(__name__)


class Role(str, Enum):
    OWNER = "OWNER"
    MANAGER = "MANAGER"
    STAFF = "STAFF"


ROLE_RANK: Dict[Role, int] = {
    Role.OWNER: 3,
    Role.MANAGER: 2,
    Role.STAFF: 1,
}

STAFF_ROLE_TO_ROLE: Dict[StaffRole, Role] = {
    StaffRole.MANAGER: Role.MANAGER,
    StaffRole.STAFF: Role.STAFF,
}


@dataclass(frozen=True)
class RestaurantAccess:
    restaurant: Restaurant
    role: Role
    permissions: StaffPermissions

    @property
    def restaurant_id(self) -> str:
        return self.restaurant.id

    def at_least(self, minimum: Role) -> bool:
        return ROLE_RANK[self.role] >= ROLE_RANK[minimum]


def permissions_for(role: Role, membership: Optional[StaffMember] = None) -> StaffPermissions:
    if role is Role.OWNER or role is Role.MANAGER:
        return StaffPermissions.full()
    if role is Role.STAFF:
        if membership is not None and membership.permissions is not None:
            return membership.permissions
        return StaffPermissions()
    raise ValueError(f"Unknown role: {role!r}")


async def verify_ownership(store: SupabaseDataStore, user: Optional[User], restaurant_id: str) -> bool:
    """True iff the caller owns the restaurant."""

    if user is None:
        return False
    restaurant = await store.get_restaurant(restaurant_id)
    if restaurant is None:
        return False
    return restaurant.owner_id == user.id


async def require_owner(store: SupabaseDataStore, user: Optional[User], restaurant_id: str) -> Restaurant:
    if user is None:
        raise Unauthenticated()
    restaurant = await store.get_restaurant(restaurant_id)
    if restaurant is None:
        raise NotFound("Restaurant not found.")
    if restaurant.owner_id != user.id:
        logger.warning(
            "Ownership check failed",
            extra={"user_id": user.id, "restaurant_id": restaurant_id},
        )
        raise Unauthorized("You do not own this restaurant.")
    return restaurant


async def resolve_access(
    store: SupabaseDataStore,
    user: Optional[User],
    restaurant_id: str,
) -> Optional[RestaurantAccess]:
    """Return the caller's role on the restaurant, or ``None`` without access."""

    if user is None:
        return None
    restaurant = await store.get_restaurant(restaurant_id)
    if restaurant is None:
        return None
    if restaurant.owner_id == user.id:
        return RestaurantAccess(restaurant, Role.OWNER, permissions_for(Role.OWNER))
    membership = await store.get_active_membership(user.id, restaurant_id)
    if membership is None:
        return None
    role = STAFF_ROLE_TO_ROLE[membership.role]
    return RestaurantAccess(restaurant, role, permissions_for(role, membership))


async def require_role(
    store: SupabaseDataStore,
    user: Optional[User],
    restaurant_id: str,
    minimum: Role,
) -> RestaurantAccess:
    """Enforce a role floor; fails closed on any unresolved lookup."""

    if user is None:
        raise Unauthenticated()
    access = await resolve_access(store, user, restaurant_id)
    if access is None or not access.at_least(minimum):
        logger.warning(
            "Role check failed",
            extra={
                "user_id": user.id,
                "restaurant_id": restaurant_id,
                "required_role": minimum.value,
                "actual_role": access.role.value if access else None,
            },
        )
        raise Unauthorized(f"This action requires the {minimum.value.lower()} role or higher.")
    return access


def require_permission(access: RestaurantAccess, permission: str) -> None:
    if permission not in StaffPermissions.model_fields:
        raise ValueError(f"Unknown permission: {permission}")
    if not getattr(access.permissions, permission):
        raise Unauthorized("You do not have permission to perform this action.")


async def list_accessible_restaurants(store: SupabaseDataStore, user: Optional[User]) -> List[RestaurantAccess]:
    """Owned restaurants plus those where the caller holds an ACTIVE staff row."""

    if user is None:
        return []
    owned = await store.list_restaurants_by_owner(user.id)
    accesses: Dict[str, RestaurantAccess] = {
        restaurant.id: RestaurantAccess(restaurant, Role.OWNER, permissions_for(Role.OWNER))
        for restaurant in owned
    }
    memberships = [m for m in await store.list_active_memberships(user.id) if m.restaurant_id not in accesses]
    if memberships:
        restaurants = await store.get_restaurants_by_ids(m.restaurant_id for m in memberships)
        for membership in memberships:
            restaurant = restaurants.get(membership.restaurant_id)
            if restaurant is None or membership.restaurant_id in accesses:
                continue
            role = STAFF_ROLE_TO_ROLE[membership.role]
            accesses[restaurant.id] = RestaurantAccess(restaurant, role, permissions_for(role, membership))
    return list(accesses.values())


def verify_admin_secret(provided: Optional[str], expected: Optional[str]) -> None:
    """Gate for the slug-addressed admin catalog operations.

    While no secret is configured every admin request is refused with 503.
    """

    if not expected:
        raise ServiceUnavailable("Admin access is not configured.")
    if not provided or not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("Rejected admin request with an invalid secret")
        raise Unauthenticated("Invalid admin secret.")


__all__ = [
    "ROLE_RANK",
    "RestaurantAccess",
    "Role",
    "list_accessible_restaurants",
    "permissions_for",
    "require_owner",
    "require_permission",
    "require_role",
    "resolve_access",
    "verify_admin_secret",
    "verify_ownership",
]
