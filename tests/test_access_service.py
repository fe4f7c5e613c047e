import asyncio

import pytest

from app.models import StaffPermissions, StaffRole, StaffStatus
from app.services.access_service import (
    Role,
    list_accessible_restaurants,
    require_owner,
    require_permission,
    require_role,
    resolve_access,
    verify_admin_secret,
    verify_ownership,
)
from app.services.errors import NotFound, ServiceUnavailable, Unauthenticated, Unauthorized


def test_verify_ownership_true_only_for_owner(store, owner, restaurant):
    stranger = store.add_user("stranger@example.com")

    assert asyncio.run(verify_ownership(store, owner, restaurant.id)) is True
    assert asyncio.run(verify_ownership(store, stranger, restaurant.id)) is False
    assert asyncio.run(verify_ownership(store, None, restaurant.id)) is False
    assert asyncio.run(verify_ownership(store, owner, "missing")) is False


def test_require_owner_errors(store, owner, restaurant):
    stranger = store.add_user("stranger@example.com")

    with pytest.raises(Unauthenticated):
        asyncio.run(require_owner(store, None, restaurant.id))
    with pytest.raises(NotFound):
        asyncio.run(require_owner(store, owner, "missing"))
    with pytest.raises(Unauthorized):
        asyncio.run(require_owner(store, stranger, restaurant.id))


def test_manager_gets_full_permissions_and_passes_manager_floor(store, restaurant):
    manager = store.add_user("manager@example.com")
    store.add_staff(restaurant, user=manager, role=StaffRole.MANAGER)

    access = asyncio.run(require_role(store, manager, restaurant.id, Role.MANAGER))

    assert access.role is Role.MANAGER
    assert access.permissions == StaffPermissions.full()


def test_staff_uses_stored_permissions_and_fails_manager_floor(store, restaurant):
    cook = store.add_user("cook@example.com")
    store.add_staff(restaurant, user=cook, permissions=StaffPermissions.orders_only())

    access = asyncio.run(resolve_access(store, cook, restaurant.id))
    assert access.role is Role.STAFF
    require_permission(access, "can_manage_orders")
    with pytest.raises(Unauthorized):
        require_permission(access, "can_manage_menu")
    with pytest.raises(Unauthorized):
        asyncio.run(require_role(store, cook, restaurant.id, Role.MANAGER))


def test_inactive_membership_grants_nothing(store, restaurant):
    former = store.add_user("former@example.com")
    store.add_staff(restaurant, user=former, role=StaffRole.MANAGER, status=StaffStatus.INACTIVE)

    assert asyncio.run(resolve_access(store, former, restaurant.id)) is None
    with pytest.raises(Unauthorized):
        asyncio.run(require_role(store, former, restaurant.id, Role.STAFF))


def test_accessible_restaurants_are_deduplicated(store, owner, restaurant):
    second = store.add_restaurant(owner, "Second Place")
    other_owner = store.add_user("other@example.com")
    third = store.add_restaurant(other_owner, "Third Place")
    store.add_staff(third, user=owner, role=StaffRole.STAFF)
    store.add_staff(restaurant, user=owner, role=StaffRole.MANAGER)

    accesses = asyncio.run(list_accessible_restaurants(store, owner))
    roles = {access.restaurant_id: access.role for access in accesses}

    assert roles == {restaurant.id: Role.OWNER, second.id: Role.OWNER, third.id: Role.STAFF}


def test_admin_secret_must_match_exactly():
    verify_admin_secret("s3cret", "s3cret")

    for provided in (None, "", "s3cre", "S3CRET"):
        with pytest.raises(Unauthenticated):
            verify_admin_secret(provided, "s3cret")


def test_admin_access_is_disabled_without_a_configured_secret():
    with pytest.raises(ServiceUnavailable):
        verify_admin_secret("anything", None)
