import asyncio

import pytest

from app.models import StaffPermissions, StaffRole, StaffStatus
from app.services import staff_service
from app.services.errors import Conflict, Unauthorized, ValidationFailed


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def dispatch_in_background(self, to, subject, body):
        self.sent.append((to, subject, body))


def _invite(store, owner, restaurant, **overrides):
    payload = {"restaurant_id": restaurant.id, "email": "New.Hire@Example.com", **overrides}
    return asyncio.run(staff_service.invite_staff(store, owner, payload))


def test_invite_creates_pending_row_with_orders_only_permissions(store, owner, restaurant):
    notifier = RecordingNotifier()

    member = asyncio.run(
        staff_service.invite_staff(
            store, owner, {"restaurant_id": restaurant.id, "email": "New.Hire@Example.com"}, notifier=notifier
        )
    )

    assert member.status is StaffStatus.PENDING
    assert member.role is StaffRole.STAFF
    assert member.email == "new.hire@example.com"
    assert member.permissions == StaffPermissions.orders_only()
    assert notifier.sent[0][0] == "new.hire@example.com"
    assert restaurant.name in notifier.sent[0][1]


def test_manager_invite_gets_full_permissions(store, owner, restaurant):
    member = _invite(store, owner, restaurant, role="MANAGER", permissions={"can_manage_orders": False})

    assert member.permissions == StaffPermissions.full()


def test_duplicate_pending_invite_conflicts(store, owner, restaurant):
    _invite(store, owner, restaurant)

    with pytest.raises(Conflict):
        _invite(store, owner, restaurant, email="new.hire@example.com")


def test_invite_requires_owner_and_valid_email(store, restaurant):
    manager = store.add_user("manager@example.com")
    store.add_staff(restaurant, user=manager, role=StaffRole.MANAGER)

    with pytest.raises(Unauthorized):
        _invite(store, manager, restaurant)
    with pytest.raises(ValidationFailed):
        _invite(store, manager, restaurant, email="not-an-email")


def test_invitee_accepts_and_gains_access(store, owner, restaurant):
    member = _invite(store, owner, restaurant)
    invitee = store.add_user("new.hire@example.com", "Nina")

    pending = asyncio.run(staff_service.get_my_pending_invitations(store, invitee))
    accepted = asyncio.run(staff_service.accept_invitation(store, invitee, member.id))

    assert [m.id for m in pending] == [member.id]
    assert accepted.status is StaffStatus.ACTIVE
    assert accepted.user_id == invitee.id
    assert accepted.accepted_at is not None
    assert asyncio.run(staff_service.get_my_pending_invitations(store, invitee)) == []


def test_other_user_cannot_accept_invitation(store, owner, restaurant):
    member = _invite(store, owner, restaurant)
    intruder = store.add_user("intruder@example.com")

    with pytest.raises(Unauthorized):
        asyncio.run(staff_service.accept_invitation(store, intruder, member.id))


def test_decline_deletes_invitation(store, owner, restaurant):
    member = _invite(store, owner, restaurant)
    invitee = store.add_user("new.hire@example.com")

    asyncio.run(staff_service.decline_invitation(store, invitee, member.id))

    assert member.id not in store.staff


def test_deactivate_and_reactivate_transitions(store, owner, restaurant):
    cook = store.add_user("cook@example.com")
    member = store.add_staff(restaurant, user=cook)

    inactive = asyncio.run(staff_service.deactivate_staff(store, owner, member.id))
    assert inactive.status is StaffStatus.INACTIVE
    with pytest.raises(ValidationFailed):
        asyncio.run(staff_service.deactivate_staff(store, owner, member.id))

    active = asyncio.run(staff_service.reactivate_staff(store, owner, member.id))
    assert active.status is StaffStatus.ACTIVE


def test_pending_invitation_cannot_be_reactivated(store, owner, restaurant):
    member = _invite(store, owner, restaurant)

    with pytest.raises(ValidationFailed):
        asyncio.run(staff_service.reactivate_staff(store, owner, member.id))


def test_promotion_to_manager_grants_full_permissions(store, owner, restaurant):
    cook = store.add_user("cook@example.com")
    member = store.add_staff(restaurant, user=cook, permissions=StaffPermissions.orders_only())

    promoted = asyncio.run(staff_service.update_staff(store, owner, member.id, {"role": "MANAGER"}))
    demoted = asyncio.run(staff_service.update_staff(store, owner, member.id, {"role": "STAFF"}))

    assert promoted.role is StaffRole.MANAGER
    assert promoted.permissions == StaffPermissions.full()
    assert demoted.permissions == StaffPermissions.orders_only()


def test_manager_can_list_but_not_remove(store, restaurant):
    manager = store.add_user("manager@example.com")
    member = store.add_staff(restaurant, user=manager, role=StaffRole.MANAGER)

    listed = asyncio.run(staff_service.list_staff(store, manager, restaurant.id))

    assert [m.id for m in listed] == [member.id]
    with pytest.raises(Unauthorized):
        asyncio.run(staff_service.remove_staff(store, manager, member.id))


def test_owner_removes_staff(store, owner, restaurant):
    member = store.add_staff(restaurant, user=store.add_user("cook@example.com"))

    asyncio.run(staff_service.remove_staff(store, owner, member.id))

    assert member.id not in store.staff
