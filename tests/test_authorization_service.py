import pytest

from skateguide.exceptions import ForbiddenError, UnauthorizedError
from skateguide.schemas.schemas import Actor, Capabilities, ResourceRef, Role
from skateguide.services.authorization_service import authorization_service

NOTHING = Capabilities(approve=False, edit=False, delete=False)
EVERYTHING = Capabilities(approve=True, edit=True, delete=True)


def test_owner_cannot_approve_own_park():
    actor = Actor(id=1, role=Role.user)
    resource = ResourceRef(created_by=1, owner_role=Role.user, is_approved=False)

    caps = authorization_service.capabilities(actor, resource)
    assert caps == Capabilities(approve=False, edit=True, delete=True)
    with pytest.raises(ForbiddenError):
        authorization_service.ensure_can_approve(actor, resource)


def test_admin_cannot_touch_another_admins_account(make_user):
    admin = make_user(role="Admin")
    other_admin = make_user(role="Admin")
    actor = Actor(id=admin.id, role=Role.admin)

    assert authorization_service.capabilities(actor, authorization_service.account_resource(other_admin)) == NOTHING
    with pytest.raises(ForbiddenError):
        authorization_service.ensure_can_manage_user(actor, other_admin)


@pytest.mark.parametrize("actor,resource,expected", [
    (None, ResourceRef(created_by=1, owner_role=Role.user), NOTHING),
    (Actor(id=9, role=Role.admin), ResourceRef(created_by=1, owner_role=Role.user), EVERYTHING),
    (Actor(id=9, role=Role.admin), ResourceRef(created_by=None, owner_role=None), EVERYTHING),
    (Actor(id=9, role=Role.admin), ResourceRef(created_by=9, owner_role=Role.admin), EVERYTHING),
    (Actor(id=9, role=Role.admin), ResourceRef(created_by=1, owner_role=Role.admin), NOTHING),
    (Actor(id=2, role=Role.user), ResourceRef(created_by=1, owner_role=Role.user), NOTHING),
    (Actor(id=2, role=Role.guest), ResourceRef(created_by=1, owner_role=Role.user), NOTHING),
    (Actor(id=2, role=Role.guest), ResourceRef(created_by=2, owner_role=Role.guest),
     Capabilities(approve=False, edit=True, delete=True)),
    (Actor(id=2, role=Role.user), ResourceRef(created_by=None, owner_role=None), NOTHING),
])
def test_capability_table(actor, resource, expected):
    assert authorization_service.capabilities(actor, resource) == expected


def test_owner_never_gets_approve_regardless_of_state():
    actor = Actor(id=5, role=Role.user)
    for approved in (True, False, None):
        caps = authorization_service.capabilities(
            actor, ResourceRef(created_by=5, owner_role=Role.user, is_approved=approved)
        )
        assert caps.approve is False


def test_missing_actor_is_unauthorized():
    with pytest.raises(UnauthorizedError):
        authorization_service.ensure_can_edit(None, ResourceRef(created_by=1))
    with pytest.raises(UnauthorizedError):
        authorization_service.ensure_admin(None)


def test_guest_is_not_a_contributor():
    with pytest.raises(ForbiddenError):
        authorization_service.ensure_contributor(Actor(id=3, role=Role.guest))
    actor = Actor(id=3, role=Role.user)
    assert authorization_service.ensure_contributor(actor) is actor


def test_park_resource_uses_creator_role(make_user, make_park):
    admin = make_user(role="Admin")
    park = make_park(owner=admin)
    orphan = make_park()

    assert authorization_service.park_resource(park) == ResourceRef(
        created_by=admin.id, owner_role=Role.admin, is_approved=False
    )
    assert authorization_service.park_resource(orphan).owner_role is None
