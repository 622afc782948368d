import uuid

import pytest

from building_service.app.core.policy import Action, POLICY, authorize, authorize_building, can_perform
from shared.core.schemas import UserToken
from shared.utils.enums import UserRole
from shared.utils.errors import AuthorizationError


def _user(role):
    return UserToken(user_id=uuid.uuid4(), role=role)


def test_every_action_has_a_policy_entry():
    assert set(POLICY) == set(Action)


@pytest.mark.parametrize("action", [Action.DECIDE_ADDRESS, Action.LIST_PENDING_ADDRESSES,
                                    Action.RUN_RECONCILIATION, Action.VIEW_ADMIN_STATS])
def test_admin_only_actions(action):
    assert can_perform(action, UserRole.ADMIN)
    assert not can_perform(action, UserRole.BUILDING_MANAGER)
    assert not can_perform(action, UserRole.USER)


def test_flat_management_is_for_managers_and_admins():
    assert can_perform(Action.MANAGE_FLATS, "building_manager")
    assert can_perform(Action.MANAGE_FLATS, "admin")
    assert not can_perform(Action.MANAGE_FLATS, "user")


def test_only_users_request_flats():
    assert can_perform(Action.REQUEST_FLAT, UserRole.USER)
    assert not can_perform(Action.REQUEST_FLAT, UserRole.BUILDING_MANAGER)


def test_accountant_has_no_workflow_permissions():
    allowed = [a for a in Action if can_perform(a, UserRole.ACCOUNTANT)]
    assert allowed == [Action.VIEW_LOCATIONS]


def test_unknown_role_is_denied():
    assert not can_perform(Action.SUBMIT_ADDRESS, "janitor")


def test_authorize_raises_for_insufficient_role():
    with pytest.raises(AuthorizationError):
        authorize(Action.DECIDE_ADDRESS, _user(UserRole.USER))


def test_authorize_building_checks_ownership():
    manager = _user(UserRole.BUILDING_MANAGER)
    authorize_building(Action.MANAGE_FLATS, manager, manager.user_id)

    with pytest.raises(AuthorizationError):
        authorize_building(Action.MANAGE_FLATS, manager, uuid.uuid4())


def test_admin_bypasses_building_ownership():
    authorize_building(Action.MANAGE_FLATS, _user(UserRole.ADMIN), uuid.uuid4())
