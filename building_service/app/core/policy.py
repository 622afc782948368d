from enum import Enum
from typing import Dict, FrozenSet
from uuid import UUID

from shared.core.schemas import UserToken
from shared.utils.enums import UserRole
from shared.utils.errors import AuthorizationError


class Action(str, Enum):
    SUBMIT_ADDRESS = "submit_address"
    LIST_OWN_ADDRESSES = "list_own_addresses"
    LIST_PENDING_ADDRESSES = "list_pending_addresses"
    DECIDE_ADDRESS = "decide_address"
    VIEW_FLATS = "view_flats"
    MANAGE_FLATS = "manage_flats"
    LIST_MY_FLATS = "list_my_flats"
    LEAVE_FLAT = "leave_flat"
    REQUEST_FLAT = "request_flat"
    LIST_FLAT_REQUESTS = "list_flat_requests"
    REVIEW_FLAT_REQUEST = "review_flat_request"
    VIEW_MANAGER_STATS = "view_manager_stats"
    VIEW_ADMIN_STATS = "view_admin_stats"
    RUN_RECONCILIATION = "run_reconciliation"
    VIEW_LOCATIONS = "view_locations"


_APPLICANTS = frozenset({UserRole.USER, UserRole.BUILDING_MANAGER, UserRole.ADMIN})
_MANAGERS = frozenset({UserRole.BUILDING_MANAGER, UserRole.ADMIN})
_ADMINS = frozenset({UserRole.ADMIN})
_EVERYONE = frozenset(UserRole)

POLICY: Dict[Action, FrozenSet[UserRole]] = {
    Action.SUBMIT_ADDRESS: _APPLICANTS,
    Action.LIST_OWN_ADDRESSES: _APPLICANTS,
    Action.LIST_PENDING_ADDRESSES: _ADMINS,
    Action.DECIDE_ADDRESS: _ADMINS,
    Action.VIEW_FLATS: _APPLICANTS,
    Action.MANAGE_FLATS: _MANAGERS,
    Action.LIST_MY_FLATS: _APPLICANTS,
    Action.LEAVE_FLAT: _APPLICANTS,
    Action.REQUEST_FLAT: frozenset({UserRole.USER}),
    Action.LIST_FLAT_REQUESTS: _APPLICANTS,
    Action.REVIEW_FLAT_REQUEST: _MANAGERS,
    Action.VIEW_MANAGER_STATS: _MANAGERS,
    Action.VIEW_ADMIN_STATS: _ADMINS,
    Action.RUN_RECONCILIATION: _ADMINS,
    Action.VIEW_LOCATIONS: _EVERYONE,
}


def can_perform(action: Action, role) -> bool:
    try:
        role = UserRole(role)
    except ValueError:
        return False
    return role in POLICY.get(action, frozenset())


def authorize(action: Action, current_user: UserToken) -> None:
    if not can_perform(action, current_user.role):
        raise AuthorizationError(
            f"Role '{UserRole(current_user.role).value}' may not {action.value.replace('_', ' ')}")


def authorize_building(action: Action, current_user: UserToken, manager_id: UUID) -> None:
    """Role check plus ownership: managers only act on buildings they manage."""
    authorize(action, current_user)
    if current_user.role != UserRole.ADMIN and current_user.user_id != manager_id:
        raise AuthorizationError("You do not manage this building")
