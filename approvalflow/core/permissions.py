# =====================================================
# FILE: approvalflow/core/permissions.py
# Role-Based Access Control Permission Definitions
# =====================================================

from enum import Enum
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional, Union


class UserRole(str, Enum):
    STAFF = "STAFF"
    MANAGER = "MANAGER"
    CONTROLEUR = "CONTROLEUR"
    DIRECTION = "DIRECTION"
    ECONOME = "ECONOME"


class Action(str, Enum):
    CREATE_REQUEST = "CREATE_REQUEST"
    VIEW_REQUEST = "VIEW_REQUEST"
    APPROVE_REQUEST = "APPROVE_REQUEST"
    REJECT_REQUEST = "REJECT_REQUEST"
    ADD_COMMENT = "ADD_COMMENT"
    VIEW_DEPARTMENT = "VIEW_DEPARTMENT"
    VIEW_COMPANY = "VIEW_COMPANY"


class Scope(str, Enum):
    OWN = "OWN"
    DEPARTMENT = "DEPARTMENT"
    COMPANY = "COMPANY"


_APPROVER_ACTIONS = frozenset({
    Action.VIEW_REQUEST,
    Action.APPROVE_REQUEST, Action.REJECT_REQUEST,
    Action.ADD_COMMENT,
    Action.VIEW_COMPANY,
})

# Role to Actions Mapping (read-only)
ROLE_PERMISSIONS: Mapping[UserRole, FrozenSet[Action]] = MappingProxyType({
    UserRole.STAFF: frozenset({
        Action.CREATE_REQUEST, Action.VIEW_REQUEST,
        Action.ADD_COMMENT,
    }),

    UserRole.MANAGER: frozenset({
        Action.CREATE_REQUEST, Action.VIEW_REQUEST,
        Action.APPROVE_REQUEST, Action.REJECT_REQUEST,
        Action.ADD_COMMENT,
        Action.VIEW_DEPARTMENT,
    }),

    UserRole.CONTROLEUR: _APPROVER_ACTIONS,
    UserRole.DIRECTION: _APPROVER_ACTIONS,
    UserRole.ECONOME: _APPROVER_ACTIONS,
})

ROLE_SCOPES: Mapping[UserRole, Scope] = MappingProxyType({
    UserRole.STAFF: Scope.OWN,
    UserRole.MANAGER: Scope.DEPARTMENT,
    UserRole.CONTROLEUR: Scope.COMPANY,
    UserRole.DIRECTION: Scope.COMPANY,
    UserRole.ECONOME: Scope.COMPANY,
})


def _coerce_role(role: Union[UserRole, str, None]) -> Optional[UserRole]:
    if isinstance(role, UserRole):
        return role
    try:
        return UserRole(role)
    except ValueError:
        return None


def get_permissions_for_role(role: Union[UserRole, str]) -> FrozenSet[Action]:
    """Get all actions allowed for a role"""
    return ROLE_PERMISSIONS.get(_coerce_role(role), frozenset())


def can_perform(role: Union[UserRole, str], action: Action) -> bool:
    """
    Check if a role may perform an action.

    This says nothing about whose turn it is in a workflow; the workflow
    engine enforces turn-taking by matching the step role.
    """
    return action in get_permissions_for_role(role)


def get_scope(role: Union[UserRole, str]) -> Optional[Scope]:
    """Visibility scope for requests, None for unknown roles"""
    return ROLE_SCOPES.get(_coerce_role(role))
