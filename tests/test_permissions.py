"""Tests for the role permission table."""

import pytest

from approvalflow.core.permissions import (
    ROLE_PERMISSIONS,
    Action,
    Scope,
    UserRole,
    can_perform,
    get_permissions_for_role,
    get_scope,
)


class TestRolePermissions:
    """Fixed role -> action matrix."""

    def test_staff_can_create_view_comment_only(self):
        assert get_permissions_for_role(UserRole.STAFF) == {
            Action.CREATE_REQUEST, Action.VIEW_REQUEST, Action.ADD_COMMENT,
        }

    def test_staff_cannot_approve_or_reject(self):
        assert can_perform(UserRole.STAFF, Action.APPROVE_REQUEST) is False
        assert can_perform(UserRole.STAFF, Action.REJECT_REQUEST) is False

    def test_manager_permissions(self):
        assert get_permissions_for_role(UserRole.MANAGER) == {
            Action.CREATE_REQUEST, Action.VIEW_REQUEST,
            Action.APPROVE_REQUEST, Action.REJECT_REQUEST,
            Action.ADD_COMMENT, Action.VIEW_DEPARTMENT,
        }
        assert can_perform(UserRole.MANAGER, Action.VIEW_COMPANY) is False

    @pytest.mark.parametrize("role", [UserRole.CONTROLEUR, UserRole.DIRECTION, UserRole.ECONOME])
    def test_company_level_approvers(self, role):
        assert get_permissions_for_role(role) == {
            Action.VIEW_REQUEST, Action.APPROVE_REQUEST, Action.REJECT_REQUEST,
            Action.ADD_COMMENT, Action.VIEW_COMPANY,
        }
        assert can_perform(role, Action.CREATE_REQUEST) is False

    def test_no_role_has_every_action(self):
        for role in UserRole:
            assert get_permissions_for_role(role) != set(Action)

    def test_string_roles_are_accepted(self):
        assert can_perform("MANAGER", Action.APPROVE_REQUEST) is True

    def test_unknown_role_has_no_permissions(self):
        assert get_permissions_for_role("ADMIN") == frozenset()
        assert can_perform("ADMIN", Action.VIEW_REQUEST) is False
        assert get_scope("ADMIN") is None

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            ROLE_PERMISSIONS[UserRole.STAFF] = frozenset(Action)


class TestRoleScopes:

    def test_scopes(self):
        assert get_scope(UserRole.STAFF) == Scope.OWN
        assert get_scope(UserRole.MANAGER) == Scope.DEPARTMENT
        assert get_scope(UserRole.ECONOME) == Scope.COMPANY
