# =====================================================
# FILE: approvalflow/services/user_directory.py
# User lookups consumed by the workflow engine and its callers
# =====================================================

from sqlalchemy.orm import Session
from typing import List, Optional, Union

from approvalflow.core.permissions import UserRole
from approvalflow.models.user import User


class UserDirectory:
    """Read-only access to users, scoped by tenant"""

    def __init__(self, db: Session):
        self.db = db

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_users_by_tenant(self, company_id: str) -> List[User]:
        return (
            self.db.query(User)
            .filter(User.company_id == company_id, User.is_active == True)  # noqa: E712
            .order_by(User.last_name, User.first_name)
            .all()
        )

    def get_approvers_for_role(self, company_id: str, role: Union[UserRole, str]) -> List[User]:
        """Active users of a tenant holding a role, used to pick notification recipients"""
        role_value = role.value if isinstance(role, UserRole) else role
        return [user for user in self.get_users_by_tenant(company_id) if user.role == role_value]
