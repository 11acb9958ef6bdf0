# =====================================================
# FILE: approvalflow/models/__init__.py
# =====================================================

from approvalflow.core.database import Base

# Tenant and users
from approvalflow.models.user import Company, User

# Requests
from approvalflow.models.request import Request, RequestStatus

# Workflow and approval ledger
from approvalflow.models.workflow import Workflow, WorkflowStepConfig
from approvalflow.models.approval import Approval, ApprovalStatus

# Audit
from approvalflow.models.audit_log import AuditLog, AuditAction

__all__ = [
    "Base",

    # Tenant & users
    "Company",
    "User",

    # Requests
    "Request",
    "RequestStatus",

    # Workflow
    "Workflow",
    "WorkflowStepConfig",
    "Approval",
    "ApprovalStatus",

    # Audit
    "AuditLog",
    "AuditAction",
]
