# =====================================================
# FILE: approvalflow/models/approval.py
# Approval ledger entry (append-only)
# =====================================================

from enum import Enum
from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, Text, JSON, UniqueConstraint
from sqlalchemy.orm import relationship

from approvalflow.core.database import Base
from approvalflow.models.user import generate_uuid
from approvalflow.utils.datetime_helpers import utcnow


class ApprovalStatus(str, Enum):
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class Approval(Base):
    __tablename__ = "approvals"
    __table_args__ = (
        # one decision per step
        UniqueConstraint("workflow_id", "step_order", name="uq_approval_workflow_step"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    workflow_id = Column(String(36), ForeignKey("workflows.id", ondelete="CASCADE"), nullable=False, index=True)
    request_id = Column(String(36), ForeignKey("requests.id", ondelete="CASCADE"), nullable=False, index=True)
    approver_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    step_order = Column(Integer, nullable=False)
    step_role = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False)
    rejection_reason = Column(Text)
    additional_data = Column(JSON)
    digital_signature = Column(Text, nullable=False)
    location = Column(String(255))
    timestamp = Column(DateTime, default=utcnow, nullable=False)

    approver = relationship("User", lazy="joined")
