# =====================================================
# FILE: approvalflow/models/audit_log.py
# Audit Log Model (checksum-chained, append-only)
# =====================================================

from enum import Enum
from sqlalchemy import Column, String, Integer, ForeignKey, DateTime, JSON

from approvalflow.core.database import Base
from approvalflow.models.user import generate_uuid
from approvalflow.utils.datetime_helpers import utcnow


class AuditAction(str, Enum):
    REQUEST_APPROVED = "REQUEST_APPROVED"
    REQUEST_REJECTED = "REQUEST_REJECTED"
    WORKFLOW_CREATED = "WORKFLOW_CREATED"
    WORKFLOW_COMPLETED = "WORKFLOW_COMPLETED"


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    # insertion order; timestamps can tie inside one transaction
    sequence = Column(Integer, nullable=False, index=True)
    request_id = Column(String(36), ForeignKey("requests.id", ondelete="CASCADE"), index=True)
    user_id = Column(String(36), ForeignKey("users.id"), index=True)
    action = Column(String(50), nullable=False)
    details = Column(JSON)
    checksum = Column(String(64), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
