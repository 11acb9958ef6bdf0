# =====================================================
# FILE: approvalflow/models/request.py
# Purchase / expense request
# =====================================================

from enum import Enum
from sqlalchemy import Column, String, DateTime, ForeignKey, Text

from approvalflow.core.database import Base
from approvalflow.models.user import generate_uuid
from approvalflow.utils.datetime_helpers import utcnow


class RequestStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class Request(Base):
    __tablename__ = "requests"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    request_number = Column(String(50), unique=True, nullable=False)
    creator_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    company_id = Column(String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=RequestStatus.PENDING.value)
    current_step = Column(String(50))  # role expected to act next, display only
    notes = Column(Text)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
