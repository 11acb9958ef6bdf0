# =====================================================
# FILE: approvalflow/models/workflow.py
# Workflow instance and per-tenant step configuration
# =====================================================

from sqlalchemy import Column, String, Boolean, DateTime, Integer, ForeignKey, UniqueConstraint

from approvalflow.core.database import Base
from approvalflow.models.user import generate_uuid
from approvalflow.utils.datetime_helpers import utcnow


class Workflow(Base):
    __tablename__ = "workflows"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    request_id = Column(String(36), ForeignKey("requests.id", ondelete="CASCADE"), unique=True, nullable=False)
    company_id = Column(String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    current_step_order = Column(Integer, nullable=False)
    is_complete = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class WorkflowStepConfig(Base):
    """Tenant override of the default approval chain. Read-only for the engine."""

    __tablename__ = "workflow_step_configs"
    __table_args__ = (
        UniqueConstraint("company_id", "step_order", name="uq_step_config_order"),
        UniqueConstraint("company_id", "role", name="uq_step_config_role"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    step_order = Column(Integer, nullable=False)
    role = Column(String(50), nullable=False)
    label = Column(String(255), nullable=False)
    requires_additional_info = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utcnow)
