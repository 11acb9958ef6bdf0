"""
Workflow Pydantic Schemas
File: approvalflow/schemas/workflow.py
Description: Step configuration, current approver and ledger serialization schemas
"""

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Any, Dict, List, Optional
from datetime import datetime

from approvalflow.core.permissions import UserRole


# =====================================================
# STEP CONFIGURATION SCHEMAS
# =====================================================

class StepDefinition(BaseModel):
    """One position in a tenant's approval chain"""
    order: int = Field(..., ge=1, description="Step order in workflow (1-based)")
    role: UserRole = Field(..., description="Role that must act on this step")
    label: str = Field(..., min_length=1, max_length=255)
    requires_additional_info: bool = Field(False, description="Approver must attach additional data")

    class Config:
        frozen = True


class WorkflowConfig(BaseModel):
    """Ordered approval chain for one tenant"""
    company_id: str
    steps: List[StepDefinition] = Field(..., min_length=1)

    class Config:
        frozen = True

    @field_validator("steps")
    @classmethod
    def validate_steps(cls, v: List[StepDefinition]) -> List[StepDefinition]:
        """Orders must be 1..n without gaps and each role may appear once"""
        steps = sorted(v, key=lambda s: s.order)
        orders = [step.order for step in steps]
        if orders != list(range(1, len(orders) + 1)):
            raise ValueError(f"Step orders must be contiguous from 1, got {orders}")

        roles = [step.role for step in steps]
        if len(roles) != len(set(roles)):
            raise ValueError("Each role may appear at most once in a workflow")

        return steps

    def get_step(self, order: int) -> Optional[StepDefinition]:
        for step in self.steps:
            if step.order == order:
                return step
        return None

    def find_step_by_role(self, role: UserRole) -> Optional[StepDefinition]:
        for step in self.steps:
            if step.role == role:
                return step
        return None


class CurrentApprover(BaseModel):
    role: UserRole
    step_order: int


# =====================================================
# WORKFLOW / LEDGER RESPONSE SCHEMAS
# =====================================================

class WorkflowResponse(BaseModel):
    id: str
    request_id: str
    company_id: str
    current_step_order: int
    is_complete: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ApproverSummary(BaseModel):
    id: str
    first_name: str
    last_name: str
    email: EmailStr
    role: UserRole

    class Config:
        from_attributes = True


class ApprovalResponse(BaseModel):
    id: str
    workflow_id: str
    request_id: str
    approver_id: str
    step_order: int
    step_role: UserRole
    status: str
    rejection_reason: Optional[str] = None
    additional_data: Optional[Dict[str, Any]] = None
    digital_signature: str
    timestamp: datetime
    location: Optional[str] = None
    approver: Optional[ApproverSummary] = None

    class Config:
        from_attributes = True
