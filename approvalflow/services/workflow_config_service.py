# =====================================================
# FILE: approvalflow/services/workflow_config_service.py
# Per-tenant approval chain configuration
# =====================================================

from pydantic import ValidationError
from sqlalchemy.orm import Session
from typing import List
import logging

from approvalflow.core.exceptions import InvalidWorkflowConfig
from approvalflow.core.permissions import UserRole
from approvalflow.models.workflow import WorkflowStepConfig
from approvalflow.schemas.workflow import StepDefinition, WorkflowConfig

logger = logging.getLogger(__name__)


# Manager -> Contrôleur -> Direction -> Économe
DEFAULT_STEPS: List[StepDefinition] = [
    StepDefinition(order=1, role=UserRole.MANAGER, label="Manager Approval"),
    StepDefinition(
        order=2,
        role=UserRole.CONTROLEUR,
        label="Contrôleur Review",
        requires_additional_info=True,  # daily cost
    ),
    StepDefinition(order=3, role=UserRole.DIRECTION, label="Direction Authorization"),
    StepDefinition(order=4, role=UserRole.ECONOME, label="Économe Release"),
]


class WorkflowConfigService:
    """
    Supplies the approval chain for a tenant.

    Tenants without rows in workflow_step_configs get the default chain.
    This service never writes.
    """

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def get_default_config(company_id: str) -> WorkflowConfig:
        return WorkflowConfig(company_id=company_id, steps=DEFAULT_STEPS)

    def get_config(self, company_id: str) -> WorkflowConfig:
        rows = (
            self.db.query(WorkflowStepConfig)
            .filter(WorkflowStepConfig.company_id == company_id)
            .order_by(WorkflowStepConfig.step_order)
            .all()
        )

        if not rows:
            return self.get_default_config(company_id)

        try:
            return WorkflowConfig(
                company_id=company_id,
                steps=[
                    StepDefinition(
                        order=row.step_order,
                        role=row.role,
                        label=row.label,
                        requires_additional_info=bool(row.requires_additional_info),
                    )
                    for row in rows
                ],
            )
        except ValidationError as e:
            logger.error(f"Stored workflow configuration for company {company_id} is invalid: {e}")
            raise InvalidWorkflowConfig(
                f"Workflow configuration for company {company_id} is invalid",
                {"company_id": company_id, "errors": e.errors(include_url=False)},
            ) from e
