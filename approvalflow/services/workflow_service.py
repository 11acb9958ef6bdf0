# =====================================================
# FILE: approvalflow/services/workflow_service.py
# Workflow Engine: sequential role-ordered approval chain
# =====================================================

from contextlib import contextmanager
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union
import logging
import math

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from approvalflow.core.config import settings
from approvalflow.core.exceptions import (
    ApproverNotFound,
    ConcurrentModificationError,
    CrossTenantApprover,
    CrossTenantRequest,
    InvalidRejectionReason,
    InvalidStep,
    InvalidWorkflowConfig,
    MissingAdditionalInfo,
    MissingDailyCost,
    MissingSignature,
    RequestNotFound,
    RoleMismatch,
    UnsupportedCreatorRole,
    WorkflowAlreadyExists,
    WorkflowComplete,
    WorkflowError,
    WorkflowNotFound,
)
from approvalflow.core.permissions import UserRole
from approvalflow.models.approval import Approval, ApprovalStatus
from approvalflow.models.audit_log import AuditAction
from approvalflow.models.user import User
from approvalflow.models.workflow import Workflow
from approvalflow.schemas.workflow import CurrentApprover, StepDefinition, WorkflowConfig
from approvalflow.services.audit_service import AuditService
from approvalflow.services.request_store import RequestStore
from approvalflow.services.status_projector import RequestStatusProjector
from approvalflow.services.user_directory import UserDirectory
from approvalflow.services.workflow_config_service import WorkflowConfigService
from approvalflow.utils.datetime_helpers import utcnow

logger = logging.getLogger(__name__)


# Creator role -> role of the first step. A manager cannot approve their
# own request, so their requests enter at the Contrôleur step.
INITIAL_STEP_ROLE: Mapping[UserRole, UserRole] = MappingProxyType({
    UserRole.STAFF: UserRole.MANAGER,
    UserRole.MANAGER: UserRole.CONTROLEUR,
})


def require_daily_cost(additional_data: Optional[Dict[str, Any]]) -> None:
    """Contrôleur must record a positive numeric dailyCost"""
    daily_cost = (additional_data or {}).get("dailyCost")
    if (
        isinstance(daily_cost, bool)
        or not isinstance(daily_cost, (int, float))
        or not math.isfinite(daily_cost)
        or daily_cost <= 0
    ):
        raise MissingDailyCost(
            "Contrôleur must add a daily cost (dailyCost) greater than 0",
            {"dailyCost": daily_cost},
        )


# Extra checks run on approval, keyed by the step role
STEP_VALIDATORS: Mapping[UserRole, Callable[[Optional[Dict[str, Any]]], None]] = MappingProxyType({
    UserRole.CONTROLEUR: require_daily_cost,
})


class WorkflowService:
    """
    Owns workflow creation and the approve/reject transitions.

    Every transition runs as one transaction on the session: read the
    workflow, validate, compare-and-swap the workflow row, append the
    ledger entry, project the request status, append the audit entry,
    commit. Any failure rolls the whole transition back.
    """

    def __init__(
        self,
        db: Session,
        config_service: Optional[WorkflowConfigService] = None,
        users: Optional[UserDirectory] = None,
        requests: Optional[RequestStore] = None,
        audit: Optional[AuditService] = None
    ):
        self.db = db
        self.config_service = config_service or WorkflowConfigService(db)
        self.users = users or UserDirectory(db)
        self.requests = requests or RequestStore(db)
        self.audit = audit or AuditService(db)
        self.projector = RequestStatusProjector(self.requests)

    # =====================================================
    # CREATION
    # =====================================================

    def create_workflow(
        self,
        request_id: str,
        company_id: str,
        creator_role: Union[UserRole, str]
    ) -> Workflow:
        """
        Create the workflow for a new request.

        The entry step comes from INITIAL_STEP_ROLE; creator roles without
        an entry raise UnsupportedCreatorRole.
        """
        first_role = self._initial_role_for(creator_role)

        with self._transaction(request_id=request_id):
            request = self.requests.get_request_by_id(request_id)
            if request is None:
                raise RequestNotFound(request_id)
            if request.company_id != company_id:
                raise CrossTenantRequest(request_id, request.company_id, company_id)

            if self.get_workflow_by_request_id(request_id) is not None:
                raise WorkflowAlreadyExists(request_id)

            config = self.get_workflow_config(company_id)
            first_step = config.find_step_by_role(first_role)
            if first_step is None:
                raise InvalidStep(
                    f"Workflow configuration for company {company_id} has no {first_role.value} step",
                    {"company_id": company_id, "role": first_role.value},
                )

            workflow = Workflow(
                request_id=request_id,
                company_id=company_id,
                current_step_order=first_step.order,
                is_complete=False,
            )
            self.db.add(workflow)
            try:
                self.db.flush()
            except IntegrityError as e:
                raise WorkflowAlreadyExists(request_id) from e

            self.projector.workflow_created(request_id, first_step.role)
            self.audit.log_action(
                AuditAction.WORKFLOW_CREATED,
                user_id=request.creator_id,
                request_id=request_id,
                details={
                    "workflow_id": workflow.id,
                    "creator_role": UserRole(creator_role).value,
                    "initial_step_order": first_step.order,
                    "initial_step_role": first_step.role.value,
                },
            )

        logger.info(
            f"Workflow {workflow.id} created for request {request_id} "
            f"at step {first_step.order} ({first_step.role.value})"
        )
        return workflow

    # =====================================================
    # TRANSITIONS
    # =====================================================

    def approve_step(
        self,
        workflow_id: str,
        approver_id: str,
        digital_signature: str,
        additional_data: Optional[Dict[str, Any]] = None,
        location: Optional[str] = None
    ) -> Approval:
        """Approve the current step and advance, or complete on the last step"""
        with self._transaction(workflow_id=workflow_id):
            workflow, approver, step, config = self._authorize(workflow_id, approver_id)

            if step.requires_additional_info and not additional_data:
                raise MissingAdditionalInfo(
                    f"{step.role.value} must provide additional information",
                    {"step_order": step.order, "step_role": step.role.value},
                )
            self._require_string_keys(additional_data)

            validator = STEP_VALIDATORS.get(step.role)
            if validator is not None:
                validator(additional_data)

            self._require_signature(digital_signature)

            next_step = config.get_step(step.order + 1)
            if next_step is not None:
                self._compare_and_swap(workflow, step.order, current_step_order=next_step.order)
            else:
                # current_step_order stays frozen on the last step
                self._compare_and_swap(workflow, step.order, is_complete=True)

            approval = self._append_ledger(
                workflow, approver, step,
                status=ApprovalStatus.APPROVED,
                digital_signature=digital_signature,
                additional_data=additional_data,
                location=location,
            )

            self.audit.log_action(
                AuditAction.REQUEST_APPROVED,
                user_id=approver.id,
                request_id=workflow.request_id,
                details={
                    "workflow_id": workflow.id,
                    "approval_id": approval.id,
                    "step_order": step.order,
                    "step_role": step.role.value,
                    "additional_data": additional_data,
                    "location": location,
                },
            )

            if next_step is not None:
                self.projector.step_advanced(workflow.request_id, next_step.role)
            else:
                self.projector.workflow_approved(workflow.request_id)
                self.audit.log_action(
                    AuditAction.WORKFLOW_COMPLETED,
                    user_id=approver.id,
                    request_id=workflow.request_id,
                    details={"workflow_id": workflow.id, "outcome": ApprovalStatus.APPROVED.value},
                )

        if next_step is not None:
            logger.info(
                f"Workflow {workflow_id}: step {step.order} approved by {approver_id}, "
                f"next step {next_step.order} ({next_step.role.value})"
            )
        else:
            logger.info(f"Workflow {workflow_id}: final step {step.order} approved, workflow complete")
        return approval

    def reject_step(
        self,
        workflow_id: str,
        approver_id: str,
        digital_signature: str,
        rejection_reason: str,
        location: Optional[str] = None
    ) -> Approval:
        """Reject the current step. Rejection ends the workflow."""
        with self._transaction(workflow_id=workflow_id):
            workflow, approver, step, _ = self._authorize(workflow_id, approver_id)

            min_length = settings.MIN_REJECTION_REASON_LENGTH
            if not isinstance(rejection_reason, str) or len(rejection_reason.strip()) < min_length:
                raise InvalidRejectionReason(
                    f"Rejection reason must be at least {min_length} characters",
                    {"min_length": min_length},
                )

            self._require_signature(digital_signature)

            self._compare_and_swap(workflow, step.order, is_complete=True)

            approval = self._append_ledger(
                workflow, approver, step,
                status=ApprovalStatus.REJECTED,
                digital_signature=digital_signature,
                rejection_reason=rejection_reason,
                location=location,
            )

            self.audit.log_action(
                AuditAction.REQUEST_REJECTED,
                user_id=approver.id,
                request_id=workflow.request_id,
                details={
                    "workflow_id": workflow.id,
                    "approval_id": approval.id,
                    "step_order": step.order,
                    "step_role": step.role.value,
                    "rejection_reason": rejection_reason,
                    "location": location,
                },
            )
            self.projector.workflow_rejected(workflow.request_id)
            self.audit.log_action(
                AuditAction.WORKFLOW_COMPLETED,
                user_id=approver.id,
                request_id=workflow.request_id,
                details={"workflow_id": workflow.id, "outcome": ApprovalStatus.REJECTED.value},
            )

        logger.info(f"Workflow {workflow_id}: rejected at step {step.order} by {approver_id}")
        return approval

    # =====================================================
    # QUERIES
    # =====================================================

    def get_workflow(self, workflow_id: str) -> Workflow:
        workflow = self.db.query(Workflow).filter(Workflow.id == workflow_id).first()
        if workflow is None:
            raise WorkflowNotFound(workflow_id)
        return workflow

    def get_workflow_by_request_id(self, request_id: str) -> Optional[Workflow]:
        return self.db.query(Workflow).filter(Workflow.request_id == request_id).first()

    def get_current_approver(self, workflow_id: str) -> Optional[CurrentApprover]:
        """Role and order expected to act next, None once the workflow is complete"""
        workflow = self.get_workflow(workflow_id)
        if workflow.is_complete:
            return None

        step = self._step_for(workflow, self.get_workflow_config(workflow.company_id))
        return CurrentApprover(role=step.role, step_order=step.order)

    def is_workflow_complete(self, workflow_id: str) -> bool:
        return bool(self.get_workflow(workflow_id).is_complete)

    def get_approval_history(self, request_id: str) -> List[Approval]:
        """Ledger entries for a request, by step order"""
        return (
            self.db.query(Approval)
            .filter(Approval.request_id == request_id)
            .order_by(Approval.step_order.asc())
            .all()
        )

    def get_workflow_config(self, company_id: str) -> WorkflowConfig:
        return self.config_service.get_config(company_id)

    # =====================================================
    # INTERNALS
    # =====================================================

    @staticmethod
    def _initial_role_for(creator_role: Union[UserRole, str]) -> UserRole:
        try:
            role = UserRole(creator_role)
        except ValueError:
            raise UnsupportedCreatorRole(str(creator_role))

        first_role = INITIAL_STEP_ROLE.get(role)
        if first_role is None:
            raise UnsupportedCreatorRole(role.value)
        return first_role

    def _authorize(
        self,
        workflow_id: str,
        approver_id: str
    ) -> Tuple[Workflow, User, StepDefinition, WorkflowConfig]:
        """Preconditions shared by approve and reject, checked in order"""
        workflow = (
            self.db.query(Workflow)
            .filter(Workflow.id == workflow_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if workflow is None:
            raise WorkflowNotFound(workflow_id)

        if workflow.is_complete:
            raise WorkflowComplete(workflow_id)

        approver = self.users.get_user_by_id(approver_id)
        if approver is None:
            raise ApproverNotFound(approver_id)
        if approver.company_id != workflow.company_id:
            raise CrossTenantApprover(approver_id, approver.company_id, workflow.company_id)

        config = self.get_workflow_config(workflow.company_id)
        step = self._step_for(workflow, config)

        if approver.role != step.role.value:
            raise RoleMismatch(step.role.value, approver.role, step.order)

        return workflow, approver, step, config

    @staticmethod
    def _step_for(workflow: Workflow, config: WorkflowConfig) -> StepDefinition:
        step = config.get_step(workflow.current_step_order)
        if step is None:
            raise InvalidStep(
                f"Workflow {workflow.id} points at step {workflow.current_step_order}, "
                f"which is not defined for company {workflow.company_id}",
                {"workflow_id": workflow.id, "step_order": workflow.current_step_order},
            )
        return step

    @staticmethod
    def _require_string_keys(additional_data: Optional[Dict[str, Any]]) -> None:
        """Additional data is stored as a JSON object, so keys must be strings"""
        if additional_data is not None and not isinstance(additional_data, dict):
            raise MissingAdditionalInfo(
                "Additional data must be a mapping",
                {"type": type(additional_data).__name__},
            )
        for key in additional_data or {}:
            if not isinstance(key, str):
                raise MissingAdditionalInfo(
                    f"Additional data key {key!r} must be a string",
                    {"key": repr(key)},
                )

    @staticmethod
    def _require_signature(digital_signature: Optional[str]) -> None:
        if not digital_signature or not digital_signature.strip():
            raise MissingSignature("A digital signature is required to act on a workflow step")

    def _compare_and_swap(self, workflow: Workflow, seen_step_order: int, **changes) -> None:
        """
        Write workflow changes only if nobody moved it since we read it.

        Zero matched rows means another transition won the race.
        """
        changes["updated_at"] = utcnow()
        matched = (
            self.db.query(Workflow)
            .filter(
                Workflow.id == workflow.id,
                Workflow.current_step_order == seen_step_order,
                Workflow.is_complete == False,  # noqa: E712
            )
            .update(changes, synchronize_session=False)
        )
        if matched != 1:
            raise ConcurrentModificationError(workflow.id, seen_step_order)
        self.db.expire(workflow)

    def _append_ledger(
        self,
        workflow: Workflow,
        approver: User,
        step: StepDefinition,
        status: ApprovalStatus,
        digital_signature: str,
        additional_data: Optional[Dict[str, Any]] = None,
        rejection_reason: Optional[str] = None,
        location: Optional[str] = None
    ) -> Approval:
        approval = Approval(
            workflow_id=workflow.id,
            request_id=workflow.request_id,
            approver_id=approver.id,
            step_order=step.order,
            step_role=step.role.value,
            status=status.value,
            rejection_reason=rejection_reason,
            additional_data=additional_data,
            digital_signature=digital_signature,
            location=location,
            timestamp=utcnow(),
        )
        self.db.add(approval)
        self.db.flush()
        return approval

    @contextmanager
    def _transaction(self, workflow_id: Optional[str] = None, request_id: Optional[str] = None):
        """Commit on success, roll back and re-raise on any failure"""
        subject = f"workflow {workflow_id}" if workflow_id else f"request {request_id}"
        try:
            yield
            self.db.commit()
        except (InvalidStep, InvalidWorkflowConfig) as e:
            self.db.rollback()
            logger.error(f"Workflow configuration/data error on {subject}: {e.message}")
            raise
        except WorkflowError as e:
            self.db.rollback()
            logger.warning(f"Workflow action refused on {subject}: {e.message}")
            raise
        except ConcurrentModificationError as e:
            self.db.rollback()
            logger.warning(f"Concurrent modification on {subject}: {e.message}")
            raise
        except IntegrityError as e:
            # uq_approval_workflow_step: a decision for this step already exists
            self.db.rollback()
            logger.warning(f"Ledger conflict on {subject}: {e.orig}")
            raise ConcurrentModificationError(workflow_id or request_id) from e
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error during workflow transition on {subject}: {str(e)}")
            raise
