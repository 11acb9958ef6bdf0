"""Workflow exception hierarchy.

Business-rule failures raised by the workflow engine. Each carries an
error code and the HTTP status an API layer should answer with, so a
single handler can translate the whole hierarchy.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    WORKFLOW_NOT_FOUND = "WORKFLOW_NOT_FOUND"
    WORKFLOW_ALREADY_EXISTS = "WORKFLOW_ALREADY_EXISTS"
    WORKFLOW_COMPLETE = "WORKFLOW_COMPLETE"
    REQUEST_NOT_FOUND = "REQUEST_NOT_FOUND"
    APPROVER_NOT_FOUND = "APPROVER_NOT_FOUND"
    CROSS_TENANT_APPROVER = "CROSS_TENANT_APPROVER"
    CROSS_TENANT_REQUEST = "CROSS_TENANT_REQUEST"
    INVALID_STEP = "INVALID_STEP"
    INVALID_WORKFLOW_CONFIG = "INVALID_WORKFLOW_CONFIG"
    ROLE_MISMATCH = "ROLE_MISMATCH"
    MISSING_ADDITIONAL_INFO = "MISSING_ADDITIONAL_INFO"
    MISSING_DAILY_COST = "MISSING_DAILY_COST"
    INVALID_REJECTION_REASON = "INVALID_REJECTION_REASON"
    MISSING_SIGNATURE = "MISSING_SIGNATURE"
    UNSUPPORTED_CREATOR_ROLE = "UNSUPPORTED_CREATOR_ROLE"
    CONCURRENT_MODIFICATION = "CONCURRENT_MODIFICATION"


ERROR_STATUS_MAP: Dict[ErrorCode, int] = {
    ErrorCode.WORKFLOW_NOT_FOUND: 404,
    ErrorCode.WORKFLOW_ALREADY_EXISTS: 409,
    ErrorCode.WORKFLOW_COMPLETE: 409,
    ErrorCode.REQUEST_NOT_FOUND: 404,
    ErrorCode.APPROVER_NOT_FOUND: 404,
    ErrorCode.CROSS_TENANT_APPROVER: 403,
    ErrorCode.CROSS_TENANT_REQUEST: 403,
    ErrorCode.INVALID_STEP: 500,
    ErrorCode.INVALID_WORKFLOW_CONFIG: 500,
    ErrorCode.ROLE_MISMATCH: 403,
    ErrorCode.MISSING_ADDITIONAL_INFO: 422,
    ErrorCode.MISSING_DAILY_COST: 422,
    ErrorCode.INVALID_REJECTION_REASON: 422,
    ErrorCode.MISSING_SIGNATURE: 422,
    ErrorCode.UNSUPPORTED_CREATOR_ROLE: 422,
    ErrorCode.CONCURRENT_MODIFICATION: 409,
}


class WorkflowError(Exception):
    """Base exception for expected workflow business-rule failures.

    These are never retried by the engine.
    """

    error_code: ErrorCode = ErrorCode.INVALID_STEP

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.status_code = ERROR_STATUS_MAP.get(self.error_code, 400)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.error_code.value,
            "message": self.message,
            "details": self.details,
        }


class WorkflowNotFound(WorkflowError):
    error_code = ErrorCode.WORKFLOW_NOT_FOUND

    def __init__(self, workflow_id: str):
        super().__init__(f"Workflow {workflow_id} not found", {"workflow_id": workflow_id})


class WorkflowAlreadyExists(WorkflowError):
    error_code = ErrorCode.WORKFLOW_ALREADY_EXISTS

    def __init__(self, request_id: str):
        super().__init__(
            f"Request {request_id} already has a workflow",
            {"request_id": request_id},
        )


class WorkflowComplete(WorkflowError):
    error_code = ErrorCode.WORKFLOW_COMPLETE

    def __init__(self, workflow_id: str):
        super().__init__(f"Workflow {workflow_id} is already complete", {"workflow_id": workflow_id})


class RequestNotFound(WorkflowError):
    error_code = ErrorCode.REQUEST_NOT_FOUND

    def __init__(self, request_id: str):
        super().__init__(f"Request {request_id} not found", {"request_id": request_id})


class ApproverNotFound(WorkflowError):
    error_code = ErrorCode.APPROVER_NOT_FOUND

    def __init__(self, approver_id: str):
        super().__init__(f"Approver {approver_id} not found", {"approver_id": approver_id})


class CrossTenantApprover(WorkflowError):
    error_code = ErrorCode.CROSS_TENANT_APPROVER

    def __init__(self, approver_id: str, approver_company_id: str, workflow_company_id: str):
        super().__init__(
            f"Approver {approver_id} belongs to company {approver_company_id}, "
            f"workflow belongs to company {workflow_company_id}",
            {
                "approver_id": approver_id,
                "approver_company_id": approver_company_id,
                "workflow_company_id": workflow_company_id,
            },
        )


class CrossTenantRequest(WorkflowError):
    error_code = ErrorCode.CROSS_TENANT_REQUEST

    def __init__(self, request_id: str, request_company_id: str, company_id: str):
        super().__init__(
            f"Request {request_id} belongs to company {request_company_id}, "
            f"not company {company_id}",
            {
                "request_id": request_id,
                "request_company_id": request_company_id,
                "company_id": company_id,
            },
        )


class InvalidStep(WorkflowError):
    """Configuration or data corruption; alert, don't show to end users."""

    error_code = ErrorCode.INVALID_STEP


class InvalidWorkflowConfig(WorkflowError):
    error_code = ErrorCode.INVALID_WORKFLOW_CONFIG


class RoleMismatch(WorkflowError):
    error_code = ErrorCode.ROLE_MISMATCH

    def __init__(self, required_role: str, actual_role: str, step_order: int):
        super().__init__(
            f"Current step {step_order} requires {required_role}, but approver is {actual_role}",
            {
                "required_role": required_role,
                "actual_role": actual_role,
                "step_order": step_order,
            },
        )
        self.required_role = required_role
        self.actual_role = actual_role


class MissingAdditionalInfo(WorkflowError):
    error_code = ErrorCode.MISSING_ADDITIONAL_INFO


class MissingDailyCost(MissingAdditionalInfo):
    error_code = ErrorCode.MISSING_DAILY_COST


class InvalidRejectionReason(WorkflowError):
    error_code = ErrorCode.INVALID_REJECTION_REASON


class MissingSignature(WorkflowError):
    error_code = ErrorCode.MISSING_SIGNATURE


class UnsupportedCreatorRole(WorkflowError):
    error_code = ErrorCode.UNSUPPORTED_CREATOR_ROLE

    def __init__(self, creator_role: str):
        super().__init__(
            f"No workflow entry step is defined for requests created by {creator_role}",
            {"creator_role": creator_role},
        )


class ConcurrentModificationError(Exception):
    """Another transition changed the workflow first. Safe to retry."""

    error_code = ErrorCode.CONCURRENT_MODIFICATION
    retryable = True

    def __init__(self, workflow_id: str, expected_step_order: Optional[int] = None):
        message = f"Workflow {workflow_id} was modified concurrently"
        if expected_step_order is not None:
            message += f" (expected step {expected_step_order})"
        super().__init__(message)
        self.message = message
        self.workflow_id = workflow_id
        self.expected_step_order = expected_step_order
        self.status_code = ERROR_STATUS_MAP[self.error_code]
