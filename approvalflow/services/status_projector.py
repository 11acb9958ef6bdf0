# =====================================================
# FILE: approvalflow/services/status_projector.py
# Request status derived from workflow transitions
# =====================================================

import logging

from approvalflow.core.permissions import UserRole
from approvalflow.models.request import RequestStatus
from approvalflow.services.request_store import RequestStore

logger = logging.getLogger(__name__)


class RequestStatusProjector:
    """
    Writes the coarse request status and displayed current step.

    Runs inside the engine's transaction; every transition calls exactly
    one of these methods.
    """

    def __init__(self, requests: RequestStore):
        self.requests = requests

    def workflow_created(self, request_id: str, first_role: UserRole) -> None:
        self.requests.set_request_status(request_id, RequestStatus.PENDING)
        self.requests.set_request_current_step(request_id, first_role)

    def step_advanced(self, request_id: str, next_role: UserRole) -> None:
        self.requests.set_request_status(request_id, RequestStatus.IN_PROGRESS)
        self.requests.set_request_current_step(request_id, next_role)

    def workflow_approved(self, request_id: str) -> None:
        self._finish(request_id, RequestStatus.APPROVED)

    def workflow_rejected(self, request_id: str) -> None:
        self._finish(request_id, RequestStatus.REJECTED)

    def _finish(self, request_id: str, status: RequestStatus) -> None:
        self.requests.set_request_status(request_id, status)
        self.requests.set_request_current_step(request_id, None)
        logger.info(f"Request {request_id} marked {status.value}")
