# =====================================================
# FILE: approvalflow/services/request_store.py
# Request persistence used by the workflow engine
# =====================================================

from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import Optional, Union
import logging

from approvalflow.core.exceptions import RequestNotFound
from approvalflow.core.permissions import UserRole
from approvalflow.models.request import Request, RequestStatus
from approvalflow.models.user import User
from approvalflow.utils.datetime_helpers import utcnow

logger = logging.getLogger(__name__)


class RequestStore:
    """
    Data access for requests.

    Methods flush but never commit; the caller owns the transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def create_request(self, creator: User, notes: Optional[str] = None) -> Request:
        request = Request(
            request_number=self._next_request_number(),
            creator_id=creator.id,
            company_id=creator.company_id,
            status=RequestStatus.PENDING.value,
            notes=notes,
        )
        self.db.add(request)
        self.db.flush()
        logger.info(f"Request {request.request_number} created by user {creator.id}")
        return request

    def get_request_by_id(self, request_id: str) -> Optional[Request]:
        return self.db.query(Request).filter(Request.id == request_id).first()

    def set_request_status(self, request_id: str, status: RequestStatus) -> Request:
        request = self._require(request_id)
        request.status = RequestStatus(status).value
        self.db.flush()
        return request

    def set_request_current_step(self, request_id: str, role: Optional[Union[UserRole, str]]) -> Request:
        request = self._require(request_id)
        if isinstance(role, UserRole):
            role = role.value
        request.current_step = role
        self.db.flush()
        return request

    def _require(self, request_id: str) -> Request:
        request = self.get_request_by_id(request_id)
        if request is None:
            raise RequestNotFound(request_id)
        return request

    def _next_request_number(self) -> str:
        """REQ-YYYYMMDD-NNNN, numbered per day"""
        prefix = f"REQ-{utcnow():%Y%m%d}-"
        count = (
            self.db.query(func.count(Request.id))
            .filter(Request.request_number.like(f"{prefix}%"))
            .scalar()
        )
        return f"{prefix}{count + 1:04d}"
