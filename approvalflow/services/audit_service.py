# =====================================================
# FILE: approvalflow/services/audit_service.py
# Service Layer for the Audit Trail (checksum chained)
# =====================================================

from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import Optional, Dict, Any, List, Union
import hashlib
import json
import logging

from approvalflow.core.config import settings
from approvalflow.models.audit_log import AuditLog, AuditAction
from approvalflow.schemas.audit import AuditEntryResponse, AuditReport, IntegrityResult
from approvalflow.utils.datetime_helpers import utcnow

logger = logging.getLogger(__name__)


def compute_checksum(
    user_id: Optional[str],
    action: str,
    details: Dict[str, Any],
    previous_checksum: str
) -> str:
    """sha256 over the entry content and the previous entry's checksum"""
    payload = f"{user_id}:{action}:{json.dumps(details, sort_keys=True, default=str)}:{previous_checksum}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class AuditService:
    """
    Append-only audit log.

    Entries for the same request form a checksum chain starting at
    settings.AUDIT_GENESIS_CHECKSUM; entries without a request form
    their own chain. log_action() flushes, it does not commit, so
    entries land in the caller's transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def log_action(
        self,
        action: Union[AuditAction, str],
        user_id: Optional[str] = None,
        request_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> AuditLog:
        """
        Create an audit log entry

        Returns:
            The flushed AuditLog row
        """
        action_value = action.value if isinstance(action, AuditAction) else str(action)
        details = dict(details or {})

        previous = self._chain_query(request_id).order_by(AuditLog.sequence.desc()).first()
        previous_checksum = previous.checksum if previous else settings.AUDIT_GENESIS_CHECKSUM
        sequence = previous.sequence + 1 if previous else 1

        entry = AuditLog(
            sequence=sequence,
            request_id=request_id,
            user_id=user_id,
            action=action_value,
            details=details,
            checksum=compute_checksum(user_id, action_value, details, previous_checksum),
            created_at=utcnow(),
        )
        self.db.add(entry)
        self.db.flush()

        logger.info(f" Audit log created: {action_value} by user {user_id}")
        return entry

    def get_audit_trail(self, request_id: str) -> List[AuditLog]:
        return self._chain_query(request_id).order_by(AuditLog.sequence.asc()).all()

    def get_entries_by_user(self, user_id: str) -> List[AuditLog]:
        return (
            self.db.query(AuditLog)
            .filter(AuditLog.user_id == user_id)
            .order_by(AuditLog.created_at.desc(), AuditLog.sequence.desc())
            .all()
        )

    def get_entries_by_action(self, action: Union[AuditAction, str]) -> List[AuditLog]:
        action_value = action.value if isinstance(action, AuditAction) else str(action)
        return (
            self.db.query(AuditLog)
            .filter(AuditLog.action == action_value)
            .order_by(AuditLog.created_at.desc(), AuditLog.sequence.desc())
            .all()
        )

    def verify_integrity(self, request_id: Optional[str] = None) -> IntegrityResult:
        """
        Recompute checksum chains and report entries that no longer match

        Args:
            request_id: chain to verify; None verifies every chain in the log

        Returns:
            IntegrityResult; last_verified_entry is the last matching entry,
            walking chains one after another in sequence order
        """
        query = self.db.query(AuditLog)
        if request_id is not None:
            query = query.filter(AuditLog.request_id == request_id)
        entries = query.order_by(AuditLog.request_id, AuditLog.sequence.asc()).all()

        corrupted: List[str] = []
        last_verified: Optional[str] = None
        previous_checksums: Dict[Optional[str], str] = {}

        for entry in entries:
            previous_checksum = previous_checksums.get(entry.request_id, settings.AUDIT_GENESIS_CHECKSUM)
            expected = compute_checksum(entry.user_id, entry.action, entry.details or {}, previous_checksum)
            if expected != entry.checksum:
                corrupted.append(entry.id)
            else:
                last_verified = entry.id
            previous_checksums[entry.request_id] = entry.checksum

        if corrupted:
            scope = f"request {request_id}" if request_id is not None else "all requests"
            logger.error(f" Audit chain for {scope} has {len(corrupted)} corrupted entries")

        return IntegrityResult(
            is_valid=not corrupted,
            corrupted_entries=corrupted,
            last_verified_entry=last_verified,
        )

    def generate_audit_report(self, request_id: str) -> AuditReport:
        entries = self.get_audit_trail(request_id)
        integrity = self.verify_integrity(request_id)
        return AuditReport(
            request_id=request_id,
            entries=[AuditEntryResponse.model_validate(entry) for entry in entries],
            integrity_verified=integrity.is_valid,
            generated_at=utcnow(),
        )

    def count_entries(self, request_id: Optional[str] = None) -> int:
        """Entries in one chain; None counts entries not tied to a request"""
        return self._chain_query(request_id).with_entities(func.count(AuditLog.id)).scalar()

    def _chain_query(self, request_id: Optional[str]):
        query = self.db.query(AuditLog)
        if request_id is None:
            return query.filter(AuditLog.request_id.is_(None))
        return query.filter(AuditLog.request_id == request_id)
