"""
Audit Trail Pydantic Schemas
File: approvalflow/schemas/audit.py
"""

from pydantic import BaseModel
from typing import Any, Dict, List, Optional
from datetime import datetime


class AuditEntryResponse(BaseModel):
    id: str
    sequence: int
    request_id: Optional[str] = None
    user_id: Optional[str] = None
    action: str
    details: Dict[str, Any] = {}
    checksum: str
    created_at: datetime

    class Config:
        from_attributes = True


class IntegrityResult(BaseModel):
    is_valid: bool
    corrupted_entries: List[str] = []
    last_verified_entry: Optional[str] = None


class AuditReport(BaseModel):
    request_id: str
    entries: List[AuditEntryResponse]
    integrity_verified: bool
    generated_at: datetime
