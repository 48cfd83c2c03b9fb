"""Pydantic schemas for audit API responses."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel


class AuditRecordResponse(BaseModel):
    id: str
    company_id: str
    principal_id: Optional[str] = None
    table_name: str
    action: str
    record_id: Optional[str] = None
    old_data: Optional[dict[str, Any]] = None
    new_data: Optional[dict[str, Any]] = None
    sequence: int
    prev_hash: Optional[str] = None
    record_hash: str
    signature: str
    created_at: datetime

    model_config = {"from_attributes": True}


class AuditChainVerification(BaseModel):
    valid: bool
    records_checked: int
    break_at: Optional[str] = None
