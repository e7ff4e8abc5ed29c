"""
Pydantic schemas for reading the audit trail.
"""
from datetime import datetime
from typing import Any
from pydantic import BaseModel


class AuditLogResponse(BaseModel):
    id: str
    actor_admin_user_id: str
    action: str
    target_type: str
    target_id: str | None = None
    before: Any = None
    after: Any = None
    ip_address: str | None = None
    user_agent: str | None = None
    request_id: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class AuditLogListResponse(BaseModel):
    items: list[AuditLogResponse]
    total: int
    skip: int
    limit: int
