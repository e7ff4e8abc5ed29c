"""
Audit trail routes (read-only).
"""
from typing import Annotated
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from admin_iam.core.database.engine import get_db
from admin_iam.features.audit.schemas import AuditLogListResponse, AuditLogResponse
from admin_iam.features.audit.service import AuditLogger
from admin_iam.features.auth.system_groups import SystemGroup, require_system_groups
from admin_iam.features.rbac.guard import require_permissions
from admin_iam.features.rbac.resolver import GrantRecord


router = APIRouter(
    tags=["audit"],
    dependencies=[Depends(require_system_groups(SystemGroup.ADMIN))],
)


@router.get("", response_model=AuditLogListResponse)
async def list_audit_logs(
    grant: Annotated[GrantRecord, Depends(require_permissions("audit:view"))],
    db: Annotated[AsyncSession, Depends(get_db)],
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    actor_admin_user_id: str | None = None,
    action: str | None = None,
    target_type: str | None = None,
    target_id: str | None = None,
):
    """List audit entries, newest first."""
    items, total = await AuditLogger(db).list_entries(
        skip=skip,
        limit=limit,
        actor_admin_user_id=actor_admin_user_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
    )
    return AuditLogListResponse(
        items=[AuditLogResponse.model_validate(item) for item in items],
        total=total,
        skip=skip,
        limit=limit,
    )
