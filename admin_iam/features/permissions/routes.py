"""
Permission catalog routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from admin_iam.core.database.engine import get_db
from admin_iam.core.request import RequestContext, get_request_context
from admin_iam.features.audit.service import AuditLogger
from admin_iam.features.auth.system_groups import SystemGroup, require_system_groups
from admin_iam.features.permissions.schemas import PermissionCreate, PermissionResponse, PermissionUpdate
from admin_iam.features.permissions.service import PermissionService
from admin_iam.features.rbac.guard import require_permissions
from admin_iam.features.rbac.resolver import GrantRecord


router = APIRouter(
    tags=["permissions"],
    dependencies=[Depends(require_system_groups(SystemGroup.ADMIN))],
)


def get_permission_service(db: Annotated[AsyncSession, Depends(get_db)]) -> PermissionService:
    return PermissionService(db, AuditLogger(db))


@router.get("", response_model=list[PermissionResponse])
async def list_permissions(
    grant: Annotated[GrantRecord, Depends(require_permissions("permission:view"))],
    service: Annotated[PermissionService, Depends(get_permission_service)],
):
    return await service.list_permissions()


@router.post("", response_model=PermissionResponse, status_code=status.HTTP_201_CREATED)
async def create_permission(
    permission_data: PermissionCreate,
    grant: Annotated[GrantRecord, Depends(require_permissions("permission:create"))],
    service: Annotated[PermissionService, Depends(get_permission_service)],
    ctx: Annotated[RequestContext, Depends(get_request_context)],
):
    """Add a key to the catalog (restores a soft-deleted key)."""
    return await service.create(
        key=permission_data.key,
        description=permission_data.description,
        actor_admin_user_id=grant.admin_user_id,
        context=ctx,
    )


@router.get("/{permission_id}", response_model=PermissionResponse)
async def get_permission(
    permission_id: str,
    grant: Annotated[GrantRecord, Depends(require_permissions("permission:read"))],
    service: Annotated[PermissionService, Depends(get_permission_service)],
):
    return await service.get(permission_id)


@router.put("/{permission_id}", response_model=PermissionResponse)
async def update_permission(
    permission_id: str,
    permission_data: PermissionUpdate,
    grant: Annotated[GrantRecord, Depends(require_permissions("permission:update"))],
    service: Annotated[PermissionService, Depends(get_permission_service)],
    ctx: Annotated[RequestContext, Depends(get_request_context)],
):
    return await service.update(
        permission_id,
        actor_admin_user_id=grant.admin_user_id,
        key=permission_data.key,
        description=permission_data.description,
        context=ctx,
    )


@router.delete("/{permission_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_permission(
    permission_id: str,
    grant: Annotated[GrantRecord, Depends(require_permissions("permission:delete"))],
    service: Annotated[PermissionService, Depends(get_permission_service)],
    ctx: Annotated[RequestContext, Depends(get_request_context)],
):
    """Soft-delete a permission. Refused while a role still holds it."""
    await service.soft_delete(permission_id, actor_admin_user_id=grant.admin_user_id, context=ctx)
