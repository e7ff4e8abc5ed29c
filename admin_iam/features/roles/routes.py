"""
Role routes.
"""
from collections.abc import Sequence
from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from admin_iam.core.database.engine import get_db
from admin_iam.core.request import RequestContext, get_request_context
from admin_iam.features.audit.service import AuditLogger
from admin_iam.features.auth.system_groups import SystemGroup, require_system_groups
from admin_iam.features.permissions.models import Permission
from admin_iam.features.rbac.guard import require_permissions
from admin_iam.features.rbac.resolver import GrantRecord
from admin_iam.features.roles.models import Role
from admin_iam.features.roles.schemas import (
    PermissionSummary,
    ReplaceRolePermissions,
    RoleCreate,
    RoleResponse,
    RoleUpdate,
    RoleWithPermissions,
)
from admin_iam.features.roles.service import RoleService


router = APIRouter(
    tags=["roles"],
    dependencies=[Depends(require_system_groups(SystemGroup.ADMIN))],
)


def get_role_service(db: Annotated[AsyncSession, Depends(get_db)]) -> RoleService:
    return RoleService(db, AuditLogger(db))


def _with_permissions(role: Role, permissions: Sequence[Permission]) -> RoleWithPermissions:
    return RoleWithPermissions(
        **RoleResponse.model_validate(role).model_dump(),
        permissions=[PermissionSummary.model_validate(p) for p in permissions],
    )


@router.get("", response_model=list[RoleResponse])
async def list_roles(
    grant: Annotated[GrantRecord, Depends(require_permissions("role:view"))],
    service: Annotated[RoleService, Depends(get_role_service)],
):
    """List roles by name."""
    return await service.list_roles()


@router.post("", response_model=RoleResponse, status_code=status.HTTP_201_CREATED)
async def create_role(
    role_data: RoleCreate,
    grant: Annotated[GrantRecord, Depends(require_permissions("role:create"))],
    service: Annotated[RoleService, Depends(get_role_service)],
    ctx: Annotated[RequestContext, Depends(get_request_context)],
):
    return await service.create(
        name=role_data.name,
        description=role_data.description,
        actor_admin_user_id=grant.admin_user_id,
        context=ctx,
    )


@router.get("/{role_id}", response_model=RoleWithPermissions)
async def get_role(
    role_id: str,
    grant: Annotated[GrantRecord, Depends(require_permissions("role:read"))],
    service: Annotated[RoleService, Depends(get_role_service)],
):
    """Get a role with its permissions."""
    role, permissions = await service.get_with_permissions(role_id)
    return _with_permissions(role, permissions)


@router.put("/{role_id}", response_model=RoleResponse)
async def update_role(
    role_id: str,
    role_data: RoleUpdate,
    grant: Annotated[GrantRecord, Depends(require_permissions("role:update"))],
    service: Annotated[RoleService, Depends(get_role_service)],
    ctx: Annotated[RequestContext, Depends(get_request_context)],
):
    return await service.update(
        role_id,
        actor_admin_user_id=grant.admin_user_id,
        name=role_data.name,
        description=role_data.description,
        context=ctx,
    )


@router.delete("/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_role(
    role_id: str,
    grant: Annotated[GrantRecord, Depends(require_permissions("role:delete"))],
    service: Annotated[RoleService, Depends(get_role_service)],
    ctx: Annotated[RequestContext, Depends(get_request_context)],
):
    """Soft-delete a role. Refused while an admin user still holds it."""
    await service.soft_delete(role_id, actor_admin_user_id=grant.admin_user_id, context=ctx)


@router.post("/{role_id}/permissions", response_model=RoleWithPermissions)
async def replace_role_permissions(
    role_id: str,
    permissions_data: ReplaceRolePermissions,
    grant: Annotated[GrantRecord, Depends(require_permissions("role:assign-permission"))],
    service: Annotated[RoleService, Depends(get_role_service)],
    ctx: Annotated[RequestContext, Depends(get_request_context)],
):
    """Replace the full permission set of a role."""
    role, permissions = await service.replace_permissions(
        role_id,
        permissions_data.permission_ids,
        actor_admin_user_id=grant.admin_user_id,
        context=ctx,
    )
    return _with_permissions(role, permissions)


@router.put("/{role_id}/permissions/{permission_id}", response_model=RoleWithPermissions)
async def assign_role_permission(
    role_id: str,
    permission_id: str,
    grant: Annotated[GrantRecord, Depends(require_permissions("role:assign-permission"))],
    service: Annotated[RoleService, Depends(get_role_service)],
    ctx: Annotated[RequestContext, Depends(get_request_context)],
):
    """Add one permission to a role."""
    role, permissions = await service.assign_permission(
        role_id, permission_id, actor_admin_user_id=grant.admin_user_id, context=ctx
    )
    return _with_permissions(role, permissions)


@router.delete("/{role_id}/permissions/{permission_id}", response_model=RoleWithPermissions)
async def unassign_role_permission(
    role_id: str,
    permission_id: str,
    grant: Annotated[GrantRecord, Depends(require_permissions("role:assign-permission"))],
    service: Annotated[RoleService, Depends(get_role_service)],
    ctx: Annotated[RequestContext, Depends(get_request_context)],
):
    role, permissions = await service.unassign_permission(
        role_id, permission_id, actor_admin_user_id=grant.admin_user_id, context=ctx
    )
    return _with_permissions(role, permissions)
