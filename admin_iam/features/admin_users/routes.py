"""
Admin user routes.
"""
from collections.abc import Sequence
from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from admin_iam.core.database.engine import get_db
from admin_iam.core.request import RequestContext, get_request_context
from admin_iam.features.admin_users.models import AdminUser
from admin_iam.features.admin_users.schemas import (
    AdminUserCreate,
    AdminUserUpdate,
    AdminUserResponse,
    AdminUserWithRoles,
    ReplaceAdminUserRoles,
    RoleSummary,
)
from admin_iam.features.admin_users.service import AdminUserService
from admin_iam.features.audit.service import AuditLogger
from admin_iam.features.auth.system_groups import SystemGroup, require_system_groups
from admin_iam.features.rbac.guard import require_permissions
from admin_iam.features.rbac.resolver import GrantRecord
from admin_iam.features.roles.models import Role


router = APIRouter(
    tags=["admin-users"],
    dependencies=[Depends(require_system_groups(SystemGroup.ADMIN))],
)


def get_admin_user_service(db: Annotated[AsyncSession, Depends(get_db)]) -> AdminUserService:
    return AdminUserService(db, AuditLogger(db))


def _with_roles(admin: AdminUser, roles: Sequence[Role]) -> AdminUserWithRoles:
    return AdminUserWithRoles(
        **AdminUserResponse.model_validate(admin).model_dump(),
        roles=[RoleSummary.model_validate(role) for role in roles],
    )


@router.get("", response_model=list[AdminUserWithRoles])
async def list_admin_users(
    grant: Annotated[GrantRecord, Depends(require_permissions("admin-user:view"))],
    service: Annotated[AdminUserService, Depends(get_admin_user_service)],
):
    """List admin users, newest first, with their roles."""
    return [_with_roles(admin, roles) for admin, roles in await service.list_admin_users()]


@router.get("/{admin_user_id}", response_model=AdminUserWithRoles)
async def get_admin_user(
    admin_user_id: str,
    grant: Annotated[GrantRecord, Depends(require_permissions("admin-user:read"))],
    service: Annotated[AdminUserService, Depends(get_admin_user_service)],
):
    admin, roles = await service.get_with_roles(admin_user_id)
    return _with_roles(admin, roles)


@router.post("", response_model=AdminUserResponse, status_code=status.HTTP_201_CREATED)
async def create_admin_user(
    admin_data: AdminUserCreate,
    grant: Annotated[GrantRecord, Depends(require_permissions("admin-user:create"))],
    service: Annotated[AdminUserService, Depends(get_admin_user_service)],
    ctx: Annotated[RequestContext, Depends(get_request_context)],
):
    """Provision an admin user (restores a soft-deleted one with the same subject)."""
    return await service.create(
        subject_id=admin_data.subject_id,
        email=admin_data.email,
        status=admin_data.status,
        actor_admin_user_id=grant.admin_user_id,
        context=ctx,
    )


@router.put("/{admin_user_id}", response_model=AdminUserResponse)
async def update_admin_user(
    admin_user_id: str,
    admin_data: AdminUserUpdate,
    grant: Annotated[GrantRecord, Depends(require_permissions("admin-user:update"))],
    service: Annotated[AdminUserService, Depends(get_admin_user_service)],
    ctx: Annotated[RequestContext, Depends(get_request_context)],
):
    return await service.update(
        admin_user_id,
        actor_admin_user_id=grant.admin_user_id,
        email=admin_data.email,
        status=admin_data.status,
        context=ctx,
    )


@router.delete("/{admin_user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_admin_user(
    admin_user_id: str,
    grant: Annotated[GrantRecord, Depends(require_permissions("admin-user:delete"))],
    service: Annotated[AdminUserService, Depends(get_admin_user_service)],
    ctx: Annotated[RequestContext, Depends(get_request_context)],
):
    """Soft-delete an admin user."""
    await service.soft_delete(admin_user_id, actor_admin_user_id=grant.admin_user_id, context=ctx)


@router.post("/{admin_user_id}/roles", response_model=AdminUserWithRoles)
async def replace_admin_user_roles(
    admin_user_id: str,
    roles_data: ReplaceAdminUserRoles,
    grant: Annotated[GrantRecord, Depends(require_permissions("admin-user:assign-role"))],
    service: Annotated[AdminUserService, Depends(get_admin_user_service)],
    ctx: Annotated[RequestContext, Depends(get_request_context)],
):
    """Replace the full role set of an admin user."""
    admin, roles = await service.replace_roles(
        admin_user_id,
        roles_data.role_ids,
        actor_admin_user_id=grant.admin_user_id,
        context=ctx,
    )
    return _with_roles(admin, roles)


@router.put("/{admin_user_id}/roles/{role_id}", response_model=AdminUserWithRoles)
async def assign_admin_user_role(
    admin_user_id: str,
    role_id: str,
    grant: Annotated[GrantRecord, Depends(require_permissions("admin-user:assign-role"))],
    service: Annotated[AdminUserService, Depends(get_admin_user_service)],
    ctx: Annotated[RequestContext, Depends(get_request_context)],
):
    """Add one role to an admin user."""
    admin, roles = await service.assign_role(
        admin_user_id, role_id, actor_admin_user_id=grant.admin_user_id, context=ctx
    )
    return _with_roles(admin, roles)


@router.delete("/{admin_user_id}/roles/{role_id}", response_model=AdminUserWithRoles)
async def unassign_admin_user_role(
    admin_user_id: str,
    role_id: str,
    grant: Annotated[GrantRecord, Depends(require_permissions("admin-user:assign-role"))],
    service: Annotated[AdminUserService, Depends(get_admin_user_service)],
    ctx: Annotated[RequestContext, Depends(get_request_context)],
):
    admin, roles = await service.unassign_role(
        admin_user_id, role_id, actor_admin_user_id=grant.admin_user_id, context=ctx
    )
    return _with_roles(admin, roles)
