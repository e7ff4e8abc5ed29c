"""
Role operations.
"""
from collections.abc import Sequence
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from admin_iam.core.database.engine import atomic
from admin_iam.core.errors import Conflict, NotFound
from admin_iam.core.request import RequestContext
from admin_iam.features.audit.models import AuditAction, AuditTargetType
from admin_iam.features.audit.service import AuditLogger
from admin_iam.features.permissions.models import Permission
from admin_iam.features.rbac.assignments import AssignmentManager
from admin_iam.features.roles.models import Role
from admin_iam.features.roles.repository import RoleRepository
from admin_iam.utils import get_logger


log = get_logger(__name__)


class RoleService:
    def __init__(self, session: AsyncSession, audit: AuditLogger) -> None:
        self.session = session
        self.audit = audit
        self.roles = RoleRepository(session)
        self.assignments = AssignmentManager(session, audit)

    async def list_roles(self) -> Sequence[Role]:
        return await self.roles.list_active()

    async def get(self, role_id: str) -> Role:
        role = await self.roles.get_active(role_id)
        if role is None:
            raise NotFound("Role not found")
        return role

    async def get_with_permissions(self, role_id: str) -> tuple[Role, Sequence[Permission]]:
        role = await self.get(role_id)
        return role, await self.roles.active_permissions(role.id)

    async def create(
        self,
        name: str,
        description: str | None,
        actor_admin_user_id: str,
        context: RequestContext | None = None,
    ) -> Role:
        try:
            async with atomic(self.session):
                existing = await self.roles.get_by_name(name)
                if existing is not None and not existing.is_deleted:
                    raise Conflict("Role name already exists")

                if existing is not None:
                    # A revived role starts with no permissions
                    stale = sorted(await self.roles.permission_ids(existing.id))
                    before = {
                        "id": existing.id,
                        "deleted_at": existing.deleted_at.isoformat(),
                        "permission_ids": stale,
                    }
                    await self.roles.replace_permissions(existing.id, [])
                    existing.restore()
                    existing.description = description
                    role = existing
                    await self.session.flush()
                else:
                    before = None
                    role = await self.roles.add(Role(name=name, description=description))

                await self.audit.log_action(
                    actor_admin_user_id=actor_admin_user_id,
                    action=AuditAction.ROLE_CREATE,
                    target_type=AuditTargetType.ROLE,
                    target_id=role.id,
                    before=before,
                    after={"id": role.id, "name": role.name, "description": role.description},
                    context=context,
                )
        except IntegrityError as e:
            log.warning("Role create raced on name %s: %s", name, e)
            raise Conflict("Role name already exists") from e

        await self.session.refresh(role)
        return role

    async def update(
        self,
        role_id: str,
        actor_admin_user_id: str,
        name: str | None = None,
        description: str | None = None,
        context: RequestContext | None = None,
    ) -> Role:
        try:
            async with atomic(self.session):
                role = await self.get(role_id)
                before = {"name": role.name, "description": role.description}

                if name is not None and name != role.name:
                    if await self.roles.get_by_name(name) is not None:
                        raise Conflict("Role name already exists")
                    role.name = name
                if description is not None:
                    role.description = description
                await self.session.flush()

                await self.audit.log_action(
                    actor_admin_user_id=actor_admin_user_id,
                    action=AuditAction.ROLE_UPDATE,
                    target_type=AuditTargetType.ROLE,
                    target_id=role.id,
                    before=before,
                    after={"name": role.name, "description": role.description},
                    context=context,
                )
        except IntegrityError as e:
            raise Conflict("Role name already exists") from e

        await self.session.refresh(role)
        return role

    async def soft_delete(
        self,
        role_id: str,
        actor_admin_user_id: str,
        context: RequestContext | None = None,
    ) -> None:
        """
        Tombstone a role.

        Raises:
            NotFound: unknown or already deleted
            Conflict: still held by a non-deleted admin user
        """
        async with atomic(self.session):
            role = await self.get(role_id)
            if await self.roles.is_assigned_to_active_admin(role.id):
                raise Conflict("Role is assigned to an admin user")

            before = {"name": role.name, "description": role.description}
            role.mark_deleted()
            await self.session.flush()

            await self.audit.log_action(
                actor_admin_user_id=actor_admin_user_id,
                action=AuditAction.ROLE_DELETE,
                target_type=AuditTargetType.ROLE,
                target_id=role.id,
                before=before,
                after={"deleted": True},
                context=context,
            )

    async def replace_permissions(
        self,
        role_id: str,
        permission_ids: list[str],
        actor_admin_user_id: str,
        context: RequestContext | None = None,
    ) -> tuple[Role, Sequence[Permission]]:
        await self.assignments.replace_permissions(role_id, permission_ids, actor_admin_user_id, context)
        return await self.get_with_permissions(role_id)

    async def assign_permission(
        self,
        role_id: str,
        permission_id: str,
        actor_admin_user_id: str,
        context: RequestContext | None = None,
    ) -> tuple[Role, Sequence[Permission]]:
        await self.assignments.assign_permission(role_id, permission_id, actor_admin_user_id, context)
        return await self.get_with_permissions(role_id)

    async def unassign_permission(
        self,
        role_id: str,
        permission_id: str,
        actor_admin_user_id: str,
        context: RequestContext | None = None,
    ) -> tuple[Role, Sequence[Permission]]:
        await self.assignments.unassign_permission(role_id, permission_id, actor_admin_user_id, context)
        return await self.get_with_permissions(role_id)
