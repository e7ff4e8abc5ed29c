"""
Permission catalog operations.
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
from admin_iam.features.permissions.repository import PermissionRepository
from admin_iam.utils import get_logger


log = get_logger(__name__)


class PermissionService:
    def __init__(self, session: AsyncSession, audit: AuditLogger) -> None:
        self.session = session
        self.audit = audit
        self.permissions = PermissionRepository(session)

    async def list_permissions(self) -> Sequence[Permission]:
        return await self.permissions.list_active()

    async def get(self, permission_id: str) -> Permission:
        permission = await self.permissions.get_active(permission_id)
        if permission is None:
            raise NotFound("Permission not found")
        return permission

    async def create(
        self,
        key: str,
        description: str | None,
        actor_admin_user_id: str,
        context: RequestContext | None = None,
    ) -> Permission:
        """
        Add a key to the catalog.

        A soft-deleted permission with the same key is restored in place, so
        roles that still link to it regain it.
        """
        try:
            async with atomic(self.session):
                existing = await self.permissions.get_by_key(key)
                if existing is not None and not existing.is_deleted:
                    raise Conflict("Permission key already exists")

                if existing is not None:
                    before = {"id": existing.id, "key": existing.key, "deleted_at": existing.deleted_at.isoformat()}
                    existing.restore()
                    existing.description = description
                    permission = existing
                    await self.session.flush()
                else:
                    before = None
                    permission = await self.permissions.add(Permission(key=key, description=description))

                await self.audit.log_action(
                    actor_admin_user_id=actor_admin_user_id,
                    action=AuditAction.PERMISSION_CREATE,
                    target_type=AuditTargetType.PERMISSION,
                    target_id=permission.id,
                    before=before,
                    after={"id": permission.id, "key": permission.key, "description": permission.description},
                    context=context,
                )
        except IntegrityError as e:
            log.warning("Permission create raced on key %s: %s", key, e)
            raise Conflict("Permission key already exists") from e

        await self.session.refresh(permission)
        return permission

    async def update(
        self,
        permission_id: str,
        actor_admin_user_id: str,
        key: str | None = None,
        description: str | None = None,
        context: RequestContext | None = None,
    ) -> Permission:
        try:
            async with atomic(self.session):
                permission = await self.get(permission_id)
                before = {"key": permission.key, "description": permission.description}

                if key is not None and key != permission.key:
                    taken = await self.permissions.get_by_key(key)
                    if taken is not None:
                        raise Conflict("Permission key already exists")
                    permission.key = key
                if description is not None:
                    permission.description = description
                await self.session.flush()

                await self.audit.log_action(
                    actor_admin_user_id=actor_admin_user_id,
                    action=AuditAction.PERMISSION_UPDATE,
                    target_type=AuditTargetType.PERMISSION,
                    target_id=permission.id,
                    before=before,
                    after={"key": permission.key, "description": permission.description},
                    context=context,
                )
        except IntegrityError as e:
            raise Conflict("Permission key already exists") from e

        await self.session.refresh(permission)
        return permission

    async def soft_delete(
        self,
        permission_id: str,
        actor_admin_user_id: str,
        context: RequestContext | None = None,
    ) -> None:
        """
        Tombstone a permission.

        Raises:
            NotFound: unknown or already deleted
            Conflict: still held by a non-deleted role
        """
        async with atomic(self.session):
            permission = await self.get(permission_id)
            if await self.permissions.is_assigned_to_active_role(permission.id):
                raise Conflict("Permission is assigned to a role")

            before = {"key": permission.key, "description": permission.description}
            permission.mark_deleted()
            await self.session.flush()

            await self.audit.log_action(
                actor_admin_user_id=actor_admin_user_id,
                action=AuditAction.PERMISSION_DELETE,
                target_type=AuditTargetType.PERMISSION,
                target_id=permission.id,
                before=before,
                after={"deleted": True},
                context=context,
            )
