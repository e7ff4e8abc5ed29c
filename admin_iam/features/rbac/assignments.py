"""
Assignment of roles to admin users and permissions to roles.

Each replace is one transaction: owner check, target validation, junction
delete + insert and the audit entry commit or roll back together. Concurrent
replaces of the same owner are last-writer-wins. Single links can also be
added or removed one at a time, with the same transactional audit.
"""
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from sqlalchemy.ext.asyncio import AsyncSession

from admin_iam.core.database.engine import atomic
from admin_iam.core.errors import NotFound
from admin_iam.core.request import RequestContext
from admin_iam.features.admin_users.repository import AdminUserRepository
from admin_iam.features.audit.models import AuditAction, AuditTargetType
from admin_iam.features.audit.service import AuditLogger
from admin_iam.features.permissions.repository import PermissionRepository
from admin_iam.features.roles.repository import RoleRepository
from admin_iam.utils import get_logger, unique_sorted


log = get_logger(__name__)


@dataclass(frozen=True)
class EdgeFamily:
    """Describes one owner -> target junction and how writes to it are audited."""
    name: str
    owner_missing: str
    targets_missing: str
    target_missing: str
    link_missing: str
    target_key: str
    action: AuditAction
    unassign_action: AuditAction
    target_type: AuditTargetType


ADMIN_USER_ROLES = EdgeFamily(
    name="admin_user_roles",
    owner_missing="Admin user not found",
    targets_missing="One or more roles not found",
    target_missing="Role not found",
    link_missing="Role is not assigned to this admin user",
    target_key="role_id",
    action=AuditAction.ROLE_ASSIGN,
    unassign_action=AuditAction.ROLE_UNASSIGN,
    target_type=AuditTargetType.ADMIN_USER,
)

ROLE_PERMISSIONS = EdgeFamily(
    name="role_permissions",
    owner_missing="Role not found",
    targets_missing="One or more permissions not found",
    target_missing="Permission not found",
    link_missing="Permission is not assigned to this role",
    target_key="permission_id",
    action=AuditAction.PERMISSION_ASSIGN,
    unassign_action=AuditAction.PERMISSION_UNASSIGN,
    target_type=AuditTargetType.ROLE,
)


class AssignmentManager:
    def __init__(self, session: AsyncSession, audit: AuditLogger) -> None:
        self.session = session
        self.audit = audit
        self.admin_users = AdminUserRepository(session)
        self.roles = RoleRepository(session)
        self.permissions = PermissionRepository(session)

    async def replace_roles(
        self,
        admin_user_id: str,
        role_ids: Iterable[str],
        actor_admin_user_id: str,
        context: RequestContext | None = None,
    ) -> list[str]:
        """Make ``role_ids`` the exact role set of an admin user. Returns the stored ids."""
        return await self._replace(
            ADMIN_USER_ROLES,
            owner_id=admin_user_id,
            target_ids=role_ids,
            actor_admin_user_id=actor_admin_user_id,
            context=context,
            owner_exists=self.admin_users.get_active,
            find_active_targets=self.roles.find_active_ids,
            current_ids=self.admin_users.role_ids,
            write=self.admin_users.replace_roles,
        )

    async def replace_permissions(
        self,
        role_id: str,
        permission_ids: Iterable[str],
        actor_admin_user_id: str,
        context: RequestContext | None = None,
    ) -> list[str]:
        """Make ``permission_ids`` the exact permission set of a role. Returns the stored ids."""
        return await self._replace(
            ROLE_PERMISSIONS,
            owner_id=role_id,
            target_ids=permission_ids,
            actor_admin_user_id=actor_admin_user_id,
            context=context,
            owner_exists=self.roles.get_active,
            find_active_targets=self.permissions.find_active_ids,
            current_ids=self.roles.permission_ids,
            write=self.roles.replace_permissions,
        )

    async def assign_role(
        self,
        admin_user_id: str,
        role_id: str,
        actor_admin_user_id: str,
        context: RequestContext | None = None,
    ) -> None:
        """Link one role to an admin user. Linking an already linked role is a no-op write."""
        await self._assign(
            ADMIN_USER_ROLES,
            owner_id=admin_user_id,
            target_id=role_id,
            actor_admin_user_id=actor_admin_user_id,
            context=context,
            owner_exists=self.admin_users.get_active,
            target_exists=self.roles.get_active,
            write=self.admin_users.add_role,
        )

    async def unassign_role(
        self,
        admin_user_id: str,
        role_id: str,
        actor_admin_user_id: str,
        context: RequestContext | None = None,
    ) -> None:
        """Remove one role link. The role itself may already be soft-deleted."""
        await self._unassign(
            ADMIN_USER_ROLES,
            owner_id=admin_user_id,
            target_id=role_id,
            actor_admin_user_id=actor_admin_user_id,
            context=context,
            owner_exists=self.admin_users.get_active,
            write=self.admin_users.remove_role,
        )

    async def assign_permission(
        self,
        role_id: str,
        permission_id: str,
        actor_admin_user_id: str,
        context: RequestContext | None = None,
    ) -> None:
        await self._assign(
            ROLE_PERMISSIONS,
            owner_id=role_id,
            target_id=permission_id,
            actor_admin_user_id=actor_admin_user_id,
            context=context,
            owner_exists=self.roles.get_active,
            target_exists=self.permissions.get_active,
            write=self.roles.add_permission,
        )

    async def unassign_permission(
        self,
        role_id: str,
        permission_id: str,
        actor_admin_user_id: str,
        context: RequestContext | None = None,
    ) -> None:
        await self._unassign(
            ROLE_PERMISSIONS,
            owner_id=role_id,
            target_id=permission_id,
            actor_admin_user_id=actor_admin_user_id,
            context=context,
            owner_exists=self.roles.get_active,
            write=self.roles.remove_permission,
        )

    async def _replace(
        self,
        family: EdgeFamily,
        *,
        owner_id: str,
        target_ids: Iterable[str],
        actor_admin_user_id: str,
        context: RequestContext | None,
        owner_exists: Callable[[str], Awaitable[object | None]],
        find_active_targets: Callable[[list[str]], Awaitable[set[str]]],
        current_ids: Callable[[str], Awaitable[list[str]]],
        write: Callable[[str, list[str]], Awaitable[None]],
    ) -> list[str]:
        async with atomic(self.session):
            if await owner_exists(owner_id) is None:
                raise NotFound(family.owner_missing)

            desired = unique_sorted(target_ids)
            if desired:
                found = await find_active_targets(desired)
                if len(found) != len(desired):
                    log.debug("%s replace for %s: unknown ids %s", family.name, owner_id, sorted(set(desired) - found))
                    raise NotFound(family.targets_missing)

            before = unique_sorted(await current_ids(owner_id))
            await write(owner_id, desired)

            await self.audit.log_action(
                actor_admin_user_id=actor_admin_user_id,
                action=family.action,
                target_type=family.target_type,
                target_id=owner_id,
                before={"ids": before},
                after={"ids": desired},
                context=context,
            )

        log.info("Replaced %s for %s: %d -> %d", family.name, owner_id, len(before), len(desired))
        return desired

    async def _assign(
        self,
        family: EdgeFamily,
        *,
        owner_id: str,
        target_id: str,
        actor_admin_user_id: str,
        context: RequestContext | None,
        owner_exists: Callable[[str], Awaitable[object | None]],
        target_exists: Callable[[str], Awaitable[object | None]],
        write: Callable[[str, str], Awaitable[bool]],
    ) -> None:
        async with atomic(self.session):
            if await owner_exists(owner_id) is None:
                raise NotFound(family.owner_missing)
            if await target_exists(target_id) is None:
                raise NotFound(family.target_missing)

            inserted = await write(owner_id, target_id)

            await self.audit.log_action(
                actor_admin_user_id=actor_admin_user_id,
                action=family.action,
                target_type=family.target_type,
                target_id=owner_id,
                before=None,
                after={family.target_key: target_id},
                context=context,
            )

        log.info("Linked %s %s -> %s (new=%s)", family.name, owner_id, target_id, inserted)

    async def _unassign(
        self,
        family: EdgeFamily,
        *,
        owner_id: str,
        target_id: str,
        actor_admin_user_id: str,
        context: RequestContext | None,
        owner_exists: Callable[[str], Awaitable[object | None]],
        write: Callable[[str, str], Awaitable[bool]],
    ) -> None:
        async with atomic(self.session):
            if await owner_exists(owner_id) is None:
                raise NotFound(family.owner_missing)
            if not await write(owner_id, target_id):
                raise NotFound(family.link_missing)

            await self.audit.log_action(
                actor_admin_user_id=actor_admin_user_id,
                action=family.unassign_action,
                target_type=family.target_type,
                target_id=owner_id,
                before={family.target_key: target_id},
                after=None,
                context=context,
            )

        log.info("Unlinked %s %s -> %s", family.name, owner_id, target_id)
