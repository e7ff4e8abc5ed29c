"""
Permission resolution for a verified principal.
"""
from dataclasses import dataclass
from sqlalchemy.ext.asyncio import AsyncSession

from admin_iam.features.admin_users.models import AdminUserStatus
from admin_iam.features.admin_users.repository import AdminUserRepository
from admin_iam.features.permissions.repository import PermissionRepository
from admin_iam.features.roles.repository import RoleRepository
from admin_iam.utils import get_logger, unique_sorted


log = get_logger(__name__)


@dataclass(frozen=True)
class GrantRecord:
    admin_user_id: str
    role_names: tuple[str, ...]
    granted_permissions: tuple[str, ...]


class PermissionResolver:
    """
    Aggregates the effective roles and permission keys of an admin user.

    Read-only and idempotent; safe to call concurrently.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.admin_users = AdminUserRepository(session)
        self.roles = RoleRepository(session)
        self.permissions = PermissionRepository(session)

    async def resolve_for_subject(self, subject_id: str) -> GrantRecord | None:
        """
        Resolve grants for the admin bound to ``subject_id``.

        Returns None when the subject is not provisioned, soft-deleted or
        disabled. Soft-deleted roles and permissions contribute nothing.
        """
        admin = await self.admin_users.get_active_by_subject(subject_id)
        if admin is None:
            log.debug("No active admin user for subject %s", subject_id)
            return None
        if admin.status != AdminUserStatus.ACTIVE:
            log.debug("Admin user %s is %s", admin.id, admin.status.value)
            return None

        roles = await self.roles.active_for_admin(admin.id)
        role_ids = unique_sorted(role.id for role in roles)
        keys = await self.permissions.active_keys_for_roles(role_ids)

        return GrantRecord(
            admin_user_id=admin.id,
            role_names=tuple(unique_sorted(role.name for role in roles)),
            granted_permissions=tuple(unique_sorted(keys)),
        )
