"""
Data access for roles and their permission assignments.
"""
from collections.abc import Iterable, Sequence
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from admin_iam.core.database import store
from admin_iam.features.admin_users.models import AdminUser, admin_user_roles
from admin_iam.features.permissions.models import Permission
from admin_iam.features.roles.models import Role, role_permissions


class RoleRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_active(self, role_id: str) -> Role | None:
        return await store.get_active(self.session, Role, role_id)

    async def get_by_name(self, name: str) -> Role | None:
        """Look up by name, soft-deleted rows included."""
        result = await self.session.execute(select(Role).where(Role.name == name))
        return result.scalars().first()

    async def list_active(self) -> Sequence[Role]:
        result = await self.session.execute(select(Role).where(Role.active()).order_by(Role.name))
        return result.scalars().all()

    async def add(self, role: Role) -> Role:
        self.session.add(role)
        await self.session.flush()
        return role

    async def find_active_ids(self, role_ids: Iterable[str]) -> set[str]:
        return await store.find_active_ids(self.session, Role, role_ids)

    async def active_for_admin(self, admin_user_id: str) -> Sequence[Role]:
        """Non-deleted roles assigned to an admin user."""
        stmt = (
            select(Role)
            .join(admin_user_roles, admin_user_roles.c.role_id == Role.id)
            .where(admin_user_roles.c.admin_user_id == admin_user_id, Role.active())
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def is_assigned_to_active_admin(self, role_id: str) -> bool:
        stmt = (
            select(admin_user_roles.c.admin_user_id)
            .join(AdminUser, AdminUser.id == admin_user_roles.c.admin_user_id)
            .where(admin_user_roles.c.role_id == role_id, AdminUser.active())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.first() is not None

    async def active_permissions(self, role_id: str) -> Sequence[Permission]:
        stmt = (
            select(Permission)
            .join(role_permissions, role_permissions.c.permission_id == Permission.id)
            .where(role_permissions.c.role_id == role_id, Permission.active())
            .order_by(Permission.key)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def permission_ids(self, role_id: str) -> list[str]:
        """Every permission id linked to the role, soft-deleted permissions included."""
        return await store.linked_ids(
            self.session,
            role_permissions.c.role_id,
            role_id,
            role_permissions.c.permission_id,
        )

    async def replace_permissions(self, role_id: str, permission_ids: list[str]) -> None:
        await store.replace_links(self.session, role_permissions, "role_id", role_id, "permission_id", permission_ids)

    async def add_permission(self, role_id: str, permission_id: str) -> bool:
        return await store.add_link(
            self.session, role_permissions, "role_id", role_id, "permission_id", permission_id
        )

    async def remove_permission(self, role_id: str, permission_id: str) -> bool:
        return await store.remove_link(
            self.session, role_permissions, "role_id", role_id, "permission_id", permission_id
        )
