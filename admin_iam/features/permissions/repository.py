"""
Data access for the permission catalog.
"""
from collections.abc import Iterable, Sequence
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from admin_iam.core.database import store
from admin_iam.features.permissions.models import Permission
from admin_iam.features.roles.models import Role, role_permissions


class PermissionRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_active(self, permission_id: str) -> Permission | None:
        return await store.get_active(self.session, Permission, permission_id)

    async def get_by_key(self, key: str) -> Permission | None:
        """Look up by key, soft-deleted rows included."""
        result = await self.session.execute(select(Permission).where(Permission.key == key))
        return result.scalars().first()

    async def list_active(self) -> Sequence[Permission]:
        result = await self.session.execute(select(Permission).where(Permission.active()).order_by(Permission.key))
        return result.scalars().all()

    async def add(self, permission: Permission) -> Permission:
        self.session.add(permission)
        await self.session.flush()
        return permission

    async def find_active_ids(self, permission_ids: Iterable[str]) -> set[str]:
        return await store.find_active_ids(self.session, Permission, permission_ids)

    async def catalog_keys(self) -> list[str]:
        """Keys of every non-deleted permission."""
        result = await self.session.execute(select(Permission.key).where(Permission.active()))
        return list(result.scalars().all())

    async def active_keys_for_roles(self, role_ids: Sequence[str]) -> list[str]:
        """Keys of non-deleted permissions linked to any of ``role_ids``."""
        if not role_ids:
            return []
        stmt = (
            select(Permission.key)
            .join(role_permissions, role_permissions.c.permission_id == Permission.id)
            .where(role_permissions.c.role_id.in_(role_ids), Permission.active())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def is_assigned_to_active_role(self, permission_id: str) -> bool:
        stmt = (
            select(role_permissions.c.role_id)
            .join(Role, Role.id == role_permissions.c.role_id)
            .where(role_permissions.c.permission_id == permission_id, Role.active())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.first() is not None
