"""
Data access for admin users and their role assignments.
"""
from collections import defaultdict
from collections.abc import Sequence
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from admin_iam.core.database import store
from admin_iam.features.admin_users.models import AdminUser, admin_user_roles
from admin_iam.features.roles.models import Role


class AdminUserRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_active(self, admin_user_id: str) -> AdminUser | None:
        return await store.get_active(self.session, AdminUser, admin_user_id)

    async def get_by_subject(self, subject_id: str) -> AdminUser | None:
        """Look up by subject id, soft-deleted rows included."""
        result = await self.session.execute(select(AdminUser).where(AdminUser.subject_id == subject_id))
        return result.scalars().first()

    async def get_active_by_subject(self, subject_id: str) -> AdminUser | None:
        stmt = select(AdminUser).where(AdminUser.subject_id == subject_id, AdminUser.active())
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_active(self) -> Sequence[AdminUser]:
        stmt = select(AdminUser).where(AdminUser.active()).order_by(AdminUser.created_at.desc(), AdminUser.id.desc())
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def add(self, admin_user: AdminUser) -> AdminUser:
        self.session.add(admin_user)
        await self.session.flush()
        return admin_user

    async def active_roles_by_admin(self, admin_user_ids: Sequence[str]) -> dict[str, list[Role]]:
        """Map each admin user id to its non-deleted roles, sorted by name."""
        roles: dict[str, list[Role]] = defaultdict(list)
        if not admin_user_ids:
            return roles
        stmt = (
            select(admin_user_roles.c.admin_user_id, Role)
            .join(Role, Role.id == admin_user_roles.c.role_id)
            .where(admin_user_roles.c.admin_user_id.in_(admin_user_ids), Role.active())
            .order_by(Role.name)
        )
        result = await self.session.execute(stmt)
        for admin_user_id, role in result.all():
            roles[admin_user_id].append(role)
        return roles

    async def role_ids(self, admin_user_id: str) -> list[str]:
        """Every role id linked to the admin user, soft-deleted roles included."""
        return await store.linked_ids(
            self.session,
            admin_user_roles.c.admin_user_id,
            admin_user_id,
            admin_user_roles.c.role_id,
        )

    async def replace_roles(self, admin_user_id: str, role_ids: list[str]) -> None:
        await store.replace_links(self.session, admin_user_roles, "admin_user_id", admin_user_id, "role_id", role_ids)

    async def add_role(self, admin_user_id: str, role_id: str) -> bool:
        return await store.add_link(self.session, admin_user_roles, "admin_user_id", admin_user_id, "role_id", role_id)

    async def remove_role(self, admin_user_id: str, role_id: str) -> bool:
        return await store.remove_link(self.session, admin_user_roles, "admin_user_id", admin_user_id, "role_id", role_id)
