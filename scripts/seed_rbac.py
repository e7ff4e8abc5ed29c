"""
Seed script for the admin RBAC catalog.

Idempotently creates:
- The admin permission catalog
- The SUPER_ADMIN role holding every catalog permission
- An ACTIVE admin user bound to SUPER_ADMIN when SEED_ADMIN_SUBJECT_ID is set

Soft-deleted catalog rows are restored rather than duplicated.

Usage:
    SEED_ADMIN_SUBJECT_ID=<sub> python -m scripts.seed_rbac
"""
import asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from admin_iam.core import config
from admin_iam.core.database import store
from admin_iam.core.database.engine import atomic, get_db, init_db
from admin_iam.features.admin_users.models import AdminUser, AdminUserStatus, admin_user_roles
from admin_iam.features.admin_users.repository import AdminUserRepository
from admin_iam.features.audit.models import AuditAction, AuditTargetType
from admin_iam.features.audit.service import AuditLogger
from admin_iam.features.permissions.models import Permission
from admin_iam.features.permissions.repository import PermissionRepository
from admin_iam.features.roles.models import Role, role_permissions
from admin_iam.features.roles.repository import RoleRepository
from admin_iam.utils import get_logger


log = get_logger(__name__)


SUPER_ADMIN_ROLE = "SUPER_ADMIN"

DEFAULT_PERMISSIONS = [
    # Admin user management
    ("admin-user:view", "List admin users"),
    ("admin-user:read", "View an admin user"),
    ("admin-user:create", "Provision admin users"),
    ("admin-user:update", "Update admin users"),
    ("admin-user:delete", "Delete admin users"),
    ("admin-user:assign-role", "Replace the roles of an admin user"),

    # Role management
    ("role:view", "List roles"),
    ("role:read", "View a role"),
    ("role:create", "Create roles"),
    ("role:update", "Update roles"),
    ("role:delete", "Delete roles"),
    ("role:assign-permission", "Replace the permissions of a role"),

    # Permission catalog
    ("permission:view", "List permissions"),
    ("permission:read", "View a permission"),
    ("permission:create", "Create permissions"),
    ("permission:update", "Update permissions"),
    ("permission:delete", "Delete permissions"),

    # Audit trail
    ("audit:view", "View audit logs"),
]


async def seed_permissions(db: AsyncSession) -> dict[str, Permission]:
    """
    Upsert the permission catalog.

    Returns:
        Dictionary mapping permission keys to Permission objects
    """
    repo = PermissionRepository(db)
    permissions_map = {}

    for key, description in DEFAULT_PERMISSIONS:
        permission = await repo.get_by_key(key)
        if permission is None:
            permission = await repo.add(Permission(key=key, description=description))
            log.info("Created permission: %s", key)
        elif permission.is_deleted:
            permission.restore()
            log.info("Restored permission: %s", key)
        else:
            log.debug("Permission '%s' already exists, skipping", key)
        permissions_map[key] = permission

    await db.flush()
    return permissions_map


async def seed_super_admin_role(db: AsyncSession, permissions_map: dict[str, Permission]) -> Role:
    """Upsert SUPER_ADMIN and link it to every catalog permission (additive)."""
    repo = RoleRepository(db)
    role = await repo.get_by_name(SUPER_ADMIN_ROLE)
    if role is None:
        role = await repo.add(Role(name=SUPER_ADMIN_ROLE, description="Full access to the admin surface"))
        log.info("Created role: %s", SUPER_ADMIN_ROLE)
    elif role.is_deleted:
        role.restore()
        await db.flush()
        log.info("Restored role: %s", SUPER_ADMIN_ROLE)

    rows = [{"role_id": role.id, "permission_id": p.id} for p in permissions_map.values()]
    await db.execute(store.insert_ignoring_duplicates(db, role_permissions), rows)
    return role


async def seed_admin_user(db: AsyncSession, role: Role, subject_id: str, email: str) -> AdminUser:
    """Upsert the bootstrap admin as ACTIVE and bind it to ``role``."""
    repo = AdminUserRepository(db)
    admin = await repo.get_by_subject(subject_id)
    if admin is None:
        admin = await repo.add(AdminUser(subject_id=subject_id, email=email, status=AdminUserStatus.ACTIVE))
        log.info("Created admin user for subject %s", subject_id)
    else:
        admin.restore()
        admin.status = AdminUserStatus.ACTIVE
        await db.flush()

    await db.execute(
        store.insert_ignoring_duplicates(db, admin_user_roles),
        [{"admin_user_id": admin.id, "role_id": role.id}],
    )
    return admin


async def seed(db: AsyncSession, subject_id: str | None = None, email: str | None = None) -> AdminUser | None:
    """Run the whole seed as one transaction. Returns the bootstrap admin, if any."""
    async with atomic(db):
        permissions_map = await seed_permissions(db)
        role = await seed_super_admin_role(db, permissions_map)

        admin = None
        if subject_id:
            admin = await seed_admin_user(db, role, subject_id, email or config.SEED_ADMIN_EMAIL)
            await AuditLogger(db).log_action(
                actor_admin_user_id=admin.id,
                action=AuditAction.RBAC_SEED,
                target_type=AuditTargetType.ROLE,
                target_id=role.id,
                before=None,
                after={
                    "role": role.name,
                    "permissions": sorted(permissions_map),
                    "admin_user_id": admin.id,
                },
            )
        else:
            log.warning("SEED_ADMIN_SUBJECT_ID not set; no admin user bound to %s", SUPER_ADMIN_ROLE)

    return admin


async def main():
    """Main function to seed the RBAC catalog."""
    log.info("Starting RBAC seeding...")

    # Initialize database tables first
    await init_db()

    async for db in get_db():
        try:
            await seed(db, config.SEED_ADMIN_SUBJECT_ID, config.SEED_ADMIN_EMAIL)
            log.info("RBAC seeding completed successfully!")
        except Exception as e:
            log.error("Error seeding RBAC: %s", e, exc_info=True)
            raise

        break  # Only use first session


if __name__ == "__main__":
    asyncio.run(main())
