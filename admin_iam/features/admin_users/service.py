"""
Admin user operations, including just-in-time provisioning.
"""
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from admin_iam.core.database.engine import atomic
from admin_iam.core.errors import Conflict, NotFound
from admin_iam.core.request import RequestContext
from admin_iam.features.admin_users.models import AdminUser, AdminUserStatus
from admin_iam.features.admin_users.repository import AdminUserRepository
from admin_iam.features.audit.models import AuditAction, AuditTargetType
from admin_iam.features.audit.service import AuditLogger
from admin_iam.features.rbac.assignments import AssignmentManager
from admin_iam.features.roles.models import Role
from admin_iam.utils import get_logger


log = get_logger(__name__)


def _snapshot(admin: AdminUser) -> dict:
    return {"subject_id": admin.subject_id, "email": admin.email, "status": admin.status.value}


class AdminUserService:
    def __init__(self, session: AsyncSession, audit: AuditLogger) -> None:
        self.session = session
        self.audit = audit
        self.admin_users = AdminUserRepository(session)
        self.assignments = AssignmentManager(session, audit)

    async def list_admin_users(self) -> list[tuple[AdminUser, list[Role]]]:
        """Every live admin user, newest first, with its live roles."""
        admins = await self.admin_users.list_active()
        roles = await self.admin_users.active_roles_by_admin([admin.id for admin in admins])
        return [(admin, roles.get(admin.id, [])) for admin in admins]

    async def get(self, admin_user_id: str) -> AdminUser:
        admin = await self.admin_users.get_active(admin_user_id)
        if admin is None:
            raise NotFound("Admin user not found")
        return admin

    async def get_with_roles(self, admin_user_id: str) -> tuple[AdminUser, list[Role]]:
        admin = await self.get(admin_user_id)
        roles = await self.admin_users.active_roles_by_admin([admin.id])
        return admin, roles.get(admin.id, [])

    async def create(
        self,
        subject_id: str,
        email: str,
        actor_admin_user_id: str,
        status: AdminUserStatus | None = None,
        context: RequestContext | None = None,
    ) -> AdminUser:
        """
        Provision an admin user for ``subject_id``.

        A soft-deleted admin with the same subject is restored with the new
        email and status.

        Raises:
            Conflict: a live admin user already exists for the subject
        """
        status = status or AdminUserStatus.ACTIVE
        try:
            async with atomic(self.session):
                existing = await self.admin_users.get_by_subject(subject_id)
                if existing is not None and not existing.is_deleted:
                    raise Conflict("Admin user already exists for this subject")

                if existing is not None:
                    before = {"id": existing.id, "deleted_at": existing.deleted_at.isoformat()}
                    existing.restore()
                    existing.email = email
                    existing.status = status
                    admin = existing
                    await self.session.flush()
                else:
                    before = None
                    admin = await self.admin_users.add(AdminUser(subject_id=subject_id, email=email, status=status))

                await self.audit.log_action(
                    actor_admin_user_id=actor_admin_user_id,
                    action=AuditAction.ADMIN_CREATE,
                    target_type=AuditTargetType.ADMIN_USER,
                    target_id=admin.id,
                    before=before,
                    after=_snapshot(admin),
                    context=context,
                )
        except IntegrityError as e:
            log.warning("Admin user create raced on subject %s: %s", subject_id, e)
            raise Conflict("Admin user already exists for this subject") from e

        await self.session.refresh(admin)
        return admin

    async def update(
        self,
        admin_user_id: str,
        actor_admin_user_id: str,
        email: str | None = None,
        status: AdminUserStatus | None = None,
        context: RequestContext | None = None,
    ) -> AdminUser:
        async with atomic(self.session):
            admin = await self.get(admin_user_id)
            before = {"email": admin.email, "status": admin.status.value}

            if email is not None:
                admin.email = email
            if status is not None:
                admin.status = status
            await self.session.flush()

            await self.audit.log_action(
                actor_admin_user_id=actor_admin_user_id,
                action=AuditAction.ADMIN_UPDATE,
                target_type=AuditTargetType.ADMIN_USER,
                target_id=admin.id,
                before=before,
                after={"email": admin.email, "status": admin.status.value},
                context=context,
            )

        await self.session.refresh(admin)
        return admin

    async def set_status(
        self,
        admin_user_id: str,
        status: AdminUserStatus,
        actor_admin_user_id: str,
        context: RequestContext | None = None,
    ) -> AdminUser:
        """Enable or disable an admin user. Disabled admins resolve to no grants."""
        async with atomic(self.session):
            admin = await self.get(admin_user_id)
            before = {"status": admin.status.value}
            admin.status = status
            await self.session.flush()

            await self.audit.log_action(
                actor_admin_user_id=actor_admin_user_id,
                action=AuditAction.ADMIN_STATUS_CHANGE,
                target_type=AuditTargetType.ADMIN_USER,
                target_id=admin.id,
                before=before,
                after={"status": status.value},
                context=context,
            )

        await self.session.refresh(admin)
        return admin

    async def soft_delete(
        self,
        admin_user_id: str,
        actor_admin_user_id: str,
        context: RequestContext | None = None,
    ) -> None:
        async with atomic(self.session):
            admin = await self.get(admin_user_id)
            before = {"email": admin.email, "status": admin.status.value}
            admin.mark_deleted()
            await self.session.flush()

            await self.audit.log_action(
                actor_admin_user_id=actor_admin_user_id,
                action=AuditAction.ADMIN_DELETE,
                target_type=AuditTargetType.ADMIN_USER,
                target_id=admin.id,
                before=before,
                after={"deleted": True},
                context=context,
            )

    async def ensure_admin_user(
        self,
        subject_id: str,
        email: str,
        actor_admin_user_id: str | None = None,
        context: RequestContext | None = None,
    ) -> AdminUser:
        """
        Just-in-time provisioning keyed by subject id.

        Creates the row when missing, otherwise clears any tombstone and
        refreshes its email. Creation and restore are audited as
        ``admin.create``, an email change as ``admin.update``; an unchanged
        row writes nothing. With no ``actor_admin_user_id`` the admin is
        recorded as its own actor.
        """
        async with atomic(self.session):
            admin = await self.admin_users.get_by_subject(subject_id)
            created = admin is None

            if created:
                admin = await self.admin_users.add(
                    AdminUser(subject_id=subject_id, email=email, status=AdminUserStatus.ACTIVE)
                )
                await self.audit.log_action(
                    actor_admin_user_id=actor_admin_user_id or admin.id,
                    action=AuditAction.ADMIN_CREATE,
                    target_type=AuditTargetType.ADMIN_USER,
                    target_id=admin.id,
                    before=None,
                    after=_snapshot(admin),
                    context=context,
                )
            elif admin.is_deleted:
                before = {"id": admin.id, "deleted_at": admin.deleted_at.isoformat()}
                admin.restore()
                admin.email = email
                await self.session.flush()
                await self.audit.log_action(
                    actor_admin_user_id=actor_admin_user_id or admin.id,
                    action=AuditAction.ADMIN_CREATE,
                    target_type=AuditTargetType.ADMIN_USER,
                    target_id=admin.id,
                    before=before,
                    after=_snapshot(admin),
                    context=context,
                )
            elif admin.email != email:
                before = _snapshot(admin)
                admin.email = email
                await self.session.flush()
                await self.audit.log_action(
                    actor_admin_user_id=actor_admin_user_id or admin.id,
                    action=AuditAction.ADMIN_UPDATE,
                    target_type=AuditTargetType.ADMIN_USER,
                    target_id=admin.id,
                    before=before,
                    after=_snapshot(admin),
                    context=context,
                )

        if created:
            log.info("Provisioned admin user %s for subject %s", admin.id, subject_id)
        await self.session.refresh(admin)
        return admin

    async def replace_roles(
        self,
        admin_user_id: str,
        role_ids: list[str],
        actor_admin_user_id: str,
        context: RequestContext | None = None,
    ) -> tuple[AdminUser, list[Role]]:
        await self.assignments.replace_roles(admin_user_id, role_ids, actor_admin_user_id, context)
        return await self.get_with_roles(admin_user_id)

    async def assign_role(
        self,
        admin_user_id: str,
        role_id: str,
        actor_admin_user_id: str,
        context: RequestContext | None = None,
    ) -> tuple[AdminUser, list[Role]]:
        await self.assignments.assign_role(admin_user_id, role_id, actor_admin_user_id, context)
        return await self.get_with_roles(admin_user_id)

    async def unassign_role(
        self,
        admin_user_id: str,
        role_id: str,
        actor_admin_user_id: str,
        context: RequestContext | None = None,
    ) -> tuple[AdminUser, list[Role]]:
        await self.assignments.unassign_role(admin_user_id, role_id, actor_admin_user_id, context)
        return await self.get_with_roles(admin_user_id)
