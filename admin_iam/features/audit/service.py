"""
Audit logger.

Every create/update/delete/assign of an admin user, role or permission
writes exactly one entry, in the same transaction as the change itself.
"""
from collections.abc import Sequence
from typing import Any
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from admin_iam.core.errors import InternalError
from admin_iam.core.request import RequestContext
from admin_iam.features.audit.models import AuditAction, AuditLog, AuditTargetType
from admin_iam.utils import get_logger


log = get_logger(__name__)


class _Omitted:
    """Marker for a snapshot side that was not supplied at all."""

    def __repr__(self) -> str:
        return "OMITTED"


OMITTED: Any = _Omitted()


class AuditLogger:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def log_action(
        self,
        actor_admin_user_id: str,
        action: AuditAction,
        target_type: AuditTargetType,
        target_id: str | None = None,
        before: Any = OMITTED,
        after: Any = OMITTED,
        context: RequestContext | None = None,
    ) -> AuditLog:
        """
        Append one audit entry to the current transaction.

        ``before``/``after`` are stored as JSON. Leaving one out stores SQL
        NULL; passing ``None`` stores a JSON null. The caller owns the commit.

        Raises:
            InternalError: if the entry cannot be written
        """
        entry = AuditLog(
            actor_admin_user_id=actor_admin_user_id,
            action=AuditAction(action).value,
            target_type=AuditTargetType(target_type).value,
            target_id=target_id,
        )
        if before is not OMITTED:
            entry.before = before
        if after is not OMITTED:
            entry.after = after
        if context is not None:
            entry.ip_address = context.ip_address
            entry.user_agent = context.user_agent
            entry.request_id = context.request_id

        try:
            self.session.add(entry)
            await self.session.flush()
        except SQLAlchemyError as e:
            log.exception("Audit write failed: actor=%s action=%s target=%s:%s", actor_admin_user_id, entry.action, entry.target_type, target_id)
            raise InternalError("Audit write failed") from e

        log.info(
            "Audit: actor=%s action=%s target=%s:%s request=%s",
            actor_admin_user_id, entry.action, entry.target_type, target_id,
            context.request_id if context else None,
        )
        return entry

    async def list_entries(
        self,
        skip: int = 0,
        limit: int = 50,
        actor_admin_user_id: str | None = None,
        action: str | None = None,
        target_type: str | None = None,
        target_id: str | None = None,
    ) -> tuple[Sequence[AuditLog], int]:
        """Return one page of entries, newest first, and the total match count."""
        stmt = select(AuditLog)

        if actor_admin_user_id:
            stmt = stmt.where(AuditLog.actor_admin_user_id == actor_admin_user_id)
        if action:
            stmt = stmt.where(AuditLog.action == action)
        if target_type:
            stmt = stmt.where(AuditLog.target_type == target_type)
        if target_id:
            stmt = stmt.where(AuditLog.target_id == target_id)

        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await self.session.execute(count_stmt)).scalar() or 0

        stmt = stmt.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).offset(skip).limit(limit)
        result = await self.session.execute(stmt)
        return result.scalars().all(), total
