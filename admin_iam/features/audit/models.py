"""
Audit log model.

Rows are written synchronously inside the transaction of the operation they
describe and are never updated or deleted.
"""
import enum
from datetime import datetime
from typing import Any
from sqlalchemy import String, ForeignKey, JSON, DateTime, Index, func
from sqlalchemy.orm import Mapped, mapped_column

from admin_iam.core.database.base import Base, generate_ulid


class AuditAction(str, enum.Enum):
    ADMIN_CREATE = "admin.create"
    ADMIN_STATUS_CHANGE = "admin.status_change"
    ADMIN_UPDATE = "admin.update"
    ADMIN_DELETE = "admin.delete"
    ROLE_CREATE = "role.create"
    ROLE_UPDATE = "role.update"
    ROLE_DELETE = "role.delete"
    ROLE_ASSIGN = "role.assign"
    ROLE_UNASSIGN = "role.unassign"
    PERMISSION_CREATE = "permission.create"
    PERMISSION_UPDATE = "permission.update"
    PERMISSION_DELETE = "permission.delete"
    PERMISSION_ASSIGN = "permission.assign"
    PERMISSION_UNASSIGN = "permission.unassign"
    RBAC_SEED = "rbac.seed"


class AuditTargetType(str, enum.Enum):
    ADMIN_USER = "admin_user"
    ROLE = "role"
    PERMISSION = "permission"


class AuditLog(Base):
    """
    One administrative state change: who did what to which target, with
    before/after snapshots and request correlation data.
    """
    __tablename__ = "admin_audit_logs"
    __table_args__ = (
        Index("ix_admin_audit_logs_actor_created", "actor_admin_user_id", "created_at"),
        Index("ix_admin_audit_logs_target", "target_type", "target_id"),
        Index("ix_admin_audit_logs_action_created", "action", "created_at"),
    )

    # Primary key using ULID
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    # Actor
    actor_admin_user_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("admin_users.id", ondelete="RESTRICT"),
        nullable=False,
    )

    # Action details
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    target_type: Mapped[str] = mapped_column(String(64), nullable=False)
    target_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # Snapshots. SQL NULL means "omitted", JSON null means "explicitly nothing".
    before: Mapped[Any] = mapped_column(JSON, nullable=True)
    after: Mapped[Any] = mapped_column(JSON, nullable=True)

    # Context
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(255), nullable=True)
    request_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, actor={self.actor_admin_user_id}, action={self.action}, target={self.target_type}:{self.target_id})>"
