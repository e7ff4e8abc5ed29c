"""
AdminUser model and the admin user <-> role junction table.
"""
import enum
from sqlalchemy import String, ForeignKey, Table, Column, DateTime, Enum as SQLEnum, func
from sqlalchemy.orm import Mapped, mapped_column

from admin_iam.core.database.base import Base, TimestampMixin, SoftDeleteMixin, generate_ulid


class AdminUserStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    DISABLED = "DISABLED"


# AdminUser-Role relationship (membership is binary, no soft delete)
admin_user_roles = Table(
    "admin_user_roles",
    Base.metadata,
    Column("admin_user_id", String(26), ForeignKey("admin_users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", String(26), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True, index=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)


class AdminUser(Base, TimestampMixin, SoftDeleteMixin):
    """
    Administrator known to the RBAC system.

    Created just-in-time on first authentication or explicitly by another
    administrator. Lookups for authorization go through ``subject_id``.
    """
    __tablename__ = "admin_users"

    # Primary key using ULID
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    # Subject id of the externally verified principal
    subject_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)

    email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    status: Mapped[AdminUserStatus] = mapped_column(
        SQLEnum(AdminUserStatus, name="admin_user_status"),
        default=AdminUserStatus.ACTIVE,
        nullable=False,
        index=True,
    )

    @property
    def is_active(self) -> bool:
        return self.status == AdminUserStatus.ACTIVE and self.deleted_at is None

    def __repr__(self) -> str:
        return f"<AdminUser(id={self.id}, subject_id={self.subject_id!r}, status={self.status})>"
