"""
Role model and the role <-> permission junction table.
"""
from sqlalchemy import String, ForeignKey, Table, Column, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from admin_iam.core.database.base import Base, TimestampMixin, SoftDeleteMixin, generate_ulid


# Role-Permission relationship
role_permissions = Table(
    "role_permissions",
    Base.metadata,
    Column("role_id", String(26), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column("permission_id", String(26), ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True, index=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)


class Role(Base, TimestampMixin, SoftDeleteMixin):
    """
    Role model for grouping permissions.

    Examples: SUPER_ADMIN, OPS, SUPPORT_READONLY
    """
    __tablename__ = "roles"

    # Primary key using ULID
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    name: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, name={self.name!r})>"
