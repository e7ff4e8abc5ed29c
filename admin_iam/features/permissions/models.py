"""
Permission model.
"""
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from admin_iam.core.database.base import Base, TimestampMixin, SoftDeleteMixin, generate_ulid


class Permission(Base, TimestampMixin, SoftDeleteMixin):
    """
    Permission model keyed as ``<module>:<action>``.

    Examples:
    - key="driver:read"
    - key="role:assign-permission"
    - key="*" (superuser grant, never part of the capability catalog)
    """
    __tablename__ = "permissions"

    # Primary key using ULID
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    key: Mapped[str] = mapped_column(String(128), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<Permission(id={self.id}, key={self.key!r})>"
