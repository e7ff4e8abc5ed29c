"""
Pydantic schemas for admin user requests and responses.
"""
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field, field_validator

from admin_iam.features.admin_users.models import AdminUserStatus


class AdminUserCreate(BaseModel):
    """Schema for provisioning an admin user explicitly."""
    subject_id: str = Field(..., min_length=1, max_length=64, description="Subject id of the identity provider user")
    email: EmailStr
    status: AdminUserStatus | None = None


class AdminUserUpdate(BaseModel):
    email: EmailStr | None = None
    status: AdminUserStatus | None = None


class ReplaceAdminUserRoles(BaseModel):
    """Full replacement of the roles held by an admin user."""
    role_ids: list[str] = Field(..., description="Exact role set; may be empty")

    @field_validator("role_ids")
    @classmethod
    def validate_unique(cls, v: list[str]) -> list[str]:
        if len(set(v)) != len(v):
            raise ValueError("Role ids must be unique")
        return v


class RoleSummary(BaseModel):
    id: str
    name: str

    model_config = {"from_attributes": True}


class AdminUserResponse(BaseModel):
    id: str
    subject_id: str
    email: str
    status: AdminUserStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AdminUserWithRoles(AdminUserResponse):
    roles: list[RoleSummary] = Field(default_factory=list)
