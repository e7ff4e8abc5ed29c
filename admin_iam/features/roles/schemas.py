"""
Pydantic schemas for role requests and responses.
"""
from datetime import datetime
from pydantic import BaseModel, Field, field_validator


class RoleCreate(BaseModel):
    """Schema for creating a role."""
    name: str = Field(..., min_length=1, max_length=64, description="e.g. SUPER_ADMIN, ANALYST")
    description: str | None = Field(None, max_length=255)


class RoleUpdate(BaseModel):
    """Partial update; omitted fields are left untouched."""
    name: str | None = Field(None, min_length=1, max_length=64)
    description: str | None = Field(None, max_length=255)


class ReplaceRolePermissions(BaseModel):
    """Full replacement of the permissions held by a role."""
    permission_ids: list[str] = Field(..., description="Exact permission set; may be empty")

    @field_validator("permission_ids")
    @classmethod
    def validate_unique(cls, v: list[str]) -> list[str]:
        if len(set(v)) != len(v):
            raise ValueError("Permission ids must be unique")
        return v


class PermissionSummary(BaseModel):
    id: str
    key: str

    model_config = {"from_attributes": True}


class RoleResponse(BaseModel):
    id: str
    name: str
    description: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class RoleWithPermissions(RoleResponse):
    """Role detail including its non-deleted permissions."""
    permissions: list[PermissionSummary] = Field(default_factory=list)
