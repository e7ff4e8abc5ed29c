"""
Pydantic schemas for permission catalog requests and responses.
"""
from datetime import datetime
from pydantic import BaseModel, Field, field_validator

from admin_iam.features.rbac.grammar import is_valid_grant


def _check_key(value: str | None) -> str | None:
    if value is None:
        return value
    value = value.strip()
    if not is_valid_grant(value):
        raise ValueError("Permission key must look like '<module>:<action>'")
    return value


class PermissionCreate(BaseModel):
    """Schema for adding a permission to the catalog."""
    key: str = Field(..., min_length=1, max_length=128, description="Key like 'driver:update'")
    description: str | None = Field(None, max_length=255)

    @field_validator("key")
    @classmethod
    def validate_key(cls, v: str) -> str:
        return _check_key(v)


class PermissionUpdate(BaseModel):
    key: str | None = Field(None, min_length=1, max_length=128)
    description: str | None = Field(None, max_length=255)

    @field_validator("key")
    @classmethod
    def validate_key(cls, v: str | None) -> str | None:
        return _check_key(v)


class PermissionResponse(BaseModel):
    id: str
    key: str
    description: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
