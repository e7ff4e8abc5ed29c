"""
Pydantic schemas for the admin access context snapshot.
"""
from pydantic import BaseModel, Field


class AccessContextUser(BaseModel):
    id: str
    email: str
    name: str


class AdminAccessContext(BaseModel):
    """
    Authorization snapshot consumed by the admin UI on login/refresh.

    ``modules`` maps module -> action -> granted, e.g.
    ``{"driver": {"view": true, "update": false}}``.
    """
    user: AccessContextUser
    roles: list[str] = Field(default_factory=list)
    permissions: list[str] = Field(default_factory=list)
    modules: dict[str, dict[str, bool]] = Field(default_factory=dict)
