"""
Access context routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from admin_iam.core.database.engine import get_db
from admin_iam.features.access_context.schemas import AdminAccessContext
from admin_iam.features.access_context.service import AccessContextService
from admin_iam.features.auth.principal import Principal
from admin_iam.features.auth.system_groups import SystemGroup, require_system_groups


router = APIRouter(tags=["access-context"])


@router.get("/me", response_model=AdminAccessContext)
async def get_admin_me(
    principal: Annotated[Principal, Depends(require_system_groups(SystemGroup.ADMIN))],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Admin UI bootstrap snapshot.

    Gated on the ADMIN system group only; no permission is required so a
    freshly provisioned admin can still load the UI.
    """
    return await AccessContextService(db).get_admin_me(principal)
