"""
RBAC guard: fine-grained, fail-closed authorization for admin routes.

Usage:
    @router.get("/roles")
    async def list_roles(
        grant: GrantRecord = Depends(require_permissions("role:view")),
    ):
        ...
"""
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Annotated
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from admin_iam.core.database.engine import get_db
from admin_iam.core.errors import Forbidden, Unauthenticated
from admin_iam.features.auth.principal import Principal, get_principal
from admin_iam.features.auth.system_groups import SystemGroup
from admin_iam.features.rbac.grammar import is_allowed
from admin_iam.features.rbac.resolver import GrantRecord, PermissionResolver
from admin_iam.utils import get_logger


log = get_logger(__name__)


@dataclass(frozen=True)
class PermissionRequirement:
    any_of: tuple[str, ...]

    @classmethod
    def of(cls, keys: Iterable[str]) -> "PermissionRequirement":
        return cls(any_of=tuple(key.strip() for key in keys if key and key.strip()))


class RbacGuard:
    def __init__(self, resolver: PermissionResolver, admin_group: SystemGroup = SystemGroup.ADMIN) -> None:
        self.resolver = resolver
        self.admin_group = admin_group

    async def authorize(
        self,
        principal: Principal | None,
        requirement: PermissionRequirement | None,
        cached: GrantRecord | None = None,
    ) -> GrantRecord:
        """
        Decide whether ``principal`` may perform an operation requiring
        ``requirement``. Checks run in order and stop at the first failure.

        Returns:
            The resolved GrantRecord on allow

        Raises:
            Unauthenticated: no principal
            Forbidden: every other denial
        """
        if principal is None:
            raise Unauthenticated("No principal on request")

        if self.admin_group not in principal.groups:
            log.debug("Deny %s: not in system group %s", principal.subject_id, self.admin_group.value)
            raise Forbidden("Missing administrative system group")

        if requirement is None or not requirement.any_of:
            log.debug("Deny %s: route declares no required permissions", principal.subject_id)
            raise Forbidden("No permission requirement declared")

        grant = cached
        if grant is None:
            grant = await self.resolver.resolve_for_subject(principal.subject_id)
        if grant is None:
            log.debug("Deny %s: no active admin user", principal.subject_id)
            raise Forbidden("Admin user not provisioned or inactive")

        if not is_allowed(requirement.any_of, grant.granted_permissions):
            log.debug(
                "Deny %s: needs any of %s, holds %s",
                principal.subject_id, list(requirement.any_of), list(grant.granted_permissions),
            )
            raise Forbidden("Insufficient permissions")

        return grant


def require_permissions(*keys: str):
    """
    FastAPI dependency factory for routes guarded by permission keys (any-of).

    The resolved grant is cached on ``request.state.rbac`` so several guarded
    dependencies in one request hit storage once.
    """
    requirement = PermissionRequirement.of(keys)

    async def permission_dependency(
        request: Request,
        principal: Annotated[Principal | None, Depends(get_principal)],
        db: Annotated[AsyncSession, Depends(get_db)],
    ) -> GrantRecord:
        guard = RbacGuard(PermissionResolver(db))
        cached = getattr(request.state, "rbac", None)
        grant = await guard.authorize(principal, requirement, cached=cached)
        request.state.rbac = grant
        return grant

    return permission_dependency
