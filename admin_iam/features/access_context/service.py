"""
Capability map and admin access context.
"""
from collections.abc import Iterable, Mapping
from typing import Any
from sqlalchemy.ext.asyncio import AsyncSession

from admin_iam.core.errors import Forbidden, Unauthenticated
from admin_iam.features.access_context.schemas import AccessContextUser, AdminAccessContext
from admin_iam.features.admin_users.repository import AdminUserRepository
from admin_iam.features.auth.principal import Principal
from admin_iam.features.permissions.repository import PermissionRepository
from admin_iam.features.rbac.grammar import parse_permission_key
from admin_iam.features.rbac.resolver import PermissionResolver


VISIBILITY_ACTION = "view"


def build_capability_map(catalog_keys: Iterable[str], granted_keys: Iterable[str]) -> dict[str, dict[str, bool]]:
    """
    Project granted keys onto the module/action universe of the catalog.

    Malformed catalog entries are dropped. Every module gets a ``view``
    entry. Granted keys outside the catalog never create modules, and an
    action is True only when its exact key was granted.

    Examples:
        build_capability_map(["driver:update"], ["driver:update"])
            -> {"driver": {"update": True, "view": False}}
    """
    granted = {key.strip() for key in granted_keys if isinstance(key, str)}

    universe: dict[str, set[str]] = {}
    for key in catalog_keys:
        parsed = parse_permission_key(key)
        if parsed is None:
            continue
        universe.setdefault(parsed.module, set()).add(parsed.action)

    result: dict[str, dict[str, bool]] = {}
    for module in sorted(universe):
        actions = {action: f"{module}:{action}" in granted for action in universe[module]}
        actions.setdefault(VISIBILITY_ACTION, False)
        result[module] = dict(sorted(actions.items()))
    return result


def _text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def display_name(claims: Mapping[str, Any], fallback: str) -> str:
    """``name``, else ``given_name family_name``, else ``given_name``, else ``fallback``."""
    name = _text(claims.get("name"))
    if name:
        return name
    given = _text(claims.get("given_name"))
    family = _text(claims.get("family_name"))
    if given and family:
        return f"{given} {family}"
    return given or fallback


class AccessContextService:
    def __init__(self, session: AsyncSession) -> None:
        self.admin_users = AdminUserRepository(session)
        self.permissions = PermissionRepository(session)
        self.resolver = PermissionResolver(session)

    async def get_admin_me(self, principal: Principal | None) -> AdminAccessContext:
        """
        Build the access snapshot of the calling admin.

        Raises:
            Unauthenticated: no principal
            Forbidden: admin unknown, soft-deleted or disabled
        """
        if principal is None:
            raise Unauthenticated("No principal on request")

        grant = await self.resolver.resolve_for_subject(principal.subject_id)
        if grant is None:
            raise Forbidden("Admin user not provisioned or inactive")

        admin = await self.admin_users.get_active(grant.admin_user_id)
        if admin is None:
            raise Forbidden("Admin user removed during resolution")
        catalog = await self.permissions.catalog_keys()

        return AdminAccessContext(
            user=AccessContextUser(
                id=admin.id,
                email=admin.email,
                name=display_name(principal.claims, admin.email),
            ),
            roles=list(grant.role_names),
            permissions=list(grant.granted_permissions),
            modules=build_capability_map(catalog, grant.granted_permissions),
        )
