import pytest

from admin_iam.core.errors import Forbidden, Unauthenticated
from admin_iam.features.auth.principal import Principal
from admin_iam.features.auth.system_groups import SystemGroup
from admin_iam.features.rbac.guard import PermissionRequirement, RbacGuard
from admin_iam.features.rbac.resolver import GrantRecord


class FakeResolver:
    def __init__(self, grant: GrantRecord | None) -> None:
        self.grant = grant
        self.calls: list[str] = []

    async def resolve_for_subject(self, subject_id: str) -> GrantRecord | None:
        self.calls.append(subject_id)
        return self.grant


OPS_GRANT = GrantRecord(
    admin_user_id="01ADMIN",
    role_names=("OPS",),
    granted_permissions=("role:create", "role:view"),
)

ADMIN = Principal(subject_id="sub-1", groups=frozenset({SystemGroup.ADMIN}))


async def test_allows_when_any_required_permission_is_granted() -> None:
    resolver = FakeResolver(OPS_GRANT)
    guard = RbacGuard(resolver)

    grant = await guard.authorize(ADMIN, PermissionRequirement(any_of=("role:create",)))

    assert grant == OPS_GRANT
    assert resolver.calls == ["sub-1"]


async def test_denies_when_no_required_permission_is_granted() -> None:
    guard = RbacGuard(FakeResolver(OPS_GRANT))

    with pytest.raises(Forbidden):
        await guard.authorize(ADMIN, PermissionRequirement(any_of=("permission:delete",)))


async def test_wildcard_grant_satisfies_requirement() -> None:
    grant = GrantRecord(admin_user_id="01ADMIN", role_names=("ROOT",), granted_permissions=("*",))
    guard = RbacGuard(FakeResolver(grant))

    assert await guard.authorize(ADMIN, PermissionRequirement(any_of=("audit:view",))) == grant


async def test_missing_principal_is_unauthenticated() -> None:
    resolver = FakeResolver(OPS_GRANT)

    with pytest.raises(Unauthenticated):
        await RbacGuard(resolver).authorize(None, PermissionRequirement(any_of=("role:view",)))
    assert resolver.calls == []


async def test_missing_admin_group_is_forbidden_before_resolution() -> None:
    resolver = FakeResolver(OPS_GRANT)
    driver = Principal(subject_id="sub-2", groups=frozenset({SystemGroup.DRIVER}))

    with pytest.raises(Forbidden):
        await RbacGuard(resolver).authorize(driver, PermissionRequirement(any_of=("role:view",)))
    assert resolver.calls == []


@pytest.mark.parametrize("requirement", [None, PermissionRequirement(any_of=())])
async def test_undeclared_requirement_fails_closed(requirement) -> None:
    resolver = FakeResolver(OPS_GRANT)

    with pytest.raises(Forbidden):
        await RbacGuard(resolver).authorize(ADMIN, requirement)
    assert resolver.calls == []


async def test_unprovisioned_admin_is_forbidden() -> None:
    with pytest.raises(Forbidden):
        await RbacGuard(FakeResolver(None)).authorize(ADMIN, PermissionRequirement(any_of=("role:view",)))


async def test_cached_grant_skips_resolution() -> None:
    resolver = FakeResolver(None)

    grant = await RbacGuard(resolver).authorize(
        ADMIN,
        PermissionRequirement(any_of=("role:view",)),
        cached=OPS_GRANT,
    )

    assert grant == OPS_GRANT
    assert resolver.calls == []


def test_requirement_of_drops_blank_keys() -> None:
    assert PermissionRequirement.of(["role:view", " ", "", " audit:view "]).any_of == ("role:view", "audit:view")
