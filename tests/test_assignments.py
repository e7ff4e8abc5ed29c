import pytest
from sqlalchemy import func, select

from admin_iam.core.errors import NotFound
from admin_iam.features.admin_users.repository import AdminUserRepository
from admin_iam.features.audit.models import AuditLog
from admin_iam.features.audit.service import AuditLogger
from admin_iam.features.permissions.models import Permission
from admin_iam.features.rbac.assignments import AssignmentManager
from admin_iam.features.roles.models import Role
from admin_iam.features.roles.repository import RoleRepository


async def _audit_rows(session, action: str):
    result = await session.execute(
        select(AuditLog.target_id, AuditLog.before, AuditLog.after, AuditLog.actor_admin_user_id)
        .where(AuditLog.action == action)
    )
    return result.all()


async def _roles(session, *names: str) -> list[str]:
    roles = [Role(name=name) for name in names]
    session.add_all(roles)
    await session.commit()
    return [role.id for role in roles]


async def test_replace_roles_sets_exact_set_and_audits(session, grant_admin) -> None:
    actor = await grant_admin("sub-actor", ["admin-user:assign-role"])
    target = await grant_admin("sub-target", [], role_name="OLD")
    old_role = await RoleRepository(session).get_by_name("OLD")
    new_ids = await _roles(session, "OPS", "ANALYST")

    stored = await AssignmentManager(session, AuditLogger(session)).replace_roles(
        target.id, new_ids + new_ids[:1], actor_admin_user_id=actor.id,
    )

    assert stored == sorted(new_ids)
    assert sorted(await AdminUserRepository(session).role_ids(target.id)) == sorted(new_ids)

    rows = await _audit_rows(session, "role.assign")
    assert len(rows) == 1
    target_id, before, after, actor_id = rows[0]
    assert target_id == target.id
    assert actor_id == actor.id
    assert before == {"ids": [old_role.id]}
    assert after == {"ids": sorted(new_ids)}


async def test_replace_roles_with_empty_set_clears_assignments(session, grant_admin) -> None:
    admin = await grant_admin("sub-1", ["role:view"])

    await AssignmentManager(session, AuditLogger(session)).replace_roles(admin.id, [], actor_admin_user_id=admin.id)

    assert await AdminUserRepository(session).role_ids(admin.id) == []
    rows = await _audit_rows(session, "role.assign")
    assert rows[0].after == {"ids": []}


async def test_identical_replace_is_still_audited(session, grant_admin) -> None:
    admin = await grant_admin("sub-1", [], role_name="OPS")
    role_ids = await AdminUserRepository(session).role_ids(admin.id)
    manager = AssignmentManager(session, AuditLogger(session))

    await manager.replace_roles(admin.id, role_ids, actor_admin_user_id=admin.id)
    await manager.replace_roles(admin.id, role_ids, actor_admin_user_id=admin.id)

    rows = await _audit_rows(session, "role.assign")
    assert len(rows) == 2
    assert all(row.before == row.after == {"ids": role_ids} for row in rows)


async def test_unknown_owner_is_not_found(session, grant_admin) -> None:
    actor = await grant_admin("sub-actor", [])

    with pytest.raises(NotFound, match="Admin user not found"):
        await AssignmentManager(session, AuditLogger(session)).replace_roles(
            "01UNKNOWN", [], actor_admin_user_id=actor.id,
        )


async def test_unknown_target_changes_nothing(session, grant_admin) -> None:
    admin = await grant_admin("sub-1", [], role_name="OPS")
    before = await AdminUserRepository(session).role_ids(admin.id)
    [deleted_id] = await _roles(session, "GONE")
    gone = await RoleRepository(session).get_active(deleted_id)
    gone.mark_deleted()
    await session.commit()

    with pytest.raises(NotFound, match="One or more roles not found"):
        await AssignmentManager(session, AuditLogger(session)).replace_roles(
            admin.id, [deleted_id], actor_admin_user_id=admin.id,
        )

    assert await AdminUserRepository(session).role_ids(admin.id) == before
    count = await session.scalar(select(func.count()).select_from(AuditLog))
    assert count == 0


async def test_replace_permissions(session, grant_admin) -> None:
    actor = await grant_admin("sub-actor", [])
    role = Role(name="OPS")
    permissions = [Permission(key="driver:view"), Permission(key="driver:update")]
    session.add_all([role, *permissions])
    await session.commit()
    permission_ids = sorted(p.id for p in permissions)

    await AssignmentManager(session, AuditLogger(session)).replace_permissions(
        role.id, permission_ids, actor_admin_user_id=actor.id,
    )

    assert sorted(await RoleRepository(session).permission_ids(role.id)) == permission_ids
    rows = await _audit_rows(session, "permission.assign")
    assert rows[0].target_id == role.id
    assert rows[0].before == {"ids": []}
    assert rows[0].after == {"ids": permission_ids}


async def test_replace_permissions_unknown_role(session, grant_admin) -> None:
    actor = await grant_admin("sub-actor", [])

    with pytest.raises(NotFound, match="Role not found"):
        await AssignmentManager(session, AuditLogger(session)).replace_permissions(
            "01UNKNOWN", [], actor_admin_user_id=actor.id,
        )


async def test_replace_permissions_unknown_permission(session, grant_admin) -> None:
    actor = await grant_admin("sub-actor", [], role_name="OPS")
    role = await RoleRepository(session).get_by_name("OPS")

    with pytest.raises(NotFound, match="One or more permissions not found"):
        await AssignmentManager(session, AuditLogger(session)).replace_permissions(
            role.id, ["01UNKNOWN"], actor_admin_user_id=actor.id,
        )


async def test_assign_and_unassign_single_role(session, grant_admin) -> None:
    actor = await grant_admin("sub-actor", [])
    target = await grant_admin("sub-target", [], role_name="OLD")
    [ops_id] = await _roles(session, "OPS")
    manager = AssignmentManager(session, AuditLogger(session))

    await manager.assign_role(target.id, ops_id, actor_admin_user_id=actor.id)
    await manager.assign_role(target.id, ops_id, actor_admin_user_id=actor.id)
    assert ops_id in await AdminUserRepository(session).role_ids(target.id)

    await manager.unassign_role(target.id, ops_id, actor_admin_user_id=actor.id)
    assert ops_id not in await AdminUserRepository(session).role_ids(target.id)

    assigned = await _audit_rows(session, "role.assign")
    assert len(assigned) == 2
    assert all(row.before is None and row.after == {"role_id": ops_id} for row in assigned)
    [unassigned] = await _audit_rows(session, "role.unassign")
    assert unassigned.target_id == target.id
    assert unassigned.before == {"role_id": ops_id}
    assert unassigned.after is None


async def test_unassign_missing_link_is_not_found(session, grant_admin) -> None:
    actor = await grant_admin("sub-actor", [])
    [ops_id] = await _roles(session, "OPS")

    with pytest.raises(NotFound, match="Role is not assigned to this admin user"):
        await AssignmentManager(session, AuditLogger(session)).unassign_role(
            actor.id, ops_id, actor_admin_user_id=actor.id,
        )

    count = await session.scalar(select(func.count()).select_from(AuditLog))
    assert count == 0


async def test_assign_deleted_role_is_not_found(session, grant_admin) -> None:
    actor = await grant_admin("sub-actor", [])
    [gone_id] = await _roles(session, "GONE")
    gone = await RoleRepository(session).get_active(gone_id)
    gone.mark_deleted()
    await session.commit()

    with pytest.raises(NotFound, match="Role not found"):
        await AssignmentManager(session, AuditLogger(session)).assign_role(
            actor.id, gone_id, actor_admin_user_id=actor.id,
        )

    assert gone_id not in await AdminUserRepository(session).role_ids(actor.id)


async def test_unassign_link_to_deleted_permission(session, grant_admin) -> None:
    actor = await grant_admin("sub-actor", [])
    role = Role(name="OPS")
    permission = Permission(key="driver:view")
    session.add_all([role, permission])
    await session.commit()
    role_id, permission_id = role.id, permission.id
    manager = AssignmentManager(session, AuditLogger(session))
    await manager.assign_permission(role_id, permission_id, actor_admin_user_id=actor.id)

    permission.mark_deleted()
    await session.commit()
    await manager.unassign_permission(role_id, permission_id, actor_admin_user_id=actor.id)

    assert await RoleRepository(session).permission_ids(role_id) == []
    [row] = await _audit_rows(session, "permission.unassign")
    assert row.target_id == role_id
    assert row.before == {"permission_id": permission_id}
