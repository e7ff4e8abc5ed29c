from httpx import AsyncClient


ADMIN_KEYS = [
    "role:view", "role:read", "role:create", "role:update", "role:delete", "role:assign-permission",
    "permission:view", "permission:read", "permission:create", "permission:update", "permission:delete",
    "admin-user:view", "admin-user:read", "admin-user:create", "admin-user:update", "admin-user:delete",
    "admin-user:assign-role", "audit:view",
]


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def test_health_is_public(client: AsyncClient) -> None:
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


async def test_missing_token_is_generic_401(client: AsyncClient) -> None:
    response = await client.get("/admin/roles", headers={"x-request-id": "req-42"})

    assert response.status_code == 401
    body = response.json()
    assert body["statusCode"] == 401
    assert body["errorCode"] == "UNAUTHENTICATED"
    assert body["message"] == "Unauthorized"
    assert body["path"] == "/admin/roles"
    assert body["requestId"] == "req-42"
    assert response.headers["x-request-id"] == "req-42"


async def test_unknown_token_is_401(client: AsyncClient) -> None:
    response = await client.get("/admin/roles", headers=bearer("forged"))

    assert response.status_code == 401


async def test_wrong_system_group_is_generic_403(client: AsyncClient) -> None:
    response = await client.get("/admin/roles", headers=bearer("driver-token"))

    assert response.status_code == 403
    assert response.json()["message"] == "Forbidden"


async def test_unprovisioned_admin_is_403(client: AsyncClient) -> None:
    response = await client.get("/admin/roles", headers=bearer("unprovisioned-token"))

    assert response.status_code == 403
    assert response.json()["errorCode"] == "FORBIDDEN"


async def test_missing_permission_is_403(client: AsyncClient, grant_admin) -> None:
    await grant_admin("sub-admin", ["role:view"])

    listed = await client.get("/admin/roles", headers=bearer("admin-token"))
    created = await client.post("/admin/roles", json={"name": "OPS"}, headers=bearer("admin-token"))

    assert listed.status_code == 200
    assert created.status_code == 403
    assert created.json()["message"] == "Forbidden"


async def test_admin_me_needs_no_permission(client: AsyncClient, grant_admin) -> None:
    await grant_admin("sub-admin", [], email="root@example.com", role_name="VIEWER")

    response = await client.get("/admin/me", headers=bearer("admin-token"))

    assert response.status_code == 200
    body = response.json()
    assert body["user"]["email"] == "root@example.com"
    assert body["user"]["name"] == "Ada Lovelace"
    assert body["roles"] == ["VIEWER"]
    assert body["permissions"] == []
    assert body["modules"] == {}


async def test_admin_me_rejects_non_admin_group(client: AsyncClient) -> None:
    response = await client.get("/admin/me", headers=bearer("driver-token"))

    assert response.status_code == 403


async def test_role_and_permission_lifecycle(client: AsyncClient, grant_admin) -> None:
    actor = await grant_admin("sub-admin", ADMIN_KEYS)
    headers = {**bearer("admin-token"), "x-request-id": "req-lifecycle"}

    permission = await client.post(
        "/admin/permissions", json={"key": "driver:update", "description": "Edit drivers"}, headers=headers,
    )
    assert permission.status_code == 201
    permission_id = permission.json()["id"]

    role = await client.post("/admin/roles", json={"name": "DISPATCH"}, headers=headers)
    assert role.status_code == 201
    role_id = role.json()["id"]

    replaced = await client.post(
        f"/admin/roles/{role_id}/permissions", json={"permission_ids": [permission_id]}, headers=headers,
    )
    assert replaced.status_code == 200
    assert [p["key"] for p in replaced.json()["permissions"]] == ["driver:update"]

    blocked = await client.delete(f"/admin/permissions/{permission_id}", headers=headers)
    assert blocked.status_code == 409
    assert blocked.json()["message"] == "Permission is assigned to a role"

    deleted_role = await client.delete(f"/admin/roles/{role_id}", headers=headers)
    assert deleted_role.status_code == 204
    missing = await client.get(f"/admin/roles/{role_id}", headers=headers)
    assert missing.status_code == 404
    assert missing.json()["message"] == "Role not found"

    logs = await client.get("/admin/audit-logs", params={"target_id": role_id}, headers=headers)
    assert logs.status_code == 200
    body = logs.json()
    assert body["total"] == 3
    assert {item["action"] for item in body["items"]} == {"role.create", "permission.assign", "role.delete"}
    assert all(item["actor_admin_user_id"] == actor.id for item in body["items"])
    assert all(item["request_id"] == "req-lifecycle" for item in body["items"])


async def test_admin_user_routes(client: AsyncClient, grant_admin) -> None:
    await grant_admin("sub-admin", ADMIN_KEYS, role_name="SUPER_ADMIN")
    headers = bearer("admin-token")

    created = await client.post(
        "/admin/admin-users", json={"subject_id": "sub-new", "email": "new@example.com"}, headers=headers,
    )
    assert created.status_code == 201
    admin_id = created.json()["id"]
    assert created.json()["status"] == "ACTIVE"

    duplicate = await client.post(
        "/admin/admin-users", json={"subject_id": "sub-new", "email": "new@example.com"}, headers=headers,
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["errorCode"] == "CONFLICT"

    updated = await client.put(f"/admin/admin-users/{admin_id}", json={"status": "DISABLED"}, headers=headers)
    assert updated.status_code == 200
    assert updated.json()["status"] == "DISABLED"

    unknown_role = await client.post(
        f"/admin/admin-users/{admin_id}/roles", json={"role_ids": ["01UNKNOWN"]}, headers=headers,
    )
    assert unknown_role.status_code == 404
    assert unknown_role.json()["message"] == "One or more roles not found"

    listed = await client.get("/admin/admin-users", headers=headers)
    assert listed.status_code == 200
    by_subject = {item["subject_id"]: item for item in listed.json()}
    assert [role["name"] for role in by_subject["sub-admin"]["roles"]] == ["SUPER_ADMIN"]
    assert by_subject["sub-new"]["roles"] == []

    deleted = await client.delete(f"/admin/admin-users/{admin_id}", headers=headers)
    assert deleted.status_code == 204
    assert (await client.get(f"/admin/admin-users/{admin_id}", headers=headers)).status_code == 404


async def test_validation_error_shape(client: AsyncClient, grant_admin) -> None:
    await grant_admin("sub-admin", ADMIN_KEYS)

    response = await client.post("/admin/permissions", json={"key": "not-a-key"}, headers=bearer("admin-token"))

    assert response.status_code == 400
    assert "key" in response.json()


async def test_replace_rejects_duplicate_ids(client: AsyncClient, grant_admin) -> None:
    admin = await grant_admin("sub-admin", ADMIN_KEYS)

    response = await client.post(
        f"/admin/admin-users/{admin.id}/roles", json={"role_ids": ["01A", "01A"]}, headers=bearer("admin-token"),
    )

    assert response.status_code == 400
    assert "role_ids" in response.json()


async def test_single_link_routes(client: AsyncClient, grant_admin) -> None:
    admin = await grant_admin("sub-admin", ADMIN_KEYS)
    headers = bearer("admin-token")
    role_id = (await client.post("/admin/roles", json={"name": "DISPATCH"}, headers=headers)).json()["id"]
    permission_id = (await client.post(
        "/admin/permissions", json={"key": "driver:view"}, headers=headers,
    )).json()["id"]

    linked = await client.put(f"/admin/roles/{role_id}/permissions/{permission_id}", headers=headers)
    assert linked.status_code == 200
    assert [p["key"] for p in linked.json()["permissions"]] == ["driver:view"]

    assigned = await client.put(f"/admin/admin-users/{admin.id}/roles/{role_id}", headers=headers)
    assert assigned.status_code == 200
    assert "DISPATCH" in [role["name"] for role in assigned.json()["roles"]]

    me = await client.get("/admin/me", headers=headers)
    assert "driver:view" in me.json()["permissions"]

    unassigned = await client.delete(f"/admin/admin-users/{admin.id}/roles/{role_id}", headers=headers)
    assert unassigned.status_code == 200
    assert "DISPATCH" not in [role["name"] for role in unassigned.json()["roles"]]

    again = await client.delete(f"/admin/admin-users/{admin.id}/roles/{role_id}", headers=headers)
    assert again.status_code == 404
    assert again.json()["message"] == "Role is not assigned to this admin user"

    unlinked = await client.delete(f"/admin/roles/{role_id}/permissions/{permission_id}", headers=headers)
    assert unlinked.status_code == 200
    assert unlinked.json()["permissions"] == []

    logs = await client.get("/admin/audit-logs", params={"target_id": role_id}, headers=headers)
    assert {item["action"] for item in logs.json()["items"]} == {
        "role.create", "permission.assign", "permission.unassign",
    }
