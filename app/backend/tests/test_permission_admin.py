from __future__ import annotations

from fastapi.testclient import TestClient

from app.core.permissions import PERMISSION_CATALOG

from conftest import create_staff_member, register_business

CUSTOMER = {"first_name": "Ada", "last_name": "Lovelace"}


def test_permission_catalog_and_roles(client: TestClient) -> None:
    headers, _ = register_business(client)

    catalog = client.get("/api/permissions", headers=headers).json()["data"]
    roles = client.get("/api/roles", headers=headers).json()["data"]

    assert {item["name"] for item in catalog} == set(PERMISSION_CATALOG)
    assert [role["name"] for role in roles] == ["owner", "manager", "supervisor", "staff"]
    assert roles[0]["permissions"] == ["*"]
    assert roles[0]["is_system_role"] is True


def test_my_permissions_describe_role(client: TestClient) -> None:
    owner_headers, _ = register_business(client)
    staff_headers, _ = create_staff_member(client, owner_headers, email="sam@acme.test", role="staff")

    owner = client.get("/api/permissions/me", headers=owner_headers).json()["data"]
    staff = client.get("/api/permissions/me", headers=staff_headers).json()["data"]

    assert owner["permissions"] == ["*"]
    assert owner["is_owner"] is True
    assert owner["assignable_roles"] == ["manager", "supervisor", "staff"]
    assert staff["role_display_name"] == "Staff"
    assert staff["is_owner"] is False
    assert "customer:read" in staff["permissions"]
    assert "customer:read" in staff["expanded_permissions"]
    assert "customer:create" not in staff["expanded_permissions"]
    assert staff["denied_permissions"] == []
    assert staff["assignable_roles"] == []


def test_owner_replaces_role_permissions(client: TestClient) -> None:
    owner_headers, _ = register_business(client)
    staff_headers, _ = create_staff_member(client, owner_headers, email="sam@acme.test", role="staff")
    assert client.post("/api/customers", headers=staff_headers, json=CUSTOMER).status_code == 403

    response = client.put(
        "/api/roles/staff/permissions",
        headers=owner_headers,
        json={"permissions": ["customer:create", "customer:read", "customer:read"]},
    )

    assert response.status_code == 200
    assert response.json()["data"]["permissions"] == ["customer:create", "customer:read"]
    assert client.post("/api/customers", headers=staff_headers, json=CUSTOMER).status_code == 201
    assert client.get("/api/jobs", headers=staff_headers).status_code == 403


def test_role_permission_edits_are_validated(client: TestClient) -> None:
    headers, _ = register_business(client)

    owner_role = client.put("/api/roles/owner/permissions", headers=headers, json={"permissions": []})
    unknown = client.put(
        "/api/roles/manager/permissions",
        headers=headers,
        json={"permissions": ["customer:read", "rocket:launch"]},
    )
    wildcard = client.put("/api/roles/manager/permissions", headers=headers, json={"permissions": ["*"]})

    assert owner_role.status_code == 403
    assert unknown.status_code == 422
    assert unknown.json()["error"] == "Unknown permissions: rocket:launch."
    assert wildcard.status_code == 422


def test_only_owner_may_edit_role_permissions(client: TestClient) -> None:
    owner_headers, _ = register_business(client)
    manager_headers, _ = create_staff_member(client, owner_headers, email="mia@acme.test", role="manager")

    response = client.put(
        "/api/roles/staff/permissions",
        headers=manager_headers,
        json={"permissions": ["customer:read"]},
    )

    assert response.status_code == 403
    assert client.get("/api/roles", headers=manager_headers).status_code == 200


def test_feature_toggles_grant_and_revoke_access(client: TestClient) -> None:
    owner_headers, _ = register_business(client)
    staff_headers, staff = create_staff_member(client, owner_headers, email="sam@acme.test", role="staff")

    grant = client.post(
        f"/api/users/{staff['id']}/feature-toggles",
        headers=owner_headers,
        json={"permission_name": "customer:create", "is_allowed": True},
    )
    assert grant.status_code == 201
    assert client.post("/api/customers", headers=staff_headers, json=CUSTOMER).status_code == 201

    deny = client.post(
        f"/api/users/{staff['id']}/feature-toggles",
        headers=owner_headers,
        json={"permission_name": "customer:read", "is_allowed": False},
    )
    assert deny.status_code == 201
    assert client.get("/api/customers", headers=staff_headers).status_code == 403

    toggles = client.get(f"/api/users/{staff['id']}/feature-toggles", headers=owner_headers).json()["data"]
    assert [toggle["permission_name"] for toggle in toggles] == ["customer:create", "customer:read"]

    lifted = client.patch(
        f"/api/feature-toggles/{deny.json()['data']['id']}",
        headers=owner_headers,
        json={"is_allowed": True},
    )
    assert lifted.status_code == 200
    assert client.get("/api/customers", headers=staff_headers).status_code == 200

    removed = client.delete(f"/api/feature-toggles/{grant.json()['data']['id']}", headers=owner_headers)
    assert removed.status_code == 200
    assert client.post("/api/customers", headers=staff_headers, json=CUSTOMER).status_code == 403


def test_denial_toggle_blocks_permission_implied_by_role(client: TestClient) -> None:
    owner_headers, _ = register_business(client)
    manager_headers, manager = create_staff_member(client, owner_headers, email="mia@acme.test", role="manager")
    assert client.get("/api/customers", headers=manager_headers).status_code == 200

    deny = client.post(
        f"/api/users/{manager['id']}/feature-toggles",
        headers=owner_headers,
        json={"permission_name": "customer:read", "is_allowed": False},
    )
    assert deny.status_code == 201

    listed = client.get("/api/customers", headers=manager_headers)
    assert listed.status_code == 403
    assert listed.json()["required"] == "customer:read"
    assert client.post("/api/customers", headers=manager_headers, json=CUSTOMER).status_code == 201

    mine = client.get("/api/permissions/me", headers=manager_headers).json()["data"]
    assert mine["denied_permissions"] == ["customer:read"]
    assert "customer:read" not in mine["expanded_permissions"]


def test_expired_toggle_has_no_effect(client: TestClient) -> None:
    owner_headers, _ = register_business(client)
    staff_headers, staff = create_staff_member(client, owner_headers, email="sam@acme.test", role="staff")

    response = client.post(
        f"/api/users/{staff['id']}/feature-toggles",
        headers=owner_headers,
        json={"permission_name": "customer:create", "is_allowed": True, "expires_at": "2020-01-01T00:00:00Z"},
    )

    assert response.status_code == 201
    assert client.post("/api/customers", headers=staff_headers, json=CUSTOMER).status_code == 403


def test_feature_toggles_are_tenant_scoped(client: TestClient) -> None:
    owner_headers, _ = register_business(client)
    other_headers, _ = register_business(client, business_name="Other", email="other@other.test")
    _, staff = create_staff_member(client, owner_headers, email="sam@acme.test", role="staff")

    foreign_user = client.post(
        f"/api/users/{staff['id']}/feature-toggles",
        headers=other_headers,
        json={"permission_name": "customer:create", "is_allowed": True},
    )
    unknown_permission = client.post(
        f"/api/users/{staff['id']}/feature-toggles",
        headers=owner_headers,
        json={"permission_name": "rocket:launch", "is_allowed": True},
    )

    assert foreign_user.status_code == 404
    assert unknown_permission.status_code == 422


# ---------- Audit trail ----------
def test_audit_events_record_changes(client: TestClient) -> None:
    headers, _ = register_business(client)
    customer = client.post("/api/customers", headers=headers, json=CUSTOMER).json()["data"]
    client.patch(f"/api/customers/{customer['id']}", headers=headers, json={"notes": "VIP"})

    events = client.get("/api/audit-events", headers=headers, params={"entity_name": "customer"}).json()["data"]
    everything = client.get("/api/audit-events", headers=headers).json()["data"]

    assert {event["action_type"] for event in events} == {"create", "update"}
    assert all(event["entity_id"] == customer["id"] for event in events)
    assert "business" in {event["entity_name"] for event in everything}


def test_audit_events_limit_and_access(client: TestClient) -> None:
    owner_headers, _ = register_business(client)
    staff_headers, _ = create_staff_member(client, owner_headers, email="sam@acme.test", role="staff")

    limited = client.get("/api/audit-events", headers=owner_headers, params={"limit": 1}).json()["data"]
    too_large = client.get("/api/audit-events", headers=owner_headers, params={"limit": 10_000})
    forbidden = client.get("/api/audit-events", headers=staff_headers)

    assert len(limited) == 1
    assert too_large.status_code == 422
    assert forbidden.status_code == 403
    assert forbidden.json()["required"] == "audit:read"
