from __future__ import annotations

from fastapi.testclient import TestClient

from conftest import create_staff_member, register_business


def _create_department(client: TestClient, headers: dict[str, str], **fields) -> dict[str, object]:
    payload = {"name": "Operations", "code": "ops"}
    payload.update(fields)
    response = client.post("/api/departments", headers=headers, json=payload)
    assert response.status_code == 201, response.text
    return response.json()["data"]


# ---------- Staff ----------
def test_owner_creates_and_lists_staff(client: TestClient) -> None:
    owner_headers, _ = register_business(client)
    create_staff_member(client, owner_headers, email="mia@acme.test", role="manager", full_name="Mia Manager")
    create_staff_member(client, owner_headers, email="sam@acme.test", role="staff", full_name="Sam Staff")

    everyone = client.get("/api/staff", headers=owner_headers).json()["data"]
    assert [member["full_name"] for member in everyone] == ["Mia Manager", "Olive Owner", "Sam Staff"]

    managers = client.get("/api/staff", headers=owner_headers, params={"role": "manager"}).json()["data"]
    assert [member["email"] for member in managers] == ["mia@acme.test"]


def test_assignable_roles_follow_the_hierarchy(client: TestClient) -> None:
    owner_headers, _ = register_business(client)
    manager_headers, _ = create_staff_member(client, owner_headers, email="mia@acme.test", role="manager")

    response = client.get("/api/staff/assignable-roles", headers=manager_headers)

    assert response.status_code == 200
    assert response.json()["data"] == [
        {"value": "supervisor", "label": "Supervisor"},
        {"value": "staff", "label": "Staff"},
    ]


def test_manager_cannot_create_another_manager(client: TestClient) -> None:
    owner_headers, _ = register_business(client)
    manager_headers, _ = create_staff_member(client, owner_headers, email="mia@acme.test", role="manager")

    response = client.post(
        "/api/staff",
        headers=manager_headers,
        json={"email": "max@acme.test", "full_name": "Max", "role": "manager", "password": "long-enough-1"},
    )

    assert response.status_code == 403


def test_nobody_can_create_a_second_owner(client: TestClient) -> None:
    owner_headers, _ = register_business(client)

    response = client.post(
        "/api/staff",
        headers=owner_headers,
        json={"email": "co@acme.test", "full_name": "Co Owner", "role": "owner", "password": "long-enough-1"},
    )

    assert response.status_code == 403


def test_staff_email_must_be_unique(client: TestClient) -> None:
    owner_headers, _ = register_business(client)

    response = client.post(
        "/api/staff",
        headers=owner_headers,
        json={"email": "owner@acme.test", "full_name": "Dup", "role": "staff", "password": "long-enough-1"},
    )

    assert response.status_code == 409


def test_staff_role_cannot_manage_staff(client: TestClient) -> None:
    owner_headers, _ = register_business(client)
    staff_headers, _ = create_staff_member(client, owner_headers, email="sam@acme.test", role="staff")

    response = client.get("/api/staff", headers=staff_headers)

    assert response.status_code == 403
    assert response.json()["required"] == "staff:read"


def test_update_staff_role_and_department(client: TestClient) -> None:
    owner_headers, _ = register_business(client)
    _, staff = create_staff_member(client, owner_headers, email="sam@acme.test", role="staff")
    department = _create_department(client, owner_headers)

    response = client.patch(
        f"/api/staff/{staff['id']}",
        headers=owner_headers,
        json={"role": "supervisor", "department_id": department["id"]},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["role"] == "supervisor"
    assert data["department_id"] == department["id"]


def test_owner_cannot_deactivate_themselves(client: TestClient) -> None:
    owner_headers, data = register_business(client)

    response = client.delete(f"/api/staff/{data['user']['id']}", headers=owner_headers)

    assert response.status_code == 422


def test_manager_cannot_modify_owner(client: TestClient) -> None:
    owner_headers, data = register_business(client)
    manager_headers, _ = create_staff_member(client, owner_headers, email="mia@acme.test", role="manager")

    response = client.patch(
        f"/api/staff/{data['user']['id']}",
        headers=manager_headers,
        json={"full_name": "Renamed"},
    )

    assert response.status_code == 403



def test_manager_cannot_edit_or_deactivate_a_peer_manager(client: TestClient) -> None:
    owner_headers, _ = register_business(client)
    manager_headers, _ = create_staff_member(client, owner_headers, email="mia@acme.test", role="manager")
    _, peer = create_staff_member(client, owner_headers, email="max@acme.test", role="manager")

    renamed = client.patch(f"/api/staff/{peer['id']}", headers=manager_headers, json={"full_name": "Renamed"})
    deactivated = client.patch(f"/api/staff/{peer['id']}", headers=manager_headers, json={"active": False})

    assert renamed.status_code == 403
    assert deactivated.status_code == 403
    peer_now = client.get(f"/api/staff/{peer['id']}", headers=owner_headers).json()["data"]
    assert peer_now["full_name"] != "Renamed"
    assert peer_now["active"] is True


def test_manager_can_edit_lower_ranked_staff(client: TestClient) -> None:
    owner_headers, _ = register_business(client)
    manager_headers, _ = create_staff_member(client, owner_headers, email="mia@acme.test", role="manager")
    _, staff = create_staff_member(client, owner_headers, email="sam@acme.test", role="staff")

    response = client.patch(f"/api/staff/{staff['id']}", headers=manager_headers, json={"full_name": "Sam Renamed"})

    assert response.status_code == 200
    assert response.json()["data"]["full_name"] == "Sam Renamed"

def test_inactive_filter(client: TestClient) -> None:
    owner_headers, _ = register_business(client)
    _, staff = create_staff_member(client, owner_headers, email="sam@acme.test", role="staff")
    client.delete(f"/api/staff/{staff['id']}", headers=owner_headers)

    inactive = client.get("/api/staff", headers=owner_headers, params={"active": "false"}).json()["data"]

    assert [member["email"] for member in inactive] == ["sam@acme.test"]


# ---------- Departments ----------
def test_department_create_uppercases_code_and_rejects_duplicates(client: TestClient) -> None:
    headers, _ = register_business(client)

    department = _create_department(client, headers)
    assert department["code"] == "OPS"

    duplicate = client.post("/api/departments", headers=headers, json={"name": "Other", "code": "OPS"})
    assert duplicate.status_code == 409


def test_department_hierarchy_nests_children(client: TestClient) -> None:
    headers, _ = register_business(client)
    root = _create_department(client, headers, name="Operations", code="OPS")
    child = _create_department(client, headers, name="Field Team", code="FLD", parent_department_id=root["id"])
    _create_department(client, headers, name="Crew A", code="CRA", parent_department_id=child["id"])

    response = client.get("/api/departments/hierarchy", headers=headers)

    assert response.status_code == 200
    tree = response.json()["data"]
    assert [node["name"] for node in tree] == ["Operations"]
    assert [node["name"] for node in tree[0]["children"]] == ["Field Team"]
    assert [node["name"] for node in tree[0]["children"][0]["children"]] == ["Crew A"]


def test_department_cannot_become_its_own_ancestor(client: TestClient) -> None:
    headers, _ = register_business(client)
    root = _create_department(client, headers, name="Operations", code="OPS")
    child = _create_department(client, headers, name="Field Team", code="FLD", parent_department_id=root["id"])

    response = client.patch(
        f"/api/departments/{root['id']}",
        headers=headers,
        json={"parent_department_id": child["id"]},
    )

    assert response.status_code == 422
    assert response.json()["error"] == "A department cannot be its own ancestor."


def test_department_parent_can_be_cleared(client: TestClient) -> None:
    headers, _ = register_business(client)
    root = _create_department(client, headers, name="Operations", code="OPS")
    child = _create_department(client, headers, name="Field Team", code="FLD", parent_department_id=root["id"])

    renamed = client.patch(f"/api/departments/{child['id']}", headers=headers, json={"name": "Field"})
    assert renamed.json()["data"]["parent_department_id"] == root["id"]

    cleared = client.patch(f"/api/departments/{child['id']}", headers=headers, json={"parent_department_id": None})
    assert cleared.status_code == 200
    assert cleared.json()["data"]["parent_department_id"] is None


def test_department_delete_is_blocked_by_children(client: TestClient) -> None:
    headers, _ = register_business(client)
    root = _create_department(client, headers, name="Operations", code="OPS")
    child = _create_department(client, headers, name="Field Team", code="FLD", parent_department_id=root["id"])

    assert client.delete(f"/api/departments/{root['id']}", headers=headers).status_code == 409
    assert client.delete(f"/api/departments/{child['id']}", headers=headers).status_code == 200
    assert client.delete(f"/api/departments/{root['id']}", headers=headers).status_code == 200
    assert client.get(f"/api/departments/{root['id']}", headers=headers).status_code == 404


def test_department_parent_must_belong_to_business(client: TestClient) -> None:
    acme_headers, _ = register_business(client)
    other_headers, _ = register_business(client, business_name="Other", email="other@other.test")
    foreign = _create_department(client, other_headers)

    response = client.post(
        "/api/departments",
        headers=acme_headers,
        json={"name": "Sales", "code": "SAL", "parent_department_id": foreign["id"]},
    )

    assert response.status_code == 422
