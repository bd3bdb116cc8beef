from __future__ import annotations

from fastapi.testclient import TestClient

from conftest import create_staff_member, register_business


def _post(client: TestClient, headers: dict[str, str], path: str, payload: dict[str, object]) -> dict[str, object]:
    response = client.post(path, headers=headers, json=payload)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def _customer(client: TestClient, headers: dict[str, str], **fields) -> dict[str, object]:
    payload = {"first_name": "Ada", "last_name": "Lovelace", "email": "ada@example.test"}
    payload.update(fields)
    return _post(client, headers, "/api/customers", payload)


def _service(client: TestClient, headers: dict[str, str], **fields) -> dict[str, object]:
    payload = {"name": "Deep Clean", "base_price": "120.00", "duration_minutes": 90}
    payload.update(fields)
    return _post(client, headers, "/api/services", payload)


# ---------- Customers ----------
def test_customer_crud(client: TestClient) -> None:
    headers, _ = register_business(client)
    customer = _customer(client, headers)

    listed = client.get("/api/customers", headers=headers).json()["data"]
    assert [item["id"] for item in listed] == [customer["id"]]

    updated = client.patch(f"/api/customers/{customer['id']}", headers=headers, json={"phone": "+1 555 0100"})
    assert updated.status_code == 200
    assert updated.json()["data"]["phone"] == "+1 555 0100"

    assert client.delete(f"/api/customers/{customer['id']}", headers=headers).status_code == 200
    assert client.get(f"/api/customers/{customer['id']}", headers=headers).status_code == 404


def test_customer_with_jobs_cannot_be_deleted(client: TestClient) -> None:
    headers, _ = register_business(client)
    customer = _customer(client, headers)
    _post(client, headers, "/api/jobs", {"title": "Spring clean", "customer_id": customer["id"]})

    response = client.delete(f"/api/customers/{customer['id']}", headers=headers)

    assert response.status_code == 409


def test_other_business_cannot_see_customer(client: TestClient) -> None:
    acme_headers, _ = register_business(client)
    other_headers, _ = register_business(client, business_name="Other", email="other@other.test")
    customer = _customer(client, acme_headers)

    assert client.get(f"/api/customers/{customer['id']}", headers=other_headers).status_code == 404
    assert client.get("/api/customers", headers=other_headers).json()["data"] == []
    patched = client.patch(f"/api/customers/{customer['id']}", headers=other_headers, json={"notes": "mine"})
    assert patched.status_code == 404


def test_staff_can_read_but_not_create_customers(client: TestClient) -> None:
    owner_headers, _ = register_business(client)
    staff_headers, _ = create_staff_member(client, owner_headers, email="sam@acme.test", role="staff")
    _customer(client, owner_headers)

    assert client.get("/api/customers", headers=staff_headers).status_code == 200
    response = client.post(
        "/api/customers",
        headers=staff_headers,
        json={"first_name": "Bob", "last_name": "Builder"},
    )
    assert response.status_code == 403
    assert response.json()["required"] == "customer:create"


# ---------- Services and packages ----------
def test_service_price_is_serialized_with_two_decimals(client: TestClient) -> None:
    headers, _ = register_business(client)

    service = _service(client, headers, base_price="75.5")

    assert service["base_price"] == "75.50"
    assert service["category"] == "General"


def test_service_rejects_negative_price(client: TestClient) -> None:
    headers, _ = register_business(client)

    response = client.post("/api/services", headers=headers, json={"name": "Bad", "base_price": "-1"})

    assert response.status_code == 422


def test_package_links_services(client: TestClient) -> None:
    headers, _ = register_business(client)
    clean = _service(client, headers)
    windows = _service(client, headers, name="Windows", base_price="40.00")

    package = _post(
        client,
        headers,
        "/api/packages",
        {
            "name": "Full Home",
            "base_price": "150.00",
            "min_services": 1,
            "max_services": 2,
            "services": [
                {"service_id": clean["id"], "is_required": True},
                {"service_id": windows["id"], "default_quantity": 2},
            ],
        },
    )

    linked = {entry["service_id"]: entry for entry in package["services"]}
    assert set(linked) == {clean["id"], windows["id"]}
    assert linked[clean["id"]]["is_required"] is True
    assert linked[windows["id"]]["default_quantity"] == 2

    replaced = client.patch(
        f"/api/packages/{package['id']}",
        headers=headers,
        json={"services": [{"service_id": windows["id"]}]},
    )
    assert replaced.status_code == 200
    assert [entry["service_id"] for entry in replaced.json()["data"]["services"]] == [windows["id"]]


def test_package_validation(client: TestClient) -> None:
    headers, _ = register_business(client)
    service = _service(client, headers)

    bad_range = client.post(
        "/api/packages",
        headers=headers,
        json={"name": "Odd", "base_price": "10.00", "min_services": 3, "max_services": 2},
    )
    assert bad_range.status_code == 422

    duplicate = client.post(
        "/api/packages",
        headers=headers,
        json={
            "name": "Twice",
            "base_price": "10.00",
            "services": [{"service_id": service["id"]}, {"service_id": service["id"]}],
        },
    )
    assert duplicate.status_code == 422


def test_package_cannot_reference_foreign_service(client: TestClient) -> None:
    acme_headers, _ = register_business(client)
    other_headers, _ = register_business(client, business_name="Other", email="other@other.test")
    foreign = _service(client, other_headers)

    response = client.post(
        "/api/packages",
        headers=acme_headers,
        json={"name": "Sneaky", "base_price": "10.00", "services": [{"service_id": foreign["id"]}]},
    )

    assert response.status_code == 422


def test_service_used_by_package_cannot_be_deleted(client: TestClient) -> None:
    headers, _ = register_business(client)
    service = _service(client, headers)
    package = _post(
        client,
        headers,
        "/api/packages",
        {"name": "Bundle", "base_price": "99.00", "services": [{"service_id": service["id"]}]},
    )

    assert client.delete(f"/api/services/{service['id']}", headers=headers).status_code == 409
    assert client.delete(f"/api/packages/{package['id']}", headers=headers).status_code == 200
    assert client.delete(f"/api/services/{service['id']}", headers=headers).status_code == 200


# ---------- Jobs ----------
def test_job_numbers_are_sequential_per_business(client: TestClient) -> None:
    acme_headers, _ = register_business(client)
    other_headers, _ = register_business(client, business_name="Other", email="other@other.test")

    first = _post(client, acme_headers, "/api/jobs", {"title": "First"})
    second = _post(client, acme_headers, "/api/jobs", {"title": "Second"})
    other = _post(client, other_headers, "/api/jobs", {"title": "Elsewhere"})

    assert first["job_number"] == "JOB-000001"
    assert second["job_number"] == "JOB-000002"
    assert other["job_number"] == "JOB-000001"
    assert first["status"] == "pending"
    assert first["priority"] == "medium"


def test_job_number_is_not_reused_after_delete(client: TestClient) -> None:
    headers, _ = register_business(client)
    first = _post(client, headers, "/api/jobs", {"title": "First"})
    second = _post(client, headers, "/api/jobs", {"title": "Second"})

    assert client.delete(f"/api/jobs/{first['id']}", headers=headers).status_code == 200
    third = _post(client, headers, "/api/jobs", {"title": "Third"})

    assert second["job_number"] == "JOB-000002"
    assert third["job_number"] == "JOB-000003"


def test_job_assignment_and_status_filter(client: TestClient) -> None:
    owner_headers, _ = register_business(client)
    _, staff = create_staff_member(client, owner_headers, email="sam@acme.test", role="staff")
    job = _post(client, owner_headers, "/api/jobs", {"title": "Install shelves", "priority": "high"})

    assigned = client.post(f"/api/jobs/{job['id']}/assign", headers=owner_headers, json={"user_id": staff["id"]})
    assert assigned.status_code == 200
    assert assigned.json()["data"]["assigned_to"] == staff["id"]

    client.patch(f"/api/jobs/{job['id']}", headers=owner_headers, json={"status": "in_progress"})
    in_progress = client.get("/api/jobs", headers=owner_headers, params={"status": "in_progress"}).json()["data"]
    assert [item["id"] for item in in_progress] == [job["id"]]
    assert client.get("/api/jobs", headers=owner_headers, params={"status": "completed"}).json()["data"] == []


def test_job_cannot_be_assigned_to_foreign_user(client: TestClient) -> None:
    acme_headers, _ = register_business(client)
    _, other = register_business(client, business_name="Other", email="other@other.test")
    job = _post(client, acme_headers, "/api/jobs", {"title": "Private"})

    response = client.post(
        f"/api/jobs/{job['id']}/assign",
        headers=acme_headers,
        json={"user_id": other["user"]["id"]},
    )

    assert response.status_code == 422


def test_job_rejects_foreign_customer(client: TestClient) -> None:
    acme_headers, _ = register_business(client)
    other_headers, _ = register_business(client, business_name="Other", email="other@other.test")
    foreign = _customer(client, other_headers)

    response = client.post("/api/jobs", headers=acme_headers, json={"title": "X", "customer_id": foreign["id"]})

    assert response.status_code == 422
