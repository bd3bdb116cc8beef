from __future__ import annotations

from fastapi.testclient import TestClient

from conftest import create_staff_member, register_business


def _post(client: TestClient, headers: dict[str, str], path: str, payload: dict[str, object]) -> dict[str, object]:
    response = client.post(path, headers=headers, json=payload)
    assert response.status_code in (200, 201), response.text
    return response.json()["data"]


def _wallet(client: TestClient, headers: dict[str, str], name: str, balance: str = "0.00") -> dict[str, object]:
    return _post(client, headers, "/api/wallets", {"name": name, "wallet_type": "cash", "opening_balance": balance})


def _balance(client: TestClient, headers: dict[str, str], wallet_id: str) -> str:
    return client.get(f"/api/wallets/{wallet_id}", headers=headers).json()["data"]["current_balance"]


# ---------- Wallets ----------
def test_opening_balance_is_recorded_as_income(client: TestClient) -> None:
    headers, _ = register_business(client)

    wallet = _wallet(client, headers, "Main Till", balance="120.00")

    assert wallet["current_balance"] == "120.00"
    transactions = client.get(f"/api/wallets/{wallet['id']}/transactions", headers=headers).json()["data"]
    assert len(transactions) == 1
    assert transactions[0]["transaction_type"] == "income"
    assert transactions[0]["reference_type"] == "opening_balance"
    assert transactions[0]["balance_after"] == "120.00"


def test_wallet_names_are_unique_per_business(client: TestClient) -> None:
    headers, _ = register_business(client)
    _wallet(client, headers, "Till")

    duplicate = client.post("/api/wallets", headers=headers, json={"name": "Till", "wallet_type": "bank"})

    assert duplicate.status_code == 409


def test_transactions_update_balance_and_reject_overdraft(client: TestClient) -> None:
    headers, _ = register_business(client)
    wallet = _wallet(client, headers, "Bank", balance="50.00")

    spent = _post(
        client,
        headers,
        f"/api/wallets/{wallet['id']}/transactions",
        {"transaction_type": "expense", "amount": "20.00", "description": "Fuel"},
    )
    assert spent["balance_after"] == "30.00"

    overdraft = client.post(
        f"/api/wallets/{wallet['id']}/transactions",
        headers=headers,
        json={"transaction_type": "expense", "amount": "30.01"},
    )
    assert overdraft.status_code == 422
    assert overdraft.json()["error"] == "Insufficient funds in wallet 'Bank'."
    assert _balance(client, headers, wallet["id"]) == "30.00"


def test_inactive_wallet_rejects_transactions(client: TestClient) -> None:
    headers, _ = register_business(client)
    wallet = _wallet(client, headers, "Old Till", balance="10.00")
    client.patch(f"/api/wallets/{wallet['id']}", headers=headers, json={"active": False})

    response = client.post(
        f"/api/wallets/{wallet['id']}/transactions",
        headers=headers,
        json={"transaction_type": "income", "amount": "5.00"},
    )

    assert response.status_code == 422
    active = client.get("/api/wallets", headers=headers, params={"active": "true"}).json()["data"]
    assert active == []


def test_transfer_moves_money_between_wallets(client: TestClient) -> None:
    headers, _ = register_business(client)
    source = _wallet(client, headers, "Till", balance="100.00")
    destination = _wallet(client, headers, "Bank")

    result = _post(
        client,
        headers,
        "/api/wallets/transfer",
        {"from_wallet_id": source["id"], "to_wallet_id": destination["id"], "amount": "40.00"},
    )

    assert result["from_transaction"]["reference_type"] == "transfer"
    assert result["from_transaction"]["balance_after"] == "60.00"
    assert result["to_transaction"]["balance_after"] == "40.00"
    assert _balance(client, headers, source["id"]) == "60.00"
    assert _balance(client, headers, destination["id"]) == "40.00"


def test_transfer_validation(client: TestClient) -> None:
    headers, _ = register_business(client)
    source = _wallet(client, headers, "Till", balance="10.00")
    destination = _wallet(client, headers, "Bank")

    same = client.post(
        "/api/wallets/transfer",
        headers=headers,
        json={"from_wallet_id": source["id"], "to_wallet_id": source["id"], "amount": "1.00"},
    )
    assert same.status_code == 422

    too_much = client.post(
        "/api/wallets/transfer",
        headers=headers,
        json={"from_wallet_id": source["id"], "to_wallet_id": destination["id"], "amount": "11.00"},
    )
    assert too_much.status_code == 422
    assert _balance(client, headers, source["id"]) == "10.00"
    assert _balance(client, headers, destination["id"]) == "0.00"


def test_wallet_with_history_cannot_be_deleted(client: TestClient) -> None:
    headers, _ = register_business(client)
    used = _wallet(client, headers, "Used", balance="5.00")
    unused = _wallet(client, headers, "Unused")

    assert client.delete(f"/api/wallets/{used['id']}", headers=headers).status_code == 409
    assert client.delete(f"/api/wallets/{unused['id']}", headers=headers).status_code == 200
    assert client.get(f"/api/wallets/{unused['id']}", headers=headers).status_code == 404


def test_wallets_are_tenant_scoped(client: TestClient) -> None:
    acme_headers, _ = register_business(client)
    other_headers, _ = register_business(client, business_name="Other", email="other@other.test")
    wallet = _wallet(client, acme_headers, "Till", balance="10.00")

    assert client.get(f"/api/wallets/{wallet['id']}", headers=other_headers).status_code == 404
    assert client.get("/api/wallets", headers=other_headers).json()["data"] == []


# ---------- Expenses ----------
def _category(client: TestClient, headers: dict[str, str], name: str = "Supplies") -> dict[str, object]:
    return _post(client, headers, "/api/expenses/categories", {"name": name})


def _expense(
    client: TestClient,
    headers: dict[str, str],
    category_id: str,
    *,
    amount: str = "25.00",
    wallet_id: str | None = None,
    expense_date: str = "2026-10-10",
) -> dict[str, object]:
    payload: dict[str, object] = {
        "category_id": category_id,
        "amount": amount,
        "description": "Mop heads",
        "expense_date": expense_date,
    }
    if wallet_id is not None:
        payload["wallet_id"] = wallet_id
    return _post(client, headers, "/api/expenses", payload)


def test_expense_categories_are_unique(client: TestClient) -> None:
    headers, _ = register_business(client)
    _category(client, headers)

    duplicate = client.post("/api/expenses/categories", headers=headers, json={"name": "Supplies"})

    assert duplicate.status_code == 409
    names = [item["name"] for item in client.get("/api/expenses/categories", headers=headers).json()["data"]]
    assert names == ["Supplies"]


def test_approving_expense_with_wallet_debits_it(client: TestClient) -> None:
    headers, _ = register_business(client)
    category = _category(client, headers)
    wallet = _wallet(client, headers, "Till", balance="100.00")
    expense = _expense(client, headers, category["id"], wallet_id=wallet["id"])
    assert expense["status"] == "pending"

    decided = _post(client, headers, f"/api/expenses/{expense['id']}/approval", {"status": "approved"})

    assert decided["status"] == "approved"
    assert decided["approved_by"] is not None
    assert _balance(client, headers, wallet["id"]) == "75.00"
    transactions = client.get(f"/api/wallets/{wallet['id']}/transactions", headers=headers).json()["data"]
    assert {row["reference_type"] for row in transactions} == {"opening_balance", "expense"}

    again = client.post(f"/api/expenses/{expense['id']}/approval", headers=headers, json={"status": "approved"})
    assert again.status_code == 409
    assert _balance(client, headers, wallet["id"]) == "75.00"


def test_approving_expense_without_wallet_leaves_it_approved(client: TestClient) -> None:
    headers, _ = register_business(client)
    category = _category(client, headers)
    expense = _expense(client, headers, category["id"])

    decided = _post(client, headers, f"/api/expenses/{expense['id']}/approval", {"status": "approved"})

    assert decided["status"] == "approved"


def test_approval_fails_cleanly_when_wallet_is_short(client: TestClient) -> None:
    headers, _ = register_business(client)
    category = _category(client, headers)
    wallet = _wallet(client, headers, "Till", balance="10.00")
    expense = _expense(client, headers, category["id"], wallet_id=wallet["id"])

    response = client.post(f"/api/expenses/{expense['id']}/approval", headers=headers, json={"status": "approved"})

    assert response.status_code == 422
    assert client.get(f"/api/expenses/{expense['id']}", headers=headers).json()["data"]["status"] == "pending"
    assert _balance(client, headers, wallet["id"]) == "10.00"


def test_decided_expense_is_locked(client: TestClient) -> None:
    headers, _ = register_business(client)
    category = _category(client, headers)
    expense = _expense(client, headers, category["id"])
    _post(client, headers, f"/api/expenses/{expense['id']}/approval", {"status": "rejected"})

    again = client.post(f"/api/expenses/{expense['id']}/approval", headers=headers, json={"status": "approved"})
    edit = client.patch(f"/api/expenses/{expense['id']}", headers=headers, json={"amount": "1.00"})
    delete = client.delete(f"/api/expenses/{expense['id']}", headers=headers)

    assert again.status_code == 409
    assert again.json()["error"] == "Expense is already rejected."
    assert edit.status_code == 409
    assert delete.status_code == 409


def test_invalid_decision_value_is_rejected(client: TestClient) -> None:
    headers, _ = register_business(client)
    category = _category(client, headers)
    expense = _expense(client, headers, category["id"])

    response = client.post(f"/api/expenses/{expense['id']}/approval", headers=headers, json={"status": "paid"})

    assert response.status_code == 422


def test_expense_filters(client: TestClient) -> None:
    headers, _ = register_business(client)
    supplies = _category(client, headers)
    travel = _category(client, headers, name="Travel")
    pending = _expense(client, headers, supplies["id"])
    rejected = _expense(client, headers, travel["id"])
    _post(client, headers, f"/api/expenses/{rejected['id']}/approval", {"status": "rejected"})

    by_status = client.get("/api/expenses", headers=headers, params={"status": "pending"}).json()["data"]
    by_category = client.get("/api/expenses", headers=headers, params={"category_id": travel["id"]}).json()["data"]

    assert [item["id"] for item in by_status] == [pending["id"]]
    assert [item["id"] for item in by_category] == [rejected["id"]]


def test_expense_rejects_foreign_category(client: TestClient) -> None:
    headers, _ = register_business(client)
    other_headers, _ = register_business(client, business_name="Other", email="other@other.test")
    foreign = _category(client, other_headers)

    response = client.post(
        "/api/expenses",
        headers=headers,
        json={"category_id": foreign["id"], "amount": "5.00", "description": "x", "expense_date": "2026-10-01"},
    )

    assert response.status_code == 422


def test_supervisor_can_submit_but_not_approve(client: TestClient) -> None:
    owner_headers, _ = register_business(client)
    supervisor_headers, _ = create_staff_member(
        client,
        owner_headers,
        email="sam@acme.test",
        role="supervisor",
    )
    category = _category(client, owner_headers)
    expense = _expense(client, supervisor_headers, category["id"])

    response = client.post(
        f"/api/expenses/{expense['id']}/approval",
        headers=supervisor_headers,
        json={"status": "approved"},
    )

    assert response.status_code == 403
    assert response.json()["required"] == "expense:approve"
