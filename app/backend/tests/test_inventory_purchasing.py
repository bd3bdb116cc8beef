from __future__ import annotations

from decimal import Decimal

from fastapi.testclient import TestClient

from app.models.entities import PaymentStatus
from app.services.inventory_service import payment_status_for, purchase_order_prefix

from conftest import register_business


def _post(client: TestClient, headers: dict[str, str], path: str, payload: dict[str, object]) -> dict[str, object]:
    response = client.post(path, headers=headers, json=payload)
    assert response.status_code in (200, 201), response.text
    return response.json()["data"]


def _item(client: TestClient, headers: dict[str, str], **fields) -> dict[str, object]:
    payload = {
        "name": "Glass Cleaner",
        "sku": "gc-500",
        "cost_price": "2.50",
        "selling_price": "6.00",
        "current_stock": "10",
        "reorder_level": "3",
    }
    payload.update(fields)
    return _post(client, headers, "/api/inventory/items", payload)


def _wallet(client: TestClient, headers: dict[str, str], balance: str = "0.00", name: str = "Till") -> dict[str, object]:
    return _post(
        client,
        headers,
        "/api/wallets",
        {"name": name, "wallet_type": "cash", "opening_balance": balance},
    )


def test_purchase_order_prefix_and_payment_status_helpers() -> None:
    assert purchase_order_prefix("Acme Cleaning") == "ACM"
    assert purchase_order_prefix("4U Shop") == "USH"
    assert purchase_order_prefix("123") == "PO"
    assert payment_status_for(Decimal("10.00"), Decimal("0.00")) is PaymentStatus.UNPAID
    assert payment_status_for(Decimal("10.00"), Decimal("4.00")) is PaymentStatus.PARTIAL
    assert payment_status_for(Decimal("10.00"), Decimal("10.00")) is PaymentStatus.PAID


# ---------- Items ----------
def test_item_create_normalizes_sku_and_flags_low_stock(client: TestClient) -> None:
    headers, _ = register_business(client)

    item = _item(client, headers, current_stock="2")

    assert item["sku"] == "GC-500"
    assert item["current_stock"] == "2.00"
    assert item["low_stock"] is True


def test_item_sku_is_unique_per_business(client: TestClient) -> None:
    acme_headers, _ = register_business(client)
    other_headers, _ = register_business(client, business_name="Other", email="other@other.test")
    _item(client, acme_headers)

    duplicate = client.post(
        "/api/inventory/items",
        headers=acme_headers,
        json={"name": "Copy", "sku": "GC-500"},
    )
    assert duplicate.status_code == 409

    _item(client, other_headers)


def test_low_stock_filter(client: TestClient) -> None:
    headers, _ = register_business(client)
    _item(client, headers, name="Plenty", sku="P1", current_stock="50")
    _item(client, headers, name="Scarce", sku="S1", current_stock="1")

    response = client.get("/api/inventory/items", headers=headers, params={"low_stock": "true"})

    assert [item["name"] for item in response.json()["data"]] == ["Scarce"]


def test_stock_adjustment_cannot_go_negative(client: TestClient) -> None:
    headers, _ = register_business(client)
    item = _item(client, headers)

    added = client.post(f"/api/inventory/items/{item['id']}/adjust", headers=headers, json={"quantity_delta": "5"})
    assert added.status_code == 200
    assert added.json()["data"]["current_stock"] == "15.00"

    too_much = client.post(
        f"/api/inventory/items/{item['id']}/adjust",
        headers=headers,
        json={"quantity_delta": "-20", "reason": "Stocktake"},
    )
    assert too_much.status_code == 422
    assert client.get(f"/api/inventory/items/{item['id']}", headers=headers).json()["data"]["current_stock"] == "15.00"


# ---------- Purchase orders ----------
def _order(client: TestClient, headers: dict[str, str], item_id: str) -> dict[str, object]:
    return _post(
        client,
        headers,
        "/api/purchase-orders",
        {
            "supplier_name": "Clean Supplies Ltd",
            "order_date": "2026-10-01",
            "items": [
                {"item_name": "Glass Cleaner", "quantity": "4", "unit_cost": "2.50", "inventory_item_id": item_id},
                {"item_name": "Sponges", "quantity": "10", "unit_cost": "0.35"},
            ],
        },
    )


def test_purchase_order_lifecycle(client: TestClient) -> None:
    headers, _ = register_business(client)
    item = _item(client, headers)
    wallet = _wallet(client, headers, balance="50.00")

    order = _order(client, headers, item["id"])
    assert order["po_number"] == "ACM-000001"
    assert order["status"] == "draft"
    assert order["total_amount"] == "13.50"
    assert order["payment_status"] == "unpaid"

    early_receive = client.post(f"/api/purchase-orders/{order['id']}/receive", headers=headers)
    assert early_receive.status_code == 409

    approved = _post(client, headers, f"/api/purchase-orders/{order['id']}/approve", {})
    assert approved["status"] == "confirmed"
    assert approved["approved_by"] is not None

    received = _post(client, headers, f"/api/purchase-orders/{order['id']}/receive", {})
    assert received["status"] == "received"
    stock = client.get(f"/api/inventory/items/{item['id']}", headers=headers).json()["data"]["current_stock"]
    assert stock == "14.00"

    partial = _post(
        client,
        headers,
        f"/api/purchase-orders/{order['id']}/payments",
        {"amount": "5.00", "wallet_id": wallet["id"]},
    )
    assert partial["payment_status"] == "partial"
    assert partial["balance_due"] == "8.50"

    overpay = client.post(f"/api/purchase-orders/{order['id']}/payments", headers=headers, json={"amount": "9.00"})
    assert overpay.status_code == 422

    settled = _post(client, headers, f"/api/purchase-orders/{order['id']}/payments", {"amount": "8.50"})
    assert settled["payment_status"] == "paid"

    balance = client.get(f"/api/wallets/{wallet['id']}", headers=headers).json()["data"]["current_balance"]
    assert balance == "45.00"


def test_purchase_order_cannot_be_approved_twice(client: TestClient) -> None:
    headers, _ = register_business(client)
    item = _item(client, headers)
    order = _order(client, headers, item["id"])

    _post(client, headers, f"/api/purchase-orders/{order['id']}/approve", {})
    again = client.post(f"/api/purchase-orders/{order['id']}/approve", headers=headers)

    assert again.status_code == 409


def test_purchase_order_payment_from_empty_wallet_is_rolled_back(client: TestClient) -> None:
    headers, _ = register_business(client)
    item = _item(client, headers)
    wallet = _wallet(client, headers)
    order = _order(client, headers, item["id"])
    _post(client, headers, f"/api/purchase-orders/{order['id']}/approve", {})
    _post(client, headers, f"/api/purchase-orders/{order['id']}/receive", {})

    response = client.post(
        f"/api/purchase-orders/{order['id']}/payments",
        headers=headers,
        json={"amount": "5.00", "wallet_id": wallet["id"]},
    )

    assert response.status_code == 422
    current = client.get(f"/api/purchase-orders/{order['id']}", headers=headers).json()["data"]
    assert current["paid_amount"] == "0.00"


def test_purchase_order_requires_line_items(client: TestClient) -> None:
    headers, _ = register_business(client)

    response = client.post(
        "/api/purchase-orders",
        headers=headers,
        json={"supplier_name": "Nobody", "order_date": "2026-10-01", "items": []},
    )

    assert response.status_code == 422


def test_purchase_order_status_filter(client: TestClient) -> None:
    headers, _ = register_business(client)
    item = _item(client, headers)
    first = _order(client, headers, item["id"])
    _order(client, headers, item["id"])
    _post(client, headers, f"/api/purchase-orders/{first['id']}/approve", {})

    confirmed = client.get("/api/purchase-orders", headers=headers, params={"status": "confirmed"}).json()["data"]

    assert [order["id"] for order in confirmed] == [first["id"]]


# ---------- Point of sale ----------
def test_sale_decrements_stock_and_credits_wallet(client: TestClient) -> None:
    headers, _ = register_business(client)
    item = _item(client, headers)
    wallet = _wallet(client, headers)

    sale = _post(
        client,
        headers,
        "/api/pos/sales",
        {"items": [{"inventory_item_id": item["id"], "quantity": "3"}], "wallet_id": wallet["id"]},
    )

    assert sale["receipt_number"] == "RCP-000001"
    assert sale["total_amount"] == "18.00"
    assert sale["items"][0]["unit_price"] == "6.00"
    stock = client.get(f"/api/inventory/items/{item['id']}", headers=headers).json()["data"]["current_stock"]
    assert stock == "7.00"
    balance = client.get(f"/api/wallets/{wallet['id']}", headers=headers).json()["data"]["current_balance"]
    assert balance == "18.00"

    listed = client.get("/api/pos/sales", headers=headers).json()["data"]
    assert [entry["id"] for entry in listed] == [sale["id"]]


def test_sale_with_insufficient_stock_changes_nothing(client: TestClient) -> None:
    headers, _ = register_business(client)
    plenty = _item(client, headers, name="Plenty", sku="P1", current_stock="10")
    scarce = _item(client, headers, name="Scarce", sku="S1", current_stock="1")

    response = client.post(
        "/api/pos/sales",
        headers=headers,
        json={
            "items": [
                {"inventory_item_id": plenty["id"], "quantity": "2"},
                {"inventory_item_id": scarce["id"], "quantity": "5"},
            ]
        },
    )

    assert response.status_code == 422
    assert response.json()["error"] == "Insufficient stock for 'Scarce'."
    stock = client.get(f"/api/inventory/items/{plenty['id']}", headers=headers).json()["data"]["current_stock"]
    assert stock == "10.00"
    assert client.get("/api/pos/sales", headers=headers).json()["data"] == []


def test_sale_rejects_foreign_wallet(client: TestClient) -> None:
    acme_headers, _ = register_business(client)
    other_headers, _ = register_business(client, business_name="Other", email="other@other.test")
    item = _item(client, acme_headers)
    foreign_wallet = _wallet(client, other_headers)

    response = client.post(
        "/api/pos/sales",
        headers=acme_headers,
        json={"items": [{"inventory_item_id": item["id"], "quantity": "1"}], "wallet_id": foreign_wallet["id"]},
    )

    assert response.status_code == 404
