"""
HTTP surface tests using FastAPI's TestClient.
"""
import os
import sys

import pytest
from fastapi.testclient import TestClient

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from cap_pricing.api import state
from cap_pricing.api.main import app
from cap_pricing.orders import InvoiceService, OrderService, ShipmentService

QUOTE = {
    "product_name": "6P AirFrame HSCS",
    "quantity": 144,
    "logos": [{"name": "Flat Embroidery", "size": "Medium", "position": "Front"}],
}


@pytest.fixture
def client(tmp_path, monkeypatch):
    """Client whose order, invoice and shipment services write to a temporary store."""
    store_path = tmp_path / 'orders.json'
    order_service = OrderService(store_path, state.engine)
    monkeypatch.setattr(state, 'order_service', order_service)
    monkeypatch.setattr(state, 'invoice_service', InvoiceService(store_path))
    monkeypatch.setattr(state, 'shipment_service', ShipmentService(store_path, order_service))
    return TestClient(app)


def create_order(client, **overrides):
    payload = {"customer_name": "Ridge Runners", "quote": QUOTE}
    payload.update(overrides)
    response = client.post("/api/orders", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "online"


def test_calculate(client):
    response = client.post("/calculate", json=QUOTE)
    assert response.status_code == 200

    data = response.json()
    assert data["price_tier"] == "Tier 1"
    assert abs(data["total_cost"] - 547.20) < 0.01
    assert [line["category"] for line in data["lines"]] == ["base_product", "logo"]
    assert data["estimated_lead_time"] == "20-25 business days"


def test_calculate_with_colors(client):
    payload = {"product_name": "ProFit", "colors": {"Black": {"S/M": 100, "L/XL": 44}}}
    response = client.post("/calculate", json=payload)
    assert response.status_code == 200
    assert response.json()["total_units"] == 144


def test_calculate_unknown_option(client):
    response = client.post("/calculate", json={**QUOTE, "closure": "Zipper"})
    assert response.status_code == 400
    assert "Closure not found: Zipper" in response.json()["detail"]


def test_calculate_invalid_quantity(client):
    response = client.post("/calculate", json={**QUOTE, "quantity": 0})
    assert response.status_code == 400


def test_catalog_table(client):
    response = client.get("/catalog/products")
    assert response.status_code == 200
    assert len(response.json()) == 4


def test_catalog_search(client):
    response = client.get("/catalog/logo_methods", params={"search": "patch"})
    assert response.status_code == 200
    names = {row["name"] for row in response.json()}
    assert names == {"Rubber Patch", "Leather Patch", "Print Woven Patch"}


def test_catalog_unknown_table(client):
    response = client.get("/catalog/colors")
    assert response.status_code == 404


def test_product_match(client):
    response = client.get("/products/match", params={"panel_count": 7})
    assert response.status_code == 200
    assert response.json()["name"] == "7P Elite Seven HFS"

    response = client.get("/products/match", params={"profile": "Low"})
    assert response.status_code == 404


def test_system_status(client):
    response = client.get("/system/status")
    assert response.status_code == 200

    data = response.json()
    assert data["catalog_valid"] is True
    assert data["record_counts"]["tiers"] == 3


def test_system_reload(client):
    response = client.post("/system/reload")
    assert response.status_code == 200
    assert response.json()["success"] is True


def test_order_lifecycle(client):
    order = create_order(client, customer_email="ops@example.com")
    order_id = order["order_id"]
    assert order["status"] == "PENDING"

    response = client.get(f"/api/orders/{order_id}")
    assert response.status_code == 200
    assert response.json()["customer_email"] == "ops@example.com"

    response = client.put(f"/api/orders/{order_id}/status", json={"status": "confirmed"})
    assert response.status_code == 200
    assert response.json()["status"] == "CONFIRMED"

    response = client.post(f"/api/orders/{order_id}/recalculate")
    assert response.status_code == 200

    response = client.get("/api/orders", params={"status": "CONFIRMED"})
    assert [o["order_id"] for o in response.json()] == [order_id]

    response = client.get("/api/orders/stats")
    assert response.json()["by_status"] == {"CONFIRMED": 1}

    response = client.delete(f"/api/orders/{order_id}")
    assert response.status_code == 200
    assert client.get(f"/api/orders/{order_id}").status_code == 404


def test_order_errors(client):
    response = client.post("/api/orders", json={"customer_name": "X", "quote": {**QUOTE, "product_name": "Nope"}})
    assert response.status_code == 400

    order = create_order(client)
    response = client.put(f"/api/orders/{order['order_id']}/status", json={"status": "LOST"})
    assert response.status_code == 400

    assert client.put("/api/orders/missing/status", json={"status": "CONFIRMED"}).status_code == 404
    assert client.post("/api/orders/missing/recalculate").status_code == 404
    assert client.delete("/api/orders/missing").status_code == 404


def test_invoice_flow(client):
    order = create_order(client)

    response = client.post(
        f"/api/orders/{order['order_id']}/invoice",
        json={"discount": 47.20, "shipping": 25.00, "tax_rate": 0.10},
    )
    assert response.status_code == 201
    invoice = response.json()
    assert abs(invoice["total"] - 577.50) < 0.01
    assert len(invoice["items"]) == 2

    response = client.get("/api/invoices", params={"order_id": order["order_id"]})
    assert [i["invoice_id"] for i in response.json()] == [invoice["invoice_id"]]

    response = client.post(f"/api/invoices/{invoice['invoice_id']}/pay")
    assert response.status_code == 200
    assert response.json()["status"] == "PAID"

    response = client.post(f"/api/invoices/{invoice['invoice_id']}/void")
    assert response.status_code == 400


def test_invoice_errors(client):
    assert client.post("/api/orders/missing/invoice", json={}).status_code == 404
    assert client.get("/api/invoices/missing").status_code == 404
    assert client.post("/api/invoices/missing/pay").status_code == 404

    order = create_order(client)
    response = client.post(f"/api/orders/{order['order_id']}/invoice", json={"discount": -1})
    assert response.status_code == 400


def test_calculate_rejects_negative_quantities(client):
    payload = {"product_name": "ProFit", "colors": {"Black": {"S/M": 200, "L/XL": -56}}}
    assert client.post("/calculate", json=payload).status_code == 422
    assert client.post("/calculate", json={**QUOTE, "quantity": -5}).status_code == 422
    assert client.post("/calculate", json={**QUOTE, "shipment_quantity": -1}).status_code == 422


def test_calculate_with_margins(client):
    response = client.post("/calculate", json={**QUOTE, "apply_margins": True})
    assert response.status_code == 200

    data = response.json()
    assert data["margins_applied"] is True
    assert abs(data["total_cost"] - 681.12) < 0.01
    assert abs(data["total_margin"] - 133.92) < 0.01


def test_bulk_pricing(client):
    items = [
        {"type": "product", "name": "AirFrame", "quantity": 576},
        {"type": "closure", "name": "Zipper", "quantity": 144},
    ]
    response = client.post("/pricing/bulk", json={"items": items})
    assert response.status_code == 200

    data = response.json()
    assert data["summary"] == {"total": 2, "successful": 1, "failed": 1}
    assert abs(data["results"][0]["unit_price"] - 2.90) < 0.01
    assert data["results"][1]["error"] == "Closure not found: Zipper"


def test_bulk_pricing_limit(client):
    items = [{"type": "accessory", "name": "Sticker", "quantity": 48}] * 101
    response = client.post("/pricing/bulk", json={"items": items})
    assert response.status_code == 400
    assert "At most 100 items" in response.json()["detail"]

    assert client.post("/pricing/bulk", json={"items": []}).status_code == 400


def test_invoices_filtered_by_status(client):
    order = create_order(client)
    client.post(f"/api/orders/{order['order_id']}/invoice", json={})

    response = client.get("/api/invoices", params={"status": "issued"})
    assert response.status_code == 200
    assert len(response.json()) == 1
    assert client.get("/api/invoices", params={"status": "PAID"}).json() == []
    assert client.get("/api/invoices", params={"status": "OVERDUE"}).status_code == 400


def test_shipment_flow(client):
    quote = {"product_name": "6P AirFrame HSCS", "delivery_method": "regular"}
    small = create_order(client, quote={**quote, "quantity": 144})
    large = create_order(client, quote={**quote, "quantity": 600})

    response = client.post("/api/shipments", json={"name": "Container 7"})
    assert response.status_code == 201
    shipment_id = response.json()["shipment_id"]

    response = client.post(
        f"/api/shipments/{shipment_id}/assign-orders",
        json={"order_ids": [small["order_id"], large["order_id"]]},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["total_units"] == 744
    assert len(data["orders"]) == 2

    small = client.get(f"/api/orders/{small['order_id']}").json()
    delivery = [line for line in small["breakdown"]["lines"] if line["category"] == "delivery"][0]
    assert abs(delivery["unit_price"] - 2.20) < 0.01

    response = client.post(f"/api/shipments/{shipment_id}/remove-orders", json={"order_ids": [small["order_id"]]})
    assert response.status_code == 200
    assert response.json()["total_units"] == 600


def test_shipment_errors(client):
    order = create_order(client)
    assert client.get("/api/shipments/missing").status_code == 404
    assert client.post("/api/shipments/missing/assign-orders", json={"order_ids": ["x"]}).status_code == 404

    first = client.post("/api/shipments", json={"name": "First"}).json()["shipment_id"]
    second = client.post("/api/shipments", json={"name": "Second"}).json()["shipment_id"]

    response = client.post(f"/api/shipments/{first}/assign-orders", json={"order_ids": ["nope"]})
    assert response.status_code == 400
    assert "Orders not found" in response.json()["detail"]

    client.post(f"/api/shipments/{first}/assign-orders", json={"order_ids": [order["order_id"]]})
    response = client.post(f"/api/shipments/{second}/assign-orders", json={"order_ids": [order["order_id"]]})
    assert response.status_code == 400
    assert "already assigned" in response.json()["detail"]

    assert client.post(f"/api/shipments/{first}/assign-orders", json={"order_ids": []}).status_code == 422
