"""
Tests de endpoints para facturas de compra y pagos realizados
"""

import pytest
from decimal import Decimal
from uuid import uuid4


# ===== FIXTURES =====

@pytest.fixture
def bill_payload(supplier, item):
    return {
        "contact_id": str(supplier.id),
        "supplier_invoice_number": "FAC-778",
        "status": "ordered",
        "expected_delivery_date": "2024-07-10",
        "items": [{"item_id": str(item.id), "quantity": "10", "unit_price": "5"}]
    }


async def get_stock(client, headers, item_id):
    response = await client.get(f"/items/{item_id}", headers=headers)
    return Decimal(response.json()["stock_quantity"])


async def get_balance(client, headers, contact_id):
    response = await client.get(f"/contacts/{contact_id}", headers=headers)
    return Decimal(response.json()["current_balance"])


# ===== TESTS =====

class TestBillEndpoints:

    async def test_ordered_bill_waits_for_goods(self, client, tenant_headers, bill_payload, supplier, item):
        response = await client.post("/bills/", json=bill_payload, headers=tenant_headers)
        assert response.status_code == 201
        bill = response.json()
        assert bill["invoice_number"] == "PUR-1001"
        assert bill["status"] == "ordered"
        assert await get_stock(client, tenant_headers, item.id) == Decimal("50")

        response = await client.patch(f"/bills/{bill['id']}/status", json={"status": "RECEIVED"}, headers=tenant_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "received"
        assert await get_stock(client, tenant_headers, item.id) == Decimal("60")
        assert await get_balance(client, tenant_headers, supplier.id) == Decimal("-50")

    async def test_sale_status_on_bill_returns_400(self, client, tenant_headers, bill_payload):
        bill = (await client.post("/bills/", json=bill_payload, headers=tenant_headers)).json()
        response = await client.patch(f"/bills/{bill['id']}/status", json={"status": "sent"}, headers=tenant_headers)
        assert response.status_code == 400

    async def test_bill_for_customer_returns_400(self, client, tenant_headers, bill_payload, customer):
        bill_payload["contact_id"] = str(customer.id)
        response = await client.post("/bills/", json=bill_payload, headers=tenant_headers)
        assert response.status_code == 400

    async def test_payment_out_flow(self, client, tenant_headers, bill_payload, supplier):
        bill_payload["status"] = "received"
        bill = (await client.post("/bills/", json=bill_payload, headers=tenant_headers)).json()

        response = await client.post(
            "/payments-out/", json={"invoice_id": bill["id"], "amount": "20"}, headers=tenant_headers
        )
        assert response.status_code == 201
        payment = response.json()
        assert payment["payment_number"] == "PAY-1001"

        current = (await client.get(f"/bills/{bill['id']}", headers=tenant_headers)).json()
        assert current["status"] == "partial"
        assert Decimal(current["amount_due"]) == Decimal("30")
        assert await get_balance(client, tenant_headers, supplier.id) == Decimal("-30")

        listing = (await client.get("/payments-out/", params={"bill_id": bill["id"]}, headers=tenant_headers)).json()
        assert listing["total"] == 1

        response = await client.delete(f"/payments-out/{payment['id']}", headers=tenant_headers)
        assert response.status_code == 204
        current = (await client.get(f"/bills/{bill['id']}", headers=tenant_headers)).json()
        assert current["status"] == "received"

    async def test_delete_received_bill(self, client, tenant_headers, bill_payload, supplier, item):
        bill_payload["status"] = "received"
        bill = (await client.post("/bills/", json=bill_payload, headers=tenant_headers)).json()

        response = await client.delete(f"/bills/{bill['id']}", headers=tenant_headers)
        assert response.status_code == 204
        assert await get_stock(client, tenant_headers, item.id) == Decimal("50")
        assert await get_balance(client, tenant_headers, supplier.id) == Decimal("0")

    async def test_list_by_status(self, client, tenant_headers, bill_payload):
        await client.post("/bills/", json=bill_payload, headers=tenant_headers)
        bill_payload["status"] = "received"
        await client.post("/bills/", json=bill_payload, headers=tenant_headers)

        response = await client.get("/bills/", params={"status": "received"}, headers=tenant_headers)
        assert response.status_code == 200
        assert response.json()["total"] == 1

    async def test_edit_received_bill(self, client, tenant_headers, bill_payload, supplier, item):
        bill_payload["status"] = "received"
        bill = (await client.post("/bills/", json=bill_payload, headers=tenant_headers)).json()

        bill_payload["items"][0]["quantity"] = "4"
        bill_payload["supplier_invoice_number"] = "FAC-779"
        response = await client.put(f"/bills/{bill['id']}", json=bill_payload, headers=tenant_headers)
        assert response.status_code == 200, response.text
        data = response.json()
        assert Decimal(data["total"]) == Decimal("20")
        assert data["supplier_invoice_number"] == "FAC-779"
        assert data["status"] == "received"

        assert await get_stock(client, tenant_headers, item.id) == Decimal("54")
        assert await get_balance(client, tenant_headers, supplier.id) == Decimal("-20")

    async def test_edit_missing_bill_returns_404(self, client, tenant_headers, bill_payload):
        response = await client.put(f"/bills/{uuid4()}", json=bill_payload, headers=tenant_headers)
        assert response.status_code == 404

    async def test_delete_keeping_received_goods(self, client, tenant_headers, bill_payload, supplier, item):
        bill_payload["status"] = "received"
        bill = (await client.post("/bills/", json=bill_payload, headers=tenant_headers)).json()

        response = await client.delete(
            f"/bills/{bill['id']}", params={"restore_stock": "false"}, headers=tenant_headers
        )
        assert response.status_code == 204
        assert await get_stock(client, tenant_headers, item.id) == Decimal("60")
        assert await get_balance(client, tenant_headers, supplier.id) == Decimal("0")
