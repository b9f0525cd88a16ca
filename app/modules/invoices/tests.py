"""
Tests de endpoints para facturas de venta y pagos recibidos
"""

import pytest
from decimal import Decimal
from uuid import uuid4


# ===== FIXTURES =====

@pytest.fixture
def invoice_payload(customer, item):
    return {
        "contact_id": str(customer.id),
        "invoice_date": "2024-05-01",
        "due_date": "2024-05-31",
        "notes": "Pedido mostrador",
        "items": [
            {"item_id": str(item.id), "quantity": "2", "unit_price": "25.00", "tax_percent": "19"},
            {"item_name": "Instalación", "quantity": "1", "unit_price": "40"}
        ]
    }


async def create_invoice(client, headers, payload):
    response = await client.post("/invoices/", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


# ===== TESTS =====

class TestInvoiceEndpoints:

    async def test_create_invoice(self, client, tenant_headers, invoice_payload):
        data = await create_invoice(client, tenant_headers, invoice_payload)

        assert data["invoice_number"] == "INV-1001"
        assert data["status"] == "draft"
        assert Decimal(data["subtotal"]) == Decimal("90")
        assert Decimal(data["tax_amount"]) == Decimal("9.50")
        assert Decimal(data["total"]) == Decimal("99.50")
        assert len(data["line_items"]) == 2
        assert data["line_items"][0]["item_name"] == "Widget"

        item = (await client.get(f"/items/{invoice_payload['items'][0]['item_id']}", headers=tenant_headers)).json()
        assert Decimal(item["stock_quantity"]) == Decimal("48")

    async def test_invoice_without_lines_returns_422(self, client, tenant_headers, invoice_payload):
        invoice_payload["items"] = []
        response = await client.post("/invoices/", json=invoice_payload, headers=tenant_headers)
        assert response.status_code == 422

    async def test_unknown_contact_returns_404(self, client, tenant_headers, invoice_payload):
        invoice_payload["contact_id"] = str(uuid4())
        response = await client.post("/invoices/", json=invoice_payload, headers=tenant_headers)
        assert response.status_code == 404

    async def test_invalid_status_returns_400(self, client, tenant_headers, invoice_payload):
        invoice_payload["status"] = "received"
        response = await client.post("/invoices/", json=invoice_payload, headers=tenant_headers)
        assert response.status_code == 400

    async def test_duplicate_number_returns_409(self, client, tenant_headers, invoice_payload):
        invoice_payload["invoice_number"] = "MAN-1"
        await create_invoice(client, tenant_headers, invoice_payload)

        response = await client.post("/invoices/", json=invoice_payload, headers=tenant_headers)
        assert response.status_code == 409

        listing = (await client.get("/invoices/", headers=tenant_headers)).json()
        assert listing["total"] == 1

    async def test_list_filters(self, client, tenant_headers, invoice_payload):
        await create_invoice(client, tenant_headers, invoice_payload)
        second = await create_invoice(client, tenant_headers, invoice_payload)
        await client.patch(f"/invoices/{second['id']}/status", json={"status": "sent"}, headers=tenant_headers)

        response = await client.get("/invoices/", params={"status": "sent"}, headers=tenant_headers)
        assert response.status_code == 200
        assert response.json()["total"] == 1
        assert response.json()["items"][0]["id"] == second["id"]

        response = await client.get("/invoices/", params={"search": "INV-1001"}, headers=tenant_headers)
        assert response.json()["total"] == 1

    async def test_payment_flow(self, client, tenant_headers, invoice_payload, customer):
        invoice = await create_invoice(client, tenant_headers, invoice_payload)

        response = await client.post(
            "/payments-in/",
            json={"invoice_id": invoice["id"], "amount": "99.50", "payment_mode": "bank_transfer"},
            headers=tenant_headers
        )
        assert response.status_code == 201
        payment = response.json()
        assert payment["receipt_number"] == "REC-1001"
        assert payment["invoice_number"] == invoice["invoice_number"]

        paid = (await client.get(f"/invoices/{invoice['id']}", headers=tenant_headers)).json()
        assert paid["status"] == "paid"
        assert Decimal(paid["amount_due"]) == Decimal("0")

        payments = (await client.get(f"/invoices/{invoice['id']}/payments", headers=tenant_headers)).json()
        assert [p["id"] for p in payments] == [payment["id"]]

        response = await client.delete(f"/payments-in/{payment['id']}", headers=tenant_headers)
        assert response.status_code == 204
        response = await client.delete(f"/payments-in/{payment['id']}", headers=tenant_headers)
        assert response.status_code == 204

        reverted = (await client.get(f"/invoices/{invoice['id']}", headers=tenant_headers)).json()
        assert reverted["status"] == "draft"
        contact = (await client.get(f"/contacts/{customer.id}", headers=tenant_headers)).json()
        assert Decimal(contact["current_balance"]) == Decimal("99.50")

    async def test_overpayment_returns_400(self, client, tenant_headers, invoice_payload):
        invoice = await create_invoice(client, tenant_headers, invoice_payload)
        response = await client.post(
            "/payments-in/", json={"invoice_id": invoice["id"], "amount": "500"}, headers=tenant_headers
        )
        assert response.status_code == 400

    async def test_payment_without_target_returns_422(self, client, tenant_headers):
        response = await client.post("/payments-in/", json={"amount": "10"}, headers=tenant_headers)
        assert response.status_code == 422

    async def test_delete_invoice(self, client, tenant_headers, invoice_payload, customer):
        invoice = await create_invoice(client, tenant_headers, invoice_payload)

        response = await client.delete(f"/invoices/{invoice['id']}", headers=tenant_headers)
        assert response.status_code == 204
        response = await client.get(f"/invoices/{invoice['id']}", headers=tenant_headers)
        assert response.status_code == 404
        response = await client.delete(f"/invoices/{invoice['id']}", headers=tenant_headers)
        assert response.status_code == 204

        contact = (await client.get(f"/contacts/{customer.id}", headers=tenant_headers)).json()
        assert Decimal(contact["current_balance"]) == Decimal("0")

        history = (await client.get(f"/history/{invoice['id']}", headers=tenant_headers)).json()
        assert [entry["action"] for entry in history["items"]] == ["created", "deleted"]

    async def test_actor_from_token(self, client, tenant_headers, invoice_payload):
        import jwt
        from app.core.config import settings

        token = jwt.encode({"sub": str(uuid4()), "name": "Cajera Ana"}, settings.APP_SECRET_STRING, algorithm=settings.ALGORITHM)
        headers = {**tenant_headers, "Authorization": f"Bearer {token}"}
        invoice = await create_invoice(client, headers, invoice_payload)

        history = (await client.get(f"/history/{invoice['id']}", headers=tenant_headers)).json()
        assert history["items"][0]["user_name"] == "Cajera Ana"

    async def test_edit_invoice(self, client, tenant_headers, invoice_payload, customer):
        invoice = await create_invoice(client, tenant_headers, invoice_payload)
        await client.post("/payments-in/", json={"invoice_id": invoice["id"], "amount": "50"}, headers=tenant_headers)

        invoice_payload["items"][0]["quantity"] = "3"
        response = await client.put(f"/invoices/{invoice['id']}", json=invoice_payload, headers=tenant_headers)
        assert response.status_code == 200, response.text
        data = response.json()
        assert data["invoice_number"] == invoice["invoice_number"]
        assert Decimal(data["total"]) == Decimal("129.25")
        assert Decimal(data["amount_paid"]) == Decimal("50")
        assert Decimal(data["amount_due"]) == Decimal("79.25")
        assert data["status"] == "partial"

        item = (await client.get(f"/items/{invoice_payload['items'][0]['item_id']}", headers=tenant_headers)).json()
        assert Decimal(item["stock_quantity"]) == Decimal("47")
        contact = (await client.get(f"/contacts/{customer.id}", headers=tenant_headers)).json()
        assert Decimal(contact["current_balance"]) == Decimal("79.25")

        history = (await client.get(f"/history/{invoice['id']}", headers=tenant_headers)).json()
        assert history["items"][-1]["action"] == "updated"

    async def test_edit_missing_invoice_returns_404(self, client, tenant_headers, invoice_payload):
        response = await client.put(f"/invoices/{uuid4()}", json=invoice_payload, headers=tenant_headers)
        assert response.status_code == 404

    async def test_edit_below_amount_paid_returns_400(self, client, tenant_headers, invoice_payload):
        invoice = await create_invoice(client, tenant_headers, invoice_payload)
        await client.post("/payments-in/", json={"invoice_id": invoice["id"], "amount": "99.50"}, headers=tenant_headers)

        invoice_payload["items"] = [{"item_name": "Instalación", "quantity": "1", "unit_price": "40"}]
        response = await client.put(f"/invoices/{invoice['id']}", json=invoice_payload, headers=tenant_headers)
        assert response.status_code == 400

        current = (await client.get(f"/invoices/{invoice['id']}", headers=tenant_headers)).json()
        assert Decimal(current["total"]) == Decimal("99.50")
