"""
Tests para el módulo de Contactos

Cubren:
- Alta con saldo inicial y nombres únicos por tenant
- Búsquedas y filtros
- Aislamiento multi-tenant
- Movimiento atómico del saldo
- Borrado (con y sin cascada) y endpoints REST
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from app.common.exceptions import LedgerValidationError, NotFoundError
from app.modules.contacts.schemas import ContactCreate, ContactUpdate
from app.modules.contacts.service import ContactService


# ===== FIXTURES =====

@pytest.fixture
def service(store, tenant_id):
    return ContactService(store, tenant_id)


@pytest.fixture
def sample_contact_data():
    """Datos de ejemplo para crear contactos"""
    return {
        "name": "Distribuidora Andina S.A.S.",
        "type": "both",
        "email": "compras@andina.com",
        "phone": "601-234-5678",
        "opening_balance": "250.00",
        "credit_limit": "5000.00",
        "credit_days": 30,
        "notes": "Cliente y proveedor"
    }


# ===== TESTS DE SERVICIO =====

class TestContactService:

    async def test_opening_balance_becomes_current_balance(self, service):
        contact = await service.create_contact(
            ContactCreate(name="Cliente Inicial", opening_balance=Decimal("120.50"))
        )
        assert contact.type == "customer"
        assert contact.current_balance == Decimal("120.50")
        assert contact.is_customer()
        assert not contact.is_supplier()

    async def test_duplicate_name_is_rejected(self, service, customer):
        with pytest.raises(LedgerValidationError):
            await service.create_contact(ContactCreate(name=customer.name))

    async def test_same_name_in_other_tenant_is_allowed(self, store, customer):
        other = await ContactService(store, uuid4()).create_contact(ContactCreate(name=customer.name))
        assert other.id != customer.id

    async def test_get_missing_contact(self, service):
        with pytest.raises(NotFoundError):
            await service.get_contact(uuid4())

    async def test_contacts_are_tenant_scoped(self, store, customer):
        with pytest.raises(NotFoundError):
            await ContactService(store, uuid4()).get_contact(customer.id)

    async def test_list_filters(self, service, customer, supplier):
        await service.create_contact(ContactCreate(name="Mixto Ltda", type="both"))

        contacts, total = await service.list_contacts()
        assert total == 3

        suppliers, total = await service.list_contacts(type="supplier")
        assert total == 1
        assert suppliers[0].id == supplier.id

        found, total = await service.list_contacts(search="cliente")
        assert total == 1
        assert found[0].id == customer.id

    async def test_update_does_not_touch_balance(self, service, customer):
        updated = await service.update_contact(customer.id, ContactUpdate(type="both", credit_days=15))
        assert updated.type == "both"
        assert updated.credit_days == 15
        assert updated.is_supplier()
        assert updated.current_balance == Decimal("0")

    async def test_apply_balance_delta(self, store, service, customer):
        async with store.transaction() as db:
            await service.apply_balance_delta(customer.id, Decimal("80"), db)
            await service.apply_balance_delta(customer.id, Decimal("-30.25"), db)

        contact = await service.get_contact(customer.id)
        assert contact.current_balance == Decimal("49.75")

    async def test_apply_balance_delta_missing_contact(self, store, service):
        with pytest.raises(NotFoundError):
            async with store.transaction() as db:
                await service.apply_balance_delta(uuid4(), Decimal("10"), db)


# ===== TESTS DE ENDPOINTS =====

class TestContactEndpoints:

    async def test_create_and_get(self, client, tenant_headers, sample_contact_data):
        response = await client.post("/contacts/", json=sample_contact_data, headers=tenant_headers)
        assert response.status_code == 201
        data = response.json()
        assert data["name"] == sample_contact_data["name"]
        assert Decimal(data["current_balance"]) == Decimal("250")

        response = await client.get(f"/contacts/{data['id']}", headers=tenant_headers)
        assert response.status_code == 200
        assert response.json()["type"] == "both"

    async def test_duplicate_returns_400(self, client, tenant_headers, sample_contact_data):
        await client.post("/contacts/", json=sample_contact_data, headers=tenant_headers)
        response = await client.post("/contacts/", json=sample_contact_data, headers=tenant_headers)
        assert response.status_code == 400
        assert response.json()["context"]["name"] == sample_contact_data["name"]

    async def test_missing_contact_returns_404(self, client, tenant_headers):
        response = await client.get(f"/contacts/{uuid4()}", headers=tenant_headers)
        assert response.status_code == 404

    async def test_invalid_tenant_header(self, client):
        response = await client.get("/contacts/", headers={"X-Company-ID": "no-es-uuid"})
        assert response.status_code == 400

    async def test_list_with_pagination(self, client, tenant_headers, customer, supplier):
        response = await client.get("/contacts/", params={"limit": 1}, headers=tenant_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert len(data["items"]) == 1

    async def test_delete_contact(self, client, tenant_headers, customer):
        response = await client.delete(f"/contacts/{customer.id}", headers=tenant_headers)
        assert response.status_code == 204
        response = await client.get(f"/contacts/{customer.id}", headers=tenant_headers)
        assert response.status_code == 404
        response = await client.delete(f"/contacts/{customer.id}", headers=tenant_headers)
        assert response.status_code == 204

    async def test_delete_with_documents_returns_409(self, client, tenant_headers, customer, item):
        invoice = {
            "contact_id": str(customer.id),
            "items": [{"item_id": str(item.id), "quantity": "5", "unit_price": "10"}]
        }
        await client.post("/invoices/", json=invoice, headers=tenant_headers)

        response = await client.delete(f"/contacts/{customer.id}", headers=tenant_headers)
        assert response.status_code == 409
        assert response.json()["context"]["sale_invoices"] == 1

        response = await client.delete(
            f"/contacts/{customer.id}", params={"cascade": "true"}, headers=tenant_headers
        )
        assert response.status_code == 204
        stock = (await client.get(f"/items/{item.id}", headers=tenant_headers)).json()["stock_quantity"]
        assert Decimal(stock) == Decimal("50")
        invoices = (await client.get("/invoices/", headers=tenant_headers)).json()
        assert invoices["total"] == 0
