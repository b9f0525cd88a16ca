"""
Tests de utilidades comunes: ids ordenables, middleware y manejo de errores
"""

from uuid import uuid4

from app.common.exceptions import LedgerValidationError
from app.common.ids import new_id, id_timestamp_ms


class TestIds:

    def test_ids_are_version_7(self):
        value = new_id()
        assert value.version == 7

    def test_ids_sort_in_creation_order(self):
        ids = [new_id() for _ in range(500)]
        assert ids == sorted(ids, key=lambda value: value.int)
        assert len(set(ids)) == 500

    def test_timestamp_is_embedded(self):
        first = new_id()
        second = new_id()
        assert id_timestamp_ms(first) <= id_timestamp_ms(second)


class TestExceptions:

    def test_context_is_kept(self):
        error = LedgerValidationError("Monto inválido", amount="-1")
        assert error.message == "Monto inválido"
        assert error.context == {"amount": "-1"}
        assert str(error) == "Monto inválido"


class TestMiddleware:

    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    async def test_tenant_header_is_echoed(self, client):
        tenant = str(uuid4())
        response = await client.get("/contacts/", headers={"X-Company-ID": tenant})
        assert response.status_code == 200
        assert response.headers["X-Tenant-ID"] == tenant

    async def test_default_tenant_without_header(self, client, customer):
        # Los fixtures usan otro tenant: sin header no se ven sus datos
        response = await client.get("/contacts/")
        assert response.status_code == 200
        assert response.json()["total"] == 0
