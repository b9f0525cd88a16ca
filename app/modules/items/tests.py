"""
Tests para el módulo de Ítems

Cubren el alta con historial, los filtros y el ajuste manual de stock:
validación de la cantidad, regla de stock no negativo e historial.
"""

import json
import pytest
from decimal import Decimal
from uuid import uuid4

from app.common.exceptions import ConstraintViolation, LedgerValidationError, NotFoundError
from app.modules.history.service import HistoryService
from app.modules.items.schemas import ItemCreate, ItemUpdate
from app.modules.items.service import ItemService, parse_quantity


# ===== FIXTURES =====

@pytest.fixture
def items(store, tenant_id, actor):
    return ItemService(store, tenant_id, actor)


# ===== TESTS DE CANTIDADES =====

class TestParseQuantity:

    def test_accepts_numbers_and_numeric_strings(self):
        assert parse_quantity(5) == Decimal("5")
        assert parse_quantity("-2.5") == Decimal("-2.5")
        assert parse_quantity(Decimal("0.125")) == Decimal("0.125")

    @pytest.mark.parametrize("value", [None, True, "diez", "", "NaN", "Infinity"])
    def test_rejects_non_numeric(self, value):
        with pytest.raises(LedgerValidationError):
            parse_quantity(value)


# ===== TESTS DE SERVICIO =====

class TestItemService:

    async def test_create_records_history(self, store, tenant_id, item):
        entries = await HistoryService(store, tenant_id).list_for_document(item.id)
        assert [e.action for e in entries] == ["created"]
        assert entries[0].invoice_type == "item"

    async def test_duplicate_sku(self, items, item):
        with pytest.raises(LedgerValidationError):
            await items.create_item(ItemCreate(name="Otro", sku=item.sku))

    async def test_low_stock_filter(self, items, item):
        await items.create_item(ItemCreate(name="Tornillo", sku="T-1", stock_quantity=Decimal("2"), low_stock_alert=Decimal("10")))

        low, total = await items.list_items(low_stock=True)
        assert total == 1
        assert low[0].name == "Tornillo"
        assert low[0].is_low_stock

    async def test_update_records_old_and_new_values(self, store, tenant_id, items, item):
        await items.update_item(item.id, ItemUpdate(sale_price=Decimal("12.50")))

        entries = await HistoryService(store, tenant_id).list_for_document(item.id)
        assert entries[-1].action == "updated"
        assert json.loads(entries[-1].old_values) == {"sale_price": "10.00"}
        assert json.loads(entries[-1].new_values) == {"sale_price": "12.50"}

    async def test_adjust_stock_up_and_down(self, items, item):
        raised = await items.adjust_stock(item.id, "15", notes="Conteo físico")
        assert raised.stock_quantity == Decimal("65")

        lowered = await items.adjust_stock(item.id, -65)
        assert lowered.stock_quantity == Decimal("0")

    async def test_adjust_stock_history(self, store, tenant_id, items, item):
        await items.adjust_stock(item.id, Decimal("-20"), notes="Merma")

        entry = (await HistoryService(store, tenant_id).list_for_document(item.id))[-1]
        assert entry.action == "stock_adjusted"
        assert entry.user_name == "Test User"
        assert "Widget" in entry.description
        new_values = json.loads(entry.new_values)
        assert Decimal(new_values["stock_quantity"]) == Decimal("30")
        assert new_values["notes"] == "Merma"

    async def test_adjust_below_zero_is_rejected(self, store, tenant_id, items, item):
        with pytest.raises(ConstraintViolation):
            await items.adjust_stock(item.id, -51)

        assert (await items.get_item(item.id)).stock_quantity == Decimal("50")
        entries = await HistoryService(store, tenant_id).list_for_document(item.id)
        assert len(entries) == 1

    async def test_zero_adjustment_is_rejected(self, items, item):
        with pytest.raises(LedgerValidationError):
            await items.adjust_stock(item.id, 0)

    async def test_adjust_missing_item(self, items):
        with pytest.raises(NotFoundError):
            await items.adjust_stock(uuid4(), 5)

    async def test_apply_stock_delta_may_go_negative(self, store, items, item):
        async with store.transaction() as db:
            await items.apply_stock_delta(item.id, Decimal("-60"), db)
        assert (await items.get_item(item.id)).stock_quantity == Decimal("-10")


# ===== TESTS DE ENDPOINTS =====

class TestItemEndpoints:

    async def test_create_and_adjust(self, client, tenant_headers):
        response = await client.post(
            "/items/",
            json={"name": "Cable", "sku": "C-10", "stock_quantity": "3"},
            headers=tenant_headers
        )
        assert response.status_code == 201
        item_id = response.json()["id"]

        response = await client.post(
            f"/items/{item_id}/adjust-stock", json={"quantity": "2"}, headers=tenant_headers
        )
        assert response.status_code == 200
        assert Decimal(response.json()["stock_quantity"]) == Decimal("5")

    async def test_negative_adjustment_returns_409(self, client, tenant_headers, item):
        response = await client.post(
            f"/items/{item.id}/adjust-stock", json={"quantity": "-100"}, headers=tenant_headers
        )
        assert response.status_code == 409

    async def test_zero_adjustment_returns_400(self, client, tenant_headers, item):
        response = await client.post(
            f"/items/{item.id}/adjust-stock", json={"quantity": 0}, headers=tenant_headers
        )
        assert response.status_code == 400
