"""
Tests para la numeración de documentos
"""

import pytest

from app.common.exceptions import LedgerValidationError
from app.modules.sequences.schemas import SequenceConfigUpdate
from app.modules.sequences.service import SequenceService, format_number, preview


# ===== FIXTURES =====

@pytest.fixture
def sequences(store, tenant_id):
    return SequenceService(store, tenant_id)


# ===== TESTS DE FORMATO =====

class TestFormatNumber:

    def test_padding_is_minimum_width(self):
        assert format_number("INV", 42, 5) == "INV-00042"
        assert format_number("SALE", 5000, 3) == "SALE-5000"

    def test_no_padding(self):
        assert format_number("REC", 7, 0) == "REC-7"
        assert format_number("REC", 7, -2) == "REC-7"

    def test_empty_prefix_has_no_dash(self):
        assert format_number("", 12, 4) == "0012"
        assert format_number(None, 12, 0) == "12"

    def test_preview_from_dict(self):
        assert preview({"prefix": "PUR", "next_number": 3, "padding": 3}) == "PUR-003"


# ===== TESTS DE SERVICIO =====

class TestSequenceService:

    async def test_defaults_created_lazily(self, sequences):
        config = await sequences.get_config("sale_invoice")
        assert config.prefix == "INV"
        assert config.next_number == 1001
        assert config.padding == 4
        assert preview(config) == "INV-1001"

        again = await sequences.get_config("sale_invoice")
        assert again.id == config.id

    async def test_unknown_document_type(self, sequences):
        with pytest.raises(LedgerValidationError):
            await sequences.get_config("quote")

    async def test_update_config(self, sequences):
        config = await sequences.update_config(
            "purchase_invoice", SequenceConfigUpdate(prefix=" BILL ", next_number=42, padding=6)
        )
        assert config.prefix == "BILL"
        assert preview(config) == "BILL-000042"

    async def test_next_number_accepts_digit_strings(self, sequences):
        config = await sequences.update_config("payment_in", {"next_number": "77"})
        assert config.next_number == 77

    @pytest.mark.parametrize("value", [0, -5, "abc", "1.5", True, 2.5])
    async def test_invalid_next_number_writes_nothing(self, sequences, value):
        with pytest.raises(LedgerValidationError):
            await sequences.update_config("sale_invoice", {"next_number": value})
        assert (await sequences.get_config("sale_invoice")).next_number == 1001

    async def test_invalid_padding(self, sequences):
        with pytest.raises(LedgerValidationError):
            await sequences.update_config("sale_invoice", {"padding": -1})

    async def test_unknown_field(self, sequences):
        with pytest.raises(LedgerValidationError):
            await sequences.update_config("sale_invoice", {"tenant_id": "x"})

    async def test_allocate_increments(self, store, sequences):
        async with store.transaction() as db:
            first = await sequences.allocate("payment_out", db)
            second = await sequences.allocate("payment_out", db)

        assert first == "PAY-1001"
        assert second == "PAY-1002"
        assert (await sequences.get_config("payment_out")).next_number == 1003

    async def test_allocate_rolls_back_with_caller(self, store, sequences):
        await sequences.get_config("sale_invoice")

        with pytest.raises(RuntimeError):
            async with store.transaction() as db:
                await sequences.allocate("sale_invoice", db)
                raise RuntimeError("fallo del documento")

        assert (await sequences.get_config("sale_invoice")).next_number == 1001


# ===== TESTS DE ENDPOINTS =====

class TestSequenceEndpoints:

    async def test_get_and_patch(self, client, tenant_headers):
        response = await client.get("/sequences/sale_invoice", headers=tenant_headers)
        assert response.status_code == 200
        assert response.json()["preview"] == "INV-1001"

        response = await client.patch(
            "/sequences/sale_invoice", json={"prefix": "FV", "padding": 5}, headers=tenant_headers
        )
        assert response.status_code == 200
        assert response.json()["preview"] == "FV-01001"

    async def test_invalid_padding_returns_400(self, client, tenant_headers):
        response = await client.patch("/sequences/sale_invoice", json={"padding": -3}, headers=tenant_headers)
        assert response.status_code == 400

    async def test_unknown_document_type_returns_422(self, client, tenant_headers):
        response = await client.get("/sequences/quote", headers=tenant_headers)
        assert response.status_code == 422
