"""
Tests para el historial de auditoría
"""

import json
import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from app.modules.history.service import HistoryRecorder, HistoryService, dump_snapshot


class TestSnapshot:

    def test_dump_handles_ledger_types(self):
        value_id = uuid4()
        dumped = json.loads(dump_snapshot({
            "total": Decimal("10.50"),
            "contact_id": value_id,
            "invoice_date": date(2024, 3, 1)
        }))
        assert dumped == {"total": "10.50", "contact_id": str(value_id), "invoice_date": "2024-03-01"}

    def test_dump_none(self):
        assert dump_snapshot(None) is None


class TestHistoryRecorder:

    async def test_anonymous_actor(self, store, tenant_id):
        recorder = HistoryRecorder(tenant_id)
        async with store.transaction() as db:
            entry = await recorder.record(db, uuid4(), "sale", "created", "Created sale invoice X")

        assert entry.user_id is None
        assert entry.user_name == "Unknown User"

    async def test_entry_disappears_with_rollback(self, store, tenant_id, actor):
        document_id = uuid4()
        with pytest.raises(RuntimeError):
            async with store.transaction() as db:
                await HistoryRecorder(tenant_id, actor).record(db, document_id, "sale", "created", "x")
                raise RuntimeError("rollback")

        assert await HistoryService(store, tenant_id).list_for_document(document_id) == []

    async def test_list_recent_filters_by_type(self, store, tenant_id, actor, item):
        recorder = HistoryRecorder(tenant_id, actor)
        async with store.transaction() as db:
            await recorder.record(db, uuid4(), "payment_in", "payment_in", "Payment REC-1 of 5")

        recent = await HistoryService(store, tenant_id).list_recent(invoice_type="item")
        assert len(recent) == 1
        assert recent[0].invoice_id == item.id

        everything = await HistoryService(store, tenant_id).list_recent()
        assert [e.invoice_type for e in everything] == ["payment_in", "item"]


class TestHistoryEndpoints:

    async def test_document_history(self, client, tenant_headers, item):
        response = await client.get(f"/history/{item.id}", headers=tenant_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["action"] == "created"
        assert data["items"][0]["new_values"]["name"] == "Widget"

    async def test_other_tenant_sees_nothing(self, client, item):
        response = await client.get(f"/history/{item.id}", headers={"X-Company-ID": str(uuid4())})
        assert response.status_code == 200
        assert response.json()["total"] == 0
