"""
Tests del Unit of Work (LedgerStore)
"""

import pytest
from decimal import Decimal

from sqlalchemy import select

from app.modules.contacts.models import Contact


class TestLedgerStore:

    async def test_commit_on_success(self, store, tenant_id):
        async with store.transaction() as db:
            db.add(Contact(tenant_id=tenant_id, name="Persistido", type="customer",
                           opening_balance=Decimal("0"), current_balance=Decimal("0")))

        rows = await store.query("SELECT name FROM contacts")
        assert [row.name for row in rows] == ["Persistido"]

    async def test_rollback_on_error(self, store, tenant_id):
        with pytest.raises(ValueError):
            async with store.transaction() as db:
                db.add(Contact(tenant_id=tenant_id, name="Descartado", type="customer",
                               opening_balance=Decimal("0"), current_balance=Decimal("0")))
                await db.flush()
                raise ValueError("fallo")

        assert await store.query("SELECT name FROM contacts") == []

    async def test_nested_transaction_uses_callers_session(self, store, tenant_id):
        with pytest.raises(ValueError):
            async with store.transaction() as outer:
                async with store.transaction(outer) as inner:
                    assert inner is outer
                    inner.add(Contact(tenant_id=tenant_id, name="Interno", type="customer",
                                      opening_balance=Decimal("0"), current_balance=Decimal("0")))
                # El cuerpo interno terminó sin error pero el commit es del llamador
                raise ValueError("fallo externo")

        assert await store.query("SELECT name FROM contacts") == []

    async def test_execute_returns_rowcount(self, store, customer, supplier):
        affected = await store.execute("UPDATE contacts SET notes = :notes", {"notes": "revisado"})
        assert affected == 2

    async def test_run(self, store, customer):
        async def body(db):
            return await db.scalar(select(Contact.name).where(Contact.id == customer.id))

        assert await store.run(body) == customer.name

    async def test_foreign_keys_enforced(self, store):
        rows = await store.query("PRAGMA foreign_keys")
        assert rows[0][0] == 1
