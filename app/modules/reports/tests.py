"""
Tests para los reportes de saldos

Cubren el resumen de cuentas por cobrar/pagar, la antigüedad de facturas
abiertas, la detección de desvíos y la conciliación vía HTTP.
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import update

from app.modules.contacts.models import Contact
from app.modules.ledger.schemas import (
    LineItemCreate, SaleInvoiceCreate, PurchaseInvoiceCreate, PaymentCreate
)
from app.modules.reports.services.balances import BalanceReportService


TODAY = date(2024, 6, 15)


# ===== FIXTURES =====

@pytest.fixture
def reports(store, tenant_id):
    return BalanceReportService(store, tenant_id)


@pytest.fixture
async def activity(ledger, customer, supplier, item):
    """Una venta parcialmente cobrada, una compra recibida y una en borrador."""
    sale = await ledger.create_sale_invoice(SaleInvoiceCreate(
        contact_id=customer.id,
        invoice_date=TODAY - timedelta(days=40),
        due_date=TODAY - timedelta(days=10),
        items=[LineItemCreate(item_id=item.id, quantity=Decimal("4"), unit_price=Decimal("25"))]
    ))
    await ledger.create_payment_in(PaymentCreate(invoice_id=sale.id, amount=Decimal("30"), payment_date=TODAY))
    received = await ledger.create_purchase_invoice(PurchaseInvoiceCreate(
        contact_id=supplier.id,
        invoice_date=TODAY,
        status="received",
        items=[LineItemCreate(item_name="Insumos", quantity=Decimal("1"), unit_price=Decimal("80"))]
    ))
    await ledger.create_purchase_invoice(PurchaseInvoiceCreate(
        contact_id=supplier.id,
        invoice_date=TODAY,
        status="ordered",
        items=[LineItemCreate(item_name="Pedido", quantity=Decimal("1"), unit_price=Decimal("500"))]
    ))
    return {"sale": sale, "purchase": received}


# ===== TESTS DE SERVICIO =====

class TestBalanceReports:

    async def test_summary(self, reports, activity):
        summary = await reports.get_summary(today=TODAY)

        assert summary["total_receivable"] == Decimal("70")
        assert summary["total_payable"] == Decimal("80")
        assert summary["payments_in_today"] == Decimal("30")
        assert summary["payments_in_month"] == Decimal("30")
        assert summary["payments_out_today"] == Decimal("0")
        assert summary["sales_today"] == Decimal("0")
        assert summary["purchases_today"] == Decimal("580")

    async def test_receivable_aging(self, reports, activity):
        report = await reports.get_open_invoices("sale", as_of=TODAY)

        assert report["total_invoices"] == 1
        invoice = report["invoices"][0]
        assert invoice["amount_due"] == Decimal("70")
        assert invoice["days_overdue"] == 10
        assert report["overdue_amount"] == Decimal("70")
        assert report["current_amount"] == Decimal("0")

    async def test_payable_only_counts_received(self, reports, activity):
        report = await reports.get_open_invoices("purchase", as_of=TODAY)

        assert report["total_invoices"] == 1
        assert report["invoices"][0]["invoice_id"] == activity["purchase"].id
        assert report["total_pending_amount"] == Decimal("80")

    async def test_no_drift_after_ledger_operations(self, reports, activity):
        assert await reports.balance_drift() == []
        rows = await reports.derived_balances()
        assert all(row["in_sync"] for row in rows)

    async def test_drift_detected(self, store, reports, activity, supplier):
        await store.execute(
            update(Contact).where(Contact.id == supplier.id).values(current_balance=Decimal("0"))
        )

        drifted = await reports.balance_drift()
        assert len(drifted) == 1
        assert drifted[0]["contact_id"] == supplier.id
        assert drifted[0]["derived_balance"] == Decimal("-80")
        assert drifted[0]["drift"] == Decimal("80")


# ===== TESTS DE ENDPOINTS =====

class TestBalanceEndpoints:

    async def test_summary_endpoint(self, client, tenant_headers, activity):
        response = await client.get(
            "/reports/balances/summary", params={"as_of": TODAY.isoformat()}, headers=tenant_headers
        )
        assert response.status_code == 200
        assert Decimal(response.json()["total_receivable"]) == Decimal("70")

    async def test_contact_balance_endpoint(self, client, tenant_headers, activity, customer):
        response = await client.get(f"/reports/balances/contacts/{customer.id}", headers=tenant_headers)
        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["stored_balance"]) == Decimal("70")
        assert data["in_sync"] is True

    async def test_reconcile_endpoint(self, client, tenant_headers, store, activity, customer):
        await store.execute(
            update(Contact).where(Contact.id == customer.id).values(current_balance=Decimal("1"))
        )

        response = await client.get("/reports/balances/drift", headers=tenant_headers)
        assert response.json()["total"] == 1

        response = await client.post("/reports/balances/reconcile", headers=tenant_headers)
        assert response.status_code == 200
        assert response.json()["total_corrected"] == 1

        response = await client.get("/reports/balances/drift", headers=tenant_headers)
        assert response.json()["total"] == 0
