"""
Tests para el ledger

Cubren:
- Resolución de estado y cálculo de totales (funciones puras)
- Escenario venta -> pago -> reversión del pago
- Escenario compra recibida vs. borrador
- Invariantes amount_due = total - amount_paid y suma de pagos = amount_paid
- Rollback completo ante fallos a mitad de transacción
- Borrados idempotentes y completitud del historial
- Edición de facturas y borrado de contactos en cascada
"""

import json
import pytest
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from app.common.exceptions import ConstraintViolation, LedgerValidationError, NotFoundError
from app.modules.bills.models import PurchaseInvoice, PaymentOut
from app.modules.contacts.models import Contact
from app.modules.contacts.schemas import ContactCreate
from app.modules.contacts.service import ContactService
from app.modules.history.models import InvoiceHistory
from app.modules.history.service import HistoryService
from app.modules.invoices.models import SaleInvoice, PaymentIn
from app.modules.items.service import ItemService
from app.modules.ledger.calculator import LedgerCalculator, money_equal
from app.modules.ledger.schemas import (
    LineItemCreate, SaleInvoiceCreate, PurchaseInvoiceCreate, PaymentCreate,
    SaleInvoiceUpdate, PurchaseInvoiceUpdate
)
from app.modules.ledger.status import resolve_status, base_status_for, goods_received
from app.modules.reports.services.balances import BalanceReportService
from app.modules.sequences.service import SequenceService


# ===== HELPERS =====

def sale_data(contact_id, item_id=None, quantity="10", unit_price="10", **kwargs):
    return SaleInvoiceCreate(
        contact_id=contact_id,
        items=[LineItemCreate(
            item_id=item_id,
            item_name=None if item_id else "Servicio",
            quantity=Decimal(quantity),
            unit_price=Decimal(unit_price)
        )],
        **kwargs
    )


def purchase_data(contact_id, item_id=None, quantity="10", unit_price="5", **kwargs):
    return PurchaseInvoiceCreate(
        contact_id=contact_id,
        items=[LineItemCreate(
            item_id=item_id,
            item_name=None if item_id else "Insumo",
            quantity=Decimal(quantity),
            unit_price=Decimal(unit_price)
        )],
        **kwargs
    )


def line(item_id=None, quantity="10", unit_price="10"):
    return LineItemCreate(
        item_id=item_id,
        item_name=None if item_id else "Servicio",
        quantity=Decimal(quantity),
        unit_price=Decimal(unit_price)
    )


async def balance_of(store, tenant_id, contact_id):
    contact = await ContactService(store, tenant_id).get_contact(contact_id)
    return contact.current_balance


async def stock_of(store, tenant_id, item_id):
    item = await ItemService(store, tenant_id).get_item(item_id)
    return item.stock_quantity


async def load(store, model, row_id):
    async with store.transaction() as db:
        return await db.scalar(select(model).where(model.id == row_id))


async def count_rows(store, model):
    async with store.transaction() as db:
        return await db.scalar(select(func.count()).select_from(model))


async def history_count(store):
    rows = await store.query("SELECT COUNT(*) FROM invoice_history")
    return rows[0][0]


# ===== TESTS DE ESTADO =====

class TestStatusResolver:
    """Tests para resolve_status"""

    def test_paid_when_nothing_due(self):
        assert resolve_status(Decimal("100"), Decimal("100"), Decimal("0"), "unpaid", "sale") == "paid"

    def test_paid_within_epsilon(self):
        assert resolve_status(Decimal("100"), Decimal("99.995"), Decimal("0.005"), "unpaid", "sale") == "paid"

    def test_partial_when_something_paid(self):
        assert resolve_status(Decimal("100"), Decimal("40"), Decimal("60"), "unpaid", "sale") == "partial"

    def test_cancelled_is_preserved(self):
        assert resolve_status(Decimal("100"), Decimal("100"), Decimal("0"), "cancelled", "sale") == "cancelled"
        assert resolve_status(Decimal("100"), Decimal("0"), Decimal("100"), "cancelled", "purchase") == "cancelled"

    def test_unpaid_falls_back_to_base_status(self):
        assert resolve_status(Decimal("100"), Decimal("0"), Decimal("100"), "paid", "sale", fallback_status="sent") == "sent"
        assert resolve_status(Decimal("50"), Decimal("0"), Decimal("50"), "partial", "purchase", fallback_status="ordered") == "ordered"

    def test_unpaid_keeps_previous_non_payment_status(self):
        assert resolve_status(Decimal("100"), Decimal("0"), Decimal("100"), "overdue", "sale") == "overdue"

    def test_unpaid_kind_defaults(self):
        assert resolve_status(Decimal("100"), Decimal("0"), Decimal("100"), "partial", "sale") == "unpaid"
        assert resolve_status(Decimal("100"), Decimal("0"), Decimal("100"), None, "purchase") == "received"

    def test_base_status_translation(self):
        assert base_status_for("sale", None) == "draft"
        assert base_status_for("sale", "paid") == "unpaid"
        assert base_status_for("purchase", "paid") == "received"
        assert base_status_for("purchase", "ordered") == "ordered"
        with pytest.raises(LedgerValidationError):
            base_status_for("sale", "received")
        with pytest.raises(LedgerValidationError):
            base_status_for("purchase", "sent")

    def test_goods_received(self):
        assert goods_received("received")
        assert not goods_received("draft")
        assert not goods_received("cancelled")


class TestLedgerCalculator:
    """Tests para los totales de factura"""

    def test_line_amount_with_discount(self):
        assert LedgerCalculator.line_amount(Decimal("3"), Decimal("19.99"), Decimal("10")) == Decimal("53.97")

    def test_explicit_amount_wins(self):
        assert LedgerCalculator.line_amount(Decimal("3"), Decimal("10"), Decimal("0"), Decimal("25")) == Decimal("25.00")

    def test_totals(self):
        items = [
            LineItemCreate(item_name="A", quantity=Decimal("2"), unit_price=Decimal("50"), tax_percent=Decimal("19")),
            LineItemCreate(item_name="B", quantity=Decimal("1"), unit_price=Decimal("30"), discount_percent=Decimal("50")),
        ]
        totals = LedgerCalculator.calculate_totals(items, Decimal("5"))
        assert totals.subtotal == Decimal("115.00")
        assert totals.tax_amount == Decimal("19.00")
        assert totals.total == Decimal("129.00")

    def test_money_equal_uses_epsilon(self):
        assert money_equal(Decimal("10.00"), Decimal("10.009"))
        assert not money_equal(Decimal("10.00"), Decimal("10.02"))


# ===== TESTS DE VENTAS Y PAGOS RECIBIDOS =====

class TestSaleScenario:
    """Venta de 100, pago total, reversión del pago"""

    async def test_create_sale_updates_balance_and_stock(self, store, tenant_id, ledger, customer, item):
        invoice = await ledger.create_sale_invoice(sale_data(customer.id, item.id))

        assert invoice.total == Decimal("100")
        assert invoice.amount_due == Decimal("100")
        assert invoice.amount_paid == Decimal("0")
        assert invoice.status == "draft"
        assert await balance_of(store, tenant_id, customer.id) == Decimal("100")
        assert await stock_of(store, tenant_id, item.id) == Decimal("40")

    async def test_payment_and_reversal_round_trip(self, store, tenant_id, ledger, customer, item):
        invoice = await ledger.create_sale_invoice(sale_data(customer.id, item.id))
        before = await load(store, SaleInvoice, invoice.id)

        payment = await ledger.create_payment_in(PaymentCreate(invoice_id=invoice.id, amount=Decimal("100")))
        paid = await load(store, SaleInvoice, invoice.id)
        assert paid.amount_paid == Decimal("100")
        assert paid.amount_due == Decimal("0")
        assert paid.status == "paid"
        assert payment.contact_id == customer.id
        assert await balance_of(store, tenant_id, customer.id) == Decimal("0")

        assert await ledger.delete_payment_in(payment.id) is True
        after = await load(store, SaleInvoice, invoice.id)
        assert after.amount_paid == before.amount_paid
        assert after.amount_due == before.amount_due
        assert after.status == before.status
        assert await balance_of(store, tenant_id, customer.id) == Decimal("100")
        assert await load(store, PaymentIn, payment.id) is None

    async def test_reversal_restores_explicit_base_status(self, store, tenant_id, ledger, customer):
        invoice = await ledger.create_sale_invoice(sale_data(customer.id, status="sent"))
        payment = await ledger.create_payment_in(PaymentCreate(invoice_id=invoice.id, amount=Decimal("40")))
        assert (await load(store, SaleInvoice, invoice.id)).status == "partial"

        await ledger.delete_payment_in(payment.id)
        assert (await load(store, SaleInvoice, invoice.id)).status == "sent"

    async def test_partial_payments_sum_to_amount_paid(self, store, tenant_id, ledger, customer):
        invoice = await ledger.create_sale_invoice(sale_data(customer.id))
        for amount in ("30", "20.50", "0.25"):
            await ledger.create_payment_in(PaymentCreate(invoice_id=invoice.id, amount=Decimal(amount)))

        current = await load(store, SaleInvoice, invoice.id)
        async with store.transaction() as db:
            paid_sum = await db.scalar(
                select(func.sum(PaymentIn.amount)).where(PaymentIn.invoice_id == invoice.id)
            )
        assert money_equal(paid_sum, current.amount_paid)
        assert money_equal(current.amount_due, current.total - current.amount_paid)
        assert current.status == "partial"

    async def test_unlinked_payment_only_moves_balance(self, store, tenant_id, ledger, customer):
        payment = await ledger.create_payment_in(PaymentCreate(contact_id=customer.id, amount=Decimal("25")))
        assert payment.invoice_id is None
        assert await balance_of(store, tenant_id, customer.id) == Decimal("-25")

    async def test_overpayment_is_rejected(self, store, tenant_id, ledger, customer):
        invoice = await ledger.create_sale_invoice(sale_data(customer.id))
        with pytest.raises(LedgerValidationError):
            await ledger.create_payment_in(PaymentCreate(invoice_id=invoice.id, amount=Decimal("100.02")))
        assert await count_rows(store, PaymentIn) == 0

    async def test_payment_for_missing_invoice_fails(self, ledger, customer):
        with pytest.raises(NotFoundError):
            await ledger.create_payment_in(PaymentCreate(invoice_id=uuid4(), amount=Decimal("10")))

    async def test_payment_contact_must_match_invoice(self, store, tenant_id, ledger, customer):
        other = await ContactService(store, tenant_id).create_contact(ContactCreate(name="Otro Cliente"))
        invoice = await ledger.create_sale_invoice(sale_data(customer.id))
        with pytest.raises(LedgerValidationError):
            await ledger.create_payment_in(
                PaymentCreate(contact_id=other.id, invoice_id=invoice.id, amount=Decimal("10"))
            )

    async def test_delete_payment_is_idempotent(self, store, tenant_id, ledger, customer):
        invoice = await ledger.create_sale_invoice(sale_data(customer.id))
        payment = await ledger.create_payment_in(PaymentCreate(invoice_id=invoice.id, amount=Decimal("60")))

        assert await ledger.delete_payment_in(payment.id) is True
        entries = await history_count(store)
        assert await ledger.delete_payment_in(payment.id) is False

        assert await history_count(store) == entries
        assert await balance_of(store, tenant_id, customer.id) == Decimal("100")
        assert (await load(store, SaleInvoice, invoice.id)).amount_paid == Decimal("0")

    async def test_initial_amount_paid_creates_linked_payment(self, store, tenant_id, ledger, customer):
        invoice = await ledger.create_sale_invoice(sale_data(customer.id, initial_amount_paid=Decimal("30")))

        current = await load(store, SaleInvoice, invoice.id)
        assert current.amount_paid == Decimal("30")
        assert current.amount_due == Decimal("70")
        assert current.status == "partial"
        assert await count_rows(store, PaymentIn) == 1
        assert await balance_of(store, tenant_id, customer.id) == Decimal("70")

    async def test_initial_amount_paid_history(self, store, tenant_id, ledger, customer):
        """Un 'created' para la factura y un 'payment_in' para su pago inicial."""
        start = await history_count(store)
        invoice = await ledger.create_sale_invoice(sale_data(customer.id, initial_amount_paid=Decimal("40")))

        assert await history_count(store) == start + 2
        history = HistoryService(store, tenant_id)
        assert [e.action for e in await history.list_for_document(invoice.id)] == ["created"]

        async with store.transaction() as db:
            payment = await db.scalar(select(PaymentIn).where(PaymentIn.invoice_id == invoice.id))
        payment_entries = await history.list_for_document(payment.id)
        assert [e.action for e in payment_entries] == ["payment_in"]
        assert Decimal(json.loads(payment_entries[0].new_values)["amount"]) == Decimal("40")

    async def test_initial_amount_paid_above_total_is_rejected(self, store, ledger, customer):
        with pytest.raises(LedgerValidationError):
            await ledger.create_sale_invoice(sale_data(customer.id, initial_amount_paid=Decimal("150")))
        assert await count_rows(store, SaleInvoice) == 0

    async def test_sale_to_supplier_is_rejected(self, ledger, supplier):
        with pytest.raises(LedgerValidationError):
            await ledger.create_sale_invoice(sale_data(supplier.id))

    async def test_numbers_come_from_sequence(self, store, tenant_id, ledger, customer):
        first = await ledger.create_sale_invoice(sale_data(customer.id))
        second = await ledger.create_sale_invoice(sale_data(customer.id))
        payment = await ledger.create_payment_in(PaymentCreate(invoice_id=first.id, amount=Decimal("1")))

        assert first.invoice_number == "INV-1001"
        assert second.invoice_number == "INV-1002"
        assert payment.receipt_number == "REC-1001"
        config = await SequenceService(store, tenant_id).get_config("sale_invoice")
        assert config.next_number == 1003


class TestSaleStatusAndDeletion:
    """Cambios de estado y borrado de facturas de venta"""

    async def test_status_change_has_no_balance_effect(self, store, tenant_id, ledger, customer, item):
        invoice = await ledger.create_sale_invoice(sale_data(customer.id, item.id))
        updated = await ledger.update_sale_status(invoice.id, "sent")

        assert updated.status == "sent"
        assert updated.base_status == "sent"
        assert await balance_of(store, tenant_id, customer.id) == Decimal("100")
        assert await stock_of(store, tenant_id, item.id) == Decimal("40")

    async def test_cancel_is_terminal_for_payments(self, store, ledger, customer):
        invoice = await ledger.create_sale_invoice(sale_data(customer.id))
        await ledger.update_sale_status(invoice.id, "cancelled")
        await ledger.create_payment_in(PaymentCreate(invoice_id=invoice.id, amount=Decimal("100")))

        assert (await load(store, SaleInvoice, invoice.id)).status == "cancelled"

    async def test_update_status_of_missing_invoice_fails(self, ledger):
        with pytest.raises(NotFoundError):
            await ledger.update_sale_status(uuid4(), "sent")

    async def test_delete_invoice_reverses_everything(self, store, tenant_id, ledger, customer, item):
        invoice = await ledger.create_sale_invoice(sale_data(customer.id, item.id))
        payment = await ledger.create_payment_in(PaymentCreate(invoice_id=invoice.id, amount=Decimal("40")))

        assert await ledger.delete_sale_invoice(invoice.id) is True

        assert await balance_of(store, tenant_id, customer.id) == Decimal("0")
        assert await stock_of(store, tenant_id, item.id) == Decimal("50")
        assert await load(store, SaleInvoice, invoice.id) is None
        assert await load(store, PaymentIn, payment.id) is None

        entries = await HistoryService(store, tenant_id).list_for_document(invoice.id)
        assert [e.action for e in entries] == ["created", "deleted"]
        assert json.loads(entries[-1].old_values)["payment_ids"] == [str(payment.id)]

        assert await ledger.delete_sale_invoice(invoice.id) is False


# ===== TESTS DE COMPRAS Y PAGOS REALIZADOS =====

class TestPurchaseScenario:
    """Compra recibida vs. borrador"""

    async def test_received_purchase_moves_stock_and_balance(self, store, tenant_id, ledger, supplier, item):
        invoice = await ledger.create_purchase_invoice(purchase_data(supplier.id, item.id, status="received"))

        assert invoice.total == Decimal("50")
        assert invoice.status == "received"
        assert await stock_of(store, tenant_id, item.id) == Decimal("60")
        assert await balance_of(store, tenant_id, supplier.id) == Decimal("-50")

    async def test_draft_purchase_has_no_effect(self, store, tenant_id, ledger, supplier, item):
        invoice = await ledger.create_purchase_invoice(purchase_data(supplier.id, item.id, status="draft"))

        assert invoice.status == "draft"
        assert await stock_of(store, tenant_id, item.id) == Decimal("50")
        assert await balance_of(store, tenant_id, supplier.id) == Decimal("0")

    async def test_paid_request_counts_as_received(self, store, tenant_id, ledger, supplier, item):
        invoice = await ledger.create_purchase_invoice(purchase_data(supplier.id, item.id, status="paid"))

        assert invoice.base_status == "received"
        assert await stock_of(store, tenant_id, item.id) == Decimal("60")

    async def test_receiving_later_applies_effects(self, store, tenant_id, ledger, supplier, item):
        invoice = await ledger.create_purchase_invoice(purchase_data(supplier.id, item.id, status="ordered"))

        received = await ledger.update_purchase_status(invoice.id, "received")
        assert received.status == "received"
        assert await stock_of(store, tenant_id, item.id) == Decimal("60")
        assert await balance_of(store, tenant_id, supplier.id) == Decimal("-50")

        # Volver a received no duplica el efecto
        await ledger.update_purchase_status(invoice.id, "received")
        assert await stock_of(store, tenant_id, item.id) == Decimal("60")

        reopened = await ledger.update_purchase_status(invoice.id, "ordered")
        assert reopened.status == "ordered"
        assert await stock_of(store, tenant_id, item.id) == Decimal("50")
        assert await balance_of(store, tenant_id, supplier.id) == Decimal("0")

    async def test_cancelling_received_purchase_reverts(self, store, tenant_id, ledger, supplier, item):
        invoice = await ledger.create_purchase_invoice(purchase_data(supplier.id, item.id, status="received"))
        cancelled = await ledger.update_purchase_status(invoice.id, "cancelled")

        assert cancelled.status == "cancelled"
        assert await stock_of(store, tenant_id, item.id) == Decimal("50")
        assert await balance_of(store, tenant_id, supplier.id) == Decimal("0")

    async def test_payment_out_round_trip(self, store, tenant_id, ledger, supplier):
        invoice = await ledger.create_purchase_invoice(purchase_data(supplier.id, status="received"))
        payment = await ledger.create_payment_out(PaymentCreate(invoice_id=invoice.id, amount=Decimal("50")))

        paid = await load(store, PurchaseInvoice, invoice.id)
        assert paid.status == "paid"
        assert payment.payment_number == "PAY-1001"
        assert await balance_of(store, tenant_id, supplier.id) == Decimal("0")

        await ledger.delete_payment_out(payment.id)
        reverted = await load(store, PurchaseInvoice, invoice.id)
        assert reverted.status == "received"
        assert reverted.amount_due == Decimal("50")
        assert await balance_of(store, tenant_id, supplier.id) == Decimal("-50")

    async def test_delete_purchase_reverses_received_effects(self, store, tenant_id, ledger, supplier, item):
        invoice = await ledger.create_purchase_invoice(purchase_data(supplier.id, item.id, status="received"))
        await ledger.create_payment_out(PaymentCreate(invoice_id=invoice.id, amount=Decimal("20")))

        assert await ledger.delete_purchase_invoice(invoice.id) is True
        assert await stock_of(store, tenant_id, item.id) == Decimal("50")
        assert await balance_of(store, tenant_id, supplier.id) == Decimal("0")
        assert await count_rows(store, PaymentOut) == 0


# ===== TESTS DE ATOMICIDAD =====

class TestAtomicity:
    """Ningún fallo deja escrituras parciales"""

    async def test_failure_after_all_writes_rolls_back(self, store, tenant_id, ledger, customer, item):
        entries = await history_count(store)

        with pytest.raises(RuntimeError):
            async with store.transaction() as tx:
                await ledger.create_sale_invoice(sale_data(customer.id, item.id), session=tx)
                raise RuntimeError("boom")

        assert await count_rows(store, SaleInvoice) == 0
        assert await stock_of(store, tenant_id, item.id) == Decimal("50")
        assert await balance_of(store, tenant_id, customer.id) == Decimal("0")
        assert await history_count(store) == entries
        config = await SequenceService(store, tenant_id).get_config("sale_invoice")
        assert config.next_number == 1001

    async def test_storage_error_propagates_unchanged(self, store, tenant_id, ledger, customer, item):
        data = SaleInvoiceCreate(
            contact_id=customer.id,
            items=[
                LineItemCreate(item_id=item.id, quantity=Decimal("1"), unit_price=Decimal("10")),
                LineItemCreate(item_id=uuid4(), item_name="Fantasma", quantity=Decimal("1"), unit_price=Decimal("10")),
            ]
        )
        with pytest.raises(IntegrityError):
            await ledger.create_sale_invoice(data)

        assert await count_rows(store, SaleInvoice) == 0
        assert await stock_of(store, tenant_id, item.id) == Decimal("50")
        assert await balance_of(store, tenant_id, customer.id) == Decimal("0")

    async def test_duplicate_number_rolls_back(self, store, tenant_id, ledger, customer, item):
        await ledger.create_sale_invoice(sale_data(customer.id, item.id, invoice_number="F-1"))

        with pytest.raises(IntegrityError):
            await ledger.create_sale_invoice(sale_data(customer.id, item.id, invoice_number="F-1"))

        assert await count_rows(store, SaleInvoice) == 1
        assert await stock_of(store, tenant_id, item.id) == Decimal("40")
        assert await balance_of(store, tenant_id, customer.id) == Decimal("100")

    async def test_operations_compose_in_one_transaction(self, store, tenant_id, ledger, customer):
        async with store.transaction() as tx:
            invoice = await ledger.create_sale_invoice(sale_data(customer.id), session=tx)
            await ledger.create_payment_in(PaymentCreate(invoice_id=invoice.id, amount=Decimal("100")), session=tx)

        assert (await load(store, SaleInvoice, invoice.id)).status == "paid"
        assert await balance_of(store, tenant_id, customer.id) == Decimal("0")


# ===== TESTS DE HISTORIAL Y CONCILIACIÓN =====

class TestHistoryAndReconciliation:

    async def test_one_history_entry_per_mutation(self, store, tenant_id, ledger, customer, supplier, item):
        start = await history_count(store)

        sale = await ledger.create_sale_invoice(sale_data(customer.id, item.id))
        payment = await ledger.create_payment_in(PaymentCreate(invoice_id=sale.id, amount=Decimal("10")))
        await ledger.delete_payment_in(payment.id)
        purchase = await ledger.create_purchase_invoice(purchase_data(supplier.id, item.id, status="received"))
        await ledger.delete_purchase_invoice(purchase.id)
        await ledger.delete_sale_invoice(sale.id)

        assert await history_count(store) == start + 6

        async with store.transaction() as db:
            result = await db.execute(select(InvoiceHistory).order_by(InvoiceHistory.created_at, InvoiceHistory.id))
            entries = list(result.scalars().all())
        timestamps = [e.created_at for e in entries]
        assert timestamps == sorted(timestamps)
        ids = [e.id for e in entries]
        assert ids == sorted(ids, key=lambda value: value.int)
        assert all(e.user_name == "Test User" for e in entries)

    async def test_stored_balance_matches_derived(self, store, tenant_id, ledger, customer, supplier, item):
        sale = await ledger.create_sale_invoice(sale_data(customer.id, item.id))
        await ledger.create_payment_in(PaymentCreate(invoice_id=sale.id, amount=Decimal("35.50")))
        await ledger.create_purchase_invoice(purchase_data(supplier.id, item.id, status="received"))
        await ledger.create_purchase_invoice(purchase_data(supplier.id, item.id, status="draft"))
        await ledger.create_payment_out(PaymentCreate(contact_id=supplier.id, amount=Decimal("12")))

        assert await BalanceReportService(store, tenant_id).balance_drift() == []

    async def test_reconcile_fixes_drifted_balance(self, store, tenant_id, ledger, customer):
        await ledger.create_sale_invoice(sale_data(customer.id))
        await store.execute(
            update(Contact).where(Contact.id == customer.id).values(current_balance=Decimal("999"))
        )

        corrected = await ledger.reconcile_balances()

        assert len(corrected) == 1
        assert corrected[0]["derived_balance"] == Decimal("100")
        assert await balance_of(store, tenant_id, customer.id) == Decimal("100")
        entries = await HistoryService(store, tenant_id).list_for_document(customer.id)
        assert entries[-1].action == "balance_reconciled"
        assert await ledger.reconcile_balances() == []


# ===== TESTS DE EDICIÓN =====

class TestInvoiceEdit:
    """Editar revierte la versión anterior y aplica la nueva en una transacción"""

    async def test_edit_sale_with_payment_keeps_everything_consistent(self, store, tenant_id, ledger, customer, item):
        invoice = await ledger.create_sale_invoice(sale_data(customer.id, item.id))
        await ledger.create_payment_in(PaymentCreate(invoice_id=invoice.id, amount=Decimal("30")))

        await ledger.update_sale_invoice(invoice.id, SaleInvoiceUpdate(items=[line(item.id, quantity="4")]))

        edited = await load(store, SaleInvoice, invoice.id)
        assert edited.total == Decimal("40")
        assert edited.amount_paid == Decimal("30")
        assert edited.amount_due == Decimal("10")
        assert edited.status == "partial"
        assert await stock_of(store, tenant_id, item.id) == Decimal("46")
        assert await balance_of(store, tenant_id, customer.id) == Decimal("10")
        assert await BalanceReportService(store, tenant_id).balance_drift() == []

    async def test_edit_sale_increasing_quantity(self, store, tenant_id, ledger, customer, item):
        invoice = await ledger.create_sale_invoice(sale_data(customer.id, item.id, status="sent"))

        await ledger.update_sale_invoice(invoice.id, SaleInvoiceUpdate(items=[line(item.id, quantity="15")]))

        edited = await load(store, SaleInvoice, invoice.id)
        assert edited.total == Decimal("150")
        assert edited.amount_due == Decimal("150")
        assert edited.status == "sent"
        assert len(edited.line_items) == 1
        assert await stock_of(store, tenant_id, item.id) == Decimal("35")
        assert await balance_of(store, tenant_id, customer.id) == Decimal("150")

    async def test_edit_to_free_line_restores_stock(self, store, tenant_id, ledger, customer, item):
        invoice = await ledger.create_sale_invoice(sale_data(customer.id, item.id))

        await ledger.update_sale_invoice(invoice.id, SaleInvoiceUpdate(items=[line(quantity="1", unit_price="25")]))

        assert await stock_of(store, tenant_id, item.id) == Decimal("50")
        assert await balance_of(store, tenant_id, customer.id) == Decimal("25")

    async def test_edit_moves_balance_to_new_contact(self, store, tenant_id, ledger, customer):
        other = await ContactService(store, tenant_id).create_contact(ContactCreate(name="Otro Cliente", type="both"))
        invoice = await ledger.create_sale_invoice(sale_data(customer.id))

        await ledger.update_sale_invoice(invoice.id, SaleInvoiceUpdate(contact_id=other.id, items=[line()]))

        edited = await load(store, SaleInvoice, invoice.id)
        assert edited.contact_name == "Otro Cliente"
        assert await balance_of(store, tenant_id, customer.id) == Decimal("0")
        assert await balance_of(store, tenant_id, other.id) == Decimal("100")

    async def test_contact_change_with_payments_is_rejected(self, store, tenant_id, ledger, customer):
        other = await ContactService(store, tenant_id).create_contact(ContactCreate(name="Otro Cliente", type="customer"))
        invoice = await ledger.create_sale_invoice(sale_data(customer.id, initial_amount_paid=Decimal("10")))

        with pytest.raises(LedgerValidationError):
            await ledger.update_sale_invoice(invoice.id, SaleInvoiceUpdate(contact_id=other.id, items=[line()]))

        assert await balance_of(store, tenant_id, customer.id) == Decimal("90")

    async def test_total_below_amount_paid_is_rejected(self, store, tenant_id, ledger, customer, item):
        invoice = await ledger.create_sale_invoice(sale_data(customer.id, item.id, initial_amount_paid=Decimal("60")))
        entries = await history_count(store)

        with pytest.raises(LedgerValidationError):
            await ledger.update_sale_invoice(invoice.id, SaleInvoiceUpdate(items=[line(item.id, quantity="5")]))

        unchanged = await load(store, SaleInvoice, invoice.id)
        assert unchanged.total == Decimal("100")
        assert await stock_of(store, tenant_id, item.id) == Decimal("40")
        assert await balance_of(store, tenant_id, customer.id) == Decimal("40")
        assert await history_count(store) == entries

    async def test_edit_missing_invoice_fails(self, ledger):
        with pytest.raises(NotFoundError):
            await ledger.update_sale_invoice(uuid4(), SaleInvoiceUpdate(items=[line()]))

    async def test_edit_records_changed_fields(self, store, tenant_id, ledger, customer):
        invoice = await ledger.create_sale_invoice(sale_data(customer.id, notes="original"))

        await ledger.update_sale_invoice(
            invoice.id, SaleInvoiceUpdate(items=[line(quantity="2")], notes="corregida")
        )

        entries = await HistoryService(store, tenant_id).list_for_document(invoice.id)
        assert [e.action for e in entries] == ["created", "updated"]
        old_values = json.loads(entries[-1].old_values)
        new_values = json.loads(entries[-1].new_values)
        assert Decimal(old_values["total"]) == Decimal("100")
        assert Decimal(new_values["total"]) == Decimal("20")
        assert new_values["notes"] == "corregida"
        assert "invoice_number" not in new_values

    async def test_edit_draft_purchase_into_received(self, store, tenant_id, ledger, supplier, item):
        invoice = await ledger.create_purchase_invoice(purchase_data(supplier.id, item.id, status="draft"))

        await ledger.update_purchase_invoice(
            invoice.id, PurchaseInvoiceUpdate(status="received", items=[line(item.id, quantity="8", unit_price="5")])
        )

        edited = await load(store, PurchaseInvoice, invoice.id)
        assert edited.status == "received"
        assert edited.total == Decimal("40")
        assert await stock_of(store, tenant_id, item.id) == Decimal("58")
        assert await balance_of(store, tenant_id, supplier.id) == Decimal("-40")

    async def test_edit_received_purchase(self, store, tenant_id, ledger, supplier, item):
        invoice = await ledger.create_purchase_invoice(purchase_data(supplier.id, item.id, status="received"))
        await ledger.create_payment_out(PaymentCreate(invoice_id=invoice.id, amount=Decimal("20")))

        await ledger.update_purchase_invoice(
            invoice.id,
            PurchaseInvoiceUpdate(supplier_invoice_number="FAC-9", items=[line(item.id, quantity="6", unit_price="5")])
        )

        edited = await load(store, PurchaseInvoice, invoice.id)
        assert edited.total == Decimal("30")
        assert edited.amount_due == Decimal("10")
        assert edited.status == "partial"
        assert edited.supplier_invoice_number == "FAC-9"
        assert await stock_of(store, tenant_id, item.id) == Decimal("56")
        assert await balance_of(store, tenant_id, supplier.id) == Decimal("-10")
        assert await BalanceReportService(store, tenant_id).balance_drift() == []

    async def test_delete_purchase_without_restoring_stock(self, store, tenant_id, ledger, supplier, item):
        invoice = await ledger.create_purchase_invoice(purchase_data(supplier.id, item.id, status="received"))

        assert await ledger.delete_purchase_invoice(invoice.id, restore_stock=False) is True

        assert await stock_of(store, tenant_id, item.id) == Decimal("60")
        assert await balance_of(store, tenant_id, supplier.id) == Decimal("0")
        entries = await HistoryService(store, tenant_id).list_for_document(invoice.id)
        assert json.loads(entries[-1].old_values)["stock_restored"] is False


# ===== TESTS DE BORRADO DE CONTACTOS =====

class TestContactDeletion:

    async def test_contact_without_documents(self, store, tenant_id, ledger, customer):
        assert await ledger.delete_contact(customer.id) is True
        assert await ledger.delete_contact(customer.id) is False

        with pytest.raises(NotFoundError):
            await ContactService(store, tenant_id).get_contact(customer.id)
        entries = await HistoryService(store, tenant_id).list_for_document(customer.id)
        assert entries[-1].action == "deleted"

    async def test_documents_block_delete_without_cascade(self, store, tenant_id, ledger, customer):
        await ledger.create_sale_invoice(sale_data(customer.id))

        with pytest.raises(ConstraintViolation) as exc_info:
            await ledger.delete_contact(customer.id)

        assert exc_info.value.context["sale_invoices"] == 1
        assert await balance_of(store, tenant_id, customer.id) == Decimal("100")

    async def test_cascade_restores_stock(self, store, tenant_id, ledger, customer, item):
        invoice = await ledger.create_sale_invoice(sale_data(customer.id, item.id))
        await ledger.create_payment_in(PaymentCreate(invoice_id=invoice.id, amount=Decimal("25")))
        await ledger.create_payment_in(PaymentCreate(contact_id=customer.id, amount=Decimal("5")))

        assert await ledger.delete_contact(customer.id, cascade=True) is True

        assert await stock_of(store, tenant_id, item.id) == Decimal("50")
        assert await count_rows(store, SaleInvoice) == 0
        assert await count_rows(store, PaymentIn) == 0
        assert await count_rows(store, Contact) == 0

    async def test_cascade_without_restoring_stock(self, store, tenant_id, ledger, customer, supplier, item):
        await ledger.create_sale_invoice(sale_data(customer.id, item.id))
        await ledger.create_purchase_invoice(purchase_data(supplier.id, item.id, status="received"))

        await ledger.delete_contact(customer.id, cascade=True, restore_stock=False)
        await ledger.delete_contact(supplier.id, cascade=True, restore_stock=False)

        assert await stock_of(store, tenant_id, item.id) == Decimal("50")
        assert await count_rows(store, PurchaseInvoice) == 0

    async def test_cascade_leaves_other_contacts_consistent(self, store, tenant_id, ledger, customer, supplier, item):
        await ledger.create_sale_invoice(sale_data(customer.id, item.id))
        purchase = await ledger.create_purchase_invoice(purchase_data(supplier.id, item.id, status="received"))
        await ledger.create_payment_out(PaymentCreate(invoice_id=purchase.id, amount=Decimal("15")))
        await ledger.create_payment_out(PaymentCreate(contact_id=supplier.id, amount=Decimal("5")))

        await ledger.delete_contact(supplier.id, cascade=True)

        assert await count_rows(store, PaymentOut) == 0
        assert await stock_of(store, tenant_id, item.id) == Decimal("40")
        assert await balance_of(store, tenant_id, customer.id) == Decimal("100")
        assert await BalanceReportService(store, tenant_id).balance_drift() == []

    async def test_failed_cascade_rolls_back(self, store, tenant_id, ledger, customer, item):
        await ledger.create_sale_invoice(sale_data(customer.id, item.id))

        with pytest.raises(RuntimeError):
            async with store.transaction() as tx:
                await ledger.delete_contact(customer.id, cascade=True, session=tx)
                raise RuntimeError("boom")

        assert await count_rows(store, SaleInvoice) == 1
        assert await stock_of(store, tenant_id, item.id) == Decimal("40")
        assert await balance_of(store, tenant_id, customer.id) == Decimal("100")
