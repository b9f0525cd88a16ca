"""
Servicio del ledger

Cada operación pública es una unidad de trabajo: abre su propia transacción o
se anida en la del llamador si recibe `session`. Dentro de la transacción las
escrituras siguen un orden fijo:

    cabecera -> líneas / stock -> saldo del contacto -> historial

Cualquier excepción (validación, registro inexistente, error del
almacenamiento) provoca rollback de todo y se propaga sin modificar.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Type
from uuid import UUID
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.common.exceptions import ConstraintViolation, LedgerValidationError, NotFoundError
from app.core.config import settings
from app.database.unit_of_work import LedgerStore
from app.modules.auth.schemas import Actor
from app.modules.bills.models import PurchaseInvoice, PurchaseInvoiceItem, PaymentOut
from app.modules.contacts.models import Contact
from app.modules.contacts.service import ContactService
from app.modules.history.models import HistoryAction, HistoryDocumentType
from app.modules.history.service import HistoryRecorder
from app.modules.invoices.models import SaleInvoice, SaleInvoiceItem, PaymentIn
from app.modules.items.models import Item
from app.modules.items.service import ItemService
from app.modules.ledger.calculator import LedgerCalculator, to_money
from app.modules.ledger.schemas import (
    InvoiceCreate, SaleInvoiceCreate, PurchaseInvoiceCreate, PaymentCreate,
    InvoiceUpdate, SaleInvoiceUpdate, PurchaseInvoiceUpdate
)
from app.modules.ledger.status import (
    InvoiceKind, base_status_for, goods_received, resolve_status
)
from app.modules.sequences.models import DocumentType
from app.modules.sequences.service import SequenceService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InvoiceBook:
    """Lo que distingue a ventas de compras dentro del ledger."""
    kind: InvoiceKind
    invoice_model: Type
    item_model: Type
    payment_model: Type
    document_type: DocumentType
    payment_document_type: DocumentType
    payment_number_field: str
    history_type: str
    payment_history_type: str
    payment_action: str
    # Signo del efecto del total de la factura sobre el saldo del contacto
    balance_sign: int
    # Signo del efecto de cada línea sobre el stock
    stock_sign: int
    # Signo del efecto de un pago sobre el saldo del contacto
    payment_balance_sign: int


SALES = InvoiceBook(
    kind=InvoiceKind.SALE,
    invoice_model=SaleInvoice,
    item_model=SaleInvoiceItem,
    payment_model=PaymentIn,
    document_type=DocumentType.SALE_INVOICE,
    payment_document_type=DocumentType.PAYMENT_IN,
    payment_number_field="receipt_number",
    history_type=HistoryDocumentType.SALE.value,
    payment_history_type=HistoryDocumentType.PAYMENT_IN.value,
    payment_action=HistoryAction.PAYMENT_IN.value,
    balance_sign=1,
    stock_sign=-1,
    payment_balance_sign=-1,
)

PURCHASES = InvoiceBook(
    kind=InvoiceKind.PURCHASE,
    invoice_model=PurchaseInvoice,
    item_model=PurchaseInvoiceItem,
    payment_model=PaymentOut,
    document_type=DocumentType.PURCHASE_INVOICE,
    payment_document_type=DocumentType.PAYMENT_OUT,
    payment_number_field="payment_number",
    history_type=HistoryDocumentType.PURCHASE.value,
    payment_history_type=HistoryDocumentType.PAYMENT_OUT.value,
    payment_action=HistoryAction.PAYMENT_OUT.value,
    balance_sign=-1,
    stock_sign=1,
    payment_balance_sign=1,
)


def _has_effects(book: InvoiceBook, base_status: Optional[str]) -> bool:
    # Las ventas mueven stock y saldo siempre; las compras solo con mercancía recibida
    return book.kind == InvoiceKind.SALE or goods_received(base_status)


def invoice_snapshot(invoice) -> Dict[str, Any]:
    return {
        "invoice_number": invoice.invoice_number,
        "contact_id": invoice.contact_id,
        "contact_name": invoice.contact_name,
        "status": invoice.status,
        "base_status": invoice.base_status,
        "subtotal": invoice.subtotal,
        "tax_amount": invoice.tax_amount,
        "discount_amount": invoice.discount_amount,
        "total": invoice.total,
        "amount_paid": invoice.amount_paid,
        "amount_due": invoice.amount_due,
    }


def edit_snapshot(book: InvoiceBook, invoice) -> Dict[str, Any]:
    """Campos editables de la factura, base del diff del historial."""
    values = invoice_snapshot(invoice)
    values.update({
        "invoice_date": invoice.invoice_date,
        "due_date": invoice.due_date,
        "notes": invoice.notes,
        "line_items": [
            {"item_id": line.item_id, "item_name": line.item_name, "quantity": line.quantity, "amount": line.amount}
            for line in invoice.line_items
        ],
    })
    if book.kind == InvoiceKind.SALE:
        values["terms"] = invoice.terms
    else:
        values["supplier_invoice_number"] = invoice.supplier_invoice_number
        values["expected_delivery_date"] = invoice.expected_delivery_date
    return values


def payment_snapshot(book: InvoiceBook, payment) -> Dict[str, Any]:
    return {
        "number": getattr(payment, book.payment_number_field),
        "contact_id": payment.contact_id,
        "contact_name": payment.contact_name,
        "amount": payment.amount,
        "payment_mode": payment.payment_mode,
        "payment_date": payment.payment_date,
        "invoice_id": payment.invoice_id,
        "invoice_number": payment.invoice_number,
        "reference_number": payment.reference_number,
    }


class LedgerService:
    """
    Operaciones atómicas sobre facturas, pagos, saldos y stock.

    El almacenamiento llega inyectado (LedgerStore): la aplicación usa el
    store del proceso y cada test uno en memoria.
    """

    def __init__(self, store: LedgerStore, tenant_id: UUID, actor: Optional[Actor] = None):
        self.store = store
        self.tenant_id = tenant_id
        self.epsilon = settings.BALANCE_EPSILON
        self.history = HistoryRecorder(tenant_id, actor)
        self.contacts = ContactService(store, tenant_id)
        self.items = ItemService(store, tenant_id, actor)
        self.sequences = SequenceService(store, tenant_id)

    # ===== FACTURAS =====

    async def create_sale_invoice(self, data: SaleInvoiceCreate, session: Optional[AsyncSession] = None) -> SaleInvoice:
        """
        Crear factura de venta.

        Descuenta el stock de cada línea con ítem y aumenta el saldo del
        cliente por el total, sea cual sea el estado.
        """
        return await self._create_invoice(SALES, data, session)

    async def create_purchase_invoice(self, data: PurchaseInvoiceCreate, session: Optional[AsyncSession] = None) -> PurchaseInvoice:
        """
        Crear factura de compra.

        El stock y el saldo del proveedor solo se mueven si la factura nace
        recibida (status received o paid). draft u ordered no tienen efecto
        hasta update_purchase_status(..., "received").
        """
        return await self._create_invoice(PURCHASES, data, session)

    async def _create_invoice(self, book: InvoiceBook, data: InvoiceCreate, session: Optional[AsyncSession]):
        # Validaciones previas a cualquier escritura
        base_status = base_status_for(book.kind, data.status)
        totals = LedgerCalculator.calculate_totals(data.items, data.discount_amount)
        if totals.total < 0:
            raise LedgerValidationError(
                "El descuento no puede superar el subtotal más impuestos",
                total=str(totals.total)
            )
        initial_paid = to_money(data.initial_amount_paid or 0)
        if initial_paid > totals.total + self.epsilon:
            raise LedgerValidationError(
                "El pago inicial no puede superar el total de la factura",
                total=str(totals.total),
                initial_amount_paid=str(initial_paid)
            )

        async with self.store.transaction(session) as db:
            contact = await self._get_contact(db, data.contact_id, book)
            item_names = await self._resolve_item_names(db, data.items)
            number = data.invoice_number or await self.sequences.allocate(book.document_type, db)

            # 1. Cabecera + líneas (un solo flush, la cabecera se inserta primero)
            lines = self._build_lines(book, data.items, totals, item_names)
            invoice = book.invoice_model(
                tenant_id=self.tenant_id,
                invoice_number=number,
                contact_id=contact.id,
                contact_name=contact.name,
                invoice_date=data.invoice_date,
                due_date=data.due_date,
                base_status=base_status,
                status=resolve_status(totals.total, Decimal("0"), totals.total, base_status, book.kind, base_status),
                subtotal=totals.subtotal,
                tax_amount=totals.tax_amount,
                discount_amount=totals.discount_amount,
                total=totals.total,
                amount_paid=Decimal("0"),
                amount_due=totals.total,
                notes=data.notes,
                line_items=lines,
                **self._extra_invoice_fields(book, data)
            )
            db.add(invoice)
            await db.flush()

            # 2. Stock y 3. saldo
            if _has_effects(book, base_status):
                await self._apply_line_stock(db, book, invoice.line_items, direction=1)
                await self.contacts.apply_balance_delta(contact.id, book.balance_sign * invoice.total, db)

            # 4. Historial
            await self.history.record(
                db,
                invoice_id=invoice.id,
                invoice_type=book.history_type,
                action=HistoryAction.CREATED.value,
                description=f"Created {book.kind.value} invoice {number}",
                new_values={
                    "invoice_number": number,
                    "contact_name": contact.name,
                    "total": invoice.total,
                    "status": invoice.status
                }
            )

            # El pago inicial es un pago ligado más, en la misma transacción
            if initial_paid > 0:
                await self._create_payment(
                    book,
                    PaymentCreate(
                        contact_id=contact.id,
                        invoice_id=invoice.id,
                        payment_date=data.invoice_date,
                        amount=initial_paid,
                        payment_mode=data.initial_payment_mode,
                        notes=f"Initial payment for {number}"
                    ),
                    db,
                    invoice=invoice
                )

        logger.info(f"{book.kind.value.capitalize()} invoice {number} created (total {invoice.total})")
        return invoice

    def _extra_invoice_fields(self, book: InvoiceBook, data: InvoiceCreate) -> Dict[str, Any]:
        if book.kind == InvoiceKind.SALE:
            return {"terms": getattr(data, "terms", None)}
        return {
            "supplier_invoice_number": getattr(data, "supplier_invoice_number", None),
            "expected_delivery_date": getattr(data, "expected_delivery_date", None),
        }

    @staticmethod
    def _build_lines(book: InvoiceBook, items, totals, item_names) -> List[Any]:
        return [
            book.item_model(
                item_id=item.item_id,
                item_name=name,
                quantity=item.quantity,
                unit_price=item.unit_price,
                discount_percent=item.discount_percent,
                tax_percent=item.tax_percent,
                amount=line.amount,
                tax_amount=line.tax_amount
            )
            for item, line, name in zip(items, totals.lines, item_names)
        ]

    async def update_sale_invoice(self, invoice_id: UUID, data: SaleInvoiceUpdate, session: Optional[AsyncSession] = None) -> SaleInvoice:
        """
        Editar una venta (cabecera y líneas).

        Revierte el stock de las líneas anteriores y el saldo del total
        anterior, y aplica los de la versión nueva. Los pagos registrados se
        conservan. Falla con NotFoundError si la factura no existe.
        """
        return await self._update_invoice(SALES, invoice_id, data, session)

    async def update_purchase_invoice(
        self,
        invoice_id: UUID,
        data: PurchaseInvoiceUpdate,
        session: Optional[AsyncSession] = None
    ) -> PurchaseInvoice:
        """Editar una compra. Solo las versiones recibidas mueven stock y saldo."""
        return await self._update_invoice(PURCHASES, invoice_id, data, session)

    async def _update_invoice(self, book: InvoiceBook, invoice_id: UUID, data: InvoiceUpdate, session):
        totals = LedgerCalculator.calculate_totals(data.items, data.discount_amount)
        if totals.total < 0:
            raise LedgerValidationError(
                "El descuento no puede superar el subtotal más impuestos",
                total=str(totals.total)
            )
        provided = data.model_fields_set

        async with self.store.transaction(session) as db:
            invoice = await self._get_invoice(db, book, invoice_id)
            new_base = base_status_for(book.kind, data.status) if data.status else invoice.base_status

            if totals.total < invoice.amount_paid - self.epsilon:
                raise LedgerValidationError(
                    "El nuevo total es menor que lo ya pagado",
                    total=str(totals.total),
                    amount_paid=str(invoice.amount_paid)
                )

            contact_id = data.contact_id or invoice.contact_id
            if contact_id != invoice.contact_id and invoice.amount_paid > 0:
                raise LedgerValidationError(
                    "No se puede cambiar el contacto de una factura con pagos",
                    invoice_id=str(invoice.id)
                )
            contact = await self._get_contact(db, contact_id, book)
            item_names = await self._resolve_item_names(db, data.items)

            invoice_date = data.invoice_date or invoice.invoice_date
            due_date = data.due_date if "due_date" in provided else invoice.due_date
            if due_date and due_date < invoice_date:
                raise LedgerValidationError(
                    "La fecha de vencimiento no puede ser anterior a la fecha de la factura",
                    invoice_date=str(invoice_date),
                    due_date=str(due_date)
                )

            old_values = edit_snapshot(book, invoice)

            # 1. Revertir stock y saldo de la versión anterior
            if _has_effects(book, invoice.base_status):
                await self._apply_line_stock(db, book, invoice.line_items, direction=-1)
                await self.contacts.apply_balance_delta(
                    invoice.contact_id, -book.balance_sign * invoice.total, db
                )

            # 2. Cabecera y líneas nuevas (amount_paid no cambia)
            invoice.invoice_number = data.invoice_number or invoice.invoice_number
            invoice.contact_id = contact.id
            invoice.contact_name = contact.name
            invoice.invoice_date = invoice_date
            invoice.due_date = due_date
            if "notes" in provided:
                invoice.notes = data.notes
            for field, value in self._extra_invoice_fields(book, data).items():
                if field in provided:
                    setattr(invoice, field, value)
            invoice.subtotal = totals.subtotal
            invoice.tax_amount = totals.tax_amount
            invoice.discount_amount = totals.discount_amount
            invoice.total = totals.total
            invoice.amount_due = to_money(totals.total - invoice.amount_paid)
            invoice.base_status = new_base
            invoice.status = resolve_status(
                invoice.total, invoice.amount_paid, invoice.amount_due, new_base, book.kind, new_base
            )
            invoice.line_items = self._build_lines(book, data.items, totals, item_names)
            await db.flush()

            # 3. Stock y saldo de la versión nueva
            if _has_effects(book, new_base):
                await self._apply_line_stock(db, book, invoice.line_items, direction=1)
                await self.contacts.apply_balance_delta(contact.id, book.balance_sign * invoice.total, db)

            # 4. Historial con los campos que cambiaron
            new_values = edit_snapshot(book, invoice)
            changed = [key for key in new_values if new_values[key] != old_values.get(key)]
            await self.history.record(
                db,
                invoice_id=invoice.id,
                invoice_type=book.history_type,
                action=HistoryAction.UPDATED.value,
                description=(
                    f"Updated {book.kind.value} invoice {invoice.invoice_number}: "
                    + (", ".join(changed) if changed else "no changes")
                ),
                old_values={key: old_values.get(key) for key in changed},
                new_values={key: new_values[key] for key in changed}
            )

        logger.info(f"{book.kind.value.capitalize()} invoice {invoice.invoice_number} updated (total {invoice.total})")
        return invoice

    async def update_sale_status(self, invoice_id: UUID, status: str, session: Optional[AsyncSession] = None) -> SaleInvoice:
        """Cambiar el estado base de una venta. No mueve stock ni saldo."""
        return await self._update_status(SALES, invoice_id, status, session)

    async def update_purchase_status(
        self,
        invoice_id: UUID,
        status: str,
        expected_delivery_date=None,
        session: Optional[AsyncSession] = None
    ) -> PurchaseInvoice:
        """
        Cambiar el estado base de una compra.

        Entrar en received aplica la entrada de stock y la deuda con el
        proveedor; salir de received (incluido cancelled) las revierte.
        """
        return await self._update_status(PURCHASES, invoice_id, status, session, expected_delivery_date)

    async def _update_status(self, book: InvoiceBook, invoice_id: UUID, status: str, session, expected_delivery_date=None):
        new_base = base_status_for(book.kind, status)

        async with self.store.transaction(session) as db:
            invoice = await self._get_invoice(db, book, invoice_id)
            old_values = {"status": invoice.status, "base_status": invoice.base_status}

            was_active = _has_effects(book, invoice.base_status)
            now_active = _has_effects(book, new_base)
            if was_active != now_active:
                direction = 1 if now_active else -1
                await self._apply_line_stock(db, book, invoice.line_items, direction=direction)
                await self.contacts.apply_balance_delta(
                    invoice.contact_id, direction * book.balance_sign * invoice.total, db
                )

            invoice.base_status = new_base
            invoice.status = resolve_status(
                invoice.total, invoice.amount_paid, invoice.amount_due, new_base, book.kind, new_base
            )
            if expected_delivery_date is not None and book.kind == InvoiceKind.PURCHASE:
                invoice.expected_delivery_date = expected_delivery_date
            await db.flush()

            await self.history.record(
                db,
                invoice_id=invoice.id,
                invoice_type=book.history_type,
                action=HistoryAction.STATUS_CHANGED.value,
                description=f"Status changed to {invoice.status}",
                old_values=old_values,
                new_values={"status": invoice.status, "base_status": new_base}
            )

        logger.info(f"Invoice {invoice.invoice_number} status {old_values['status']} -> {invoice.status}")
        return invoice

    async def delete_sale_invoice(self, invoice_id: UUID, session: Optional[AsyncSession] = None) -> bool:
        return await self._delete_invoice(SALES, invoice_id, session)

    async def delete_purchase_invoice(
        self,
        invoice_id: UUID,
        restore_stock: bool = True,
        session: Optional[AsyncSession] = None
    ) -> bool:
        """
        Borrar una compra. Con restore_stock=False la mercancía recibida se
        queda en inventario y solo se revierten la deuda y los pagos.
        """
        return await self._delete_invoice(PURCHASES, invoice_id, session, restore_stock)

    async def _delete_invoice(self, book: InvoiceBook, invoice_id: UUID, session, restore_stock: bool = True) -> bool:
        """
        Inverso exacto de la creación: pagos ligados, stock, saldo.

        Devuelve False (sin error) si la factura ya no existe.
        """
        async with self.store.transaction(session) as db:
            invoice = await db.scalar(
                select(book.invoice_model).where(
                    book.invoice_model.id == invoice_id,
                    book.invoice_model.tenant_id == self.tenant_id
                )
            )
            if invoice is None:
                logger.info(f"{book.kind.value} invoice {invoice_id} already deleted, nothing to do")
                return False

            result = await db.execute(
                select(book.payment_model).where(
                    book.payment_model.tenant_id == self.tenant_id,
                    book.payment_model.invoice_id == invoice.id
                )
            )
            payments = list(result.scalars().all())

            # Revertir pagos ligados
            for payment in payments:
                await self.contacts.apply_balance_delta(
                    payment.contact_id, -book.payment_balance_sign * payment.amount, db
                )

            # Revertir stock y saldo de la factura
            if _has_effects(book, invoice.base_status):
                if restore_stock:
                    await self._apply_line_stock(db, book, invoice.line_items, direction=-1)
                await self.contacts.apply_balance_delta(
                    invoice.contact_id, -book.balance_sign * invoice.total, db
                )

            old_values = invoice_snapshot(invoice)
            old_values["payment_ids"] = [p.id for p in payments]
            old_values["stock_restored"] = restore_stock
            old_values["line_items"] = [
                {"item_id": line.item_id, "item_name": line.item_name, "quantity": line.quantity, "amount": line.amount}
                for line in invoice.line_items
            ]
            await self.history.record(
                db,
                invoice_id=invoice.id,
                invoice_type=book.history_type,
                action=HistoryAction.DELETED.value,
                description=f"Deleted {book.kind.value} invoice {invoice.invoice_number}",
                old_values=old_values
            )

            for payment in payments:
                await db.delete(payment)
            await db.delete(invoice)
            await db.flush()

        logger.info(f"{book.kind.value.capitalize()} invoice {old_values['invoice_number']} deleted")
        return True

    # ===== PAGOS =====

    async def create_payment_in(self, data: PaymentCreate, session: Optional[AsyncSession] = None) -> PaymentIn:
        """Registrar un pago recibido (disminuye el saldo por cobrar del cliente)."""
        async with self.store.transaction(session) as db:
            payment = await self._create_payment(SALES, data, db)
        logger.info(f"Payment in {payment.receipt_number} recorded ({payment.amount})")
        return payment

    async def create_payment_out(self, data: PaymentCreate, session: Optional[AsyncSession] = None) -> PaymentOut:
        """Registrar un pago realizado (aumenta el saldo: reduce la deuda con el proveedor)."""
        async with self.store.transaction(session) as db:
            payment = await self._create_payment(PURCHASES, data, db)
        logger.info(f"Payment out {payment.payment_number} recorded ({payment.amount})")
        return payment

    async def _create_payment(self, book: InvoiceBook, data: PaymentCreate, db: AsyncSession, invoice=None):
        amount = to_money(data.amount)
        if amount <= 0:
            raise LedgerValidationError("El monto del pago debe ser mayor a 0", amount=str(data.amount))

        if invoice is None and data.invoice_id:
            invoice = await self._get_invoice(db, book, data.invoice_id)

        contact_id = data.contact_id
        if invoice is not None:
            if contact_id and contact_id != invoice.contact_id:
                raise LedgerValidationError(
                    "El pago y la factura pertenecen a contactos distintos",
                    contact_id=str(contact_id),
                    invoice_id=str(invoice.id)
                )
            contact_id = invoice.contact_id
            if amount > invoice.amount_due + self.epsilon:
                raise LedgerValidationError(
                    "El pago excede el saldo pendiente de la factura",
                    amount=str(amount),
                    amount_due=str(invoice.amount_due)
                )
        if contact_id is None:
            raise LedgerValidationError("Debe indicar contact_id o invoice_id")

        contact = await self._get_contact(db, contact_id, book)
        number = data.number or await self.sequences.allocate(book.payment_document_type, db)

        # 1. Fila del pago
        payment = book.payment_model(
            tenant_id=self.tenant_id,
            contact_id=contact.id,
            contact_name=contact.name,
            payment_date=data.payment_date,
            amount=amount,
            payment_mode=data.payment_mode.value,
            invoice_id=invoice.id if invoice is not None else None,
            invoice_number=invoice.invoice_number if invoice is not None else None,
            reference_number=data.reference_number,
            notes=data.notes,
            **{book.payment_number_field: number}
        )
        db.add(payment)
        await db.flush()

        # 2. Factura ligada
        invoice_before = None
        if invoice is not None:
            invoice_before = self._apply_invoice_payment(book, invoice, amount)
            await db.flush()

        # 3. Saldo del contacto
        await self.contacts.apply_balance_delta(contact.id, book.payment_balance_sign * amount, db)

        # 4. Historial (referencia el id del pago)
        new_values = payment_snapshot(book, payment)
        if invoice is not None:
            new_values.update({
                "invoice_status": invoice.status,
                "invoice_amount_paid": invoice.amount_paid,
                "invoice_amount_due": invoice.amount_due,
            })
        await self.history.record(
            db,
            invoice_id=payment.id,
            invoice_type=book.payment_history_type,
            action=book.payment_action,
            description=(
                f"Payment {number} of {amount} recorded"
                + (f" against {invoice.invoice_number}" if invoice is not None else "")
            ),
            old_values=invoice_before,
            new_values=new_values
        )
        return payment

    async def delete_payment_in(self, payment_id: UUID, session: Optional[AsyncSession] = None) -> bool:
        """Inverso exacto de create_payment_in. Idempotente: si no existe, no hace nada."""
        return await self._delete_payment(SALES, payment_id, session)

    async def delete_payment_out(self, payment_id: UUID, session: Optional[AsyncSession] = None) -> bool:
        """Inverso exacto de create_payment_out. Idempotente: si no existe, no hace nada."""
        return await self._delete_payment(PURCHASES, payment_id, session)

    async def _delete_payment(self, book: InvoiceBook, payment_id: UUID, session) -> bool:
        async with self.store.transaction(session) as db:
            # Leer primero, dentro de la transacción, para un snapshot consistente
            payment = await db.scalar(
                select(book.payment_model).where(
                    book.payment_model.id == payment_id,
                    book.payment_model.tenant_id == self.tenant_id
                )
            )
            if payment is None:
                logger.info(f"{book.payment_history_type} {payment_id} not found, nothing to delete")
                return False

            old_values = payment_snapshot(book, payment)
            amount = payment.amount

            # 1. Saldo del contacto
            await self.contacts.apply_balance_delta(payment.contact_id, -book.payment_balance_sign * amount, db)

            # 2. Factura ligada (si todavía existe)
            new_values = None
            if payment.invoice_id:
                invoice = await db.scalar(
                    select(book.invoice_model).where(
                        book.invoice_model.id == payment.invoice_id,
                        book.invoice_model.tenant_id == self.tenant_id
                    )
                )
                if invoice is not None:
                    old_values.update(self._apply_invoice_payment(book, invoice, -amount))
                    await db.flush()
                    new_values = {
                        "invoice_status": invoice.status,
                        "invoice_amount_paid": invoice.amount_paid,
                        "invoice_amount_due": invoice.amount_due,
                    }

            # 3. Historial y 4. borrado de la fila
            await self.history.record(
                db,
                invoice_id=payment.id,
                invoice_type=book.payment_history_type,
                action=HistoryAction.DELETED.value,
                description=f"Deleted payment {old_values['number']} of {amount}",
                old_values=old_values,
                new_values=new_values
            )
            await db.delete(payment)
            await db.flush()

        logger.info(f"{book.payment_history_type} {old_values['number']} deleted")
        return True

    def _apply_invoice_payment(self, book: InvoiceBook, invoice, delta: Decimal) -> Dict[str, Any]:
        """Mover amount_paid/amount_due y recalcular el estado. Devuelve los valores previos."""
        before = {
            "invoice_status": invoice.status,
            "invoice_amount_paid": invoice.amount_paid,
            "invoice_amount_due": invoice.amount_due,
        }
        invoice.amount_paid = to_money(invoice.amount_paid + delta)
        invoice.amount_due = to_money(invoice.total - invoice.amount_paid)
        invoice.status = resolve_status(
            invoice.total,
            invoice.amount_paid,
            invoice.amount_due,
            invoice.status,
            book.kind,
            invoice.base_status
        )
        return before

    # ===== CONTACTOS =====

    async def delete_contact(
        self,
        contact_id: UUID,
        cascade: bool = False,
        restore_stock: bool = True,
        session: Optional[AsyncSession] = None
    ) -> bool:
        """
        Borrar un contacto.

        Sin cascade, un contacto con facturas o pagos no se puede borrar
        (ConstraintViolation). Con cascade se borran antes sus facturas y
        pagos con las mismas reversiones que los borrados individuales;
        restore_stock=False deja el stock como está. Idempotente: si el
        contacto no existe devuelve False.
        """
        async with self.store.transaction(session) as db:
            contact = await db.scalar(
                select(Contact).where(Contact.id == contact_id, Contact.tenant_id == self.tenant_id)
            )
            if contact is None:
                logger.info(f"Contact {contact_id} already deleted, nothing to do")
                return False

            documents = {}
            for book in (SALES, PURCHASES):
                invoice_ids = await self._ids_for_contact(db, book.invoice_model, contact.id)
                payment_ids = await self._ids_for_contact(db, book.payment_model, contact.id)
                documents[book.kind] = (invoice_ids, payment_ids)
            counts = {
                "sale_invoices": len(documents[InvoiceKind.SALE][0]),
                "payments_in": len(documents[InvoiceKind.SALE][1]),
                "purchase_invoices": len(documents[InvoiceKind.PURCHASE][0]),
                "payments_out": len(documents[InvoiceKind.PURCHASE][1]),
            }

            if any(counts.values()) and not cascade:
                raise ConstraintViolation(
                    f'El contacto "{contact.name}" tiene documentos asociados',
                    contact_id=str(contact.id),
                    **counts
                )

            for book in (SALES, PURCHASES):
                invoice_ids, payment_ids = documents[book.kind]
                for invoice_id in invoice_ids:
                    await self._delete_invoice(book, invoice_id, db, restore_stock)
                # Los pagos ligados ya cayeron con su factura: aquí no hacen nada
                for payment_id in payment_ids:
                    await self._delete_payment(book, payment_id, db)

            old_values = {
                "name": contact.name,
                "type": contact.type,
                "opening_balance": contact.opening_balance,
                "current_balance": contact.current_balance,
                "stock_restored": restore_stock,
                **counts
            }
            await self.history.record(
                db,
                invoice_id=contact.id,
                invoice_type=HistoryDocumentType.CONTACT.value,
                action=HistoryAction.DELETED.value,
                description=f'Deleted contact "{contact.name}"',
                old_values=old_values
            )
            await db.delete(contact)
            await db.flush()

        logger.info(f"Contact {contact_id} deleted (cascade={cascade}, restore_stock={restore_stock})")
        return True

    async def _ids_for_contact(self, db: AsyncSession, model, contact_id: UUID) -> List[UUID]:
        result = await db.execute(
            select(model.id)
            .where(model.tenant_id == self.tenant_id, model.contact_id == contact_id)
            .order_by(model.id)
        )
        return list(result.scalars().all())

    # ===== CONCILIACIÓN =====

    async def reconcile_balances(self, session: Optional[AsyncSession] = None) -> List[Dict[str, Any]]:
        """
        Reescribir current_balance con el saldo derivado de las filas del
        ledger en los contactos que se hayan desviado más de epsilon.
        """
        # Import local: reports depende de los modelos de este módulo
        from app.modules.reports.services.balances import BalanceReportService

        corrections = []
        async with self.store.transaction(session) as db:
            report = BalanceReportService(self.store, self.tenant_id)
            for row in await report.balance_drift(session=db):
                await db.execute(
                    update(Contact)
                    .where(Contact.id == row["contact_id"], Contact.tenant_id == self.tenant_id)
                    .values(current_balance=row["derived_balance"])
                )
                await self.history.record(
                    db,
                    invoice_id=row["contact_id"],
                    invoice_type=HistoryDocumentType.CONTACT.value,
                    action=HistoryAction.BALANCE_RECONCILED.value,
                    description=f'Balance for "{row["name"]}" reconciled: {row["stored_balance"]} → {row["derived_balance"]}',
                    old_values={"current_balance": row["stored_balance"]},
                    new_values={"current_balance": row["derived_balance"], "drift": row["drift"]}
                )
                corrections.append(row)

        if corrections:
            logger.warning(f"Reconciled {len(corrections)} drifted balances for tenant {self.tenant_id}")
        return corrections

    # ===== HELPERS =====

    async def _get_contact(self, db: AsyncSession, contact_id: UUID, book: InvoiceBook) -> Contact:
        contact = await self.contacts.get_contact(contact_id, session=db)
        if book.kind == InvoiceKind.SALE and not contact.is_customer():
            raise LedgerValidationError("El contacto no es cliente", contact_id=str(contact_id))
        if book.kind == InvoiceKind.PURCHASE and not contact.is_supplier():
            raise LedgerValidationError("El contacto no es proveedor", contact_id=str(contact_id))
        return contact

    async def _get_invoice(self, db: AsyncSession, book: InvoiceBook, invoice_id: UUID):
        invoice = await db.scalar(
            select(book.invoice_model).where(
                book.invoice_model.id == invoice_id,
                book.invoice_model.tenant_id == self.tenant_id
            )
        )
        if invoice is None:
            raise NotFoundError("Factura no encontrada", invoice_id=str(invoice_id), kind=book.kind.value)
        return invoice

    async def _resolve_item_names(self, db: AsyncSession, items) -> List[str]:
        names = []
        for item in items:
            if item.item_name:
                names.append(item.item_name)
                continue
            name = await db.scalar(
                select(Item.name).where(Item.id == item.item_id, Item.tenant_id == self.tenant_id)
            )
            if name is None:
                raise NotFoundError("Ítem no encontrado", item_id=str(item.item_id))
            names.append(name)
        return names

    async def _apply_line_stock(self, db: AsyncSession, book: InvoiceBook, lines, direction: int) -> None:
        for line in lines:
            if line.item_id:
                await self.items.apply_stock_delta(line.item_id, direction * book.stock_sign * line.quantity, db)
