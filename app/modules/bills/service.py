"""
Consultas de facturas de compra y pagos realizados

Crear, recibir, pagar y eliminar se hace a través de LedgerService.
"""

from typing import List, Optional, Tuple
from uuid import UUID
import logging

from sqlalchemy import select, func, or_

from app.common.exceptions import NotFoundError
from app.database.unit_of_work import LedgerStore
from app.modules.bills.models import PurchaseInvoice, PaymentOut
from app.modules.bills.schemas import BillFilters

logger = logging.getLogger(__name__)


class BillService:
    """Servicio de lectura de facturas de proveedor"""

    def __init__(self, store: LedgerStore, tenant_id: UUID):
        self.store = store
        self.tenant_id = tenant_id

    async def get_bills(
        self,
        filters: Optional[BillFilters] = None,
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[PurchaseInvoice], int]:
        query = select(PurchaseInvoice).where(PurchaseInvoice.tenant_id == self.tenant_id)

        if filters:
            if filters.status:
                query = query.where(PurchaseInvoice.status == filters.status)
            if filters.contact_id:
                query = query.where(PurchaseInvoice.contact_id == filters.contact_id)
            if filters.date_from:
                query = query.where(PurchaseInvoice.invoice_date >= filters.date_from)
            if filters.date_to:
                query = query.where(PurchaseInvoice.invoice_date <= filters.date_to)
            if filters.search:
                pattern = f"%{filters.search}%"
                query = query.where(or_(
                    PurchaseInvoice.invoice_number.ilike(pattern),
                    PurchaseInvoice.supplier_invoice_number.ilike(pattern),
                    PurchaseInvoice.contact_name.ilike(pattern)
                ))

        async with self.store.transaction() as db:
            total = await db.scalar(select(func.count()).select_from(query.subquery()))
            result = await db.execute(
                query.order_by(PurchaseInvoice.invoice_date.desc(), PurchaseInvoice.id.desc()).offset(offset).limit(limit)
            )
            bills = list(result.scalars().all())

        return bills, total or 0

    async def get_bill(self, bill_id: UUID) -> PurchaseInvoice:
        async with self.store.transaction() as db:
            bill = await db.scalar(
                select(PurchaseInvoice).where(
                    PurchaseInvoice.id == bill_id,
                    PurchaseInvoice.tenant_id == self.tenant_id
                )
            )
        if not bill:
            raise NotFoundError("Factura de compra no encontrada", bill_id=str(bill_id))
        return bill


class BillPaymentService:
    """Servicio de lectura de pagos a proveedores"""

    def __init__(self, store: LedgerStore, tenant_id: UUID):
        self.store = store
        self.tenant_id = tenant_id

    async def get_payments(
        self,
        contact_id: Optional[UUID] = None,
        bill_id: Optional[UUID] = None,
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[PaymentOut], int]:
        query = select(PaymentOut).where(PaymentOut.tenant_id == self.tenant_id)
        if contact_id:
            query = query.where(PaymentOut.contact_id == contact_id)
        if bill_id:
            query = query.where(PaymentOut.invoice_id == bill_id)

        async with self.store.transaction() as db:
            total = await db.scalar(select(func.count()).select_from(query.subquery()))
            result = await db.execute(
                query.order_by(PaymentOut.payment_date.desc(), PaymentOut.id.desc()).offset(offset).limit(limit)
            )
            payments = list(result.scalars().all())
        return payments, total or 0

    async def get_payment(self, payment_id: UUID) -> PaymentOut:
        async with self.store.transaction() as db:
            payment = await db.scalar(
                select(PaymentOut).where(PaymentOut.id == payment_id, PaymentOut.tenant_id == self.tenant_id)
            )
        if not payment:
            raise NotFoundError("Pago no encontrado", payment_id=str(payment_id))
        return payment
