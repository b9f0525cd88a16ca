"""
Consultas de facturas de venta y pagos recibidos

Las mutaciones viven en LedgerService; aquí solo se lee.
"""
from typing import List, Optional, Tuple
from uuid import UUID
import logging

from sqlalchemy import select, func, or_

from app.common.exceptions import NotFoundError
from app.database.unit_of_work import LedgerStore
from app.modules.invoices.models import SaleInvoice, PaymentIn
from app.modules.invoices.schemas import InvoiceFilters

logger = logging.getLogger(__name__)


class InvoiceService:
    def __init__(self, store: LedgerStore, tenant_id: UUID):
        self.store = store
        self.tenant_id = tenant_id

    async def get_invoices(
        self,
        filters: Optional[InvoiceFilters] = None,
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[SaleInvoice], int]:
        """Listar facturas con filtros (parámetros ligados, sin concatenar SQL)."""
        query = select(SaleInvoice).where(SaleInvoice.tenant_id == self.tenant_id)

        if filters:
            if filters.status:
                query = query.where(SaleInvoice.status == filters.status)
            if filters.contact_id:
                query = query.where(SaleInvoice.contact_id == filters.contact_id)
            if filters.date_from:
                query = query.where(SaleInvoice.invoice_date >= filters.date_from)
            if filters.date_to:
                query = query.where(SaleInvoice.invoice_date <= filters.date_to)
            if filters.search:
                pattern = f"%{filters.search}%"
                query = query.where(or_(
                    SaleInvoice.invoice_number.ilike(pattern),
                    SaleInvoice.contact_name.ilike(pattern),
                    SaleInvoice.notes.ilike(pattern)
                ))

        async with self.store.transaction() as db:
            total = await db.scalar(select(func.count()).select_from(query.subquery()))
            result = await db.execute(
                query.order_by(SaleInvoice.invoice_date.desc(), SaleInvoice.id.desc()).offset(offset).limit(limit)
            )
            invoices = list(result.scalars().all())

        return invoices, total or 0

    async def get_invoice_by_id(self, invoice_id: UUID) -> SaleInvoice:
        async with self.store.transaction() as db:
            invoice = await db.scalar(
                select(SaleInvoice).where(
                    SaleInvoice.id == invoice_id,
                    SaleInvoice.tenant_id == self.tenant_id
                )
            )
        if not invoice:
            raise NotFoundError("Factura no encontrada", invoice_id=str(invoice_id))
        return invoice

    async def get_invoice_payments(self, invoice_id: UUID) -> List[PaymentIn]:
        async with self.store.transaction() as db:
            result = await db.execute(
                select(PaymentIn)
                .where(PaymentIn.tenant_id == self.tenant_id, PaymentIn.invoice_id == invoice_id)
                .order_by(PaymentIn.payment_date, PaymentIn.id)
            )
            return list(result.scalars().all())

    async def get_payments(
        self,
        contact_id: Optional[UUID] = None,
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[PaymentIn], int]:
        query = select(PaymentIn).where(PaymentIn.tenant_id == self.tenant_id)
        if contact_id:
            query = query.where(PaymentIn.contact_id == contact_id)

        async with self.store.transaction() as db:
            total = await db.scalar(select(func.count()).select_from(query.subquery()))
            result = await db.execute(
                query.order_by(PaymentIn.payment_date.desc(), PaymentIn.id.desc()).offset(offset).limit(limit)
            )
            payments = list(result.scalars().all())
        return payments, total or 0

    async def get_payment_by_id(self, payment_id: UUID) -> PaymentIn:
        async with self.store.transaction() as db:
            payment = await db.scalar(
                select(PaymentIn).where(PaymentIn.id == payment_id, PaymentIn.tenant_id == self.tenant_id)
            )
        if not payment:
            raise NotFoundError("Pago no encontrado", payment_id=str(payment_id))
        return payment
