"""
Balance Report Service

Read-side aggregates over contacts, invoices and payments. Everything is
computed on demand; the stored current_balance of each contact is compared
against the balance derived from the ledger rows:

    opening_balance
      + sum(sale invoice totals)
      - sum(purchase invoice totals with goods received)
      - sum(payments in)
      + sum(payments out)
"""

from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.common.exceptions import NotFoundError
from app.core.config import settings
from app.modules.bills.models import PurchaseInvoice, PaymentOut
from app.modules.contacts.models import Contact, RECEIVABLE_TYPES, PAYABLE_TYPES
from app.modules.invoices.models import SaleInvoice, PaymentIn
from app.modules.ledger.calculator import to_money
from app.modules.ledger.status import PurchaseStatus
from .base import BaseReportService

logger = logging.getLogger(__name__)


class BalanceReportService(BaseReportService):
    """Receivable/payable summaries and balance drift detection"""

    def _sum_for_contact(self, model, column, *criteria):
        return (
            select(func.coalesce(func.sum(column), 0))
            .where(model.tenant_id == self.tenant_id, model.contact_id == Contact.id, *criteria)
            .correlate(Contact)
            .scalar_subquery()
        )

    async def _scalar_sum(self, db: AsyncSession, query) -> Decimal:
        value = await db.scalar(query)
        return to_money(value or 0)

    async def get_summary(self, today: Optional[date] = None, session: Optional[AsyncSession] = None) -> Dict[str, Any]:
        """
        Dashboard totals.

        - total_receivable: sum of positive balances of customer/both contacts
        - total_payable: absolute sum of negative balances of supplier/both contacts
        - payments and invoices for today and the current month
        """
        today = today or date.today()
        month_start, month_end = self._month_range(today)

        async with self.store.transaction(session) as db:
            total_receivable = await self._scalar_sum(db, select(func.sum(Contact.current_balance)).where(
                Contact.tenant_id == self.tenant_id,
                Contact.type.in_(RECEIVABLE_TYPES),
                Contact.current_balance > 0
            ))
            total_payable = abs(await self._scalar_sum(db, select(func.sum(Contact.current_balance)).where(
                Contact.tenant_id == self.tenant_id,
                Contact.type.in_(PAYABLE_TYPES),
                Contact.current_balance < 0
            )))

            payments_in_today = await self._scalar_sum(
                db, self._get_base_payment_in_query(func.sum(PaymentIn.amount)).where(PaymentIn.payment_date == today)
            )
            payments_out_today = await self._scalar_sum(
                db, self._get_base_payment_out_query(func.sum(PaymentOut.amount)).where(PaymentOut.payment_date == today)
            )
            payments_in_month = await self._scalar_sum(db, self._apply_date_filter(
                self._get_base_payment_in_query(func.sum(PaymentIn.amount)), PaymentIn.payment_date, month_start, month_end
            ))
            payments_out_month = await self._scalar_sum(db, self._apply_date_filter(
                self._get_base_payment_out_query(func.sum(PaymentOut.amount)), PaymentOut.payment_date, month_start, month_end
            ))
            sales_today = await self._scalar_sum(
                db, self._get_base_sale_query(func.sum(SaleInvoice.total)).where(SaleInvoice.invoice_date == today)
            )
            purchases_today = await self._scalar_sum(
                db, self._get_base_purchase_query(func.sum(PurchaseInvoice.total)).where(PurchaseInvoice.invoice_date == today)
            )

        return {
            "as_of": today,
            "total_receivable": total_receivable,
            "total_payable": total_payable,
            "payments_in_today": payments_in_today,
            "payments_out_today": payments_out_today,
            "payments_in_month": payments_in_month,
            "payments_out_month": payments_out_month,
            "sales_today": sales_today,
            "purchases_today": purchases_today,
        }

    async def derived_balances(
        self,
        contact_id: Optional[UUID] = None,
        session: Optional[AsyncSession] = None
    ) -> List[Dict[str, Any]]:
        """Stored vs derived balance for every contact (or a single one)"""
        sales = self._sum_for_contact(SaleInvoice, SaleInvoice.total)
        purchases = self._sum_for_contact(
            PurchaseInvoice, PurchaseInvoice.total, PurchaseInvoice.base_status == PurchaseStatus.RECEIVED.value
        )
        payments_in = self._sum_for_contact(PaymentIn, PaymentIn.amount)
        payments_out = self._sum_for_contact(PaymentOut, PaymentOut.amount)

        query = select(
            Contact.id,
            Contact.name,
            Contact.type,
            Contact.opening_balance,
            Contact.current_balance,
            sales.label("sales"),
            purchases.label("purchases"),
            payments_in.label("payments_in"),
            payments_out.label("payments_out"),
        ).where(Contact.tenant_id == self.tenant_id)
        if contact_id:
            query = query.where(Contact.id == contact_id)

        async with self.store.transaction(session) as db:
            result = await db.execute(query.order_by(Contact.name))
            rows = result.all()

        balances = []
        for row in rows:
            derived = (
                to_money(row.opening_balance or 0)
                + to_money(row.sales or 0)
                - to_money(row.purchases or 0)
                - to_money(row.payments_in or 0)
                + to_money(row.payments_out or 0)
            )
            stored = to_money(row.current_balance or 0)
            drift = stored - derived
            balances.append({
                "contact_id": row.id,
                "name": row.name,
                "type": row.type,
                "stored_balance": stored,
                "derived_balance": derived,
                "drift": drift,
                "in_sync": abs(drift) <= settings.BALANCE_EPSILON,
            })
        return balances

    async def get_contact_balance(self, contact_id: UUID, session: Optional[AsyncSession] = None) -> Dict[str, Any]:
        rows = await self.derived_balances(contact_id=contact_id, session=session)
        if not rows:
            raise NotFoundError("Contacto no encontrado", contact_id=str(contact_id))
        return rows[0]

    async def balance_drift(self, session: Optional[AsyncSession] = None) -> List[Dict[str, Any]]:
        """Contacts whose stored balance disagrees with the ledger rows"""
        drifted = [row for row in await self.derived_balances(session=session) if not row["in_sync"]]
        if drifted:
            logger.warning(f"{len(drifted)} contact balances drifted for tenant {self.tenant_id}")
        return drifted

    async def get_open_invoices(
        self,
        kind: str,
        as_of: Optional[date] = None,
        session: Optional[AsyncSession] = None
    ) -> Dict[str, Any]:
        """
        Accounts receivable (kind="sale") or payable (kind="purchase"):
        invoices with an outstanding amount_due, oldest due date first.
        """
        as_of = as_of or date.today()
        model = SaleInvoice if kind == "sale" else PurchaseInvoice

        query = select(model).where(
            model.tenant_id == self.tenant_id,
            model.amount_due > settings.BALANCE_EPSILON,
            model.status != "cancelled"
        )
        if model is PurchaseInvoice:
            query = query.where(PurchaseInvoice.base_status == PurchaseStatus.RECEIVED.value)

        async with self.store.transaction(session) as db:
            result = await db.execute(query.order_by(model.due_date, model.invoice_date))
            invoices = list(result.scalars().all())

        items = []
        overdue_amount = Decimal("0")
        for invoice in invoices:
            due_date = invoice.due_date or invoice.invoice_date
            days_overdue = max((as_of - due_date).days, 0)
            if days_overdue > 0:
                overdue_amount += invoice.amount_due
            items.append({
                "invoice_id": invoice.id,
                "invoice_number": invoice.invoice_number,
                "contact_id": invoice.contact_id,
                "contact_name": invoice.contact_name,
                "invoice_date": invoice.invoice_date,
                "due_date": due_date,
                "total": invoice.total,
                "amount_paid": invoice.amount_paid,
                "amount_due": invoice.amount_due,
                "days_overdue": days_overdue,
                "is_overdue": days_overdue > 0,
            })

        total_pending = sum((item["amount_due"] for item in items), Decimal("0"))
        return {
            "as_of_date": as_of,
            "invoices": items,
            "total_invoices": len(items),
            "total_pending_amount": total_pending,
            "overdue_invoices_count": sum(1 for item in items if item["is_overdue"]),
            "overdue_amount": overdue_amount,
            "current_amount": total_pending - overdue_amount,
        }
