"""
Base service class for Reports module

Provides common functionality for all report services: the injected store,
tenant filtering and date helpers. Reports never write.
"""

from datetime import date
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy import and_, select

from app.database.unit_of_work import LedgerStore
from app.modules.invoices.models import SaleInvoice, PaymentIn
from app.modules.bills.models import PurchaseInvoice, PaymentOut


class BaseReportService:
    """Base service class for all report services"""

    def __init__(self, store: LedgerStore, tenant_id: UUID):
        self.store = store
        self.tenant_id = tenant_id

    def _get_base_sale_query(self, *columns):
        return select(*columns).where(SaleInvoice.tenant_id == self.tenant_id)

    def _get_base_purchase_query(self, *columns):
        return select(*columns).where(PurchaseInvoice.tenant_id == self.tenant_id)

    def _get_base_payment_in_query(self, *columns):
        return select(*columns).where(PaymentIn.tenant_id == self.tenant_id)

    def _get_base_payment_out_query(self, *columns):
        return select(*columns).where(PaymentOut.tenant_id == self.tenant_id)

    def _apply_date_filter(self, query, date_field, start_date: date, end_date: date):
        """Apply date range filter to a query (inclusive, bound parameters)"""
        return query.where(
            and_(
                date_field >= start_date,
                date_field <= end_date
            )
        )

    @staticmethod
    def _month_range(day: Optional[date] = None) -> Tuple[date, date]:
        """First and last day of the month containing `day`"""
        day = day or date.today()
        start = day.replace(day=1)
        if start.month == 12:
            next_month = start.replace(year=start.year + 1, month=1)
        else:
            next_month = start.replace(month=start.month + 1)
        return start, date.fromordinal(next_month.toordinal() - 1)
