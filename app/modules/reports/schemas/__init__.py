"""
Pydantic schemas for Reports module

Response models for the balance endpoints.
"""

from datetime import date
from decimal import Decimal
from typing import List
from uuid import UUID

from pydantic import BaseModel


class BalanceSummaryResponse(BaseModel):
    """Receivable/payable totals and today's/this month's activity"""
    as_of: date
    total_receivable: Decimal
    total_payable: Decimal
    payments_in_today: Decimal
    payments_out_today: Decimal
    payments_in_month: Decimal
    payments_out_month: Decimal
    sales_today: Decimal
    purchases_today: Decimal


class ContactBalanceItem(BaseModel):
    """Stored vs derived balance of one contact"""
    contact_id: UUID
    name: str
    type: str
    stored_balance: Decimal
    derived_balance: Decimal
    drift: Decimal
    in_sync: bool


class BalanceDriftResponse(BaseModel):
    contacts: List[ContactBalanceItem]
    total: int


class ReconcileResponse(BaseModel):
    corrected: List[ContactBalanceItem]
    total_corrected: int


class OpenInvoiceItem(BaseModel):
    """Individual item in accounts receivable/payable report"""
    invoice_id: UUID
    invoice_number: str
    contact_id: UUID
    contact_name: str
    invoice_date: date
    due_date: date
    total: Decimal
    amount_paid: Decimal
    amount_due: Decimal
    days_overdue: int
    is_overdue: bool


class OpenInvoicesResponse(BaseModel):
    """Response for accounts receivable/payable report"""
    as_of_date: date
    invoices: List[OpenInvoiceItem]
    total_invoices: int
    total_pending_amount: Decimal
    overdue_invoices_count: int
    overdue_amount: Decimal
    current_amount: Decimal
