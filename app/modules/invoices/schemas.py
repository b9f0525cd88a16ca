from pydantic import BaseModel, ConfigDict
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import date, datetime
from enum import Enum


class SaleInvoiceStatus(str, Enum):
    DRAFT = "draft"
    UNPAID = "unpaid"
    SENT = "sent"
    OVERDUE = "overdue"
    PARTIAL = "partial"
    PAID = "paid"
    CANCELLED = "cancelled"


# Line Item Schemas
class InvoiceLineItemOut(BaseModel):
    id: UUID
    item_id: Optional[UUID] = None
    item_name: str
    quantity: Decimal
    unit_price: Decimal
    discount_percent: Decimal
    tax_percent: Decimal
    amount: Decimal
    tax_amount: Decimal

    model_config = ConfigDict(from_attributes=True)


# Invoice Schemas
class SaleInvoiceOut(BaseModel):
    id: UUID
    invoice_number: str
    contact_id: UUID
    contact_name: str
    invoice_date: date
    due_date: Optional[date] = None
    status: str
    base_status: str
    subtotal: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    total: Decimal
    amount_paid: Decimal
    amount_due: Decimal
    notes: Optional[str] = None
    terms: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SaleInvoiceDetail(SaleInvoiceOut):
    line_items: List[InvoiceLineItemOut] = []


class SaleInvoiceList(BaseModel):
    items: List[SaleInvoiceOut]
    total: int
    limit: int
    offset: int


class InvoiceFilters(BaseModel):
    status: Optional[str] = None
    contact_id: Optional[UUID] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    search: Optional[str] = None


# Payment Schemas
class PaymentInOut(BaseModel):
    id: UUID
    receipt_number: str
    contact_id: UUID
    contact_name: str
    payment_date: date
    amount: Decimal
    payment_mode: str
    invoice_id: Optional[UUID] = None
    invoice_number: Optional[str] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaymentInList(BaseModel):
    items: List[PaymentInOut]
    total: int
    limit: int
    offset: int
