"""
Esquemas Pydantic para el módulo de Gastos (Bills)
"""

from pydantic import BaseModel, ConfigDict
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import date, datetime
from enum import Enum

from app.modules.invoices.schemas import InvoiceLineItemOut, InvoiceFilters


class BillStatus(str, Enum):
    """Estados de facturas de compra"""
    DRAFT = "draft"           # Borrador (no afecta inventario)
    ORDERED = "ordered"       # Pedida al proveedor (no afecta inventario)
    RECEIVED = "received"     # Recibida (afecta inventario y saldo)
    PARTIAL = "partial"       # Pago parcial
    PAID = "paid"             # Pagada completamente
    CANCELLED = "cancelled"   # Anulada


class BillOut(BaseModel):
    id: UUID
    invoice_number: str
    supplier_invoice_number: Optional[str] = None
    contact_id: UUID
    contact_name: str
    invoice_date: date
    due_date: Optional[date] = None
    expected_delivery_date: Optional[date] = None
    status: str
    base_status: str
    subtotal: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    total: Decimal
    amount_paid: Decimal
    amount_due: Decimal
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BillDetail(BillOut):
    line_items: List[InvoiceLineItemOut] = []


class BillList(BaseModel):
    items: List[BillOut]
    total: int
    limit: int
    offset: int


class BillFilters(InvoiceFilters):
    pass


class BillPaymentOut(BaseModel):
    id: UUID
    payment_number: str
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


class BillPaymentList(BaseModel):
    items: List[BillPaymentOut]
    total: int
    limit: int
    offset: int
