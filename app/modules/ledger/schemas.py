"""
Esquemas de entrada de las operaciones del ledger
"""
from pydantic import BaseModel, Field, field_validator, model_validator
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import date
from enum import Enum


class PaymentMode(str, Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    CHEQUE = "cheque"
    CARD = "card"
    UPI = "upi"
    OTHER = "other"


class LineItemCreate(BaseModel):
    item_id: Optional[UUID] = None  # Sin ítem: línea libre, no mueve stock
    item_name: Optional[str] = Field(None, max_length=200)
    quantity: Decimal = Field(..., gt=0, description="Cantidad debe ser mayor a 0")
    unit_price: Decimal = Field(..., ge=0, description="Precio unitario sin impuestos")
    discount_percent: Decimal = Field(Decimal("0"), ge=0, le=100)
    tax_percent: Decimal = Field(Decimal("0"), ge=0, le=100)
    amount: Optional[Decimal] = Field(None, ge=0, description="Importe explícito de la línea")

    @model_validator(mode='after')
    def validate_name(self):
        if not self.item_id and not self.item_name:
            raise ValueError('Una línea sin ítem debe tener nombre')
        return self


class InvoiceCreate(BaseModel):
    contact_id: UUID
    invoice_number: Optional[str] = Field(None, max_length=50, description="Si se omite se asigna de la secuencia")
    invoice_date: date = Field(default_factory=date.today)
    due_date: Optional[date] = None
    status: Optional[str] = Field(None, description="Estado inicial solicitado")
    discount_amount: Decimal = Field(Decimal("0"), ge=0)
    initial_amount_paid: Decimal = Field(Decimal("0"), ge=0)
    initial_payment_mode: PaymentMode = PaymentMode.CASH
    notes: Optional[str] = None
    items: List[LineItemCreate] = Field(..., min_length=1, description="Debe incluir al menos un item")

    @model_validator(mode='after')
    def validate_due_date(self):
        if self.due_date and self.invoice_date and self.due_date < self.invoice_date:
            raise ValueError('La fecha de vencimiento no puede ser anterior a la fecha de la factura')
        return self


class SaleInvoiceCreate(InvoiceCreate):
    terms: Optional[str] = None


class PurchaseInvoiceCreate(InvoiceCreate):
    supplier_invoice_number: Optional[str] = Field(None, max_length=50)
    expected_delivery_date: Optional[date] = None


class PaymentCreate(BaseModel):
    contact_id: Optional[UUID] = None  # Si se omite se toma de la factura
    invoice_id: Optional[UUID] = None
    number: Optional[str] = Field(None, max_length=50, description="Si se omite se asigna de la secuencia")
    payment_date: date = Field(default_factory=date.today)
    amount: Decimal = Field(..., gt=0)
    payment_mode: PaymentMode = PaymentMode.CASH
    reference_number: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None

    @model_validator(mode='after')
    def validate_target(self):
        if not self.contact_id and not self.invoice_id:
            raise ValueError('Debe indicar contact_id o invoice_id')
        return self


class StatusUpdate(BaseModel):
    status: str = Field(..., min_length=1, max_length=20)
    expected_delivery_date: Optional[date] = None

    @field_validator('status')
    @classmethod
    def normalize_status(cls, v):
        return v.strip().lower()


class InvoiceUpdate(BaseModel):
    """
    Edición completa de una factura: reemplaza cabecera y líneas.

    Los campos opcionales omitidos conservan el valor actual. Los pagos ya
    registrados se mantienen, por eso amount_due se recalcula como
    nuevo total - amount_paid.
    """
    contact_id: Optional[UUID] = None
    invoice_number: Optional[str] = Field(None, max_length=50)
    invoice_date: Optional[date] = None
    due_date: Optional[date] = None
    status: Optional[str] = Field(None, description="Nuevo estado; si se omite se conserva el estado base")
    discount_amount: Decimal = Field(Decimal("0"), ge=0)
    notes: Optional[str] = None
    items: List[LineItemCreate] = Field(..., min_length=1, description="Debe incluir al menos un item")

    @field_validator('status')
    @classmethod
    def normalize_status(cls, v):
        return v.strip().lower() if v else v

    @model_validator(mode='after')
    def validate_due_date(self):
        if self.due_date and self.invoice_date and self.due_date < self.invoice_date:
            raise ValueError('La fecha de vencimiento no puede ser anterior a la fecha de la factura')
        return self


class SaleInvoiceUpdate(InvoiceUpdate):
    terms: Optional[str] = None


class PurchaseInvoiceUpdate(InvoiceUpdate):
    supplier_invoice_number: Optional[str] = Field(None, max_length=50)
    expected_delivery_date: Optional[date] = None
