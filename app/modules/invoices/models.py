"""
Modelos SQLAlchemy para facturas de venta y pagos recibidos

Las facturas de venta descuentan stock y aumentan el saldo del cliente desde
su creación, sin importar el estado. Los pagos recibidos (PaymentIn) pueden ir
ligados a una factura o ser recibos genéricos.
"""

from app.database.database import Base
from sqlalchemy import Column, String, ForeignKey, Numeric, Date, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from datetime import date
from app.common.mixins import IdMixin, TenantMixin, TimestampMixin
import enum


class PaymentMode(enum.Enum):
    CASH = "cash"                    # Efectivo
    BANK_TRANSFER = "bank_transfer"  # Transferencia
    CHEQUE = "cheque"                # Cheque
    CARD = "card"                    # Tarjeta
    UPI = "upi"
    OTHER = "other"                  # Otro


class SaleInvoice(Base, IdMixin, TenantMixin, TimestampMixin):
    __tablename__ = "sale_invoices"

    invoice_number = Column(String(50), nullable=False)

    # Cliente (nombre como snapshot)
    contact_id = Column(Uuid(as_uuid=True), ForeignKey("contacts.id"), nullable=False, index=True)
    contact_name = Column(String(200), nullable=False)

    # Dates
    invoice_date = Column(Date, nullable=False, default=date.today)
    due_date = Column(Date, nullable=True)

    # Estado: status es el visible, base_status el último que no viene de pagos
    status = Column(String(20), nullable=False, default="draft", index=True)
    base_status = Column(String(20), nullable=False, default="draft")

    # Totals
    subtotal = Column(Numeric(15, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(15, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(15, 2), nullable=False, default=0)
    total = Column(Numeric(15, 2), nullable=False, default=0)
    amount_paid = Column(Numeric(15, 2), nullable=False, default=0)
    amount_due = Column(Numeric(15, 2), nullable=False, default=0)

    notes = Column(Text, nullable=True)
    terms = Column(Text, nullable=True)

    line_items = relationship(
        "SaleInvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="SaleInvoiceItem.id"
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "invoice_number", name="uq_sale_invoice_tenant_number"),
    )


class SaleInvoiceItem(Base, IdMixin):
    __tablename__ = "sale_invoice_items"

    invoice_id = Column(Uuid(as_uuid=True), ForeignKey("sale_invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = Column(Uuid(as_uuid=True), ForeignKey("items.id"), nullable=True)  # Líneas libres sin ítem

    # Snapshot
    item_name = Column(String(200), nullable=False)

    quantity = Column(Numeric(12, 3), nullable=False)
    unit_price = Column(Numeric(15, 2), nullable=False)
    discount_percent = Column(Numeric(5, 2), nullable=False, default=0)
    tax_percent = Column(Numeric(5, 2), nullable=False, default=0)
    amount = Column(Numeric(15, 2), nullable=False)  # Neto de descuento, sin impuesto
    tax_amount = Column(Numeric(15, 2), nullable=False, default=0)

    invoice = relationship("SaleInvoice", back_populates="line_items")


class PaymentIn(Base, IdMixin, TenantMixin, TimestampMixin):
    """Pago recibido. invoice_id es una referencia débil (solo búsqueda)."""
    __tablename__ = "payment_ins"

    receipt_number = Column(String(50), nullable=False)
    contact_id = Column(Uuid(as_uuid=True), ForeignKey("contacts.id"), nullable=False, index=True)
    contact_name = Column(String(200), nullable=False)

    payment_date = Column(Date, nullable=False, default=date.today)
    amount = Column(Numeric(15, 2), nullable=False)
    payment_mode = Column(String(20), nullable=False, default=PaymentMode.CASH.value)

    invoice_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    invoice_number = Column(String(50), nullable=True)
    reference_number = Column(String(100), nullable=True)  # Número de referencia, cheque, etc.
    notes = Column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", "receipt_number", name="uq_payment_in_tenant_number"),
    )
