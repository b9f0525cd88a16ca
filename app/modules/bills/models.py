"""
Modelos SQLAlchemy para facturas de compra y pagos realizados

Una factura de compra solo mueve stock (entrada) y saldo del proveedor
(disminuye) cuando la mercancía fue recibida: base_status == "received".
Los estados draft y ordered no tienen efecto hasta la recepción.
"""

from app.database.database import Base
from sqlalchemy import Column, String, ForeignKey, Numeric, Date, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from datetime import date
from app.common.mixins import IdMixin, TenantMixin, TimestampMixin
from app.modules.invoices.models import PaymentMode


class PurchaseInvoice(Base, IdMixin, TenantMixin, TimestampMixin):
    __tablename__ = "purchase_invoices"

    invoice_number = Column(String(50), nullable=False)
    supplier_invoice_number = Column(String(50), nullable=True)  # Número del documento del proveedor

    # Proveedor
    contact_id = Column(Uuid(as_uuid=True), ForeignKey("contacts.id"), nullable=False, index=True)
    contact_name = Column(String(200), nullable=False)

    # Dates
    invoice_date = Column(Date, nullable=False, default=date.today)
    due_date = Column(Date, nullable=True)
    expected_delivery_date = Column(Date, nullable=True)

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

    line_items = relationship(
        "PurchaseInvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PurchaseInvoiceItem.id"
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "invoice_number", name="uq_purchase_invoice_tenant_number"),
    )


class PurchaseInvoiceItem(Base, IdMixin):
    __tablename__ = "purchase_invoice_items"

    invoice_id = Column(Uuid(as_uuid=True), ForeignKey("purchase_invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = Column(Uuid(as_uuid=True), ForeignKey("items.id"), nullable=True)

    item_name = Column(String(200), nullable=False)

    quantity = Column(Numeric(12, 3), nullable=False)
    unit_price = Column(Numeric(15, 2), nullable=False)  # Costo unitario
    discount_percent = Column(Numeric(5, 2), nullable=False, default=0)
    tax_percent = Column(Numeric(5, 2), nullable=False, default=0)
    amount = Column(Numeric(15, 2), nullable=False)
    tax_amount = Column(Numeric(15, 2), nullable=False, default=0)

    invoice = relationship("PurchaseInvoice", back_populates="line_items")


class PaymentOut(Base, IdMixin, TenantMixin, TimestampMixin):
    """Pago realizado a un proveedor, ligado o no a una factura de compra."""
    __tablename__ = "payment_outs"

    payment_number = Column(String(50), nullable=False)
    contact_id = Column(Uuid(as_uuid=True), ForeignKey("contacts.id"), nullable=False, index=True)
    contact_name = Column(String(200), nullable=False)

    payment_date = Column(Date, nullable=False, default=date.today)
    amount = Column(Numeric(15, 2), nullable=False)
    payment_mode = Column(String(20), nullable=False, default=PaymentMode.CASH.value)

    invoice_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    invoice_number = Column(String(50), nullable=True)
    reference_number = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", "payment_number", name="uq_payment_out_tenant_number"),
    )
