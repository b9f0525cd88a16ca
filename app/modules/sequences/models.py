from app.database.database import Base
from sqlalchemy import Column, String, Integer, Boolean, Text, UniqueConstraint
from app.common.mixins import IdMixin, TenantMixin, TimestampMixin
import enum


class DocumentType(enum.Enum):
    SALE_INVOICE = "sale_invoice"
    PURCHASE_INVOICE = "purchase_invoice"
    PAYMENT_IN = "payment_in"
    PAYMENT_OUT = "payment_out"


DEFAULT_PREFIXES = {
    DocumentType.SALE_INVOICE.value: "INV",
    DocumentType.PURCHASE_INVOICE.value: "PUR",
    DocumentType.PAYMENT_IN.value: "REC",
    DocumentType.PAYMENT_OUT.value: "PAY",
}
DEFAULT_NEXT_NUMBER = 1001
DEFAULT_PADDING = 4


class InvoiceSettings(Base, IdMixin, TenantMixin, TimestampMixin):
    """Configuración de numeración (y plantilla) por empresa y tipo de documento"""
    __tablename__ = "invoice_settings"

    document_type = Column(String(30), nullable=False)

    # Numeración
    prefix = Column(String(20), nullable=False, default="")  # Ej: "INV", "FAC"
    next_number = Column(Integer, nullable=False, default=DEFAULT_NEXT_NUMBER)
    padding = Column(Integer, nullable=False, default=DEFAULT_PADDING)

    # Preferencias de plantilla
    terms_and_conditions = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    due_date_days = Column(Integer, nullable=False, default=30)
    show_bank_details = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("tenant_id", "document_type", name="uq_invoice_settings_tenant_type"),
    )
