from app.database.database import Base
from sqlalchemy import Column, String, Text, DateTime, Index, Uuid
from app.common.mixins import IdMixin, TenantMixin, utcnow
import enum


class HistoryAction(enum.Enum):
    CREATED = "created"
    UPDATED = "updated"
    STATUS_CHANGED = "status_changed"
    PAYMENT_IN = "payment_in"
    PAYMENT_OUT = "payment_out"
    STOCK_ADJUSTED = "stock_adjusted"
    BALANCE_RECONCILED = "balance_reconciled"
    DELETED = "deleted"


class HistoryDocumentType(enum.Enum):
    SALE = "sale"
    PURCHASE = "purchase"
    PAYMENT_IN = "payment_in"
    PAYMENT_OUT = "payment_out"
    ITEM = "item"
    CONTACT = "contact"


class InvoiceHistory(Base, IdMixin, TenantMixin):
    """
    Entrada inmutable del historial de auditoría.

    invoice_id es solo trazabilidad (sin FK): la entrada sobrevive al borrado
    del documento, del cual es el registro permanente. No tiene updated_at
    porque nunca se modifica.
    """
    __tablename__ = "invoice_history"

    invoice_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    invoice_type = Column(String(20), nullable=False)
    action = Column(String(30), nullable=False)
    description = Column(Text, nullable=False)
    old_values = Column(Text, nullable=True)  # JSON
    new_values = Column(Text, nullable=True)  # JSON
    user_id = Column(Uuid(as_uuid=True), nullable=True)
    user_name = Column(String(200), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_invoice_history_tenant_created", "tenant_id", "created_at", "id"),
    )
