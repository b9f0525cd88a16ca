"""
Modelos SQLAlchemy para el módulo de Contactos

Un único registro Contact cubre clientes, proveedores o ambos:
- customer: facturas de venta y pagos recibidos
- supplier: facturas de compra y pagos realizados
- both: cualquiera de los anteriores

current_balance es el saldo corrido que mantiene el ledger:
positivo = el contacto le debe a la empresa (por cobrar),
negativo = la empresa le debe al contacto (por pagar).
"""

from app.database.database import Base
from sqlalchemy import Column, String, Boolean, Numeric, Integer, Text, UniqueConstraint
from app.common.mixins import IdMixin, TenantMixin, TimestampMixin
import enum


# ===== ENUMS =====

class ContactType(enum.Enum):
    """Tipos de contacto"""
    CUSTOMER = "customer"  # Cliente (facturas de venta)
    SUPPLIER = "supplier"  # Proveedor (facturas de compra)
    BOTH = "both"          # Cliente y proveedor


RECEIVABLE_TYPES = (ContactType.CUSTOMER.value, ContactType.BOTH.value)
PAYABLE_TYPES = (ContactType.SUPPLIER.value, ContactType.BOTH.value)


# ===== MODELOS =====

class Contact(Base, IdMixin, TenantMixin, TimestampMixin):
    """
    Contactos unificados (Clientes y Proveedores)

    Las facturas y pagos referencian al contacto, nunca lo poseen.
    """
    __tablename__ = "contacts"

    # Información básica
    name = Column(String(200), nullable=False, index=True)
    type = Column(String(20), nullable=False, default=ContactType.CUSTOMER.value, index=True)
    email = Column(String(100), nullable=True)
    phone = Column(String(50), nullable=True)

    # Saldos
    opening_balance = Column(Numeric(15, 2), nullable=False, default=0)
    current_balance = Column(Numeric(15, 2), nullable=False, default=0)

    # Términos comerciales
    credit_limit = Column(Numeric(15, 2), nullable=True)
    credit_days = Column(Integer, nullable=False, default=0)

    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_contact_tenant_name"),
    )

    def is_customer(self) -> bool:
        """Verificar si el contacto es cliente"""
        return self.type in RECEIVABLE_TYPES

    def is_supplier(self) -> bool:
        """Verificar si el contacto es proveedor"""
        return self.type in PAYABLE_TYPES
