from app.database.database import Base
from sqlalchemy import Column, String, Boolean, Numeric, Text, UniqueConstraint
from app.common.mixins import IdMixin, TenantMixin, TimestampMixin


class Item(Base, IdMixin, TenantMixin, TimestampMixin):
    """
    Ítem de inventario

    stock_quantity solo lo mueven las facturas (venta: salida siempre,
    compra: entrada cuando la mercancía fue recibida) y los ajustes manuales.
    """
    __tablename__ = "items"

    name = Column(String(100), nullable=False, index=True)
    sku = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)
    unit = Column(String(20), nullable=False, default="unit")

    sale_price = Column(Numeric(15, 2), nullable=False, default=0)  # Precio de venta
    purchase_price = Column(Numeric(15, 2), nullable=False, default=0)  # Precio de compra/costo

    stock_quantity = Column(Numeric(12, 3), nullable=False, default=0)
    low_stock_alert = Column(Numeric(12, 3), nullable=False, default=0)  # Cantidad mínima para alertas

    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", "sku", name="uq_item_tenant_sku"),
    )

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity <= self.low_stock_alert
