"""
Servicio de ítems e inventario

apply_stock_delta es el único punto por el que el ledger mueve stock: un
UPDATE atómico (stock = stock + :delta) dentro de la transacción del llamador.
"""
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional, Tuple
from uuid import UUID
import logging

from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.common.exceptions import ConstraintViolation, LedgerValidationError, NotFoundError
from app.database.unit_of_work import LedgerStore
from app.modules.auth.schemas import Actor
from app.modules.history.models import HistoryAction, HistoryDocumentType
from app.modules.history.service import HistoryRecorder
from app.modules.items.models import Item
from app.modules.items.schemas import ItemCreate, ItemUpdate

logger = logging.getLogger(__name__)


def parse_quantity(value: Any) -> Decimal:
    """Convertir una cantidad de ajuste a Decimal o lanzar LedgerValidationError."""
    if isinstance(value, bool) or value is None:
        raise LedgerValidationError("La cantidad debe ser numérica", quantity=value)
    try:
        quantity = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise LedgerValidationError("La cantidad debe ser numérica", quantity=value)
    if not quantity.is_finite():
        raise LedgerValidationError("La cantidad debe ser un número finito", quantity=value)
    return quantity


class ItemService:
    """Servicio para gestión de ítems"""

    def __init__(self, store: LedgerStore, tenant_id: UUID, actor: Optional[Actor] = None):
        self.store = store
        self.tenant_id = tenant_id
        self.history = HistoryRecorder(tenant_id, actor)

    async def create_item(self, item_data: ItemCreate) -> Item:
        async with self.store.transaction() as db:
            if item_data.sku:
                existing = await db.scalar(
                    select(Item.id).where(Item.tenant_id == self.tenant_id, Item.sku == item_data.sku)
                )
                if existing:
                    raise LedgerValidationError(f"SKU '{item_data.sku}' ya existe", sku=item_data.sku)

            item = Item(tenant_id=self.tenant_id, is_active=True, **item_data.model_dump())
            db.add(item)
            await db.flush()

            await self.history.record(
                db,
                invoice_id=item.id,
                invoice_type=HistoryDocumentType.ITEM.value,
                action=HistoryAction.CREATED.value,
                description=f'Item "{item.name}" created',
                new_values={"name": item.name, "stock_quantity": item.stock_quantity}
            )

        logger.info(f"Item {item.id} created for tenant {self.tenant_id}")
        return item

    async def get_item(self, item_id: UUID, session: Optional[AsyncSession] = None) -> Item:
        async with self.store.transaction(session) as db:
            item = await db.scalar(
                select(Item).where(Item.id == item_id, Item.tenant_id == self.tenant_id)
            )
        if not item:
            raise NotFoundError("Ítem no encontrado", item_id=str(item_id))
        return item

    async def list_items(
        self,
        search: Optional[str] = None,
        low_stock: Optional[bool] = None,
        is_active: Optional[bool] = None,
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[Item], int]:
        query = select(Item).where(Item.tenant_id == self.tenant_id)

        if search:
            pattern = f"%{search}%"
            query = query.where(Item.name.ilike(pattern) | Item.sku.ilike(pattern))
        if low_stock:
            query = query.where(Item.stock_quantity <= Item.low_stock_alert)
        if is_active is not None:
            query = query.where(Item.is_active == is_active)

        async with self.store.transaction() as db:
            total = await db.scalar(select(func.count()).select_from(query.subquery()))
            result = await db.execute(query.order_by(Item.name).offset(offset).limit(limit))
            items = list(result.scalars().all())

        return items, total or 0

    async def update_item(self, item_id: UUID, item_update: ItemUpdate) -> Item:
        async with self.store.transaction() as db:
            item = await self.get_item(item_id, session=db)
            update_data = item_update.model_dump(exclude_unset=True)
            old_values = {field: getattr(item, field) for field in update_data}

            for field, value in update_data.items():
                setattr(item, field, value)
            await db.flush()

            await self.history.record(
                db,
                invoice_id=item.id,
                invoice_type=HistoryDocumentType.ITEM.value,
                action=HistoryAction.UPDATED.value,
                description=f'Item "{item.name}" updated',
                old_values=old_values,
                new_values=update_data
            )
        return item

    async def adjust_stock(self, item_id: UUID, quantity: Any, notes: Optional[str] = None) -> Item:
        """
        Ajuste manual de stock.

        La cantidad se valida y la regla de stock no negativo se comprueba
        antes de abrir la transacción. Dentro de ella el UPDATE vuelve a
        exigir la regla, por si otra transacción movió el stock entretanto.
        """
        delta = parse_quantity(quantity)
        if delta == 0:
            raise LedgerValidationError("La cantidad de ajuste no puede ser cero", quantity=quantity)

        item = await self.get_item(item_id)
        if item.stock_quantity + delta < 0:
            raise ConstraintViolation(
                "El ajuste dejaría el stock en negativo",
                item_id=str(item_id),
                stock_quantity=str(item.stock_quantity),
                adjustment=str(delta)
            )

        async with self.store.transaction() as db:
            old_stock = await db.scalar(
                select(Item.stock_quantity).where(Item.id == item_id, Item.tenant_id == self.tenant_id)
            )
            result = await db.execute(
                update(Item)
                .where(
                    Item.id == item_id,
                    Item.tenant_id == self.tenant_id,
                    Item.stock_quantity + delta >= 0
                )
                .values(stock_quantity=Item.stock_quantity + delta)
            )
            if result.rowcount == 0:
                raise ConstraintViolation(
                    "El ajuste dejaría el stock en negativo",
                    item_id=str(item_id),
                    adjustment=str(delta)
                )

            new_stock = old_stock + delta
            sign = "+" if delta > 0 else ""
            await self.history.record(
                db,
                invoice_id=item_id,
                invoice_type=HistoryDocumentType.ITEM.value,
                action=HistoryAction.STOCK_ADJUSTED.value,
                description=f'Stock adjusted for "{item.name}": {old_stock} → {new_stock} ({sign}{delta})',
                old_values={"stock_quantity": old_stock},
                new_values={"stock_quantity": new_stock, "adjustment": delta, "notes": notes}
            )

        logger.info(f"Stock for item {item_id} adjusted by {delta}")
        return await self.get_item(item_id)

    async def apply_stock_delta(self, item_id: UUID, delta: Decimal, session: AsyncSession) -> None:
        """Mover stock sin validar signo (las ventas descuentan siempre)."""
        result = await session.execute(
            update(Item)
            .where(Item.id == item_id, Item.tenant_id == self.tenant_id)
            .values(stock_quantity=Item.stock_quantity + delta)
        )
        if result.rowcount == 0:
            raise NotFoundError("Ítem no encontrado", item_id=str(item_id))
        logger.debug(f"Item {item_id} stock moved by {delta}")
