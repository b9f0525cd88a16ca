"""
Servicio de lógica de negocio para el módulo de Contactos

El saldo (current_balance) nunca se edita desde aquí: solo el ledger lo
mueve, siempre dentro de la misma transacción que la factura o el pago.
"""

from typing import Optional, Tuple, List
from uuid import UUID
from decimal import Decimal
import logging

from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.common.exceptions import LedgerValidationError, NotFoundError
from app.database.unit_of_work import LedgerStore
from app.modules.contacts.models import Contact
from app.modules.contacts.schemas import ContactCreate, ContactUpdate

logger = logging.getLogger(__name__)


class ContactService:
    """Servicio para gestión de contactos (clientes/proveedores)"""

    def __init__(self, store: LedgerStore, tenant_id: UUID):
        self.store = store
        self.tenant_id = tenant_id

    async def create_contact(self, contact_data: ContactCreate, session: Optional[AsyncSession] = None) -> Contact:
        """Crear contacto; el saldo actual arranca en el saldo inicial."""
        async with self.store.transaction(session) as db:
            existing = await db.scalar(
                select(Contact.id).where(
                    Contact.tenant_id == self.tenant_id,
                    Contact.name == contact_data.name
                )
            )
            if existing:
                raise LedgerValidationError(
                    f"Ya existe un contacto con el nombre '{contact_data.name}'",
                    name=contact_data.name
                )

            contact = Contact(
                tenant_id=self.tenant_id,
                name=contact_data.name,
                type=contact_data.type.value,
                email=contact_data.email,
                phone=contact_data.phone,
                opening_balance=contact_data.opening_balance,
                current_balance=contact_data.opening_balance,
                credit_limit=contact_data.credit_limit,
                credit_days=contact_data.credit_days,
                notes=contact_data.notes,
                is_active=True
            )
            db.add(contact)
            await db.flush()

        logger.info(f"Contact {contact.id} created for tenant {self.tenant_id}")
        return contact

    async def get_contact(self, contact_id: UUID, session: Optional[AsyncSession] = None) -> Contact:
        async with self.store.transaction(session) as db:
            contact = await db.scalar(
                select(Contact).where(
                    Contact.id == contact_id,
                    Contact.tenant_id == self.tenant_id
                )
            )
        if not contact:
            raise NotFoundError("Contacto no encontrado", contact_id=str(contact_id))
        return contact

    async def list_contacts(
        self,
        type: Optional[str] = None,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[Contact], int]:
        """Listar contactos con filtros (siempre con parámetros ligados)."""
        query = select(Contact).where(Contact.tenant_id == self.tenant_id)

        if type:
            query = query.where(Contact.type == type)
        if search:
            query = query.where(Contact.name.ilike(f"%{search}%"))
        if is_active is not None:
            query = query.where(Contact.is_active == is_active)

        async with self.store.transaction() as db:
            total = await db.scalar(select(func.count()).select_from(query.subquery()))
            result = await db.execute(query.order_by(Contact.name).offset(offset).limit(limit))
            contacts = list(result.scalars().all())

        return contacts, total or 0

    async def update_contact(self, contact_id: UUID, contact_update: ContactUpdate) -> Contact:
        async with self.store.transaction() as db:
            contact = await self.get_contact(contact_id, session=db)

            update_data = contact_update.model_dump(exclude_unset=True)
            if "type" in update_data and update_data["type"] is not None:
                update_data["type"] = update_data["type"].value

            for field, value in update_data.items():
                setattr(contact, field, value)
            await db.flush()

        logger.info(f"Contact {contact_id} updated")
        return contact

    async def apply_balance_delta(self, contact_id: UUID, delta: Decimal, session: AsyncSession) -> None:
        """
        Mover el saldo corrido del contacto con un UPDATE atómico.

        Debe ejecutarse dentro de la transacción del llamador. Si el contacto
        no existe se lanza NotFoundError y el llamador hace rollback de todo.
        """
        result = await session.execute(
            update(Contact)
            .where(Contact.id == contact_id, Contact.tenant_id == self.tenant_id)
            .values(current_balance=Contact.current_balance + delta)
        )
        if result.rowcount == 0:
            raise NotFoundError("Contacto no encontrado", contact_id=str(contact_id))
        logger.debug(f"Contact {contact_id} balance moved by {delta}")
