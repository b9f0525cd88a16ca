"""
Historial de auditoría

HistoryRecorder agrega una entrada por cada mutación lógica del ledger. Se
invoca siempre con la sesión de la transacción que documenta: si la mutación
hace rollback, la entrada desaparece con ella.
"""
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID
import json
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.database.unit_of_work import LedgerStore
from app.modules.auth.schemas import Actor
from app.modules.history.models import InvoiceHistory

logger = logging.getLogger(__name__)


def _json_default(value: Any):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def dump_snapshot(values: Optional[Dict[str, Any]]) -> Optional[str]:
    if values is None:
        return None
    return json.dumps(values, default=_json_default, sort_keys=True)


class HistoryRecorder:
    """Solo inserta; no existe operación de actualización ni de borrado."""

    def __init__(self, tenant_id: UUID, actor: Optional[Actor] = None):
        self.tenant_id = tenant_id
        self.actor = actor or Actor(user_id=None, user_name=settings.ANONYMOUS_USER_NAME)

    async def record(
        self,
        session: AsyncSession,
        invoice_id: UUID,
        invoice_type: str,
        action: str,
        description: str,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None
    ) -> InvoiceHistory:
        entry = InvoiceHistory(
            tenant_id=self.tenant_id,
            invoice_id=invoice_id,
            invoice_type=invoice_type,
            action=action,
            description=description,
            old_values=dump_snapshot(old_values),
            new_values=dump_snapshot(new_values),
            user_id=self.actor.user_id,
            user_name=self.actor.user_name or settings.ANONYMOUS_USER_NAME
        )
        session.add(entry)
        await session.flush()
        logger.debug(f"History {action} recorded for {invoice_type} {invoice_id}")
        return entry


class HistoryService:
    """Lectura del historial (solo consultas)."""

    def __init__(self, store: LedgerStore, tenant_id: UUID):
        self.store = store
        self.tenant_id = tenant_id

    async def list_for_document(self, invoice_id: UUID) -> List[InvoiceHistory]:
        async with self.store.transaction() as db:
            result = await db.execute(
                select(InvoiceHistory)
                .where(
                    InvoiceHistory.tenant_id == self.tenant_id,
                    InvoiceHistory.invoice_id == invoice_id
                )
                .order_by(InvoiceHistory.created_at, InvoiceHistory.id)
            )
            return list(result.scalars().all())

    async def list_recent(self, invoice_type: Optional[str] = None, limit: int = 50) -> List[InvoiceHistory]:
        query = select(InvoiceHistory).where(InvoiceHistory.tenant_id == self.tenant_id)
        if invoice_type:
            query = query.where(InvoiceHistory.invoice_type == invoice_type)
        query = query.order_by(InvoiceHistory.created_at.desc(), InvoiceHistory.id.desc()).limit(limit)

        async with self.store.transaction() as db:
            result = await db.execute(query)
            return list(result.scalars().all())
