"""
Numeración de documentos

- format_number / preview: funciones puras que renderizan el número visible
- SequenceService: lectura (con creación perezosa), actualización validada y
  asignación atómica (leer, incrementar, devolver) dentro de la transacción
  que crea el documento
"""
from enum import Enum
from typing import Any, Dict, Optional, Union
from uuid import UUID
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.common.exceptions import LedgerValidationError
from app.database.unit_of_work import LedgerStore
from app.modules.sequences.models import (
    InvoiceSettings, DocumentType, DEFAULT_PREFIXES, DEFAULT_NEXT_NUMBER, DEFAULT_PADDING
)
from app.modules.sequences.schemas import SequenceConfigUpdate

logger = logging.getLogger(__name__)


def format_number(prefix: Optional[str], number: int, padding: int) -> str:
    """
    INV + 42 + padding 5 -> "INV-00042".

    El padding es un ancho mínimo: nunca se trunca. Padding <= 0 deja el
    entero tal cual. Sin prefijo no se antepone el guion.
    """
    digits = str(number)
    if padding and padding > 0:
        digits = digits.zfill(padding)
    if not prefix:
        return digits
    return f"{prefix}-{digits}"


def preview(config: Union[InvoiceSettings, Dict[str, Any]]) -> str:
    if isinstance(config, dict):
        return format_number(config.get("prefix"), config["next_number"], config.get("padding", 0))
    return format_number(config.prefix, config.next_number, config.padding)


def _validate_next_number(value: Any) -> int:
    if isinstance(value, bool):
        raise LedgerValidationError("next_number debe ser un entero positivo", next_number=value)
    if isinstance(value, str):
        value = value.strip()
        if not value.isdigit():
            raise LedgerValidationError("next_number debe ser un entero positivo", next_number=value)
        value = int(value)
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or value < 1:
        raise LedgerValidationError("next_number debe ser un entero positivo", next_number=value)
    return value


def _validate_padding(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise LedgerValidationError("padding debe ser un entero mayor o igual a 0", padding=value)
    return value


def _document_type_value(document_type: Union[str, DocumentType]) -> str:
    value = document_type.value if isinstance(document_type, Enum) else document_type
    if value not in DEFAULT_PREFIXES:
        raise LedgerValidationError(f"Tipo de documento desconocido: {value}", document_type=value)
    return value


class SequenceService:
    """Servicio de configuración de numeración"""

    def __init__(self, store: LedgerStore, tenant_id: UUID):
        self.store = store
        self.tenant_id = tenant_id

    async def get_config(self, document_type: Union[str, DocumentType], session: Optional[AsyncSession] = None) -> InvoiceSettings:
        """Leer la configuración; la primera lectura la crea con valores por defecto."""
        doc_type = _document_type_value(document_type)

        async with self.store.transaction(session) as db:
            config = await db.scalar(
                select(InvoiceSettings).where(
                    InvoiceSettings.tenant_id == self.tenant_id,
                    InvoiceSettings.document_type == doc_type
                )
            )
            if config is None:
                config = InvoiceSettings(
                    tenant_id=self.tenant_id,
                    document_type=doc_type,
                    prefix=DEFAULT_PREFIXES[doc_type],
                    next_number=DEFAULT_NEXT_NUMBER,
                    padding=DEFAULT_PADDING
                )
                db.add(config)
                await db.flush()
                logger.info(f"Default numbering created for {doc_type} (tenant {self.tenant_id})")

        return config

    async def update_config(
        self,
        document_type: Union[str, DocumentType],
        changes: Union[SequenceConfigUpdate, Dict[str, Any]]
    ) -> InvoiceSettings:
        """Persistir prefijo/contador/padding. La validación ocurre antes de escribir."""
        if isinstance(changes, SequenceConfigUpdate):
            changes = changes.model_dump(exclude_unset=True)
        else:
            changes = dict(changes)

        if changes.get("next_number") is not None:
            changes["next_number"] = _validate_next_number(changes["next_number"])
        if changes.get("padding") is not None:
            changes["padding"] = _validate_padding(changes["padding"])
        if "prefix" in changes and changes["prefix"] is not None:
            changes["prefix"] = changes["prefix"].strip()

        allowed = {c.name for c in InvoiceSettings.__table__.columns} - {"id", "tenant_id", "document_type", "created_at", "updated_at"}
        unknown = set(changes) - allowed
        if unknown:
            raise LedgerValidationError(f"Campos no editables: {', '.join(sorted(unknown))}")

        async with self.store.transaction() as db:
            config = await self.get_config(document_type, session=db)
            for field, value in changes.items():
                if value is not None:
                    setattr(config, field, value)
            await db.flush()

        logger.info(f"Numbering for {config.document_type} updated: preview {preview(config)}")
        return config

    async def allocate(self, document_type: Union[str, DocumentType], session: AsyncSession) -> str:
        """
        Asignar el siguiente número: leer, incrementar y devolver, en la
        transacción del llamador. Si esa transacción hace rollback, el
        contador vuelve a su valor anterior.
        """
        config = await self.get_config(document_type, session=session)
        number = format_number(config.prefix, config.next_number, config.padding)

        await session.execute(
            update(InvoiceSettings)
            .where(InvoiceSettings.id == config.id)
            .values(next_number=InvoiceSettings.next_number + 1)
        )
        logger.debug(f"Allocated {number} for {config.document_type}")
        return number
