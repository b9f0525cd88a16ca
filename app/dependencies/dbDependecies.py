from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from typing import Annotated, AsyncIterator
import logging

from app.database.database import AsyncSessionLocal, async_engine
from app.database.unit_of_work import LedgerStore

logger = logging.getLogger(__name__)

# Almacenamiento de la aplicación; los tests lo reemplazan con dependency_overrides
ledger_store = LedgerStore(AsyncSessionLocal, engine=async_engine)


async def get_ledger_store() -> AsyncIterator[LedgerStore]:
    """Entrega el store a los endpoints y registra los errores de almacenamiento."""
    try:
        yield ledger_store
    except SQLAlchemyError as e:
        logger.error(f"Database error: {e}")
        raise


store_dependency = Annotated[LedgerStore, Depends(get_ledger_store)]
