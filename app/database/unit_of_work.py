"""
Unit of Work sobre el almacenamiento local

LedgerStore expone las tres primitivas que consumen los servicios del ledger:

- execute(statement, params)  -> filas afectadas
- query(statement, params)    -> lista de filas
- transaction(session=None)   -> contexto transaccional todo-o-nada

Una misma operación puede ejecutarse sola (abre su propia transacción) o
anidada dentro de una transacción más grande recibiendo la sesión abierta
del llamador. En ese caso el llamador es dueño del commit/rollback.
"""
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, List, Mapping, Optional, TypeVar, Union
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.sql import Executable

from app.database.database import build_engine, build_session_factory

logger = logging.getLogger(__name__)

T = TypeVar("T")

Statement = Union[str, Executable]


def _as_executable(statement: Statement) -> Executable:
    # Los strings se tratan como SQL con parámetros ligados (:nombre), nunca se interpolan
    if isinstance(statement, str):
        return text(statement)
    return statement


class LedgerStore:
    """Capacidad de almacenamiento inyectable (una por app, una por test)."""

    def __init__(self, session_factory: async_sessionmaker, engine: Optional[AsyncEngine] = None):
        self.session_factory = session_factory
        self.engine = engine

    @classmethod
    def from_url(cls, database_url: str, echo: bool = False) -> "LedgerStore":
        engine = build_engine(database_url, echo=echo)
        return cls(build_session_factory(engine), engine=engine)

    @asynccontextmanager
    async def transaction(self, session: Optional[AsyncSession] = None) -> AsyncIterator[AsyncSession]:
        """
        Abrir (o reutilizar) una transacción.

        Si `session` ya tiene una transacción en curso, el cuerpo se ejecuta
        dentro de ella. Si no, se abre una sesión nueva con BEGIN; al salir sin
        errores se hace commit, y ante cualquier excepción rollback y la
        excepción se propaga sin modificar.
        """
        if session is not None:
            yield session
            return

        async with self.session_factory() as new_session:
            async with new_session.begin():
                yield new_session

    async def run(
        self,
        body: Callable[[AsyncSession], Awaitable[T]],
        session: Optional[AsyncSession] = None
    ) -> T:
        """transaction(body): ejecuta `body(tx)` dentro de una unidad de trabajo."""
        async with self.transaction(session) as tx:
            return await body(tx)

    async def execute(
        self,
        statement: Statement,
        params: Optional[Mapping[str, Any]] = None,
        session: Optional[AsyncSession] = None
    ) -> int:
        async with self.transaction(session) as tx:
            result = await tx.execute(_as_executable(statement), params or {})
            return result.rowcount

    async def query(
        self,
        statement: Statement,
        params: Optional[Mapping[str, Any]] = None,
        session: Optional[AsyncSession] = None
    ) -> List[Any]:
        async with self.transaction(session) as tx:
            result = await tx.execute(_as_executable(statement), params or {})
            return list(result.all())

    async def dispose(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
