from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool
from app.core.config import settings
import logging

logger = logging.getLogger(__name__)

Base = declarative_base()


def _enable_sqlite_transactions(engine: AsyncEngine) -> None:
    """
    pysqlite abre las transacciones de forma perezosa (solo antes de un DML).
    Tomamos el control para que cada transacción arranque con BEGIN IMMEDIATE:
    las lecturas dentro de la transacción ven un snapshot consistente y las
    transacciones de escritura quedan serializadas entre sí.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Crea el engine async para la URL indicada (archivo local o memoria)."""
    kwargs = {"echo": echo}
    if database_url.startswith("sqlite"):
        if database_url.rstrip("/").endswith(":memory:") or database_url.endswith("://"):
            # Una sola conexión compartida: la base en memoria vive mientras viva el engine
            kwargs["poolclass"] = StaticPool
            kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs["pool_pre_ping"] = True
        kwargs["pool_size"] = 10
        kwargs["max_overflow"] = 20

    engine = create_async_engine(database_url, **kwargs)
    if database_url.startswith("sqlite"):
        _enable_sqlite_transactions(engine)
    return engine


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )


# Engine for application use
async_engine = build_engine(settings.database_url, echo=settings.DATABASE_ECHO)

# Async session for application
AsyncSessionLocal = build_session_factory(async_engine)


async def create_tables(engine: AsyncEngine = async_engine) -> None:
    """Crea las tablas registradas en Base.metadata (idempotente)."""
    # Importar modelos para registrarlos en Base.metadata
    import app.modules.contacts.models  # noqa: F401
    import app.modules.items.models  # noqa: F401
    import app.modules.invoices.models  # noqa: F401
    import app.modules.bills.models  # noqa: F401
    import app.modules.history.models  # noqa: F401
    import app.modules.sequences.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")
